"""
Unit tests for the FFmpeg-backed frame source.

subprocess.run is patched, so neither ffmpeg nor ffprobe needs to be
installed. The fake answers ffprobe with JSON and ffmpeg with a PNG.
"""

import io
import json
import os
import subprocess
from unittest.mock import patch

import pytest
from PIL import Image

from slidesync.core.sync.errors import FrameExtractionError, InvalidDurationError
from slidesync.core.sync.frames import VideoFrameExtractor
from slidesync.infrastructure.video.processor import (
    FFmpegFrameSource,
    MockFrameSource,
    create_frame_source_factory,
    ffmpeg_available,
)

RUN = "slidesync.infrastructure.video.processor.subprocess.run"


def png_bytes(size=(640, 360)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, (10, 20, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


class FakeFFmpeg:
    """Stands in for subprocess.run, recording every command."""

    def __init__(self, probe=None, probe_returncode=0, capture_returncode=0):
        self.probe = probe if probe is not None else {"format": {"duration": "12.5"}}
        self.probe_returncode = probe_returncode
        self.capture_returncode = capture_returncode
        self.commands = []

    def __call__(self, cmd, **kwargs):
        self.commands.append(cmd)
        if cmd[0] == "ffprobe":
            return subprocess.CompletedProcess(
                cmd, self.probe_returncode, stdout=json.dumps(self.probe), stderr="probe failed"
            )
        if self.capture_returncode:
            return subprocess.CompletedProcess(cmd, self.capture_returncode, stdout=b"", stderr=b"bad seek")
        return subprocess.CompletedProcess(cmd, 0, stdout=png_bytes(), stderr=b"")

    def probed_path(self):
        return self.commands[0][-1]


class TestFFmpegFrameSource:

    def test_probes_duration(self):
        fake = FakeFFmpeg()
        with patch(RUN, side_effect=fake):
            with FFmpegFrameSource(b"video", "talk.mov") as source:
                assert source.duration_seconds == 12.5
                assert fake.probed_path().endswith(".mov")
                assert os.path.exists(fake.probed_path())

        assert not os.path.exists(fake.probed_path())

    def test_falls_back_to_stream_duration(self):
        fake = FakeFFmpeg(probe={"format": {}, "streams": [
            {"codec_type": "audio", "duration": "99"},
            {"codec_type": "video", "duration": "30.0"},
        ]})
        with patch(RUN, side_effect=fake):
            with FFmpegFrameSource(b"video") as source:
                assert source.duration_seconds == 30.0

    def test_capture_returns_decoded_frame(self):
        fake = FakeFFmpeg()
        with patch(RUN, side_effect=fake):
            with FFmpegFrameSource(b"video", "talk.mp4") as source:
                source.seek(4)
                image = source.capture()

        assert image.size == (640, 360)
        cmd = fake.commands[-1]
        assert cmd[cmd.index("-ss") + 1] == "4.000"
        assert cmd[cmd.index("-frames:v") + 1] == "1"

    def test_seek_past_end_is_clamped(self):
        fake = FakeFFmpeg()
        with patch(RUN, side_effect=fake):
            with FFmpegFrameSource(b"video") as source:
                source.seek(20)
                source.capture()

        cmd = fake.commands[-1]
        assert cmd[cmd.index("-ss") + 1] == "12.400"

    def test_failed_capture_raises(self):
        fake = FakeFFmpeg(capture_returncode=1)
        with patch(RUN, side_effect=fake):
            with FFmpegFrameSource(b"video") as source:
                source.seek(2)
                with pytest.raises(FrameExtractionError, match="bad seek") as exc_info:
                    source.capture()

        assert exc_info.value.timestamp_seconds == 2

    def test_failed_probe_removes_temp_file(self):
        fake = FakeFFmpeg(probe_returncode=1)
        with patch(RUN, side_effect=fake):
            with pytest.raises(FrameExtractionError, match="metadata"):
                FFmpegFrameSource(b"not a video")

        assert not os.path.exists(fake.probed_path())

    def test_missing_ffprobe(self):
        with patch(RUN, side_effect=FileNotFoundError("ffprobe")):
            with pytest.raises(FrameExtractionError, match="ffprobe not found"):
                FFmpegFrameSource(b"video")

    def test_capture_after_close_raises(self):
        with patch(RUN, side_effect=FakeFFmpeg()):
            source = FFmpegFrameSource(b"video")
            source.close()

            with pytest.raises(FrameExtractionError, match="closed"):
                source.capture()

    def test_unknown_duration_stops_extraction(self):
        fake = FakeFFmpeg(probe={"format": {}})
        with patch(RUN, side_effect=fake):
            with FFmpegFrameSource(b"video") as source:
                with pytest.raises(InvalidDurationError):
                    VideoFrameExtractor().extract(source)

        # only the probe ran
        assert len(fake.commands) == 1

    def test_extracts_frames_end_to_end(self):
        fake = FakeFFmpeg(probe={"format": {"duration": "6.0"}})
        with patch(RUN, side_effect=fake):
            with FFmpegFrameSource(b"video") as source:
                extraction = VideoFrameExtractor().extract(source)

        assert extraction.frame_count == 3
        assert len(fake.commands) == 4


class TestFFmpegAvailable:

    def test_missing_binary(self):
        with patch(RUN, side_effect=FileNotFoundError()):
            assert ffmpeg_available() is False

    def test_present_binary(self):
        with patch(RUN, return_value=subprocess.CompletedProcess(["ffmpeg"], 0)):
            assert ffmpeg_available() is True


class TestCreateFrameSourceFactory:

    def test_mock_mode(self):
        factory = create_frame_source_factory(mock_mode=True)

        source = factory(b"anything", "lecture.mp4")

        assert isinstance(source, MockFrameSource)

    def test_real_mode_uses_configured_binaries(self):
        fake = FakeFFmpeg()
        factory = create_frame_source_factory(ffmpeg_path="ffmpeg", ffprobe_path="ffprobe")

        with patch(RUN, side_effect=fake):
            with factory(b"video", "a.webm") as source:
                assert isinstance(source, FFmpegFrameSource)

        assert fake.commands[0][0] == "ffprobe"
