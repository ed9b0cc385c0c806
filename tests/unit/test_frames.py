"""
Unit tests for video frame sampling.

Frames come from MockFrameSource (synthetic images, no FFmpeg), or from
small failing sources defined here.
"""

import io
import math
import threading

import pytest
from PIL import Image

from slidesync.core.sync.errors import FrameExtractionError, InvalidDurationError
from slidesync.core.sync.frames import (
    ExtractionState,
    ExtractionStateMachine,
    VideoFrameExtractor,
)
from slidesync.infrastructure.video.processor import MockFrameSource


class FailingFrameSource(MockFrameSource):
    """Capture fails once the position reaches `fail_at`."""

    def __init__(self, fail_at: float, **kwargs):
        super().__init__(**kwargs)
        self.fail_at = fail_at

    def capture(self):
        if self._position >= self.fail_at:
            raise OSError("decoder gave up")
        return super().capture()


# ---------------------------------------------------------------------------
# Sampling loop
# ---------------------------------------------------------------------------

class TestVideoFrameExtractor:

    def test_thousand_second_video_yields_five_hundred_frames(self):
        source = MockFrameSource(duration_seconds=1000.0)

        extraction = VideoFrameExtractor().extract(source)

        assert extraction.interval_seconds == 2
        assert extraction.frame_count == 500
        assert extraction.frames[0].timestamp_seconds == 0
        assert extraction.frames[-1].timestamp_seconds == 998
        assert source.seeks == list(range(0, 1000, 2))

    def test_last_sample_is_strictly_before_end(self):
        extraction = VideoFrameExtractor().extract(MockFrameSource(duration_seconds=7.0))

        assert [f.timestamp_seconds for f in extraction.frames] == [0, 2, 4, 6]

    def test_markers_precede_images(self):
        extraction = VideoFrameExtractor().extract(MockFrameSource(duration_seconds=130.0))

        marker, image = extraction.frames[0].parts
        assert marker.text == "[VIDEO_FRAME_TIMESTAMP: 00:00 (Seconds: 0)]"
        assert image.mime_type == "image/jpeg"

        marker, _ = extraction.frames[-1].parts
        assert marker.text == "[VIDEO_FRAME_TIMESTAMP: 02:08 (Seconds: 128)]"

    def test_frames_are_downscaled_jpegs(self):
        source = MockFrameSource(duration_seconds=4.0, size=(1280, 720))

        extraction = VideoFrameExtractor().extract(source)

        data = extraction.frames[0].image.data
        assert data[:2] == b"\xff\xd8"
        with Image.open(io.BytesIO(data)) as frame:
            assert frame.format == "JPEG"
            assert frame.size == (256, 144)

    def test_small_frames_are_not_upscaled(self):
        source = MockFrameSource(duration_seconds=4.0, size=(160, 90))

        extraction = VideoFrameExtractor().extract(source)

        with Image.open(io.BytesIO(extraction.frames[0].image.data)) as frame:
            assert frame.size == (160, 90)

    @pytest.mark.parametrize("duration", [0.0, -1.0, math.nan, math.inf])
    def test_invalid_duration_fails_before_any_seek(self, duration):
        source = MockFrameSource(duration_seconds=duration)

        with pytest.raises(InvalidDurationError):
            VideoFrameExtractor().extract(source)

        assert source.seeks == []

    def test_capture_failure_names_timestamp(self):
        source = FailingFrameSource(fail_at=4, duration_seconds=20.0)

        with pytest.raises(FrameExtractionError) as exc_info:
            VideoFrameExtractor().extract(source)

        error = exc_info.value
        assert error.timestamp_seconds == 4
        assert isinstance(error.cause, OSError)
        assert "4.00s" in error.message
        # no seeks after the failing one
        assert source.seeks == [0, 2, 4]

    def test_reports_progress_per_frame(self):
        events = []

        extraction = VideoFrameExtractor().extract(
            MockFrameSource(duration_seconds=10.0), on_progress=events.append
        )

        assert len(events) == extraction.frame_count
        assert {e.stage for e in events} == {"video"}
        assert [e.current for e in events] == [0, 2, 4, 6, 8]
        assert events[-1].total == 10.0

    def test_failing_progress_callback_does_not_abort(self, caplog):
        def broken(event):
            raise RuntimeError("ui went away")

        extraction = VideoFrameExtractor().extract(
            MockFrameSource(duration_seconds=10.0), on_progress=broken
        )

        assert extraction.frame_count == 5
        assert "Progress callback failed" in caplog.text

    def test_extractor_can_be_reused(self):
        extractor = VideoFrameExtractor()

        first = extractor.extract(MockFrameSource(duration_seconds=10.0))
        second = extractor.extract(MockFrameSource(duration_seconds=20.0))

        assert first.frame_count == 5
        assert second.frame_count == 10

    def test_preset_cancel_stops_before_any_seek(self):
        source = MockFrameSource(duration_seconds=20.0)
        cancel = threading.Event()
        cancel.set()

        with pytest.raises(FrameExtractionError, match="cancelled"):
            VideoFrameExtractor().extract(source, cancel_event=cancel)

        assert source.seeks == []

    def test_cancel_mid_run_stops_at_next_seek(self):
        cancel = threading.Event()

        def cancel_after_third(event):
            if event.current >= 4:
                cancel.set()

        source = MockFrameSource(duration_seconds=20.0)
        with pytest.raises(FrameExtractionError) as exc_info:
            VideoFrameExtractor().extract(
                source, on_progress=cancel_after_third, cancel_event=cancel
            )

        assert source.seeks == [0, 2, 4]
        assert exc_info.value.timestamp_seconds == 6


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class TestExtractionStateMachine:

    def test_seek_capture_cycle(self):
        run = ExtractionStateMachine()
        run.advance(ExtractionState.SEEKING, 0)
        run.advance(ExtractionState.CAPTURED)
        run.advance(ExtractionState.SEEKING, 2)

        assert run.state == ExtractionState.SEEKING
        assert run.position == 2

    def test_cannot_seek_while_seeking(self):
        run = ExtractionStateMachine()
        run.advance(ExtractionState.SEEKING, 0)

        with pytest.raises(RuntimeError, match="seeking -> seeking"):
            run.advance(ExtractionState.SEEKING, 2)

    def test_cannot_capture_without_seek(self):
        with pytest.raises(RuntimeError):
            ExtractionStateMachine().advance(ExtractionState.CAPTURED)

    def test_done_is_terminal(self):
        run = ExtractionStateMachine()
        run.advance(ExtractionState.DONE)

        with pytest.raises(RuntimeError):
            run.advance(ExtractionState.SEEKING, 0)
