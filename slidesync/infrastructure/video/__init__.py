"""
Video decoding infrastructure.

Provides FrameSource implementations for the frame extractor:
- FFmpegFrameSource: seeks and captures with FFmpeg
- MockFrameSource: synthetic frames for local development
"""

from .processor import (
    FFmpegFrameSource,
    MockFrameSource,
    create_frame_source_factory,
    ffmpeg_available,
)

__all__ = [
    "FFmpegFrameSource",
    "MockFrameSource",
    "create_frame_source_factory",
    "ffmpeg_available",
]
