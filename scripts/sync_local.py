#!/usr/bin/env python3
"""
Synchronize a local lecture video with its slide deck.

Runs the same pipeline as the API without starting a server, printing
progress as frames and pages are extracted.

Usage:
    python scripts/sync_local.py lecture.mp4 slides.pdf
    python scripts/sync_local.py lecture.mp4 slides.pdf --mock --output events.json

Requires:
    - .env file with ANTHROPIC_API_KEY (unless --mock)
    - ffmpeg and ffprobe on PATH (unless --mock)
"""

import asyncio
import json
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from slidesync.api.dependencies import get_frame_source_factory, get_synchronizer  # noqa: E402
from slidesync.config.settings import Settings  # noqa: E402
from slidesync.core.sync import MediaFile, ProgressEvent, SlideSyncError, explain_failure  # noqa: E402
from slidesync.infrastructure.anthropic import create_sync_model_client  # noqa: E402


def print_progress(event: ProgressEvent) -> None:
    if event.total:
        print(f"\r[{event.stage}] {event.current}/{event.total} {event.message}", end="", flush=True)
        if event.current >= event.total:
            print()
    else:
        print(f"[{event.stage}] {event.message}")


async def run(video_path: Path, document_path: Path, settings: Settings) -> list[dict]:
    synchronizer = get_synchronizer(
        settings,
        create_sync_model_client(settings),
        get_frame_source_factory(settings),
    )

    video = MediaFile(data=video_path.read_bytes(), filename=video_path.name)
    document = MediaFile(
        data=document_path.read_bytes(),
        filename=document_path.name,
        content_type="application/pdf",
    )

    result = await synchronizer.synchronize(video, document, on_progress=print_progress)

    print(
        f"\nInterval: {result.sampling_interval}s, frames: {result.frame_count}, "
        f"pages: {result.page_count}"
    )
    return [event.to_dict() for event in result.events]


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Synchronize a lecture video with its slides")
    parser.add_argument("video", help="Path to the lecture video")
    parser.add_argument("document", help="Path to the slide deck (PDF)")
    parser.add_argument("--mock", action="store_true", help="Use mock model and frame source")
    parser.add_argument("--output", "-o", help="Write events as JSON to this file")

    args = parser.parse_args()

    video_path = Path(args.video)
    document_path = Path(args.document)
    for path in (video_path, document_path):
        if not path.is_file():
            print(f"ERROR: Cannot find {path}")
            sys.exit(1)

    settings = Settings()
    if args.mock:
        settings = settings.model_copy(update={"model_mock_mode": True, "video_mock_mode": True})

    missing = settings.validate_required_fields()
    if missing:
        print(f"ERROR: Missing configuration: {', '.join(missing)}")
        sys.exit(1)

    try:
        events = asyncio.run(run(video_path, document_path, settings))
    except SlideSyncError as e:
        print(f"\nERROR: {explain_failure(e)}")
        sys.exit(1)

    print(f"\n=== {len(events)} slide changes ===")
    for event in events:
        print(f"  {event['timestamp']}  page {event['pdfPageNumber']:>3}  {event['slideTitle']}")

    if args.output:
        Path(args.output).write_text(json.dumps(events, indent=2, ensure_ascii=False), encoding="utf-8")
        print(f"\nWrote {args.output}")

    sys.exit(0)


if __name__ == '__main__':
    main()
