"""
Instruction text and output contract for the slide-matching task.

The prompts are here, not in config, because they're core business logic.
Changing them changes what the product does.
"""

# JSON schema for one reported slide appearance
SYNC_EVENT_SCHEMA = {
    "type": "object",
    "properties": {
        "timestamp": {
            "type": "string",
            "description": "Slide start time (MM:SS)",
        },
        "seconds": {
            "type": "number",
            "description": "Start time in total seconds",
        },
        "pdfPageNumber": {
            "type": "integer",
            "description": "PDF page number (1-based)",
        },
        "slideTitle": {
            "type": "string",
            "description": "Title of the slide",
        },
        "reasoning": {
            "type": "string",
            "description": "Why this moment matches this page",
        },
    },
    "required": ["timestamp", "seconds", "pdfPageNumber", "slideTitle", "reasoning"],
}

SYNC_EVENTS_SCHEMA = {
    "type": "array",
    "items": SYNC_EVENT_SCHEMA,
}


_VIDEO_SAMPLED = (
    "1. The lecture video, as a series of screenshots. Each screenshot is preceded "
    "by a [VIDEO_FRAME_TIMESTAMP: MM:SS (Seconds: N)] marker giving its position."
)
_VIDEO_INLINE = "1. The lecture video itself."
_DOCUMENT_RASTERIZED = (
    "2. The slide deck used in the lecture, one image per page. Each image is "
    "preceded by a [PDF_PAGE_NUMBER_N] marker."
)
_DOCUMENT_INLINE = "2. The slide deck used in the lecture, as a PDF document."


SYNC_INSTRUCTION_TEMPLATE = """You are an expert at synchronizing lecture recordings with their presentation slides.

The input contains:
{video_description}
{document_description}

Task:
Compare the video with the slide deck and find the exact moment of every slide change in the video.

Matching rules:
1. Ignore the opening and small talk. The video may start with an introduction, a waiting screen or a close-up of the speaker. Only mark the first slide once its content is clearly on screen and matches a page of the deck. Do not force the first event to 00:00.
2. Be precise. {timing_rule}
3. Ignore speaker switches. If the picture only cuts from the slides to the speaker and back while the slide stays the same, that is not a slide change.

Output rules:
1. Return a JSON list of events. Each event marks the start of one slide being shown.
2. Each event has the start time (timestamp as MM:SS and seconds as a number), the matching PDF page number (integer, 1-based), the slide title or a short summary of its content, and your reasoning.
3. Write the reasoning in {reasoning_language} and explain why the screen matches that page (for example: identical title, same chart).
4. Keep the list in chronological order."""


def build_sync_instruction(
    video_sampled: bool,
    document_rasterized: bool,
    reasoning_language: str = "English",
) -> str:
    """Build the task instruction matching how each input was submitted."""
    if video_sampled:
        timing_rule = "Base every time on the [VIDEO_FRAME_TIMESTAMP] marker of the screenshot where the slide first appears."
    else:
        timing_rule = "Report the time at which the slide first appears in the video."

    return SYNC_INSTRUCTION_TEMPLATE.format(
        video_description=_VIDEO_SAMPLED if video_sampled else _VIDEO_INLINE,
        document_description=_DOCUMENT_RASTERIZED if document_rasterized else _DOCUMENT_INLINE,
        timing_rule=timing_rule,
        reasoning_language=reasoning_language,
    )
