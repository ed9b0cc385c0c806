"""Image scaling and JPEG encoding shared by the frame and page extractors."""

import io

from PIL import Image


def downscale_to_fit(image: Image.Image, max_dimension: int) -> Image.Image:
    """
    Return a copy whose longer side is at most `max_dimension`.

    Aspect ratio is preserved and smaller images are never upscaled.
    """
    if max_dimension < 1:
        raise ValueError("max_dimension must be positive")
    scaled = image.copy()
    scaled.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
    return scaled


def encode_jpeg(image: Image.Image, quality: int) -> bytes:
    """Encode an image as JPEG bytes. `quality` is Pillow's 1-95 scale."""
    if image.mode != "RGB":
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()
