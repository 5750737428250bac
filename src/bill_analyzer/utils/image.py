"""Image processing utilities for bill page images."""

from __future__ import annotations

import io

from PIL import Image, ImageEnhance, ImageFilter, ImageOps

MIN_OCR_WIDTH = 1600


def preprocess_for_ocr(image_bytes: bytes) -> Image.Image:
    """Prepare a photographed or scanned page for Tesseract.

    - Apply EXIF orientation (phone photos)
    - Convert to grayscale
    - Upscale narrow images to ``MIN_OCR_WIDTH``
    - Boost contrast and sharpen
    """
    img = Image.open(io.BytesIO(image_bytes))
    img = ImageOps.exif_transpose(img)
    img = img.convert("L")

    width, height = img.size
    if width < MIN_OCR_WIDTH:
        scale = MIN_OCR_WIDTH / width
        img = img.resize((MIN_OCR_WIDTH, int(height * scale)), Image.LANCZOS)

    img = ImageEnhance.Contrast(img).enhance(1.8)
    return img.filter(ImageFilter.SHARPEN)


def get_image_dimensions(image_bytes: bytes) -> tuple[int, int]:
    """Return the ``(width, height)`` of an image."""
    img = Image.open(io.BytesIO(image_bytes))
    return img.size
