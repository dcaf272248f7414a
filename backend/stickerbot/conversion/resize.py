"""Resize images into the sticker bounding box."""
import logging
from typing import Tuple

from PIL import Image

logger = logging.getLogger("stickerbot.resize")


def normalize_mode(img: Image.Image) -> Image.Image:
    """Convert to RGBA when the image carries any transparency, otherwise RGB."""
    has_alpha = img.mode in ("RGBA", "LA", "PA", "La", "RGBa") or "transparency" in img.info
    target = "RGBA" if has_alpha else "RGB"
    if img.mode == target:
        return img
    return img.convert(target)


def fit_dimensions(width: int, height: int, box: int) -> Tuple[int, int]:
    """
    Size that fits (width, height) inside a box x box square, keeping aspect ratio.
    Smaller images are enlarged: the limiting side always ends up equal to box.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image size {width}x{height}")
    scale = min(box / width, box / height)
    new_w = max(1, min(box, int(round(width * scale))))
    new_h = max(1, min(box, int(round(height * scale))))
    return new_w, new_h


def resize_to_box(img: Image.Image, box: int) -> Image.Image:
    """
    Scale image to fit within box x box, maintaining aspect ratio (Lanczos).
    The mode is normalized first so alpha survives and LANCZOS applies to every input.
    """
    img = normalize_mode(img)
    new_size = fit_dimensions(img.width, img.height, box)
    if new_size == img.size:
        return img.copy()
    logger.debug("Resizing %sx%s -> %sx%s", img.width, img.height, *new_size)
    return img.resize(new_size, Image.Resampling.LANCZOS)
