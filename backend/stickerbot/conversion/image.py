"""Still-image transcoding: decode, fit into the sticker box, encode lossless WebP (PNG fallback)."""
import io
import logging

from PIL import Image, UnidentifiedImageError, features

from stickerbot.config import STICKER_SIZE, WEBP_METHOD
from stickerbot.conversion.exceptions import EncoderUnsupportedError, NotAnImageError
from stickerbot.conversion.models import ConversionResult, StickerFormat
from stickerbot.conversion.resize import normalize_mode, resize_to_box

logger = logging.getLogger("stickerbot.image")

# libwebp hard limit per side
WEBP_MAX_DIMENSION = 16383

_DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    ValueError,
    SyntaxError,
    EOFError,
)


def decode_image(data: bytes) -> Image.Image:
    """Detect the format and fully decode into an RGB/RGBA buffer. Raises NotAnImageError."""
    try:
        with Image.open(io.BytesIO(data)) as opened:
            opened.load()
            logger.info("Decoded %s image %sx%s (%s)", opened.format, opened.width, opened.height, opened.mode)
            img = normalize_mode(opened)
            if img is opened:
                img = opened.copy()
    except _DECODE_ERRORS as e:
        logger.info("Decode failed for %s bytes: %s", len(data), e)
        raise NotAnImageError(str(e)) from e
    return img


def encode_webp_lossless(img: Image.Image, method: int = WEBP_METHOD) -> bytes:
    """Lossless WebP. Raises EncoderUnsupportedError when this encoder cannot take the image."""
    if not features.check("webp"):
        raise EncoderUnsupportedError("Pillow was built without WebP support")
    if not (1 <= img.width <= WEBP_MAX_DIMENSION and 1 <= img.height <= WEBP_MAX_DIMENSION):
        raise EncoderUnsupportedError(f"WebP cannot encode {img.width}x{img.height}")
    buf = io.BytesIO()
    try:
        img.save(buf, format="WEBP", lossless=True, quality=100, method=method)
    except OSError as e:
        # The image is already decoded, so a writer failure is an encoder limitation.
        raise EncoderUnsupportedError(str(e)) from e
    return buf.getvalue()


def encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def transcode_image(data: bytes, box: int = STICKER_SIZE) -> ConversionResult:
    """
    Convert raw bytes of unknown format into a sticker still.
    Returns WebP when the encoder accepts the image, PNG otherwise. Raises NotAnImageError.
    """
    with decode_image(data) as img:
        resized = resize_to_box(img, box)
    try:
        out = encode_webp_lossless(resized)
        fmt = StickerFormat.WEBP
    except EncoderUnsupportedError as e:
        logger.warning("WebP encoder rejected %sx%s image (%s), falling back to PNG", resized.width, resized.height, e)
        out = encode_png(resized)
        fmt = StickerFormat.PNG
    logger.info("Encoded %sx%s sticker as %s (%s bytes)", resized.width, resized.height, fmt.value, len(out))
    return ConversionResult(data=out, format_tag=fmt)
