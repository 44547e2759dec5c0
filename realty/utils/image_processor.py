import io
import logging

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ("jpg", "jpeg"),
    "image/png": ("png",),
    "image/webp": ("webp",),
}
THUMBNAIL_SIZE = (300, 300)
QUALITY = 90

_PIL_FORMATS = {"image/jpeg": "JPEG", "image/png": "PNG", "image/webp": "WEBP"}


class InvalidImageError(ValueError):
    pass


def verify_image(contents: bytes) -> tuple[int, int]:
    """Return (width, height) or raise InvalidImageError."""
    try:
        with Image.open(io.BytesIO(contents)) as img:
            img.verify()
        with Image.open(io.BytesIO(contents)) as img:
            return img.size
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise InvalidImageError("Invalid image file") from exc


def _prepare(img: Image.Image, fmt: str) -> Image.Image:
    if fmt == "JPEG" and img.mode not in ("RGB", "L"):
        return img.convert("RGB")
    return img


def save_optimized(contents: bytes, destination: str, mime_type: str) -> None:
    """Re-encode the upload at a fixed quality; falls back to the raw bytes."""
    fmt = _PIL_FORMATS.get(mime_type, "JPEG")
    try:
        with Image.open(io.BytesIO(contents)) as img:
            _prepare(img, fmt).save(destination, format=fmt, quality=QUALITY, optimize=True)
    except (OSError, ValueError):
        logger.warning("Optimization failed for %s, storing original bytes", destination, exc_info=True)
        with open(destination, "wb") as fh:
            fh.write(contents)


def create_thumbnail(source: str, destination: str, mime_type: str) -> bool:
    fmt = _PIL_FORMATS.get(mime_type, "JPEG")
    try:
        with Image.open(source) as img:
            img.thumbnail(THUMBNAIL_SIZE)
            _prepare(img, fmt).save(destination, format=fmt, quality=QUALITY)
        return True
    except (OSError, ValueError):
        logger.warning("Thumbnail creation failed for %s", source, exc_info=True)
        return False
