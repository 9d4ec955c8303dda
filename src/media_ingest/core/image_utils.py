"""Image utilities shared by the variant generator and focal detectors."""

import io
import math
from datetime import datetime, timezone
from typing import Optional, Tuple

import pillow_heif
from PIL import ExifTags, Image, ImageOps, UnidentifiedImageError

from .exceptions import DecodeError
from .models import FocalPoint

pillow_heif.register_heif_opener()

EXIF_DATE_FORMAT = "%Y:%m:%d %H:%M:%S"

# Preferred order: original capture, digitized, generic modify time
_CAPTURE_TAGS = (
    (ExifTags.IFD.Exif, ExifTags.Base.DateTimeOriginal),
    (ExifTags.IFD.Exif, ExifTags.Base.DateTimeDigitized),
    (None, ExifTags.Base.DateTime),
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def open_image(data: bytes) -> Image.Image:
    """Decode image bytes, raising ``DecodeError`` on anything Pillow rejects."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (
        OSError,
        SyntaxError,
        ValueError,
        Image.DecompressionBombError,
        UnidentifiedImageError,
    ) as exc:
        raise DecodeError(f"Could not decode image: {exc}") from exc
    return image


def auto_orient(image: Image.Image) -> Image.Image:
    """Apply the EXIF orientation so width and height are the displayed ones."""
    oriented = ImageOps.exif_transpose(image)
    return oriented if oriented is not None else image


def to_rgb(image: Image.Image, background: Tuple[int, int, int] = (255, 255, 255)) -> Image.Image:
    """Flatten transparency onto a background and return an RGB image."""
    if image.mode == "RGB":
        return image
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        flattened = Image.new("RGB", rgba.size, background)
        flattened.paste(rgba, mask=rgba.getchannel("A"))
        return flattened
    return image.convert("RGB")


def _parse_exif_date(value: object) -> Optional[datetime]:
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.strptime(value.strip().rstrip("\x00"), EXIF_DATE_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)


def extract_capture_time(image: Image.Image) -> Optional[datetime]:
    """
    Extract the capture timestamp from EXIF metadata.

    Prefers DateTimeOriginal, then DateTimeDigitized, then DateTime.
    Missing or unparseable values yield None.
    """
    try:
        exif = image.getexif()
    except (OSError, SyntaxError, ValueError):
        return None
    if not exif:
        return None

    for ifd, tag in _CAPTURE_TAGS:
        source = exif.get_ifd(ifd) if ifd is not None else exif
        captured = _parse_exif_date(source.get(tag))
        if captured is not None:
            return captured
    return None


def cover_crop_box(
    src_width: int,
    src_height: int,
    target_width: int,
    target_height: int,
    focal: Optional[FocalPoint] = None,
) -> Tuple[int, int, int, int]:
    """
    Compute a cover-fit crop anchored on a focal point.

    The source is scaled so it fully covers the target, then a target-sized
    window is placed so its offset is the focal percentage of the spare room
    on each axis.

    Returns:
        (scaled_width, scaled_height, left, top)
    """
    focal = focal or FocalPoint.center()
    scale = max(target_width / src_width, target_height / src_height)
    scaled_width = max(target_width, round_half_up(src_width * scale))
    scaled_height = max(target_height, round_half_up(src_height * scale))

    max_left = scaled_width - target_width
    max_top = scaled_height - target_height
    left = clamp(round_half_up(max_left * focal.x / 100), 0, max_left)
    top = clamp(round_half_up(max_top * focal.y / 100), 0, max_top)
    return scaled_width, scaled_height, left, top


def resize_to_width(image: Image.Image, width: int) -> Image.Image:
    """Resize keeping the aspect ratio so the result is exactly ``width`` wide."""
    height = max(1, round_half_up(image.height * width / image.width))
    return image.resize((width, height), Image.Resampling.LANCZOS)


def encode_image(image: Image.Image, format_type: str, quality: int, **options) -> bytes:
    """Encode to bytes. JPEG output is flattened to RGB first."""
    output = io.BytesIO()
    if format_type == "JPEG":
        image = to_rgb(image)
    elif image.mode not in ("RGB", "RGBA"):
        image = image.convert("RGBA" if "A" in image.getbands() else "RGB")
    image.save(output, format=format_type, quality=quality, **options)
    return output.getvalue()
