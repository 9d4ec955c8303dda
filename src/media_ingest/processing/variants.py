"""Variant generation: thumb, full, archival original and social preview."""

import os
import subprocess
import sys
import tempfile
from typing import Optional

from PIL import Image

from ..core.classifier import HEIF_EXTENSIONS, JPEG_EXTENSIONS
from ..core.exceptions import DecodeError
from ..core.image_utils import (
    auto_orient,
    cover_crop_box,
    encode_image,
    extract_capture_time,
    open_image,
    resize_to_width,
)
from ..core.logging_config import get_logger
from ..core.models import (
    FocalPoint,
    MediaVariant,
    OverlaySpec,
    ProcessedAnimation,
    ProcessedImage,
)
from .overlay import OverlayCompositor

THUMB_WIDTH = 600
FULL_WIDTH = 1600
PREVIEW_WIDTH = 1200
PREVIEW_HEIGHT = 630

THUMB_QUALITY = 80
FULL_QUALITY = 85
ORIGINAL_QUALITY = 95
PREVIEW_QUALITY = 70


class SipsConverter:
    """Convert HEIC/HIF to JPEG with the macOS ``sips`` tool."""

    def __init__(self, timeout: float = 120.0):
        self.timeout = timeout
        self.logger = get_logger("media-ingest.sips")

    def convert(self, data: bytes, extension: str) -> Optional[bytes]:
        """Return JPEG bytes, or None when not on macOS or conversion fails."""
        if sys.platform != "darwin":
            return None

        suffix = ".hif" if extension.lower() == ".hif" else ".heic"
        with tempfile.TemporaryDirectory(prefix="media-ingest-heif-") as tmp_dir:
            in_path = os.path.join(tmp_dir, f"source{suffix}")
            out_path = os.path.join(tmp_dir, "converted.jpg")
            with open(in_path, "wb") as handle:
                handle.write(data)
            try:
                completed = subprocess.run(
                    ["sips", "-s", "format", "jpeg", in_path, "--out", out_path],
                    stdin=subprocess.DEVNULL,
                    capture_output=True,
                    timeout=self.timeout,
                    check=False,
                )
            except (OSError, subprocess.TimeoutExpired) as exc:
                self.logger.warning(f"sips conversion failed: {exc}")
                return None
            if completed.returncode != 0 or not os.path.exists(out_path):
                self.logger.warning(
                    f"sips exited with {completed.returncode}: "
                    f"{completed.stderr.decode(errors='ignore').strip()}"
                )
                return None
            with open(out_path, "rb") as handle:
                return handle.read() or None


def heif_decode_error(extension: str) -> DecodeError:
    """Decode error carrying platform-specific remediation."""
    if sys.platform == "darwin":
        hint = (
            "HEIF decoding failed and sips conversion failed. "
            "Try opening the file in Preview and re-exporting it as JPEG."
        )
    else:
        hint = "Install pillow-heif with libheif support, or convert the file to JPEG/PNG first."
    return DecodeError(f"Could not decode {extension.upper()} image. {hint}")


class VariantGenerator:
    """Turns raw image bytes into the four upload variants."""

    def __init__(
        self,
        compositor: Optional[OverlayCompositor] = None,
        converter: Optional[SipsConverter] = None,
    ):
        self.compositor = compositor or OverlayCompositor()
        self.converter = converter or SipsConverter()
        self.logger = get_logger("media-ingest.variants")

    def process(
        self,
        data: bytes,
        source_extension: str,
        focal: Optional[FocalPoint] = None,
        overlay: Optional[OverlaySpec] = None,
    ) -> ProcessedImage:
        """
        Produce thumb, full, original and preview variants.

        Args:
            data: Source image bytes
            source_extension: Source file extension, e.g. ".jpg"
            focal: Preview crop anchor; center when None
            overlay: Text to burn into the preview

        Returns:
            ProcessedImage with dimensions after auto-orientation

        Raises:
            DecodeError: If the bytes cannot be decoded and no fallback works
        """
        ext = source_extension.lower()
        try:
            return self._run(data, ext, ext in JPEG_EXTENSIONS, focal, overlay)
        except DecodeError:
            if ext not in HEIF_EXTENSIONS:
                raise
            self.logger.info(f"Decoder rejected {ext} source, trying platform converter")
            converted = self.converter.convert(data, ext)
            if not converted:
                raise heif_decode_error(ext)
            try:
                return self._run(converted, ext, False, focal, overlay)
            except DecodeError as exc:
                raise heif_decode_error(ext) from exc

    def _run(
        self,
        data: bytes,
        ext: str,
        is_jpeg_source: bool,
        focal: Optional[FocalPoint],
        overlay: Optional[OverlaySpec],
    ) -> ProcessedImage:
        source = open_image(data)
        # EXIF lives on the decoded source; the transposed copy drops orientation
        captured_at = extract_capture_time(source)
        image = auto_orient(source)
        width, height = image.size

        thumb = encode_image(resize_to_width(image, THUMB_WIDTH), "WEBP", THUMB_QUALITY)
        full = encode_image(resize_to_width(image, FULL_WIDTH), "WEBP", FULL_QUALITY)

        if is_jpeg_source:
            original = MediaVariant(data=data, content_type="image/jpeg", extension=ext)
        else:
            original = MediaVariant(
                data=encode_image(image, "JPEG", ORIGINAL_QUALITY),
                content_type="image/jpeg",
                extension=".jpg",
            )

        return ProcessedImage(
            thumb=MediaVariant(data=thumb, content_type="image/webp", extension=".webp"),
            full=MediaVariant(data=full, content_type="image/webp", extension=".webp"),
            original=original,
            preview=self._preview(image, focal, overlay),
            width=width,
            height=height,
            captured_at=captured_at,
        )

    def _preview(
        self,
        image: Image.Image,
        focal: Optional[FocalPoint],
        overlay: Optional[OverlaySpec],
    ) -> MediaVariant:
        scaled_w, scaled_h, left, top = cover_crop_box(
            image.width, image.height, PREVIEW_WIDTH, PREVIEW_HEIGHT, focal
        )
        crop = image.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS).crop(
            (left, top, left + PREVIEW_WIDTH, top + PREVIEW_HEIGHT)
        )
        if overlay is not None:
            crop = self.compositor.composite(crop, overlay)
        data = encode_image(crop, "JPEG", PREVIEW_QUALITY, optimize=True, progressive=True)
        return MediaVariant(data=data, content_type="image/jpeg", extension=".jpg")

    def render_preview(
        self,
        data: bytes,
        focal: Optional[FocalPoint] = None,
        overlay: Optional[OverlaySpec] = None,
    ) -> MediaVariant:
        """Regenerate only the social preview from an archival original."""
        return self._preview(auto_orient(open_image(data)), focal, overlay)

    def process_animated(self, data: bytes) -> ProcessedAnimation:
        """Static first-frame thumbnail of an animated image."""
        image = open_image(data)
        image.seek(0)
        first_frame = image.convert("RGBA")
        thumb = encode_image(resize_to_width(first_frame, THUMB_WIDTH), "WEBP", THUMB_QUALITY)
        return ProcessedAnimation(
            thumb=MediaVariant(data=thumb, content_type="image/webp", extension=".webp"),
            width=image.width,
            height=image.height,
        )
