"""Social-preview text overlay: bottom gradient plus two baseline-aligned labels."""

from dataclasses import dataclass
from typing import Optional
from xml.sax.saxutils import escape

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from ..core.image_utils import round_half_up
from ..core.models import OverlaySpec

DEFAULT_BRAND = "milk & henny"
REFERENCE_WIDTH = 1200

GRADIENT_START = 0.58
GRADIENT_MAX_OPACITY = 0.72
BASELINE_OFFSET = 44
SIDE_MARGIN = 48
TITLE_FONT_SIZE = 28
ID_FONT_SIZE = 22

FONT_FAMILY = "'Courier New', Courier, monospace"
# Monospace faces tried in order when rasterising
FONT_FILES = (
    "DejaVuSansMono-Bold.ttf",
    "DejaVuSansMono.ttf",
    "LiberationMono-Bold.ttf",
    "Courier New Bold.ttf",
    "courbd.ttf",
    "cour.ttf",
)

TITLE_FILL = (255, 255, 255, 245)
ID_FILL = (255, 255, 255, 235)
STROKE_FILL = (0, 0, 0, 89)


def escape_xml(text: str) -> str:
    """Escape the five XML special characters."""
    return escape(text, {'"': "&quot;", "'": "&apos;"})


@dataclass(frozen=True)
class OverlayLayout:
    """Geometry of the overlay for one output size."""

    width: int
    height: int
    gradient_top: int
    baseline: int
    margin: int
    title_size: int
    id_size: int
    stroke_width: int
    title_text: str
    id_text: Optional[str]


class OverlayCompositor:
    """Builds the preview overlay as SVG and as a raster layer."""

    def __init__(self, brand: str = DEFAULT_BRAND):
        self.brand = brand

    def layout(self, spec: OverlaySpec, width: int, height: int) -> OverlayLayout:
        scale = width / REFERENCE_WIDTH
        return OverlayLayout(
            width=width,
            height=height,
            gradient_top=round_half_up(height * GRADIENT_START),
            baseline=height - round_half_up(BASELINE_OFFSET * scale),
            margin=round_half_up(SIDE_MARGIN * scale),
            title_size=max(1, round_half_up(TITLE_FONT_SIZE * scale)),
            id_size=max(1, round_half_up(ID_FONT_SIZE * scale)),
            stroke_width=max(1, round_half_up(scale)),
            title_text=f"{self.brand} · {spec.title}",
            id_text=spec.id or None,
        )

    def build_svg(self, spec: OverlaySpec, width: int, height: int) -> str:
        """Vector form of the overlay. All user text is escaped."""
        lay = self.layout(spec, width, height)
        text_attrs = (
            'font-weight="600" stroke="rgba(0,0,0,0.35)" '
            f'stroke-width="{lay.stroke_width}" paint-order="stroke fill" '
            f'font-family="{FONT_FAMILY}"'
        )
        parts = [
            f'<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">',
            "  <defs>",
            '    <linearGradient id="g" x1="0" y1="0" x2="0" y2="1">',
            '      <stop offset="0%" stop-color="#000" stop-opacity="0"/>',
            f'      <stop offset="100%" stop-color="#000" stop-opacity="{GRADIENT_MAX_OPACITY}"/>',
            "    </linearGradient>",
            "  </defs>",
            f'  <rect x="0" y="{lay.gradient_top}" width="{width}" '
            f'height="{height - lay.gradient_top}" fill="url(#g)"/>',
            f'  <text x="{lay.margin}" y="{lay.baseline}" font-size="{lay.title_size}" '
            f'fill="rgba(255,255,255,0.96)" {text_attrs}>{escape_xml(lay.title_text)}</text>',
        ]
        if lay.id_text:
            parts.append(
                f'  <text x="{width - lay.margin}" y="{lay.baseline}" '
                f'font-size="{lay.id_size}" fill="rgba(255,255,255,0.92)" '
                f'{text_attrs} text-anchor="end">{escape_xml(lay.id_text)}</text>'
            )
        parts.append("</svg>")
        return "\n".join(parts)

    def render(self, spec: OverlaySpec, width: int, height: int) -> Image.Image:
        """Rasterise the overlay to an RGBA layer of the given size."""
        lay = self.layout(spec, width, height)

        alpha = np.zeros((height, width), dtype=np.float32)
        span = height - lay.gradient_top
        if span > 0:
            ramp = np.linspace(0.0, GRADIENT_MAX_OPACITY * 255.0, span, dtype=np.float32)
            alpha[lay.gradient_top:, :] = ramp[:, None]
        rgba = np.zeros((height, width, 4), dtype=np.uint8)
        rgba[..., 3] = np.clip(alpha, 0, 255).astype(np.uint8)
        layer = Image.fromarray(rgba)

        draw = ImageDraw.Draw(layer)
        draw.text(
            (lay.margin, lay.baseline),
            lay.title_text,
            font=_load_font(lay.title_size),
            fill=TITLE_FILL,
            anchor="ls",
            stroke_width=lay.stroke_width,
            stroke_fill=STROKE_FILL,
        )
        if lay.id_text:
            draw.text(
                (width - lay.margin, lay.baseline),
                lay.id_text,
                font=_load_font(lay.id_size),
                fill=ID_FILL,
                anchor="rs",
                stroke_width=lay.stroke_width,
                stroke_fill=STROKE_FILL,
            )
        return layer

    def composite(self, image: Image.Image, spec: OverlaySpec) -> Image.Image:
        """Alpha-composite the overlay onto ``image`` and return an RGB image."""
        base = image.convert("RGBA")
        base.alpha_composite(self.render(spec, base.width, base.height))
        return base.convert("RGB")


def _load_font(size: int) -> ImageFont.FreeTypeFont:
    for name in FONT_FILES:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    return ImageFont.load_default(size=size)
