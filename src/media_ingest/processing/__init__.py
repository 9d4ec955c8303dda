"""Image variant derivation and preview overlays."""

from .overlay import OverlayCompositor
from .variants import SipsConverter, VariantGenerator

__all__ = ["OverlayCompositor", "SipsConverter", "VariantGenerator"]
