"""Preview rasterizer for traced documents.

Draws a VectorDocument back to pixels with Pillow so a trace can be
previewed or compared against the quantized image it came from. Curves are
flattened into polylines; this is not a general SVG renderer.
"""

import logging
from typing import Tuple

import numpy as np
from PIL import Image, ImageDraw

from .svg import layer_order
from .types import Contour, QuantizedImage, RasterImage, Ring, VectorDocument

logger = logging.getLogger(__name__)


def _polygon(ring: Ring, curve_steps: int):
    # Pillow samples pixel centres at integer coordinates; ours sit at +0.5
    pts = ring.flatten(curve_steps) - 0.5
    return [(float(x), float(y)) for x, y in pts]


def contour_mask(contour: Contour, size: Tuple[int, int], curve_steps: int = 8) -> np.ndarray:
    """Boolean coverage mask of one contour (outline minus holes)."""
    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)
    draw.polygon(_polygon(contour.outline, curve_steps), fill=255)
    for hole in contour.holes:
        draw.polygon(_polygon(hole, curve_steps), fill=0)
    return np.array(mask) > 0


def render_document(document: VectorDocument, curve_steps: int = 8) -> RasterImage:
    """Rasterize a document at its native resolution.

    The canvas starts as the background palette entry (transparent when the
    document has none) and layers are painted in serialization order.
    """
    size = (document.width, document.height)
    canvas = np.zeros((document.height, document.width, 4), dtype=np.uint8)
    if document.background is not None:
        canvas[:] = document.palette[document.background]

    by_layer = {}
    for contour in document.contours:
        by_layer.setdefault(contour.index, []).append(contour)

    for index in layer_order(document):
        color = document.palette[index]
        if int(color[3]) == 0:
            continue
        for contour in by_layer[index]:
            canvas[contour_mask(contour, size, curve_steps)] = color

    return RasterImage(canvas)


def mismatch_ratio(rendered: RasterImage, quantized: QuantizedImage) -> float:
    """Fraction of pixels whose rendered color differs from the quantized color."""
    expected = quantized.to_raster().pixels
    if rendered.pixels.shape != expected.shape:
        raise ValueError(
            f"Size mismatch: rendered {rendered.width}x{rendered.height}, "
            f"quantized {quantized.width}x{quantized.height}"
        )
    differs = np.any(rendered.pixels != expected, axis=2)
    ratio = float(differs.mean()) if differs.size else 0.0
    logger.debug(f"Render mismatch ratio: {ratio:.4f}")
    return ratio
