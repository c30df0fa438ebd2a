"""SVG serialization of traced contours."""

from typing import Dict, List, Optional, Sequence

import numpy as np

from .extract import detect_background
from .types import Contour, QuantizedImage, Ring, SVGError, TraceConfig, VectorDocument

SVG_NS = "http://www.w3.org/2000/svg"


def color_to_hex(color: Sequence[int]) -> str:
    """Convert an RGB(A) color to #RRGGBB (alpha ignored)."""
    r, g, b = (int(c) for c in color[:3])
    return f"#{r:02X}{g:02X}{b:02X}"


def format_number(x: float, precision: int) -> str:
    """
    Format number with given precision.

    Trailing zeros and a bare decimal point are removed.
    """
    formatted = f"{x:.{precision}f}"
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")
    if formatted == "-0":
        formatted = "0"
    return formatted


def ring_to_path_data(ring: Ring, precision: int = 1) -> str:
    """Absolute path commands for one closed ring."""
    fmt = lambda x: format_number(x, precision)
    parts = [f"M{fmt(ring.start[0])} {fmt(ring.start[1])}"]
    for segment in ring.segments:
        coords = " ".join(f"{fmt(x)} {fmt(y)}" for x, y in segment.points)
        parts.append(f"{segment.kind}{coords}")
    parts.append("Z")
    return " ".join(parts)


def contour_to_path_data(contour: Contour, precision: int = 1) -> str:
    """Outline followed by hole subpaths; winding separates them."""
    rings = [contour.outline, *contour.holes]
    return " ".join(ring_to_path_data(ring, precision) for ring in rings)


def build_document(
    quantized: QuantizedImage,
    contours: Sequence[Contour],
    config: Optional[TraceConfig] = None,
) -> VectorDocument:
    """Assemble a VectorDocument from tracing results.

    The canvas background is the border-dominant palette entry unless the
    background was traced as paths.
    """
    config = config or TraceConfig()
    background = None if config.trace_background else detect_background(quantized)
    return VectorDocument(
        width=quantized.width,
        height=quantized.height,
        palette=quantized.palette,
        contours=tuple(contours),
        background=background,
        precision=config.round_coords,
        canvas_rect=config.canvas_rect,
    )


def layer_order(document: VectorDocument) -> List[int]:
    """Palette indices in painting order.

    Layers are painted largest traced area first so smaller details land on
    top; ties go to the lower palette index.
    """
    areas: Dict[int, float] = {}
    for contour in document.contours:
        areas[contour.index] = areas.get(contour.index, 0.0) + contour.area()
    return sorted(areas, key=lambda index: (-areas[index], index))


def _fill_attrs(color: np.ndarray) -> str:
    attrs = f'fill="{color_to_hex(color)}"'
    alpha = int(color[3])
    if alpha < 255:
        attrs += f' fill-opacity="{format_number(alpha / 255.0, 3)}"'
    return attrs


def to_svg(document: VectorDocument) -> str:
    """Serialize a VectorDocument to a self-contained SVG string.

    One <g> per palette index, painted in ``layer_order``; inside a layer
    paths keep region discovery order. Nothing external is referenced.

    The canvas colour is carried by a CSS ``background-color`` on the root,
    which browsers honour but standalone renderers (cairosvg, librsvg,
    resvg) ignore. Documents built with ``canvas_rect`` also paint it as a
    full-size <rect> behind the layers so those renderers see it.

    Raises:
        SVGError: If a contour cannot be serialized
    """
    style = ""
    canvas = None
    if document.background is not None:
        bg = document.palette[document.background]
        if int(bg[3]) > 0:
            style = f' style="background-color:{color_to_hex(bg)}"'
            if document.canvas_rect:
                canvas = (
                    f'<rect x="0" y="0" width="{document.width}" '
                    f'height="{document.height}" {_fill_attrs(bg)}/>'
                )

    parts = [
        f'<svg xmlns="{SVG_NS}" version="1.1" '
        f'width="{document.width}" height="{document.height}" '
        f'viewBox="{document.viewbox}"{style}>'
    ]
    if canvas is not None:
        parts.append(canvas)

    by_layer: Dict[int, List[Contour]] = {}
    for contour in document.contours:
        by_layer.setdefault(contour.index, []).append(contour)

    for index in layer_order(document):
        color = document.palette[index]
        if int(color[3]) == 0:
            continue
        fill = _fill_attrs(color)
        parts.append(f'<g id="layer-{index}">')
        for contour in by_layer[index]:
            try:
                data = contour_to_path_data(contour, document.precision)
            except (TypeError, ValueError, IndexError) as e:
                raise SVGError(f"Failed to serialize contour of layer {index}: {e}") from e
            parts.append(f'<path {fill} d="{data}"/>')
        parts.append("</g>")

    parts.append("</svg>")
    return "\n".join(parts)


def save_svg(svg: str, output_path: str) -> None:
    """Write an SVG string to disk as UTF-8."""
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(svg)
