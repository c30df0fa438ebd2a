"""Contour tracing: regions -> boundary loops -> fitted rings."""

import logging
from typing import List, Optional

import numpy as np

from .contour import boundary_loops, split_outer_and_holes
from .extract import detect_background, find_regions, transparent_indices
from .simplify import simplify_ring
from .types import Contour, QuantizedImage, Region, Ring, TraceConfig

logger = logging.getLogger(__name__)


def untraced_indices(quantized: QuantizedImage, config: TraceConfig) -> List[int]:
    """Palette indices that are painted by the canvas rather than by paths."""
    skip = transparent_indices(quantized)
    if not config.trace_background:
        skip.append(detect_background(quantized))
    return sorted(set(skip))


def _fit(loop: np.ndarray, region: Region, config: TraceConfig, bounds) -> Optional[Ring]:
    top, left = region.offset
    shifted = loop + np.array([left, top], dtype=loop.dtype)
    return simplify_ring(
        shifted,
        line_tolerance=config.line_tolerance,
        curve_tolerance=config.curve_tolerance,
        corner_angle=config.corner_angle,
        precision=config.round_coords,
        bounds=bounds,
    )


def trace_region(region: Region, config: TraceConfig, bounds) -> Optional[Contour]:
    """Trace one region into a Contour, or None if it falls under the noise cutoff."""
    # Perimeter is at most 4 edges per pixel
    if region.pixel_count * 4 < config.path_omit:
        return None

    outer, holes = split_outer_and_holes(boundary_loops(region.mask))
    # Loop length equals its perimeter in pixel edges
    if len(outer) < config.path_omit:
        return None

    outline = _fit(outer, region, config, bounds)
    if outline is None:
        return None

    hole_rings = []
    for hole in holes:
        if len(hole) < config.path_omit:
            continue
        ring = _fit(hole, region, config, bounds)
        if ring is not None:
            hole_rings.append(ring)

    return Contour(
        index=region.index,
        outline=outline,
        holes=tuple(hole_rings),
        pixel_count=region.pixel_count,
    )


def trace(quantized: QuantizedImage, config: Optional[TraceConfig] = None) -> List[Contour]:
    """Trace every region of a quantized image.

    Contours come out in region discovery order (raster scan of each region's
    first pixel). The background index and fully transparent entries are not
    traced; the canvas stands in for them.

    Args:
        quantized: Palette-index image
        config: Tracing configuration. Uses defaults if None.

    Returns:
        List of Contour; empty for degenerate or uniform images
    """
    config = config or TraceConfig()
    if quantized.width == 0 or quantized.height == 0:
        return []

    bounds = (float(quantized.width), float(quantized.height))
    regions = find_regions(quantized, skip=untraced_indices(quantized, config))
    logger.debug(f"Found {len(regions)} regions")

    contours = []
    for region in regions:
        contour = trace_region(region, config, bounds)
        if contour is not None:
            contours.append(contour)

    logger.info(f"Traced {len(contours)} contours from {len(regions)} regions")
    return contours
