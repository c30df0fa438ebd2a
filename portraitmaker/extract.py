"""Region extraction: connected runs of one palette index."""

from typing import Iterable, List

import numpy as np
from scipy import ndimage

from .types import QuantizedImage, Region

# 4-connectivity: diagonal neighbours belong to different regions
FOUR_CONNECTED = ndimage.generate_binary_structure(2, 1)


def detect_background(quantized: QuantizedImage) -> int:
    """Palette index that dominates the image border.

    Ties go to the lowest palette index.
    """
    idx = quantized.indices
    border = np.concatenate([idx[0, :], idx[-1, :], idx[:, 0], idx[:, -1]])
    counts = np.bincount(border, minlength=len(quantized.palette))
    return int(np.argmax(counts))


def transparent_indices(quantized: QuantizedImage) -> List[int]:
    """Palette indices with zero alpha."""
    return [int(i) for i in np.nonzero(quantized.palette[:, 3] == 0)[0]]


def find_regions(quantized: QuantizedImage, skip: Iterable[int] = ()) -> List[Region]:
    """Find every maximal 4-connected region, in raster scan order.

    Regions are ordered by their first pixel (top-to-bottom, left-to-right)
    across all palette indices.

    Args:
        quantized: Palette-index image
        skip: Palette indices that should not produce regions

    Returns:
        List of Region, one per connected component
    """
    skip = set(skip)
    width = quantized.width
    regions = []

    for index in range(len(quantized.palette)):
        if index in skip:
            continue
        mask = quantized.indices == index
        if not mask.any():
            continue

        labeled, _ = ndimage.label(mask, structure=FOUR_CONNECTED)
        for label_id, bbox in enumerate(ndimage.find_objects(labeled), start=1):
            if bbox is None:
                continue
            sub = labeled[bbox] == label_id
            rows, cols = np.nonzero(sub)
            top, left = bbox[0].start, bbox[1].start
            regions.append(Region(
                index=index,
                mask=sub,
                offset=(top, left),
                first_pixel=int((top + rows[0]) * width + left + cols[0]),
                pixel_count=int(rows.size),
            ))

    regions.sort(key=lambda region: region.first_pixel)
    return regions
