"""Deterministic color quantization.

Initial cluster centres are the most frequent colors of the image and the
refinement runs a fixed number of weighted K-means iterations over the
distinct colors, so identical input always yields the same palette and the
same index map.
"""

import logging
from typing import Tuple

import numpy as np
from sklearn.cluster import KMeans

from .types import QuantizationError, QuantizedImage, RasterImage

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def normalize_transparent(pixels: np.ndarray) -> np.ndarray:
    """Flatten RGBA pixels to (N, 4), collapsing every alpha-0 pixel to (0, 0, 0, 0)."""
    flat = np.array(pixels, dtype=np.uint8).reshape(-1, 4)
    flat[flat[:, 3] == 0] = TRANSPARENT
    return flat


def unique_colors(flat: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Distinct colors in sorted order, the per-pixel inverse and the counts."""
    colors, inverse, counts = np.unique(flat, axis=0, return_inverse=True, return_counts=True)
    return colors, inverse.reshape(-1), counts


def _by_frequency(counts: np.ndarray) -> np.ndarray:
    # Stable sort keeps numpy.unique's sorted color order for ties
    return np.argsort(-counts, kind="stable")


def _exact_palette(colors: np.ndarray, counts: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Palette holding every distinct color, most frequent first."""
    order = _by_frequency(counts)
    mapping = np.empty(len(colors), dtype=np.int64)
    mapping[order] = np.arange(len(colors))
    return colors[order], mapping


def _compact(centers: np.ndarray, labels: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Drop unused clusters and merge clusters whose rounded centers coincide."""
    entries = []
    lookup = {}
    remap = np.full(len(centers), -1, dtype=np.int64)
    used = np.zeros(len(centers), dtype=bool)
    used[labels] = True
    for cluster in range(len(centers)):
        if not used[cluster]:
            continue
        key = tuple(int(v) for v in centers[cluster])
        if key not in lookup:
            lookup[key] = len(entries)
            entries.append(key)
        remap[cluster] = lookup[key]
    return np.array(entries, dtype=np.uint8).reshape(-1, 4), remap


def _cluster_palette(
    colors: np.ndarray,
    counts: np.ndarray,
    n_clusters: int,
    cycles: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """Weighted K-means over distinct colors, seeded with the most frequent ones."""
    order = _by_frequency(counts)
    init = colors[order[:n_clusters]].astype(np.float64)

    kmeans = KMeans(
        n_clusters=n_clusters,
        init=init,
        n_init=1,
        max_iter=cycles,
        random_state=42,
    )
    labels = kmeans.fit_predict(colors.astype(np.float64), sample_weight=counts)
    centers = np.clip(np.rint(kmeans.cluster_centers_), 0, 255).astype(np.uint8)

    palette, remap = _compact(centers, labels)
    return palette, remap[labels]


def quantize(raster: RasterImage, n_colors: int = 16, cycles: int = 3) -> QuantizedImage:
    """Reduce an image to at most ``n_colors`` palette entries.

    Transparency policy: pixels with alpha 0 are treated as one color,
    (0, 0, 0, 0). When the image needs clustering and ``n_colors >= 2`` that
    color is reserved as its own palette entry (placed last) and never merged
    with visible colors.

    Args:
        raster: Decoded RGBA image
        n_colors: Upper bound on the palette size
        cycles: K-means refinement iterations

    Returns:
        QuantizedImage with min(n_colors, distinct colors) palette entries

    Raises:
        ValueError: If n_colors < 1
        QuantizationError: If the image is empty or clustering fails
    """
    if n_colors < 1:
        raise ValueError(f"n_colors must be >= 1, got {n_colors}")
    if raster.width == 0 or raster.height == 0:
        raise QuantizationError("Cannot quantize empty image")

    flat = normalize_transparent(raster.pixels)
    colors, inverse, counts = unique_colors(flat)

    if len(colors) <= n_colors:
        palette, mapping = _exact_palette(colors, counts)
        logger.debug(f"Image has {len(colors)} distinct colors, no clustering needed")
    else:
        try:
            palette, mapping = _quantize_many(colors, counts, n_colors, cycles)
        except Exception as e:
            raise QuantizationError(f"Color quantization failed: {e}") from e
        logger.debug(f"Clustered {len(colors)} distinct colors into {len(palette)}")

    indices = mapping[inverse].reshape(raster.height, raster.width)
    return QuantizedImage(indices, palette)


def _quantize_many(
    colors: np.ndarray,
    counts: np.ndarray,
    n_colors: int,
    cycles: int,
) -> Tuple[np.ndarray, np.ndarray]:
    transparent = np.all(colors == TRANSPARENT, axis=1)
    if n_colors < 2 or not transparent.any():
        return _cluster_palette(colors, counts, n_colors, cycles)

    visible = ~transparent
    palette, visible_mapping = _cluster_palette(colors[visible], counts[visible], n_colors - 1, cycles)

    mapping = np.empty(len(colors), dtype=np.int64)
    mapping[visible] = visible_mapping
    mapping[transparent] = len(palette)
    palette = np.vstack([palette, np.array([TRANSPARENT], dtype=np.uint8)])
    return palette, mapping


def palette_error(raster: RasterImage, quantized: QuantizedImage) -> np.ndarray:
    """Largest Euclidean RGBA distance between a pixel and its palette entry, per entry."""
    flat = normalize_transparent(raster.pixels).astype(np.float64)
    idx = quantized.indices.reshape(-1)
    distance = np.linalg.norm(flat - quantized.palette[idx].astype(np.float64), axis=1)
    errors = np.zeros(len(quantized.palette), dtype=np.float64)
    np.maximum.at(errors, idx, distance)
    return errors
