"""Pytest configuration and fixtures."""

import io

import numpy as np
import pytest
from PIL import Image

from portraitmaker.raster_ingest import ingest_from_array

WHITE = (255, 255, 255)
RED = (255, 0, 0)
BLUE = (0, 0, 255)
BLACK = (0, 0, 0)


def to_png(array: np.ndarray) -> bytes:
    """Encode an RGB or RGBA uint8 array as PNG bytes."""
    buffer = io.BytesIO()
    Image.fromarray(np.asarray(array, dtype=np.uint8)).save(buffer, format="PNG")
    return buffer.getvalue()


def three_region_array(size: int = 512) -> np.ndarray:
    """White canvas with a red square and a blue disc that do not touch."""
    image = np.full((size, size, 3), WHITE, dtype=np.uint8)
    image[50:200, 50:200] = RED
    yy, xx = np.mgrid[0:size, 0:size]
    disc = (xx + 0.5 - 350) ** 2 + (yy + 0.5 - 350) ** 2 <= 100 ** 2
    image[disc] = BLUE
    return image


def frame_array() -> np.ndarray:
    """Black square frame with a white window, on white."""
    image = np.full((400, 400, 3), WHITE, dtype=np.uint8)
    image[100:300, 100:300] = BLACK
    image[150:250, 150:250] = WHITE
    return image


@pytest.fixture
def three_region_image():
    """512x512 RasterImage: white background, red square, blue disc."""
    return ingest_from_array(three_region_array())


@pytest.fixture
def three_region_png():
    """PNG bytes of the three-region image."""
    return to_png(three_region_array())


@pytest.fixture
def frame_image():
    """RasterImage of a black frame whose window shows the background."""
    return ingest_from_array(frame_array())


@pytest.fixture
def half_transparent_png():
    """64x64 RGBA PNG: left half fully transparent, right half opaque red."""
    image = np.zeros((64, 64, 4), dtype=np.uint8)
    image[:, 32:] = (255, 0, 0, 255)
    return to_png(image)


@pytest.fixture
def noisy_image():
    """Deterministic 48x48 image with many distinct colors."""
    rng = np.random.default_rng(7)
    return ingest_from_array(rng.integers(0, 256, (48, 48, 3), dtype=np.uint8))
