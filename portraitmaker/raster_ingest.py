"""Raster decoding, compositing and re-encoding with Pillow."""

import base64
import binascii
import io
import logging

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from .types import Color, DecodeError, RasterImage, Source

logger = logging.getLogger(__name__)

WHITE: Color = (255, 255, 255)


def source_bytes(source: Source) -> bytes:
    """
    Normalize an image source to raw bytes.

    Accepts raw bytes, base64 text, or a ``data:`` URL carrying base64.

    Raises:
        DecodeError: If text input is not valid base64
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)
    if not isinstance(source, str):
        raise DecodeError(f"Unsupported image source type: {type(source).__name__}")

    text = source.strip()
    if text.startswith("data:"):
        header, _, text = text.partition(",")
        if ";base64" not in header:
            raise DecodeError("Only base64 data URLs are supported")
    try:
        return base64.b64decode("".join(text.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Image data is not valid base64: {e}") from e


def decode(source: Source) -> RasterImage:
    """
    Decode image bytes into an RGBA RasterImage.

    EXIF orientation is applied so the pixels match what viewers display.

    Raises:
        DecodeError: If the data is empty, malformed or not an image
    """
    data = source_bytes(source)
    if not data:
        raise DecodeError("Image data is empty")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            img = ImageOps.exif_transpose(img)
            if img.mode != "RGBA":
                img = img.convert("RGBA")
            pixels = np.array(img)
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Failed to decode image: {e}") from e

    raster = RasterImage(pixels)
    logger.debug(f"Decoded {raster.width}x{raster.height} image")
    return raster


def ingest_from_array(image: np.ndarray) -> RasterImage:
    """
    Create a RasterImage from a uint8 array.

    Args:
        image: (H, W), (H, W, 3) or (H, W, 4) array with values 0-255

    Raises:
        ValueError: If the array has an unsupported shape
    """
    image = np.asarray(image)
    if image.ndim == 2:
        image = np.stack([image] * 3, axis=-1)
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected (H, W), (H, W, 3) or (H, W, 4) array, got {image.shape}")
    if image.shape[2] == 3:
        alpha = np.full(image.shape[:2] + (1,), 255, dtype=np.uint8)
        image = np.concatenate([image.astype(np.uint8), alpha], axis=2)
    return RasterImage(image.astype(np.uint8))


def composite_over(raster: RasterImage, background: Color = WHITE) -> RasterImage:
    """
    Flatten an RGBA image onto an opaque background color.

    Fully transparent pixels become exactly the background color and fully
    opaque pixels keep their color. The input is left untouched.
    """
    pixels = raster.pixels.astype(np.uint32)
    alpha = pixels[..., 3:4]
    bg = np.array(background, dtype=np.uint32)
    rgb = (pixels[..., :3] * alpha + bg * (255 - alpha) + 127) // 255
    out = np.empty(raster.pixels.shape, dtype=np.uint8)
    out[..., :3] = rgb
    out[..., 3] = 255
    return RasterImage(out)


def encode_png(raster: RasterImage) -> bytes:
    """Encode a RasterImage as PNG."""
    buffer = io.BytesIO()
    Image.fromarray(np.ascontiguousarray(raster.pixels)).save(buffer, format="PNG")
    return buffer.getvalue()


def encode_jpeg(raster: RasterImage, quality: int = 95) -> bytes:
    """Encode the RGB channels of a RasterImage as JPEG (alpha is discarded)."""
    buffer = io.BytesIO()
    rgb = np.ascontiguousarray(raster.pixels[..., :3])
    Image.fromarray(rgb).save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def mime_type(source: Source, default: str = "image/jpeg") -> str:
    """MIME type of an encoded image, or ``default`` if Pillow cannot tell."""
    try:
        with Image.open(io.BytesIO(source_bytes(source))) as img:
            return Image.MIME.get(img.format, default)
    except (UnidentifiedImageError, OSError, DecodeError):
        return default
