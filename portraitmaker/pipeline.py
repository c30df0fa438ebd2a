"""Export pipeline: decode a generated portrait and re-encode it for download."""

import logging
import time
from typing import Optional

from .raster_ingest import composite_over, decode, encode_jpeg, encode_png
from .types import (
    ConversionError,
    ExportFormat,
    ExportRequest,
    ExportResult,
    RasterImage,
    Source,
    TraceConfig,
    TracingUnavailable,
    VectorDocument,
)

logger = logging.getLogger(__name__)

try:
    from .quantize import quantize
    from .svg import build_document, to_svg
    from .trace import trace
    TRACING_AVAILABLE = True
except ImportError as e:
    logger.warning(f"Vector tracing unavailable: {e}")
    TRACING_AVAILABLE = False

FILENAME_PREFIX = "portrait-maker"
CONVERSION_FAILED = "Failed to process the image for download."
TRACING_MISSING = "SVG converter failed to load. Please try again."


def suggested_filename(fmt: ExportFormat, timestamp_ms: Optional[int] = None) -> str:
    """Download name such as ``portrait-maker-1700000000000.svg``."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{FILENAME_PREFIX}-{timestamp_ms}.{fmt.extension}"


def vectorize(raster: RasterImage, config: Optional[TraceConfig] = None) -> VectorDocument:
    """Quantize, trace and assemble a VectorDocument.

    Stages are pure: each returns a new artifact and leaves its input untouched.

    Raises:
        TracingUnavailable: If the tracing stack could not be imported
    """
    if not TRACING_AVAILABLE:
        raise TracingUnavailable(TRACING_MISSING)

    config = config or TraceConfig()
    quantized = quantize(raster, config.n_colors, config.color_cycles)
    logger.info(f"Quantized to {len(quantized.palette)} colors")
    contours = trace(quantized, config)
    return build_document(quantized, contours, config)


class ExportPipeline:
    """Turns an ExportRequest into downloadable bytes.

    decode -> PNG re-encode | JPG composite + encode | SVG quantize/trace/serialize
    """

    def run(self, request: ExportRequest, timestamp_ms: Optional[int] = None) -> ExportResult:
        """Run one export request.

        Raises:
            DecodeError: If the source cannot be decoded
            TracingUnavailable: If SVG export cannot run here
            ConversionError: If recompositing or tracing fails
        """
        raster = decode(request.source)
        logger.info(f"Exporting {raster.width}x{raster.height} image as {request.format.value}")

        if request.format is ExportFormat.PNG:
            data = encode_png(raster)
        elif request.format is ExportFormat.JPG:
            data = self._recompose(raster, request)
        else:
            data = self._vectorize(raster, request.trace)

        return ExportResult(
            data=data,
            format=request.format,
            filename=suggested_filename(request.format, timestamp_ms),
        )

    def _recompose(self, raster: RasterImage, request: ExportRequest) -> bytes:
        try:
            flat = composite_over(raster, request.background)
            return encode_jpeg(flat, request.jpeg_quality)
        except Exception as e:
            logger.exception(f"JPG conversion failed: {e}")
            raise ConversionError(CONVERSION_FAILED) from e

    def _vectorize(self, raster: RasterImage, config: TraceConfig) -> bytes:
        try:
            document = vectorize(raster, config)
            return to_svg(document).encode("utf-8")
        except TracingUnavailable:
            raise
        except Exception as e:
            logger.exception(f"SVG conversion failed: {e}")
            raise ConversionError(CONVERSION_FAILED) from e


def export(
    source: Source,
    fmt="png",
    config: Optional[TraceConfig] = None,
    **kwargs,
) -> ExportResult:
    """Export an image in one call.

    Convenience function for one-off exports.

    Args:
        source: Encoded image as bytes, base64 text or data URL
        fmt: "png", "jpg" or "svg"
        config: Optional tracing configuration for SVG output
        **kwargs: Extra ExportRequest fields (background, jpeg_quality)

    Returns:
        ExportResult with the encoded bytes and a suggested filename

    Example:
        >>> result = export(png_bytes, "svg")
        >>> result = export(png_bytes, "svg", config=TraceConfig(n_colors=8))
    """
    request = ExportRequest(source=source, format=fmt, trace=config or TraceConfig(), **kwargs)
    return ExportPipeline().run(request)
