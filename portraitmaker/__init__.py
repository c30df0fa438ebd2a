"""portraitmaker: stylized portrait generation and raster-to-vector export.

Generated portraits are exported as PNG, JPG, or SVG traced through a
deterministic color quantizer, a contour tracer and a path serializer.
"""

from portraitmaker.pipeline import ExportPipeline, export, vectorize
from portraitmaker.prompt import PortraitOptions, build_instruction
from portraitmaker.types import (
    ConversionError,
    DecodeError,
    ExportFormat,
    ExportRequest,
    ExportResult,
    GenerationError,
    PortraitMakerError,
    TraceConfig,
    TracingUnavailable,
)

__version__ = "0.1.0"
__all__ = [
    "ExportPipeline",
    "export",
    "vectorize",
    "PortraitOptions",
    "build_instruction",
    "ConversionError",
    "DecodeError",
    "ExportFormat",
    "ExportRequest",
    "ExportResult",
    "GenerationError",
    "PortraitMakerError",
    "TraceConfig",
    "TracingUnavailable",
]
