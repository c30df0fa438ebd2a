"""Common types, configuration and exceptions for portraitmaker."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

# Type aliases
ImageArray = np.ndarray
Point = Tuple[float, float]
Color = Tuple[int, int, int]
Source = Union[bytes, bytearray, memoryview, str]


def _frozen_array(array: np.ndarray, dtype) -> np.ndarray:
    """Copy an array and mark the copy read-only."""
    frozen = np.array(array, dtype=dtype, copy=True)
    frozen.setflags(write=False)
    return frozen


class ExportFormat(str, Enum):
    """Output formats offered for download."""

    PNG = "png"
    JPG = "jpg"
    SVG = "svg"

    @property
    def extension(self) -> str:
        return self.value

    @property
    def mime_type(self) -> str:
        return {
            ExportFormat.PNG: "image/png",
            ExportFormat.JPG: "image/jpeg",
            ExportFormat.SVG: "image/svg+xml",
        }[self]

    @classmethod
    def parse(cls, value: Union[str, "ExportFormat"]) -> "ExportFormat":
        """Accept an ExportFormat or a case-insensitive name such as "svg" or "jpeg"."""
        if isinstance(value, cls):
            return value
        name = str(value).strip().lower()
        if name == "jpeg":
            name = "jpg"
        try:
            return cls(name)
        except ValueError:
            choices = ", ".join(f.value for f in cls)
            raise ValueError(f"Unsupported export format {value!r} (expected one of: {choices})")


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Decoded RGBA image, row-major, 8 bits per channel.

    The pixel buffer is copied on construction and flagged read-only, so a
    RasterImage can be handed from stage to stage without copying.
    """

    pixels: ImageArray

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected (H, W, 4) RGBA array, got shape {pixels.shape}")
        object.__setattr__(self, "pixels", _frozen_array(pixels, np.uint8))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def has_transparency(self) -> bool:
        return bool(np.any(self.pixels[..., 3] < 255))


@dataclass(frozen=True, eq=False)
class QuantizedImage:
    """Palette-index image produced by the quantizer.

    Attributes:
        indices: (H, W) array of palette indices
        palette: (K, 4) RGBA palette, K >= 1
    """

    indices: ImageArray
    palette: ImageArray

    def __post_init__(self):
        indices = np.asarray(self.indices)
        palette = np.asarray(self.palette)
        if indices.ndim != 2:
            raise ValueError(f"Expected (H, W) index array, got shape {indices.shape}")
        if palette.ndim != 2 or palette.shape[1] != 4:
            raise ValueError(f"Expected (K, 4) RGBA palette, got shape {palette.shape}")
        if indices.size and (indices.min() < 0 or indices.max() >= len(palette)):
            raise ValueError("Palette index out of range")
        object.__setattr__(self, "indices", _frozen_array(indices, np.int32))
        object.__setattr__(self, "palette", _frozen_array(palette, np.uint8))

    @property
    def width(self) -> int:
        return int(self.indices.shape[1])

    @property
    def height(self) -> int:
        return int(self.indices.shape[0])

    def counts(self) -> np.ndarray:
        """Pixel count per palette entry."""
        return np.bincount(self.indices.reshape(-1), minlength=len(self.palette))

    def to_raster(self) -> RasterImage:
        """Expand the index map back into RGBA pixels."""
        return RasterImage(self.palette[self.indices])


@dataclass(frozen=True, eq=False)
class Region:
    """One maximal 4-connected run of a single palette index."""

    index: int
    mask: np.ndarray  # bool mask cropped to the region's bounding box
    offset: Tuple[int, int]  # (row, col) of mask[0, 0] in the image
    first_pixel: int  # row-major position of the first pixel in scan order
    pixel_count: int


@dataclass(frozen=True)
class Segment:
    """One path segment: a straight line ("L") or quadratic Bezier ("Q").

    ``points`` holds the end point for "L" and (control, end) for "Q".
    """

    kind: str
    points: Tuple[Point, ...]

    @property
    def end(self) -> Point:
        return self.points[-1]


@dataclass(frozen=True)
class Ring:
    """Closed boundary: a start point followed by segments back to it."""

    start: Point
    segments: Tuple[Segment, ...]

    def flatten(self, curve_steps: int = 8) -> np.ndarray:
        """Approximate the ring with a polyline (curves sampled uniformly)."""
        points = [self.start]
        current = self.start
        for segment in self.segments:
            if segment.kind == "Q":
                control, end = segment.points
                for step in range(1, curve_steps + 1):
                    t = step / curve_steps
                    u = 1.0 - t
                    points.append((
                        u * u * current[0] + 2 * u * t * control[0] + t * t * end[0],
                        u * u * current[1] + 2 * u * t * control[1] + t * t * end[1],
                    ))
            else:
                points.append(segment.end)
            current = segment.end
        return np.array(points, dtype=np.float64)

    def area(self) -> float:
        """Signed shoelace area; positive for clockwise rings on screen (y down)."""
        pts = self.flatten()
        x, y = pts[:, 0], pts[:, 1]
        return float(np.sum(x[:-1] * y[1:] - x[1:] * y[:-1]) / 2.0)


@dataclass(frozen=True)
class Contour:
    """Traced boundary of one region: outer ring plus any holes."""

    index: int
    outline: Ring
    holes: Tuple[Ring, ...] = ()
    pixel_count: int = 0

    def area(self) -> float:
        """Covered area: the outline minus its holes (holes carry negative area)."""
        return self.outline.area() + sum(hole.area() for hole in self.holes)


@dataclass(frozen=True, eq=False)
class VectorDocument:
    """Palette, ordered contours and canvas box ready for serialization."""

    width: int
    height: int
    palette: ImageArray
    contours: Tuple[Contour, ...] = ()
    background: Optional[int] = None
    precision: int = 1
    canvas_rect: bool = False

    def __post_init__(self):
        object.__setattr__(self, "palette", _frozen_array(self.palette, np.uint8))
        object.__setattr__(self, "contours", tuple(self.contours))
        n = len(self.palette)
        for contour in self.contours:
            if not 0 <= contour.index < n:
                raise ValueError(f"Contour palette index {contour.index} outside palette of {n}")
        if self.background is not None and not 0 <= self.background < n:
            raise ValueError(f"Background index {self.background} outside palette of {n}")

    @property
    def viewbox(self) -> str:
        return f"0 0 {self.width} {self.height}"


@dataclass
class TraceConfig:
    """Configuration for raster-to-vector tracing.

    Defaults reproduce the settings the web client shipped with: a 16 colour
    palette, 1px line/curve tolerance, 8px noise cutoff and coordinates
    rounded to one decimal place.
    """

    # Color quantization
    n_colors: int = 16
    color_cycles: int = 3

    # Curve fitting
    line_tolerance: float = 1.0
    curve_tolerance: float = 1.0
    corner_angle: float = 60.0  # degrees

    # Noise cutoff: rings shorter than this (in pixel edges) are dropped
    path_omit: int = 8

    # SVG output
    round_coords: int = 1
    trace_background: bool = False
    canvas_rect: bool = False  # also paint the background as a <rect>

    def __post_init__(self):
        if self.n_colors < 1:
            raise ValueError(f"n_colors must be >= 1, got {self.n_colors}")
        if self.color_cycles < 1:
            raise ValueError(f"color_cycles must be >= 1, got {self.color_cycles}")
        if self.line_tolerance <= 0 or self.curve_tolerance <= 0:
            raise ValueError("line_tolerance and curve_tolerance must be positive")
        if not 0 < self.corner_angle < 180:
            raise ValueError(f"corner_angle must be in (0, 180), got {self.corner_angle}")
        if self.path_omit < 0:
            raise ValueError(f"path_omit must be >= 0, got {self.path_omit}")
        if not 0 <= self.round_coords <= 6:
            raise ValueError(f"round_coords must be in [0, 6], got {self.round_coords}")


@dataclass
class ExportRequest:
    """A single download request for a generated portrait."""

    source: Source
    format: ExportFormat = ExportFormat.PNG
    trace: TraceConfig = field(default_factory=TraceConfig)
    background: Color = (255, 255, 255)
    jpeg_quality: int = 95

    def __post_init__(self):
        self.format = ExportFormat.parse(self.format)
        if len(self.background) != 3 or not all(0 <= int(c) <= 255 for c in self.background):
            raise ValueError(f"background must be an RGB triple, got {self.background!r}")
        self.background = tuple(int(c) for c in self.background)
        if not 1 <= self.jpeg_quality <= 100:
            raise ValueError(f"jpeg_quality must be in [1, 100], got {self.jpeg_quality}")


@dataclass(frozen=True)
class ExportResult:
    """Encoded download: bytes plus a suggested file name."""

    data: bytes
    format: ExportFormat
    filename: str

    @property
    def mime_type(self) -> str:
        return self.format.mime_type


class PortraitMakerError(Exception):
    """Base exception for portraitmaker errors."""

    pass


class DecodeError(PortraitMakerError):
    """Raised when source bytes cannot be decoded into an image."""

    pass


class GenerationError(PortraitMakerError):
    """Raised when the image model returns no usable image."""

    pass


class TracingUnavailable(PortraitMakerError):
    """Raised when vector export cannot run in this environment."""

    pass


class ConversionError(PortraitMakerError):
    """Raised when recompositing or tracing fails."""

    pass


class QuantizationError(PortraitMakerError):
    """Exception raised during color quantization."""

    pass


class ContourError(PortraitMakerError):
    """Exception raised during boundary tracing."""

    pass


class SVGError(PortraitMakerError):
    """Exception raised during SVG generation."""

    pass
