"""Tests for SVG serialization."""

import xml.etree.ElementTree as ET

import numpy as np
import pytest

from portraitmaker.quantize import quantize
from portraitmaker.raster_ingest import ingest_from_array
from portraitmaker.svg import (
    SVG_NS,
    build_document,
    color_to_hex,
    contour_to_path_data,
    format_number,
    layer_order,
    ring_to_path_data,
    save_svg,
    to_svg,
)
from portraitmaker.trace import trace
from portraitmaker.types import Contour, Ring, Segment, TraceConfig, VectorDocument

NS = {"svg": SVG_NS}


def _square(x0, y0, x1, y1):
    return Ring(
        start=(x0, y0),
        segments=(
            Segment("L", ((x1, y0),)),
            Segment("L", ((x1, y1),)),
            Segment("L", ((x0, y1),)),
            Segment("L", ((x0, y0),)),
        ),
    )


def _document_for(raster, config=None):
    quantized = quantize(raster, 16)
    return build_document(quantized, trace(quantized, config), config)


class TestFormatting:
    """Test cases for number and color formatting."""

    def test_color_to_hex(self):
        assert color_to_hex((255, 0, 16)) == "#FF0010"
        assert color_to_hex(np.array([0, 0, 255, 128], dtype=np.uint8)) == "#0000FF"

    def test_format_number(self):
        assert format_number(3.0, 1) == "3"
        assert format_number(2.26, 1) == "2.3"
        assert format_number(10.0, 0) == "10"
        assert format_number(-0.04, 1) == "0"
        assert format_number(0.502, 3) == "0.502"

    def test_ring_to_path_data(self):
        """Test absolute commands with M, L, Q and a closing Z."""
        ring = Ring(
            start=(0.0, 0.0),
            segments=(
                Segment("L", ((10.0, 0.0),)),
                Segment("Q", ((12.5, 5.0), (10.0, 10.0))),
                Segment("L", ((0.0, 0.0),)),
            ),
        )

        assert ring_to_path_data(ring) == "M0 0 L10 0 Q12.5 5 10 10 L0 0 Z"

    def test_holes_are_subpaths(self):
        """Test holes follow the outline as extra closed subpaths."""
        contour = Contour(index=0, outline=_square(0, 0, 10, 10), holes=(_square(2, 2, 4, 4),))

        data = contour_to_path_data(contour)

        assert data.count("M") == 2
        assert data.count("Z") == 2


class TestLayerOrder:
    """Test cases for layer_order function."""

    def test_largest_area_first(self):
        palette = np.array([[0, 0, 0, 255], [255, 0, 0, 255], [0, 0, 255, 255]])
        contours = (
            Contour(index=1, outline=_square(0, 0, 5, 5)),
            Contour(index=2, outline=_square(0, 0, 10, 10)),
        )

        document = VectorDocument(20, 20, palette, contours)

        assert layer_order(document) == [2, 1]

    def test_tie_goes_to_lower_index(self):
        palette = np.array([[0, 0, 0, 255], [255, 0, 0, 255], [0, 0, 255, 255]])
        contours = (
            Contour(index=2, outline=_square(0, 0, 5, 5)),
            Contour(index=1, outline=_square(10, 10, 15, 15)),
        )

        document = VectorDocument(20, 20, palette, contours)

        assert layer_order(document) == [1, 2]


class TestToSvg:
    """Test cases for to_svg function."""

    def test_three_region_document(self, three_region_image):
        """Test the canonical white/red/blue image serializes to two paths."""
        svg = to_svg(_document_for(three_region_image))

        root = ET.fromstring(svg)
        assert root.tag == f"{{{SVG_NS}}}svg"
        assert root.get("viewBox") == "0 0 512 512"
        assert root.get("width") == "512"
        assert root.get("height") == "512"
        assert root.get("style") == "background-color:#FFFFFF"

        paths = root.findall(".//svg:path", NS)
        assert len(paths) == 2
        # The disc covers more area than the square, so its layer is painted first
        assert [p.get("fill") for p in paths] == ["#0000FF", "#FF0000"]
        for path in paths:
            d = path.get("d")
            assert d.startswith("M")
            assert d.endswith("Z")

    def test_one_group_per_layer(self, three_region_image):
        svg = to_svg(_document_for(three_region_image))

        groups = ET.fromstring(svg).findall("svg:g", NS)

        assert len(groups) == 2
        assert all(g.get("id").startswith("layer-") for g in groups)

    def test_deterministic(self, three_region_image):
        """Test repeated serialization is byte-identical."""
        assert to_svg(_document_for(three_region_image)) == to_svg(_document_for(three_region_image))

    def test_frame_uses_one_path_with_hole(self, frame_image):
        svg = to_svg(_document_for(frame_image))

        paths = ET.fromstring(svg).findall(".//svg:path", NS)

        assert len(paths) == 1
        assert paths[0].get("fill") == "#000000"
        assert paths[0].get("d").count("M") == 2

    def test_uniform_image_has_no_paths(self):
        """Test a degenerate image still yields a valid empty document."""
        raster = ingest_from_array(np.full((8, 8, 3), 40, dtype=np.uint8))

        svg = to_svg(_document_for(raster))

        root = ET.fromstring(svg)
        assert root.get("viewBox") == "0 0 8 8"
        assert root.findall(".//svg:path", NS) == []
        assert root.get("style") == "background-color:#282828"

    def test_trace_background_drops_canvas_style(self, three_region_image):
        config = TraceConfig(trace_background=True)
        svg = to_svg(_document_for(three_region_image, config))

        root = ET.fromstring(svg)
        assert root.get("style") is None
        assert len(root.findall(".//svg:path", NS)) == 3

    def test_fill_opacity_for_translucent_colors(self):
        palette = np.array([[255, 255, 255, 255], [255, 0, 0, 128]])
        document = VectorDocument(20, 20, palette, (Contour(index=1, outline=_square(0, 0, 5, 5)),))

        path = ET.fromstring(to_svg(document)).find(".//svg:path", NS)

        assert path.get("fill") == "#FF0000"
        assert path.get("fill-opacity") == "0.502"

    def test_transparent_layers_skipped(self):
        palette = np.array([[0, 0, 0, 0], [255, 0, 0, 255]])
        contours = (
            Contour(index=0, outline=_square(0, 0, 10, 10)),
            Contour(index=1, outline=_square(0, 0, 5, 5)),
        )
        document = VectorDocument(20, 20, palette, contours, background=0)

        root = ET.fromstring(to_svg(document))

        assert root.get("style") is None
        assert len(root.findall(".//svg:path", NS)) == 1

    def test_no_external_references(self, three_region_image):
        svg = to_svg(_document_for(three_region_image))

        assert "href" not in svg
        assert "url(" not in svg

    def test_invalid_palette_index(self):
        palette = np.array([[0, 0, 0, 255]])

        with pytest.raises(ValueError):
            VectorDocument(10, 10, palette, (Contour(index=3, outline=_square(0, 0, 5, 5)),))

    def test_save_svg(self, tmp_path):
        output = tmp_path / "out.svg"

        save_svg('<svg xmlns="http://www.w3.org/2000/svg"/>', str(output))

        assert output.read_text(encoding="utf-8").startswith("<svg")

    def test_canvas_rect_is_opt_in(self, three_region_image):
        """Test the background <rect> only appears when requested."""
        default = ET.fromstring(to_svg(_document_for(three_region_image)))
        assert default.findall("svg:rect", NS) == []

        config = TraceConfig(canvas_rect=True)
        root = ET.fromstring(to_svg(_document_for(three_region_image, config)))

        rects = root.findall("svg:rect", NS)
        assert len(rects) == 1
        assert rects[0].get("width") == "512"
        assert rects[0].get("height") == "512"
        assert rects[0].get("fill") == "#FFFFFF"
        # The rect is painted first, beneath every layer
        assert list(root)[0].tag == f"{{{SVG_NS}}}rect"
        assert len(root.findall(".//svg:path", NS)) == 2

    def test_canvas_rect_skipped_for_transparent_background(self):
        palette = np.array([[0, 0, 0, 0], [255, 0, 0, 255]])
        contours = (Contour(index=1, outline=_square(0, 0, 5, 5)),)
        document = VectorDocument(20, 20, palette, contours, background=0, canvas_rect=True)

        assert ET.fromstring(to_svg(document)).findall("svg:rect", NS) == []
