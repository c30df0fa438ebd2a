"""Tests for boundary simplification and curve fitting."""

import numpy as np

from portraitmaker.contour import boundary_loops
from portraitmaker.simplify import (
    breakpoints,
    fit_piece,
    fit_quadratic,
    interpolate,
    round_segments,
    self_intersections,
    simplify_ring,
)
from portraitmaker.types import Segment


def _square_loop(size=30, offset=10):
    mask = np.zeros((size + 2 * offset, size + 2 * offset), dtype=bool)
    mask[offset:offset + size, offset:offset + size] = True
    return boundary_loops(mask)[0]


class TestInterpolate:
    """Test cases for interpolate function."""

    def test_keeps_rectangle_corners(self):
        """Test real corners are reinserted between midpoints."""
        points = interpolate(_square_loop(3, 0))

        as_set = {tuple(p) for p in points.tolist()}
        for corner in [(0.0, 0.0), (3.0, 0.0), (3.0, 3.0), (0.0, 3.0)]:
            assert corner in as_set
        assert len(points) == 12 + 4

    def test_staircase_has_no_corners(self):
        """Test single-step turns only produce midpoints."""
        loop = boundary_loops(np.array([[True]]))[0]

        points = interpolate(loop)

        assert points.tolist() == [[0.5, 0.0], [1.0, 0.5], [0.5, 1.0], [0.0, 0.5]]

    def test_saddle_vertex_not_inserted(self):
        """Test a vertex the loop passes twice is not reinserted as a corner."""
        cells = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 0]], dtype=bool)
        mask = np.kron(cells, np.ones((2, 2), dtype=bool))
        loops = boundary_loops(mask)

        points = interpolate(loops[0])

        assert len(loops) == 1
        assert (4.0, 4.0) not in {tuple(p) for p in points.tolist()}
        assert self_intersections(np.vstack([points, points[:1]])) == []


class TestBreakpoints:
    """Test cases for breakpoints function."""

    def test_square_corners(self):
        """Test the four right angles of a square are breakpoints."""
        points = interpolate(_square_loop(10, 0))

        cuts = breakpoints(points, 60.0)

        assert [tuple(points[i]) for i in cuts] == [(10.0, 0.0), (10.0, 10.0), (0.0, 10.0), (0.0, 0.0)]

    def test_smooth_ring_gets_two_cuts(self):
        """Test a ring without sharp corners is still cut in two."""
        angles = np.linspace(0, 2 * np.pi, 64, endpoint=False)
        points = np.column_stack([20 + 10 * np.cos(angles), 20 + 10 * np.sin(angles)])

        cuts = breakpoints(points, 60.0)

        assert len(cuts) == 2
        assert cuts[0] == 0
        assert cuts[1] == 32


class TestFitPiece:
    """Test cases for fit_piece function."""

    def test_straight_line(self):
        """Test near-collinear points collapse to a single line."""
        xs = np.linspace(0, 50, 26)
        points = np.column_stack([xs, 5 + 0.3 * np.sin(xs)])

        segments = fit_piece(points, 1.0, 1.0)

        assert len(segments) == 1
        assert segments[0].kind == "L"
        assert segments[0].end == tuple(points[-1])

    def test_arc_uses_curve(self):
        """Test a gentle arc is fitted with a quadratic curve."""
        angles = np.linspace(0, np.pi / 2, 40)
        points = np.column_stack([6 * np.cos(angles), 6 * np.sin(angles)])

        segments = fit_piece(points, 1.0, 1.0)

        assert any(s.kind == "Q" for s in segments)
        assert np.allclose(segments[-1].end, points[-1])

    def test_sharp_zigzag_splits(self):
        """Test a shape that fits neither a line nor a curve is split."""
        points = np.array([[0, 0], [10, 10], [20, 0], [30, 10], [40, 0]], dtype=float)

        segments = fit_piece(points, 0.5, 0.5)

        assert len(segments) >= 2
        assert segments[-1].end == (40.0, 0.0)

    def test_quadratic_exact(self):
        """Test points sampled from a quadratic curve are fitted exactly."""
        t = np.linspace(0, 1, 21)[:, None]
        p0, c, p2 = np.array([0.0, 0.0]), np.array([5.0, 2.0]), np.array([10.0, 0.0])
        points = (1 - t) ** 2 * p0 + 2 * t * (1 - t) * c + t ** 2 * p2

        control, error = fit_quadratic(points)

        assert error < 0.3
        assert np.allclose(control, c, atol=0.3)


class TestRoundSegments:
    """Test cases for round_segments function."""

    def test_rounds_and_clips(self):
        """Test coordinates are rounded and clipped to the canvas."""
        segments = [Segment("L", ((12.345, -1.0),)), Segment("Q", ((25.0, 3.21), (0.04, 0.0)))]

        start, rounded = round_segments((0.0, 0.0), segments, 1, 20.0, 20.0)

        assert start == (0.0, 0.0)
        assert rounded[0].points == ((12.3, 0.0),)
        assert rounded[1].points == ((20.0, 3.2), (0.0, 0.0))

    def test_drops_zero_length_lines(self):
        """Test lines that collapse after rounding are removed."""
        segments = [Segment("L", ((0.01, 0.02),)), Segment("L", ((5.0, 5.0),))]

        _, rounded = round_segments((0.0, 0.0), segments, 1, 10.0, 10.0)

        assert rounded == [Segment("L", ((5.0, 5.0),))]


class TestSimplifyRing:
    """Test cases for simplify_ring function."""

    def test_square_is_four_lines(self):
        """Test a pixel square becomes an exact four-line ring."""
        ring = simplify_ring(_square_loop())

        assert ring is not None
        assert [s.kind for s in ring.segments] == ["L", "L", "L", "L"]
        assert ring.area() == 900.0
        assert ring.segments[-1].end == ring.start

    def test_hole_winding_preserved(self):
        """Test a hole keeps its negative area after simplification."""
        mask = np.ones((40, 40), dtype=bool)
        mask[10:30, 10:30] = False
        hole = [loop for loop in boundary_loops(mask) if loop[0].tolist() != [0, 0]][0]

        ring = simplify_ring(hole)

        assert ring.area() == -400.0

    def test_precision(self):
        """Test coordinates respect the requested precision."""
        mask = np.zeros((60, 60), dtype=bool)
        yy, xx = np.mgrid[0:60, 0:60]
        mask[(xx - 30) ** 2 + (yy - 30) ** 2 <= 20 ** 2] = True

        ring = simplify_ring(boundary_loops(mask)[0], precision=1)

        for segment in ring.segments:
            for x, y in segment.points:
                assert round(x, 1) == x
                assert round(y, 1) == y
        assert 0.9 * np.pi * 400 < ring.area() < 1.1 * np.pi * 400

    def test_noisy_rings_stay_simple(self):
        """Test loose tolerances never produce a ring that crosses itself."""
        rng = np.random.default_rng(11)
        for _ in range(20):
            mask = rng.random((12, 12)) < 0.6
            for loop in boundary_loops(mask):
                for tolerance in (1.0, 3.0):
                    ring = simplify_ring(loop, tolerance, tolerance, precision=1)
                    if ring is None:
                        continue
                    assert self_intersections(_dedup(ring.flatten())) == []


def _dedup(points):
    moved = np.any(points[1:] != points[:-1], axis=1)
    return np.vstack([points[:1], points[1:][moved]])


class TestSelfIntersections:
    """Test cases for self_intersections function."""

    def test_square_is_simple(self):
        points = np.array([[0, 0], [4, 0], [4, 4], [0, 4], [0, 0]], dtype=float)

        assert self_intersections(points) == []

    def test_bow_tie(self):
        points = np.array([[0, 0], [2, 0], [0, 2], [2, 2], [0, 0]], dtype=float)

        assert self_intersections(points) == [(1, 3)]

    def test_touching_vertex(self):
        """Test a ring that comes back to one of its own vertices is reported."""
        points = np.array([[0, 0], [4, 0], [4, 4], [2, 0], [0, 4], [0, 0]], dtype=float)

        assert self_intersections(points) != []
