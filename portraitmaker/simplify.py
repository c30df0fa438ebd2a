"""Boundary simplification: staircase smoothing, corner detection and curve fitting.

Raw boundaries follow every pixel step. They are first smoothed by taking
edge midpoints (real corners between straight runs are kept), then cut at
sharp corners, and each piece is fitted with straight lines or quadratic
Bezier curves. A piece that fits neither within tolerance is split at its
worst point and both halves are fitted again, in the manner of
Douglas-Peucker.
"""

import math
from typing import List, Optional, Tuple

import numpy as np

from .types import Ring, Segment


def interpolate(loop: np.ndarray) -> np.ndarray:
    """Replace unit pixel steps by their midpoints.

    Where two straight runs of at least two steps meet at a turn, the pixel
    corner itself is inserted after the midpoint so rectangles keep their
    corners. The result is a simple polygon.

    Args:
        loop: (N, 2) closed loop of integer pixel corners

    Returns:
        (M, 2) float array, M >= N
    """
    pts = loop.astype(np.float64)
    nxt = np.roll(pts, -1, axis=0)
    mids = (pts + nxt) / 2.0

    # Step i runs from pts[i] to pts[i + 1]; the vertex after it is nxt[i]
    step = nxt - pts
    prev_step = np.roll(step, 1, axis=0)
    next_step = np.roll(step, -1, axis=0)
    after_next = np.roll(step, -2, axis=0)
    corner = (
        np.any(step != next_step, axis=1)
        & np.all(step == prev_step, axis=1)
        & np.all(next_step == after_next, axis=1)
    )
    # A saddle vertex is visited twice; inserting it would make the ring touch itself
    _, vertex_id, visits = np.unique(loop, axis=0, return_inverse=True, return_counts=True)
    corner &= np.roll(visits[vertex_id.reshape(-1)], -1) == 1

    shift = np.concatenate([[0], np.cumsum(corner)[:-1]])
    positions = np.arange(len(pts)) + shift
    out = np.empty((len(pts) + int(corner.sum()), 2), dtype=np.float64)
    out[positions] = mids
    out[positions[corner] + 1] = nxt[corner]
    return out


def turn_angles(points: np.ndarray) -> np.ndarray:
    """Absolute turn angle in degrees at each point of a closed polyline."""
    incoming = points - np.roll(points, 1, axis=0)
    outgoing = np.roll(points, -1, axis=0) - points
    cross = incoming[:, 0] * outgoing[:, 1] - incoming[:, 1] * outgoing[:, 0]
    dot = np.sum(incoming * outgoing, axis=1)
    return np.degrees(np.abs(np.arctan2(cross, dot)))


def breakpoints(points: np.ndarray, corner_angle: float) -> List[int]:
    """Indices where a closed polyline is cut into independently fitted pieces.

    Every corner sharper than ``corner_angle`` is a breakpoint. Rings with
    fewer than two corners get the point farthest from the first breakpoint
    as an extra one, so no piece starts and ends at the same point.
    """
    cuts = [int(i) for i in np.nonzero(turn_angles(points) > corner_angle)[0]]
    if len(cuts) >= 2:
        return cuts
    anchor = cuts[0] if cuts else 0
    distance = np.linalg.norm(points - points[anchor], axis=1)
    farthest = int(np.argmax(distance))
    return sorted({anchor, farthest})


def _line_error(points: np.ndarray) -> Tuple[float, int]:
    """Max distance from the chord between the end points, and where it occurs."""
    start, end = points[0], points[-1]
    chord = end - start
    length_sq = float(np.dot(chord, chord))
    rel = points - start
    if length_sq == 0.0:
        distance = np.linalg.norm(rel, axis=1)
    else:
        t = np.clip(rel @ chord / length_sq, 0.0, 1.0)
        distance = np.linalg.norm(rel - np.outer(t, chord), axis=1)
    worst = int(np.argmax(distance))
    return float(distance[worst]), worst


def fit_quadratic(points: np.ndarray) -> Optional[Tuple[np.ndarray, float]]:
    """Least-squares quadratic Bezier with fixed end points.

    Uses chord-length parametrisation.

    Returns:
        (control_point, max_error), or None when the points cannot define a curve
    """
    start, end = points[0], points[-1]
    lengths = np.linalg.norm(np.diff(points, axis=0), axis=1)
    total = float(lengths.sum())
    if total == 0.0:
        return None
    t = np.concatenate([[0.0], np.cumsum(lengths)]) / total
    u = 1.0 - t
    basis = 2.0 * t * u
    denom = float(np.dot(basis, basis))
    if denom == 0.0:
        return None

    fixed = np.outer(u * u, start) + np.outer(t * t, end)
    control = (basis @ (points - fixed)) / denom
    fitted = fixed + np.outer(basis, control)
    error = float(np.max(np.linalg.norm(fitted - points, axis=1)))
    return control, error


def fit_piece(points: np.ndarray, line_tolerance: float, curve_tolerance: float) -> List[Segment]:
    """Fit an open polyline with line and quadratic segments.

    Args:
        points: (N, 2) polyline, N >= 2
        line_tolerance: Max deviation for a straight segment
        curve_tolerance: Max deviation for a quadratic segment

    Returns:
        Segments covering the polyline from points[0] to points[-1]
    """
    segments = []
    stack = [(0, len(points) - 1)]
    while stack:
        lo, hi = stack.pop()
        span = points[lo:hi + 1]
        end = tuple(span[-1])
        if len(span) == 2:
            segments.append(Segment("L", (end,)))
            continue

        error, worst = _line_error(span)
        if error <= line_tolerance:
            segments.append(Segment("L", (end,)))
            continue

        curve = fit_quadratic(span)
        if curve is not None and curve[1] <= curve_tolerance:
            segments.append(Segment("Q", (tuple(curve[0]), end)))
            continue

        # Left half is pushed last so output stays in path order
        split = lo + max(1, min(worst, len(span) - 2))
        stack.append((split, hi))
        stack.append((lo, split))
    return segments


def _round_point(point, precision: int, width: float, height: float) -> Tuple[float, float]:
    x = min(max(float(point[0]), 0.0), width)
    y = min(max(float(point[1]), 0.0), height)
    return (round(x, precision), round(y, precision))


def round_segments(
    start,
    segments: List[Segment],
    precision: int,
    width: float,
    height: float,
) -> Tuple[Tuple[float, float], List[Segment]]:
    """Clip coordinates to the canvas, round them and drop zero-length lines."""
    first = _round_point(start, precision, width, height)
    current = first
    rounded = []
    for segment in segments:
        pts = tuple(_round_point(p, precision, width, height) for p in segment.points)
        if segment.kind == "L" and pts[-1] == current:
            continue
        rounded.append(Segment(segment.kind, pts))
        current = pts[-1]
    return first, rounded


def _orientation(a: np.ndarray, b: np.ndarray, c: np.ndarray) -> np.ndarray:
    return (b[..., 0] - a[..., 0]) * (c[..., 1] - a[..., 1]) - (b[..., 1] - a[..., 1]) * (c[..., 0] - a[..., 0])


def self_intersections(points: np.ndarray) -> List[Tuple[int, int]]:
    """Pairs of non-adjacent edges of a closed polyline that cross or touch.

    Args:
        points: (N, 2) polyline whose last point repeats the first, as
            returned by ``Ring.flatten``; consecutive points must differ

    Returns:
        Sorted (i, j) edge index pairs with i < j; empty for a simple ring
    """
    starts, ends = points[:-1], points[1:]
    n = len(starts)
    lo = np.minimum(starts, ends)
    hi = np.maximum(starts, ends)
    order = np.argsort(lo[:, 0], kind="stable")
    sorted_left = lo[order, 0]

    pairs = []
    for i in range(n):
        # Only edges whose x-range begins before this one ends can overlap it
        cand = order[:np.searchsorted(sorted_left, hi[i, 0], side="right")]
        cand = cand[cand > i + 1]
        if i == 0:
            cand = cand[cand != n - 1]
        cand = cand[(hi[cand, 0] >= lo[i, 0]) & (hi[cand, 1] >= lo[i, 1]) & (lo[cand, 1] <= hi[i, 1])]
        if not len(cand):
            continue

        p, q = starts[i], ends[i]
        c, d = starts[cand], ends[cand]
        hit = (
            (_orientation(c, d, p) * _orientation(c, d, q) <= 0)
            & (_orientation(p, q, c) * _orientation(p, q, d) <= 0)
        )
        pairs.extend((i, int(j)) for j in cand[hit])
    return sorted(pairs)


def _crossing_segments(ring: Ring, curve_steps: int = 8) -> List[int]:
    """Indices of ring segments involved in a self-intersection."""
    points = ring.flatten(curve_steps)
    steps = [curve_steps if segment.kind == "Q" else 1 for segment in ring.segments]
    owner = np.repeat(np.arange(len(steps)), steps)

    moved = np.any(points[1:] != points[:-1], axis=1)
    points = np.vstack([points[:1], points[1:][moved]])
    owner = owner[moved]
    if len(points) < 4:
        return []

    crossing = set()
    for i, j in self_intersections(points):
        crossing.update((int(owner[i]), int(owner[j])))
    return sorted(crossing)


# Each refit halves the tolerances; after this many the piece is kept as is
MAX_REFITS = 3


def _fit_at(piece: np.ndarray, refits: int, line_tolerance: float, curve_tolerance: float) -> List[Segment]:
    if refits >= MAX_REFITS:
        return [Segment("L", (tuple(p),)) for p in piece[1:]]
    scale = 0.5 ** refits
    return fit_piece(piece, line_tolerance * scale, curve_tolerance * scale)


def _pieces(points: np.ndarray, cuts: List[int]) -> List[np.ndarray]:
    pieces = []
    for i, cut in enumerate(cuts):
        nxt = cuts[(i + 1) % len(cuts)]
        if nxt > cut:
            pieces.append(points[cut:nxt + 1])
        else:
            pieces.append(np.vstack([points[cut:], points[:nxt + 1]]))
    return pieces


def simplify_ring(
    loop: np.ndarray,
    line_tolerance: float = 1.0,
    curve_tolerance: float = 1.0,
    corner_angle: float = 60.0,
    precision: int = 1,
    bounds: Tuple[float, float] = (math.inf, math.inf),
) -> Optional[Ring]:
    """Turn a raw pixel-corner loop into a fitted, rounded Ring.

    Traversal direction is preserved, so winding survives simplification.
    Pieces whose fitted segments cross another part of the ring are refitted
    with halved tolerances and, as a last resort, kept as the smoothed
    polyline, so the returned ring does not intersect itself.

    Args:
        loop: (N, 2) closed loop of pixel corners, in image coordinates
        line_tolerance: Max deviation for straight segments
        curve_tolerance: Max deviation for quadratic segments
        corner_angle: Turn angle in degrees above which a corner is kept sharp
        precision: Decimal places for output coordinates
        bounds: (width, height) of the canvas; coordinates are clipped to it

    Returns:
        Ring, or None if the loop collapses to fewer than two segments
    """
    points = interpolate(loop)
    cuts = breakpoints(points, corner_angle)
    pieces = _pieces(points, cuts)
    width, height = bounds

    refits = [0] * len(pieces)
    fitted = [_fit_at(piece, 0, line_tolerance, curve_tolerance) for piece in pieces]

    while True:
        start = _round_point(points[cuts[0]], precision, width, height)
        current = start
        segments: List[Segment] = []
        owners: List[int] = []
        for index, piece_segments in enumerate(fitted):
            _, rounded = round_segments(current, piece_segments, precision, width, height)
            segments.extend(rounded)
            owners.extend([index] * len(rounded))
            if rounded:
                current = rounded[-1].end

        if len(segments) < 2:
            return None
        if segments[-1].end != start:
            segments.append(Segment("L", (start,)))
            owners.append(len(pieces) - 1)
        ring = Ring(start=start, segments=tuple(segments))

        offending = sorted({owners[s] for s in _crossing_segments(ring)})
        offending = [index for index in offending if refits[index] < MAX_REFITS]
        if not offending:
            return ring
        for index in offending:
            refits[index] += 1
            fitted[index] = _fit_at(pieces[index], refits[index], line_tolerance, curve_tolerance)
