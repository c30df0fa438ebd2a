"""Boundary tracing along pixel edges.

Every boundary edge is directed so that the region lies on its right when
looking along the edge on screen (y axis pointing down). Following those
edges yields clockwise outer rings and counter-clockwise holes, which is
what both even-odd and nonzero fill rules need to reproduce holes.
"""

from typing import Dict, List, Tuple

import numpy as np

from .types import ContourError

Vertex = Tuple[int, int]
Direction = Tuple[int, int]

EAST = (1, 0)
SOUTH = (0, 1)
WEST = (-1, 0)
NORTH = (0, -1)
DIRECTIONS = (EAST, SOUTH, WEST, NORTH)


def _turn_right(d: Direction) -> Direction:
    return (-d[1], d[0])


def _turn_left(d: Direction) -> Direction:
    return (d[1], -d[0])


def boundary_edges(mask: np.ndarray) -> Dict[Vertex, List[Direction]]:
    """Directed boundary edges of a binary mask, keyed by start vertex.

    Vertices are pixel corners in (x, y) order; pixel (row, col) spans
    x in [col, col + 1] and y in [row, row + 1].
    """
    padded = np.pad(np.asarray(mask, dtype=bool), 1)
    inner = padded[1:-1, 1:-1]
    sides = (
        (inner & ~padded[:-2, 1:-1], EAST, (0, 0)),   # top edge
        (inner & ~padded[1:-1, 2:], SOUTH, (1, 0)),   # right edge
        (inner & ~padded[2:, 1:-1], WEST, (1, 1)),    # bottom edge
        (inner & ~padded[1:-1, :-2], NORTH, (0, 1)),  # left edge
    )

    outgoing: Dict[Vertex, List[Direction]] = {}
    for exposed, direction, (dx, dy) in sides:
        rows, cols = np.nonzero(exposed)
        for row, col in zip(rows.tolist(), cols.tolist()):
            outgoing.setdefault((col + dx, row + dy), []).append(direction)
    return outgoing


def _follow(outgoing: Dict[Vertex, List[Direction]], start: Vertex, first: Direction) -> List[Vertex]:
    """Walk one closed loop starting with edge (start, first)."""
    outgoing[start].remove(first)
    loop = [start]
    vertex, heading = start, first

    while True:
        vertex = (vertex[0] + heading[0], vertex[1] + heading[1])
        options = outgoing.get(vertex, [])
        closing = vertex == start

        # Prefer hugging the region: right turn, then straight, then left.
        # At a saddle vertex this keeps diagonal neighbours apart.
        for candidate in (_turn_right(heading), heading, _turn_left(heading)):
            if candidate in options or (closing and candidate == first):
                break
        else:
            raise ContourError(f"Boundary is not closed at vertex {vertex}")

        if closing and candidate == first:
            return loop
        options.remove(candidate)
        loop.append(vertex)
        heading = candidate


def boundary_loops(mask: np.ndarray) -> List[np.ndarray]:
    """Trace all closed boundary loops of a binary mask.

    Loops are discovered in scan order of their first vertex, so identical
    masks always give identical loops.

    Args:
        mask: Binary mask (H, W)

    Returns:
        List of (N, 2) integer arrays of (x, y) pixel corners, one per loop.
        Outer boundaries have positive signed area, holes negative.
    """
    outgoing = boundary_edges(mask)
    loops = []
    for vertex in sorted(outgoing, key=lambda v: (v[1], v[0])):
        for direction in DIRECTIONS:
            if direction in outgoing[vertex]:
                loops.append(np.array(_follow(outgoing, vertex, direction), dtype=np.int64))
    return loops


def loop_area(loop: np.ndarray) -> float:
    """Signed shoelace area of a closed vertex loop (positive = clockwise on screen)."""
    x = loop[:, 0].astype(np.float64)
    y = loop[:, 1].astype(np.float64)
    return float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y) / 2.0)


def split_outer_and_holes(loops: List[np.ndarray]) -> Tuple[np.ndarray, List[np.ndarray]]:
    """Separate the outer loop of a 4-connected region from its holes.

    Raises:
        ContourError: If the loops do not contain exactly one outer boundary
    """
    outers = [loop for loop in loops if loop_area(loop) > 0]
    holes = [loop for loop in loops if loop_area(loop) < 0]
    if len(outers) != 1:
        raise ContourError(f"Expected one outer boundary, found {len(outers)}")
    return outers[0], holes
