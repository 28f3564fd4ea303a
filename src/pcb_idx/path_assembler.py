"""Assemble disconnected LINE/ARC segments into closed polylines.

Mechanical CAD DXF exports often draw the board outline as loose LINE and
ARC entities that only share endpoints. Endpoints are snapped to a grid of
``tolerance`` cells, and the resulting adjacency graph is walked to recover
closed loops.
"""

from __future__ import annotations

from typing import TypeAlias

import math
from collections import defaultdict

from .curves import Arc, Line, ShapeKind
from .geometry import Vector2
from .models import DxfPath
from .polyline import Polyline

Segment: TypeAlias = "Line | Arc"

# Hashable grid cell of a snapped endpoint
_PointKey: TypeAlias = "tuple[int, int]"

_BULGE_EPSILON = 1e-10


def _point_key(p: Vector2, grid_inv: int) -> _PointKey:
    return (round(p.x * grid_inv), round(p.y * grid_inv))


def _endpoints(seg: Segment) -> tuple[Vector2, Vector2]:
    if seg.kind is ShapeKind.ARC:
        return seg.start_point, seg.end_point
    return seg.start, seg.end


def assemble_closed_paths(
    segments: list[Segment],
    tolerance: float = 0.001,
    source_layer: str = "",
) -> list[DxfPath]:
    """Join loose segments into closed paths.

    Segments that do not end up in a closed loop are dropped.

    Args:
        segments: Kernel lines and arcs in drawing order.
        tolerance: Maximum endpoint distance still considered connected.
        source_layer: DXF layer name recorded on each path.

    Returns:
        Closed paths in order of their first segment.
    """
    if not segments:
        return []
    grid_inv = max(1, round(1.0 / tolerance))

    # grid cell -> [(segment index, touches at its start point)]
    adjacency: dict[_PointKey, list[tuple[int, bool]]] = defaultdict(list)
    for i, seg in enumerate(segments):
        start, end = _endpoints(seg)
        adjacency[_point_key(start, grid_inv)].append((i, True))
        adjacency[_point_key(end, grid_inv)].append((i, False))

    used = [False] * len(segments)
    paths: list[DxfPath] = []
    for first in range(len(segments)):
        if used[first]:
            continue
        loop = _walk_loop(segments, adjacency, used, first, grid_inv)
        if loop is not None:
            paths.append(DxfPath(polyline=Polyline(tuple(loop)), source_layer=source_layer))
    return paths


def _walk_loop(
    segments: list[Segment],
    adjacency: dict[_PointKey, list[tuple[int, bool]]],
    used: list[bool],
    first: int,
    grid_inv: int,
) -> list[Segment] | None:
    """Follow connected segments from ``first`` until the loop closes.

    On a dead end the visited segments are released and None is returned.
    """
    visited = [first]
    chain: list[Segment] = [segments[first]]
    used[first] = True
    start, end = _endpoints(segments[first])
    loop_key = _point_key(start, grid_inv)
    key = _point_key(end, grid_inv)

    for _ in range(len(segments)):
        if key == loop_key and len(chain) > 1:
            return chain
        step = _find_next(adjacency, used, key)
        if step is None:
            for idx in visited:
                used[idx] = False
            return None
        idx, enters_at_start = step
        used[idx] = True
        visited.append(idx)
        seg = segments[idx] if enters_at_start else segments[idx].reverse()
        chain.append(seg)
        key = _point_key(_endpoints(seg)[1], grid_inv)

    if key == loop_key and len(chain) > 1:
        return chain
    for idx in visited:
        used[idx] = False
    return None


def _find_next(
    adjacency: dict[_PointKey, list[tuple[int, bool]]],
    used: list[bool],
    key: _PointKey,
) -> tuple[int, bool] | None:
    for idx, at_start in adjacency.get(key, []):
        if not used[idx]:
            return (idx, at_start)
    return None


# --- LWPOLYLINE ---


def lwpolyline_to_path(
    points: list[tuple[float, float]],
    bulges: list[float],
    layer: str = "",
) -> DxfPath:
    """Convert a closed LWPOLYLINE with per-vertex bulges to a path.

    The bulge on vertex ``i`` describes the segment to vertex ``i + 1``;
    the last vertex connects back to the first.
    """
    primitives: list[Segment] = []
    n = len(points)
    for i in range(n):
        p1 = Vector2(*points[i])
        p2 = Vector2(*points[(i + 1) % n])
        if p1.equals(p2, 1e-12):
            continue
        bulge = bulges[i] if i < len(bulges) else 0.0
        if abs(bulge) < _BULGE_EPSILON:
            primitives.append(Line(p1, p2))
        else:
            primitives.append(bulge_to_arc(p1, p2, bulge))
    return DxfPath(polyline=Polyline(tuple(primitives)), source_layer=layer)


def bulge_to_arc(p1: Vector2, p2: Vector2, bulge: float) -> Arc:
    """Arc from ``p1`` to ``p2`` for a DXF bulge value.

    The bulge is tan(sweep / 4); positive bulges turn counterclockwise.
    """
    chord = p1.distance_to(p2)
    sweep = 4.0 * math.atan(bulge)
    radius = chord / (2.0 * abs(math.sin(sweep / 2.0)))

    # Center sits on the chord normal, left of p1->p2 for CCW arcs
    mid = p1.lerp(p2, 0.5)
    normal = (p2 - p1).perpendicular().normalized()
    offset = radius * math.cos(sweep / 2.0)
    center = mid + normal * (offset if bulge > 0 else -offset)

    start_angle = math.atan2(p1.y - center.y, p1.x - center.x)
    return Arc.circular(center, radius, start_angle, sweep)


# --- Path metrics ---


def path_area(path: DxfPath) -> float:
    """Signed area of a closed path (positive when counterclockwise)."""
    pts = path.polyline.vertices()
    area = 0.0
    for a, b in zip(pts, pts[1:] + pts[:1]):
        area += a.cross(b)
    return area / 2.0


def point_in_path(point: Vector2, path: DxfPath) -> bool:
    """Ray casting in +X against the flattened path."""
    pts = path.polyline.vertices()
    inside = False
    for a, b in zip(pts, pts[1:] + pts[:1]):
        if (a.y <= point.y < b.y) or (b.y <= point.y < a.y):
            t = (point.y - a.y) / (b.y - a.y)
            if a.x + t * (b.x - a.x) > point.x:
                inside = not inside
    return inside
