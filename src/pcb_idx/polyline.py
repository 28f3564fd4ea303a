"""Composite curves made of connected line and arc primitives."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import ClassVar

from .curves import Arc, Line, ShapeKind
from .errors import GeometryError
from .geometry import EPSILON, BBox2, Matrix3, Vector2

DEFAULT_ANGLE_STEP = math.pi / 12

# Fillets are skipped when the corner is this close to straight or to a hairpin.
_MIN_CORNER_ANGLE = 1e-6


@dataclass(frozen=True)
class Polyline:
    """Ordered, connected sequence of Line/Arc primitives."""

    primitives: tuple[Line | Arc, ...]

    kind: ClassVar[ShapeKind] = ShapeKind.POLYLINE

    def __post_init__(self) -> None:
        object.__setattr__(self, "primitives", tuple(self.primitives))

    # --- Construction ---

    @staticmethod
    def from_points(
        points: Sequence[Vector2],
        tolerance: float = 1e-6,
        close_path: bool = False,
    ) -> Polyline:
        """Build straight segments through ``points``.

        Consecutive points closer than ``tolerance`` are merged. With
        ``close_path`` a repeated final point is dropped and a closing
        segment back to the first point is added.

        Raises:
            GeometryError: Fewer than two distinct points remain.
        """
        pts = _dedupe(points, tolerance)
        if close_path and len(pts) > 2 and pts[-1].distance_to(pts[0]) <= tolerance:
            pts.pop()
        if len(pts) < 2:
            msg = f"Polyline needs at least 2 distinct points, got {len(pts)}"
            raise GeometryError(msg)

        lines = [Line(a, b) for a, b in zip(pts, pts[1:])]
        if close_path:
            lines.append(Line(pts[-1], pts[0]))
        return Polyline(tuple(lines))

    @staticmethod
    def from_points_with_fillet(
        points: Sequence[Vector2],
        radius: float,
        tolerance: float = 1e-6,
        close_path: bool = False,
    ) -> Polyline:
        """Build segments through ``points`` with tangent arcs at the corners.

        A corner stays sharp when the fillet would need more than half of
        either adjacent edge, when the edges are nearly collinear or fold
        back on themselves, or when ``radius`` is not positive. Adjacent
        fillets therefore never overlap.

        Raises:
            GeometryError: Fewer than three distinct points remain.
        """
        pts = _dedupe(points, tolerance)
        if close_path and len(pts) > 3 and pts[-1].distance_to(pts[0]) <= tolerance:
            pts.pop()
        if len(pts) < 3:
            msg = f"Filleted polyline needs at least 3 distinct points, got {len(pts)}"
            raise GeometryError(msg)

        n = len(pts)
        corners: list[_Corner] = []
        for i in range(n):
            interior = close_path or 0 < i < n - 1
            if not interior:
                corners.append(_Corner(pts[i], pts[i], None))
                continue
            corners.append(_fillet_corner(pts[i - 1], pts[i], pts[(i + 1) % n], radius))

        primitives: list[Line | Arc] = []
        if close_path:
            current = corners[0].exit
            order = list(range(1, n)) + [0]
        else:
            current = pts[0]
            order = list(range(1, n))

        for i in order:
            corner = corners[i]
            if current.distance_to(corner.entry) > tolerance:
                primitives.append(Line(current, corner.entry))
            if corner.arc is not None:
                primitives.append(corner.arc)
            current = corner.exit

        return Polyline(tuple(primitives))

    # --- Properties ---

    @property
    def start(self) -> Vector2:
        return _start_of(self.primitives[0])

    @property
    def end(self) -> Vector2:
        return _end_of(self.primitives[-1])

    @property
    def is_closed(self) -> bool:
        if not self.primitives:
            return False
        return self.start.equals(self.end, EPSILON)

    @property
    def contains_arc(self) -> bool:
        return any(p.kind is ShapeKind.ARC for p in self.primitives)

    @property
    def length(self) -> float:
        return sum(p.length for p in self.primitives)

    def vertices(self, max_angle_step: float = DEFAULT_ANGLE_STEP) -> list[Vector2]:
        """Flatten to points; arcs are discretized, joints are not repeated."""
        if not self.primitives:
            return []
        result = [self.start]
        for prim in self.primitives:
            if prim.kind is ShapeKind.ARC:
                result.extend(prim.discretize(max_angle_step)[1:])
            else:
                result.append(prim.end)
        return result

    def bounds(self) -> BBox2:
        box = BBox2.empty()
        for prim in self.primitives:
            box = box.combine(prim.bounds())
        return box

    # --- Derived curves ---

    def transform(self, matrix: Matrix3) -> Polyline:
        return Polyline(tuple(p.transform(matrix) for p in self.primitives))

    def reverse(self) -> Polyline:
        return Polyline(tuple(p.reverse() for p in reversed(self.primitives)))

    def close(self) -> Polyline:
        """Return a closed copy, appending a closing line if needed."""
        if self.is_closed or not self.primitives:
            return self
        return Polyline((*self.primitives, Line(self.end, self.start)))

    def simplify(self, tolerance: float) -> Polyline:
        """Douglas-Peucker reduction of the flattened vertices.

        The result contains only straight segments; arc curvature is lost.
        """
        pts = _douglas_peucker(self.vertices(), tolerance)
        return Polyline.from_points(pts, tolerance=min(tolerance, 1e-6))

    # --- Queries ---

    def point_at_parameter(self, t: float) -> Vector2:
        """Point at fraction ``t`` of the total arc length (clamped to [0, 1])."""
        if not self.primitives:
            msg = "Empty polyline has no points"
            raise GeometryError(msg)
        t = max(0.0, min(1.0, t))
        target = self.length * t
        walked = 0.0
        for prim in self.primitives:
            seg = prim.length
            if walked + seg >= target and seg > 0:
                local = (target - walked) / seg
                if prim.kind is ShapeKind.ARC:
                    return prim.point_at_angle(prim.start_angle + prim.sweep_angle * local)
                return prim.point_at(local)
            walked += seg
        return self.end

    def contains_point(self, p: Vector2, tolerance: float = 1e-6) -> bool:
        """True if ``p`` lies on the curve within ``tolerance``."""
        for prim in self.primitives:
            if prim.kind is ShapeKind.ARC:
                if _on_arc(prim, p, tolerance):
                    return True
            elif prim.closest_point(p).distance_to(p) <= tolerance:
                return True
        return False


# --- Helpers ---


@dataclass(frozen=True)
class _Corner:
    entry: Vector2
    exit: Vector2
    arc: Arc | None


def _fillet_corner(prev: Vector2, p: Vector2, nxt: Vector2, radius: float) -> _Corner:
    sharp = _Corner(p, p, None)
    if radius <= 0:
        return sharp

    v1 = (prev - p).normalized()
    v2 = (nxt - p).normalized()
    cos_theta = max(-1.0, min(1.0, v1.dot(v2)))
    theta = math.acos(cos_theta)  # angle between the two edges at p
    if theta < _MIN_CORNER_ANGLE or theta > math.pi - _MIN_CORNER_ANGLE:
        return sharp

    tangent = radius / math.tan(theta / 2.0)
    limit = min(prev.distance_to(p), nxt.distance_to(p)) / 2.0
    if tangent > limit:
        return sharp

    entry = p + v1 * tangent
    exit_ = p + v2 * tangent
    bisector = (v1 + v2).normalized()
    center = p + bisector * (radius / math.sin(theta / 2.0))

    turn = math.pi - theta
    if (p - prev).cross(nxt - p) < 0:
        turn = -turn
    start_angle = math.atan2(entry.y - center.y, entry.x - center.x)
    return _Corner(entry, exit_, Arc.circular(center, radius, start_angle, turn))


def _dedupe(points: Sequence[Vector2], tolerance: float) -> list[Vector2]:
    result: list[Vector2] = []
    for p in points:
        if not result or result[-1].distance_to(p) > tolerance:
            result.append(p)
    return result


def _start_of(prim: Line | Arc) -> Vector2:
    return prim.start_point if prim.kind is ShapeKind.ARC else prim.start


def _end_of(prim: Line | Arc) -> Vector2:
    return prim.end_point if prim.kind is ShapeKind.ARC else prim.end


def _on_arc(arc: Arc, p: Vector2, tolerance: float) -> bool:
    if arc.radius_x <= 0 or arc.radius_y <= 0:
        return arc.center.distance_to(p) <= tolerance
    angle = math.atan2((p.y - arc.center.y) / arc.radius_y, (p.x - arc.center.x) / arc.radius_x)
    if not arc.contains_angle(angle, eps=1e-9):
        return False
    return arc.point_at_angle(angle).distance_to(p) <= tolerance


def _douglas_peucker(points: list[Vector2], tolerance: float) -> list[Vector2]:
    if len(points) < 3:
        return list(points)
    keep = [False] * len(points)
    keep[0] = keep[-1] = True
    stack = [(0, len(points) - 1)]
    while stack:
        first, last = stack.pop()
        chord = Line(points[first], points[last])
        best, best_index = 0.0, -1
        for i in range(first + 1, last):
            if chord.length > 0:
                d = chord.distance_to_point(points[i])
            else:
                d = points[i].distance_to(points[first])
            if d > best:
                best, best_index = d, i
        if best_index >= 0 and best > tolerance:
            keep[best_index] = True
            stack.append((first, best_index))
            stack.append((best_index, last))
    return [p for p, k in zip(points, keep) if k]
