"""Leaf curve primitives: lines, elliptical arcs, circles and rectangles.

Every primitive is an immutable dataclass with a ``kind`` discriminator.
``Shape`` is the union of all drawable primitives including ``Polyline``;
``transform_shape`` and ``shape_bounds`` dispatch on ``kind`` exhaustively.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, TypeAlias

from .errors import GeometryError
from .geometry import (
    EPSILON,
    TWO_PI,
    BBox2,
    Matrix3,
    Vector2,
    normalize_radians,
)

if TYPE_CHECKING:
    from .polyline import Polyline


class ShapeKind(Enum):
    LINE = "line"
    ARC = "arc"
    CIRCLE = "circle"
    RECT = "rect"
    POLYLINE = "polyline"


Shape: TypeAlias = "Line | Arc | Circle | Rect | Polyline"


# --- Line ---


@dataclass(frozen=True)
class Line:
    start: Vector2
    end: Vector2

    kind: ClassVar[ShapeKind] = ShapeKind.LINE

    @property
    def length(self) -> float:
        return self.start.distance_to(self.end)

    @property
    def direction(self) -> Vector2:
        """Unit direction from start to end (zero vector if degenerate)."""
        return (self.end - self.start).normalized()

    @property
    def midpoint(self) -> Vector2:
        return self.start.lerp(self.end, 0.5)

    def point_at(self, t: float) -> Vector2:
        return self.start.lerp(self.end, t)

    def distance_to_point(self, p: Vector2) -> float:
        """Distance from ``p`` to the infinite line through start and end."""
        d = self.end - self.start
        length = d.length
        if length == 0:
            return self.start.distance_to(p)
        return abs(d.cross(p - self.start)) / length

    def closest_point(self, p: Vector2) -> Vector2:
        """Closest point on the segment (parameter clamped to [0, 1])."""
        d = self.end - self.start
        denom = d.length_squared
        if denom == 0:
            return self.start
        t = max(0.0, min(1.0, (p - self.start).dot(d) / denom))
        return self.point_at(t)

    def bounds(self) -> BBox2:
        return BBox2.from_points((self.start, self.end))

    def transform(self, matrix: Matrix3) -> Line:
        return Line(matrix.transform_vector(self.start), matrix.transform_vector(self.end))

    def reverse(self) -> Line:
        return Line(self.end, self.start)


# --- Arc ---


@dataclass(frozen=True)
class Arc:
    """Elliptical arc. ``start_angle`` is normalized to [0, 2*pi).

    A positive ``sweep_angle`` runs counter-clockwise.
    """

    center: Vector2
    radius_x: float
    radius_y: float
    start_angle: float
    sweep_angle: float

    kind: ClassVar[ShapeKind] = ShapeKind.ARC

    def __post_init__(self) -> None:
        object.__setattr__(self, "start_angle", normalize_radians(self.start_angle))

    @staticmethod
    def circular(center: Vector2, radius: float, start_angle: float, sweep_angle: float) -> Arc:
        return Arc(center, radius, radius, start_angle, sweep_angle)

    @property
    def end_angle(self) -> float:
        return normalize_radians(self.start_angle + self.sweep_angle)

    def point_at_angle(self, angle: float) -> Vector2:
        return Vector2(
            self.center.x + math.cos(angle) * self.radius_x,
            self.center.y + math.sin(angle) * self.radius_y,
        )

    @property
    def start_point(self) -> Vector2:
        return self.point_at_angle(self.start_angle)

    @property
    def end_point(self) -> Vector2:
        return self.point_at_angle(self.start_angle + self.sweep_angle)

    @property
    def mid_point(self) -> Vector2:
        return self.point_at_angle(self.start_angle + self.sweep_angle / 2.0)

    @property
    def is_counter_clockwise(self) -> bool:
        return self.sweep_angle > 0

    @property
    def is_circular(self) -> bool:
        return abs(self.radius_x - self.radius_y) < EPSILON

    @property
    def is_full_circle(self) -> bool:
        return self.is_circular and abs(abs(self.sweep_angle) - TWO_PI) < EPSILON

    def to_circle(self) -> Circle | None:
        """Circle equivalent of a full circular arc, otherwise None."""
        if not self.is_full_circle:
            return None
        return Circle(self.center, self.radius_x)

    @property
    def length(self) -> float:
        """Arc length; exact for circles, Ramanujan's approximation for ellipses."""
        sweep = abs(self.sweep_angle)
        if self.is_circular:
            return self.radius_x * sweep
        a, b = self.radius_x, self.radius_y
        h = ((a - b) / (a + b)) ** 2
        perimeter = math.pi * (a + b) * (1 + 3 * h / (10 + math.sqrt(4 - 3 * h)))
        return perimeter * sweep / TWO_PI

    def contains_angle(self, angle: float, eps: float = EPSILON) -> bool:
        if abs(self.sweep_angle) >= TWO_PI - eps:
            return True
        if self.sweep_angle >= 0:
            offset = normalize_radians(angle - self.start_angle)
        else:
            offset = normalize_radians(self.start_angle - angle)
        span = abs(self.sweep_angle)
        # Accept angles just before the start as well.
        return offset <= span + eps or offset >= TWO_PI - eps

    def split(self, angle: float) -> tuple[Arc, Arc]:
        """Split at an absolute angle strictly inside the arc."""
        if not self.contains_angle(angle):
            msg = f"Split angle {angle:.6f} is not within the arc"
            raise GeometryError(msg)
        if self.sweep_angle >= 0:
            first = normalize_radians(angle - self.start_angle)
        else:
            first = -normalize_radians(self.start_angle - angle)
        if abs(first) < EPSILON or abs(first) > abs(self.sweep_angle) - EPSILON:
            msg = f"Split angle {angle:.6f} coincides with an arc end"
            raise GeometryError(msg)
        return (
            Arc(self.center, self.radius_x, self.radius_y, self.start_angle, first),
            Arc(self.center, self.radius_x, self.radius_y, angle, self.sweep_angle - first),
        )

    def split_at_parameter(self, t: float) -> tuple[Arc, Arc]:
        if not 0.0 < t < 1.0:
            msg = f"Split parameter must be in (0, 1), got {t}"
            raise GeometryError(msg)
        first = self.sweep_angle * t
        return (
            Arc(self.center, self.radius_x, self.radius_y, self.start_angle, first),
            Arc(
                self.center,
                self.radius_x,
                self.radius_y,
                self.start_angle + first,
                self.sweep_angle - first,
            ),
        )

    def offset(self, distance: float) -> Arc:
        """Concentric arc with both radii grown by ``distance``."""
        rx = self.radius_x + distance
        ry = self.radius_y + distance
        if rx <= 0 or ry <= 0:
            msg = f"Offset {distance} collapses arc radius to {min(rx, ry)}"
            raise GeometryError(msg)
        return Arc(self.center, rx, ry, self.start_angle, self.sweep_angle)

    @property
    def sagitta(self) -> float:
        """Height of the arc above its chord."""
        if self.is_circular:
            return self.radius_x * (1 - math.cos(abs(self.sweep_angle) / 2.0))
        chord_mid = self.start_point.lerp(self.end_point, 0.5)
        return self.mid_point.distance_to(chord_mid)

    def intersect_line(self, line: Line) -> list[Vector2]:
        """Intersections of the segment ``line`` with this arc.

        The problem is scaled so the ellipse becomes the unit circle, where
        it reduces to a quadratic in the segment parameter.
        """
        if self.radius_x <= 0 or self.radius_y <= 0:
            return []
        p = Vector2(
            (line.start.x - self.center.x) / self.radius_x,
            (line.start.y - self.center.y) / self.radius_y,
        )
        d = Vector2(
            (line.end.x - line.start.x) / self.radius_x,
            (line.end.y - line.start.y) / self.radius_y,
        )
        a = d.dot(d)
        if a < EPSILON:
            return []
        b = 2.0 * p.dot(d)
        c = p.dot(p) - 1.0
        disc = b * b - 4 * a * c
        if disc < -EPSILON:
            return []
        if abs(disc) <= EPSILON:
            roots = [-b / (2 * a)]
        else:
            sq = math.sqrt(disc)
            roots = [(-b - sq) / (2 * a), (-b + sq) / (2 * a)]

        hits: list[Vector2] = []
        for t in roots:
            if -EPSILON <= t <= 1 + EPSILON:
                angle = math.atan2(p.y + t * d.y, p.x + t * d.x)
                if self.contains_angle(angle):
                    hits.append(line.point_at(t))
        return hits

    def discretize(self, max_angle_step: float = math.pi / 12) -> list[Vector2]:
        """Points along the arc, both ends included."""
        if max_angle_step <= 0:
            msg = f"Angle step must be positive, got {max_angle_step}"
            raise GeometryError(msg)
        steps = max(1, math.ceil(abs(self.sweep_angle) / max_angle_step))
        return [
            self.point_at_angle(self.start_angle + self.sweep_angle * i / steps)
            for i in range(steps + 1)
        ]

    def bounds(self) -> BBox2:
        points = [self.start_point, self.end_point]
        for angle in (0.0, math.pi / 2, math.pi, 3 * math.pi / 2):
            if self.contains_angle(angle):
                points.append(self.point_at_angle(angle))
        return BBox2.from_points(points)

    def transform(self, matrix: Matrix3) -> Arc:
        """Approximate image of the arc under ``matrix``.

        The radii are scaled by the matrix's axis scale factors and the start
        angle is re-derived from the transformed start point. Shear or a
        rotation combined with non-uniform scale yields an approximation, not
        the exact conic.
        """
        center = matrix.transform_vector(self.center)
        rx = self.radius_x * matrix.i_scale
        ry = self.radius_y * matrix.j_scale
        v = matrix.transform_vector(self.start_point) - center
        start = math.atan2(v.y / ry, v.x / rx) if rx > 0 and ry > 0 else 0.0
        sweep = -self.sweep_angle if matrix.is_mirrored else self.sweep_angle
        return Arc(center, rx, ry, start, sweep)

    def reverse(self) -> Arc:
        return Arc(
            self.center,
            self.radius_x,
            self.radius_y,
            self.start_angle + self.sweep_angle,
            -self.sweep_angle,
        )

    def equals(self, other: Arc, eps: float = EPSILON) -> bool:
        return (
            self.center.equals(other.center, eps)
            and abs(self.radius_x - other.radius_x) <= eps
            and abs(self.radius_y - other.radius_y) <= eps
            and abs(self.start_angle - other.start_angle) <= eps
            and abs(self.sweep_angle - other.sweep_angle) <= eps
        )


# --- Closed leaf shapes ---


@dataclass(frozen=True)
class Circle:
    center: Vector2
    radius: float

    kind: ClassVar[ShapeKind] = ShapeKind.CIRCLE

    def __post_init__(self) -> None:
        object.__setattr__(self, "radius", abs(self.radius))

    @property
    def diameter(self) -> float:
        return 2.0 * self.radius

    @property
    def area(self) -> float:
        return math.pi * self.radius * self.radius

    @property
    def circumference(self) -> float:
        return TWO_PI * self.radius

    def point_at_angle(self, angle: float) -> Vector2:
        return self.center + Vector2.from_polar(self.radius, angle)

    def contains_point(self, p: Vector2, eps: float = EPSILON) -> bool:
        return self.center.distance_to(p) <= self.radius + eps

    def bounds(self) -> BBox2:
        r = self.radius
        return BBox2(self.center.x - r, self.center.y - r, self.center.x + r, self.center.y + r)

    def transform(self, matrix: Matrix3) -> Circle:
        """Image circle; the radius uses the mean of the axis scale factors."""
        scale = (matrix.i_scale + matrix.j_scale) / 2.0
        return Circle(matrix.transform_vector(self.center), self.radius * scale)

    def to_arc(self) -> Arc:
        return Arc.circular(self.center, self.radius, 0.0, TWO_PI)


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle anchored at its lower-left corner."""

    left_bottom: Vector2
    width: float
    height: float

    kind: ClassVar[ShapeKind] = ShapeKind.RECT

    def __post_init__(self) -> None:
        x, y = self.left_bottom.x, self.left_bottom.y
        if self.width < 0:
            x += self.width
            object.__setattr__(self, "width", -self.width)
        if self.height < 0:
            y += self.height
            object.__setattr__(self, "height", -self.height)
        object.__setattr__(self, "left_bottom", Vector2(x, y))

    @staticmethod
    def from_center(center: Vector2, width: float, height: float) -> Rect:
        return Rect(Vector2(center.x - width / 2.0, center.y - height / 2.0), width, height)

    @staticmethod
    def from_two_points(a: Vector2, b: Vector2) -> Rect:
        return Rect(Vector2(min(a.x, b.x), min(a.y, b.y)), abs(b.x - a.x), abs(b.y - a.y))

    @property
    def right_top(self) -> Vector2:
        return Vector2(self.left_bottom.x + self.width, self.left_bottom.y + self.height)

    @property
    def center(self) -> Vector2:
        return self.left_bottom.lerp(self.right_top, 0.5)

    @property
    def area(self) -> float:
        return self.width * self.height

    def corners(self) -> list[Vector2]:
        """Corners counter-clockwise from the lower-left."""
        lb, rt = self.left_bottom, self.right_top
        return [lb, Vector2(rt.x, lb.y), rt, Vector2(lb.x, rt.y)]

    def contains_point(self, p: Vector2, eps: float = EPSILON) -> bool:
        return self.bounds().contains_point(p, eps)

    def bounds(self) -> BBox2:
        rt = self.right_top
        return BBox2(self.left_bottom.x, self.left_bottom.y, rt.x, rt.y)

    def transform(self, matrix: Matrix3) -> Rect:
        """Axis-aligned refit of the transformed corners."""
        box = self.bounds().transform(matrix)
        return Rect(box.min, box.width, box.height)

    def to_polyline(self) -> Polyline:
        from .polyline import Polyline

        return Polyline.from_points(self.corners(), close_path=True)


# --- Dispatch ---


def transform_shape(shape: Shape, matrix: Matrix3) -> Shape:
    match getattr(shape, "kind", None):
        case (
            ShapeKind.LINE | ShapeKind.ARC | ShapeKind.CIRCLE | ShapeKind.RECT | ShapeKind.POLYLINE
        ):
            return shape.transform(matrix)
        case _:
            msg = f"Unknown shape type: {type(shape)}"
            raise TypeError(msg)


def shape_bounds(shape: Shape) -> BBox2:
    match getattr(shape, "kind", None):
        case (
            ShapeKind.LINE | ShapeKind.ARC | ShapeKind.CIRCLE | ShapeKind.RECT | ShapeKind.POLYLINE
        ):
            return shape.bounds()
        case _:
            msg = f"Unknown shape type: {type(shape)}"
            raise TypeError(msg)
