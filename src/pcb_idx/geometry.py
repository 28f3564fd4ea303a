"""2D vectors, angles, affine matrices and bounding boxes.

Conventions:
    Angles are in radians unless a function name says otherwise.
    ``Matrix3`` acts on column vectors, so ``a.multiply(b)`` yields the
    transform that applies ``b`` first and ``a`` second.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

EPSILON = 1e-10
TWO_PI = 2.0 * math.pi


# --- Vectors ---


@dataclass(frozen=True)
class Vector2:
    x: float
    y: float

    def __add__(self, other: Vector2) -> Vector2:
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2) -> Vector2:
        return Vector2(self.x - other.x, self.y - other.y)

    def __mul__(self, other: float | Vector2) -> Vector2:
        if isinstance(other, Vector2):
            return Vector2(self.x * other.x, self.y * other.y)
        return Vector2(self.x * other, self.y * other)

    __rmul__ = __mul__

    def __truediv__(self, scalar: float) -> Vector2:
        return Vector2(self.x / scalar, self.y / scalar)

    def __neg__(self) -> Vector2:
        return Vector2(-self.x, -self.y)

    def dot(self, other: Vector2) -> float:
        return self.x * other.x + self.y * other.y

    def cross(self, other: Vector2) -> float:
        """Z component of the 3D cross product."""
        return self.x * other.y - self.y * other.x

    @property
    def length(self) -> float:
        return math.hypot(self.x, self.y)

    @property
    def length_squared(self) -> float:
        return self.x * self.x + self.y * self.y

    def normalized(self) -> Vector2:
        """Unit vector in the same direction, or the zero vector."""
        length = self.length
        if length == 0:
            return Vector2(0.0, 0.0)
        return Vector2(self.x / length, self.y / length)

    def perpendicular(self) -> Vector2:
        """Rotate 90 degrees counter-clockwise."""
        return Vector2(-self.y, self.x)

    @property
    def angle(self) -> float:
        return math.atan2(self.y, self.x)

    def distance_to(self, other: Vector2) -> float:
        return math.hypot(self.x - other.x, self.y - other.y)

    def equals(self, other: Vector2, eps: float = EPSILON) -> bool:
        return abs(self.x - other.x) <= eps and abs(self.y - other.y) <= eps

    def lerp(self, other: Vector2, t: float) -> Vector2:
        return Vector2(self.x + (other.x - self.x) * t, self.y + (other.y - self.y) * t)

    def key(self, precision: int) -> tuple[float, float]:
        """Hashable key rounded to ``precision`` decimals (``-0.0`` folded to ``0.0``)."""
        return (round(self.x, precision) + 0.0, round(self.y, precision) + 0.0)

    @staticmethod
    def from_polar(radius: float, angle: float) -> Vector2:
        return Vector2(radius * math.cos(angle), radius * math.sin(angle))


ORIGIN = Vector2(0.0, 0.0)


# --- Angles ---


def normalize_radians(angle: float) -> float:
    """Map an angle into [0, 2*pi)."""
    result = math.fmod(angle, TWO_PI)
    if result < 0:
        result += TWO_PI
    if result >= TWO_PI:
        result = 0.0
    return result


def normalize_degrees(angle: float) -> float:
    """Map an angle into [0, 360)."""
    result = math.fmod(angle, 360.0)
    if result < 0:
        result += 360.0
    return 0.0 if result >= 360.0 else result


def to_radians(degrees: float) -> float:
    return degrees * math.pi / 180.0


def to_degrees(radians: float) -> float:
    return radians * 180.0 / math.pi


def between_points(a: Vector2, b: Vector2) -> float:
    """Direction angle of the vector from ``a`` to ``b``."""
    return math.atan2(b.y - a.y, b.x - a.x)


# --- Matrices ---


@dataclass(frozen=True)
class Matrix3:
    """Row-major 3x3 affine matrix ``(a, b, tx, c, d, ty, 0, 0, 1)``.

    A point maps as ``x' = a*x + b*y + tx`` and ``y' = c*x + d*y + ty``.
    """

    cells: tuple[float, float, float, float, float, float, float, float, float]

    @staticmethod
    def identity() -> Matrix3:
        return Matrix3((1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0))

    @staticmethod
    def mirror_x() -> Matrix3:
        """Reflect across the X axis (negates Y)."""
        return Matrix3((1.0, 0.0, 0.0, 0.0, -1.0, 0.0, 0.0, 0.0, 1.0))

    @staticmethod
    def mirror_y() -> Matrix3:
        """Reflect across the Y axis (negates X)."""
        return Matrix3((-1.0, 0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0))

    @staticmethod
    def rotate(angle: float) -> Matrix3:
        """Counter-clockwise rotation about the origin."""
        c = math.cos(angle)
        s = math.sin(angle)
        return Matrix3((c, -s, 0.0, s, c, 0.0, 0.0, 0.0, 1.0))

    @staticmethod
    def rotate_degrees(angle: float) -> Matrix3:
        return Matrix3.rotate(to_radians(angle))

    @staticmethod
    def translate(tx: float, ty: float) -> Matrix3:
        return Matrix3((1.0, 0.0, tx, 0.0, 1.0, ty, 0.0, 0.0, 1.0))

    @staticmethod
    def scale(sx: float, sy: float | None = None) -> Matrix3:
        """Uniform scale, or non-uniform when ``sy`` is given."""
        if sy is None:
            sy = sx
        return Matrix3((sx, 0.0, 0.0, 0.0, sy, 0.0, 0.0, 0.0, 1.0))

    def multiply(self, other: Matrix3) -> Matrix3:
        """Return ``self * other``: applying the result applies ``other`` then ``self``."""
        a = self.cells
        b = other.cells
        out = []
        for row in range(3):
            for col in range(3):
                out.append(sum(a[row * 3 + k] * b[k * 3 + col] for k in range(3)))
        return Matrix3(tuple(out))

    def __matmul__(self, other: Matrix3) -> Matrix3:
        return self.multiply(other)

    @property
    def determinant(self) -> float:
        a, b, c, d, e, f, g, h, i = self.cells
        return a * (e * i - f * h) - b * (d * i - f * g) + c * (d * h - e * g)

    def inverse(self) -> Matrix3 | None:
        """Inverse matrix, or None when the matrix is singular."""
        det = self.determinant
        if abs(det) < EPSILON:
            return None
        a, b, c, d, e, f, g, h, i = self.cells
        adj = (
            e * i - f * h, c * h - b * i, b * f - c * e,
            f * g - d * i, a * i - c * g, c * d - a * f,
            d * h - e * g, b * g - a * h, a * e - b * d,
        )
        return Matrix3(tuple(v / det for v in adj))

    def transform_vector(self, v: Vector2) -> Vector2:
        """Apply rotation, scale, shear and translation to a point."""
        a, b, tx, c, d, ty = self.cells[:6]
        return Vector2(a * v.x + b * v.y + tx, c * v.x + d * v.y + ty)

    def transform_direction(self, v: Vector2) -> Vector2:
        """Apply only the linear part (no translation)."""
        a, b, _, c, d, _ = self.cells[:6]
        return Vector2(a * v.x + b * v.y, c * v.x + d * v.y)

    @property
    def translation(self) -> Vector2:
        return Vector2(self.cells[2], self.cells[5])

    @property
    def i_scale(self) -> float:
        """Length of the image of the unit X axis."""
        return math.hypot(self.cells[0], self.cells[3])

    @property
    def j_scale(self) -> float:
        """Length of the image of the unit Y axis."""
        return math.hypot(self.cells[1], self.cells[4])

    @property
    def is_mirrored(self) -> bool:
        return self.cells[0] * self.cells[4] - self.cells[1] * self.cells[3] < 0

    def equals(self, other: Matrix3, eps: float = EPSILON) -> bool:
        return all(abs(x - y) <= eps for x, y in zip(self.cells, other.cells))


# --- Bounding boxes ---


@dataclass(frozen=True)
class BBox2:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @staticmethod
    def empty() -> BBox2:
        return BBox2(math.inf, math.inf, -math.inf, -math.inf)

    @staticmethod
    def from_points(points) -> BBox2:
        box = BBox2.empty()
        for p in points:
            box = box.expand_to_include(p)
        return box

    @property
    def is_empty(self) -> bool:
        return self.min_x > self.max_x or self.min_y > self.max_y

    @property
    def width(self) -> float:
        return 0.0 if self.is_empty else self.max_x - self.min_x

    @property
    def height(self) -> float:
        return 0.0 if self.is_empty else self.max_y - self.min_y

    @property
    def center(self) -> Vector2:
        return Vector2((self.min_x + self.max_x) / 2.0, (self.min_y + self.max_y) / 2.0)

    @property
    def min(self) -> Vector2:
        return Vector2(self.min_x, self.min_y)

    @property
    def max(self) -> Vector2:
        return Vector2(self.max_x, self.max_y)

    def corners(self) -> list[Vector2]:
        return [
            Vector2(self.min_x, self.min_y),
            Vector2(self.max_x, self.min_y),
            Vector2(self.max_x, self.max_y),
            Vector2(self.min_x, self.max_y),
        ]

    def combine(self, other: BBox2) -> BBox2:
        return BBox2(
            min(self.min_x, other.min_x),
            min(self.min_y, other.min_y),
            max(self.max_x, other.max_x),
            max(self.max_y, other.max_y),
        )

    def expand_to_include(self, item: Vector2 | BBox2) -> BBox2:
        if isinstance(item, BBox2):
            return self.combine(item)
        return BBox2(
            min(self.min_x, item.x),
            min(self.min_y, item.y),
            max(self.max_x, item.x),
            max(self.max_y, item.y),
        )

    def contains_point(self, p: Vector2, eps: float = 0.0) -> bool:
        return (
            self.min_x - eps <= p.x <= self.max_x + eps
            and self.min_y - eps <= p.y <= self.max_y + eps
        )

    def contains(self, other: BBox2) -> bool:
        if other.is_empty:
            return True
        return (
            self.min_x <= other.min_x
            and self.min_y <= other.min_y
            and self.max_x >= other.max_x
            and self.max_y >= other.max_y
        )

    def intersects(self, other: BBox2) -> bool:
        if self.is_empty or other.is_empty:
            return False
        return not (
            other.min_x > self.max_x
            or other.max_x < self.min_x
            or other.min_y > self.max_y
            or other.max_y < self.min_y
        )

    def transform(self, matrix: Matrix3) -> BBox2:
        """Map the four corners and refit.

        The result is axis-aligned and therefore not tight under rotation.
        """
        if self.is_empty:
            return self
        return BBox2.from_points(matrix.transform_vector(c) for c in self.corners())

    def equals(self, other: BBox2, eps: float = EPSILON) -> bool:
        return (
            abs(self.min_x - other.min_x) <= eps
            and abs(self.min_y - other.min_y) <= eps
            and abs(self.max_x - other.max_x) <= eps
            and abs(self.max_y - other.max_y) <= eps
        )
