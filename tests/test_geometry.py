"""Tests for vectors, matrices and bounding boxes."""

from __future__ import annotations

import math

import pytest

from pcb_idx.geometry import (
    BBox2,
    Matrix3,
    Vector2,
    normalize_degrees,
    normalize_radians,
)


class TestVector2:
    """Vector arithmetic and helpers."""

    def test_arithmetic(self):
        a = Vector2(1, 2)
        b = Vector2(3, -1)
        assert a + b == Vector2(4, 1)
        assert a - b == Vector2(-2, 3)
        assert a * 2 == Vector2(2, 4)
        assert 2 * a == Vector2(2, 4)
        assert -a == Vector2(-1, -2)
        assert a.dot(b) == 1
        assert a.cross(b) == -7

    def test_normalized_zero_vector(self):
        assert Vector2(0, 0).normalized() == Vector2(0, 0)

    def test_normalized_unit_length(self):
        assert Vector2(3, 4).normalized().length == pytest.approx(1.0)

    def test_perpendicular_is_ccw(self):
        assert Vector2(1, 0).perpendicular() == Vector2(0, 1)

    def test_key_folds_negative_zero(self):
        assert Vector2(-0.0001, 1.23456).key(3) == (0.0, 1.235)
        assert str(Vector2(-0.0001, 0).key(3)[0]) == "0.0"

    def test_from_polar(self):
        v = Vector2.from_polar(2.0, math.pi / 2)
        assert v.equals(Vector2(0, 2))


class TestAngles:
    """Angle normalization."""

    def test_normalize_radians(self):
        assert normalize_radians(-math.pi / 2) == pytest.approx(3 * math.pi / 2)
        assert normalize_radians(2 * math.pi) == 0.0

    def test_normalize_degrees(self):
        assert normalize_degrees(-90) == 270
        assert normalize_degrees(720) == 0


class TestMatrix3:
    """Affine matrix composition and inversion."""

    def test_rotations_compose(self):
        combined = Matrix3.rotate(0.3) @ Matrix3.rotate(0.4)
        assert combined.equals(Matrix3.rotate(0.7), 1e-10)

    @pytest.mark.parametrize("tx, ty, angle, sx, sy", [
        (5, -2, 1.1, 2, 3),
        (0, 0, 0.0, 1, 1),
        (-40, 12.5, math.pi, 0.5, 0.5),
        (3, 7, -0.7, -1, 1),
        (100, 0, 2.5, 10, 0.1),
    ])
    def test_inverse_round_trip(self, tx, ty, angle, sx, sy):
        m = Matrix3.translate(tx, ty) @ Matrix3.rotate(angle) @ Matrix3.scale(sx, sy)
        inv = m.inverse()
        assert inv is not None
        assert (m @ inv).equals(Matrix3.identity(), 1e-9)
        assert (inv @ m).equals(Matrix3.identity(), 1e-9)

    def test_singular_has_no_inverse(self):
        assert Matrix3.scale(1, 0).inverse() is None

    def test_multiply_applies_right_operand_first(self):
        m = Matrix3.translate(10, 0) @ Matrix3.rotate_degrees(90)
        p = m.transform_vector(Vector2(1, 0))
        assert p.equals(Vector2(10, 1), 1e-12)

    def test_mirrors(self):
        assert Matrix3.mirror_x().transform_vector(Vector2(1, 2)) == Vector2(1, -2)
        assert Matrix3.mirror_y().transform_vector(Vector2(1, 2)) == Vector2(-1, 2)
        assert Matrix3.mirror_y().is_mirrored
        assert not Matrix3.rotate(2.0).is_mirrored

    def test_transform_direction_ignores_translation(self):
        m = Matrix3.translate(7, 7)
        assert m.transform_direction(Vector2(1, 0)) == Vector2(1, 0)

    def test_scale_factors(self):
        m = Matrix3.rotate(0.5) @ Matrix3.scale(2, 3)
        assert m.i_scale == pytest.approx(2.0)
        assert m.j_scale == pytest.approx(3.0)


class TestBBox2:
    """Bounding box construction and queries."""

    def test_empty(self):
        box = BBox2.empty()
        assert box.is_empty
        assert box.width == 0.0

    def test_from_points(self):
        box = BBox2.from_points([Vector2(1, 5), Vector2(-2, 3), Vector2(4, 0)])
        assert box == BBox2(-2, 0, 4, 5)
        assert box.width == 6
        assert box.height == 5
        assert box.center == Vector2(1, 2.5)

    def test_contains_and_intersects(self):
        outer = BBox2(0, 0, 10, 10)
        inner = BBox2(2, 2, 3, 3)
        apart = BBox2(20, 20, 30, 30)
        assert outer.contains(inner)
        assert not inner.contains(outer)
        assert outer.intersects(inner)
        assert not outer.intersects(apart)
        assert outer.contains_point(Vector2(10, 10))
        assert not outer.contains_point(Vector2(10.1, 0))

    def test_rotated_box_is_not_tight(self):
        box = BBox2(-1, -1, 1, 1).transform(Matrix3.rotate_degrees(45))
        assert box.width == pytest.approx(2 * math.sqrt(2))

    def test_transform_empty_stays_empty(self):
        assert BBox2.empty().transform(Matrix3.translate(1, 1)).is_empty
