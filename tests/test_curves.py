"""Tests for lines, arcs, circles and rectangles."""

from __future__ import annotations

import math

import pytest

from pcb_idx.curves import Arc, Circle, Line, Rect, shape_bounds, transform_shape
from pcb_idx.errors import GeometryError
from pcb_idx.geometry import Matrix3, Vector2


class TestLine:

    def test_length_and_midpoint(self):
        line = Line(Vector2(0, 0), Vector2(3, 4))
        assert line.length == 5
        assert line.midpoint == Vector2(1.5, 2)

    def test_distance_uses_infinite_line(self):
        line = Line(Vector2(0, 0), Vector2(1, 0))
        assert line.distance_to_point(Vector2(5, 2)) == pytest.approx(2.0)

    def test_closest_point_is_clamped(self):
        line = Line(Vector2(0, 0), Vector2(1, 0))
        assert line.closest_point(Vector2(5, 2)) == Vector2(1, 0)


class TestArc:
    """Elliptical arc behavior."""

    def test_start_angle_normalized(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, -math.pi / 2, math.pi)
        assert arc.start_angle == pytest.approx(3 * math.pi / 2)

    def test_end_and_mid_points(self):
        arc = Arc.circular(Vector2(0, 0), 2.0, 0.0, math.pi / 2)
        assert arc.end_point.equals(Vector2(0, 2), 1e-12)
        assert arc.mid_point.equals(Vector2(math.sqrt(2), math.sqrt(2)), 1e-12)

    def test_full_circle_converts(self):
        arc = Arc.circular(Vector2(1, 1), 3.0, 0.5, 2 * math.pi)
        assert arc.is_full_circle
        assert arc.to_circle() == Circle(Vector2(1, 1), 3.0)

    def test_partial_arc_does_not_convert(self):
        arc = Arc.circular(Vector2(1, 1), 3.0, 0.0, 2 * math.pi - 0.01)
        assert arc.to_circle() is None

    def test_elliptical_full_sweep_is_not_a_circle(self):
        arc = Arc(Vector2(0, 0), 2.0, 1.0, 0.0, 2 * math.pi)
        assert not arc.is_full_circle

    def test_length(self):
        arc = Arc.circular(Vector2(0, 0), 2.0, 0.0, math.pi)
        assert arc.length == pytest.approx(2 * math.pi)

    def test_split(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi)
        first, second = arc.split(math.pi / 4)
        assert first.sweep_angle == pytest.approx(math.pi / 4)
        assert second.sweep_angle == pytest.approx(3 * math.pi / 4)
        assert second.start_point.equals(first.end_point, 1e-12)

    def test_split_outside_arc_raises(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi / 2)
        with pytest.raises(GeometryError):
            arc.split(math.pi)

    def test_split_at_endpoint_raises(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi / 2)
        with pytest.raises(GeometryError):
            arc.split(0.0)

    def test_split_at_parameter_range(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi)
        with pytest.raises(GeometryError):
            arc.split_at_parameter(1.0)

    def test_offset_collapse_raises(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi)
        assert arc.offset(0.5).radius_x == 1.5
        with pytest.raises(GeometryError):
            arc.offset(-1.0)

    def test_reverse(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi / 2)
        rev = arc.reverse()
        assert rev.start_point.equals(arc.end_point, 1e-12)
        assert rev.end_point.equals(arc.start_point, 1e-12)

    def test_discretize_includes_both_ends(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi / 2)
        pts = arc.discretize(math.pi / 8)
        assert len(pts) == 5
        assert pts[0].equals(arc.start_point)
        assert pts[-1].equals(arc.end_point, 1e-12)

    def test_discretize_bad_step_raises(self):
        with pytest.raises(GeometryError):
            Arc.circular(Vector2(0, 0), 1.0, 0.0, 1.0).discretize(0)

    def test_bounds_include_extreme_points(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, math.pi / 4, math.pi / 2)
        box = arc.bounds()
        assert box.max_y == pytest.approx(1.0)
        assert box.min_y == pytest.approx(math.sqrt(2) / 2)

    def test_intersect_line(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi)
        hits = arc.intersect_line(Line(Vector2(-2, 0.5), Vector2(2, 0.5)))
        assert len(hits) == 2

    def test_sagitta(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi)
        assert arc.sagitta == pytest.approx(1.0)

    def test_mirror_transform_flips_sweep(self):
        arc = Arc.circular(Vector2(1, 0), 1.0, 0.0, math.pi / 2)
        mirrored = arc.transform(Matrix3.mirror_y())
        assert mirrored.sweep_angle == pytest.approx(-math.pi / 2)
        assert mirrored.start_point.equals(Vector2(-2, 0), 1e-9)


class TestClosedShapes:

    def test_circle_radius_is_absolute(self):
        circle = Circle(Vector2(0, 0), -2.0)
        assert circle.radius == 2.0
        assert circle.diameter == 4.0

    def test_rect_normalizes_negative_size(self):
        rect = Rect(Vector2(10, 10), -4, -2)
        assert rect.left_bottom == Vector2(6, 8)
        assert rect.width == 4
        assert rect.height == 2

    def test_rect_to_polyline_is_closed(self):
        poly = Rect(Vector2(0, 0), 4, 2).to_polyline()
        assert poly.is_closed
        assert len(poly.primitives) == 4

    def test_dispatch(self):
        rect = Rect(Vector2(0, 0), 4, 2)
        moved = transform_shape(rect, Matrix3.translate(1, 1))
        assert shape_bounds(moved).min == Vector2(1, 1)

    def test_dispatch_rejects_unknown(self):
        with pytest.raises(TypeError):
            shape_bounds("not a shape")
