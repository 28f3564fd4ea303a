"""Tests for composite polylines."""

from __future__ import annotations

import math

import pytest

from pcb_idx.curves import Arc, Line, ShapeKind
from pcb_idx.errors import GeometryError
from pcb_idx.geometry import BBox2, Matrix3, Vector2
from pcb_idx.polyline import Polyline

SQUARE = [Vector2(0, 0), Vector2(10, 0), Vector2(10, 10), Vector2(0, 10)]


class TestFromPoints:
    """Straight-segment construction."""

    def test_closed_square(self):
        poly = Polyline.from_points(SQUARE, close_path=True)
        assert poly.is_closed
        assert len(poly.primitives) == 4
        assert poly.bounds() == BBox2(0, 0, 10, 10)

    def test_repeated_end_point_is_dropped(self):
        poly = Polyline.from_points([*SQUARE, Vector2(0, 0)], close_path=True)
        assert len(poly.primitives) == 4

    def test_duplicates_are_merged(self):
        poly = Polyline.from_points([Vector2(0, 0), Vector2(0, 0), Vector2(5, 0)])
        assert len(poly.primitives) == 1

    def test_single_point_raises(self):
        with pytest.raises(GeometryError):
            Polyline.from_points([Vector2(1, 1), Vector2(1, 1)])

    def test_open_polyline(self):
        poly = Polyline.from_points(SQUARE)
        assert not poly.is_closed
        assert poly.length == 30


class TestFillet:
    """Rounded-corner construction."""

    def test_square_corners_get_arcs(self):
        poly = Polyline.from_points_with_fillet(SQUARE, 1.0, close_path=True)
        arcs = [p for p in poly.primitives if p.kind is ShapeKind.ARC]
        assert len(arcs) == 4
        assert poly.is_closed
        assert poly.contains_arc
        assert poly.bounds().equals(BBox2(0, 0, 10, 10), 1e-9)

    def test_fillet_arcs_are_tangent(self):
        poly = Polyline.from_points_with_fillet(SQUARE, 2.0, close_path=True)
        for prev, nxt in zip(poly.primitives, poly.primitives[1:]):
            end = prev.end_point if prev.kind is ShapeKind.ARC else prev.end
            start = nxt.start_point if nxt.kind is ShapeKind.ARC else nxt.start
            assert end.equals(start, 1e-9)

    def test_oversize_radius_keeps_corner_sharp(self):
        poly = Polyline.from_points_with_fillet(SQUARE, 100.0, close_path=True)
        assert not poly.contains_arc
        assert len(poly.primitives) == 4

    def test_open_path_keeps_end_points(self):
        poly = Polyline.from_points_with_fillet(SQUARE[:3], 1.0)
        assert poly.start == Vector2(0, 0)
        assert poly.end == Vector2(10, 10)
        assert poly.contains_arc

    def test_too_few_points_raises(self):
        with pytest.raises(GeometryError):
            Polyline.from_points_with_fillet(SQUARE[:2], 1.0)

    def test_mixed_corners(self):
        """Corners next to the short edge stay sharp, the others are rounded."""
        l_shape = [Vector2(0, 0), Vector2(20, 0), Vector2(20, 2), Vector2(10, 2),
                   Vector2(10, 10), Vector2(0, 10)]
        poly = Polyline.from_points_with_fillet(l_shape, 1.5, close_path=True)
        line, arc = ShapeKind.LINE, ShapeKind.ARC
        assert [p.kind for p in poly.primitives] == [
            line, line, line, arc, line, arc, line, arc, line, arc,
        ]
        assert poly.is_closed
        assert poly.bounds().equals(BBox2(0, 0, 20, 10), 1e-9)

    def test_rebuild_from_vertices_keeps_bounds(self):
        rect = [Vector2(0, 0), Vector2(20, 0), Vector2(20, 10), Vector2(0, 10)]
        poly = Polyline.from_points_with_fillet(rect, 2.0, close_path=True)
        rebuilt = Polyline.from_points(poly.vertices(), close_path=True)
        assert not rebuilt.contains_arc
        assert rebuilt.is_closed
        assert rebuilt.bounds().equals(poly.bounds(), 1e-6)


class TestQueries:

    def test_vertices_repeat_start_when_closed(self):
        verts = Polyline.from_points(SQUARE, close_path=True).vertices()
        assert len(verts) == 5
        assert verts[0] == verts[-1]

    def test_vertices_discretize_arcs(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi / 2)
        verts = Polyline((arc,)).vertices(math.pi / 4)
        assert len(verts) == 3

    def test_close_appends_segment(self):
        poly = Polyline.from_points(SQUARE).close()
        assert poly.is_closed
        assert len(poly.primitives) == 4
        assert poly.close() is poly

    def test_point_at_parameter(self):
        poly = Polyline.from_points([Vector2(0, 0), Vector2(10, 0), Vector2(10, 10)])
        assert poly.point_at_parameter(0.5).equals(Vector2(10, 0))
        assert poly.point_at_parameter(0.75).equals(Vector2(10, 5))
        assert poly.point_at_parameter(2.0) == Vector2(10, 10)

    def test_contains_point(self):
        poly = Polyline.from_points(SQUARE, close_path=True)
        assert poly.contains_point(Vector2(5, 0))
        assert not poly.contains_point(Vector2(5, 5))

    def test_contains_point_on_arc(self):
        arc = Arc.circular(Vector2(0, 0), 1.0, 0.0, math.pi / 2)
        poly = Polyline((arc,))
        on = Vector2(math.cos(0.3), math.sin(0.3))
        assert poly.contains_point(on)
        assert not poly.contains_point(Vector2(-1, 0))

    def test_simplify_drops_collinear_points(self):
        pts = [Vector2(0, 0), Vector2(5, 0.001), Vector2(10, 0), Vector2(10, 10)]
        simple = Polyline.from_points(pts).simplify(0.01)
        assert len(simple.primitives) == 2

    def test_transform_and_reverse(self):
        poly = Polyline((Line(Vector2(0, 0), Vector2(1, 0)), Line(Vector2(1, 0), Vector2(1, 1))))
        moved = poly.transform(Matrix3.translate(5, 5))
        assert moved.start == Vector2(5, 5)
        rev = poly.reverse()
        assert rev.start == Vector2(1, 1)
        assert rev.end == Vector2(0, 0)
