"""Tests for loading and saving designs as JSON."""

from __future__ import annotations

import json
import math

import pytest

from conftest import full_design
from pcb_idx.curves import Arc, Circle, Line, Rect, ShapeKind
from pcb_idx.design_reader import (
    design_from_dict,
    design_to_dict,
    load_design,
    save_design,
    shape_from_dict,
    shape_to_dict,
)
from pcb_idx.errors import ConfigurationError, UnsupportedFeatureError
from pcb_idx.exporter import IdxExporter
from pcb_idx.geometry import Vector2
from pcb_idx.models import HoleType, LayerType

_MINIMAL = {
    "metadata": {"design_name": "Tiny"},
    "board": {
        "name": "Tiny",
        "thickness": 1.6,
        "outline": {"type": "rect", "left_bottom": [0, 0], "width": 20, "height": 10},
    },
}


class TestRoundTrip:
    """Saving and reloading produces the same export."""

    def test_save_and_load(self, design, tmp_path):
        path = tmp_path / "design.json"
        save_design(design, path)
        loaded = load_design(path)
        exporter = IdxExporter()
        assert exporter.export_string(loaded) == exporter.export_string(full_design())

    def test_enums_written_by_value(self, design):
        data = design_to_dict(design)
        assert data["layers"][0]["type"] == "SIGNAL"
        assert data["holes"][0]["type"] == "VIA"

    def test_none_fields_omitted(self, design):
        data = design_to_dict(design)
        assert "model3d_id" not in data["components"][0]
        assert "material" not in data["layers"][2]

    def test_file_is_json(self, design, tmp_path):
        path = tmp_path / "design.json"
        save_design(design, path)
        assert json.loads(path.read_text(encoding="utf-8"))["metadata"]["design_name"] == "Demo"


class TestShapeFromDict:

    def test_line(self):
        shape = shape_from_dict({"type": "line", "start": [0, 0], "end": [10, 0]})
        assert shape == Line(Vector2(0, 0), Vector2(10, 0))

    def test_arc_angles_in_degrees(self):
        arc = shape_from_dict({"type": "arc", "center": [0, 0], "radius": 5,
                               "start_angle": 90, "sweep_angle": -180})
        assert isinstance(arc, Arc)
        assert arc.start_angle == pytest.approx(math.pi / 2)
        assert arc.sweep_angle == pytest.approx(-math.pi)
        assert arc.radius_x == arc.radius_y == 5

    def test_elliptical_arc(self):
        arc = shape_from_dict({"type": "arc", "center": [0, 0], "radius_x": 4,
                               "radius_y": 2, "start_angle": 0, "sweep_angle": 90})
        assert (arc.radius_x, arc.radius_y) == (4, 2)

    def test_circle_and_rect(self):
        assert shape_from_dict({"type": "circle", "center": [5, 5], "radius": 1.5}) \
            == Circle(Vector2(5, 5), 1.5)
        rect = shape_from_dict({"type": "RECT", "left_bottom": [1, 2], "width": 3,
                                "height": 4})
        assert isinstance(rect, Rect)
        assert rect.width == 3

    def test_polyline_points(self):
        shape = shape_from_dict({"type": "polyline", "points": [[0, 0], [10, 0], [10, 5]],
                                 "closed": True})
        assert shape.kind is ShapeKind.POLYLINE
        assert shape.is_closed
        assert len(shape.primitives) == 3

    def test_polyline_fillet(self):
        shape = shape_from_dict({"type": "polyline", "fillet": 1.0, "closed": True,
                                 "points": [[0, 0], [10, 0], [10, 10], [0, 10]]})
        assert shape.contains_arc

    def test_polyline_segments(self):
        shape = shape_from_dict({"type": "polyline", "segments": [
            {"type": "line", "start": [0, 0], "end": [10, 0]},
            {"type": "arc", "center": [10, 5], "radius": 5, "start_angle": -90,
             "sweep_angle": 180},
        ]})
        assert [p.kind for p in shape.primitives] == [ShapeKind.LINE, ShapeKind.ARC]
        assert not shape.is_closed

    def test_shape_to_dict_round_trip(self):
        arc = Arc(Vector2(1, 1), 3, 2, 0.5, 1.0)
        again = shape_from_dict(shape_to_dict(arc))
        assert again.center == arc.center
        assert again.sweep_angle == pytest.approx(arc.sweep_angle)
        assert shape_to_dict(arc)["radius_y"] == 2

    def test_unknown_type(self):
        with pytest.raises(UnsupportedFeatureError, match="spline"):
            shape_from_dict({"type": "spline"})

    def test_missing_key(self):
        with pytest.raises(ConfigurationError, match="Missing key 'radius'"):
            shape_from_dict({"type": "circle", "center": [0, 0]})

    def test_bad_point(self):
        with pytest.raises(ConfigurationError, match="pair"):
            shape_from_dict({"type": "line", "start": [0], "end": [1, 1]})

    def test_non_numeric_coordinate(self):
        with pytest.raises(ConfigurationError, match="Expected a number") as info:
            shape_from_dict({"type": "circle", "center": ["a", 0], "radius": 1})
        assert info.value.reference == "shape"

    def test_non_numeric_radius(self):
        with pytest.raises(ConfigurationError, match="Expected a number"):
            shape_from_dict({"type": "circle", "center": [0, 0], "radius": "1.5"})

    def test_segments_must_be_curves(self):
        with pytest.raises(ConfigurationError, match="lines or arcs"):
            shape_from_dict({"type": "polyline", "segments": [
                {"type": "circle", "center": [0, 0], "radius": 1},
            ]})


class TestDesignFromDict:
    """Decoding whole designs and reporting bad input."""

    def test_minimal(self):
        design = design_from_dict(_MINIMAL)
        assert design.metadata.design_name == "Tiny"
        assert isinstance(design.board.outline, Rect)
        assert design.layers == []

    def test_enums_are_case_insensitive(self):
        data = dict(_MINIMAL, layers=[
            {"id": "L1", "name": "Top", "type": "signal", "thickness": 0.035},
        ], holes=[
            {"name": "H1", "type": "npth", "z_range": [0, 1.6],
             "geometry": {"type": "circle", "center": [5, 5], "radius": 1}},
        ])
        design = design_from_dict(data)
        assert design.layers[0].type is LayerType.SIGNAL
        assert design.holes[0].type is HoleType.NPTH
        assert design.holes[0].z_range == (0.0, 1.6)

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError, match="Unknown key\\(s\\): bogus") as info:
            design_from_dict(dict(_MINIMAL, bogus=1))
        assert info.value.reference == "design"

    def test_bad_enum(self):
        data = dict(_MINIMAL, layers=[
            {"id": "L1", "name": "Top", "type": "copper", "thickness": 0.035},
        ])
        with pytest.raises(UnsupportedFeatureError, match="Unknown LayerType") as info:
            design_from_dict(data)
        assert info.value.reference == "design.layers[0].type"

    def test_missing_required_field(self):
        with pytest.raises(ConfigurationError, match="Cannot build EcadDesign"):
            design_from_dict({"metadata": {"design_name": "x"}})

    def test_not_an_object(self):
        with pytest.raises(ConfigurationError, match="Expected a JSON object"):
            design_from_dict([])

    def test_invalid_json_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            load_design(path)
