"""Load and save ECAD designs as JSON.

The JSON layout mirrors the dataclasses in ``models`` with snake_case keys.
Enums are written by value, points as ``[x, y]`` pairs and angles in
degrees. Shapes are tagged objects::

    {"type": "line", "start": [0, 0], "end": [10, 0]}
    {"type": "arc", "center": [0, 0], "radius": 5, "start_angle": 0, "sweep_angle": 90}
    {"type": "circle", "center": [5, 5], "radius": 1.5}
    {"type": "rect", "left_bottom": [0, 0], "width": 10, "height": 5}
    {"type": "polyline", "points": [[0, 0], [10, 0], [10, 5]], "closed": true}
    {"type": "polyline", "points": [...], "fillet": 1.0, "closed": true}
    {"type": "polyline", "segments": [<line or arc>, ...]}
"""

from __future__ import annotations

import json
import math
from dataclasses import fields
from enum import Enum
from pathlib import Path
from typing import Any

from .curves import Arc, Circle, Line, Rect, Shape, ShapeKind
from .errors import ConfigurationError, UnsupportedFeatureError
from .geometry import Vector2
from .models import (
    Board,
    Component,
    Constraint,
    ConstraintPurpose,
    ConstraintType,
    CopperArea,
    Creator,
    EcadDesign,
    Footprint,
    Hole,
    HoleType,
    Layer,
    LayerType,
    Metadata,
    Model3D,
    ModelFormat,
    Pin,
    Placement,
    SilkscreenShape,
    Side,
    Stackup,
    Trace,
)
from .polyline import Polyline

# --- Reading ---


def load_design(path: str | Path) -> EcadDesign:
    """Read a design JSON file.

    Raises:
        ConfigurationError: Malformed JSON, a missing key or an unknown key.
        UnsupportedFeatureError: An unknown enum value or shape type.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        msg = f"Invalid JSON in design file {path}: {exc}"
        raise ConfigurationError(msg) from exc
    return design_from_dict(data)


def design_from_dict(data: dict[str, Any]) -> EcadDesign:
    _expect_object(data, "design")
    return _record(EcadDesign, data, "design", {
        "metadata": _metadata,
        "board": _board,
        "layers": _each(lambda d, w: _record(Layer, d, w, {"type": _enum(LayerType)})),
        "stackups": _each(lambda d, w: _record(Stackup, d, w, {"layer_ids": _as_list})),
        "models": _each(_model),
        "footprints": _each(_footprint),
        "components": _each(_component),
        "holes": _each(_hole),
        "constraints": _each(_constraint),
        "traces": _each(lambda d, w: _record(Trace, d, w, {"geometry": shape_from_dict})),
        "copper_areas": _each(
            lambda d, w: _record(CopperArea, d, w, {"geometry": shape_from_dict})
        ),
        "silkscreen": _each(lambda d, w: _record(SilkscreenShape, d, w, {
            "side": _enum(Side),
            "geometry": shape_from_dict,
        })),
    })


def _expect_object(data: Any, where: str) -> None:
    if not isinstance(data, dict):
        msg = f"Expected a JSON object, got {type(data).__name__}"
        raise ConfigurationError(msg, reference=where)


def _record(cls: type, data: dict[str, Any], where: str, converters: dict | None = None):
    """Instantiate dataclass ``cls`` from ``data``, converting selected fields."""
    _expect_object(data, where)
    names = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - names)
    if unknown:
        msg = f"Unknown key(s): {', '.join(unknown)}"
        raise ConfigurationError(msg, reference=where)
    converters = converters or {}
    kwargs = {}
    for key, value in data.items():
        convert = converters.get(key)
        if convert is not None and value is not None:
            value = convert(value, f"{where}.{key}")
        kwargs[key] = value
    try:
        return cls(**kwargs)
    except TypeError as exc:
        msg = f"Cannot build {cls.__name__}: {exc}"
        raise ConfigurationError(msg, reference=where) from exc


def _each(convert):
    def convert_all(values: Any, where: str) -> list:
        if not isinstance(values, list):
            msg = "Expected a JSON array"
            raise ConfigurationError(msg, reference=where)
        return [convert(v, f"{where}[{i}]") for i, v in enumerate(values)]
    return convert_all


def _enum(cls: type[Enum]):
    def convert(value: Any, where: str) -> Enum:
        try:
            return cls(str(value).upper())
        except ValueError:
            allowed = ", ".join(m.value for m in cls)
            msg = f"Unknown {cls.__name__} {value!r}; expected one of {allowed}"
            raise UnsupportedFeatureError(msg, reference=where) from None
    return convert


def _as_list(value: Any, where: str) -> list:
    if not isinstance(value, list):
        msg = "Expected a JSON array"
        raise ConfigurationError(msg, reference=where)
    return list(value)


def _pair(value: Any, where: str) -> tuple[float, float]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        msg = f"Expected an [a, b] pair, got {value!r}"
        raise ConfigurationError(msg, reference=where)
    return (_number(value[0], where), _number(value[1], where))


def _number(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"Expected a number, got {value!r}"
        raise ConfigurationError(msg, reference=where)
    return float(value)


def _point(value: Any, where: str) -> Vector2:
    return Vector2(*_pair(value, where))


def _str_pair(value: Any, where: str) -> tuple[str, str]:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        msg = f"Expected a [start, end] pair, got {value!r}"
        raise ConfigurationError(msg, reference=where)
    return (str(value[0]), str(value[1]))


def _metadata(data: dict[str, Any], where: str) -> Metadata:
    return _record(Metadata, data, where, {
        "creator": lambda d, w: _record(Creator, d, w),
    })


def _board(data: dict[str, Any], where: str) -> Board:
    return _record(Board, data, where, {
        "outline": shape_from_dict,
        "cutouts": _each(shape_from_dict),
    })


def _placement(data: dict[str, Any], where: str) -> Placement:
    return _record(Placement, data, where, {
        "rotation_3d": lambda v, w: tuple(_number(x, w) for x in _as_list(v, w)),
    })


def _model(data: dict[str, Any], where: str) -> Model3D:
    return _record(Model3D, data, where, {
        "format": _enum(ModelFormat),
        "transformation": _placement,
    })


def _footprint(data: dict[str, Any], where: str) -> Footprint:
    return _record(Footprint, data, where, {
        "outline": shape_from_dict,
        "pins": _each(lambda d, w: _record(Pin, d, w, {
            "number": lambda v, _: str(v),
            "position": _point,
            "shape": shape_from_dict,
        })),
    })


def _component(data: dict[str, Any], where: str) -> Component:
    return _record(Component, data, where, {"placement": _placement})


def _hole(data: dict[str, Any], where: str) -> Hole:
    return _record(Hole, data, where, {
        "geometry": shape_from_dict,
        "type": _enum(HoleType),
        "layer_span": _str_pair,
        "z_range": _pair,
    })


def _constraint(data: dict[str, Any], where: str) -> Constraint:
    return _record(Constraint, data, where, {
        "geometry": shape_from_dict,
        "type": _enum(ConstraintType),
        "purpose": _enum(ConstraintPurpose),
        "z_range": _pair,
    })


def shape_from_dict(data: dict[str, Any], where: str = "shape") -> Shape:
    """Decode one tagged shape object."""
    _expect_object(data, where)
    kind = str(data.get("type", "")).lower()

    def need(key: str) -> Any:
        if key not in data:
            msg = f"Missing key {key!r} for {kind or 'untyped'} shape"
            raise ConfigurationError(msg, reference=where)
        return data[key]

    match kind:
        case "line":
            return Line(_point(need("start"), where), _point(need("end"), where))
        case "arc":
            rx = _number(data.get("radius_x", data.get("radius", 0.0)), where)
            ry = _number(data.get("radius_y", data.get("radius", 0.0)), where)
            return Arc(
                _point(need("center"), where),
                rx,
                ry,
                math.radians(_number(need("start_angle"), where)),
                math.radians(_number(need("sweep_angle"), where)),
            )
        case "circle":
            return Circle(_point(need("center"), where), _number(need("radius"), where))
        case "rect":
            return Rect(_point(need("left_bottom"), where), _number(need("width"), where),
                        _number(need("height"), where))
        case "polyline":
            closed = bool(data.get("closed", False))
            if "segments" in data:
                segments = [shape_from_dict(s, f"{where}.segments[{i}]")
                            for i, s in enumerate(data["segments"])]
                if any(s.kind not in (ShapeKind.LINE, ShapeKind.ARC) for s in segments):
                    msg = "Polyline segments must be lines or arcs"
                    raise ConfigurationError(msg, reference=where)
                polyline = Polyline(tuple(segments))
                return polyline.close() if closed else polyline
            points = [_point(p, where) for p in need("points")]
            if "fillet" in data:
                radius = _number(data["fillet"], where)
                return Polyline.from_points_with_fillet(points, radius, close_path=closed)
            return Polyline.from_points(points, close_path=closed)
        case _:
            msg = f"Unknown shape type {data.get('type')!r}"
            raise UnsupportedFeatureError(msg, reference=where)


# --- Writing ---


def shape_to_dict(shape: Shape) -> dict[str, Any]:
    """Encode a kernel shape as a tagged JSON object."""
    match shape.kind:
        case ShapeKind.LINE:
            return {"type": "line", "start": _xy(shape.start), "end": _xy(shape.end)}
        case ShapeKind.ARC:
            data: dict[str, Any] = {"type": "arc", "center": _xy(shape.center)}
            if shape.is_circular:
                data["radius"] = shape.radius_x
            else:
                data["radius_x"] = shape.radius_x
                data["radius_y"] = shape.radius_y
            data["start_angle"] = math.degrees(shape.start_angle)
            data["sweep_angle"] = math.degrees(shape.sweep_angle)
            return data
        case ShapeKind.CIRCLE:
            return {"type": "circle", "center": _xy(shape.center), "radius": shape.radius}
        case ShapeKind.RECT:
            return {"type": "rect", "left_bottom": _xy(shape.left_bottom),
                    "width": shape.width, "height": shape.height}
        case ShapeKind.POLYLINE:
            return {"type": "polyline",
                    "segments": [shape_to_dict(p) for p in shape.primitives]}
        case _:
            msg = f"Cannot encode shape {type(shape).__name__}"
            raise UnsupportedFeatureError(msg)


def _xy(v: Vector2) -> list[float]:
    return [v.x, v.y]


def _encode(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Vector2):
        return _xy(value)
    if isinstance(getattr(value, "kind", None), ShapeKind):
        return shape_to_dict(value)
    if hasattr(value, "__dataclass_fields__"):
        return {
            f.name: _encode(getattr(value, f.name))
            for f in fields(value)
            if getattr(value, f.name) is not None
        }
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    return value


def design_to_dict(design: EcadDesign) -> dict[str, Any]:
    return _encode(design)


def save_design(design: EcadDesign, path: str | Path) -> None:
    Path(path).write_text(json.dumps(design_to_dict(design), indent=2) + "\n",
                          encoding="utf-8")
