"""Data classes for the ECAD design model and DXF import intermediates.

The design model is the read-only input of the builder. Geometry fields
hold kernel shapes (``Line``, ``Arc``, ``Circle``, ``Rect``, ``Polyline``)
in design units.
"""

from __future__ import annotations

from typing import TypeAlias

from dataclasses import dataclass, field
from enum import Enum

from .curves import Shape
from .geometry import Vector2
from .polyline import Polyline

PropertyValue: TypeAlias = "str | float | int | bool"


class LayerType(Enum):
    SIGNAL = "SIGNAL"
    POWER_GROUND = "POWER_GROUND"
    DIELECTRIC = "DIELECTRIC"
    SOLDERMASK = "SOLDERMASK"
    SILKSCREEN = "SILKSCREEN"
    SOLDERPASTE = "SOLDERPASTE"
    PASTEMASK = "PASTEMASK"
    GLUE = "GLUE"
    GLUEMASK = "GLUEMASK"
    EMBEDDED_CAP_DIELECTRIC = "EMBEDDED_CAP_DIELECTRIC"
    EMBEDDED_RESISTOR = "EMBEDDED_RESISTOR"
    GENERIC = "GENERIC"
    OTHER = "OTHER"


class ModelFormat(Enum):
    STEP = "STEP"
    STL = "STL"
    IGES = "IGES"
    PARASOLID = "PARASOLID"
    SOLIDWORKS = "SOLIDWORKS"
    NX = "NX"
    CATIA = "CATIA"


class HoleType(Enum):
    PTH = "PTH"
    NPTH = "NPTH"
    VIA = "VIA"
    FILLED_VIA = "FILLED_VIA"


class ConstraintType(Enum):
    KEEPOUT = "KEEPOUT"
    KEEPIN = "KEEPIN"


class ConstraintPurpose(Enum):
    ROUTE = "ROUTE"
    COMPONENT = "COMPONENT"
    VIA = "VIA"
    TESTPOINT = "TESTPOINT"
    THERMAL = "THERMAL"
    OTHER = "OTHER"


class Side(Enum):
    TOP = "TOP"
    BOTTOM = "BOTTOM"


# --- Board structure ---


@dataclass
class Layer:
    id: str
    name: str
    type: LayerType
    thickness: float
    material: str | None = None
    color: str | None = None


@dataclass
class Stackup:
    """Layers listed bottom-up; Z accumulates from 0 in this order."""
    id: str
    name: str
    layer_ids: list[str] = field(default_factory=list)


@dataclass
class Board:
    name: str
    outline: Shape
    thickness: float | None = None
    stackup_id: str | None = None
    cutouts: list[Shape] = field(default_factory=list)
    user_properties: dict[str, PropertyValue] = field(default_factory=dict)


# --- Parts ---


@dataclass
class Placement:
    """Position (design units), rotation (degrees CCW) and bottom-side mirror.

    ``rotation_3d`` is an optional row-major 3x3 rotation; when set the
    placement is emitted as a full 3D transformation with ``z`` as tz.
    """
    x: float = 0.0
    y: float = 0.0
    rotation: float = 0.0
    mirror: bool = False
    z: float = 0.0
    rotation_3d: tuple[float, ...] | None = None


@dataclass
class Model3D:
    id: str
    location: str
    format: ModelFormat = ModelFormat.STEP
    identifier: str | None = None
    version: str | None = None
    transformation: Placement | None = None


@dataclass
class Pin:
    number: str
    position: Vector2
    primary: bool = False
    shape: Shape | None = None


@dataclass
class Footprint:
    name: str
    outline: Shape
    pins: list[Pin] = field(default_factory=list)
    model3d_id: str | None = None
    is_mechanical: bool = False


@dataclass
class Component:
    name: str  # reference designator
    package_name: str
    layer_id: str
    placement: Placement = field(default_factory=Placement)
    model3d_id: str | None = None
    z_offset: float | None = None
    value: str | None = None
    part_number: str | None = None
    is_mechanical: bool = False
    user_properties: dict[str, PropertyValue] = field(default_factory=dict)


@dataclass
class Hole:
    name: str
    geometry: Shape
    type: HoleType = HoleType.PTH
    layer_span: tuple[str, str] | None = None
    stackup_id: str | None = None
    z_range: tuple[float, float] | None = None
    milled: bool = False
    padstack: str | None = None
    user_properties: dict[str, PropertyValue] = field(default_factory=dict)


@dataclass
class Constraint:
    name: str
    type: ConstraintType
    geometry: Shape
    purpose: ConstraintPurpose = ConstraintPurpose.ROUTE
    layer_id: str | None = None
    z_range: tuple[float, float] | None = None
    user_properties: dict[str, PropertyValue] = field(default_factory=dict)


# --- Non-collaborative drawing data ---


@dataclass
class Trace:
    layer_id: str
    net: str
    geometry: Shape
    width: float = 0.0


@dataclass
class CopperArea:
    layer_id: str
    net: str
    geometry: Shape


@dataclass
class SilkscreenShape:
    side: Side
    geometry: Shape
    text: str | None = None


# --- Design ---


@dataclass
class Creator:
    name: str = ""
    company: str | None = None
    system: str | None = None
    version: str | None = None


@dataclass
class Metadata:
    design_name: str
    description: str | None = None
    revision: str | None = None
    creator: Creator = field(default_factory=Creator)
    created: str = ""  # ISO-8601; blank means the epoch inside the builder
    modified: str | None = None


@dataclass
class EcadDesign:
    metadata: Metadata
    board: Board
    layers: list[Layer] = field(default_factory=list)
    stackups: list[Stackup] = field(default_factory=list)
    models: list[Model3D] = field(default_factory=list)
    footprints: list[Footprint] = field(default_factory=list)
    components: list[Component] = field(default_factory=list)
    holes: list[Hole] = field(default_factory=list)
    constraints: list[Constraint] = field(default_factory=list)
    traces: list[Trace] = field(default_factory=list)
    copper_areas: list[CopperArea] = field(default_factory=list)
    silkscreen: list[SilkscreenShape] = field(default_factory=list)


# --- DXF Reader intermediate types ---


@dataclass
class DxfPath:
    """A closed path assembled from DXF line/arc/polyline entities."""
    polyline: Polyline
    source_layer: str = ""


@dataclass
class DxfCircle:
    center: Vector2 = field(default_factory=lambda: Vector2(0.0, 0.0))
    radius: float = 0.0
    layer: str = ""


@dataclass
class DxfInventory:
    """Summary of what's in a DXF file, for the inspect command."""
    filepath: str = ""
    dxf_version: str = ""
    units: str | None = None
    layers: dict[str, int] = field(default_factory=dict)
    entity_counts: dict[str, int] = field(default_factory=dict)
    bounding_box: tuple[Vector2, Vector2] | None = None


@dataclass
class ClassifiedEntities:
    """DXF entities classified by PCB role."""
    outline: DxfPath | None = None
    cutouts: list[DxfPath] = field(default_factory=list)
    holes: list[DxfCircle] = field(default_factory=list)
    keepouts: list[DxfPath] = field(default_factory=list)
    unclassified_paths: list[DxfPath] = field(default_factory=list)
    unclassified_circles: list[DxfCircle] = field(default_factory=list)
    unit_scale: float = 1.0  # multiplier to convert to mm
