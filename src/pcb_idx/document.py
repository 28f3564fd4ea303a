"""The EDMD document graph produced by the builder and consumed by the serializer.

All records are frozen. Cross references are plain id strings; the builder
guarantees every referenced id belongs to a record emitted earlier in body
order.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, TypeAlias

# --- Properties and identifiers ---


@dataclass(frozen=True)
class UserProperty:
    key: str
    value: str | float | int | bool
    system_scope: str = ""
    is_changed: bool | None = None
    is_new: bool | None = None
    persistent: bool | None = None
    is_originator: bool | None = None


@dataclass(frozen=True)
class Identifier:
    system_scope: str
    number: str
    version: int = 1
    revision: int = 0
    sequence: int = 0


# --- Geometry ---


@dataclass(frozen=True)
class CartesianPoint:
    id: str
    x: float
    y: float


class GeometryKind(Enum):
    LINE = "Line"
    ARC = "Arc"
    CIRCLE = "CircleCenter"
    POLYLINE = "PolyLine"
    COMPOSITE = "CompositeCurve"


@dataclass(frozen=True)
class LineGeometry:
    id: str
    start_id: str
    end_id: str

    kind: ClassVar[GeometryKind] = GeometryKind.LINE


@dataclass(frozen=True)
class ArcGeometry:
    """Three-point arc: start, a point on the arc, end."""
    id: str
    start_id: str
    mid_id: str
    end_id: str

    kind: ClassVar[GeometryKind] = GeometryKind.ARC


@dataclass(frozen=True)
class CircleGeometry:
    id: str
    center_id: str
    diameter: float

    kind: ClassVar[GeometryKind] = GeometryKind.CIRCLE


@dataclass(frozen=True)
class PolyLineGeometry:
    id: str
    point_ids: tuple[str, ...]

    kind: ClassVar[GeometryKind] = GeometryKind.POLYLINE


@dataclass(frozen=True)
class CompositeCurveGeometry:
    id: str
    curve_ids: tuple[str, ...]

    kind: ClassVar[GeometryKind] = GeometryKind.COMPOSITE


Geometry: TypeAlias = "LineGeometry | ArcGeometry | CircleGeometry | PolyLineGeometry | CompositeCurveGeometry"


@dataclass(frozen=True)
class CurveSet:
    id: str
    lower_bound: float
    upper_bound: float
    geometry_ids: tuple[str, ...]
    shape_description_type: str = "GeometricModel"


@dataclass(frozen=True)
class ShapeElement:
    id: str
    shape_element_type: str
    inverted: bool
    curve_set_id: str
    name: str | None = None


# --- Third items (traditional representation) ---


class ThirdItemKind(Enum):
    """Element tag of each variant; the xsi:type is ``pdm:EDMD<tag>``."""
    STRATUM = "Stratum"
    ASSEMBLY_COMPONENT = "AssemblyComponent"
    INTER_STRATUM_FEATURE = "InterStratumFeature"
    KEEP_OUT = "KeepOut"
    KEEP_IN = "KeepIn"
    FUNCTIONAL_ITEM_SHAPE = "FunctionalItemShape"
    STRATUM_TECHNOLOGY = "StratumTechnology"


@dataclass(frozen=True)
class Stratum:
    id: str
    shape_element_ids: tuple[str, ...]
    stratum_type: str  # DesignLayerStratum | DocumentationLayerStratum
    surface_designation: str | None = None  # PrimarySurface | SecondarySurface
    technology_id: str | None = None
    name: str | None = None

    kind: ClassVar[ThirdItemKind] = ThirdItemKind.STRATUM


@dataclass(frozen=True)
class AssemblyComponent:
    id: str
    shape_element_id: str
    component_type: str  # Physical | MechanicalItem | ...
    name: str | None = None

    kind: ClassVar[ThirdItemKind] = ThirdItemKind.ASSEMBLY_COMPONENT


@dataclass(frozen=True)
class InterStratumFeature:
    id: str
    shape_element_id: str
    feature_type: str  # Cutout | PlatedCutout | MilledCutout | Via | FilledVia
    stratum_id: str | None = None
    name: str | None = None

    kind: ClassVar[ThirdItemKind] = ThirdItemKind.INTER_STRATUM_FEATURE


@dataclass(frozen=True)
class KeepOut:
    id: str
    shape_element_id: str
    purpose: str
    name: str | None = None

    kind: ClassVar[ThirdItemKind] = ThirdItemKind.KEEP_OUT


@dataclass(frozen=True)
class KeepIn:
    id: str
    shape_element_id: str
    purpose: str
    name: str | None = None

    kind: ClassVar[ThirdItemKind] = ThirdItemKind.KEEP_IN


@dataclass(frozen=True)
class FunctionalItemShape:
    id: str
    shape_element_id: str
    shape_type: str  # UserArea | PlacementGroupArea | ... | MechanicalItem
    name: str | None = None

    kind: ClassVar[ThirdItemKind] = ThirdItemKind.FUNCTIONAL_ITEM_SHAPE


@dataclass(frozen=True)
class StratumTechnology:
    id: str
    technology_type: str  # Design | Documentation
    layer_purpose: str
    name: str | None = None

    kind: ClassVar[ThirdItemKind] = ThirdItemKind.STRATUM_TECHNOLOGY


ThirdItem: TypeAlias = "Stratum | AssemblyComponent | InterStratumFeature | KeepOut | KeepIn | FunctionalItemShape | StratumTechnology"


# --- Transformations and models ---


@dataclass(frozen=True)
class Transformation2D:
    xx: float
    xy: float
    yx: float
    yy: float
    tx: float
    ty: float

    kind: ClassVar[str] = "d2"


@dataclass(frozen=True)
class Transformation3D:
    xx: float
    xy: float
    xz: float
    yx: float
    yy: float
    yz: float
    zx: float
    zy: float
    zz: float
    tx: float
    ty: float
    tz: float

    kind: ClassVar[str] = "d3"


Transformation: TypeAlias = "Transformation2D | Transformation3D"


@dataclass(frozen=True)
class Model3DRecord:
    id: str
    identifier: str
    mcad_format: str
    version: str | None = None
    location: str | None = None
    transformation: Transformation | None = None


# --- Items ---


class ItemKind(Enum):
    SINGLE = "single"
    ASSEMBLY = "assembly"


@dataclass(frozen=True)
class PackagePin:
    pin_number: str
    primary: bool
    point_id: str
    shape_id: str | None = None


@dataclass(frozen=True)
class ItemInstance:
    id: str
    item_id: str
    instance_name: str
    system_scope: str = ""
    transformation: Transformation | None = None
    z_offset: float | None = None
    user_properties: tuple[UserProperty, ...] = ()
    name: str | None = None
    description: str | None = None


@dataclass(frozen=True)
class ItemSingle:
    id: str
    name: str
    identifier: Identifier
    shape_id: str  # ShapeElement, or a ThirdItem in traditional mode
    description: str | None = None
    package_name: str | None = None
    model3d_id: str | None = None
    package_pins: tuple[PackagePin, ...] = ()
    baseline: bool = True
    user_properties: tuple[UserProperty, ...] = ()

    kind: ClassVar[ItemKind] = ItemKind.SINGLE


@dataclass(frozen=True)
class ItemAssembly:
    id: str
    name: str
    identifier: Identifier
    instances: tuple[ItemInstance, ...] = ()
    geometry_type: str | None = None
    assemble_to_name: str | None = None
    reference_name: str | None = None
    description: str | None = None
    baseline: bool = True
    user_properties: tuple[UserProperty, ...] = ()

    kind: ClassVar[ItemKind] = ItemKind.ASSEMBLY


Item: TypeAlias = "ItemSingle | ItemAssembly"


# --- Document ---


@dataclass(frozen=True)
class Header:
    description: str
    creator_name: str
    creator_company: str
    creator_system: str
    creator: str
    post_processor: str
    post_processor_version: str
    global_unit_length: str
    creation_date_time: str
    modified_date_time: str


@dataclass(frozen=True)
class Body:
    """Entity groups in serialization order."""
    points: tuple[CartesianPoint, ...] = ()
    geometries: tuple[Geometry, ...] = ()
    curve_sets: tuple[CurveSet, ...] = ()
    shape_elements: tuple[ShapeElement, ...] = ()
    third_items: tuple[ThirdItem, ...] = ()
    layers: tuple[ItemAssembly, ...] = ()
    models: tuple[Model3DRecord, ...] = ()
    packages: tuple[ItemSingle, ...] = ()
    item_singles: tuple[ItemSingle, ...] = ()
    item_assemblies: tuple[ItemAssembly, ...] = ()

    GROUPS: ClassVar[tuple[str, ...]] = (
        "points",
        "geometries",
        "curve_sets",
        "shape_elements",
        "third_items",
        "layers",
        "models",
        "packages",
        "item_singles",
        "item_assemblies",
    )

    def entities(self):
        """Yield every top-level entity in serialization order."""
        for group in self.GROUPS:
            yield from getattr(self, group)


@dataclass(frozen=True)
class ProcessInstruction:
    actor: str
    description: str


@dataclass(frozen=True)
class Document:
    header: Header
    body: Body
    process_instruction: ProcessInstruction
    warnings: tuple[str, ...] = field(default=(), compare=False)

    def entity_count(self) -> int:
        """Top-level entities plus item instances."""
        count = 0
        for entity in self.body.entities():
            count += 1
            if isinstance(entity, ItemAssembly):
                count += len(entity.instances)
        return count
