"""Build a reference-closed EDMD document graph from an ECAD design.

The builder runs in two phases:

1. ``validate_design`` checks every cross reference, Z extent and geometry
   up front and raises the first problem found. Nothing is emitted for an
   invalid design.
2. A fresh ``_GraphBuilder`` walks the design in a fixed order (layers,
   stackups, board, models, packages, components, holes, constraints,
   non-collaborative data) and allocates ids from per-prefix counters, so
   identical input always yields identical ids.

Two representations are supported. In *simplified* mode each shape element
is referenced directly by an item whose assembly carries a ``geometryType``
discriminator. In *traditional* mode the shape element is first wrapped in a
third item (Stratum, AssemblyComponent, InterStratumFeature, KeepOut,
KeepIn, FunctionalItemShape) and the discriminator is omitted.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from . import __version__
from .config import BuildConfig
from .curves import Arc, Line, Shape, ShapeKind
from .document import (
    ArcGeometry,
    AssemblyComponent,
    Body,
    CartesianPoint,
    CircleGeometry,
    CompositeCurveGeometry,
    CurveSet,
    Document,
    FunctionalItemShape,
    Geometry,
    Header,
    Identifier,
    InterStratumFeature,
    ItemAssembly,
    ItemInstance,
    ItemSingle,
    KeepIn,
    KeepOut,
    LineGeometry,
    Model3DRecord,
    PackagePin,
    PolyLineGeometry,
    ProcessInstruction,
    ShapeElement,
    Stratum,
    StratumTechnology,
    ThirdItem,
    UserProperty,
)
from .errors import (
    ConfigurationError,
    GeometryError,
    IdxReferenceError,
    UnsupportedFeatureError,
)
from .geometry import EPSILON, TWO_PI, Vector2
from .models import (
    Component,
    Constraint,
    ConstraintPurpose,
    ConstraintType,
    EcadDesign,
    Footprint,
    Hole,
    HoleType,
    Layer,
    LayerType,
    Model3D,
    ModelFormat,
    Placement,
    PropertyValue,
    Stackup,
)
from .polyline import Polyline
from .transforms import to_transformation

log = logging.getLogger(__name__)

POST_PROCESSOR = "pcb-idx"
EPOCH = "1970-01-01T00:00:00Z"

# Z extents of drawing-only data
_COPPER_THICKNESS = 0.035
_SILKSCREEN_THICKNESS = 0.01

# --- Mapping tables ---

# LayerType -> (simplified geometryType, traditional LayerPurpose)
_LAYER_TYPES: dict[LayerType, tuple[str, str]] = {
    LayerType.SIGNAL: ("LAYER_OTHERSIGNAL", "OtherSignal"),
    LayerType.POWER_GROUND: ("LAYER_POWERGROUND", "PowerOrGround"),
    LayerType.DIELECTRIC: ("LAYER_DIELECTRIC", "Dielectric"),
    LayerType.SOLDERMASK: ("LAYER_SOLDERMASK", "SolderMask"),
    LayerType.SILKSCREEN: ("LAYER_SILKSCREEN", "SilkScreen"),
    LayerType.SOLDERPASTE: ("LAYER_SOLDERPASTE", "SolderPaste"),
    LayerType.PASTEMASK: ("LAYER_PASTEMASK", "PasteMask"),
    LayerType.GLUE: ("LAYER_GLUE", "Glue"),
    LayerType.GLUEMASK: ("LAYER_GLUEMASK", "GlueMask"),
    LayerType.EMBEDDED_CAP_DIELECTRIC: (
        "LAYER_EMBEDDED_CAP_DIELECTRIC", "EmbeddedPassiveCapacitorDielectric",
    ),
    LayerType.EMBEDDED_RESISTOR: ("LAYER_EMBEDDED_RESISTOR", "EmbeddedPassiveResistor"),
    LayerType.GENERIC: ("LAYER_GENERIC", "GenericLayer"),
    LayerType.OTHER: ("LAYER_GENERIC", "GenericLayer"),
}

_MODEL_FORMATS: dict[ModelFormat, str] = {
    ModelFormat.STEP: "STEP",
    ModelFormat.STL: "STL",
    ModelFormat.IGES: "Catia",
    ModelFormat.PARASOLID: "SolidEdge",
    ModelFormat.SOLIDWORKS: "SolidWorks",
    ModelFormat.NX: "NX",
    ModelFormat.CATIA: "Catia",
}

# HoleType -> (simplified geometryType, InterStratumFeatureType)
_HOLE_TYPES: dict[HoleType, tuple[str, str]] = {
    HoleType.PTH: ("HOLE_PLATED", "PlatedCutout"),
    HoleType.NPTH: ("HOLE_NON_PLATED", "Cutout"),
    HoleType.VIA: ("VIA", "Via"),
    HoleType.FILLED_VIA: ("FILLED_VIA", "FilledVia"),
}

_MILLED_HOLE_TYPES: dict[HoleType, str] = {
    HoleType.PTH: "HOLE_PLATED_MILLED",
    HoleType.NPTH: "HOLE_NONPLATED_MILLED",
}

_CONSTRAINT_PURPOSES: dict[ConstraintPurpose, tuple[str, str]] = {
    ConstraintPurpose.ROUTE: ("ROUTE", "Route"),
    ConstraintPurpose.COMPONENT: ("COMPONENT", "ComponentPlacement"),
    ConstraintPurpose.VIA: ("VIA", "Via"),
    ConstraintPurpose.TESTPOINT: ("TESTPOINT", "TestPoint"),
    ConstraintPurpose.THERMAL: ("THERMAL", "Thermal"),
    ConstraintPurpose.OTHER: ("OTHER", "Other"),
}


def build_document(
    design: EcadDesign,
    config: BuildConfig | None = None,
    *,
    creator_system: str = "ECAD",
    creator_company: str = "Company Name",
) -> Document:
    """Validate ``design`` and build its document graph.

    Args:
        design: The ECAD design to convert.
        config: Build options; defaults to ``BuildConfig()``.
        creator_system: Header fallback when the metadata names no system.
        creator_company: Header fallback when the metadata names no company.

    Returns:
        A reference-closed Document.

    Raises:
        ConfigurationError: Contradictory or missing Z extents.
        IdxReferenceError: A reference names an unknown id.
        GeometryError: Degenerate geometry.
        UnsupportedFeatureError: An entity kind has no output mapping.
    """
    config = config or BuildConfig()
    validate_design(design, config)
    builder = _GraphBuilder(design, config, creator_system, creator_company)
    return builder.build()


class IdxBuilder:
    """Reusable builder bound to one configuration.

    Each ``build`` call gets its own id counters and entity lists, so one
    instance may serve many designs and threads.
    """

    def __init__(
        self,
        config: BuildConfig | None = None,
        creator_system: str = "ECAD",
        creator_company: str = "Company Name",
    ):
        self.config = config or BuildConfig()
        self.creator_system = creator_system
        self.creator_company = creator_company

    def build(self, design: EcadDesign) -> Document:
        return build_document(
            design,
            self.config,
            creator_system=self.creator_system,
            creator_company=self.creator_company,
        )


# --- Validation ---


@dataclass
class _ZTable:
    """Z extents derived from the stackups."""
    stackup_range: dict[str, tuple[float, float]] = field(default_factory=dict)
    layer_range: dict[str, tuple[float, float]] = field(default_factory=dict)
    stackup_layers: dict[str, dict[str, tuple[float, float]]] = field(default_factory=dict)


def _z_table(design: EcadDesign) -> _ZTable:
    layers = {layer.id: layer for layer in design.layers}
    table = _ZTable()
    for stackup in design.stackups:
        z = 0.0
        per_layer: dict[str, tuple[float, float]] = {}
        for layer_id in stackup.layer_ids:
            lower, z = z, z + layers[layer_id].thickness
            per_layer.setdefault(layer_id, (lower, z))
            table.layer_range.setdefault(layer_id, (lower, z))
        table.stackup_range[stackup.id] = (0.0, z)
        table.stackup_layers[stackup.id] = per_layer
    return table


def validate_design(design: EcadDesign, config: BuildConfig | None = None) -> None:
    """Raise the first reference, configuration or geometry error in ``design``."""
    config = config or BuildConfig()

    layers = _unique(design.layers, "layer", lambda x: x.id)
    stackups = _unique(design.stackups, "stackup", lambda x: x.id)
    models = _unique(design.models, "model", lambda x: x.id)
    footprints = _unique(design.footprints, "footprint", lambda x: x.name)
    _unique(design.components, "component", lambda x: x.name)

    for layer in design.layers:
        _check_number(layer.thickness, layer.id, "thickness")
        if layer.thickness < 0:
            msg = f"Layer thickness must not be negative, got {layer.thickness}"
            raise ConfigurationError(msg, reference=layer.id, field="thickness")
        if not isinstance(layer.type, LayerType):
            msg = f"Unsupported layer type {layer.type!r}"
            raise UnsupportedFeatureError(msg, reference=layer.id, field="type")

    for stackup in design.stackups:
        for layer_id in stackup.layer_ids:
            if layer_id not in layers:
                msg = f"Stackup references unknown layer {layer_id!r}"
                raise IdxReferenceError(msg, reference=stackup.id, field="layer_ids")

    z = _z_table(design)

    board = design.board
    if board.outline is None:
        msg = "Board has no outline"
        raise ConfigurationError(msg, reference=board.name, field="outline")
    if board.thickness is None and board.stackup_id is None:
        msg = "Board needs either a thickness or a stackup id"
        raise ConfigurationError(msg, reference=board.name, field="thickness")
    if board.thickness is not None and board.stackup_id is not None:
        msg = "Board must not specify both a thickness and a stackup id"
        raise ConfigurationError(msg, reference=board.name, field="stackup_id")
    if board.thickness is not None:
        _check_number(board.thickness, board.name, "thickness")
    if board.stackup_id is not None and board.stackup_id not in stackups:
        msg = f"Board references unknown stackup {board.stackup_id!r}"
        raise IdxReferenceError(msg, reference=board.name, field="stackup_id")
    if _board_range(design, z)[1] <= 0:
        msg = "Board thickness must be positive"
        raise ConfigurationError(msg, reference=board.name, field="thickness")
    _check_closed(board.outline, board.name, "outline")
    for i, cutout in enumerate(board.cutouts):
        _check_closed(cutout, board.name, f"cutouts[{i}]")

    for model in design.models:
        if not isinstance(model.format, ModelFormat):
            msg = f"Unsupported 3D model format {model.format!r}"
            raise UnsupportedFeatureError(msg, reference=model.id, field="format")
        if model.transformation is not None:
            _check_placement(model.transformation, model.id)

    for fp in design.footprints:
        if fp.model3d_id is not None and fp.model3d_id not in models:
            msg = f"Footprint references unknown model {fp.model3d_id!r}"
            raise IdxReferenceError(msg, reference=fp.name, field="model3d_id")
        _check_closed(fp.outline, fp.name, "outline")
        for pin in fp.pins:
            if pin.shape is not None:
                _check_shape(pin.shape, f"{fp.name}.{pin.number}", "shape")

    for comp in design.components:
        if comp.package_name not in footprints:
            msg = f"Component references unknown footprint {comp.package_name!r}"
            raise IdxReferenceError(msg, reference=comp.name, field="package_name")
        if comp.model3d_id is not None and comp.model3d_id not in models:
            msg = f"Component references unknown model {comp.model3d_id!r}"
            raise IdxReferenceError(msg, reference=comp.name, field="model3d_id")
        if comp.layer_id not in layers:
            msg = f"Component references unknown layer {comp.layer_id!r}"
            raise IdxReferenceError(msg, reference=comp.name, field="layer_id")
        _check_placement(comp.placement, comp.name)
        if comp.z_offset is not None:
            _check_number(comp.z_offset, comp.name, "z_offset")

    for hole in design.holes:
        if not isinstance(hole.type, HoleType):
            msg = f"Unsupported hole type {hole.type!r}"
            raise UnsupportedFeatureError(msg, reference=hole.name, field="type")
        if hole.milled and hole.type not in _MILLED_HOLE_TYPES:
            msg = f"Hole type {hole.type.value} cannot be milled"
            raise UnsupportedFeatureError(msg, reference=hole.name, field="milled")
        if hole.stackup_id is not None and hole.stackup_id not in stackups:
            msg = f"Hole references unknown stackup {hole.stackup_id!r}"
            raise IdxReferenceError(msg, reference=hole.name, field="stackup_id")
        if hole.layer_span is not None:
            for layer_id in hole.layer_span:
                if layer_id not in layers:
                    msg = f"Hole references unknown layer {layer_id!r}"
                    raise IdxReferenceError(msg, reference=hole.name, field="layer_span")
        _hole_range(hole, z)
        _check_closed(hole.geometry, hole.name, "geometry")

    for constraint in design.constraints:
        if not isinstance(constraint.type, ConstraintType):
            msg = f"Unsupported constraint type {constraint.type!r}"
            raise UnsupportedFeatureError(msg, reference=constraint.name, field="type")
        if not isinstance(constraint.purpose, ConstraintPurpose):
            msg = f"Unsupported constraint purpose {constraint.purpose!r}"
            raise UnsupportedFeatureError(msg, reference=constraint.name, field="purpose")
        if constraint.layer_id is not None and constraint.layer_id not in layers:
            msg = f"Constraint references unknown layer {constraint.layer_id!r}"
            raise IdxReferenceError(msg, reference=constraint.name, field="layer_id")
        if constraint.z_range is not None:
            _check_range(constraint.z_range, constraint.name)
        _check_closed(constraint.geometry, constraint.name, "geometry")

    if config.include_non_collaborative:
        drawn = [*design.traces, *design.copper_areas]
        for i, shape in enumerate(drawn):
            if shape.layer_id not in layers:
                msg = f"Drawing references unknown layer {shape.layer_id!r}"
                raise IdxReferenceError(msg, reference=f"{shape.net or 'drawing'}#{i}",
                                        field="layer_id")
            _check_shape(shape.geometry, shape.net or f"drawing#{i}", "geometry")
        for i, silk in enumerate(design.silkscreen):
            _check_shape(silk.geometry, f"silkscreen#{i}", "geometry")


def _unique(entities, label: str, key) -> dict:
    table = {}
    for entity in entities:
        k = key(entity)
        if k in table:
            msg = f"Duplicate {label} id {k!r}"
            raise ConfigurationError(msg, reference=k)
        table[k] = entity
    return table


def _board_range(design: EcadDesign, z: _ZTable) -> tuple[float, float]:
    board = design.board
    if board.stackup_id is not None:
        return z.stackup_range[board.stackup_id]
    return (0.0, float(board.thickness))


def _check_number(value, owner: str, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        msg = f"Expected a number, got {value!r}"
        raise ConfigurationError(msg, reference=owner, field=field_name)


def _check_placement(placement: Placement, owner: str) -> None:
    for name in ("x", "y", "rotation", "z"):
        _check_number(getattr(placement, name), owner, name)
    if placement.rotation_3d is None:
        return
    cells = tuple(placement.rotation_3d)
    if len(cells) != 9:
        msg = f"3D rotation needs 9 cells, got {len(cells)}"
        raise GeometryError(msg, reference=owner, field="rotation_3d")
    for cell in cells:
        _check_number(cell, owner, "rotation_3d")


def _check_range(z_range: tuple[float, float], owner: str) -> None:
    lower, upper = z_range
    for bound in z_range:
        _check_number(bound, owner, "z_range")
    if lower > upper:
        msg = f"Lower bound {lower} exceeds upper bound {upper}"
        raise GeometryError(msg, reference=owner, field="z_range")


def _hole_range(hole: Hole, z: _ZTable) -> tuple[float, float]:
    """Resolve a hole's Z extent: explicit range, stackup, then layer span."""
    if hole.z_range is not None:
        _check_range(hole.z_range, hole.name)
        lower, upper = hole.z_range
        if upper > lower:
            return (lower, upper)
        if hole.stackup_id is None:
            msg = "Hole Z range is degenerate and no stackup is given"
            raise ConfigurationError(msg, reference=hole.name, field="z_range")
    if hole.stackup_id is not None:
        return z.stackup_range[hole.stackup_id]
    if hole.layer_span is not None:
        start, end = hole.layer_span
        for per_layer in z.stackup_layers.values():
            if start in per_layer and end in per_layer:
                bounds = [*per_layer[start], *per_layer[end]]
                return (min(bounds), max(bounds))
        msg = f"Layer span {start!r}..{end!r} is not part of any stackup"
        raise ConfigurationError(msg, reference=hole.name, field="layer_span")
    msg = "Hole needs a layer span, stackup id or Z range"
    raise ConfigurationError(msg, reference=hole.name, field="z_range")


def _check_shape(shape: Shape, owner: str, field_name: str) -> None:
    match getattr(shape, "kind", None):
        case ShapeKind.LINE:
            if shape.length == 0:
                msg = "Zero-length line"
                raise GeometryError(msg, reference=owner, field=field_name)
        case ShapeKind.ARC:
            if shape.radius_x <= 0 or shape.radius_y <= 0:
                msg = "Arc radius must be positive"
                raise GeometryError(msg, reference=owner, field=field_name)
            if shape.sweep_angle == 0:
                msg = "Arc sweep must not be zero"
                raise GeometryError(msg, reference=owner, field=field_name)
        case ShapeKind.CIRCLE:
            if shape.radius <= 0:
                msg = "Circle radius must be positive"
                raise GeometryError(msg, reference=owner, field=field_name)
        case ShapeKind.RECT:
            if shape.width <= 0 or shape.height <= 0:
                msg = "Rectangle must have a positive width and height"
                raise GeometryError(msg, reference=owner, field=field_name)
        case ShapeKind.POLYLINE:
            if len(shape.vertices()) < 2:
                msg = "Polyline needs at least 2 points"
                raise GeometryError(msg, reference=owner, field=field_name)
            for prim in shape.primitives:
                _check_shape(prim, owner, field_name)
        case _:
            msg = f"No output mapping for geometry {type(shape).__name__}"
            raise UnsupportedFeatureError(msg, reference=owner, field=field_name)


def _check_closed(shape: Shape, owner: str, field_name: str) -> None:
    """Shapes used as outlines must be closed or closable."""
    _check_shape(shape, owner, field_name)
    kind = shape.kind
    full_sweep = kind is ShapeKind.ARC and abs(shape.sweep_angle) >= TWO_PI - EPSILON
    if kind is ShapeKind.LINE or (kind is ShapeKind.ARC and not full_sweep):
        msg = "Open outline where a closed one is required"
        raise GeometryError(msg, reference=owner, field=field_name)
    if kind is ShapeKind.POLYLINE and not shape.is_closed and len(shape.vertices()) < 3:
        msg = "Open outline with fewer than 3 points cannot be closed"
        raise GeometryError(msg, reference=owner, field=field_name)


# --- Graph construction ---


class _GraphBuilder:
    """Single-use state for one build pass."""

    def __init__(
        self,
        design: EcadDesign,
        config: BuildConfig,
        creator_system: str,
        creator_company: str,
    ):
        self.design = design
        self.config = config
        self.creator_system = creator_system
        self.creator_company = creator_company
        self.simplified = config.use_simplified
        self.z = _z_table(design)

        self._counters: dict[str, int] = defaultdict(int)
        self._number_counters: dict[str, int] = defaultdict(int)
        self._point_ids: dict[tuple[float, float], str] = {}

        self.points: list[CartesianPoint] = []
        self.geometries: list[Geometry] = []
        self.curve_sets: list[CurveSet] = []
        self.shape_elements: list[ShapeElement] = []
        self.third_items: list[ThirdItem] = []
        self.layers: list[ItemAssembly] = []
        self.models: list[Model3DRecord] = []
        self.packages: list[ItemSingle] = []
        self.item_singles: list[ItemSingle] = []
        self.item_assemblies: list[ItemAssembly] = []

        self.layer_items: dict[str, str] = {}
        self.model_records: dict[str, str] = {}
        self.package_items: dict[tuple[str, str | None], str] = {}
        self.package_defs: dict[str, ItemSingle] = {}
        self.board_stratum_id: str | None = None
        self.warnings: list[str] = []

    def build(self) -> Document:
        design = self.design
        if self.config.include_history:
            msg = "include_history is set; baseline documents carry no history"
            log.warning(msg)
            self.warnings.append(msg)

        for layer in design.layers:
            self._add_layer(layer)
        for stackup in design.stackups:
            self._add_stackup(stackup)
        self._add_board()
        for model in self._models_in_reference_order():
            self._add_model(model)
        for footprint in design.footprints:
            self._add_package(footprint)

        footprints = {fp.name: fp for fp in design.footprints}
        for comp in design.components:
            self._add_component(comp, footprints[comp.package_name])
        for hole in design.holes:
            self._add_hole(hole)
        for constraint in design.constraints:
            self._add_constraint(constraint)
        if self.config.include_non_collaborative:
            self._add_drawings()

        body = Body(
            points=tuple(self.points),
            geometries=tuple(self.geometries),
            curve_sets=tuple(self.curve_sets),
            shape_elements=tuple(self.shape_elements),
            third_items=tuple(self.third_items),
            layers=tuple(self.layers),
            models=tuple(self.models),
            packages=tuple(self.packages),
            item_singles=tuple(self.item_singles),
            item_assemblies=tuple(self.item_assemblies),
        )
        log.info(
            "Built %s: %d points, %d geometries, %d shape elements, %d items",
            design.metadata.design_name,
            len(self.points),
            len(self.geometries),
            len(self.shape_elements),
            len(self.layers) + len(self.packages) + len(self.item_singles)
            + len(self.item_assemblies),
        )
        return Document(
            header=self._header(),
            body=body,
            process_instruction=ProcessInstruction(
                actor=design.metadata.creator.name,
                description=f"Baseline for design: {design.metadata.design_name}",
            ),
            warnings=tuple(self.warnings),
        )

    # --- Ids and properties ---

    def _next_id(self, prefix: str) -> str:
        self._counters[prefix] += 1
        return f"{prefix}_{self._counters[prefix]}"

    def _identifier(self, base: str) -> Identifier:
        self._number_counters[base] += 1
        return Identifier(
            system_scope=self.config.system_scope,
            number=f"{base}_{self._number_counters[base]}",
        )

    def _prop(self, key: str, value: PropertyValue) -> UserProperty:
        return UserProperty(key=key, value=value, system_scope=self.config.system_scope)

    def _props(self, mapping: dict[str, PropertyValue]) -> tuple[UserProperty, ...]:
        return tuple(self._prop(k, v) for k, v in mapping.items())

    # --- Geometry decomposition ---

    def _point(self, v: Vector2) -> str:
        key = v.key(self.config.precision)
        point_id = self._point_ids.get(key)
        if point_id is None:
            point_id = self._next_id("PT")
            self._point_ids[key] = point_id
            self.points.append(CartesianPoint(point_id, key[0], key[1]))
        return point_id

    def _geometry(self, shape: Shape) -> str:
        """Decompose a kernel shape into points and one top-level geometry id."""
        match shape.kind:
            case ShapeKind.LINE:
                start, end = self._point(shape.start), self._point(shape.end)
                geo = LineGeometry(self._next_id("GEO"), start, end)
            case ShapeKind.ARC:
                return self._arc_geometry(shape)
            case ShapeKind.CIRCLE:
                center = self._point(shape.center)
                geo = CircleGeometry(self._next_id("GEO"), center, shape.diameter)
            case ShapeKind.RECT:
                return self._geometry(shape.to_polyline())
            case ShapeKind.POLYLINE:
                if shape.contains_arc:
                    curve_ids = tuple(self._geometry(prim) for prim in shape.primitives)
                    geo = CompositeCurveGeometry(self._next_id("GEO"), curve_ids)
                else:
                    point_ids = tuple(self._point(v) for v in shape.vertices())
                    geo = PolyLineGeometry(self._next_id("GEO"), point_ids)
            case _:
                msg = f"No output mapping for geometry {type(shape).__name__}"
                raise UnsupportedFeatureError(msg)
        self.geometries.append(geo)
        return geo.id

    def _arc_geometry(self, arc: Arc) -> str:
        circle = arc.to_circle()
        if circle is not None:
            return self._geometry(circle)
        if not arc.is_circular:
            # Elliptical arcs have no three-point form; flatten them.
            return self._geometry(Polyline.from_points(arc.discretize()))
        start = self._point(arc.start_point)
        mid = self._point(arc.mid_point)
        end = self._point(arc.end_point)
        geo = ArcGeometry(self._next_id("GEO"), start, mid, end)
        self.geometries.append(geo)
        return geo.id

    def _shape(
        self,
        shape: Shape,
        z_range: tuple[float, float],
        inverted: bool = False,
        shape_element_type: str = "FeatureShapeElement",
        closed: bool = True,
        name: str | None = None,
    ) -> str:
        """Emit geometry, one CurveSet and one ShapeElement; return the element id."""
        if closed and shape.kind is ShapeKind.POLYLINE:
            shape = shape.close()
        geometry_id = self._geometry(shape)
        lower, upper = z_range
        curve_set = CurveSet(self._next_id("CS"), lower, upper, (geometry_id,))
        self.curve_sets.append(curve_set)
        element = ShapeElement(
            self._next_id("SE"), shape_element_type, inverted, curve_set.id, name=name,
        )
        self.shape_elements.append(element)
        return element.id

    def _third(self, item: ThirdItem) -> str:
        self.third_items.append(item)
        return item.id

    # --- Items ---

    def _part(
        self,
        name: str,
        base: str,
        shape_id: str,
        geometry_type: str | None,
        assemble_to: str | None = None,
        properties: tuple[UserProperty, ...] = (),
        package_name: str | None = None,
        description: str | None = None,
    ) -> ItemAssembly:
        """Emit a single for the shape plus an assembly with one instance of it."""
        single = ItemSingle(
            id=self._next_id("IT"),
            name=name,
            identifier=self._identifier(base),
            shape_id=shape_id,
            description=description,
            package_name=package_name,
            user_properties=properties,
        )
        self.item_singles.append(single)
        instance = ItemInstance(
            id=self._next_id("IS"),
            item_id=single.id,
            instance_name=name,
            system_scope=self.config.system_scope,
        )
        assembly = ItemAssembly(
            id=self._next_id("IA"),
            name=name,
            identifier=self._identifier(base),
            instances=(instance,),
            geometry_type=geometry_type if self.simplified else None,
            assemble_to_name=assemble_to,
            description=description,
        )
        self.item_assemblies.append(assembly)
        return assembly

    # --- Layers and stackups ---

    def _add_layer(self, layer: Layer) -> None:
        geometry_type, purpose = _LAYER_TYPES[layer.type]
        props: dict[str, PropertyValue] = {"Thickness": layer.thickness}
        if layer.id in self.z.layer_range:
            lower, upper = self.z.layer_range[layer.id]
            props["LowerBound"] = lower
            props["UpperBound"] = upper
        if layer.material:
            props["Material"] = layer.material
        if layer.color:
            props["Color"] = layer.color
        if not self.simplified:
            props["LayerType"] = purpose
            self._third(StratumTechnology(self._next_id("TECH"), "Design", purpose,
                                          name=layer.name))

        item = ItemAssembly(
            id=self._next_id("IA"),
            name=layer.name,
            identifier=self._identifier("LAYER"),
            geometry_type=geometry_type if self.simplified else None,
            reference_name=layer.name,
            description=f"{layer.type.value} layer",
            user_properties=self._props(props),
        )
        self.layers.append(item)
        self.layer_items[layer.id] = item.id
        log.debug("Layer %s -> %s", layer.id, item.id)

    def _add_stackup(self, stackup: Stackup) -> None:
        layers = {layer.id: layer for layer in self.design.layers}
        instances = []
        z = 0.0
        for layer_id in stackup.layer_ids:
            layer = layers[layer_id]
            lower, z = z, z + layer.thickness
            instances.append(ItemInstance(
                id=self._next_id("IS"),
                item_id=self.layer_items[layer_id],
                instance_name=layer.name,
                system_scope=self.config.system_scope,
                user_properties=(
                    self._prop("LowerBound", lower),
                    self._prop("UpperBound", z),
                ),
            ))
        total = self.z.stackup_range[stackup.id][1]
        item = ItemAssembly(
            id=self._next_id("IA"),
            name=stackup.name,
            identifier=self._identifier("STACKUP"),
            instances=tuple(instances),
            geometry_type="LAYER_STACKUP" if self.simplified else None,
            reference_name=stackup.name,
            description=f"Layer stackup: {len(stackup.layer_ids)} layers",
            user_properties=(self._prop("TotalThickness", total),),
        )
        self.layers.append(item)
        log.debug("Stackup %s -> %s", stackup.id, item.id)

    # --- Board ---

    def _stackup_name(self, stackup_id: str | None) -> str | None:
        for stackup in self.design.stackups:
            if stackup.id == stackup_id:
                return stackup.name
        return None

    def _add_board(self) -> None:
        board = self.design.board
        z_range = _board_range(self.design, self.z)
        element_id = self._shape(board.outline, z_range, name=board.name)

        shape_id = element_id
        if not self.simplified:
            stratum = Stratum(
                self._next_id("STRATUM"),
                (element_id,),
                "DesignLayerStratum",
                "PrimarySurface",
                name=board.name,
            )
            self.board_stratum_id = self._third(stratum)
            shape_id = stratum.id

        stackup_name = self._stackup_name(board.stackup_id)
        self._part(
            board.name,
            "BOARD",
            shape_id,
            "BOARD_AREA_RIGID" if stackup_name else "BOARD_OUTLINE",
            assemble_to=stackup_name,
            properties=self._props(board.user_properties),
        )

        for i, cutout in enumerate(board.cutouts, start=1):
            name = f"{board.name}_CUTOUT_{i}"
            cutout_id = self._shape(cutout, z_range, inverted=True, name=name)
            if not self.simplified:
                cutout_id = self._third(InterStratumFeature(
                    self._next_id("STRATUM"), cutout_id, "MilledCutout",
                    self.board_stratum_id, name=name,
                ))
            self._part(name, "CUTOUT", cutout_id, "HOLE_NONPLATED_MILLED",
                       assemble_to=stackup_name)

    # --- Models and packages ---

    def _models_in_reference_order(self) -> list[Model3D]:
        by_id = {m.id: m for m in self.design.models}
        order: list[str] = []
        refs = [fp.model3d_id for fp in self.design.footprints]
        refs += [comp.model3d_id for comp in self.design.components]
        for model_id in refs:
            if model_id is not None and model_id not in order:
                order.append(model_id)
        order += [m.id for m in self.design.models if m.id not in order]
        return [by_id[model_id] for model_id in order]

    def _add_model(self, model: Model3D) -> None:
        identifier = model.identifier or PurePosixPath(model.location.replace("\\", "/")).stem
        record = Model3DRecord(
            id=self._next_id("MODEL"),
            identifier=identifier,
            mcad_format=_MODEL_FORMATS[model.format],
            version=model.version,
            location=model.location,
            transformation=to_transformation(model.transformation)
            if model.transformation is not None else None,
        )
        self.models.append(record)
        self.model_records[model.id] = record.id

    def _add_package(self, footprint: Footprint) -> None:
        element_id = self._shape(footprint.outline, (0.0, 0.0), name=footprint.name)
        shape_id = element_id
        if not self.simplified:
            component_type = "MechanicalItem" if footprint.is_mechanical else "Physical"
            shape_id = self._third(AssemblyComponent(
                self._next_id("STRATUM"), element_id, component_type, name=footprint.name,
            ))

        pins = []
        for pin in footprint.pins:
            pin_shape_id = None
            if pin.shape is not None:
                pin_shape_id = self._shape(
                    pin.shape,
                    (0.0, 0.0),
                    shape_element_type="ComponentTermination",
                    closed=False,
                    name=f"{footprint.name}.{pin.number}",
                )
                if not self.simplified:
                    pin_shape_id = self._third(FunctionalItemShape(
                        self._next_id("STRATUM"), pin_shape_id, "UserArea",
                        name=f"{footprint.name}.{pin.number}",
                    ))
            pins.append(PackagePin(pin.number, pin.primary, self._point(pin.position),
                                   pin_shape_id))

        package = ItemSingle(
            id=self._next_id("IT"),
            name=footprint.name,
            identifier=self._identifier("PACKAGE"),
            shape_id=shape_id,
            package_name=footprint.name,
            model3d_id=self.model_records.get(footprint.model3d_id),
            package_pins=tuple(pins),
        )
        self.packages.append(package)
        self.package_defs[footprint.name] = package
        self.package_items[(footprint.name, footprint.model3d_id)] = package.id

    def _package_for(self, footprint: Footprint, model_id: str | None) -> str:
        """Package item id, deriving a variant when the instance overrides the model."""
        if model_id is None or model_id == footprint.model3d_id:
            return self.package_items[(footprint.name, footprint.model3d_id)]
        key = (footprint.name, model_id)
        if key not in self.package_items:
            base = self.package_defs[footprint.name]
            variant = ItemSingle(
                id=self._next_id("IT"),
                name=f"{footprint.name}_{model_id}",
                identifier=self._identifier("PACKAGE"),
                shape_id=base.shape_id,
                package_name=footprint.name,
                model3d_id=self.model_records[model_id],
                package_pins=base.package_pins,
            )
            self.packages.append(variant)
            self.package_items[key] = variant.id
        return self.package_items[key]

    # --- Placed parts ---

    def _add_component(self, comp: Component, footprint: Footprint) -> None:
        layer = next(x for x in self.design.layers if x.id == comp.layer_id)
        props: dict[str, PropertyValue] = {"REFDES": comp.name}
        if comp.part_number:
            props["PARTNUM"] = comp.part_number
        if comp.value:
            props["VALUE"] = comp.value
        for key, value in comp.user_properties.items():
            props.setdefault(key, value)

        instance = ItemInstance(
            id=self._next_id("IS"),
            item_id=self._package_for(footprint, comp.model3d_id),
            instance_name=comp.name,
            system_scope=self.config.system_scope,
            transformation=to_transformation(comp.placement),
            z_offset=comp.z_offset,
            user_properties=self._props(props),
        )
        geometry_type = "COMPONENT_MECHANICAL" if comp.is_mechanical else "COMPONENT"
        assembly = ItemAssembly(
            id=self._next_id("IA"),
            name=comp.name,
            identifier=self._identifier("COMPONENT"),
            instances=(instance,),
            geometry_type=geometry_type if self.simplified else None,
            assemble_to_name=layer.name,
        )
        self.item_assemblies.append(assembly)
        log.debug("Component %s -> %s", comp.name, assembly.id)

    def _add_hole(self, hole: Hole) -> None:
        z_range = _hole_range(hole, self.z)
        element_type = "PartMountingFeature" if hole.milled else "FeatureShapeElement"
        element_id = self._shape(hole.geometry, z_range, inverted=True,
                                 shape_element_type=element_type, name=hole.name)
        if hole.milled:
            geometry_type = _MILLED_HOLE_TYPES[hole.type]
            feature_type = "MilledCutout"
        else:
            geometry_type, feature_type = _HOLE_TYPES[hole.type]

        shape_id = element_id
        if not self.simplified:
            shape_id = self._third(InterStratumFeature(
                self._next_id("STRATUM"), element_id, feature_type,
                self.board_stratum_id, name=hole.name,
            ))

        if hole.stackup_id is not None:
            assemble_to = self._stackup_name(hole.stackup_id)
        elif hole.layer_span is not None:
            assemble_to = next(x.name for x in self.design.layers if x.id == hole.layer_span[0])
        else:
            assemble_to = self._stackup_name(self.design.board.stackup_id)

        self._part(
            hole.name,
            "HOLE",
            shape_id,
            geometry_type,
            assemble_to=assemble_to,
            properties=self._props(hole.user_properties),
            package_name=hole.padstack,
        )

    def _add_constraint(self, constraint: Constraint) -> None:
        keepout = constraint.type is ConstraintType.KEEPOUT
        if constraint.z_range is not None:
            z_range = constraint.z_range
        elif constraint.layer_id in self.z.layer_range:
            z_range = self.z.layer_range[constraint.layer_id]
        else:
            z_range = _board_range(self.design, self.z)

        element_id = self._shape(constraint.geometry, z_range, inverted=keepout,
                                 name=constraint.name)
        code, purpose = _CONSTRAINT_PURPOSES[constraint.purpose]
        shape_id = element_id
        if not self.simplified:
            cls = KeepOut if keepout else KeepIn
            shape_id = self._third(cls(self._next_id("STRATUM"), element_id, purpose,
                                       name=constraint.name))

        layer_name = None
        if constraint.layer_id is not None:
            layer_name = next(x.name for x in self.design.layers if x.id == constraint.layer_id)
        prefix = "KEEPOUT_AREA" if keepout else "KEEPIN_AREA"
        self._part(
            constraint.name,
            "KEEPOUT" if keepout else "KEEPIN",
            shape_id,
            f"{prefix}_{code}",
            assemble_to=layer_name,
            properties=self._props(constraint.user_properties),
        )

    # --- Non-collaborative drawing data ---

    def _add_drawings(self) -> None:
        layers = {layer.id: layer for layer in self.design.layers}
        for i, trace in enumerate(self.design.traces, start=1):
            props = {"NET": trace.net, "WIDTH": trace.width}
            self._drawing(f"TRACE_{i}", trace.geometry, "COPPER_TRACE",
                          (0.0, _COPPER_THICKNESS), layers[trace.layer_id].name, props,
                          closed=False)
        for i, area in enumerate(self.design.copper_areas, start=1):
            self._drawing(f"COPPER_{i}", area.geometry, "COPPER_AREA",
                          (0.0, _COPPER_THICKNESS), layers[area.layer_id].name,
                          {"NET": area.net}, closed=True)
        for i, silk in enumerate(self.design.silkscreen, start=1):
            props: dict[str, PropertyValue] = {"SIDE": silk.side.value}
            if silk.text:
                props["TEXT"] = silk.text
            self._drawing(f"SILKSCREEN_{i}", silk.geometry, "OTHER_OUTLINE",
                          (0.0, _SILKSCREEN_THICKNESS), None, props, closed=False)

    def _drawing(
        self,
        name: str,
        shape: Shape,
        geometry_type: str,
        z_range: tuple[float, float],
        layer_name: str | None,
        props: dict[str, PropertyValue],
        closed: bool,
    ) -> None:
        element_id = self._shape(shape, z_range, closed=closed, name=name)
        shape_id = element_id
        if not self.simplified:
            shape_id = self._third(Stratum(
                self._next_id("STRATUM"), (element_id,), "DocumentationLayerStratum",
                name=name,
            ))
        self._part(name, "DRAWING", shape_id, geometry_type, assemble_to=layer_name,
                   properties=self._props(props))

    # --- Header ---

    def _header(self) -> Header:
        meta = self.design.metadata
        creator = meta.creator
        created = meta.created or EPOCH
        return Header(
            description=meta.description or f"ECAD design: {meta.design_name}",
            creator_name=creator.name,
            creator_company=creator.company or self.creator_company,
            creator_system=creator.system or self.creator_system,
            creator=" ".join(x for x in (creator.system or self.creator_system,
                                         creator.version) if x),
            post_processor=POST_PROCESSOR,
            post_processor_version=__version__,
            global_unit_length=self.config.unit.value,
            creation_date_time=created,
            modified_date_time=meta.modified or created,
        )
