"""Serialize an EDMD document graph to IDX XML.

Elements are created with literal ``prefix:tag`` names and the namespace
declarations are written as plain attributes on the root, so ElementTree
emits them verbatim and in a fixed order. Output is a pure function of the
document and the write configuration.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field

from .config import NumberFormatting, WriteConfig
from .document import (
    ArcGeometry,
    AssemblyComponent,
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
    PolyLineGeometry,
    ShapeElement,
    Stratum,
    StratumTechnology,
    ThirdItem,
    Transformation,
    Transformation3D,
    UserProperty,
)
from .errors import InternalSerializationError
from .namespaces import NAMESPACE_URIS, Namespace, is_reserved_prefix, qualify

log = logging.getLogger(__name__)

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>'

_FOUNDATION = Namespace.FOUNDATION
_PDM = Namespace.PDM

_SECTIONS: dict[str, tuple[str, str]] = {
    "header": ("Header", "File metadata and global context"),
    "body": ("Body", "Exchanged design data"),
    "points": ("Points", "Cartesian points"),
    "geometries": ("Geometries", "Curves built from points"),
    "curve_sets": ("CurveSets", "Curves extruded between Z bounds"),
    "shape_elements": ("ShapeElements", "Shape semantics for curve sets"),
    "third_items": ("ThirdItems", "Strata, features and constraint areas"),
    "layers": ("Layers", "Layer and stackup definitions"),
    "models": ("Models3D", "External 3D model references"),
    "packages": ("Packages", "Reusable footprint definitions"),
    "item_singles": ("ItemSingles", "Item definitions"),
    "item_assemblies": ("ItemAssemblies", "Item instances and placements"),
    "process": ("ProcessInstruction", "Send information"),
}


def format_number(value: float, formatting: NumberFormatting) -> str:
    """Format ``value`` with a fixed number of decimals.

    >>> format_number(1.5, NumberFormatting(decimal_places=3))
    '1.5'
    >>> format_number(-0.0001, NumberFormatting(decimal_places=3))
    '0'
    """
    text = f"{float(value):.{formatting.decimal_places}f}"
    if formatting.remove_trailing_zeros and "." in text:
        text = text.rstrip("0").rstrip(".")
    if text.lstrip("-").strip("0.") == "":
        text = text.lstrip("-")
    return text


def format_value(value: object, formatting: NumberFormatting) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value, formatting)
    return str(value)


class IdxSerializer:
    """Stateless XML writer; every ``serialize`` call gets its own context."""

    def __init__(self, config: WriteConfig | None = None):
        self.config = config or WriteConfig()

    def serialize(self, document: Document) -> str:
        ctx = _WriteContext(self.config)
        root = ctx.write(document)
        if self.config.pretty_print:
            ET.indent(root, space="  ")
        text = ET.tostring(root, encoding="unicode")
        separator = "\n" if self.config.pretty_print else ""
        result = f"{XML_DECLARATION}{separator}{text}"
        if self.config.pretty_print:
            result += "\n"
        log.debug("Serialized %d entities into %d bytes", document.entity_count(),
                  len(result.encode("utf-8")))
        return result


def serialize_document(document: Document, config: WriteConfig | None = None) -> str:
    return IdxSerializer(config).serialize(document)


# --- Per-call state ---


@dataclass
class _WriteContext:
    config: WriteConfig
    declared: set[str] = field(default_factory=set)

    # --- Element helpers ---

    def fmt(self, value: object) -> str:
        return format_value(value, self.config.number_formatting)

    def sub(
        self,
        parent: ET.Element,
        tag: str,
        text: object | None = None,
        namespace: Namespace | None = None,
        **attrs: str,
    ) -> ET.Element:
        elem = ET.SubElement(parent, qualify(tag, namespace), attrs)
        if text is not None:
            elem.text = self.fmt(text)
        return elem

    def entity(
        self,
        parent: ET.Element,
        tag: str,
        entity_id: str,
        xsi_type: str,
        namespace: Namespace | None = None,
        **attrs: str,
    ) -> ET.Element:
        self.declared.add(entity_id)
        elem = ET.SubElement(
            parent,
            qualify(tag, namespace),
            {"id": entity_id, **attrs, "xsi:type": xsi_type},
        )
        return elem

    def ref(self, parent: ET.Element, tag: str, target: str,
            namespace: Namespace | None = None) -> ET.Element:
        if target not in self.declared:
            msg = f"Reference to undeclared id {target!r} from <{tag}>"
            raise InternalSerializationError(msg, reference=target, field=tag)
        return self.sub(parent, tag, target, namespace)

    def length(self, parent: ET.Element, tag: str, value: float,
               namespace: Namespace | None = None) -> ET.Element:
        wrapper = self.sub(parent, tag, namespace=namespace,
                           **{"xsi:type": "property:EDMDLengthProperty"})
        self.sub(wrapper, "Value", value)
        return wrapper

    def comment(self, parent: ET.Element, section: str) -> None:
        if not self.config.enable_comments:
            return
        name, desc = _SECTIONS[section]
        parent.append(ET.Comment(f"============={name}: {desc}============="))

    def named(self, elem: ET.Element, name: str | None, description: str | None) -> None:
        if name:
            self.sub(elem, "Name", name)
        if description:
            self.sub(elem, "Description", description)

    # --- Document ---

    def write(self, document: Document) -> ET.Element:
        root = ET.Element(qualify("EDMDDataSet"))
        for ns, uri in NAMESPACE_URIS.items():
            root.set(f"xmlns:{ns.value}", uri)
        for prefix, uri in self.config.extra_namespaces.items():
            if is_reserved_prefix(prefix):
                log.warning("Skipping extra namespace %r: prefix is reserved", prefix)
                continue
            root.set(f"xmlns:{prefix}", uri)

        self.comment(root, "header")
        self.header(root, document.header)
        self.comment(root, "body")
        body = self.sub(root, "Body", **{"xsi:type": "foundation:EDMDDataSetBody"})
        self.body(body, document)
        self.comment(root, "process")
        pi = self.sub(
            root,
            "ProcessInstruction",
            **{"xsi:type": "computational:EDMDProcessInstructionSendInformation"},
        )
        self.sub(pi, "Actor", document.process_instruction.actor)
        self.sub(pi, "Description", document.process_instruction.description)
        return root

    def header(self, root: ET.Element, header: Header) -> None:
        elem = self.sub(root, "Header", **{"xsi:type": "foundation:EDMDHeader"})
        self.sub(elem, "Description", header.description)
        self.sub(elem, "CreatorName", header.creator_name)
        self.sub(elem, "CreatorCompany", header.creator_company)
        self.sub(elem, "CreatorSystem", header.creator_system)
        self.sub(elem, "Creator", header.creator)
        self.sub(elem, "PostProcessor", header.post_processor)
        self.sub(elem, "PostProcessorVersion", header.post_processor_version)
        self.sub(elem, "GlobalUnitLength", header.global_unit_length)
        self.sub(elem, "CreationDateTime", header.creation_date_time)
        self.sub(elem, "ModifiedDateTime", header.modified_date_time)

    def body(self, body: ET.Element, document: Document) -> None:
        groups = document.body
        writers = {
            "points": self.point,
            "geometries": self.geometry,
            "curve_sets": self.curve_set,
            "shape_elements": self.shape_element,
            "third_items": self.third_item,
            "layers": self.item_assembly,
            "models": self.model,
            "packages": self.item_single,
            "item_singles": self.item_single,
            "item_assemblies": self.item_assembly,
        }
        for group in groups.GROUPS:
            entities = getattr(groups, group)
            if not entities:
                continue
            self.comment(body, group)
            write = writers[group]
            for entity in entities:
                write(body, entity)

    # --- Geometry ---

    def point(self, body: ET.Element, point: CartesianPoint) -> None:
        elem = self.entity(body, "CartesianPoint", point.id, "d2:EDMDCartesianPoint")
        self.length(elem, "X", point.x)
        self.length(elem, "Y", point.y)

    def geometry(self, body: ET.Element, geo: Geometry) -> None:
        match geo:
            case PolyLineGeometry():
                elem = self.entity(body, "PolyLine", geo.id, "d2:EDMDPolyLine")
                for point_id in geo.point_ids:
                    self.ref(elem, "Point", point_id)
            case ArcGeometry():
                elem = self.entity(body, "Arc", geo.id, "d2:EDMDArc")
                self.ref(elem, "StartPoint", geo.start_id)
                self.ref(elem, "MidPoint", geo.mid_id)
                self.ref(elem, "EndPoint", geo.end_id)
            case CircleGeometry():
                elem = self.entity(body, "CircleCenter", geo.id, "d2:EDMDCircleCenter")
                self.ref(elem, "CenterPoint", geo.center_id)
                self.length(elem, "Diameter", geo.diameter)
            case CompositeCurveGeometry():
                elem = self.entity(body, "CompositeCurve", geo.id, "d2:EDMDCompositeCurve")
                for curve_id in geo.curve_ids:
                    self.ref(elem, "Curve", curve_id)
            case LineGeometry():
                elem = self.entity(body, "Line", geo.id, "d2:EDMDLine")
                self.ref(elem, "Point", geo.start_id)
                self.ref(elem, "Vector", geo.end_id)
            case _:
                msg = f"Cannot serialize geometry {type(geo).__name__}"
                raise InternalSerializationError(msg)

    def curve_set(self, body: ET.Element, cs: CurveSet) -> None:
        elem = self.entity(body, "CurveSet2d", cs.id, "d2:EDMDCurveSet2d")
        self.sub(elem, "ShapeDescriptionType", cs.shape_description_type)
        self.length(elem, "LowerBound", cs.lower_bound)
        self.length(elem, "UpperBound", cs.upper_bound)
        for geometry_id in cs.geometry_ids:
            self.ref(elem, "DetailedGeometricModelElement", geometry_id)

    def shape_element(self, body: ET.Element, se: ShapeElement) -> None:
        elem = self.entity(body, "ShapeElement", se.id, "pdm:EDMDShapeElement", _FOUNDATION)
        self.named(elem, se.name, None)
        self.sub(elem, "ShapeElementType", se.shape_element_type)
        self.sub(elem, "Inverted", se.inverted)
        self.ref(elem, "DefiningShape", se.curve_set_id)

    # --- Third items ---

    def third_item(self, body: ET.Element, item: ThirdItem) -> None:
        tag = item.kind.value
        elem = self.entity(body, tag, item.id, f"pdm:EDMD{tag}", _FOUNDATION)
        self.named(elem, item.name, None)
        match item:
            case Stratum():
                for se_id in item.shape_element_ids:
                    self.ref(elem, "ShapeElement", se_id, _PDM)
                self.sub(elem, "StratumType", item.stratum_type)
                if item.surface_designation:
                    self.sub(elem, "StratumSurfaceDesignation", item.surface_designation)
                if item.technology_id:
                    self.ref(elem, "StratumTechnology", item.technology_id, _PDM)
            case AssemblyComponent():
                self.ref(elem, "ShapeElement", item.shape_element_id, _PDM)
                self.sub(elem, "AssemblyComponentType", item.component_type)
            case InterStratumFeature():
                self.ref(elem, "ShapeElement", item.shape_element_id, _PDM)
                self.sub(elem, "InterStratumFeatureType", item.feature_type)
                if item.stratum_id:
                    self.ref(elem, "Stratum", item.stratum_id, _PDM)
            case KeepOut() | KeepIn():
                self.ref(elem, "ShapeElement", item.shape_element_id, _PDM)
                self.sub(elem, "Purpose", item.purpose)
            case FunctionalItemShape():
                self.ref(elem, "ShapeElement", item.shape_element_id, _PDM)
                self.sub(elem, "FunctionalItemShapeType", item.shape_type)
            case StratumTechnology():
                self.sub(elem, "TechnologyType", item.technology_type)
                self.sub(elem, "LayerPurpose", item.layer_purpose)
            case _:
                msg = f"Cannot serialize third item {type(item).__name__}"
                raise InternalSerializationError(msg, reference=item.id)

    # --- Models ---

    def model(self, body: ET.Element, model: Model3DRecord) -> None:
        elem = self.entity(body, "Model3D", model.id, "pdm:EDMDModel3D")
        self.sub(elem, "ModelIdentifier", model.identifier)
        self.sub(elem, "MCADFormat", model.mcad_format)
        if model.version:
            self.sub(elem, "ModelVersion", model.version)
        if model.location:
            self.sub(elem, "ModelLocation", model.location)
        if model.transformation is not None:
            self.transformation(elem, model.transformation)

    def transformation(self, parent: ET.Element, t: Transformation) -> None:
        elem = self.sub(parent, "Transformation")
        self.sub(elem, "TransformationType", t.kind)
        if isinstance(t, Transformation3D):
            for name in ("xx", "xy", "xz", "yx", "yy", "yz", "zx", "zy", "zz"):
                self.sub(elem, name, getattr(t, name))
            self.length(elem, "tx", t.tx)
            self.length(elem, "ty", t.ty)
            self.length(elem, "tz", t.tz)
        else:
            for name in ("xx", "xy", "yx", "yy"):
                self.sub(elem, name, getattr(t, name))
            self.length(elem, "tx", t.tx)
            self.length(elem, "ty", t.ty)

    # --- Items ---

    def identifier(self, parent: ET.Element, ident: Identifier) -> None:
        elem = self.sub(parent, "Identifier")
        self.sub(elem, "SystemScope", ident.system_scope)
        self.sub(elem, "Number", ident.number, _FOUNDATION)
        self.sub(elem, "Version", str(ident.version), _FOUNDATION)
        self.sub(elem, "Revision", str(ident.revision), _FOUNDATION)
        self.sub(elem, "Sequence", str(ident.sequence), _FOUNDATION)

    def object_name(self, parent: ET.Element, tag: str, scope: str, name: str) -> None:
        elem = self.sub(parent, tag)
        self.sub(elem, "SystemScope", scope)
        self.sub(elem, "ObjectName", name)

    def baseline(self, parent: ET.Element, value: bool) -> None:
        elem = self.sub(parent, "BaseLine")
        self.sub(elem, "Value", value)

    def user_properties(self, parent: ET.Element, props: tuple[UserProperty, ...]) -> None:
        for prop in props:
            elem = self.sub(parent, "UserProperty",
                            **{"xsi:type": "property:EDMDUserSimpleProperty"})
            for tag, flag in (
                ("IsChanged", prop.is_changed),
                ("IsNew", prop.is_new),
                ("Persistent", prop.persistent),
                ("IsOriginator", prop.is_originator),
            ):
                if flag is not None:
                    self.sub(elem, tag, flag)
            self.object_name(elem, "Key", prop.system_scope, prop.key)
            self.sub(elem, "Value", prop.value)

    def item_single(self, body: ET.Element, item: ItemSingle) -> None:
        elem = self.entity(body, "Item", item.id, "pdm:EDMDItem", _FOUNDATION)
        self.named(elem, item.name, item.description)
        self.sub(elem, "ItemType", item.kind.value)
        self.identifier(elem, item.identifier)
        if item.package_name:
            self.object_name(elem, "PackageName", item.identifier.system_scope,
                             item.package_name)
        self.ref(elem, "Shape", item.shape_id)
        for pin in item.package_pins:
            pin_elem = self.sub(elem, "PackagePin", pinNumber=pin.pin_number,
                                primary=self.fmt(pin.primary))
            self.ref(pin_elem, "Point", pin.point_id)
            if pin.shape_id is not None:
                self.ref(pin_elem, "Shape", pin.shape_id)
        if item.model3d_id is not None:
            self.ref(elem, "EDMD3DModel", item.model3d_id)
        self.baseline(elem, item.baseline)
        self.user_properties(elem, item.user_properties)

    def item_assembly(self, body: ET.Element, item: ItemAssembly) -> None:
        attrs = {}
        if item.geometry_type:
            attrs["geometryType"] = item.geometry_type
        elem = self.entity(body, "Item", item.id, "pdm:EDMDItem", _FOUNDATION, **attrs)
        self.named(elem, item.name, item.description)
        self.sub(elem, "ItemType", item.kind.value)
        self.identifier(elem, item.identifier)
        for instance in item.instances:
            self.item_instance(elem, instance)
        if item.assemble_to_name:
            self.sub(elem, "AssembleToName", item.assemble_to_name)
        if item.reference_name:
            self.sub(elem, "ReferenceName", item.reference_name)
        self.baseline(elem, item.baseline)
        self.user_properties(elem, item.user_properties)

    def item_instance(self, parent: ET.Element, instance: ItemInstance) -> None:
        attrs = {}
        if instance.z_offset is not None:
            attrs["zOffset"] = self.fmt(instance.z_offset)
        elem = self.entity(parent, "ItemInstance", instance.id, "pdm:EDMDItemInstance",
                           **attrs)
        self.named(elem, instance.name, instance.description)
        self.ref(elem, "Item", instance.item_id, _PDM)
        self.object_name(elem, "InstanceName", instance.system_scope, instance.instance_name)
        if instance.transformation is not None:
            self.transformation(elem, instance.transformation)
        self.user_properties(elem, instance.user_properties)
