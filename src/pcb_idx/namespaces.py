"""IDX namespace prefixes and the static tag-to-namespace table.

Every tag the serializer writes belongs to one of seven fixed namespaces.
The table is built once at import time. Tags that appear in more than one
vocabulary (``Item``, ``Number``, ``Stratum``...) are ambiguous and must be
qualified with an explicit namespace.
"""

from __future__ import annotations

from enum import Enum

from .errors import ConfigurationError


class Namespace(Enum):
    FOUNDATION = "foundation"
    PDM = "pdm"
    D2 = "d2"
    PROPERTY = "property"
    COMPUTATIONAL = "computational"
    ADMINISTRATION = "administration"
    XSI = "xsi"

    @property
    def uri(self) -> str:
        return NAMESPACE_URIS[self]


# Declaration order on the root element.
NAMESPACE_URIS: dict[Namespace, str] = {
    Namespace.FOUNDATION: "http://www.prostep.org/EDMD/Foundation",
    Namespace.PDM: "http://www.prostep.org/EDMD/PDM",
    Namespace.D2: "http://www.prostep.org/EDMD/2D",
    Namespace.PROPERTY: "http://www.prostep.org/EDMD/Property",
    Namespace.COMPUTATIONAL: "http://www.prostep.org/EDMD/Computational",
    Namespace.ADMINISTRATION: "http://www.prostep.org/EDMD/Administration",
    Namespace.XSI: "http://www.w3.org/2001/XMLSchema-instance",
}

RESERVED_PREFIXES = frozenset(ns.value for ns in Namespace)

# --- Tag vocabularies ---

_FOUNDATION_TAGS = """
    EDMDDataSet Header EDMDHeader Body EDMDDataSetBody ProcessInstruction Item
    ShapeElement InterStratumFeature CurveSet2d CartesianPoint Name Description
    SystemScope ObjectName GlobalUnitLength CreationDateTime ModifiedDateTime
    CreatorName CreatorCompany CreatorSystem PostProcessor PostProcessorVersion
    Creator Number Version Revision Sequence Stratum AssemblyComponent KeepOut
    KeepIn StratumTechnology FunctionalItemShape Model3D UserProperty
"""

_PDM_TAGS = """
    Item ItemType Identifier Number Version Revision Sequence ItemInstance
    InstanceName PackageName Shape Transformation TransformationType BaseLine
    AssembleToName ReferenceName Stratum StratumType StratumSurfaceDesignation
    StratumTechnology TechnologyType LayerPurpose ShapeDescriptionType
    ShapeElementType ShapeElement DefiningShape AssemblyComponentType
    InterStratumFeatureType ModelIdentifier Purpose FunctionalItemShapeType
    MCADFormat ModelVersion ModelLocation MCADFormatVersion
    TransformationReference InstanceUserAreaLayerName Inverted PackagePin
    EDMD3DModel xx xy xz yx yy yz zx zy zz tx ty tz
    EDMDItem EDMDItemInstance EDMDShapeElement EDMDStratum
    EDMDStratumTechnology EDMDAssemblyComponent EDMDInterStratumFeature
    EDMDKeepOut EDMDKeepIn EDMDFunctionalItemShape EDMDModel3D
"""

_D2_TAGS = """
    X Y Z LowerBound UpperBound DetailedGeometricModelElement PolyLine Point
    Thickness Arc CircleCenter CompositeCurve Line Vector StartPoint MidPoint
    EndPoint CenterPoint Diameter Curve EDMDCartesianPoint EDMDPolyLine
    EDMDArc EDMDCircleCenter EDMDCompositeCurve EDMDLine EDMDCurveSet2d
"""

_PROPERTY_TAGS = """
    EDMDUserSimpleProperty EDMDLengthProperty EDMDLogicProperty EDMDProperty
    Key Value IsChanged IsNew Persistent IsOriginator IsAttributeChanged
"""

_COMPUTATIONAL_TAGS = """
    EDMDProcessInstructionSendInformation Actor
"""

_ADMINISTRATION_TAGS = """
    RoleOnItemInstance RoleName RoleType Category Function Context
"""

_XSI_TAGS = "type schemaLocation nil"


def _build_table() -> tuple[dict[str, Namespace], frozenset[str]]:
    vocabularies = [
        (Namespace.FOUNDATION, _FOUNDATION_TAGS),
        (Namespace.PDM, _PDM_TAGS),
        (Namespace.D2, _D2_TAGS),
        (Namespace.PROPERTY, _PROPERTY_TAGS),
        (Namespace.COMPUTATIONAL, _COMPUTATIONAL_TAGS),
        (Namespace.ADMINISTRATION, _ADMINISTRATION_TAGS),
        (Namespace.XSI, _XSI_TAGS),
    ]
    table: dict[str, Namespace] = {}
    ambiguous: set[str] = set()
    for ns, words in vocabularies:
        for tag in words.split():
            if tag in table and table[tag] is not ns:
                ambiguous.add(tag)
            else:
                table[tag] = ns
    for tag in ambiguous:
        del table[tag]
    return table, frozenset(ambiguous)


TAG_NAMESPACES, AMBIGUOUS_TAGS = _build_table()


def namespace_of(tag: str) -> Namespace:
    """Return the single namespace owning ``tag``.

    Raises:
        ConfigurationError: The tag is unknown or belongs to several namespaces.
    """
    ns = TAG_NAMESPACES.get(tag)
    if ns is not None:
        return ns
    if tag in AMBIGUOUS_TAGS:
        msg = f"Tag {tag!r} exists in several namespaces; qualify it explicitly"
    else:
        msg = f"Unknown IDX tag {tag!r}"
    raise ConfigurationError(msg, reference=tag)


def qualify(tag: str, namespace: Namespace | None = None) -> str:
    """Return ``"prefix:tag"``, using ``namespace`` when given."""
    ns = namespace if namespace is not None else namespace_of(tag)
    return f"{ns.value}:{tag}"


def is_reserved_prefix(prefix: str) -> bool:
    return prefix in RESERVED_PREFIXES
