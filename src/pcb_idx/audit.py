"""Read back an emitted IDX file and check it.

Produces an inventory of the document (element tags, xsi:types, item
geometry types) and lists every reference whose target id is never
declared, or is declared only after the reference.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
import zipfile
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from .namespaces import NAMESPACE_URIS, Namespace

log = logging.getLogger(__name__)

_PREFIXES = {uri: ns.value for ns, uri in NAMESPACE_URIS.items()}
_XSI_TYPE = f"{{{Namespace.XSI.uri}}}type"

# Elements whose text content is the id of another entity
REFERENCE_TAGS = frozenset({
    "Point", "StartPoint", "MidPoint", "EndPoint", "CenterPoint", "Vector",
    "Curve", "DetailedGeometricModelElement", "DefiningShape", "ShapeElement",
    "Stratum", "StratumTechnology", "Shape", "EDMD3DModel", "Item",
})


@dataclass
class Reference:
    tag: str
    target: str
    problem: str  # "dangling" | "forward"


@dataclass
class AuditReport:
    path: str
    tags: Counter = field(default_factory=Counter)
    xsi_types: Counter = field(default_factory=Counter)
    geometry_types: Counter = field(default_factory=Counter)
    ids: int = 0
    bad_references: list[Reference] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.bad_references


def _short(tag: str) -> str:
    """Turn ``{uri}Local`` into ``prefix:Local``."""
    if tag.startswith("{"):
        uri, local = tag[1:].split("}", 1)
        return f"{_PREFIXES.get(uri, uri)}:{local}"
    return tag


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _read_root(path: Path) -> ET.Element:
    if path.suffix.lower() == ".idz":
        with zipfile.ZipFile(path) as zf:
            names = zf.namelist()
            if not names:
                msg = f"{path} is an empty archive"
                raise ValueError(msg)
            return ET.fromstring(zf.read(names[0]))
    return ET.parse(path).getroot()


def audit_file(path: str | Path) -> AuditReport:
    """Audit an ``.idx`` file, or the first member of an ``.idz`` archive.

    Raises:
        ET.ParseError: The file is not well-formed XML.
    """
    path = Path(path)
    root = _read_root(path)
    report = AuditReport(path=str(path))

    all_ids = {elem.get("id") for elem in root.iter() if elem.get("id")}
    report.ids = len(all_ids)

    seen: set[str] = set()
    for elem in root.iter():
        if not isinstance(elem.tag, str):
            continue
        report.tags[_short(elem.tag)] += 1
        xsi_type = elem.get(_XSI_TYPE)
        if xsi_type:
            report.xsi_types[xsi_type] += 1
        geometry_type = elem.get("geometryType")
        if geometry_type:
            report.geometry_types[geometry_type] += 1

        entity_id = elem.get("id")
        if entity_id:
            seen.add(entity_id)
        elif _local(elem.tag) in REFERENCE_TAGS and len(elem) == 0:
            target = (elem.text or "").strip()
            if target in seen:
                continue
            problem = "forward" if target in all_ids else "dangling"
            report.bad_references.append(Reference(_short(elem.tag), target, problem))

    log.info("Audited %s: %d ids, %d bad references", path, report.ids,
             len(report.bad_references))
    return report


def format_report(report: AuditReport) -> str:
    lines = [f"File: {report.path}", f"Ids: {report.ids}", "", "xsi:types:"]
    for name, count in sorted(report.xsi_types.items()):
        lines.append(f"  {name:<50s} {count:>6d}")
    if report.geometry_types:
        lines.append("")
        lines.append("geometryType:")
        for name, count in sorted(report.geometry_types.items()):
            lines.append(f"  {name:<50s} {count:>6d}")
    lines.append("")
    if report.ok:
        lines.append("References: all resolved")
    else:
        lines.append(f"References: {len(report.bad_references)} problem(s)")
        for ref in report.bad_references:
            lines.append(f"  {ref.problem:<9s} {ref.tag} -> {ref.target}")
    return "\n".join(lines)
