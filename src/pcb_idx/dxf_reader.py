"""Read mechanical DXF drawings into ECAD designs.

Uses ezdxf to parse DXF entities and classifies them by PCB role
(board outline, cutouts, mounting holes, keepouts). The classified
geometry is scaled to millimetres and turned into an ``EcadDesign`` that
the builder can export.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from pathlib import Path

import ezdxf
from ezdxf.document import Drawing

from .curves import Arc, Circle, Line
from .geometry import Vector2
from .models import (
    Board,
    ClassifiedEntities,
    Constraint,
    ConstraintPurpose,
    ConstraintType,
    Creator,
    DxfCircle,
    DxfInventory,
    DxfPath,
    EcadDesign,
    Hole,
    HoleType,
    Metadata,
)
from .path_assembler import (
    Segment,
    assemble_closed_paths,
    lwpolyline_to_path,
    path_area,
    point_in_path,
)

log = logging.getLogger(__name__)

DEFAULT_THICKNESS = 1.6

# ezdxf $INSUNITS codes -> unit names
_INSUNITS_MAP: dict[int, str | None] = {
    0: None,  # unitless
    1: "in",
    2: "ft",
    4: "mm",
    5: "cm",
    6: "m",
    9: "μm",
}

_UNIT_TO_MM: dict[str, float] = {
    "mm": 1.0,
    "cm": 10.0,
    "m": 1000.0,
    "in": 25.4,
    "ft": 304.8,
    "mil": 0.0254,
    "μm": 0.001,
}

# Largest plausible board extent after scaling
_MAX_BOARD_MM = 5000.0

# Substrings of DXF layer names, checked in this order
_LAYER_PATTERNS: dict[str, list[str]] = {
    "outline": ["outline", "board", "boundary", "profile", "edge", "border"],
    "cutout": ["cutout", "route", "rout", "slot"],
    "hole": ["hole", "drill", "mount"],
    "keepout": ["keepout", "keep-out", "keep_out", "restrict"],
    "annotation": ["dim", "dimension", "note", "text", "anno"],
}

ROLES = ("outline", "cutout", "hole", "keepout", "annotation")


def read_dxf(dxf_path: str | Path) -> DxfInventory:
    """Read a DXF file and return an inventory of its contents.

    Args:
        dxf_path: Path to the DXF file.

    Returns:
        DxfInventory with version, units, per-layer and per-type entity
        counts, and the raw bounding box.
    """
    doc = ezdxf.readfile(dxf_path)
    layer_counts: dict[str, int] = defaultdict(int)
    entity_counts: dict[str, int] = defaultdict(int)
    xs: list[float] = []
    ys: list[float] = []

    for entity in doc.modelspace():
        layer_counts[entity.dxf.layer] += 1
        entity_counts[entity.dxftype()] += 1
        _collect_entity_coords(entity, xs, ys)

    bbox = None
    if xs and ys:
        bbox = (Vector2(min(xs), min(ys)), Vector2(max(xs), max(ys)))

    return DxfInventory(
        filepath=str(dxf_path),
        dxf_version=doc.dxfversion,
        units=_detect_units(doc),
        layers=dict(layer_counts),
        entity_counts=dict(entity_counts),
        bounding_box=bbox,
    )


def classify_entities(
    dxf_path: str | Path,
    layer_map: dict[str, str] | None = None,
    unit: str | None = None,
    tolerance: float = 0.001,
) -> ClassifiedEntities:
    """Read a DXF file and classify its closed shapes by PCB role.

    Args:
        dxf_path: Path to the DXF file.
        layer_map: Optional DXF layer name -> role mapping (see ``ROLES``).
            Layers missing from the map stay unclassified.
        unit: Force the drawing unit ("mm", "in", "mil"); auto-detected if None.
        tolerance: Endpoint snapping distance in millimetres.

    Returns:
        ClassifiedEntities with geometry already scaled to millimetres.
    """
    doc = ezdxf.readfile(dxf_path)
    msp = doc.modelspace()
    scale = _resolve_unit_scale(doc, unit)

    layer_segments: dict[str, list[Segment]] = defaultdict(list)
    paths: list[DxfPath] = []
    circles: list[DxfCircle] = []
    skipped: dict[str, int] = defaultdict(int)

    for entity in msp:
        etype = entity.dxftype()
        layer = entity.dxf.layer
        if etype == "LINE":
            start = _scaled(entity.dxf.start, scale)
            end = _scaled(entity.dxf.end, scale)
            if not start.equals(end, 1e-12):
                layer_segments[layer].append(Line(start, end))
        elif etype == "ARC":
            layer_segments[layer].append(_parse_arc_entity(entity, scale))
        elif etype == "LWPOLYLINE":
            path = _parse_lwpolyline(entity, scale)
            if path is not None:
                paths.append(path)
        elif etype == "CIRCLE":
            circles.append(DxfCircle(
                center=_scaled(entity.dxf.center, scale),
                radius=entity.dxf.radius * scale,
                layer=layer,
            ))
        else:
            skipped[etype] += 1

    for etype, count in sorted(skipped.items()):
        log.warning("Skipped %d unsupported %s entit%s", count, etype,
                    "y" if count == 1 else "ies")

    # LINE/ARC segments only join within their own layer
    assembled: list[DxfPath] = []
    for layer, segments in layer_segments.items():
        assembled.extend(assemble_closed_paths(segments, tolerance, source_layer=layer))
    paths = assembled + paths

    if layer_map:
        result = _classify_by_layer_map(paths, circles, layer_map)
    else:
        result = _classify_by_heuristics(paths, circles)
    result.unit_scale = scale
    return result


def design_from_dxf(
    dxf_path: str | Path,
    layer_map: dict[str, str] | None = None,
    unit: str | None = None,
    thickness: float = DEFAULT_THICKNESS,
    name: str | None = None,
) -> EcadDesign:
    """Build an exportable design from a mechanical DXF drawing.

    The outline becomes the board, closed interior paths become cutouts,
    circles inside the outline become non-plated holes through the whole
    board, and keepout paths become route keepouts.

    Raises:
        ValueError: No closed board outline was found.
    """
    classified = classify_entities(dxf_path, layer_map, unit)
    if classified.outline is None:
        msg = f"No closed board outline found in {dxf_path}"
        raise ValueError(msg)

    design_name = name or Path(dxf_path).stem
    board = Board(
        name=design_name,
        outline=classified.outline.polyline,
        thickness=thickness,
        cutouts=[p.polyline for p in classified.cutouts],
    )
    holes = [
        Hole(
            name=f"H{i}",
            geometry=Circle(c.center, c.radius),
            type=HoleType.NPTH,
            z_range=(0.0, thickness),
        )
        for i, c in enumerate(classified.holes, start=1)
    ]
    constraints = [
        Constraint(
            name=f"KEEPOUT_{i}",
            type=ConstraintType.KEEPOUT,
            geometry=p.polyline,
            purpose=ConstraintPurpose.ROUTE,
        )
        for i, p in enumerate(classified.keepouts, start=1)
    ]
    if classified.unclassified_paths or classified.unclassified_circles:
        log.info(
            "Ignoring %d unclassified paths and %d circles",
            len(classified.unclassified_paths),
            len(classified.unclassified_circles),
        )
    return EcadDesign(
        metadata=Metadata(
            design_name=design_name,
            description=f"Imported from {Path(dxf_path).name}",
            creator=Creator(name="pcb-idx", system="DXF"),
        ),
        board=board,
        holes=holes,
        constraints=constraints,
    )


# --- Units ---


def _detect_units(doc: Drawing) -> str | None:
    """Unit name from the $INSUNITS header variable, if recognised."""
    return _INSUNITS_MAP.get(doc.header.get("$INSUNITS", 0))


def _resolve_unit_scale(doc: Drawing, forced_unit: str | None) -> float:
    """Determine the drawing-unit to millimetre factor.

    Priority:
    1. Forced unit from the caller
    2. $INSUNITS, unless it makes the drawing implausibly large
    3. Extent heuristic: above 500 units means mils, otherwise millimetres
    """
    if forced_unit:
        if forced_unit not in _UNIT_TO_MM:
            msg = f"Unknown unit {forced_unit!r}; expected one of {', '.join(_UNIT_TO_MM)}"
            raise ValueError(msg)
        return _UNIT_TO_MM[forced_unit]

    xs: list[float] = []
    ys: list[float] = []
    for entity in doc.modelspace():
        _collect_entity_coords(entity, xs, ys)
    extent = max(max(xs) - min(xs), max(ys) - min(ys)) if xs and ys else 0.0

    detected = _detect_units(doc)
    if detected is not None:
        scale = _UNIT_TO_MM[detected]
        if extent * scale <= _MAX_BOARD_MM:
            return scale
        log.warning("$INSUNITS says %s but the drawing would be %.0f mm wide; guessing",
                    detected, extent * scale)

    if extent > 500:
        log.warning("Assuming mils for a drawing %.0f units wide; use --unit to override",
                    extent)
        return _UNIT_TO_MM["mil"]
    return 1.0


def _scaled(point, scale: float) -> Vector2:
    return Vector2(point.x * scale, point.y * scale)


def _collect_entity_coords(entity, xs: list[float], ys: list[float]) -> None:
    """Representative raw coordinates of an entity, for extents."""
    etype = entity.dxftype()
    if etype == "LINE":
        xs.extend([entity.dxf.start.x, entity.dxf.end.x])
        ys.extend([entity.dxf.start.y, entity.dxf.end.y])
    elif etype in ("CIRCLE", "ARC"):
        cx, cy = entity.dxf.center.x, entity.dxf.center.y
        r = entity.dxf.radius
        xs.extend([cx - r, cx + r])
        ys.extend([cy - r, cy + r])
    elif etype == "LWPOLYLINE":
        for x, y, *_ in entity.get_points(format="xyseb"):
            xs.append(x)
            ys.append(y)


# --- Entity parsing ---


def _parse_arc_entity(entity, scale: float) -> Arc:
    """DXF arcs run counterclockwise from start_angle to end_angle (degrees)."""
    start = math.radians(entity.dxf.start_angle)
    sweep = math.radians((entity.dxf.end_angle - entity.dxf.start_angle) % 360.0)
    if sweep == 0:
        sweep = math.tau
    return Arc.circular(
        _scaled(entity.dxf.center, scale), entity.dxf.radius * scale, start, sweep,
    )


def _parse_lwpolyline(entity, scale: float) -> DxfPath | None:
    """Closed LWPOLYLINEs become paths; open ones are skipped."""
    if not entity.closed:
        log.debug("Skipping open LWPOLYLINE on layer %s", entity.dxf.layer)
        return None
    # xyseb: x, y, start width, end width, bulge
    raw = list(entity.get_points(format="xyseb"))
    points = [(p[0] * scale, p[1] * scale) for p in raw]
    bulges = [p[4] for p in raw]
    if len(points) < 2:
        return None
    return lwpolyline_to_path(points, bulges, entity.dxf.layer)


# --- Classification ---


def _classify_layer(layer_name: str) -> str | None:
    lower = layer_name.lower()
    for role, patterns in _LAYER_PATTERNS.items():
        if any(pattern in lower for pattern in patterns):
            return role
    return None


def _largest(paths: list[DxfPath]) -> DxfPath:
    return max(paths, key=lambda p: abs(path_area(p)))


def _classify_by_layer_map(
    paths: list[DxfPath],
    circles: list[DxfCircle],
    layer_map: dict[str, str],
) -> ClassifiedEntities:
    """Classify entities using an explicit layer -> role mapping."""
    result = ClassifiedEntities()
    outline_candidates: list[DxfPath] = []
    for path in paths:
        role = layer_map.get(path.source_layer)
        if role == "outline":
            outline_candidates.append(path)
        elif role == "cutout":
            result.cutouts.append(path)
        elif role == "keepout":
            result.keepouts.append(path)
        else:
            result.unclassified_paths.append(path)

    if outline_candidates:
        result.outline = _largest(outline_candidates)
        outline_candidates.remove(result.outline)
        result.unclassified_paths.extend(outline_candidates)

    for circle in circles:
        if layer_map.get(circle.layer) == "hole":
            result.holes.append(circle)
        else:
            result.unclassified_circles.append(circle)
    return result


def _classify_by_heuristics(
    paths: list[DxfPath],
    circles: list[DxfCircle],
) -> ClassifiedEntities:
    """Classify by layer name first, then by containment in the outline."""
    result = ClassifiedEntities()
    outline_candidates: list[DxfPath] = []
    unresolved_paths: list[DxfPath] = []
    unresolved_circles: list[DxfCircle] = []

    for path in paths:
        role = _classify_layer(path.source_layer)
        if role == "outline":
            outline_candidates.append(path)
        elif role == "cutout":
            result.cutouts.append(path)
        elif role == "keepout":
            result.keepouts.append(path)
        elif role == "annotation":
            result.unclassified_paths.append(path)
        else:
            unresolved_paths.append(path)

    for circle in circles:
        if _classify_layer(circle.layer) == "hole":
            result.holes.append(circle)
        else:
            unresolved_circles.append(circle)

    if outline_candidates:
        result.outline = _largest(outline_candidates)
        outline_candidates.remove(result.outline)
        unresolved_paths.extend(outline_candidates)
    elif unresolved_paths:
        result.outline = _largest(unresolved_paths)
        unresolved_paths.remove(result.outline)

    if result.outline is None:
        result.unclassified_paths.extend(unresolved_paths)
        result.unclassified_circles.extend(unresolved_circles)
        return result

    for path in unresolved_paths:
        if point_in_path(path.polyline.bounds().center, result.outline):
            result.cutouts.append(path)
        else:
            result.unclassified_paths.append(path)
    for circle in unresolved_circles:
        if point_in_path(circle.center, result.outline):
            result.holes.append(circle)
        else:
            result.unclassified_circles.append(circle)
    return result
