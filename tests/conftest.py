"""Shared design fixtures."""

from __future__ import annotations

import pytest

from pcb_idx.curves import Circle, Rect
from pcb_idx.geometry import Vector2
from pcb_idx.models import (
    Board,
    Component,
    Constraint,
    ConstraintPurpose,
    ConstraintType,
    Creator,
    EcadDesign,
    Footprint,
    Hole,
    HoleType,
    Layer,
    LayerType,
    Metadata,
    Model3D,
    Pin,
    Placement,
    Stackup,
)
from pcb_idx.polyline import Polyline


def make_metadata(name: str = "Demo") -> Metadata:
    return Metadata(
        design_name=name,
        creator=Creator(name="tester", company="ACME", system="TestCAD", version="1.0"),
        created="2024-01-01T00:00:00Z",
    )


def rect_board(width: float = 100.0, height: float = 80.0, thickness: float = 1.6) -> EcadDesign:
    """A bare rectangular board with a fixed thickness."""
    return EcadDesign(
        metadata=make_metadata(),
        board=Board(
            name="MainBoard",
            outline=Rect(Vector2(0, 0), width, height),
            thickness=thickness,
        ),
    )


def full_design() -> EcadDesign:
    """Board on a three-layer stackup with one part, one via and a keepout."""
    layers = [
        Layer("L_BOT", "Bottom", LayerType.SIGNAL, 0.035, material="Copper"),
        Layer("L_CORE", "Core", LayerType.DIELECTRIC, 1.5, material="FR4"),
        Layer("L_TOP", "Top", LayerType.SIGNAL, 0.035, material="Copper", color="#B87333"),
    ]
    footprint = Footprint(
        name="SOIC8",
        outline=Rect.from_center(Vector2(0, 0), 5.0, 4.0),
        pins=[
            Pin("1", Vector2(-1.905, -2.7), primary=True, shape=Rect.from_center(
                Vector2(-1.905, -2.7), 0.6, 1.5)),
            Pin("2", Vector2(-0.635, -2.7)),
        ],
        model3d_id="M_SOIC",
    )
    return EcadDesign(
        metadata=make_metadata(),
        board=Board(
            name="MainBoard",
            outline=Polyline.from_points(
                [Vector2(0, 0), Vector2(50, 0), Vector2(50, 30), Vector2(0, 30)],
                close_path=True,
            ),
            stackup_id="STK",
            user_properties={"REVISION": "A"},
        ),
        layers=layers,
        stackups=[Stackup("STK", "Stackup4", ["L_BOT", "L_CORE", "L_TOP"])],
        models=[
            Model3D("M_SOIC", "models/soic8.step"),
            Model3D("M_ALT", "models/soic8_alt.stp"),
        ],
        footprints=[footprint],
        components=[
            Component(
                name="U1",
                package_name="SOIC8",
                layer_id="L_TOP",
                placement=Placement(x=10.0, y=15.0, rotation=90.0),
                value="LM358",
                part_number="LM358DR",
            ),
        ],
        holes=[
            Hole(
                name="V1",
                geometry=Circle(Vector2(25, 15), 0.15),
                type=HoleType.VIA,
                stackup_id="STK",
            ),
        ],
        constraints=[
            Constraint(
                name="KO1",
                type=ConstraintType.KEEPOUT,
                geometry=Rect(Vector2(40, 20), 5, 5),
                purpose=ConstraintPurpose.COMPONENT,
                layer_id="L_TOP",
            ),
        ],
    )


@pytest.fixture
def board_design() -> EcadDesign:
    return rect_board()


@pytest.fixture
def design() -> EcadDesign:
    return full_design()
