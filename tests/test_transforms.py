"""Tests for component placement transforms, including bottom-side mirroring."""

from __future__ import annotations

import pytest

from pcb_idx.document import Transformation2D, Transformation3D
from pcb_idx.errors import GeometryError
from pcb_idx.geometry import Vector2
from pcb_idx.models import Placement
from pcb_idx.transforms import placement_matrix, to_transformation


class TestPlacementMatrix:

    def test_translation_only(self):
        m = placement_matrix(Placement(x=5, y=-3))
        assert m.transform_vector(Vector2(1, 1)) == Vector2(6, -2)

    def test_rotation_then_translation(self):
        m = placement_matrix(Placement(x=10, y=0, rotation=90))
        assert m.transform_vector(Vector2(1, 0)).equals(Vector2(10, 1), 1e-12)

    def test_mirror_flips_x_before_rotation(self):
        m = placement_matrix(Placement(x=0, y=0, rotation=90, mirror=True))
        # (1, 0) -> mirrored (-1, 0) -> rotated (0, -1)
        assert m.transform_vector(Vector2(1, 0)).equals(Vector2(0, -1), 1e-12)
        assert m.is_mirrored


class TestToTransformation:
    """EDMD transformation records."""

    def test_identity(self):
        assert to_transformation(Placement()) == Transformation2D(1, 0, 0, 1, 0, 0)

    def test_rotated_values_are_cleaned(self):
        t = to_transformation(Placement(x=10, y=15, rotation=90))
        assert isinstance(t, Transformation2D)
        assert t.xx == 0.0
        assert t.xy == pytest.approx(-1.0)
        assert t.yx == pytest.approx(1.0)
        assert t.yy == 0.0
        assert (t.tx, t.ty) == (10, 15)

    def test_mirrored(self):
        t = to_transformation(Placement(x=1, y=2, mirror=True))
        assert t == Transformation2D(-1.0, 0.0, 0.0, 1.0, 1, 2)

    def test_3d(self):
        rot = (1, 0, 0, 0, 0, -1, 0, 1, 0)
        t = to_transformation(Placement(x=1, y=2, z=3, rotation_3d=rot))
        assert isinstance(t, Transformation3D)
        assert (t.xx, t.yz, t.zy) == (1, -1, 1)
        assert (t.tx, t.ty, t.tz) == (1, 2, 3)

    def test_3d_needs_nine_cells(self):
        with pytest.raises(GeometryError):
            to_transformation(Placement(rotation_3d=(1, 0, 0)))
