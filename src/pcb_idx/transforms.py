"""Placement transforms from package-local to board coordinates."""

from __future__ import annotations

from .document import Transformation, Transformation2D, Transformation3D
from .errors import GeometryError
from .geometry import Matrix3
from .models import Placement


def placement_matrix(placement: Placement) -> Matrix3:
    """Build the 2D matrix for a placement.

    1. Mirror about the Y axis if ``placement.mirror`` is set
    2. Rotate by ``placement.rotation`` degrees counterclockwise
    3. Translate by (placement.x, placement.y)
    """
    matrix = Matrix3.rotate_degrees(placement.rotation)
    if placement.mirror:
        matrix = matrix.multiply(Matrix3.mirror_y())
    return Matrix3.translate(placement.x, placement.y).multiply(matrix)


def to_transformation(placement: Placement) -> Transformation:
    """EDMD transformation record for a placement.

    A placement carrying ``rotation_3d`` becomes a d3 record with ``z`` as tz;
    otherwise the d2 record mirrors ``placement_matrix``.
    """
    if placement.rotation_3d is not None:
        cells = tuple(placement.rotation_3d)
        if len(cells) != 9:
            msg = f"3D rotation needs 9 cells, got {len(cells)}"
            raise GeometryError(msg, field="rotation_3d")
        return Transformation3D(*cells, placement.x, placement.y, placement.z)

    a, b, tx, c, d, ty = placement_matrix(placement).cells[:6]
    return Transformation2D(
        xx=_clean(a), xy=_clean(b), yx=_clean(c), yy=_clean(d), tx=tx, ty=ty,
    )


def _clean(value: float) -> float:
    # cos(90deg) and friends come out as ~6e-17
    return 0.0 if abs(value) < 1e-12 else value

