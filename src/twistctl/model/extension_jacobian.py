"""Jacobian columns contributed by a kinematic extension (e.g. a mobile base).

Conventions
-----------
``eb_frame_ct``  pose of the chain tip (ct) in the extension base frame (eb).
``cb_frame_eb``  pose of the extension base frame in the chain base frame (cb).

A unit velocity of an extension DOF is a twist expressed in eb. Seen at the
chain tip and expressed in cb it becomes

    linear axis  e:  v = R e,             w = 0
    angular axis e:  v = (R e) x (R p),   w = R e

with ``R`` the rotation of ``cb_frame_eb`` and ``p`` the translation of
``eb_frame_ct``. Columns are emitted in twist order (lin_x .. rot_z) over the
active axes only.
"""

from __future__ import annotations

from typing import NamedTuple, cast

import numpy as np
import sympy as sp

from twistctl.core.errors import InvalidInputError
from twistctl.core.models import ActiveCartesianDimension, FrameTransform
from twistctl.core.type_utils import TWIST_DIM, Matrix

from .transforms import rpy_symbolic, skew


class ExtensionColumnsSymbolic(NamedTuple):
    """Symbolic extension Jacobian blocks and the symbols they depend on."""

    J_linear: sp.Matrix
    J_angular: sp.Matrix
    offset: tuple[sp.Symbol, sp.Symbol, sp.Symbol]
    rpy: tuple[sp.Symbol, sp.Symbol, sp.Symbol]

    @property
    def columns(self) -> sp.Matrix:
        """Return the stacked 6xN block."""

        return cast(sp.Matrix, sp.Matrix.vstack(self.J_linear, self.J_angular))


def extension_jacobian_columns(
    eb_frame_ct: FrameTransform,
    cb_frame_eb: FrameTransform,
    active_dim: ActiveCartesianDimension,
) -> Matrix:
    """Return the 6 x ``active_dim.count`` block appended to the chain Jacobian."""
    axes = active_dim.axes()
    if not axes:
        raise InvalidInputError("an extension needs at least one active Cartesian dimension")

    rot_cb_eb = cb_frame_eb.rotation
    p_cb_ct = rot_cb_eb @ eb_frame_ct.translation
    p_skew = skew(p_cb_ct)

    jac_ext = np.zeros((TWIST_DIM, len(axes)), dtype=float)
    for col, axis in enumerate(axes):
        unit = np.zeros(3, dtype=float)
        unit[axis.twist_index % 3] = 1.0
        direction = rot_cb_eb @ unit
        if axis.is_linear:
            jac_ext[:3, col] = direction
        else:
            # w x p == -[p]x w
            jac_ext[:3, col] = -p_skew @ direction
            jac_ext[3:, col] = direction
    return jac_ext


def symbolic_extension_columns(
    active_dim: ActiveCartesianDimension = ActiveCartesianDimension.PLANAR,
) -> ExtensionColumnsSymbolic:
    """Derive the extension columns with SymPy for a generic offset and orientation."""
    if not active_dim.axes():
        raise InvalidInputError("an extension needs at least one active Cartesian dimension")
    px, py, pz = sp.symbols("p_x p_y p_z", real=True)
    roll, pitch, yaw = sp.symbols("roll pitch yaw", real=True)

    R = rpy_symbolic(roll, pitch, yaw)
    p_cb = R * sp.Matrix([px, py, pz])

    Jv_cols: list[sp.Matrix] = []
    Jw_cols: list[sp.Matrix] = []
    for axis in active_dim.axes():
        direction = sp.Matrix(R[:, axis.twist_index % 3])
        if axis.is_linear:
            Jv_cols.append(direction)
            Jw_cols.append(sp.zeros(3, 1))
        else:
            Jv_cols.append(direction.cross(p_cb))
            Jw_cols.append(direction)

    Jv = cast(sp.Matrix, sp.Matrix.hstack(*Jv_cols))
    Jw = cast(sp.Matrix, sp.Matrix.hstack(*Jw_cols))
    return ExtensionColumnsSymbolic(J_linear=Jv, J_angular=Jw, offset=(px, py, pz), rpy=(roll, pitch, yaw))


__all__ = [
    "ExtensionColumnsSymbolic",
    "extension_jacobian_columns",
    "symbolic_extension_columns",
]
