"""Rotation and cross-product primitives, symbolic (SymPy) and numeric (NumPy)."""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import sympy as sp

from twistctl.core.type_utils import Matrix33, Num, Vector3


def Rx(alpha: Num | sp.Expr) -> sp.Matrix:
    ca = sp.cos(alpha)
    sa = sp.sin(alpha)
    return sp.Matrix([[1, 0, 0], [0, ca, -sa], [0, sa, ca]])


def Ry(beta: Num | sp.Expr) -> sp.Matrix:
    cb = sp.cos(beta)
    sb = sp.sin(beta)
    return sp.Matrix([[cb, 0, sb], [0, 1, 0], [-sb, 0, cb]])


def Rz(theta: Num | sp.Expr) -> sp.Matrix:
    ct = sp.cos(theta)
    st = sp.sin(theta)
    return sp.Matrix([[ct, -st, 0], [st, ct, 0], [0, 0, 1]])


def rpy_symbolic(roll: Num | sp.Expr, pitch: Num | sp.Expr, yaw: Num | sp.Expr) -> sp.Matrix:
    """Fixed-axis roll/pitch/yaw rotation ``Rz(yaw) Ry(pitch) Rx(roll)``."""
    return Rz(yaw) * Ry(pitch) * Rx(roll)


def skew_symbolic(v: sp.Matrix) -> sp.Matrix:
    return sp.Matrix([[0, -v[2], v[1]], [v[2], 0, -v[0]], [-v[1], v[0], 0]])


def skew(v: Sequence[float] | Vector3) -> Matrix33:
    """Return ``[v]x`` such that ``skew(v) @ w == np.cross(v, w)``."""
    x, y, z = (float(c) for c in v)
    return np.array([[0.0, -z, y], [z, 0.0, -x], [-y, x, 0.0]], dtype=float)


__all__ = ["Rx", "Ry", "Rz", "rpy_symbolic", "skew", "skew_symbolic"]
