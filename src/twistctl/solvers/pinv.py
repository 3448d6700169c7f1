"""Pseudo-inverse calculators mapping a Cartesian twist to joint velocities.

Two interchangeable algorithms share the :class:`PseudoInverseCalculator`
contract:

``PInvBySVD``
    Thin SVD ``J = U diag(s) V^T``; each singular value is inverted with
    truncation, quadratic damping or numerical filtering and the result is
    rebuilt as ``V diag(s_inv) U^T``. Always defined, including for rank
    deficient and empty Jacobians.

``PInvDirect``
    Right (``J^T (J J^T + l^2 I)^-1``) or left (``(J^T J + l^2 I)^-1 J^T``)
    pseudo-inverse. Only valid away from singularities. It never computes
    singular values: the damping strategy receives the placeholder
    ``np.zeros(1)`` instead, so strategies keyed on singular values only see
    that placeholder. Strategies that look at the Jacobian (constant,
    manipulability) behave normally.
"""

from __future__ import annotations

import abc
import logging
from typing import NamedTuple, overload

import numpy as np

from twistctl.core.config import PseudoInverseParams
from twistctl.core.errors import (
    InvalidInputError,
    SingularMatrixError,
    UnsupportedConfigurationError,
)
from twistctl.core.type_utils import TWIST_DIM, Matrix, Vector

from .damping import DampingStrategy

__all__ = [
    "DIV0_SAFE",
    "PseudoInverseCalculator",
    "PInvBySVD",
    "PInvDirect",
    "PInvResult",
    "build_pinv_calculator",
    "invert_singular_values",
]

logger = logging.getLogger(__name__)

DIV0_SAFE = 1e-9
"""Truncation threshold of the undamped SVD pseudo-inverse."""

_COND_LIMIT = 1.0 / np.finfo(float).eps


def _validate_jacobian(jacobian: Matrix) -> Matrix:
    J = np.asarray(jacobian, dtype=float)
    if J.ndim != 2:
        raise InvalidInputError(f"Jacobian must be a 2D matrix, got shape {J.shape}")
    if J.shape[0] > TWIST_DIM:
        raise InvalidInputError(f"Jacobian has {J.shape[0]} rows, at most {TWIST_DIM} are supported")
    if not np.all(np.isfinite(J)):
        raise InvalidInputError("Jacobian contains non-finite entries")
    return J


def _check_damped_args(params: PseudoInverseParams | None, damping: DampingStrategy | None) -> None:
    if (params is None) != (damping is None):
        raise InvalidInputError("damped pseudo-inverse needs both params and a damping strategy")


def invert_singular_values(
    singular_values: Vector,
    lam: float,
    eps_truncation: float,
    *,
    numerical_filtering: bool = False,
    beta: float = 0.0,
) -> Vector:
    """Invert singular values for ``V diag(s_inv) U^T``.

    With numerical filtering only the last (smallest) value receives the
    ``lam`` term; all others are regularised by ``beta`` alone. Otherwise every
    value at or above ``eps_truncation`` becomes ``s / (s^2 + lam^2)`` and the
    rest are zeroed.
    """
    sv = np.asarray(singular_values, dtype=float)
    inv = np.zeros_like(sv)
    if sv.size == 0:
        return inv
    if numerical_filtering:
        denom = sv**2 + beta * beta
        denom[-1] += lam * lam
        # an exactly zero value with beta = lam = 0 stays 0
        np.divide(sv, denom, out=inv, where=denom > 0.0)
        return inv
    keep = sv >= eps_truncation
    inv[keep] = sv[keep] / (sv[keep] ** 2 + lam * lam)
    return inv


class PInvResult(NamedTuple):
    """A pseudo-inverse together with the quantities it was built from."""

    pinv: Matrix
    damping_factor: float
    singular_values: Vector | None  # None when the algorithm never computes them


def _zero_result(J: Matrix, singular_values: Vector | None) -> PInvResult:
    return PInvResult(np.zeros((J.shape[1], J.shape[0]), dtype=float), 0.0, singular_values)


class PseudoInverseCalculator(abc.ABC):
    """Turns a Jacobian (rows x cols) into a pseudo-inverse (cols x rows).

    Calculators hold no per-call state; everything a call produces comes back
    in its :class:`PInvResult`.
    """

    @overload
    def calculate(self, jacobian: Matrix) -> Matrix: ...

    @overload
    def calculate(
        self, jacobian: Matrix, params: PseudoInverseParams, damping: DampingStrategy
    ) -> Matrix: ...

    def calculate(
        self,
        jacobian: Matrix,
        params: PseudoInverseParams | None = None,
        damping: DampingStrategy | None = None,
    ) -> Matrix:
        return self.calculate_with_info(jacobian, params, damping).pinv

    def calculate_with_info(
        self,
        jacobian: Matrix,
        params: PseudoInverseParams | None = None,
        damping: DampingStrategy | None = None,
    ) -> PInvResult:
        """Like :meth:`calculate` but also return the damping factor and singular values."""
        J = _validate_jacobian(jacobian)
        _check_damped_args(params, damping)
        if params is None or damping is None:
            return self._calculate_undamped(J)
        return self._calculate_damped(J, params, damping)

    @abc.abstractmethod
    def _calculate_undamped(self, J: Matrix) -> PInvResult: ...

    @abc.abstractmethod
    def _calculate_damped(self, J: Matrix, params: PseudoInverseParams, damping: DampingStrategy) -> PInvResult: ...


class PInvBySVD(PseudoInverseCalculator):
    """SVD based pseudo-inverse; reports the singular values it used."""

    def _calculate_undamped(self, J: Matrix) -> PInvResult:
        if min(J.shape) == 0:
            return _zero_result(J, np.zeros(0))
        U, S, Vt = np.linalg.svd(J, full_matrices=False)
        inv = invert_singular_values(S, 0.0, DIV0_SAFE)
        return PInvResult(Vt.T @ np.diag(inv) @ U.T, 0.0, S)

    def _calculate_damped(self, J: Matrix, params: PseudoInverseParams, damping: DampingStrategy) -> PInvResult:
        if min(J.shape) == 0:
            return _zero_result(J, np.zeros(0))
        U, S, Vt = np.linalg.svd(J, full_matrices=False)
        lam = damping.get_damping_factor(S, J)
        logger.debug("SVD pinv: sigma=%s lambda=%.6g", np.array2string(S, precision=4), lam)
        inv = invert_singular_values(
            S,
            lam,
            params.eps_truncation,
            numerical_filtering=params.numerical_filtering,
            beta=params.beta,
        )
        return PInvResult(Vt.T @ np.diag(inv) @ U.T, lam, S)


class PInvDirect(PseudoInverseCalculator):
    """Left/right pseudo-inverse with Tikhonov regularisation ``lambda^2 I``."""

    @staticmethod
    def _invert(gram: Matrix) -> Matrix:
        try:
            inv = np.linalg.inv(gram)
        except np.linalg.LinAlgError as exc:
            raise SingularMatrixError(f"cannot invert {gram.shape[0]}x{gram.shape[1]} Gram matrix") from exc
        cond = float(np.linalg.cond(gram))
        if not np.all(np.isfinite(inv)) or not cond < _COND_LIMIT:
            raise SingularMatrixError(f"Gram matrix is numerically singular (cond={cond:.3e})")
        return inv

    def _solve(self, J: Matrix, lam: float) -> Matrix:
        rows, cols = J.shape
        if rows == 0 or cols == 0:
            return np.zeros((cols, rows), dtype=float)
        JT = J.T
        if rows <= cols:
            return JT @ self._invert(J @ JT + lam * lam * np.eye(rows))
        return self._invert(JT @ J + lam * lam * np.eye(cols)) @ JT

    def _calculate_undamped(self, J: Matrix) -> PInvResult:
        return PInvResult(self._solve(J, 0.0), 0.0, None)

    def _calculate_damped(self, J: Matrix, params: PseudoInverseParams, damping: DampingStrategy) -> PInvResult:
        if params.damping_method.requires_svd:
            raise UnsupportedConfigurationError(
                f"damping method {params.damping_method.value!r} needs singular values; use PInvBySVD"
            )
        if min(J.shape) == 0:
            return _zero_result(J, None)
        lam = damping.get_damping_factor(np.zeros(1), J)
        return PInvResult(self._solve(J, lam), lam, None)


_CALCULATORS: dict[str, type[PseudoInverseCalculator]] = {
    "svd": PInvBySVD,
    "direct": PInvDirect,
}


def build_pinv_calculator(name: str = "svd") -> PseudoInverseCalculator:
    """Return a fresh calculator by algorithm name (``"svd"`` or ``"direct"``)."""
    try:
        cls = _CALCULATORS[name.strip().lower()]
    except KeyError:
        raise UnsupportedConfigurationError(
            f"unknown pseudo-inverse algorithm {name!r}; choose from {sorted(_CALCULATORS)}"
        ) from None
    return cls()
