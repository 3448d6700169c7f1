"""Damping strategies for the damped least-squares pseudo-inverse.

Every strategy maps the current singular values of a Jacobian (and the
Jacobian itself) to a scalar damping factor ``lambda >= 0``. The calculators in
:mod:`twistctl.solvers.pinv` treat the value opaquely.
"""

from __future__ import annotations

import abc
import logging
import math

import numpy as np

from twistctl.core.config import DampingMethod, PseudoInverseParams
from twistctl.core.errors import InvalidInputError
from twistctl.core.type_utils import Matrix, Vector

__all__ = [
    "DampingStrategy",
    "NoDamping",
    "ConstantDamping",
    "ManipulabilityDamping",
    "LeastSingularValueDamping",
    "build_damping_strategy",
    "validate_damping_inputs",
]

logger = logging.getLogger(__name__)


def validate_damping_inputs(singular_values: Vector, jacobian: Matrix) -> tuple[Vector, Matrix]:
    """Return float copies of the inputs or raise ``InvalidInputError``."""
    J = np.asarray(jacobian, dtype=float)
    sv = np.asarray(singular_values, dtype=float)
    if J.ndim != 2 or J.size == 0:
        raise InvalidInputError(f"damping needs a non-empty 2D Jacobian, got shape {J.shape}")
    if sv.ndim != 1 or sv.size == 0:
        raise InvalidInputError(f"singular values must be a non-empty vector, got shape {sv.shape}")
    if sv.size > min(J.shape):
        raise InvalidInputError(
            f"{sv.size} singular values for a {J.shape[0]}x{J.shape[1]} Jacobian"
        )
    if not np.all(np.isfinite(J)) or not np.all(np.isfinite(sv)):
        raise InvalidInputError("Jacobian and singular values must be finite")
    if np.any(sv < 0.0):
        raise InvalidInputError("singular values must be non-negative")
    return sv, J


class DampingStrategy(abc.ABC):
    """Contract: ``get_damping_factor(singular_values, jacobian) -> lambda``."""

    def get_damping_factor(self, singular_values: Vector, jacobian: Matrix) -> float:
        sv, J = validate_damping_inputs(singular_values, jacobian)
        lam = float(self._damping_factor(sv, J))
        if not math.isfinite(lam) or lam < 0.0:
            raise InvalidInputError(f"{type(self).__name__} produced an invalid damping factor {lam}")
        return lam

    @abc.abstractmethod
    def _damping_factor(self, singular_values: Vector, jacobian: Matrix) -> float: ...


class NoDamping(DampingStrategy):
    def _damping_factor(self, singular_values: Vector, jacobian: Matrix) -> float:
        return 0.0


class ConstantDamping(DampingStrategy):
    def __init__(self, damping_factor: float) -> None:
        self.damping_factor = float(damping_factor)

    def _damping_factor(self, singular_values: Vector, jacobian: Matrix) -> float:
        return self.damping_factor


class ManipulabilityDamping(DampingStrategy):
    """Damping grows quadratically as manipulability ``w = sqrt(det(J J^T))`` drops below ``w_threshold``.

    Works from the Jacobian alone, so it is also meaningful for the direct
    pseudo-inverse which only hands over a placeholder singular value vector.
    """

    def __init__(self, w_threshold: float, lambda_max: float) -> None:
        self.w_threshold = float(w_threshold)
        self.lambda_max = float(lambda_max)

    def _damping_factor(self, singular_values: Vector, jacobian: Matrix) -> float:
        det = float(np.linalg.det(jacobian @ jacobian.T))
        w = math.sqrt(max(det, 0.0))
        if w < self.w_threshold:
            tmp = 1.0 - w / self.w_threshold
            return self.lambda_max * tmp * tmp
        return 0.0


class LeastSingularValueDamping(DampingStrategy):
    """Damping driven by the smallest singular value (SVD-only)."""

    def __init__(self, eps_damping: float, lambda_max: float) -> None:
        self.eps_damping = float(eps_damping)
        self.lambda_max = float(lambda_max)

    def _damping_factor(self, singular_values: Vector, jacobian: Matrix) -> float:
        least = float(singular_values[-1])
        if least < self.eps_damping:
            ratio = least / self.eps_damping
            return math.sqrt((1.0 - ratio * ratio) * self.lambda_max**2)
        return 0.0


def build_damping_strategy(params: PseudoInverseParams) -> DampingStrategy:
    """Return the strategy selected by ``params.damping_method``."""
    method = params.damping_method
    if method is DampingMethod.NONE:
        strategy: DampingStrategy = NoDamping()
    elif method is DampingMethod.CONSTANT:
        strategy = ConstantDamping(params.damping_factor)
    elif method is DampingMethod.MANIPULABILITY:
        strategy = ManipulabilityDamping(params.w_threshold, params.lambda_max)
    else:
        strategy = LeastSingularValueDamping(params.eps_damping, params.lambda_max)
    logger.debug("Using %s for damping method %s", type(strategy).__name__, method.value)
    return strategy
