"""Configuration records handed to the solvers and extensions.

All records are frozen dataclasses with documented defaults so that the CLI
can read its argument defaults straight from them. Values coming from an
external configuration source (a parsed YAML/ROS parameter dictionary, for
instance) go through :meth:`PseudoInverseParams.from_mapping`.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

from .errors import InvalidInputError

__all__ = [
    "DampingMethod",
    "PseudoInverseParams",
    "BaseActiveParams",
]


class DampingMethod(enum.Enum):
    NONE = "none"
    CONSTANT = "constant"
    MANIPULABILITY = "manipulability"
    LEAST_SINGULAR_VALUE = "least_singular_value"

    @classmethod
    def parse(cls, value: DampingMethod | str) -> DampingMethod:
        if isinstance(value, DampingMethod):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise InvalidInputError(f"unknown damping method: {value!r}")

    @property
    def requires_svd(self) -> bool:
        return self is DampingMethod.LEAST_SINGULAR_VALUE


_FLAG_STRINGS = {"true": True, "1": True, "false": False, "0": False}


def _parse_flag(key: str, value: Any) -> bool:
    """Accept real bools, 0/1 and the strings true/false/1/0 (any case)."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in _FLAG_STRINGS:
        return _FLAG_STRINGS[value.strip().lower()]
    raise InvalidInputError(f"{key} must be a boolean, got {value!r}")


@dataclass(frozen=True)
class PseudoInverseParams:
    damping_method: DampingMethod = DampingMethod.CONSTANT
    eps_truncation: float = 1e-6  # singular values below this are dropped
    numerical_filtering: bool = False
    beta: float = 0.005  # numerical filtering weight
    damping_factor: float = 0.2  # constant damping
    lambda_max: float = 0.1  # manipulability / least singular value damping
    w_threshold: float = 0.005  # manipulability threshold
    eps_damping: float = 0.003  # least singular value threshold

    def __post_init__(self) -> None:
        object.__setattr__(self, "damping_method", DampingMethod.parse(self.damping_method))
        for name in ("eps_truncation", "w_threshold", "eps_damping"):
            value = float(getattr(self, name))
            if not math.isfinite(value) or value <= 0.0:
                raise InvalidInputError(f"{name} must be a positive finite number, got {value}")
        for name in ("beta", "damping_factor", "lambda_max"):
            value = float(getattr(self, name))
            if not math.isfinite(value) or value < 0.0:
                raise InvalidInputError(f"{name} must be a non-negative finite number, got {value}")

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> PseudoInverseParams:
        """Build params from a plain dictionary, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise InvalidInputError(f"unknown pseudo-inverse parameters: {', '.join(unknown)}")
        kwargs: dict[str, Any] = {}
        for key, value in mapping.items():
            if key == "damping_method":
                kwargs[key] = DampingMethod.parse(value)
            elif key == "numerical_filtering":
                kwargs[key] = _parse_flag(key, value)
            else:
                try:
                    kwargs[key] = float(value)
                except (TypeError, ValueError) as exc:
                    raise InvalidInputError(f"{key} must be numeric, got {value!r}") from exc
        return cls(**kwargs)


@dataclass(frozen=True)
class BaseActiveParams:
    """Thresholds and limits of the planar mobile-base extension."""

    min_vel_lin: float = 0.005  # m/s, below is treated as noise
    min_vel_rot: float = 0.005  # rad/s, below is treated as noise
    max_vel_lin: float = 0.5  # m/s, hard clamp
    max_vel_rot: float = 0.5  # rad/s, hard clamp
    max_acc_lin: float = math.inf
    max_acc_rot: float = math.inf
    position_min: float = -math.inf  # a mobile base has no hard position limit
    position_max: float = math.inf
    joint_names: tuple[str, str, str] = ("base_lin_x", "base_lin_y", "base_rot_z")

    def __post_init__(self) -> None:
        for name in ("min_vel_lin", "min_vel_rot", "max_vel_lin", "max_vel_rot", "max_acc_lin", "max_acc_rot"):
            value = float(getattr(self, name))
            if math.isnan(value) or value < 0.0:
                raise InvalidInputError(f"{name} must be non-negative, got {value}")
        if self.min_vel_lin > self.max_vel_lin or self.min_vel_rot > self.max_vel_rot:
            raise InvalidInputError("minimum velocity thresholds must not exceed the maxima")
        if self.position_min > self.position_max:
            raise InvalidInputError("position_min must not exceed position_max")
        if len(self.joint_names) != 3:
            raise InvalidInputError("the planar base needs exactly three joint names")
