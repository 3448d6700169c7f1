"""Lightweight data models shared by the solvers, extensions and controller."""

from __future__ import annotations

import enum
import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from .errors import InvalidInputError
from .type_utils import Matrix33, Matrix44, Vector, Vector3

__all__ = [
    "ActiveCartesianDimension",
    "FrameTransform",
    "JointStates",
    "LimiterParams",
    "ExtensionState",
]


def _as_vector(values: Sequence[float] | np.ndarray, name: str) -> Vector:
    arr = np.array(values, dtype=float)
    if arr.ndim != 1:
        raise InvalidInputError(f"{name} must be one-dimensional, got shape {arr.shape}")
    arr.setflags(write=False)
    return arr


class ActiveCartesianDimension(enum.Flag):
    """Cartesian axes actuated by a kinematic extension."""

    LIN_X = enum.auto()
    LIN_Y = enum.auto()
    LIN_Z = enum.auto()
    ROT_X = enum.auto()
    ROT_Y = enum.auto()
    ROT_Z = enum.auto()

    PLANAR = LIN_X | LIN_Y | ROT_Z

    def axes(self) -> tuple[ActiveCartesianDimension, ...]:
        """Return the single-axis members contained in ``self`` in twist order."""
        return tuple(axis for axis in _AXIS_ORDER if axis in self)

    @property
    def count(self) -> int:
        return len(self.axes())

    @property
    def twist_index(self) -> int:
        """Row of this axis in a 6D twist (lin_x, lin_y, lin_z, rot_x, rot_y, rot_z)."""
        axes = self.axes()
        if len(axes) != 1:
            raise InvalidInputError(f"{self!r} is not a single Cartesian axis")
        return _AXIS_ORDER.index(axes[0])

    @property
    def is_linear(self) -> bool:
        return self.twist_index < 3


_AXIS_ORDER: tuple[ActiveCartesianDimension, ...] = (
    ActiveCartesianDimension.LIN_X,
    ActiveCartesianDimension.LIN_Y,
    ActiveCartesianDimension.LIN_Z,
    ActiveCartesianDimension.ROT_X,
    ActiveCartesianDimension.ROT_Y,
    ActiveCartesianDimension.ROT_Z,
)


@dataclass(frozen=True, eq=False)
class FrameTransform:
    """Rigid-body pose: ``p_parent = rotation @ p_child + translation``."""

    rotation: Matrix33
    translation: Vector3

    def __post_init__(self) -> None:
        rot = np.array(self.rotation, dtype=float)
        trans = np.array(self.translation, dtype=float)
        if rot.shape != (3, 3):
            raise InvalidInputError(f"rotation must be 3x3, got {rot.shape}")
        if trans.shape != (3,):
            raise InvalidInputError(f"translation must have 3 entries, got {trans.shape}")
        object.__setattr__(self, "rotation", rot)
        object.__setattr__(self, "translation", trans)

    @classmethod
    def identity(cls) -> FrameTransform:
        return cls(np.eye(3, dtype=float), np.zeros(3, dtype=float))

    @classmethod
    def from_matrix(cls, matrix: Matrix44) -> FrameTransform:
        M = np.asarray(matrix, dtype=float)
        if M.shape != (4, 4):
            raise InvalidInputError(f"homogeneous transform must be 4x4, got {M.shape}")
        return cls(M[:3, :3], M[:3, 3])

    @classmethod
    def from_xyz_rpy(
        cls, x: float, y: float, z: float, roll: float = 0.0, pitch: float = 0.0, yaw: float = 0.0
    ) -> FrameTransform:
        """Build a transform from a translation and fixed-axis roll/pitch/yaw (rad)."""
        cr, sr = math.cos(roll), math.sin(roll)
        cp, sp_ = math.cos(pitch), math.sin(pitch)
        cy, sy = math.cos(yaw), math.sin(yaw)
        rotation = np.array(
            [
                [cy * cp, cy * sp_ * sr - sy * cr, cy * sp_ * cr + sy * sr],
                [sy * cp, sy * sp_ * sr + cy * cr, sy * sp_ * cr - cy * sr],
                [-sp_, cp * sr, cp * cr],
            ],
            dtype=float,
        )
        return cls(rotation, np.array([x, y, z], dtype=float))

    def as_matrix(self) -> Matrix44:
        M = np.eye(4, dtype=float)
        M[:3, :3] = self.rotation
        M[:3, 3] = self.translation
        return M

    def inverse(self) -> FrameTransform:
        rot_t = self.rotation.T
        return FrameTransform(rot_t, -rot_t @ self.translation)

    def compose(self, other: FrameTransform) -> FrameTransform:
        """Return ``self * other`` (``other`` expressed in this frame)."""
        return FrameTransform(
            self.rotation @ other.rotation,
            self.rotation @ other.translation + self.translation,
        )

    __matmul__ = compose


@dataclass(frozen=True, eq=False)
class JointStates:
    """Named, ordered joint positions and velocities (accelerations optional)."""

    names: tuple[str, ...]
    positions: Vector
    velocities: Vector
    accelerations: Vector | None = None

    def __post_init__(self) -> None:
        names = tuple(str(n) for n in self.names)
        positions = _as_vector(self.positions, "positions")
        velocities = _as_vector(self.velocities, "velocities")
        n = len(names)
        if positions.shape[0] != n or velocities.shape[0] != n:
            raise InvalidInputError(
                f"joint states mismatch: {n} names, {positions.shape[0]} positions, "
                f"{velocities.shape[0]} velocities"
            )
        object.__setattr__(self, "names", names)
        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "velocities", velocities)
        if self.accelerations is not None:
            accelerations = _as_vector(self.accelerations, "accelerations")
            if accelerations.shape[0] != n:
                raise InvalidInputError(
                    f"joint states mismatch: {n} names, {accelerations.shape[0]} accelerations"
                )
            object.__setattr__(self, "accelerations", accelerations)

    @classmethod
    def zeros(cls, names: Sequence[str]) -> JointStates:
        n = len(names)
        return cls(tuple(names), np.zeros(n), np.zeros(n))

    @property
    def dof(self) -> int:
        return len(self.names)

    def append(self, other: JointStates) -> JointStates:
        """Return a copy with ``other``'s joints appended after this chain's joints."""
        if (self.accelerations is None) != (other.accelerations is None):
            # Mixed availability: fill the missing side with zeros.
            acc_self = self.accelerations if self.accelerations is not None else np.zeros(self.dof)
            acc_other = other.accelerations if other.accelerations is not None else np.zeros(other.dof)
            accelerations: Vector | None = np.concatenate((acc_self, acc_other))
        elif self.accelerations is not None and other.accelerations is not None:
            accelerations = np.concatenate((self.accelerations, other.accelerations))
        else:
            accelerations = None
        return JointStates(
            self.names + other.names,
            np.concatenate((self.positions, other.positions)),
            np.concatenate((self.velocities, other.velocities)),
            accelerations,
        )


@dataclass(frozen=True, eq=False)
class LimiterParams:
    """Per-joint bounds, indexed in parallel with :class:`JointStates`."""

    position_min: Vector
    position_max: Vector
    velocity_max: Vector
    acceleration_max: Vector

    def __post_init__(self) -> None:
        arrays = {
            name: _as_vector(getattr(self, name), name)
            for name in ("position_min", "position_max", "velocity_max", "acceleration_max")
        }
        lengths = {arr.shape[0] for arr in arrays.values()}
        if len(lengths) != 1:
            raise InvalidInputError(
                "limiter params mismatch: "
                + ", ".join(f"{name}={arr.shape[0]}" for name, arr in arrays.items())
            )
        if np.any(arrays["velocity_max"] < 0.0) or np.any(arrays["acceleration_max"] < 0.0):
            raise InvalidInputError("velocity and acceleration limits must be non-negative")
        for name, arr in arrays.items():
            object.__setattr__(self, name, arr)

    @classmethod
    def unbounded(cls, dof: int) -> LimiterParams:
        inf = np.full(dof, np.inf)
        return cls(-inf, inf, inf, inf)

    @property
    def dof(self) -> int:
        return int(self.velocity_max.shape[0])

    def append(self, other: LimiterParams) -> LimiterParams:
        return LimiterParams(
            np.concatenate((self.position_min, other.position_min)),
            np.concatenate((self.position_max, other.position_max)),
            np.concatenate((self.velocity_max, other.velocity_max)),
            np.concatenate((self.acceleration_max, other.acceleration_max)),
        )


@dataclass(frozen=True, eq=False)
class ExtensionState:
    """Snapshot of an extension's last known positions and velocities."""

    positions: Vector
    velocities: Vector
    stamp: float = 0.0

    def __post_init__(self) -> None:
        positions = _as_vector(self.positions, "positions")
        velocities = _as_vector(self.velocities, "velocities")
        if positions.shape != velocities.shape:
            raise InvalidInputError(
                f"extension state mismatch: {positions.shape[0]} positions, "
                f"{velocities.shape[0]} velocities"
            )
        object.__setattr__(self, "positions", positions)
        object.__setattr__(self, "velocities", velocities)

    @classmethod
    def zeros(cls, dof: int) -> ExtensionState:
        return cls(np.zeros(dof), np.zeros(dof))
