"""Kinematic extension framework.

An extension adds controllable DOFs that are not joints of the chain itself
(a mobile base, for example). Once ready it

* appends one Jacobian column per extension DOF,
* appends one synthetic joint and one limiter entry per DOF,
* takes the trailing slice of the solved joint velocities and dispatches it.

Lifecycle: ``UNINITIALIZED -> init_extension() -> READY | FAILED_INIT``.
``FAILED_INIT`` is terminal; a failed extension passes every input through
unchanged and dispatches nothing.
"""

from __future__ import annotations

import abc
import enum
import logging
import threading
import time
from collections.abc import Sequence

import numpy as np

from twistctl.core.errors import ExtensionInitError, InvalidInputError
from twistctl.core.models import (
    ActiveCartesianDimension,
    ExtensionState,
    FrameTransform,
    JointStates,
    LimiterParams,
)
from twistctl.core.type_utils import TWIST_DIM, Matrix, Vector
from twistctl.model.extension_jacobian import extension_jacobian_columns

__all__ = [
    "ExtensionStatus",
    "KinematicExtension",
    "NoExtension",
    "KinematicExtensionDOF",
]

logger = logging.getLogger(__name__)


class ExtensionStatus(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    FAILED_INIT = "failed_init"


class KinematicExtension(abc.ABC):
    """Public contract shared by all extensions."""

    def __init__(self) -> None:
        self.status = ExtensionStatus.UNINITIALIZED
        self.init_error: ExtensionInitError | None = None

    @property
    def ready(self) -> bool:
        return self.status is ExtensionStatus.READY

    @property
    @abc.abstractmethod
    def ext_dof(self) -> int: ...

    @property
    def active_dof(self) -> int:
        """DOFs actually appended this cycle (0 unless ready)."""
        return self.ext_dof if self.ready else 0

    def init_extension(self) -> bool:
        """Bring the extension up; report failure instead of raising."""
        if self.status is ExtensionStatus.READY:
            return True
        if self.status is ExtensionStatus.FAILED_INIT:
            return False
        try:
            self._init_extension()
        except ExtensionInitError as exc:
            self.status = ExtensionStatus.FAILED_INIT
            self.init_error = exc
            logger.error("%s initialization failed: %s", type(self).__name__, exc)
            return False
        self.status = ExtensionStatus.READY
        logger.info("%s ready with %d extension DOF(s)", type(self).__name__, self.ext_dof)
        return True

    def adjust_jacobian(self, jac_chain: Matrix) -> Matrix:
        if not self.ready:
            return jac_chain
        return self._adjust_jacobian(np.asarray(jac_chain, dtype=float))

    def adjust_joint_states(self, joint_states: JointStates) -> JointStates:
        if not self.ready:
            return joint_states
        return self._adjust_joint_states(joint_states)

    def adjust_limiter_params(self, limiter_params: LimiterParams) -> LimiterParams:
        if not self.ready:
            return limiter_params
        return self._adjust_limiter_params(limiter_params)

    def process_result_extension(self, q_dot: Vector) -> Vector | None:
        """Dispatch the extension's share of ``q_dot``; return what was sent."""
        if not self.ready:
            return None
        q = np.asarray(q_dot, dtype=float)
        if q.ndim != 1 or q.shape[0] < self.ext_dof:
            raise InvalidInputError(
                f"joint velocity solution of shape {q.shape} cannot hold {self.ext_dof} extension DOF(s)"
            )
        return self._process_result_extension(q)

    @abc.abstractmethod
    def _init_extension(self) -> None:
        """Raise :class:`ExtensionInitError` when the extension cannot run."""

    @abc.abstractmethod
    def _adjust_jacobian(self, jac_chain: Matrix) -> Matrix: ...

    @abc.abstractmethod
    def _adjust_joint_states(self, joint_states: JointStates) -> JointStates: ...

    @abc.abstractmethod
    def _adjust_limiter_params(self, limiter_params: LimiterParams) -> LimiterParams: ...

    @abc.abstractmethod
    def _process_result_extension(self, q_dot: Vector) -> Vector | None: ...


class NoExtension(KinematicExtension):
    """Chain-only control: zero extension DOFs, everything passes through."""

    def __init__(self) -> None:
        super().__init__()
        self.init_extension()

    @property
    def ext_dof(self) -> int:
        return 0

    def _init_extension(self) -> None:
        pass

    def _adjust_jacobian(self, jac_chain: Matrix) -> Matrix:
        return jac_chain

    def _adjust_joint_states(self, joint_states: JointStates) -> JointStates:
        return joint_states

    def _adjust_limiter_params(self, limiter_params: LimiterParams) -> LimiterParams:
        return limiter_params

    def _process_result_extension(self, q_dot: Vector) -> Vector | None:
        return None


class KinematicExtensionDOF(KinematicExtension):
    """Helper base for extensions made of Cartesian DOFs (lin_x ... rot_z).

    Holds the fixed configuration (active axes, joint names, limits and
    minimum-motion thresholds) and the last-known state cell. The cell is
    replaced wholesale under a lock by :meth:`ingest_feedback` and read as a
    snapshot by the control cycle.
    """

    def __init__(
        self,
        active_dim: ActiveCartesianDimension,
        joint_names: Sequence[str],
        *,
        limits_min: Sequence[float],
        limits_max: Sequence[float],
        limits_vel: Sequence[float],
        limits_acc: Sequence[float],
        min_vel: Sequence[float],
    ) -> None:
        super().__init__()
        self.active_dim = active_dim
        self._ext_dof = active_dim.count
        if self._ext_dof == 0:
            raise InvalidInputError("an enabled extension needs at least one active Cartesian dimension")
        self.joint_names = tuple(joint_names)
        if len(self.joint_names) != self._ext_dof:
            raise InvalidInputError(
                f"{len(self.joint_names)} joint names for {self._ext_dof} active dimension(s)"
            )
        self.limits = LimiterParams(limits_min, limits_max, limits_vel, limits_acc)
        if self.limits.dof != self._ext_dof:
            raise InvalidInputError(f"{self.limits.dof} limit entries for {self._ext_dof} extension DOF(s)")
        self.min_vel = np.array(min_vel, dtype=float)
        if self.min_vel.shape != (self._ext_dof,):
            raise InvalidInputError(f"{self.min_vel.shape} minimum velocities for {self._ext_dof} extension DOF(s)")

        self._state_lock = threading.Lock()
        self._state = ExtensionState.zeros(self._ext_dof)

    @property
    def ext_dof(self) -> int:
        return self._ext_dof

    @property
    def state(self) -> ExtensionState:
        with self._state_lock:
            return self._state

    def ingest_feedback(self, velocities: Sequence[float], positions: Sequence[float] | None = None) -> None:
        """Replace the last-known state with an externally observed sample.

        Without ``positions`` the previous positions are carried over.
        """
        with self._state_lock:
            pos = self._state.positions if positions is None else positions
            new_state = ExtensionState(pos, velocities, stamp=time.monotonic())
            if new_state.velocities.shape[0] != self._ext_dof:
                raise InvalidInputError(
                    f"feedback has {new_state.velocities.shape[0]} entries, expected {self._ext_dof}"
                )
            self._state = new_state

    def adjust_jacobian_dof(
        self,
        jac_chain: Matrix,
        eb_frame_ct: FrameTransform,
        cb_frame_eb: FrameTransform,
        active_dim: ActiveCartesianDimension,
    ) -> Matrix:
        """Append the twist-transformed extension columns to ``jac_chain``."""
        if jac_chain.ndim != 2 or jac_chain.shape[0] != TWIST_DIM:
            raise InvalidInputError(
                f"extension needs a full {TWIST_DIM}-row chain Jacobian, got shape {jac_chain.shape}"
            )
        jac_ext = extension_jacobian_columns(eb_frame_ct, cb_frame_eb, active_dim)
        return np.hstack((jac_chain, jac_ext))

    def _adjust_joint_states(self, joint_states: JointStates) -> JointStates:
        snapshot = self.state
        return joint_states.append(JointStates(self.joint_names, snapshot.positions, snapshot.velocities))

    def _adjust_limiter_params(self, limiter_params: LimiterParams) -> LimiterParams:
        return limiter_params.append(self.limits)

    def shape_command(self, ext_q_dot: Vector) -> Vector:
        """Zero sub-threshold axes and clamp the rest to the velocity limits."""
        command = np.where(np.abs(ext_q_dot) < self.min_vel, 0.0, ext_q_dot)
        return np.clip(command, -self.limits.velocity_max, self.limits.velocity_max)

    def _process_result_extension(self, q_dot: Vector) -> Vector | None:
        command = self.shape_command(q_dot[q_dot.shape[0] - self._ext_dof :])
        self._dispatch(command)
        return command

    @abc.abstractmethod
    def _dispatch(self, command: Vector) -> None: ...
