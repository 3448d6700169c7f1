"""Per-cycle twist control: extension -> damping -> pseudo-inverse -> dispatch.

One call to :meth:`TwistController.compute` runs a full control cycle. It is
pure apart from the final extension dispatch, which only happens after every
numerical step succeeded, so a failed cycle never issues a partial command.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from twistctl.core.config import PseudoInverseParams
from twistctl.core.errors import InvalidInputError, TwistControlError
from twistctl.core.models import JointStates, LimiterParams
from twistctl.core.type_utils import Matrix, Vector
from twistctl.extensions.base import KinematicExtension, NoExtension
from twistctl.solvers.damping import DampingStrategy, build_damping_strategy
from twistctl.solvers.pinv import PInvBySVD, PseudoInverseCalculator

__all__ = ["CycleResult", "TwistController", "clip_joint_velocities"]

logger = logging.getLogger(__name__)


def clip_joint_velocities(q_dot: Vector, velocity_max: Vector) -> Vector:
    """Uniformly scale ``q_dot`` so that no ``|q_dot[i]|`` exceeds ``velocity_max[i]``.

    Scaling the whole vector keeps the direction of the Cartesian motion.
    """
    abs_q = np.abs(q_dot)
    with np.errstate(divide="ignore", invalid="ignore"):
        ratios = np.where(abs_q > 0.0, abs_q / velocity_max, 0.0)
    peak = float(np.max(ratios, initial=0.0))
    if peak <= 1.0:
        return q_dot
    if not math.isfinite(peak):
        return np.zeros_like(q_dot)
    return q_dot / peak


@dataclass(frozen=True, eq=False)
class CycleResult:
    q_dot: Vector  # chain joints only, in joint-state order
    extension_command: Vector | None  # what the extension dispatched
    damping_factor: float
    q_dot_full: Vector  # chain joints followed by extension DOFs


class TwistController:
    def __init__(
        self,
        params: PseudoInverseParams,
        calculator: PseudoInverseCalculator | None = None,
        damping: DampingStrategy | None = None,
        extension: KinematicExtension | None = None,
    ) -> None:
        self.params = params
        self.calculator = calculator if calculator is not None else PInvBySVD()
        self.damping = damping if damping is not None else build_damping_strategy(params)
        self.extension = extension if extension is not None else NoExtension()

    def solve(
        self,
        jacobian: Matrix,
        joint_states: JointStates,
        twist: Vector,
        limiter: LimiterParams | None = None,
    ) -> CycleResult:
        """Run one cycle and raise on failure."""
        J = np.asarray(jacobian, dtype=float)
        x_dot = np.asarray(twist, dtype=float)
        if J.ndim != 2:
            raise InvalidInputError(f"Jacobian must be a 2D matrix, got shape {J.shape}")
        if x_dot.shape != (J.shape[0],):
            raise InvalidInputError(f"twist of shape {x_dot.shape} does not match {J.shape[0]} Jacobian rows")
        chain_dof = J.shape[1]
        if joint_states.dof != chain_dof:
            raise InvalidInputError(f"{joint_states.dof} joint states for {chain_dof} Jacobian columns")
        if limiter is None:
            limiter = LimiterParams.unbounded(chain_dof)
        elif limiter.dof != chain_dof:
            raise InvalidInputError(f"{limiter.dof} limiter entries for {chain_dof} joints")

        ext = self.extension
        J_full = ext.adjust_jacobian(J)
        states_full = ext.adjust_joint_states(joint_states)
        limiter_full = ext.adjust_limiter_params(limiter)
        if not (J_full.shape[1] == states_full.dof == limiter_full.dof):
            raise InvalidInputError(
                f"augmentation mismatch: {J_full.shape[1]} columns, {states_full.dof} joints, "
                f"{limiter_full.dof} limiter entries"
            )

        solved = self.calculator.calculate_with_info(J_full, self.params, self.damping)
        q_dot_full = clip_joint_velocities(solved.pinv @ x_dot, limiter_full.velocity_max)

        extension_command = ext.process_result_extension(q_dot_full)
        return CycleResult(
            q_dot=q_dot_full[:chain_dof],
            extension_command=extension_command,
            damping_factor=solved.damping_factor,
            q_dot_full=q_dot_full,
        )

    def compute(
        self,
        jacobian: Matrix,
        joint_states: JointStates,
        twist: Vector,
        limiter: LimiterParams | None = None,
    ) -> CycleResult | None:
        """Run one cycle; a failure aborts only this cycle and returns ``None``.

        The caller decides whether to hold the last command, send zero or skip.
        """
        try:
            return self.solve(jacobian, joint_states, twist, limiter)
        except (TwistControlError, np.linalg.LinAlgError) as exc:
            logger.warning("control cycle aborted: %s", exc)
            return None
