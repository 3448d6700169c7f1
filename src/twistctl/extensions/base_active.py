"""Planar mobile base as an actively controlled kinematic extension.

The base contributes lin_x, lin_y and rot_z (in that order). Per cycle the
frame source tells where the chain tip sits relative to the base and where
the base sits relative to the chain base; the base share of the velocity
solution is thresholded, clamped and sent to the command sink.
"""

from __future__ import annotations

import logging

import numpy as np

from twistctl.core.config import BaseActiveParams
from twistctl.core.errors import ExtensionInitError
from twistctl.core.models import ActiveCartesianDimension
from twistctl.core.type_utils import Matrix, Vector

from .base import KinematicExtensionDOF
from .interfaces import FrameSource, VelocityCommandSink

__all__ = ["BaseActiveExtension"]

logger = logging.getLogger(__name__)


class BaseActiveExtension(KinematicExtensionDOF):
    def __init__(
        self,
        sink: VelocityCommandSink | None,
        frame_source: FrameSource | None,
        params: BaseActiveParams | None = None,
    ) -> None:
        self.params = params if params is not None else BaseActiveParams()
        p = self.params
        super().__init__(
            ActiveCartesianDimension.PLANAR,
            p.joint_names,
            limits_min=[p.position_min] * 3,
            limits_max=[p.position_max] * 3,
            limits_vel=[p.max_vel_lin, p.max_vel_lin, p.max_vel_rot],
            limits_acc=[p.max_acc_lin, p.max_acc_lin, p.max_acc_rot],
            min_vel=[p.min_vel_lin, p.min_vel_lin, p.min_vel_rot],
        )
        self._sink = sink
        self._frame_source = frame_source
        self.init_extension()

    def _init_extension(self) -> None:
        sink, frame_source = self._sink, self._frame_source
        if sink is None:
            raise ExtensionInitError("no base velocity command sink configured")
        if not sink.is_available():
            raise ExtensionInitError("base velocity command sink is unavailable")
        if frame_source is None:
            raise ExtensionInitError("no frame source for the base extension")
        # the hooks below run only after a successful init
        self._ready_sink: VelocityCommandSink = sink
        self._ready_frames: FrameSource = frame_source

    def _adjust_jacobian(self, jac_chain: Matrix) -> Matrix:
        frames = self._ready_frames.extension_frames()
        return self.adjust_jacobian_dof(jac_chain, frames.eb_frame_ct, frames.cb_frame_eb, self.active_dim)

    def _dispatch(self, command: Vector) -> None:
        logger.debug("base command lin_x=%.4f lin_y=%.4f rot_z=%.4f", *command)
        self._ready_sink.send(np.array(command, dtype=float))
