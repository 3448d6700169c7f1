"""Collaborator interfaces injected into kinematic extensions."""

from __future__ import annotations

from typing import NamedTuple, Protocol, runtime_checkable

from twistctl.core.models import FrameTransform
from twistctl.core.type_utils import Vector


class ExtensionFrames(NamedTuple):
    eb_frame_ct: FrameTransform  # chain tip in the extension base frame
    cb_frame_eb: FrameTransform  # extension base in the chain base frame


@runtime_checkable
class VelocityCommandSink(Protocol):
    """Actuation interface of an extension (e.g. a base velocity topic)."""

    def is_available(self) -> bool: ...

    def send(self, command: Vector) -> None:
        """Receive one command, one entry per active axis in twist order (m/s, rad/s)."""
        ...


@runtime_checkable
class FrameSource(Protocol):
    """Forward-kinematics side that knows where the extension sits this cycle.

    Implementations raise :class:`~twistctl.core.errors.FrameLookupError` when
    the transforms cannot be provided.
    """

    def extension_frames(self) -> ExtensionFrames: ...


class StaticFrameSource:
    """Frame source returning fixed transforms, for rigidly mounted chains."""

    def __init__(self, eb_frame_ct: FrameTransform, cb_frame_eb: FrameTransform | None = None) -> None:
        self._frames = ExtensionFrames(eb_frame_ct, cb_frame_eb or FrameTransform.identity())

    def extension_frames(self) -> ExtensionFrames:
        return self._frames


__all__ = ["ExtensionFrames", "VelocityCommandSink", "FrameSource", "StaticFrameSource"]
