"""Select a kinematic extension by name."""

from __future__ import annotations

from twistctl.core.config import BaseActiveParams
from twistctl.core.errors import UnsupportedConfigurationError

from .base import KinematicExtension, NoExtension
from .base_active import BaseActiveExtension
from .interfaces import FrameSource, VelocityCommandSink

EXTENSION_KINDS = ("none", "base_active")


def build_extension(
    kind: str = "none",
    *,
    sink: VelocityCommandSink | None = None,
    frame_source: FrameSource | None = None,
    base_params: BaseActiveParams | None = None,
) -> KinematicExtension:
    key = kind.strip().lower()
    if key == "none":
        return NoExtension()
    if key == "base_active":
        return BaseActiveExtension(sink, frame_source, base_params)
    raise UnsupportedConfigurationError(
        f"unknown kinematic extension {kind!r}; choose from {', '.join(EXTENSION_KINDS)}"
    )


__all__ = ["EXTENSION_KINDS", "build_extension"]
