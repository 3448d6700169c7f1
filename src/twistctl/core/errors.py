"""Exception hierarchy shared by the solvers, extensions and controller."""

from __future__ import annotations

import numpy as np

__all__ = [
    "TwistControlError",
    "InvalidInputError",
    "SingularMatrixError",
    "ExtensionInitError",
    "UnsupportedConfigurationError",
    "FrameLookupError",
]


class TwistControlError(Exception):
    """Base class for every error raised by twistctl."""


class InvalidInputError(TwistControlError, ValueError):
    """Malformed or dimension-mismatched Jacobian, singular values or vectors."""


class SingularMatrixError(TwistControlError, np.linalg.LinAlgError):
    """A Gram matrix that must be inverted is (numerically) singular."""


class ExtensionInitError(TwistControlError):
    """A kinematic extension could not be brought into the ready state."""


class UnsupportedConfigurationError(TwistControlError):
    """The requested combination of algorithm and options is not supported."""


class FrameLookupError(TwistControlError):
    """The frame transforms needed by an extension are not available this cycle."""
