from .control.twist_controller import CycleResult, TwistController
from .core.config import BaseActiveParams, DampingMethod, PseudoInverseParams
from .core.errors import (
    ExtensionInitError,
    FrameLookupError,
    InvalidInputError,
    SingularMatrixError,
    TwistControlError,
    UnsupportedConfigurationError,
)
from .core.models import ActiveCartesianDimension, FrameTransform, JointStates, LimiterParams
from .extensions.base import ExtensionStatus, KinematicExtension, NoExtension
from .extensions.base_active import BaseActiveExtension
from .extensions.builder import build_extension
from .solvers.damping import DampingStrategy, build_damping_strategy
from .solvers.pinv import PInvBySVD, PInvDirect, PInvResult, PseudoInverseCalculator, build_pinv_calculator

__all__ = [
    "ActiveCartesianDimension",
    "BaseActiveExtension",
    "BaseActiveParams",
    "CycleResult",
    "DampingMethod",
    "DampingStrategy",
    "ExtensionInitError",
    "ExtensionStatus",
    "FrameLookupError",
    "FrameTransform",
    "InvalidInputError",
    "JointStates",
    "KinematicExtension",
    "LimiterParams",
    "NoExtension",
    "PInvBySVD",
    "PInvDirect",
    "PInvResult",
    "PseudoInverseCalculator",
    "PseudoInverseParams",
    "SingularMatrixError",
    "TwistControlError",
    "TwistController",
    "UnsupportedConfigurationError",
    "build_damping_strategy",
    "build_extension",
    "build_pinv_calculator",
]
