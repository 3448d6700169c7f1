"""CLI wiring for the kinematic-extension Jacobian columns."""

from __future__ import annotations

import argparse

import numpy as np
import sympy as sp

from twistctl.cli.utils import AXIS_NAMES, parse_axes, pprint_matrix
from twistctl.core.models import FrameTransform
from twistctl.model.extension_jacobian import (
    ExtensionColumnsSymbolic,
    extension_jacobian_columns,
    symbolic_extension_columns,
)


def cmd_extension_numeric(args: argparse.Namespace) -> int:
    active = parse_axes(args.axes)
    eb_frame_ct = FrameTransform.from_xyz_rpy(*args.tip)
    cb_frame_eb = FrameTransform.from_xyz_rpy(*args.base)
    columns = extension_jacobian_columns(eb_frame_ct, cb_frame_eb, active)
    np.set_printoptions(precision=int(args.digits), suppress=True)
    print("Extension columns (" + ", ".join(axis.name.lower() for axis in active.axes()) + "):")
    print(columns)
    return 0


def cmd_extension_symbolic(args: argparse.Namespace) -> int:
    cols: ExtensionColumnsSymbolic = symbolic_extension_columns(parse_axes(args.axes))
    if args.block == "linear":
        matrix = cols.J_linear
        label = "Linear block (Jv)"
    elif args.block == "angular":
        matrix = cols.J_angular
        label = "Angular block (Jω)"
    else:
        matrix = cols.columns
        label = "Extension columns"
    if args.subs is not None:
        subs = dict(zip((*cols.offset, *cols.rpy), (float(v) for v in args.subs)))
        matrix = sp.N(matrix.subs(subs), int(args.digits))  # type: ignore[no-untyped-call]
    print(label + (" (substituted)" if args.subs is not None else ""))
    pprint_matrix(matrix)
    return 0


def register_subparsers(subparsers: argparse._SubParsersAction) -> None:
    extension = subparsers.add_parser("extension", help="kinematic extension Jacobian columns")
    ext_sub = extension.add_subparsers(dest="extension_command", required=True)

    ext_numeric = ext_sub.add_parser("numeric", help="evaluate extension columns for given frames")
    ext_numeric.add_argument(
        "--axes", nargs="+", choices=AXIS_NAMES, default=["lin_x", "lin_y", "rot_z"]
    )
    ext_numeric.add_argument(
        "--tip",
        type=float,
        nargs=6,
        default=[0.0] * 6,
        metavar=("X", "Y", "Z", "ROLL", "PITCH", "YAW"),
        help="chain tip pose in the extension base frame (m, rad)",
    )
    ext_numeric.add_argument(
        "--base",
        type=float,
        nargs=6,
        default=[0.0] * 6,
        metavar=("X", "Y", "Z", "ROLL", "PITCH", "YAW"),
        help="extension base pose in the chain base frame (m, rad)",
    )
    ext_numeric.add_argument("--digits", type=int, default=5, help="print precision")
    ext_numeric.set_defaults(func=cmd_extension_numeric)

    ext_symbolic = ext_sub.add_parser("symbolic", help="print symbolic extension columns")
    ext_symbolic.add_argument(
        "--axes", nargs="+", choices=AXIS_NAMES, default=["lin_x", "lin_y", "rot_z"]
    )
    ext_symbolic.add_argument(
        "--block",
        choices=("full", "linear", "angular"),
        default="full",
        help="choose which block to print",
    )
    ext_symbolic.add_argument(
        "--subs",
        type=float,
        nargs=6,
        metavar=("PX", "PY", "PZ", "ROLL", "PITCH", "YAW"),
        help="optionally substitute tip offset and base orientation",
    )
    ext_symbolic.add_argument("--digits", type=int, default=6, help="digits for numeric eval")
    ext_symbolic.set_defaults(func=cmd_extension_symbolic)
