"""CLI wiring for the pseudo-inverse calculators."""

from __future__ import annotations

import argparse

import numpy as np

from twistctl.cli.utils import matrix_from_flat
from twistctl.core.config import DampingMethod, PseudoInverseParams
from twistctl.core.errors import TwistControlError
from twistctl.solvers.damping import build_damping_strategy
from twistctl.solvers.pinv import build_pinv_calculator


def _build_params(args: argparse.Namespace) -> PseudoInverseParams:
    return PseudoInverseParams(
        damping_method=DampingMethod.parse(args.damping),
        eps_truncation=float(args.eps_truncation),
        numerical_filtering=bool(args.numerical_filtering),
        beta=float(args.beta),
        damping_factor=float(args.damping_factor),
        lambda_max=float(args.lambda_max),
        w_threshold=float(args.w_threshold),
        eps_damping=float(args.eps_damping),
    )


def cmd_pinv(args: argparse.Namespace) -> int:
    J = matrix_from_flat(args.jacobian, args.rows)
    calculator = build_pinv_calculator(args.algorithm)
    try:
        if args.undamped:
            result = calculator.calculate_with_info(J)
        else:
            params = _build_params(args)
            result = calculator.calculate_with_info(J, params, build_damping_strategy(params))
    except TwistControlError as exc:
        raise SystemExit(f"pseudo-inverse failed: {exc}") from exc

    np.set_printoptions(precision=int(args.digits), suppress=not args.scientific)
    print(f"Jacobian ({J.shape[0]}x{J.shape[1]}):")
    print(J)
    pinv = result.pinv
    if result.singular_values is not None:
        print("Singular values:", result.singular_values)
    print(f"Damping factor: {result.damping_factor:.6g}")
    print(f"Pseudo-inverse ({pinv.shape[0]}x{pinv.shape[1]}):")
    print(pinv)
    if args.twist is not None:
        twist = np.array(args.twist, dtype=float)
        if twist.shape != (J.shape[0],):
            raise SystemExit(f"--twist needs {J.shape[0]} values")
        print("Joint velocities:")
        print(pinv @ twist)
    return 0


def configure_pinv_parser(parser: argparse.ArgumentParser) -> None:
    defaults = PseudoInverseParams()
    parser.add_argument("--rows", type=int, required=True, help="number of Jacobian rows (Cartesian dims)")
    parser.add_argument(
        "--jacobian", type=float, nargs="+", required=True, help="Jacobian entries, row-major"
    )
    parser.add_argument("--algorithm", choices=("svd", "direct"), default="svd")
    parser.add_argument("--undamped", action="store_true", help="plain pseudo-inverse, no damping strategy")
    parser.add_argument(
        "--damping",
        choices=[m.value for m in DampingMethod],
        default=defaults.damping_method.value,
    )
    parser.add_argument("--damping-factor", type=float, default=defaults.damping_factor)
    parser.add_argument("--lambda-max", type=float, default=defaults.lambda_max)
    parser.add_argument("--w-threshold", type=float, default=defaults.w_threshold)
    parser.add_argument("--eps-damping", type=float, default=defaults.eps_damping)
    parser.add_argument("--eps-truncation", type=float, default=defaults.eps_truncation)
    parser.add_argument("--numerical-filtering", action="store_true")
    parser.add_argument("--beta", type=float, default=defaults.beta, help="numerical filtering weight")
    parser.add_argument("--twist", type=float, nargs="+", help="optional twist to map to joint velocities")
    parser.add_argument("--digits", type=int, default=5, help="print precision")
    parser.add_argument("--scientific", action="store_true", help="use scientific notation")


def register_subparsers(subparsers: argparse._SubParsersAction) -> None:
    pinv = subparsers.add_parser("pinv", help="damped pseudo-inverse of a Jacobian")
    configure_pinv_parser(pinv)
    pinv.set_defaults(func=cmd_pinv)
