"""Shared helpers for CLI modules."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np
import sympy as sp

from twistctl.core.models import ActiveCartesianDimension
from twistctl.core.type_utils import Matrix


class ConsoleFormatter(logging.Formatter):
    """Plain INFO lines; timestamp and level for everything else."""

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            force=True,
        )
        return
    # replaces handlers from an earlier call
    handler = logging.StreamHandler()
    handler.setFormatter(ConsoleFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    logging.basicConfig(level=logging.INFO, handlers=[handler], force=True)


def pprint_matrix(matrix: sp.Matrix) -> None:
    sp.pprint(matrix, use_unicode=True)  # type: ignore[operator]


def matrix_from_flat(values: Sequence[float], rows: int) -> Matrix:
    """Reshape a row-major flat list into a ``rows`` x N matrix."""
    if rows <= 0:
        raise SystemExit("--rows must be positive")
    if len(values) % rows != 0:
        raise SystemExit(f"--jacobian has {len(values)} values, not a multiple of --rows {rows}")
    return np.array(list(values), dtype=float).reshape(rows, -1)


AXIS_NAMES = ("lin_x", "lin_y", "lin_z", "rot_x", "rot_y", "rot_z")


def parse_axes(names: Sequence[str]) -> ActiveCartesianDimension:
    dim = ActiveCartesianDimension(0)
    for name in names:
        dim |= ActiveCartesianDimension[name.upper()]
    return dim
