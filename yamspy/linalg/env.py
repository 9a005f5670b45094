"""Environment-variable helpers for the compute grid.

These helpers centralize parsing of the environment variables that shape the
process grid used by the distributed solvers:

- ``YAMS_GRID_ROWS`` and ``YAMS_GRID_COLS``: grid shape;
- ``YAMS_BLOCK_SIZE``: block-cyclic block size, either ``"64"`` or ``"64x32"``.

Notes
-----
These are intentionally forgiving: invalid inputs fall back to defaults rather
than raising, to keep CLI and batch runs robust.
"""

from __future__ import annotations

import os


def parse_int_env(name: str, *, default: int, minimum: int = 1) -> int:
    """Parse an integer environment variable with a lower bound.

    Parameters
    ----------
    name:
        Environment variable name.
    default:
        Default value used when the variable is unset or invalid.
    minimum:
        Lower bound enforced on the returned value.

    Returns
    -------
    int
        Parsed integer value (at least ``minimum``).
    """

    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return max(minimum, value)


def parse_block_size_env(
    name: str, *, default: tuple[int, int] = (64, 64)
) -> tuple[int, int]:
    """Parse a block size given as ``"n"`` or ``"rows x cols"``.

    Parameters
    ----------
    name:
        Environment variable name.
    default:
        Default block size used when the variable is unset or invalid.

    Returns
    -------
    tuple[int, int]
        Positive block size ``(rows, cols)``.
    """

    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    parts = [part.strip() for part in raw.replace(",", "x").split("x")]
    try:
        values = [int(part) for part in parts]
    except ValueError:
        return default
    if len(values) == 1:
        values = values * 2
    if len(values) != 2 or min(values) < 1:
        return default
    return values[0], values[1]


def grid_shape_from_env(default: tuple[int, int] = (1, 1)) -> tuple[int, int]:
    """Grid shape from ``YAMS_GRID_ROWS`` and ``YAMS_GRID_COLS``."""

    rows = parse_int_env("YAMS_GRID_ROWS", default=default[0])
    cols = parse_int_env("YAMS_GRID_COLS", default=default[1])
    return rows, cols


def block_size_from_env(default: tuple[int, int] = (64, 64)) -> tuple[int, int]:
    """Block size from ``YAMS_BLOCK_SIZE``."""

    return parse_block_size_env("YAMS_BLOCK_SIZE", default=default)
