"""Index helpers for the harmonic layout.

Coefficient vectors are ordered scatterer-major. Inside one scatterer the
``tau = 1`` (M, transverse electric) block precedes the ``tau = 2``
(N, transverse magnetic) block, and inside a block the harmonics run over
``n = 1..n_max`` and ``m = -n..n``.
"""

import numpy as np


def flat_max(n_max: int) -> int:
    """Number of non-trivial harmonics ``(n, m)`` with ``1 <= n <= n_max``."""
    return n_max * (n_max + 2)


def jmult_max(num_part: int, n_max: int) -> int:
    """
    Calculate the length of the global coefficient vector.

    Parameters
    ----------
    num_part : int
        The number of scatterers.
    n_max : int
        The truncation order.

    Returns
    -------
    int
        ``2 * num_part * n_max * (n_max + 2)``.
    """
    return 2 * num_part * flat_max(n_max)


def flat_index(n, m):
    """Position of harmonic ``(n, m)`` inside one polarization block."""
    return n * (n + 1) + m - 1


def harmonic_degrees_orders(n_max: int) -> tuple[np.ndarray, np.ndarray]:
    """Degrees and orders of one polarization block, in flat order."""
    degrees = np.concatenate([np.full(2 * n + 1, n) for n in range(1, n_max + 1)])
    orders = np.concatenate([np.arange(-n, n + 1) for n in range(1, n_max + 1)])
    return degrees.astype(int), orders.astype(int)
