"""Mie coefficient generation utilities.

The coefficients computed here are the diagonal entries of a sphere's
T-matrix in the vector-spherical-wave-function (VSWF) basis (classical Mie
scattering, including a relative permeability of sphere and medium):

- ``tau = 1`` corresponds to the ``M`` family (transverse electric)
- ``tau = 2`` corresponds to the ``N`` family (transverse magnetic)

The formulas follow :cite:`Bohren-1998-ID178` (eqs. 4.52-4.53), see
:func:`yamspy.functions.t_entry.t_entry`.
"""

from __future__ import annotations

import numpy as np

from yamspy.functions.misc import flat_max
from yamspy.functions.t_entry import t_entry


def _expand_orders(values: np.ndarray, n_max: int) -> np.ndarray:
    # the coefficient of degree n is shared by all 2n + 1 orders
    return np.repeat(values, 2 * np.arange(1, n_max + 1) + 1)


def compute_mie_coefficients(
    radius: float,
    k_medium: complex,
    k_sphere: complex,
    n_max: int,
    mu_medium: complex = 1.0,
    mu_sphere: complex = 1.0,
) -> tuple[np.ndarray, np.ndarray]:
    """Compute the diagonal T-operator and the internal field coefficients.

    Parameters
    ----------
    radius:
        Sphere radius.
    k_medium:
        Wave number of the background medium.
    k_sphere:
        Wave number inside the sphere.
    n_max:
        Truncation order.
    mu_medium, mu_sphere:
        Relative permeabilities of medium and sphere.

    Returns
    -------
    t_diagonal : numpy.ndarray
        Complex array of length ``2 * n_max * (n_max + 2)`` mapping incident to
        scattered coefficients, ``M`` block first.
    internal_diagonal : numpy.ndarray
        Same layout, mapping exciting to internal coefficients.

    Notes
    -----
    The special functions are evaluated once for all degrees
    ``n = 1..n_max``; the orders only replicate the coefficient of their
    degree.
    """
    degrees = np.arange(1, n_max + 1)
    t_diagonal = np.zeros(2 * flat_max(n_max), dtype=complex)
    internal_diagonal = np.zeros_like(t_diagonal)

    for tau in range(1, 3):
        block = slice((tau - 1) * flat_max(n_max), tau * flat_max(n_max))
        scattered = t_entry(
            tau, degrees, k_medium, k_sphere, radius, mu_medium, mu_sphere, "scattered"
        )
        internal = t_entry(
            tau, degrees, k_medium, k_sphere, radius, mu_medium, mu_sphere, "internal"
        )
        t_diagonal[block] = _expand_orders(scattered, n_max)
        internal_diagonal[block] = _expand_orders(internal, n_max)

    return t_diagonal, internal_diagonal
