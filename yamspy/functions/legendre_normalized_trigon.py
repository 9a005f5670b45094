"""Normalized associated Legendre functions and spherical harmonics.

The normalization is chosen such that

.. math::

    Y_n^m(\\theta, \\phi) = \\bar P_n^m(\\cos\\theta) e^{i m \\phi}

is orthonormal on the unit sphere and carries the Condon-Shortley phase. For
negative orders :math:`\\bar P_n^{-m} = (-1)^m \\bar P_n^m`, which gives
:math:`Y_n^{-m} = (-1)^m \\overline{Y_n^m}`. Orders with :math:`|m| > n` and
negative degrees evaluate to zero.
"""

import numpy as np
from scipy.special import gammaln, lpmv


def legendre_normalized_trigon(n: int, m: int, x):
    """Normalized associated Legendre function :math:`\\bar P_n^m(x)`.

    Parameters
    ----------
    n:
        Degree.
    m:
        Order, any sign.
    x:
        Argument(s), usually :math:`\\cos\\theta`.

    Returns
    -------
    numpy.ndarray
        Function values with the shape of ``x``.
    """
    x = np.asarray(x, dtype=float)
    m_abs = abs(m)
    if n < 0 or m_abs > n:
        return np.zeros_like(x)
    norm = np.sqrt(
        (2 * n + 1)
        / (4 * np.pi)
        * np.exp(gammaln(n - m_abs + 1) - gammaln(n + m_abs + 1))
    )
    value = norm * lpmv(m_abs, n, x)
    if m < 0 and m_abs % 2 == 1:
        value = -value
    return value


def spherical_harmonic(n: int, m: int, theta, phi):
    """Orthonormal spherical harmonic :math:`Y_n^m(\\theta, \\phi)`."""
    return legendre_normalized_trigon(n, m, np.cos(theta)) * np.exp(
        1j * m * np.asarray(phi)
    )


def spherical_harmonics_block(n: int, theta, phi) -> np.ndarray:
    """All harmonics of degree ``n``.

    Returns
    -------
    numpy.ndarray
        Array of shape ``(2n + 1,) + theta.shape``; row ``m + n`` holds
        :math:`Y_n^m`.
    """
    theta = np.asarray(theta, dtype=float)
    phi = np.asarray(phi, dtype=float)
    return np.stack([spherical_harmonic(n, m, theta, phi) for m in range(-n, n + 1)])
