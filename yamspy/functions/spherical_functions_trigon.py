"""Angular functions of the vector spherical wave functions.

.. math::

    \\pi_n^m(\\theta) = \\frac{m}{\\sin\\theta} \\bar P_n^m(\\cos\\theta),
    \\qquad
    \\tau_n^m(\\theta) = \\frac{d}{d\\theta} \\bar P_n^m(\\cos\\theta)

Both are evaluated through degree/order recurrences of the normalized Legendre
functions, so the poles :math:`\\theta \\in \\{0, \\pi\\}` need no special
treatment.
"""

import numpy as np

from yamspy.functions.legendre_normalized_trigon import legendre_normalized_trigon


def spherical_functions_trigon(n_max: int, theta: float):
    """
    Compute :math:`\\pi_n^m` and :math:`\\tau_n^m` for a single polar angle.

    Parameters
    ----------
    n_max : int
        Highest degree.
    theta : float
        Polar angle in radians.

    Returns
    -------
    pi_nm : numpy.ndarray
        Shape ``(n_max + 1, 2 * n_max + 1)``, entry ``[n, m + n_max]``.
    tau_nm : numpy.ndarray
        Same layout as ``pi_nm``.
    """
    x = np.cos(theta)
    pi_nm = np.zeros((n_max + 1, 2 * n_max + 1))
    tau_nm = np.zeros_like(pi_nm)
    for n in range(1, n_max + 1):
        scale = np.sqrt((2 * n + 1) / (2 * n + 3))
        for m in range(-n, n + 1):
            tau_nm[n, m + n_max] = 0.5 * (
                np.sqrt((n - m) * (n + m + 1)) * legendre_normalized_trigon(n, m + 1, x)
                - np.sqrt((n + m) * (n - m + 1))
                * legendre_normalized_trigon(n, m - 1, x)
            )
            pi_nm[n, m + n_max] = (
                -0.5
                * scale
                * (
                    np.sqrt((n + m + 1) * (n + m + 2))
                    * legendre_normalized_trigon(n + 1, m + 1, x)
                    + np.sqrt((n - m + 1) * (n - m + 2))
                    * legendre_normalized_trigon(n + 1, m - 1, x)
                )
            )
    return pi_nm, tau_nm
