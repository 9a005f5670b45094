"""Initial (incident) field coefficient generation.

A plane wave

.. math::

    \\mathbf E(\\mathbf r) = E_0 (E_\\theta \\hat{\\boldsymbol\\theta}
        + E_\\phi \\hat{\\boldsymbol\\phi}) e^{i \\mathbf k \\cdot \\mathbf r}

travelling along :math:`\\hat{\\mathbf k}(\\beta, \\alpha)` is expanded in
regular vector spherical wave functions about an arbitrary centre. The unit
vectors :math:`\\hat{\\boldsymbol\\theta}` and :math:`\\hat{\\boldsymbol\\phi}`
belong to the propagation direction.

References
----------
VSWF expansions for plane-wave illumination are standard and can be found in
many texts, e.g. :cite:`Mishchenko-2002-ID6`.
"""

from __future__ import annotations

import numpy as np

from yamspy.functions.misc import flat_index, flat_max
from yamspy.functions.spherical_functions_trigon import spherical_functions_trigon


def compute_planewave_coefficients(
    center,
    wave_k: complex,
    n_max: int,
    amplitude: complex = 1.0,
    polar_angle: float = 0.0,
    azimuthal_angle: float = 0.0,
    e_theta: complex = 0.0,
    e_phi: complex = 1.0,
) -> np.ndarray:
    """Regular VSWF coefficients of a plane wave about ``center``.

    Parameters
    ----------
    center:
        Expansion centre, shape ``(3,)``.
    wave_k:
        Wave number of the background medium.
    n_max:
        Truncation order.
    amplitude:
        Field amplitude :math:`E_0`.
    polar_angle, azimuthal_angle:
        Propagation direction :math:`(\\beta, \\alpha)`.
    e_theta, e_phi:
        Polarisation components along :math:`\\hat{\\boldsymbol\\theta}` and
        :math:`\\hat{\\boldsymbol\\phi}`.

    Returns
    -------
    numpy.ndarray
        Complex vector of length ``2 * n_max * (n_max + 2)``, ``M`` block first.

    Notes
    -----
    With the normalized angular functions :math:`\\pi_n^m`, :math:`\\tau_n^m`
    at the polar angle :math:`\\beta`,

    .. math::

        a_{nm} &= \\frac{4 \\pi i^n}{n (n + 1)}
            \\left[-E_\\phi \\tau_n^m - i E_\\theta \\pi_n^m\\right]
            e^{-i m \\alpha}, \\\\
        b_{nm} &= -\\frac{4 \\pi i^{n + 1}}{n (n + 1)}
            \\left[E_\\theta \\tau_n^m - i E_\\phi \\pi_n^m\\right]
            e^{-i m \\alpha},

    both multiplied by :math:`E_0 e^{i \\mathbf k \\cdot \\mathbf c}`.
    """
    beta, alpha = polar_angle, azimuthal_angle
    direction = np.array(
        (np.sin(beta) * np.cos(alpha), np.sin(beta) * np.sin(alpha), np.cos(beta))
    )
    phase = amplitude * np.exp(1j * wave_k * np.dot(direction, np.asarray(center)))

    pi_nm, tau_nm = spherical_functions_trigon(n_max, beta)

    coefficients = np.zeros(2 * flat_max(n_max), dtype=complex)
    offset = flat_max(n_max)
    for n in range(1, n_max + 1):
        prefactor = 4 * np.pi / (n * (n + 1)) * phase
        for m in range(-n, n + 1):
            pi, tau = pi_nm[n, m + n_max], tau_nm[n, m + n_max]
            azimuthal = np.exp(-1j * m * alpha)
            idx = flat_index(n, m)
            coefficients[idx] = (
                prefactor * 1j**n * (-e_phi * tau - 1j * e_theta * pi) * azimuthal
            )
            coefficients[offset + idx] = (
                -prefactor * 1j ** (n + 1) * (e_theta * tau - 1j * e_phi * pi) * azimuthal
            )

    return coefficients
