"""Coaxial translation coefficients.

A scalar wave function :math:`\\psi_n^m = z_n(kr) Y_n^m(\\theta, \\phi)` expanded
about one origin is re-expanded about a second origin displaced by ``d`` along
the z-axis,

.. math::

    \\psi_n^m(\\mathbf r' + d \\hat z) = \\sum_l C_{n l}^m(d)\\, \\psi_l^m(\\mathbf r').

The coefficients follow from closed-form seeds at ``n = 0`` and the three-term
recurrences of :cite:`Gumerov-2004-ID1` (eqs. 3.2.86 and 3.2.90 in the book,
also :cite:`Chew-1992-ID1`). The order ``m`` is conserved by a coaxial
translation.

Notes
-----
The seeds use :math:`j_l` when the original and the re-expansion basis are of
the same kind (regular-to-regular or singular-to-singular) and
:math:`h_l^{(1)}` for singular-to-regular translations.
"""

from __future__ import annotations

import numpy as np
from scipy.special import spherical_jn, spherical_yn


def recursion_a(n: int, m: int) -> float:
    """Recursion coefficient :math:`a_n^m`.

    .. math::

        a_n^m = \\sqrt{\\frac{(n + |m| + 1)(n - |m| + 1)}{(2n + 1)(2n + 3)}}

    for :math:`n \\geq |m|` and zero otherwise.
    """
    m = abs(m)
    if n < m:
        return 0.0
    return np.sqrt((n + m + 1) * (n - m + 1) / ((2 * n + 1) * (2 * n + 3)))


def recursion_b(n: int, m: int) -> float:
    """Recursion coefficient :math:`b_n^m`.

    .. math::

        b_n^m = \\pm \\sqrt{\\frac{(n - m - 1)(n - m)}{(2n - 1)(2n + 1)}}

    with ``+`` for :math:`0 \\leq m \\leq n`, ``-`` for :math:`-n \\leq m < 0` and
    zero for :math:`|m| > n`.
    """
    if abs(m) > n:
        return 0.0
    value = np.sqrt((n - m - 1) * (n - m) / ((2 * n - 1) * (2 * n + 1)))
    return value if m >= 0 else -value


class CachedCoAxialRecurrence:
    """Memoised coaxial translation coefficients.

    Parameters
    ----------
    distance:
        Signed translation distance along the z-axis.
    wave_k:
        Wave number of the background medium (complex for absorbing media).
    regular:
        Selects :math:`j_l` (``True``) or :math:`h_l^{(1)}` (``False``) for
        the seed values.

    Notes
    -----
    Values are cached per ``(n, |m|, l)``. The coefficients do not depend on
    the sign of ``m``, and indices with ``n < |m|`` or ``l < |m|`` are zero.
    """

    def __init__(self, distance: float, wave_k: complex, regular: bool = True):
        self.distance = float(distance)
        self.wave_k = complex(wave_k)
        self.regular = bool(regular)
        self._cache: dict[tuple[int, int, int], complex] = {}

    def __call__(self, n: int, m: int, l: int) -> complex:
        return self.value(n, m, l)

    def value(self, n: int, m: int, l: int) -> complex:
        """Coefficient :math:`C_{nl}^m` of the translation."""
        m = abs(m)
        if n < m or l < m:
            return 0j
        if self.distance == 0:
            return 1 + 0j if n == l else 0j

        key = (n, m, l)
        cached = self._cache.get(key)
        if cached is None:
            cached = self._recurrence(n, m, l)
            self._cache[key] = cached
        return cached

    def _seed(self, l: int) -> complex:
        # sqrt(4 pi) * Y_l^0(0, 0) = sqrt(2l + 1)
        z = self.wave_k * self.distance
        radial = spherical_jn(l, z)
        if not self.regular:
            radial = radial + 1j * spherical_yn(l, z)
        return complex((-1) ** l * np.sqrt(2 * l + 1) * radial)

    def _recurrence(self, n: int, m: int, l: int) -> complex:
        if n == 0:
            return self._seed(l)
        if m == n:
            return (
                recursion_b(l, -n) * self.value(n - 1, n - 1, l - 1)
                - recursion_b(l + 1, n - 1) * self.value(n - 1, n - 1, l + 1)
            ) / recursion_b(n, -n)
        return (
            recursion_a(n - 2, m) * self.value(n - 2, m, l)
            - recursion_a(l, m) * self.value(n - 1, m, l + 1)
            + recursion_a(l - 1, m) * self.value(n - 1, m, l - 1)
        ) / recursion_a(n - 1, m)

    def table(self, n_max: int, l_max: int) -> np.ndarray:
        """All coefficients with ``m >= 0`` as an array ``[m, n, l]``.

        Parameters
        ----------
        n_max:
            Highest source degree.
        l_max:
            Highest re-expansion degree.

        Returns
        -------
        numpy.ndarray
            Complex array of shape ``(n_max + 1, n_max + 1, l_max + 1)``.
        """
        result = np.zeros((n_max + 1, n_max + 1, l_max + 1), dtype=complex)
        for m in range(n_max + 1):
            for n in range(m, n_max + 1):
                for l in range(m, l_max + 1):
                    result[m, n, l] = self.value(n, m, l)
        return result
