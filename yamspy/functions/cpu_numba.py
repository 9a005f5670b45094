from numba import jit, prange, complex128

import numpy as np

from yamspy import coaxial


recursion_a = jit(nopython=True, nogil=True, cache=True)(coaxial.recursion_a)


@jit(nopython=True, parallel=True, nogil=True, cache=True)
def coaxial_vector_blocks(coaxial: np.ndarray, kd: complex, n_max: int):
    """Vector translation coefficients for a translation along the z-axis.

    Parameters
    ----------
    coaxial : np.ndarray
        Scalar coaxial coefficients ``C(n, m, p)`` stored as ``coaxial[m, n, p]`` for
    ``0 <= m, n <= n_max`` and ``0 <= p <= n_max + 1``.
    kd : complex
        Wave number times the (signed) translation distance.
    n_max : int
        The truncation order.

    Returns
    -------
    diagonal : np.ndarray
        ``A[m, n, p]``, coupling of M to M (and N to N).
    offdiagonal : np.ndarray
        ``B[m, n, p]``, coupling of M to N (and N to M).

    """
    shape = (n_max + 1, n_max + 1, n_max + 1)
    diagonal = np.zeros(shape, dtype=complex128)
    offdiagonal = np.zeros(shape, dtype=complex128)

    for m in prange(n_max + 1):
        for n in range(max(m, 1), n_max + 1):
            for p in range(max(m, 1), n_max + 1):
                diagonal[m, n, p] = coaxial[m, n, p] + kd * (
                    recursion_a(p, m) / (p + 1) * coaxial[m, n, p + 1]
                    + recursion_a(p - 1, m) / p * coaxial[m, n, p - 1]
                )
                offdiagonal[m, n, p] = 1j * m * kd * coaxial[m, n, p] / (p * (p + 1))

    return diagonal, offdiagonal
