"""Translation of spherical wave expansions between two centres.

With the vector spherical wave functions

.. math::

    \\mathbf M_{nm} = \\nabla \\times (\\mathbf r\\, \\psi_{nm}), \\qquad
    \\mathbf N_{nm} = \\frac{1}{k} \\nabla \\times \\mathbf M_{nm},

a translation by ``d`` reads

.. math::

    \\mathbf M_{nm}(\\mathbf r' + \\mathbf d) = \\sum_{p\\nu}
        A_{nm,p\\nu}(\\mathbf d) \\mathbf M_{p\\nu}(\\mathbf r')
        + B_{nm,p\\nu}(\\mathbf d) \\mathbf N_{p\\nu}(\\mathbf r'),

and the same with ``M`` and ``N`` swapped. For a translation along the z-axis
the coefficients follow from the scalar coaxial coefficients ``C``:

.. math::

    A_{np}^m = C_{np}^m + k d \\left[\\frac{a_p^m}{p + 1} C_{n,p+1}^m
        + \\frac{a_{p-1}^m}{p} C_{n,p-1}^m\\right], \\qquad
    B_{np}^m = \\frac{i m k d}{p (p + 1)} C_{np}^m.

General translations rotate the frame so that ``d`` lies on the z-axis
(:mod:`yamspy.coupling.rotation`) and rotate back afterwards.
"""

from __future__ import annotations

import logging

import numpy as np

from yamspy.coaxial import CachedCoAxialRecurrence
from yamspy.coupling.rotation import rotation_coefficients, rotation_to_z
from yamspy.functions.cpu_numba import coaxial_vector_blocks
from yamspy.functions.misc import flat_index, flat_max

log = logging.getLogger(__name__)


def coaxial_regular(source_regular: bool, target_regular: bool) -> bool:
    """Radial function kind of the coaxial seeds for a translation direction.

    Parameters
    ----------
    source_regular:
        Whether the expansion being translated uses regular wave functions.
    target_regular:
        Whether the re-expansion uses regular wave functions.

    Returns
    -------
    bool
        ``True`` if the seeds use :math:`j_l`, ``False`` for :math:`h_l^{(1)}`.

    Raises
    ------
    ValueError
        For a regular-to-singular translation, which has no convergent
        re-expansion.
    """
    if source_regular and not target_regular:
        raise ValueError("Regular-to-singular translations are not defined")
    return source_regular == target_regular


def _rotations(rotation: np.ndarray, n_max: int) -> list[np.ndarray]:
    return [rotation_coefficients(n, rotation) for n in range(n_max + 1)]


def scalar_translation(
    displacement,
    wave_k: complex,
    n_max: int,
    l_max: int | None = None,
    source_regular: bool = False,
    target_regular: bool = True,
) -> np.ndarray:
    """Translation matrix of the scalar wave functions.

    Parameters
    ----------
    displacement:
        Position of the new centre relative to the old one.
    wave_k:
        Wave number.
    n_max:
        Highest degree of the translated expansion.
    l_max:
        Highest degree of the re-expansion, defaults to ``n_max``.
    source_regular, target_regular:
        Kinds of the original and the re-expansion basis.

    Returns
    -------
    numpy.ndarray
        Matrix ``S`` of shape ``((n_max + 1)**2, (l_max + 1)**2)`` such that
        :math:`\\psi_{nm}(\\mathbf r' + \\mathbf d) = \\sum_{l\\nu}
        S[n(n+1)+m, l(l+1)+\\nu]\\, \\psi_{l\\nu}(\\mathbf r')`.
    """
    l_max = n_max if l_max is None else l_max
    displacement = np.asarray(displacement, dtype=float)
    distance = np.linalg.norm(displacement)
    recurrence = CachedCoAxialRecurrence(
        distance, wave_k, coaxial_regular(source_regular, target_regular)
    )
    rotation = rotation_to_z(displacement)
    rotations = _rotations(rotation, max(n_max, l_max))

    result = np.zeros(((n_max + 1) ** 2, (l_max + 1) ** 2), dtype=complex)
    for n in range(n_max + 1):
        for l in range(l_max + 1):
            common = min(n, l)
            coaxial = np.array([recurrence(n, mu, l) for mu in range(-common, common + 1)])
            block = (
                rotations[n][:, n - common : n + common + 1] * coaxial
            ) @ np.conj(rotations[l][:, l - common : l + common + 1]).T
            result[n * n : (n + 1) ** 2, l * l : (l + 1) ** 2] = block
    return result


class Coupling:
    """Vector translation coefficients between two expansion centres.

    Parameters
    ----------
    displacement:
        Position of the new centre relative to the old one, e.g.
        ``r_i - r_j`` to re-expand the field scattered by ``j`` about ``i``.
    wave_k:
        Wave number of the background medium.
    n_max:
        Truncation order of both expansions.
    source_regular, target_regular:
        Kinds of the original and the re-expansion basis. The default is the
        singular-to-regular translation used for scatterer interactions.

    Attributes
    ----------
    diagonal : numpy.ndarray
        ``A`` coefficients, shape ``(F, F)`` with ``F = n_max (n_max + 2)``;
        rows are the translated harmonics, columns the re-expansion harmonics.
    offdiagonal : numpy.ndarray
        ``B`` coefficients with the same layout.
    """

    def __init__(
        self,
        displacement,
        wave_k: complex,
        n_max: int,
        source_regular: bool = False,
        target_regular: bool = True,
    ):
        self.displacement = np.asarray(displacement, dtype=float)
        self.wave_k = complex(wave_k)
        self.n_max = int(n_max)
        self.regular = coaxial_regular(source_regular, target_regular)

        self.diagonal, self.offdiagonal = self._compute()

    def _compute(self) -> tuple[np.ndarray, np.ndarray]:
        n_max = self.n_max
        size = flat_max(n_max)
        distance = np.linalg.norm(self.displacement)

        recurrence = CachedCoAxialRecurrence(distance, self.wave_k, self.regular)
        coaxial = recurrence.table(n_max, n_max + 1)
        coaxial_a, coaxial_b = coaxial_vector_blocks(
            coaxial, self.wave_k * distance, n_max
        )
        rotations = _rotations(rotation_to_z(self.displacement), n_max)

        diagonal = np.zeros((size, size), dtype=complex)
        offdiagonal = np.zeros((size, size), dtype=complex)
        for n in range(1, n_max + 1):
            rows = slice(flat_index(n, -n), flat_index(n, n) + 1)
            for p in range(1, n_max + 1):
                cols = slice(flat_index(p, -p), flat_index(p, p) + 1)
                common = min(n, p)
                orders = np.arange(-common, common + 1)
                left = rotations[n][:, n - common : n + common + 1]
                right = np.conj(rotations[p][:, p - common : p + common + 1]).T

                # A is even in m, B is odd in m
                a = coaxial_a[np.abs(orders), n, p]
                b = np.sign(orders) * coaxial_b[np.abs(orders), n, p]
                diagonal[rows, cols] = (left * a) @ right
                offdiagonal[rows, cols] = (left * b) @ right

        log.debug(
            f"Coupling for |d| = {distance:.4g}, k = {self.wave_k:.4g}, n_max = {n_max}"
        )
        return diagonal, offdiagonal


def translation_matrix(coupling: Coupling) -> np.ndarray:
    """Full ``2F x 2F`` operator mapping translated to re-expanded coefficients.

    The coefficients ``x`` of an expansion about the old centre become
    ``translation_matrix(coupling) @ x`` about the new one.
    """
    diagonal = coupling.diagonal.T
    offdiagonal = coupling.offdiagonal.T
    return np.block([[diagonal, offdiagonal], [offdiagonal, diagonal]])
