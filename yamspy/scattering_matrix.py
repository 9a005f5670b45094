"""Assembly of the multiple scattering system.

With ``T_i`` the transfer operator of scatterer ``i`` and ``T_AB(d)`` the
translation of the field scattered by ``j`` to the centre of ``i``
(``d = r_i - r_j``), two equivalent formulations are assembled:

- direct, for the scattered coefficients ``x``:
  ``x_i - T_i sum_j T_AB(r_i - r_j) x_j = T_i q_i``;
- indirect (preconditioned), for the exciting coefficients ``y`` with
  ``x_i = T_i y_i``: ``y_i - sum_j T_AB(r_i - r_j) T_j y_j = q_i``.

Here ``q_i`` is the local source of scatterer ``i``: the incident field or,
for second harmonic runs, a source derived from a previous solution.

References
----------
Formulation and notation follow :cite:`Stout-2002-ID1` (Eq. 10) and the
CELES implementation :cite:`Egel-2017-ID1`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from yamspy.coupling import Coupling, translation_matrix
from yamspy.exceptions import ConfigurationError
from yamspy.functions.misc import flat_max, jmult_max
from yamspy.geometry import ExternalExcitation, Geometry, SecondHarmonicSource
from yamspy.linalg.grid import Context
from yamspy.linalg.matrix import BlockCyclicMatrix

if TYPE_CHECKING:
    from yamspy.initial_field import InitialField

log = logging.getLogger(__name__)


def _checked_n_max(geometry: Geometry, n_max: int | None = None) -> int:
    geometry_n_max = geometry.n_max
    if n_max is not None and n_max != geometry_n_max:
        raise ConfigurationError(
            f"Truncation order {n_max} differs from the scatterers' {geometry_n_max}"
        )
    return geometry_n_max


def _coupling_operator(
    geometry: Geometry, excitation: "InitialField", i: int, j: int, n_max: int
) -> np.ndarray:
    coupling = Coupling(
        geometry[i].position - geometry[j].position,
        geometry.background.wavenumber(excitation.omega),
        n_max,
    )
    return translation_matrix(coupling)


def scattering_matrix(
    geometry: Geometry, excitation: "InitialField", n_max: int | None = None
) -> np.ndarray:
    """Matrix of the direct formulation.

    Parameters
    ----------
    geometry:
        Scatterers and background.
    excitation:
        Incident field, sets the frequency.
    n_max:
        Truncation order; must match the scatterers'.

    Returns
    -------
    numpy.ndarray
        Square matrix with identity diagonal blocks and off-diagonal blocks
        ``-T_i T_AB(r_i - r_j)``.

    Raises
    ------
    ConfigurationError
        If the scatterers do not share one truncation order.
    """
    if len(geometry) == 0:
        return np.zeros((0, 0), dtype=complex)
    n_max = _checked_n_max(geometry, n_max)
    size = 2 * flat_max(n_max)
    number = len(geometry)

    result = np.zeros((jmult_max(number, n_max),) * 2, dtype=complex)
    for i in range(number):
        t_local = geometry.local_transfer_operator(excitation.omega, i, n_max)
        rows = slice(i * size, (i + 1) * size)
        for j in range(number):
            cols = slice(j * size, (j + 1) * size)
            if i == j:
                result[rows, cols] = np.eye(size)
            else:
                result[rows, cols] = -t_local @ _coupling_operator(
                    geometry, excitation, i, j, n_max
                )
    log.debug(f"Direct scattering matrix of shape {result.shape}")
    return result


def preconditioned_scattering_matrix(
    geometry: Geometry,
    excitation: "InitialField",
    n_max: int | None = None,
    columns: tuple[int, int] | None = None,
) -> np.ndarray:
    """Matrix of the indirect formulation.

    Parameters
    ----------
    geometry:
        Scatterers and background.
    excitation:
        Incident field, sets the frequency.
    n_max:
        Truncation order; must match the scatterers'.
    columns:
        Range ``(first, last)`` of scatterers whose block columns are built,
        all by default.

    Returns
    -------
    numpy.ndarray
        Matrix with identity diagonal blocks and off-diagonal blocks
        ``T_AB(r_i - r_j) (-T_j)``, of shape ``(N * 2F, (last - first) * 2F)``.
    """
    if len(geometry) == 0:
        return np.zeros((0, 0), dtype=complex)
    n_max = _checked_n_max(geometry, n_max)
    size = 2 * flat_max(n_max)
    number = len(geometry)
    first, last = (0, number) if columns is None else columns
    if not 0 <= first <= last <= number:
        raise ValueError(f"Invalid scatterer range {(first, last)} for {number} scatterers")

    result = np.zeros(
        (jmult_max(number, n_max), jmult_max(last - first, n_max)), dtype=complex
    )
    for y, j in enumerate(range(first, last)):
        factor = -geometry.local_transfer_operator(excitation.omega, j, n_max)
        cols = slice(y * size, (y + 1) * size)
        for i in range(number):
            rows = slice(i * size, (i + 1) * size)
            if i == j:
                result[rows, cols] = np.eye(size)
            else:
                result[rows, cols] = (
                    _coupling_operator(geometry, excitation, i, j, n_max) @ factor
                )
    return result


def distributed_preconditioned_scattering_matrix(
    geometry: Geometry,
    excitation: "InitialField",
    context: Context,
    block_size: tuple[int, int] = (64, 64),
    n_max: int | None = None,
) -> BlockCyclicMatrix:
    """Indirect matrix assembled in parallel and distributed block-cyclically.

    The block columns of the scatterers are shared out over a ``1 x P``
    sub-grid with ``P = min(context.size, N)``: every process builds the
    columns of ``N // P`` consecutive scatterers and the first ``N % P``
    processes build one remaining scatterer each. The slabs are then
    redistributed onto ``context`` with ``block_size``.

    Returns
    -------
    BlockCyclicMatrix
        The same matrix as :func:`preconditioned_scattering_matrix`.
    """
    number = len(geometry)
    if number == 0:
        return BlockCyclicMatrix(context, (0, 0), block_size)
    if not context.is_valid():
        raise ConfigurationError("Process grid is invalid")
    n_max = _checked_n_max(geometry, n_max)
    size = 2 * flat_max(n_max)
    rows = jmult_max(number, n_max)

    linear = context.linear(min(context.size, number))
    nloc = number // linear.size
    remainder = number % linear.size

    slabs = BlockCyclicMatrix(linear, (rows, nloc * linear.size * size), (rows, nloc * size))
    for rank in linear.ranks:
        _, col = linear.coordinates(rank)
        slabs.tiles[0, col] = preconditioned_scattering_matrix(
            geometry, excitation, n_max, (col * nloc, (col + 1) * nloc)
        )

    result = BlockCyclicMatrix(context, (rows, rows), block_size)
    for (_, col), tile in slabs.tiles.items():
        result.set_block(0, col * nloc * size, tile)

    if remainder > 0:
        remainder_context = linear.subcontext(linear.rank_map[:, :remainder])
        columns = BlockCyclicMatrix(remainder_context, (rows, remainder * size), (rows, size))
        offset = nloc * linear.size
        for rank in remainder_context.ranks:
            _, col = remainder_context.coordinates(rank)
            columns.tiles[0, col] = preconditioned_scattering_matrix(
                geometry, excitation, n_max, (offset + col, offset + col + 1)
            )
        for (_, col), tile in columns.tiles.items():
            result.set_block(0, (offset + col) * size, tile)

    log.debug(
        f"Distributed indirect matrix over {linear.size} slabs, remainder {remainder}"
    )
    return result


def source_vector(
    geometry: Geometry, excitation: "InitialField", n_max: int | None = None
) -> np.ndarray:
    """Incident field coefficients about every scatterer, scatterer-major."""
    if len(geometry) == 0:
        return np.zeros(0, dtype=complex)
    n_max = _checked_n_max(geometry, n_max)
    return np.concatenate(
        [
            geometry.local_incident_from_excitation(scatterer.position, excitation, n_max)
            for scatterer in geometry
        ]
    )


def local_source_vector(
    geometry: Geometry,
    excitation: "InitialField",
    internal_coefficients: np.ndarray,
    n_max: int | None = None,
) -> np.ndarray:
    """Second harmonic sources of every scatterer.

    Parameters
    ----------
    geometry:
        Scatterers and background.
    excitation:
        Excitation of the fundamental-frequency problem.
    internal_coefficients:
        Internal field coefficients of the fundamental-frequency solution.
    n_max:
        Truncation order; must match the scatterers'.

    Returns
    -------
    numpy.ndarray
        Local source coefficients, scatterer-major.
    """
    if len(geometry) == 0:
        return np.zeros(0, dtype=complex)
    n_max = _checked_n_max(geometry, n_max)
    source = geometry.install_second_harmonic_source(excitation, internal_coefficients, n_max)
    return _local_sources(geometry, excitation, n_max, source)


def _local_sources(
    geometry: Geometry,
    excitation: "InitialField",
    n_max: int,
    source: ExternalExcitation | SecondHarmonicSource,
) -> np.ndarray:
    return np.concatenate(
        [
            np.asarray(geometry.local_source_from_solution(i, excitation, n_max, source))
            for i in range(len(geometry))
        ]
    )


def direct_source_vector(
    geometry: Geometry,
    excitation: "InitialField",
    source: ExternalExcitation | SecondHarmonicSource | None = None,
    n_max: int | None = None,
) -> np.ndarray:
    """Right-hand side of the direct formulation, ``T_i q_i`` for every scatterer.

    Parameters
    ----------
    geometry:
        Scatterers and background.
    excitation:
        Excitation, sets the frequency of the transfer operators.
    source:
        Source mode, the incident field by default.
    n_max:
        Truncation order; must match the scatterers'.
    """
    if len(geometry) == 0:
        return np.zeros(0, dtype=complex)
    n_max = _checked_n_max(geometry, n_max)
    source = ExternalExcitation() if source is None else source
    size = 2 * flat_max(n_max)
    local = _local_sources(geometry, excitation, n_max, source)
    result = np.zeros_like(local)
    for i in range(len(geometry)):
        segment = slice(i * size, (i + 1) * size)
        result[segment] = (
            geometry.local_transfer_operator(excitation.omega, i, n_max) @ local[segment]
        )
    return result


def indirect_source_vector(
    geometry: Geometry,
    excitation: "InitialField",
    source: ExternalExcitation | SecondHarmonicSource | None = None,
    n_max: int | None = None,
) -> np.ndarray:
    """Right-hand side of the indirect formulation, the local sources ``q_i``."""
    if len(geometry) == 0:
        return np.zeros(0, dtype=complex)
    n_max = _checked_n_max(geometry, n_max)
    source = ExternalExcitation() if source is None else source
    return _local_sources(geometry, excitation, n_max, source)


def exciting_field(
    geometry: Geometry,
    excitation: "InitialField",
    scattered: np.ndarray,
    source: ExternalExcitation | SecondHarmonicSource | None = None,
    n_max: int | None = None,
) -> np.ndarray:
    """Exciting coefficients ``y_i = q_i + sum_j T_AB(r_i - r_j) x_j``.

    Parameters
    ----------
    geometry:
        Scatterers and background.
    excitation:
        Excitation, sets the frequency of the couplings.
    scattered:
        Scattered coefficients ``x`` of every scatterer, scatterer-major.
    source:
        Source mode of the local fields ``q_i``, the incident field by default.
    n_max:
        Truncation order; must match the scatterers'.

    Returns
    -------
    numpy.ndarray
        Field exciting every scatterer, the incident field plus the fields
        scattered by all other scatterers.
    """
    if len(geometry) == 0:
        return np.zeros(0, dtype=complex)
    n_max = _checked_n_max(geometry, n_max)
    size = 2 * flat_max(n_max)
    result = np.array(
        indirect_source_vector(geometry, excitation, source, n_max), dtype=complex
    )
    for i in range(len(geometry)):
        rows = slice(i * size, (i + 1) * size)
        for j in range(len(geometry)):
            if i != j:
                result[rows] += (
                    _coupling_operator(geometry, excitation, i, j, n_max)
                    @ scattered[j * size : (j + 1) * size]
                )
    return result
