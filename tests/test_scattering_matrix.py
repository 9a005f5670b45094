import numpy as np
import numpy.testing as npt
import pytest

from yamspy.coupling import Coupling, translation_matrix
from yamspy.electromagnetic import ElectroMagnetic
from yamspy.exceptions import ConfigurationError
from yamspy.functions.misc import flat_max, harmonic_degrees_orders
from yamspy.geometry import ExternalExcitation, Geometry
from yamspy.initial_field import InitialField
from yamspy.linalg import BlockCyclicMatrix, Context
from yamspy.particles import Scatterer
from yamspy.scattering_matrix import (
    direct_source_vector,
    distributed_preconditioned_scattering_matrix,
    indirect_source_vector,
    local_source_vector,
    preconditioned_scattering_matrix,
    scattering_matrix,
    source_vector,
)

N_MAX = 2
SIZE = 2 * flat_max(N_MAX)


def _geometry(number: int, n_max: int = N_MAX) -> Geometry:
    rng = np.random.default_rng(7)
    geometry = Geometry(background=ElectroMagnetic(epsilon_r=1.1))
    for i in range(number):
        geometry.add(
            Scatterer(
                (0.3 * i, 0.1 * rng.standard_normal(), 0.05 * i),
                ElectroMagnetic(epsilon_r=2.5 + 0.1j * i),
                0.08,
                n_max,
            )
        )
    return geometry


@pytest.fixture(scope="module")
def excitation() -> InitialField:
    return InitialField(0.6, polar_angle=0.3, azimuthal_angle=0.2)


@pytest.fixture(scope="module")
def geometry() -> Geometry:
    return _geometry(5)


def _block(matrix: np.ndarray, i: int, j: int) -> np.ndarray:
    return matrix[i * SIZE : (i + 1) * SIZE, j * SIZE : (j + 1) * SIZE]


def test_direct_matrix_blocks(geometry: Geometry, excitation: InitialField):
    matrix = scattering_matrix(geometry, excitation)
    assert matrix.shape == (5 * SIZE, 5 * SIZE)

    for i in range(5):
        npt.assert_array_equal(_block(matrix, i, i), np.eye(SIZE))
    coupling = Coupling(
        geometry[1].position - geometry[3].position,
        geometry.background.wavenumber(excitation.omega),
        N_MAX,
    )
    expected = -geometry.local_transfer_operator(excitation.omega, 1) @ translation_matrix(
        coupling
    )
    npt.assert_allclose(_block(matrix, 1, 3), expected, rtol=1e-12)


def test_indirect_matrix_blocks(geometry: Geometry, excitation: InitialField):
    direct = scattering_matrix(geometry, excitation)
    indirect = preconditioned_scattering_matrix(geometry, excitation)
    assert indirect.shape == direct.shape

    # T_i X_ij == (X_ij T_j) with X_ij the coupling operator
    for i, j in [(0, 1), (4, 2), (3, 0)]:
        t_i = geometry.local_transfer_operator(excitation.omega, i)
        t_j = geometry.local_transfer_operator(excitation.omega, j)
        coupling_direct = np.linalg.solve(t_i, _block(direct, i, j))
        coupling_indirect = _block(indirect, i, j) @ np.linalg.inv(t_j)
        npt.assert_allclose(coupling_direct, coupling_indirect, rtol=1e-8, atol=1e-12)


def test_indirect_column_range(geometry: Geometry, excitation: InitialField):
    full = preconditioned_scattering_matrix(geometry, excitation)
    part = preconditioned_scattering_matrix(geometry, excitation, columns=(1, 3))
    npt.assert_allclose(part, full[:, SIZE : 3 * SIZE])
    with pytest.raises(ValueError):
        preconditioned_scattering_matrix(geometry, excitation, columns=(3, 7))


@pytest.mark.parametrize(
    ("shape", "block_size"),
    [((1, 1), (64, 64)), ((2, 2), (16, 16)), ((1, 3), (7, 5)), ((3, 1), (9, 9))],
)
def test_distributed_assembly_matches_serial(
    geometry: Geometry, excitation: InitialField, shape, block_size
):
    context = Context(*shape)
    distributed = distributed_preconditioned_scattering_matrix(
        geometry, excitation, context, block_size
    )
    assert isinstance(distributed, BlockCyclicMatrix)
    assert distributed.context == context
    npt.assert_allclose(
        distributed.to_dense(),
        preconditioned_scattering_matrix(geometry, excitation),
        rtol=1e-13,
        atol=1e-15,
    )


def test_distributed_assembly_with_more_processes_than_scatterers(excitation):
    geometry = _geometry(3)
    distributed = distributed_preconditioned_scattering_matrix(
        geometry, excitation, Context(2, 3), (8, 8)
    )
    npt.assert_allclose(
        distributed.to_dense(), preconditioned_scattering_matrix(geometry, excitation)
    )


def test_distributed_assembly_rejects_empty_grid(geometry, excitation):
    with pytest.raises(ConfigurationError):
        distributed_preconditioned_scattering_matrix(geometry, excitation, Context.empty())


def test_source_vectors(geometry: Geometry, excitation: InitialField):
    incident = source_vector(geometry, excitation)
    assert incident.shape == (5 * SIZE,)
    npt.assert_allclose(
        incident[2 * SIZE : 3 * SIZE],
        excitation.local_incident(geometry[2].position, N_MAX, geometry.background),
    )
    npt.assert_allclose(indirect_source_vector(geometry, excitation), incident)
    npt.assert_allclose(
        indirect_source_vector(geometry, excitation, ExternalExcitation()), incident
    )

    direct = direct_source_vector(geometry, excitation)
    for i in range(5):
        segment = slice(i * SIZE, (i + 1) * SIZE)
        npt.assert_allclose(
            direct[segment],
            geometry.local_transfer_operator(excitation.omega, i) @ incident[segment],
        )


def test_second_harmonic_sources(excitation: InitialField):
    geometry = Geometry(
        [
            Scatterer((0, 0, 0), ElectroMagnetic(2.0), 0.1, N_MAX, 0.5),
            Scatterer((0.4, 0, 0), ElectroMagnetic(2.0), 0.1, N_MAX, 2.0j),
        ]
    )
    internal = np.arange(2 * SIZE, dtype=complex)
    local = local_source_vector(geometry, excitation, internal)
    npt.assert_allclose(local[:SIZE], 0.5 * internal[:SIZE])
    npt.assert_allclose(local[SIZE:], 2.0j * internal[SIZE:])

    source = geometry.install_second_harmonic_source(excitation, internal)
    npt.assert_allclose(indirect_source_vector(geometry, excitation, source), local)
    with pytest.raises(ConfigurationError):
        geometry.install_second_harmonic_source(excitation, internal[:-1])


def test_mismatched_orders_raise(excitation: InitialField):
    geometry = Geometry(
        [
            Scatterer((0, 0, 0), ElectroMagnetic(2.0), 0.1, 2),
            Scatterer((0.4, 0, 0), ElectroMagnetic(2.0), 0.1, 3),
        ]
    )
    for assemble in (
        scattering_matrix,
        preconditioned_scattering_matrix,
        source_vector,
        direct_source_vector,
        indirect_source_vector,
    ):
        with pytest.raises(ConfigurationError):
            assemble(geometry, excitation)


def test_explicit_order_must_match(geometry: Geometry, excitation: InitialField):
    with pytest.raises(ConfigurationError):
        scattering_matrix(geometry, excitation, n_max=N_MAX + 1)
    assert scattering_matrix(geometry, excitation, n_max=N_MAX).shape == (5 * SIZE, 5 * SIZE)


def test_empty_geometry(excitation: InitialField):
    geometry = Geometry()
    assert geometry.n_max is None
    assert scattering_matrix(geometry, excitation).shape == (0, 0)
    assert preconditioned_scattering_matrix(geometry, excitation).shape == (0, 0)
    assert source_vector(geometry, excitation).shape == (0,)
    assert direct_source_vector(geometry, excitation).shape == (0,)
    assert indirect_source_vector(geometry, excitation).shape == (0,)
    assert local_source_vector(geometry, excitation, np.zeros(0)).shape == (0,)
    distributed = distributed_preconditioned_scattering_matrix(
        geometry, excitation, Context(2, 2)
    )
    assert distributed.shape == (0, 0)


def test_two_scatterer_coupling_reciprocity(excitation: InitialField):
    geometry = _geometry(2)
    matrix = scattering_matrix(geometry, excitation)

    # coupling operators i <- j with the transfer operators removed
    forward = -np.linalg.solve(
        geometry.local_transfer_operator(excitation.omega, 0), _block(matrix, 0, 1)
    )
    backward = -np.linalg.solve(
        geometry.local_transfer_operator(excitation.omega, 1), _block(matrix, 1, 0)
    )

    degrees, _ = harmonic_degrees_orders(N_MAX)
    parity = (-1.0) ** degrees
    sign = np.concatenate((parity, -parity))
    npt.assert_allclose(
        backward, sign[:, None] * forward * sign[None, :], rtol=1e-8, atol=1e-10
    )
