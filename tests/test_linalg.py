import numpy as np
import numpy.testing as npt
import pytest

from yamspy.exceptions import ConfigurationError, SolverError
from yamspy.linalg import (
    BlockCyclicMatrix,
    Communicator,
    Context,
    DirectBackend,
    DistributedDenseBackend,
    IterativeBackend,
    get_linear_solver_backend,
)


def _random_system(size: int, seed: int = 3) -> tuple[np.ndarray, np.ndarray]:
    rng = np.random.default_rng(seed)
    matrix = rng.standard_normal((size, size)) + 1j * rng.standard_normal((size, size))
    rhs = rng.standard_normal(size) + 1j * rng.standard_normal(size)
    return matrix, rhs


def test_context_layout():
    context = Context(2, 3)
    assert context.shape == (2, 3)
    assert context.size == 6
    assert context.ranks == [0, 1, 2, 3, 4, 5]
    assert context.coordinates(4) == (1, 1)
    assert context.owner(5, 7) == 4
    assert context.is_valid()
    assert context.is_valid(5)
    assert not context.is_valid(6)
    assert context.serial().ranks == [0]
    assert context.linear(4).shape == (1, 4)
    assert context.linear(4).ranks == [0, 1, 2, 3]


def test_empty_context():
    context = Context.empty()
    assert context.size == 0
    assert not context.is_valid()
    assert not context.serial().is_valid()
    with pytest.raises(ConfigurationError):
        context.coordinates(0)


def test_context_rejects_duplicate_ranks():
    with pytest.raises(ConfigurationError):
        Context(rank_map=[[0, 1], [1, 2]])
    with pytest.raises(ConfigurationError):
        Context(2, 2).subcontext([[0, 9]])


def test_communicator():
    comm = Communicator(5)
    active, inactive = comm.split(Context(2, 2).is_valid)
    assert active.ranks == [0, 1, 2, 3]
    assert inactive.ranks == [4]

    value = {"x": np.arange(3)}
    copies = comm.broadcast(value, root=2)
    assert len(copies) == 5
    assert copies[2] is value
    assert copies[0] is not value
    npt.assert_array_equal(copies[4]["x"], value["x"])
    with pytest.raises(ConfigurationError):
        comm.broadcast(value, root=7)
    with pytest.raises(ConfigurationError):
        Communicator(0)


@pytest.mark.parametrize(
    ("shape", "grid", "block_size"),
    [((10, 7), (2, 2), (3, 2)), ((5, 5), (1, 3), (4, 4)), ((17, 1), (3, 1), (5, 5))],
)
def test_block_cyclic_round_trip(shape, grid, block_size):
    array = np.arange(np.prod(shape), dtype=complex).reshape(shape)
    matrix = BlockCyclicMatrix.from_dense(Context(*grid), array, block_size)
    npt.assert_array_equal(matrix.to_dense(), array)

    owned = [key for rank in matrix.context.ranks for key in matrix.owned(rank)]
    assert sorted(owned) == sorted(matrix.tiles)


def test_local_layout():
    array = np.arange(36, dtype=complex).reshape(6, 6)
    matrix = BlockCyclicMatrix.from_dense(Context(2, 2), array, (2, 2))
    # rank 1 holds block rows 0, 2 and block column 1
    npt.assert_array_equal(matrix.local(1), array[np.r_[0:2, 4:6]][:, 2:4])
    npt.assert_array_equal(matrix.local(0), array[np.r_[0:2, 4:6]][:, np.r_[0:2, 4:6]])
    assert matrix.local(9).shape == (0, 0)


def test_set_block_and_transfer():
    matrix = BlockCyclicMatrix(Context(2, 3), (9, 8), (2, 3))
    values = np.ones((4, 5))
    matrix.set_block(3, 2, values)
    dense = np.zeros((9, 8), dtype=complex)
    dense[3:7, 2:7] = 1
    npt.assert_array_equal(matrix.to_dense(), dense)

    moved = matrix.transfer_to(Context(3, 1), (4, 4))
    assert moved.context.shape == (3, 1)
    assert moved.block_size == (4, 4)
    npt.assert_array_equal(moved.to_dense(), dense)

    with pytest.raises(ValueError):
        matrix.set_block(7, 0, values)


def test_matvec():
    matrix, x = _random_system(13)
    distributed = BlockCyclicMatrix.from_dense(Context(2, 2), matrix, (4, 3))
    npt.assert_allclose(distributed.matvec(x), matrix @ x, rtol=1e-12)
    npt.assert_allclose(distributed.rmatvec(x), np.conj(matrix).T @ x, rtol=1e-12)


def test_matrix_rejects_empty_grid():
    with pytest.raises(ConfigurationError):
        BlockCyclicMatrix(Context.empty(), (3, 3))
    with pytest.raises(ConfigurationError):
        BlockCyclicMatrix(Context(), (3, 3), (0, 2))


@pytest.mark.parametrize("size", [1, 7, 40])
def test_direct_backend(size: int):
    matrix, rhs = _random_system(size)
    x = DirectBackend().solve(matrix, rhs)
    npt.assert_allclose(matrix @ x, rhs, rtol=1e-10, atol=1e-12)


def test_direct_backend_rank_deficient():
    matrix = np.diag([2.0, 1.0, 0.0]).astype(complex)
    x = DirectBackend().solve(matrix, np.array([2.0, 3.0, 0.0]))
    npt.assert_allclose(x, [1.0, 3.0, 0.0])


def test_direct_backend_zero_matrix_raises():
    with pytest.raises(SolverError):
        DirectBackend().solve(np.zeros((3, 3)), np.ones(3))


@pytest.mark.parametrize(
    ("grid", "block"), [((1, 1), 4), ((2, 2), 3), ((2, 3), 5), ((3, 1), 16)]
)
def test_distributed_lu(grid, block):
    matrix, rhs = _random_system(23)
    backend = DistributedDenseBackend(Context(*grid), (block, block))
    x = backend.solve(matrix, rhs)
    npt.assert_allclose(x, np.linalg.solve(matrix, rhs), rtol=1e-9)


def test_distributed_lu_needs_pivoting():
    matrix = np.array([[0.0, 1.0, 2.0], [1.0, 0.0, 3.0], [4.0, 5.0, 0.0]], dtype=complex)
    rhs = np.array([1.0, 2.0, 3.0])
    x = DistributedDenseBackend(Context(2, 2), (1, 1)).solve(matrix, rhs)
    npt.assert_allclose(x, np.linalg.solve(matrix, rhs), rtol=1e-12)


def test_distributed_lu_accepts_distributed_matrix():
    matrix, rhs = _random_system(12)
    distributed = BlockCyclicMatrix.from_dense(Context(1, 2), matrix, (5, 5))
    x = DistributedDenseBackend(Context(2, 2), (4, 4)).solve(distributed, rhs)
    npt.assert_allclose(x, np.linalg.solve(matrix, rhs), rtol=1e-9)


def test_distributed_lu_singular_raises():
    with pytest.raises(SolverError):
        DistributedDenseBackend(Context(2, 2), (2, 2)).solve(np.zeros((5, 5)), np.ones(5))


def test_distributed_lu_configuration():
    with pytest.raises(ConfigurationError):
        DistributedDenseBackend(Context(2, 2), (4, 2))
    with pytest.raises(ConfigurationError):
        DistributedDenseBackend(Context.empty(), (4, 4))


def test_iterative_backend():
    matrix, rhs = _random_system(20)
    matrix = matrix + 10 * np.eye(20)
    x = IterativeBackend("gmres", tolerance=1e-12).solve(matrix, rhs)
    npt.assert_allclose(x, np.linalg.solve(matrix, rhs), rtol=1e-9)
    with pytest.raises(ConfigurationError):
        IterativeBackend("jacobi")


@pytest.mark.parametrize(
    ("parameters", "grid", "expected"),
    [
        ({}, (1, 1), DirectBackend),
        ({"type": "direct"}, (2, 2), DirectBackend),
        ({}, (2, 2), DistributedDenseBackend),
        ({"type": "scalapack"}, (1, 1), DistributedDenseBackend),
        ({"type": "GMRES"}, (1, 1), IterativeBackend),
        ({"type": "bicgstab"}, (2, 1), IterativeBackend),
    ],
)
def test_backend_selection(parameters, grid, expected):
    backend = get_linear_solver_backend(parameters, Context(*grid), (8, 8))
    assert isinstance(backend, expected)


def test_backend_selection_defaults():
    backend = get_linear_solver_backend({"type": "lgmres", "restart": 5})
    assert backend.method == "lgmres"
    assert backend.tolerance == 1e-8
    assert backend.max_iter == 1000
    assert backend.restart == 5
    with pytest.raises(ConfigurationError):
        get_linear_solver_backend({"type": "cholesky"})
