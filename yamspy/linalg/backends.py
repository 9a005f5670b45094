"""Linear solver backends.

A backend solves the dense multiple scattering system ``S x = Q``. Three
strategies are available, selected at runtime by
:func:`yamspy.linalg.factory.get_linear_solver_backend`:

- direct: column-pivoted (rank revealing) QR on a single process
- distributed dense: LU with partial pivoting on a block-cyclic matrix, the
  trailing updates of every step running on the processes of the grid
- iterative: Krylov methods from :mod:`scipy.sparse.linalg`, with the matrix
  vector products distributed over the grid when it has several processes
"""

from __future__ import annotations

import numpy as np
import scipy.linalg
from scipy.sparse.linalg import (
    LinearOperator,
    bicg,
    bicgstab,
    cgs,
    gcrotmk,
    gmres,
    lgmres,
    qmr,
    tfqmr,
)

import yamspy.log as log
from yamspy.exceptions import ConfigurationError, SolverError
from yamspy.linalg.grid import Context
from yamspy.linalg.matrix import BlockCyclicMatrix

KRYLOV_METHODS = {
    "gmres": gmres,
    "lgmres": lgmres,
    "bicgstab": bicgstab,
    "bicg": bicg,
    "cgs": cgs,
    "qmr": qmr,
    "gcrotmk": gcrotmk,
    "tfqmr": tfqmr,
}


def _check_output(x: np.ndarray, name: str) -> np.ndarray:
    if not np.all(np.isfinite(x)):
        raise SolverError(f"The {name} solver returned non-finite values")
    return x


class LinearSolverBackend:
    """Base class for linear solver backends."""

    name: str = "base"

    def solve(self, matrix: np.ndarray, rhs: np.ndarray) -> np.ndarray:  # pragma: no cover
        """Solve ``matrix @ x = rhs``.

        Parameters
        ----------
        matrix:
            Dense system matrix.
        rhs:
            Right-hand side vector.

        Returns
        -------
        numpy.ndarray
            Solution vector.
        """

        raise NotImplementedError


class DirectBackend(LinearSolverBackend):
    """Column-pivoted QR on a single process.

    Parameters
    ----------
    threshold:
        Relative threshold below which a diagonal entry of ``R`` counts as zero.
        Defaults to machine epsilon times the matrix dimension.

    Notes
    -----
    Rank deficient systems get the basic solution: the unknowns of the
    discarded pivot columns are zero.
    """

    name = "direct"

    def __init__(self, threshold: float | None = None):
        self.threshold = threshold
        self.log = log.scattering_logger(__name__)

    def solve(self, matrix: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        a = np.asarray(matrix)
        b = np.asarray(rhs)
        if a.shape[0] != b.shape[0]:
            raise ValueError(f"Matrix of shape {a.shape} and vector of shape {b.shape}")
        dtype = np.result_type(a, b, complex)
        if a.size == 0:
            return np.zeros(a.shape[1], dtype=dtype)

        q, r, permutation = scipy.linalg.qr(a, mode="economic", pivoting=True)
        diagonal = np.abs(np.diag(r))
        threshold = (
            np.finfo(float).eps * len(diagonal) if self.threshold is None else self.threshold
        )
        rank = int(np.count_nonzero(diagonal > threshold * diagonal[0]))
        if rank == 0:
            raise SolverError("The system matrix is zero")
        if rank < a.shape[1]:
            self.log.warning(f"Rank deficient system: rank {rank} of {a.shape[1]}")

        projected = np.conj(q).T @ b
        y = np.zeros(a.shape[1], dtype=dtype)
        y[:rank] = scipy.linalg.solve_triangular(r[:rank, :rank], projected[:rank])
        x = np.zeros_like(y)
        x[permutation] = y
        return _check_output(x, self.name)


class DistributedDenseBackend(LinearSolverBackend):
    """Block-cyclic LU factorisation with partial pivoting.

    Parameters
    ----------
    context:
        Process grid the matrix is distributed on.
    block_size:
        Square block size ``(nb, nb)``.

    Notes
    -----
    Every step ``K`` factors the panel of block column ``K`` (gathered on the
    process column owning it), applies its row interchanges to the whole
    matrix, computes the block row of ``U`` and lets every process update the
    trailing tiles it owns. The updates run on a thread pool, one task per
    process.
    """

    name = "distributed dense"

    def __init__(self, context: Context, block_size: tuple[int, int] = (64, 64)):
        if block_size[0] != block_size[1]:
            raise ConfigurationError(
                f"Distributed LU needs square blocks, got {tuple(block_size)}"
            )
        if not context.is_valid():
            raise ConfigurationError("Process grid is invalid")
        self.context = context
        self.block_size = (int(block_size[0]), int(block_size[1]))
        self.log = log.scattering_logger(__name__)

    def distribute(self, matrix: np.ndarray) -> BlockCyclicMatrix:
        serial = BlockCyclicMatrix.from_dense(self.context.serial(), matrix, self.block_size)
        return serial.transfer_to(self.context)

    def factor(self, a: BlockCyclicMatrix) -> np.ndarray:
        """Factor ``a`` in place, ``P A = L U``.

        Returns
        -------
        numpy.ndarray
            Row order ``p`` with ``A[p] = L U``.

        Raises
        ------
        SolverError
            If a pivot is exactly zero or not finite.
        """
        if a.shape[0] != a.shape[1]:
            raise ConfigurationError(f"Distributed LU needs a square matrix, got {a.shape}")
        blocks = a.block_rows
        order = np.arange(a.shape[0])

        for K in range(blocks):
            start = a.tile_slices(K, K)[0].start
            panel = np.vstack([a.tiles[I, K] for I in range(K, blocks)])
            lu, pivots = scipy.linalg.lu_factor(panel, check_finite=False)
            width = lu.shape[1]
            pivot_values = np.diag(lu[:width])
            if np.any(pivot_values == 0) or not np.all(np.isfinite(lu)):
                raise SolverError(f"Singular pivot in block column {K}")

            swaps = np.arange(panel.shape[0])
            for i, j in enumerate(pivots):
                swaps[i], swaps[j] = swaps[j], swaps[i]
            self._permute_rows(a, K, swaps)
            order[start:] = order[start:][swaps]
            a.set_block(start, start, lu)

            lower = lu[:width]

            def row_update(keys):
                for key in keys:
                    a.tiles[key] = scipy.linalg.solve_triangular(
                        lower, a.tiles[key], lower=True, unit_diagonal=True
                    )

            def trailing_update(keys):
                for I, J in keys:
                    a.tiles[I, J] -= a.tiles[I, K] @ a.tiles[K, J]

            a.map_owners(row_update, [(K, J) for J in range(K + 1, blocks)])
            a.map_owners(
                trailing_update,
                [(I, J) for I in range(K + 1, blocks) for J in range(K + 1, blocks)],
            )
            self.log.debug(f"LU step {K + 1}/{blocks}")
        return order

    @staticmethod
    def _permute_rows(a: BlockCyclicMatrix, K: int, swaps: np.ndarray) -> None:
        start = a.tile_slices(K, K)[0].start
        for J in range(a.block_cols):
            if J == K:
                continue
            column = np.vstack([a.tiles[I, J] for I in range(K, a.block_rows)])
            a.set_block(start, a.tile_slices(K, J)[1].start, column[swaps])

    @staticmethod
    def substitute(a: BlockCyclicMatrix, order: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        """Forward and backward substitution with the factors stored in ``a``."""
        x = np.asarray(rhs)[order].astype(np.result_type(a.dtype, rhs, complex))
        blocks = a.block_rows
        for I in range(blocks):
            rows = a.tile_slices(I, I)[0]
            for J in range(I):
                x[rows] -= a.tiles[I, J] @ x[a.tile_slices(I, J)[1]]
            x[rows] = scipy.linalg.solve_triangular(
                a.tiles[I, I], x[rows], lower=True, unit_diagonal=True
            )
        for I in reversed(range(blocks)):
            rows = a.tile_slices(I, I)[0]
            for J in range(I + 1, blocks):
                x[rows] -= a.tiles[I, J] @ x[a.tile_slices(I, J)[1]]
            x[rows] = scipy.linalg.solve_triangular(a.tiles[I, I], x[rows], lower=False)
        return x

    def solve(self, matrix, rhs: np.ndarray) -> np.ndarray:
        b = np.asarray(rhs)
        if isinstance(matrix, BlockCyclicMatrix):
            a = matrix.transfer_to(self.context, self.block_size)
        else:
            a = self.distribute(np.asarray(matrix))
        if a.shape[0] != b.shape[0]:
            raise ValueError(f"Matrix of shape {a.shape} and vector of shape {b.shape}")
        if a.shape[0] == 0:
            return np.zeros(0, dtype=complex)

        self.log.info(
            f"Distributed LU of a {a.shape[0]} x {a.shape[1]} system on a "
            f"{self.context.rows} x {self.context.cols} grid"
        )
        order = self.factor(a)
        return _check_output(self.substitute(a, order, b), self.name)


class IterationCounter:
    """
    Counts the iterations of a Krylov solver and reports them on the ``NUMERICS`` level.

    Parameters:
    - callback_type (str): "pr_norm" when the solver passes the residual norm, "x" when it
      passes the current iterate.
    """

    def __init__(self, callback_type: str = "pr_norm"):
        self.log = log.scattering_logger(__name__)
        self.niter = 0
        self.callback_type = callback_type
        if callback_type == "pr_norm":
            self.header = "% 10s \t % 15s" % ("Iteration", "Residual")
        else:
            self.header = "% 10s \t % 15s" % ("Iteration", "|x|")

    def __call__(self, rk=None):
        self.niter += 1
        if isinstance(rk, np.ndarray) and rk.ndim > 0:
            value = float(np.linalg.norm(rk))
        else:
            value = float(np.abs(rk))
        if self.niter == 1:
            self.log.numerics(self.header)
        self.log.numerics("% 10i \t % 15.5e" % (self.niter, value))


class IterativeBackend(LinearSolverBackend):
    """
    Krylov solvers of :mod:`scipy.sparse.linalg`.

    Parameters
    ----------
    method : str
        One of ``gmres``, ``lgmres``, ``bicgstab``, ``bicg``, ``cgs``, ``qmr``,
        ``gcrotmk`` and ``tfqmr``.
    tolerance : float, optional
        Relative residual tolerance.
    max_iter : int, optional
        The maximum number of iterations (restart cycles for GMRES).
    restart : int, optional
        The number of iterations before restarting the GMRES solver.
    context : Context, optional
        Process grid; matrix vector products are distributed when it holds
        more than one process.
    block_size : tuple[int, int], optional
        Block size of the distributed matrix.
    """

    name = "iterative"

    def __init__(
        self,
        method: str = "gmres",
        tolerance: float = 1e-8,
        max_iter: int = 1000,
        restart: int = 100,
        context: Context | None = None,
        block_size: tuple[int, int] = (64, 64),
    ):
        method = method.lower()
        if method not in KRYLOV_METHODS:
            raise ConfigurationError(f"Unknown iterative solver {method}")
        self.method = method
        self.tolerance = float(tolerance)
        self.max_iter = int(max_iter)
        self.restart = int(restart)
        self.context = Context() if context is None else context
        self.block_size = block_size

        self.log = log.scattering_logger(__name__)

    def operator(self, matrix: np.ndarray) -> LinearOperator:
        """Matrix as a :class:`~scipy.sparse.linalg.LinearOperator`."""
        if self.context.size > 1:
            distributed = BlockCyclicMatrix.from_dense(self.context, matrix, self.block_size)
            matvec, rmatvec = distributed.matvec, distributed.rmatvec
        else:
            matrix = np.asarray(matrix)

            def matvec(x):
                return matrix @ x

            def rmatvec(x):
                return np.conj(matrix).T @ x

        return LinearOperator(
            np.shape(matrix), matvec=matvec, rmatvec=rmatvec, dtype=complex
        )

    def solve(self, matrix: np.ndarray, rhs: np.ndarray) -> np.ndarray:
        b = np.asarray(rhs, dtype=complex)
        if b.size == 0:
            return np.zeros(0, dtype=complex)
        operator = self.operator(matrix)
        x0 = np.copy(b)

        match self.method:
            case "gmres":
                counter = IterationCounter(callback_type="pr_norm")
                value, err_code = gmres(
                    operator,
                    b,
                    x0,
                    rtol=self.tolerance,
                    atol=0.0,
                    restart=self.restart,
                    maxiter=self.max_iter,
                    callback=counter,
                    callback_type="pr_norm",
                )
            case method:
                counter = IterationCounter(callback_type="x")
                value, err_code = KRYLOV_METHODS[method](
                    operator,
                    b,
                    x0,
                    rtol=self.tolerance,
                    atol=0.0,
                    maxiter=self.max_iter,
                    callback=counter,
                )

        if err_code > 0:
            raise SolverError(
                f"{self.method} did not converge to {self.tolerance} within {err_code} iterations"
            )
        if err_code < 0:
            raise SolverError(f"{self.method} broke down (code {err_code})")
        self.log.info(f"{self.method} converged after {counter.niter} iterations")
        return _check_output(value, self.method)
