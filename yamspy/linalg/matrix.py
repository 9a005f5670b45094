"""Dense matrices distributed block-cyclically over a process grid.

Block ``(I, J)`` of a matrix with block size ``(mb, nb)`` covers rows
``I * mb .. (I + 1) * mb`` and columns ``J * nb .. (J + 1) * nb`` and lives on
the process at grid position ``(I mod rows, J mod cols)``, as in ScaLAPACK.
Tiles at the lower and right edges may be smaller than the block size.
"""

from __future__ import annotations

import logging
from multiprocessing.pool import ThreadPool

import numpy as np

from yamspy.exceptions import ConfigurationError
from yamspy.linalg.grid import Context

log = logging.getLogger(__name__)


def _num_blocks(extent: int, block: int) -> int:
    return -(-extent // block) if extent > 0 else 0


class BlockCyclicMatrix:
    """Block-cyclic distribution of a dense matrix.

    Parameters
    ----------
    context:
        Process grid holding the tiles.
    shape:
        Global shape ``(m, n)``.
    block_size:
        Block size ``(mb, nb)``.
    dtype:
        Element type, complex by default.
    """

    def __init__(
        self,
        context: Context,
        shape: tuple[int, int],
        block_size: tuple[int, int] = (64, 64),
        dtype=complex,
    ):
        if min(block_size) < 1:
            raise ConfigurationError(f"Invalid block size {block_size}")
        if min(shape) > 0 and not context.is_valid():
            raise ConfigurationError("Cannot distribute a matrix over an empty grid")
        self.context = context
        self.shape = (int(shape[0]), int(shape[1]))
        self.block_size = (int(block_size[0]), int(block_size[1]))
        self.dtype = np.dtype(dtype)

        self.tiles: dict[tuple[int, int], np.ndarray] = {}
        for block_row in range(self.block_rows):
            for block_col in range(self.block_cols):
                rows, cols = self.tile_slices(block_row, block_col)
                self.tiles[block_row, block_col] = np.zeros(
                    (rows.stop - rows.start, cols.stop - cols.start), dtype=self.dtype
                )

    @property
    def block_rows(self) -> int:
        return _num_blocks(self.shape[0], self.block_size[0])

    @property
    def block_cols(self) -> int:
        return _num_blocks(self.shape[1], self.block_size[1])

    def tile_slices(self, block_row: int, block_col: int) -> tuple[slice, slice]:
        """Global row and column ranges of a tile."""
        mb, nb = self.block_size
        return (
            slice(block_row * mb, min((block_row + 1) * mb, self.shape[0])),
            slice(block_col * nb, min((block_col + 1) * nb, self.shape[1])),
        )

    def owner(self, block_row: int, block_col: int) -> int:
        return self.context.owner(block_row, block_col)

    def owned(self, rank: int) -> list[tuple[int, int]]:
        """Tiles held by ``rank``."""
        return [key for key in self.tiles if self.owner(*key) == rank]

    def local(self, rank: int) -> np.ndarray:
        """Local array of ``rank`` in ScaLAPACK layout.

        The owned block rows and block columns are stacked in increasing order.
        Ranks outside of the grid hold an empty array.
        """
        if not self.context.is_valid(rank) or min(self.shape) == 0:
            return np.zeros((0, 0), dtype=self.dtype)
        row, col = self.context.coordinates(rank)
        block_rows = range(row, self.block_rows, self.context.rows)
        block_cols = range(col, self.block_cols, self.context.cols)
        if len(block_rows) == 0 or len(block_cols) == 0:
            return np.zeros((0, 0), dtype=self.dtype)
        return np.block([[self.tiles[I, J] for J in block_cols] for I in block_rows])

    @classmethod
    def from_dense(
        cls, context: Context, array: np.ndarray, block_size: tuple[int, int] = (64, 64)
    ) -> "BlockCyclicMatrix":
        """Distribute a dense array (scatter)."""
        array = np.asarray(array)
        if array.ndim == 1:
            array = array[:, np.newaxis]
        matrix = cls(context, array.shape, block_size, dtype=np.result_type(array, complex))
        matrix.set_block(0, 0, array)
        return matrix

    def to_dense(self) -> np.ndarray:
        """Collect all tiles into one array (gather)."""
        result = np.zeros(self.shape, dtype=self.dtype)
        for (block_row, block_col), tile in self.tiles.items():
            rows, cols = self.tile_slices(block_row, block_col)
            result[rows, cols] = tile
        return result

    def set_block(self, row: int, col: int, values: np.ndarray) -> None:
        """Write a dense block at global position ``(row, col)`` into the owning tiles."""
        values = np.asarray(values)
        if values.ndim == 1:
            values = values[:, np.newaxis]
        if values.size == 0:
            return
        mb, nb = self.block_size
        row_end, col_end = row + values.shape[0], col + values.shape[1]
        if row < 0 or col < 0 or row_end > self.shape[0] or col_end > self.shape[1]:
            raise ValueError(
                f"Block of shape {values.shape} at {(row, col)} exceeds {self.shape}"
            )
        for block_row in range(row // mb, _num_blocks(row_end, mb)):
            for block_col in range(col // nb, _num_blocks(col_end, nb)):
                rows, cols = self.tile_slices(block_row, block_col)
                r0, r1 = max(rows.start, row), min(rows.stop, row_end)
                c0, c1 = max(cols.start, col), min(cols.stop, col_end)
                self.tiles[block_row, block_col][
                    r0 - rows.start : r1 - rows.start, c0 - cols.start : c1 - cols.start
                ] = values[r0 - row : r1 - row, c0 - col : c1 - col]

    def transfer_to(
        self, context: Context, block_size: tuple[int, int] | None = None
    ) -> "BlockCyclicMatrix":
        """Redistribute onto another grid and block size."""
        block_size = self.block_size if block_size is None else block_size
        log.debug(
            f"Transfer {self.shape} from grid {self.context.shape} to {context.shape}, "
            f"blocks {self.block_size} -> {tuple(block_size)}"
        )
        result = BlockCyclicMatrix(context, self.shape, block_size, self.dtype)
        for (block_row, block_col), tile in self.tiles.items():
            rows, cols = self.tile_slices(block_row, block_col)
            result.set_block(rows.start, cols.start, tile)
        return result

    def map_owners(self, task, keys):
        """Run ``task`` once per process on the subset of ``keys`` it owns.

        The tasks run concurrently on a thread pool and their results are
        returned in order of first appearance of the owner in ``keys``.
        """
        by_owner: dict[int, list[tuple[int, int]]] = {}
        for key in keys:
            by_owner.setdefault(self.owner(*key), []).append(key)
        groups = list(by_owner.values())
        if len(groups) <= 1:
            return [task(group) for group in groups]
        with ThreadPool(len(groups)) as pool:
            return pool.map(task, groups)

    def matvec(self, x: np.ndarray) -> np.ndarray:
        """``A @ x``; every process multiplies its tiles, partial results are summed."""
        x = np.asarray(x)
        result_dtype = np.result_type(self.dtype, x.dtype)

        def task(keys):
            partial = np.zeros((self.shape[0],) + x.shape[1:], dtype=result_dtype)
            for key in keys:
                rows, cols = self.tile_slices(*key)
                partial[rows] += self.tiles[key] @ x[cols]
            return partial

        result = np.zeros((self.shape[0],) + x.shape[1:], dtype=result_dtype)
        for partial in self.map_owners(task, list(self.tiles)):
            result += partial
        return result

    def rmatvec(self, x: np.ndarray) -> np.ndarray:
        """``A^H @ x``."""
        x = np.asarray(x)
        result_dtype = np.result_type(self.dtype, x.dtype)

        def task(keys):
            partial = np.zeros((self.shape[1],) + x.shape[1:], dtype=result_dtype)
            for key in keys:
                rows, cols = self.tile_slices(*key)
                partial[cols] += np.conj(self.tiles[key]).T @ x[rows]
            return partial

        result = np.zeros((self.shape[1],) + x.shape[1:], dtype=result_dtype)
        for partial in self.map_owners(task, list(self.tiles)):
            result += partial
        return result

    def __repr__(self) -> str:
        return (
            f"BlockCyclicMatrix(shape={self.shape}, block_size={self.block_size}, "
            f"grid={self.context.shape})"
        )
