"""Process grids and communication groups.

The distributed solvers follow the BLACS model: a communication group of
``size`` participants, some of which form a two dimensional compute grid. The
grid is emulated in-process. Every participant is identified by its rank in the
group, and collective operations (``broadcast``, ``split``) return one value
per participant.
"""

from __future__ import annotations

import copy
from typing import Any, Callable

import numpy as np

from yamspy.exceptions import ConfigurationError


class Context:
    """Two dimensional compute grid.

    Parameters
    ----------
    rows, cols:
        Grid shape. Ignored when ``rank_map`` is given.
    rank_map:
        Ranks of the communication group placed on the grid, shape
        ``(rows, cols)``. Defaults to row-major ``0..rows * cols - 1``.

    Notes
    -----
    A context without any process is *invalid*; solvers refuse to run on it.
    """

    def __init__(self, rows: int = 1, cols: int = 1, rank_map=None):
        if rank_map is None:
            if rows < 0 or cols < 0:
                raise ConfigurationError(f"Invalid grid shape {(rows, cols)}")
            rank_map = np.arange(rows * cols).reshape(rows, cols)
        rank_map = np.array(rank_map, dtype=int, ndmin=2)
        if len(np.unique(rank_map)) != rank_map.size:
            raise ConfigurationError("A rank appears twice in the process grid")
        self._rank_map = rank_map
        self._rank_map.setflags(write=False)

    @classmethod
    def empty(cls) -> "Context":
        return cls(rank_map=np.zeros((0, 0), dtype=int))

    @property
    def rank_map(self) -> np.ndarray:
        return self._rank_map

    @property
    def rows(self) -> int:
        return self._rank_map.shape[0]

    @property
    def cols(self) -> int:
        return self._rank_map.shape[1]

    @property
    def shape(self) -> tuple[int, int]:
        return self.rows, self.cols

    @property
    def size(self) -> int:
        return int(self._rank_map.size)

    @property
    def ranks(self) -> list[int]:
        return [int(rank) for rank in self._rank_map.ravel()]

    def is_valid(self, rank: int | None = None) -> bool:
        """Whether the grid holds any process, or whether ``rank`` is part of it."""
        if rank is None:
            return self.size > 0
        return bool(np.any(self._rank_map == rank))

    def coordinates(self, rank: int) -> tuple[int, int]:
        """Grid position ``(row, col)`` of ``rank``."""
        found = np.argwhere(self._rank_map == rank)
        if len(found) == 0:
            raise ConfigurationError(f"Rank {rank} is not part of the process grid")
        return int(found[0, 0]), int(found[0, 1])

    def owner(self, block_row: int, block_col: int) -> int:
        """Rank holding block ``(block_row, block_col)`` of a block-cyclic matrix."""
        return int(self._rank_map[block_row % self.rows, block_col % self.cols])

    def serial(self) -> "Context":
        """Single process sub-grid made of the first process."""
        if not self.is_valid():
            return Context.empty()
        return Context(rank_map=self._rank_map[:1, :1])

    def subcontext(self, rank_map) -> "Context":
        """Sub-grid over ``rank_map``, which must only hold ranks of this grid."""
        rank_map = np.array(rank_map, dtype=int, ndmin=2)
        if not all(self.is_valid(rank) for rank in rank_map.ravel()):
            raise ConfigurationError("Sub-grid holds ranks outside of the process grid")
        return Context(rank_map=rank_map)

    def linear(self, size: int | None = None) -> "Context":
        """``1 x size`` sub-grid over the first ``size`` processes in row-major order."""
        ranks = self._rank_map.reshape(1, -1)
        size = ranks.shape[1] if size is None else size
        return Context(rank_map=ranks[:, :size])

    def __eq__(self, other) -> bool:
        if not isinstance(other, Context):
            return NotImplemented
        return np.array_equal(self._rank_map, other.rank_map)

    __hash__ = None

    def __repr__(self) -> str:
        return f"Context(rows={self.rows}, cols={self.cols})"


class Communicator:
    """Fixed-size group of participants.

    Parameters
    ----------
    size:
        Number of participants, ignored when ``ranks`` is given.
    ranks:
        Explicit participant ranks.
    """

    def __init__(self, size: int = 1, ranks=None):
        if ranks is None:
            if size < 1:
                raise ConfigurationError(f"A communicator needs participants, got {size}")
            ranks = range(size)
        self._ranks = [int(rank) for rank in ranks]

    @property
    def size(self) -> int:
        return len(self._ranks)

    @property
    def ranks(self) -> list[int]:
        return list(self._ranks)

    def split(self, predicate: Callable[[int], bool]) -> tuple["Communicator", "Communicator"]:
        """Split into the participants for which ``predicate(rank)`` holds and the others."""
        active = [rank for rank in self._ranks if predicate(rank)]
        inactive = [rank for rank in self._ranks if not predicate(rank)]
        return _group(active), _group(inactive)

    def broadcast(self, value: Any, root: int = 0) -> list[Any]:
        """Copy ``value`` held by ``root`` to every participant.

        Returns
        -------
        list
            One independent copy per participant, in rank order.
        """
        if root not in self._ranks:
            raise ConfigurationError(f"Root {root} is not part of the communicator")
        return [
            value if rank == root else copy.deepcopy(value) for rank in self._ranks
        ]

    def __repr__(self) -> str:
        return f"Communicator(size={self.size})"


def _group(ranks: list[int]) -> Communicator:
    group = Communicator.__new__(Communicator)
    group._ranks = ranks
    return group
