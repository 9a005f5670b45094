"""Process grids, distributed matrices and linear solver strategies."""

from __future__ import annotations

from yamspy.linalg.backends import (
    KRYLOV_METHODS,
    DirectBackend,
    DistributedDenseBackend,
    IterationCounter,
    IterativeBackend,
    LinearSolverBackend,
)
from yamspy.linalg.factory import get_linear_solver_backend
from yamspy.linalg.grid import Communicator, Context
from yamspy.linalg.matrix import BlockCyclicMatrix

__all__ = [
    "KRYLOV_METHODS",
    "BlockCyclicMatrix",
    "Communicator",
    "Context",
    "DirectBackend",
    "DistributedDenseBackend",
    "IterationCounter",
    "IterativeBackend",
    "LinearSolverBackend",
    "get_linear_solver_backend",
]
