"""Runtime selection of the linear solver backend.

The strategy depends on the solver parameters and the available process grid:

1. ``parameters["type"]`` names a Krylov method: :class:`IterativeBackend`
2. ``type == "direct"`` or a single process grid: :class:`DirectBackend`
3. ``type == "scalapack"`` or a grid of several processes:
   :class:`DistributedDenseBackend`
"""

from __future__ import annotations

from typing import Any, Mapping

from yamspy.exceptions import ConfigurationError
from yamspy.linalg.backends import (
    KRYLOV_METHODS,
    DirectBackend,
    DistributedDenseBackend,
    IterativeBackend,
    LinearSolverBackend,
)
from yamspy.linalg.grid import Context

DEFAULT_PARAMETERS = {"tolerance": 1e-8, "max_iter": 1000, "restart": 100}


def get_linear_solver_backend(
    parameters: Mapping[str, Any] | None = None,
    context: Context | None = None,
    block_size: tuple[int, int] = (64, 64),
) -> LinearSolverBackend:
    """Return the backend solving the dense system.

    Parameters
    ----------
    parameters:
        Solver parameters. Recognised keys are ``type``, ``tolerance``,
        ``max_iter`` and ``restart``; other keys are ignored.
    context:
        Process grid, a single process by default.
    block_size:
        Block size of distributed matrices.

    Returns
    -------
    LinearSolverBackend
        The selected backend.

    Raises
    ------
    ConfigurationError
        For an unknown solver type or an invalid grid.
    """

    parameters = {**DEFAULT_PARAMETERS, **dict(parameters or {})}
    context = Context() if context is None else context
    kind = str(parameters.get("type") or "").strip().lower()

    if kind in KRYLOV_METHODS:
        return IterativeBackend(
            kind,
            tolerance=float(parameters["tolerance"]),
            max_iter=int(parameters["max_iter"]),
            restart=int(parameters["restart"]),
            context=context,
            block_size=block_size,
        )
    if kind == "direct" or (kind == "" and context.size == 1):
        return DirectBackend()
    if kind in {"", "scalapack"}:
        return DistributedDenseBackend(context, block_size)
    raise ConfigurationError(f"Unknown linear solver type {kind!r}")
