import yamspy.log as log

import numpy as np

from yamspy.exceptions import ConfigurationError
from yamspy.functions.misc import flat_max
from yamspy.geometry import ExternalExcitation, Geometry
from yamspy.initial_field import InitialField
from yamspy.linalg.env import block_size_from_env
from yamspy.linalg.factory import get_linear_solver_backend
from yamspy.linalg.grid import Communicator, Context
from yamspy.result import Result
from yamspy.scattering_matrix import (
    direct_source_vector,
    exciting_field,
    indirect_source_vector,
    preconditioned_scattering_matrix,
    scattering_matrix,
)

METHODS = ("direct", "indirect")


class Solver:
    """
    Assembles and solves the multiple scattering system of a geometry.

    Parameters
    ----------
    geometry : Geometry
        Scatterers and background medium.
    excitation : InitialField
        Incident field.
    method : str, optional
        Formulation, "direct" (unknowns are the scattered coefficients) or "indirect"
        (unknowns are the exciting coefficients, converted afterwards).
    n_max : int, optional
        Truncation order. Defaults to the scatterers' order and must match it.
    parameters : dict, optional
        Linear solver parameters: ``type`` (``direct``, ``scalapack`` or a Krylov method),
        ``tolerance``, ``max_iter`` and ``restart``.
    context : Context, optional
        Process grid of the linear solve, a single process by default.
    block_size : tuple[int, int], optional
        Block size of the block-cyclic distribution.

    Attributes
    ----------
    S : np.ndarray
        System matrix.
    Q : np.ndarray
        Right-hand side.
    result_FF : Result or None
        Fundamental-frequency result acting as source of a second harmonic run.
    log : logger
        The logger for logging solver information.

    Methods
    -------
    solve()
        Solves the system, returns scattered and internal coefficients.
    solve_group(comm)
        Solves on the process grid and broadcasts to every member of ``comm``.
    run()
        Solves and wraps the coefficients in a :class:`Result`.
    """

    def __init__(
        self,
        geometry: Geometry,
        excitation: InitialField,
        method: str = "direct",
        n_max: int | None = None,
        parameters: dict | None = None,
        context: Context | None = None,
        block_size: tuple[int, int] | None = None,
    ):
        method = str(method).lower()
        if method not in METHODS:
            raise ConfigurationError(f"Unknown formulation {method}, use one of {METHODS}")
        self.method = method
        self.parameters = dict(parameters or {})
        self.context = Context() if context is None else context
        self.block_size = block_size_from_env() if block_size is None else tuple(block_size)

        self.geometry = geometry
        self.excitation = excitation
        self.n_max = geometry.n_max if n_max is None else n_max
        self.result_FF = None
        self._source = ExternalExcitation()

        self.log = log.scattering_logger(__name__)
        self.populate()

    @property
    def size(self) -> int:
        """Number of unknowns per scatterer."""
        return 2 * flat_max(self.n_max) if self.n_max is not None else 0

    def populate(self):
        """Assembles the system matrix and right-hand side for the current state."""
        self.log.info(
            f"Assemble {self.method} system for {len(self.geometry)} scatterers, "
            f"n_max = {self.n_max}"
        )
        if self.method == "indirect":
            self.Q = indirect_source_vector(
                self.geometry, self.excitation, self._source, self.n_max
            )
            self.S = preconditioned_scattering_matrix(
                self.geometry, self.excitation, self.n_max
            )
        else:
            self.Q = direct_source_vector(
                self.geometry, self.excitation, self._source, self.n_max
            )
            self.S = scattering_matrix(self.geometry, self.excitation, self.n_max)

    def update(self, geometry: Geometry, excitation: InitialField, n_max: int | None = None):
        """
        Switches to a new problem and drops any second harmonic source.

        A given ``n_max`` becomes the truncation order of every scatterer of ``geometry``.
        """
        if n_max is not None:
            geometry.update_n_max(n_max)
        self.geometry = geometry
        self.excitation = excitation
        self.n_max = geometry.n_max if n_max is None else n_max
        self.result_FF = None
        self._source = ExternalExcitation()
        self.populate()
        return self

    def second_harmonic(self, result: Result, excitation: InitialField | None = None):
        """
        Uses a fundamental-frequency result as the source of a second harmonic run.

        The system is re-assembled only if ``result`` differs from the current source.

        Parameters
        ----------
        result : Result
            Solved fundamental-frequency problem on the same geometry.
        excitation : InitialField, optional
            Excitation of the second harmonic run, by default the fundamental one at
            twice the frequency.

        Returns
        -------
        Solver
            The solver itself.
        """
        if result is not self.result_FF:
            self.result_FF = result
            self.excitation = (
                result.excitation.second_harmonic() if excitation is None else excitation
            )
            self._source = self.geometry.install_second_harmonic_source(
                result.excitation, result.internal_coef, self.n_max
            )
            self.populate()
        return self

    def convert_indirect(self, x: np.ndarray) -> np.ndarray:
        """Scattered coefficients ``T_i y_i`` from the exciting coefficients ``y``."""
        result = np.zeros_like(x)
        size = self.size
        for i in range(len(self.geometry)):
            segment = slice(i * size, (i + 1) * size)
            result[segment] = (
                self.geometry.local_transfer_operator(self.excitation.omega, i, self.n_max)
                @ x[segment]
            )
        return result

    def exciting_field(self, scattered: np.ndarray) -> np.ndarray:
        """Field exciting every scatterer for the given scattered coefficients."""
        return exciting_field(
            self.geometry, self.excitation, scattered, self._source, self.n_max
        )

    def solve_internal(self, exciting: np.ndarray) -> np.ndarray:
        """Internal coefficients from the exciting ones."""
        if len(self.geometry) == 0:
            return np.zeros_like(exciting)
        internal = np.concatenate(
            [
                self.geometry.internal_recovery_operator(
                    self.excitation.omega, i, self.n_max
                )
                for i in range(len(self.geometry))
            ]
        )
        return internal * exciting

    def solve(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Solves the linear system.

        Both formulations end with the exciting coefficients ``y``, the direct one
        re-expands its solution for them. Scattered and internal coefficients follow
        as ``T_i y_i`` and ``C_i y_i`` with the internal Mie coefficients ``C_i``.

        Returns
        -------
        scattered : np.ndarray
            Scattered field coefficients.
        internal : np.ndarray
            Internal field coefficients.

        Raises
        ------
        ConfigurationError
            If the process grid is invalid.
        SolverError
            If the linear solve fails.
        """
        if not self.context.is_valid():
            raise ConfigurationError("Process grid is invalid")
        backend = get_linear_solver_backend(self.parameters, self.context, self.block_size)
        self.log.info(f"Solve {self.S.shape[0]} unknowns with the {backend.name} backend")
        x = backend.solve(self.S, self.Q)
        exciting = x if self.method == "indirect" else self.exciting_field(x)
        return self.convert_indirect(exciting), self.solve_internal(exciting)

    def solve_group(self, comm: Communicator) -> list[tuple[np.ndarray, np.ndarray]]:
        """
        Solves on the process grid and broadcasts the result to the whole group.

        Parameters
        ----------
        comm : Communicator
            Communication group; the members of the process grid compute, all others
            receive a copy.

        Returns
        -------
        list
            One ``(scattered, internal)`` pair per member of ``comm``.
        """
        if comm.size < self.context.size:
            raise ConfigurationError(
                f"Communicator of size {comm.size} is smaller than the process grid "
                f"of size {self.context.size}"
            )
        if not all(rank in comm.ranks for rank in self.context.ranks):
            raise ConfigurationError("The process grid holds ranks outside of the communicator")
        active, _ = comm.split(self.context.is_valid)
        self.log.debug(f"{active.size} of {comm.size} participants compute")
        scattered, internal = self.solve()
        return comm.broadcast((scattered, internal), root=self.context.ranks[0])

    def run(self) -> Result:
        scattered, internal = self.solve()
        return Result(
            scattered,
            internal,
            self.geometry,
            self.excitation,
            self.n_max,
            self.method,
            self.result_FF,
        )


def solve(
    geometry: Geometry,
    excitation: InitialField,
    method: str = "direct",
    n_max: int | None = None,
    **kwargs,
) -> Solver:
    """Creates a :class:`Solver` for the problem; keyword arguments are passed on."""
    return Solver(geometry, excitation, method, n_max, **kwargs)
