"""Exceptions raised by yamspy."""


class ConfigurationError(ValueError):
    """Invalid problem setup.

    Raised for scatterers with different truncation orders, compute grids that
    do not fit the communication group and unknown solver or config options.
    """


class SolverError(RuntimeError):
    """A linear solve failed (singular system, no convergence, invalid output)."""
