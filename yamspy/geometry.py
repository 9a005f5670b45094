"""Scatterer ensembles and the sources that drive them.

The right-hand side of the multiple scattering system is selected with an
explicit source mode rather than state stored on the geometry:

- :class:`ExternalExcitation`: the incident field expanded about every
  scatterer;
- :class:`SecondHarmonicSource`: local sources derived from the internal
  field of a solved fundamental-frequency problem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator

import numpy as np

from yamspy.electromagnetic import ElectroMagnetic
from yamspy.exceptions import ConfigurationError
from yamspy.functions.misc import flat_max
from yamspy.particles import Scatterer

if TYPE_CHECKING:
    from yamspy.initial_field import InitialField


@dataclass(frozen=True)
class ExternalExcitation:
    """Source mode: the incident field drives every scatterer."""

    def local_source(
        self, geometry: "Geometry", index: int, excitation: "InitialField", n_max: int
    ) -> np.ndarray:
        return geometry.local_incident_from_excitation(
            geometry[index].position, excitation, n_max
        )


@dataclass(frozen=True, eq=False)
class SecondHarmonicSource:
    """Source mode: local sources from a fundamental-frequency solution.

    Parameters
    ----------
    coefficients:
        Local source coefficients of every scatterer, scatterer-major.
    excitation:
        Excitation of the fundamental-frequency problem.
    """

    coefficients: np.ndarray
    excitation: "InitialField | None" = None

    def local_source(
        self, geometry: "Geometry", index: int, excitation: "InitialField", n_max: int
    ) -> np.ndarray:
        size = 2 * flat_max(n_max)
        return self.coefficients[index * size : (index + 1) * size]


class Geometry:
    """Ordered collection of spherical scatterers in a homogeneous background.

    Args:
        scatterers (list[Scatterer], optional): Initial scatterers.
        background (ElectroMagnetic, optional): Surrounding medium. Defaults to vacuum.
    """

    def __init__(
        self,
        scatterers: list[Scatterer] | None = None,
        background: ElectroMagnetic | None = None,
    ):
        self.objects: list[Scatterer] = []
        self.background = ElectroMagnetic() if background is None else background
        self.log = logging.getLogger(self.__class__.__module__)

        for scatterer in scatterers or []:
            self.add(scatterer)

    def add(self, scatterer: Scatterer) -> "Geometry":
        self.objects.append(scatterer)
        return self

    def __len__(self) -> int:
        return len(self.objects)

    def __iter__(self) -> Iterator[Scatterer]:
        return iter(self.objects)

    def __getitem__(self, index: int) -> Scatterer:
        return self.objects[index]

    @property
    def positions(self) -> np.ndarray:
        """Centres of all scatterers, shape ``(N, 3)``."""
        if len(self.objects) == 0:
            return np.zeros((0, 3))
        return np.stack([scatterer.position for scatterer in self.objects])

    @property
    def n_max(self) -> int | None:
        """Truncation order shared by all scatterers, ``None`` for an empty geometry.

        Raises:
            ConfigurationError: If the scatterers use different orders.
        """
        if len(self.objects) == 0:
            return None
        n_max = self.objects[0].n_max
        for scatterer in self.objects:
            if scatterer.n_max != n_max:
                raise ConfigurationError("All objects must have same number of harmonics")
        return n_max

    def update_n_max(self, n_max: int) -> None:
        for scatterer in self.objects:
            scatterer.n_max = int(n_max)

    def no_overlap(self) -> bool:
        """Whether all spheres are disjoint."""
        for i, first in enumerate(self.objects):
            for second in self.objects[i + 1 :]:
                if first.overlaps(second):
                    return False
        return True

    def local_transfer_operator(
        self, omega: float, index: int, n_max: int | None = None
    ) -> np.ndarray:
        return self.objects[index].local_transfer_operator(omega, self.background, n_max)

    def internal_recovery_operator(
        self, omega: float, index: int, n_max: int | None = None
    ) -> np.ndarray:
        return self.objects[index].internal_recovery_operator(
            omega, self.background, n_max
        )

    def local_incident_from_excitation(
        self, center, excitation: "InitialField", n_max: int
    ) -> np.ndarray:
        """Regular coefficients of the incident field about ``center``."""
        return excitation.local_incident(center, n_max, self.background)

    def local_source_from_solution(
        self,
        index: int,
        excitation: "InitialField",
        n_max: int,
        source: ExternalExcitation | SecondHarmonicSource,
    ) -> np.ndarray:
        """Local source coefficients of scatterer ``index`` for a source mode."""
        return source.local_source(self, index, excitation, n_max)

    def install_second_harmonic_source(
        self, excitation: "InitialField", coefficients, n_max: int | None = None
    ) -> SecondHarmonicSource:
        """Build the second harmonic source mode from fundamental-frequency coefficients.

        The local source of scatterer ``i`` is its internal field at the
        fundamental frequency scaled by the scatterer's
        ``second_harmonic_coupling``. The geometry itself is left unchanged.

        Args:
            excitation (InitialField): Excitation of the fundamental-frequency problem.
            coefficients (np.ndarray): Internal field coefficients, scatterer-major.
            n_max (int, optional): Truncation order, defaults to the geometry's.

        Returns:
            SecondHarmonicSource: The source mode to pass to the assembler.
        """
        if len(self) == 0:
            return SecondHarmonicSource(np.zeros(0, dtype=complex), excitation)
        n_max = self.n_max if n_max is None else n_max
        size = 2 * flat_max(n_max)
        internal = np.asarray(coefficients)
        if internal.shape != (size * len(self),):
            raise ConfigurationError(
                f"Internal coefficients of shape {internal.shape} do not match "
                f"{len(self)} scatterers with n_max = {n_max}"
            )
        coupling = np.repeat(
            np.array(
                [scatterer.second_harmonic_coupling for scatterer in self.objects],
                dtype=complex,
            ),
            size,
        )
        local = coupling * internal
        local.setflags(write=False)
        self.log.debug(f"Second harmonic sources for {len(self)} scatterers")
        return SecondHarmonicSource(local, excitation)

    def __repr__(self) -> str:
        return f"Geometry({len(self)} scatterers, background={self.background!r})"
