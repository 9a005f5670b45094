"""Electromagnetic material description."""

from __future__ import annotations

import numpy as np


class ElectroMagnetic:
    """Relative permittivity and permeability of a homogeneous medium.

    Args:
        epsilon_r (complex): Relative permittivity. Defaults to 1.
        mu_r (complex): Relative permeability. Defaults to 1.

    Attributes:
        epsilon_r (complex): Relative permittivity.
        mu_r (complex): Relative permeability.
        refractive_index (complex): :math:`\\sqrt{\\varepsilon_r \\mu_r}`.
    """

    def __init__(self, epsilon_r: complex = 1.0, mu_r: complex = 1.0):
        self.epsilon_r = complex(epsilon_r)
        self.mu_r = complex(mu_r)
        self.refractive_index = complex(np.sqrt(self.epsilon_r * self.mu_r))

    @classmethod
    def from_refractive_index(cls, refractive_index: complex, mu_r: complex = 1.0):
        """Material with the given refractive index and permeability."""
        refractive_index = complex(refractive_index)
        return cls(refractive_index**2 / complex(mu_r), mu_r)

    def wavenumber(self, omega: float) -> complex:
        """Wave number :math:`k = \\omega \\sqrt{\\varepsilon_r \\mu_r}` (speed of light one)."""
        return omega * self.refractive_index

    def __eq__(self, other) -> bool:
        if not isinstance(other, ElectroMagnetic):
            return NotImplemented
        return self.epsilon_r == other.epsilon_r and self.mu_r == other.mu_r

    def __hash__(self) -> int:
        return hash((self.epsilon_r, self.mu_r))

    def __repr__(self) -> str:
        return f"ElectroMagnetic(epsilon_r={self.epsilon_r}, mu_r={self.mu_r})"
