import numpy as np

from yamspy.electromagnetic import ElectroMagnetic
from yamspy.mie_coefficients import compute_mie_coefficients


class Scatterer:
    """A homogeneous sphere.

    Args:
        position (np.ndarray): Cartesian position of the centre, shape ``(3,)``.
        elmag (ElectroMagnetic): Material of the sphere.
        radius (float): Sphere radius.
        n_max (int): Truncation order of the field expansions about the centre.
        second_harmonic_coupling (complex, optional): Strength of the local
            second harmonic source relative to the internal field at the
            fundamental frequency. Defaults to 1.

    Note:
        Only ``n_max`` may be changed after construction.
    """

    def __init__(
        self,
        position,
        elmag: ElectroMagnetic,
        radius: float,
        n_max: int,
        second_harmonic_coupling: complex = 1.0,
    ):
        position = np.asarray(position, dtype=float)
        if position.shape != (3,):
            raise ValueError(
                f"Position should be a 3D coordinate. Found shape {position.shape}."
            )
        if radius <= 0:
            raise ValueError(f"Radius should be positive, got {radius}")
        self._position = position
        self._position.setflags(write=False)
        self._elmag = elmag
        self._radius = float(radius)
        self.n_max = int(n_max)
        self._second_harmonic_coupling = complex(second_harmonic_coupling)

    @property
    def position(self) -> np.ndarray:
        return self._position

    @property
    def elmag(self) -> ElectroMagnetic:
        return self._elmag

    @property
    def radius(self) -> float:
        return self._radius

    @property
    def second_harmonic_coupling(self) -> complex:
        return self._second_harmonic_coupling

    @property
    def spherical(self) -> np.ndarray:
        """Position as ``(r, theta, phi)``."""
        x, y, z = self._position
        r = np.sqrt(x**2 + y**2 + z**2)
        theta = np.arccos(z / r) if r > 0 else 0.0
        return np.array([r, theta, np.arctan2(y, x)])

    def _coefficients(self, omega: float, background: ElectroMagnetic, n_max: int):
        return compute_mie_coefficients(
            self._radius,
            background.wavenumber(omega),
            self._elmag.wavenumber(omega),
            n_max,
            background.mu_r,
            self._elmag.mu_r,
        )

    def local_transfer_operator(
        self, omega: float, background: ElectroMagnetic, n_max: int | None = None
    ) -> np.ndarray:
        """Diagonal Mie T-operator as a dense ``2F x 2F`` matrix.

        Args:
            omega (float): Angular frequency.
            background (ElectroMagnetic): Surrounding medium.
            n_max (int, optional): Truncation order, defaults to the scatterer's.

        Returns:
            np.ndarray: Operator mapping incident to scattered coefficients.
        """
        n_max = self.n_max if n_max is None else n_max
        t_diagonal, _ = self._coefficients(omega, background, n_max)
        return np.diag(t_diagonal)

    def internal_recovery_operator(
        self, omega: float, background: ElectroMagnetic, n_max: int | None = None
    ) -> np.ndarray:
        """Element-wise multipliers turning exciting into internal coefficients."""
        n_max = self.n_max if n_max is None else n_max
        _, internal = self._coefficients(omega, background, n_max)
        return internal

    def overlaps(self, other: "Scatterer") -> bool:
        distance = np.linalg.norm(self._position - other.position)
        return bool(distance < self._radius + other.radius)

    def __repr__(self) -> str:
        return (
            f"Scatterer(position={self._position.tolist()}, elmag={self._elmag!r}, "
            f"radius={self._radius}, n_max={self.n_max})"
        )
