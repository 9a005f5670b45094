import numpy as np

from yamspy.functions.misc import flat_max


class Result:
    """Solution of a multiple scattering problem.

    Args:
        scattered_coef (np.ndarray): Scattered field coefficients, scatterer-major.
        internal_coef (np.ndarray): Internal field coefficients, same layout.
        geometry (Geometry): The solved geometry.
        excitation (InitialField): The excitation of the problem.
        n_max (int): Truncation order.
        method (str): Formulation used, "direct" or "indirect".
        result_FF (Result, optional): Fundamental-frequency result of a second harmonic run.
    """

    def __init__(
        self,
        scattered_coef,
        internal_coef,
        geometry,
        excitation,
        n_max: int,
        method: str = "direct",
        result_FF=None,
    ):
        self.scattered_coef = np.asarray(scattered_coef)
        self.internal_coef = np.asarray(internal_coef)
        self.geometry = geometry
        self.excitation = excitation
        self.n_max = n_max
        self.method = method
        self.result_FF = result_FF

    @property
    def is_second_harmonic(self) -> bool:
        return self.result_FF is not None

    def _segment(self, coefficients: np.ndarray, index: int) -> np.ndarray:
        size = 2 * flat_max(self.n_max)
        return coefficients[index * size : (index + 1) * size]

    def scattered(self, index: int) -> np.ndarray:
        """Scattered field coefficients of scatterer ``index``."""
        return self._segment(self.scattered_coef, index)

    def internal(self, index: int) -> np.ndarray:
        """Internal field coefficients of scatterer ``index``."""
        return self._segment(self.internal_coef, index)

    def __repr__(self) -> str:
        kind = "second harmonic" if self.is_second_harmonic else "fundamental"
        return (
            f"Result({kind}, {len(self.geometry)} scatterers, n_max={self.n_max}, "
            f"method={self.method!r})"
        )
