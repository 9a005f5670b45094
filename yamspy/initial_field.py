import yamspy.log as log

import numpy as np

from yamspy.electromagnetic import ElectroMagnetic
from yamspy.exceptions import ConfigurationError
from yamspy.initial_field_coefficients import compute_planewave_coefficients


class InitialField:
    """
    Represents the incident plane wave of a scattering problem.

    Args:
        wavelength (float): Vacuum wavelength.
        amplitude (complex, optional): The amplitude of the field. Defaults to 1.
        polar_angle (float, optional): The polar angle of the propagation direction. Defaults to 0.
        azimuthal_angle (float, optional): The azimuthal angle of the propagation direction. Defaults to 0.
        polarization (str | tuple, optional): "TE", "TM" or an explicit ``(E_theta, E_phi)`` pair.
            Defaults to "TE".
        medium (ElectroMagnetic, optional): Medium the wave travels in. Defaults to vacuum.

    Attributes:
        wavelength (float): Vacuum wavelength.
        amplitude (complex): The amplitude of the field.
        polar_angle (float): The polar angle of the field.
        azimuthal_angle (float): The azimuthal angle of the field.
        polarization (str | tuple): The polarization of the field.
        pol (tuple): Polarisation components ``(E_theta, E_phi)``.
        normal_incidence (bool): Whether the wave travels along the z-axis.
        log: The logger for logging messages.
    """

    def __init__(
        self,
        wavelength: float,
        amplitude: complex = 1,
        polar_angle: float = 0,
        azimuthal_angle: float = 0,
        polarization="TE",
        medium: ElectroMagnetic | None = None,
    ):
        if wavelength <= 0:
            raise ConfigurationError(f"Wavelength should be positive, got {wavelength}")
        self.wavelength = float(wavelength)
        self.amplitude = amplitude
        self.polar_angle = polar_angle
        self.azimuthal_angle = azimuthal_angle
        self.polarization = polarization
        self.medium = ElectroMagnetic() if medium is None else medium

        self.log = log.scattering_logger(__name__)
        self.__setup()

    def __set_pol(self):
        """
        Sets the polarisation components based on the polarization type.

        "TE" (or 1) is polarised along the azimuthal unit vector, "TM" (or 2) along the
        polar unit vector of the propagation direction. Any pair is taken as ``(E_theta, E_phi)``.
        """
        polarization = self.polarization
        if (isinstance(polarization, str) and polarization.lower() == "te") or (
            isinstance(polarization, int) and polarization == 1
        ):
            self.pol = (0.0, 1.0)
        elif (isinstance(polarization, str) and polarization.lower() == "tm") or (
            isinstance(polarization, int) and polarization == 2
        ):
            self.pol = (1.0, 0.0)
        elif isinstance(polarization, (tuple, list)) and len(polarization) == 2:
            self.pol = (complex(polarization[0]), complex(polarization[1]))
        else:
            raise ConfigurationError(
                f"{polarization} is not a valid polarization type. Please use TE, TM or a pair."
            )

    def __set_normal_incidence(self):
        """Sets the normal incidence flag based on the polar angle."""
        self.normal_incidence = np.abs(np.sin(self.polar_angle)) < 1e-5

    def __setup(self):
        self.__set_pol()
        self.__set_normal_incidence()

    @property
    def omega(self) -> float:
        """Angular frequency, speed of light one."""
        return 2 * np.pi / self.wavelength

    def wavenumber(self, background: ElectroMagnetic) -> complex:
        return background.wavenumber(self.omega)

    @property
    def wave_k(self) -> complex:
        """Wave number in the medium of the excitation."""
        return self.wavenumber(self.medium)

    def local_incident(self, center, n_max: int, background: ElectroMagnetic | None = None):
        """
        Regular expansion coefficients of the incident field about ``center``.

        Args:
            center (np.ndarray): Expansion centre.
            n_max (int): Truncation order.
            background (ElectroMagnetic, optional): Medium that sets the wave number.
                Defaults to the medium of the excitation.

        Returns:
            np.ndarray: Coefficient vector of length ``2 * n_max * (n_max + 2)``.
        """
        medium = self.medium if background is None else background
        e_theta, e_phi = self.pol
        return compute_planewave_coefficients(
            center,
            self.wavenumber(medium),
            n_max,
            self.amplitude,
            self.polar_angle,
            self.azimuthal_angle,
            e_theta,
            e_phi,
        )

    def second_harmonic(self) -> "InitialField":
        """The same plane wave at twice the frequency."""
        return InitialField(
            self.wavelength / 2,
            self.amplitude,
            self.polar_angle,
            self.azimuthal_angle,
            self.polarization,
            self.medium,
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, InitialField):
            return NotImplemented
        return (
            self.wavelength == other.wavelength
            and self.amplitude == other.amplitude
            and self.polar_angle == other.polar_angle
            and self.azimuthal_angle == other.azimuthal_angle
            and self.pol == other.pol
            and self.medium == other.medium
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"InitialField(wavelength={self.wavelength}, polarization={self.polarization!r}, "
            f"polar_angle={self.polar_angle}, azimuthal_angle={self.azimuthal_angle})"
        )
