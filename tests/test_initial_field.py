import numpy as np
import numpy.testing as npt
import pytest

from yamspy.electromagnetic import ElectroMagnetic
from yamspy.exceptions import ConfigurationError
from yamspy.functions.misc import flat_max, harmonic_degrees_orders
from yamspy.initial_field import InitialField


@pytest.mark.parametrize("polarization", ["TE", "TM", (0.3, 0.7j)])
@pytest.mark.parametrize("polar_angle", [0.0, np.pi])
def test_normal_incidence_excites_first_order_only(polarization, polar_angle):
    n_max = 6
    excitation = InitialField(0.5, polar_angle=polar_angle, polarization=polarization)
    assert excitation.normal_incidence

    coefficients = excitation.local_incident(np.zeros(3), n_max)
    _, orders = harmonic_degrees_orders(n_max)
    orders = np.tile(orders, 2)
    npt.assert_allclose(coefficients[np.abs(orders) != 1], 0, atol=1e-12)
    assert np.all(np.abs(coefficients[np.abs(orders) == 1]) > 0)


def test_oblique_incidence_excites_all_orders():
    excitation = InitialField(0.5, polar_angle=0.6, azimuthal_angle=1.1)
    assert not excitation.normal_incidence
    coefficients = excitation.local_incident(np.zeros(3), 3)
    assert coefficients.shape == (2 * flat_max(3),)
    assert np.count_nonzero(np.abs(coefficients) > 1e-12) > 2 * 3 * 2


def test_translation_is_a_phase():
    excitation = InitialField(0.7, amplitude=2.0, polar_angle=0.4, azimuthal_angle=-0.3)
    center = np.array([0.2, -0.1, 0.35])
    direction = np.array(
        [np.sin(0.4) * np.cos(-0.3), np.sin(0.4) * np.sin(-0.3), np.cos(0.4)]
    )
    phase = np.exp(1j * excitation.wave_k * direction @ center)
    npt.assert_allclose(
        excitation.local_incident(center, 4),
        phase * excitation.local_incident(np.zeros(3), 4),
        rtol=1e-12,
    )


def test_amplitude_is_linear():
    first = InitialField(0.7, amplitude=1.0, polar_angle=0.4)
    second = InitialField(0.7, amplitude=3.0 - 1.0j, polar_angle=0.4)
    npt.assert_allclose(
        second.local_incident(np.ones(3), 3),
        (3.0 - 1.0j) * first.local_incident(np.ones(3), 3),
        rtol=1e-12,
    )


def test_polarizations():
    assert InitialField(1.0, polarization="TE").pol == (0.0, 1.0)
    assert InitialField(1.0, polarization="tm").pol == (1.0, 0.0)
    assert InitialField(1.0, polarization=1).pol == (0.0, 1.0)
    assert InitialField(1.0, polarization=(1, 1j)).pol == (1.0, 1j)


@pytest.mark.parametrize("polarization", ["UNP", "circular", 3, (1, 0, 0)])
def test_invalid_polarization_raises(polarization):
    with pytest.raises(ConfigurationError):
        InitialField(1.0, polarization=polarization)


def test_invalid_wavelength_raises():
    with pytest.raises(ConfigurationError):
        InitialField(0.0)


def test_background_sets_wavenumber():
    excitation = InitialField(0.5)
    water = ElectroMagnetic.from_refractive_index(1.33)
    npt.assert_allclose(excitation.wavenumber(water), 1.33 * 2 * np.pi / 0.5)
    npt.assert_allclose(excitation.wave_k, 2 * np.pi / 0.5)


def test_second_harmonic_doubles_frequency():
    excitation = InitialField(0.8, amplitude=2.0, polar_angle=0.3, polarization="TM")
    doubled = excitation.second_harmonic()
    assert doubled.wavelength == pytest.approx(0.4)
    assert doubled.omega == pytest.approx(2 * excitation.omega)
    assert doubled.pol == excitation.pol
    assert doubled.polar_angle == excitation.polar_angle
    assert doubled != excitation
    assert doubled == InitialField(0.4, amplitude=2.0, polar_angle=0.3, polarization="TM")
