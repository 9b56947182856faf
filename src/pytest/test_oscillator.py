# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Test the analytic cavity oscillator."""

import numpy as np
import pytest

from cavitydipole.oscillator import CavityOscillator, OscillatorPhase
from cavitydipole.utils import CavityStateError


def dipole_z(value):
    return np.array([0.0, 0.0, value])


def test_initialize_seeds_q0():
    osc = CavityOscillator(coupling=0.5, frequency=2.0)
    osc.initialize(dipole_z(3.0))
    assert osc.phase is OscillatorPhase.INITIALIZED
    assert osc.q0 == pytest.approx(0.5 * 3.0 / 2.0)
    assert osc.q == pytest.approx(osc.q0)
    assert osc.p == 0.0
    assert osc.cos_integral == 0.0 and osc.sin_integral == 0.0
    assert osc.prevtime == 0.0


def test_integral_accumulation_constant_source():
    """For a constant coupled dipole c the integrals follow the trapezoid sum."""
    coupling, omega, c = 0.7, 1.3, 2.0
    dt, k = 0.05, 40
    osc = CavityOscillator(coupling, omega)
    osc.initialize(dipole_z(c / coupling))
    for n in range(1, k + 1):
        osc.step(n * dt, dipole_z(c / coupling))

    times = np.arange(k + 1) * dt
    expected_cos = sum(0.5 * dt * (np.cos(omega * times[n - 1]) + np.cos(omega * times[n])) * c
                       for n in range(1, k + 1))
    expected_sin = sum(0.5 * dt * (np.sin(omega * times[n - 1]) + np.sin(omega * times[n])) * c
                       for n in range(1, k + 1))
    assert osc.cos_integral == pytest.approx(expected_cos, rel=1e-12)
    assert osc.sin_integral == pytest.approx(expected_sin, rel=1e-12)
    assert osc.prevtime == pytest.approx(k * dt)


def test_constant_source_stays_near_equilibrium():
    """Seeded at q0 = lambda mu_z / omega with a fixed dipole the mode stays put."""
    osc = CavityOscillator(coupling=1.0, frequency=1.0)
    osc.initialize(dipole_z(1.0))
    for n in range(1, 101):
        osc.step(0.01 * n, dipole_z(1.0))
        assert osc.q == pytest.approx(1.0, abs=1e-4)
        assert osc.p == pytest.approx(0.0, abs=1e-4)


def test_free_oscillator_conserves_energy():
    """With lambda = 0 the mode is a harmonic oscillator q0 cos(w t)."""
    omega, q0 = 1.7, 0.8
    osc = CavityOscillator(coupling=0.0, frequency=omega)
    osc.initialize(dipole_z(5.0), q0=q0)
    energy0 = osc.potential_energy() + osc.kinetic_energy()
    assert energy0 == pytest.approx(0.5 * omega ** 2 * q0 ** 2)

    for n in range(1, 201):
        t = 0.037 * n
        osc.step(t, dipole_z(5.0 + np.sin(t)))
        assert osc.q == pytest.approx(q0 * np.cos(omega * t), abs=1e-12)
        assert osc.potential_energy() + osc.kinetic_energy() == pytest.approx(energy0, rel=1e-12)


def test_canonical_coordinates_closed_form():
    osc = CavityOscillator(coupling=0.3, frequency=0.9)
    osc.initialize(dipole_z(1.0))
    osc.step(0.2, dipole_z(1.5))
    t, w = 0.2, 0.9
    q = np.sin(w * t) * osc.cos_integral - np.cos(w * t) * osc.sin_integral + osc.q0 * np.cos(w * t)
    p = w * (np.cos(w * t) * osc.cos_integral + np.sin(w * t) * osc.sin_integral - osc.q0 * np.sin(w * t))
    assert osc.q == pytest.approx(q)
    assert osc.p == pytest.approx(p)
    assert osc.potential_energy() == pytest.approx(0.5 * (w * q - 0.3 * 1.5) ** 2)
    assert osc.kinetic_energy() == pytest.approx(0.5 * p ** 2)


def test_step_before_initialize():
    osc = CavityOscillator(1.0, 1.0)
    with pytest.raises(CavityStateError):
        osc.step(0.1, dipole_z(1.0))


@pytest.mark.parametrize('time', [0.1, 0.05])
def test_step_requires_increasing_time(time):
    osc = CavityOscillator(1.0, 1.0)
    osc.initialize(dipole_z(1.0))
    osc.step(0.1, dipole_z(1.0))
    before = (osc.cos_integral, osc.sin_integral)
    with pytest.raises(CavityStateError):
        osc.step(time, dipole_z(1.0))
    assert (osc.cos_integral, osc.sin_integral) == before


def test_initialize_twice():
    osc = CavityOscillator(1.0, 1.0)
    osc.initialize(dipole_z(1.0))
    with pytest.raises(CavityStateError):
        osc.initialize(dipole_z(1.0))


def test_step_after_finalize():
    osc = CavityOscillator(1.0, 1.0)
    osc.initialize(dipole_z(1.0))
    osc.finalize()
    assert osc.phase is OscillatorPhase.FINALIZED
    with pytest.raises(CavityStateError):
        osc.step(0.1, dipole_z(1.0))


def test_zero_frequency_needs_explicit_q0():
    osc = CavityOscillator(1.0, 0.0)
    with pytest.raises(CavityStateError):
        osc.initialize(dipole_z(1.0))


def test_negative_parameters_rejected():
    with pytest.raises(ValueError):
        CavityOscillator(-1.0, 1.0)
    with pytest.raises(ValueError):
        CavityOscillator(1.0, -1.0)
