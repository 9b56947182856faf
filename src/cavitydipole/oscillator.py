# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""
Analytic propagation of a single cavity mode.

The mode obeys a driven harmonic oscillator with the coupling
``lambda * mu_z(t)`` as the source.  Its solution is written through the
history integrals

    I_cos(t) = int_0^t cos(w s) lambda mu_z(s) ds
    I_sin(t) = int_0^t sin(w s) lambda mu_z(s) ds

which are accumulated with the trapezoidal rule, one increment per MD
step.  The canonical coordinates then follow in closed form:

    q(t) = sin(w t) I_cos - cos(w t) I_sin + q0 cos(w t)
    p(t) = w [cos(w t) I_cos + sin(w t) I_sin - q0 sin(w t)]
"""

import enum
import logging

import numpy as np

from .dipole import Z
from .utils import CavityStateError

logger = logging.getLogger(__name__)


class OscillatorPhase(enum.Enum):
    UNINITIALIZED = 'uninitialized'
    INITIALIZED = 'initialized'
    STEPPING = 'stepping'
    FINALIZED = 'finalized'


class CavityOscillator:
    """
    Cavity mode state and its step-by-step history integrals.

    Args:
        coupling: Coupling strength lambda (>= 0)
        frequency: Angular frequency omega in rad/fs (>= 0)
        charge: Total system charge
    """

    def __init__(self, coupling, frequency, charge=0):
        if coupling < 0.0 or frequency < 0.0:
            raise ValueError(
                f"Coupling and frequency must be non-negative, got {coupling} and {frequency}"
            )
        self.coupling = float(coupling)
        self.frequency = float(frequency)
        self.charge = int(charge)

        self.phase = OscillatorPhase.UNINITIALIZED
        self.q0 = 0.0
        self.q = 0.0
        self.p = 0.0
        self.cos_integral = 0.0
        self.sin_integral = 0.0
        self.prevtime = 0.0
        self.prevdipole = np.zeros(3)

    def _coupled_dipole(self, dipole):
        return self.coupling * dipole[Z]

    def initialize(self, dipole, time=0.0, q0=None):
        """
        Seed the oscillator from the dipole at the start of the run.

        Args:
            dipole: Dipole moment (3,) at ``time``
            time: Start time in fs
            q0: Explicit initial coordinate; defaults to ``lambda mu_z / omega``
        """
        if self.phase is not OscillatorPhase.UNINITIALIZED:
            raise CavityStateError(f"Oscillator cannot be initialized while {self.phase.value}")
        dipole = np.array(dipole, dtype=np.float64)
        if q0 is None:
            if self.frequency == 0.0:
                raise CavityStateError(
                    "Cannot seed the cavity coordinate from the dipole with zero frequency"
                )
            q0 = self._coupled_dipole(dipole) / self.frequency

        self.q0 = float(q0)
        self.cos_integral = 0.0
        self.sin_integral = 0.0
        self.prevtime = float(time)
        self.prevdipole = dipole
        self.q = self.canonical_position(self.prevtime)
        self.p = self.canonical_momentum(self.prevtime)
        self.phase = OscillatorPhase.INITIALIZED
        logger.info(
            "Cavity oscillator initialized: lambda = %g, omega = %g, q0 = %g",
            self.coupling, self.frequency, self.q0
        )

    def step(self, time, dipole):
        """
        Advance the history integrals to ``time`` with the dipole sampled there.

        Raises:
            CavityStateError: before ``initialize``, after ``finalize`` or when
                ``time`` does not exceed the previous sample time.
        """
        if self.phase not in (OscillatorPhase.INITIALIZED, OscillatorPhase.STEPPING):
            raise CavityStateError(f"Oscillator cannot step while {self.phase.value}")
        time = float(time)
        if not time > self.prevtime:
            raise CavityStateError(
                f"Cavity step times must increase strictly: {time} after {self.prevtime}"
            )
        dipole = np.array(dipole, dtype=np.float64)

        dt = time - self.prevtime
        w = self.frequency
        previous = self._coupled_dipole(self.prevdipole)
        current = self._coupled_dipole(dipole)
        self.cos_integral += 0.5 * dt * (np.cos(w * self.prevtime) * previous + np.cos(w * time) * current)
        self.sin_integral += 0.5 * dt * (np.sin(w * self.prevtime) * previous + np.sin(w * time) * current)

        self.prevtime = time
        self.prevdipole = dipole
        self.q = self.canonical_position(time)
        self.p = self.canonical_momentum(time)
        self.phase = OscillatorPhase.STEPPING

    def canonical_position(self, time):
        wt = self.frequency * time
        return np.sin(wt) * self.cos_integral - np.cos(wt) * self.sin_integral + self.q0 * np.cos(wt)

    def canonical_momentum(self, time):
        wt = self.frequency * time
        return self.frequency * (
            np.cos(wt) * self.cos_integral + np.sin(wt) * self.sin_integral - self.q0 * np.sin(wt)
        )

    def detuning(self):
        """omega q - lambda mu_z for the current state."""
        return self.frequency * self.q - self._coupled_dipole(self.prevdipole)

    def potential_energy(self):
        return 0.5 * self.detuning() ** 2

    def kinetic_energy(self):
        return 0.5 * self.p ** 2

    def finalize(self):
        self.phase = OscillatorPhase.FINALIZED
