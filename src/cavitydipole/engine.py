# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Lifecycle and per-step hook sequence of the cavity dipole subsystem."""

import enum
import logging

import numpy as np

from .config import validate_potentials
from .coupling import ForceCoupler
from .dipole import DipoleEvaluator, DipoleState
from .jacobian import DEFAULT_DISPLACEMENT, JacobianEvaluator
from .oscillator import CavityOscillator
from .potentials import load_potential
from .utils import CavityConfigurationError, CavityStateError
from .writers import RecordWriter

logger = logging.getLogger(__name__)


class EnginePhase(enum.Enum):
    CONFIGURED = 'configured'
    RUNNING = 'running'
    FINALIZED = 'finalized'


class CavityEngine:
    """
    Couple a single cavity mode to the dipole of an MD system.

    The outer integrator drives the engine through its hooks: ``initialize``
    once, then every step ``compute_dipole_and_jacobian``,
    ``compute_and_apply_cavity_force``, ``update_cavity`` and ``write``, and
    ``finalize`` at shutdown.  Positions and forces are exchanged as
    axis-major (3, N) arrays.

    Args:
        config: ``CavityConfig``
        potentials: The two globally configured potentials (force model,
            dipole model)
        dipole_path: Output path of the dipole/Jacobian stream
        cavity_path: Output path of the oscillator/force stream
        displacement: Finite-difference step for the Jacobian in Angstrom
        dipole_model: Private dipole model instance; loaded from
            ``config.potential_file`` when omitted
    """

    def __init__(self, config, potentials, dipole_path='dipole.out', cavity_path='cavity.out',
                 displacement=DEFAULT_DISPLACEMENT, dipole_model=None):
        self.config = config
        self.force_model, configured_dipole_model = validate_potentials(potentials)

        if dipole_model is None:
            dipole_model = load_potential(config.potential_file)
        if not (dipole_model.supports_dipole and dipole_model.supports_batched_dipole):
            raise CavityConfigurationError(
                f"Cavity potential file '{config.potential_file}' does not describe a dipole model"
            )
        if dipole_model.family != configured_dipole_model.family:
            raise CavityConfigurationError(
                f"Cavity dipole model ({dipole_model.family}) differs from the configured "
                f"dipole potential ({configured_dipole_model.family})"
            )
        self.dipole_model = dipole_model

        self.dipole_path = dipole_path
        self.cavity_path = cavity_path
        self.displacement = displacement

        self.oscillator = CavityOscillator(config.coupling, config.frequency, config.charge)
        self.coupler = ForceCoupler(config.coupling, config.frequency)
        self.dipole_evaluator = None
        self.jacobian_evaluator = None
        self.writer = None
        self.state = None
        self.phase = EnginePhase.CONFIGURED
        self._dipole_step = None

    def _require_running(self, hook):
        if self.phase is not EnginePhase.RUNNING:
            raise CavityStateError(f"{hook} called while the cavity engine is {self.phase.value}")

    def initialize(self, types, masses, positions, time=0.0):
        """
        Allocate private buffers and seed the oscillator from the initial dipole.

        Args:
            types: Per-atom type ids (N,), indices into the dipole model species
            masses: Per-atom masses (N,)
            positions: Per-axis positions (3, N) in Angstrom
            time: Start time in fs
        """
        if self.phase is not EnginePhase.CONFIGURED:
            raise CavityStateError(f"initialize called while the cavity engine is {self.phase.value}")
        n_atoms = np.asarray(types).shape[0]
        charge = self.config.charge

        self.dipole_evaluator = DipoleEvaluator(self.dipole_model, types, masses, charge)
        self.jacobian_evaluator = JacobianEvaluator(
            self.dipole_model, types, masses, charge, displacement=self.displacement
        )
        self.state = DipoleState.empty(n_atoms)
        self.state.dipole = self.dipole_evaluator.compute(positions)
        self.writer = RecordWriter(self.dipole_path, self.cavity_path)
        self.oscillator.initialize(self.state.dipole, time, q0=self.config.q0)
        self.coupler.force = np.zeros((3, n_atoms))
        self.phase = EnginePhase.RUNNING
        logger.info(
            "Cavity engine initialized for %d atoms (lambda = %g, omega = %g, charge = %d)",
            n_atoms, self.config.coupling, self.config.frequency, charge
        )

    def compute_dipole_and_jacobian(self, step, positions):
        self._require_running('compute_dipole_and_jacobian')
        self.state.dipole = self.dipole_evaluator.compute(positions)
        self.state.gradient = self.jacobian_evaluator.compute(positions)
        self._dipole_step = step
        logger.debug("Step %d: dipole %s", step, self.state.dipole)

    def compute_and_apply_cavity_force(self, forces):
        """Add the cavity force onto the (3, N) force buffer of the outer simulation."""
        self._require_running('compute_and_apply_cavity_force')
        if self._dipole_step is None:
            raise CavityStateError("Cavity force requested before any dipole Jacobian was computed")
        self.coupler.compute(self.state.gradient, self.oscillator.q, self.state.dipole)
        return self.coupler.apply(forces)

    def update_cavity(self, step, time_fs):
        self._require_running('update_cavity')
        self.oscillator.step(time_fs, self.state.dipole)
        logger.debug("Step %d: q = %g, p = %g", step, self.oscillator.q, self.oscillator.p)

    def write(self, step, time_fs):
        self._require_running('write')
        self.writer.write_dipole(step, self.state.dipole, self.state.gradient)
        self.writer.write_cavity(
            step, time_fs, self.oscillator.q, self.oscillator.p,
            self.oscillator.potential_energy(), self.oscillator.kinetic_energy(),
            self.coupler.force
        )

    def run_step(self, step, time_fs, positions, forces):
        """Run the full hook sequence for one MD step."""
        self.compute_dipole_and_jacobian(step, positions)
        self.compute_and_apply_cavity_force(forces)
        self.update_cavity(step, time_fs)
        self.write(step, time_fs)
        return forces

    def finalize(self):
        """Close the output streams and release the private buffers."""
        if self.phase is EnginePhase.FINALIZED:
            return
        if self.writer is not None:
            self.writer.close()
        self.oscillator.finalize()
        self.dipole_evaluator = None
        self.jacobian_evaluator = None
        self.phase = EnginePhase.FINALIZED
        logger.info("Cavity engine finalized")

    @property
    def dipole(self):
        return None if self.state is None else self.state.dipole

    @property
    def gradient(self):
        return None if self.state is None else self.state.gradient

    @property
    def cavity_force(self):
        return self.coupler.force

    @property
    def cavity_position(self):
        return self.oscillator.q

    @property
    def cavity_momentum(self):
        return self.oscillator.p

    @property
    def cavity_potential_energy(self):
        return self.oscillator.potential_energy()

    @property
    def cavity_kinetic_energy(self):
        return self.oscillator.kinetic_energy()
