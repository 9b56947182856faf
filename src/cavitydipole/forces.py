# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""HOOMD-blue force interfaces for potential models and cavity feedback."""

import logging

import hoomd
import numpy as np
from hoomd.logging import log

from .atoms import AtomSet
from .engine import CavityEngine
from .jacobian import DEFAULT_DISPLACEMENT
from .potentials import VIRIAL_COMPONENTS
from .utils import CavityConfigurationError, PhysicalConstants, to_axis_major, unwrap_positions

logger = logging.getLogger(__name__)

# Per-particle HOOMD virial order
_HOOMD_VIRIAL_ROWS = [VIRIAL_COMPONENTS.index(c) for c in ('xx', 'xy', 'xz', 'yy', 'yz', 'zz')]


def _read_local_state(state):
    """Unwrapped positions and species in tag order, plus the local tag array."""
    with state.cpu_local_snapshot as snap:
        tag = np.array(snap.particles.tag, dtype=np.int64)
        box_lengths = np.array([
            snap.global_box.L[0],
            snap.global_box.L[1],
            snap.global_box.L[2]
        ])
        local_positions = unwrap_positions(
            snap.particles.position,
            snap.particles.image,
            box_lengths
        )
        n = tag.shape[0]
        positions = np.empty((n, 3))
        typeid = np.empty(n, dtype=np.int64)
        mass = np.empty(n)
        positions[tag] = local_positions
        typeid[tag] = np.array(snap.particles.typeid)
        mass[tag] = np.array(snap.particles.mass)
    return positions, typeid, mass, tag


def _species_map(model, particle_types):
    """Map HOOMD type ids to model type ids by name."""
    return np.array([model.type_index(name) for name in particle_types], dtype=np.int64)


class ModelForce(hoomd.md.force.Custom):
    """
    Energy and force of a ``PotentialModel`` as a HOOMD custom force.

    Parameters:
    -----------
    model : PotentialModel
        Model supporting energy/force evaluation
    """

    def __init__(self, model):
        if not model.supports_energy_force:
            raise CavityConfigurationError(
                f"{model.family} model cannot evaluate energies and forces"
            )
        super().__init__(aniso=False)
        self.model = model
        self._atoms = None
        self._species = None

    def set_forces(self, timestep):
        positions, typeid, mass, tag = _read_local_state(self._state)
        if self._atoms is None or self._atoms.n_atoms != positions.shape[0]:
            self._species = _species_map(self.model, self._state.particle_types)
            self._atoms = AtomSet(positions.shape[0])
            self._atoms.set_species(self._species[typeid], mass)

        atoms = self._atoms
        atoms.set_positions(to_axis_major(positions))
        atoms.zero_outputs()
        self.model.evaluate_energy_force(atoms)

        with self.cpu_local_force_arrays as arrays:
            arrays.force[:] = atoms.force.T[tag]
            arrays.potential_energy[:] = atoms.potential[tag]
            arrays.virial[:] = atoms.virial[_HOOMD_VIRIAL_ROWS].T[tag]


class CavityForce(hoomd.md.force.Custom):
    """
    Cavity feedback force driven by the dipole of the molecular system.

    Each force evaluation runs the cavity hook sequence: dipole and dipole
    Jacobian at the current positions, the cavity force from the last
    cavity coordinate, the analytic cavity update and the output rows.
    The first evaluation seeds the cavity from the initial dipole; a
    repeated evaluation at the same timestep reuses the cached force so the
    cavity history is advanced exactly once per step.

    Parameters:
    -----------
    config : CavityConfig
        Coupling strength, frequency, charge and dipole model file
    potentials : sequence of PotentialModel
        The two configured potentials (force model, dipole model)
    dipole_path, cavity_path : str, optional
        Output streams (default: 'dipole.out', 'cavity.out')
    time_unit_fs : float, optional
        Length of one HOOMD time unit in fs (default: metal units)
    displacement : float, optional
        Finite-difference step of the dipole Jacobian in Angstrom
    """

    def __init__(self, config, potentials, dipole_path='dipole.out', cavity_path='cavity.out',
                 time_unit_fs=PhysicalConstants.METAL_TIME_UNIT_FS,
                 displacement=DEFAULT_DISPLACEMENT, dipole_model=None):
        super().__init__(aniso=False)
        self.engine = CavityEngine(
            config, potentials,
            dipole_path=dipole_path,
            cavity_path=cavity_path,
            displacement=displacement,
            dipole_model=dipole_model
        )
        self.time_unit_fs = time_unit_fs
        self._start_timestep = None
        self._last_timestep = None
        self._force = None

    def _attach_hook(self):
        if self._simulation.device.communicator.num_ranks > 1:
            raise CavityConfigurationError("CavityForce runs on a single MPI rank only")
        super()._attach_hook()

    def _time_fs(self, timestep):
        dt = float(self._simulation.operations.integrator.dt)
        return PhysicalConstants.md_time_to_fs((timestep - self._start_timestep) * dt, self.time_unit_fs)

    def set_forces(self, timestep):
        positions, typeid, mass, tag = _read_local_state(self._state)
        positions = to_axis_major(positions)

        if self._start_timestep is None:
            species = _species_map(self.engine.dipole_model, self._state.particle_types)
            self.engine.initialize(species[typeid], mass, positions, time=0.0)
            self._start_timestep = timestep
            self._last_timestep = timestep
            self._force = np.zeros_like(positions)
            print(f"CavityForce initialized at timestep {timestep}: q0 = {self.engine.oscillator.q0:.6e}")
        elif timestep != self._last_timestep:
            time_fs = self._time_fs(timestep)
            self._force = self.engine.run_step(timestep, time_fs, positions, np.zeros_like(positions))
            self._last_timestep = timestep
        else:
            logger.debug("CavityForce: reusing cavity force at timestep %d", timestep)

        with self.cpu_local_force_arrays as arrays:
            arrays.force[:] = self._force.T[tag]
            arrays.potential_energy[:] = 0.0

    def _detach_hook(self):
        self.engine.finalize()
        super()._detach_hook()

    @log(requires_run=True)
    def cavity_position(self):
        """Cavity canonical position q"""
        return float(self.engine.cavity_position)

    @log(requires_run=True)
    def cavity_momentum(self):
        """Cavity canonical momentum p"""
        return float(self.engine.cavity_momentum)

    @log(requires_run=True)
    def cavity_potential_energy(self):
        """Cavity potential energy: (1/2) (omega q - lambda mu_z)^2"""
        return float(self.engine.cavity_potential_energy)

    @log(requires_run=True)
    def cavity_kinetic_energy(self):
        """Cavity kinetic energy: (1/2) p^2"""
        return float(self.engine.cavity_kinetic_energy)

    @log(requires_run=True)
    def dipole_z(self):
        """z component of the molecular dipole in e*Angstrom"""
        dipole = self.engine.dipole
        return 0.0 if dipole is None else float(dipole[2])
