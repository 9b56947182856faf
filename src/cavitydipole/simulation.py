# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Simulation driver for MD coupled to a dipole-driven cavity mode."""

import logging
from pathlib import Path

import gsd.hoomd
import hoomd

from .config import validate_potentials
from .forces import CavityForce, ModelForce
from .jacobian import DEFAULT_DISPLACEMENT
from .potentials import load_potential
from .utils import CavityConfigurationError, PhysicalConstants

logger = logging.getLogger(__name__)


class CavityDipoleSimulation:
    """
    NVE molecular dynamics with cavity feedback from the molecular dipole.

    Args:
        config: ``CavityConfig`` of the cavity
        force_potential_file: Model file of the energy/force potential
        input_gsd: GSD file holding the initial configuration
        frame: Frame of ``input_gsd`` to start from
        dt_fs: Time step in fs
        job_dir: Directory receiving the output streams
        kT: Temperature for momentum thermalization in eV (None keeps the
            GSD velocities)
        log_period: Table output period in steps
        seed: Random seed of the HOOMD simulation
        time_unit_fs: Length of one HOOMD time unit in fs
        displacement: Finite-difference step of the dipole Jacobian in Angstrom
    """

    def __init__(self, config, force_potential_file, input_gsd, frame=0, dt_fs=0.5,
                 job_dir='.', kT=None, log_period=100, seed=1,
                 time_unit_fs=PhysicalConstants.METAL_TIME_UNIT_FS,
                 displacement=DEFAULT_DISPLACEMENT):
        self.config = config
        self.force_potential_file = Path(force_potential_file)
        self.input_gsd = Path(input_gsd)
        self.frame = frame
        self.dt_fs = dt_fs
        self.job_dir = Path(job_dir)
        self.kT = kT
        self.log_period = log_period
        self.seed = seed
        self.time_unit_fs = time_unit_fs
        self.displacement = displacement

        if dt_fs <= 0.0:
            raise CavityConfigurationError(f"Time step must be positive, got {dt_fs} fs")
        if not self.input_gsd.is_file():
            raise CavityConfigurationError(f"Input GSD file '{self.input_gsd}' does not exist")

        self.potentials = validate_potentials([
            load_potential(self.force_potential_file),
            load_potential(self.config.potential_file),
        ])
        self.sim = None
        self.cavity_force = None

    def _inspect_input(self):
        with gsd.hoomd.open(str(self.input_gsd), 'r') as traj:
            n_frames = len(traj)
            if not -n_frames <= self.frame < n_frames:
                raise CavityConfigurationError(
                    f"Frame {self.frame} not in '{self.input_gsd}' ({n_frames} frames)"
                )
            snapshot = traj[self.frame]
            types = list(snapshot.particles.types)
            n_particles = snapshot.particles.N
        for name in types:
            for model in self.potentials:
                model.type_index(name)
        logger.info("Input %s frame %d: %d particles of types %s",
                    self.input_gsd, self.frame, n_particles, types)
        return n_particles

    def setup(self):
        """Build the HOOMD simulation, integrator and cavity force."""
        self._inspect_input()
        self.job_dir.mkdir(parents=True, exist_ok=True)

        device = hoomd.device.CPU()
        self.sim = hoomd.Simulation(device=device, seed=self.seed)
        self.sim.create_state_from_gsd(filename=str(self.input_gsd), frame=self.frame)
        if self.kT is not None:
            self.sim.state.thermalize_particle_momenta(filter=hoomd.filter.All(), kT=self.kT)

        model_force = ModelForce(self.potentials[0])
        self.cavity_force = CavityForce(
            self.config, self.potentials,
            dipole_path=str(self.job_dir / 'dipole.out'),
            cavity_path=str(self.job_dir / 'cavity.out'),
            time_unit_fs=self.time_unit_fs,
            displacement=self.displacement
        )

        nve = hoomd.md.methods.ConstantVolume(filter=hoomd.filter.All())
        integrator = hoomd.md.Integrator(
            dt=self.dt_fs / self.time_unit_fs,
            methods=[nve],
            forces=[model_force, self.cavity_force]
        )
        self.sim.operations.integrator = integrator

        table_logger = hoomd.logging.Logger(categories=['scalar'])
        table_logger.add(self.sim, quantities=['timestep', 'tps'])
        table_logger.add(self.cavity_force, quantities=[
            'cavity_position', 'cavity_momentum',
            'cavity_potential_energy', 'cavity_kinetic_energy', 'dipole_z'
        ])
        table = hoomd.write.Table(
            trigger=hoomd.trigger.Periodic(self.log_period),
            logger=table_logger
        )
        self.sim.operations.writers.append(table)
        logger.info("Cavity simulation set up: dt = %g fs, output in %s", self.dt_fs, self.job_dir)
        return self.sim

    def run(self, steps):
        """Run ``steps`` MD steps; repeated calls continue the same cavity history."""
        if self.sim is None:
            self.setup()
        self.sim.run(steps)
        logger.info("Finished %d steps at timestep %d", steps, self.sim.timestep)
        return self.sim

    def close(self):
        """Finalize the cavity engine and close its output streams."""
        if self.cavity_force is not None:
            self.cavity_force.engine.finalize()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
