# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""
Finite-difference dipole Jacobian.

Every atom is displaced along every axis by the stencil points
``+h, +2h, -h, -2h`` while all other atoms stay at the reference
positions.  The ``12 N`` displaced copies of the system are laid out as
one batch of ``12 N * N`` atoms, tagged by replica, and the dipole model
evaluates all of them in a single call.  The replica dipoles are combined
with the fourth-order central difference

    d(mu)/dx = [c0 mu(+2h) + c1 mu(+h) - c1 mu(-h) - c0 mu(-2h)] / h

with ``c0 = -1/12`` and ``c1 = 2/3``.
"""

import logging
import warnings

import numpy as np

from .atoms import AtomSet, REPLICAS_PER_ATOM, STENCIL, replica_tags
from .dipole import DipoleGradient, convert_dipole
from .reduction import center_of_mass, reduce_sum
from .utils import CavityConfigurationError, CavityStateError

logger = logging.getLogger(__name__)

C0 = -1.0 / 12.0
C1 = 2.0 / 3.0

DEFAULT_DISPLACEMENT = 1.0e-3  # Angstrom
LARGE_DISPLACEMENT = 0.1  # Angstrom


class JacobianEvaluator:
    """
    Dipole gradient from one batched evaluation over displaced replicas.

    Args:
        model: Potential model supporting batched dipole evaluation
        types: Per-atom type ids (N,)
        masses: Per-atom masses (N,)
        charge: Total system charge
        displacement: Finite-difference step h in Angstrom
    """

    def __init__(self, model, types, masses, charge=0, displacement=DEFAULT_DISPLACEMENT):
        if not model.supports_batched_dipole:
            raise CavityConfigurationError(
                f"{model.family} model cannot evaluate batched dipoles; "
                "the dipole Jacobian needs a batched dipole model"
            )
        displacement = float(displacement)
        if not displacement > 0.0:
            raise CavityConfigurationError(
                f"Finite-difference displacement must be positive, got {displacement}"
            )
        if displacement > LARGE_DISPLACEMENT:
            warnings.warn(
                f"Finite-difference displacement {displacement} A is large; "
                "the dipole Jacobian may be inaccurate",
                UserWarning
            )

        self.model = model
        self.charge = int(charge)
        self.displacement = displacement
        self.masses = np.array(masses, dtype=np.float64)
        n = self.masses.shape[0]
        self.n_replicas = REPLICAS_PER_ATOM * n

        self.atoms = AtomSet(self.n_replicas * n, atoms_per_replica=n)
        self.atoms.set_species(types, self.masses)
        self.tags = replica_tags(n)

        # Replica r = (axis * N + atom) * 4 + stencil
        axis, atom, stencil = np.meshgrid(
            np.arange(3), np.arange(n), np.arange(len(STENCIL)), indexing='ij'
        )
        self._axis = axis.reshape(-1)
        self._atom = atom.reshape(-1)
        self._delta = np.asarray(STENCIL)[stencil.reshape(-1)] * displacement
        self._flat_atom = np.arange(self.n_replicas) * n + self._atom

        self.gradient = DipoleGradient(n)
        logger.info(
            "Dipole Jacobian: %d replicas, %d atoms per batch, h = %g A",
            self.n_replicas, self.atoms.n_atoms, displacement
        )

    @property
    def n_atoms(self):
        return self.masses.shape[0]

    def _replica_center_of_mass(self, positions):
        # center_of_mass rejects empty and massless systems
        com = center_of_mass(self.masses, positions)
        shift = np.zeros((self.n_replicas, 3))
        total_mass = reduce_sum(self.masses)
        shift[np.arange(self.n_replicas), self._axis] = self._delta * self.masses[self._atom] / total_mass
        return com[None, :] + shift

    def compute(self, positions):
        """
        Compute the dipole gradient at ``positions``.

        Args:
            positions: Per-axis reference positions (3, N) in Angstrom

        Returns:
            ``DipoleGradient`` of shape (N, 3, 3)
        """
        n = self.n_atoms
        if n == 0:
            raise CavityStateError("Cannot compute a dipole Jacobian for zero atoms")
        replica_com = self._replica_center_of_mass(positions)

        self.atoms.set_positions(positions)
        self.atoms.zero_outputs()
        self.atoms.position[self._axis, self._flat_atom] += self._delta

        raw = np.asarray(
            self.model.evaluate_dipole_batched(self.atoms, self.tags, self.n_replicas),
            dtype=np.float64
        )
        if raw.shape != (self.n_replicas, 3):
            raise CavityStateError(
                f"Batched dipole evaluation returned shape {raw.shape}, "
                f"expected ({self.n_replicas}, 3)"
            )
        dipoles = convert_dipole(raw, self.charge, replica_com)

        # (axis, atom, stencil, component)
        dipoles = dipoles.reshape(3, n, len(STENCIL), 3)
        plus1, plus2, minus1, minus2 = (dipoles[:, :, s] for s in range(len(STENCIL)))
        derivative = (C0 * plus2 + C1 * plus1 - C1 * minus1 - C0 * minus2) / self.displacement

        self.gradient.values[:] = derivative.transpose(1, 0, 2)
        return self.gradient
