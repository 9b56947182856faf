# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Private atom buffers owned by the cavity dipole subsystem."""

import numpy as np

# Finite-difference stencil: displacement multiples of h, in replica order.
STENCIL = (1.0, 2.0, -1.0, -2.0)
REPLICAS_PER_ATOM = 3 * len(STENCIL)


class AtomSet:
    """
    Per-atom buffers for one system or a contiguous batch of replicas.

    Positions, forces and virials are stored axis-major: ``position[axis]``
    is one contiguous block of ``n_atoms`` values.  Dipole models reuse the
    first three virial rows to hand back per-atom dipole contributions.

    Args:
        n_atoms: Total number of atoms held
        atoms_per_replica: Atoms in each replica; defaults to ``n_atoms``
            (a single system)
    """

    def __init__(self, n_atoms, atoms_per_replica=None):
        if n_atoms < 0:
            raise ValueError(f"n_atoms must be non-negative, got {n_atoms}")
        if atoms_per_replica is None:
            atoms_per_replica = n_atoms
        if atoms_per_replica <= 0 and n_atoms > 0:
            raise ValueError(f"atoms_per_replica must be positive, got {atoms_per_replica}")
        if n_atoms and n_atoms % atoms_per_replica:
            raise ValueError(
                f"{n_atoms} atoms cannot be split into replicas of {atoms_per_replica}"
            )
        self.atoms_per_replica = atoms_per_replica
        self.type = np.zeros(n_atoms, dtype=np.int64)
        self.mass = np.zeros(n_atoms)
        self.position = np.zeros((3, n_atoms))
        self.force = np.zeros((3, n_atoms))
        self.potential = np.zeros(n_atoms)
        self.virial = np.zeros((9, n_atoms))

    @classmethod
    def _view(cls, parent, start, stop):
        view = cls.__new__(cls)
        view.atoms_per_replica = stop - start
        view.type = parent.type[start:stop]
        view.mass = parent.mass[start:stop]
        view.position = parent.position[:, start:stop]
        view.force = parent.force[:, start:stop]
        view.potential = parent.potential[start:stop]
        view.virial = parent.virial[:, start:stop]
        return view

    @property
    def n_atoms(self):
        return self.mass.shape[0]

    @property
    def n_replicas(self):
        if self.n_atoms == 0:
            return 0
        return self.n_atoms // self.atoms_per_replica

    def __len__(self):
        return self.n_atoms

    def replica(self, index):
        """Return a view sharing memory with replica ``index``."""
        if not 0 <= index < self.n_replicas:
            raise IndexError(f"Replica {index} out of range for {self.n_replicas} replicas")
        start = index * self.atoms_per_replica
        return AtomSet._view(self, start, start + self.atoms_per_replica)

    def replica_positions(self):
        """Positions reshaped to (3, n_replicas, atoms_per_replica), a view."""
        return self.position.reshape(3, self.n_replicas, self.atoms_per_replica)

    def set_species(self, types, masses):
        """Copy types and masses, tiling them over every replica."""
        types = np.asarray(types, dtype=np.int64)
        masses = np.asarray(masses, dtype=np.float64)
        if types.shape != (self.atoms_per_replica,) or masses.shape != (self.atoms_per_replica,):
            raise ValueError(
                f"Expected {self.atoms_per_replica} types and masses, "
                f"got {types.shape} and {masses.shape}"
            )
        self.type[:] = np.tile(types, self.n_replicas)
        self.mass[:] = np.tile(masses, self.n_replicas)

    def set_positions(self, positions):
        """Copy (3, atoms_per_replica) positions into every replica."""
        positions = np.asarray(positions, dtype=np.float64)
        if positions.shape != (3, self.atoms_per_replica):
            raise ValueError(
                f"Expected positions of shape (3, {self.atoms_per_replica}), got {positions.shape}"
            )
        self.replica_positions()[:] = positions[:, None, :]

    def zero_outputs(self):
        """Clear force, per-atom energy and virial buffers."""
        self.force[:] = 0.0
        self.potential[:] = 0.0
        self.virial[:] = 0.0


def replica_tags(n_atoms):
    """
    Replica index of every atom in the Jacobian batch.

    The batch holds ``12 * n_atoms`` replicas of ``n_atoms`` atoms each,
    laid out contiguously, so atom ``a`` of the batch belongs to replica
    ``a // n_atoms``.
    """
    n_replicas = REPLICAS_PER_ATOM * n_atoms
    return np.repeat(np.arange(n_replicas, dtype=np.int64), n_atoms)


def replica_index(axis, atom, stencil, n_atoms):
    """Replica holding ``atom`` displaced along ``axis`` by stencil point ``stencil``."""
    return (axis * n_atoms + atom) * len(STENCIL) + stencil
