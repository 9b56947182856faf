# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""
Potential models with tagged capabilities.

The cavity engine treats a potential as an opaque batched function of
positions and types.  A model declares what it can evaluate through the
``supports_*`` flags, and the engine checks those flags when it is
configured instead of relying on the concrete class.

Model files are plain text.  The first non-comment line names the model
family followed by the species symbols; the remaining lines hold
parameters::

    # water point charges
    point_charge_dipole O H
    charge O -0.834
    charge H 0.417

    lennard_jones Ar
    pair Ar Ar 0.0104 3.40 8.5
"""

import logging
from pathlib import Path

import numpy as np

from .utils import CavityConfigurationError, PhysicalConstants

logger = logging.getLogger(__name__)

# Virial rows, row-major over (alpha, beta)
VIRIAL_COMPONENTS = ('xx', 'xy', 'xz', 'yx', 'yy', 'yz', 'zx', 'zy', 'zz')


def _replica_groups(n_atoms, replica_tags):
    """Split atom indices into groups that share a replica tag."""
    if replica_tags is None:
        return [np.arange(n_atoms)]
    replica_tags = np.asarray(replica_tags)
    if replica_tags.shape != (n_atoms,):
        raise ValueError(
            f"Expected {n_atoms} replica tags, got array of shape {replica_tags.shape}"
        )
    order = np.argsort(replica_tags, kind='stable')
    boundaries = np.flatnonzero(np.diff(replica_tags[order])) + 1
    return np.split(order, boundaries)


class PotentialModel:
    """
    Base class for potential evaluators.

    Subclasses set the capability flags for the evaluation modes they
    implement; calling an unsupported mode raises ``NotImplementedError``.

    Args:
        symbols: Species symbols; the position of a symbol is its type id
    """

    family = None
    supports_energy_force = False
    supports_dipole = False
    supports_batched_dipole = False

    def __init__(self, symbols):
        self.symbols = list(symbols)
        if not self.symbols:
            raise CavityConfigurationError(f"{type(self).__name__} needs at least one species")
        if len(set(self.symbols)) != len(self.symbols):
            raise CavityConfigurationError(f"Duplicate species in {self.symbols}")

    @property
    def n_types(self):
        return len(self.symbols)

    def type_index(self, symbol):
        try:
            return self.symbols.index(symbol)
        except ValueError:
            raise CavityConfigurationError(
                f"Species '{symbol}' is not described by the {self.family} model "
                f"(known: {self.symbols})"
            ) from None

    def _check_types(self, atoms):
        if atoms.n_atoms and (atoms.type.min() < 0 or atoms.type.max() >= self.n_types):
            raise ValueError(
                f"Atom types must lie in [0, {self.n_types}) for the {self.family} model"
            )

    def evaluate_energy_force(self, atoms, replica_tags=None):
        """Write per-atom energy, force and virial into ``atoms``."""
        raise NotImplementedError(f"{self.family} does not evaluate energies and forces")

    def evaluate_dipole(self, atoms):
        """Write per-atom dipole contributions (e*bohr) into ``atoms.virial[0:3]``."""
        raise NotImplementedError(f"{self.family} does not evaluate dipoles")

    def evaluate_dipole_batched(self, atoms, replica_tags, n_replicas):
        """Return one raw dipole (e*bohr) per replica as an (n_replicas, 3) array."""
        raise NotImplementedError(f"{self.family} does not evaluate batched dipoles")

    def __repr__(self):
        return f"{type(self).__name__}(symbols={self.symbols})"


class PointChargeDipoleModel(PotentialModel):
    """
    Dipole model with a fixed charge per species.

    Each atom contributes ``q_type * r`` to the dipole.  Positions are in
    Angstrom and the contributions are returned in atomic units (e*bohr),
    the same units a learned dipole model reports.
    """

    family = 'point_charge_dipole'
    supports_dipole = True
    supports_batched_dipole = True

    def __init__(self, symbols, charges):
        super().__init__(symbols)
        self.charges = np.zeros(self.n_types)
        for symbol, charge in dict(charges).items():
            self.charges[self.type_index(symbol)] = float(charge)

    def _per_atom_dipole(self, atoms):
        self._check_types(atoms)
        charge = self.charges[atoms.type]
        atoms.virial[0:3] = PhysicalConstants.angstrom_to_bohr(charge[None, :] * atoms.position)

    def evaluate_dipole(self, atoms):
        self._per_atom_dipole(atoms)

    def evaluate_dipole_batched(self, atoms, replica_tags, n_replicas):
        replica_tags = np.asarray(replica_tags, dtype=np.int64)
        if replica_tags.shape != (atoms.n_atoms,):
            raise ValueError(
                f"Expected {atoms.n_atoms} replica tags, got array of shape {replica_tags.shape}"
            )
        self._per_atom_dipole(atoms)
        dipoles = np.empty((n_replicas, 3))
        for k in range(3):
            dipoles[:, k] = np.bincount(replica_tags, weights=atoms.virial[k], minlength=n_replicas)
        return dipoles


class LennardJonesModel(PotentialModel):
    """
    Truncated and shifted Lennard-Jones pair potential without periodic images.

    Args:
        symbols: Species symbols
        pairs: Mapping ``(a, b) -> (epsilon, sigma, cutoff)``; unlisted pairs
            do not interact
    """

    family = 'lennard_jones'
    supports_energy_force = True

    def __init__(self, symbols, pairs):
        super().__init__(symbols)
        n = self.n_types
        self.epsilon = np.zeros((n, n))
        self.sigma = np.zeros((n, n))
        self.cutoff = np.zeros((n, n))
        for (a, b), (epsilon, sigma, cutoff) in dict(pairs).items():
            i, j = self.type_index(a), self.type_index(b)
            if sigma <= 0.0 or cutoff <= 0.0:
                raise CavityConfigurationError(
                    f"Lennard-Jones pair {a}-{b} needs positive sigma and cutoff"
                )
            for p, q in ((i, j), (j, i)):
                self.epsilon[p, q] = epsilon
                self.sigma[p, q] = sigma
                self.cutoff[p, q] = cutoff
        sr6 = np.divide(self.sigma, self.cutoff, out=np.zeros((n, n)), where=self.cutoff > 0) ** 6
        self.shift = 4.0 * self.epsilon * (sr6 * sr6 - sr6)

    def evaluate_energy_force(self, atoms, replica_tags=None):
        self._check_types(atoms)
        for group in _replica_groups(atoms.n_atoms, replica_tags):
            self._evaluate_group(atoms, group)

    def _evaluate_group(self, atoms, index):
        pos = atoms.position[:, index].T
        types = atoms.type[index]
        n = pos.shape[0]

        rij = pos[:, None, :] - pos[None, :, :]
        r2 = np.einsum('ijk,ijk->ij', rij, rij)
        epsilon = self.epsilon[types[:, None], types[None, :]]
        sigma = self.sigma[types[:, None], types[None, :]]
        cutoff = self.cutoff[types[:, None], types[None, :]]

        mask = (r2 < cutoff ** 2) & ~np.eye(n, dtype=bool)
        r2_safe = np.where(mask, r2, 1.0)
        sr6 = (sigma ** 2 / r2_safe) ** 3
        pair_energy = np.where(mask, 4.0 * epsilon * (sr6 * sr6 - sr6) - self.shift[types[:, None], types[None, :]], 0.0)
        # F_i = f(r) * r_ij with f(r) = -dU/dr / r
        f_scalar = np.where(mask, 24.0 * epsilon * (2.0 * sr6 * sr6 - sr6) / r2_safe, 0.0)
        fij = f_scalar[:, :, None] * rij

        atoms.force[:, index] = fij.sum(axis=1).T
        atoms.potential[index] = 0.5 * pair_energy.sum(axis=1)
        atoms.virial[:, index] = 0.5 * np.einsum('ija,ijb->abi', rij, fij).reshape(9, n)


MODEL_FAMILIES = {
    PointChargeDipoleModel.family: PointChargeDipoleModel,
    LennardJonesModel.family: LennardJonesModel,
}


def _parse_float(token, path, lineno):
    try:
        return float(token)
    except ValueError:
        raise CavityConfigurationError(
            f"{path}:{lineno}: expected a number, got '{token}'"
        ) from None


def load_potential(path):
    """
    Load a potential model from a model file.

    Args:
        path: Path to the model file

    Returns:
        A ``PotentialModel`` instance

    Raises:
        CavityConfigurationError: if the file is missing or malformed.
    """
    path = Path(path)
    if not path.is_file():
        raise CavityConfigurationError(f"Potential file '{path}' does not exist")

    lines = []
    with open(path, 'r') as f:
        for lineno, raw in enumerate(f, start=1):
            tokens = raw.split('#', 1)[0].split()
            if tokens:
                lines.append((lineno, tokens))
    if not lines:
        raise CavityConfigurationError(f"Potential file '{path}' is empty")

    header_lineno, header = lines[0]
    family, symbols = header[0], header[1:]
    if family not in MODEL_FAMILIES:
        raise CavityConfigurationError(
            f"{path}:{header_lineno}: unknown model family '{family}'. "
            f"Available: {list(MODEL_FAMILIES.keys())}"
        )

    if family == PointChargeDipoleModel.family:
        charges = {}
        for lineno, tokens in lines[1:]:
            if tokens[0] != 'charge' or len(tokens) != 3:
                raise CavityConfigurationError(
                    f"{path}:{lineno}: expected 'charge <symbol> <value>'"
                )
            charges[tokens[1]] = _parse_float(tokens[2], path, lineno)
        model = PointChargeDipoleModel(symbols, charges)
    else:
        pairs = {}
        for lineno, tokens in lines[1:]:
            if tokens[0] != 'pair' or len(tokens) != 6:
                raise CavityConfigurationError(
                    f"{path}:{lineno}: expected 'pair <a> <b> <epsilon> <sigma> <cutoff>'"
                )
            pairs[(tokens[1], tokens[2])] = tuple(_parse_float(t, path, lineno) for t in tokens[3:])
        model = LennardJonesModel(symbols, pairs)

    logger.info("Loaded %s model for species %s from %s", family, symbols, path)
    return model
