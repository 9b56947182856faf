# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Total dipole evaluation and the dipole gradient tensor."""

import logging
from dataclasses import dataclass, field

import numpy as np

from .atoms import AtomSet
from .reduction import center_of_mass, reduce_rows
from .utils import CavityConfigurationError, PhysicalConstants

logger = logging.getLogger(__name__)

AXES = ('x', 'y', 'z')
Z = 2


class DipoleGradient:
    """
    Dipole Jacobian d(mu_k)/d(r_ij) with named axes.

    The tensor is stored atom-major, then cartesian direction of the
    displacement, then dipole component: ``values[atom, cartesian, component]``.
    """

    axis_names = ('atom', 'cartesian', 'component')

    def __init__(self, n_atoms):
        self.values = np.zeros((n_atoms, 3, 3))

    @classmethod
    def from_array(cls, values):
        values = np.asarray(values, dtype=np.float64)
        if values.ndim != 3 or values.shape[1:] != (3, 3):
            raise ValueError(f"Expected an (N, 3, 3) array, got shape {values.shape}")
        gradient = cls(values.shape[0])
        gradient.values[:] = values
        return gradient

    @property
    def n_atoms(self):
        return self.values.shape[0]

    def __getitem__(self, key):
        return self.values[key]

    def component(self, k):
        """d(mu_k)/d(r) as a per-axis (3, N) block."""
        return np.ascontiguousarray(self.values[:, :, k].T)

    def flatten(self):
        """Flat view in atom-major, cartesian, component order."""
        return self.values.reshape(-1)


@dataclass
class DipoleState:
    """Lab-frame dipole (e*Angstrom) and its gradient for the current step."""

    dipole: np.ndarray = field(default_factory=lambda: np.zeros(3))
    gradient: DipoleGradient = None

    @classmethod
    def empty(cls, n_atoms):
        return cls(dipole=np.zeros(3), gradient=DipoleGradient(n_atoms))


def convert_dipole(raw_dipole, charge, com):
    """Convert a raw dipole (e*bohr) to e*Angstrom and add ``charge * com``."""
    return PhysicalConstants.bohr_to_angstrom(raw_dipole) + charge * np.asarray(com)


class DipoleEvaluator:
    """
    Evaluate the total dipole moment of the current configuration.

    The evaluator owns a private single-system copy of the atoms so the
    dipole model never touches the buffers of the force model or of the
    outer simulation.

    Args:
        model: Dipole-capable potential model
        types: Per-atom type ids (N,)
        masses: Per-atom masses (N,)
        charge: Total system charge
    """

    def __init__(self, model, types, masses, charge=0):
        if not model.supports_dipole:
            raise CavityConfigurationError(
                f"{model.family} model cannot evaluate dipoles; a dipole model is required"
            )
        self.model = model
        self.charge = int(charge)
        types = np.asarray(types)
        self.atoms = AtomSet(types.shape[0])
        self.atoms.set_species(types, masses)
        self.center_of_mass = np.zeros(3)
        self.raw_dipole = np.zeros(3)

    @property
    def n_atoms(self):
        return self.atoms.n_atoms

    def compute(self, positions):
        """
        Compute the corrected dipole for ``positions``.

        Args:
            positions: Per-axis positions (3, N) in Angstrom

        Returns:
            Dipole moment (3,) in e*Angstrom
        """
        self.atoms.set_positions(positions)
        self.atoms.zero_outputs()
        self.model.evaluate_dipole(self.atoms)

        self.raw_dipole = reduce_rows(self.atoms.virial[0:3])
        self.center_of_mass = center_of_mass(self.atoms.mass, self.atoms.position)
        dipole = convert_dipole(self.raw_dipole, self.charge, self.center_of_mass)
        logger.debug("Dipole %s (raw %s, COM %s)", dipole, self.raw_dipole, self.center_of_mass)
        return dipole
