# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Shared fixtures and stub dipole models for the cavity dipole tests."""

import numpy as np
import pytest

from cavitydipole.potentials import PotentialModel
from cavitydipole.utils import PhysicalConstants


class _StubDipoleModel(PotentialModel):
    """Dipole stub: per-atom contribution given by ``_contribution`` (e*Angstrom)."""

    family = 'point_charge_dipole'
    supports_dipole = True
    supports_batched_dipole = True

    def __init__(self, symbols=('X',)):
        super().__init__(symbols)
        self.batched_calls = 0

    def _contribution(self, position):
        raise NotImplementedError

    def evaluate_dipole(self, atoms):
        atoms.virial[0:3] = PhysicalConstants.angstrom_to_bohr(self._contribution(atoms.position))

    def evaluate_dipole_batched(self, atoms, replica_tags, n_replicas):
        self.batched_calls += 1
        self.evaluate_dipole(atoms)
        return np.stack(
            [np.bincount(replica_tags, weights=atoms.virial[k], minlength=n_replicas) for k in range(3)],
            axis=1
        )


class LinearDipoleModel(_StubDipoleModel):
    """Total dipole mu = A * sum_i r_i, so d(mu_k)/d(r_ij) = A[k, j]."""

    def __init__(self, matrix, symbols=('X',)):
        super().__init__(symbols)
        self.matrix = np.asarray(matrix, dtype=np.float64)

    def _contribution(self, position):
        return self.matrix @ position


class SineDipoleModel(_StubDipoleModel):
    """Per-atom mu_i = sin(r_i) componentwise, so d(mu_k)/d(r_ij) = delta_jk cos(r_ij)."""

    def _contribution(self, position):
        return np.sin(position)


@pytest.fixture
def rng():
    return np.random.default_rng(20250101)


@pytest.fixture
def model_files(tmp_path):
    """Dipole and Lennard-Jones model files for a two-species system."""
    dipole_file = tmp_path / 'dipole.txt'
    dipole_file.write_text(
        '# two-site point charges\n'
        'point_charge_dipole A B\n'
        'charge A 0.5\n'
        'charge B -0.5\n'
    )
    lj_file = tmp_path / 'lj.txt'
    lj_file.write_text(
        'lennard_jones A B\n'
        'pair A A 0.01 1.0 3.0\n'
        'pair A B 0.01 1.0 3.0\n'
        'pair B B 0.01 1.0 3.0  # same for all pairs\n'
    )
    return dipole_file, lj_file


@pytest.fixture
def linear_dipole_model():
    """Factory for ``LinearDipoleModel`` stubs."""
    return LinearDipoleModel


@pytest.fixture
def sine_dipole_model():
    """Factory for ``SineDipoleModel`` stubs."""
    return SineDipoleModel
