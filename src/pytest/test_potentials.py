# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Test the potential models and the model file loader."""

import numpy as np
import pytest

from cavitydipole.atoms import AtomSet, replica_tags
from cavitydipole.potentials import (
    VIRIAL_COMPONENTS, LennardJonesModel, PointChargeDipoleModel, load_potential
)
from cavitydipole.utils import CavityConfigurationError, PhysicalConstants


def make_atoms(positions, types, masses=None):
    positions = np.asarray(positions, dtype=float)
    atoms = AtomSet(positions.shape[1])
    if masses is None:
        masses = np.ones(positions.shape[1])
    atoms.set_species(types, masses)
    atoms.set_positions(positions)
    return atoms


def lj_cluster():
    model = LennardJonesModel(['A', 'B'], {
        ('A', 'A'): (0.02, 1.0, 3.0),
        ('A', 'B'): (0.01, 1.1, 3.0),
        ('B', 'B'): (0.03, 0.9, 3.0),
    })
    positions = np.array([
        [0.0, 1.1, 0.2, -0.9],
        [0.0, 0.1, 1.2, 0.3],
        [0.0, -0.2, 0.4, 0.8],
    ])
    return model, positions, [0, 1, 0, 1]


def test_load_point_charge_dipole(model_files):
    dipole_file, _ = model_files
    model = load_potential(dipole_file)
    assert isinstance(model, PointChargeDipoleModel)
    assert model.symbols == ['A', 'B']
    np.testing.assert_array_equal(model.charges, [0.5, -0.5])
    assert model.supports_dipole and model.supports_batched_dipole
    assert not model.supports_energy_force


def test_load_lennard_jones(model_files):
    _, lj_file = model_files
    model = load_potential(lj_file)
    assert isinstance(model, LennardJonesModel)
    assert model.supports_energy_force
    assert not model.supports_dipole
    assert model.epsilon[0, 1] == model.epsilon[1, 0] == 0.01


def test_load_missing_file(tmp_path):
    with pytest.raises(CavityConfigurationError):
        load_potential(tmp_path / 'missing.txt')


@pytest.mark.parametrize('content', [
    '',
    '# only a comment\n',
    'nep_dipole A\n',
    'point_charge_dipole A\ncharge A\n',
    'point_charge_dipole A\ncharge A abc\n',
    'point_charge_dipole A\ncharge C 1.0\n',
    'lennard_jones A\npair A A 0.1 1.0\n',
    'lennard_jones A\npair A A 0.1 -1.0 3.0\n',
    'lennard_jones A A\n',
])
def test_load_malformed(tmp_path, content):
    path = tmp_path / 'model.txt'
    path.write_text(content)
    with pytest.raises(CavityConfigurationError):
        load_potential(path)


def test_unsupported_modes_raise():
    dipole_model = PointChargeDipoleModel(['A'], {'A': 1.0})
    lj_model = LennardJonesModel(['A'], {('A', 'A'): (0.01, 1.0, 3.0)})
    atoms = make_atoms(np.zeros((3, 2)), [0, 0])
    with pytest.raises(NotImplementedError):
        dipole_model.evaluate_energy_force(atoms)
    with pytest.raises(NotImplementedError):
        lj_model.evaluate_dipole(atoms)
    with pytest.raises(NotImplementedError):
        lj_model.evaluate_dipole_batched(atoms, np.zeros(2, dtype=int), 1)


def test_point_charge_dipole_contributions():
    model = PointChargeDipoleModel(['O', 'H'], {'O': -0.8, 'H': 0.4})
    positions = np.array([[0.0, 0.75, -0.75], [0.0, 0.0, 0.0], [0.0, 0.6, 0.6]])
    atoms = make_atoms(positions, [0, 1, 1])
    model.evaluate_dipole(atoms)

    expected = (positions * np.array([-0.8, 0.4, 0.4])[None, :]).sum(axis=1)
    raw = atoms.virial[0:3].sum(axis=1)
    np.testing.assert_allclose(PhysicalConstants.bohr_to_angstrom(raw), expected, atol=1e-14)


def test_point_charge_batched_dipole():
    model = PointChargeDipoleModel(['A', 'B'], {'A': 1.0, 'B': -1.0})
    n = 2
    atoms = AtomSet(4 * n, atoms_per_replica=n)
    atoms.set_species([0, 1], [1.0, 1.0])
    atoms.set_positions(np.zeros((3, n)))
    for r in range(4):
        atoms.replica(r).position[2, 0] = float(r)
    tags = np.repeat(np.arange(4), n)

    dipoles = model.evaluate_dipole_batched(atoms, tags, 4)
    assert dipoles.shape == (4, 3)
    np.testing.assert_allclose(
        PhysicalConstants.bohr_to_angstrom(dipoles[:, 2]), [0.0, 1.0, 2.0, 3.0], atol=1e-14
    )


def test_unknown_type_rejected():
    model = PointChargeDipoleModel(['A'], {'A': 1.0})
    atoms = make_atoms(np.zeros((3, 2)), [0, 1])
    with pytest.raises(ValueError):
        model.evaluate_dipole(atoms)


def test_lennard_jones_forces_match_energy_gradient():
    model, positions, types = lj_cluster()
    atoms = make_atoms(positions, types)
    model.evaluate_energy_force(atoms)
    forces = atoms.force.copy()

    h = 1e-6
    numeric = np.zeros_like(positions)
    for axis in range(3):
        for i in range(positions.shape[1]):
            energies = []
            for sign in (1.0, -1.0):
                displaced = positions.copy()
                displaced[axis, i] += sign * h
                trial = make_atoms(displaced, types)
                model.evaluate_energy_force(trial)
                energies.append(trial.potential.sum())
            numeric[axis, i] = -(energies[0] - energies[1]) / (2 * h)
    np.testing.assert_allclose(forces, numeric, rtol=1e-5, atol=1e-8)
    np.testing.assert_allclose(forces.sum(axis=1), 0.0, atol=1e-12)


def test_lennard_jones_cutoff():
    model = LennardJonesModel(['A'], {('A', 'A'): (0.01, 1.0, 2.5)})
    atoms = make_atoms(np.array([[0.0, 3.0], [0.0, 0.0], [0.0, 0.0]]), [0, 0])
    model.evaluate_energy_force(atoms)
    assert not atoms.force.any()
    assert not atoms.potential.any()


def test_lennard_jones_replicas_do_not_interact():
    """A batched evaluation equals evaluating every replica on its own."""
    model, positions, types = lj_cluster()
    n = positions.shape[1]
    n_replicas = 3
    atoms = AtomSet(n_replicas * n, atoms_per_replica=n)
    atoms.set_species(types, np.ones(n))
    atoms.set_positions(positions)
    # overlapping replicas would interact strongly without tags
    atoms.replica(1).position[0] += 0.05
    atoms.replica(2).position[1] -= 0.05
    tags = np.repeat(np.arange(n_replicas), n)

    model.evaluate_energy_force(atoms, replica_tags=tags)
    for r in range(n_replicas):
        single = make_atoms(atoms.replica(r).position.copy(), types)
        model.evaluate_energy_force(single)
        np.testing.assert_allclose(atoms.replica(r).force, single.force, atol=1e-12)
        np.testing.assert_allclose(atoms.replica(r).potential, single.potential, atol=1e-12)
        np.testing.assert_allclose(atoms.replica(r).virial, single.virial, atol=1e-12)


def test_lennard_jones_jacobian_batch_layout():
    model, positions, types = lj_cluster()
    n = positions.shape[1]
    tags = replica_tags(n)
    atoms = AtomSet(tags.shape[0], atoms_per_replica=n)
    atoms.set_species(types, np.ones(n))
    atoms.set_positions(positions)
    model.evaluate_energy_force(atoms, replica_tags=tags)

    single = make_atoms(positions, types)
    model.evaluate_energy_force(single)
    np.testing.assert_allclose(atoms.replica(7).force, single.force, atol=1e-12)


def test_lennard_jones_virial_layout():
    """Virial rows follow VIRIAL_COMPONENTS; a pair along x only fills xx."""
    model = LennardJonesModel(['A'], {('A', 'A'): (0.01, 1.0, 3.0)})
    atoms = make_atoms(np.array([[0.0, 1.2], [0.0, 0.0], [0.0, 0.0]]), [0, 0])
    model.evaluate_energy_force(atoms)

    xx = VIRIAL_COMPONENTS.index('xx')
    assert atoms.virial[xx, 0] != 0.0
    # r_01 = -1.2 and F_0 = f_01
    np.testing.assert_allclose(atoms.virial[xx], 0.5 * -1.2 * atoms.force[0, 0])
    others = [k for k in range(9) if k != xx]
    assert not atoms.virial[others].any()
