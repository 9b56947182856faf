# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Cavity dynamics driven by the molecular dipole.

The HOOMD-blue force classes live in ``cavitydipole.forces`` and the
simulation driver in ``cavitydipole.simulation``; both require HOOMD-blue.
"""

from .atoms import AtomSet, replica_tags
from .config import CavityConfig, parse_cavity_keyword, validate_potentials
from .coupling import ForceCoupler
from .dipole import DipoleEvaluator, DipoleGradient, DipoleState
from .engine import CavityEngine
from .jacobian import JacobianEvaluator
from .oscillator import CavityOscillator
from .potentials import (
    PotentialModel, PointChargeDipoleModel, LennardJonesModel, load_potential
)
from .reduction import reduce_sum, reduce_weighted_sum, center_of_mass
from .utils import (
    PhysicalConstants, CavityConfigurationError, CavityStateError, unwrap_positions
)
from .writers import RecordWriter

__version__ = '0.1.0'

__all__ = [
    # Engine
    'CavityEngine', 'CavityConfig', 'parse_cavity_keyword', 'validate_potentials',
    # Components
    'DipoleEvaluator', 'DipoleGradient', 'DipoleState', 'JacobianEvaluator',
    'CavityOscillator', 'ForceCoupler', 'RecordWriter',
    # Atoms and potentials
    'AtomSet', 'replica_tags',
    'PotentialModel', 'PointChargeDipoleModel', 'LennardJonesModel', 'load_potential',
    # Numerics and utilities
    'reduce_sum', 'reduce_weighted_sum', 'center_of_mass',
    'PhysicalConstants', 'CavityConfigurationError', 'CavityStateError', 'unwrap_positions',
]
