# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Setup parameters of the cavity and validation of the configured potentials."""

import math
import numbers
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .utils import CavityConfigurationError

KEYWORD = 'cavity'
PARAMETERS = ('potential_file', 'coupling', 'frequency', 'charge')


@dataclass(frozen=True)
class CavityConfig:
    """
    Cavity setup read once before the run.

    Attributes:
        potential_file: Dipole model file
        coupling: Coupling strength lambda (>= 0)
        frequency: Cavity angular frequency omega in rad/fs (>= 0)
        charge: Total system charge
        q0: Initial cavity coordinate; seeded from the dipole as
            ``lambda mu_z / omega`` when None, so required for omega = 0
    """

    potential_file: Path
    coupling: float
    frequency: float
    charge: int = 0
    q0: Optional[float] = None

    def __post_init__(self):
        object.__setattr__(self, 'potential_file', Path(self.potential_file))
        for name in ('coupling', 'frequency'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, numbers.Real):
                raise CavityConfigurationError(f"{name} must be a real number, got {value!r}")
            object.__setattr__(self, name, _check_non_negative(name, float(value)))
        if isinstance(self.charge, bool) or not isinstance(self.charge, numbers.Integral):
            raise CavityConfigurationError(f"charge must be an integer, got {self.charge!r}")
        object.__setattr__(self, 'charge', int(self.charge))

        if self.q0 is not None:
            if isinstance(self.q0, bool) or not isinstance(self.q0, numbers.Real) \
                    or not math.isfinite(self.q0):
                raise CavityConfigurationError(f"q0 must be a finite real number, got {self.q0!r}")
            object.__setattr__(self, 'q0', float(self.q0))
        elif self.frequency == 0.0:
            raise CavityConfigurationError(
                "frequency 0 cannot seed the cavity coordinate (q0 = coupling * mu_z / frequency); "
                "give an explicit q0"
            )


def _check_non_negative(name, value):
    if not math.isfinite(value) or value < 0.0:
        raise CavityConfigurationError(f"{name} must be a finite number >= 0, got {value}")
    return value


def _parse_real(name, token):
    try:
        value = float(token)
    except ValueError:
        raise CavityConfigurationError(f"{name} must be a real number, got '{token}'") from None
    return _check_non_negative(name, value)


def _parse_int(name, token):
    try:
        return int(token)
    except ValueError:
        raise CavityConfigurationError(f"{name} must be an integer, got '{token}'") from None


def parse_cavity_keyword(tokens, q0=None):
    """
    Parse ``cavity <potential_file> <coupling> <frequency> <charge>``.

    Args:
        tokens: Keyword tokens, with or without the leading ``cavity``
        q0: Explicit initial cavity coordinate (required for frequency 0)

    Returns:
        ``CavityConfig``
    """
    tokens = list(tokens)
    if tokens and tokens[0] == KEYWORD:
        tokens = tokens[1:]
    if len(tokens) != len(PARAMETERS):
        raise CavityConfigurationError(
            f"'{KEYWORD}' takes {len(PARAMETERS)} parameters "
            f"({' '.join(PARAMETERS)}), got {len(tokens)}"
        )
    potential_file, coupling, frequency, charge = tokens
    return CavityConfig(
        potential_file=Path(potential_file),
        coupling=_parse_real('coupling', coupling),
        frequency=_parse_real('frequency', frequency),
        charge=_parse_int('charge', charge),
        q0=q0,
    )


def validate_potentials(potentials):
    """
    Check the globally configured potentials for a cavity run.

    Exactly two potentials are required: the first supplies energies and
    forces, the second must be a dipole model.
    """
    potentials = list(potentials)
    if len(potentials) != 2:
        raise CavityConfigurationError(
            f"Cavity dynamics needs exactly two potentials (force model, dipole model), "
            f"got {len(potentials)}"
        )
    force_model, dipole_model = potentials
    if not force_model.supports_energy_force:
        raise CavityConfigurationError(
            f"The first potential ({force_model.family}) must evaluate energies and forces"
        )
    if not dipole_model.supports_dipole:
        raise CavityConfigurationError(
            f"The second potential ({dipole_model.family}) must be a dipole model"
        )
    return force_model, dipole_model
