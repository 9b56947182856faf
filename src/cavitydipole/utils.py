# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Utility functions, constants and error types for cavity dipole dynamics."""

import numpy as np


class CavityConfigurationError(ValueError):
    """Malformed or inconsistent cavity setup, raised before any step runs."""


class CavityStateError(RuntimeError):
    """Invariant violation in the running cavity state.

    The oscillator history integrals are path dependent, so these errors
    abort the run instead of being recovered locally.
    """


class PhysicalConstants:
    """Physical constants and unit conversions for cavity dipole dynamics."""

    BOHR_IN_ANGSTROM = 0.529177210544  # Atomic length unit in Angstrom
    METAL_TIME_UNIT_FS = 10.1805056  # sqrt(amu * A^2 / eV) in femtoseconds

    @classmethod
    def bohr_to_angstrom(cls, length_bohr):
        """
        Convert a length (or dipole in e*bohr) to Angstrom (e*Angstrom).

        Args:
            length_bohr: Value in atomic length units

        Returns:
            Value in Angstrom
        """
        return np.asarray(length_bohr) * cls.BOHR_IN_ANGSTROM

    @classmethod
    def angstrom_to_bohr(cls, length_angstrom):
        """
        Convert a length (or dipole in e*Angstrom) to atomic length units.

        Args:
            length_angstrom: Value in Angstrom

        Returns:
            Value in bohr
        """
        return np.asarray(length_angstrom) / cls.BOHR_IN_ANGSTROM

    @classmethod
    def md_time_to_fs(cls, time_md, time_unit_fs=None):
        """
        Convert time from MD engine units to femtoseconds.

        Args:
            time_md: Time in the engine's native unit
            time_unit_fs: Length of one engine time unit in fs
                (default: metal units)

        Returns:
            Time in femtoseconds
        """
        if time_unit_fs is None:
            time_unit_fs = cls.METAL_TIME_UNIT_FS
        if time_unit_fs <= 0.0:
            raise ValueError(
                f"ERROR: time_unit_fs must be positive, got {time_unit_fs} fs."
            )
        return time_md * time_unit_fs


def unwrap_positions(positions, images, box_lengths):
    """
    Unwrap particle positions across periodic boundaries.
    
    Args:
        positions: Array of wrapped positions (N x 3)
        images: Array of image flags (N x 3)
        box_lengths: Array of box dimensions (3,)
        
    Returns:
        Array of unwrapped positions (N x 3)
    """
    pos = np.asarray(positions, dtype=np.float64)
    img = np.asarray(images)
    box = np.asarray(box_lengths, dtype=np.float64)
    
    return pos + img * box[None, :]


def to_axis_major(positions):
    """Return an (N, 3) per-atom array as a contiguous (3, N) float64 block."""
    positions = np.asarray(positions, dtype=np.float64)
    if positions.ndim != 2 or positions.shape[1] != 3:
        raise ValueError(f"Expected an (N, 3) array, got shape {positions.shape}")
    return np.ascontiguousarray(positions.T)
