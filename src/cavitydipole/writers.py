# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Per-step output streams for the dipole and the cavity mode."""

import logging
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)

FLOAT_FORMAT = '{:.10e}'


def format_row(step, values):
    """Format one output row: integer step then scientific floats."""
    values = np.asarray(values, dtype=np.float64).reshape(-1)
    return ' '.join([str(int(step))] + [FLOAT_FORMAT.format(v) for v in values]) + '\n'


class RecordWriter:
    """
    Append-only writer for the two cavity output streams.

    dipole stream: ``step mu_x mu_y mu_z J_000 ... J_(N-1)22``
    cavity stream: ``step time_fs q p potential_energy kinetic_energy fx... fy... fz...``

    Both files are opened in append mode at construction and flushed after
    every row.

    Args:
        dipole_path: Path of the dipole/Jacobian stream
        cavity_path: Path of the oscillator/force stream
    """

    def __init__(self, dipole_path='dipole.out', cavity_path='cavity.out'):
        self.dipole_path = Path(dipole_path)
        self.cavity_path = Path(cavity_path)
        self._dipole_file = open(self.dipole_path, 'a')
        try:
            self._cavity_file = open(self.cavity_path, 'a')
        except OSError:
            self._dipole_file.close()
            raise
        logger.info("Writing dipole data to %s and cavity data to %s", self.dipole_path, self.cavity_path)

    @property
    def closed(self):
        return self._dipole_file.closed and self._cavity_file.closed

    def write_dipole(self, step, dipole, gradient):
        self._dipole_file.write(format_row(step, np.concatenate([np.ravel(dipole), gradient.flatten()])))
        self._dipole_file.flush()

    def write_cavity(self, step, time_fs, q, p, potential_energy, kinetic_energy, force):
        head = np.array([time_fs, q, p, potential_energy, kinetic_energy], dtype=np.float64)
        self._cavity_file.write(format_row(step, np.concatenate([head, np.ravel(force)])))
        self._cavity_file.flush()

    def close(self):
        self._dipole_file.close()
        self._cavity_file.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
