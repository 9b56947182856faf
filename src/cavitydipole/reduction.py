# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""
Deterministic two-phase reductions.

Every sum over atoms goes through a fixed number of lanes: lane ``l``
accumulates the strided partial sum ``values[l] + values[l + LANES] + ...``
and the lane partials are then folded pairwise in a tree.  The lane count
never depends on the number of threads numba runs with, so the result is
reproducible from run to run and agrees with a sequential sum up to
reordering round-off.
"""

import numpy as np
from numba import njit, prange

from .utils import CavityStateError

LANES = 1024

_jit = dict(cache=True, fastmath=False, error_model='numpy')


@njit(parallel=True, **_jit)
def _strided_partials(values, lanes):
    n = values.shape[0]
    partial = np.zeros(lanes)
    for lane in prange(lanes):
        acc = 0.0
        for i in range(lane, n, lanes):
            acc += values[i]
        partial[lane] = acc
    return partial


@njit(parallel=True, **_jit)
def _strided_weighted_partials(weights, values, lanes):
    n = values.shape[0]
    partial = np.zeros(lanes)
    for lane in prange(lanes):
        acc = 0.0
        for i in range(lane, n, lanes):
            acc += weights[i] * values[i]
        partial[lane] = acc
    return partial


@njit(**_jit)
def _tree_reduce(partial):
    # lane count is a power of two
    offset = partial.shape[0] // 2
    while offset > 0:
        for lane in range(offset):
            partial[lane] += partial[lane + offset]
        offset //= 2
    return partial[0]


def _as_vector(values):
    values = np.ascontiguousarray(values, dtype=np.float64)
    if values.ndim != 1:
        raise ValueError(f"Expected a 1-D array, got shape {values.shape}")
    return values


def reduce_sum(values):
    """Sum a 1-D array with the fixed-lane two-phase reduction."""
    values = _as_vector(values)
    return float(_tree_reduce(_strided_partials(values, LANES)))


def reduce_weighted_sum(weights, values):
    """Sum ``weights[i] * values[i]`` with the fixed-lane reduction."""
    weights = _as_vector(weights)
    values = _as_vector(values)
    if weights.shape != values.shape:
        raise ValueError(
            f"Weight and value arrays differ in length: {weights.shape[0]} != {values.shape[0]}"
        )
    return float(_tree_reduce(_strided_weighted_partials(weights, values, LANES)))


def reduce_rows(block):
    """Reduce each row of a 2-D block (e.g. a 3 x N per-axis array)."""
    block = np.asarray(block, dtype=np.float64)
    return np.array([reduce_sum(row) for row in block])


def center_of_mass(mass, position):
    """
    Compute the center of mass of a configuration.

    Args:
        mass: Per-atom masses (N,)
        position: Per-axis positions (3, N)

    Returns:
        Center of mass (3,)

    Raises:
        CavityStateError: if there are no atoms or the total mass is zero.
    """
    mass = _as_vector(mass)
    position = np.asarray(position, dtype=np.float64)
    if mass.shape[0] == 0:
        raise CavityStateError("Cannot compute a center of mass for zero atoms")
    total_mass = reduce_sum(mass)
    if total_mass == 0.0:
        raise CavityStateError("Cannot compute a center of mass: total mass is zero")
    return np.array([reduce_weighted_sum(mass, position[axis]) for axis in range(3)]) / total_mass
