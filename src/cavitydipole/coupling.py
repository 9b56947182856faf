# Copyright (c) 2009-2025 The Regents of the University of Michigan.
# Part of HOOMD-blue, released under the BSD 3-Clause License.

"""Force feedback of the cavity mode onto the atoms."""

import numpy as np

from .dipole import Z


class ForceCoupler:
    """
    Per-atom cavity force from the dipole gradient.

    For atom i and axis j the force is

        F_ij = (omega q - lambda mu_z) * lambda * d(mu_z)/d(r_ij)

    Only the z component of the gradient enters since the mode couples
    along z.

    Args:
        coupling: Coupling strength lambda
        frequency: Angular frequency omega
    """

    def __init__(self, coupling, frequency):
        self.coupling = float(coupling)
        self.frequency = float(frequency)
        self.force = np.zeros((3, 0))

    def compute(self, gradient, q, dipole):
        """
        Recompute the cavity force.

        Args:
            gradient: ``DipoleGradient`` (N, 3, 3)
            q: Cavity canonical position
            dipole: Current dipole (3,)

        Returns:
            Cavity force (3, N), axis-major
        """
        detuning = self.frequency * q - self.coupling * dipole[Z]
        self.force = detuning * self.coupling * gradient.component(Z)
        return self.force

    def apply(self, forces):
        """Add the last computed cavity force onto a (3, N) force buffer in place."""
        if forces.shape != self.force.shape:
            raise ValueError(
                f"Force buffer shape {forces.shape} does not match cavity force {self.force.shape}"
            )
        forces += self.force
        return forces
