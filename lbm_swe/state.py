"""
Node State Store

All per-node buffers of a simulation: the active and pending solid masks,
the ping-pong distribution arenas, the equilibrium and inverse relaxation
time work buffers, and the macroscopic height, velocity and force fields.
Buffers are allocated once and mutated in place by the tick pipeline.
"""

import logging

import numpy as np

from .buffers import DistributionArena, copy_buffer
from .equilibrium import compute_equilibrium, compute_equilibrium_fast

logger = logging.getLogger(__name__)


def plus_cluster(row, col, ny, nx):
    """Clamped (row, col) cells of a plus-shaped five-node brush."""
    cells = [(row - 1, col), (row, col - 1), (row, col), (row, col + 1), (row + 1, col)]
    return [(min(max(r, 0), ny - 1), min(max(c, 0), nx - 1)) for r, c in cells]


class NodeState:
    """
    Per-node buffers for one lattice.

    Parameters
    ----------
    lattice : Lattice
        Lattice geometry

    Attributes
    ----------
    solid : ndarray
        Active solid mask used by the pipeline, shape (ny, nx)
    pending_solid : ndarray
        Solid mask receiving obstacle edits, merged at tick boundaries
    distributions : DistributionArena
        Current and staging distributions
    f_eq : ndarray
        Equilibrium distribution for the next collision, shape (Q, ny, nx)
    inv_tau : ndarray
        Per-node inverse relaxation time, shape (ny, nx)
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx)
    force_x, force_y : ndarray
        Node-centered force field, shape (ny, nx)
    filled_height : ndarray
        Height with solid nodes flood filled, for visualization only
    """

    def __init__(self, lattice):
        self.lattice = lattice
        ny, nx = lattice.shape

        self.solid = np.zeros((ny, nx), dtype=bool)
        self.pending_solid = np.zeros((ny, nx), dtype=bool)
        self.distributions = DistributionArena(nx, ny)
        self.f_eq = np.zeros(self.distributions.shape, dtype=np.float64)
        self.inv_tau = np.zeros((ny, nx), dtype=np.float64)
        self.height = np.zeros((ny, nx), dtype=np.float64)
        self.ux = np.zeros((ny, nx), dtype=np.float64)
        self.uy = np.zeros((ny, nx), dtype=np.float64)
        self.force_x = np.zeros((ny, nx), dtype=np.float64)
        self.force_y = np.zeros((ny, nx), dtype=np.float64)
        self.filled_height = np.zeros((ny, nx), dtype=np.float64)

    @property
    def f(self):
        """Current distributions."""
        return self.distributions.current

    def initialize_uniform(self, height, velocity, solid=None, use_numba=True):
        """
        Set a uniform height/velocity field at equilibrium.

        Parameters
        ----------
        height : float
            Initial water height
        velocity : tuple of float
            Initial velocity (ux, uy)
        solid : ndarray, optional
            Initial solid mask, shape (ny, nx)
        use_numba : bool
            Use the compiled equilibrium kernel
        """
        if solid is not None:
            self.solid[...] = solid
        self.pending_solid[...] = self.solid

        liquid = ~self.solid
        self.height[...] = np.where(liquid, height, 0.0)
        self.ux[...] = np.where(liquid, velocity[0], 0.0)
        self.uy[...] = np.where(liquid, velocity[1], 0.0)
        self.force_x[...] = 0.0
        self.force_y[...] = 0.0
        self.filled_height[...] = self.height

        e, g = self.lattice.e, self.lattice.gravity
        if use_numba:
            compute_equilibrium_fast(self.height, self.ux, self.uy, self.solid, e, g,
                                     out=self.f_eq)
        else:
            copy_buffer(compute_equilibrium(self.height, self.ux, self.uy, self.solid, e, g),
                        self.f_eq)
        self.distributions.load(self.f_eq)

    def mark_solid(self, row, col):
        """Queue a solid edit; clamped to the lattice."""
        ny, nx = self.solid.shape
        row = min(max(int(row), 0), ny - 1)
        col = min(max(int(col), 0), nx - 1)
        self.pending_solid[row, col] = True
        return row, col

    def mark_solid_cluster(self, row, col):
        """Queue a plus-shaped solid edit centered on (row, col)."""
        ny, nx = self.solid.shape
        cells = plus_cluster(int(row), int(col), ny, nx)
        for r, c in cells:
            self.pending_solid[r, c] = True
        return cells

    def merge_pending_solids(self):
        """
        Copy the pending mask into the active mask.

        Nodes that turn solid get zero height, velocity, force, rest
        distribution and equilibrium. Must only run while no tick is in
        flight.

        Returns
        -------
        count : int
            Number of newly solid nodes
        """
        newly_solid = self.pending_solid & ~self.solid
        count = int(np.count_nonzero(newly_solid))
        if count == 0:
            return 0

        self.solid[...] = self.pending_solid
        self.height[newly_solid] = 0.0
        self.ux[newly_solid] = 0.0
        self.uy[newly_solid] = 0.0
        self.force_x[newly_solid] = 0.0
        self.force_y[newly_solid] = 0.0
        self.distributions.current[0, newly_solid] = 0.0
        self.f_eq[:, newly_solid] = 0.0

        logger.debug("Merged %d new solid nodes", count)
        return count
