"""
Boundary Condition Handlers

Implements the inlet (column 0) and outlet (column nx-1) treatments for
the shallow-water LBM:
- Periodic (handled in streaming, no-op here)
- Zero-gradient (copy missing distributions from the interior)
- Zou-He (analytical solve from prescribed height and normal velocity)
- Zhou-He (Zou-He interior formula on every inlet row, no corner solve)

All handlers run after moment recovery, fill the distributions streaming
could not deliver, and pin or extrapolate height and velocity on the
boundary column. Solid boundary nodes are skipped.

Link numbering (see lattice.py): 1 +x, 2 +x+y, 3 +y, 4 -x+y, 5 -x,
6 -x-y, 7 -y, 8 +x-y.
"""

import numpy as np

from .config import BoundaryCondition, ConfigurationError


def validate_inlet_velocity(inlet_velocity):
    """
    Reject inlet velocities with a tangential component.

    Raises
    ------
    ConfigurationError
        If the y-component is nonzero
    """
    if inlet_velocity[1] != 0.0:
        raise ConfigurationError(
            f"Inlet y-velocity must be zero, got {inlet_velocity[1]}"
        )
    return inlet_velocity


def _neighbor_or_self(height, solid, row, col, own_row, own_col):
    """Height at (row, col), or at the node itself when the neighbor is solid."""
    if solid[row, col]:
        return height[own_row, own_col]
    return height[row, col]


def zero_gradient_inflow(f, height, ux, uy, solid, inlet_height, inlet_velocity,
                         inverse_e=None):
    """
    Zero-gradient inlet at x=0.

    Missing distributions are copied from the adjacent interior column;
    corner rows copy from the diagonal interior neighbor. Height and
    velocity are pinned to the inlet values.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx). Modified in place.
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    inlet_height : float
        Prescribed inlet height
    inlet_velocity : tuple of float
        Prescribed inlet velocity
    inverse_e : float, optional
        Unused, accepted for a uniform handler signature
    """
    ny = f.shape[1]

    for row in range(ny):
        if solid[row, 0]:
            continue

        if row == 0:
            src_row, links = 1, (1, 2, 3, 4, 8)
        elif row == ny - 1:
            src_row, links = ny - 2, (1, 2, 6, 7, 8)
        else:
            src_row, links = row, (1, 2, 8)

        if not solid[src_row, 1]:
            for k in links:
                f[k, row, 0] = f[k, src_row, 1]

        height[row, 0] = inlet_height
        ux[row, 0] = inlet_velocity[0]
        uy[row, 0] = inlet_velocity[1]


def zero_gradient_outflow(f, height, ux, uy, solid, inverse_e=None):
    """
    Zero-gradient outlet at x=nx-1.

    Missing distributions, height and velocity are copied from the
    adjacent interior column; corner rows copy from the diagonal interior
    neighbor.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx). Modified in place.
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    inverse_e : float, optional
        Unused, accepted for a uniform handler signature
    """
    ny, nx = f.shape[1], f.shape[2]
    col = nx - 1

    for row in range(ny):
        if solid[row, col] or solid[row, col - 1]:
            continue

        if row == 0:
            src_row, links = 1, (2, 3, 4, 5, 6)
        elif row == ny - 1:
            src_row, links = ny - 2, (4, 5, 6, 7, 8)
        else:
            src_row, links = row, (4, 5, 6)

        if solid[src_row, col - 1]:
            continue

        for k in links:
            f[k, row, col] = f[k, src_row, col - 1]
        height[row, col] = height[src_row, col - 1]
        ux[row, col] = ux[src_row, col - 1]
        uy[row, col] = uy[src_row, col - 1]


def _zou_he_inlet_interior(f, rows, col, term):
    """Solve links 1, 2, 8 on the inlet column for the given rows."""
    f1 = f[5, rows, col] + (2.0 / 3.0) * term
    f2 = f[6, rows, col] + 0.5 * (f[7, rows, col] - f[3, rows, col]) + (1.0 / 6.0) * term
    f8 = f[4, rows, col] + 0.5 * (f[3, rows, col] - f[7, rows, col]) + (1.0 / 6.0) * term
    f[1, rows, col] = f1
    f[2, rows, col] = f2
    f[8, rows, col] = f8


def zou_he_inflow(f, height, ux, uy, solid, inlet_height, inlet_velocity, inverse_e):
    """
    Zou-He inlet at x=0.

    Interior rows solve the three unknown links from the prescribed
    height and normal velocity:

        f1 = f5 + (2/3) h u / e
        f2 = f6 + (f7 - f3) / 2 + (1/6) h u / e
        f8 = f4 + (f3 - f7) / 2 + (1/6) h u / e

    The corner rows lack both a neighbor behind and one below/above, so
    five links are unknown there: three are bounced back and the last two
    share the height deficit against the diagonal interior neighbor. Corner
    velocity is zero.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx). Modified in place.
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    inlet_height : float
        Prescribed inlet height
    inlet_velocity : tuple of float
        Prescribed inlet velocity, y-component must be zero
    inverse_e : float
        1 / lattice speed
    """
    validate_inlet_velocity(inlet_velocity)
    ny = f.shape[1]
    u = inlet_velocity[0]
    term = inverse_e * inlet_height * u

    rows = np.arange(1, ny - 1)
    rows = rows[~solid[rows, 0]]
    _zou_he_inlet_interior(f, rows, 0, term)
    height[rows, 0] = inlet_height
    ux[rows, 0] = u
    uy[rows, 0] = 0.0

    # Bottom-left corner
    if not solid[0, 0]:
        neighbor_height = _neighbor_or_self(height, solid, 1, 1, 0, 0)
        f[1, 0, 0] = f[5, 0, 0]
        f[2, 0, 0] = f[6, 0, 0]
        f[3, 0, 0] = f[7, 0, 0]
        known = f[0, 0, 0] + f[1, 0, 0] + f[2, 0, 0] + f[3, 0, 0] + f[5, 0, 0] + f[6, 0, 0] + f[7, 0, 0]
        f[4, 0, 0] = f[8, 0, 0] = 0.5 * (neighbor_height - known)
        height[0, 0] = inlet_height
        ux[0, 0] = 0.0
        uy[0, 0] = 0.0

    # Top-left corner
    top = ny - 1
    if not solid[top, 0]:
        neighbor_height = _neighbor_or_self(height, solid, top - 1, 1, top, 0)
        f[1, top, 0] = f[5, top, 0]
        f[7, top, 0] = f[3, top, 0]
        f[8, top, 0] = f[4, top, 0]
        known = f[0, top, 0] + f[1, top, 0] + f[3, top, 0] + f[4, top, 0] + f[5, top, 0] + f[7, top, 0] + f[8, top, 0]
        f[2, top, 0] = f[6, top, 0] = 0.5 * (neighbor_height - known)
        height[top, 0] = inlet_height
        ux[top, 0] = 0.0
        uy[top, 0] = 0.0


def zhou_he_inflow(f, height, ux, uy, solid, inlet_height, inlet_velocity, inverse_e):
    """
    Zhou-He inlet at x=0.

    Applies the Zou-He interior solve to every liquid inlet row, corners
    included, and pins height and velocity to the inlet values.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx). Modified in place.
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    inlet_height : float
        Prescribed inlet height
    inlet_velocity : tuple of float
        Prescribed inlet velocity, y-component must be zero
    inverse_e : float
        1 / lattice speed
    """
    validate_inlet_velocity(inlet_velocity)
    u = inlet_velocity[0]

    rows = np.flatnonzero(~solid[:, 0])
    _zou_he_inlet_interior(f, rows, 0, inverse_e * inlet_height * u)
    height[rows, 0] = inlet_height
    ux[rows, 0] = u
    uy[rows, 0] = 0.0


def zou_he_outflow(f, height, ux, uy, solid, inverse_e):
    """
    Zou-He outlet at x=nx-1.

    Interior rows extrapolate height and normal velocity from the
    neighbor at x=nx-2 and solve the three unknown links:

        f5 = f1 - (2/3) h u / e
        f4 = f8 + (f7 - f3) / 2 - (1/6) h u / e
        f6 = f2 + (f3 - f7) / 2 - (1/6) h u / e

    Corner rows use the five-unknown solve against the diagonal interior
    neighbor, with zero velocity.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx). Modified in place.
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    inverse_e : float
        1 / lattice speed
    """
    ny, nx = f.shape[1], f.shape[2]
    col = nx - 1

    rows = np.arange(1, ny - 1)
    rows = rows[~solid[rows, col]]
    neighbor_solid = solid[rows, col - 1]
    neighbor_height = np.where(neighbor_solid, height[rows, col], height[rows, col - 1])
    u = np.where(neighbor_solid, ux[rows, col], ux[rows, col - 1])
    term = inverse_e * neighbor_height * u

    f5 = f[1, rows, col] - (2.0 / 3.0) * term
    f4 = f[8, rows, col] + 0.5 * (f[7, rows, col] - f[3, rows, col]) - (1.0 / 6.0) * term
    f6 = f[2, rows, col] + 0.5 * (f[3, rows, col] - f[7, rows, col]) - (1.0 / 6.0) * term
    f[5, rows, col] = f5
    f[4, rows, col] = f4
    f[6, rows, col] = f6
    height[rows, col] = neighbor_height
    ux[rows, col] = u
    uy[rows, col] = 0.0

    # Bottom-right corner
    if not solid[0, col]:
        corner_height = _neighbor_or_self(height, solid, 1, col - 1, 0, col)
        f[3, 0, col] = f[7, 0, col]
        f[4, 0, col] = f[8, 0, col]
        f[5, 0, col] = f[1, 0, col]
        known = f[0, 0, col] + f[1, 0, col] + f[3, 0, col] + f[4, 0, col] + f[5, 0, col] + f[7, 0, col] + f[8, 0, col]
        f[2, 0, col] = f[6, 0, col] = 0.5 * (corner_height - known)
        height[0, col] = corner_height
        ux[0, col] = 0.0
        uy[0, col] = 0.0

    # Top-right corner
    top = ny - 1
    if not solid[top, col]:
        corner_height = _neighbor_or_self(height, solid, top - 1, col - 1, top, col)
        f[5, top, col] = f[1, top, col]
        f[6, top, col] = f[2, top, col]
        f[7, top, col] = f[3, top, col]
        known = f[0, top, col] + f[1, top, col] + f[2, top, col] + f[3, top, col] + f[5, top, col] + f[6, top, col] + f[7, top, col]
        f[4, top, col] = f[8, top, col] = 0.5 * (corner_height - known)
        height[top, col] = corner_height
        ux[top, col] = 0.0
        uy[top, col] = 0.0


INFLOW_HANDLERS = {
    BoundaryCondition.ZERO_GRADIENT: zero_gradient_inflow,
    BoundaryCondition.ZOU_HE: zou_he_inflow,
    BoundaryCondition.ZHOU_HE: zhou_he_inflow,
}

# Zhou-He only changes the inlet; its outlet is the Zou-He solve
OUTFLOW_HANDLERS = {
    BoundaryCondition.ZERO_GRADIENT: zero_gradient_outflow,
    BoundaryCondition.ZOU_HE: zou_he_outflow,
    BoundaryCondition.ZHOU_HE: zou_he_outflow,
}


class BoundaryConditions:
    """
    Inlet/outlet handler for one simulation.

    Selects the scheme once and applies it every tick. Periodic
    boundaries make both stages no-ops.

    Parameters
    ----------
    scheme : BoundaryCondition or str
        Boundary scheme
    inlet_height : float
        Prescribed inlet height
    inlet_velocity : tuple of float
        Prescribed inlet velocity
    inverse_e : float
        1 / lattice speed
    """

    def __init__(self, scheme, inlet_height, inlet_velocity, inverse_e):
        self.scheme = BoundaryCondition.parse(scheme)
        self.inlet_height = float(inlet_height)
        self.inlet_velocity = (float(inlet_velocity[0]), float(inlet_velocity[1]))
        self.inverse_e = float(inverse_e)

        if self.scheme in (BoundaryCondition.ZOU_HE, BoundaryCondition.ZHOU_HE):
            validate_inlet_velocity(self.inlet_velocity)

    @property
    def periodic(self):
        return self.scheme is BoundaryCondition.PERIODIC

    def apply_inflow(self, f, height, ux, uy, solid):
        """Fill inlet distributions and pin inlet height/velocity."""
        if self.periodic:
            return
        INFLOW_HANDLERS[self.scheme](f, height, ux, uy, solid,
                                     self.inlet_height, self.inlet_velocity,
                                     self.inverse_e)

    def apply_outflow(self, f, height, ux, uy, solid):
        """Fill outlet distributions and extrapolate outlet height/velocity."""
        if self.periodic:
            return
        OUTFLOW_HANDLERS[self.scheme](f, height, ux, uy, solid, self.inverse_e)

    def __repr__(self):
        return (f"BoundaryConditions(scheme={self.scheme.value}, "
                f"inlet_height={self.inlet_height}, inlet_velocity={self.inlet_velocity})")


def create_channel_walls(nx, ny):
    """
    Create solid masks for horizontal channel walls.

    Parameters
    ----------
    nx, ny : int
        Grid dimensions

    Returns
    -------
    wall_mask : ndarray
        Boolean mask for walls (top and bottom rows)
    """
    mask = np.zeros((ny, nx), dtype=bool)
    mask[0, :] = True   # Bottom rail
    mask[-1, :] = True  # Top rail
    return mask


def create_cylinder_mask(nx, ny, cx, cy, radius):
    """
    Create a solid mask for a circular obstacle.

    Parameters
    ----------
    nx, ny : int
        Grid dimensions
    cx, cy : float
        Obstacle center (column, row)
    radius : float
        Obstacle radius in nodes

    Returns
    -------
    mask : ndarray
        Boolean mask (True for solid), shape (ny, nx)
    """
    x = np.arange(nx)
    y = np.arange(ny)
    X, Y = np.meshgrid(x, y)

    distance = np.sqrt((X - cx)**2 + (Y - cy)**2)
    mask = distance <= radius

    return mask
