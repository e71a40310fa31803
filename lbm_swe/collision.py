"""
Collision Operators

BGK collision with bed-slope forcing for the shallow-water LBM, plus
bounce-back at solid nodes.

Liquid nodes relax toward equilibrium at the per-node rate 1/tau:

    f_i' = f_i - (f_i - f_i^eq) / tau + dt / (6 e) * (dir_i · F_i)

where the force along link i uses the height centered between the node
and its neighbor along that link:

    F_i = -g * h_c * slope - tau_bed,   h_c = (h + h_neighbor) / 2

The optional bed friction tau_bed follows Manning's formula. Solid nodes
swap each directional link with its opposite; the rest link is untouched.

Stability requires tau > 0.5.
"""

import warnings

import numpy as np
from numba import njit, prange
from .lattice import EX, EY, DIR_X, DIR_Y, Q, OPPOSITE, GRAVITY, MANNING_COEFFICIENT


def validate_tau(tau, name="tau"):
    """
    Validate that relaxation time is in stable range.

    Parameters
    ----------
    tau : float
        Relaxation time to validate
    name : str
        Name for error messages

    Raises
    ------
    ValueError
        If tau <= 0.5

    Returns
    -------
    tau : float
        Validated tau value
    """
    if tau <= 0.5:
        raise ValueError(
            f"{name} must be > 0.5 for stability (got {tau}). "
            f"This corresponds to nu > 0."
        )
    if tau > 2.0:
        warnings.warn(
            f"{name} = {tau} is large, which may cause slow convergence. "
            f"Consider tau in range (0.5, 2.0) for efficiency."
        )
    return tau


def apply_bounce_back(f, solid):
    """
    Apply bounce-back at solid nodes, in place.

    Each directional link is swapped with its opposite; applying it twice
    restores the original distribution.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    solid : ndarray
        Boolean solid mask, shape (ny, nx)

    Returns
    -------
    f : ndarray
        The same array, for chaining
    """
    for i in range(1, 5):
        i_opp = OPPOSITE[i]
        temp = f[i, solid]
        f[i, solid] = f[i_opp, solid]
        f[i_opp, solid] = temp
    return f


def _neighbor_height(height, solid, di, dj, periodic):
    """Height of the neighbor along (di, dj); solid neighbors mirror the node."""
    ny, nx = height.shape
    rows = np.arange(ny) + dj
    cols = np.arange(nx) + di
    if periodic:
        rows %= ny
        cols %= nx
    else:
        rows = np.clip(rows, 0, ny - 1)
        cols = np.clip(cols, 0, nx - 1)
    neighbor = height[np.ix_(rows, cols)]
    neighbor_solid = solid[np.ix_(rows, cols)]
    return np.where(neighbor_solid, height, neighbor)


def _bed_shear(h_c, ux, uy, g):
    """Manning bed friction u|u| * g / C^2 with C = h^(1/6) / n."""
    speed = np.sqrt(ux * ux + uy * uy)
    chezy = np.power(h_c, 1.0 / 6.0) / MANNING_COEFFICIENT
    coefficient = g / (chezy * chezy)
    return coefficient * ux * speed, coefficient * uy * speed


def compute_force(height, ux, uy, solid, bed_slope, g=GRAVITY, shear=False):
    """
    Node-centered force field.

    Parameters
    ----------
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    bed_slope : tuple of float
        Bed slope (sx, sy)
    g : float
        Gravitational acceleration
    shear : bool
        Include Manning bed friction

    Returns
    -------
    fx, fy : ndarray
        Force components, zero on solid nodes
    """
    sx, sy = bed_slope
    fx = -g * height * sx
    fy = -g * height * sy
    if shear:
        tx, ty = _bed_shear(np.where(solid, 1.0, height), ux, uy, g)
        fx = fx - tx
        fy = fy - ty
    fx = np.where(solid, 0.0, fx)
    fy = np.where(solid, 0.0, fy)
    return fx, fy


def bgk_collision(f, f_eq, inv_tau, height, ux, uy, solid, bed_slope, e, dt,
                  g=GRAVITY, shear=False, periodic=False):
    """
    BGK collision with forcing and bounce-back, in place.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    f_eq : ndarray
        Equilibrium distribution, shape (Q, ny, nx)
    inv_tau : ndarray
        Per-node inverse relaxation time, shape (ny, nx)
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    bed_slope : tuple of float
        Bed slope (sx, sy)
    e, dt : float
        Lattice speed and timestep
    g : float
        Gravitational acceleration
    shear : bool
        Include Manning bed friction
    periodic : bool
        Wrap neighbor lookups around the lattice

    Returns
    -------
    f : ndarray
        The same array, for chaining
    """
    sx, sy = bed_slope
    force_coefficient = dt / (6.0 * e)
    liquid = ~solid

    apply_bounce_back(f, solid)

    relaxed = f - inv_tau * (f - f_eq)

    for i in range(1, Q):
        h_c = 0.5 * (height + _neighbor_height(height, solid, EX[i], EY[i], periodic))
        fx = -g * h_c * sx
        fy = -g * h_c * sy
        if shear:
            tx, ty = _bed_shear(np.where(solid, 1.0, h_c), ux, uy, g)
            fx = fx - tx
            fy = fy - ty
        relaxed[i] += force_coefficient * (DIR_X[i] * fx + DIR_Y[i] * fy)

    f[:, liquid] = relaxed[:, liquid]
    return f


@njit(parallel=True, cache=True, nogil=True)
def bgk_collision_numba(f, f_eq, inv_tau, height, ux, uy, solid, force_x, force_y,
                        sx, sy, e, dt, g, shear, periodic,
                        ex, ey, dir_x, dir_y, opposite, manning):
    """
    Numba-accelerated collision.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx). Modified in place.
    f_eq : ndarray
        Equilibrium distribution, shape (Q, ny, nx)
    inv_tau : ndarray
        Per-node inverse relaxation time, shape (ny, nx)
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    force_x, force_y : ndarray
        Output node-centered force field, shape (ny, nx)
    sx, sy : float
        Bed slope
    e, dt, g : float
        Lattice speed, timestep, gravity
    shear, periodic : bool
        Bed friction and neighbor wrapping switches
    ex, ey, dir_x, dir_y, opposite : ndarray
        Link table
    manning : float
        Manning roughness coefficient
    """
    q, ny, nx = f.shape
    force_coefficient = dt / (6.0 * e)

    for j in prange(ny):
        for i in range(nx):
            if solid[j, i]:
                for k in range(1, 5):
                    k_opp = opposite[k]
                    temp = f[k, j, i]
                    f[k, j, i] = f[k_opp, j, i]
                    f[k_opp, j, i] = temp
                force_x[j, i] = 0.0
                force_y[j, i] = 0.0
                continue

            omega = inv_tau[j, i]
            h = height[j, i]
            u = ux[j, i]
            v = uy[j, i]
            speed = np.sqrt(u * u + v * v)

            f[0, j, i] = f[0, j, i] - omega * (f[0, j, i] - f_eq[0, j, i])

            node_fx = -g * h * sx
            node_fy = -g * h * sy
            if shear:
                chezy = h ** (1.0 / 6.0) / manning
                cf = g / (chezy * chezy)
                node_fx -= cf * u * speed
                node_fy -= cf * v * speed
            force_x[j, i] = node_fx
            force_y[j, i] = node_fy

            for k in range(1, q):
                jn = j + ey[k]
                i_n = i + ex[k]
                if periodic:
                    jn = (jn + ny) % ny
                    i_n = (i_n + nx) % nx
                else:
                    jn = min(max(jn, 0), ny - 1)
                    i_n = min(max(i_n, 0), nx - 1)

                if solid[jn, i_n]:
                    h_c = h
                else:
                    h_c = 0.5 * (h + height[jn, i_n])

                fx = -g * h_c * sx
                fy = -g * h_c * sy
                if shear:
                    chezy = h_c ** (1.0 / 6.0) / manning
                    cf = g / (chezy * chezy)
                    fx -= cf * u * speed
                    fy -= cf * v * speed

                f[k, j, i] = (f[k, j, i] - omega * (f[k, j, i] - f_eq[k, j, i])
                              + force_coefficient * (dir_x[k] * fx + dir_y[k] * fy))


def bgk_collision_fast(f, f_eq, inv_tau, height, ux, uy, solid, bed_slope, e, dt,
                       g=GRAVITY, shear=False, periodic=False,
                       force_x=None, force_y=None):
    """
    Fast collision using Numba, in place.

    Also writes the node-centered force field when buffers are given.

    Returns
    -------
    f : ndarray
        The same array, for chaining
    """
    ny, nx = height.shape
    if force_x is None:
        force_x = np.zeros((ny, nx), dtype=np.float64)
    if force_y is None:
        force_y = np.zeros((ny, nx), dtype=np.float64)
    sx, sy = bed_slope
    bgk_collision_numba(f, f_eq, inv_tau, height, ux, uy, solid, force_x, force_y,
                        float(sx), float(sy), float(e), float(dt), float(g),
                        bool(shear), bool(periodic),
                        EX, EY, DIR_X, DIR_Y, OPPOSITE, MANNING_COEFFICIENT)
    return f
