"""
Macroscopic Quantities

Moment recovery with stability clamps, and derived field diagnostics.

Height and momentum are the zeroth and first moments of the streamed
distribution:

    h = sum_i f_i
    h u = sum_i f_i c_i

Recovery then enforces, in order:

1. h < MIN_HEIGHT: clamp h, zero velocity (dry node)
2. h > max_height: clamp h and rescale all 9 distributions (and the
   momentum) at the node by max_height / h
3. u = momentum / h
4. Froude number |u| / sqrt(g h) >= FROUDE_LIMIT: scale u down to the limit

Solid nodes report h = 0 and u = 0.
"""

import numpy as np
from numba import njit, prange
from .lattice import DIR_X, DIR_Y, Q, GRAVITY, MIN_HEIGHT, FROUDE_LIMIT


def compute_height(f):
    """
    Sum of all distributions per node.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)

    Returns
    -------
    height : ndarray
        Raw height, shape (ny, nx)
    """
    return np.sum(f, axis=0)


def compute_momentum(f, e):
    """
    First moment of the distribution.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    e : float
        Lattice speed

    Returns
    -------
    mx, my : ndarray
        Momentum components h*u, h*v, shape (ny, nx)
    """
    mx = e * np.tensordot(DIR_X, f, axes=(0, 0))
    my = e * np.tensordot(DIR_Y, f, axes=(0, 0))
    return mx, my


def compute_macroscopic(f, solid, e, max_height, g=GRAVITY):
    """
    Recover height and velocity with stability clamps.

    Distributions at nodes above max_height are rescaled in place.

    Parameters
    ----------
    f : ndarray
        Streamed distribution, shape (Q, ny, nx). May be modified.
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    e : float
        Lattice speed
    max_height : float
        Height ceiling
    g : float
        Gravitational acceleration

    Returns
    -------
    height : ndarray
        Water height, shape (ny, nx)
    ux, uy : ndarray
        Velocity components, shape (ny, nx)
    """
    height = compute_height(f)
    mx, my = compute_momentum(f, e)

    liquid = ~solid
    dry = liquid & (height < MIN_HEIGHT)
    over = liquid & (height > max_height)

    if np.any(over):
        rescale = max_height / height[over]
        f[:, over] *= rescale
        mx[over] *= rescale
        my[over] *= rescale
        height[over] = max_height

    height[dry] = MIN_HEIGHT
    mx[dry] = 0.0
    my[dry] = 0.0
    height[solid] = 0.0

    safe_height = np.where(solid, 1.0, height)
    ux = np.where(solid, 0.0, mx / safe_height)
    uy = np.where(solid, 0.0, my / safe_height)

    froude = np.sqrt(ux * ux + uy * uy) / np.sqrt(g * safe_height)
    limited = liquid & (froude >= FROUDE_LIMIT)
    if np.any(limited):
        scale = FROUDE_LIMIT / froude[limited]
        ux[limited] *= scale
        uy[limited] *= scale

    return height, ux, uy


@njit(parallel=True, cache=True, nogil=True)
def compute_macroscopic_numba(f, solid, height, ux, uy, e, max_height, g,
                              dir_x, dir_y, min_height, froude_limit):
    """
    Numba-accelerated moment recovery with stability clamps.

    Parameters
    ----------
    f : ndarray
        Streamed distribution, shape (Q, ny, nx). May be modified.
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    height, ux, uy : ndarray
        Output fields, shape (ny, nx)
    e, max_height, g : float
        Lattice speed, height ceiling, gravity
    dir_x, dir_y : ndarray
        Link directions
    min_height, froude_limit : float
        Stability bounds
    """
    q, ny, nx = f.shape

    for j in prange(ny):
        for i in range(nx):
            if solid[j, i]:
                height[j, i] = 0.0
                ux[j, i] = 0.0
                uy[j, i] = 0.0
                continue

            h = 0.0
            mx = 0.0
            my = 0.0
            for k in range(q):
                f_k = f[k, j, i]
                h += f_k
                mx += e * f_k * dir_x[k]
                my += e * f_k * dir_y[k]

            if h < min_height:
                height[j, i] = min_height
                ux[j, i] = 0.0
                uy[j, i] = 0.0
                continue

            if h > max_height:
                rescale = max_height / h
                for k in range(q):
                    f[k, j, i] *= rescale
                mx *= rescale
                my *= rescale
                h = max_height

            u = mx / h
            v = my / h

            froude = np.sqrt(u * u + v * v) / np.sqrt(g * h)
            if froude >= froude_limit:
                scale = froude_limit / froude
                u *= scale
                v *= scale

            height[j, i] = h
            ux[j, i] = u
            uy[j, i] = v


def compute_macroscopic_fast(f, solid, e, max_height, g=GRAVITY,
                             height=None, ux=None, uy=None):
    """
    Fast moment recovery using Numba.

    Returns
    -------
    height : ndarray
        Water height, shape (ny, nx)
    ux, uy : ndarray
        Velocity components, shape (ny, nx)
    """
    q, ny, nx = f.shape
    if height is None:
        height = np.zeros((ny, nx), dtype=np.float64)
    if ux is None:
        ux = np.zeros((ny, nx), dtype=np.float64)
    if uy is None:
        uy = np.zeros((ny, nx), dtype=np.float64)

    compute_macroscopic_numba(f, solid, height, ux, uy, float(e), float(max_height),
                              float(g), DIR_X, DIR_Y, MIN_HEIGHT, FROUDE_LIMIT)

    return height, ux, uy


def compute_velocity_magnitude(ux, uy):
    """
    Compute velocity magnitude field.

    |u| = sqrt(ux^2 + uy^2)
    """
    return np.sqrt(ux * ux + uy * uy)


def compute_froude_number(height, ux, uy, g=GRAVITY):
    """
    Froude number |u| / sqrt(g h), zero where the height is zero.
    """
    speed = compute_velocity_magnitude(ux, uy)
    celerity = np.sqrt(g * np.maximum(height, 0.0))
    return np.divide(speed, celerity, out=np.zeros_like(speed), where=celerity > 0.0)


def compute_total_mass(f, solid=None):
    """
    Total of all distributions, optionally over liquid nodes only.
    """
    if solid is None:
        return float(np.sum(f))
    return float(np.sum(f[:, ~solid]))
