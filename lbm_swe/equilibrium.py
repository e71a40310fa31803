"""
Equilibrium Distribution Functions

Shallow-water equilibrium for the D2Q9 lattice.

The equilibrium is a closed-form second-order expansion in velocity.
For the rest link:

    f_0^eq = h - (5/6) g h^2 / e^2 - (2/3) h |u|^2 / e^2

and for each directional link i with c_i = e * dir_i:

    f_i^eq = A g h^2 / e^2 + B h (c_i · u) / e^2
             + C h (c_i · u)^2 / e^4 - D h |u|^2 / e^2

with (A, B, C, D) = (1/6, 1/3, 1/2, 1/6) on axis links and
(1/24, 1/12, 1/8, 1/24) on diagonal links.

Solid nodes are skipped; their equilibrium slots are zero.
"""

import numpy as np
from numba import njit, prange
from .lattice import (
    DIR_X, DIR_Y, EQ_GRAVITY, EQ_LINEAR, EQ_QUADRATIC, EQ_KINETIC, Q, GRAVITY,
)


def compute_equilibrium(height, ux, uy, solid, e, g=GRAVITY):
    """
    Compute equilibrium distribution for all lattice sites.

    Parameters
    ----------
    height : ndarray
        Water height, shape (ny, nx)
    ux, uy : ndarray
        Velocity components, shape (ny, nx)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    e : float
        Lattice speed
    g : float
        Gravitational acceleration

    Returns
    -------
    f_eq : ndarray
        Equilibrium distribution, shape (Q, ny, nx)
    """
    ny, nx = height.shape
    f_eq = np.zeros((Q, ny, nx), dtype=np.float64)

    inv_e2 = 1.0 / (e * e)
    gh2 = g * height * height
    u_sq = ux * ux + uy * uy

    f_eq[0] = (height
               - (5.0 / 6.0) * inv_e2 * gh2
               - (2.0 / 3.0) * inv_e2 * height * u_sq)

    for i in range(1, Q):
        # (c_i · u) / e
        cu = DIR_X[i] * ux + DIR_Y[i] * uy
        f_eq[i] = (
            EQ_GRAVITY[i] * inv_e2 * gh2
            + EQ_LINEAR[i] * height * cu / e
            + EQ_QUADRATIC[i] * inv_e2 * height * cu * cu
            - EQ_KINETIC[i] * inv_e2 * height * u_sq
        )

    f_eq[:, solid] = 0.0
    return f_eq


@njit(parallel=True, cache=True, nogil=True)
def compute_equilibrium_numba(height, ux, uy, solid, f_eq, e, g,
                              dir_x, dir_y, a, b, c, d):
    """
    Numba-accelerated equilibrium computation.

    Parameters
    ----------
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    f_eq : ndarray
        Output equilibrium distribution, shape (Q, ny, nx)
    e, g : float
        Lattice speed and gravity
    dir_x, dir_y : ndarray
        Link directions
    a, b, c, d : ndarray
        Per-link equilibrium coefficients
    """
    q, ny, nx = f_eq.shape
    inv_e = 1.0 / e
    inv_e2 = inv_e * inv_e

    for j in prange(ny):
        for i in range(nx):
            if solid[j, i]:
                for k in range(q):
                    f_eq[k, j, i] = 0.0
                continue

            h = height[j, i]
            u = ux[j, i]
            v = uy[j, i]
            gh2 = g * h * h
            u_sq = u * u + v * v

            f_eq[0, j, i] = (h
                             - (5.0 / 6.0) * inv_e2 * gh2
                             - (2.0 / 3.0) * inv_e2 * h * u_sq)

            for k in range(1, q):
                cu = dir_x[k] * u + dir_y[k] * v
                f_eq[k, j, i] = (
                    a[k] * inv_e2 * gh2
                    + b[k] * h * cu * inv_e
                    + c[k] * inv_e2 * h * cu * cu
                    - d[k] * inv_e2 * h * u_sq
                )


def compute_equilibrium_fast(height, ux, uy, solid, e, g=GRAVITY, out=None):
    """
    Fast equilibrium computation using Numba.

    Parameters
    ----------
    height, ux, uy : ndarray
        Macroscopic fields, shape (ny, nx)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    e : float
        Lattice speed
    g : float
        Gravitational acceleration
    out : ndarray, optional
        Preallocated output, shape (Q, ny, nx)

    Returns
    -------
    f_eq : ndarray
        Equilibrium distribution, shape (Q, ny, nx)
    """
    ny, nx = height.shape
    f_eq = np.zeros((Q, ny, nx), dtype=np.float64) if out is None else out

    compute_equilibrium_numba(height, ux, uy, solid, f_eq, float(e), float(g),
                              DIR_X, DIR_Y, EQ_GRAVITY, EQ_LINEAR,
                              EQ_QUADRATIC, EQ_KINETIC)

    return f_eq


def equilibrium_single_site(h, ux, uy, e, g=GRAVITY):
    """
    Compute equilibrium distribution for a single liquid node.

    Useful for boundary conditions and testing.

    Parameters
    ----------
    h : float
        Water height at the node
    ux, uy : float
        Velocity at the node
    e : float
        Lattice speed
    g : float
        Gravitational acceleration

    Returns
    -------
    f_eq : ndarray
        Equilibrium distribution, shape (Q,)
    """
    f_eq = np.zeros(Q, dtype=np.float64)
    inv_e2 = 1.0 / (e * e)
    gh2 = g * h * h
    u_sq = ux * ux + uy * uy

    f_eq[0] = h - (5.0 / 6.0) * inv_e2 * gh2 - (2.0 / 3.0) * inv_e2 * h * u_sq

    for i in range(1, Q):
        cu = DIR_X[i] * ux + DIR_Y[i] * uy
        f_eq[i] = (
            EQ_GRAVITY[i] * inv_e2 * gh2
            + EQ_LINEAR[i] * h * cu / e
            + EQ_QUADRATIC[i] * inv_e2 * h * cu * cu
            - EQ_KINETIC[i] * inv_e2 * h * u_sq
        )

    return f_eq
