"""
Smagorinsky Sub-Grid Closure

Per-node eddy relaxation time from the non-equilibrium momentum flux.

    Pi = sum_i (f_i - f_i^eq) c_i ⊗ c_i         (directional links only)
    tau_eff = 0.5 * (tau0 + sqrt(tau0^2 + 18 Cs^2 |Pi| / (e^2 h)))

The rest link carries no momentum flux, so it is skipped. The output is
1 / tau_eff, masked to zero on solid nodes so collision relaxes nothing
there.
"""

import numpy as np
from numba import njit, prange
from .lattice import DIR_X, DIR_Y, Q


def compute_inverse_eddy_relaxation_time(f, f_eq, height, solid, tau, cs, e):
    """
    Compute the inverse effective relaxation time per node.

    Parameters
    ----------
    f : ndarray
        Current distribution, shape (Q, ny, nx)
    f_eq : ndarray
        Equilibrium distribution, shape (Q, ny, nx)
    height : ndarray
        Water height, shape (ny, nx)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    tau : float
        Base relaxation time
    cs : float
        Smagorinsky constant
    e : float
        Lattice speed

    Returns
    -------
    inv_tau : ndarray
        1 / tau_eff, zero on solid nodes, shape (ny, nx)
    """
    ny, nx = height.shape
    pi_xx = np.zeros((ny, nx), dtype=np.float64)
    pi_xy = np.zeros((ny, nx), dtype=np.float64)
    pi_yy = np.zeros((ny, nx), dtype=np.float64)

    e2 = e * e
    for i in range(1, Q):
        f_neq = f[i] - f_eq[i]
        pi_xx += f_neq * e2 * DIR_X[i] * DIR_X[i]
        pi_xy += f_neq * e2 * DIR_X[i] * DIR_Y[i]
        pi_yy += f_neq * e2 * DIR_Y[i] * DIR_Y[i]

    # Pi:Pi counts the off-diagonal term twice
    magnitude = np.sqrt(pi_xx * pi_xx + 2.0 * pi_xy * pi_xy + pi_yy * pi_yy)

    safe_height = np.where(solid, 1.0, height)
    turbulent = 18.0 * cs * cs * magnitude / (e2 * safe_height)
    tau_eff = 0.5 * (tau + np.sqrt(tau * tau + turbulent))

    return np.where(solid, 0.0, 1.0 / tau_eff)


@njit(parallel=True, cache=True, nogil=True)
def inverse_eddy_relaxation_time_numba(f, f_eq, height, solid, inv_tau,
                                       tau, cs, e, dir_x, dir_y):
    """
    Numba-accelerated Smagorinsky closure.

    Parameters
    ----------
    f, f_eq : ndarray
        Current and equilibrium distributions, shape (Q, ny, nx)
    height : ndarray
        Water height, shape (ny, nx)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    inv_tau : ndarray
        Output inverse relaxation time, shape (ny, nx)
    tau, cs, e : float
        Base relaxation time, Smagorinsky constant, lattice speed
    dir_x, dir_y : ndarray
        Link directions
    """
    q, ny, nx = f.shape
    e2 = e * e
    flux_term = 18.0 * cs * cs / e2
    tau_sq = tau * tau

    for j in prange(ny):
        for i in range(nx):
            if solid[j, i]:
                inv_tau[j, i] = 0.0
                continue

            pi_xx = 0.0
            pi_xy = 0.0
            pi_yy = 0.0
            for k in range(1, q):
                f_neq = f[k, j, i] - f_eq[k, j, i]
                pi_xx += f_neq * e2 * dir_x[k] * dir_x[k]
                pi_xy += f_neq * e2 * dir_x[k] * dir_y[k]
                pi_yy += f_neq * e2 * dir_y[k] * dir_y[k]

            magnitude = np.sqrt(pi_xx * pi_xx + 2.0 * pi_xy * pi_xy + pi_yy * pi_yy)
            turbulent = flux_term * magnitude / height[j, i]
            inv_tau[j, i] = 1.0 / (0.5 * (tau + np.sqrt(tau_sq + turbulent)))


def compute_inverse_eddy_relaxation_time_fast(f, f_eq, height, solid, tau, cs, e,
                                              out=None):
    """
    Fast Smagorinsky closure using Numba.

    Returns
    -------
    inv_tau : ndarray
        1 / tau_eff, zero on solid nodes, shape (ny, nx)
    """
    ny, nx = height.shape
    inv_tau = np.zeros((ny, nx), dtype=np.float64) if out is None else out
    inverse_eddy_relaxation_time_numba(f, f_eq, height, solid, inv_tau,
                                       float(tau), float(cs), float(e),
                                       DIR_X, DIR_Y)
    return inv_tau


def constant_inverse_relaxation_time(solid, tau, out=None):
    """1 / tau on liquid nodes, zero on solid nodes."""
    if out is None:
        out = np.empty(solid.shape, dtype=np.float64)
    out[...] = 1.0 / tau
    out[solid] = 0.0
    return out
