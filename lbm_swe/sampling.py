"""
Bilinear Field Sampling

Samples published fields at a continuous UV coordinate. UV space is
normalized between the lattice edges: u runs along columns, v along rows,
and node centers sit half a node in from each edge. Samples blend the four
nearest node centers, clamping at the lattice edges.
"""

import numpy as np


def _saturate(x):
    return np.clip(x, 0.0, 1.0)


def half_node_size(width, height):
    """Half a node spacing in UV space, per axis."""
    return np.array([0.5 / width, 0.5 / height])


def linear_sample_coords(uv, width, height):
    """
    Corner indices and blend weights for a bilinear sample.

    Parameters
    ----------
    uv : tuple of float
        Sample coordinate (u, v)
    width, height : int
        Lattice dimensions

    Returns
    -------
    upper_left, lower_left, upper_right, lower_right : int
        Flat node indices (row * width + col) of the four corners
    weights : ndarray
        Blend weights (wx, wy) in [0, 1]
    """
    uv = np.asarray(uv, dtype=np.float64)
    dims = np.array([width, height])
    half = half_node_size(width, height)

    upper_left_rc = np.round((dims - 1) * _saturate(uv - half)).astype(np.int64)
    texel = uv - upper_left_rc / dims - half
    weights = _saturate(texel * dims)

    lower_right_rc = np.minimum(dims - 1, upper_left_rc + 1)
    col0, row0 = int(upper_left_rc[0]), int(upper_left_rc[1])
    col1, row1 = int(lower_right_rc[0]), int(lower_right_rc[1])

    upper_left = row0 * width + col0
    upper_right = row0 * width + col1
    lower_left = row1 * width + col0
    lower_right = row1 * width + col1
    return upper_left, lower_left, upper_right, lower_right, weights


def linear_blend(upper_left, lower_left, upper_right, lower_right, weights):
    """
    Blend four corner values, first along v then along u.

    Works for scalars and for vector values given as arrays.
    """
    wx, wy = weights[0], weights[1]
    left = upper_left + (lower_left - upper_left) * wy
    right = upper_right + (lower_right - upper_right) * wy
    return left + (right - left) * wx


def sample_field(field, uv):
    """
    Bilinear sample of a scalar field with shape (ny, nx).

    Returns
    -------
    value : float
    """
    ny, nx = field.shape
    ul, ll, ur, lr, weights = linear_sample_coords(uv, nx, ny)
    flat = field.reshape(-1)
    return float(linear_blend(flat[ul], flat[ll], flat[ur], flat[lr], weights))


def sample_height(snapshot, uv):
    """Water height at uv."""
    return sample_field(snapshot.height, uv)


def sample_velocity(snapshot, uv):
    """
    Velocity (ux, uy) at uv.

    Returns
    -------
    velocity : ndarray
        Shape (2,)
    """
    ny, nx = snapshot.height.shape
    ul, ll, ur, lr, weights = linear_sample_coords(uv, nx, ny)
    ux = snapshot.ux.reshape(-1)
    uy = snapshot.uy.reshape(-1)

    def corner(idx):
        return np.array([ux[idx], uy[idx]])

    return linear_blend(corner(ul), corner(ll), corner(ur), corner(lr), weights)


def sample_solid(snapshot, uv):
    """
    One minus the blended solid mask at uv.

    The blend of the solid flags is inverted for visualization, so 1.0
    means fully liquid.
    """
    return 1.0 - sample_field(snapshot.solid.astype(np.float64), uv)
