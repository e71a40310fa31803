"""
Streaming Step Implementations

Propagation of post-collision distributions along their links.

The streaming step moves each distribution f_i from node x to x + e_i:
    f_i(x + e_i, t + dt) = f_i^out(x, t)

This is a push (scatter) scheme, so it always writes into a separate
output buffer. With periodic topology the destination wraps around the
lattice; otherwise distributions leaving the domain are dropped and the
slots they would have filled stay as they are in the output buffer
(zero after the staging buffer is cleared) for the boundary stage.
"""

import numpy as np
from numba import njit, prange
from .lattice import EX, EY, Q


def stream_periodic(f, out=None):
    """
    Streaming step with periodic boundary conditions.

    Implemented with np.roll for clarity.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    out : ndarray, optional
        Output buffer, shape (Q, ny, nx)

    Returns
    -------
    f_streamed : ndarray
        Post-streaming distribution
    """
    f_out = np.zeros_like(f) if out is None else out

    for i in range(Q):
        # np.roll shifts toward increasing index for positive offsets
        f_out[i] = np.roll(np.roll(f[i], EX[i], axis=1), EY[i], axis=0)

    return f_out


def stream_bounded(f, out=None):
    """
    Streaming step without wraparound.

    Distributions that would leave the lattice are dropped.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    out : ndarray, optional
        Output buffer, shape (Q, ny, nx). Slots not reached by any
        source keep their current value.

    Returns
    -------
    f_streamed : ndarray
        Post-streaming distribution
    """
    f_out = np.zeros_like(f) if out is None else out
    q, ny, nx = f.shape

    for i in range(Q):
        dx, dy = int(EX[i]), int(EY[i])
        src_rows = slice(max(0, -dy), ny - max(0, dy))
        src_cols = slice(max(0, -dx), nx - max(0, dx))
        dst_rows = slice(max(0, dy), ny - max(0, -dy))
        dst_cols = slice(max(0, dx), nx - max(0, -dx))
        f_out[i, dst_rows, dst_cols] = f[i, src_rows, src_cols]

    return f_out


def stream(f, periodic, out=None):
    """Dispatch to periodic or bounded streaming."""
    if out is f:
        raise ValueError("Streaming cannot write into its own source buffer")
    if periodic:
        return stream_periodic(f, out)
    return stream_bounded(f, out)


@njit(parallel=True, cache=True, nogil=True)
def stream_numba(f, f_out, ex, ey, periodic):
    """
    Numba-accelerated push streaming.

    Parameters
    ----------
    f : ndarray
        Input distribution functions, shape (Q, ny, nx)
    f_out : ndarray
        Output distribution functions, shape (Q, ny, nx)
    ex, ey : ndarray
        Link offsets
    periodic : bool
        Wrap destinations around the lattice
    """
    q, ny, nx = f.shape

    # Each source row writes to distinct destination slots per link
    for j in prange(ny):
        for i in range(nx):
            f_out[0, j, i] = f[0, j, i]
            for k in range(1, q):
                i_dst = i + ex[k]
                j_dst = j + ey[k]

                if periodic:
                    i_dst = (i_dst + nx) % nx
                    j_dst = (j_dst + ny) % ny
                elif i_dst < 0 or i_dst >= nx or j_dst < 0 or j_dst >= ny:
                    continue

                f_out[k, j_dst, i_dst] = f[k, j, i]


def stream_fast(f, periodic, out=None):
    """
    Fast streaming using Numba.

    Parameters
    ----------
    f : ndarray
        Distribution functions, shape (Q, ny, nx)
    periodic : bool
        Wrap destinations around the lattice
    out : ndarray, optional
        Output buffer, shape (Q, ny, nx)

    Returns
    -------
    f_streamed : ndarray
        Post-streaming distribution
    """
    if out is f:
        raise ValueError("Streaming cannot write into its own source buffer")
    f_out = np.zeros_like(f) if out is None else out
    stream_numba(f, f_out, EX, EY, bool(periodic))
    return f_out
