"""
Distribution Buffers

Two distribution arenas used ping-pong style: streaming reads the current
arena and scatters into the staging arena, then the generation index flips
so the freshly streamed data becomes current. The old arena is zeroed to
serve as the next tick's staging buffer.
"""

import numpy as np

from .lattice import Q


def copy_buffer(src, dst):
    """
    Copy src into the leading elements of dst.

    Parameters
    ----------
    src : ndarray
        Source array
    dst : ndarray
        Destination array, at least as large as src

    Returns
    -------
    dst : ndarray
        The destination array

    Raises
    ------
    ValueError
        If dst holds fewer elements than src
    """
    if dst.size < src.size:
        raise ValueError(
            f"Destination buffer too small: {dst.size} elements for a source of {src.size}"
        )
    if dst.shape == src.shape:
        np.copyto(dst, src)
    else:
        dst.reshape(-1)[:src.size] = src.reshape(-1)
    return dst


def fill(buffer, value=0.0):
    """Set every element of buffer to value, in place."""
    buffer.fill(value)
    return buffer


class DistributionArena:
    """
    Pair of distribution buffers with a generation index.

    Parameters
    ----------
    nx, ny : int
        Lattice dimensions

    Attributes
    ----------
    generation : int
        Number of flips since construction
    """

    def __init__(self, nx, ny):
        self.shape = (Q, ny, nx)
        self._arenas = (np.zeros(self.shape, dtype=np.float64),
                        np.zeros(self.shape, dtype=np.float64))
        self.generation = 0

    @property
    def current(self):
        """Distributions of the current tick (read by collision and streaming)."""
        return self._arenas[self.generation % 2]

    @property
    def staging(self):
        """Streaming destination for the current tick."""
        return self._arenas[(self.generation + 1) % 2]

    def load(self, f):
        """Replace the current distributions and clear staging."""
        copy_buffer(f, self.current)
        self.clear_staging()

    def flip(self):
        """Make the staging arena current."""
        self.generation += 1

    def clear_staging(self):
        fill(self.staging, 0.0)

    def __repr__(self):
        return f"DistributionArena(shape={self.shape}, generation={self.generation})"
