"""
D2Q9 Lattice Constants and Utilities

Defines the D2Q9 link table used by the shallow-water solver and the
immutable lattice geometry derived from spacing and timestep.
"""
import math

import numpy as np

# D2Q9 link layout (row index grows with +y)
#     4   3   2
#       \ | /
#     5 - 0 - 1
#       / | \
#     6   7   8
#
# Odd links are axis-aligned, even links are diagonal.

# Link offsets
EX = np.array([0, 1, 1, 0, -1, -1, -1, 0, 1], dtype=np.int32)
EY = np.array([0, 0, 1, 1, 1, 0, -1, -1, -1], dtype=np.int32)

# Link directions: unit length on axes, sqrt(2) on diagonals
DIR_X = EX.astype(np.float64)
DIR_Y = EY.astype(np.float64)

# Opposite link indices (for bounce-back)
OPPOSITE = np.array([0, 5, 6, 7, 8, 1, 2, 3, 4], dtype=np.int32)

# Equilibrium coefficients per link: gravity, linear, quadratic, kinetic
EQ_GRAVITY = np.array([0.0] + [1/6, 1/24] * 4, dtype=np.float64)
EQ_LINEAR = np.array([0.0] + [1/3, 1/12] * 4, dtype=np.float64)
EQ_QUADRATIC = np.array([0.0] + [1/2, 1/8] * 4, dtype=np.float64)
EQ_KINETIC = np.array([0.0] + [1/6, 1/24] * 4, dtype=np.float64)

# Number of links
Q = 9

# Physical constants
GRAVITY = 9.8
MIN_HEIGHT = 0.001
FROUDE_LIMIT = 0.75
STABILITY_EPSILON = 0.001
MANNING_COEFFICIENT = 0.025
SQRT2 = math.sqrt(2.0)


class Lattice:
    """
    Immutable lattice geometry.

    Parameters
    ----------
    width, height : int
        Number of columns and rows
    spacing : float
        Node spacing in meters
    dt : float
        Timestep in seconds
    gravity : float
        Gravitational acceleration
    """

    __slots__ = ("width", "height", "spacing", "dt", "gravity",
                 "e", "inverse_e", "max_height", "max_speed")

    def __init__(self, width, height, spacing, dt, gravity=GRAVITY):
        e = spacing / dt
        values = {
            "width": int(width),
            "height": int(height),
            "spacing": float(spacing),
            "dt": float(dt),
            "gravity": float(gravity),
            "e": e,
            "inverse_e": 1.0 / e,
            "max_height": e * e / gravity - STABILITY_EPSILON,
            "max_speed": abs(e) - STABILITY_EPSILON,
        }
        for name, value in values.items():
            object.__setattr__(self, name, value)

    def __setattr__(self, name, value):
        raise AttributeError(f"Lattice is immutable, cannot set {name!r}")

    @property
    def shape(self):
        """Field shape (rows, cols)."""
        return (self.height, self.width)

    @property
    def num_nodes(self):
        return self.width * self.height

    def __repr__(self):
        return (f"Lattice(width={self.width}, height={self.height}, "
                f"spacing={self.spacing}, dt={self.dt}, e={self.e:.4f})")


def viscosity_from_tau(tau, e, dt):
    """
    Kinematic viscosity of the shallow-water lattice.

    nu = e^2 * dt * (2 * tau - 1) / 6

    Parameters
    ----------
    tau : float
        Relaxation time (must be > 0.5)
    e : float
        Lattice speed
    dt : float
        Timestep
    """
    if tau <= 0.5:
        raise ValueError(f"tau must be > 0.5 for stability, got {tau}")
    return e * e * dt * (2.0 * tau - 1.0) / 6.0

