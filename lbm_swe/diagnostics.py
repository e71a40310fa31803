"""
Diagnostics

Visualization aids that never feed back into the physics:
- flood fill of solid-node heights from their liquid neighbors
- summary statistics of the published fields
"""

import logging

import numpy as np
from scipy import ndimage

from .lattice import GRAVITY
from .observables import compute_velocity_magnitude, compute_froude_number

logger = logging.getLogger(__name__)

# Height assigned to solid nodes with no liquid neighbor
ISOLATED_SOLID_HEIGHT = -5.0

_NEIGHBOR_KERNEL = np.array([[1.0, 1.0, 1.0],
                             [1.0, 0.0, 1.0],
                             [1.0, 1.0, 1.0]])


def flood_solid_heights(height, solid, out=None):
    """
    Give interior solid nodes the mean height of their liquid neighbors.

    Border nodes and liquid nodes keep their height. Interior solid nodes
    without any liquid 8-neighbor get ISOLATED_SOLID_HEIGHT.

    Parameters
    ----------
    height : ndarray
        Water height, shape (ny, nx)
    solid : ndarray
        Boolean solid mask, shape (ny, nx)
    out : ndarray, optional
        Output buffer, shape (ny, nx)

    Returns
    -------
    filled : ndarray
        Height field with solid nodes filled
    """
    if out is None:
        filled = height.copy()
    else:
        filled = out
        filled[...] = height

    liquid = (~solid).astype(np.float64)
    neighbor_sum = ndimage.convolve(height * liquid, _NEIGHBOR_KERNEL, mode="constant")
    neighbor_count = ndimage.convolve(liquid, _NEIGHBOR_KERNEL, mode="constant")

    interior = np.zeros_like(solid)
    interior[1:-1, 1:-1] = True
    targets = solid & interior

    average = np.divide(neighbor_sum, neighbor_count,
                        out=np.full_like(neighbor_sum, ISOLATED_SOLID_HEIGHT),
                        where=neighbor_count > 0)
    filled[targets] = average[targets]
    return filled


def field_statistics(height, ux, uy, solid, force_x=None, force_y=None, g=GRAVITY):
    """
    Summary of the liquid part of a height/velocity field.

    Returns
    -------
    stats : dict
        min/max height, max speed, max Froude number, max celerity and,
        when a force field is given, its min/max components
    """
    liquid = ~solid
    if not np.any(liquid):
        stats = {"min_height": 0.0, "max_height": 0.0, "max_speed": 0.0,
                 "max_froude": 0.0, "max_celerity": 0.0}
    else:
        h = height[liquid]
        speed = compute_velocity_magnitude(ux, uy)[liquid]
        froude = compute_froude_number(height, ux, uy, g)[liquid]
        stats = {
            "min_height": float(h.min()),
            "max_height": float(h.max()),
            "max_speed": float(speed.max()),
            "max_froude": float(froude.max()),
            "max_celerity": float(np.sqrt(g * h.max())),
        }

    if force_x is not None and force_y is not None:
        stats["min_force"] = (float(force_x.min()), float(force_y.min()))
        stats["max_force"] = (float(force_x.max()), float(force_y.max()))

    return stats


def log_field_statistics(tick, stats):
    logger.debug(
        "tick %d: height [%.5f, %.5f], max speed %.5f, max Froude %.4f, max celerity %.4f",
        tick, stats["min_height"], stats["max_height"], stats["max_speed"],
        stats["max_froude"], stats["max_celerity"],
    )
