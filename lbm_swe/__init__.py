"""
Shallow-water Lattice Boltzmann solver.

D2Q9 shallow-water LBM with Smagorinsky eddy relaxation, bed-slope
forcing, periodic/zero-gradient/Zou-He/Zhou-He boundaries and a
two-phase tick that publishes immutable snapshots.
"""

from .config import BoundaryCondition, ConfigurationError, SimulationConfig
from .lattice import Lattice
from .scheduler import Snapshot, Stage
from .simulator import ShallowWaterSimulator, create_simulator

__version__ = "0.1.0"

__all__ = [
    "BoundaryCondition",
    "ConfigurationError",
    "Lattice",
    "ShallowWaterSimulator",
    "SimulationConfig",
    "Snapshot",
    "Stage",
    "create_simulator",
]
