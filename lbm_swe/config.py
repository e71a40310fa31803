"""
Simulation Configuration

Immutable parameters of a shallow-water LBM run. A configuration is
validated once at construction; invalid setups fail here and never
mid-tick.
"""

import enum
import math
from dataclasses import dataclass, fields

from .lattice import Lattice, SQRT2, GRAVITY


class ConfigurationError(ValueError):
    """Raised when a simulation configuration is invalid."""


class BoundaryCondition(enum.Enum):
    """Inlet/outlet treatment for columns 0 and W-1."""
    PERIODIC = "periodic"
    ZERO_GRADIENT = "zero_gradient"
    ZOU_HE = "zou_he"
    ZHOU_HE = "zhou_he"

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("-", "_")
        for member in cls:
            if key in (member.value, member.name.lower()):
                return member
        raise ConfigurationError(
            f"Unknown boundary condition {value!r}, "
            f"expected one of {[m.value for m in cls]}"
        )


@dataclass(frozen=True)
class SimulationConfig:
    """
    Parameters for a shallow-water simulation.

    Parameters
    ----------
    width, height : int
        Lattice dimensions (columns, rows)
    spacing : float
        Node spacing in meters
    dt : float
        Timestep in seconds
    relaxation_time : float
        Base BGK relaxation time tau0 (> 0.5)
    smagorinsky_constant : float
        Smagorinsky constant Cs
    apply_eddy_relaxation : bool
        Use the Smagorinsky closure for a per-node relaxation time
    bed_slope : tuple of float
        Bed slope vector (sx, sy)
    boundary : BoundaryCondition or str
        Inlet/outlet scheme
    initial_height : float
        Starting water height (clamped to the lattice max height)
    initial_velocity : tuple of float, optional
        Starting velocity (ux, uy). Derived from the max speed if None.
    inlet_height : float, optional
        Prescribed inlet height, defaults to the initial height
    apply_shear_forces : bool
        Add Manning bed friction to the forcing term
    solid_rails : bool
        Paint the first and last rows solid
    fixup_solid_heights : bool
        Flood fill solid heights for visualization
    use_numba : bool
        Use the compiled kernels instead of the NumPy reference
    log_statistics : bool
        Log field statistics every published tick
    """
    width: int = 65
    height: int = 193
    spacing: float = 0.05
    dt: float = 0.016
    relaxation_time: float = 0.51
    smagorinsky_constant: float = 0.18
    apply_eddy_relaxation: bool = True
    bed_slope: tuple = (-0.005, 0.0)
    boundary: BoundaryCondition = BoundaryCondition.ZOU_HE
    initial_height: float = 0.1
    initial_velocity: tuple = None
    inlet_height: float = None
    apply_shear_forces: bool = False
    solid_rails: bool = True
    fixup_solid_heights: bool = False
    use_numba: bool = True
    log_statistics: bool = False
    gravity: float = GRAVITY

    def __post_init__(self):
        object.__setattr__(self, "boundary", BoundaryCondition.parse(self.boundary))
        object.__setattr__(self, "bed_slope", _as_pair(self.bed_slope, "bed_slope"))
        if self.initial_velocity is not None:
            object.__setattr__(self, "initial_velocity",
                               _as_pair(self.initial_velocity, "initial_velocity"))
        self.validate()

    def validate(self):
        if self.width < 3 or self.height < 3:
            raise ConfigurationError(
                f"Lattice must be at least 3x3, got {self.width}x{self.height}"
            )
        if self.spacing <= 0.0 or self.dt <= 0.0:
            raise ConfigurationError(
                f"spacing and dt must be positive (spacing={self.spacing}, dt={self.dt})"
            )
        if self.relaxation_time <= 0.5:
            raise ConfigurationError(
                f"relaxation_time must be > 0.5 for stability, got {self.relaxation_time}"
            )
        if self.smagorinsky_constant < 0.0:
            raise ConfigurationError(
                f"smagorinsky_constant must be >= 0, got {self.smagorinsky_constant}"
            )
        if self.initial_height <= 0.0:
            raise ConfigurationError(
                f"initial_height must be positive, got {self.initial_height}"
            )
        if self.inlet_height is not None and self.inlet_height <= 0.0:
            raise ConfigurationError(
                f"inlet_height must be positive, got {self.inlet_height}"
            )
        if self.boundary in (BoundaryCondition.ZOU_HE, BoundaryCondition.ZHOU_HE):
            if self.initial_velocity is not None and self.initial_velocity[1] != 0.0:
                raise ConfigurationError(
                    f"Inlet y-velocity must be zero for {self.boundary.value}, "
                    f"got {self.initial_velocity[1]}"
                )

    @classmethod
    def from_dict(cls, values):
        """Build a configuration from plain values, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(values) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        return cls(**dict(values))

    def to_dict(self):
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        values["boundary"] = self.boundary.value
        return values

    @property
    def periodic(self):
        return self.boundary is BoundaryCondition.PERIODIC

    def build_lattice(self):
        return Lattice(self.width, self.height, self.spacing, self.dt, self.gravity)

    def resolved_initial_height(self, lattice):
        return min(lattice.max_height, self.initial_height)

    def resolved_initial_velocity(self, lattice):
        """Initial velocity, a fraction of the max speed when not configured."""
        if self.initial_velocity is not None:
            return self.initial_velocity
        ux = (self.initial_height / lattice.max_height) * lattice.max_speed / SQRT2
        return (ux, 0.0)

    def resolved_inlet_height(self, lattice):
        if self.inlet_height is not None:
            return min(lattice.max_height, self.inlet_height)
        return self.resolved_initial_height(lattice)


def _as_pair(value, name):
    try:
        x, y = value
        pair = (float(x), float(y))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{name} must be a pair of numbers, got {value!r}") from exc
    if not all(math.isfinite(v) for v in pair):
        raise ConfigurationError(f"{name} must be finite, got {value!r}")
    return pair
