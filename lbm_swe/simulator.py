"""
Shallow-Water Simulator

Facade tying configuration, node state, boundary handling and the step
scheduler together. This is the object collaborators hold on to: they
tick it, carve obstacles into it and read published snapshots from it.

Example
-------
>>> from lbm_swe import SimulationConfig, create_simulator
>>> with create_simulator(SimulationConfig(width=64, height=32)) as sim:
...     sim.set_solid_cluster(16, 20)
...     for _ in range(100):
...         sim.tick()
...     speed = sim.sample_velocity((0.5, 0.5))
"""

import logging
import time

import numpy as np

from .boundary import create_channel_walls
from .collision import validate_tau
from .config import SimulationConfig
from .lattice import viscosity_from_tau
from .sampling import sample_height, sample_velocity, sample_solid
from .scheduler import StepScheduler, build_boundary
from .state import NodeState

logger = logging.getLogger(__name__)


def _uv_to_row_col(uv, nx, ny):
    u = min(max(float(uv[0]), 0.0), 1.0)
    v = min(max(float(uv[1]), 0.0), 1.0)
    return int(round(v * (ny - 1))), int(round(u * (nx - 1)))


class ShallowWaterSimulator:
    """
    2D shallow-water LBM simulation.

    Parameters
    ----------
    config : SimulationConfig
        Simulation parameters

    Attributes
    ----------
    config : SimulationConfig
    lattice : Lattice
    """

    def __init__(self, config):
        self._listeners = []
        self._scheduler = None
        self._setup(config)

    def _setup(self, config):
        validate_tau(config.relaxation_time, "relaxation_time")
        self.config = config
        self.lattice = config.build_lattice()
        lat = self.lattice

        self.state = NodeState(lat)
        solid = create_channel_walls(lat.width, lat.height) if config.solid_rails else None
        initial_height = config.resolved_initial_height(lat)
        initial_velocity = config.resolved_initial_velocity(lat)
        self.state.initialize_uniform(initial_height, initial_velocity, solid,
                                      use_numba=config.use_numba)

        boundary = build_boundary(config, lat)
        self._scheduler = StepScheduler(config, lat, self.state, boundary)

        logger.info("Lattice %dx%d, speed %.4f, max speed %.4f, max height %.4f",
                    lat.width, lat.height, lat.e, lat.max_speed, lat.max_height)
        logger.info("Initial height %.4f, initial velocity (%.4f, %.4f), boundary %s, "
                    "viscosity %.3e",
                    initial_height, initial_velocity[0], initial_velocity[1],
                    boundary.scheme.value,
                    viscosity_from_tau(config.relaxation_time, lat.e, lat.dt))

    # -----------------------------------------------------------------
    # Ticking
    # -----------------------------------------------------------------

    def begin_tick(self):
        """Schedule one tick; returns its future."""
        scheduler = self._active()
        if scheduler.in_flight:
            self.complete_tick()
        return scheduler.begin_tick()

    def complete_tick(self):
        """Wait for the scheduled tick and publish it; returns the snapshot."""
        scheduler = self._active()
        published = scheduler.in_flight
        snapshot = scheduler.complete_tick()
        if published:
            self._notify(snapshot)
        return snapshot

    def tick(self):
        """Advance one tick synchronously."""
        self.begin_tick()
        return self.complete_tick()

    def advance(self):
        """
        Publish the previous tick and start the next one.

        Results of the started tick become visible on the following call,
        trading one tick of latency for overlap with the caller.

        Returns
        -------
        snapshot : Snapshot
            The most recently published snapshot
        """
        snapshot = self.complete_tick()
        self.begin_tick()
        return snapshot

    def run(self, num_steps, verbose=True, report_interval=100):
        """
        Run synchronous ticks.

        Returns
        -------
        mlups : float
            Million lattice updates per second
        """
        start = time.perf_counter()
        nodes = self.lattice.num_nodes

        for step in range(num_steps):
            self.tick()

            if verbose and (step + 1) % report_interval == 0:
                elapsed = time.perf_counter() - start
                mlups = (step + 1) * nodes / elapsed / 1e6
                print(f"Step {step + 1}/{num_steps}, MLUPS: {mlups:.2f}")

        total = time.perf_counter() - start
        if verbose:
            print(f"Completed {num_steps} steps in {total:.2f}s "
                  f"({self.compute_time:.2f}s in tick stages since setup)")
        return num_steps * nodes / total / 1e6 if total > 0 else 0.0

    def restart(self, config=None):
        """Rebuild all state from config (or the current config)."""
        if self._scheduler is not None:
            self._scheduler.close()
        self._setup(config if config is not None else self.config)
        self._notify(self.snapshot)

    # -----------------------------------------------------------------
    # Obstacles
    # -----------------------------------------------------------------

    def set_solid(self, row, col):
        """Queue a solid node; applied when the next tick begins."""
        self._active()
        return self.state.mark_solid(row, col)

    def set_solid_cluster(self, row, col):
        """Queue a plus-shaped cluster of five solid nodes."""
        self._active()
        return self.state.mark_solid_cluster(row, col)

    def set_solid_uv(self, uv):
        row, col = _uv_to_row_col(uv, self.lattice.width, self.lattice.height)
        return self.set_solid(row, col)

    def set_solid_cluster_uv(self, uv):
        row, col = _uv_to_row_col(uv, self.lattice.width, self.lattice.height)
        return self.set_solid_cluster(row, col)

    # -----------------------------------------------------------------
    # Published results
    # -----------------------------------------------------------------

    @property
    def snapshot(self):
        """Latest published snapshot."""
        return self._scheduler.snapshot

    @property
    def tick_count(self):
        return self._scheduler.ticks_completed

    @property
    def last_stages(self):
        return self._scheduler.last_stages

    @property
    def compute_time(self):
        """Seconds spent inside tick stages since the last setup or restart."""
        return self._scheduler.total_time

    @property
    def height(self):
        return self.snapshot.height

    @property
    def velocity(self):
        return self.snapshot.velocity

    @property
    def solid(self):
        return self.snapshot.solid

    @property
    def force(self):
        s = self.snapshot
        return np.stack((s.force_x, s.force_y), axis=-1)

    def sample_height(self, uv):
        return sample_height(self.snapshot, uv)

    def sample_velocity(self, uv):
        return sample_velocity(self.snapshot, uv)

    def sample_solid(self, uv):
        """
        Liquid fraction at uv: one minus the blended solid mask.

        1.0 means all four surrounding nodes are liquid and 0.0 means all
        are solid. Subtract from one to get the solid fraction.
        """
        return sample_solid(self.snapshot, uv)

    def statistics(self):
        return self._scheduler.statistics()

    def add_snapshot_listener(self, callback):
        """Call callback(snapshot) after every published tick."""
        self._listeners.append(callback)

    def remove_snapshot_listener(self, callback):
        self._listeners.remove(callback)

    def _notify(self, snapshot):
        for callback in list(self._listeners):
            callback(snapshot)

    # -----------------------------------------------------------------
    # Lifecycle
    # -----------------------------------------------------------------

    @property
    def closed(self):
        return self._scheduler is None

    def close(self):
        if self._scheduler is None:
            return
        scheduler, self._scheduler = self._scheduler, None
        scheduler.close()

    def _active(self):
        if self._scheduler is None:
            raise RuntimeError("Simulator is closed")
        return self._scheduler

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        lat = self.lattice
        return (f"ShallowWaterSimulator({lat.width}x{lat.height}, "
                f"boundary={self.config.boundary.value}, ticks={self.tick_count if not self.closed else 'closed'})")


def create_simulator(config=None, **overrides):
    """
    Build a simulator.

    Parameters
    ----------
    config : SimulationConfig or dict, optional
        Configuration; defaults to SimulationConfig()
    **overrides
        Field overrides applied on top of config

    Returns
    -------
    simulator : ShallowWaterSimulator
    """
    if config is None:
        config = SimulationConfig(**overrides)
    elif isinstance(config, dict):
        config = SimulationConfig.from_dict({**config, **overrides})
    elif overrides:
        config = SimulationConfig.from_dict({**config.to_dict(), **overrides})
    return ShallowWaterSimulator(config)
