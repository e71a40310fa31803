"""
Step Scheduler

Runs one shallow-water tick as a strict pipeline of stages:

    EDDY_RELAXATION -> COLLIDE -> STREAM -> RECOVER -> INFLOW -> OUTFLOW
    -> [FLOOD_SOLID_HEIGHTS] -> EQUILIBRIUM
    OUTFLOW -> ROTATE_BUFFERS

Each stage finishes for every node before the next one starts. The buffer
rotation (generation flip, then clearing the new staging arena) only needs
the outflow stage, so it runs on a second worker while the flood fill and
the equilibrium for the next tick are computed.

A stage that raises leaves the node state partially updated. The tick is
not published and the scheduler refuses further ticks until the simulation
is rebuilt.

A tick is split in two phases. begin_tick() merges pending obstacle edits
and schedules the work on a background thread; complete_tick() waits for
it and publishes an immutable Snapshot. Callers wanting synchronous
behavior call both back to back.
"""

import enum
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .boundary import BoundaryConditions
from .collision import bgk_collision, bgk_collision_fast, compute_force
from .diagnostics import flood_solid_heights, field_statistics, log_field_statistics
from .equilibrium import compute_equilibrium, compute_equilibrium_fast
from .observables import compute_macroscopic, compute_macroscopic_fast
from .streaming import stream, stream_fast
from .turbulence import (
    compute_inverse_eddy_relaxation_time,
    compute_inverse_eddy_relaxation_time_fast,
    constant_inverse_relaxation_time,
)

logger = logging.getLogger(__name__)


class Stage(enum.Enum):
    """Pipeline stages of one tick, in execution order."""
    EDDY_RELAXATION = "eddy_relaxation"
    COLLIDE = "collide"
    STREAM = "stream"
    RECOVER = "recover"
    INFLOW = "inflow"
    OUTFLOW = "outflow"
    FLOOD_SOLID_HEIGHTS = "flood_solid_heights"
    EQUILIBRIUM = "equilibrium"
    ROTATE_BUFFERS = "rotate_buffers"


def _frozen_copy(array):
    copy = np.array(array, copy=True)
    copy.flags.writeable = False
    return copy


@dataclass(frozen=True, eq=False)
class Snapshot:
    """
    Read-only view of the macroscopic fields after a published tick.

    Attributes
    ----------
    tick : int
        Index of the tick that produced the snapshot (0 = initial state)
    height, ux, uy : ndarray
        Water height and velocity, zero on solid nodes
    solid : ndarray
        Solid mask the tick ran with
    force_x, force_y : ndarray
        Node-centered force field
    filled_height : ndarray, optional
        Height with solid nodes flood filled, when enabled
    """
    tick: int
    height: np.ndarray
    ux: np.ndarray
    uy: np.ndarray
    solid: np.ndarray
    force_x: np.ndarray
    force_y: np.ndarray
    filled_height: Optional[np.ndarray] = None

    @classmethod
    def capture(cls, tick, state, include_filled=False):
        return cls(
            tick=tick,
            height=_frozen_copy(state.height),
            ux=_frozen_copy(state.ux),
            uy=_frozen_copy(state.uy),
            solid=_frozen_copy(state.solid),
            force_x=_frozen_copy(state.force_x),
            force_y=_frozen_copy(state.force_y),
            filled_height=_frozen_copy(state.filled_height) if include_filled else None,
        )

    @property
    def shape(self):
        return self.height.shape

    @property
    def velocity(self):
        """Velocity as an array of shape (ny, nx, 2)."""
        return np.stack((self.ux, self.uy), axis=-1)


class StepScheduler:
    """
    Orders the stages of each tick and publishes their results.

    Parameters
    ----------
    config : SimulationConfig
        Simulation parameters
    lattice : Lattice
        Lattice geometry
    state : NodeState
        Buffers the pipeline mutates
    boundary : BoundaryConditions
        Inlet/outlet handler

    Attributes
    ----------
    ticks_completed : int
        Number of published ticks
    last_stages : list of Stage
        Stages executed by the most recently completed tick, in order
    """

    def __init__(self, config, lattice, state, boundary):
        self.config = config
        self.lattice = lattice
        self.state = state
        self.boundary = boundary

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="lbm-tick")
        self._tail_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="lbm-tail")
        self._future = None
        self._scheduled_tick = 0
        self._stages = []
        self._closed = False
        self._failed = False

        self.ticks_completed = 0
        self.last_stages = []
        self.total_time = 0.0
        self.snapshot = Snapshot.capture(0, state, include_filled=config.fixup_solid_heights)

    @property
    def in_flight(self):
        return self._future is not None

    def begin_tick(self):
        """
        Merge pending obstacle edits and schedule the next tick.

        A tick still in flight is completed and published first. After a
        failed tick the node state is half updated, so no further tick is
        scheduled; rebuild the simulation instead.

        Returns
        -------
        future : concurrent.futures.Future
            Resolves when the tick's stages have all finished
        """
        self._check_open()
        if self._future is not None:
            self.complete_tick()
        if self._failed:
            raise RuntimeError("A previous tick failed; restart the simulation")

        self.state.merge_pending_solids()
        self._scheduled_tick += 1
        self._stages = []
        self._future = self._executor.submit(self._run_tick, self._scheduled_tick)
        return self._future

    def complete_tick(self):
        """
        Wait for the in-flight tick and publish its snapshot.

        Returns the latest snapshot unchanged when nothing is in flight.
        Exceptions raised by a stage propagate and the tick is discarded;
        the scheduler then refuses to begin another tick.

        Returns
        -------
        snapshot : Snapshot
        """
        if self._future is None:
            return self.snapshot

        future, self._future = self._future, None
        try:
            elapsed = future.result()
        except Exception:
            self._failed = True
            logger.error("tick %d failed, node state left partially updated",
                         self._scheduled_tick)
            raise

        self.total_time += elapsed
        self.ticks_completed += 1
        self.last_stages = list(self._stages)
        self.snapshot = Snapshot.capture(self._scheduled_tick, self.state,
                                         include_filled=self.config.fixup_solid_heights)

        if self.config.log_statistics:
            log_field_statistics(self.snapshot.tick, self.statistics())

        return self.snapshot

    def statistics(self):
        """Field statistics of the latest snapshot."""
        s = self.snapshot
        return field_statistics(s.height, s.ux, s.uy, s.solid, s.force_x, s.force_y,
                                self.lattice.gravity)

    def close(self):
        """Finish any in-flight tick and stop the workers."""
        if self._closed:
            return
        try:
            self.complete_tick()
        finally:
            self._closed = True
            self._executor.shutdown(wait=True)
            self._tail_executor.shutdown(wait=True)

    def _check_open(self):
        if self._closed:
            raise RuntimeError("Scheduler is closed")

    # -----------------------------------------------------------------
    # Pipeline
    # -----------------------------------------------------------------

    def _run_tick(self, tick):
        start = time.perf_counter()
        state = self.state
        f = state.distributions.current
        staging = state.distributions.staging

        self._mark(Stage.EDDY_RELAXATION)
        self._eddy_relaxation(f)

        self._mark(Stage.COLLIDE)
        self._collide(f)

        self._mark(Stage.STREAM)
        if self.config.use_numba:
            stream_fast(f, self.boundary.periodic, out=staging)
        else:
            stream(f, self.boundary.periodic, out=staging)

        self._mark(Stage.RECOVER)
        self._recover(staging)

        self._mark(Stage.INFLOW)
        self.boundary.apply_inflow(staging, state.height, state.ux, state.uy, state.solid)

        self._mark(Stage.OUTFLOW)
        self.boundary.apply_outflow(staging, state.height, state.ux, state.uy, state.solid)

        # Distributions are final here; nothing after reads them
        tail = self._tail_executor.submit(self._rotate_buffers)

        if self.config.fixup_solid_heights:
            self._mark(Stage.FLOOD_SOLID_HEIGHTS)
            flood_solid_heights(state.height, state.solid, out=state.filled_height)

        self._mark(Stage.EQUILIBRIUM)
        self._equilibrium()
        tail.result()
        self._mark(Stage.ROTATE_BUFFERS)

        elapsed = time.perf_counter() - start
        logger.debug("tick %d finished in %.3f ms", tick, elapsed * 1e3)
        return elapsed

    def _mark(self, stage):
        self._stages.append(stage)

    def _eddy_relaxation(self, f):
        cfg, state = self.config, self.state
        if not cfg.apply_eddy_relaxation:
            constant_inverse_relaxation_time(state.solid, cfg.relaxation_time, out=state.inv_tau)
        elif cfg.use_numba:
            compute_inverse_eddy_relaxation_time_fast(
                f, state.f_eq, state.height, state.solid, cfg.relaxation_time,
                cfg.smagorinsky_constant, self.lattice.e, out=state.inv_tau)
        else:
            state.inv_tau[...] = compute_inverse_eddy_relaxation_time(
                f, state.f_eq, state.height, state.solid, cfg.relaxation_time,
                cfg.smagorinsky_constant, self.lattice.e)

    def _collide(self, f):
        cfg, state, lat = self.config, self.state, self.lattice
        if cfg.use_numba:
            bgk_collision_fast(f, state.f_eq, state.inv_tau, state.height, state.ux, state.uy,
                               state.solid, cfg.bed_slope, lat.e, lat.dt, lat.gravity,
                               shear=cfg.apply_shear_forces, periodic=self.boundary.periodic,
                               force_x=state.force_x, force_y=state.force_y)
        else:
            fx, fy = compute_force(state.height, state.ux, state.uy, state.solid,
                                   cfg.bed_slope, lat.gravity, cfg.apply_shear_forces)
            state.force_x[...] = fx
            state.force_y[...] = fy
            bgk_collision(f, state.f_eq, state.inv_tau, state.height, state.ux, state.uy,
                          state.solid, cfg.bed_slope, lat.e, lat.dt, lat.gravity,
                          shear=cfg.apply_shear_forces, periodic=self.boundary.periodic)

    def _recover(self, f):
        state, lat = self.state, self.lattice
        if self.config.use_numba:
            compute_macroscopic_fast(f, state.solid, lat.e, lat.max_height, lat.gravity,
                                     height=state.height, ux=state.ux, uy=state.uy)
        else:
            height, ux, uy = compute_macroscopic(f, state.solid, lat.e, lat.max_height,
                                                 lat.gravity)
            state.height[...] = height
            state.ux[...] = ux
            state.uy[...] = uy

    def _equilibrium(self):
        state, lat = self.state, self.lattice
        if self.config.use_numba:
            compute_equilibrium_fast(state.height, state.ux, state.uy, state.solid,
                                     lat.e, lat.gravity, out=state.f_eq)
        else:
            state.f_eq[...] = compute_equilibrium(state.height, state.ux, state.uy,
                                                  state.solid, lat.e, lat.gravity)

    def _rotate_buffers(self):
        # The streamed arena becomes current; the old one is the next staging buffer
        self.state.distributions.flip()
        self.state.distributions.clear_staging()


def build_boundary(config, lattice):
    """Boundary handler for a configuration."""
    return BoundaryConditions(
        config.boundary,
        config.resolved_inlet_height(lattice),
        config.resolved_initial_velocity(lattice),
        lattice.inverse_e,
    )
