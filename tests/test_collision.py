"""
Tests for collision operators.

Validates bounce-back, BGK relaxation, bed-slope forcing and agreement
between the NumPy and Numba implementations.
"""

import warnings

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_swe.lattice import DIR_X, DIR_Y, Q, GRAVITY
from lbm_swe.equilibrium import compute_equilibrium
from lbm_swe.collision import (
    apply_bounce_back,
    bgk_collision,
    bgk_collision_fast,
    compute_force,
    validate_tau,
)

E = 0.05 / 0.016
DT = 0.016


@pytest.fixture
def flow_state():
    """Perturbed equilibrium with a solid block."""
    nx, ny = 20, 12
    rng = np.random.default_rng(7)
    height = 0.1 + 0.01 * rng.random((ny, nx))
    ux = 0.05 * rng.standard_normal((ny, nx))
    uy = 0.05 * rng.standard_normal((ny, nx))
    solid = np.zeros((ny, nx), dtype=bool)
    solid[4:7, 8:11] = True
    height[solid] = 0.0
    ux[solid] = 0.0
    uy[solid] = 0.0

    f_eq = compute_equilibrium(height, ux, uy, solid, E)
    f = f_eq + 1e-4 * rng.random((Q, ny, nx))
    inv_tau = np.where(solid, 0.0, 1.0 / 0.6)
    return f, f_eq, inv_tau, height, ux, uy, solid


class TestBounceBack:
    """Test bounce-back at solid nodes."""

    def test_involution(self):
        """Applying bounce-back twice restores the distribution."""
        rng = np.random.default_rng(0)
        f = rng.random((Q, 6, 6))
        solid = rng.random((6, 6)) > 0.5
        original = f.copy()

        apply_bounce_back(f, solid)
        apply_bounce_back(f, solid)

        np.testing.assert_array_equal(f, original)

    def test_swaps_opposite_links(self):
        f = np.arange(Q, dtype=np.float64).reshape(Q, 1, 1) * np.ones((Q, 1, 1))
        solid = np.ones((1, 1), dtype=bool)

        apply_bounce_back(f, solid)

        np.testing.assert_array_equal(f[:, 0, 0], [0, 5, 6, 7, 8, 1, 2, 3, 4])

    def test_liquid_untouched(self):
        rng = np.random.default_rng(1)
        f = rng.random((Q, 4, 4))
        solid = np.zeros((4, 4), dtype=bool)
        original = f.copy()

        apply_bounce_back(f, solid)

        np.testing.assert_array_equal(f, original)


class TestBGKCollision:
    """Test BGK relaxation with forcing."""

    def test_mass_conserved_without_slope(self, flow_state):
        f, f_eq, inv_tau, height, ux, uy, solid = flow_state
        mass_before = np.sum(f)

        bgk_collision(f, f_eq, inv_tau, height, ux, uy, solid, (0.0, 0.0), E, DT)

        assert np.isclose(np.sum(f), mass_before, rtol=1e-12)

    def test_equilibrium_is_fixed_point(self, flow_state):
        _, f_eq, inv_tau, height, ux, uy, solid = flow_state
        f = f_eq.copy()

        bgk_collision(f, f_eq, inv_tau, height, ux, uy, solid, (0.0, 0.0), E, DT)

        liquid = ~solid
        np.testing.assert_allclose(f[:, liquid], f_eq[:, liquid], rtol=1e-14)

    def test_full_relaxation(self, flow_state):
        """With tau = 1 the post-collision state is the equilibrium."""
        f, f_eq, _, height, ux, uy, solid = flow_state
        inv_tau = np.where(solid, 0.0, 1.0)

        bgk_collision(f, f_eq, inv_tau, height, ux, uy, solid, (0.0, 0.0), E, DT)

        liquid = ~solid
        np.testing.assert_allclose(f[:, liquid], f_eq[:, liquid], rtol=1e-12)

    def test_slope_adds_downhill_momentum(self):
        """Uniform still water on a slope gains momentum in -slope direction."""
        nx, ny = 8, 8
        height = np.full((ny, nx), 0.1)
        ux = np.zeros((ny, nx))
        uy = np.zeros((ny, nx))
        solid = np.zeros((ny, nx), dtype=bool)
        f_eq = compute_equilibrium(height, ux, uy, solid, E)
        f = f_eq.copy()
        inv_tau = np.full((ny, nx), 1.0 / 0.6)
        slope = (-0.005, 0.0)

        bgk_collision(f, f_eq, inv_tau, height, ux, uy, solid, slope, E, DT, periodic=True)

        mom_x = E * np.tensordot(DIR_X, f, axes=(0, 0))
        # Force per unit area is -g h s_x; momentum gain per tick is dt * F
        expected = DT * (-GRAVITY * 0.1 * slope[0])
        np.testing.assert_allclose(mom_x, expected, rtol=1e-12)
        # Forcing carries no mass
        np.testing.assert_allclose(np.sum(f, axis=0), 0.1, rtol=1e-12)

    def test_solid_nodes_bounced(self, flow_state):
        f, f_eq, inv_tau, height, ux, uy, solid = flow_state
        expected = f.copy()
        apply_bounce_back(expected, solid)

        bgk_collision(f, f_eq, inv_tau, height, ux, uy, solid, (-0.005, 0.0), E, DT)

        np.testing.assert_array_equal(f[:, solid], expected[:, solid])

    @pytest.mark.parametrize("periodic", [False, True])
    @pytest.mark.parametrize("shear", [False, True])
    def test_fast_matches_reference(self, flow_state, periodic, shear):
        f, f_eq, inv_tau, height, ux, uy, solid = flow_state
        f_ref = f.copy()
        f_fast = f.copy()
        slope = (-0.005, 0.002)

        bgk_collision(f_ref, f_eq, inv_tau, height, ux, uy, solid, slope, E, DT,
                      shear=shear, periodic=periodic)
        bgk_collision_fast(f_fast, f_eq, inv_tau, height, ux, uy, solid, slope, E, DT,
                           shear=shear, periodic=periodic)

        np.testing.assert_allclose(f_fast, f_ref, rtol=1e-12, atol=1e-15)

    def test_fast_writes_force_field(self, flow_state):
        f, f_eq, inv_tau, height, ux, uy, solid = flow_state
        force_x = np.zeros_like(height)
        force_y = np.zeros_like(height)
        slope = (-0.005, 0.001)

        bgk_collision_fast(f, f_eq, inv_tau, height, ux, uy, solid, slope, E, DT,
                           force_x=force_x, force_y=force_y)

        fx, fy = compute_force(height, ux, uy, solid, slope)
        np.testing.assert_allclose(force_x, fx, rtol=1e-12)
        np.testing.assert_allclose(force_y, fy, rtol=1e-12)
        assert np.all(force_x[solid] == 0.0)


class TestValidateTau:

    def test_rejects_unstable(self):
        with pytest.raises(ValueError):
            validate_tau(0.5)

    def test_accepts_typical(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            assert validate_tau(0.51) == 0.51

    def test_warns_large(self):
        with pytest.warns(UserWarning):
            validate_tau(2.5)
