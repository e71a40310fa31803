"""
Tests for shallow-water equilibrium distribution functions.

Validates mass and momentum moments, solid masking, and agreement
between the NumPy and Numba implementations.
"""

import pytest
import numpy as np
import sys
import os

# Add package root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_swe.lattice import DIR_X, DIR_Y, GRAVITY, Q
from lbm_swe.equilibrium import (
    compute_equilibrium,
    compute_equilibrium_fast,
    equilibrium_single_site
)

E = 0.05 / 0.016


class TestEquilibriumSingleSite:
    """Test equilibrium distribution at a single node."""

    def test_mass_at_rest(self):
        """Sum of f_eq equals h for still water."""
        h = 0.1
        f_eq = equilibrium_single_site(h, 0.0, 0.0, E)

        assert np.isclose(np.sum(f_eq), h, rtol=1e-14)

    def test_mass_moving(self):
        """Sum of f_eq equals h for moving water."""
        h = 0.25
        f_eq = equilibrium_single_site(h, 0.3, -0.12, E)

        assert np.isclose(np.sum(f_eq), h, rtol=1e-12)

    def test_momentum_moving(self):
        """Sum of f_eq * c_i equals h * u."""
        h, ux, uy = 0.2, 0.15, 0.08
        f_eq = equilibrium_single_site(h, ux, uy, E)

        mom_x = E * np.sum(f_eq * DIR_X)
        mom_y = E * np.sum(f_eq * DIR_Y)

        assert np.isclose(mom_x, h * ux, rtol=1e-12)
        assert np.isclose(mom_y, h * uy, rtol=1e-12)

    def test_rest_link_formula(self):
        h, ux, uy = 0.1, 0.2, 0.1
        f_eq = equilibrium_single_site(h, ux, uy, E)

        expected = (h - (5.0 / 6.0) * GRAVITY * h * h / E**2
                    - (2.0 / 3.0) * h * (ux * ux + uy * uy) / E**2)
        assert np.isclose(f_eq[0], expected, rtol=1e-14)

    def test_symmetry_at_rest(self):
        """Axis links match each other, as do diagonal links."""
        f_eq = equilibrium_single_site(0.1, 0.0, 0.0, E)

        for k in (3, 5, 7):
            assert np.isclose(f_eq[1], f_eq[k])
        for k in (4, 6, 8):
            assert np.isclose(f_eq[2], f_eq[k])

        # Axis weight is four times the diagonal weight
        assert np.isclose(f_eq[1], 4.0 * f_eq[2])

    def test_positive_for_subcritical_flow(self):
        f_eq = equilibrium_single_site(0.1, 0.1, 0.05, E)
        assert np.all(f_eq > 0), f"Negative equilibrium values: {f_eq}"


class TestEquilibriumField:
    """Test equilibrium distribution for an entire field."""

    @pytest.fixture
    def varying_field(self):
        """Spatially varying height and velocity with a solid block."""
        nx, ny = 24, 16
        rng = np.random.default_rng(42)
        height = 0.1 + 0.02 * rng.random((ny, nx))
        ux = 0.1 * rng.standard_normal((ny, nx))
        uy = 0.1 * rng.standard_normal((ny, nx))
        solid = np.zeros((ny, nx), dtype=bool)
        solid[6:9, 10:13] = True
        return height, ux, uy, solid

    def test_shape(self, varying_field):
        height, ux, uy, solid = varying_field
        f_eq = compute_equilibrium(height, ux, uy, solid, E)
        assert f_eq.shape == (Q,) + height.shape

    def test_mass_field(self, varying_field):
        height, ux, uy, solid = varying_field
        f_eq = compute_equilibrium(height, ux, uy, solid, E)

        np.testing.assert_allclose(np.sum(f_eq, axis=0)[~solid], height[~solid], rtol=1e-12)

    def test_momentum_field(self, varying_field):
        height, ux, uy, solid = varying_field
        f_eq = compute_equilibrium(height, ux, uy, solid, E)

        mom_x = E * np.tensordot(DIR_X, f_eq, axes=(0, 0))
        mom_y = E * np.tensordot(DIR_Y, f_eq, axes=(0, 0))
        liquid = ~solid
        np.testing.assert_allclose(mom_x[liquid], (height * ux)[liquid], rtol=1e-10, atol=1e-14)
        np.testing.assert_allclose(mom_y[liquid], (height * uy)[liquid], rtol=1e-10, atol=1e-14)

    def test_solid_nodes_zero(self, varying_field):
        height, ux, uy, solid = varying_field
        f_eq = compute_equilibrium(height, ux, uy, solid, E)
        assert np.all(f_eq[:, solid] == 0.0)

    def test_fast_matches_reference(self, varying_field):
        height, ux, uy, solid = varying_field
        f_ref = compute_equilibrium(height, ux, uy, solid, E)
        f_fast = compute_equilibrium_fast(height, ux, uy, solid, E)

        np.testing.assert_allclose(f_fast, f_ref, rtol=1e-12, atol=1e-15)

    def test_fast_writes_into_buffer(self, varying_field):
        height, ux, uy, solid = varying_field
        out = np.full((Q,) + height.shape, 7.0)
        result = compute_equilibrium_fast(height, ux, uy, solid, E, out=out)

        assert result is out
        assert np.all(out[:, solid] == 0.0)
