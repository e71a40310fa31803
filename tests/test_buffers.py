"""
Tests for distribution buffers and visualization diagnostics.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_swe.lattice import Q
from lbm_swe.buffers import DistributionArena, copy_buffer, fill
from lbm_swe.diagnostics import ISOLATED_SOLID_HEIGHT, field_statistics, flood_solid_heights


class TestCopyBuffer:

    def test_copies(self):
        src = np.arange(6, dtype=np.float64).reshape(2, 3)
        dst = np.zeros((2, 3))
        assert copy_buffer(src, dst) is dst
        np.testing.assert_array_equal(dst, src)

    def test_larger_destination(self):
        src = np.ones(4)
        dst = np.zeros(6)
        copy_buffer(src, dst)
        np.testing.assert_array_equal(dst, [1, 1, 1, 1, 0, 0])

    def test_undersized_destination(self):
        with pytest.raises(ValueError):
            copy_buffer(np.ones(5), np.zeros(4))

    def test_fill(self):
        buf = np.ones((3, 3))
        fill(buf, 2.5)
        assert np.all(buf == 2.5)


class TestDistributionArena:

    def test_current_and_staging_distinct(self):
        arena = DistributionArena(4, 3)
        assert arena.current.shape == (Q, 3, 4)
        assert arena.current is not arena.staging

    def test_flip_swaps_roles(self):
        arena = DistributionArena(4, 3)
        current, staging = arena.current, arena.staging
        arena.flip()
        assert arena.current is staging
        assert arena.staging is current
        assert arena.generation == 1

    def test_load_and_clear(self):
        arena = DistributionArena(4, 3)
        arena.staging[...] = 9.0
        f = np.full((Q, 3, 4), 0.5)
        arena.load(f)
        np.testing.assert_array_equal(arena.current, f)
        assert np.all(arena.staging == 0.0)


class TestFloodSolidHeights:

    def test_averages_liquid_neighbors(self):
        height = np.full((5, 5), 0.2)
        height[2, 1] = 0.4
        solid = np.zeros((5, 5), dtype=bool)
        solid[2, 2] = True
        height[2, 2] = 0.0

        filled = flood_solid_heights(height, solid)

        assert np.isclose(filled[2, 2], (7 * 0.2 + 0.4) / 8)
        assert height[2, 2] == 0.0

    def test_isolated_solid_sentinel(self):
        height = np.full((5, 5), 0.2)
        solid = np.zeros((5, 5), dtype=bool)
        solid[1:4, 1:4] = True
        height[solid] = 0.0

        filled = flood_solid_heights(height, solid)

        assert filled[2, 2] == ISOLATED_SOLID_HEIGHT
        assert filled[1, 1] > 0.0

    def test_border_untouched(self):
        height = np.full((4, 4), 0.2)
        solid = np.zeros((4, 4), dtype=bool)
        solid[0, :] = True
        height[0, :] = 0.0

        filled = flood_solid_heights(height, solid)

        np.testing.assert_array_equal(filled[0], 0.0)

    def test_writes_into_out(self):
        height = np.full((4, 4), 0.2)
        solid = np.zeros((4, 4), dtype=bool)
        out = np.empty_like(height)
        assert flood_solid_heights(height, solid, out=out) is out
        np.testing.assert_array_equal(out, height)


class TestFieldStatistics:

    def test_liquid_only(self):
        height = np.array([[0.0, 0.1], [0.2, 0.3]])
        ux = np.array([[0.0, 0.1], [0.0, 0.0]])
        uy = np.zeros((2, 2))
        solid = np.array([[True, False], [False, False]])

        stats = field_statistics(height, ux, uy, solid)

        assert stats["min_height"] == 0.1
        assert stats["max_height"] == 0.3
        assert np.isclose(stats["max_speed"], 0.1)
        assert np.isclose(stats["max_froude"], 0.1 / np.sqrt(9.8 * 0.1))
        assert "min_force" not in stats

    def test_force_range(self):
        zeros = np.zeros((2, 2))
        fx = np.array([[-1.0, 0.0], [2.0, 0.5]])
        stats = field_statistics(zeros + 0.1, zeros, zeros, zeros.astype(bool), fx, -fx)
        assert stats["min_force"] == (-1.0, -2.0)
        assert stats["max_force"] == (2.0, 1.0)
