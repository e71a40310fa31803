"""
Tests for bilinear field sampling.
"""

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_swe.sampling import (
    linear_blend,
    linear_sample_coords,
    sample_field,
    sample_solid,
    sample_velocity,
)
from lbm_swe.scheduler import Snapshot


def _blend_flat(data, uv, width=2, height=2):
    ul, ll, ur, lr, weights = linear_sample_coords(uv, width, height)
    return linear_blend(data[ul], data[ll], data[ur], data[lr], weights), weights


class TestLinearSampleCoords:

    def test_center(self):
        ul, ll, ur, lr, weights = linear_sample_coords((0.5, 0.5), 2, 2)
        np.testing.assert_allclose(weights, [0.5, 0.5], atol=1e-4)
        assert (ul, ur, ll, lr) == (0, 1, 2, 3)

        blended, _ = _blend_flat(np.array([0.0, 0.0, 1.0, 1.0]), (0.5, 0.5))
        assert np.isclose(blended, 0.5, atol=1e-4)

    def test_left_edge_clamps(self):
        blended, weights = _blend_flat(np.array([0.0, 10.0, 1.0, 10.0]), (0.0, 0.5))
        np.testing.assert_allclose(weights, [0.0, 0.5], atol=1e-4)
        assert np.isclose(blended, 0.5, atol=1e-4)

    def test_right_edge_clamps(self):
        blended, weights = _blend_flat(np.array([0.0, 10.0, 1.0, 20.0]), (1.0, 0.5))
        np.testing.assert_allclose(weights, [0.5, 0.5], atol=1e-4)
        assert np.isclose(blended, 15.0, atol=1e-4)

    def test_off_center(self):
        blended, weights = _blend_flat(np.array([0.0, 0.0, 1.0, 1.0]), (0.6, 0.6))
        np.testing.assert_allclose(weights, [0.7, 0.7], atol=1e-4)
        assert np.isclose(blended, 0.7, atol=1e-4)

    def test_node_center_hits_node(self):
        field = np.arange(12, dtype=np.float64).reshape(3, 4)
        # Center of node (row 1, col 2)
        uv = ((2 + 0.5) / 4, (1 + 0.5) / 3)
        assert np.isclose(sample_field(field, uv), field[1, 2])


def _snapshot(height, ux, uy, solid):
    zeros = np.zeros_like(height)
    return Snapshot(tick=0, height=height, ux=ux, uy=uy, solid=solid,
                    force_x=zeros, force_y=zeros)


class TestSnapshotSampling:

    def test_velocity(self):
        ux = np.array([[0.0, 1.0], [0.0, 1.0]])
        uy = np.array([[0.0, 0.0], [2.0, 2.0]])
        snap = _snapshot(np.ones((2, 2)), ux, uy, np.zeros((2, 2), dtype=bool))

        velocity = sample_velocity(snap, (0.5, 0.5))

        np.testing.assert_allclose(velocity, [0.5, 1.0])

    def test_solid_inverted(self):
        solid = np.array([[True, True], [False, False]])
        snap = _snapshot(np.ones((2, 2)), np.zeros((2, 2)), np.zeros((2, 2)), solid)

        assert np.isclose(sample_solid(snap, (0.5, 0.5)), 0.5)
        assert np.isclose(sample_solid(snap, (0.5, 0.0)), 0.0)
        assert np.isclose(sample_solid(snap, (0.5, 1.0)), 1.0)

    @pytest.mark.parametrize("uv", [(-1.0, -1.0), (2.0, 2.0), (0.0, 3.0)])
    def test_out_of_range_clamps(self, uv):
        field = np.arange(4, dtype=np.float64).reshape(2, 2)
        value = sample_field(field, uv)
        assert field.min() <= value <= field.max()
