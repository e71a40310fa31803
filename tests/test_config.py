"""
Tests for simulation configuration and lattice geometry.
"""

import dataclasses

import pytest
import numpy as np
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from lbm_swe.config import BoundaryCondition, ConfigurationError, SimulationConfig
from lbm_swe.lattice import (
    Lattice, OPPOSITE, EX, EY, GRAVITY, SQRT2,
    viscosity_from_tau,
)


class TestLattice:

    def test_derived_quantities(self):
        lat = Lattice(65, 193, 0.05, 0.016)
        assert np.isclose(lat.e, 3.125)
        assert np.isclose(lat.inverse_e, 0.32)
        assert np.isclose(lat.max_height, 3.125**2 / GRAVITY - 0.001)
        assert np.isclose(lat.max_speed, 3.125 - 0.001)
        assert lat.shape == (193, 65)
        assert lat.num_nodes == 65 * 193

    def test_immutable(self):
        lat = Lattice(8, 8, 0.05, 0.016)
        with pytest.raises(AttributeError):
            lat.width = 10

    def test_opposite_links(self):
        for k in range(1, 9):
            assert EX[OPPOSITE[k]] == -EX[k]
            assert EY[OPPOSITE[k]] == -EY[k]
            assert OPPOSITE[OPPOSITE[k]] == k

    def test_viscosity_from_tau(self):
        nu = viscosity_from_tau(0.8, 3.125, 0.016)
        assert np.isclose(nu, 3.125**2 * 0.016 * 0.6 / 6.0)

    def test_viscosity_rejects_unstable_tau(self):
        with pytest.raises(ValueError):
            viscosity_from_tau(0.5, 3.125, 0.016)


class TestSimulationConfig:

    def test_defaults(self):
        cfg = SimulationConfig()
        assert (cfg.width, cfg.height) == (65, 193)
        assert cfg.boundary is BoundaryCondition.ZOU_HE
        assert cfg.bed_slope == (-0.005, 0.0)
        assert cfg.solid_rails

    def test_frozen(self):
        cfg = SimulationConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            cfg.width = 10

    def test_replace_revalidates(self):
        with pytest.raises(ConfigurationError):
            dataclasses.replace(SimulationConfig(), relaxation_time=0.5)

    @pytest.mark.parametrize("name", ["zou_he", "ZOU-HE", "Zou_He"])
    def test_boundary_by_name(self, name):
        cfg = SimulationConfig(boundary=name)
        assert cfg.boundary is BoundaryCondition.ZOU_HE

    def test_unknown_boundary(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig(boundary="open")

    @pytest.mark.parametrize("overrides", [
        {"width": 2},
        {"height": 0},
        {"spacing": 0.0},
        {"dt": -1.0},
        {"relaxation_time": 0.5},
        {"smagorinsky_constant": -0.1},
        {"initial_height": 0.0},
        {"inlet_height": -0.1},
        {"bed_slope": (1.0,)},
        {"bed_slope": (float("nan"), 0.0)},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ConfigurationError):
            SimulationConfig(**overrides)

    @pytest.mark.parametrize("boundary", ["zou_he", "zhou_he"])
    def test_tangential_inlet_rejected(self, boundary):
        with pytest.raises(ConfigurationError):
            SimulationConfig(boundary=boundary, initial_velocity=(0.1, 0.05))

    def test_tangential_velocity_allowed_when_periodic(self):
        cfg = SimulationConfig(boundary="periodic", initial_velocity=(0.1, 0.05))
        assert cfg.initial_velocity == (0.1, 0.05)

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)

    def test_from_dict_round_trip(self):
        cfg = SimulationConfig(width=32, height=16, boundary="zero_gradient")
        again = SimulationConfig.from_dict(cfg.to_dict())
        assert again == cfg

    def test_from_dict_rejects_unknown(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig.from_dict({"width": 32, "viscosity": 0.1})

    def test_default_initial_velocity(self):
        cfg = SimulationConfig()
        lat = cfg.build_lattice()
        ux, uy = cfg.resolved_initial_velocity(lat)
        assert np.isclose(ux, (0.1 / lat.max_height) * lat.max_speed / SQRT2)
        assert uy == 0.0

    def test_initial_height_clamped(self):
        cfg = SimulationConfig(initial_height=5.0)
        lat = cfg.build_lattice()
        assert cfg.resolved_initial_height(lat) == lat.max_height
        assert cfg.resolved_inlet_height(lat) == lat.max_height

    def test_inlet_height_override(self):
        cfg = SimulationConfig(inlet_height=0.2)
        assert cfg.resolved_inlet_height(cfg.build_lattice()) == 0.2
