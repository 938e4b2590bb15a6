"""
Unit tests for the body registry, clock and state containers.
"""

import numpy as np
import pytest
import tempfile
import os

from orrery import constants as const
from orrery.config import ConfigurationError, StarSystem
from orrery.state import (
    PLANET,
    SATELLITE,
    STAR,
    BodyRegistry,
    SimulationClock,
    SimulationState,
)


class TestBodyRegistry:
    """Tests for name resolution and host relationships."""

    def test_ordering(self, two_planet_system):
        """Star first, then planets, then satellites."""
        registry = BodyRegistry(two_planet_system)
        assert registry.names == ['Star', 'Inner', 'Outer', 'Io', 'Europa']
        assert list(registry.body_type) == [STAR, PLANET, PLANET, SATELLITE, SATELLITE]
        assert registry.n_total == 5
        assert registry.n_planets == 2
        assert registry.n_satellites == 2

    def test_host_indices(self, two_planet_system):
        registry = BodyRegistry(two_planet_system)
        assert registry.host_index[0] == -1
        assert registry.host_index[1] == 0
        assert registry.host_index[2] == 0
        assert registry.host_index[3] == 2
        assert registry.host_index[4] == 2

    def test_satellites_of(self, two_planet_system):
        registry = BodyRegistry(two_planet_system)
        assert list(registry.satellites_of(2)) == [3, 4]
        assert len(registry.satellites_of(1)) == 0

    def test_lookup(self, two_planet_system):
        registry = BodyRegistry(two_planet_system)
        assert registry.lookup('Europa') == 4
        assert registry.elements_of(4).name == 'Europa'
        assert registry.elements_of(0) is None

    def test_lookup_unknown_name(self, two_planet_system):
        registry = BodyRegistry(two_planet_system)
        with pytest.raises(KeyError):
            registry.lookup('Ganymede')

    def test_masses(self, two_planet_system):
        registry = BodyRegistry(two_planet_system)
        assert registry.masses[0] == const.M_sun
        assert registry.masses[2] == 1.898e27
        # Satellites carry no mass
        assert np.isnan(registry.masses[3])

    def test_no_star(self):
        with pytest.raises(ConfigurationError):
            BodyRegistry(StarSystem("Empty"))

    def test_duplicate_names(self):
        system = StarSystem("Twins")
        system.set_star('Star', const.M_sun, 1.0)
        system.add_planet('P', 0.1, 1000.0, 0.1, 0.0, 0.0)
        system.add_planet('P', 0.1, 2000.0, 0.1, 0.0, 0.0)
        with pytest.raises(ConfigurationError):
            BodyRegistry(system)

    def test_unknown_host(self):
        system = StarSystem("Orphan")
        system.set_star('Star', const.M_sun, 1.0)
        system.add_satellite('M', 'Nowhere', 0.01, 3.0, 0.0, 0.0, 0.0)
        with pytest.raises(ConfigurationError):
            BodyRegistry(system)

    def test_satellite_of_satellite(self):
        system = StarSystem("Nested")
        system.set_star('Star', const.M_sun, 1.0)
        system.add_planet('P', 0.1, 1000.0, 0.1, 0.0, 0.0, mass=1e24)
        system.add_satellite('M', 'P', 0.01, 3.0, 0.0, 0.0, 0.0)
        system.add_satellite('MM', 'M', 0.001, 0.1, 0.0, 0.0, 0.0)
        with pytest.raises(ConfigurationError):
            BodyRegistry(system)

    def test_satellite_of_star(self):
        system = StarSystem("Star host")
        system.set_star('Star', const.M_sun, 1.0)
        system.add_satellite('M', 'Star', 0.01, 3.0, 0.0, 0.0, 0.0)
        with pytest.raises(ConfigurationError):
            BodyRegistry(system)

    def test_host_without_mass(self):
        system = StarSystem("Massless host")
        system.set_star('Star', const.M_sun, 1.0)
        system.add_planet('P', 0.1, 1000.0, 0.1, 0.0, 0.0)
        system.add_satellite('M', 'P', 0.01, 3.0, 0.0, 0.0, 0.0)
        with pytest.raises(ConfigurationError):
            BodyRegistry(system)


class TestSimulationClock:
    """Tests for the frame clock."""

    def test_tick_advances_step_times_speed(self):
        clock = SimulationClock(step=0.01, speed=5)
        assert clock.tick()
        assert abs(clock.time - 0.05) < 1e-15
        assert clock.frame_count == 1

    def test_paused_clock_does_not_advance(self):
        clock = SimulationClock(running=False)
        assert not clock.tick()
        assert clock.time == 0.0
        assert clock.frame_count == 0

    def test_reset(self):
        clock = SimulationClock()
        for _ in range(10):
            clock.tick()
        clock.reset()
        assert clock.time == 0.0
        assert clock.frame_count == 0


class TestSimulationState:
    """Tests for state arrays and HDF5 persistence."""

    def test_initialization(self):
        state = SimulationState(n_total=4)
        assert state.positions.shape == (4, 3)
        assert state.velocities.shape == (4, 3)
        assert state.spin_angles.shape == (4,)
        assert state.initialized[0]
        assert not np.any(state.initialized[1:])
        assert state.is_finite

    def test_non_finite_detected(self):
        state = SimulationState(n_total=2)
        state.velocities[1, 0] = np.nan
        assert not state.is_finite

    def test_copy_is_independent(self):
        state = SimulationState(n_total=2)
        state.positions[1] = [1.0, 2.0, 3.0]
        copy = state.copy()
        copy.positions[1, 0] = 99.0
        assert state.positions[1, 0] == 1.0

    def test_save_and_load(self):
        """State and clock survive an HDF5 round trip."""
        state = SimulationState(n_total=3)
        state.positions[1] = [-1470.0, 0.0, 0.0]
        state.velocities[1] = [0.0, 26.2, 0.0]
        state.spin_angles[1] = 1.5
        state.initialized[:] = True
        clock = SimulationClock(time=12.5, step=0.02, speed=3, running=False, frame_count=208)

        with tempfile.NamedTemporaryFile(suffix='.h5', delete=False) as f:
            filepath = f.name

        try:
            state.save_to_hdf5(filepath, clock=clock, names=['Sun', 'Earth', 'Moon'])
            loaded = SimulationState.load_from_hdf5(filepath)
            loaded_clock = SimulationClock.load_from_hdf5(filepath)

            np.testing.assert_array_equal(loaded.positions, state.positions)
            np.testing.assert_array_equal(loaded.velocities, state.velocities)
            np.testing.assert_array_equal(loaded.spin_angles, state.spin_angles)
            assert np.all(loaded.initialized)
            assert loaded_clock == clock
        finally:
            os.unlink(filepath)
