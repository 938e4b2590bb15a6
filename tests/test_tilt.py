"""
Unit tests for the live orbit-inclination toggle.
"""

import numpy as np

from orrery.initialization import initialize_state
from orrery.state import BodyRegistry, SimulationState
from orrery.physics import advance_system
from orrery.tilt import (
    apply_orbit_inclination,
    tilt_factor,
    tilt_planets,
    tilt_rotation,
)


def solved(star_system, orbit_inclination):
    registry = BodyRegistry(star_system)
    state = SimulationState(registry.n_total)
    initialize_state(registry, state, star_system.scales, orbit_inclination)
    return registry, state


def advance(registry, state, star_system, n_substeps, dt=0.01):
    advance_system(state.positions, state.velocities, state.spin_angles,
                   registry.planet_indices, registry.satellite_indices, registry.host_index,
                   registry.masses, registry.rotation_speeds,
                   star_system.scales.planet_distance_scale,
                   star_system.scales.satellite_distance_scale,
                   dt, n_substeps, False)


class TestTiltFactor:
    def test_factor(self):
        assert tilt_factor(False, True) == 1
        assert tilt_factor(True, False) == -1
        assert tilt_factor(True, True) == 0
        assert tilt_factor(False, False) == 0


class TestTiltRotation:
    """Tests for the per-orbit rotation."""

    def test_proper_rotation(self):
        R = tilt_rotation(np.radians(5.0), np.radians(120.0))
        np.testing.assert_allclose(R @ R.T, np.eye(3), atol=1e-14)
        assert abs(np.linalg.det(R) - 1.0) < 1e-14

    def test_inverse(self):
        forward = tilt_rotation(np.radians(5.0), np.radians(120.0))
        backward = tilt_rotation(np.radians(-5.0), np.radians(120.0))
        np.testing.assert_allclose(backward @ forward, np.eye(3), atol=1e-14)

    def test_zero_delta_is_identity(self):
        np.testing.assert_allclose(tilt_rotation(0.0, 1.3), np.eye(3), atol=1e-15)


class TestToggle:
    """Tests for enabling and disabling inclination on a live state."""

    def test_unchanged_flag_is_noop(self, two_planet_system):
        registry, state = solved(two_planet_system, True)
        before = state.copy()
        assert apply_orbit_inclination(registry, state, True, True) is True
        np.testing.assert_array_equal(state.positions, before.positions)
        np.testing.assert_array_equal(state.velocities, before.velocities)

    def test_round_trip_at_start(self, two_planet_system):
        """Enable then disable restores every body."""
        registry, state = solved(two_planet_system, False)
        before = state.copy()

        apply_orbit_inclination(registry, state, False, True)
        apply_orbit_inclination(registry, state, True, False)

        np.testing.assert_allclose(state.positions, before.positions, rtol=1e-10, atol=1e-9)
        np.testing.assert_allclose(state.velocities, before.velocities, rtol=1e-10, atol=1e-12)

    def test_round_trip_mid_orbit(self, two_planet_system):
        """Round trip holds for an evolved state too."""
        registry, state = solved(two_planet_system, True)
        advance(registry, state, two_planet_system, 2000)
        before = state.copy()

        apply_orbit_inclination(registry, state, True, False)
        apply_orbit_inclination(registry, state, False, True)

        np.testing.assert_allclose(state.positions, before.positions, rtol=1e-10, atol=1e-9)
        np.testing.assert_allclose(state.velocities, before.velocities, rtol=1e-10, atol=1e-12)

    def test_toggle_changes_state(self, two_planet_system):
        registry, state = solved(two_planet_system, False)
        before = state.copy()
        apply_orbit_inclination(registry, state, False, True)
        assert not np.allclose(state.positions[1:], before.positions[1:])

    def test_enabling_planets_matches_tilted_solve(self, two_planet_system):
        """From perihelion, tilting a flat planet equals solving it tilted."""
        registry, state = solved(two_planet_system, False)
        _, expected = solved(two_planet_system, True)

        tilt_planets(registry, state, 1)

        for p in registry.planet_indices:
            np.testing.assert_allclose(state.positions[p], expected.positions[p], atol=1e-9)
            np.testing.assert_allclose(state.velocities[p], expected.velocities[p], atol=1e-12)

    def test_flattening_removes_out_of_plane_component(self, two_planet_system):
        """Disabling from a tilted solve puts planets back in the XY plane."""
        registry, state = solved(two_planet_system, True)
        apply_orbit_inclination(registry, state, True, False)
        for p in registry.planet_indices:
            assert abs(state.positions[p, 2]) < 1e-9
            assert abs(state.velocities[p, 2]) < 1e-12

    def test_preserves_host_distance_and_speed(self, two_planet_system):
        """Rotations keep every orbit's size and speed."""
        registry, state = solved(two_planet_system, False)
        advance(registry, state, two_planet_system, 500)

        def radii_and_speeds():
            hosts = registry.host_index[1:]
            radii = np.linalg.norm(state.positions[1:] - state.positions[hosts], axis=1)
            speeds = np.linalg.norm(state.velocities[1:], axis=1)
            return radii, speeds

        radii, speeds = radii_and_speeds()
        apply_orbit_inclination(registry, state, False, True)
        new_radii, new_speeds = radii_and_speeds()

        np.testing.assert_allclose(new_radii, radii, rtol=1e-12)
        np.testing.assert_allclose(new_speeds, speeds, rtol=1e-12)

    def test_star_untouched(self, two_planet_system):
        registry, state = solved(two_planet_system, True)
        apply_orbit_inclination(registry, state, True, False)
        np.testing.assert_array_equal(state.positions[0], np.zeros(3))

    def test_untilted_bodies_stay_put(self, earth_moon_system):
        """Bodies with tilted=False receive no inclination change."""
        from dataclasses import replace
        earth_moon_system.planets[0] = replace(earth_moon_system.planets[0], tilted=False)
        earth_moon_system.satellites[0] = replace(earth_moon_system.satellites[0], tilted=False)

        registry, state = solved(earth_moon_system, False)
        before = state.copy()
        apply_orbit_inclination(registry, state, False, True)

        np.testing.assert_allclose(state.positions, before.positions, atol=1e-9)
        np.testing.assert_allclose(state.velocities, before.velocities, atol=1e-12)
