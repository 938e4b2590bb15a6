"""
Unit tests for the star system catalog.

Tests cover:
- Library systems
- Reproducible random systems
- Custom system parsing
- Mode dispatch
"""

import json

import numpy as np
import pytest

from orrery import constants as const
from orrery.catalog import (
    STAR_SYSTEM_LIBRARY,
    get_star_system,
    load_star_system,
    random_star_system,
    rotation_speed_from_period,
    star_system_from_dict,
)
from orrery.config import ConfigurationError
from orrery.state import BodyRegistry


class TestLibrary:
    """Tests for the built-in star systems."""

    def test_every_library_system_builds_a_registry(self):
        """Every library system has a star and consistent hosts."""
        for name in STAR_SYSTEM_LIBRARY:
            system = get_star_system(name)
            registry = BodyRegistry(system)
            assert registry.n_total == 1 + len(system.planets) + len(system.satellites)
            assert system.scales.planet_distance_scale > 0
            assert system.scales.satellite_distance_scale > 0

    def test_solar_inner(self):
        system = get_star_system('SolarInner')
        earth = next(p for p in system.planets if p.name == 'Earth')
        moon = system.satellites[0]

        assert earth.mass == const.M_earth
        assert earth.semi_major == 1496.0
        assert moon.name == 'Moon'
        assert moon.host_name == 'Earth'
        assert moon.semi_major == 3.844

    def test_fresh_copies(self):
        """Mutating one copy does not leak into the next."""
        first = get_star_system('SolarInner')
        first.planets.clear()
        second = get_star_system('SolarInner')
        assert len(second.planets) == 4

    def test_unknown_system(self):
        with pytest.raises(ConfigurationError):
            get_star_system('Tatooine')


class TestRandomSystems:
    """Tests for seeded random systems."""

    def test_same_seed_same_system(self):
        a = random_star_system(1234)
        b = random_star_system(1234)
        assert a.star == b.star
        assert a.planets == b.planets

    def test_different_seed_different_system(self):
        a = random_star_system(1)
        b = random_star_system(2)
        assert a.star.mass != b.star.mass

    def test_ranges(self):
        for seed in range(20):
            system = random_star_system(seed)
            assert 1.0e30 <= system.star.mass < 2.0e30
            assert 1 <= len(system.planets) <= 4

            previous = 0.0
            for planet in system.planets:
                assert planet.semi_major - previous >= 500
                assert planet.semi_major - previous < 700
                assert 0.4 <= planet.eccentricity < 0.5
                assert 0.0 <= planet.longitude_perihelion < 22.5
                assert 0.0 <= planet.orbit_inclination < 1.0
                previous = planet.semi_major

    def test_planet_names(self):
        system = random_star_system(7)
        expected = [chr(ord('b') + j) for j in range(len(system.planets))]
        assert [p.name for p in system.planets] == expected
        assert system.name == "Random - 7"


class TestCustomSystems:
    """Tests for user-supplied star systems."""

    @pytest.fixture
    def details(self):
        return {
            'name': 'Binary Moons',
            'star': {'name': 'Alpha', 'mass': 2.0e30, 'radius': 8.0},
            'planets': [
                {'name': 'Big', 'radius': 0.5, 'semiMajor': 3000.0, 'eccentricity': 0.1,
                 'longitudePerihelion': 45.0, 'orbitInclination': 2.0, 'mass': 1.0e27},
            ],
            'satellites': [
                {'name': 'Small', 'hostPlanet': 'Big', 'radius': 0.01, 'semiMajor': 5.0,
                 'eccentricity': 0.0, 'longitudePerihelion': 0.0, 'orbitInclination': 1.0},
            ],
            'scales': {'starScale': 1, 'planetScale': 1, 'satelliteScale': 1,
                       'planetDistanceScale': 2, 'satelliteDistanceScale': 10},
        }

    def test_camel_case_mapping(self, details):
        system = star_system_from_dict(details)
        assert system.name == 'Binary Moons'
        assert system.planets[0].semi_major == 3000.0
        assert system.planets[0].longitude_perihelion == 45.0
        assert system.satellites[0].host_name == 'Big'
        assert system.scales.planet_distance_scale == 2.0
        assert system.scales.satellite_distance_scale == 10.0

    def test_json_text(self, details):
        system = star_system_from_dict(json.dumps(details))
        assert system.planets[0].mass == 1.0e27

    def test_default_scales_without_scales_entry(self, details):
        del details['scales']
        system = star_system_from_dict(details)
        assert system.scales.planet_distance_scale == 1.0
        assert system.camera_settings is not None

    def test_missing_star(self, details):
        del details['star']
        with pytest.raises(ConfigurationError):
            star_system_from_dict(details)

    def test_missing_field(self, details):
        del details['planets'][0]['semiMajor']
        with pytest.raises(ConfigurationError):
            star_system_from_dict(details)

    def test_invalid_eccentricity(self, details):
        details['planets'][0]['eccentricity'] = 1.5
        with pytest.raises(ConfigurationError):
            star_system_from_dict(details)

    def test_unknown_scale(self, details):
        details['scales']['zoom'] = 3
        with pytest.raises(ConfigurationError):
            star_system_from_dict(details)

    def test_not_a_mapping(self):
        with pytest.raises(ConfigurationError):
            star_system_from_dict("- just\n- a list\n")


class TestLoadStarSystem:
    """Tests for mode dispatch."""

    def test_library_mode(self):
        assert load_star_system('library', 'Trappist1').name == get_star_system('Trappist1').name

    def test_default_mode_alias(self):
        assert load_star_system('default').name == 'Inner Solar'

    def test_random_mode(self):
        assert load_star_system('random', random_seed=5).name == 'Random - 5'

    def test_custom_mode_requires_details(self):
        with pytest.raises(ConfigurationError):
            load_star_system('custom')

    def test_unknown_mode(self):
        with pytest.raises(ConfigurationError):
            load_star_system('imaginary')


def test_rotation_speed_from_period():
    """A 24 hour period is one turn per day."""
    assert abs(rotation_speed_from_period(24.0) - 2.0 * np.pi) < 1e-12
    assert rotation_speed_from_period(-24.0) < 0
