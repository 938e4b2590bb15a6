"""
Star system catalog.

Provides the three ways a star system enters the simulation:
- library: real systems with published masses, radii and orbital elements
- random: reproducible synthetic systems drawn from a seeded generator
- custom: user-supplied JSON/YAML descriptions

Planets and satellites in a same star system must have unique names; they
are used as primary keys by the engine.
"""

from typing import Any, Callable, Dict, Optional, Union
import numpy as np
import yaml

from orrery import constants as const
from orrery.config import (
    CameraSettings,
    ConfigurationError,
    Scales,
    StarSystem,
    normalize_keys,
    to_bool,
    to_float,
)


def rotation_speed_from_period(period_hours: float) -> float:
    """
    Convert a rotation period in hours to an angular speed [rad/time unit].

    Negative periods give retrograde rotation (Venus).
    """
    return const.period_to_angular_speed / period_hours


# ==============================================================================
# LIBRARY
# ==============================================================================


def solar_inner() -> StarSystem:
    """Sun, the four rocky planets and the Moon."""
    system = StarSystem("Inner Solar")
    system.set_star('Sol', const.M_sun, const.R_sun, 'yellow')
    system.add_planet('Mercury', 0.02439, 579.1, 0.205, 77.45, 7.00487, 0xbbb7ab,
                      'imgs/planet-textures/solar/mercury.jpg', rotation_speed_from_period(1407.6), 0.034)
    system.add_planet('Venus', 0.06051, 1082.1, 0.007, 131.53, 3.39471, 0xddd8d4,
                      'imgs/planet-textures/solar/venus.jpg', rotation_speed_from_period(-5832.5), 177.4)
    # Earth hosts the Moon, so it needs a mass
    system.add_planet('Earth', const.R_earth, 1496.0, 0.017, 102.95, 0.00005, 0x6b93d6,
                      'imgs/planet-textures/solar/earth.jpg', rotation_speed_from_period(23.9), 23.4,
                      const.M_earth)
    system.add_planet('Mars', 0.03396, 2279.2, 0.094, 336.04, 1.85061, 0xc1440e,
                      'imgs/planet-textures/solar/mars.jpg', rotation_speed_from_period(24.6), 25.2)
    system.add_satellite('Moon', 'Earth', 0.01738, 3.844, 0.0549, 180.0, 5.145, 0xbbb7ab,
                         'imgs/planet-textures/solar/moon.jpg', rotation_speed_from_period(655.7), 6.7)
    system.calculate_camera_settings()
    system.set_scales(40, 1000, 1000, 1, 50, 12000)
    return system


def trappist1() -> StarSystem:
    system = StarSystem("Trappist-1")
    system.set_star('Trappist-1', 0.0898 * const.M_sun, 0.1192 * const.R_sun, 'red')
    for name, radius, semi_major, ecc, incl in [
        ('b', 1.116, 0.01154, 0.006, 0.00),
        ('c', 1.097, 0.01580, 0.007, 0.14),
        ('d', 0.778, 0.02227, 0.008, 0.33),
        ('e', 0.920, 0.02925, 0.005, 0.18),
        ('f', 1.045, 0.03849, 0.010, 0.12),
        ('g', 1.129, 0.04683, 0.002, 0.12),
        ('h', 0.775, 0.06189, 0.006, 0.24),
    ]:
        system.add_planet(name, radius * const.R_earth, semi_major * const.AU, ecc, 0, incl, 0xbbb7ab,
                          f'imgs/planet-textures/trappist-1/1{name}.jpg')
    system.calculate_camera_settings()
    system.set_scales(10, 20, 20, 1, 50, 400)
    return system


def kepler442() -> StarSystem:
    system = StarSystem("Kepler-442")
    system.set_star('Kepler-442', 0.609 * const.M_sun, 0.598 * const.R_sun, 0xff6339)
    system.add_planet('b', 1.34 * const.R_earth, 0.409 * const.AU, 0.04, 0, 0, 0xa0522d)
    system.calculate_camera_settings()
    system.set_scales(30, 300, 300, 1, 50, 3500)
    return system


def proxima_centauri() -> StarSystem:
    system = StarSystem("Proxima Centauri")
    system.set_star('Proxima Centauri', 0.12 * const.M_sun, 0.154 * const.R_sun, 0xf26524)
    system.add_planet('Proxima Centauri b', 1.1 * const.R_earth, 0.048 * const.AU, 0.124, 0, 0, 0xb9875b)
    system.calculate_camera_settings()
    system.set_scales(15, 60, 60, 1, 50, 1000)
    return system


def kepler11() -> StarSystem:
    system = StarSystem("Kepler-11")
    system.set_star('Kepler-11', 0.961 * const.M_sun, 1.020 * const.R_sun, 0xf4f74c)
    for name, radius, semi_major, ecc, color in [
        ('b', 1.83, 0.091, 0.05, 0xda0356),
        ('c', 3.15, 0.107, 0.03, 0x059bd9),
        ('d', 3.43, 0.155, 0.0, 0xaa8135),
        ('e', 4.52, 0.195, 0.01, 0x825094),
        ('f', 2.61, 0.24, 0.01, 0x591b70),
        ('g', 3.66, 0.466, 0.15, 0x24701b),  # eccentricity poorly constrained (< 0.15)
    ]:
        system.add_planet(name, radius * const.R_earth, semi_major * const.AU, ecc, 0, 0, color)
    system.calculate_camera_settings()
    system.set_scales(10, 45, 45, 1, 50, 1000)
    return system


def hd189733() -> StarSystem:
    system = StarSystem("HD 189733")
    system.set_star('HD 189733', 0.9 * const.M_sun, 0.781 * const.R_sun, 0xf97b07)
    system.add_planet('b', 1.138 * const.R_jupiter, 0.03126 * const.AU, 0.0, 0, 0, 0x07a3f9)
    system.calculate_camera_settings()
    system.set_scales(5, 10, 10, 1, 50, 1000)
    return system


def tres2() -> StarSystem:
    system = StarSystem("TrEs-2")
    system.set_star('TrEs-2', 0.98 * const.M_sun, 0.131 * const.R_sun, 0xefc403)
    system.add_planet('b', 1.272 * const.R_jupiter, 0.03563 * const.AU, 0.0, 0, 0, 0x900c3f)
    system.calculate_camera_settings()
    system.set_scales(20, 10, 10, 1, 50, 1500)
    return system


def kepler90() -> StarSystem:
    system = StarSystem("Kepler-90")
    system.set_star('Kepler-90', 1.2 * const.M_sun, 1.2 * const.R_sun, 'yellow')
    for name, radius, semi_major, ecc, color in [
        ('b', 1.31, 0.074, 0.00, 0x9e6645),
        ('c', 1.18, 0.089, 0.00, 0x904d2a),
        ('i', 1.32, 0.107, 0.00, 0xac986e),  # found later in archived transit data
        ('d', 2.88, 0.32, 0.00, 0x959293),
        ('e', 2.67, 0.42, 0.00, 0x9eb3b8),
        ('f', 2.89, 0.48, 0.01, 0xc4a86a),
        ('g', 8.13, 0.71, 0.049, 0xb99068),
        ('h', 11.32, 1.01, 0.011, 0xa6a031),
    ]:
        system.add_planet(name, radius * const.R_earth, semi_major * const.AU, ecc, 0, 0, color)
    system.calculate_camera_settings()
    system.set_scales(10, 45, 45, 1, 50, 1000)
    return system


def hd76920() -> StarSystem:
    system = StarSystem("HD 76920")
    system.set_star('HD 76920', 1.17 * const.M_sun, 7.47 * const.R_sun, 0xf26524)
    system.add_planet('b', 1.16 * const.R_jupiter, 1.149 * const.AU, 0.856, 0, 0, 0xffffff)
    system.calculate_camera_settings()
    system.set_scales(1, 10, 10, 1, 50, 1500)
    return system


STAR_SYSTEM_LIBRARY: Dict[str, Callable[[], StarSystem]] = {
    'SolarInner': solar_inner,
    'Trappist1': trappist1,
    'Kepler442': kepler442,
    'ProximaCentauri': proxima_centauri,
    'Kepler11': kepler11,
    'HD189733': hd189733,
    'TrEs2': tres2,
    'Kepler90': kepler90,
    'HD76920': hd76920,
}


def get_star_system(name: str) -> StarSystem:
    """
    Build a fresh copy of a library star system.

    Raises:
        ConfigurationError: If the name is not in the library
    """
    if name not in STAR_SYSTEM_LIBRARY:
        raise ConfigurationError(
            f"Unknown star system '{name}'. Available: {', '.join(STAR_SYSTEM_LIBRARY)}"
        )
    return STAR_SYSTEM_LIBRARY[name]()


# ==============================================================================
# RANDOM SYSTEMS
# ==============================================================================

RANDOM_SYSTEM_RANGES = {
    'star_mass': (1.0, 2.0),  # × 1e30 kg
    'star_radius': (2, 5),  # min, integer range [distance units]
    'star_colors': [0xffffff, 0xffff00, 0x559999, 0xff6339, 0xff0000],
    'planet_number': (1, 4),  # min, integer range
    'planet_radius': (0.02, 0.04),  # distance units, unscaled
    'planet_semi_major': (500, 200),  # spacer, integer range [distance units]
    'planet_eccentricity': (0.4, 0.1),  # min, range
    'planet_longitude_perihelion': (0, 22.5),  # degrees, min, range
    'planet_orbit_inclination': (0, 1),  # degrees, min, range
    'planet_colors': [0x333333, 0x993333, 0xaa8239, 0x2d4671, 0x599532, 0x267257],
}


def random_star_system(seed: Optional[int] = None) -> StarSystem:
    """
    Generate a synthetic star system.

    Planets are spaced outward from the star, each at least 500 distance
    units beyond the previous one. The same seed always yields the same
    system.

    Args:
        seed: Seed for ``numpy.random.default_rng``; drawn at random if None

    Returns:
        StarSystem named ``Random - <seed>``
    """
    if seed is None:
        seed = int(np.random.default_rng().integers(0, 100_000_000))
    rng = np.random.default_rng(seed)
    ranges = RANDOM_SYSTEM_RANGES

    system = StarSystem(f"Random - {seed}")
    star_mass = rng.uniform(*ranges['star_mass']) * 1.0e30
    star_radius = ranges['star_radius'][0] + rng.integers(ranges['star_radius'][1])
    star_color = ranges['star_colors'][rng.integers(len(ranges['star_colors']))]
    system.set_star(f"Rand-{seed}", star_mass, float(star_radius), star_color)

    n_planets = ranges['planet_number'][0] + int(rng.integers(ranges['planet_number'][1]))
    semi_major = 0.0
    for j in range(n_planets):
        spacer, spread = ranges['planet_semi_major']
        semi_major += spacer + int(rng.integers(spread))
        system.add_planet(
            name=chr(ord('b') + j),
            radius=rng.uniform(*ranges['planet_radius']),
            semi_major=float(semi_major),
            eccentricity=ranges['planet_eccentricity'][0] + rng.uniform(0, ranges['planet_eccentricity'][1]),
            longitude_perihelion=rng.uniform(0, ranges['planet_longitude_perihelion'][1]),
            orbit_inclination=rng.uniform(0, ranges['planet_orbit_inclination'][1]),
            color=ranges['planet_colors'][rng.integers(len(ranges['planet_colors']))]
        )

    system.calculate_camera_settings()
    system.calculate_scales()
    return system


# ==============================================================================
# CUSTOM SYSTEMS
# ==============================================================================


def star_system_from_dict(details: Union[str, Dict[str, Any]]) -> StarSystem:
    """
    Build a star system from a user-supplied description.

    Accepts a mapping or a JSON/YAML string with ``name``, ``star``,
    ``planets``, ``satellites`` and optional ``scales``/``cameraSettings``.
    Keys may be camelCase (``semiMajor``, ``hostPlanet``) or snake_case.

    Raises:
        ConfigurationError: If required fields are missing or invalid
    """
    if isinstance(details, str):
        details = yaml.safe_load(details)
    if not isinstance(details, dict):
        raise ConfigurationError("Custom star system must be a mapping")

    details = normalize_keys(details)
    if 'star' not in details:
        raise ConfigurationError("Custom star system requires a 'star' entry")

    system = StarSystem(details.get('name', 'Custom'))

    star = normalize_keys(details['star'])
    try:
        system.set_star(star['name'], to_float(star['mass']), to_float(star['radius']),
                        star.get('color', 'yellow'))

        for planet in details.get('planets', []) or []:
            planet = normalize_keys(planet)
            mass = planet.get('mass')
            system.add_planet(
                name=planet['name'],
                radius=to_float(planet.get('radius', 0.0)),
                semi_major=to_float(planet['semi_major']),
                eccentricity=to_float(planet.get('eccentricity', 0.0)),
                longitude_perihelion=to_float(planet.get('longitude_perihelion', 0.0)),
                orbit_inclination=to_float(planet.get('orbit_inclination', 0.0)),
                color=planet.get('color', 0xffffff),
                texture=planet.get('texture'),
                rotation_speed=to_float(planet.get('rotation_speed', 0.0)),
                obliquity=to_float(planet.get('obliquity', 0.0)),
                mass=None if mass is None else to_float(mass),
                visible=to_bool(planet.get('visible', True)),
                tilted=to_bool(planet.get('tilted', True))
            )

        for satellite in details.get('satellites', []) or []:
            satellite = normalize_keys(satellite)
            system.add_satellite(
                name=satellite['name'],
                host_name=satellite.get('host_planet', satellite.get('host_name')),
                radius=to_float(satellite.get('radius', 0.0)),
                semi_major=to_float(satellite['semi_major']),
                eccentricity=to_float(satellite.get('eccentricity', 0.0)),
                longitude_perihelion=to_float(satellite.get('longitude_perihelion', 0.0)),
                orbit_inclination=to_float(satellite.get('orbit_inclination', 0.0)),
                color=satellite.get('color', 0xffffff),
                texture=satellite.get('texture'),
                rotation_speed=to_float(satellite.get('rotation_speed', 0.0)),
                obliquity=to_float(satellite.get('obliquity', 0.0)),
                visible=to_bool(satellite.get('visible', False)),
                tilted=to_bool(satellite.get('tilted', True))
            )
    except KeyError as e:
        raise ConfigurationError(f"Custom star system is missing field {e}") from e

    if details.get('scales'):
        scales = {key: to_float(value) for key, value in normalize_keys(details['scales']).items()}
        try:
            system.scales = Scales(**scales)
        except TypeError as e:
            raise ConfigurationError(f"Invalid custom scales: {e}") from e
    else:
        system.calculate_scales()

    if details.get('camera_settings'):
        camera = normalize_keys(details['camera_settings'])
        position = camera.get('position', {})
        if isinstance(position, dict):
            position = (position.get('x', 0.0), position.get('y', 0.0), position.get('z', 0.0))
        system.camera_settings = CameraSettings(
            position=tuple(to_float(p) for p in position),
            measurement_distance=to_float(camera.get('measurement_distance', system.largest_semi_major * 6.0)),
            fov=to_float(camera.get('fov', 20.0)),
            aspect=to_float(camera.get('aspect', 2.0)),
            near=to_float(camera.get('near', 0.1)),
            far=to_float(camera.get('far', 50000.0))
        )
    else:
        system.calculate_camera_settings()

    return system


def load_star_system(mode: str = 'library', name: str = 'SolarInner',
                     random_seed: Optional[int] = None,
                     custom_details: Union[str, Dict[str, Any], None] = None) -> StarSystem:
    """
    Resolve a star system from one of the catalog modes.

    Args:
        mode: 'library', 'random' or 'custom'
        name: Library key (library mode)
        random_seed: Generator seed (random mode)
        custom_details: Mapping or JSON/YAML text (custom mode)

    Raises:
        ConfigurationError: For an unknown mode or missing custom details
    """
    if mode in ('library', 'default'):
        return get_star_system(name)
    if mode == 'random':
        return random_star_system(random_seed)
    if mode == 'custom':
        if custom_details is None:
            raise ConfigurationError("mode='custom' requires custom star system details")
        return star_system_from_dict(custom_details)
    raise ConfigurationError(f"star_system mode must be 'library', 'random' or 'custom', got '{mode}'")
