"""
Initialization functions for star system orbital simulation.

This module places every planet and satellite at a self-consistent starting
state: perihelion position (true anomaly = π in the convention used
throughout), vis-viva speed perpendicular to the radius, and the orbital
plane tilt and perihelion-longitude rotation baked in.

Planets are always solved before satellites, since a satellite is placed
relative to its host planet's solved position.
"""

import numpy as np
from typing import Tuple

from orrery import constants as const
from orrery.config import ConfigurationError, OrbitalElements, Scales, SimulationParameters
from orrery.physics import scaled_host_mass, calculate_specific_orbital_energy
from orrery.state import BodyRegistry, SimulationState


def rotation_matrix_y(angle: float) -> np.ndarray:
    """Right-handed rotation about the Y axis by ``angle`` radians."""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [c, 0.0, s],
        [0.0, 1.0, 0.0],
        [-s, 0.0, c]
    ])


def rotation_matrix_z(angle: float) -> np.ndarray:
    """Right-handed rotation about the Z axis by ``angle`` radians."""
    c, s = np.cos(angle), np.sin(angle)
    return np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0]
    ])


def euler_zyx_matrix(inclination: float, longitude_perihelion: float) -> np.ndarray:
    """
    Orbit orientation as an intrinsic Euler rotation with order Z→Y→X.

    R = Rz(longitude_perihelion) × Ry(inclination) × Rx(0)

    Applied to a vector, the inclination (about Y) acts first and the
    perihelion longitude (about Z) second. Angles in radians.
    """
    return rotation_matrix_z(longitude_perihelion) @ rotation_matrix_y(inclination)


def perihelion_state(
    elements: OrbitalElements,
    host_mass: float,
    distance_scale: float,
    retrograde: bool = False
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Position and velocity at perihelion in the unrotated orbital plane.

    Position: x = (cos π·a + e·a)·s, y = sin π·b·s, z = 0, which puts the
    body at distance (1 - e)·a·s on the negative x-axis.

    Speed from the vis-viva equation with the host mass scaled by s³:
        v = sqrt(G × M × s³ × (2/r - 1/(a·s)))

    Args:
        elements: Orbital elements of the body
        host_mass: Mass of the host [kg]
        distance_scale: Distance scale of the body's tier
        retrograde: Mirror the velocity direction (satellite convention)

    Returns:
        (position, velocity) tuple of (3,) arrays

    Raises:
        ConfigurationError: If the host has no usable mass or the scale is
            not positive
    """
    if host_mass is None or not np.isfinite(host_mass) or host_mass <= 0:
        raise ConfigurationError(f"{elements.name}: host mass must be positive, got {host_mass}")
    if distance_scale <= 0:
        raise ConfigurationError(f"{elements.name}: distance scale must be positive, got {distance_scale}")

    theta = const.perihelion_angle
    a = elements.semi_major
    b = elements.semi_minor
    e = elements.eccentricity

    position = np.array([
        (np.cos(theta) * a + e * a) * distance_scale,
        np.sin(theta) * b * distance_scale,
        0.0
    ])

    mass = scaled_host_mass(host_mass, distance_scale)
    r = np.linalg.norm(position)
    speed = np.sqrt(const.G * mass * (2.0 / r - 1.0 / (a * distance_scale)))

    if retrograde:
        velocity = np.array([-np.sin(theta) * speed, np.cos(theta) * speed, 0.0])
    else:
        velocity = np.array([np.sin(theta) * speed, -np.cos(theta) * speed, 0.0])

    return position, velocity


def effective_inclination(elements: OrbitalElements, orbit_inclination: bool) -> float:
    """Inclination in radians when the body is tilted and tilting is on, else 0."""
    if elements.tilted and orbit_inclination:
        return np.radians(elements.orbit_inclination)
    return 0.0


def solve_planet(
    elements: OrbitalElements,
    star_mass: float,
    distance_scale: float,
    orbit_inclination: bool
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Initial state of a planet orbiting the star at the origin.

    Returns:
        (position, velocity) tuple of (3,) arrays
    """
    position, velocity = perihelion_state(elements, star_mass, distance_scale)

    rotation = euler_zyx_matrix(
        effective_inclination(elements, orbit_inclination),
        np.radians(elements.longitude_perihelion)
    )
    return rotation @ position, rotation @ velocity


def solve_satellite(
    elements: OrbitalElements,
    host_elements: OrbitalElements,
    host_position: np.ndarray,
    distance_scale: float,
    orbit_inclination: bool
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Initial state of a satellite orbiting a planet.

    The satellite orbital plane inherits the host's: inclinations and
    perihelion longitudes of host and satellite are added before rotating.
    The rotated position is then translated to the host position.

    Returns:
        (position, velocity) tuple; velocity is relative to the host
    """
    if host_elements.mass is None:
        raise ConfigurationError(
            f"Planet {host_elements.name} hosts {elements.name} but has no mass"
        )
    position, velocity = perihelion_state(elements, host_elements.mass, distance_scale,
                                          retrograde=True)

    inclination = (effective_inclination(host_elements, orbit_inclination)
                   + effective_inclination(elements, orbit_inclination))
    longitude = np.radians(host_elements.longitude_perihelion + elements.longitude_perihelion)
    rotation = euler_zyx_matrix(inclination, longitude)

    return rotation @ position + host_position, rotation @ velocity


def initialize_planets(
    registry: BodyRegistry,
    state: SimulationState,
    scales: Scales,
    orbit_inclination: bool
) -> None:
    """
    Place every planet at perihelion (state modified in place).

    Args:
        registry: Body registry
        state: SimulationState to populate
        scales: Current scales (planet_distance_scale is used)
        orbit_inclination: Global inclination flag
    """
    star_mass = registry.masses[0]
    for i in registry.planet_indices:
        position, velocity = solve_planet(
            registry.elements[i],
            star_mass,
            scales.planet_distance_scale,
            orbit_inclination
        )
        state.positions[i] = position
        state.velocities[i] = velocity
        state.initialized[i] = True


def initialize_satellites(
    registry: BodyRegistry,
    state: SimulationState,
    scales: Scales,
    orbit_inclination: bool
) -> None:
    """
    Place every satellite at perihelion around its host's current position.

    Raises:
        ValueError: If a host planet has not been placed yet
    """
    for i in registry.satellite_indices:
        host = registry.host_index[i]
        if not state.initialized[host]:
            raise ValueError(
                f"Host planet {registry.names[host]} of {registry.names[i]} has no state yet; "
                f"planets must be initialized before satellites"
            )
        position, velocity = solve_satellite(
            registry.elements[i],
            registry.elements[host],
            state.positions[host],
            scales.satellite_distance_scale,
            orbit_inclination
        )
        state.positions[i] = position
        state.velocities[i] = velocity
        state.initialized[i] = True


def initialize_state(
    registry: BodyRegistry,
    state: SimulationState,
    scales: Scales,
    orbit_inclination: bool
) -> None:
    """
    (Re)solve initial conditions for every body.

    The star is pinned at the origin at rest, planets are solved, then
    satellites around the freshly solved planets. Spin angles are kept.
    """
    state.positions[0] = 0.0
    state.velocities[0] = 0.0
    state.initialized[1:] = False

    initialize_planets(registry, state, scales, orbit_inclination)
    initialize_satellites(registry, state, scales, orbit_inclination)


def initialize_simulation(params: SimulationParameters) -> Tuple[BodyRegistry, SimulationState]:
    """
    Initialize complete simulation state from parameters.

    Args:
        params: Simulation parameters

    Returns:
        (registry, state) tuple

    Raises:
        ConfigurationError: If the star system cannot be simulated
    """
    registry = BodyRegistry(params.star_system)
    state = SimulationState(n_total=registry.n_total)
    initialize_state(registry, state, params.scales, params.orbit_inclination)
    return registry, state


def validate_initial_conditions(registry: BodyRegistry, state: SimulationState,
                                scales: Scales) -> dict:
    """
    Validate initial conditions and compute diagnostics.

    Checks:
    - Every position and velocity is finite
    - Distance of each body from its host
    - Speed and specific orbital energy of each body

    Args:
        registry: Body registry
        state: SimulationState to validate
        scales: Scales the state was solved with

    Returns:
        diagnostics: Dictionary with validation metrics
    """
    diagnostics = {'is_finite': state.is_finite}

    for i in range(1, registry.n_total):
        name = registry.names[i]
        host = registry.host_index[i]
        distance_scale = (scales.satellite_distance_scale if host > 0
                          else scales.planet_distance_scale)

        diagnostics[f'{name}_host_distance'] = np.linalg.norm(state.positions[i] - state.positions[host])
        diagnostics[f'{name}_speed'] = np.linalg.norm(state.velocities[i])
        diagnostics[f'{name}_orbital_energy'] = calculate_specific_orbital_energy(
            state.positions[i],
            state.velocities[i],
            state.positions[host],
            registry.masses[host],
            distance_scale
        )

    return diagnostics
