"""
Physics functions for star system orbital simulation.

All performance-critical functions are JIT-compiled with Numba for near-C performance.
These functions must be Numba-compatible (NumPy arrays, no Python objects).

GRAVITY MODEL:
Each body is pulled by its immediate host only (planets by the star,
satellites by their planet). Distances are stretched by a visualization
distance scale s, so the host mass is multiplied by s³ to keep orbital
periods identical to the unscaled system.
"""

import numpy as np
from numba import jit

from orrery import constants as const


@jit(nopython=True)
def scaled_host_mass(host_mass, distance_scale):
    """
    Host mass compensated for the distance scale.

    M_scaled = M × s³

    Args:
        host_mass: Host mass [kg]
        distance_scale: Visualization distance multiplier

    Returns:
        float: Scaled host mass [kg]
    """
    return host_mass * distance_scale**3


@jit(nopython=True)
def gravitational_acceleration(host_position, body_position, host_mass, distance_scale):
    """
    Calculate gravitational acceleration on a body from its host.

    a = -G × M_scaled / |d|² × d_hat,  d = body - host

    Args:
        host_position: Host position [x, y, z] in distance units (shape: (3,))
        body_position: Body position [x, y, z] in distance units (shape: (3,))
        host_mass: Host mass in kg
        distance_scale: Distance scale of the body's tier

    Returns:
        accel: 3D acceleration vector [units/day²] (shape: (3,))

    Notes:
        - Coincident positions are not guarded (ZeroDivisionError); near
          coincidence produces huge or non-finite values
        - Mass of the orbiting body is neglected
    """
    d = body_position - host_position
    r_squared = d[0]**2 + d[1]**2 + d[2]**2
    r = np.sqrt(r_squared)

    accel_magnitude = -const.G * scaled_host_mass(host_mass, distance_scale) / r_squared

    return accel_magnitude * (d / r)


@jit(nopython=True)
def step_planets(positions, velocities, planet_indices, star_mass, distance_scale, dt):
    """
    Advance every planet by one sub-step around the star (index 0).

    Uses semi-implicit (symplectic) Euler:
    1. v(t + dt) = v(t) + a(x(t)) × dt
    2. x(t + dt) = x(t) + v(t + dt) × dt

    Arrays are modified in place.
    """
    for k in range(len(planet_indices)):
        i = planet_indices[k]
        accel = gravitational_acceleration(positions[0], positions[i], star_mass, distance_scale)
        velocities[i] += accel * dt
        positions[i] += velocities[i] * dt


@jit(nopython=True)
def step_satellites(positions, velocities, satellite_indices, host_indices, masses,
                    distance_scale, dt):
    """
    Advance every satellite by one sub-step around its host planet.

    The satellite is first carried along by its host (x += v_host × dt), then
    integrated with symplectic Euler using the host-relative force. Satellite
    velocities therefore stay relative to the host.

    Args:
        positions: Body positions (shape: (N, 3))
        velocities: Body velocities (shape: (N, 3))
        satellite_indices: Indices of satellites (shape: (N_sat,))
        host_indices: Host index of every body (shape: (N,))
        masses: Body masses in kg (shape: (N,))
        distance_scale: Satellite distance scale
        dt: Sub-step [time units]

    Notes:
        - Must run after the planets of the same sub-step
    """
    for k in range(len(satellite_indices)):
        i = satellite_indices[k]
        h = host_indices[i]

        # Follow the host
        positions[i] += velocities[h] * dt

        accel = gravitational_acceleration(positions[h], positions[i], masses[h], distance_scale)
        velocities[i] += accel * dt
        positions[i] += velocities[i] * dt


@jit(nopython=True)
def advance_spin(spin_angles, rotation_speeds, indices, dt):
    """Advance self-rotation angles; not coupled to gravity."""
    for k in range(len(indices)):
        i = indices[k]
        spin_angles[i] += dt * rotation_speeds[i]


@jit(nopython=True)
def advance_system(positions, velocities, spin_angles, planet_indices, satellite_indices,
                   host_indices, masses, rotation_speeds, planet_distance_scale,
                   satellite_distance_scale, dt, n_substeps, rotation_enabled):
    """
    Advance the whole system by ``n_substeps`` fixed sub-steps.

    Each sub-step moves every planet, then every satellite. Arrays are
    modified in place; ``n_substeps <= 0`` leaves them untouched.
    """
    for _ in range(n_substeps):
        step_planets(positions, velocities, planet_indices, masses[0], planet_distance_scale, dt)
        step_satellites(positions, velocities, satellite_indices, host_indices, masses,
                        satellite_distance_scale, dt)
        if rotation_enabled:
            advance_spin(spin_angles, rotation_speeds, planet_indices, dt)
            advance_spin(spin_angles, rotation_speeds, satellite_indices, dt)


def calculate_specific_orbital_energy(position, velocity, host_position, host_mass, distance_scale):
    """
    Specific orbital energy of a body relative to its host.

    ε = v²/2 - G × M_scaled / r

    Args:
        position: Body position (shape: (3,))
        velocity: Body velocity relative to the host (shape: (3,))
        host_position: Host position (shape: (3,))
        host_mass: Host mass [kg]
        distance_scale: Distance scale of the body's tier

    Returns:
        float: Energy per unit mass [units²/day²], negative for bound orbits
    """
    r = np.linalg.norm(np.asarray(position) - np.asarray(host_position))
    v_squared = np.dot(velocity, velocity)
    return 0.5 * v_squared - const.G * scaled_host_mass(host_mass, distance_scale) / r


def calculate_specific_angular_momentum(position, velocity, host_position):
    """Specific angular momentum h = r × v relative to the host (shape: (3,))."""
    return np.cross(np.asarray(position) - np.asarray(host_position), velocity)


def orbital_period(semi_major, host_mass):
    """
    Kepler period of an orbit [time units].

    T = 2π × sqrt(a³ / (G × M))

    The distance scale cancels: (a·s)³ / (G·M·s³) = a³ / (G·M).
    """
    return 2.0 * np.pi * np.sqrt(semi_major**3 / (const.G * host_mass))


def circular_speed(radius, host_mass, distance_scale=1.0):
    """Speed of a circular orbit of the given (scaled) radius [units/day]."""
    return np.sqrt(const.G * scaled_host_mass(host_mass, distance_scale) / radius)
