"""
Live orbit-inclination toggle.

Switching the global inclination flag rotates every body's current position
and velocity by the change needed to reach the new tilt state, rather than
re-solving initial conditions. Simulation time and speeds are preserved.

For an orbit with perihelion longitude ϖ and inclination change Δi the
rotation is

    R = Rz(ϖ) × Ry(Δi) × Rz(-ϖ)

which isolates the inclination change in the orbit's own frame.
"""

import numpy as np

from orrery.initialization import rotation_matrix_y, rotation_matrix_z
from orrery.state import BodyRegistry, SimulationState


def tilt_factor(current: bool, new: bool) -> int:
    """-1 when disabling inclination, +1 when enabling, 0 when unchanged."""
    if new == current:
        return 0
    return -1 if current else 1


def tilt_rotation(inclination_delta: float, longitude_perihelion: float) -> np.ndarray:
    """
    Rotation that changes an orbit's inclination about its own frame.

    Args:
        inclination_delta: Inclination change [rad]
        longitude_perihelion: Perihelion longitude of the orbit [rad]

    Returns:
        (3, 3) rotation matrix
    """
    return (rotation_matrix_z(longitude_perihelion)
            @ rotation_matrix_y(inclination_delta)
            @ rotation_matrix_z(-longitude_perihelion))


def _inclination_delta(elements, factor: int) -> float:
    if not elements.tilted:
        return 0.0
    return factor * np.radians(elements.orbit_inclination)


def tilt_planets(registry: BodyRegistry, state: SimulationState, factor: int) -> None:
    """
    Tilt every planet, carrying its satellites along.

    Satellites receive the planet's rotation on their velocity and on their
    offset from the planet, so they stay locked to the host's geometry.
    """
    for p in registry.planet_indices:
        elements = registry.elements[p]
        rotation = tilt_rotation(
            _inclination_delta(elements, factor),
            np.radians(elements.longitude_perihelion)
        )

        old_host_position = state.positions[p].copy()
        state.positions[p] = rotation @ state.positions[p]
        state.velocities[p] = rotation @ state.velocities[p]

        for s in registry.satellites_of(p):
            offset = state.positions[s] - old_host_position
            state.positions[s] = state.positions[p] + rotation @ offset
            state.velocities[s] = rotation @ state.velocities[s]


def tilt_satellites(registry: BodyRegistry, state: SimulationState, factor: int) -> None:
    """
    Tilt every satellite within its host's frame.

    The satellite orbit uses its own inclination and the sum of its own and
    its host's perihelion longitudes. Position rotates about the host;
    velocity rotates without translation.
    """
    for s in registry.satellite_indices:
        host = registry.host_index[s]
        elements = registry.elements[s]
        host_elements = registry.elements[host]

        rotation = tilt_rotation(
            _inclination_delta(elements, factor),
            np.radians(elements.longitude_perihelion + host_elements.longitude_perihelion)
        )

        host_position = state.positions[host]
        state.positions[s] = host_position + rotation @ (state.positions[s] - host_position)
        state.velocities[s] = rotation @ state.velocities[s]


def apply_orbit_inclination(registry: BodyRegistry, state: SimulationState,
                            current: bool, new: bool) -> bool:
    """
    Rotate the live state from the ``current`` tilt setting to ``new``.

    Enabling tilts planets (with their satellites) first and then the
    satellites within their hosts' frames; disabling undoes the two stages
    in reverse order so that an enable/disable pair restores the state.

    Args:
        registry: Body registry
        state: SimulationState (modified in place)
        current: Inclination flag the state was built with
        new: Requested inclination flag

    Returns:
        The new flag value
    """
    factor = tilt_factor(current, new)
    if factor == 0:
        return new

    if factor > 0:
        tilt_planets(registry, state, factor)
        tilt_satellites(registry, state, factor)
    else:
        tilt_satellites(registry, state, factor)
        tilt_planets(registry, state, factor)

    return new
