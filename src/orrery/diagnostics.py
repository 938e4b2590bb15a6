"""
Runtime diagnostics for simulation health checks.

The integrator does not guard against degenerate geometry. This module
provides functions to detect:
- Numerical blow-up (non-finite positions or velocities)
- Close approaches of a body to its host
- Sub-steps too coarse for the shortest orbit in the system
"""

import warnings

import numpy as np

from orrery.physics import orbital_period


class NumericDegeneracyWarning(RuntimeWarning):
    """A body's state is non-finite or it is about to collide with its host."""


def check_state_health(simulation, approach_fraction=0.01):
    """
    Check the live state for numerical degeneracy.

    A close approach is a body nearer to its host than ``approach_fraction``
    of its scaled perihelion distance.

    Args:
        simulation: Simulation
        approach_fraction: Fraction of the perihelion distance flagged as a
            close approach

    Returns:
        dict with:
            - is_finite: bool
            - non_finite_bodies: list of body names
            - close_approaches: list of body names
            - warnings: list of warning messages
    """
    registry = simulation.registry
    state = simulation.state
    scales = simulation.scales
    messages = []

    finite = np.all(np.isfinite(state.positions), axis=1) & np.all(np.isfinite(state.velocities), axis=1)
    non_finite = [registry.names[i] for i in np.flatnonzero(~finite)]
    if non_finite:
        messages.append(f"CRITICAL: non-finite state for {', '.join(non_finite)} - "
                        "numerical instability!")

    close = []
    for i in range(1, registry.n_total):
        if not finite[i]:
            continue
        host = registry.host_index[i]
        elements = registry.elements[i]
        distance_scale = (scales.planet_distance_scale if host == 0
                          else scales.satellite_distance_scale)
        perihelion = (1.0 - elements.eccentricity) * elements.semi_major * distance_scale
        distance = np.linalg.norm(state.positions[i] - state.positions[host])
        if distance < approach_fraction * perihelion:
            close.append(registry.names[i])
            messages.append(f"WARNING: {registry.names[i]} is {distance:.3g} units from "
                            f"{registry.names[host]} (perihelion {perihelion:.3g})")

    for message in messages:
        warnings.warn(message, NumericDegeneracyWarning)

    return {
        'is_finite': not non_finite,
        'non_finite_bodies': non_finite,
        'close_approaches': close,
        'warnings': messages
    }


def estimate_stable_step(registry, steps_per_orbit=1000):
    """
    Estimate the largest sub-step that resolves every orbit.

    dt < T_min / steps_per_orbit

    Periods do not depend on the distance scales, since the host mass is
    scaled with the cube of the distance scale.

    Args:
        registry: BodyRegistry
        steps_per_orbit: Sub-steps required per shortest orbit

    Returns:
        float: Recommended maximum sub-step [days], inf without orbits
    """
    shortest = np.inf
    for i in range(1, registry.n_total):
        host = registry.host_index[i]
        period = orbital_period(registry.elements[i].semi_major, registry.masses[host])
        shortest = min(shortest, period)

    if shortest == np.inf:
        return np.inf

    return shortest / steps_per_orbit


def check_step_against_orbits(simulation, steps_per_orbit=1000):
    """
    Check if the current sub-step resolves the shortest orbit.

    Returns:
        dict with:
            - resolves_orbits: bool
            - current_step: float (days)
            - recommended_step: float (days)
            - ratio: float (current / recommended)
            - warning: str or None
    """
    recommended = estimate_stable_step(simulation.registry, steps_per_orbit)
    current = simulation.clock.step

    if recommended == np.inf:
        return {
            'resolves_orbits': True,
            'current_step': current,
            'recommended_step': recommended,
            'ratio': 0.0,
            'warning': None
        }

    ratio = current / recommended

    warning = None
    if ratio > 1.0:
        warning = (f"Sub-step ({current:g} days) is {ratio:.1f}x larger than "
                   f"{recommended:.3g} days needed for {steps_per_orbit} steps per orbit. "
                   "Orbits may drift!")
    elif ratio > 0.5:
        warning = (f"Sub-step is {ratio*100:.0f}% of the recommended limit. "
                   "Consider reducing it if orbits drift.")

    return {
        'resolves_orbits': ratio <= 1.0,
        'current_step': current,
        'recommended_step': recommended,
        'ratio': ratio,
        'warning': warning
    }
