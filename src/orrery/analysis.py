"""
Post-simulation analysis for star system orbital simulation.

This module provides functions to analyze simulation results from HDF5 files:
- Host distances of every body over time
- Orbit shapes recovered from the sampled trajectory (perihelion,
  aphelion, eccentricity, semi-major axis)
- Orbital energy conservation metrics

All functions work with HDF5 file paths (not Simulation objects). Orbit
shapes are only meaningful when the recording covers at least one full
orbit of the body.
"""

import numpy as np
import h5py
import yaml
from typing import Dict

from orrery.state import BODY_TYPE_NAMES, PLANET, STAR


def _distance_scales(f):
    """(planet, satellite) distance scales stored with the run."""
    scales = yaml.safe_load(f['config'].attrs['scales'])
    return float(scales['planet_distance_scale']), float(scales['satellite_distance_scale'])


def load_trajectories(hdf5_filepath: str) -> Dict[str, np.ndarray]:
    """
    Load the recorded trajectory of every body.

    Args:
        hdf5_filepath: Path to HDF5 simulation output file

    Returns:
        Dictionary containing:
        - 'names': Body names (n_total,)
        - 'body_type': Body types (n_total,)
        - 'host_index': Host indices (n_total,)
        - 'time': Recorded times (n_outputs,) [days]
        - 'positions': Positions (n_outputs, n_total, 3) [10^5 km]
        - 'velocities': Velocities (n_outputs, n_total, 3) [10^5 km/day]
    """
    with h5py.File(hdf5_filepath, 'r') as f:
        n_outputs = _recorded_outputs(f)
        return {
            'names': [name.decode() if isinstance(name, bytes) else name
                      for name in f['bodies/names'][:]],
            'body_type': f['bodies/body_type'][:],
            'host_index': f['bodies/host_index'][:],
            'time': f['timeseries/time'][:n_outputs],
            'positions': f['timeseries/positions'][:n_outputs],
            'velocities': f['timeseries/velocities'][:n_outputs],
        }


def _recorded_outputs(f) -> int:
    """Number of filled output slots (the recorder pre-allocates)."""
    return int(f['timeseries'].attrs.get('n_recorded', len(f['timeseries/time'])))


def calculate_host_distances(positions: np.ndarray, host_index: np.ndarray) -> np.ndarray:
    """
    Distance of every body from its host at every output.

    Args:
        positions: Positions (n_outputs, n_total, 3)
        host_index: Host indices (n_total,), -1 for the star

    Returns:
        Distances (n_outputs, n_total); NaN for the star
    """
    distances = np.full(positions.shape[:2], np.nan)
    for i, host in enumerate(host_index):
        if host < 0:
            continue
        distances[:, i] = np.linalg.norm(positions[:, i] - positions[:, host], axis=1)
    return distances


def orbit_shape(distances: np.ndarray, distance_scale: float = 1.0) -> Dict[str, float]:
    """
    Orbit shape from sampled host distances.

    r_p = min r,  r_a = max r
    a = (r_p + r_a) / 2,  e = (r_a - r_p) / (r_a + r_p)

    Args:
        distances: Host distances of one body over time (scaled units)
        distance_scale: Distance scale the body was simulated with

    Returns:
        Dictionary with perihelion, aphelion and semi_major in unscaled
        units and the dimensionless eccentricity
    """
    perihelion = float(np.nanmin(distances)) / distance_scale
    aphelion = float(np.nanmax(distances)) / distance_scale
    return {
        'perihelion': perihelion,
        'aphelion': aphelion,
        'semi_major': 0.5 * (perihelion + aphelion),
        'eccentricity': (aphelion - perihelion) / (aphelion + perihelion),
    }


def analyze_simulation(hdf5_filepath: str) -> Dict:
    """
    Analyze a completed simulation from HDF5 file.

    Args:
        hdf5_filepath: Path to HDF5 simulation output file

    Returns:
        Dictionary containing analysis results with keys:
        - 'star_system': Star system name
        - 'n_outputs': Number of recorded outputs
        - 'final_time_days': Final simulation time [days]
        - 'bodies': {name: {'type', 'host', 'perihelion', 'aphelion',
          'semi_major', 'eccentricity', 'max_energy_error'}} for every
          planet and satellite
        - 'max_energy_error': Largest relative orbital energy error

    Raises:
        ValueError: If the file holds no recorded outputs
    """
    with h5py.File(hdf5_filepath, 'r') as f:
        star_system = f['config'].attrs['star_system']
        planet_scale, satellite_scale = _distance_scales(f)
        n_outputs = _recorded_outputs(f)
        if n_outputs == 0:
            raise ValueError(f"No outputs recorded in {hdf5_filepath}")

        if 'conservation' in f:
            energy_errors = f['conservation/energy_error'][:n_outputs]
        else:
            energy_errors = None

    trajectories = load_trajectories(hdf5_filepath)
    names = trajectories['names']
    body_type = trajectories['body_type']
    host_index = trajectories['host_index']
    distances = calculate_host_distances(trajectories['positions'], host_index)

    bodies = {}
    for i, name in enumerate(names):
        if body_type[i] == STAR:
            continue

        distance_scale = planet_scale if body_type[i] == PLANET else satellite_scale
        result = orbit_shape(distances[:, i], distance_scale)
        result['type'] = BODY_TYPE_NAMES[int(body_type[i])]
        result['host'] = names[host_index[i]]

        if energy_errors is not None and not np.all(np.isnan(energy_errors[:, i])):
            result['max_energy_error'] = float(np.nanmax(energy_errors[:, i]))
        else:
            result['max_energy_error'] = 0.0

        bodies[name] = result

    max_energy_error = max((body['max_energy_error'] for body in bodies.values()), default=0.0)

    return {
        'star_system': str(star_system),
        'n_outputs': n_outputs,
        'final_time_days': float(trajectories['time'][-1]),
        'bodies': bodies,
        'max_energy_error': max_energy_error,
    }
