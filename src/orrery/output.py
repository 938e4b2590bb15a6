"""
Data recording and checkpointing for star system orbital simulation.

This module handles:
- Time series recording to HDF5 files
- Checkpoint/restart functionality for long runs
- Per-body orbital energy monitoring
- Configuration storage for reproducibility

All data is stored in HDF5 format with compression for efficiency.
"""

import h5py
import numpy as np
import yaml
from dataclasses import asdict
from pathlib import Path
from typing import Optional
import warnings

from orrery.config import Scales, SimulationParameters
from orrery.evolution import frames_for_duration, frames_per_interval
from orrery.physics import calculate_specific_orbital_energy
from orrery.simulation import Simulation
from orrery.state import BodyRegistry, SimulationState


class SimulationRecorder:
    """
    Records simulation data to HDF5 file with checkpointing support.

    The HDF5 file structure:
    /config (group) - Simulation configuration as attributes
    /bodies (group) - Body records (constant throughout the run)
        /names (dataset) - Body names (n_total,)
        /body_type (dataset) - STAR=0, PLANET=1, SATELLITE=2 (n_total,)
        /host_index (dataset) - Host body index, -1 for the star (n_total,)
        /masses (dataset) - Masses, NaN where unknown (n_total,) [kg]
        /semi_major (dataset) - Semi-major axes, NaN for the star (n_total,) [10^5 km]
        /eccentricity (dataset) - Eccentricities, NaN for the star (n_total,)
    /timeseries (group) - Time series data
        /time (dataset) - Simulated time [days]
        /frame (dataset) - Frame counter
        /positions (dataset) - Positions (n_outputs, n_total, 3) [10^5 km]
        /velocities (dataset) - Velocities (n_outputs, n_total, 3) [10^5 km/day];
            satellites relative to their host
    /conservation (group) - Orbital energy monitoring
        /orbital_energy (dataset) - Specific orbital energy per body (n_outputs, n_total)
        /energy_error (dataset) - Relative error against the first output (n_outputs, n_total)
    """

    def __init__(self, filepath: str, simulation: Simulation, n_frames: Optional[int] = None):
        """
        Initialize recorder and create HDF5 file.

        Args:
            filepath: Path to HDF5 output file
            simulation: Simulation to record
            n_frames: Frames the run will cover (default: from params.duration)
        """
        self.filepath = Path(filepath)
        self.params = simulation.params

        # Create parent directory if needed
        self.filepath.parent.mkdir(parents=True, exist_ok=True)

        self.file = h5py.File(str(self.filepath), 'w')

        self._save_configuration(self.params)

        # Expected number of outputs
        frame_duration = simulation.clock.step * simulation.clock.speed
        if n_frames is None:
            n_frames = frames_for_duration(self.params.duration, frame_duration)
        output_every = frames_per_interval(self.params.output_interval, frame_duration) or 1
        self.n_output_steps = n_frames // output_every + 1

        self._save_bodies(simulation.registry)
        self._create_timeseries_datasets(simulation.registry.n_total)
        self._create_conservation_datasets(simulation.registry.n_total)

        self.current_output_idx = 0
        self.initial_energy = None

    def _save_configuration(self, params: SimulationParameters):
        """Save simulation configuration to HDF5 file."""
        config_group = self.file.create_group('config')

        config_group.attrs['simulation_name'] = params.simulation_name
        config_group.attrs['star_system'] = params.star_system.name
        config_group.attrs['output_directory'] = params.output_directory
        config_group.attrs['simulation_speed'] = params.simulation_speed
        config_group.attrs['simulation_step'] = params.simulation_step
        config_group.attrs['duration'] = params.duration
        config_group.attrs['output_interval'] = params.output_interval
        config_group.attrs['checkpoint_interval'] = params.checkpoint_interval
        config_group.attrs['orbit_inclination'] = params.orbit_inclination
        config_group.attrs['rotation_enabled'] = params.rotation_enabled
        config_group.attrs['energy_tolerance'] = params.energy_tolerance
        if params.random_seed is not None:
            config_group.attrs['random_seed'] = params.random_seed

        # Scales as a YAML mapping so the file is self-describing
        config_group.attrs['scales'] = yaml.safe_dump(asdict(params.scales), sort_keys=False)

    def _save_bodies(self, registry: BodyRegistry):
        """Save body records (constant throughout the run)."""
        bodies = self.file.create_group('bodies')

        semi_major = np.full(registry.n_total, np.nan)
        eccentricity = np.full(registry.n_total, np.nan)
        for i, elements in enumerate(registry.elements):
            if elements is not None:
                semi_major[i] = elements.semi_major
                eccentricity[i] = elements.eccentricity

        bodies.create_dataset('names', data=np.array(registry.names, dtype=h5py.string_dtype()))
        bodies.create_dataset('body_type', data=registry.body_type, compression='gzip')
        bodies.create_dataset('host_index', data=registry.host_index, compression='gzip')
        bodies.create_dataset('masses', data=registry.masses, compression='gzip')
        bodies.create_dataset('semi_major', data=semi_major, compression='gzip')
        bodies.create_dataset('eccentricity', data=eccentricity, compression='gzip')

        bodies.attrs['n_total'] = registry.n_total
        bodies.attrs['n_planets'] = registry.n_planets
        bodies.attrs['n_satellites'] = registry.n_satellites

    def _create_timeseries_datasets(self, n_total: int):
        """Create HDF5 datasets for time series data."""
        ts_group = self.file.create_group('timeseries')
        n_steps = self.n_output_steps

        ts_group.create_dataset('time', shape=(n_steps,), dtype=np.float64,
                                compression='gzip', compression_opts=4)
        ts_group.create_dataset('frame', shape=(n_steps,), dtype=np.int64,
                                compression='gzip', compression_opts=4)
        ts_group.create_dataset('positions', shape=(n_steps, n_total, 3), dtype=np.float64,
                                compression='gzip', compression_opts=4)
        ts_group.create_dataset('velocities', shape=(n_steps, n_total, 3), dtype=np.float64,
                                compression='gzip', compression_opts=4)
        ts_group.attrs['n_recorded'] = 0

    def _create_conservation_datasets(self, n_total: int):
        """Create HDF5 datasets for orbital energy monitoring."""
        cons_group = self.file.create_group('conservation')
        n_steps = self.n_output_steps

        cons_group.create_dataset('orbital_energy', shape=(n_steps, n_total), dtype=np.float64,
                                  compression='gzip', compression_opts=4)
        cons_group.create_dataset('energy_error', shape=(n_steps, n_total), dtype=np.float64,
                                  compression='gzip', compression_opts=4)

    def record_frame(self, simulation: Simulation):
        """
        Record current simulation state to timeseries.

        Args:
            simulation: Current simulation
        """
        if self.current_output_idx >= self.n_output_steps:
            warnings.warn(f"Output buffer full (idx={self.current_output_idx}), skipping record")
            return

        idx = self.current_output_idx
        ts = self.file['timeseries']

        ts['time'][idx] = simulation.time
        ts['frame'][idx] = simulation.clock.frame_count
        ts['positions'][idx] = simulation.state.positions
        ts['velocities'][idx] = simulation.state.velocities

        if self.params.check_energy_conservation:
            self._record_conservation(simulation, idx)

        self.current_output_idx += 1
        ts.attrs['n_recorded'] = self.current_output_idx

    def _record_conservation(self, simulation: Simulation, idx: int):
        """
        Calculate and record per-body orbital energy.

        The first recorded output is the baseline. Each body's orbit is an
        independent two-body problem, so each body's specific orbital
        energy should stay constant on its own.
        """
        cons = self.file['conservation']

        energy = calculate_orbital_energies(simulation.registry, simulation.state,
                                            simulation.scales)
        cons['orbital_energy'][idx] = energy

        if self.initial_energy is None:
            self.initial_energy = energy
            cons['energy_error'][idx] = np.where(np.isnan(energy), np.nan, 0.0)
            return

        with np.errstate(divide='ignore', invalid='ignore'):
            energy_error = np.abs(energy - self.initial_energy) / np.abs(self.initial_energy)
        cons['energy_error'][idx] = energy_error

        # Warn if conservation violated
        tolerance = self.params.energy_tolerance
        for i in np.flatnonzero(energy_error > tolerance):
            warnings.warn(
                f"Orbital energy of {simulation.registry.names[i]} drifted by "
                f"{energy_error[i] * 100:.2f}% at t={simulation.time:.2f} days"
            )

    def save_checkpoint(self, simulation: Simulation, checkpoint_name: Optional[str] = None):
        """
        Save full simulation state as checkpoint for restart.

        Args:
            simulation: Current simulation
            checkpoint_name: Optional name for checkpoint (default: checkpoint_{frame})
        """
        if checkpoint_name is None:
            checkpoint_name = f"checkpoint_{simulation.clock.frame_count:08d}"

        ckpt_path = self.filepath.parent / f"{checkpoint_name}.h5"
        simulation.save_checkpoint(str(ckpt_path))
        return ckpt_path

    def close(self):
        """Close HDF5 file."""
        if hasattr(self, 'file') and self.file is not None:
            self.file.close()
            self.file = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()


def load_checkpoint(params: SimulationParameters, filepath: str) -> Simulation:
    """
    Restore a simulation from a checkpoint.

    Args:
        params: Parameters the checkpointed simulation was built from
        filepath: Path to checkpoint HDF5 file

    Returns:
        Restored Simulation object
    """
    return Simulation.load_checkpoint(params, filepath)


def calculate_orbital_energies(
    registry: BodyRegistry,
    state: SimulationState,
    scales: Scales
) -> np.ndarray:
    """
    Specific orbital energy of every body relative to its host.

    ε = v²/2 - G × M_host × s³ / r

    Args:
        registry: Body registry
        state: Current state
        scales: Scales in effect (distance scale of each tier)

    Returns:
        Energies (n_total,) [(10^5 km/day)²]; NaN for the star
    """
    energy = np.full(registry.n_total, np.nan)

    for i in range(1, registry.n_total):
        host = registry.host_index[i]
        distance_scale = (scales.planet_distance_scale if host == 0
                          else scales.satellite_distance_scale)
        energy[i] = calculate_specific_orbital_energy(
            state.positions[i],
            state.velocities[i],
            state.positions[host],
            registry.masses[host],
            distance_scale
        )

    return energy
