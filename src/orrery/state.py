"""
Simulation state management for star system orbital simulation.

This module separates the three kinds of data the engine works with:
- BodyRegistry: static star system records indexed by a stable integer
  handle, with the name lookup and host relationships resolved once
- SimulationState: mutable positions, velocities and spin angles in
  arrays indexed by the same handle
- SimulationClock: accumulated simulated time and stepping controls

The star always takes index 0, planets follow in catalog order, then
satellites.
"""

from dataclasses import dataclass
import numpy as np
from typing import Dict, List, Optional
from pathlib import Path
import h5py

from orrery.config import ConfigurationError, OrbitalElements, StarSystem

# Body type constants
STAR = 0
PLANET = 1
SATELLITE = 2

BODY_TYPE_NAMES = {STAR: 'star', PLANET: 'planet', SATELLITE: 'satellite'}


class BodyRegistry:
    """
    Arena of every body in a star system.

    Built once per configuration load. Host names are resolved to indices
    here so that the integrator and tilt transform never search by name.

    Raises:
        ConfigurationError: On duplicate names, unknown hosts, satellites of
            satellites, or a host planet without a mass
    """

    def __init__(self, star_system: StarSystem):
        if star_system.star is None:
            raise ConfigurationError(f"Star system {star_system.name} has no star")

        self.system_name = star_system.name
        self.star = star_system.star
        self.elements: List[Optional[OrbitalElements]] = (
            [None] + list(star_system.planets) + list(star_system.satellites)
        )
        self.names = [self.star.name] + [body.name for body in self.elements[1:]]

        n_total = len(self.names)
        n_planets = len(star_system.planets)

        # Name lookup, built once
        self.index: Dict[str, int] = {}
        for i, name in enumerate(self.names):
            if name in self.index:
                raise ConfigurationError(f"Body name '{name}' is used more than once")
            self.index[name] = i

        self.body_type = np.full(n_total, SATELLITE, dtype=np.int64)
        self.body_type[0] = STAR
        self.body_type[1:1 + n_planets] = PLANET

        # Masses: NaN where the catalog gives none
        self.masses = np.full(n_total, np.nan, dtype=np.float64)  # [kg]
        self.masses[0] = self.star.mass
        self.rotation_speeds = np.zeros(n_total, dtype=np.float64)  # [rad/time unit]
        self.tilted = np.zeros(n_total, dtype=bool)
        for i, elements in enumerate(self.elements[1:], start=1):
            if elements.mass is not None:
                self.masses[i] = elements.mass
            self.rotation_speeds[i] = elements.rotation_speed
            self.tilted[i] = elements.tilted

        # Host relationships
        self.host_index = np.full(n_total, -1, dtype=np.int64)
        self.host_index[1:1 + n_planets] = 0
        for i in range(1 + n_planets, n_total):
            satellite = self.elements[i]
            host = self.index.get(satellite.host_name)
            if host is None:
                raise ConfigurationError(
                    f"Satellite {satellite.name} has unknown host planet '{satellite.host_name}'"
                )
            if self.body_type[host] != PLANET:
                raise ConfigurationError(
                    f"Satellite {satellite.name} must orbit a planet, not '{satellite.host_name}'"
                )
            if not np.isfinite(self.masses[host]):
                raise ConfigurationError(
                    f"Planet {satellite.host_name} hosts {satellite.name} but has no mass"
                )
            self.host_index[i] = host

        self.planet_indices = np.flatnonzero(self.body_type == PLANET).astype(np.int64)
        self.satellite_indices = np.flatnonzero(self.body_type == SATELLITE).astype(np.int64)

        self._satellites_of = {
            int(p): self.satellite_indices[self.host_index[self.satellite_indices] == p]
            for p in self.planet_indices
        }

    @property
    def n_total(self) -> int:
        """Total number of bodies, star included."""
        return len(self.names)

    @property
    def n_planets(self) -> int:
        return len(self.planet_indices)

    @property
    def n_satellites(self) -> int:
        return len(self.satellite_indices)

    def satellites_of(self, planet_index: int) -> np.ndarray:
        """Indices of the satellites orbiting a planet."""
        return self._satellites_of.get(int(planet_index), np.empty(0, dtype=np.int64))

    def lookup(self, name: str) -> int:
        """
        Resolve a body name to its index.

        Raises:
            KeyError: If no body has that name
        """
        if name not in self.index:
            raise KeyError(f"No body named '{name}' in {self.system_name}")
        return self.index[name]

    def elements_of(self, index: int) -> Optional[OrbitalElements]:
        """Orbital elements of a body (None for the star)."""
        return self.elements[index]

    def __repr__(self) -> str:
        lines = [f"BodyRegistry({self.system_name}: {self.n_total} bodies)"]
        for i, name in enumerate(self.names):
            host = self.host_index[i]
            host_name = f" -> {self.names[host]}" if host >= 0 else ""
            lines.append(f"  [{i}] {BODY_TYPE_NAMES[self.body_type[i]]} {name}{host_name}")
        return "\n".join(lines)


@dataclass
class SimulationClock:
    """
    Simulated time and stepping controls.

    ``time`` only advances while ``running`` is true, by exactly
    ``step * speed`` per frame.
    """

    time: float = 0.0  # [time units]
    step: float = 0.01  # sub-step size [time units]
    speed: int = 5  # sub-steps per frame
    running: bool = True
    frame_count: int = 0

    def tick(self) -> bool:
        """Advance one frame. Returns True if time moved."""
        if not self.running:
            return False
        self.time += self.step * self.speed
        self.frame_count += 1
        return True

    def reset(self):
        self.time = 0.0
        self.frame_count = 0

    @classmethod
    def load_from_hdf5(cls, filepath: str) -> 'SimulationClock':
        """Read the clock attributes written by ``SimulationState.save_to_hdf5``."""
        with h5py.File(filepath, 'r') as f:
            return cls(
                time=float(f.attrs['time']),
                step=float(f.attrs['step']),
                speed=int(f.attrs['speed']),
                running=bool(f.attrs['running']),
                frame_count=int(f.attrs['frame_count'])
            )


class SimulationState:
    """
    Physical state of every body.

    All physics arrays use scaled units:
    - positions: distance units, absolute (star at the origin)
    - velocities: distance units per time unit; satellite velocities are
      relative to their host planet
    - spin_angles: radians of self-rotation
    """

    def __init__(self, n_total: int):
        """
        Initialize empty state arrays.

        Args:
            n_total: Total number of bodies (star included)
        """
        self.positions = np.zeros((n_total, 3), dtype=np.float64)
        self.velocities = np.zeros((n_total, 3), dtype=np.float64)
        self.spin_angles = np.zeros(n_total, dtype=np.float64)
        self.initialized = np.zeros(n_total, dtype=bool)
        self.initialized[0] = True  # star is fixed at the origin

    @property
    def n_total(self) -> int:
        """Total number of bodies."""
        return len(self.positions)

    @property
    def is_finite(self) -> bool:
        """False once any position or velocity has blown up."""
        return bool(np.all(np.isfinite(self.positions)) and np.all(np.isfinite(self.velocities)))

    def copy(self) -> 'SimulationState':
        state = SimulationState(self.n_total)
        state.positions[:] = self.positions
        state.velocities[:] = self.velocities
        state.spin_angles[:] = self.spin_angles
        state.initialized[:] = self.initialized
        return state

    def save_to_hdf5(self, filepath: str, clock: Optional[SimulationClock] = None,
                     names: Optional[List[str]] = None, compression: str = "gzip"):
        """
        Save simulation state to HDF5 file.

        Args:
            filepath: Path to HDF5 file
            clock: Clock to store alongside the arrays
            names: Body names, stored for reference
            compression: HDF5 compression method ("gzip", "lzf", or None)
        """
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with h5py.File(filepath, 'w') as f:
            f.attrs['n_total'] = self.n_total
            if clock is not None:
                f.attrs['time'] = clock.time
                f.attrs['step'] = clock.step
                f.attrs['speed'] = clock.speed
                f.attrs['running'] = clock.running
                f.attrs['frame_count'] = clock.frame_count

            physics = f.create_group('physics')
            physics.create_dataset('positions', data=self.positions, compression=compression)
            physics.create_dataset('velocities', data=self.velocities, compression=compression)
            physics.create_dataset('spin_angles', data=self.spin_angles, compression=compression)
            physics.create_dataset('initialized', data=self.initialized, compression=compression)

            if names is not None:
                metadata = f.create_group('metadata')
                metadata.create_dataset('names', data=np.array(names, dtype=h5py.string_dtype()))

    @classmethod
    def load_from_hdf5(cls, filepath: str) -> 'SimulationState':
        """
        Load simulation state from HDF5 file.

        Args:
            filepath: Path to HDF5 file

        Returns:
            SimulationState instance loaded from file
        """
        with h5py.File(filepath, 'r') as f:
            n_total = int(f.attrs['n_total'])
            state = cls(n_total=n_total)

            physics = f['physics']
            state.positions[:] = physics['positions'][:]
            state.velocities[:] = physics['velocities'][:]
            state.spin_angles[:] = physics['spin_angles'][:]
            state.initialized[:] = physics['initialized'][:]

        return state

    def __repr__(self) -> str:
        """String representation of simulation state."""
        n_ready = int(np.sum(self.initialized))
        return (f"SimulationState({self.n_total} bodies, {n_ready} initialized, "
                f"finite={self.is_finite})")
