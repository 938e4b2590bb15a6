"""
Star system simulation engine.

The Simulation owns the body registry, the physical state, the clock and
the live settings (scales, tilt and rotation flags). A host application
calls ``step()`` once per rendered frame and issues configuration commands
between frames, from the same thread.
"""

from dataclasses import asdict, dataclass, replace
from typing import Dict, Optional
import h5py
import numpy as np
import yaml

from orrery.config import ConfigurationError, OrbitalElements, SimulationParameters
from orrery.initialization import initialize_satellites, initialize_state
from orrery.physics import advance_system
from orrery.state import (
    BODY_TYPE_NAMES,
    BodyRegistry,
    SimulationClock,
    SimulationState,
)
from orrery.tilt import apply_orbit_inclination


@dataclass
class BodySnapshot:
    """Read-only copy of one body's state."""

    name: str
    body_type: str
    index: int
    position: np.ndarray
    velocity: np.ndarray
    spin_angle: float
    elements: Optional[OrbitalElements]


class Simulation:
    """
    Frame-driven orbital simulation of one star system.

    Args:
        params: Simulation parameters; kept as the configuration restored by
            ``reset()``

    Raises:
        ConfigurationError: If the star system cannot be simulated
    """

    def __init__(self, params: SimulationParameters):
        self.params = params
        self.registry = BodyRegistry(params.star_system)
        self.state = SimulationState(n_total=self.registry.n_total)
        self.clock = SimulationClock(
            step=params.simulation_step,
            speed=max(int(params.simulation_speed), 0),
            running=params.running
        )
        self.scales = replace(params.scales)
        self.orbit_inclination = params.orbit_inclination
        self.rotation_enabled = params.rotation_enabled

        self._check_distance_scale(self.scales.planet_distance_scale)
        self._check_distance_scale(self.scales.satellite_distance_scale)
        self.solve_initial_conditions()

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def solve_initial_conditions(self):
        """Re-solve every body from its orbital elements. Clock untouched."""
        initialize_state(self.registry, self.state, self.scales, self.orbit_inclination)

    def step(self) -> bool:
        """
        Advance one frame: ``speed`` sub-steps of ``step`` time units.

        Returns:
            True if the simulation advanced, False while paused
        """
        if not self.clock.tick():
            return False

        advance_system(
            self.state.positions,
            self.state.velocities,
            self.state.spin_angles,
            self.registry.planet_indices,
            self.registry.satellite_indices,
            self.registry.host_index,
            self.registry.masses,
            self.registry.rotation_speeds,
            self.scales.planet_distance_scale,
            self.scales.satellite_distance_scale,
            self.clock.step,
            self.clock.speed,
            self.rotation_enabled
        )
        return True

    def reset(self):
        """Restore the loaded configuration, zero the clock and re-solve."""
        self.scales = replace(self.params.scales)
        self.orbit_inclination = self.params.orbit_inclination
        self.rotation_enabled = self.params.rotation_enabled
        self.clock = SimulationClock(
            step=self.params.simulation_step,
            speed=max(int(self.params.simulation_speed), 0),
            running=self.params.running
        )
        self.state.spin_angles[:] = 0.0
        self.solve_initial_conditions()

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def set_simulation_speed(self, value: int):
        """
        Set sub-steps per frame. Values of zero or below clamp to 0 (paused).

        High values raise the computation load per frame without changing
        the step size.
        """
        self.clock.speed = int(value) if value > 0 else 0

    def set_simulation_step(self, value: float):
        """
        Set the sub-step size [time units].

        Stability degrades above roughly 0.1 time units for the inner
        solar system.

        Raises:
            ValueError: If value is not positive and finite
        """
        if not np.isfinite(value) or value <= 0:
            raise ValueError(f"simulation step must be positive, got {value}")
        self.clock.step = float(value)

    @staticmethod
    def _check_distance_scale(value: float):
        if not np.isfinite(value) or value <= 0:
            raise ConfigurationError(f"distance scale must be positive, got {value}")

    def set_planet_distance_scale(self, value: float):
        """
        Change the planet distance scale and re-solve planets and satellites.

        Simulation time is preserved.
        """
        self._check_distance_scale(value)
        self.scales.planet_distance_scale = float(value)
        self.solve_initial_conditions()

    def set_satellite_distance_scale(self, value: float):
        """
        Change the satellite distance scale and re-solve satellites around
        their hosts' current positions. Simulation time is preserved.
        """
        self._check_distance_scale(value)
        self.scales.satellite_distance_scale = float(value)
        initialize_satellites(self.registry, self.state, self.scales, self.orbit_inclination)

    def set_orbit_inclination(self, value: bool):
        """Tilt or flatten every orbit in place. Momentum is rotated too."""
        self.orbit_inclination = apply_orbit_inclination(
            self.registry, self.state, self.orbit_inclination, bool(value)
        )

    def set_running(self, value: bool):
        """Play or pause."""
        self.clock.running = bool(value)

    def set_rotation(self, value: bool):
        """Enable or disable self-rotation of planets and satellites."""
        self.rotation_enabled = bool(value)

    def set_star_scale(self, value: float):
        self.scales.star_scale = float(value)

    def set_planet_scale(self, value: float):
        self.scales.planet_scale = float(value)

    def set_satellite_scale(self, value: float):
        self.scales.satellite_scale = float(value)

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def time(self) -> float:
        """Simulated time since the last reset [time units]."""
        return self.clock.time

    @property
    def running(self) -> bool:
        return self.clock.running

    @property
    def body_map(self) -> Dict[str, int]:
        """Name → body index lookup table."""
        return dict(self.registry.index)

    def position(self, name: str) -> np.ndarray:
        """Copy of a body's position [distance units]."""
        return self.state.positions[self.registry.lookup(name)].copy()

    def velocity(self, name: str) -> np.ndarray:
        """Copy of a body's velocity (host-relative for satellites)."""
        return self.state.velocities[self.registry.lookup(name)].copy()

    def lookup(self, name: str) -> BodySnapshot:
        """Snapshot of one body by name."""
        i = self.registry.lookup(name)
        return BodySnapshot(
            name=name,
            body_type=BODY_TYPE_NAMES[int(self.registry.body_type[i])],
            index=i,
            position=self.state.positions[i].copy(),
            velocity=self.state.velocities[i].copy(),
            spin_angle=float(self.state.spin_angles[i]),
            elements=self.registry.elements[i]
        )

    def snapshot(self) -> Dict[str, BodySnapshot]:
        """Snapshots of every body, keyed by name."""
        return {name: self.lookup(name) for name in self.registry.names}

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------

    def save_checkpoint(self, filepath: str):
        """Save state, clock and live settings (tilt flag, rotation, scales) to HDF5."""
        self.state.save_to_hdf5(filepath, clock=self.clock, names=self.registry.names)

        with h5py.File(filepath, 'a') as f:
            settings = f.create_group('settings')
            settings.attrs['orbit_inclination'] = self.orbit_inclination
            settings.attrs['rotation_enabled'] = self.rotation_enabled
            settings.attrs['scales'] = yaml.safe_dump(asdict(self.scales), sort_keys=False)

    @classmethod
    def load_checkpoint(cls, params: SimulationParameters, filepath: str) -> 'Simulation':
        """
        Rebuild a simulation from its parameters and a saved checkpoint.

        The live settings stored with the checkpoint replace those of
        ``params``; ``reset()`` still returns to ``params``.

        Raises:
            ConfigurationError: If the checkpoint does not match the star system
        """
        simulation = cls(params)
        state = SimulationState.load_from_hdf5(filepath)
        if state.n_total != simulation.registry.n_total:
            raise ConfigurationError(
                f"Checkpoint holds {state.n_total} bodies, star system has "
                f"{simulation.registry.n_total}"
            )

        with h5py.File(filepath, 'r') as f:
            if 'metadata' in f:
                names = [name.decode() if isinstance(name, bytes) else name
                         for name in f['metadata/names'][:]]
                if names != simulation.registry.names:
                    raise ConfigurationError(
                        f"Checkpoint bodies {names} do not match star system "
                        f"bodies {simulation.registry.names}"
                    )
            if 'settings' in f:
                settings = f['settings'].attrs
                simulation.orbit_inclination = bool(settings['orbit_inclination'])
                simulation.rotation_enabled = bool(settings['rotation_enabled'])
                for key, value in yaml.safe_load(settings['scales']).items():
                    setattr(simulation.scales, key, None if value is None else float(value))

        simulation.state = state
        simulation.clock = SimulationClock.load_from_hdf5(filepath)
        return simulation

    def __repr__(self) -> str:
        return (f"Simulation({self.registry.system_name}, t={self.clock.time:.2f} days, "
                f"running={self.clock.running}, speed={self.clock.speed}, "
                f"step={self.clock.step:g})")
