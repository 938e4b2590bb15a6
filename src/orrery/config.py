"""
Configuration management for star system orbital simulation.

This module defines the declarative star system records (star, planets,
satellites, scales) and the simulation parameters, and handles loading them
from YAML configuration files.

All values are stored in the scaled unit system of ``orrery.constants``:
- Distance: 10^5 km
- Time: 24 hours
- Mass: kg
- Angles: degrees (converted to radians by the engine)
"""

from dataclasses import dataclass, field, replace
from typing import List, Dict, Any, Optional, Tuple
import re
import yaml
from pathlib import Path
import numpy as np

from orrery import constants as const


class ConfigurationError(ValueError):
    """Raised when a star system configuration cannot be simulated."""


def to_float(value: Any) -> float:
    """Convert value to float, handling YAML quirks with scientific notation."""
    if isinstance(value, str):
        return float(value)
    return float(value)


def to_int(value: Any) -> int:
    """Convert value to int."""
    if isinstance(value, str):
        return int(value)
    return int(value)


def to_bool(value: Any) -> bool:
    """Convert value to bool."""
    if isinstance(value, str):
        return value.lower() in ('true', 'yes', '1')
    return bool(value)


def snake_case(key: str) -> str:
    """Convert a camelCase key (``semiMajor``) to snake_case (``semi_major``)."""
    return re.sub(r'(?<!^)(?=[A-Z])', '_', key).lower()


def normalize_keys(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of a mapping with every key converted to snake_case."""
    return {snake_case(key): value for key, value in data.items()}


@dataclass
class StarConfig:
    """Central star. Static at the origin, never integrated."""

    name: str
    mass: float  # kg
    radius: float  # distance units
    color: Any = 'yellow'
    glow_layers: int = 2
    visible: bool = True

    def __repr__(self):
        """Human-readable representation."""
        return (f"Star {self.name}: {self.mass / const.M_sun:.3f} M_sun, "
                f"R={self.radius / const.R_sun:.3f} R_sun")


@dataclass(frozen=True)
class OrbitalElements:
    """
    Static description of a planet or satellite orbit.

    Distances are stored unscaled; the planet/satellite distance scales are
    applied only when the body is placed or pulled by its host. Satellites
    carry the name of their host planet in ``host_name``.
    """

    name: str
    semi_major: float  # distance units
    eccentricity: float
    longitude_perihelion: float = 0.0  # degrees
    orbit_inclination: float = 0.0  # degrees
    tilted: bool = True
    mass: Optional[float] = None  # kg, required when hosting satellites
    rotation_speed: float = 0.0  # rad / time unit
    host_name: Optional[str] = None
    radius: float = 0.0  # distance units
    color: Any = 0xffffff
    texture: Optional[str] = None
    obliquity: float = 0.0  # degrees, carried for the renderer
    visible: bool = True

    def __post_init__(self):
        if not np.isfinite(self.semi_major) or self.semi_major <= 0:
            raise ConfigurationError(
                f"{self.name}: semi_major must be positive, got {self.semi_major}"
            )
        if not (0.0 <= self.eccentricity < 1.0):
            raise ConfigurationError(
                f"{self.name}: eccentricity must be in [0, 1), got {self.eccentricity}"
            )
        if self.mass is not None and self.mass <= 0:
            raise ConfigurationError(f"{self.name}: mass must be positive, got {self.mass}")

    @property
    def semi_minor(self) -> float:
        """Semi-minor axis b = a·sqrt(1 - e²) [distance units]."""
        return self.semi_major * np.sqrt(1.0 - self.eccentricity**2)

    @property
    def is_satellite(self) -> bool:
        """True when the body orbits a planet rather than the star."""
        return self.host_name is not None

    def rescaled(self, factor: float) -> 'OrbitalElements':
        """Return a copy with the orbit size multiplied by ``factor``."""
        return replace(self, semi_major=self.semi_major * factor)

    def __repr__(self):
        """Human-readable representation."""
        host = f" around {self.host_name}" if self.is_satellite else ""
        return (f"{self.name}{host}: a={self.semi_major:.4g}, e={self.eccentricity:.3f}, "
                f"peri={self.longitude_perihelion:.2f} deg, incl={self.orbit_inclination:.3f} deg")


@dataclass
class Scales:
    """
    Visualization multipliers.

    Distance scales stretch orbits at placement time; size scales only matter
    to the renderer and are stored alongside.
    """

    star_scale: float = 1.0
    planet_scale: float = 1.0
    satellite_scale: float = 1.0
    planet_distance_scale: float = 1.0
    satellite_distance_scale: float = 1.0
    measurement_distance: Optional[float] = None


@dataclass
class CameraSettings:
    """Suggested camera placement for a renderer. Not used by the engine."""

    position: Tuple[float, float, float]
    measurement_distance: float
    fov: float = 20.0
    aspect: float = 2.0
    near: float = 0.1
    far: float = 50000.0


@dataclass
class StarSystem:
    """A star with its planets and satellites. Names are primary keys."""

    name: str
    star: Optional[StarConfig] = None
    planets: List[OrbitalElements] = field(default_factory=list)
    satellites: List[OrbitalElements] = field(default_factory=list)
    scales: Scales = field(default_factory=Scales)
    camera_settings: Optional[CameraSettings] = None

    def set_star(self, *args, **kwargs):
        self.star = StarConfig(*args, **kwargs)

    def add_planet(self, name, radius, semi_major, eccentricity, longitude_perihelion,
                   orbit_inclination, color=0xffffff, texture=None, rotation_speed=0.0,
                   obliquity=0.0, mass=None, visible=True, tilted=True):
        self.planets.append(OrbitalElements(
            name=name,
            semi_major=semi_major,
            eccentricity=eccentricity,
            longitude_perihelion=longitude_perihelion,
            orbit_inclination=orbit_inclination,
            tilted=tilted,
            mass=mass,
            rotation_speed=rotation_speed,
            radius=radius,
            color=color,
            texture=texture,
            obliquity=obliquity,
            visible=visible
        ))

    def add_satellite(self, name, host_name, radius, semi_major, eccentricity,
                      longitude_perihelion, orbit_inclination, color=0xffffff, texture=None,
                      rotation_speed=0.0, obliquity=0.0, visible=False, tilted=True):
        self.satellites.append(OrbitalElements(
            name=name,
            semi_major=semi_major,
            eccentricity=eccentricity,
            longitude_perihelion=longitude_perihelion,
            orbit_inclination=orbit_inclination,
            tilted=tilted,
            rotation_speed=rotation_speed,
            host_name=host_name,
            radius=radius,
            color=color,
            texture=texture,
            obliquity=obliquity,
            visible=visible
        ))

    def set_scales(self, star_scale, planet_scale, satellite_scale,
                   planet_distance_scale, satellite_distance_scale, measurement_distance=None):
        self.scales = Scales(
            star_scale=star_scale,
            planet_scale=planet_scale,
            satellite_scale=satellite_scale,
            planet_distance_scale=planet_distance_scale,
            satellite_distance_scale=satellite_distance_scale,
            measurement_distance=measurement_distance
        )

    @property
    def largest_semi_major(self) -> float:
        """Largest planet semi-major axis [distance units], 0 without planets."""
        return max((planet.semi_major for planet in self.planets), default=0.0)

    def calculate_camera_settings(self):
        """Estimate a camera placement that frames every planet orbit."""
        largest = self.largest_semi_major
        self.camera_settings = CameraSettings(
            position=(0.0, 0.0, largest * 7.0),
            measurement_distance=largest * 6.0
        )

    def calculate_scales(self):
        """Derive rough default scales from the size of the system."""
        largest = self.largest_semi_major
        planet_scale = largest / 2.0
        self.set_scales(
            star_scale=largest / 50.0,
            planet_scale=planet_scale,
            satellite_scale=planet_scale,
            planet_distance_scale=1.0,
            satellite_distance_scale=50.0,
            measurement_distance=largest * 6.0
        )

    def __repr__(self):
        """Human-readable representation."""
        lines = [f"Star system: {self.name}", f"  {self.star}"]
        for body in self.planets + self.satellites:
            lines.append(f"  {body}")
        return "\n".join(lines)


@dataclass
class SimulationParameters:
    """
    Container for all simulation parameters.

    All internal values stored in scaled units:
    - Distance: 10^5 km
    - Time: 24 hours
    - Mass: kg
    """

    # Metadata
    simulation_name: str
    star_system: StarSystem
    scales: Scales = field(default_factory=Scales)
    output_directory: str = "./results"

    # Simulation control
    simulation_speed: int = 5  # sub-steps per frame
    simulation_step: float = 0.01  # time units per sub-step
    duration: float = 0.0  # time units (batch runs)
    output_interval: float = 0.0  # time units
    checkpoint_interval: float = 0.0  # time units
    running: bool = True

    # Physics options
    orbit_inclination: bool = True
    rotation_enabled: bool = False

    # Catalog
    random_seed: Optional[int] = None

    # Diagnostics
    check_energy_conservation: bool = True
    energy_tolerance: float = 0.01  # relative orbital energy error

    @property
    def frame_duration(self) -> float:
        """Simulated time covered by one frame [time units]."""
        return self.simulation_step * max(self.simulation_speed, 0)

    @property
    def total_body_count(self) -> int:
        """Star plus every planet and satellite."""
        return 1 + len(self.star_system.planets) + len(self.star_system.satellites)

    def validate(self) -> list:
        """
        Perform sanity checks on configuration parameters.

        Returns:
            List of warning/error messages. Empty list if all checks pass.
        """
        warnings = []
        system = self.star_system

        # Check star
        if system.star is None:
            warnings.append("ERROR: Star system has no star")
        elif system.star.mass <= 0:
            warnings.append(f"ERROR: Star mass must be positive, got {system.star.mass}")

        # Check timestep
        if self.simulation_step <= 0:
            warnings.append(f"ERROR: simulation_step must be positive, got {self.simulation_step}")

        if self.simulation_speed <= 0:
            warnings.append(
                f"WARNING: simulation_speed is {self.simulation_speed}; the simulation will not advance"
            )

        if self.duration < 0:
            warnings.append(f"ERROR: duration must not be negative, got {self.duration}")

        # Check distance scales
        if self.scales.planet_distance_scale <= 0:
            warnings.append(
                f"ERROR: planet_distance_scale must be positive, got {self.scales.planet_distance_scale}"
            )
        if self.scales.satellite_distance_scale <= 0:
            warnings.append(
                f"ERROR: satellite_distance_scale must be positive, got {self.scales.satellite_distance_scale}"
            )

        # Check names and hosts
        names = [system.star.name] if system.star is not None else []
        names += [body.name for body in system.planets + system.satellites]
        seen = set()
        for name in names:
            if name in seen:
                warnings.append(f"ERROR: Body name '{name}' is used more than once")
            seen.add(name)

        planets = {planet.name: planet for planet in system.planets}
        for satellite in system.satellites:
            host = planets.get(satellite.host_name)
            if host is None:
                warnings.append(
                    f"ERROR: Satellite {satellite.name} has unknown host planet '{satellite.host_name}'"
                )
            elif host.mass is None:
                warnings.append(
                    f"ERROR: Planet {host.name} hosts {satellite.name} but has no mass"
                )

        # Flag orbits that the integrator will resolve poorly
        for body in system.planets + system.satellites:
            if body.eccentricity > 0.8:
                warnings.append(
                    f"WARNING: {body.name} eccentricity ({body.eccentricity:.3f}) is high; "
                    f"perihelion passages need a small simulation_step"
                )

        if system.star is not None and system.star.mass > 0 and self.simulation_step > 0:
            for planet in system.planets:
                period = 2.0 * np.pi * np.sqrt(planet.semi_major**3 / (const.G * system.star.mass))
                steps_per_orbit = period / self.simulation_step
                if steps_per_orbit < 100:
                    warnings.append(
                        f"INFO: {planet.name} completes an orbit in {steps_per_orbit:.0f} steps. "
                        f"Orbit may not be stable."
                    )

        return warnings

    @classmethod
    def from_star_system(cls, star_system: StarSystem, simulation_name: Optional[str] = None,
                         **overrides) -> 'SimulationParameters':
        """Build parameters around a star system, taking its scales as defaults."""
        scales = overrides.pop('scales', None)
        if scales is None:
            scales = replace(star_system.scales)
        return cls(
            simulation_name=simulation_name or star_system.name,
            star_system=star_system,
            scales=scales,
            **overrides
        )

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'SimulationParameters':
        """
        Build parameters from a parsed configuration mapping.

        Raises:
            ConfigurationError: If the star system section is invalid
        """
        from orrery.catalog import load_star_system

        # Star system (library, random or custom)
        system_data = config.get('star_system', {})
        mode = system_data.get('mode', 'library')
        random_seed = system_data.get('random_seed')
        if random_seed is not None:
            random_seed = to_int(random_seed)

        custom_details = system_data.get('custom')
        if mode == 'custom' and custom_details is None and 'custom_file' in system_data:
            custom_path = Path(system_data['custom_file'])
            if not custom_path.exists():
                raise FileNotFoundError(f"Custom star system file not found: {custom_path}")
            custom_details = custom_path.read_text()

        star_system = load_star_system(
            mode=mode,
            name=system_data.get('name', 'SolarInner'),
            random_seed=random_seed,
            custom_details=custom_details
        )

        # Scales: star system defaults, overridden per key
        scales = replace(star_system.scales)
        for key, value in normalize_keys(config.get('scales', {}) or {}).items():
            if not hasattr(scales, key):
                raise ConfigurationError(f"Unknown scale '{key}'")
            setattr(scales, key, to_float(value))

        # Simulation control
        sim_control = config.get('simulation_control', {})
        physics_opts = config.get('physics_options', {})
        diagnostics = config.get('diagnostics', {})

        return cls(
            simulation_name=config.get('simulation_name', star_system.name),
            star_system=star_system,
            scales=scales,
            output_directory=config.get('output_directory', './results'),
            simulation_speed=to_int(sim_control.get('simulation_speed', 5)),
            simulation_step=to_float(sim_control.get('simulation_step', 0.01)),
            duration=to_float(sim_control.get('duration', 0.0)),
            output_interval=to_float(sim_control.get('output_interval', 0.0)),
            checkpoint_interval=to_float(sim_control.get('checkpoint_interval', 0.0)),
            running=to_bool(sim_control.get('running', True)),
            orbit_inclination=to_bool(physics_opts.get('orbit_inclination', True)),
            rotation_enabled=to_bool(physics_opts.get('rotation_enabled', False)),
            random_seed=random_seed,
            check_energy_conservation=to_bool(diagnostics.get('check_energy_conservation', True)),
            energy_tolerance=to_float(diagnostics.get('energy_tolerance', 0.01))
        )

    @classmethod
    def from_yaml(cls, filepath: str) -> 'SimulationParameters':
        """
        Load configuration from YAML file.

        Args:
            filepath: Path to YAML configuration file

        Returns:
            SimulationParameters object in scaled units

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigurationError: If config is invalid
        """
        config_path = Path(filepath)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {filepath}")

        with open(config_path, 'r') as f:
            config = yaml.safe_load(f)

        return cls.from_dict(config or {})

    def __repr__(self):
        """Human-readable representation."""
        system = self.star_system
        lines = [
            f"Simulation: {self.simulation_name}",
            f"Star system: {system.name}",
            f"  {system.star}",
            f"Bodies: {self.total_body_count} ({len(system.planets)} planets, "
            f"{len(system.satellites)} satellites)",
        ]
        for body in system.planets + system.satellites:
            lines.append(f"  {body}")
        lines.extend([
            f"Distance scales: planets x{self.scales.planet_distance_scale:g}, "
            f"satellites x{self.scales.satellite_distance_scale:g}",
            f"Step: {self.simulation_step:g} days x {self.simulation_speed} per frame",
            f"Duration: {self.duration:g} days",
            f"Orbit inclination: {self.orbit_inclination}",
        ])
        return "\n".join(lines)
