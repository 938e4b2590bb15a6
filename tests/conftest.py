"""
Pytest configuration for the star system orbital simulation tests.

This file ensures the orrery package is importable from tests and provides
small star systems shared across test modules.
"""

import os
import sys
import tempfile
from pathlib import Path

import pytest

# Add src to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / 'src'))

from orrery import constants as const  # noqa: E402
from orrery.config import SimulationParameters, StarSystem  # noqa: E402


@pytest.fixture
def sun_earth_system():
    """Sun and a single Earth-like planet on a slightly eccentric orbit."""
    system = StarSystem("Sun-Earth")
    system.set_star('Sun', const.M_sun, const.R_sun)
    system.add_planet('Earth', const.R_earth, 1496.0, 0.017, 102.9, 0.0,
                      'blue', mass=const.M_earth)
    system.set_scales(1, 1, 1, 1, 1)
    return system


@pytest.fixture
def earth_moon_system():
    """Sun, a tilted Earth and a tilted Moon."""
    system = StarSystem("Earth-Moon")
    system.set_star('Sun', const.M_sun, const.R_sun)
    system.add_planet('Earth', const.R_earth, 1496.0, 0.017, 102.9, 7.155,
                      'blue', mass=const.M_earth)
    system.add_satellite('Moon', 'Earth', 0.01737, 3.844, 0.0549, 180.0, 5.145, 'gray')
    system.set_scales(1, 1, 1, 1, 50)
    return system


@pytest.fixture
def two_planet_system():
    """Two tilted planets, the outer one hosting two satellites."""
    system = StarSystem("Two Planets")
    system.set_star('Star', const.M_sun, const.R_sun)
    system.add_planet('Inner', 0.05, 580.0, 0.2, 77.5, 7.0, 'gray', mass=3.3e23)
    system.add_planet('Outer', 0.7, 7785.0, 0.049, 14.3, 1.3, 'orange', mass=1.898e27)
    system.add_satellite('Io', 'Outer', 0.018, 4.217, 0.004, 30.0, 2.0, 'yellow')
    system.add_satellite('Europa', 'Outer', 0.016, 6.709, 0.009, 60.0, 0.47, 'white')
    system.set_scales(1, 1, 1, 1, 20)
    return system


@pytest.fixture
def earth_moon_params(earth_moon_system):
    """Parameters around the Earth-Moon system with a fine step."""
    return SimulationParameters.from_star_system(
        earth_moon_system,
        simulation_step=0.01,
        simulation_speed=5
    )


@pytest.fixture
def two_planet_params(two_planet_system):
    return SimulationParameters.from_star_system(two_planet_system)


@pytest.fixture
def recorded_run(earth_moon_system):
    """
    HDF5 output of a 30-day Earth-Moon run, one output per frame.

    Covers a full lunar orbit; Earth only sweeps a small arc.
    """
    from orrery.evolution import evolve_system
    from orrery.output import SimulationRecorder
    from orrery.simulation import Simulation

    params = SimulationParameters.from_star_system(
        earth_moon_system,
        simulation_step=0.015625,
        simulation_speed=16,
        duration=30.0,
        output_interval=0.25
    )
    simulation = Simulation(params)
    tmpdir = tempfile.mkdtemp()
    filepath = os.path.join(tmpdir, "earth_moon.h5")

    with SimulationRecorder(filepath, simulation) as recorder:
        evolve_system(simulation, 120, show_progress=False, recorder=recorder)

    yield filepath

    # Cleanup
    os.remove(filepath)
    os.rmdir(tmpdir)
