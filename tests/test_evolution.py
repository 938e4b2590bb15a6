"""
Tests for batch time evolution.
"""

import os
import tempfile

import numpy as np
import pytest

from orrery.config import SimulationParameters
from orrery.evolution import (
    evolve_system,
    frames_for_duration,
    frames_per_interval,
    run_simulation,
)
from orrery.output import SimulationRecorder
from orrery.simulation import Simulation


@pytest.fixture
def batch_params(earth_moon_system):
    """Quarter-day frames: 16 sub-steps of 1/64 day."""
    return SimulationParameters.from_star_system(
        earth_moon_system,
        simulation_step=0.015625,
        simulation_speed=16,
        duration=5.0,
        output_interval=1.25,
        checkpoint_interval=2.5
    )


class TestFrameArithmetic:
    """Tests for converting time intervals to frames."""

    def test_frames_per_interval(self):
        assert frames_per_interval(2.0, 0.5) == 4
        assert frames_per_interval(1.25, 0.25) == 5

    def test_interval_shorter_than_frame(self):
        assert frames_per_interval(0.1, 0.5) == 1

    def test_disabled_interval(self):
        assert frames_per_interval(0.0, 0.5) is None
        assert frames_per_interval(-1.0, 0.5) is None
        assert frames_per_interval(1.0, 0.0) is None

    def test_frames_for_duration(self):
        assert frames_for_duration(10.0, 0.5) == 20
        assert frames_for_duration(10.1, 0.5) == 21
        assert frames_for_duration(0.0, 0.5) == 0
        assert frames_for_duration(10.0, 0.0) == 0


class TestEvolveSystem:
    """Tests for the frame loop."""

    def test_stats(self, batch_params):
        simulation = Simulation(batch_params)
        stats = evolve_system(simulation, 20, show_progress=False)

        assert stats['frames'] == 20
        assert stats['frames_advanced'] == 20
        assert stats['final_time'] == 5.0
        assert stats['is_finite']
        assert simulation.clock.frame_count == 20

    def test_paused_run(self, batch_params):
        simulation = Simulation(batch_params)
        simulation.set_running(False)
        before = simulation.state.copy()

        stats = evolve_system(simulation, 10, show_progress=False)

        assert stats['frames_advanced'] == 0
        assert stats['final_time'] == 0.0
        np.testing.assert_array_equal(simulation.state.positions, before.positions)

    def test_matches_manual_stepping(self, batch_params):
        evolved = Simulation(batch_params)
        stepped = Simulation(batch_params)

        evolve_system(evolved, 8, show_progress=False)
        for _ in range(8):
            stepped.step()

        np.testing.assert_array_equal(evolved.state.positions, stepped.state.positions)
        np.testing.assert_array_equal(evolved.state.velocities, stepped.state.velocities)

    def test_recording_and_checkpoints(self, batch_params):
        """Outputs every 5 frames plus the initial one; checkpoints every 10."""
        simulation = Simulation(batch_params)

        with tempfile.TemporaryDirectory() as tmpdir:
            filepath = os.path.join(tmpdir, 'run.h5')
            with SimulationRecorder(filepath, simulation) as recorder:
                evolve_system(simulation, 20, show_progress=False, recorder=recorder)
                assert recorder.current_output_idx == 5

            assert os.path.exists(os.path.join(tmpdir, 'frame_00000010.h5'))
            assert os.path.exists(os.path.join(tmpdir, 'frame_00000020.h5'))
            assert not os.path.exists(os.path.join(tmpdir, 'frame_00000005.h5'))


class TestRunSimulation:
    """Tests for the top-level driver."""

    def test_covers_duration(self, batch_params):
        simulation, stats = run_simulation(batch_params, show_progress=False)
        assert stats['frames'] == 20
        assert simulation.time == 5.0
        assert stats['is_finite']

    def test_explicit_frames(self, batch_params):
        simulation, stats = run_simulation(batch_params, n_frames=3, show_progress=False)
        assert stats['frames'] == 3
        assert simulation.time == 0.75

    def test_zero_duration(self, batch_params):
        batch_params.duration = 0.0
        simulation, stats = run_simulation(batch_params, show_progress=False)
        assert stats['frames'] == 0
        assert simulation.time == 0.0
