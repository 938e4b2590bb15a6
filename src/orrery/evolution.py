"""
Batch time evolution for star system orbital simulation.

The interactive engine advances one frame per ``Simulation.step()`` call.
This module drives that same step loop offline for a fixed number of
frames, recording the trajectory and checkpoints along the way.

FRAME SCHEME:
Each frame runs ``speed`` sub-steps of ``step`` time units, so a frame
covers ``step × speed`` time units of simulated time. Output and checkpoint
intervals are converted from time units to whole frames.
"""

import numpy as np
from tqdm import tqdm

from orrery.config import SimulationParameters
from orrery.simulation import Simulation


def frames_per_interval(interval: float, frame_duration: float):
    """
    Whole frames between two events ``interval`` time units apart.

    Returns:
        int >= 1, or None when the interval is disabled or frames do not
        advance time
    """
    if interval <= 0 or frame_duration <= 0:
        return None
    return max(1, int(interval / frame_duration))


def frames_for_duration(duration: float, frame_duration: float) -> int:
    """Number of frames needed to cover ``duration`` time units."""
    if duration <= 0 or frame_duration <= 0:
        return 0
    return int(np.ceil(duration / frame_duration - 1e-9))


def evolve_system(
    simulation: Simulation,
    n_frames: int,
    show_progress: bool = True,
    recorder=None
) -> dict:
    """
    Evolve the simulation forward for n_frames frames.

    Steps per frame:
    1. ``simulation.step()`` (planets, then satellites, then spins)
    2. Record data to HDF5 every output interval if a recorder is given
    3. Save a checkpoint every checkpoint interval if a recorder is given

    Args:
        simulation: Simulation (modified in place)
        n_frames: Number of frames to run
        show_progress: Whether to show progress bar (tqdm)
        recorder: Optional SimulationRecorder for data output

    Returns:
        Dictionary with simulation statistics:
        - frames: Frames requested
        - frames_advanced: Frames during which time moved (not paused)
        - final_time: Final simulation time [days]
        - is_finite: False if any position or velocity blew up
    """
    params = simulation.params
    frame_duration = simulation.clock.step * simulation.clock.speed

    if recorder is not None:
        output_every = frames_per_interval(params.output_interval, frame_duration) or 1
        checkpoint_every = frames_per_interval(params.checkpoint_interval, frame_duration)
    else:
        output_every = None
        checkpoint_every = None

    # Record initial state
    if recorder is not None:
        recorder.record_frame(simulation)

    if show_progress:
        pbar = tqdm(total=n_frames, desc="Evolving system", unit="frames")

    frames_advanced = 0
    for frame in range(n_frames):
        if simulation.step():
            frames_advanced += 1

        if output_every is not None and (frame + 1) % output_every == 0:
            recorder.record_frame(simulation)

        if checkpoint_every is not None and (frame + 1) % checkpoint_every == 0:
            recorder.save_checkpoint(simulation, f"frame_{simulation.clock.frame_count:08d}")

        if show_progress:
            pbar.update(1)

    if show_progress:
        pbar.close()

    return {
        'frames': n_frames,
        'frames_advanced': frames_advanced,
        'final_time': simulation.time,
        'is_finite': simulation.state.is_finite
    }


def run_simulation(
    params: SimulationParameters,
    n_frames: int = None,
    show_progress: bool = True
) -> tuple:
    """
    Run a complete simulation from initialization to completion.

    This is the top-level driver function that:
    1. Builds the Simulation and solves initial conditions
    2. Runs enough frames to cover ``params.duration``
    3. Returns the final simulation and statistics

    Args:
        params: SimulationParameters object
        n_frames: Frames to run (default: derived from params.duration)
        show_progress: Whether to show progress bar

    Returns:
        (simulation, stats) tuple
    """
    print("Initializing simulation...")
    simulation = Simulation(params)

    if n_frames is None:
        n_frames = frames_for_duration(params.duration, params.frame_duration)

    print(f"Running simulation: {n_frames} frames, "
          f"{simulation.clock.speed} sub-steps of {simulation.clock.step:g} days per frame")
    print(f"Total bodies: {simulation.registry.n_total} "
          f"(1 star + {simulation.registry.n_planets} planets "
          f"+ {simulation.registry.n_satellites} satellites)")

    stats = evolve_system(simulation, n_frames, show_progress=show_progress)

    print(f"\nSimulation complete!")
    print(f"  Final time: {simulation.time:.2f} days ({simulation.time / 365.25:.3f} yr)")
    if not stats['is_finite']:
        print("  WARNING: state is no longer finite; reduce the simulation step")

    return simulation, stats
