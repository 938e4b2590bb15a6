"""
Visualization functions for star system orbital simulation.

This module provides functions to create plots and animations from simulation
HDF5 files:
- Top-down (X-Y plane) orbit plots
- 3D orbit plots
- Orbital energy error vs time plots
- 3D system evolution animations
- Summary report generation

All plots are saved as PNG files with publication-quality settings (300 DPI).
"""

import numpy as np
import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend for saving files
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation, PillowWriter
from pathlib import Path
import h5py

from orrery.analysis import analyze_simulation, load_trajectories
from orrery.state import PLANET, SATELLITE, STAR


# Set publication-quality plot defaults
plt.rcParams['figure.dpi'] = 300
plt.rcParams['savefig.dpi'] = 300
plt.rcParams['font.size'] = 10
plt.rcParams['axes.labelsize'] = 12
plt.rcParams['axes.titlesize'] = 14
plt.rcParams['xtick.labelsize'] = 10
plt.rcParams['ytick.labelsize'] = 10
plt.rcParams['legend.fontsize'] = 10


def plot_orbits_top_view(hdf5_filepath: str, output_path: str, include_satellites: bool = False):
    """
    Plot the recorded orbits projected onto the X-Y plane.

    Args:
        hdf5_filepath: Path to HDF5 simulation output file
        output_path: Path to save PNG plot
        include_satellites: Also draw satellite paths (they hug their hosts
            unless the satellite distance scale is large)

    Creates a plot with:
    - Star at the origin
    - One line per planet path, start marked with a circle
    """
    trajectories = load_trajectories(hdf5_filepath)
    positions = trajectories['positions']
    body_type = trajectories['body_type']

    fig, ax = plt.subplots(figsize=(10, 10))

    for i, name in enumerate(trajectories['names']):
        if body_type[i] == STAR:
            ax.scatter([0.0], [0.0], c='gold', s=200, marker='*',
                       edgecolors='black', linewidths=0.5, label=name, zorder=3)
            continue
        if body_type[i] == SATELLITE and not include_satellites:
            continue

        x = positions[:, i, 0]
        y = positions[:, i, 1]
        line, = ax.plot(x, y, '-', linewidth=1.0, alpha=0.8, label=name)
        ax.scatter([x[0]], [y[0]], color=line.get_color(), s=20, marker='o')

    ax.set_xlabel('X (10$^5$ km)')
    ax.set_ylabel('Y (10$^5$ km)')
    ax.set_title('Orbits (top view)')
    ax.set_aspect('equal')
    ax.grid(True, alpha=0.3)
    if len(trajectories['names']) <= 12:
        ax.legend(loc='upper left', bbox_to_anchor=(1.02, 1))

    plt.tight_layout()
    plt.savefig(output_path, dpi=300, bbox_inches='tight')
    plt.close()


def plot_orbits_3d(hdf5_filepath: str, output_path: str):
    """
    Create 3D plot of planet orbits.

    Args:
        hdf5_filepath: Path to HDF5 simulation output file
        output_path: Path to save PNG plot

    Creates a 3D plot showing:
    - Planet paths as lines
    - Start positions as green markers
    - End positions as red markers
    """
    trajectories = load_trajectories(hdf5_filepath)
    positions = trajectories['positions']
    planet_mask = trajectories['body_type'] == PLANET

    fig = plt.figure(figsize=(12, 10))
    ax = fig.add_subplot(111, projection='3d')

    if not np.any(planet_mask):
        ax.text(0.5, 0.5, 0.5, 'No planets in simulation',
                ha='center', va='center', fontsize=14)
        ax.set_title('Orbits')
        plt.savefig(output_path, dpi=300, bbox_inches='tight')
        plt.close()
        return

    ax.scatter([0.0], [0.0], [0.0], c='gold', s=150, marker='*')

    for i in np.flatnonzero(planet_mask):
        x = positions[:, i, 0]
        y = positions[:, i, 1]
        z = positions[:, i, 2]

        ax.plot(x, y, z, '-', alpha=0.6, linewidth=1.5, label=trajectories['names'][i])
        ax.scatter([x[0]], [y[0]], [z[0]], c='green', s=40,
                   marker='o', edgecolors='black', linewidths=0.5)
        ax.scatter([x[-1]], [y[-1]], [z[-1]], c='red', s=40,
                   marker='s', edgecolors='black', linewidths=0.5)

    ax.set_xlabel('X (10$^5$ km)')
    ax.set_ylabel('Y (10$^5$ km)')
    ax.set_zlabel('Z (10$^5$ km)')
    ax.set_title('Orbits')

    if np.sum(planet_mask) <= 8:
        ax.legend(loc='upper left', bbox_to_anchor=(1.05, 1))

    # Equal aspect ratio; inclinations are small so Z would otherwise be stretched
    planets = positions[:, planet_mask, :]
    max_range = max(np.abs(planets).max(), 1e-12)
    ax.set_xlim(-max_range, max_range)
    ax.set_ylim(-max_range, max_range)
    ax.set_zlim(-max_range, max_range)

    plt.tight_layout()
    plt.savefig(output_path, dpi=300, bbox_inches='tight')
    plt.close()


def plot_energy_error_vs_time(hdf5_filepath: str, output_path: str):
    """
    Plot the relative orbital energy error of every body over time.

    Args:
        hdf5_filepath: Path to HDF5 simulation output file
        output_path: Path to save PNG plot
    """
    trajectories = load_trajectories(hdf5_filepath)
    n_outputs = len(trajectories['time'])

    with h5py.File(hdf5_filepath, 'r') as f:
        energy_errors = f['conservation/energy_error'][:n_outputs]
        tolerance = float(f['config'].attrs['energy_tolerance'])

    fig, ax = plt.subplots(figsize=(10, 6))

    for i, name in enumerate(trajectories['names']):
        if trajectories['body_type'][i] == STAR:
            continue
        ax.plot(trajectories['time'], energy_errors[:, i], '-', linewidth=1.5, label=name)

    ax.axhline(tolerance, color='red', linestyle='--', linewidth=1, label='Tolerance')
    ax.set_xlabel('Time (days)')
    ax.set_ylabel('Relative orbital energy error')
    ax.set_title('Orbital Energy Conservation')
    ax.grid(True, alpha=0.3)
    if len(trajectories['names']) <= 12:
        ax.legend(loc='upper left', bbox_to_anchor=(1.02, 1))

    plt.tight_layout()
    plt.savefig(output_path, dpi=300, bbox_inches='tight')
    plt.close()


def animate_system_evolution(hdf5_filepath: str, output_path: str,
                             frame_skip: int = 10, fps: int = 10):
    """
    Create top-down animation of system evolution over time.

    Args:
        hdf5_filepath: Path to HDF5 simulation output file
        output_path: Path to save animation (GIF)
        frame_skip: Use every Nth recorded output to reduce file size
        fps: Frames per second in output animation
    """
    trajectories = load_trajectories(hdf5_filepath)
    times = trajectories['time'][::frame_skip]
    positions = trajectories['positions'][::frame_skip]
    body_type = trajectories['body_type']

    fig, ax = plt.subplots(figsize=(10, 10))

    lim = max(np.abs(positions[:, :, :2]).max(), 1e-12) * 1.05
    ax.set_xlim(-lim, lim)
    ax.set_ylim(-lim, lim)
    ax.set_aspect('equal')
    ax.set_xlabel('X (10$^5$ km)')
    ax.set_ylabel('Y (10$^5$ km)')

    ax.scatter([0.0], [0.0], c='gold', s=200, marker='*', label='Star')
    planet_scatter = ax.scatter([], [], c='tab:blue', s=30, label='Planets')
    satellite_scatter = ax.scatter([], [], c='tab:gray', s=5, label='Satellites')

    title = ax.set_title('')
    ax.legend(loc='upper right')

    planet_mask = body_type == PLANET
    satellite_mask = body_type == SATELLITE

    def update(frame):
        """Update function for animation."""
        planet_scatter.set_offsets(positions[frame][planet_mask, :2])
        satellite_scatter.set_offsets(positions[frame][satellite_mask, :2])
        title.set_text(f'Time: {times[frame]:.1f} days')
        return planet_scatter, satellite_scatter, title

    anim = FuncAnimation(fig, update, frames=len(times), interval=1000/fps, blit=False)

    if output_path.endswith('.gif'):
        anim.save(output_path, writer=PillowWriter(fps=fps))
    else:
        # Default to GIF if extension not recognized
        anim.save(output_path + '.gif', writer=PillowWriter(fps=fps))

    plt.close()


def generate_summary_report(hdf5_filepath: str, output_path: str):
    """
    Generate text summary report of simulation results.

    Args:
        hdf5_filepath: Path to HDF5 simulation output file
        output_path: Path to save text report

    Creates a formatted text file with:
    - Simulation information
    - Recovered orbit shape of every body
    - Orbital energy conservation metrics
    """
    results = analyze_simulation(hdf5_filepath)

    with h5py.File(hdf5_filepath, 'r') as f:
        tolerance = float(f['config'].attrs['energy_tolerance'])

    lines = []
    lines.append("=" * 70)
    lines.append("STAR SYSTEM ORBITAL SIMULATION - SUMMARY REPORT")
    lines.append("=" * 70)
    lines.append("")

    lines.append("SIMULATION INFORMATION")
    lines.append("-" * 70)
    lines.append(f"HDF5 File: {Path(hdf5_filepath).name}")
    lines.append(f"Star System: {results['star_system']}")
    lines.append(f"Final Time: {results['final_time_days']:.2f} days "
                 f"({results['final_time_days'] / 365.25:.3f} yr)")
    lines.append(f"Recorded Outputs: {results['n_outputs']}")
    lines.append("")

    lines.append("RECOVERED ORBITS (unscaled, 10^5 km)")
    lines.append("-" * 70)
    lines.append(f"{'Body':<20}{'Host':<16}{'Perihelion':>12}{'Aphelion':>12}{'Ecc.':>8}")
    for name, body in results['bodies'].items():
        lines.append(f"{name:<20}{body['host']:<16}{body['perihelion']:>12.2f}"
                     f"{body['aphelion']:>12.2f}{body['eccentricity']:>8.4f}")
    lines.append("")

    lines.append("CONSERVATION METRICS")
    lines.append("-" * 70)
    lines.append(f"Max Orbital Energy Error: {100.0 * results['max_energy_error']:.4f}%")
    if results['max_energy_error'] > tolerance:
        lines.append(f"WARNING: Orbital energy drifted by >{100.0 * tolerance:g}%")

    lines.append("")
    lines.append("=" * 70)

    report_text = "\n".join(lines)
    Path(output_path).write_text(report_text, encoding='utf-8')
