"""
Main simulation runner script.

Usage:
    python scripts/run_simulation.py configs/solar_inner.yaml

This script:
1. Loads configuration from YAML file
2. Builds the simulation and solves initial conditions
3. Runs the simulation with progress bar
4. Saves results to HDF5 file
5. Generates plots and summary report
"""

import sys
import argparse
import time
from pathlib import Path

# Add src to path so we can import the orrery package
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from orrery.config import SimulationParameters
from orrery.diagnostics import check_state_health, check_step_against_orbits
from orrery.evolution import evolve_system, frames_for_duration
from orrery.output import SimulationRecorder
from orrery.simulation import Simulation
from orrery.visualization import (
    plot_orbits_top_view,
    plot_orbits_3d,
    plot_energy_error_vs_time,
    generate_summary_report
)
from orrery.analysis import analyze_simulation


def main():
    parser = argparse.ArgumentParser(
        description='Run star system orbital simulation'
    )
    parser.add_argument(
        'config',
        type=str,
        help='Path to YAML configuration file'
    )
    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output HDF5 file path (default: auto from config)'
    )
    parser.add_argument(
        '--frames',
        type=int,
        default=None,
        help='Number of frames to run (default: from simulation_control.duration)'
    )
    parser.add_argument(
        '--skip-plots',
        action='store_true',
        help='Skip plot generation'
    )
    parser.add_argument(
        '--profile',
        action='store_true',
        help='Enable profiling'
    )

    args = parser.parse_args()

    # Load configuration
    print(f"Loading configuration from {args.config}...")
    params = SimulationParameters.from_yaml(args.config)

    # Determine output path
    if args.output:
        output_path = args.output
    else:
        output_dir = Path(params.output_directory)
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = str(output_dir / f"{params.simulation_name}.h5")

    print(f"Output will be saved to: {output_path}")
    print()

    n_frames = args.frames
    if n_frames is None:
        n_frames = frames_for_duration(params.duration, params.frame_duration)

    # Print configuration summary
    print("=" * 70)
    print(f"SIMULATION: {params.simulation_name}")
    print("=" * 70)
    print(f"Star system: {params.star_system.name}")
    print(f"Star: {params.star_system.star.name} ({params.star_system.star.mass:.3e} kg)")
    print(f"Planets: {len(params.star_system.planets)}")
    print(f"Satellites: {len(params.star_system.satellites)}")
    print(f"Distance scales: planets x{params.scales.planet_distance_scale:g}, "
          f"satellites x{params.scales.satellite_distance_scale:g}")
    print(f"Sub-step: {params.simulation_step:g} days, {params.simulation_speed} per frame")
    print(f"Frames: {n_frames} ({n_frames * params.frame_duration:.1f} days)")
    print(f"Orbit inclination: {params.orbit_inclination}")
    print("=" * 70)
    print()

    # Initialize simulation
    print("Initializing simulation...")
    simulation = Simulation(params)
    print(simulation.registry)
    print()

    step_check = check_step_against_orbits(simulation)
    if step_check['warning']:
        print(f"WARNING: {step_check['warning']}")
        print()

    # Run simulation
    print("Starting simulation...")
    start_time = time.time()

    if args.profile:
        import cProfile
        import pstats
        profiler = cProfile.Profile()
        profiler.enable()

    with SimulationRecorder(output_path, simulation, n_frames=n_frames) as recorder:
        stats = evolve_system(simulation, n_frames, show_progress=True, recorder=recorder)

    if args.profile:
        profiler.disable()
        profile_stats = pstats.Stats(profiler)
        profile_stats.sort_stats('cumulative')
        print("\n" + "=" * 70)
        print("PROFILING RESULTS (Top 20 functions)")
        print("=" * 70)
        profile_stats.print_stats(20)

    elapsed_time = time.time() - start_time

    print()
    print("=" * 70)
    print(f"Simulation completed in {elapsed_time:.1f} seconds ({elapsed_time/60:.1f} minutes)")
    print("=" * 70)
    print()

    if not stats['is_finite']:
        check_state_health(simulation)

    # Analyze results
    print("Analyzing results...")
    results = analyze_simulation(output_path)

    print()
    print("=" * 70)
    print("QUICK RESULTS SUMMARY")
    print("=" * 70)
    print(f"Final time: {results['final_time_days']:.2f} days")
    for name, body in results['bodies'].items():
        print(f"  {name:<20} a={body['semi_major']:10.2f}  e={body['eccentricity']:.4f}  "
              f"energy error={100.0 * body['max_energy_error']:.4f}%")
    print("=" * 70)
    print()

    # Generate plots and report
    if not args.skip_plots:
        print("Generating plots and report...")
        output_dir = Path(output_path).parent

        plot_files = {
            'top_view': output_dir / 'orbits_top_view.png',
            'orbits_3d': output_dir / 'orbits_3d.png',
            'energy_error': output_dir / 'energy_error_vs_time.png'
        }

        try:
            plot_orbits_top_view(output_path, str(plot_files['top_view']))
            print(f"  [OK] {plot_files['top_view'].name}")
        except Exception as e:
            print(f"  [ERROR] orbits_top_view: {e}")

        try:
            plot_orbits_3d(output_path, str(plot_files['orbits_3d']))
            print(f"  [OK] {plot_files['orbits_3d'].name}")
        except Exception as e:
            print(f"  [ERROR] orbits_3d: {e}")

        if params.check_energy_conservation:
            try:
                plot_energy_error_vs_time(output_path, str(plot_files['energy_error']))
                print(f"  [OK] {plot_files['energy_error'].name}")
            except Exception as e:
                print(f"  [ERROR] energy_error_vs_time: {e}")

        report_path = output_dir / 'summary_report.txt'
        try:
            generate_summary_report(output_path, str(report_path))
            print(f"  [OK] {report_path.name}")
        except Exception as e:
            print(f"  [ERROR] summary_report: {e}")

        print()
        print(f"All outputs saved to: {output_dir}")
    else:
        print("Skipping plot generation (--skip-plots)")

    print()
    print("Done!")


if __name__ == '__main__':
    main()
