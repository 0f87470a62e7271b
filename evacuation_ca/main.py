#!/usr/bin/env python3
"""
Floor Field Cellular Automata Evacuation Simulation

Pedestrians leave an environment through its exits, guided by the
distance to the nearest exit.

Usage:
    evacuation-ca --config configs/room.yaml [options]

Examples:
    evacuation-ca --config configs/room.yaml
    evacuation-ca --config configs/room.yaml --output-format heatmap --out-dir results/
    evacuation-ca --config configs/room.yaml --output-format visualization --simulations 1
    evacuation-ca --config configs/room.yaml --seed 42 --pedestrians 30
"""

import argparse
import logging
import sys
from pathlib import Path

from .config import load_config, OUTPUT_FORMATS, OUTPUT_HEATMAP, OUTPUT_VISUALIZATION
from .model.exit import Status
from .model.runner import SimulationRunner, SimulationError
from .export.csv_writer import CSVWriter, TimestepsWriter
from .export.visualizer import Visualizer, render_ascii, render_heatmap
from .export.reporter import Reporter

logger = logging.getLogger(__name__)


def show_set_info(set_index, exits) -> None:
    """Print the exits of a simulation set before its runs start."""
    print(f"\n  Simulation set {set_index}: {len(exits)} exit(s)")
    for number, cells in enumerate(exits):
        described = ' '.join(f'({x}, {y})' for x, y in cells)
        print(f"    Exit {number} (width {len(cells)}): {described}")


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Floor Field Cellular Automata Evacuation Simulation',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    evacuation-ca --config configs/room.yaml
    evacuation-ca --config configs/room.yaml --output-format heatmap --out-dir results/
    evacuation-ca --config configs/room.yaml --seed 42 --pedestrians 30
        """
    )

    # Required arguments
    parser.add_argument('--config', type=Path, required=True,
                        help='Path to YAML configuration file')

    # Optional overrides
    parser.add_argument('--out-dir', type=Path, default=Path('./output'),
                        help='Output directory for exports (default: ./output)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Initial random seed; each run uses the next one')
    parser.add_argument('--simulations', type=int, default=None,
                        help='Override runs per simulation set')
    parser.add_argument('--pedestrians', type=int, default=None,
                        help='Place this many pedestrians at random')
    parser.add_argument('--output-format', choices=OUTPUT_FORMATS, default=None,
                        help='What to print for every simulation set')

    # Export toggles
    parser.add_argument('--csv', dest='csv', action='store_true', default=None,
                        help='Enable per-step CSV export (default)')
    parser.add_argument('--no-csv', dest='csv', action='store_false',
                        help='Disable per-step CSV export')

    parser.add_argument('--snapshot', dest='snapshot', action='store_true', default=None,
                        help='Enable PNG images (default)')
    parser.add_argument('--no-snapshot', dest='snapshot', action='store_false',
                        help='Disable PNG images')

    parser.add_argument('--gif', action='store_true', default=False,
                        help='Enable GIF animation of the first run of every set')

    parser.add_argument('--quiet', action='store_true', default=False,
                        help='Suppress stdout output')
    parser.add_argument('--debug', action='store_true', default=False,
                        help='Log floor fields, conflicts and panic')

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s'
    )

    # Load configuration
    try:
        config = load_config(args.config)
    except FileNotFoundError:
        print(f"Error: Configuration file not found: {args.config}", file=sys.stderr)
        return 1
    except (ValueError, KeyError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    # Apply CLI overrides
    if args.simulations is not None:
        config.num_simulations = args.simulations
    if args.pedestrians is not None:
        config.pedestrian_count = args.pedestrians
        if config.layout.pedestrians:
            logger.warning("--pedestrians replaces %d pedestrians listed in the layout",
                           len(config.layout.pedestrians))
        config.layout.pedestrians = []
    if args.output_format is not None:
        config.output_format = args.output_format
    if args.csv is not None:
        config.csv_enabled = args.csv
    if args.snapshot is not None:
        config.snapshot_enabled = args.snapshot
    if args.gif:
        config.gif_enabled = True
    if args.seed is not None:
        config.seed = args.seed
    config.quiet = args.quiet
    config.debug = args.debug
    config.out_dir = args.out_dir

    try:
        config.validate()
        runner = SimulationRunner(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    grid = runner.grid
    if not config.quiet:
        print("Initializing simulation...")
        print(f"  Grid: {grid.width}x{grid.height}")
        print(f"  Simulation sets: {max(1, len(config.simulation_sets))}")
        print(f"  Runs per set: {config.num_simulations}")
        print(f"  Initial seed: {config.seed}")

    # Initialize exporters
    csv_writer = None
    if config.csv_enabled:
        csv_writer = CSVWriter(config.out_dir / 'simulation_log.csv')
        csv_writer.open()

    timesteps_writer = TimestepsWriter(config.out_dir / 'timesteps.csv')
    timesteps_writer.open()

    reporter = Reporter(str(args.config), config.seed)
    visualizers = {}

    def visualizer_for(set_index: int) -> Visualizer:
        if set_index not in visualizers:
            visualizers.clear()
            visualizers[set_index] = Visualizer(grid.width, grid.height, grid.walls, grid.exits)
        return visualizers[set_index]

    def on_step(set_index, run_index, state):
        if csv_writer:
            csv_writer.append(state, set_index, run_index)

        if config.gif_enabled and run_index == 0:
            visualizer_for(set_index).buffer_frame(state)

        if config.output_format == OUTPUT_VISUALIZATION and not config.quiet:
            print(f"\nSet {set_index} run {run_index} timestep {state.step}")
            print(render_ascii(state.grid_occupancy, grid.walls, grid.exits))

    if not config.quiet:
        print("\nRunning simulation...")

    try:
        set_info = None if config.quiet else show_set_info
        for set_result in runner.run(on_step, set_info):
            reporter.update(set_result)
            timesteps_writer.append(set_result)

            if set_result.status == Status.INACCESSIBLE_EXIT:
                if not config.quiet:
                    print(f"  Set {set_result.index}: at least one exit is inaccessible.")
                continue

            if not config.quiet:
                counts = ' '.join(str(t) for t in set_result.timesteps)
                print(f"  Set {set_result.index}: {counts}")

            visualizer = visualizer_for(set_result.index)
            if config.output_format == OUTPUT_HEATMAP and not config.quiet:
                print(render_heatmap(set_result.heatmap, grid.walls))

            if config.snapshot_enabled:
                visualizer.save_heatmap(
                    set_result.heatmap,
                    config.out_dir / f'set_{set_result.index}_heatmap.png'
                )
                visualizer.save_floor_field(
                    set_result.final_floor_field,
                    config.out_dir / f'set_{set_result.index}_floor_field.png'
                )

            if config.gif_enabled:
                gif_path = config.out_dir / f'set_{set_result.index}_run_0.gif'
                visualizer.generate_gif(gif_path, fps=10)
                visualizer.clear_frames()
                if not config.quiet:
                    print(f"  Animation saved: {gif_path}")

    except SimulationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        if not config.quiet:
            print("\nSimulation interrupted by user.")
    finally:
        if csv_writer:
            csv_writer.close()
        timesteps_writer.close()

    # Print summary report
    if not config.quiet:
        report = reporter.generate_summary(
            config.out_dir,
            config.csv_enabled,
            config.snapshot_enabled,
            config.gif_enabled
        )
        print(report)

    return 0


if __name__ == '__main__':
    sys.exit(main())
