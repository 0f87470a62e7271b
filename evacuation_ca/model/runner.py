"""Runs every simulation set of a configuration."""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np

from ..config import SimulationConfig
from .grid import GridMap
from .exit import ExitSet, Status
from .floor_field import format_field
from .engine import SimulationEngine
from .state import RunResult, SimulationState

logger = logging.getLogger(__name__)

Location = Tuple[int, int]

# Called with (set_index, run_index, state) after every committed timestep
StepCallback = Callable[[int, int, SimulationState], None]

# Called with (set_index, exits) before the runs of a set start
SetCallback = Callable[[int, List[List[Location]]], None]


class SimulationError(Exception):
    """Raised when a simulation set cannot be configured or run."""


@dataclass
class SetResult:
    """Outcome of one simulation set."""
    index: int
    exits: List[List[Location]]
    status: Status
    runs: List[RunResult] = field(default_factory=list)
    heatmap: Optional[np.ndarray] = None
    final_floor_field: Optional[np.ndarray] = None

    @property
    def timesteps(self) -> List[int]:
        return [r.timesteps for r in self.runs]


def build_grid(config: SimulationConfig) -> Tuple[GridMap, List[Location], List[Location]]:
    """Create the environment grid, returning it with map exits and pedestrians."""
    layout = config.layout
    if layout.map_rows:
        grid, exit_cells, pedestrian_cells = GridMap.from_ascii(layout.map_rows)
        if config.grid is not None and (config.grid.width, config.grid.height) != (grid.width, grid.height):
            raise ValueError(f"Map is {grid.width}x{grid.height} but grid is "
                             f"{config.grid.width}x{config.grid.height}")
    else:
        grid = GridMap(config.grid.width, config.grid.height)
        exit_cells, pedestrian_cells = [], []

    for wall_spec in layout.walls:
        if wall_spec.wall_type == "rectangle":
            grid.add_wall_rectangle(
                wall_spec.data['x'], wall_spec.data['y'],
                wall_spec.data['width'], wall_spec.data['height']
            )
        elif wall_spec.wall_type == "points":
            grid.add_wall_points(wall_spec.data['coords'])

    return grid, exit_cells, pedestrian_cells + list(layout.pedestrians)


class SimulationRunner:
    """
    Drives the simulation sets described by a configuration.

    With static exits there is a single set whose exit set is built once.
    With simulation sets, every set gets its own exit set that is torn down
    once its runs are done. The seed grows by one per run across all sets.
    """

    def __init__(self, config: SimulationConfig):
        self.config = config
        self.grid, map_exit_cells, self.static_pedestrians = build_grid(config)
        self.seed = config.seed

        if map_exit_cells and config.simulation_sets:
            raise ValueError("Map exits cannot be combined with 'simulation_sets'")
        self.static_exit_cells = map_exit_cells
        if config.uses_static_pedestrians and not self.static_pedestrians:
            raise ValueError("No pedestrians: give 'pedestrian_count' or place them in the layout")
        if not config.uses_static_pedestrians and self.static_pedestrians:
            logger.warning("Ignoring %d placed pedestrians: %d are inserted at random instead",
                           len(self.static_pedestrians), config.pedestrian_count)

    def _build_exit_set(self, exits: List[List[Location]],
                        loose_cells: List[Location]) -> ExitSet:
        exit_set = ExitSet(self.grid, self.config.movement.allow_diagonal)
        for cells in exits:
            if exit_set.add_exit(cells) != Status.SUCCESS:
                exit_set.clear()
                raise SimulationError(f"Invalid exit {cells}")
        for cell in loose_cells:
            if exit_set.add_exit_cell(cell) != Status.SUCCESS:
                exit_set.clear()
                raise SimulationError(f"Invalid exit cell {cell}")
        return exit_set

    def _exit_configurations(self) -> Iterator[Tuple[List[List[Location]], List[Location]]]:
        if self.config.uses_static_exits:
            yield self.config.layout.exits, self.static_exit_cells
        else:
            for sim_set in self.config.simulation_sets:
                yield sim_set.exits, []

    def run(self, step_callback: Optional[StepCallback] = None,
            set_callback: Optional[SetCallback] = None) -> Iterator[SetResult]:
        """Run every simulation set, yielding one result per set."""
        for index, (exits, loose_cells) in enumerate(self._exit_configurations()):
            exit_set = self._build_exit_set(exits, loose_cells)
            described = [list(e.coordinates) for e in exit_set]
            try:
                status = exit_set.calculate_final_floor_field()
                if status == Status.FAILURE:
                    raise SimulationError(f"Could not build floor field for set {index}")
                if status == Status.INACCESSIBLE_EXIT:
                    logger.warning("Simulation set %d skipped: an exit is inaccessible", index)
                    yield SetResult(index=index, exits=described, status=status)
                    continue

                logger.info("Simulation set %d: %d exits", index, exit_set.num_exits)
                if set_callback is not None:
                    set_callback(index, described)
                logger.debug("Final floor field:\n%s",
                             format_field(exit_set.final_floor_field, self.grid.walls))
                yield self._run_set(index, described, exit_set, step_callback)
            finally:
                exit_set.clear()

    def _run_set(self, index: int, exits: List[List[Location]], exit_set: ExitSet,
                 step_callback: Optional[StepCallback]) -> SetResult:
        self.grid.reset_heatmap()
        result = SetResult(index=index, exits=exits, status=Status.SUCCESS,
                           final_floor_field=exit_set.final_floor_field.copy())

        for run_index in range(self.config.num_simulations):
            engine = SimulationEngine(self.grid, exit_set, self.config.movement, self.seed)
            if self.config.uses_static_pedestrians:
                status = engine.place_pedestrians(self.static_pedestrians)
            else:
                status = engine.insert_pedestrians_at_random(self.config.pedestrian_count)
            if status != Status.SUCCESS:
                raise SimulationError(f"Could not place pedestrians for set {index}")

            callback = None
            if step_callback is not None:
                def callback(state, _run=run_index):
                    step_callback(index, _run, state)

            run_result = engine.run(callback)
            logger.info("Set %d run %d (seed %d): %d timesteps",
                        index, run_index, self.seed, run_result.timesteps)
            result.runs.append(run_result)

            self.grid.reset_occupancy()
            self.seed += 1

        result.heatmap = self.grid.heatmap.copy()
        return result
