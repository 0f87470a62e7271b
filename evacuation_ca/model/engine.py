"""Timestep orchestration for the evacuation CA."""

import logging
import numpy as np
from typing import Callable, List, Optional, Sequence, Tuple

from ..config import MovementConfig
from .grid import GridMap
from .exit import ExitSet, Status
from .pedestrian import Pedestrian
from .panic import panic_mask, panic_sensitivity
from .conflict import identify_conflicts, solve_conflicts, suppress_crossings
from .state import SimulationState, PedestrianSnapshot, RunResult

logger = logging.getLogger(__name__)

Location = Tuple[int, int]


class SimulationEngine:
    """
    Runs one evacuation on a grid whose exit set is already calculated.

    Every timestep goes through the same ordered phases:
    1. DECIDE: every pedestrian samples a desired cell from the final field
    2. PANIC_UPDATE: crowded pedestrians panic and re-sample with a
       flattened distribution
    3. SUPPRESS_CROSSING: crossing diagonal moves are cancelled (only when
       X movement is not allowed)
    4. RESOLVE_CONFLICTS: one random winner per contested cell
    5. COMMIT: all accepted moves are applied at once
    6. RESET_TRANSIENT: desires and panic are cleared

    Random draws happen in a fixed order: one per pedestrian (id order) in
    DECIDE, one per panicked pedestrian (id order) in PANIC_UPDATE, and for
    each contested cell (first-desired order) an optional friction draw
    followed by the winner draw.
    """

    def __init__(self, grid: GridMap, exit_set: ExitSet,
                 movement: Optional[MovementConfig] = None,
                 seed: Optional[int] = None):
        if exit_set.final_floor_field is None:
            raise RuntimeError("Exit set must be calculated before creating an engine")

        self.grid = grid
        self.exit_set = exit_set
        self.movement = movement or MovementConfig()
        self.seed = seed
        self.rng = np.random.default_rng(seed)
        self.current_step = 0

        self.pedestrians: List[Pedestrian] = []
        self.active_pedestrians: List[Pedestrian] = []

        # Metrics tracking
        self.exited_count = 0
        self.conflict_count = 0
        self.blocked_count = 0
        self.panic_count = 0
        self.crossings_suppressed = 0

    @property
    def final_field(self) -> np.ndarray:
        return self.exit_set.final_floor_field

    def _add_pedestrian(self, position: Location) -> None:
        pedestrian = Pedestrian(len(self.pedestrians) + 1, position)
        self.pedestrians.append(pedestrian)
        self.active_pedestrians.append(pedestrian)
        self.grid.place_agent(pedestrian.id, *position)

    def _free_placeable_cells(self) -> List[Location]:
        return [cell for cell in self.exit_set.placeable_cells()
                if not self.grid.is_occupied(*cell)]

    def place_pedestrians(self, cells: Sequence[Location]) -> Status:
        """Place pedestrians on explicit cells."""
        free = set(self._free_placeable_cells())
        if len(set(cells)) != len(cells) or not all(tuple(c) in free for c in cells):
            logger.error("Pedestrian cells must be distinct, free and able to reach an exit")
            return Status.FAILURE
        for cell in cells:
            self._add_pedestrian(tuple(cell))
        return Status.SUCCESS

    def insert_pedestrians_at_random(self, count: int) -> Status:
        """Place `count` pedestrians on random free placeable cells."""
        free = self._free_placeable_cells()
        if count > len(free):
            logger.error("Cannot place %d pedestrians on %d free cells", count, len(free))
            return Status.FAILURE
        chosen = self.rng.choice(len(free), size=count, replace=False)
        for idx in sorted(int(i) for i in chosen):
            self._add_pedestrian(free[idx])
        return Status.SUCCESS

    def step(self) -> SimulationState:
        """Execute one discrete time step."""
        self.current_step += 1

        # Occupancy as seen by every decision of this timestep
        occupied = {p.position for p in self.active_pedestrians}

        self._decide(occupied)
        panicked = self._update_panic(occupied)

        if not self.movement.allow_x_movement:
            self.crossings_suppressed += suppress_crossings(self.active_pedestrians)

        conflicts = identify_conflicts(self.active_pedestrians)
        solve_conflicts(conflicts, self.rng, self.movement.friction)
        self.conflict_count += len(conflicts)
        blocked = sum(len(c.contenders) - (c.winner is not None) for c in conflicts)
        self.blocked_count += blocked

        if conflicts:
            logger.debug("Step %d: %d conflicts, %d pedestrians blocked",
                         self.current_step, len(conflicts), blocked)

        newly_exited = self._commit()

        state = self._create_state_snapshot(panicked)

        for pedestrian in self.active_pedestrians:
            pedestrian.reset_transient()
        self.active_pedestrians = [p for p in self.active_pedestrians if p.active]

        if newly_exited:
            logger.debug("Step %d: %d pedestrians left, %d remaining",
                         self.current_step, newly_exited, len(self.active_pedestrians))
        return state

    def _decide(self, occupied) -> None:
        for pedestrian in self.active_pedestrians:
            pedestrian.target = self._sample_target(
                pedestrian, occupied, self.movement.static_strength
            )

    def _update_panic(self, occupied) -> int:
        mask = panic_mask(self.grid.occupancy, self.grid.walls,
                          self.movement.panic_threshold)
        sensitivity = panic_sensitivity(self.movement.static_strength,
                                        self.movement.panic_flattening)
        panicked = 0
        for pedestrian in self.active_pedestrians:
            x, y = pedestrian.position
            if mask[y, x]:
                pedestrian.panic = True
                pedestrian.target = self._sample_target(pedestrian, occupied, sensitivity)
                panicked += 1

        if panicked:
            logger.debug("Step %d: %d pedestrians in panic", self.current_step, panicked)
        self.panic_count += panicked
        return panicked

    def _sample_target(self, pedestrian: Pedestrian, occupied,
                       sensitivity: float) -> Optional[Location]:
        neighbors = self.grid.get_neighbors(*pedestrian.position,
                                            self.movement.allow_diagonal)
        probs = pedestrian.calculate_transition_probabilities(
            neighbors, self.final_field, occupied, sensitivity
        )
        return pedestrian.decide_next_move(probs, self.rng)

    def _commit(self) -> int:
        """Apply every accepted move, vacating all origins before filling targets."""
        movers = [p for p in self.active_pedestrians if p.target is not None]

        for pedestrian in movers:
            self.grid.remove_agent(*pedestrian.position)

        newly_exited = 0
        for pedestrian in self.active_pedestrians:
            if pedestrian.target is None:
                pedestrian.update_state(pedestrian.position, moved=False, at_exit=False)
                continue

            new_pos = pedestrian.target
            at_exit = self.exit_set.is_exit(*new_pos)
            if not at_exit:
                self.grid.place_agent(pedestrian.id, *new_pos)
            pedestrian.update_state(new_pos, moved=True, at_exit=at_exit)
            if at_exit:
                newly_exited += 1

        self.exited_count += newly_exited
        self.grid.record_heatmap()
        self._check_occupancy()
        return newly_exited

    def _check_occupancy(self) -> None:
        """Grid and pedestrian positions must describe the same occupancy."""
        remaining = [p for p in self.pedestrians if p.active]
        assert self.grid.pedestrian_count() == len(remaining), \
            "pedestrian count does not match grid occupancy"
        assert len(remaining) + self.exited_count == len(self.pedestrians), \
            "pedestrians were created or lost"
        for pedestrian in remaining:
            x, y = pedestrian.position
            assert self.grid.occupancy[y, x] == pedestrian.id, \
                f"{pedestrian} not found on the grid"
            assert not self.grid.walls[y, x], f"{pedestrian} stands on a wall"

    def _create_state_snapshot(self, panicked: int) -> SimulationState:
        """Create snapshot of current simulation state."""
        pedestrian_snapshots = [
            PedestrianSnapshot(
                pedestrian_id=p.id,
                x=p.position[0],
                y=p.position[1],
                state=p.state.value,
                panic=p.panic
            )
            for p in self.pedestrians
        ]

        remaining = sum(1 for p in self.pedestrians if p.active)
        metrics = {
            'remaining': remaining,
            'exited': self.exited_count,
            'total_pedestrians': len(self.pedestrians),
            'conflicts': self.conflict_count,
            'panicked': panicked,
            'throughput': self.exited_count / max(1, self.current_step)
        }

        return SimulationState(
            step=self.current_step,
            pedestrians=pedestrian_snapshots,
            grid_occupancy=self.grid.occupancy.copy(),
            metrics=metrics
        )

    def is_finished(self) -> bool:
        """The run ends once the grid holds no pedestrian."""
        return len(self.active_pedestrians) == 0

    def run(self, callback: Optional[Callable[[SimulationState], None]] = None,
            keep_states: bool = False) -> RunResult:
        """
        Step until the grid is empty.

        The callback also receives the initial placement as step 0.
        """
        result = RunResult(seed=self.seed, timesteps=0,
                           pedestrians=len(self.pedestrians))
        if callback is not None:
            callback(self._create_state_snapshot(panicked=0))
        while not self.is_finished():
            state = self.step()
            if callback is not None:
                callback(state)
            if keep_states:
                result.states.append(state)

        result.timesteps = self.current_step
        result.conflicts = self.conflict_count
        result.blocked_moves = self.blocked_count
        result.panic_events = self.panic_count
        result.crossings_suppressed = self.crossings_suppressed
        return result

    def get_summary(self) -> dict:
        """Get summary statistics for the run so far."""
        return {
            'total_steps': self.current_step,
            'pedestrians_exited': self.exited_count,
            'pedestrians_total': len(self.pedestrians),
            'pedestrians_remaining': len(self.active_pedestrians),
            'conflicts': self.conflict_count,
            'blocked_moves': self.blocked_count,
            'panic_events': self.panic_count,
            'crossings_suppressed': self.crossings_suppressed,
        }
