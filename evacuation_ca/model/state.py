"""State snapshot dataclasses for the evacuation CA."""

from dataclasses import dataclass, field
from typing import List, Dict
import numpy as np


@dataclass(frozen=True)
class PedestrianSnapshot:
    """Immutable snapshot of a pedestrian's state at a given time step."""
    pedestrian_id: int
    x: int
    y: int
    state: str  # "moving", "stopped", "exited"
    panic: bool = False


@dataclass
class SimulationState:
    """Complete snapshot of simulation state at a given time step."""
    step: int
    pedestrians: List[PedestrianSnapshot]
    grid_occupancy: np.ndarray  # Copy of occupancy grid
    metrics: Dict[str, float]   # remaining, exited, conflicts, panic

    def to_csv_rows(self) -> List[Dict]:
        """Convert to CSV-compatible format."""
        return [
            {
                "step": self.step,
                "pedestrian_id": p.pedestrian_id,
                "x": p.x,
                "y": p.y,
                "state": p.state,
                "panic": int(p.panic)
            }
            for p in self.pedestrians
        ]


@dataclass
class RunResult:
    """Outcome of one simulation run."""
    seed: int
    timesteps: int
    pedestrians: int
    conflicts: int = 0
    blocked_moves: int = 0
    panic_events: int = 0
    crossings_suppressed: int = 0
    states: List[SimulationState] = field(default_factory=list)
