"""Pedestrian with floor-field driven transition probabilities."""

from enum import Enum
from typing import Tuple, Dict, List, Optional, Set
import numpy as np

Location = Tuple[int, int]


class PedestrianState(Enum):
    """Possible states for a pedestrian."""
    MOVING = "moving"
    STOPPED = "stopped"
    EXITED = "exited"


class Pedestrian:
    """
    Individual pedestrian of the floor field model.

    Transition probability towards candidate cell j:
    P(i -> j) = N * exp(-k * (F_j - F_min)) * (1 - n_j) * xi_j

    Where:
    - N = normalization constant
    - k = static field sensitivity, reduced while the pedestrian panics
    - F_j = final floor field value (distance to nearest exit)
    - F_min = smallest F among the candidates
    - n_j = 1 if occupied by another pedestrian, 0 otherwise
    - xi_j = 1 if reachable, 0 otherwise

    The current cell is always a candidate ("stay").
    """

    def __init__(self, pedestrian_id: int, position: Location):
        self.id = pedestrian_id
        self.position = position
        self.state = PedestrianState.MOVING
        self.target: Optional[Location] = None
        self.panic = False
        self.steps_taken = 0

    @property
    def active(self) -> bool:
        return self.state != PedestrianState.EXITED

    def calculate_transition_probabilities(
        self,
        neighbors: List[Location],
        final_field: np.ndarray,
        occupied: Set[Location],
        sensitivity: float
    ) -> Dict[Location, float]:
        """
        Calculate probability distribution over possible moves.

        Returns dict mapping positions to probabilities (sum to 1), the
        current position included.
        """
        candidates = [self.position]
        values = [final_field[self.position[1], self.position[0]]]

        for nx, ny in neighbors:
            # Occupancy factor: (1 - n_j)
            if (nx, ny) in occupied:
                continue
            value = final_field[ny, nx]
            if not np.isfinite(value):
                continue
            candidates.append((nx, ny))
            values.append(value)

        values = np.array(values, dtype=np.float64)
        if len(candidates) == 1 or not np.all(np.isfinite(values)):
            return {self.position: 1.0}

        # Shift by the minimum so the best candidate has weight 1
        weights = np.exp(-sensitivity * (values - values.min()))
        probs = weights / weights.sum()

        return {pos: float(p) for pos, p in zip(candidates, probs)}

    def decide_next_move(
        self,
        probabilities: Dict[Location, float],
        rng: np.random.Generator
    ) -> Optional[Location]:
        """
        Sample the desired destination. None means stay in place.
        """
        if not probabilities:
            return None

        positions = list(probabilities.keys())
        probs = np.array(list(probabilities.values()))
        probs = probs / probs.sum()

        idx = rng.choice(len(positions), p=probs)
        choice = positions[idx]
        return None if choice == self.position else choice

    def is_diagonal_target(self) -> bool:
        if self.target is None:
            return False
        return (self.target[0] != self.position[0]
                and self.target[1] != self.position[1])

    def update_state(self, new_position: Location,
                     moved: bool, at_exit: bool) -> None:
        """Update pedestrian state based on movement result."""
        if moved:
            self.steps_taken += 1
        if at_exit:
            self.state = PedestrianState.EXITED
        elif not moved:
            self.state = PedestrianState.STOPPED
        else:
            self.state = PedestrianState.MOVING

        self.position = new_position

    def reset_transient(self) -> None:
        """Clear per-timestep desire and panic."""
        self.target = None
        self.panic = False

    def __repr__(self) -> str:
        return (f"Pedestrian(id={self.id}, pos={self.position}, "
                f"state={self.state.value})")
