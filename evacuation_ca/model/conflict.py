"""Conflict detection and resolution for simultaneous moves."""

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np

from .pedestrian import Pedestrian

Location = Tuple[int, int]


@dataclass
class CellConflict:
    """One contested destination cell and the pedestrians that want it."""
    target: Location
    contenders: List[Pedestrian] = field(default_factory=list)
    winner: Optional[Pedestrian] = None

    @property
    def contender_ids(self) -> List[int]:
        return [p.id for p in self.contenders]


def group_by_target(pedestrians: Iterable[Pedestrian]) -> Dict[Location, List[Pedestrian]]:
    """Map each desired destination to the pedestrians desiring it, in order."""
    target_to_pedestrians: Dict[Location, List[Pedestrian]] = defaultdict(list)
    for pedestrian in pedestrians:
        if pedestrian.active and pedestrian.target is not None:
            target_to_pedestrians[pedestrian.target].append(pedestrian)
    return target_to_pedestrians


def identify_conflicts(pedestrians: Iterable[Pedestrian]) -> List[CellConflict]:
    """Return one record per destination desired by two or more pedestrians."""
    return [
        CellConflict(target=target, contenders=competing)
        for target, competing in group_by_target(pedestrians).items()
        if len(competing) > 1
    ]


def suppress_crossings(pedestrians: Iterable[Pedestrian]) -> int:
    """
    Cancel pairs of diagonal moves that cross inside the same 2x2 block.

    A pedestrian moving from (x, y) to (x+dx, y+dy) crosses another moving
    between (x+dx, y) and (x, y+dy), in either direction. Both revert to
    staying in place. Returns the number of cancelled desires.
    """
    diagonal_movers = {p.position: p for p in pedestrians
                       if p.active and p.is_diagonal_target()}

    crossing = set()
    for (x, y), pedestrian in diagonal_movers.items():
        dx = pedestrian.target[0] - x
        dy = pedestrian.target[1] - y
        corner_a = (x + dx, y)
        corner_b = (x, y + dy)
        for origin, destination in ((corner_a, corner_b), (corner_b, corner_a)):
            other = diagonal_movers.get(origin)
            if other is not None and other.target == destination:
                crossing.add(pedestrian.id)
                crossing.add(other.id)

    for pedestrian in diagonal_movers.values():
        if pedestrian.id in crossing:
            pedestrian.target = None
    return len(crossing)


def solve_conflicts(conflicts: List[CellConflict],
                    rng: np.random.Generator,
                    friction: float = 0.0) -> None:
    """
    Pick at most one winner per contested cell; losers stay in place.

    With probability `friction` nobody gets the cell. Otherwise the winner
    is drawn uniformly among the contenders.
    """
    for conflict in conflicts:
        if friction > 0.0 and rng.random() < friction:
            winner = None
        else:
            winner = conflict.contenders[rng.integers(len(conflict.contenders))]

        conflict.winner = winner
        for pedestrian in conflict.contenders:
            if pedestrian is not winner:
                pedestrian.target = None
