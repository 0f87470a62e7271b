"""Model package for the evacuation CA."""

from .state import PedestrianSnapshot, SimulationState, RunResult
from .grid import GridMap
from .floor_field import compute_distance_field, combine_fields
from .exit import Exit, ExitSet, Status
from .pedestrian import Pedestrian, PedestrianState
from .conflict import CellConflict, identify_conflicts, solve_conflicts, suppress_crossings
from .engine import SimulationEngine
from .runner import SimulationRunner, SetResult, SimulationError

__all__ = [
    'PedestrianSnapshot',
    'SimulationState',
    'RunResult',
    'GridMap',
    'compute_distance_field',
    'combine_fields',
    'Exit',
    'ExitSet',
    'Status',
    'Pedestrian',
    'PedestrianState',
    'CellConflict',
    'identify_conflicts',
    'solve_conflicts',
    'suppress_crossings',
    'SimulationEngine',
    'SimulationRunner',
    'SetResult',
    'SimulationError',
]
