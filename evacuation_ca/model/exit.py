"""Exits and the exit set owning the combined floor field."""

import logging
from enum import Enum
from typing import List, Optional

import numpy as np

from .grid import GridMap, Location
from .floor_field import compute_distance_field, combine_fields

logger = logging.getLogger(__name__)


class Status(Enum):
    """Outcome of exit configuration and floor field operations."""
    SUCCESS = "success"
    FAILURE = "failure"
    INACCESSIBLE_EXIT = "inaccessible_exit"


class Exit:
    """
    One physical doorway spanning one or more contiguous cells.

    The doorway keeps its own floor field once the exit set has been
    calculated.
    """

    def __init__(self, exit_id: int, first_cell: Location):
        self.id = exit_id
        self.coordinates: List[Location] = [first_cell]
        self.floor_field: Optional[np.ndarray] = None

    @property
    def width(self) -> int:
        """Number of cells forming the exit."""
        return len(self.coordinates)

    def contains(self, x: int, y: int) -> bool:
        return (x, y) in self.coordinates

    def is_adjacent(self, x: int, y: int) -> bool:
        """True if (x, y) touches any cell of the exit (Moore neighbourhood)."""
        if self.contains(x, y):
            return False
        return any(max(abs(x - cx), abs(y - cy)) == 1 for cx, cy in self.coordinates)

    def get_value(self, x: int, y: int) -> float:
        """Return this exit's floor field value at position."""
        if self.floor_field is None:
            raise RuntimeError(f"Floor field of exit {self.id} has not been calculated")
        height, width = self.floor_field.shape
        if 0 <= x < width and 0 <= y < height:
            return float(self.floor_field[y, x])
        return np.inf

    def __repr__(self) -> str:
        return f"Exit(id={self.id}, width={self.width}, cells={self.coordinates})"


class ExitSet:
    """
    All exits active in one simulation configuration plus the final field.

    The final field is the cell-wise minimum of every exit's field, i.e. the
    distance to the nearest exit.
    """

    def __init__(self, grid: GridMap, include_diagonals: bool = True):
        self.grid = grid
        self.include_diagonals = include_diagonals
        self.exits: List[Exit] = []
        self.final_floor_field: Optional[np.ndarray] = None

    @property
    def num_exits(self) -> int:
        return len(self.exits)

    def _check_new_cell(self, location: Location) -> bool:
        x, y = location
        if not self.grid.in_bounds(x, y):
            logger.warning("Exit cell (%d, %d) lies outside the grid", x, y)
            return False
        if self.grid.walls[y, x]:
            logger.warning("Exit cell (%d, %d) lies on an obstacle", x, y)
            return False
        if self.is_exit(x, y):
            logger.warning("Cell (%d, %d) already belongs to an exit", x, y)
            return False
        return True

    def add_new_exit(self, location: Location) -> Status:
        """Register a new single-cell exit."""
        if not self._check_new_cell(location):
            return Status.FAILURE
        x, y = location
        self.exits.append(Exit(len(self.exits), (x, y)))
        self.grid.exits[y, x] = True
        self.final_floor_field = None
        return Status.SUCCESS

    def expand_exit(self, exit: Exit, location: Location) -> Status:
        """Append a cell adjacent to an existing exit, widening the doorway."""
        if not self._check_new_cell(location):
            return Status.FAILURE
        x, y = location
        if not exit.is_adjacent(x, y):
            logger.warning("Cell (%d, %d) is not adjacent to exit %d", x, y, exit.id)
            return Status.FAILURE
        exit.coordinates.append((x, y))
        exit.floor_field = None
        self.grid.exits[y, x] = True
        self.final_floor_field = None
        return Status.SUCCESS

    def add_exit_cell(self, location: Location) -> Status:
        """
        Add a map exit cell, merging every exit it touches into one.

        Exits folded into the first adjacent one are removed and the
        remaining exits are renumbered in order.
        """
        touching = [e for e in self.exits if e.is_adjacent(*location)]
        if not touching:
            return self.add_new_exit(location)

        status = self.expand_exit(touching[0], location)
        if status != Status.SUCCESS or len(touching) == 1:
            return status

        merged = touching[0]
        for other in touching[1:]:
            merged.coordinates.extend(other.coordinates)
            self.exits.remove(other)
        for index, exit in enumerate(self.exits):
            exit.id = index
        logger.debug("Exit cell %s joined %d exits into exit %d",
                     location, len(touching), merged.id)
        return Status.SUCCESS

    def add_exit(self, cells: List[Location]) -> Status:
        """
        Register one exit made of the given cells, in order.

        Nothing is kept when any cell is rejected.
        """
        if not cells:
            return Status.FAILURE
        status = self.add_new_exit(cells[0])
        if status != Status.SUCCESS:
            return status
        new_exit = self.exits[-1]
        for cell in cells[1:]:
            status = self.expand_exit(new_exit, cell)
            if status != Status.SUCCESS:
                self._discard_exit(new_exit)
                return status
        return Status.SUCCESS

    def _discard_exit(self, exit: Exit) -> None:
        for x, y in exit.coordinates:
            self.grid.exits[y, x] = False
        self.exits.remove(exit)
        self.final_floor_field = None

    def is_exit(self, x: int, y: int) -> bool:
        return self.grid.in_bounds(x, y) and bool(self.grid.exits[y, x])

    def calculate_final_floor_field(self) -> Status:
        """
        Compute every exit's field and combine them into the final field.

        Returns INACCESSIBLE_EXIT when some exit cannot reach any walkable
        non-exit cell, or when no cell is left for pedestrians at all.
        """
        if not self.exits:
            logger.error("No exits registered; cannot build a floor field")
            return Status.FAILURE

        open_cells = ~self.grid.walls & ~self.grid.exits
        for exit in self.exits:
            exit.floor_field = compute_distance_field(
                self.grid.walls, exit.coordinates, self.include_diagonals
            )
            if not np.any(np.isfinite(exit.floor_field[open_cells])):
                logger.warning("Exit %d at %s is inaccessible", exit.id, exit.coordinates)
                return Status.INACCESSIBLE_EXIT

        self.final_floor_field = combine_fields([e.floor_field for e in self.exits])

        if not np.any(self.placeable_mask()):
            logger.warning("No cell can hold a pedestrian that reaches an exit")
            return Status.INACCESSIBLE_EXIT

        return Status.SUCCESS

    def get_final_value(self, x: int, y: int) -> float:
        """Return combined floor field value at position."""
        if self.final_floor_field is None:
            raise RuntimeError("Final floor field has not been calculated")
        if self.grid.in_bounds(x, y):
            return float(self.final_floor_field[y, x])
        return np.inf

    def placeable_mask(self) -> np.ndarray:
        """Walkable, non-exit cells from which some exit is reachable."""
        if self.final_floor_field is None:
            raise RuntimeError("Final floor field has not been calculated")
        return (~self.grid.walls & ~self.grid.exits
                & np.isfinite(self.final_floor_field))

    def placeable_cells(self) -> List[Location]:
        ys, xs = np.where(self.placeable_mask())
        return [(int(x), int(y)) for x, y in zip(xs, ys)]

    def clear(self) -> None:
        """Tear down all exits and fields of this configuration."""
        for exit in self.exits:
            for x, y in exit.coordinates:
                self.grid.exits[y, x] = False
        self.exits = []
        self.final_floor_field = None

    def __len__(self) -> int:
        return len(self.exits)

    def __iter__(self):
        return iter(self.exits)
