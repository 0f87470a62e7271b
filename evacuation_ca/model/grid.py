"""Grid map management for the evacuation CA."""

import numpy as np
from typing import Tuple, List, Set, Sequence

Location = Tuple[int, int]

ORTHOGONAL_OFFSETS = [(0, -1), (-1, 0), (1, 0), (0, 1)]
DIAGONAL_OFFSETS = [(-1, -1), (1, -1), (-1, 1), (1, 1)]

# Symbols used by ASCII environment maps
WALL_CHAR = '#'
EMPTY_CHAR = '.'
EXIT_CHAR = '_'
PEDESTRIAN_CHAR = 'P'


class GridMap:
    """
    Fixed-size 2D environment with several data layers.

    Coordinate convention: (x, y) for API, [y, x] for array indexing.
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height

        # Boolean mask: True = wall (impassable)
        self.walls = np.zeros((height, width), dtype=bool)

        # Boolean mask: True = cell belongs to an exit
        self.exits = np.zeros((height, width), dtype=bool)

        # Occupancy: 0 = empty, positive int = pedestrian id
        self.occupancy = np.zeros((height, width), dtype=np.int32)

        # Timesteps spent by pedestrians on each cell
        self.heatmap = np.zeros((height, width), dtype=np.int64)

    @classmethod
    def from_ascii(cls, rows: Sequence[str]) -> Tuple["GridMap", List[Location], List[Location]]:
        """
        Build a grid from an ASCII map.

        Returns the grid, the exit cells and the pedestrian cells found in
        the map. Row 0 of the map is y = 0.
        """
        rows = [row.rstrip('\n') for row in rows if row.strip()]
        if not rows:
            raise ValueError("Environment map is empty")
        width = len(rows[0])
        if any(len(row) != width for row in rows):
            raise ValueError("Environment map rows must all have the same length")

        grid = cls(width, len(rows))
        exit_cells: List[Location] = []
        pedestrian_cells: List[Location] = []
        for y, row in enumerate(rows):
            for x, char in enumerate(row):
                if char == WALL_CHAR:
                    grid.walls[y, x] = True
                elif char == EXIT_CHAR:
                    exit_cells.append((x, y))
                elif char == PEDESTRIAN_CHAR:
                    pedestrian_cells.append((x, y))
                elif char != EMPTY_CHAR:
                    raise ValueError(f"Unknown map symbol {char!r} at ({x}, {y})")
        return grid, exit_cells, pedestrian_cells

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def add_wall_rectangle(self, x: int, y: int, w: int, h: int) -> None:
        """Mark rectangular region as wall."""
        # Clamp to grid boundaries
        x_end = min(x + w, self.width)
        y_end = min(y + h, self.height)
        x = max(0, x)
        y = max(0, y)
        self.walls[y:y_end, x:x_end] = True

    def add_wall_points(self, coords: List[Location]) -> None:
        """Mark specific cells as walls."""
        for x, y in coords:
            if self.in_bounds(x, y):
                self.walls[y, x] = True

    def is_walkable(self, x: int, y: int) -> bool:
        """Check if cell is within bounds and not a wall."""
        if not self.in_bounds(x, y):
            return False
        return not self.walls[y, x]

    def is_occupied(self, x: int, y: int) -> bool:
        """Check if cell contains a pedestrian."""
        if not self.in_bounds(x, y):
            return True  # Out of bounds treated as occupied
        return self.occupancy[y, x] != 0

    def is_diagonal_step_clear(self, x: int, y: int, dx: int, dy: int) -> bool:
        """A diagonal step may not cut the corner of a wall."""
        return self.is_walkable(x + dx, y) and self.is_walkable(x, y + dy)

    def get_neighbors(self, x: int, y: int,
                      include_diagonals: bool = False) -> List[Location]:
        """
        Get walkable neighboring cells (von Neumann or Moore neighborhood).

        Orthogonal neighbours come first, then diagonal ones. The cell
        itself is not included.
        """
        neighbors = []
        for dx, dy in ORTHOGONAL_OFFSETS:
            nx, ny = x + dx, y + dy
            if self.is_walkable(nx, ny):
                neighbors.append((nx, ny))

        if include_diagonals:
            for dx, dy in DIAGONAL_OFFSETS:
                nx, ny = x + dx, y + dy
                if self.is_walkable(nx, ny) and self.is_diagonal_step_clear(x, y, dx, dy):
                    neighbors.append((nx, ny))

        return neighbors

    def place_agent(self, agent_id: int, x: int, y: int) -> None:
        """Place pedestrian at position."""
        assert self.is_walkable(x, y), f"cannot place pedestrian on ({x}, {y})"
        assert self.occupancy[y, x] == 0, f"cell ({x}, {y}) already occupied"
        self.occupancy[y, x] = agent_id

    def remove_agent(self, x: int, y: int) -> None:
        """Remove pedestrian from position."""
        if self.in_bounds(x, y):
            self.occupancy[y, x] = 0

    def move_agent(self, agent_id: int,
                   from_pos: Location,
                   to_pos: Location) -> None:
        """Move pedestrian from one cell to another."""
        assert self.occupancy[from_pos[1], from_pos[0]] == agent_id
        self.remove_agent(*from_pos)
        self.place_agent(agent_id, *to_pos)

    def get_occupied_positions(self) -> Set[Location]:
        """Return set of all occupied cell positions."""
        ys, xs = np.where(self.occupancy != 0)
        return {(int(x), int(y)) for x, y in zip(xs, ys)}

    def pedestrian_count(self) -> int:
        return int(np.count_nonzero(self.occupancy))

    def record_heatmap(self) -> None:
        """Add one timestep of presence to every occupied cell."""
        self.heatmap += (self.occupancy != 0)

    def reset_occupancy(self) -> None:
        self.occupancy.fill(0)

    def reset_heatmap(self) -> None:
        self.heatmap.fill(0)
