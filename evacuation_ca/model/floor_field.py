"""Static floor field computation for the evacuation CA."""

import heapq
import numpy as np
from typing import Iterable, List, Tuple

ORTHOGONAL_COST = 1.0
DIAGONAL_COST = 1.5

_ORTHOGONAL_STEPS = [(0, -1), (-1, 0), (1, 0), (0, 1)]
_DIAGONAL_STEPS = [(-1, -1), (1, -1), (-1, 1), (1, 1)]


def compute_distance_field(walls: np.ndarray,
                           sources: Iterable[Tuple[int, int]],
                           include_diagonals: bool = True) -> np.ndarray:
    """
    Distance from every cell to the nearest source cell.

    Multi-source uniform-cost expansion: every source starts at 0, an
    orthogonal step costs ORTHOGONAL_COST and a diagonal step DIAGONAL_COST.
    Diagonal steps that cut the corner of a wall are not allowed, matching
    the movement rules. Walls and unreachable cells are left at +inf.
    """
    height, width = walls.shape
    field = np.full((height, width), np.inf)

    steps = [(dx, dy, ORTHOGONAL_COST) for dx, dy in _ORTHOGONAL_STEPS]
    if include_diagonals:
        steps += [(dx, dy, DIAGONAL_COST) for dx, dy in _DIAGONAL_STEPS]

    heap: List[Tuple[float, int, int]] = []
    for sx, sy in sources:
        if 0 <= sx < width and 0 <= sy < height and not walls[sy, sx]:
            field[sy, sx] = 0.0
            heap.append((0.0, sx, sy))
    heapq.heapify(heap)

    while heap:
        dist, x, y = heapq.heappop(heap)
        if dist > field[y, x]:
            continue  # Stale entry
        for dx, dy, cost in steps:
            nx, ny = x + dx, y + dy
            if not (0 <= nx < width and 0 <= ny < height) or walls[ny, nx]:
                continue
            if dx and dy and (walls[y, nx] or walls[ny, x]):
                continue
            new_dist = dist + cost
            if new_dist < field[ny, nx]:
                field[ny, nx] = new_dist
                heapq.heappush(heap, (new_dist, nx, ny))

    return field


def combine_fields(fields: List[np.ndarray]) -> np.ndarray:
    """Cell-wise minimum over all exit fields (closest exit wins)."""
    if not fields:
        raise ValueError("Cannot combine an empty list of floor fields")
    return np.minimum.reduce(fields)


def format_field(field: np.ndarray, walls: np.ndarray = None) -> str:
    """Render a floor field as text, one grid row per line."""
    lines = []
    for y in range(field.shape[0]):
        cells = []
        for x in range(field.shape[1]):
            if walls is not None and walls[y, x]:
                cells.append('   #  ')
            elif np.isinf(field[y, x]):
                cells.append('  inf ')
            else:
                cells.append(f'{field[y, x]:5.1f} ')
        lines.append(''.join(cells).rstrip())
    return '\n'.join(lines)
