"""Shared fixtures for the evacuation CA tests."""

import pytest

from evacuation_ca.config import MovementConfig
from evacuation_ca.model.grid import GridMap
from evacuation_ca.model.exit import ExitSet, Status


@pytest.fixture
def open_grid():
    """Empty 5x5 grid without obstacles."""
    return GridMap(5, 5)


@pytest.fixture
def calm_movement():
    """Very sensitive to the floor field and never panicking."""
    return MovementConfig(static_strength=100.0, panic_threshold=1.0)


@pytest.fixture
def doorway_exit_set(open_grid):
    """5x5 grid with a two-cell doorway on the left edge."""
    exit_set = ExitSet(open_grid, include_diagonals=True)
    assert exit_set.add_exit([(0, 2), (0, 3)]) == Status.SUCCESS
    assert exit_set.calculate_final_floor_field() == Status.SUCCESS
    return exit_set


@pytest.fixture
def bottleneck():
    """Two pedestrians whose only way out is the same free cell."""
    grid, exit_cells, pedestrian_cells = GridMap.from_ascii([
        "##_##",
        "#P.P#",
        "#####",
    ])
    exit_set = ExitSet(grid)
    for cell in exit_cells:
        assert exit_set.add_exit_cell(cell) == Status.SUCCESS
    assert exit_set.calculate_final_floor_field() == Status.SUCCESS
    return grid, exit_set, pedestrian_cells
