"""
Tests for the GridMap class.
"""

import numpy as np
import pytest

from evacuation_ca.model.grid import GridMap


def test_initialization(open_grid):
    assert open_grid.width == 5
    assert open_grid.height == 5
    assert not open_grid.walls.any()
    assert open_grid.pedestrian_count() == 0


def test_invalid_dimensions():
    with pytest.raises(ValueError):
        GridMap(0, 3)


def test_is_walkable():
    grid = GridMap(4, 3)
    grid.add_wall_points([(1, 1)])
    assert grid.is_walkable(0, 0) is True
    assert grid.is_walkable(1, 1) is False
    assert grid.is_walkable(-1, 0) is False
    assert grid.is_walkable(0, 3) is False


def test_wall_rectangle_is_clamped():
    grid = GridMap(4, 4)
    grid.add_wall_rectangle(2, 2, 10, 10)
    assert grid.walls[2:, 2:].all()
    assert not grid.walls[:2, :].any()


def test_from_ascii():
    grid, exits, pedestrians = GridMap.from_ascii([
        "#_##",
        "#P.#",
        "####",
    ])
    assert (grid.width, grid.height) == (4, 3)
    assert exits == [(1, 0)]
    assert pedestrians == [(1, 1)]
    assert grid.walls[0, 0]
    assert not grid.walls[0, 1]
    assert not grid.walls[1, 2]


def test_from_ascii_rejects_bad_maps():
    with pytest.raises(ValueError):
        GridMap.from_ascii(["##", "#"])
    with pytest.raises(ValueError):
        GridMap.from_ascii(["#?#"])
    with pytest.raises(ValueError):
        GridMap.from_ascii([])


def test_neighbors_von_neumann(open_grid):
    assert open_grid.get_neighbors(0, 0) == [(1, 0), (0, 1)]
    assert len(open_grid.get_neighbors(2, 2)) == 4


def test_neighbors_moore(open_grid):
    neighbors = open_grid.get_neighbors(2, 2, include_diagonals=True)
    assert len(neighbors) == 8
    assert (2, 2) not in neighbors
    # Orthogonal neighbours come first
    assert neighbors[:4] == [(2, 1), (1, 2), (3, 2), (2, 3)]


def test_diagonal_neighbor_cannot_cut_wall_corner():
    grid = GridMap(3, 3)
    grid.add_wall_points([(1, 0)])
    neighbors = grid.get_neighbors(0, 1, include_diagonals=True)
    assert (1, 0) not in neighbors
    # (0, 1) -> (1, 0) is a wall and (0, 1) -> (1, 2) is clear
    assert (1, 2) in neighbors
    assert (0, 0) in neighbors
    assert grid.get_neighbors(0, 0, include_diagonals=True) == [(0, 1)]


def test_place_and_move_agent(open_grid):
    open_grid.place_agent(7, 1, 1)
    assert open_grid.is_occupied(1, 1)
    open_grid.move_agent(7, (1, 1), (2, 1))
    assert not open_grid.is_occupied(1, 1)
    assert open_grid.occupancy[1, 2] == 7
    assert open_grid.get_occupied_positions() == {(2, 1)}


def test_place_agent_on_occupied_cell_fails(open_grid):
    open_grid.place_agent(1, 0, 0)
    with pytest.raises(AssertionError):
        open_grid.place_agent(2, 0, 0)


def test_out_of_bounds_is_occupied(open_grid):
    assert open_grid.is_occupied(-1, 0)
    assert open_grid.is_occupied(5, 5)


def test_heatmap_records_occupied_cells(open_grid):
    open_grid.place_agent(1, 3, 4)
    open_grid.record_heatmap()
    open_grid.record_heatmap()
    assert open_grid.heatmap[4, 3] == 2
    assert open_grid.heatmap.sum() == 2
    open_grid.reset_heatmap()
    assert not np.any(open_grid.heatmap)
