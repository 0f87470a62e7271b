"""
Tests for simulation sets.
"""

import logging

import numpy as np
import pytest

from evacuation_ca.config import parse_config
from evacuation_ca.model.exit import Status
from evacuation_ca.model.runner import SimulationRunner, SimulationError, build_grid

POCKET_MAP = """
#######
#...#.#
#...###
......#
#######
"""


def make_config(**overrides):
    raw = {
        'layout': {'map': POCKET_MAP},
        'simulation': {'seed': 10, 'num_simulations': 2, 'pedestrian_count': 6},
        'simulation_sets': [
            {'exits': [[[0, 3]]]},
            {'exits': [[[5, 1]]]},
            {'exits': [[[0, 3]], [[5, 1]]]},
            {'exits': [[[0, 3]]]},
        ],
    }
    raw.update(overrides)
    return parse_config(raw)


def test_build_grid_from_map():
    grid, exits, pedestrians = build_grid(make_config())
    assert (grid.width, grid.height) == (7, 5)
    assert exits == []
    assert pedestrians == []


def test_scenario_b_inaccessible_set_is_skipped():
    runner = SimulationRunner(make_config())
    results = list(runner.run())
    assert [r.status for r in results] == [
        Status.SUCCESS, Status.INACCESSIBLE_EXIT, Status.INACCESSIBLE_EXIT, Status.SUCCESS
    ]
    for skipped in (results[1], results[2]):
        assert skipped.runs == []
        assert skipped.heatmap is None
    assert runner.grid.pedestrian_count() == 0


def test_seed_advances_per_run_only():
    results = list(SimulationRunner(make_config()).run())
    assert [r.seed for r in results[0].runs] == [10, 11]
    assert [r.seed for r in results[3].runs] == [12, 13]


def test_exit_sets_are_torn_down():
    runner = SimulationRunner(make_config())
    for result in runner.run():
        assert result.exits
    assert not runner.grid.exits.any()


def test_same_configuration_gives_same_timesteps():
    first = [r.timesteps for r in SimulationRunner(make_config()).run()]
    second = [r.timesteps for r in SimulationRunner(make_config()).run()]
    assert first == second
    assert all(t > 0 for t in first[0])


def test_heatmap_and_field_are_reported():
    result = next(iter(SimulationRunner(make_config()).run()))
    grid, _, _ = build_grid(make_config())
    assert result.heatmap.sum() > 0
    assert not result.heatmap[grid.walls].any()
    assert result.final_floor_field[3, 0] == 0.0
    assert np.isinf(result.final_floor_field[1, 5])


def test_static_exits_and_pedestrians_from_map():
    config = parse_config({
        'layout': {'map': ["#####", "_.P.#", "#####"]},
        'simulation': {'seed': 3, 'num_simulations': 3},
        'movement': {'static_strength': 100.0},
    })
    results = list(SimulationRunner(config).run())
    assert len(results) == 1
    assert results[0].exits == [[(0, 1)]]
    assert results[0].timesteps == [2, 2, 2]


def test_invalid_exit_raises():
    config = make_config(simulation_sets=[{'exits': [[[0, 0]]]}])
    with pytest.raises(SimulationError):
        list(SimulationRunner(config).run())


def test_too_many_pedestrians_raises():
    config = make_config(simulation={'seed': 0, 'pedestrian_count': 50})
    with pytest.raises(SimulationError):
        list(SimulationRunner(config).run())


def test_missing_pedestrians_is_rejected():
    config = make_config(simulation={'seed': 0})
    with pytest.raises(ValueError):
        SimulationRunner(config)


def test_step_callback_receives_set_and_run(tmp_path):
    seen = set()
    runner = SimulationRunner(make_config())
    list(runner.run(lambda set_index, run_index, state: seen.add((set_index, run_index))))
    assert seen == {(0, 0), (0, 1), (3, 0), (3, 1)}


def test_set_callback_sees_only_runnable_sets():
    announced = []
    runner = SimulationRunner(make_config())
    list(runner.run(set_callback=lambda set_index, exits: announced.append((set_index, exits))))
    assert announced == [(0, [[(0, 3)]]), (3, [[(0, 3)]])]


def test_map_pedestrians_ignored_with_random_count(caplog):
    config = parse_config({
        'layout': {'map': ["#####", "_.P.#", "#####"]},
        'simulation': {'seed': 3, 'num_simulations': 1, 'pedestrian_count': 2},
    })
    with caplog.at_level(logging.WARNING, logger='evacuation_ca.model.runner'):
        runner = SimulationRunner(config)
    assert 'Ignoring 1 placed pedestrians' in caplog.text
    results = list(runner.run())
    assert results[0].runs[0].pedestrians == 2
