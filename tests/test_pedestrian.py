"""
Tests for pedestrian transition probabilities and sampling.
"""

import numpy as np
import pytest

from evacuation_ca.model.pedestrian import Pedestrian, PedestrianState


@pytest.fixture
def corridor_field():
    """1x4 corridor whose exit is at x = 0."""
    return np.array([[0.0, 1.0, 2.0, 3.0]])


def test_probabilities_sum_to_one(corridor_field):
    pedestrian = Pedestrian(1, (2, 0))
    probs = pedestrian.calculate_transition_probabilities(
        [(1, 0), (3, 0)], corridor_field, set(), sensitivity=2.0
    )
    assert set(probs) == {(2, 0), (1, 0), (3, 0)}
    assert sum(probs.values()) == pytest.approx(1.0)
    assert probs[(1, 0)] > probs[(2, 0)] > probs[(3, 0)]


def test_probabilities_follow_field_drop(corridor_field):
    pedestrian = Pedestrian(1, (2, 0))
    probs = pedestrian.calculate_transition_probabilities(
        [(1, 0), (3, 0)], corridor_field, set(), sensitivity=1.0
    )
    assert probs[(1, 0)] / probs[(2, 0)] == pytest.approx(np.e)
    assert probs[(2, 0)] / probs[(3, 0)] == pytest.approx(np.e)


def test_occupied_neighbors_get_zero_preference(corridor_field):
    pedestrian = Pedestrian(1, (2, 0))
    probs = pedestrian.calculate_transition_probabilities(
        [(1, 0), (3, 0)], corridor_field, {(1, 0), (2, 0)}, sensitivity=5.0
    )
    assert (1, 0) not in probs
    assert (2, 0) in probs  # own cell stays available


def test_unreachable_neighbors_are_skipped():
    field = np.array([[0.0, 1.0, np.inf]])
    pedestrian = Pedestrian(1, (1, 0))
    probs = pedestrian.calculate_transition_probabilities(
        [(0, 0), (2, 0)], field, set(), sensitivity=1.0
    )
    assert set(probs) == {(1, 0), (0, 0)}


def test_zero_sensitivity_is_uniform(corridor_field):
    pedestrian = Pedestrian(1, (2, 0))
    probs = pedestrian.calculate_transition_probabilities(
        [(1, 0), (3, 0)], corridor_field, set(), sensitivity=0.0
    )
    assert all(p == pytest.approx(1 / 3) for p in probs.values())


def test_no_free_neighbor_means_stay(corridor_field):
    pedestrian = Pedestrian(1, (2, 0))
    probs = pedestrian.calculate_transition_probabilities(
        [(1, 0), (3, 0)], corridor_field, {(1, 0), (3, 0)}, sensitivity=1.0
    )
    assert probs == {(2, 0): 1.0}
    assert pedestrian.decide_next_move(probs, np.random.default_rng(0)) is None


def test_decide_next_move_samples_distribution():
    pedestrian = Pedestrian(1, (1, 1))
    rng = np.random.default_rng(3)
    probs = {(1, 1): 0.25, (0, 1): 0.75}
    draws = [pedestrian.decide_next_move(probs, rng) for _ in range(2000)]
    moved = sum(1 for d in draws if d == (0, 1))
    assert draws.count(None) + moved == 2000
    assert 1400 < moved < 1600


def test_diagonal_target_detection():
    pedestrian = Pedestrian(1, (1, 1))
    assert not pedestrian.is_diagonal_target()
    pedestrian.target = (2, 1)
    assert not pedestrian.is_diagonal_target()
    pedestrian.target = (2, 2)
    assert pedestrian.is_diagonal_target()


def test_update_state():
    pedestrian = Pedestrian(1, (1, 1))
    pedestrian.update_state((1, 1), moved=False, at_exit=False)
    assert pedestrian.state == PedestrianState.STOPPED
    pedestrian.update_state((0, 1), moved=True, at_exit=False)
    assert pedestrian.state == PedestrianState.MOVING
    pedestrian.update_state((0, 0), moved=True, at_exit=True)
    assert pedestrian.state == PedestrianState.EXITED
    assert not pedestrian.active
    assert pedestrian.steps_taken == 2


def test_reset_transient_clears_desire_and_panic():
    pedestrian = Pedestrian(1, (1, 1))
    pedestrian.target = (1, 2)
    pedestrian.panic = True
    pedestrian.reset_transient()
    assert pedestrian.target is None
    assert pedestrian.panic is False
