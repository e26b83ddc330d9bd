"""Tests for src/analysis/value_grid.py — value and policy matrices."""

from __future__ import annotations

import numpy as np

from src.analysis.value_grid import (
    COL_LABELS,
    GRID_SHAPE,
    ROW_LABELS,
    build_policy_grid,
    build_value_grid,
    learner_grids,
    reference_policy_grid,
    reference_value_grid,
)
from src.engine.game_state import Action
from src.solvers.learners import Algorithm
from src.solvers.reference import optimal_q, q_grid


class TestBuilders:
    def test_shape_and_labels(self):
        assert GRID_SHAPE == (10, 21)
        assert ROW_LABELS[0] == "1" and ROW_LABELS[-1] == "10"
        assert COL_LABELS[0] == "1" and COL_LABELS[-1] == "21"

    def test_value_grid_orientation(self):
        grid = build_value_grid(lambda s: s.dealer * 100 + s.player)
        assert grid.shape == GRID_SHAPE
        assert grid.dtype == np.float64
        assert grid[0, 0] == 101
        assert grid[9, 20] == 1021

    def test_policy_grid(self):
        grid = build_policy_grid(lambda s: Action.HIT if s.player < 17 else Action.STICK)
        assert grid[:, :16].all()
        assert not grid[:, 16:].any()

    def test_learner_grids(self, rng):
        learner = Algorithm.MONTE_CARLO_PREDICTION.initial_state()
        for _ in range(200):
            learner.update(rng)
        values, policy = learner_grids(learner)
        assert values.shape == policy.shape == GRID_SHAPE
        assert policy[:, 18].all()
        assert not policy[:, 19:].any()


class TestReference:
    def test_value_is_max_over_actions(self):
        np.testing.assert_array_equal(reference_value_grid(), q_grid(optimal_q()).max(axis=0))

    def test_policy_agrees_with_q(self):
        grid = q_grid(optimal_q())
        expected = (grid[Action.HIT.value] > grid[Action.STICK.value]).astype(np.float64)
        np.testing.assert_array_equal(reference_policy_grid(), expected)

    def test_sticks_on_21(self):
        assert not reference_policy_grid()[:, 20].any()
