"""Tests for src/solvers/approx.py — cuboid features and linear TD(λ) control."""

from __future__ import annotations

import numpy as np
import pytest

from src.engine.game_state import Action, State
from src.solvers.approx import (
    N_FEATURES,
    ApproxState,
    Vector,
    approx_td_lambda_control,
)
from src.solvers.config import LearnerConfig
from src.solvers.reference import rms_error
from tests.conftest import BLACK_DRAW, ScriptedRng


class TestCuboidFeatures:
    def test_documented_example(self):
        phi = Vector.cuboid_features(State(dealer=4, player=4), Action.STICK)
        assert np.flatnonzero(phi.w).tolist() == [1, 3, 13, 15]

    def test_hit_uses_even_indices(self):
        phi = Vector.cuboid_features(State(dealer=4, player=4), Action.HIT)
        assert np.flatnonzero(phi.w).tolist() == [0, 2, 12, 14]

    def test_single_cuboid(self):
        phi = Vector.cuboid_features(State(dealer=1, player=1), Action.HIT)
        assert np.flatnonzero(phi.w).tolist() == [0]

    def test_binary_and_sized(self):
        for dealer in range(1, 11):
            for player in range(1, 22):
                for action in Action:
                    phi = Vector.cuboid_features(State(dealer=dealer, player=player), action)
                    assert phi.w.shape == (N_FEATURES,)
                    assert set(np.unique(phi.w)) <= {0.0, 1.0}
                    assert 1 <= phi.w.sum() <= 4

    def test_features_are_copies(self):
        phi = Vector.cuboid_features(State(dealer=4, player=4), Action.STICK)
        phi.w[:] = 7.0
        again = Vector.cuboid_features(State(dealer=4, player=4), Action.STICK)
        assert again.w.sum() == 4.0


class TestVector:
    def test_wrong_shape(self):
        with pytest.raises(ValueError):
            Vector(np.zeros(10))

    def test_get_q_is_dot_product(self):
        v = Vector(np.arange(N_FEATURES, dtype=np.float64))
        assert v.get_q(State(dealer=4, player=4), Action.STICK) == 1 + 3 + 13 + 15

    def test_zip_with(self):
        a = Vector(np.ones(N_FEATURES))
        b = Vector(np.full(N_FEATURES, 2.0))
        a.zip_with(b, lambda x, y: x + 3 * y)
        np.testing.assert_array_equal(a.w, np.full(N_FEATURES, 7.0))


class TestApproxControl:
    def test_scripted_episode(self):
        # Deal 5/2; ε-draw 0.5 sticks on a tie; dealer 5 + 10 + 3 = 18 beats 2.
        rng = ScriptedRng(
            ints=[5, 2, 10, 3],
            floats=[BLACK_DRAW, BLACK_DRAW, 0.5, BLACK_DRAW, BLACK_DRAW],
        )
        state = ApproxState()
        approx_td_lambda_control(rng, 0.1, state)
        # (dealer [4,7], player [1,6], STICK) is the only active feature.
        expected = np.zeros(N_FEATURES)
        expected[13] = -state.config.approx_alpha
        np.testing.assert_allclose(state.q.w, expected)
        assert state.episodes == 1
        assert rng.exhausted

    def test_traces_bounded(self, rng):
        state = ApproxState()
        for _ in range(5):
            state.update(rng)
        assert state.eligibility_traces.w.max() <= 1.0 / (1.0 - state.config.approx_lambda)

    def test_value_is_best_action(self, rng):
        state = ApproxState(config=LearnerConfig(approx_alpha=0.01))
        for _ in range(200):
            state.update(rng)
        s = State(dealer=7, player=15)
        assert state.value(s) == max(state.get_q(s, Action.HIT), state.get_q(s, Action.STICK))

    def test_rms_cached_on_interval(self, rng):
        state = ApproxState(config=LearnerConfig(rms_every=10))
        for _ in range(10):
            state.update(rng)
        assert state.rms_error() == pytest.approx(rms_error(state.q))
        assert state.rms_error() > 0.0

    def test_learning_reduces_error(self):
        rng = np.random.default_rng(0)
        state = ApproxState(config=LearnerConfig(approx_alpha=0.01))
        untrained = rms_error(state.q)
        for _ in range(5_000):
            state.update(rng)
        assert rms_error(state.q) < untrained
