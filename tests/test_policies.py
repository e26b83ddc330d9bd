"""Tests for src/solvers/policies.py and src/solvers/config.py."""

from __future__ import annotations

import numpy as np
import pytest

from src.engine.game_state import Action, State
from src.engine.tables import Q
from src.solvers.config import DEFAULT_CONFIG, LearnerConfig
from src.solvers.policies import epsilon_greedy, greedy_action, visit_epsilon
from tests.conftest import ScriptedRng

S = State(dealer=6, player=15)


def _q(hit: float, stick: float) -> Q:
    return Q.init(0.0).set(S, Action.HIT, hit).set(S, Action.STICK, stick)


class TestGreedyAction:
    def test_hit_better(self):
        assert greedy_action(_q(0.5, 0.1), S) is Action.HIT

    def test_stick_better(self):
        assert greedy_action(_q(-0.5, 0.1), S) is Action.STICK

    def test_tie_sticks(self):
        assert greedy_action(_q(0.2, 0.2), S) is Action.STICK


class TestEpsilonGreedy:
    @pytest.mark.parametrize(
        "draw, expected",
        [(0.0, Action.STICK), (0.099, Action.STICK), (0.101, Action.HIT), (0.9, Action.HIT)],
    )
    def test_hit_greedy_threshold(self, draw, expected):
        rng = ScriptedRng(floats=[draw])
        assert epsilon_greedy(rng, 0.2, _q(1.0, 0.0), S) is expected

    @pytest.mark.parametrize(
        "draw, expected",
        [(0.0, Action.STICK), (0.899, Action.STICK), (0.901, Action.HIT), (0.99, Action.HIT)],
    )
    def test_stick_greedy_threshold(self, draw, expected):
        rng = ScriptedRng(floats=[draw])
        assert epsilon_greedy(rng, 0.2, _q(0.0, 1.0), S) is expected

    def test_zero_epsilon_is_greedy(self, rng):
        q = _q(1.0, 0.0)
        assert all(epsilon_greedy(rng, 0.0, q, S) is Action.HIT for _ in range(500))

    def test_full_epsilon_is_uniform(self):
        rng = np.random.default_rng(1)
        q = _q(1.0, 0.0)
        n = 20_000
        hits = sum(epsilon_greedy(rng, 1.0, q, S) is Action.HIT for _ in range(n))
        assert abs(hits / n - 0.5) < 0.02

    def test_non_greedy_probability(self):
        rng = np.random.default_rng(2)
        q = _q(0.0, 1.0)
        n = 20_000
        hits = sum(epsilon_greedy(rng, 0.2, q, S) is Action.HIT for _ in range(n))
        assert abs(hits / n - 0.1) < 0.01


class TestVisitEpsilon:
    def test_unvisited(self):
        assert visit_epsilon(0, 100_000) == pytest.approx(0.1)

    def test_decays(self):
        assert visit_epsilon(1_000_000, 100_000) < visit_epsilon(1_000, 100_000)

    def test_scale(self):
        assert visit_epsilon(10_000, 10_000) == pytest.approx(1.0 / 11.0)


class TestLearnerConfig:
    def test_defaults(self):
        assert DEFAULT_CONFIG.td_lambda_prediction == 0.5
        assert DEFAULT_CONFIG.td_lambda_control == 0.6
        assert DEFAULT_CONFIG.approx_lambda == 0.1
        assert DEFAULT_CONFIG.approx_epsilon == 0.05
        assert DEFAULT_CONFIG.rms_every == 1000

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"td_lambda_control": 1.5},
            {"approx_lambda": -0.1},
            {"approx_epsilon": 2.0},
            {"approx_alpha": 0.0},
            {"epsilon_visit_scale": -1.0},
            {"rms_every": 0},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            LearnerConfig(**kwargs)
