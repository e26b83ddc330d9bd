"""Tests for src/solvers/learners.py and src/log.py."""

from __future__ import annotations

import logging

import pytest

from src.engine.game_state import Action, State
from src.log import get_logger, set_log_level
from src.solvers.approx import ApproxState
from src.solvers.config import LearnerConfig
from src.solvers.learners import Algorithm, Learner
from src.solvers.monte_carlo import MCControlState, MCState
from src.solvers.td_lambda import TDControlState, TDState


class TestAlgorithm:
    @pytest.mark.parametrize(
        "algorithm, kind",
        [
            (Algorithm.MONTE_CARLO_PREDICTION, MCState),
            (Algorithm.MONTE_CARLO_CONTROL, MCControlState),
            (Algorithm.TD_LAMBDA_PREDICTION, TDState),
            (Algorithm.TD_LAMBDA_CONTROL, TDControlState),
            (Algorithm.APPROX_TD_LAMBDA_CONTROL, ApproxState),
        ],
    )
    def test_initial_state_kind(self, algorithm, kind):
        learner = algorithm.initial_state()
        assert isinstance(learner, kind)
        assert isinstance(learner, Learner)
        assert learner.episodes == 0

    def test_lookup_by_value(self):
        assert Algorithm("td-control") is Algorithm.TD_LAMBDA_CONTROL

    def test_is_control(self):
        controls = {a for a in Algorithm if a.is_control}
        assert controls == {
            Algorithm.MONTE_CARLO_CONTROL,
            Algorithm.TD_LAMBDA_CONTROL,
            Algorithm.APPROX_TD_LAMBDA_CONTROL,
        }

    def test_config_forwarded(self):
        config = LearnerConfig(rms_every=7)
        assert Algorithm.TD_LAMBDA_CONTROL.initial_state(config).config is config


class TestLearnerProtocol:
    @pytest.mark.parametrize("algorithm", list(Algorithm))
    def test_update_counts_episodes(self, algorithm, rng):
        learner = algorithm.initial_state()
        for _ in range(20):
            learner.update(rng)
        assert learner.episodes == 20

    @pytest.mark.parametrize("algorithm", list(Algorithm))
    def test_queries(self, algorithm, rng):
        learner = algorithm.initial_state()
        learner.update(rng)
        s = State(dealer=4, player=12)
        assert learner.policy_action(s) in (Action.HIT, Action.STICK)
        assert isinstance(learner.value(s), float)
        assert isinstance(learner.rms_error(), float)

    @pytest.mark.parametrize(
        "algorithm", [Algorithm.MONTE_CARLO_PREDICTION, Algorithm.TD_LAMBDA_PREDICTION]
    )
    def test_prediction_follows_example_policy(self, algorithm):
        learner = algorithm.initial_state()
        assert learner.policy_action(State(dealer=1, player=19)) is Action.HIT
        assert learner.policy_action(State(dealer=1, player=20)) is Action.STICK


class TestLogging:
    def test_cached(self):
        assert get_logger("x.y") is get_logger("x.y")

    def test_namespaced(self):
        assert get_logger("src.solvers").name == "easy21.src.solvers"

    def test_single_handler(self):
        get_logger("dup")
        assert len(get_logger("dup").handlers) == 1

    def test_set_level(self):
        logger = get_logger("levels")
        try:
            set_log_level("DEBUG")
            assert logger.level == logging.DEBUG
            assert get_logger("levels.new").level == logging.DEBUG
        finally:
            set_log_level(logging.WARNING)
        assert logger.level == logging.WARNING
