"""
Online TD(λ) prediction and SARSA(λ) control with accumulating traces.

Updates happen after every environment step, not once per episode:

    e      <- λ·e                      (every cell)
    e(x)   <- e(x) + 1                 (current cell)
    δ      <- r + V(x') - V(x)         (γ = 1; V(x') = 0 when x' is terminal)
    V      <- V + α·δ·e                (every cell, α = 1 / (10 + N))
    N(x)   <- N(x) + 1

The whole-table sweep is what lets one TD error reach every recently visited
cell; with numpy it is a single vectorised expression per step.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from src.engine.cards import CardRng
from src.engine.game_state import Action, Policy, State, example_policy, initial_state, step
from src.engine.tables import Q, V
from src.log import get_logger

from .config import DEFAULT_CONFIG, LearnerConfig
from .policies import epsilon_greedy, greedy_action, visit_epsilon
from .reference import rms_error

logger = get_logger(__name__)

ALPHA_OFFSET: float = 10.0
"""Constant term of the per-cell step size α = 1 / (10 + N)."""


def _step_sizes(visits: np.ndarray) -> np.ndarray:
    return 1.0 / (ALPHA_OFFSET + visits)


# ─── Prediction ───────────────────────────────────────────────────────────────


@dataclass
class TDState:
    """TD(λ) prediction of V for a fixed policy."""

    policy: Policy = example_policy
    config: LearnerConfig = DEFAULT_CONFIG
    v: V = field(default_factory=lambda: V.init(0.0, dtype=np.float64))
    visits: V = field(default_factory=lambda: V.init(0, dtype=np.int64))
    eligibility_traces: V = field(default_factory=lambda: V.init(0.0, dtype=np.float64))
    episodes: int = 0

    def update(self, rng: CardRng) -> None:
        td_lambda_prediction(rng, self.config.td_lambda_prediction, self)

    def policy_action(self, state: State) -> Action:
        return self.policy(np.random.default_rng(), state)

    def value(self, state: State) -> float:
        return float(self.v.get(state))

    def rms_error(self) -> float:
        return 0.0


def td_lambda_prediction(rng: CardRng, lam: float, td_state: TDState) -> None:
    """Run one episode of online TD(λ) prediction under ``td_state.policy``.

    Args:
        rng:      Card source, also handed to the policy.
        lam:      Trace decay λ in [0, 1].
        td_state: Learner state, mutated in place.
    """
    td_state.eligibility_traces.fill(0.0)
    state = initial_state(rng)
    while True:
        action = td_state.policy(rng, state)
        sample = step(rng, state, action)

        td_state.eligibility_traces.map(lambda e: e * lam)
        td_state.eligibility_traces.update(state, lambda e: e + 1.0)

        next_value = 0.0 if sample.terminal else td_state.v.get(sample.state)
        td_error = sample.reward + next_value - td_state.v.get(state)
        alpha = _step_sizes(td_state.visits.data)
        td_state.v.zip_with(
            td_state.eligibility_traces,
            lambda value, trace: value + alpha * td_error * trace,
        )
        td_state.visits.update(state, lambda n: n + 1)

        if sample.terminal:
            break
        state = sample.state
    td_state.episodes += 1


# ─── Control ──────────────────────────────────────────────────────────────────


@dataclass
class TDControlState:
    """SARSA(λ) control on a Q table, V tracked as max over actions."""

    config: LearnerConfig = DEFAULT_CONFIG
    v: V = field(default_factory=lambda: V.init(0.0, dtype=np.float64))
    v_visits: V = field(default_factory=lambda: V.init(0, dtype=np.int64))
    q: Q = field(default_factory=lambda: Q.init(0.0, dtype=np.float64))
    q_visits: Q = field(default_factory=lambda: Q.init(0, dtype=np.int64))
    eligibility_traces: Q = field(default_factory=lambda: Q.init(0.0, dtype=np.float64))
    episodes: int = 0
    cached_rms: float = 0.0

    def update(self, rng: CardRng) -> None:
        td_lambda_control(rng, self.config.td_lambda_control, self)

    def policy_action(self, state: State) -> Action:
        return greedy_action(self.q, state)

    def value(self, state: State) -> float:
        return float(self.v.get(state))

    def rms_error(self) -> float:
        return self.cached_rms

    def behaviour_policy(self, rng: CardRng, state: State) -> Action:
        eps = visit_epsilon(self.v_visits.get(state), self.config.epsilon_visit_scale)
        return epsilon_greedy(rng, eps, self.q, state)


def td_lambda_control(rng: CardRng, lam: float, td_state: TDControlState) -> None:
    """Run one episode of SARSA(λ) control.

    The next action is chosen ε-greedily before the TD error is formed, so the
    update bootstraps from the action that will actually be taken.
    """
    td_state.eligibility_traces.fill(0.0)
    state = initial_state(rng)
    action = td_state.behaviour_policy(rng, state)

    while True:
        sample = step(rng, state, action)
        next_state = sample.state

        if sample.terminal:
            next_action = None
            next_value = 0.0
        else:
            next_action = td_state.behaviour_policy(rng, next_state)
            next_value = td_state.q.get(next_state, next_action)

        td_state.eligibility_traces.map(lambda e: e * lam)
        td_state.eligibility_traces.update(state, action, lambda e: e + 1.0)

        td_error = sample.reward + next_value - td_state.q.get(state, action)
        alpha = _step_sizes(td_state.q_visits.data)
        td_state.q.zip_with(
            td_state.eligibility_traces,
            lambda value, trace: value + alpha * td_error * trace,
        )
        td_state.q_visits.update(state, action, lambda n: n + 1)

        td_state.v.set(state, td_state.q.best_value(state))
        td_state.v_visits.update(state, lambda n: n + 1)

        if next_action is None:
            break
        state, action = next_state, next_action

    td_state.episodes += 1
    if td_state.episodes % td_state.config.rms_every == 0:
        td_state.cached_rms = rms_error(td_state.q)
        logger.debug(
            "TD(λ) control: %d episodes, RMS error %.4f", td_state.episodes, td_state.cached_rms
        )
