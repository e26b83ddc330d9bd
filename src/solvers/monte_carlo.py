"""
Every-visit Monte Carlo prediction and control for Easy21.

Both algorithms run one complete episode per call and then move each visited
estimate toward the episode's terminal reward with the incremental mean

    N(x) <- N(x) + 1
    V(x) <- V(x) + (G - V(x)) / N(x)

where x is a state (prediction) or a state-action pair (control). Easy21 has
no intermediate rewards and no discounting, so the return G is simply the
terminal reward. Visit counts persist across episodes, which makes V(x) the
running arithmetic mean of every return observed from x.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from src.engine.cards import CardRng
from src.engine.game_state import Action, Policy, State, episode, example_policy
from src.engine.tables import Q, V
from src.log import get_logger

from .config import DEFAULT_CONFIG, LearnerConfig
from .policies import epsilon_greedy, greedy_action, visit_epsilon
from .reference import rms_error

logger = get_logger(__name__)


def _incremental_mean(value: float, n: int, target: float) -> float:
    """Fold one more observation into a running mean of ``n - 1`` samples.

    Examples:
        >>> _incremental_mean(0.0, 1, 1.0)
        1.0
        >>> _incremental_mean(1.0, 2, -1.0)
        0.0
    """
    return value + (target - value) / n


# ─── Prediction ───────────────────────────────────────────────────────────────


@dataclass
class MCState:
    """Monte Carlo prediction of V for a fixed policy."""

    policy: Policy = example_policy
    v: V = field(default_factory=lambda: V.init(0.0, dtype=np.float64))
    visits: V = field(default_factory=lambda: V.init(0, dtype=np.int64))
    episodes: int = 0

    def update(self, rng: CardRng) -> None:
        monte_carlo_prediction(rng, self)

    def policy_action(self, state: State) -> Action:
        return self.policy(np.random.default_rng(), state)

    def value(self, state: State) -> float:
        return float(self.v.get(state))

    def rms_error(self) -> float:
        # Q* describes the optimal policy, not an arbitrary fixed one.
        return 0.0


def monte_carlo_prediction(rng: CardRng, mc_state: MCState) -> None:
    """Run one episode under ``mc_state.policy`` and update V for every visit."""
    trajectory, reward = episode(rng, mc_state.policy)
    for state, _ in trajectory:
        n = mc_state.visits.get(state) + 1
        mc_state.visits.set(state, n)
        mc_state.v.update(state, lambda value: _incremental_mean(value, n, reward))
    mc_state.episodes += 1


# ─── Control ──────────────────────────────────────────────────────────────────


@dataclass
class MCControlState:
    """Monte Carlo control: ε-greedy on Q, V tracked as max over actions."""

    config: LearnerConfig = DEFAULT_CONFIG
    v: V = field(default_factory=lambda: V.init(0.0, dtype=np.float64))
    v_visits: V = field(default_factory=lambda: V.init(0, dtype=np.int64))
    q: Q = field(default_factory=lambda: Q.init(0.0, dtype=np.float64))
    q_visits: Q = field(default_factory=lambda: Q.init(0, dtype=np.int64))
    episodes: int = 0
    cached_rms: float = 0.0

    def update(self, rng: CardRng) -> None:
        monte_carlo_control(rng, self)

    def policy_action(self, state: State) -> Action:
        return greedy_action(self.q, state)

    def value(self, state: State) -> float:
        return float(self.v.get(state))

    def rms_error(self) -> float:
        return self.cached_rms

    def behaviour_policy(self, rng: CardRng, state: State) -> Action:
        """ε-greedy on Q with ε decayed by the number of visits to ``state``."""
        eps = visit_epsilon(self.v_visits.get(state), self.config.epsilon_visit_scale)
        return epsilon_greedy(rng, eps, self.q, state)


def monte_carlo_control(rng: CardRng, mc_state: MCControlState) -> None:
    """Run one ε-greedy episode and update Q, then V, for every visited pair."""
    trajectory, reward = episode(rng, mc_state.behaviour_policy)
    for state, action in trajectory:
        n = mc_state.q_visits.get(state, action) + 1
        mc_state.q_visits.set(state, action, n)
        mc_state.q.update(state, action, lambda value: _incremental_mean(value, n, reward))

        mc_state.v.set(state, mc_state.q.best_value(state))
        mc_state.v_visits.update(state, lambda visits: visits + 1)

    mc_state.episodes += 1
    if mc_state.episodes % mc_state.config.rms_every == 0:
        mc_state.cached_rms = rms_error(mc_state.q)
        logger.debug(
            "MC control: %d episodes, RMS error %.4f", mc_state.episodes, mc_state.cached_rms
        )
