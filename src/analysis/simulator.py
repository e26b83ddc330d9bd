"""
Monte Carlo evaluation of Easy21 player policies.

Plays many independent episodes under a fixed policy and summarises the
terminal rewards into a mean with a normal-approximation confidence
interval, plus win / loss / draw counts.

Primary use: compare the greedy policies of trained learners with each
other, with the greedy policy of the reference table Q*, and with simple
threshold policies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from scipy import stats

from src.engine.game_state import Action, Policy, State, episode, example_policy
from src.solvers.learners import Learner
from src.solvers.policies import greedy_action
from src.solvers.reference import optimal_q

# ─── Result type ──────────────────────────────────────────────────────────────


@dataclass
class SimulationResult:
    """Aggregate statistics from a policy evaluation run.

    Attributes:
        n_episodes:  Number of episodes simulated.
        mean_reward: Mean terminal reward per episode.
        std_reward:  Sample standard deviation of per-episode rewards.
        ci_low:      Lower bound of the confidence interval for mean_reward.
        ci_high:     Upper bound of the confidence interval for mean_reward.
        confidence:  Confidence level of the interval, e.g. 0.95.
        n_wins:      Episodes with reward +1.
        n_losses:    Episodes with reward -1.
        n_draws:     Episodes with reward 0.
        rewards:     Raw per-episode rewards (int8), or None unless requested.
    """

    n_episodes: int
    mean_reward: float
    std_reward: float
    ci_low: float
    ci_high: float
    confidence: float
    n_wins: int
    n_losses: int
    n_draws: int
    rewards: np.ndarray | None = None

    @property
    def win_rate(self) -> float:
        return self.n_wins / self.n_episodes

    def __str__(self) -> str:
        return (
            f"Episodes: {self.n_episodes:,} | "
            f"Mean reward: {self.mean_reward:+.4f} | "
            f"{self.confidence:.0%} CI: [{self.ci_low:+.4f}, {self.ci_high:+.4f}] | "
            f"W/L/D: {self.n_wins}/{self.n_losses}/{self.n_draws}"
        )


# ─── Core simulation loop ─────────────────────────────────────────────────────


def evaluate_policy(
    policy: Policy = example_policy,
    n_episodes: int = 100_000,
    seed: int | None = 42,
    confidence: float = 0.95,
    return_rewards: bool = False,
) -> SimulationResult:
    """Play ``n_episodes`` under ``policy`` and return reward statistics.

    Args:
        policy:         Callable(rng, state) -> Action.
        n_episodes:     Number of episodes; at least 2 for a standard deviation.
        seed:           Seed for numpy's default generator; None for a
                        non-deterministic run.
        confidence:     Two-sided confidence level in (0, 1).
        return_rewards: Attach the raw reward array to the result.

    Returns:
        SimulationResult for the run.

    Raises:
        ValueError: If n_episodes < 2 or confidence is outside (0, 1).
    """
    if n_episodes < 2:
        raise ValueError(f"n_episodes must be at least 2, got {n_episodes}.")
    if not 0.0 < confidence < 1.0:
        raise ValueError(f"confidence must be in (0, 1), got {confidence}.")

    rng = np.random.default_rng(seed)
    rewards = np.empty(n_episodes, dtype=np.int8)
    for i in range(n_episodes):
        _, rewards[i] = episode(rng, policy)

    mean = float(np.mean(rewards))
    std = float(np.std(rewards, ddof=1))
    z = float(stats.norm.ppf((1.0 + confidence) / 2.0))
    margin = z * std / math.sqrt(n_episodes)

    return SimulationResult(
        n_episodes=n_episodes,
        mean_reward=mean,
        std_reward=std,
        ci_low=mean - margin,
        ci_high=mean + margin,
        confidence=confidence,
        n_wins=int(np.sum(rewards > 0)),
        n_losses=int(np.sum(rewards < 0)),
        n_draws=int(np.sum(rewards == 0)),
        rewards=rewards if return_rewards else None,
    )


# ─── Strategy factories ───────────────────────────────────────────────────────


def make_learner_policy(learner: Learner) -> Policy:
    """Wrap a learner's live recommendation in a Policy callable."""

    def _strategy(rng, state: State) -> Action:
        return learner.policy_action(state)

    return _strategy


def make_optimal_policy() -> Policy:
    """Greedy policy of the reference table Q*."""
    q_star = optimal_q()

    def _strategy(rng, state: State) -> Action:
        return greedy_action(q_star, state)

    return _strategy


def make_threshold_policy(stick_threshold: int = 17) -> Policy:
    """Stick once the player total reaches ``stick_threshold``, hit below it."""

    def _strategy(rng, state: State) -> Action:
        return Action.STICK if state.player >= stick_threshold else Action.HIT

    return _strategy
