"""
Training driver for the Easy21 learners.

Runs a learner for a fixed number of episodes on one seeded generator and
records its RMS error against Q* at regular intervals, which is the series a
learning-curve chart plots.

Run:
    python -m src.analysis.training
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field

import numpy as np

from src.log import get_logger, set_log_level
from src.solvers.config import DEFAULT_CONFIG, LearnerConfig
from src.solvers.learners import Algorithm, Learner

logger = get_logger(__name__)


@dataclass
class TrainingResult:
    """Outcome of a training run.

    Attributes:
        algorithm:   Which learner was trained.
        learner:     The trained learner state.
        rms_history: (episodes, rms_error) pairs, one per recording interval.
        elapsed_s:   Wall-clock training time in seconds.
    """

    algorithm: Algorithm
    learner: Learner
    rms_history: list[tuple[int, float]] = field(default_factory=list)
    elapsed_s: float = 0.0

    @property
    def final_rms(self) -> float:
        return self.rms_history[-1][1] if self.rms_history else self.learner.rms_error()


def train(
    algorithm: Algorithm,
    n_episodes: int = 10_000,
    seed: int | None = 42,
    record_every: int | None = None,
    config: LearnerConfig = DEFAULT_CONFIG,
    learner: Learner | None = None,
) -> TrainingResult:
    """Train a learner and record its RMS error along the way.

    Args:
        algorithm:    Learner to train.
        n_episodes:   Episodes to run.
        seed:         Seed for numpy's default generator; None for entropy.
        record_every: Episodes between RMS samples; defaults to
                      ``config.rms_every`` so every sample is freshly computed.
        config:       Learner hyper-parameters.
        learner:      Continue training this state instead of a fresh one.

    Returns:
        TrainingResult with the trained learner and its RMS history.

    Raises:
        ValueError: If n_episodes is negative or record_every < 1.
    """
    if n_episodes < 0:
        raise ValueError(f"n_episodes must be non-negative, got {n_episodes}.")
    if record_every is None:
        record_every = config.rms_every
    if record_every < 1:
        raise ValueError(f"record_every must be at least 1, got {record_every}.")

    rng = np.random.default_rng(seed)
    if learner is None:
        learner = algorithm.initial_state(config)
    result = TrainingResult(algorithm=algorithm, learner=learner)

    start = time.perf_counter()
    for _ in range(n_episodes):
        learner.update(rng)
        if learner.episodes % record_every == 0:
            result.rms_history.append((learner.episodes, learner.rms_error()))
    result.elapsed_s = time.perf_counter() - start

    logger.info(
        "%s: %d episodes in %.2fs, RMS error %.4f",
        algorithm.value,
        learner.episodes,
        result.elapsed_s,
        result.final_rms,
    )
    return result


# ─── __main__ ─────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    from src.analysis.simulator import evaluate_policy, make_learner_policy, make_optimal_policy

    set_log_level("INFO")
    n = 20_000
    print(f"Easy21 learners — {n:,} training episodes each\n")
    for algo in Algorithm:
        res = train(algo, n_episodes=n)
        line = f"{algo.value:<20} {res.elapsed_s:6.2f}s"
        if algo.is_control:
            evaluation = evaluate_policy(make_learner_policy(res.learner), n_episodes=20_000)
            line += f"  RMS {res.final_rms:.4f}  greedy mean reward {evaluation.mean_reward:+.4f}"
        print(line)

    optimal = evaluate_policy(make_optimal_policy(), n_episodes=20_000)
    print(f"\nQ* greedy policy: {optimal}")
