"""
Linear function approximation of Q for Easy21 (TD(λ) control).

The Q table is replaced by 36 weights over binary coarse-coded features.
Each feature is a cuboid in (dealer, player, action) space:

    dealer intervals : [1,4] [4,7] [7,10]
    player intervals : [1,6] [4,9] [7,12] [10,15] [13,18] [16,21]
    actions          : HIT, STICK

Intervals overlap, so a state usually lights up several cuboids. The
feature index is ``(dealer_i * 6 + player_i) * 2 + action``.

Control uses a fixed ε = 0.05 and a fixed step size α, with accumulating
traces ``e <- λ·e + φ(s, a)``.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field

import numpy as np

from src.engine.cards import CardRng
from src.engine.game_state import Action, State, initial_state, step
from src.log import get_logger

from .config import DEFAULT_CONFIG, LearnerConfig
from .policies import epsilon_greedy, greedy_action
from .reference import rms_error

logger = get_logger(__name__)

DEALER_INTERVALS: tuple[tuple[int, int], ...] = ((1, 4), (4, 7), (7, 10))
PLAYER_INTERVALS: tuple[tuple[int, int], ...] = (
    (1, 6), (4, 9), (7, 12), (10, 15), (13, 18), (16, 21),
)
N_FEATURES: int = len(DEALER_INTERVALS) * len(PLAYER_INTERVALS) * len(Action)

_DEALER_LO = np.array([lo for lo, _ in DEALER_INTERVALS])
_DEALER_HI = np.array([hi for _, hi in DEALER_INTERVALS])
_PLAYER_LO = np.array([lo for lo, _ in PLAYER_INTERVALS])
_PLAYER_HI = np.array([hi for _, hi in PLAYER_INTERVALS])


@functools.lru_cache(maxsize=None)
def _features(state: State, action: Action) -> np.ndarray:
    in_dealer = (_DEALER_LO <= state.dealer) & (state.dealer <= _DEALER_HI)
    in_player = (_PLAYER_LO <= state.player) & (state.player <= _PLAYER_HI)
    cuboids = np.zeros((len(DEALER_INTERVALS), len(PLAYER_INTERVALS), len(Action)))
    cuboids[:, :, action.value] = np.outer(in_dealer, in_player)
    phi = cuboids.reshape(N_FEATURES)
    phi.flags.writeable = False
    return phi


@dataclass
class Vector:
    """A length-36 vector in feature space (weights or eligibility traces)."""

    w: np.ndarray = field(default_factory=lambda: np.zeros(N_FEATURES))

    def __post_init__(self) -> None:
        if self.w.shape != (N_FEATURES,):
            raise ValueError(f"Vector expects shape ({N_FEATURES},), got {self.w.shape}.")

    @classmethod
    def zeros(cls) -> Vector:
        return cls()

    @staticmethod
    def cuboid_features(state: State, action: Action) -> Vector:
        """Binary feature vector φ(state, action).

        Examples:
            >>> phi = Vector.cuboid_features(State(dealer=4, player=4), Action.STICK)
            >>> [int(i) for i in np.flatnonzero(phi.w)]
            [1, 3, 13, 15]
        """
        return Vector(_features(state, action).copy())

    def get_q(self, state: State, action: Action) -> float:
        """Linear prediction φ(state, action) · w."""
        return float(_features(state, action) @ self.w)

    def zip_with(self, other: Vector, fn) -> Vector:
        """Combine elementwise with ``other`` in place; ``fn`` gets both arrays."""
        self.w = np.asarray(fn(self.w, other.w), dtype=np.float64)
        return self


@dataclass
class ApproxState:
    """Linear TD(λ) control state."""

    config: LearnerConfig = DEFAULT_CONFIG
    q: Vector = field(default_factory=Vector.zeros)
    eligibility_traces: Vector = field(default_factory=Vector.zeros)
    episodes: int = 0
    cached_rms: float = 0.0

    def get_q(self, state: State, action: Action) -> float:
        return self.q.get_q(state, action)

    def update(self, rng: CardRng) -> None:
        approx_td_lambda_control(rng, self.config.approx_lambda, self)

    def policy_action(self, state: State) -> Action:
        return greedy_action(self.q, state)

    def value(self, state: State) -> float:
        return max(self.get_q(state, Action.HIT), self.get_q(state, Action.STICK))

    def rms_error(self) -> float:
        return self.cached_rms


def approx_td_lambda_control(rng: CardRng, lam: float, approx_state: ApproxState) -> None:
    """Run one episode of SARSA(λ) with the linear Q approximation.

    Args:
        rng:          Card source and exploration randomness.
        lam:          Trace decay λ in [0, 1].
        approx_state: Learner state, mutated in place.
    """
    eps = approx_state.config.approx_epsilon
    alpha = approx_state.config.approx_alpha
    q = approx_state.q
    traces = approx_state.eligibility_traces = Vector.zeros()

    state = initial_state(rng)
    action = epsilon_greedy(rng, eps, q, state)

    while True:
        sample = step(rng, state, action)
        next_state = sample.state

        if sample.terminal:
            next_action = None
            next_value = 0.0
        else:
            next_action = epsilon_greedy(rng, eps, q, next_state)
            next_value = q.get_q(next_state, next_action)

        traces.zip_with(Vector.cuboid_features(state, action), lambda e, x: lam * e + x)

        td_error = sample.reward + next_value - q.get_q(state, action)
        q.zip_with(traces, lambda w, e: w + alpha * td_error * e)

        if next_action is None:
            break
        state, action = next_state, next_action

    approx_state.episodes += 1
    if approx_state.episodes % approx_state.config.rms_every == 0:
        approx_state.cached_rms = rms_error(q)
        logger.debug(
            "Approx TD(λ): %d episodes, RMS error %.4f",
            approx_state.episodes,
            approx_state.cached_rms,
        )
