"""
Common interface over the five Easy21 learners.

Every learner state is a standalone dataclass that structurally satisfies
the Learner protocol; there is no shared base class. Drivers pick a learner
through the Algorithm enum and then only talk to the protocol:

    learner = Algorithm.TD_LAMBDA_CONTROL.initial_state()
    for _ in range(n):
        learner.update(rng)
    learner.policy_action(state), learner.value(state), learner.rms_error()
"""

from __future__ import annotations

from enum import Enum
from typing import Protocol, runtime_checkable

from src.engine.cards import CardRng
from src.engine.game_state import Action, State

from .approx import ApproxState
from .config import DEFAULT_CONFIG, LearnerConfig
from .monte_carlo import MCControlState, MCState
from .td_lambda import TDControlState, TDState


@runtime_checkable
class Learner(Protocol):
    """Capabilities every learner exposes to drivers and renderers."""

    episodes: int

    def update(self, rng: CardRng) -> None:
        """Advance learning by one episode."""
        ...

    def policy_action(self, state: State) -> Action:
        """Action the learner currently recommends in ``state``."""
        ...

    def value(self, state: State) -> float:
        """Current estimate of V(state)."""
        ...

    def rms_error(self) -> float:
        """Latest RMS error against Q* (0.0 for prediction learners)."""
        ...


class Algorithm(Enum):
    MONTE_CARLO_PREDICTION = "mc-prediction"
    MONTE_CARLO_CONTROL = "mc-control"
    TD_LAMBDA_PREDICTION = "td-prediction"
    TD_LAMBDA_CONTROL = "td-control"
    APPROX_TD_LAMBDA_CONTROL = "approx-td-control"

    @property
    def is_control(self) -> bool:
        return self not in (Algorithm.MONTE_CARLO_PREDICTION, Algorithm.TD_LAMBDA_PREDICTION)

    def initial_state(self, config: LearnerConfig = DEFAULT_CONFIG) -> Learner:
        """Return a fresh learner for this algorithm.

        Prediction learners evaluate the built-in example policy.
        """
        if self is Algorithm.MONTE_CARLO_PREDICTION:
            return MCState()
        if self is Algorithm.MONTE_CARLO_CONTROL:
            return MCControlState(config=config)
        if self is Algorithm.TD_LAMBDA_PREDICTION:
            return TDState(config=config)
        if self is Algorithm.TD_LAMBDA_CONTROL:
            return TDControlState(config=config)
        return ApproxState(config=config)
