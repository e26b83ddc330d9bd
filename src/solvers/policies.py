"""
Action selection shared by the control learners.

Any object with ``get_q(state, action) -> float`` can drive these helpers:
the tabular learners adapt their Q table, the linear learner passes its
weight Vector directly.
"""

from __future__ import annotations

from typing import Protocol

from src.engine.cards import CardRng
from src.engine.game_state import Action, State

EPSILON_OFFSET: float = 10.0
"""Constant term of the visit-decayed schedule ε = 1 / (10 + N / scale)."""


class HasQ(Protocol):
    def get_q(self, state: State, action: Action) -> float: ...


def greedy_action(q: HasQ, state: State) -> Action:
    """HIT only when it is strictly better than STICK; ties stick."""
    if q.get_q(state, Action.HIT) > q.get_q(state, Action.STICK):
        return Action.HIT
    return Action.STICK


def epsilon_greedy(rng: CardRng, eps: float, q: HasQ, state: State) -> Action:
    """Pick the greedy action with probability 1 - ε/2, the other one otherwise.

    Exploration picks uniformly among both actions, so the non-greedy action
    has probability ε/2. Ties are treated as STICK-greedy.

    Args:
        rng:   Source of ``random()`` in [0, 1).
        eps:   Exploration rate in [0, 1].
        q:     Action-value provider.
        state: Current state.
    """
    hit_is_greedy = q.get_q(state, Action.HIT) > q.get_q(state, Action.STICK)
    stick_threshold = eps / 2.0 if hit_is_greedy else 1.0 - eps / 2.0
    if rng.random() < stick_threshold:
        return Action.STICK
    return Action.HIT


def visit_epsilon(visits: int, scale: float) -> float:
    """Exploration rate decayed by the number of visits to a state.

    Examples:
        >>> visit_epsilon(0, 100_000)
        0.1
        >>> round(visit_epsilon(1_000_000, 100_000), 6)
        0.05
    """
    return 1.0 / (EPSILON_OFFSET + visits / scale)
