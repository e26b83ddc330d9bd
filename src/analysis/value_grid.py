"""
Value-function and policy matrices for Easy21 renderers.

The data builders return plain NumPy matrices that a chart, heat map or
text table can draw directly:

    build_value_grid(value_fn)    — V(s) for every decision state
    build_policy_grid(policy_fn)  — 1.0 = HIT, 0.0 = STICK
    learner_grids(learner)        — both of the above for a Learner
    reference_value_grid()        — V*(s) = max_a Q*(s, a)
    reference_policy_grid()       — greedy policy of Q*

Matrix convention (every builder):
    Shape  : (10, 21) — rows = dealer showing 1..10, cols = player total 1..21
    dtype  : float64
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from src.engine.game_state import Action, State
from src.solvers.learners import Learner
from src.solvers.policies import greedy_action
from src.solvers.reference import DEALER_TOTALS, PLAYER_TOTALS, optimal_q, q_grid

GRID_SHAPE: tuple[int, int] = (len(DEALER_TOTALS), len(PLAYER_TOTALS))
ROW_LABELS: list[str] = [str(d) for d in DEALER_TOTALS]
COL_LABELS: list[str] = [str(p) for p in PLAYER_TOTALS]


def _grid(fn: Callable[[State], float]) -> np.ndarray:
    grid = np.empty(GRID_SHAPE, dtype=np.float64)
    for i, dealer in enumerate(DEALER_TOTALS):
        for j, player in enumerate(PLAYER_TOTALS):
            grid[i, j] = fn(State(dealer=dealer, player=player))
    return grid


def build_value_grid(value_fn: Callable[[State], float]) -> np.ndarray:
    """Evaluate a state-value function over every decision state.

    Args:
        value_fn: Callable(state) -> float, e.g. ``learner.value``.

    Returns:
        float64 matrix of shape (10, 21).
    """
    return _grid(value_fn)


def build_policy_grid(policy_fn: Callable[[State], Action]) -> np.ndarray:
    """Evaluate a deterministic policy over every decision state.

    Returns:
        float64 matrix of shape (10, 21); 1.0 where the policy hits.
    """
    return _grid(lambda s: 1.0 if policy_fn(s) is Action.HIT else 0.0)


def learner_grids(learner: Learner) -> tuple[np.ndarray, np.ndarray]:
    """Return (value_grid, policy_grid) for a learner's current estimates."""
    return build_value_grid(learner.value), build_policy_grid(learner.policy_action)


def reference_value_grid() -> np.ndarray:
    """V* = max over actions of Q*, shape (10, 21)."""
    return q_grid(optimal_q()).max(axis=0)


def reference_policy_grid() -> np.ndarray:
    """Greedy policy of Q* (1.0 = HIT), shape (10, 21)."""
    q_star = optimal_q()
    return build_policy_grid(lambda s: greedy_action(q_star, s))
