"""
Reference optimal action values Q* and the RMS-error diagnostic.

Q* was precomputed once by running Monte Carlo control for 200M episodes and
ships as ``data/q_star.csv`` (one row per dealer 1..10 × player 1..21 state,
columns ``hit`` and ``stick``). It is loaded lazily, once per process, into a
read-only Q table.

The RMS error of a learner is measured over exactly that reference domain:

    rms = sqrt( mean over (dealer, player, action) of (Q - Q*)^2 )

Cells outside the domain (bust totals, dealer totals above 10) are never
visited as decision points and are ignored.
"""

from __future__ import annotations

import functools
import math
from pathlib import Path

import numpy as np

from src.engine.game_state import Action, State
from src.engine.tables import Q, _axis

from .policies import HasQ

REFERENCE_PATH: Path = Path(__file__).parent / "data" / "q_star.csv"

DEALER_TOTALS: range = range(1, 11)
PLAYER_TOTALS: range = range(1, 22)

_DEALER_SLICE: slice = slice(_axis(DEALER_TOTALS[0]), _axis(DEALER_TOTALS[-1]) + 1)
_PLAYER_SLICE: slice = slice(_axis(PLAYER_TOTALS[0]), _axis(PLAYER_TOTALS[-1]) + 1)


@functools.cache
def optimal_q() -> Q:
    """Return the process-wide read-only Q* table.

    Raises:
        ValueError: If the data file does not cover the reference domain.
    """
    rows = np.loadtxt(REFERENCE_PATH, delimiter=",", skiprows=2, ndmin=2)
    expected = len(DEALER_TOTALS) * len(PLAYER_TOTALS)
    if rows.shape != (expected, 4):
        raise ValueError(
            f"{REFERENCE_PATH.name} must hold {expected} rows of 4 columns, got {rows.shape}."
        )

    q = Q.init(0.0, dtype=np.float64)
    for dealer, player, hit, stick in rows:
        state = State(dealer=int(dealer), player=int(player))
        q.set(state, Action.HIT, hit)
        q.set(state, Action.STICK, stick)
    q.data.flags.writeable = False
    return q


def q_grid(q: HasQ) -> np.ndarray:
    """Evaluate any action-value provider over the reference domain.

    Returns:
        float64 array of shape (2, 10, 21): axes (action, dealer 1..10, player 1..21).
    """
    if isinstance(q, Q):
        return q.data[:, _DEALER_SLICE, _PLAYER_SLICE].astype(np.float64)
    return np.array(
        [
            [
                [q.get_q(State(dealer=d, player=p), action) for p in PLAYER_TOTALS]
                for d in DEALER_TOTALS
            ]
            for action in Action
        ],
        dtype=np.float64,
    )


def rms_error(q: HasQ) -> float:
    """Root-mean-square difference between ``q`` and Q* over the reference domain.

    Examples:
        >>> rms_error(optimal_q())
        0.0
    """
    diff = q_grid(q) - q_grid(optimal_q())
    return math.sqrt(float(np.mean(diff * diff)))
