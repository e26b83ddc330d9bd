"""
Dense value tables indexed by Easy21 states.

Both containers are backed by a single numpy array whose axes are the
affine-shifted totals (total + TOTAL_OFFSET), so get/set are O(1) and whole
table sweeps (trace decay, trace-weighted updates) are single vectorised
numpy operations:

    V.data  shape (TABLE_SIZE, TABLE_SIZE)     axes (dealer, player)
    Q.data  shape (2, TABLE_SIZE, TABLE_SIZE)  axes (action, dealer, player)

The covered totals (-10..31) include every total reachable in play, bust
totals included: the lowest is 1 - 10 (red 10 on a 1) and the highest is
21 + 10 (black 10 on a 21). Indexing outside this range raises IndexError
instead of wrapping around like raw numpy negative indices would.
"""

from __future__ import annotations

from typing import Callable, TypeVar

import numpy as np

from .cards import MAX_CARD_VALUE
from .game_state import MAX_TOTAL, MIN_TOTAL, Action, State

TOTAL_OFFSET: int = 10
TABLE_SIZE: int = 42

LOWEST_TOTAL: int = -TOTAL_OFFSET
HIGHEST_TOTAL: int = TABLE_SIZE - TOTAL_OFFSET - 1

_LOWEST_REACHABLE: int = MIN_TOTAL - MAX_CARD_VALUE
_HIGHEST_REACHABLE: int = MAX_TOTAL + MAX_CARD_VALUE

if not (LOWEST_TOTAL <= _LOWEST_REACHABLE and _HIGHEST_REACHABLE <= HIGHEST_TOTAL):
    raise RuntimeError(
        f"Table range {LOWEST_TOTAL}..{HIGHEST_TOTAL} does not cover reachable "
        f"totals {_LOWEST_REACHABLE}..{_HIGHEST_REACHABLE}."
    )

_T = TypeVar("_T", bound="_Table")


def _axis(total: int) -> int:
    """Map a running total to its array offset, rejecting uncovered totals.

    Examples:
        >>> _axis(-10)
        0
        >>> _axis(31)
        41
    """
    i = total + TOTAL_OFFSET
    if not 0 <= i < TABLE_SIZE:
        raise IndexError(
            f"Total {total} is outside the table range {LOWEST_TOTAL}..{HIGHEST_TOTAL}."
        )
    return i


class _Table:
    """Shared array plumbing for V and Q."""

    SHAPE: tuple[int, ...] = ()

    def __init__(self, data: np.ndarray) -> None:
        if data.shape != self.SHAPE:
            raise ValueError(
                f"{type(self).__name__} expects shape {self.SHAPE}, got {data.shape}."
            )
        self.data = data

    @classmethod
    def init(cls: type[_T], fill: float | int = 0.0, dtype: type | None = None) -> _T:
        """Create a table with every cell set to ``fill``.

        Args:
            fill:  Initial cell value.
            dtype: numpy dtype; inferred from ``fill`` when None.
        """
        return cls(np.full(cls.SHAPE, fill, dtype=dtype))

    def fill(self: _T, value: float | int) -> _T:
        self.data.fill(value)
        return self

    def map(self: _T, fn: Callable[[np.ndarray], np.ndarray]) -> _T:
        """Apply a vectorised elementwise function to every cell in place."""
        self.data[...] = fn(self.data)
        return self

    def zip_with(self: _T, other: _Table, fn: Callable[[np.ndarray, np.ndarray], np.ndarray]) -> _T:
        """Combine every cell with the matching cell of ``other`` in place.

        ``fn`` receives the two backing arrays and must be elementwise.
        """
        if type(other) is not type(self):
            raise ValueError(
                f"Cannot zip {type(self).__name__} with {type(other).__name__}."
            )
        self.data[...] = fn(self.data, other.data)
        return self

    def copy(self: _T) -> _T:
        return type(self)(self.data.copy())

    def __repr__(self) -> str:
        return f"{type(self).__name__}(dtype={self.data.dtype}, shape={self.data.shape})"


class V(_Table):
    """State -> value table."""

    SHAPE = (TABLE_SIZE, TABLE_SIZE)

    @staticmethod
    def index(state: State) -> tuple[int, int]:
        return _axis(state.dealer), _axis(state.player)

    def get(self, state: State) -> float | int:
        return self.data[self.index(state)].item()

    def set(self, state: State, value: float | int) -> V:
        self.data[self.index(state)] = value
        return self

    def update(self, state: State, fn: Callable[[float | int], float | int]) -> V:
        i = self.index(state)
        self.data[i] = fn(self.data[i].item())
        return self


class Q(_Table):
    """(State, Action) -> value table."""

    SHAPE = (len(Action), TABLE_SIZE, TABLE_SIZE)

    @staticmethod
    def index(state: State, action: Action) -> tuple[int, int, int]:
        return action.value, _axis(state.dealer), _axis(state.player)

    def get(self, state: State, action: Action) -> float | int:
        return self.data[self.index(state, action)].item()

    def set(self, state: State, action: Action, value: float | int) -> Q:
        self.data[self.index(state, action)] = value
        return self

    def get_q(self, state: State, action: Action) -> float:
        return float(self.data[self.index(state, action)])

    def update(
        self,
        state: State,
        action: Action,
        fn: Callable[[float | int], float | int],
    ) -> Q:
        i = self.index(state, action)
        self.data[i] = fn(self.data[i].item())
        return self

    def best_value(self, state: State) -> float | int:
        """max over actions of Q(state, a)."""
        return max(self.get(state, Action.HIT), self.get(state, Action.STICK))
