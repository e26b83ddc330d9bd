"""
Shared pytest fixtures for the Easy21 / tape test-suite.

Provides a seeded numpy Generator and a scripted generator that deals exact
cards, so environment transitions can be tested deterministically.
"""

from __future__ import annotations

from collections import deque

import numpy as np
import pytest

from src.engine.cards import CardColor, str_to_card

BLACK_DRAW: float = 0.99
RED_DRAW: float = 0.0


class ScriptedRng:
    """Stand-in for numpy.random.Generator with pre-recorded outputs.

    ``integers`` and ``random`` pop from separate queues; running out of
    either fails the test loudly.
    """

    def __init__(self, ints=(), floats=()) -> None:
        self._ints = deque(ints)
        self._floats = deque(floats)

    @classmethod
    def dealing(cls, *cards: str, extra_floats=()) -> ScriptedRng:
        """Deal the given cards ('5B', '10R', ...) in order.

        ``extra_floats`` are appended after the colour draws, for policy
        randomness that follows the last card.
        """
        parsed = [str_to_card(c) for c in cards]
        return cls(
            ints=[c.value for c in parsed],
            floats=[RED_DRAW if c.color is CardColor.RED else BLACK_DRAW for c in parsed]
            + list(extra_floats),
        )

    def integers(self, low: int, high: int) -> int:
        value = self._ints.popleft()
        assert low <= value < high, f"scripted {value} outside [{low}, {high})"
        return value

    def random(self) -> float:
        return self._floats.popleft()

    @property
    def exhausted(self) -> bool:
        return not self._ints and not self._floats


@pytest.fixture
def rng() -> np.random.Generator:
    """Deterministic numpy generator."""
    return np.random.default_rng(12345)
