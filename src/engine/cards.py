"""
Easy21 cards: value, colour, random draws and human-readable I/O helpers.

Easy21 is played from an infinite deck:
    value  -> uniform over 1..10 (no face cards, no aces)
    colour -> RED with probability 1/3, BLACK with probability 2/3

Black cards add their value to a running total; red cards subtract it.

Random draws take any generator exposing numpy's Generator interface
(``integers(low, high)`` with exclusive high, and ``random()``), so tests
can script the exact cards dealt.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

MIN_CARD_VALUE: int = 1
MAX_CARD_VALUE: int = 10

RED_PROBABILITY: float = 1.0 / 3.0
"""Probability that a drawn card is red (subtracts from the total)."""


class CardRng(Protocol):
    """The slice of numpy.random.Generator the game needs."""

    def integers(self, low: int, high: int) -> int: ...

    def random(self) -> float: ...


class CardColor(Enum):
    BLACK = "B"
    RED = "R"


@dataclass(frozen=True)
class Card:
    """A single Easy21 card."""
    value: int
    color: CardColor

    def __post_init__(self) -> None:
        if not MIN_CARD_VALUE <= self.value <= MAX_CARD_VALUE:
            raise ValueError(
                f"Card value must be in {MIN_CARD_VALUE}..{MAX_CARD_VALUE}, got {self.value}."
            )

    @property
    def signed_value(self) -> int:
        """Value with the colour's sign applied.

        Examples:
            >>> Card(7, CardColor.BLACK).signed_value
            7
            >>> Card(7, CardColor.RED).signed_value
            -7
        """
        return self.value if self.color is CardColor.BLACK else -self.value

    def add_to(self, total: int) -> int:
        """Return ``total`` after this card is added (black) or taken away (red).

        Examples:
            >>> Card(5, CardColor.BLACK).add_to(2)
            7
            >>> Card(4, CardColor.RED).add_to(3)
            -1
        """
        return total + self.signed_value

    def __str__(self) -> str:
        return card_to_str(self)


def draw_card(rng: CardRng) -> Card:
    """Draw one card from the infinite deck.

    The value is drawn first, then the colour, so a scripted generator feeds
    ``integers`` and ``random`` in that order.
    """
    value = int(rng.integers(MIN_CARD_VALUE, MAX_CARD_VALUE + 1))
    color = CardColor.RED if rng.random() < RED_PROBABILITY else CardColor.BLACK
    return Card(value, color)


def card_to_str(card: Card) -> str:
    """Convert a card to its short string form: value followed by colour letter.

    Examples:
        >>> card_to_str(Card(10, CardColor.BLACK))
        '10B'
        >>> card_to_str(Card(3, CardColor.RED))
        '3R'
    """
    return f"{card.value}{card.color.value}"


def str_to_card(s: str) -> Card:
    """Parse the short string form produced by card_to_str().

    Examples:
        >>> str_to_card('5B')
        Card(value=5, color=<CardColor.BLACK: 'B'>)
        >>> str_to_card('10R').signed_value
        -10
    """
    color = CardColor(s[-1].upper())
    return Card(int(s[:-1]), color)
