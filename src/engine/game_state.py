"""
Easy21 game state and environment transitions.

Implements the full Easy21 hand flow:
    DEAL (one black card each) -> PLAYER HIT* -> PLAYER STICK -> DEALER PLAY

Key rules modelled here:
    - A total below 1 or above 21 is bust; a player bust ends the hand at -1.
    - On STICK the dealer hits until reaching 17 or more, then the higher
      total wins (equal totals draw). A dealer bust pays the player +1.
    - Only the player's decisions are external; the dealer policy is fixed.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable

from .cards import CardRng, draw_card

# ─── Rule constants ───────────────────────────────────────────────────────────

MIN_TOTAL: int = 1
MAX_TOTAL: int = 21
DEALER_STICK_TOTAL: int = 17
PLAYER_EXAMPLE_STICK_TOTAL: int = 20


# ─── Enumerations ─────────────────────────────────────────────────────────────

class Action(Enum):
    HIT = 0    # Draw another card, then decide again
    STICK = 1  # No further cards; the dealer takes its turn


# ─── State / Result types ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class State:
    """Running totals of a hand in progress.

    Frozen (hashable) so it can key dictionaries and sets. Totals are not
    clipped: after a bust they may lie anywhere in -9..31.
    """
    dealer: int
    player: int


@dataclass(frozen=True)
class Sample:
    """Outcome of one environment transition, from the player's perspective."""
    state: State
    reward: int      # -1 loss, 0 draw / non-terminal, +1 win
    terminal: bool


# ─── Strategy type aliases ────────────────────────────────────────────────────

# policy(rng, state) -> Action
Policy = Callable[[CardRng, State], Action]

# (state, action) pairs visited during one episode
Trajectory = list[tuple[State, Action]]


# ─── Rule helpers ─────────────────────────────────────────────────────────────

def is_bust(total: int) -> bool:
    """Return True if a total lies outside 1..21.

    Examples:
        >>> is_bust(21)
        False
        >>> is_bust(22)
        True
        >>> is_bust(0)
        True
    """
    return not MIN_TOTAL <= total <= MAX_TOTAL


def _sign(x: int) -> int:
    return (x > 0) - (x < 0)


def initial_state(rng: CardRng) -> State:
    """Deal the opening cards: one to the dealer, then one to the player.

    Opening cards are always counted as black, so both totals start in 1..10.
    """
    dealer = draw_card(rng).value
    player = draw_card(rng).value
    return State(dealer=dealer, player=player)


# ─── Environment ──────────────────────────────────────────────────────────────

def step(rng: CardRng, state: State, action: Action) -> Sample:
    """Apply one player action and return the resulting sample.

    HIT draws a single card for the player. STICK plays the dealer out to
    completion, so every STICK sample is terminal.

    Args:
        rng:    Card source (numpy Generator or a test double).
        state:  Current non-terminal state.
        action: Player action.

    Returns:
        Sample with the next state, the reward and the terminal flag.

    Examples:
        A black 5 from player 2 is safe:

        >>> class Rng:
        ...     def integers(self, low, high): return 5
        ...     def random(self): return 0.9
        >>> step(Rng(), State(dealer=3, player=2), Action.HIT)
        Sample(state=State(dealer=3, player=7), reward=0, terminal=False)
    """
    if action is Action.HIT:
        player = draw_card(rng).add_to(state.player)
        bust = is_bust(player)
        return Sample(
            state=replace(state, player=player),
            reward=-1 if bust else 0,
            terminal=bust,
        )

    dealer = state.dealer
    while dealer < DEALER_STICK_TOTAL:
        dealer = draw_card(rng).add_to(dealer)
        if is_bust(dealer):
            return Sample(state=replace(state, dealer=dealer), reward=1, terminal=True)

    return Sample(
        state=replace(state, dealer=dealer),
        reward=_sign(state.player - dealer),
        terminal=True,
    )


def episode(rng: CardRng, policy: Policy) -> tuple[Trajectory, int]:
    """Play one hand from a fresh deal until it terminates.

    Args:
        rng:    Card source, also passed through to the policy.
        policy: Callable(rng, state) -> Action.

    Returns:
        (trajectory, reward): every (state, action) the player took, in order,
        and the terminal reward.
    """
    state = initial_state(rng)
    trajectory: Trajectory = []
    while True:
        action = policy(rng, state)
        trajectory.append((state, action))
        sample = step(rng, state, action)
        if sample.terminal:
            return trajectory, sample.reward
        state = sample.state


# ─── Built-in strategy helpers ────────────────────────────────────────────────

def example_policy(rng: CardRng, state: State) -> Action:
    """Fixed evaluation policy: stick on 20 or 21, hit otherwise."""
    if state.player >= PLAYER_EXAMPLE_STICK_TOTAL:
        return Action.STICK
    return Action.HIT
