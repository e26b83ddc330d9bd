"""Tests for src/engine/tables.py — V/Q indexing, bounds and bulk operations."""

from __future__ import annotations

import numpy as np
import pytest

from src.engine.game_state import Action, State
from src.engine.tables import HIGHEST_TOTAL, LOWEST_TOTAL, Q, TABLE_SIZE, V, _axis


class TestAxis:
    def test_bounds(self):
        assert _axis(LOWEST_TOTAL) == 0
        assert _axis(HIGHEST_TOTAL) == TABLE_SIZE - 1

    @pytest.mark.parametrize("total", [LOWEST_TOTAL - 1, HIGHEST_TOTAL + 1, 100, -50])
    def test_out_of_range_raises(self, total):
        with pytest.raises(IndexError):
            _axis(total)

    def test_every_reachable_total_covered(self):
        for total in range(-9, 32):
            _axis(total)


class TestV:
    def test_init_fill(self):
        v = V.init(3)
        assert v.get(State(dealer=5, player=5)) == 3
        assert np.all(v.data == 3)

    def test_set_get_independent_cells(self):
        v = V.init(0.0)
        v.set(State(dealer=2, player=9), 1.5)
        assert v.get(State(dealer=2, player=9)) == 1.5
        assert v.get(State(dealer=9, player=2)) == 0.0
        assert v.data.sum() == 1.5

    def test_negative_and_bust_totals_do_not_alias(self):
        v = V.init(0.0)
        v.set(State(dealer=5, player=-3), 1.0)
        v.set(State(dealer=5, player=29), 2.0)
        assert v.get(State(dealer=5, player=-3)) == 1.0
        assert v.get(State(dealer=5, player=29)) == 2.0
        assert v.data.sum() == 3.0

    def test_update(self):
        v = V.init(0, dtype=np.int64)
        s = State(dealer=1, player=1)
        v.update(s, lambda n: n + 1).update(s, lambda n: n + 1)
        assert v.get(s) == 2

    def test_out_of_range_state(self):
        with pytest.raises(IndexError):
            V.init().get(State(dealer=1, player=40))

    def test_wrong_shape_rejected(self):
        with pytest.raises(ValueError):
            V(np.zeros((10, 21)))

    def test_map_in_place(self):
        v = V.init(2.0)
        same = v.map(lambda a: a * 0.5)
        assert same is v
        assert np.all(v.data == 1.0)

    def test_fill(self):
        v = V.init(1.0).fill(0.0)
        assert not v.data.any()

    def test_zip_with(self):
        a = V.init(1.0)
        b = V.init(0.0).set(State(dealer=3, player=3), 4.0)
        a.zip_with(b, lambda x, y: x + 2 * y)
        assert a.get(State(dealer=3, player=3)) == 9.0
        assert a.get(State(dealer=4, player=3)) == 1.0

    def test_zip_with_mismatched_kind(self):
        with pytest.raises(ValueError):
            V.init().zip_with(Q.init(), lambda x, y: x)

    def test_copy_is_independent(self):
        v = V.init(0.0)
        c = v.copy()
        c.set(State(dealer=1, player=1), 5.0)
        assert v.get(State(dealer=1, player=1)) == 0.0


class TestQ:
    def test_shape(self):
        assert Q.init().data.shape == (2, TABLE_SIZE, TABLE_SIZE)

    def test_actions_are_separate(self):
        q = Q.init(0.0)
        s = State(dealer=7, player=14)
        q.set(s, Action.HIT, -0.25).set(s, Action.STICK, 0.5)
        assert q.get(s, Action.HIT) == -0.25
        assert q.get(s, Action.STICK) == 0.5

    def test_get_q_is_float(self):
        q = Q.init(0, dtype=np.int64)
        q.set(State(dealer=1, player=1), Action.HIT, 3)
        value = q.get_q(State(dealer=1, player=1), Action.HIT)
        assert isinstance(value, float)
        assert value == 3.0

    def test_update(self):
        q = Q.init(1.0)
        s = State(dealer=2, player=2)
        q.update(s, Action.STICK, lambda x: x * 10)
        assert q.get(s, Action.STICK) == 10.0
        assert q.get(s, Action.HIT) == 1.0

    def test_best_value(self):
        q = Q.init(0.0)
        s = State(dealer=2, player=2)
        q.set(s, Action.HIT, -1.0).set(s, Action.STICK, -2.0)
        assert q.best_value(s) == -1.0

    def test_repr(self):
        assert repr(Q.init(0.0)).startswith("Q(dtype=float64")
