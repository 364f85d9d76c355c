"""
Unit tests for the dice service.

Run with: python -m pytest tests/test_dice.py -v
"""

import random

import pytest

from shipcombat.dice import DiceRoll, DiceRoller, ScriptedDice, parse_damage_formula


class TestDiceRoller:
    """Tests for DiceRoller."""

    def test_roll_range_and_count(self):
        """Each die is within 1..sides and the total is their sum."""
        roller = DiceRoller(seed=7)
        for _ in range(200):
            result = roller.roll(3, 6)
            assert len(result.rolls) == 3
            assert all(1 <= r <= 6 for r in result.rolls)
            assert result.total == sum(result.rolls)
            assert 3 <= result.total <= 18

    def test_roll2d6_range(self):
        roller = DiceRoller(seed=3)
        totals = {roller.roll2d6().total for _ in range(500)}
        assert min(totals) >= 2
        assert max(totals) <= 12

    def test_seeded_rollers_reproduce(self):
        """Two rollers with the same seed produce the same sequence."""
        a = DiceRoller(seed=42)
        b = DiceRoller(seed=42)
        assert [a.roll(4, 6).rolls for _ in range(10)] == [b.roll(4, 6).rolls for _ in range(10)]

    def test_rollers_do_not_share_state(self):
        """Rolling on one roller leaves another roller's sequence untouched."""
        busy = DiceRoller(seed=1)
        quiet = DiceRoller(seed=1)
        reference = DiceRoller(seed=1)

        for _ in range(20):
            busy.roll2d6()

        assert quiet.roll2d6().rolls == reference.roll2d6().rolls

    def test_injected_rng(self):
        rng = random.Random(99)
        expected = random.Random(99)
        roller = DiceRoller(rng=rng)
        assert roller.roll(1, 6).total == expected.randint(1, 6)


class TestScriptedDice:
    """Tests for scripted dice used to pin down outcomes."""

    def test_returns_faces_in_order(self):
        dice = ScriptedDice([3, 4, 6])
        roll = dice.roll2d6()

        assert roll.total == 7
        assert roll.rolls == [3, 4]
        assert dice.remaining == 1

    def test_exhausted_raises(self):
        dice = ScriptedDice([2])
        dice.roll(1, 6)
        with pytest.raises(IndexError):
            dice.roll(1, 6)


class TestDiceRoll:
    def test_str(self):
        assert str(DiceRoll(total=7, rolls=[3, 4])) == "7 [3, 4]"


class TestParseDamageFormula:
    """Tests for NdS formula parsing."""

    @pytest.mark.parametrize("formula,expected", [
        ("2d6", (2, 6)),
        ("4D6", (4, 6)),
        ("1d6", (1, 6)),
        ("10d10", (10, 10)),
    ])
    def test_valid(self, formula, expected):
        assert parse_damage_formula(formula) == expected

    @pytest.mark.parametrize("formula", ["", None, "abc", "0", "0d6", "2d0", "d6"])
    def test_invalid(self, formula):
        assert parse_damage_formula(formula) is None
