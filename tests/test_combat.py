"""
Unit tests for the weapon strategy core and laser strategies.

Run with: python -m pytest tests/test_combat.py -v
"""

import dataclasses

import pytest

from shipcombat.combat import (
    RANGE_DM,
    TARGET_NUMBER,
    AttackContext,
    AttackOptions,
    BeamLaserStrategy,
    Blocked,
    Hit,
    LaserStrategy,
    Launched,
    Miss,
    PulseLaserStrategy,
    WeaponStrategy,
    get_range_dm,
    score_attack,
)
from shipcombat.dice import DiceRoll, ScriptedDice
from shipcombat.models import Combatant, RangeBand, Weapon


# Fixtures

@pytest.fixture
def attacker() -> Combatant:
    return Combatant(ship_id="attacker", hull=40, max_hull=40, gunner_skill=1)


@pytest.fixture
def defender() -> Combatant:
    return Combatant(ship_id="defender", hull=40, max_hull=40, armor=2)


@pytest.fixture
def pulse_laser() -> Weapon:
    return Weapon(type="pulse_laser", damage="2d6", name="Pulse Laser")


@pytest.fixture
def beam_laser() -> Weapon:
    """Beam laser restricted to close-in ranges."""
    return Weapon(
        type="beam_laser",
        damage="1d6",
        name="Beam Laser",
        range_restriction=("adjacent", "close", "medium"),
    )


# Range DM Tests

class TestRangeDM:
    """Tests for the range DM table."""

    @pytest.mark.parametrize("range_band,expected", [
        ("Adjacent", 0),
        ("Close", 0),
        ("Short", 1),
        ("Medium", 0),
        ("Long", -2),
        ("Very Long", -4),
        ("vlong", -4),
        ("Distant", -4),
        (RangeBand.SHORT, 1),
    ])
    def test_table(self, range_band, expected):
        assert get_range_dm(range_band) == expected

    @pytest.mark.parametrize("range_band", ["Orbit", "", None])
    def test_unknown_range_is_zero(self, range_band):
        assert get_range_dm(range_band) == 0

    def test_every_band_has_a_dm(self):
        assert set(RANGE_DM) == set(RangeBand)


class TestScoreAttack:
    """Tests for the pure attack scoring function."""

    def test_exact_target_number_hits_with_zero_effect(self):
        result = score_attack(DiceRoll(total=8, rolls=[4, 4]), range_band="Medium")
        assert result.hit
        assert result.total == TARGET_NUMBER
        assert result.effect == 0

    def test_modifiers_apply(self):
        result = score_attack(DiceRoll(total=7, rolls=[3, 4]), gunner_skill=2, range_band="Short", dodge_dm=1)
        assert result.total == 7 + 2 + 1 - 1
        assert result.effect == 1
        assert result.modifiers == {"gunner_skill": 2, "range_dm": 1, "dodge_dm": 1}

    def test_miss_has_zero_effect(self):
        result = score_attack(DiceRoll(total=9, rolls=[4, 5]), range_band="Very Long")
        assert not result.hit
        assert result.total == 5
        assert result.effect == 0

    def test_identical_inputs_identical_result(self):
        roll = DiceRoll(total=8, rolls=[5, 3])
        first = score_attack(roll, 1, "Long", 2)
        second = score_attack(roll, 1, "Long", 2)
        assert (first.hit, first.effect, first.total) == (second.hit, second.effect, second.total)


# Context Tests

class TestAttackContext:
    def test_between_uses_crew_values(self, pulse_laser):
        attacker = Combatant(ship_id="a", hull=10, max_hull=10, gunner_skill=3)
        defender = Combatant(ship_id="d", hull=10, max_hull=10, dodge_dm=2)

        context = AttackContext.between(attacker, defender, pulse_laser, "Short", armor_bonus=4)

        assert context.gunner_skill == 3
        assert context.dodge_dm == 2
        assert context.armor_bonus == 4
        assert context.range == "Short"

    def test_options_default_to_zero(self):
        context = AttackContext()
        assert context.gunner_skill == 0
        assert context.dodge_dm == 0

    def test_options_are_frozen(self):
        options = AttackOptions(gunner_skill=1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            options.gunner_skill = 2


# Base Strategy Tests

class TestWeaponStrategy:
    """Tests for the shared strategy behavior."""

    def test_resolve_not_implemented(self):
        with pytest.raises(NotImplementedError):
            WeaponStrategy(ScriptedDice([])).resolve(AttackContext())

    def test_can_fire_without_restriction(self, pulse_laser):
        strategy = WeaponStrategy(ScriptedDice([]))
        assert strategy.can_fire_at_range(pulse_laser, "Distant")
        assert strategy.can_fire_at_range(None, "Distant")

    def test_can_fire_with_restriction(self, beam_laser):
        strategy = WeaponStrategy(ScriptedDice([]))
        assert strategy.can_fire_at_range(beam_laser, "Medium")
        assert strategy.can_fire_at_range(beam_laser, "CLOSE")
        assert not strategy.can_fire_at_range(beam_laser, "Long")
        # Idempotent
        assert not strategy.can_fire_at_range(beam_laser, "Long")

    def test_roll_damage(self):
        strategy = WeaponStrategy(ScriptedDice([5, 6]))
        result = strategy.roll_damage("2d6", effect=2, armor=4)

        assert result.damage == 9
        assert result.raw_damage == 13
        assert result.roll.rolls == [5, 6]
        assert result.breakdown.endswith("= 9")

    def test_roll_damage_multiple_applies_after_armor(self):
        strategy = WeaponStrategy(ScriptedDice([3, 3, 3, 3]))
        result = strategy.roll_damage("4d6", effect=0, armor=10, damage_multiple=3)

        assert result.damage == (12 - 10) * 3
        assert result.damage_multiple == 3
        assert "x3" in result.breakdown

    def test_roll_damage_never_negative(self):
        strategy = WeaponStrategy(ScriptedDice([1, 1]))
        result = strategy.roll_damage("2d6", effect=0, armor=20, damage_multiple=3)
        assert result.damage == 0

    def test_invalid_formula_fails_softly(self):
        # No dice are available, so nothing may be rolled
        strategy = WeaponStrategy(ScriptedDice([]))
        result = strategy.roll_damage("bogus", effect=3)

        assert result.damage == 0
        assert result.roll is None
        assert "Invalid formula" in result.breakdown


# Laser Strategy Tests

class TestLaserStrategy:
    """Tests for laser attack resolution."""

    def test_hit(self, attacker, defender, pulse_laser):
        # Attack 4+4 +1 skill +1 short = 10, effect 2; damage 3+3 +2 -2 armor = 6
        strategy = LaserStrategy(ScriptedDice([4, 4, 3, 3]))
        result = strategy.resolve(AttackContext.between(attacker, defender, pulse_laser, "Short"))

        assert isinstance(result, Hit)
        assert result.hit
        assert not result.blocked
        assert result.attack_roll.effect == 2
        assert result.damage == 6
        # Strategies report damage, they do not apply it
        assert defender.hull == 40

    def test_miss(self, attacker, defender, pulse_laser):
        strategy = LaserStrategy(ScriptedDice([1, 1]))
        result = strategy.resolve(AttackContext.between(attacker, defender, pulse_laser, "Medium"))

        assert isinstance(result, Miss)
        assert not result.hit
        assert result.damage == 0

    def test_dodge_turns_hit_into_miss(self, attacker, pulse_laser):
        evasive = Combatant(ship_id="evasive", hull=10, max_hull=10, dodge_dm=3)
        strategy = LaserStrategy(ScriptedDice([4, 4]))
        result = strategy.resolve(AttackContext.between(attacker, evasive, pulse_laser, "Medium"))
        assert not result.hit

    def test_armor_bonus_adds_to_armor(self, attacker, defender, pulse_laser):
        # Attack 4+4+1 = 9, effect 1; damage 6+6 +1 -(2+3) = 8
        strategy = LaserStrategy(ScriptedDice([4, 4, 6, 6]))
        result = strategy.resolve(
            AttackContext.between(attacker, defender, pulse_laser, "Medium", armor_bonus=3)
        )
        assert result.damage == 8
        assert result.damage_result.armor == 5

    def test_missing_weapon_uses_default_damage(self, attacker, defender):
        strategy = LaserStrategy(ScriptedDice([6, 6, 1, 1]))
        result = strategy.resolve(AttackContext(attacker=attacker, defender=defender, range="Medium"))
        # 12 hit, effect 4; 2d6 = 2 + 4 - 2 armor = 4
        assert result.damage == 4

    def test_beam_laser_blocked_out_of_range(self, attacker, defender, beam_laser):
        """A restricted weapon fired out of range is blocked without rolling."""
        dice = ScriptedDice([])
        strategy = BeamLaserStrategy(dice)
        result = strategy.resolve(AttackContext.between(attacker, defender, beam_laser, "Long"))

        assert isinstance(result, Blocked)
        assert result.blocked
        assert not result.hit
        assert result.allowed_ranges == ("adjacent", "close", "medium")
        assert result.reason == "Beam Laser cannot fire at Long range"
        assert dice.position == 0
        assert defender.hull == 40

    def test_strategy_names(self):
        assert PulseLaserStrategy.name == "Pulse Laser"
        assert BeamLaserStrategy.name == "Beam Laser"
        assert issubclass(BeamLaserStrategy, LaserStrategy)


class TestResultStrings:
    def test_blocked(self):
        blocked = Blocked(reason="No missiles remaining", weapon="Missile")
        assert str(blocked) == "Missile: blocked (No missiles remaining)"
        assert blocked.success is False

    def test_launched(self):
        launched = Launched(range_bonus=2, ammo_remaining=3, weapon="Missile")
        assert launched.launched and launched.tracking
        assert not launched.hit
        assert str(launched) == "Missile: launched (+2 at impact)"
