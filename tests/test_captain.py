"""
Unit tests for fleet strength and NPC captain decisions.

Run with: python -m pytest tests/test_captain.py -v
"""

import pytest

from shipcombat.captain import (
    CaptainOrder,
    TacticalPicture,
    calculate_fleet_strength,
    captain_decision,
    ship_strength,
)
from shipcombat.models import Combatant, Fleet, Weapon


def make_ship(ship_id="ship", hull=100, max_hull=100, **kwargs) -> Combatant:
    return Combatant(ship_id=ship_id, hull=hull, max_hull=max_hull, **kwargs)


@pytest.fixture
def even_odds() -> TacticalPicture:
    return TacticalPicture(friendly_strength=10.0, enemy_strength=10.0)


class TestFleetStrength:
    """Tests for the fleet strength estimate."""

    def test_full_ship_without_weapons(self):
        assert ship_strength(make_ship()) == 1.0

    def test_hull_weapons_and_thrust(self):
        ship = make_ship(
            hull=50,
            thrust=2,
            turrets=[Weapon(type="pulse_laser"), Weapon(type="missile_rack")],
        )
        assert ship_strength(ship) == pytest.approx(0.5 * 1.4 * 2)

    def test_destroyed_ship_contributes_zero(self):
        ship = make_ship(turrets=[Weapon(type="laser")], thrust=6, destroyed=True)
        assert ship_strength(ship) == 0.0

    def test_zero_max_hull(self):
        assert ship_strength(make_ship(hull=10, max_hull=0)) == 0.0

    def test_fleet_sum(self):
        fleet = Fleet(ships=[make_ship("a"), make_ship("b", hull=50), make_ship("c", destroyed=True)])
        assert calculate_fleet_strength(fleet) == pytest.approx(1.5)

    def test_accepts_plain_lists_and_none(self):
        assert calculate_fleet_strength([make_ship("a"), make_ship("b")]) == 2.0
        assert calculate_fleet_strength([]) == 0.0
        assert calculate_fleet_strength(None) == 0.0

    def test_never_negative(self):
        fleet = [make_ship("a", hull=0), make_ship("b", thrust=0), make_ship("c", hull=-5)]
        assert calculate_fleet_strength(fleet) >= 0.0


class TestTacticalPicture:
    def test_odds_from_strengths(self):
        assert TacticalPicture(friendly_strength=1, enemy_strength=3).odds == 0.25

    def test_odds_both_zero(self):
        assert TacticalPicture(friendly_fleet=[], enemy_fleet=[]).odds == 0.5

    def test_odds_from_fleets(self):
        picture = TacticalPicture(
            friendly_fleet=[make_ship("a")],
            enemy_fleet=[make_ship("b"), make_ship("c"), make_ship("d")],
        )
        assert picture.odds == 0.25


class TestCaptainDecision:
    """Tests for the fight / flee / surrender decision."""

    def test_low_hull_flees(self, even_odds):
        """20% hull is under the default 30% flee threshold."""
        assert captain_decision(make_ship(hull=20), even_odds) == CaptainOrder.FLEE

    def test_flee_preferred_when_hull_too_high_to_surrender(self):
        """Odds ~0.09 but 60% hull skips surrender and falls through to flee."""
        ship = make_ship(hull=60, power=90, max_power=100)
        picture = TacticalPicture(friendly_strength=10, enemy_strength=100)
        assert captain_decision(ship, picture) == CaptainOrder.FLEE

    def test_surrender_against_overwhelming_odds(self):
        ship = make_ship(hull=40)
        picture = TacticalPicture(friendly_strength=10, enemy_strength=100)
        assert captain_decision(ship, picture) == CaptainOrder.SURRENDER

    def test_lone_damaged_ship_against_five_surrenders(self):
        ship = make_ship("lone", hull=40)
        picture = TacticalPicture(
            friendly_fleet=[ship],
            enemy_fleet=[make_ship(f"enemy_{i}") for i in range(5)],
        )
        assert captain_decision(ship, picture) == CaptainOrder.SURRENDER

    def test_hull_under_threshold_flees_before_surrendering(self):
        """Even facing hopeless odds, a ship under its flee threshold runs."""
        ship = make_ship(hull=10)
        picture = TacticalPicture(friendly_strength=1, enemy_strength=100)
        assert captain_decision(ship, picture) == CaptainOrder.FLEE

    def test_poor_odds_flee(self):
        picture = TacticalPicture(friendly_strength=25, enemy_strength=75)
        assert captain_decision(make_ship(), picture) == CaptainOrder.FLEE

    def test_even_odds_fight(self, even_odds):
        assert captain_decision(make_ship(), even_odds) == CaptainOrder.FIGHT

    def test_odds_at_thirty_percent_fight(self):
        picture = TacticalPicture(friendly_strength=3, enemy_strength=7)
        assert captain_decision(make_ship(), picture) == CaptainOrder.FIGHT

    def test_low_power_flees(self, even_odds):
        ship = make_ship(power=10, max_power=100)
        assert captain_decision(ship, even_odds) == CaptainOrder.FLEE

    def test_unspecified_power_counts_as_full(self, even_odds):
        assert captain_decision(make_ship(power=None), even_odds) == CaptainOrder.FIGHT

    def test_custom_flee_threshold(self, even_odds):
        assert captain_decision(make_ship(hull=45, flee_threshold=0.5), even_odds) == CaptainOrder.FLEE
        assert captain_decision(make_ship(hull=25, flee_threshold=0.2), even_odds) == CaptainOrder.FIGHT

    def test_zero_max_hull_flees(self, even_odds):
        assert captain_decision(make_ship(hull=10, max_hull=0), even_odds) == CaptainOrder.FLEE

    def test_no_friendlies_flees(self):
        ship = make_ship()
        picture = TacticalPicture(friendly_fleet=[], enemy_fleet=[make_ship("enemy")])
        assert captain_decision(ship, picture) == CaptainOrder.FLEE

    def test_no_forces_at_all_fights(self):
        ship = make_ship()
        picture = TacticalPicture(friendly_fleet=[], enemy_fleet=[])
        assert captain_decision(ship, picture) == CaptainOrder.FIGHT
