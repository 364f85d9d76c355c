#!/usr/bin/env python3
"""
NPC captain tactics for the ship combat engine.

Provides the fleet strength estimate and the per-ship fight / flee /
surrender decision used for non-player ships each round.

Fleet strength per ship:
    hull fraction x (1 + 0.2 x weapon count) x thrust

Decision precedence (first match wins):
    1. hull below flee threshold, or power below 20%  -> flee
    2. odds below 20% and hull below 50%              -> surrender
    3. odds below 30%                                 -> flee
    4. otherwise                                      -> fight

A captain always tries to run before giving up the ship, even against
overwhelming odds.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Union

from .models import Combatant, Fleet


DEFAULT_FLEE_THRESHOLD = 0.3
POWER_FLEE_THRESHOLD = 0.2
SURRENDER_ODDS = 0.2
SURRENDER_HULL = 0.5
FLEE_ODDS = 0.3
WEAPON_STRENGTH_BONUS = 0.2


class CaptainOrder(Enum):
    """Decision a captain makes at the start of a round."""
    FIGHT = "fight"
    FLEE = "flee"
    SURRENDER = "surrender"


FleetLike = Union[Fleet, Iterable[Combatant], None]


def ship_strength(ship: Combatant) -> float:
    """
    Combat power of a single ship.

    Args:
        ship: The ship to evaluate.

    Returns:
        Strength score; 0 for destroyed ships, never negative.
    """
    if ship.destroyed:
        return 0.0
    hull_factor = ship.hull / ship.max_hull if ship.max_hull > 0 else 0.0
    weapon_factor = 1.0 + WEAPON_STRENGTH_BONUS * len(ship.turrets)
    thrust_factor = ship.thrust if ship.thrust is not None else 1.0
    return max(0.0, hull_factor * weapon_factor * thrust_factor)


def calculate_fleet_strength(fleet: FleetLike) -> float:
    """
    Sum the combat power of every non-destroyed ship in a fleet.

    Args:
        fleet: A Fleet, any iterable of ships, or None.

    Returns:
        Total strength (0.0 for an empty or missing fleet).
    """
    if fleet is None:
        return 0.0
    return sum(ship_strength(ship) for ship in fleet)


@dataclass
class TacticalPicture:
    """
    What a captain knows about the balance of forces.

    Either give both fleets, or give precomputed strengths directly.

    Attributes:
        friendly_fleet: Ships on the captain's side.
        enemy_fleet: Opposing ships.
        friendly_strength: Overrides the strength computed from friendly_fleet.
        enemy_strength: Overrides the strength computed from enemy_fleet.
    """
    friendly_fleet: FleetLike = None
    enemy_fleet: FleetLike = None
    friendly_strength: Optional[float] = None
    enemy_strength: Optional[float] = None

    def strengths(self) -> tuple[float, float]:
        friendly = self.friendly_strength
        if friendly is None:
            friendly = calculate_fleet_strength(self.friendly_fleet)
        enemy = self.enemy_strength
        if enemy is None:
            enemy = calculate_fleet_strength(self.enemy_fleet)
        return friendly, enemy

    @property
    def odds(self) -> float:
        """Friendly share of total strength; 0.5 when both sides are zero."""
        friendly, enemy = self.strengths()
        total = friendly + enemy
        if total <= 0:
            return 0.5
        return friendly / total


def captain_decision(ship: Combatant, picture: TacticalPicture) -> CaptainOrder:
    """
    Decide whether a ship fights, flees or surrenders this round.

    Args:
        ship: The captain's ship.
        picture: Friendly and enemy forces.

    Returns:
        The captain's order.
    """
    hull_percent = ship.hull_percent
    power_percent = ship.power_percent
    flee_threshold = (
        ship.flee_threshold if ship.flee_threshold is not None else DEFAULT_FLEE_THRESHOLD
    )
    odds = picture.odds

    if hull_percent < flee_threshold or power_percent < POWER_FLEE_THRESHOLD:
        return CaptainOrder.FLEE
    if odds < SURRENDER_ODDS and hull_percent < SURRENDER_HULL:
        return CaptainOrder.SURRENDER
    if odds < FLEE_ODDS:
        return CaptainOrder.FLEE
    return CaptainOrder.FIGHT
