#!/usr/bin/env python3
"""
Missile mechanics for the ship combat engine.

Missiles are resolved in two separate steps:
- MissileStrategy.resolve(): launch. Spends one missile and stores the
  range bonus. No attack roll is made at launch.
- MissileStrategy.resolve_impact(): arrival. Standard missiles always hit
  and roll 4d6 + range bonus against armor (plus any sandcaster screen).

Missile variants:
- smart: rolls 2d6 - dodge against 8 on arrival. A miss is not lost; the
  missile comes round again next round. Smart missiles resist ECM on 8+.
- nuclear: same damage plus a radiation crew hit (2d6 - armor against 8
  for 2d6 crew damage). Armor 8+ or a nuclear damper negates it.
- nuclear_smart: both.

MissileLifecycle tracks every missile in flight for a battle and advances
them each round. Missiles are only engaged on the round they arrive:
ECM first, then point defense, then impact.

Flight time table (rounds from launch to arrival):
    Adjacent/Close: 0 (launch is not allowed there)
    Short/Medium: 1
    Long: 2
    Very Long: 5
    Distant: 10
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Union

from .combat import (
    TARGET_NUMBER,
    AttackContext,
    AttackOptions,
    AttackResult,
    Blocked,
    DamageResult,
    DefenseContext,
    ImpactContext,
    Launched,
    WeaponStrategy,
)
from .dice import DiceRoll
from .models import Combatant, Missile, RangeBand, Weapon

if TYPE_CHECKING:
    from .dispatcher import WeaponDispatcher
    from .pointdefense import ECMResult, PointDefenseResult


logger = logging.getLogger("shipcombat.missiles")


# =============================================================================
# CONSTANTS
# =============================================================================

MISSILE_DAMAGE = "4d6"
MISSILE_RANGE_BONUS = 2

RADIATION_PROOF_ARMOR = 8

LONG_RANGES = frozenset({RangeBand.LONG, RangeBand.VERY_LONG, RangeBand.DISTANT})
BLOCKED_LAUNCH_RANGES = frozenset({RangeBand.ADJACENT, RangeBand.CLOSE})

MISSILE_FLIGHT_TIME: dict[RangeBand, int] = {
    RangeBand.ADJACENT: 0,
    RangeBand.CLOSE: 0,
    RangeBand.SHORT: 1,
    RangeBand.MEDIUM: 1,
    RangeBand.LONG: 2,
    RangeBand.VERY_LONG: 5,
    RangeBand.DISTANT: 10,
}


def get_missile_range_bonus(range_band: Union[str, RangeBand, None]) -> int:
    """+2 damage at Long, Very Long and Distant, 0 otherwise."""
    return MISSILE_RANGE_BONUS if RangeBand.parse(range_band) in LONG_RANGES else 0


def can_launch_missile_at_range(range_band: Union[str, RangeBand, None]) -> bool:
    """Missiles cannot be launched at Adjacent or Close range."""
    return RangeBand.parse(range_band) not in BLOCKED_LAUNCH_RANGES


def get_flight_time(range_band: Union[str, RangeBand, None]) -> int:
    """Rounds from launch to arrival; 1 for unknown ranges."""
    band = RangeBand.parse(range_band)
    if band is None:
        return 1
    return MISSILE_FLIGHT_TIME[band]


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class RadiationResult:
    """
    Radiation crew hit from a nuclear missile.

    Attributes:
        applies: False when armor or a nuclear damper stops the radiation.
        reason: Why the radiation did or did not apply.
        roll: The 2d6 radiation check (when it applies).
        total: Check total after the armor DM.
        crew_damage: Crew damage dealt (0 when the check fails).
    """
    applies: bool
    reason: str
    roll: Optional[DiceRoll] = None
    total: int = 0
    crew_damage: int = 0

    @property
    def hit(self) -> bool:
        return self.crew_damage > 0


@dataclass
class ImpactResult:
    """
    Result of a missile reaching its target.

    Attributes:
        damage: Damage dealt after armor.
        damage_result: Full damage roll.
        range_bonus: Range bonus stored at launch.
        sandcaster_bonus: Extra armor from an active sandcaster screen.
        missile_id: Arriving missile, if one was given.
        attack_roll: To-hit roll (smart missiles only).
        radiation: Radiation crew hit (nuclear missiles only).
    """
    damage: int
    damage_result: Optional[DamageResult] = None
    range_bonus: int = 0
    sandcaster_bonus: int = 0
    missile_id: Optional[str] = None
    attack_roll: Optional[DiceRoll] = None
    radiation: Optional[RadiationResult] = None
    hit: bool = field(default=True, init=False)
    blocked: bool = field(default=False, init=False)

    def __str__(self) -> str:
        text = f"Missile impact: {self.damage} damage"
        if self.radiation is not None and self.radiation.hit:
            text += f" + {self.radiation.crew_damage} radiation crew damage"
        return text


@dataclass
class MissileMiss:
    """A smart missile missed on arrival and will attack again next round."""
    attack_roll: DiceRoll
    total: int
    missile_id: Optional[str] = None
    next_attempt: int = 0
    hit: bool = field(default=False, init=False)
    damage: int = field(default=0, init=False)
    blocked: bool = field(default=False, init=False)

    def __str__(self) -> str:
        return f"Smart missile missed ({self.total} vs {TARGET_NUMBER}), attacking again"


def check_radiation(defender: Optional[Combatant]) -> Optional[RadiationResult]:
    """
    Whether a nuclear detonation can hurt the defender's crew.

    Returns:
        A RadiationResult with applies=False when the defender is shielded,
        None when it is exposed and a radiation check must be rolled.
    """
    if defender is None:
        return RadiationResult(applies=False, reason="No target crew")
    if defender.nuclear_damper:
        return RadiationResult(applies=False, reason="Nuclear damper negated radiation")
    if defender.armor >= RADIATION_PROOF_ARMOR:
        return RadiationResult(applies=False, reason="Armor 8+ provides radiation protection")
    return None


# =============================================================================
# STRATEGY
# =============================================================================

class MissileStrategy(WeaponStrategy):
    """Launch and impact resolution for missile racks."""

    name = "Missile"

    def get_missile_range_bonus(self, range_band: Union[str, RangeBand, None]) -> int:
        return get_missile_range_bonus(range_band)

    def resolve(self, context: AttackContext) -> Union[Blocked, Launched]:
        """
        Launch a missile.

        Consumes one missile from the attacker. The range bonus is stored
        on the result for use at impact and is not applied here.

        Args:
            context: Attack context; only attacker, weapon and range are used.

        Returns:
            Launched, or Blocked when the rack is empty.
        """
        attacker = context.attacker
        if attacker is None or attacker.ammo.missiles <= 0:
            return Blocked(reason="No missiles remaining", weapon=self.name)

        attacker.ammo.missiles -= 1
        range_bonus = self.get_missile_range_bonus(context.range)
        missile_type = context.weapon.missile_type if context.weapon else "standard"
        logger.debug(
            "%s launched a %s missile (+%d at impact, %d left)",
            attacker.ship_id, missile_type, range_bonus, attacker.ammo.missiles,
        )
        return Launched(
            range_bonus=range_bonus,
            ammo_remaining=attacker.ammo.missiles,
            weapon=self.name,
            missile_type=missile_type,
        )

    def resolve_impact(self, context: ImpactContext) -> Union[ImpactResult, MissileMiss, Blocked]:
        """
        Resolve a missile arriving at its target.

        Standard missiles hit automatically. Smart missiles roll 2d6 minus
        the defender's dodge DM against 8 and stay tracking on a miss.
        Damage is 4d6 + range bonus against the defender's armor plus any
        sandcaster bonus. Nuclear missiles then roll for a radiation crew
        hit. A missile passed in the context is moved to IMPACTED on a hit.

        Args:
            context: Impact context.

        Returns:
            ImpactResult, MissileMiss for a smart missile that missed, or
            Blocked if the missile is no longer tracking.
        """
        missile = context.missile
        if missile is not None and not missile.is_tracking:
            return Blocked(reason="missile_not_active", weapon=self.name)

        defender = context.defender
        attack_roll = None
        if missile is not None and missile.is_smart:
            attack_roll = self.dice.roll2d6()
            total = attack_roll.total - (defender.dodge_dm if defender else 0)
            if total < TARGET_NUMBER:
                missile.arrival_round += 1
                return MissileMiss(
                    attack_roll=attack_roll,
                    total=total,
                    missile_id=missile.id,
                    next_attempt=missile.arrival_round,
                )

        range_bonus = missile.range_bonus if missile is not None else context.range_bonus
        armor = context.sandcaster_bonus
        if defender is not None:
            armor += defender.armor

        damage_result = self.roll_damage(MISSILE_DAMAGE, range_bonus, armor)
        if missile is not None:
            missile.impact()

        radiation = None
        if missile is not None and missile.is_nuclear:
            radiation = self.roll_radiation(defender)

        return ImpactResult(
            damage=damage_result.damage,
            damage_result=damage_result,
            range_bonus=range_bonus,
            sandcaster_bonus=context.sandcaster_bonus,
            missile_id=missile.id if missile is not None else None,
            attack_roll=attack_roll,
            radiation=radiation,
        )

    def roll_radiation(self, defender: Optional[Combatant]) -> RadiationResult:
        """Radiation crew hit: 2d6 - armor against 8 for 2d6 crew damage."""
        shielded = check_radiation(defender)
        if shielded is not None:
            return shielded

        roll = self.dice.roll2d6()
        total = roll.total - defender.armor
        if total < TARGET_NUMBER:
            return RadiationResult(
                applies=True,
                reason=f"Radiation check failed with -{defender.armor} DM from armor",
                roll=roll,
                total=total,
            )

        crew_damage = self.dice.roll2d6().total
        defender.crew_damage += crew_damage
        return RadiationResult(
            applies=True,
            reason=f"Radiation crew hit with -{defender.armor} DM from armor",
            roll=roll,
            total=total,
            crew_damage=crew_damage,
        )


# =============================================================================
# LIFECYCLE
# =============================================================================

@dataclass
class MissileUpdate:
    """
    One thing that happened to a missile while advancing a round.

    Attributes:
        missile: The missile concerned.
        action: 'tracking', 'jammed', 'ecm_failed', 'intercepted',
            'survived_pd', 'impacted' or 'missed'.
        result: ECM, point defense or impact result behind the action.
        damage: Hull damage dealt (impacts only).
    """
    missile: Missile
    action: str
    result: Optional[Union[ECMResult, PointDefenseResult, ImpactResult, MissileMiss]] = None
    damage: int = 0


class MissileLifecycle:
    """
    Tracks all missiles in flight for one battle.

    Args:
        dispatcher: Weapon dispatcher used for launch, countermeasures and impact.
        flight_times: Overrides for the flight time table.
    """

    def __init__(
        self,
        dispatcher: WeaponDispatcher,
        flight_times: Optional[dict[RangeBand, int]] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.flight_times = dict(MISSILE_FLIGHT_TIME)
        if flight_times:
            self.flight_times.update(flight_times)
        self.missiles: list[Missile] = []
        self._next_id = 1

    def flight_time(self, range_band: Union[str, RangeBand, None]) -> int:
        band = RangeBand.parse(range_band)
        if band is None:
            return 1
        return self.flight_times[band]

    def launch(
        self,
        attacker: Combatant,
        defender: Combatant,
        weapon: Weapon,
        range_band: Union[str, RangeBand],
        round_number: int,
    ) -> tuple[AttackResult, Optional[Missile]]:
        """
        Launch a missile from attacker at defender.

        Args:
            attacker: Launching ship.
            defender: Target ship.
            weapon: Missile rack being fired (sets the missile type).
            range_band: Current range.
            round_number: Current round.

        Returns:
            Tuple of (launch result, new missile or None if blocked).
        """
        if not can_launch_missile_at_range(range_band):
            band = RangeBand.parse(range_band)
            shown = band.display_name if band else range_band
            return Blocked(
                reason=f"Cannot launch missiles at {shown} range - target too close",
                weapon=MissileStrategy.name,
            ), None

        result = self.dispatcher.launch_missile(
            AttackContext.between(attacker, defender, weapon, range_band)
        )
        if not isinstance(result, Launched):
            return result, None

        missile = Missile(
            id=f"missile_{self._next_id}",
            owner_id=attacker.ship_id,
            target_id=defender.ship_id,
            range_bonus=result.range_bonus,
            launch_round=round_number,
            arrival_round=round_number + self.flight_time(range_band),
            missile_type=result.missile_type,
        )
        self._next_id += 1
        self.missiles.append(missile)
        return result, missile

    def tracking(self, target_id: Optional[str] = None) -> list[Missile]:
        """Missiles still in flight, optionally only those aimed at one ship."""
        return [
            m for m in self.missiles
            if m.is_tracking and (target_id is None or m.target_id == target_id)
        ]

    def arriving(self, target_id: str, round_number: int) -> list[Missile]:
        """Tracking missiles that reach target_id this round: the countermeasure window."""
        return [m for m in self.tracking(target_id) if m.has_arrived(round_number)]

    def advance(
        self,
        ships: dict[str, Combatant],
        round_number: int,
        sandcaster_screens: Optional[dict[str, int]] = None,
    ) -> list[MissileUpdate]:
        """
        Advance every tracking missile by one round.

        Missiles still in flight are reported as tracking and left alone.
        For each targeted ship still in the fight, its ECM suite and then
        its point defense mounts engage the missiles arriving this round.
        Arriving missiles that survive then impact, using up the target's
        active sandcaster screen if it has one. Missiles aimed at ships
        that left the fight stay tracking and are not resolved.

        Args:
            ships: All ships in the battle by id.
            round_number: Current round.
            sandcaster_screens: Active anti-missile armor bonus per ship id.
                Entries are consumed by the first impact they protect against.

        Returns:
            List of MissileUpdate records in resolution order.
        """
        screens = sandcaster_screens if sandcaster_screens is not None else {}
        updates: list[MissileUpdate] = []

        target_ids: list[str] = []
        for missile in self.tracking():
            if missile.target_id not in target_ids:
                target_ids.append(missile.target_id)

        for target_id in target_ids:
            target = ships.get(target_id)
            if target is None or not target.is_active:
                continue

            arriving = self.arriving(target_id, round_number)
            for missile in self.tracking(target_id):
                if missile not in arriving:
                    updates.append(MissileUpdate(missile=missile, action="tracking"))

            updates.extend(self._electronic_warfare(target, arriving, round_number))
            updates.extend(self._point_defense(target, arriving, round_number))

            for missile in arriving:
                if not missile.is_tracking:
                    continue

                bonus = screens.pop(target_id, 0)
                result = self.dispatcher.resolve_missile_impact(
                    ImpactContext(defender=target, missile=missile, sandcaster_bonus=bonus)
                )
                if isinstance(result, MissileMiss):
                    if bonus:
                        screens[target_id] = bonus
                    updates.append(MissileUpdate(missile=missile, action="missed", result=result))
                    continue

                damage = target.apply_damage(result.damage)
                logger.debug("%s hit %s for %d", missile.id, target_id, damage)
                updates.append(MissileUpdate(
                    missile=missile, action="impacted", result=result, damage=damage
                ))

        return updates

    def _electronic_warfare(
        self, target: Combatant, arriving: list[Missile], round_number: int
    ) -> list[MissileUpdate]:
        """One ECM attempt per arriving missile when the target carries ECM."""
        if target.sensor_skill is None:
            return []

        updates = []
        for missile in arriving:
            result = self.dispatcher.use_ecm(DefenseContext(
                defender=target,
                missile=missile,
                round_number=round_number,
                sensor_skill=target.sensor_skill,
            ))
            if result.blocked:
                continue
            action = "jammed" if result.jammed else "ecm_failed"
            updates.append(MissileUpdate(missile=missile, action=action, result=result))
        return updates

    def _point_defense(
        self, target: Combatant, arriving: list[Missile], round_number: int
    ) -> list[MissileUpdate]:
        """Let every point defense mount on target engage the arriving missiles."""
        mounts = [
            w for w in target.turrets
            if self.dispatcher.normalize_type(w.type) == "point_defense"
        ]
        if not mounts:
            return []

        updates = []
        attempts = [0] * len(mounts)
        for missile in arriving:
            for index, mount in enumerate(mounts):
                result = self.dispatcher.use_point_defense(DefenseContext(
                    defender=target,
                    options=AttackOptions(gunner_skill=target.gunner_skill),
                    missile=missile,
                    turret_size=mount.turret_size,
                    prior_attempts=attempts[index],
                    round_number=round_number,
                ))
                if result.blocked:
                    break
                attempts[index] += 1
                if result.destroyed:
                    updates.append(MissileUpdate(missile=missile, action="intercepted", result=result))
                    break
                updates.append(MissileUpdate(missile=missile, action="survived_pd", result=result))
        return updates

    def summary(self) -> dict[str, int]:
        """Counts of missiles by status."""
        counts = {"total": len(self.missiles)}
        for missile in self.missiles:
            counts[missile.status.value] = counts.get(missile.status.value, 0) + 1
        return counts
