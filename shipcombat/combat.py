"""
Weapon strategy core for the ship combat engine.

This module implements the shared attack contract used by every weapon
class:
- Range-band dice modifiers
- The 2d6 attack roll against target number 8
- Damage rolls against armor with post-armor multipliers
- The attack result union (Miss, Hit, Blocked, Launched)
- Laser strategies (generic, pulse, beam)

Missile, point defense and sandcaster strategies live in their own
modules and build on WeaponStrategy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from .dice import DiceRoll, DiceRoller, parse_damage_formula
from .models import Combatant, Missile, RangeBand, Weapon, normalize_range


logger = logging.getLogger("shipcombat.combat")


TARGET_NUMBER = 8
DEFAULT_LASER_DAMAGE = "2d6"

# Short range rewards accuracy, long range penalizes it
RANGE_DM: dict[RangeBand, int] = {
    RangeBand.ADJACENT: 0,
    RangeBand.CLOSE: 0,
    RangeBand.SHORT: 1,
    RangeBand.MEDIUM: 0,
    RangeBand.LONG: -2,
    RangeBand.VERY_LONG: -4,
    RangeBand.DISTANT: -4,
}


def get_range_dm(range_band: Union[str, RangeBand, None]) -> int:
    """
    Look up the attack DM for a range band.

    Args:
        range_band: Range name or RangeBand.

    Returns:
        The range DM, 0 for unknown ranges.
    """
    band = RangeBand.parse(range_band)
    if band is None:
        return 0
    return RANGE_DM[band]


# =============================================================================
# CONTEXTS
# =============================================================================

@dataclass(frozen=True)
class AttackOptions:
    """
    Crew modifiers for a single attack or defensive action.

    Attributes:
        gunner_skill: Gunner skill added to the 2d6 roll.
        dodge_dm: Defender's evasion DM subtracted from the roll.
    """
    gunner_skill: int = 0
    dodge_dm: int = 0


@dataclass
class AttackContext:
    """
    Inputs for one weapon attack. Ephemeral, never persisted.

    Attributes:
        attacker: Firing ship.
        defender: Target ship.
        weapon: Weapon being fired.
        range: Current range band.
        options: Gunner skill and dodge DM.
        armor_bonus: Extra armor for this attack only (sandcaster screen).
    """
    attacker: Optional[Combatant] = None
    defender: Optional[Combatant] = None
    weapon: Optional[Weapon] = None
    range: Union[str, RangeBand, None] = None
    options: AttackOptions = field(default_factory=AttackOptions)
    armor_bonus: int = 0

    @classmethod
    def between(
        cls,
        attacker: Combatant,
        defender: Combatant,
        weapon: Weapon,
        range_band: Union[str, RangeBand],
        armor_bonus: int = 0,
    ) -> AttackContext:
        """Build a context using the crews' own gunner skill and dodge DM."""
        return cls(
            attacker=attacker,
            defender=defender,
            weapon=weapon,
            range=range_band,
            options=AttackOptions(
                gunner_skill=attacker.gunner_skill,
                dodge_dm=defender.dodge_dm,
            ),
            armor_bonus=armor_bonus,
        )

    @property
    def gunner_skill(self) -> int:
        return self.options.gunner_skill

    @property
    def dodge_dm(self) -> int:
        return self.options.dodge_dm


@dataclass
class DefenseContext:
    """
    Inputs for a countermeasure (point defense, ECM or sandcaster).

    Attributes:
        defender: Ship using the countermeasure.
        options: Gunner skill of the defending gunner.
        missile: Missile targeted by point defense.
        attack_type: Attack the sandcaster screens against ('laser' or 'missile').
        turret_size: 1 single, 2 double, 3 triple turret.
        prior_attempts: Point defense attempts already made by this mount this round.
        round_number: Current round; point defense only engages missiles
            that have arrived by this round. None skips the arrival check.
        sensor_skill: Sensor operator skill used for ECM.
    """
    defender: Optional[Combatant] = None
    options: AttackOptions = field(default_factory=AttackOptions)
    missile: Optional[Missile] = None
    attack_type: str = "laser"
    turret_size: int = 1
    prior_attempts: int = 0
    round_number: Optional[int] = None
    sensor_skill: int = 0

    @property
    def gunner_skill(self) -> int:
        return self.options.gunner_skill


@dataclass
class ImpactContext:
    """
    Inputs for a missile arriving at its target.

    Attributes:
        defender: Ship being hit.
        missile: The arriving missile (supplies the stored range bonus).
        range_bonus: Range bonus used when no missile is given.
        sandcaster_bonus: Active sandcaster armor bonus against missiles.
    """
    defender: Optional[Combatant] = None
    missile: Optional[Missile] = None
    range_bonus: int = 0
    sandcaster_bonus: int = 0


# =============================================================================
# ROLL RESULTS
# =============================================================================

@dataclass
class AttackRoll:
    """
    Result of a 2d6 attack roll.

    Attributes:
        roll: The 2d6 dice.
        total: Roll plus all modifiers.
        hit: Whether total met the target number.
        effect: Margin over the target number (0 on a miss).
        modifiers: Gunner skill, range DM and dodge DM applied.
    """
    roll: DiceRoll
    total: int
    hit: bool
    effect: int
    modifiers: dict[str, int] = field(default_factory=dict)


@dataclass
class DamageResult:
    """
    Result of a damage roll against armor.

    Attributes:
        damage: Final damage after armor and multiplier.
        roll: Damage dice, None if the formula was invalid.
        raw_damage: Dice total plus effect, before armor.
        effect: Attack effect added to the dice.
        armor: Armor subtracted.
        damage_multiple: Multiplier applied after armor.
        breakdown: Human readable arithmetic.
    """
    damage: int
    roll: Optional[DiceRoll] = None
    raw_damage: int = 0
    effect: int = 0
    armor: int = 0
    damage_multiple: int = 1
    breakdown: str = ""


def score_attack(
    roll: DiceRoll,
    gunner_skill: int = 0,
    range_band: Union[str, RangeBand, None] = None,
    dodge_dm: int = 0,
) -> AttackRoll:
    """
    Apply modifiers to a 2d6 roll and compare against the target number.

    Pure: identical inputs always give identical hit and effect.

    Args:
        roll: The 2d6 dice.
        gunner_skill: Gunner skill DM.
        range_band: Current range band.
        dodge_dm: Defender's dodge DM.

    Returns:
        AttackRoll with total, hit and effect.
    """
    range_dm = get_range_dm(range_band)
    total = roll.total + gunner_skill + range_dm - dodge_dm
    hit = total >= TARGET_NUMBER
    return AttackRoll(
        roll=roll,
        total=total,
        hit=hit,
        effect=total - TARGET_NUMBER if hit else 0,
        modifiers={
            "gunner_skill": gunner_skill,
            "range_dm": range_dm,
            "dodge_dm": dodge_dm,
        },
    )


# =============================================================================
# ATTACK RESULT UNION
# =============================================================================

@dataclass
class Miss:
    """The attack roll failed."""
    attack_roll: Optional[AttackRoll] = None
    weapon: str = ""
    hit: bool = field(default=False, init=False)
    damage: int = field(default=0, init=False)
    blocked: bool = field(default=False, init=False)

    def __str__(self) -> str:
        total = self.attack_roll.total if self.attack_roll else "-"
        return f"{self.weapon}: miss ({total} vs {TARGET_NUMBER})"


@dataclass
class Hit:
    """The attack roll succeeded and damage was rolled."""
    damage: int
    attack_roll: Optional[AttackRoll] = None
    damage_result: Optional[DamageResult] = None
    weapon: str = ""
    hit: bool = field(default=True, init=False)
    blocked: bool = field(default=False, init=False)

    def __str__(self) -> str:
        return f"{self.weapon}: hit for {self.damage}"


@dataclass
class Blocked:
    """
    The action could not be attempted (range, ammo or target state).

    No dice are rolled and no state is changed when an action is blocked.
    """
    reason: str
    weapon: str = ""
    allowed_ranges: Optional[tuple[str, ...]] = None
    hit: bool = field(default=False, init=False)
    damage: int = field(default=0, init=False)
    blocked: bool = field(default=True, init=False)

    @property
    def success(self) -> bool:
        return False

    def __str__(self) -> str:
        return f"{self.weapon}: blocked ({self.reason})"


@dataclass
class Launched:
    """A missile left the rack and is tracking its target."""
    range_bonus: int = 0
    ammo_remaining: int = 0
    weapon: str = ""
    missile_type: str = "standard"
    launched: bool = field(default=True, init=False)
    tracking: bool = field(default=True, init=False)
    hit: bool = field(default=False, init=False)
    damage: int = field(default=0, init=False)
    blocked: bool = field(default=False, init=False)

    def __str__(self) -> str:
        return f"{self.weapon}: launched (+{self.range_bonus} at impact)"


AttackResult = Union[Miss, Hit, Blocked, Launched]


# =============================================================================
# STRATEGIES
# =============================================================================

class WeaponStrategy:
    """
    Shared roll-and-compare behavior for all weapon classes.

    Concrete strategies implement resolve(). The dice roller is injected
    so that every battle draws from its own generator.
    """

    name = "Base"

    def __init__(self, dice: Optional[DiceRoller] = None):
        self.dice = dice or DiceRoller()

    def resolve(self, context):
        """
        Resolve an action with this weapon.

        Raises:
            NotImplementedError: Always; concrete strategies override this.
        """
        raise NotImplementedError(
            f"{type(self).__name__}.resolve() must be implemented by a concrete weapon strategy"
        )

    def can_fire_at_range(self, weapon: Optional[Weapon], range_band: Union[str, RangeBand, None]) -> bool:
        """
        Check a weapon's range restriction.

        Args:
            weapon: Weapon definition (None has no restriction).
            range_band: Current range.

        Returns:
            True if the weapon has no restriction or the range is allowed.
        """
        if weapon is None or not weapon.range_restriction:
            return True
        return normalize_range(range_band) in weapon.range_restriction

    def get_range_dm(self, range_band: Union[str, RangeBand, None]) -> int:
        return get_range_dm(range_band)

    def roll_attack(self, context: AttackContext) -> AttackRoll:
        """
        Roll 2d6 + gunner skill + range DM - dodge DM against 8.

        Args:
            context: Attack context.

        Returns:
            AttackRoll with the dice, total, hit flag and effect.
        """
        roll = self.dice.roll2d6()
        attack_roll = score_attack(roll, context.gunner_skill, context.range, context.dodge_dm)
        logger.debug(
            "%s attack: %s + %s = %d (%s)",
            self.name, roll.total, attack_roll.modifiers, attack_roll.total,
            "hit" if attack_roll.hit else "miss",
        )
        return attack_roll

    def roll_damage(
        self,
        damage_formula: Optional[str],
        effect: int = 0,
        armor: int = 0,
        damage_multiple: int = 1,
    ) -> DamageResult:
        """
        Roll damage from an "NdS" formula against armor.

        The multiplier applies after armor, so multi-mount weapons still
        lose armor per point of raw damage. An unparseable formula yields
        zero damage instead of an error.

        Args:
            damage_formula: Formula such as '3d6'.
            effect: Attack effect added to the dice.
            armor: Armor subtracted from the raw damage.
            damage_multiple: Post-armor multiplier.

        Returns:
            DamageResult with the final damage and breakdown.
        """
        parsed = parse_damage_formula(damage_formula)
        if parsed is None:
            return DamageResult(
                damage=0,
                effect=effect,
                armor=armor,
                damage_multiple=damage_multiple,
                breakdown=f"Invalid formula: {damage_formula!r}",
            )

        count, sides = parsed
        roll = self.dice.roll(count, sides)
        raw_damage = roll.total + effect
        after_armor = max(0, raw_damage - armor)
        multiple = damage_multiple or 1
        damage = after_armor * multiple

        breakdown = f"{roll.total} + {effect} (effect) - {armor} (armor)"
        if multiple > 1:
            breakdown += f" x{multiple}"
        breakdown += f" = {damage}"

        return DamageResult(
            damage=damage,
            roll=roll,
            raw_damage=raw_damage,
            effect=effect,
            armor=armor,
            damage_multiple=multiple,
            breakdown=breakdown,
        )

    def create_miss_result(self, attack_roll: Optional[AttackRoll]) -> Miss:
        return Miss(attack_roll=attack_roll, weapon=self.name)

    def create_hit_result(self, attack_roll: AttackRoll, damage_result: DamageResult) -> Hit:
        return Hit(
            damage=damage_result.damage,
            attack_roll=attack_roll,
            damage_result=damage_result,
            weapon=self.name,
        )

    def create_range_blocked_result(
        self,
        range_band: Union[str, RangeBand, None],
        allowed_ranges: Optional[tuple[str, ...]],
    ) -> Blocked:
        band = RangeBand.parse(range_band)
        shown = band.display_name if band else range_band
        return Blocked(
            reason=f"{self.name} cannot fire at {shown} range",
            weapon=self.name,
            allowed_ranges=allowed_ranges,
        )


class LaserStrategy(WeaponStrategy):
    """Direct-fire energy weapon: attack roll, then damage against armor."""

    name = "Laser"

    def resolve(self, context: AttackContext) -> AttackResult:
        """
        Resolve a laser attack.

        A weapon fired outside its range restriction is blocked before any
        dice are rolled.

        Args:
            context: Attack context.

        Returns:
            Blocked, Miss or Hit.
        """
        weapon = context.weapon
        if not self.can_fire_at_range(weapon, context.range):
            return self.create_range_blocked_result(context.range, weapon.range_restriction)

        attack_roll = self.roll_attack(context)
        if not attack_roll.hit:
            return self.create_miss_result(attack_roll)

        armor = context.armor_bonus
        if context.defender is not None:
            armor += context.defender.armor

        damage_result = self.roll_damage(
            weapon.damage if weapon else DEFAULT_LASER_DAMAGE,
            attack_roll.effect,
            armor,
            weapon.damage_multiple if weapon else 1,
        )
        return self.create_hit_result(attack_roll, damage_result)


class PulseLaserStrategy(LaserStrategy):
    name = "Pulse Laser"


class BeamLaserStrategy(LaserStrategy):
    name = "Beam Laser"
