"""
Defensive countermeasures for the ship combat engine.

- PointDefenseStrategy: turret fire against a single arriving missile.
- ElectronicWarfareStrategy: ECM jamming of a single arriving missile.
- SandcasterStrategy: a sand cloud that adds armor against one attack.

All three roll 2d6 plus crew skill against 8. None raises on bad input;
missing ammo or an invalid missile target comes back as Blocked.

Point defense only gets a shot on the round a missile arrives; earlier
attempts are blocked with 'missile_not_arrived'.

Sandcasters only work at Adjacent and Close range, but resolve() does not
check this. Callers must consult can_use_at_range() first; the battle loop
does so before every sandcaster use.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Union

from .combat import TARGET_NUMBER, Blocked, DefenseContext, WeaponStrategy
from .dice import DiceRoll
from .models import RangeBand


SANDCASTER_RANGES = frozenset({RangeBand.ADJACENT, RangeBand.CLOSE})

# Double turret +1, triple turret +2
TURRET_SIZE_BONUS: dict[int, int] = {1: 0, 2: 1, 3: 2}


@dataclass
class PointDefenseResult:
    """
    Result of a point defense attempt that was actually rolled.

    Attributes:
        destroyed: Whether the missile was shot down.
        roll: The 2d6 dice.
        total: Roll plus modifiers.
        modifiers: Gunner skill, turret bonus and cumulative penalty.
        missile_id: Missile engaged.
    """
    destroyed: bool
    roll: DiceRoll
    total: int
    modifiers: dict[str, int] = field(default_factory=dict)
    missile_id: Optional[str] = None
    success: bool = field(default=True, init=False)
    blocked: bool = field(default=False, init=False)

    def __str__(self) -> str:
        outcome = "destroyed" if self.destroyed else "missed"
        return f"Point defense {outcome} {self.missile_id} ({self.total} vs {TARGET_NUMBER})"


@dataclass
class SandcasterResult:
    """
    Result of firing a sandcaster.

    Attributes:
        success: Whether the sand check met the target number.
        armor_bonus: Extra armor against one attack of attack_type (0 on failure).
        roll: The 2d6 check.
        total: Check total.
        attack_type: Attack the screen protects against.
        bonus_roll: The 1d6 armor roll on success.
        ammo_used: Canisters spent (always 1 once rolled).
    """
    success: bool
    armor_bonus: int
    roll: DiceRoll
    total: int
    attack_type: str = "laser"
    bonus_roll: Optional[DiceRoll] = None
    ammo_used: int = 1
    blocked: bool = field(default=False, init=False)

    def __str__(self) -> str:
        if not self.success:
            return f"Sandcaster failed ({self.total} vs {TARGET_NUMBER})"
        return f"Sandcaster screen +{self.armor_bonus} armor vs {self.attack_type}"


@dataclass
class ECMResult:
    """
    Result of an ECM attempt against a missile.

    Attributes:
        jammed: Whether the missile was jammed.
        roll: The 2d6 sensor check.
        total: Check total.
        smart_resist: The smart missile's resistance roll, if one was made.
        missile_id: Missile targeted.
    """
    jammed: bool
    roll: DiceRoll
    total: int
    smart_resist: Optional[DiceRoll] = None
    missile_id: Optional[str] = None
    success: bool = field(default=True, init=False)
    blocked: bool = field(default=False, init=False)

    def __str__(self) -> str:
        if self.jammed:
            return f"ECM jammed {self.missile_id} ({self.total} vs {TARGET_NUMBER})"
        if self.smart_resist is not None:
            return f"ECM: smart missile {self.missile_id} resisted"
        return f"ECM failed against {self.missile_id} ({self.total} vs {TARGET_NUMBER})"


class PointDefenseStrategy(WeaponStrategy):
    """Point defense fire against a tracking missile. Uses no ammunition."""

    name = "Point Defense"

    def turret_bonus(self, turret_size: int) -> int:
        if turret_size >= 3:
            return TURRET_SIZE_BONUS[3]
        return TURRET_SIZE_BONUS.get(turret_size, 0)

    def resolve(self, context: DefenseContext) -> Union[PointDefenseResult, Blocked]:
        """
        Engage one missile with point defense.

        Rolls 2d6 + gunner skill + turret bonus - prior attempts against 8.
        Success moves the missile to DESTROYED.

        Args:
            context: Defense context naming the missile.

        Returns:
            PointDefenseResult, or Blocked with reason 'no_missile',
            'missile_not_active' or 'missile_not_arrived'.
        """
        missile = context.missile
        if missile is None:
            return Blocked(reason="no_missile", weapon=self.name)
        if not missile.is_tracking:
            return Blocked(reason="missile_not_active", weapon=self.name)
        if context.round_number is not None and not missile.has_arrived(context.round_number):
            return Blocked(reason="missile_not_arrived", weapon=self.name)

        turret_bonus = self.turret_bonus(context.turret_size)
        cumulative_penalty = -context.prior_attempts

        roll = self.dice.roll2d6()
        total = roll.total + context.gunner_skill + turret_bonus + cumulative_penalty
        destroyed = total >= TARGET_NUMBER

        missile.pd_attempts += 1
        if destroyed:
            missile.destroy()

        return PointDefenseResult(
            destroyed=destroyed,
            roll=roll,
            total=total,
            modifiers={
                "gunner_skill": context.gunner_skill,
                "turret_bonus": turret_bonus,
                "cumulative_penalty": cumulative_penalty,
            },
            missile_id=missile.id,
        )


class ElectronicWarfareStrategy(WeaponStrategy):
    """ECM jamming against a tracking missile. One attempt per missile per round."""

    name = "ECM"

    def resolve(self, context: DefenseContext) -> Union[ECMResult, Blocked]:
        """
        Try to jam one missile.

        Rolls 2d6 + sensor skill against 8. A smart missile that is jammed
        gets a 2d6 resistance roll and shrugs the jamming off on 8+.

        Args:
            context: Defense context naming the missile and round.

        Returns:
            ECMResult, or Blocked with reason 'no_missile',
            'ecm_already_attempted' or 'missile_not_active'.
        """
        missile = context.missile
        if missile is None:
            return Blocked(reason="no_missile", weapon=self.name)

        round_number = context.round_number or 0
        # A missile jammed this round still reports the attempt
        if missile.ecm_round == round_number:
            return Blocked(reason="ecm_already_attempted", weapon=self.name)
        if not missile.is_tracking:
            return Blocked(reason="missile_not_active", weapon=self.name)

        missile.ecm_round = round_number
        roll = self.dice.roll2d6()
        total = roll.total + context.sensor_skill
        jammed = total >= TARGET_NUMBER

        smart_resist = None
        if jammed and missile.is_smart:
            smart_resist = self.dice.roll2d6()
            if smart_resist.total >= TARGET_NUMBER:
                jammed = False

        if jammed:
            missile.jam()

        return ECMResult(
            jammed=jammed,
            roll=roll,
            total=total,
            smart_resist=smart_resist,
            missile_id=missile.id,
        )


class SandcasterStrategy(WeaponStrategy):
    """Sand screen that adds armor against the next laser or missile attack."""

    name = "Sandcaster"

    def can_use_at_range(self, range_band: Union[str, RangeBand, None]) -> bool:
        return RangeBand.parse(range_band) in SANDCASTER_RANGES

    def resolve(self, context: DefenseContext) -> Union[SandcasterResult, Blocked]:
        """
        Fire a sandcaster canister.

        One canister is spent whether or not the check succeeds. On success
        the armor bonus is 1d6 + effect.

        Args:
            context: Defense context with the defender and attack type.

        Returns:
            SandcasterResult, or Blocked with reason 'no_ammo'.
        """
        defender = context.defender
        if defender is None or defender.ammo.sandcaster <= 0:
            return Blocked(reason="no_ammo", weapon=self.name)

        defender.ammo.sandcaster -= 1
        roll = self.dice.roll2d6()
        total = roll.total + context.gunner_skill
        success = total >= TARGET_NUMBER

        bonus_roll = None
        armor_bonus = 0
        if success:
            bonus_roll = self.dice.roll(1, 6)
            armor_bonus = bonus_roll.total + (total - TARGET_NUMBER)

        return SandcasterResult(
            success=success,
            armor_bonus=armor_bonus,
            roll=roll,
            total=total,
            attack_type=context.attack_type,
            bonus_roll=bonus_roll,
        )
