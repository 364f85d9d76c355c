"""
Weapon dispatcher for the ship combat engine.

Normalizes free-text weapon identifiers and routes every attack or
defensive action to its strategy. Other components only talk to the
WeaponDispatcher, so adding a weapon class means adding one entry to
WEAPON_STRATEGIES (and any aliases) and nothing else.

A dispatcher owns its dice. Create one per battle.
"""

from __future__ import annotations

import re
from typing import Optional, Union

from .combat import (
    AttackContext,
    AttackResult,
    BeamLaserStrategy,
    Blocked,
    DefenseContext,
    ImpactContext,
    LaserStrategy,
    Launched,
    PulseLaserStrategy,
    WeaponStrategy,
)
from .dice import DiceRoller
from .missiles import ImpactResult, MissileStrategy
from .models import RangeBand, Weapon
from .pointdefense import (
    ECMResult,
    ElectronicWarfareStrategy,
    PointDefenseResult,
    PointDefenseStrategy,
    SandcasterResult,
    SandcasterStrategy,
)


DEFAULT_WEAPON_TYPE = "laser"

# Canonical weapon type -> strategy
WEAPON_STRATEGIES: dict[str, type[WeaponStrategy]] = {
    "laser": LaserStrategy,
    "pulse_laser": PulseLaserStrategy,
    "beam_laser": BeamLaserStrategy,
    "missile": MissileStrategy,
    "sandcaster": SandcasterStrategy,
    "point_defense": PointDefenseStrategy,
    "ecm": ElectronicWarfareStrategy,
}

TYPE_ALIASES: dict[str, str] = {
    "pulselaser": "pulse_laser",
    "beamlaser": "beam_laser",
    "missiles": "missile",
    "missile_rack": "missile",
    "sandcasters": "sandcaster",
    "sand": "sandcaster",
    "pd": "point_defense",
    "pointdefense": "point_defense",
    "point_defence": "point_defense",
    "electronic_warfare": "ecm",
    "jammer": "ecm",
}

DIRECT_FIRE_EXCLUDED = frozenset({"missile", "sandcaster", "point_defense", "ecm"})


def normalize_weapon_type(weapon_type: Optional[str]) -> str:
    """
    Convert a free-text weapon type to its canonical snake_case id.

    Examples:
        'Pulse Laser' -> 'pulse_laser'
        'beam-laser'  -> 'beam_laser'
        'MISSILES'    -> 'missile'
        'pd'          -> 'point_defense'

    Unknown types are returned normalized but otherwise unchanged.
    """
    if not weapon_type:
        return DEFAULT_WEAPON_TYPE
    lower = re.sub(r"[-\s]+", "_", weapon_type.strip().lower())
    return TYPE_ALIASES.get(lower, lower)


class WeaponDispatcher:
    """
    Routes weapon actions to the matching strategy.

    Args:
        dice: Dice roller shared by this dispatcher's strategies.
        seed: Seed for a fresh dice roller (ignored when dice is given).
    """

    def __init__(self, dice: Optional[DiceRoller] = None, seed: Optional[int] = None):
        self.dice = dice or DiceRoller(seed=seed)
        self.strategies: dict[str, WeaponStrategy] = {
            weapon_type: strategy_cls(self.dice)
            for weapon_type, strategy_cls in WEAPON_STRATEGIES.items()
        }

    def normalize_type(self, weapon_type: Optional[str]) -> str:
        return normalize_weapon_type(weapon_type)

    def get_strategy(self, weapon_type: Optional[str]) -> WeaponStrategy:
        """Strategy for a weapon type, falling back to the generic laser."""
        return self.strategies.get(
            self.normalize_type(weapon_type),
            self.strategies[DEFAULT_WEAPON_TYPE],
        )

    def is_direct_fire(self, weapon: Weapon) -> bool:
        """True for weapons resolved with attack(): lasers and anything unrecognized."""
        return self.normalize_type(weapon.type) not in DIRECT_FIRE_EXCLUDED

    @property
    def available_types(self) -> list[str]:
        return list(self.strategies)

    def attack(self, context: AttackContext) -> AttackResult:
        """Resolve an attack with the strategy for context.weapon."""
        weapon_type = context.weapon.type if context.weapon else None
        return self.get_strategy(weapon_type).resolve(context)

    def launch_missile(self, context: AttackContext) -> Union[Launched, Blocked]:
        return self.strategies["missile"].resolve(context)

    def resolve_missile_impact(self, context: ImpactContext) -> Union[ImpactResult, Blocked]:
        return self.strategies["missile"].resolve_impact(context)

    def use_sandcaster(self, context: DefenseContext) -> Union[SandcasterResult, Blocked]:
        """
        Fire a sandcaster.

        Does not check range; call can_use_sandcaster_at_range() first.
        """
        return self.strategies["sandcaster"].resolve(context)

    def use_point_defense(self, context: DefenseContext) -> Union[PointDefenseResult, Blocked]:
        return self.strategies["point_defense"].resolve(context)

    def use_ecm(self, context: DefenseContext) -> Union[ECMResult, Blocked]:
        return self.strategies["ecm"].resolve(context)

    def can_fire_at_range(self, weapon: Optional[Weapon], range_band: Union[str, RangeBand, None]) -> bool:
        """Side-effect free range restriction check for a weapon."""
        weapon_type = weapon.type if weapon else None
        return self.get_strategy(weapon_type).can_fire_at_range(weapon, range_band)

    def can_use_sandcaster_at_range(self, range_band: Union[str, RangeBand, None]) -> bool:
        return self.strategies["sandcaster"].can_use_at_range(range_band)
