"""
Core data model for the ship combat engine.

Combatants, weapons, fleets and missiles. These are plain mutable
dataclasses owned by the battle that created them; the weapon strategies
and the battle loop mutate them in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional, Union


class RangeBand(Enum):
    """Discrete distance categories between ships."""
    ADJACENT = "adjacent"
    CLOSE = "close"
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"
    VERY_LONG = "very_long"
    DISTANT = "distant"

    @classmethod
    def parse(cls, value: Union[str, RangeBand, None]) -> Optional[RangeBand]:
        """
        Convert a range name into a RangeBand.

        Accepts display names ("Very Long"), snake_case ("very_long"),
        hyphenated names and the short form "vlong".

        Args:
            value: Range name or RangeBand.

        Returns:
            The matching RangeBand, or None if the name is not a range band.
        """
        if isinstance(value, RangeBand):
            return value
        if not value:
            return None
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        key = RANGE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            return None

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


RANGE_ALIASES: dict[str, str] = {
    "vlong": "very_long",
    "verylong": "very_long",
}


def normalize_range(value: Union[str, RangeBand, None]) -> str:
    """Canonical lowercase key for a range, falling back to the raw text."""
    band = RangeBand.parse(value)
    if band is not None:
        return band.value
    return (value or "").strip().lower()


class MissileStatus(Enum):
    """Lifecycle status of a launched missile."""
    TRACKING = "tracking"
    DESTROYED = "destroyed"
    IMPACTED = "impacted"
    JAMMED = "jammed"


# Missile variants: smart missiles roll to hit and keep attacking after a
# miss, nuclear missiles add a radiation crew hit on impact.
MISSILE_TYPES: dict[str, dict[str, bool]] = {
    "standard": {"smart": False, "nuclear": False},
    "smart": {"smart": True, "nuclear": False},
    "nuclear": {"smart": False, "nuclear": True},
    "nuclear_smart": {"smart": True, "nuclear": True},
}


def normalize_missile_type(value: Optional[str]) -> str:
    """Canonical missile type, falling back to 'standard' for unknown names."""
    key = (value or "").strip().lower().replace("-", "_").replace(" ", "_")
    return key if key in MISSILE_TYPES else "standard"


class MissileStateError(ValueError):
    """Raised when a missile is moved out of a terminal status."""


@dataclass
class Weapon:
    """
    Immutable weapon definition.

    Attributes:
        type: Weapon type identifier (free text, normalized by the dispatcher).
        damage: Damage formula such as '2d6'.
        name: Display name.
        range_restriction: Range bands the weapon may fire at (None = any).
        damage_multiple: Multiplier applied to post-armor damage (barbettes).
        turret_size: 1 single, 2 double, 3 triple turret.
        missile_type: Missile variant fired by a missile rack.
    """
    type: str
    damage: str = "2d6"
    name: str = ""
    range_restriction: Optional[tuple[str, ...]] = None
    damage_multiple: int = 1
    turret_size: int = 1
    missile_type: str = "standard"

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.type
        if self.range_restriction is not None:
            self.range_restriction = tuple(
                normalize_range(r) for r in self.range_restriction
            )
        self.missile_type = normalize_missile_type(self.missile_type)

    @classmethod
    def from_json(cls, weapon_type: str, data: dict) -> Weapon:
        """
        Create a Weapon from a fleet catalog entry.

        Args:
            weapon_type: Catalog key, used as the type when the entry has none.
            data: Dictionary with weapon statistics.

        Returns:
            A configured Weapon instance.
        """
        restriction = data.get("range_restriction")
        return cls(
            type=data.get("type", weapon_type),
            damage=data.get("damage", "2d6"),
            name=data.get("name", weapon_type),
            range_restriction=tuple(restriction) if restriction else None,
            damage_multiple=data.get("damage_multiple", 1),
            turret_size=data.get("turret_size", 1),
            missile_type=data.get("missile_type", "standard"),
        )


@dataclass
class Ammo:
    """Consumable ammunition carried by a ship."""
    missiles: int = 0
    sandcaster: int = 0


@dataclass
class Combatant:
    """
    A ship taking part in a battle.

    Attributes:
        ship_id: Unique identifier within the battle.
        hull: Current hull points (never below 0).
        max_hull: Undamaged hull points.
        power: Current power, or None when the ship does not track power.
            Weapons never drain power; it is set from the configuration.
        max_power: Full power output, or None when unspecified.
        armor: Armor rating subtracted from each hit.
        thrust: Manoeuvre thrust; None counts as 1 for fleet strength.
        turrets: Mounted weapons.
        ammo: Missile and sandcaster ammunition.
        flee_threshold: Hull fraction below which the captain flees.
        gunner_skill: Gunner skill applied to attacks and defenses.
        dodge_dm: Penalty imposed on attackers by evasive piloting.
        sensor_skill: Sensor operator skill for ECM; None when the ship
            carries no ECM suite.
        nuclear_damper: Negates radiation crew hits from nuclear missiles.
        crew_damage: Radiation crew damage taken so far.
        destroyed: Set when hull (or declared power) reaches 0.
        fled: Captain broke off.
        surrendered: Captain struck colors.
    """
    ship_id: str
    hull: int
    max_hull: int
    name: str = ""
    power: Optional[int] = None
    max_power: Optional[int] = None
    armor: int = 0
    thrust: Optional[float] = None
    turrets: list[Weapon] = field(default_factory=list)
    ammo: Ammo = field(default_factory=Ammo)
    flee_threshold: Optional[float] = None
    gunner_skill: int = 0
    dodge_dm: int = 0
    sensor_skill: Optional[int] = None
    nuclear_damper: bool = False
    crew_damage: int = 0
    destroyed: bool = False
    fled: bool = False
    surrendered: bool = False

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.ship_id
        self.hull = max(0, self.hull)
        if self.power is not None:
            self.power = max(0, self.power)

    @property
    def is_active(self) -> bool:
        """True while the ship can still act and be targeted."""
        return not (self.destroyed or self.fled or self.surrendered)

    @property
    def hull_percent(self) -> float:
        if self.max_hull <= 0:
            return 0.0
        return self.hull / self.max_hull

    @property
    def power_percent(self) -> float:
        if self.power is None or not self.max_power or self.max_power <= 0:
            return 1.0
        return self.power / self.max_power

    def apply_damage(self, damage: int) -> int:
        """
        Remove hull points, clamped at zero.

        Returns:
            Hull points actually lost.
        """
        lost = min(self.hull, max(0, damage))
        self.hull -= lost
        return lost

    def check_destroyed(self) -> bool:
        """
        Mark the ship destroyed if hull or declared power has run out.

        Returns:
            True if the ship became destroyed by this check.
        """
        if self.destroyed:
            return False
        out_of_power = self.power is not None and bool(self.max_power) and self.power <= 0
        if self.hull <= 0 or out_of_power:
            self.destroyed = True
            return True
        return False


@dataclass
class Fleet:
    """Logical grouping of combatants fighting on the same side."""
    ships: list[Combatant] = field(default_factory=list)
    name: str = ""

    def __iter__(self) -> Iterator[Combatant]:
        return iter(self.ships)

    def __len__(self) -> int:
        return len(self.ships)

    @property
    def active_ships(self) -> list[Combatant]:
        return [s for s in self.ships if s.is_active]

    def get_ship(self, ship_id: str) -> Optional[Combatant]:
        for ship in self.ships:
            if ship.ship_id == ship_id:
                return ship
        return None


@dataclass
class Missile:
    """
    A missile in flight.

    Status moves one way: TRACKING -> DESTROYED (point defense),
    TRACKING -> JAMMED (ECM) or TRACKING -> IMPACTED. All end states are
    terminal.

    Attributes:
        id: Unique missile id within the battle.
        owner_id: Launching ship.
        target_id: Ship the missile is homing on.
        range_bonus: Damage bonus stored at launch, applied at impact.
        status: Current lifecycle status.
        launch_round: Round the missile was launched.
        arrival_round: Round the missile reaches its target. A smart
            missile that misses comes round again the next round.
        pd_attempts: Point defense attempts made against it.
        missile_type: 'standard', 'smart', 'nuclear' or 'nuclear_smart'.
        ecm_round: Last round ECM was tried against it.
    """
    id: str
    owner_id: str
    target_id: str
    range_bonus: int = 0
    status: MissileStatus = MissileStatus.TRACKING
    launch_round: int = 0
    arrival_round: int = 0
    pd_attempts: int = 0
    missile_type: str = "standard"
    ecm_round: Optional[int] = None

    def __post_init__(self) -> None:
        self.missile_type = normalize_missile_type(self.missile_type)

    @property
    def is_tracking(self) -> bool:
        return self.status == MissileStatus.TRACKING

    @property
    def is_smart(self) -> bool:
        return MISSILE_TYPES[self.missile_type]["smart"]

    @property
    def is_nuclear(self) -> bool:
        return MISSILE_TYPES[self.missile_type]["nuclear"]

    def has_arrived(self, round_number: int) -> bool:
        return round_number >= self.arrival_round

    def destroy(self) -> None:
        self._transition(MissileStatus.DESTROYED)

    def impact(self) -> None:
        self._transition(MissileStatus.IMPACTED)

    def jam(self) -> None:
        self._transition(MissileStatus.JAMMED)

    def _transition(self, status: MissileStatus) -> None:
        if not self.is_tracking:
            raise MissileStateError(
                f"Missile {self.id} is {self.status.value} and cannot become {status.value}"
            )
        self.status = status
