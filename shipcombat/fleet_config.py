"""
Fleet configuration for ship combat battles.

A battle configuration names the two fleets by ship type from the fleet
catalog (data/fleet_ships.json), plus the starting range, round limit and
optional dice seed. Ships are built from catalog templates with optional
per-ship overrides (name, hull, gunner skill, flee threshold, ...).
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import Ammo, Combatant, Fleet, RangeBand, Weapon


DEFAULT_FLEET_DATA_PATH = Path(__file__).parent.parent / "data" / "fleet_ships.json"

SHIP_STAT_FIELDS = (
    "hull", "max_hull", "power", "max_power", "armor", "thrust",
    "flee_threshold", "gunner_skill", "dodge_dm", "sensor_skill", "nuclear_damper",
)


@dataclass
class ShipConfig:
    """Configuration for one ship in a fleet roster."""
    ship_id: str
    ship_type: str
    name: Optional[str] = None
    overrides: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FleetDefinition:
    """Definition of a fleet (one side)."""
    ships: List[ShipConfig]
    name: str = ""


@dataclass
class BattleConfig:
    """Complete battle configuration with both fleets."""
    battle_name: str
    player_fleet: FleetDefinition
    enemy_fleet: FleetDefinition
    start_range: str = "Medium"
    max_rounds: int = 10
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        if self.max_rounds <= 0:
            raise ValueError(f"max_rounds must be positive, got {self.max_rounds}")
        if RangeBand.parse(self.start_range) is None:
            raise ValueError(f"Unknown start range: {self.start_range!r}")

    @classmethod
    def from_json(cls, path: str) -> 'BattleConfig':
        """Load configuration from JSON file."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Battle config not found: {path}")

        with open(config_path) as f:
            data = json.load(f)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BattleConfig':
        """Create configuration from dictionary."""
        player_fleet = _parse_fleet(data.get("player_fleet", {}), "player")
        enemy_fleet = _parse_fleet(data.get("enemy_fleet", {}), "enemy")

        if not player_fleet.ships:
            raise ValueError("Player fleet must have at least one ship")
        if not enemy_fleet.ships:
            raise ValueError("Enemy fleet must have at least one ship")

        return cls(
            battle_name=data.get("battle_name", "Fleet Battle"),
            player_fleet=player_fleet,
            enemy_fleet=enemy_fleet,
            start_range=data.get("start_range", "Medium"),
            max_rounds=data.get("max_rounds", 10),
            seed=data.get("seed"),
        )

    def get_all_ships(self) -> List[ShipConfig]:
        """Get all ships from both fleets."""
        return self.player_fleet.ships + self.enemy_fleet.ships


def _parse_fleet(data: Dict[str, Any], side: str) -> FleetDefinition:
    """Parse one fleet roster, numbering ships that have no explicit id."""
    ships = []
    counts: Dict[str, int] = {}
    for entry in data.get("ships", []):
        if isinstance(entry, str):
            entry = {"ship_type": entry}
        ship_type = entry["ship_type"]
        counts[ship_type] = counts.get(ship_type, 0) + 1
        ship_id = entry.get("ship_id", f"{side}_{ship_type}_{counts[ship_type]}")
        overrides = {k: entry[k] for k in SHIP_STAT_FIELDS if k in entry}
        ships.append(ShipConfig(
            ship_id=ship_id,
            ship_type=ship_type,
            name=entry.get("name"),
            overrides=overrides,
        ))
    return FleetDefinition(ships=ships, name=data.get("name", f"{side.title()} Fleet"))


def load_fleet_data(filepath=DEFAULT_FLEET_DATA_PATH) -> dict:
    """
    Load the fleet catalog from a JSON file.

    Args:
        filepath: Path to fleet_ships.json.

    Returns:
        Dictionary with 'weapon_types' and 'ships'.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
    """
    with open(filepath, "r") as f:
        return json.load(f)


def create_weapon_from_fleet_data(fleet_data: dict, weapon_type: str) -> Weapon:
    """
    Create a Weapon from the catalog.

    Raises:
        KeyError: If the weapon type is not in the catalog.
    """
    weapon_types = fleet_data.get("weapon_types", {})
    if weapon_type not in weapon_types:
        raise KeyError(f"Weapon type '{weapon_type}' not found in fleet data")
    return Weapon.from_json(weapon_type, weapon_types[weapon_type])


def create_combatant_from_fleet_data(
    fleet_data: dict,
    ship_type: str,
    ship_id: str,
    name: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> Combatant:
    """
    Create a fresh Combatant from a catalog ship template.

    Args:
        fleet_data: The loaded fleet catalog.
        ship_type: Ship template key (e.g. 'pirate_corsair').
        ship_id: Id for the new ship.
        name: Display name (defaults to the template name).
        overrides: Stat values replacing the template's.

    Returns:
        A new Combatant at full hull and power unless overridden.

    Raises:
        KeyError: If the ship type or one of its weapons is not in the catalog.
    """
    ships = fleet_data.get("ships", {})
    if ship_type not in ships:
        raise KeyError(f"Ship type '{ship_type}' not found in fleet data")

    template = dict(ships[ship_type])
    template.update(overrides or {})

    max_hull = template.get("max_hull", template["hull"])
    max_power = template.get("max_power", template.get("power"))
    ammo = template.get("ammo", {})

    return Combatant(
        ship_id=ship_id,
        name=name or template.get("name", ship_id),
        hull=template.get("hull", max_hull),
        max_hull=max_hull,
        power=template.get("power", max_power),
        max_power=max_power,
        armor=template.get("armor", 0),
        thrust=template.get("thrust"),
        turrets=[
            create_weapon_from_fleet_data(fleet_data, weapon_type)
            for weapon_type in template.get("turrets", [])
        ],
        ammo=Ammo(
            missiles=ammo.get("missiles", 0),
            sandcaster=ammo.get("sandcaster", 0),
        ),
        flee_threshold=template.get("flee_threshold"),
        gunner_skill=template.get("gunner_skill", 0),
        dodge_dm=template.get("dodge_dm", 0),
        sensor_skill=template.get("sensor_skill"),
        nuclear_damper=template.get("nuclear_damper", False),
    )


def build_fleet(fleet_data: dict, definition: FleetDefinition) -> Fleet:
    """Build a Fleet of fresh ships from a roster definition."""
    return Fleet(
        ships=[
            create_combatant_from_fleet_data(
                fleet_data, ship.ship_type, ship.ship_id, ship.name, ship.overrides
            )
            for ship in definition.ships
        ],
        name=definition.name,
    )
