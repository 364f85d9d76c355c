"""
Unit tests for battle configuration and the fleet catalog.

Run with: python -m pytest tests/test_fleet_config.py -v
"""

import json
from pathlib import Path

import pytest

from shipcombat.fleet_config import (
    DEFAULT_FLEET_DATA_PATH,
    BattleConfig,
    FleetDefinition,
    ShipConfig,
    build_fleet,
    create_combatant_from_fleet_data,
    create_weapon_from_fleet_data,
    load_fleet_data,
)


# Fixtures

@pytest.fixture
def sample_fleet_data() -> dict:
    """Minimal fleet catalog for testing."""
    return {
        "weapon_types": {
            "pulse_laser": {
                "name": "Pulse Laser",
                "type": "pulse_laser",
                "damage": "2d6",
                "range_restriction": ["adjacent", "close", "short", "medium", "long"],
            },
            "missile_rack": {"name": "Missile Rack", "type": "missile_rack", "damage": "4d6"},
        },
        "ships": {
            "gunboat": {
                "name": "Gunboat",
                "hull": 40,
                "power": 30,
                "armor": 3,
                "thrust": 5,
                "turrets": ["pulse_laser", "missile_rack"],
                "ammo": {"missiles": 6},
                "flee_threshold": 0.25,
                "gunner_skill": 1,
                "dodge_dm": 1,
            },
            "drone": {"hull": 4},
        },
    }


@pytest.fixture
def battle_dict() -> dict:
    return {
        "battle_name": "Skirmish",
        "start_range": "Short",
        "max_rounds": 6,
        "seed": 7,
        "player_fleet": {
            "name": "Home Guard",
            "ships": [
                {"ship_type": "gunboat", "name": "Lance"},
                "gunboat",
            ],
        },
        "enemy_fleet": {
            "ships": [
                {"ship_type": "drone", "ship_id": "drone_alpha", "hull": 2},
            ],
        },
    }


# Catalog Tests

class TestFleetCatalog:
    """Tests for building ships and weapons from the catalog."""

    def test_bundled_catalog_loads(self):
        data = load_fleet_data()
        assert DEFAULT_FLEET_DATA_PATH.exists()
        assert {"pulse_laser", "beam_laser", "particle_barbette", "missile_rack",
                "sandcaster", "point_defense"} <= set(data["weapon_types"])
        assert "pirate_corsair" in data["ships"]

    def test_bundled_barbette_multiplies_damage(self):
        barbette = create_weapon_from_fleet_data(load_fleet_data(), "particle_barbette")
        assert barbette.damage == "4d6"
        assert barbette.damage_multiple == 3

    def test_bundled_missile_variants_and_turret_sizes(self):
        data = load_fleet_data()
        assert create_weapon_from_fleet_data(data, "smart_missile_rack").missile_type == "smart"
        assert create_weapon_from_fleet_data(data, "nuclear_missile_rack").missile_type == "nuclear"
        assert create_weapon_from_fleet_data(data, "double_point_defense").turret_size == 2
        assert create_weapon_from_fleet_data(data, "point_defense").turret_size == 1

    def test_bundled_defense_boat_countermeasures(self):
        ship = create_combatant_from_fleet_data(load_fleet_data(), "system_defense_boat", "sdb_1")
        assert ship.sensor_skill == 2
        assert ship.nuclear_damper is True

    def test_every_bundled_ship_builds(self):
        data = load_fleet_data()
        for ship_type in data["ships"]:
            ship = create_combatant_from_fleet_data(data, ship_type, f"{ship_type}_1")
            assert ship.hull == ship.max_hull > 0

    def test_create_weapon(self, sample_fleet_data):
        weapon = create_weapon_from_fleet_data(sample_fleet_data, "pulse_laser")
        assert weapon.name == "Pulse Laser"
        assert weapon.range_restriction[-1] == "long"

    def test_unknown_weapon(self, sample_fleet_data):
        with pytest.raises(KeyError):
            create_weapon_from_fleet_data(sample_fleet_data, "plasma_gun")

    def test_create_combatant(self, sample_fleet_data):
        ship = create_combatant_from_fleet_data(sample_fleet_data, "gunboat", "g1")

        assert ship.ship_id == "g1"
        assert ship.name == "Gunboat"
        assert ship.hull == ship.max_hull == 40
        assert ship.power == ship.max_power == 30
        assert ship.armor == 3
        assert ship.thrust == 5
        assert [w.type for w in ship.turrets] == ["pulse_laser", "missile_rack"]
        assert ship.ammo.missiles == 6
        assert ship.ammo.sandcaster == 0
        assert ship.flee_threshold == 0.25
        assert ship.gunner_skill == 1
        assert ship.dodge_dm == 1

    def test_minimal_template_defaults(self, sample_fleet_data):
        ship = create_combatant_from_fleet_data(sample_fleet_data, "drone", "d1")

        assert ship.name == "d1"
        assert ship.power is None
        assert ship.turrets == []
        assert ship.flee_threshold is None
        assert ship.sensor_skill is None
        assert ship.nuclear_damper is False

    def test_overrides(self, sample_fleet_data):
        ship = create_combatant_from_fleet_data(
            sample_fleet_data, "gunboat", "g1", name="Lance", overrides={"hull": 10, "gunner_skill": 3}
        )
        assert ship.name == "Lance"
        assert ship.hull == 10
        assert ship.max_hull == 10
        assert ship.gunner_skill == 3

    def test_damaged_ship_override(self, sample_fleet_data):
        ship = create_combatant_from_fleet_data(
            sample_fleet_data, "gunboat", "g1", overrides={"hull": 10, "max_hull": 40}
        )
        assert ship.hull_percent == 0.25

    def test_ships_are_independent(self, sample_fleet_data):
        a = create_combatant_from_fleet_data(sample_fleet_data, "gunboat", "a")
        b = create_combatant_from_fleet_data(sample_fleet_data, "gunboat", "b")
        a.ammo.missiles = 0
        assert b.ammo.missiles == 6

    def test_unknown_ship(self, sample_fleet_data):
        with pytest.raises(KeyError):
            create_combatant_from_fleet_data(sample_fleet_data, "dreadnought", "x")

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_fleet_data(tmp_path / "missing.json")


# Battle Config Tests

class TestBattleConfig:
    """Tests for BattleConfig parsing and validation."""

    def test_from_dict(self, battle_dict):
        config = BattleConfig.from_dict(battle_dict)

        assert config.battle_name == "Skirmish"
        assert config.start_range == "Short"
        assert config.max_rounds == 6
        assert config.seed == 7
        assert config.player_fleet.name == "Home Guard"
        assert config.enemy_fleet.name == "Enemy Fleet"

    def test_ship_ids_are_numbered_per_type(self, battle_dict):
        config = BattleConfig.from_dict(battle_dict)

        assert [s.ship_id for s in config.player_fleet.ships] == [
            "player_gunboat_1", "player_gunboat_2",
        ]
        assert config.player_fleet.ships[0].name == "Lance"
        assert config.player_fleet.ships[1].name is None

    def test_explicit_id_and_overrides(self, battle_dict):
        drone = BattleConfig.from_dict(battle_dict).enemy_fleet.ships[0]
        assert drone == ShipConfig(ship_id="drone_alpha", ship_type="drone", overrides={"hull": 2})

    def test_defaults(self):
        config = BattleConfig.from_dict({
            "player_fleet": {"ships": ["gunboat"]},
            "enemy_fleet": {"ships": ["drone"]},
        })
        assert config.battle_name == "Fleet Battle"
        assert config.start_range == "Medium"
        assert config.max_rounds == 10
        assert config.seed is None

    def test_empty_fleet_rejected(self, battle_dict):
        battle_dict["enemy_fleet"]["ships"] = []
        with pytest.raises(ValueError, match="Enemy fleet"):
            BattleConfig.from_dict(battle_dict)

    def test_missing_fleet_rejected(self):
        with pytest.raises(ValueError, match="Player fleet"):
            BattleConfig.from_dict({"enemy_fleet": {"ships": ["drone"]}})

    def test_non_positive_rounds_rejected(self, battle_dict):
        battle_dict["max_rounds"] = 0
        with pytest.raises(ValueError, match="max_rounds"):
            BattleConfig.from_dict(battle_dict)

    def test_unknown_range_rejected(self, battle_dict):
        battle_dict["start_range"] = "Orbit"
        with pytest.raises(ValueError, match="Orbit"):
            BattleConfig.from_dict(battle_dict)

    def test_from_json(self, battle_dict, tmp_path):
        path = tmp_path / "battle.json"
        path.write_text(json.dumps(battle_dict))

        config = BattleConfig.from_json(str(path))

        assert config.battle_name == "Skirmish"
        assert len(config.get_all_ships()) == 3

    def test_from_json_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            BattleConfig.from_json(str(tmp_path / "nope.json"))

    def test_bundled_example_config(self):
        path = Path(__file__).parent.parent / "configs" / "corsair_raid.json"
        config = BattleConfig.from_json(str(path))
        fleet_data = load_fleet_data()

        enemies = build_fleet(fleet_data, config.enemy_fleet)
        assert len(enemies) == 3
        assert enemies.ships[0].name == "Blackjack"


class TestBuildFleet:
    def test_build_fleet(self, sample_fleet_data):
        definition = FleetDefinition(
            ships=[ShipConfig("a", "gunboat"), ShipConfig("b", "drone", name="Bee")],
            name="Mixed",
        )
        fleet = build_fleet(sample_fleet_data, definition)

        assert fleet.name == "Mixed"
        assert [s.ship_id for s in fleet] == ["a", "b"]
        assert fleet.get_ship("b").name == "Bee"
