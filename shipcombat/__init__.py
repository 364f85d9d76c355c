"""Ship combat resolution engine package."""

from .dice import DiceRoll, DiceRoller, ScriptedDice, parse_damage_formula

from .models import (
    Ammo,
    Combatant,
    Fleet,
    MISSILE_TYPES,
    Missile,
    MissileStateError,
    MissileStatus,
    RangeBand,
    Weapon,
)

from .combat import (
    # Contexts
    AttackContext,
    AttackOptions,
    DefenseContext,
    ImpactContext,
    # Results
    AttackResult,
    AttackRoll,
    Blocked,
    DamageResult,
    Hit,
    Launched,
    Miss,
    # Strategies
    BeamLaserStrategy,
    LaserStrategy,
    PulseLaserStrategy,
    WeaponStrategy,
    # Utilities
    get_range_dm,
    score_attack,
)

from .missiles import (
    ImpactResult,
    MissileMiss,
    MissileLifecycle,
    MissileStrategy,
    MissileUpdate,
    RadiationResult,
    can_launch_missile_at_range,
    get_flight_time,
    get_missile_range_bonus,
)

from .pointdefense import (
    ECMResult,
    ElectronicWarfareStrategy,
    PointDefenseResult,
    PointDefenseStrategy,
    SandcasterResult,
    SandcasterStrategy,
)

from .dispatcher import WeaponDispatcher, normalize_weapon_type

from .captain import (
    CaptainOrder,
    TacticalPicture,
    calculate_fleet_strength,
    captain_decision,
)

from .victory import BattleOutcome, VictoryEvaluator

from .simulation import (
    BattleEvent,
    BattleEventType,
    BattleSimulation,
    BattleState,
    BattleSummary,
)

from .fleet_config import (
    BattleConfig,
    FleetDefinition,
    ShipConfig,
    build_fleet,
    create_combatant_from_fleet_data,
    load_fleet_data,
)

from .config import EngineSettings

from .experiment import ExperimentResult, run_experiment

__all__ = [
    # Dice
    "DiceRoll",
    "DiceRoller",
    "ScriptedDice",
    "parse_damage_formula",
    # Models
    "Ammo",
    "Combatant",
    "Fleet",
    "MISSILE_TYPES",
    "Missile",
    "MissileStateError",
    "MissileStatus",
    "RangeBand",
    "Weapon",
    # Combat - Contexts
    "AttackContext",
    "AttackOptions",
    "DefenseContext",
    "ImpactContext",
    # Combat - Results
    "AttackResult",
    "AttackRoll",
    "Blocked",
    "DamageResult",
    "Hit",
    "Launched",
    "Miss",
    # Combat - Strategies
    "BeamLaserStrategy",
    "LaserStrategy",
    "PulseLaserStrategy",
    "WeaponStrategy",
    "get_range_dm",
    "score_attack",
    # Missiles
    "ImpactResult",
    "MissileMiss",
    "MissileLifecycle",
    "MissileStrategy",
    "MissileUpdate",
    "RadiationResult",
    "can_launch_missile_at_range",
    "get_flight_time",
    "get_missile_range_bonus",
    # Countermeasures
    "ECMResult",
    "ElectronicWarfareStrategy",
    "PointDefenseResult",
    "PointDefenseStrategy",
    "SandcasterResult",
    "SandcasterStrategy",
    # Dispatcher
    "WeaponDispatcher",
    "normalize_weapon_type",
    # Captain AI
    "CaptainOrder",
    "TacticalPicture",
    "calculate_fleet_strength",
    "captain_decision",
    # Battle loop
    "BattleOutcome",
    "VictoryEvaluator",
    "BattleEvent",
    "BattleEventType",
    "BattleSimulation",
    "BattleState",
    "BattleSummary",
    # Configuration
    "BattleConfig",
    "FleetDefinition",
    "ShipConfig",
    "build_fleet",
    "create_combatant_from_fleet_data",
    "load_fleet_data",
    "EngineSettings",
    # Experiments
    "ExperimentResult",
    "run_experiment",
]
