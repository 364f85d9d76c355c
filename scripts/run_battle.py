#!/usr/bin/env python3
"""
Run a fleet battle, or an experiment of many battles, from a JSON config.

Usage:
    python scripts/run_battle.py configs/corsair_raid.json
    python scripts/run_battle.py configs/corsair_raid.json --seed 42 --log
    python scripts/run_battle.py configs/corsair_raid.json --runs 500 --seed 1
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add the repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from shipcombat.config import EngineSettings
from shipcombat.dice import DiceRoller
from shipcombat.experiment import run_experiment
from shipcombat.fleet_config import BattleConfig, load_fleet_data
from shipcombat.simulation import BattleSimulation


def main():
    parser = argparse.ArgumentParser(
        description="Run a ship combat battle",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/run_battle.py configs/corsair_raid.json --log
    python scripts/run_battle.py configs/corsair_raid.json --range Short --max-rounds 6
    python scripts/run_battle.py configs/corsair_raid.json --runs 1000 --json
        """,
    )

    parser.add_argument("config", help="Battle configuration JSON file")

    # Battle overrides
    parser.add_argument(
        "--range",
        dest="start_range",
        help="Starting range band (default: from config)",
    )
    parser.add_argument(
        "--max-rounds",
        type=int,
        help="Round limit (default: from config)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Dice seed (default: config, then SHIPCOMBAT_SEED)",
    )
    parser.add_argument(
        "--fleet-data",
        help="Fleet catalog JSON (default: SHIPCOMBAT_FLEET_DATA or data/fleet_ships.json)",
    )

    # Experiment mode
    parser.add_argument(
        "--runs",
        type=int,
        default=1,
        help="Number of battles; more than 1 runs an experiment (default: 1)",
    )

    # Output
    parser.add_argument(
        "--log",
        action="store_true",
        help="Print the battle event log",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    try:
        settings = EngineSettings.from_env()
        config = BattleConfig.from_json(args.config)
        if args.start_range:
            config.start_range = args.start_range
        if args.max_rounds:
            config.max_rounds = args.max_rounds
        seed = args.seed if args.seed is not None else config.seed
        if seed is None:
            seed = settings.seed

        fleet_data = load_fleet_data(args.fleet_data or settings.fleet_data_path)

        if args.runs > 1:
            result = run_experiment(config, runs=args.runs, seed=seed, fleet_data=fleet_data)
            if args.json:
                print(json.dumps(result.to_dict(), indent=2))
            else:
                print(f"{config.battle_name}: {result.runs} battles")
                print(f"  Player wins: {result.player_wins} ({result.win_rate:.1%})")
                print(f"  Enemy wins:  {result.enemy_wins}")
                print(f"  Stalemates:  {result.stalemates}")
                print(f"  Avg rounds:  {result.avg_rounds:.1f}")
                print(f"  Avg player hull: {result.avg_player_hull_pct:.1f}%")
                print(f"  Flees/battle: {result.flee_rate:.2f}  Surrenders/battle: {result.surrender_rate:.2f}")
            return 0

        sim = BattleSimulation.from_config(config, fleet_data, dice=DiceRoller(seed=seed))
        summary = sim.run()

        if args.log:
            for event in sim.events:
                print(f"  {event}")

        if args.json:
            print(json.dumps(summary.to_dict(), indent=2))
        else:
            print(f"Winner: {summary.winner}")
            print(f"Reason: {summary.reason}")
            print(f"Rounds: {summary.rounds}")
            print(f"Missiles launched: {summary.missiles_launched}")
            print(f"Flees: {summary.flees}  Surrenders: {summary.surrenders}")
            for ship_id, pct in summary.per_ship_hull_pct.items():
                print(f"  {ship_id}: {pct:.1f}% hull")
        return 0

    except (ValueError, KeyError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
