"""
Experiment runner: play many independent battles from one configuration.

Each battle gets fresh ships and its own seeded dice, so runs share no
state and a seeded experiment is reproducible. Results are aggregated
with numpy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import numpy as np

from .dice import DiceRoller
from .fleet_config import BattleConfig, load_fleet_data
from .simulation import BattleSimulation, BattleSummary


logger = logging.getLogger("shipcombat.experiment")


@dataclass
class ExperimentResult:
    """
    Aggregate statistics over a batch of battles.

    Attributes:
        runs: Battles played.
        player_wins: Battles won by the player fleet.
        enemy_wins: Battles won by the enemy fleet.
        stalemates: Even battles at the round limit.
        win_rate: player_wins / runs.
        avg_rounds: Mean battle length in rounds.
        avg_player_hull_pct: Mean remaining player hull percentage.
        avg_missiles_launched: Mean launches per battle.
        total_flees: Ships that fled across all battles.
        total_surrenders: Ships that surrendered across all battles.
        flee_rate: Flees per battle.
        surrender_rate: Surrenders per battle.
        summaries: Per-battle summaries in run order.
    """
    runs: int
    player_wins: int
    enemy_wins: int
    stalemates: int
    win_rate: float
    avg_rounds: float
    avg_player_hull_pct: float
    avg_missiles_launched: float
    total_flees: int
    total_surrenders: int
    flee_rate: float
    surrender_rate: float
    summaries: list[BattleSummary] = field(default_factory=list, repr=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "runs": self.runs,
            "player_wins": self.player_wins,
            "enemy_wins": self.enemy_wins,
            "stalemates": self.stalemates,
            "win_rate": self.win_rate,
            "avg_rounds": self.avg_rounds,
            "avg_player_hull_pct": self.avg_player_hull_pct,
            "avg_missiles_launched": self.avg_missiles_launched,
            "total_flees": self.total_flees,
            "total_surrenders": self.total_surrenders,
            "flee_rate": self.flee_rate,
            "surrender_rate": self.surrender_rate,
        }


def aggregate_summaries(
    summaries: list[BattleSummary],
    player_ship_ids: list[str],
) -> ExperimentResult:
    """
    Aggregate battle summaries into experiment statistics.

    Args:
        summaries: One summary per battle.
        player_ship_ids: Ships counted for the player hull average.

    Raises:
        ValueError: If there are no summaries.
    """
    if not summaries:
        raise ValueError("Cannot aggregate an empty experiment")

    winners = np.array([s.winner for s in summaries])
    rounds = np.array([s.rounds for s in summaries], dtype=float)
    missiles = np.array([s.missiles_launched for s in summaries], dtype=float)
    flees = np.array([s.flees for s in summaries], dtype=int)
    surrenders = np.array([s.surrenders for s in summaries], dtype=int)
    player_hull = np.array([
        np.mean([s.per_ship_hull_pct.get(ship_id, 0.0) for ship_id in player_ship_ids])
        if player_ship_ids else 0.0
        for s in summaries
    ], dtype=float)

    runs = len(summaries)
    player_wins = int(np.sum(winners == "player"))

    return ExperimentResult(
        runs=runs,
        player_wins=player_wins,
        enemy_wins=int(np.sum(winners == "enemy")),
        stalemates=int(np.sum(winners == "stalemate")),
        win_rate=player_wins / runs,
        avg_rounds=float(np.mean(rounds)),
        avg_player_hull_pct=float(np.mean(player_hull)),
        avg_missiles_launched=float(np.mean(missiles)),
        total_flees=int(np.sum(flees)),
        total_surrenders=int(np.sum(surrenders)),
        flee_rate=float(np.mean(flees)),
        surrender_rate=float(np.mean(surrenders)),
        summaries=list(summaries),
    )


def run_experiment(
    config: BattleConfig,
    runs: int = 100,
    seed: Optional[int] = None,
    fleet_data: Optional[dict] = None,
) -> ExperimentResult:
    """
    Run the same battle many times and aggregate the outcomes.

    Battle i is seeded with seed + i. Without a seed the config's seed is
    used as the base; with neither the dice are unseeded.

    Args:
        config: Battle to repeat.
        runs: Number of battles.
        seed: Base seed.
        fleet_data: Fleet catalog (defaults to the bundled catalog).

    Returns:
        ExperimentResult with aggregate statistics.

    Raises:
        ValueError: If runs is not positive.
    """
    if runs <= 0:
        raise ValueError(f"runs must be positive, got {runs}")
    if fleet_data is None:
        fleet_data = load_fleet_data()

    base_seed = seed if seed is not None else config.seed
    summaries = []
    for i in range(runs):
        run_seed = base_seed + i if base_seed is not None else None
        sim = BattleSimulation.from_config(config, fleet_data, dice=DiceRoller(seed=run_seed))
        summaries.append(sim.run())

    result = aggregate_summaries(
        summaries, [ship.ship_id for ship in config.player_fleet.ships]
    )
    logger.info(
        "%s: %d runs, win rate %.0f%%, avg %.1f rounds",
        config.battle_name, runs, result.win_rate * 100, result.avg_rounds,
    )
    return result

