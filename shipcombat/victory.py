"""
Victory condition evaluation for fleet battles.

A battle ends when one side has no active ships (destroyed, fled or
surrendered), or when the round limit is reached. The round limit
declares a stalemate unless the player fleet holds a higher overall hull
percentage, which breaks the tie in its favour. The enemy never wins on
hull at the limit.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Tuple

from .models import Combatant


class BattleOutcome(Enum):
    """Possible battle outcomes."""
    PLAYER_VICTORY = "player"
    ENEMY_VICTORY = "enemy"
    STALEMATE = "stalemate"
    ONGOING = "ongoing"


def fleet_hull_percent(ships: Iterable[Combatant]) -> float:
    """Combined hull of a fleet as a percentage of its combined maximum."""
    ships = list(ships)
    max_hull = sum(max(0, s.max_hull) for s in ships)
    if max_hull <= 0:
        return 0.0
    return 100.0 * sum(s.hull for s in ships) / max_hull


@dataclass
class VictoryEvaluator:
    """
    Evaluates termination for a player fleet against an enemy fleet.

    Attributes:
        hull_margin: Player hull lead (percentage points) needed to win at the round limit.
    """
    hull_margin: float = 0.0

    def evaluate_by_hull(
        self,
        player_ships: Iterable[Combatant],
        enemy_ships: Iterable[Combatant],
    ) -> Tuple[BattleOutcome, str]:
        """
        Break a round-limit stalemate by relative hull percentage.

        The player wins when its hull percentage exceeds the enemy's by more
        than hull_margin; anything else stays a stalemate.

        Returns:
            Tuple of (outcome, reason).
        """
        player_pct = fleet_hull_percent(player_ships)
        enemy_pct = fleet_hull_percent(enemy_ships)

        if player_pct - enemy_pct > self.hull_margin:
            return (
                BattleOutcome.PLAYER_VICTORY,
                f"Round limit reached, player hull advantage ({player_pct:.0f}% vs {enemy_pct:.0f}%)",
            )
        return (
            BattleOutcome.STALEMATE,
            f"Round limit reached, no player hull advantage ({player_pct:.0f}% vs {enemy_pct:.0f}%)",
        )

    def evaluate(
        self,
        player_ships: Iterable[Combatant],
        enemy_ships: Iterable[Combatant],
        at_round_limit: bool = False,
    ) -> Tuple[BattleOutcome, str]:
        """
        Comprehensive victory evaluation.

        Args:
            player_ships: All player ships, including inactive ones.
            enemy_ships: All enemy ships, including inactive ones.
            at_round_limit: True once the last round has been played.

        Returns:
            Tuple of (outcome, reason).
        """
        player_ships = list(player_ships)
        enemy_ships = list(enemy_ships)
        player_active = any(s.is_active for s in player_ships)
        enemy_active = any(s.is_active for s in enemy_ships)

        if not player_active and not enemy_active:
            return (BattleOutcome.STALEMATE, "No active ships on either side")
        elif not enemy_active:
            return (BattleOutcome.PLAYER_VICTORY, "No active enemy ships remain")
        elif not player_active:
            return (BattleOutcome.ENEMY_VICTORY, "No active player ships remain")

        if at_round_limit:
            return self.evaluate_by_hull(player_ships, enemy_ships)

        return (BattleOutcome.ONGOING, "Battle continues")
