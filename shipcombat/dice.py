"""
Dice Service for the ship combat engine.

All randomness in a battle flows through a DiceRoller. Each battle owns
its own roller so that two battles never share RNG state, and a seeded
roller makes a whole battle reproducible.
"""

from __future__ import annotations

import random
import re
from dataclasses import dataclass, field
from typing import Optional


DAMAGE_FORMULA_PATTERN = re.compile(r"(\d+)d(\d+)", re.IGNORECASE)


@dataclass
class DiceRoll:
    """
    Result of rolling a pool of identical dice.

    Attributes:
        total: Sum of all dice.
        rolls: Individual die results in roll order.
    """
    total: int
    rolls: list[int] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.total} [{', '.join(str(r) for r in self.rolls)}]"


class DiceRoller:
    """
    Produces NdS and 2d6 rolls.

    Args:
        rng: Random number generator to draw from.
        seed: Seed for a fresh generator (ignored when rng is given).
    """

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        self.rng = rng or random.Random(seed)

    def roll(self, count: int, sides: int) -> DiceRoll:
        """
        Roll `count` dice with `sides` faces each.

        Args:
            count: Number of dice.
            sides: Faces per die.

        Returns:
            DiceRoll with the total and each die.
        """
        rolls = [self.rng.randint(1, sides) for _ in range(count)]
        return DiceRoll(total=sum(rolls), rolls=rolls)

    def roll2d6(self) -> DiceRoll:
        """Roll the standard 2d6 task check."""
        return self.roll(2, 6)


class ScriptedDice(DiceRoller):
    """
    Dice that return a fixed sequence of die faces.

    Used to pin down exact outcomes in tests and replays. Every die drawn
    consumes the next face; running out raises IndexError.
    """

    def __init__(self, faces: list[int]):
        super().__init__(rng=random.Random(0))
        self.faces = list(faces)
        self.position = 0

    def roll(self, count: int, sides: int) -> DiceRoll:
        rolls = []
        for _ in range(count):
            face = self.faces[self.position]
            self.position += 1
            rolls.append(face)
        return DiceRoll(total=sum(rolls), rolls=rolls)

    @property
    def remaining(self) -> int:
        return len(self.faces) - self.position


def parse_damage_formula(formula: Optional[str]) -> Optional[tuple[int, int]]:
    """
    Parse an "NdS" damage formula.

    Args:
        formula: Formula such as '2d6' or '4D6'.

    Returns:
        Tuple of (count, sides), or None if the formula is unparseable.
    """
    if not formula:
        return None
    match = DAMAGE_FORMULA_PATTERN.search(formula)
    if not match:
        return None
    count, sides = int(match.group(1)), int(match.group(2))
    if count <= 0 or sides <= 0:
        return None
    return count, sides
