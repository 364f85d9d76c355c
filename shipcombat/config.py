"""
Engine settings read from the environment.

Values come from process environment variables, with a .env file in the
working directory loaded first (existing variables win):

    SHIPCOMBAT_MAX_ROUNDS   Round limit for battles (default 10)
    SHIPCOMBAT_START_RANGE  Starting range band (default Medium)
    SHIPCOMBAT_SEED         Dice seed; unset means unseeded
    SHIPCOMBAT_FLEET_DATA   Path to the fleet catalog JSON
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .fleet_config import DEFAULT_FLEET_DATA_PATH
from .models import RangeBand


DEFAULT_MAX_ROUNDS = 10
DEFAULT_START_RANGE = "Medium"


def _int_from_env(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass
class EngineSettings:
    """
    Defaults applied to battles that do not specify their own.

    Attributes:
        max_rounds: Round limit.
        start_range: Starting range band name.
        seed: Dice seed, or None for unseeded dice.
        fleet_data_path: Fleet catalog location.
    """
    max_rounds: int = DEFAULT_MAX_ROUNDS
    start_range: str = DEFAULT_START_RANGE
    seed: Optional[int] = None
    fleet_data_path: Path = DEFAULT_FLEET_DATA_PATH

    def __post_init__(self) -> None:
        if self.max_rounds <= 0:
            raise ValueError(f"max_rounds must be positive, got {self.max_rounds}")
        if RangeBand.parse(self.start_range) is None:
            raise ValueError(f"Unknown start range: {self.start_range!r}")
        self.fleet_data_path = Path(self.fleet_data_path)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> EngineSettings:
        """
        Load settings from the environment and an optional .env file.

        Args:
            dotenv_path: Explicit .env file (defaults to searching from the cwd).

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        load_dotenv(dotenv_path)
        return cls(
            max_rounds=_int_from_env("SHIPCOMBAT_MAX_ROUNDS", DEFAULT_MAX_ROUNDS),
            start_range=os.getenv("SHIPCOMBAT_START_RANGE") or DEFAULT_START_RANGE,
            seed=_int_from_env("SHIPCOMBAT_SEED", None),
            fleet_data_path=Path(os.getenv("SHIPCOMBAT_FLEET_DATA") or DEFAULT_FLEET_DATA_PATH),
        )
