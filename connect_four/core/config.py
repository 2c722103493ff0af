import logging
import os
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from connect_four.engine.selector import DifficultyPolicy
from connect_four.models.enums import Difficulty, PlayerType, SolverTransport

load_dotenv()

DEFAULT_SETTINGS_PATH = Path(__file__).resolve().parent.parent / "config" / "settings.yaml"


class GameSettings(BaseModel):
    players: Tuple[PlayerType, PlayerType] = (PlayerType.HUMAN, PlayerType.COMPUTER)
    difficulty: Difficulty = Difficulty.HARD
    delay_enabled: bool = True
    thinking_delay: float = Field(default=0.5, ge=0)
    drop_seconds_per_row: float = Field(default=0.12, ge=0)


class SolverBudget(BaseModel):
    max_nodes: int = Field(default=400_000, gt=0)
    check_interval: int = Field(default=512, gt=0)
    max_depth: int = Field(default=42, gt=0)
    transport: SolverTransport = SolverTransport.THREAD


class SettingsRegistry:
    def __init__(self, config_path: Optional[str] = None):
        self.game = GameSettings()
        self.solver = SolverBudget()
        self.difficulties: Dict[Difficulty, DifficultyPolicy] = {}
        self._load(config_path or os.getenv("CONNECT_FOUR_SETTINGS") or str(DEFAULT_SETTINGS_PATH))

    def _load(self, path: str):
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
            self.game = GameSettings(**data.get("game", {}))
            self.solver = SolverBudget(**data.get("solver", {}))
            for key, val in data.get("difficulties", {}).items():
                self.difficulties[Difficulty(key)] = DifficultyPolicy(**val)

        missing = [d for d in Difficulty if d not in self.difficulties]
        if missing:
            raise ValueError(f"Settings file {path} has no policy for: {', '.join(missing)}")

    def policy(self, difficulty: Difficulty) -> DifficultyPolicy:
        return self.difficulties[difficulty]


def configure_logging(level: Optional[str] = None):
    """Root logging setup shared by the API app and the console harness."""
    logging.basicConfig(
        level=(level or os.getenv("CONNECT_FOUR_LOG_LEVEL", "INFO")).upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# Singleton instance
registry = SettingsRegistry()
