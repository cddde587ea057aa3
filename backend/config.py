"""
config.py: runtime settings for the engine and the host API.
Clinical reference values live in constants.py; only operational switches here.
"""

import os
from dataclasses import dataclass

from constants import SAFETY_CONSTANTS

_TRUE_VALUES = {"1", "true", "yes", "on"}

@dataclass(frozen=True)
class EngineSettings:
    # Open clinical question: off unless explicitly configured
    enforce_muscle_ceiling: bool = False
    muscle_ceiling_multiplier: float = SAFETY_CONSTANTS.MUSCLE_CEILING_MULTIPLIER
    history_limit: int = 100
    log_level: str = "INFO"

    def __post_init__(self):
        if self.muscle_ceiling_multiplier <= 0:
            raise ValueError(f"Ceiling multiplier must be > 0, got {self.muscle_ceiling_multiplier}")
        if self.history_limit < 1:
            raise ValueError(f"History limit must be >= 1, got {self.history_limit}")

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            enforce_muscle_ceiling=os.environ.get("TOXINFLOW_ENFORCE_MUSCLE_CEILING", "false").strip().lower() in _TRUE_VALUES,
            muscle_ceiling_multiplier=float(os.environ.get(
                "TOXINFLOW_MUSCLE_CEILING_MULTIPLIER", SAFETY_CONSTANTS.MUSCLE_CEILING_MULTIPLIER)),
            history_limit=int(os.environ.get("TOXINFLOW_HISTORY_LIMIT", "100")),
            log_level=os.environ.get("TOXINFLOW_LOG_LEVEL", "INFO").upper(),
        )
