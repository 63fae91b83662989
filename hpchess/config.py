from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, fields
from typing import Optional

logger = logging.getLogger(__name__)

DIFFICULTY_LEVELS = (1, 2, 3)


@dataclass
class Config:
    difficulty: int = 2
    easy_random_probability: float = 0.3  # chance a depth-1 search plays a random move
    thinking_delay_s: float = 0.5  # cosmetic pause before the engine replies (web only)
    log_level: str = "INFO"

    @staticmethod
    def load_from_toml(path: str = "hpchess.toml") -> "Config":
        """Read the ``[game]`` table of a TOML file over the defaults.

        A missing file yields the defaults; unknown keys are ignored.
        """
        cfg = Config()
        if not os.path.exists(path):
            return cfg
        with open(path, "rb") as f:
            raw = tomllib.load(f)
        known = {f.name for f in fields(cfg)}
        for key, value in raw.get("game", {}).items():
            if key in known:
                setattr(cfg, key, value)
            else:
                logger.warning("Ignoring unknown config key %r in %s", key, path)
        return cfg

    @classmethod
    def from_env(cls) -> "Config":
        cfg = cls.load_from_toml(os.environ.get("HPCHESS_CONFIG_TOML", "hpchess.toml"))
        override: Optional[str] = os.environ.get("HPCHESS_DIFFICULTY")
        if override:
            cfg.difficulty = int(override)
        validate_difficulty(cfg.difficulty)
        return cfg


def validate_difficulty(level: int) -> int:
    if level not in DIFFICULTY_LEVELS:
        raise ValueError(f"Difficulty must be one of {DIFFICULTY_LEVELS}, got {level!r}")
    return level
