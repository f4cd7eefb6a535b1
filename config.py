"""
Runtime configuration for the putt overlay.

Values come from PUTT_* environment variables (see PuttConfig.from_env);
anything missing or malformed falls back to the dataclass default.
"""

import enum
import logging
import math
import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional, Union

logger = logging.getLogger(__name__)

ENV_PREFIX = "PUTT_"


class ScoringMode(enum.Enum):
    ROUNDS = "rounds"            # first sink opens a timed window for 4 finishers
    CONTINUOUS = "continuous"    # every sink starts a fresh hole for everyone


# ── Seagull rarity tiers ──────────────────────────────────────────────────────
# Per-tick spawn probability at 60 Hz.
SEAGULL_RARITY = {
    "off":        0.0,
    "very_rare":  0.00001,
    "rare":       0.00002,
    "occasional": 0.00006,
    "frequent":   0.00012,
}
SEAGULL_MAX_PROBABILITY = 0.01


def rarity_from_level(level: int) -> tuple:
    """Map a 0-100 slider level to (tier name, per-tick probability)."""
    v = max(0, min(100, int(level)))
    if v == 0:
        return "off", 0.0
    if v <= 5:
        tier, prob = "very_rare", 0.000005 * v
    elif v <= 20:
        tier, prob = "rare", 0.00002 * (v / 4)
    elif v <= 50:
        tier, prob = "occasional", 0.00006 * (v / 25)
    else:
        tier, prob = "frequent", 0.00012 * (v / 50)
    return tier, max(0.0, min(SEAGULL_MAX_PROBABILITY, prob))


def resolve_rarity(value: Union[str, int]) -> tuple:
    """Accept a tier name or a slider level; raise ValueError otherwise."""
    if isinstance(value, str):
        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        if key in SEAGULL_RARITY:
            return key, min(SEAGULL_RARITY[key], SEAGULL_MAX_PROBABILITY)
        if key.isdigit():
            return rarity_from_level(int(key))
        raise ValueError(f"unknown seagull rarity: {value!r}")
    return rarity_from_level(value)


@dataclass
class PuttConfig:
    command_prefix: str = "!putt"
    scoring_mode: ScoringMode = ScoringMode.ROUNDS
    round_seconds: float = 30.0
    max_finishers: int = 4
    seagull_rarity: str = "rare"
    store_path: str = "putt_scores.json"
    relay_url: str = ""
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "PuttConfig":
        env = os.environ if environ is None else environ
        cfg = cls()
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            default = getattr(cfg, f.name)
            try:
                if isinstance(default, ScoringMode):
                    value = ScoringMode(raw.strip().lower())
                elif isinstance(default, int):
                    value = int(raw)
                elif isinstance(default, float):
                    value = float(raw)
                else:
                    value = raw.strip()
            except ValueError:
                logger.warning("Ignoring invalid %s%s=%r", ENV_PREFIX,
                               f.name.upper(), raw)
                continue
            setattr(cfg, f.name, value)

        if not math.isfinite(cfg.round_seconds) or cfg.round_seconds <= 0:
            logger.warning("round_seconds must be positive, using 30")
            cfg.round_seconds = 30.0
        if cfg.max_finishers < 1:
            logger.warning("max_finishers must be >= 1, using 4")
            cfg.max_finishers = 4
        try:
            resolve_rarity(cfg.seagull_rarity)
        except ValueError:
            logger.warning("Unknown seagull rarity %r, using 'rare'", cfg.seagull_rarity)
            cfg.seagull_rarity = "rare"
        if not isinstance(logging.getLevelName(cfg.log_level.upper()), int):
            logger.warning("Unknown log level %r, using INFO", cfg.log_level)
            cfg.log_level = "INFO"
        return cfg
