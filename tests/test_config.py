"""
PUTT_* environment parsing and seagull rarity tiers.
"""

import sys
import os
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import config
from config import (
    PuttConfig, ScoringMode, SEAGULL_RARITY, SEAGULL_MAX_PROBABILITY,
    rarity_from_level, resolve_rarity,
)


class TestFromEnv:

    def test_defaults_with_empty_env(self):
        cfg = PuttConfig.from_env({})
        assert cfg == PuttConfig()
        assert cfg.scoring_mode is ScoringMode.ROUNDS
        assert cfg.round_seconds == 30.0
        assert cfg.max_finishers == 4

    def test_values_parsed_by_type(self):
        cfg = PuttConfig.from_env({
            "PUTT_SCORING_MODE": "Continuous",
            "PUTT_ROUND_SECONDS": "12.5",
            "PUTT_MAX_FINISHERS": "2",
            "PUTT_COMMAND_PREFIX": "!golf",
            "PUTT_SEAGULL_RARITY": "frequent",
            "PUTT_PORT": "9000",
        })
        assert cfg.scoring_mode is ScoringMode.CONTINUOUS
        assert cfg.round_seconds == 12.5
        assert cfg.max_finishers == 2
        assert cfg.command_prefix == "!golf"
        assert cfg.seagull_rarity == "frequent"
        assert cfg.port == 9000

    def test_invalid_values_fall_back(self, caplog):
        cfg = PuttConfig.from_env({
            "PUTT_SCORING_MODE": "sudden-death",
            "PUTT_ROUND_SECONDS": "-3",
            "PUTT_MAX_FINISHERS": "lots",
            "PUTT_SEAGULL_RARITY": "legendary",
        })
        assert cfg.scoring_mode is ScoringMode.ROUNDS
        assert cfg.round_seconds == 30.0
        assert cfg.max_finishers == 4
        assert cfg.seagull_rarity == "rare"
        assert "PUTT_MAX_FINISHERS" in caplog.text

    @pytest.mark.parametrize("raw", ["nan", "inf", "-inf"])
    def test_non_finite_round_seconds_fall_back(self, raw):
        assert PuttConfig.from_env({"PUTT_ROUND_SECONDS": raw}).round_seconds == 30.0

    def test_unknown_log_level_falls_back(self, caplog):
        cfg = PuttConfig.from_env({"PUTT_LOG_LEVEL": "verbose"})
        assert cfg.log_level == "INFO"
        assert "verbose" in caplog.text

    @pytest.mark.parametrize("raw", ["debug", "WARNING", "error"])
    def test_known_log_levels_kept(self, raw):
        assert PuttConfig.from_env({"PUTT_LOG_LEVEL": raw}).log_level == raw

    def test_prefix_is_module_setting(self, monkeypatch):
        monkeypatch.setattr(config, "ENV_PREFIX", "GOLF_")
        assert PuttConfig.from_env({"GOLF_PORT": "9001", "PUTT_PORT": "9002"}).port == 9001
        assert not hasattr(PuttConfig, "ENV_PREFIX")

    def test_blank_values_ignored(self):
        assert PuttConfig.from_env({"PUTT_COMMAND_PREFIX": ""}).command_prefix == "!putt"


class TestRarity:

    @pytest.mark.parametrize("name", list(SEAGULL_RARITY))
    def test_named_tiers(self, name):
        assert resolve_rarity(name) == (name, SEAGULL_RARITY[name])

    def test_name_normalized(self):
        assert resolve_rarity(" Very-Rare ") == ("very_rare", SEAGULL_RARITY["very_rare"])

    def test_numeric_string_is_level(self):
        assert resolve_rarity("0") == ("off", 0.0)

    def test_unknown_name_raises(self):
        with pytest.raises(ValueError):
            resolve_rarity("legendary")

    @pytest.mark.parametrize("level,tier", [
        (0, "off"), (-5, "off"), (3, "very_rare"), (5, "very_rare"),
        (6, "rare"), (20, "rare"), (21, "occasional"), (50, "occasional"),
        (51, "frequent"), (100, "frequent"), (400, "frequent"),
    ])
    def test_level_tiers(self, level, tier):
        assert rarity_from_level(level)[0] == tier

    def test_level_probability_capped(self):
        probs = [rarity_from_level(v)[1] for v in range(0, 101)]
        assert all(0.0 <= p <= SEAGULL_MAX_PROBABILITY for p in probs)
        assert probs[100] == pytest.approx(0.00024)
