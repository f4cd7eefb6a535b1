"""
Tests for the Shot Preset System.
Each canned putt must produce its expected physical outcome.
"""

import numpy as np
import pytest

from physics import PuttPhysics
from shot_presets import ShotPreset
from terrain import START_X, START_Y, WIDTH, HEIGHT


class TestScenario1Sink:
    """Gentle putt: dies in the cup."""

    def test_ball_holed(self):
        result = ShotPreset.scenario_1_sink()
        assert result["ball"].in_hole is True, (
            f"Sink: ball ended at {result['ball'].position}, min dist {result['min_hole_dist']:.1f}"
        )
        assert [e["type"] for e in result["events"]] == ["capture"]

    def test_simulation_completes(self):
        assert ShotPreset.scenario_1_sink()["elapsed"] < 10.0


class TestScenario2FastPass:
    """Hard putt on the same line: crosses the cup without dropping."""

    def test_crosses_cup_without_capture(self):
        result = ShotPreset.scenario_2_fast_pass()
        assert result["min_hole_dist"] < result["course"].hole_radius, (
            f"Fast pass never crossed the cup (min dist {result['min_hole_dist']:.1f})"
        )
        assert result["ball"].in_hole is False
        assert "capture" not in [e["type"] for e in result["events"]]


class TestScenario3Splash:
    """Putt into the pond: ball goes back to the start."""

    def test_splash_resets_ball(self):
        result = ShotPreset.scenario_3_splash()
        assert [e["type"] for e in result["events"]] == ["splash"]
        np.testing.assert_allclose(result["ball"].position, [START_X, START_Y])
        assert result["ball"].moving is False


class TestScenario4Sand:
    """Putt into the bunker: dies inside the sand."""

    def test_ball_stops_in_sand(self):
        result = ShotPreset.scenario_4_sand()
        x, y = result["ball"].position
        assert result["course"].in_sand(x, y), f"Sand: ball ended at ({x:.1f}, {y:.1f})"
        assert result["events"][-1]["type"] == "stopped"


class TestScenario5Bank:
    """Putt into the left wall: comes back off the rough."""

    def test_ball_rebounds(self):
        result = ShotPreset.scenario_5_bank()
        assert result["peak_vx"] > 0, "Bank: ball never moved right after the wall"
        assert result["ball"].position[0] >= PuttPhysics().x_min

    def test_simulation_completes(self):
        assert ShotPreset.scenario_5_bank()["elapsed"] < 10.0


class TestSetupOnly:
    """run=False only places and launches the ball."""

    SCENARIOS = [
        ShotPreset.scenario_1_sink,
        ShotPreset.scenario_2_fast_pass,
        ShotPreset.scenario_3_splash,
        ShotPreset.scenario_4_sand,
        ShotPreset.scenario_5_bank,
    ]

    @pytest.mark.parametrize("scenario_fn", SCENARIOS)
    def test_one_launched_ball(self, scenario_fn):
        result = scenario_fn(run=False)
        assert list(result["balls"]) == ["demo"]
        assert result["ball"].moving is True
        assert np.linalg.norm(result["shot"].velocity) > 0
        assert result["elapsed"] == 0.0
        assert result["events"] == []

    @pytest.mark.parametrize("scenario_fn", SCENARIOS)
    def test_ball_inside_playfield(self, scenario_fn):
        x, y = scenario_fn(run=False)["ball"].position
        assert 0 <= x <= WIDTH and 0 <= y <= HEIGHT

    @pytest.mark.parametrize("scenario_fn", SCENARIOS)
    def test_start_is_dry(self, scenario_fn):
        result = scenario_fn(run=False)
        assert not result["course"].in_water(*result["ball"].position)
