"""
Shot Preset System
Canned putts on hand-built courses: sink, fast pass over the cup, water
splash, sand stop and wall bank. Each preset places the ball, launches it
and (optionally) runs it to rest, returning a result dict.
"""

import math

import numpy as np

from physics import Ball, PuttPhysics, Shot, POWER_MAX, LAUNCH_SPEED, TICK_DT
from terrain import Course, Wind, Zone

_MAX_TIME = 10.0
UP = math.pi / 2
LEFT = math.pi


def _open_course(hole=(960.0, 300.0), sand=(), water=()) -> Course:
    """No hills, no wind; only the gentle base roll of the terrain."""
    return Course(hole=np.array(hole, dtype=float), hills=[],
                  sand_traps=list(sand), water_hazards=list(water), wind=Wind(0.0, 0.0))


def _power_for(speed: float) -> int:
    """Command power that launches at `speed` units per tick."""
    return int(round(speed / LAUNCH_SPEED * POWER_MAX))


def _setup(name: str, start, angle: float, speed: float, course: Course) -> dict:
    ball = Ball(name, position=start)
    velocity = PuttPhysics.launch_velocity(angle, _power_for(speed), course.wind)
    ball.moving = True
    shot = Shot(name, ball.position.copy(), velocity)
    return {"ball": ball, "balls": {name: ball}, "shots": [shot], "shot": shot,
            "course": course, "engine": PuttPhysics(), "elapsed": 0.0, "events": []}


def _run(result: dict) -> dict:
    """Step until the shot is finished, tracking how close it came to the cup."""
    engine, course, shots = result["engine"], result["course"], result["shots"]
    shot = result["shot"]
    min_hole_dist = course.distance_to_hole(*shot.position)
    peak_vx = float(shot.velocity[0])
    t = 0.0
    while shots and t < _MAX_TIME:
        engine.update(shots, result["balls"], course, TICK_DT)
        t += TICK_DT
        result["events"].extend(engine.events)
        min_hole_dist = min(min_hole_dist, course.distance_to_hole(*shot.position))
        peak_vx = max(peak_vx, float(shot.velocity[0]))
    result["elapsed"] = t
    result["min_hole_dist"] = min_hole_dist
    result["peak_vx"] = peak_vx
    return result


class ShotPreset:
    """Each preset returns {ball, balls, shots, shot, course, engine, elapsed, events}."""

    @staticmethod
    def scenario_1_sink(run=True) -> dict:
        """Gentle straight putt that dies into the cup."""
        course = _open_course(hole=(960.0, 300.0))
        result = _setup("demo", [960.0, 420.0], UP, 3.0, course)
        return _run(result) if run else result

    @staticmethod
    def scenario_2_fast_pass(run=True) -> dict:
        """Same line, far too hard: rolls straight over the cup."""
        course = _open_course(hole=(960.0, 300.0))
        result = _setup("demo", [960.0, 700.0], UP, 30.0, course)
        return _run(result) if run else result

    @staticmethod
    def scenario_3_splash(run=True) -> dict:
        """Putt into a pond between the ball and the cup."""
        course = _open_course(hole=(960.0, 200.0), water=[Zone(960.0, 600.0, 100.0)])
        result = _setup("demo", [960.0, 900.0], UP, 10.0, course)
        return _run(result) if run else result

    @staticmethod
    def scenario_4_sand(run=True) -> dict:
        """Putt that runs into a bunker and dies inside it."""
        course = _open_course(hole=(960.0, 200.0), sand=[Zone(960.0, 600.0, 110.0)])
        result = _setup("demo", [960.0, 900.0], UP, 8.0, course)
        return _run(result) if run else result

    @staticmethod
    def scenario_5_bank(run=True) -> dict:
        """Hard putt into the left border; comes back off the wall."""
        course = _open_course(hole=(960.0, 200.0))
        result = _setup("demo", [200.0, 600.0], LEFT, 10.0, course)
        return _run(result) if run else result
