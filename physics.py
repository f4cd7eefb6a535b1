"""
Putt Physics Engine
Slope-driven rolling, drag, wall bounce, water hazards and hole capture.

Velocities are in playfield units per tick; the engine is tuned for a
fixed 60 Hz tick and every decay below is multiplicative per tick.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from terrain import (
    Course, Wind, WIDTH, HEIGHT, ROUGH_ZONE, start_position,
)

# ──────────────────────────────────────────────
# Constants (playfield units, per tick)
# ──────────────────────────────────────────────
TICK_RATE: int = 60
TICK_DT: float = 1.0 / TICK_RATE
BALL_RADIUS: float = 12.0
POWER_MAX: int = 999

# ── Runtime-editable behavior constants ───────────────────────────────────────
# These are read by name every call, so server.py can mutate them live via:
#   import physics as _phys;  _phys.AIR_DRAG = 0.99
AIR_DRAG: float = 0.986             # per-tick velocity retention on grass
SAND_DRAG: float = 0.88             # per-tick velocity retention in a sand trap
STOP_SPEED: float = 0.2             # below this the shot comes to rest
MAX_LIFE: float = 4.0               # seconds before a shot is forced to rest
CAPTURE_SPEED: float = 5.0          # must be slower than this to drop in the hole
WALL_RESTITUTION: float = 0.78      # velocity kept after hitting the rough border
SLOPE_GAIN: float = 0.2             # slope -> steering force
SLOPE_LATERAL: float = 0.6          # share of the slope force applied on x
SLOPE_FORWARD: float = 0.2          # share of the slope force applied on y
LAUNCH_SPEED: float = 36.0          # launch speed at full power
WIND_FACTOR: float = 0.18           # wind speed -> launch velocity offset


@dataclass
class Ball:
    """A player's ball; persists between shots."""
    name: str
    color: str = "hsl(0,70%,60%)"
    position: np.ndarray = field(default_factory=start_position)
    in_hole: bool = False
    moving: bool = False

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)

    def reset(self) -> None:
        self.position = start_position()
        self.in_hole = False
        self.moving = False

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "color": self.color,
            "pos": [round(float(self.position[0]), 2), round(float(self.position[1]), 2)],
            "in_hole": self.in_hole,
            "moving": self.moving,
        }


@dataclass
class Shot:
    """A ball in flight."""
    player: str
    position: np.ndarray
    velocity: np.ndarray
    life: float = 0.0

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        self.velocity = np.array(self.velocity, dtype=float)

    @property
    def speed(self) -> float:
        return float(np.hypot(self.velocity[0], self.velocity[1]))

    def to_dict(self) -> dict:
        return {
            "player": self.player,
            "pos": [round(float(self.position[0]), 2), round(float(self.position[1]), 2)],
            "vel": [round(float(self.velocity[0]), 3), round(float(self.velocity[1]), 3)],
        }


class PuttPhysics:
    """Advances every live shot over a course, one tick at a time."""

    def __init__(self, width: float = WIDTH, height: float = HEIGHT,
                 border: float = ROUGH_ZONE):
        self.width = width
        self.height = height
        # Ball centre must stay inside the rough border
        self.x_min = border + BALL_RADIUS
        self.x_max = width - border - BALL_RADIUS
        self.y_min = border + BALL_RADIUS
        self.y_max = height - border - BALL_RADIUS
        self.events: list = []

    # ──────────────────────────────────────────
    # Launch
    # ──────────────────────────────────────────
    @staticmethod
    def launch_velocity(angle: float, power: float, wind: Optional[Wind] = None) -> np.ndarray:
        """
        Initial shot velocity.

        Args:
            angle: Aim angle in radians (pi = straight left, 0 = straight right).
            power: Signed power in [-POWER_MAX, POWER_MAX]; negative reverses the aim.
            wind: Course wind, added as a small constant offset.
        """
        base = abs(power) / POWER_MAX * LAUNCH_SPEED
        sign = -1.0 if power < 0 else 1.0
        velocity = np.array([math.cos(angle) * base * sign,
                             -math.sin(angle) * base * sign])
        if wind is not None:
            velocity = velocity + wind.vector() * WIND_FACTOR
        return velocity

    # ──────────────────────────────────────────
    # Per-shot integration
    # ──────────────────────────────────────────
    def _apply_slope(self, shot: Shot, course: Course) -> None:
        sl = course.slope_at(shot.position[0], shot.position[1]) * SLOPE_GAIN
        shot.velocity[0] += -sl * SLOPE_LATERAL
        shot.velocity[1] += sl * SLOPE_FORWARD

    @staticmethod
    def _apply_drag(shot: Shot, course: Course) -> None:
        if course.in_sand(shot.position[0], shot.position[1]):
            shot.velocity *= SAND_DRAG
        else:
            shot.velocity *= AIR_DRAG

    def _apply_bounds(self, shot: Shot) -> None:
        """Clamp to the playable area; the hit axis bounces back inward."""
        p, v = shot.position, shot.velocity
        if p[0] < self.x_min:
            p[0] = self.x_min
            v[0] = abs(v[0]) * WALL_RESTITUTION
        if p[0] > self.x_max:
            p[0] = self.x_max
            v[0] = -abs(v[0]) * WALL_RESTITUTION
        if p[1] < self.y_min:
            p[1] = self.y_min
            v[1] = abs(v[1]) * WALL_RESTITUTION
        if p[1] > self.y_max:
            p[1] = self.y_max
            v[1] = -abs(v[1]) * WALL_RESTITUTION

    def _advance_shot(self, shot: Shot, ball: Optional[Ball], course: Course,
                      dt: float) -> bool:
        """Advance one shot. Returns False when the shot is finished."""
        shot.life += dt
        shot.position += shot.velocity

        self._apply_slope(shot, course)
        self._apply_drag(shot, course)
        self._apply_bounds(shot)

        x, y = float(shot.position[0]), float(shot.position[1])

        if course.in_water(x, y):
            if ball is not None:
                ball.position = start_position()
                ball.moving = False
            self.events.append({"type": "splash", "player": shot.player,
                                "pos": [x, y]})
            return False

        speed = shot.speed
        if speed < STOP_SPEED or shot.life > MAX_LIFE:
            if ball is not None:
                ball.position = shot.position.copy()
                ball.moving = False
            self.events.append({"type": "stopped", "player": shot.player,
                                "pos": [x, y]})
            return False

        if course.distance_to_hole(x, y) < course.hole_radius and speed < CAPTURE_SPEED:
            if ball is not None:
                ball.position = course.hole.copy()
                ball.in_hole = True
                ball.moving = False
            self.events.append({"type": "capture", "player": shot.player,
                                "speed": speed})
            return False

        if ball is not None:
            ball.position = shot.position.copy()
            ball.moving = True
        return True

    # ──────────────────────────────────────────
    # Main Update Loop
    # ──────────────────────────────────────────
    def update(self, shots: List[Shot], balls: Dict[str, Ball], course: Course,
               dt: float = TICK_DT) -> None:
        """Advance all shots by one tick; finished shots are removed in place."""
        self.events.clear()
        live = []
        for shot in shots:
            if self._advance_shot(shot, balls.get(shot.player), course, dt):
                live.append(shot)
        shots[:] = live

    def simulate(self, shots: List[Shot], balls: Dict[str, Ball], course: Course,
                 dt: float = TICK_DT, max_time: float = 10.0) -> float:
        """
        Run until every shot has finished or max_time is reached.

        Returns:
            Elapsed time in seconds.
        """
        t = 0.0
        while t < max_time and shots:
            self.update(shots, balls, course, dt)
            t += dt
        return t
