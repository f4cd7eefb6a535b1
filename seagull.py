"""
Seagull — an autonomous steering agent that steals a ball and drops it
somewhere else on the course.

Behaviour is an explicit state machine: every state has a handler
    handler(gull, ball, course, rng) -> (next_state, events)
and TRANSITIONS lists which successors each state may return.
"""

import enum
import math
import random
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from physics import Ball, TICK_RATE
from terrain import Course, WIDTH, safe_drop_location

# Entry / exit
SPAWN_OFFSET: float = 260.0
EXIT_MARGIN: float = 360.0

# Phase tuning
APPROACH_HOVER: float = 40.0        # aim this far above the ball
APPROACH_RADIUS: float = 120.0
APPROACH_STEER: float = 0.04
CIRCLE_RADIUS: float = 58.0
CIRCLE_WOBBLE: float = 8.0
CIRCLE_WOBBLE_PERIOD_MS: float = 260.0
CIRCLE_SQUASH: float = 0.45
CIRCLE_LIFT: float = 22.0
GRAB_STEER: float = 0.22
GRAB_RADIUS: float = 36.0
FLYOFF_STEER: float = 0.06
DROP_RADIUS: float = 44.0
LEAVE_DAMPING: float = 0.995
LEAVE_LIFT: float = 0.01
CARRY_OFFSET: float = 8.0


class SeagullState(enum.Enum):
    APPROACH = "approach"
    CIRCLE = "circle"
    GRAB = "grab"
    FLYOFF = "flyoff"
    LEAVE = "leave"


TRANSITIONS: Dict[SeagullState, Tuple[SeagullState, ...]] = {
    SeagullState.APPROACH: (SeagullState.APPROACH, SeagullState.CIRCLE),
    SeagullState.CIRCLE:   (SeagullState.CIRCLE, SeagullState.GRAB),
    SeagullState.GRAB:     (SeagullState.GRAB, SeagullState.FLYOFF),
    SeagullState.FLYOFF:   (SeagullState.FLYOFF, SeagullState.LEAVE),
    SeagullState.LEAVE:    (SeagullState.LEAVE,),
}


@dataclass
class Seagull:
    target: str
    position: np.ndarray
    velocity: np.ndarray
    state: SeagullState = SeagullState.APPROACH
    carrying: bool = False
    circle_frames: int = 0
    orbit_angle: float = 0.0
    grab_frames: int = 0
    drop_target: Optional[np.ndarray] = None
    age: float = 0.0                  # seconds alive
    size: float = 1.6
    wing_phase: float = 0.0

    def __post_init__(self):
        self.position = np.array(self.position, dtype=float)
        self.velocity = np.array(self.velocity, dtype=float)

    def distance_to(self, x: float, y: float) -> float:
        return math.hypot(self.position[0] - x, self.position[1] - y)

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "state": self.state.value,
            "carrying": self.carrying,
            "pos": [round(float(self.position[0]), 2), round(float(self.position[1]), 2)],
            "vel": [round(float(self.velocity[0]), 3), round(float(self.velocity[1]), 3)],
            "size": round(self.size, 3),
            "wing_phase": round(self.wing_phase, 3),
        }


def spawn_seagull(balls: Dict[str, Ball], rng: random.Random,
                  manual: bool = False) -> Optional[Seagull]:
    """Pick a random ball that is not in the hole and fly in from a side edge."""
    candidates = [name for name, b in balls.items() if not b.in_hole]
    if not candidates:
        return None
    target = candidates[int(rng.random() * len(candidates))]
    from_left = rng.random() < 0.5
    speed = rng.uniform(6.5, 9)
    return Seagull(
        target=target,
        position=[-SPAWN_OFFSET if from_left else WIDTH + SPAWN_OFFSET, rng.uniform(80, 260)],
        velocity=[speed if from_left else -speed, rng.uniform(-1.2, 1.2)],
        size=1.6 + rng.random() * 0.9,
        wing_phase=rng.random() * math.pi * 2,
    )


def steer(gull: Seagull, x: float, y: float, strength: float) -> None:
    """Ease velocity toward the target; desired speed grows with current speed."""
    dx, dy = x - gull.position[0], y - gull.position[1]
    d = math.hypot(dx, dy) or 1.0
    vx, vy = gull.velocity
    desired_vx = (dx / d) * (6 + abs(vx) * 0.12)
    desired_vy = (dy / d) * (2 + abs(vy) * 0.12)
    gull.velocity[0] += (desired_vx - vx) * strength
    gull.velocity[1] += (desired_vy - vy) * strength


def _pick_drop_target(course: Course, rng: random.Random, attempts: int) -> np.ndarray:
    target = safe_drop_location(course, rng, attempts)
    if course.in_water(target[0], target[1]):
        target = safe_drop_location(course, rng, 100)
    return target


# ──────────────────────────────────────────────
# State handlers
# ──────────────────────────────────────────────
def _approach(gull: Seagull, ball: Ball, course: Course, rng: random.Random):
    bx, by = ball.position[0], ball.position[1] - APPROACH_HOVER
    steer(gull, bx, by, APPROACH_STEER)
    if gull.distance_to(bx, by) < APPROACH_RADIUS:
        gull.circle_frames = rng.randint(40, 110)
        gull.orbit_angle = rng.random() * math.pi * 2
        return SeagullState.CIRCLE, []
    return SeagullState.APPROACH, []


def _circle(gull: Seagull, ball: Ball, course: Course, rng: random.Random):
    gull.orbit_angle += 0.14 + rng.random() * 0.04
    r = CIRCLE_RADIUS + math.sin(gull.age * 1000.0 / CIRCLE_WOBBLE_PERIOD_MS) * CIRCLE_WOBBLE
    gull.position[0] = ball.position[0] + math.cos(gull.orbit_angle) * r
    gull.position[1] = ball.position[1] - CIRCLE_LIFT + math.sin(gull.orbit_angle) * r * CIRCLE_SQUASH
    gull.circle_frames -= 1
    if gull.circle_frames <= 0:
        gull.grab_frames = rng.randint(18, 36)
        return SeagullState.GRAB, []
    return SeagullState.CIRCLE, []


def _grab(gull: Seagull, ball: Ball, course: Course, rng: random.Random):
    steer(gull, ball.position[0], ball.position[1] - 6, GRAB_STEER)
    if gull.distance_to(ball.position[0], ball.position[1]) < GRAB_RADIUS or gull.grab_frames <= 0:
        gull.carrying = True
        gull.drop_target = _pick_drop_target(course, rng, 80)
        dx = gull.drop_target[0] - gull.position[0]
        dy = gull.drop_target[1] - gull.position[1]
        d = math.hypot(dx, dy) or 1.0
        gull.velocity[0] = (dx / d) * rng.uniform(5, 9)
        gull.velocity[1] = (dy / d) * rng.uniform(2, 5)
        return SeagullState.FLYOFF, [{"type": "seagull_grab", "player": gull.target}]
    gull.grab_frames -= 1
    return SeagullState.GRAB, []


def _flyoff(gull: Seagull, ball: Ball, course: Course, rng: random.Random):
    tx, ty = gull.drop_target[0], gull.drop_target[1]
    steer(gull, tx, ty, FLYOFF_STEER)
    ball.position = np.array([gull.position[0], gull.position[1] + 6])
    ball.moving = False
    if gull.distance_to(tx, ty) < DROP_RADIUS:
        if course.in_water(tx, ty):
            gull.drop_target = safe_drop_location(course, rng, 60)
            return SeagullState.FLYOFF, []
        ball.position = np.array([tx, ty], dtype=float)
        ball.moving = False
        gull.carrying = False
        gull.velocity[0] += (-1 if rng.random() < 0.5 else 1) * rng.uniform(3, 6)
        gull.velocity[1] -= rng.uniform(1, 3)
        return SeagullState.LEAVE, [{"type": "seagull_drop", "player": gull.target,
                                     "pos": [float(tx), float(ty)]}]
    return SeagullState.FLYOFF, []


def _leave(gull: Seagull, ball: Ball, course: Course, rng: random.Random):
    gull.velocity[0] *= LEAVE_DAMPING
    gull.velocity[1] -= LEAVE_LIFT
    return SeagullState.LEAVE, []


Handler = Callable[[Seagull, Ball, Course, random.Random], Tuple[SeagullState, List[dict]]]

_HANDLERS: Dict[SeagullState, Handler] = {
    SeagullState.APPROACH: _approach,
    SeagullState.CIRCLE:   _circle,
    SeagullState.GRAB:     _grab,
    SeagullState.FLYOFF:   _flyoff,
    SeagullState.LEAVE:    _leave,
}


def run_state(gull: Seagull, ball: Ball, course: Course,
              rng: random.Random) -> Tuple[SeagullState, List[dict]]:
    """Run the handler for the current state and validate the transition."""
    next_state, events = _HANDLERS[gull.state](gull, ball, course, rng)
    if next_state not in TRANSITIONS[gull.state]:
        raise ValueError(f"illegal seagull transition {gull.state.value} -> {next_state.value}")
    return next_state, events


def out_of_bounds(gull: Seagull) -> bool:
    x, y = gull.position
    return x < -EXIT_MARGIN or x > WIDTH + EXIT_MARGIN or y < -EXIT_MARGIN


def update_seagull(gull: Seagull, balls: Dict[str, Ball], course: Course,
                   rng: random.Random, dt: float) -> Tuple[bool, List[dict]]:
    """
    Advance the seagull one tick.

    Returns:
        (alive, events). alive is False once the gull should be discarded,
        either because its target ball is gone or it has left the field.
    """
    ball = balls.get(gull.target)
    if ball is None:
        return False, [{"type": "seagull_gone", "player": gull.target}]

    gull.age += dt
    gull.state, events = run_state(gull, ball, course, rng)

    scale = max(0.25, min(2.5, dt * TICK_RATE))
    gull.position += gull.velocity * scale

    if gull.carrying:
        ball.position = np.array([gull.position[0], gull.position[1] + CARRY_OFFSET])
        ball.moving = False

    if out_of_bounds(gull):
        return False, events
    return True, events
