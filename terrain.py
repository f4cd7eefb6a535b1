"""
Course generation and terrain queries.

Playfield units are overlay pixels (1920 x 1080, y grows downward); the
ball starts at the bottom centre and the hole sits in the upper band.
"""

import math
import random
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

import numpy as np

# ──────────────────────────────────────────────
# Playfield
# ──────────────────────────────────────────────
WIDTH: float = 1920.0
HEIGHT: float = 1080.0
ROUGH_ZONE: float = 60.0                 # unplayable border on every edge
START_X: float = WIDTH / 2
START_Y: float = HEIGHT - 120
START_SAFE_RADIUS: float = 400.0         # hazards stay out of the bottom band
HOLE_RADIUS: float = 16.0

# Generation rules
HILL_COUNT: int = 7
SAND_COUNT: int = 4
SAND_RETRIES: int = 40
SAND_HOLE_CLEARANCE: float = 180.0
WATER_RETRIES: int = 50
WATER_HOLE_CLEARANCE: float = 220.0
DROP_HOLE_CLEARANCE: float = 160.0

# Height field
HILL_HEIGHT_SCALE: float = 38.0
SLOPE_STEP: float = 6.0


def start_position() -> np.ndarray:
    return np.array([START_X, START_Y])


def too_close_to_start(y: float) -> bool:
    return y > HEIGHT - START_SAFE_RADIUS


@dataclass
class Zone:
    """Circular course feature (sand trap or water hazard)."""
    x: float
    y: float
    r: float

    def contains(self, x: float, y: float) -> bool:
        return (x - self.x) ** 2 + (y - self.y) ** 2 < self.r ** 2

    def to_dict(self) -> dict:
        return {"x": round(self.x, 2), "y": round(self.y, 2), "r": round(self.r, 2)}


@dataclass
class Hill(Zone):
    h: float = 0.0  # height gain at the centre


@dataclass
class Wind:
    angle: float = 0.0   # radians, 0 = +x, pi/2 = up the screen
    speed: float = 0.0

    def vector(self) -> np.ndarray:
        return np.array([math.cos(self.angle) * self.speed,
                         -math.sin(self.angle) * self.speed])


def in_zone(x: float, y: float, zones: Sequence[Zone]) -> bool:
    return any(z.contains(x, y) for z in zones)


@dataclass
class Course:
    hole: np.ndarray = field(default_factory=lambda: np.array([WIDTH / 2, 200.0]))
    hole_radius: float = HOLE_RADIUS
    hills: List[Hill] = field(default_factory=list)
    sand_traps: List[Zone] = field(default_factory=list)
    water_hazards: List[Zone] = field(default_factory=list)
    wind: Wind = field(default_factory=Wind)

    def __post_init__(self):
        self.hole = np.array(self.hole, dtype=float)

    # ── Height field ─────────────────────────────────────────────────────────
    def height_at(self, x: float, y: float) -> float:
        """Rolling base terrain plus a linear cone for every hill covering (x, y)."""
        nx = (x - ROUGH_ZONE) / (WIDTH - 2 * ROUGH_ZONE)
        base = math.sin(nx * 2.5) * 22 + math.sin(nx * 5.2) * 9
        if not self.hills:
            return base
        hx = np.array([h.x for h in self.hills])
        hy = np.array([h.y for h in self.hills])
        hr = np.array([h.r for h in self.hills])
        hh = np.array([h.h for h in self.hills])
        d = np.hypot(x - hx, y - hy)
        inside = d < hr
        if inside.any():
            base += float(np.sum(hh[inside] * (1 - d[inside] / hr[inside]))) * HILL_HEIGHT_SCALE
        return base

    def slope_at(self, x: float, y: float) -> float:
        """Central difference of height along x."""
        e = SLOPE_STEP
        return (self.height_at(x + e, y) - self.height_at(x - e, y)) / (2 * e)

    # ── Zone queries ─────────────────────────────────────────────────────────
    def in_sand(self, x: float, y: float) -> bool:
        return in_zone(x, y, self.sand_traps)

    def in_water(self, x: float, y: float) -> bool:
        return in_zone(x, y, self.water_hazards)

    def distance_to_hole(self, x: float, y: float) -> float:
        return math.hypot(x - self.hole[0], y - self.hole[1])

    def to_dict(self) -> dict:
        return {
            "hole": {"x": round(float(self.hole[0]), 2),
                     "y": round(float(self.hole[1]), 2),
                     "r": self.hole_radius},
            "hills": [dict(z.to_dict(), h=round(z.h, 3)) for z in self.hills],
            "sand": [z.to_dict() for z in self.sand_traps],
            "water": [z.to_dict() for z in self.water_hazards],
            "wind": {"angle": round(self.wind.angle, 4),
                     "speed": round(self.wind.speed, 3)},
        }


# ──────────────────────────────────────────────
# Generation
# ──────────────────────────────────────────────
def place_zone(sample: Callable[[], Zone], hole: np.ndarray,
               clearance: float, retries: int) -> Zone:
    """Resample until the zone avoids the start band and keeps `clearance`
    from the hole. After `retries` attempts the last sample is kept."""
    zone = sample()
    tries = 1
    while tries < retries and (
            too_close_to_start(zone.y) or
            math.hypot(zone.x - hole[0], zone.y - hole[1]) < clearance):
        zone = sample()
        tries += 1
    return zone


def generate_course(rng: random.Random) -> Course:
    u = rng.uniform
    hole = np.array([u(300, WIDTH - 300), u(140, 360)])

    hills = [Hill(u(200, WIDTH - 200), u(HEIGHT / 3, HEIGHT - 120),
                  u(120, 260), u(0.12, 0.35))
             for _ in range(HILL_COUNT)]

    sand = [place_zone(lambda: Zone(u(200, WIDTH - 200), u(HEIGHT / 2, HEIGHT - 220), u(70, 110)),
                       hole, SAND_HOLE_CLEARANCE, SAND_RETRIES)
            for _ in range(SAND_COUNT)]

    water_count = 1 + int(rng.random() * 2)
    water = [place_zone(lambda: Zone(u(300, WIDTH - 300), u(HEIGHT / 3, HEIGHT - 260), u(90, 150)),
                        hole, WATER_HOLE_CLEARANCE, WATER_RETRIES)
             for _ in range(water_count)]

    wind = Wind(angle=u(0, math.pi * 2), speed=u(0.5, 5))
    return Course(hole=hole, hills=hills, sand_traps=sand, water_hazards=water, wind=wind)


def safe_drop_location(course: Course, rng: random.Random,
                       max_attempts: int = 80) -> np.ndarray:
    """Random dry spot away from the start band and the hole."""
    for _ in range(max_attempts):
        nx = rng.uniform(ROUGH_ZONE + 160, WIDTH - ROUGH_ZONE - 160)
        ny = rng.uniform(160, HEIGHT - 160)
        if (not course.in_water(nx, ny) and not too_close_to_start(ny)
                and course.distance_to_hole(nx, ny) > DROP_HOLE_CLEARANCE):
            return np.array([nx, ny])
    return np.array([WIDTH / 2, HEIGHT / 2])
