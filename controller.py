"""
PuttController — Layer 2 (Game Logic)

Owns all simulation state (balls, shots, course, seagull, scoring) and the
fixed-rate tick driver. Communicates with Layer 3 (server.py / overlay
clients) through two queues:
  - pending_events  : presentation commands (banner, winners, new_hole, …)
  - physics_events  : raw shot events of the last tick (splash, stopped, capture)

Layer 3 calls:
  ctrl.step(dt)                   — advance whole ticks for the elapsed frame time
  ctrl.handle_chat(user, text)    — apply a chat command immediately
  ctrl.get_state()                — JSON-ready snapshot for rendering
"""

import logging
import random
from typing import Dict, List, Optional, Union

from commands import parse_command
from config import PuttConfig, resolve_rarity
from physics import Ball, PuttPhysics, Shot, TICK_DT
from scheduler import TickScheduler
from scoring import Scoreboard, make_scoring, rank_hole_in_ones, rank_leaderboard
from seagull import Seagull, spawn_seagull, update_seagull
from storage import MemoryStore
from terrain import generate_course

logger = logging.getLogger(__name__)


class PuttController:
    """Layer 2: simulation context + tick driver."""

    # ── Class-level constants ─────────────────────────────────────────────────
    TICK_DT             = TICK_DT
    MAX_TICKS_PER_FRAME = 5
    BANNER_SECONDS      = 2.2
    WINNERS_SECONDS     = 8.0

    # ── Constructor ───────────────────────────────────────────────────────────

    def __init__(self, config: Optional[PuttConfig] = None, store=None,
                 scheduler=None, rng: Optional[random.Random] = None):
        self.config    = config or PuttConfig()
        self.rng       = rng if rng is not None else random.Random()
        self.scheduler = scheduler if scheduler is not None else TickScheduler()
        self.store     = store if store is not None else MemoryStore()

        # Physics
        self.engine = PuttPhysics()
        self.balls: Dict[str, Ball] = {}
        self.shots: List[Shot] = []
        self.course = generate_course(self.rng)
        self.hole_number = 1

        # Seagull
        self.seagull: Optional[Seagull] = None
        self.seagull_rarity, self.seagull_probability = resolve_rarity(self.config.seagull_rarity)

        # Scoring
        self.scoreboard = Scoreboard(self.store)
        self.scoring = make_scoring(self.config.scoring_mode, self.scoreboard,
                                    self.config.round_seconds, self.config.max_finishers)

        # Tick driver
        self.tick_count   = 0
        self._accumulator = 0.0

        # Event queues
        self.pending_events: List[dict] = []   # L3 presentation commands
        self.physics_events: List[dict] = []   # shot events of the last tick

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    def step(self, dt_frame: float) -> int:
        """Run as many fixed ticks as the frame time covers. Returns tick count."""
        self._accumulator += min(max(dt_frame, 0.0), self.MAX_TICKS_PER_FRAME * self.TICK_DT)
        ticks = 0
        while self._accumulator >= self.TICK_DT and ticks < self.MAX_TICKS_PER_FRAME:
            self._accumulator -= self.TICK_DT
            self._safe_tick()
            ticks += 1
        return ticks

    def _safe_tick(self) -> None:
        try:
            self.tick(self.TICK_DT)
        except Exception:
            logger.exception("Tick %d failed; continuing", self.tick_count)

    def tick(self, dt: float = TICK_DT) -> None:
        """One simulation tick: timers, seagull, shots, scoring reactions."""
        self.tick_count += 1
        self.scheduler.advance(dt)
        self.physics_events.clear()

        if (self.seagull is None and self.seagull_probability > 0
                and self.rng.random() < self.seagull_probability):
            self.spawn_seagull(manual=False)
        self._update_seagull(dt)

        self.engine.update(self.shots, self.balls, self.course, dt)
        for ev in self.engine.events:
            self.physics_events.append(ev)
            self._on_physics_event(ev)

    def _on_physics_event(self, ev: dict) -> None:
        player = ev["player"]
        if ev["type"] == "splash":
            self.banner("splash", f"{player} SPLASH!")
        elif ev["type"] == "capture":
            if player not in self.balls:   # field was cleared earlier in this tick
                self.scoreboard.add_hole(player)
                return
            logger.info("%s holed out on hole %d", player, self.hole_number)
            self.scoring.on_capture(self, player)

    # ──────────────────────────────────────────────────────────────────────────
    # Seagull
    # ──────────────────────────────────────────────────────────────────────────

    def spawn_seagull(self, manual: bool = True) -> bool:
        """Start a seagull visit. No-op while one is already on the field."""
        if self.seagull is not None:
            return False
        gull = spawn_seagull(self.balls, self.rng, manual)
        if gull is None:
            return False
        self.seagull = gull
        logger.info("Seagull spawned (manual=%s) targeting %s", manual, gull.target)
        self.banner("seagull_appear", "Manual seagull!" if manual else "A seagull appears!")
        return True

    def _update_seagull(self, dt: float) -> None:
        if self.seagull is None:
            return
        alive, events = update_seagull(self.seagull, self.balls, self.course, self.rng, dt)
        for ev in events:
            if ev["type"] == "seagull_drop":
                self.banner("seagull_drop", f"{ev['player']}'s ball dropped by seagull!")
        if alive and self.seagull.carrying:
            # The carry overrides physics for the stolen ball.
            target = self.seagull.target
            self.shots[:] = [s for s in self.shots if s.player != target]
        if not alive:
            self.seagull = None

    def set_seagull_rarity(self, value: Union[str, int]) -> tuple:
        self.seagull_rarity, self.seagull_probability = resolve_rarity(value)
        label = self.seagull_rarity.replace("_", " ").title()
        self.banner("info", f"Seagull rarity set to {label}")
        return self.seagull_rarity, self.seagull_probability

    # ──────────────────────────────────────────────────────────────────────────
    # Commands
    # ──────────────────────────────────────────────────────────────────────────

    def handle_chat(self, player: str, text: str) -> bool:
        """Apply a chat line. Returns True when a shot was launched."""
        cmd = parse_command(player, text, self.config.command_prefix)
        if cmd is None:
            return False
        ball = self.ensure_ball(cmd.player)
        if ball.moving:
            return False   # one shot in flight per player

        # A stroke counts even if the shot ends in the water.
        self.scoring.on_stroke(cmd.player)

        velocity = PuttPhysics.launch_velocity(cmd.angle, cmd.power, self.course.wind)
        ball.moving = True
        self.shots.append(Shot(cmd.player, ball.position.copy(), velocity))
        logger.debug("%s putts lane=%s power=%d", cmd.player, cmd.lane, cmd.power)
        return True

    # ──────────────────────────────────────────────────────────────────────────
    # Ball / course management
    # ──────────────────────────────────────────────────────────────────────────

    def ensure_ball(self, player: str) -> Ball:
        ball = self.balls.get(player)
        if ball is None:
            ball = Ball(player, color=f"hsl({self.rng.randrange(360)},70%,60%)")
            self.balls[player] = ball
            self.pending_events.append({"type": "spawn_ball", "ball": ball.to_dict()})
        return ball

    def add_test_player(self, name: str) -> Ball:
        player = (name or "tester").strip().lower() or "tester"
        ball = self.ensure_ball(player)
        self.scoreboard.entry(player)
        self.scoreboard.save_scores()
        self.banner("info", f"Added {name or player}")
        return ball

    def new_hole(self) -> None:
        """Fresh course; every ball back to the start, nothing in flight."""
        self.course = generate_course(self.rng)
        self.shots.clear()
        for ball in self.balls.values():
            ball.reset()
        self.hole_number += 1
        self.pending_events.append({"type": "new_hole", "hole": self.hole_number})

    def load_scenario(self, scenario_fn, label: str) -> None:
        """Swap in a shot-preset course and its launched ball (demo trigger)."""
        result = scenario_fn(run=False)
        self.clear_field()
        self.course = result["course"]
        self.balls.update(result["balls"])
        self.shots.extend(result["shots"])
        for ball in self.balls.values():
            self.pending_events.append({"type": "spawn_ball", "ball": ball.to_dict()})
        self.banner("info", f"Scenario {label}")

    def clear_field(self) -> None:
        """Remove every ball and shot; players rejoin with their next putt."""
        self.balls.clear()
        self.shots.clear()
        self.pending_events.append({"type": "clear_balls"})

    # ──────────────────────────────────────────────────────────────────────────
    # Scoring
    # ──────────────────────────────────────────────────────────────────────────

    def reset_scores(self) -> None:
        self.scoreboard.reset()
        self.scoring.on_scores_reset()
        self.pending_events.append({"type": "scores_reset"})

    def leaderboard(self) -> List[dict]:
        return [
            {"rank": i + 1, "player": user, "strokes": e.strokes, "holes": e.holes,
             "average": None if e.holes == 0 else round(e.average, 2)}
            for i, (user, e) in enumerate(rank_leaderboard(self.scoreboard.entries))
        ]

    def hole_in_one_board(self) -> List[dict]:
        return [{"rank": i + 1, "player": user, "count": n}
                for i, (user, n) in enumerate(rank_hole_in_ones(self.scoreboard.hole_in_ones))]

    def winners_display(self) -> List[str]:
        return self.scoring.winners_display()

    # ──────────────────────────────────────────────────────────────────────────
    # Presentation events
    # ──────────────────────────────────────────────────────────────────────────

    def clock(self) -> float:
        return self.scheduler.time()

    def banner(self, kind: str, text: str, **extra) -> None:
        logger.info("[%s] %s", kind, text)
        ev = {"type": "banner", "kind": kind, "text": text, "duration": self.BANNER_SECONDS}
        ev.update(extra)
        self.pending_events.append(ev)

    def announce_winners(self, winners: List[str]) -> None:
        self.pending_events.append({
            "type": "winners",
            "winners": list(winners),
            "duration": self.WINNERS_SECONDS,
        })

    def drain_events(self) -> List[dict]:
        events = self.pending_events
        self.pending_events = []
        return events

    def get_state(self) -> dict:
        """Snapshot of everything the overlay draws."""
        round_data = self.scoring.to_dict()
        time_left = getattr(self.scoring, "time_left", None)
        if time_left is not None:
            remaining = time_left(self.clock())
            round_data["time_left"] = None if remaining is None else round(remaining, 2)
        return {
            "tick": self.tick_count,
            "hole": self.hole_number,
            "course": self.course.to_dict(),
            "balls": [b.to_dict() for b in self.balls.values()],
            "shots": [s.to_dict() for s in self.shots],
            "seagull": self.seagull.to_dict() if self.seagull else None,
            "seagull_rarity": self.seagull_rarity,
            "round": round_data,
            "winners": self.winners_display(),
            "leaderboard": self.leaderboard(),
            "hole_in_ones": self.hole_in_one_board(),
        }
