"""
Scoreboard records, leaderboard ranking and the two scoring policies.

ContinuousScoring — every sink starts a new hole for everyone.
RoundScoring      — the first sink opens a timed round; up to four
                    distinct finishers, then the field is cleared.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from config import ScoringMode

logger = logging.getLogger(__name__)

SCORES_KEY = "putt.scores"
HOLE_IN_ONES_KEY = "putt.hole_in_ones"
LAST_WINNERS_KEY = "putt.last_winners"

NO_HOLES_PENALTY = 9999.0


# ──────────────────────────────────────────────
# Persisted records
# ──────────────────────────────────────────────
def _count(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"expected a number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"expected a finite number, got {value!r}")
    if value < 0 or value != int(value):
        raise ValueError(f"expected a non-negative integer, got {value!r}")
    return int(value)


@dataclass
class ScoreEntry:
    strokes: int = 0
    holes: int = 0

    @property
    def average(self) -> float:
        """Strokes per hole made; players without a hole sort last."""
        if self.holes == 0:
            return NO_HOLES_PENALTY
        return self.strokes / self.holes

    @property
    def empty(self) -> bool:
        return self.strokes == 0 and self.holes == 0

    @classmethod
    def from_raw(cls, raw: Any) -> "ScoreEntry":
        if not isinstance(raw, dict):
            raise ValueError(f"score entry must be an object, got {raw!r}")
        return cls(strokes=_count(raw.get("strokes", 0)), holes=_count(raw.get("holes", 0)))

    def to_raw(self) -> dict:
        return {"strokes": self.strokes, "holes": self.holes}


def load_scores(raw: Any) -> Dict[str, ScoreEntry]:
    if raw is None:
        return {}
    try:
        if not isinstance(raw, dict):
            raise ValueError("scoreboard must be an object")
        return {str(user): ScoreEntry.from_raw(entry) for user, entry in raw.items()}
    except ValueError as e:
        logger.warning("Discarding malformed scoreboard: %s", e)
        return {}


def load_tally(raw: Any) -> Dict[str, int]:
    if raw is None:
        return {}
    try:
        if not isinstance(raw, dict):
            raise ValueError("hole-in-one tally must be an object")
        return {str(user): _count(n) for user, n in raw.items()}
    except ValueError as e:
        logger.warning("Discarding malformed hole-in-one tally: %s", e)
        return {}


def load_winners(raw: Any) -> List[str]:
    if raw is None:
        return []
    if not isinstance(raw, list) or not all(isinstance(u, str) for u in raw):
        logger.warning("Discarding malformed last-round winners: %r", raw)
        return []
    return list(raw)


def rank_leaderboard(entries: Dict[str, ScoreEntry]) -> List[Tuple[str, ScoreEntry]]:
    """Best average first; then more holes, fewer strokes, handle."""
    rows = [(user, e) for user, e in entries.items() if not e.empty]
    rows.sort(key=lambda r: (r[1].average, -r[1].holes, r[1].strokes, r[0]))
    return rows


def rank_hole_in_ones(tally: Dict[str, int]) -> List[Tuple[str, int]]:
    return sorted(tally.items(), key=lambda r: (-r[1], r[0]))


class Scoreboard:
    """Cumulative strokes/holes, hole-in-one tally and last round's winners."""

    def __init__(self, store):
        self.store = store
        self.entries: Dict[str, ScoreEntry] = {}
        self.hole_in_ones: Dict[str, int] = {}
        self.last_round_winners: List[str] = []
        self.load()

    def load(self) -> None:
        self.entries = load_scores(self._get(SCORES_KEY))
        self.hole_in_ones = load_tally(self._get(HOLE_IN_ONES_KEY))
        self.last_round_winners = load_winners(self._get(LAST_WINNERS_KEY))

    def _get(self, key: str) -> Any:
        try:
            return self.store.get(key)
        except Exception:
            logger.exception("Reading %s failed", key)
            return None

    def _put(self, key: str, value: Any) -> None:
        try:
            self.store.set(key, value)
        except Exception:
            logger.exception("Saving %s failed", key)

    def save_scores(self) -> None:
        self._put(SCORES_KEY, {u: e.to_raw() for u, e in self.entries.items()})

    def save_hole_in_ones(self) -> None:
        self._put(HOLE_IN_ONES_KEY, dict(self.hole_in_ones))

    def save_last_winners(self) -> None:
        self._put(LAST_WINNERS_KEY, list(self.last_round_winners))

    def entry(self, user: str) -> ScoreEntry:
        if user not in self.entries:
            self.entries[user] = ScoreEntry()
        return self.entries[user]

    def add_stroke(self, user: str) -> None:
        self.entry(user).strokes += 1
        self.save_scores()

    def add_hole(self, user: str) -> None:
        self.entry(user).holes += 1
        self.save_scores()

    def add_hole_in_one(self, user: str) -> None:
        self.hole_in_ones[user] = self.hole_in_ones.get(user, 0) + 1
        self.save_hole_in_ones()

    def set_last_winners(self, winners: List[str]) -> None:
        self.last_round_winners = list(winners)
        self.save_last_winners()

    def reset(self) -> None:
        self.entries = {}
        self.hole_in_ones = {}
        self.last_round_winners = []
        self.save_scores()
        self.save_hole_in_ones()
        self.save_last_winners()
        logger.info("Scoreboard reset")


# ──────────────────────────────────────────────
# Policies
# ──────────────────────────────────────────────
class ContinuousScoring:
    mode = ScoringMode.CONTINUOUS

    def __init__(self, scoreboard: Scoreboard):
        self.scoreboard = scoreboard

    @property
    def active(self) -> bool:
        return False

    def on_stroke(self, user: str) -> None:
        self.scoreboard.add_stroke(user)

    def on_capture(self, ctrl, user: str) -> None:
        self.scoreboard.add_hole(user)
        entry = self.scoreboard.entry(user)
        ctrl.banner("capture", f"{user} sank it! ({entry.strokes} strokes, {entry.holes} holes)")
        ctrl.new_hole()

    def winners_display(self) -> List[str]:
        return []

    def on_scores_reset(self) -> None:
        pass

    def to_dict(self) -> dict:
        return {"mode": self.mode.value}


class RoundScoring:
    mode = ScoringMode.ROUNDS

    def __init__(self, scoreboard: Scoreboard, round_seconds: float = 30.0,
                 max_finishers: int = 4):
        self.scoreboard = scoreboard
        self.round_seconds = round_seconds
        self.max_finishers = max_finishers
        self.active = False
        self.finishers: List[str] = []
        self.per_hole_strokes: Dict[str, int] = {}
        self.started_at: Optional[float] = None
        self._timer = None

    def on_stroke(self, user: str) -> None:
        self.scoreboard.add_stroke(user)
        self.per_hole_strokes[user] = self.per_hole_strokes.get(user, 0) + 1

    def on_capture(self, ctrl, user: str) -> None:
        self.scoreboard.add_hole(user)

        if self.per_hole_strokes.get(user, 0) == 1:
            self.scoreboard.add_hole_in_one(user)
            ctrl.banner("hole_in_one", f"{user} scored a HOLE IN ONE!")

        if not self.active:
            self.active = True
            self.finishers = [user]
            self.started_at = ctrl.clock()
            self._timer = ctrl.scheduler.call_later(self.round_seconds, lambda: self.finalize(ctrl))
            logger.info("Round started by %s (%.0fs)", user, self.round_seconds)
            ctrl.banner("round_start",
                        f"{user} starts the round! {self.round_seconds:.0f}s to get in "
                        f"(next {self.max_finishers - 1} finishers).",
                        countdown=self.round_seconds)
        elif len(self.finishers) < self.max_finishers and user not in self.finishers:
            self.finishers.append(user)
            ctrl.banner("round_progress", f"{user} finished #{len(self.finishers)}!")
        else:
            return

        if len(self.finishers) >= self.max_finishers:
            self.finalize(ctrl)

    def finalize(self, ctrl) -> bool:
        """End the active round. Safe to call from the timer and the
        finisher path; only the first call does anything."""
        if not self.active:
            return False
        self.active = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        winners = list(self.finishers)
        self.scoreboard.set_last_winners(winners)
        logger.info("Round over: %s", winners)
        ctrl.announce_winners(winners)

        self.finishers = []
        self.per_hole_strokes = {}
        self.started_at = None
        ctrl.clear_field()
        ctrl.new_hole()
        ctrl.scheduler.call_later(ctrl.WINNERS_SECONDS,
                                  lambda: ctrl.banner("info", "Next round begins when someone putts!"))
        return True

    def time_left(self, now: float) -> Optional[float]:
        if not self.active or self.started_at is None:
            return None
        return max(0.0, self.round_seconds - (now - self.started_at))

    def winners_display(self) -> List[str]:
        return list(self.finishers) if self.finishers else list(self.scoreboard.last_round_winners)

    def on_scores_reset(self) -> None:
        pass   # per-hole strokes only reset when the round ends

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "active": self.active,
            "finishers": list(self.finishers),
            "max_finishers": self.max_finishers,
        }


def make_scoring(mode: ScoringMode, scoreboard: Scoreboard, round_seconds: float = 30.0,
                 max_finishers: int = 4):
    if mode is ScoringMode.CONTINUOUS:
        return ContinuousScoring(scoreboard)
    return RoundScoring(scoreboard, round_seconds, max_finishers)
