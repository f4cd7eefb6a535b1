"""
Chat command grammar:  <prefix> <lane:a-z> <power:+-integer>

Anything that does not match is ignored; the sender gets no error.
"""

import json
import logging
import math
import re
import string
from dataclasses import dataclass
from typing import Any, Optional

from physics import POWER_MAX

logger = logging.getLogger(__name__)

LANES: str = string.ascii_lowercase   # a = far left ... z = far right
DEFAULT_PREFIX: str = "!putt"

_POWER_JUNK = re.compile(r"[^\-0-9]")
_LEADING_INT = re.compile(r"-?\d+")


@dataclass(frozen=True)
class PuttCommand:
    player: str
    lane: str
    power: int

    @property
    def lane_index(self) -> int:
        return LANES.index(self.lane)

    @property
    def angle(self) -> float:
        return lane_angle(self.lane)


@dataclass(frozen=True)
class ChatMessage:
    user: str
    text: str


def lane_angle(lane: str) -> float:
    """Launch angle in radians: 'a' -> pi (left), 'z' -> 0 (right)."""
    idx = LANES.index(lane.lower())
    return math.pi - math.pi * idx / (len(LANES) - 1)


def parse_power(token: str) -> int:
    """Leading integer of the token after dropping everything but digits and '-'."""
    m = _LEADING_INT.match(_POWER_JUNK.sub("", token))
    return int(m.group()) if m else 1


def parse_command(player: str, text: str, prefix: str = DEFAULT_PREFIX,
                  power_max: int = POWER_MAX) -> Optional[PuttCommand]:
    if not player:
        return None
    msg = (text or "").strip()
    if not msg.lower().startswith(prefix.lower()):
        return None
    parts = msg.split()
    if len(parts) < 3:
        logger.debug("Ignoring short command from %s: %r", player, msg)
        return None
    lane = parts[1].lower()
    if len(lane) != 1 or lane not in LANES:
        logger.debug("Ignoring bad lane from %s: %r", player, parts[1])
        return None
    power = max(-power_max, min(power_max, parse_power(parts[2])))
    return PuttCommand(player=player.lower(), lane=lane, power=power)


def decode_chat_payload(raw: Any) -> Optional[ChatMessage]:
    """Accept a relay payload (JSON text or dict) with user/username and text/message."""
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
    if not isinstance(raw, dict):
        return None
    user = raw.get("user", raw.get("username"))
    text = raw.get("text", raw.get("message"))
    if not isinstance(user, str) or not isinstance(text, str):
        return None
    return ChatMessage(user=user, text=text)
