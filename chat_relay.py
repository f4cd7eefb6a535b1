"""
Chat relay client.

Connects to a local relay that forwards chat as JSON {user, text}
(or {username, message}) and hands every line to a callback. Losing or
never finding the relay only logs a warning; the game keeps running and
commands can still be injected by hand.
"""

import asyncio
import logging
from typing import Callable

import websockets
from websockets.exceptions import InvalidURI, WebSocketException

from commands import decode_chat_payload

logger = logging.getLogger(__name__)

RETRY_DELAY = 5.0
MAX_RETRY_DELAY = 60.0


async def run_chat_relay(url: str, on_message: Callable[[str, str], object],
                         retry_delay: float = RETRY_DELAY) -> None:
    """Consume the relay forever, reconnecting with backoff."""
    if not url:
        logger.warning("No chat relay configured (PUTT_RELAY_URL); "
                       "use /api/command to inject commands")
        return

    delay = retry_delay
    while True:
        try:
            async with websockets.connect(url) as ws:
                logger.info("Connected to chat relay %s", url)
                delay = retry_delay
                async for raw in ws:
                    msg = decode_chat_payload(raw)
                    if msg is None:
                        logger.debug("Ignoring relay payload: %r", raw)
                        continue
                    try:
                        on_message(msg.user, msg.text)
                    except Exception:
                        logger.exception("Chat handler failed for %r", msg)
        except asyncio.CancelledError:
            raise
        except InvalidURI:
            logger.warning("Chat relay URL %r is invalid; relay disabled", url)
            return
        except (WebSocketException, OSError) as e:
            logger.warning("Chat relay %s unavailable (%s); retrying in %.0fs", url, e, delay)
        await asyncio.sleep(delay)
        delay = min(delay * 2, MAX_RETRY_DELAY)
