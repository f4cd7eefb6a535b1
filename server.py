"""
Chat Putt Server — Layer 3 (FastAPI + WebSocket)

Runs the fixed-rate simulation loop, broadcasts frames to overlay clients
over WebSocket, consumes chat from the relay and exposes manual triggers.
"""

import asyncio
import json
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional, Union

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from chat_relay import run_chat_relay
from config import PuttConfig
from controller import PuttController
import physics as _phys
from scheduler import AsyncioScheduler
from shot_presets import ShotPreset
from storage import JsonFileStore
from terrain import WIDTH, HEIGHT, HOLE_RADIUS

logger = logging.getLogger(__name__)

# ── Controller ──────────────────────────────────────────────────────────────

config = PuttConfig.from_env()
ctrl = PuttController(config, store=JsonFileStore(config.store_path))


# ── Lifespan (startup/shutdown) ─────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.basicConfig(level=config.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    ctrl.scheduler = AsyncioScheduler(asyncio.get_running_loop())
    loop_task = asyncio.create_task(game_loop())
    relay_task = asyncio.create_task(run_chat_relay(config.relay_url, ctrl.handle_chat))
    yield
    loop_task.cancel()
    relay_task.cancel()


app = FastAPI(lifespan=lifespan)

# ── Client state ────────────────────────────────────────────────────────────

clients: list[WebSocket] = []

# Scenario map (demo triggers)
SCENARIOS = {
    "1": (ShotPreset.scenario_1_sink,       "1: Sink"),
    "2": (ShotPreset.scenario_2_fast_pass,  "2: Fast pass"),
    "3": (ShotPreset.scenario_3_splash,     "3: Splash"),
    "4": (ShotPreset.scenario_4_sand,       "4: Sand"),
    "5": (ShotPreset.scenario_5_bank,       "5: Bank"),
}

# ── Physics params (live tuning) ────────────────────────────────────────────

PHYSICS_PARAMS = [
    ("AIR_DRAG",         "Grass Drag",     0.90,  0.999, 0.001),
    ("SAND_DRAG",        "Sand Drag",      0.50,  0.99,  0.01),
    ("STOP_SPEED",       "Stop Speed",     0.01,  2.0,   0.01),
    ("MAX_LIFE",         "Max Life (s)",   1.0,  20.0,   0.5),
    ("CAPTURE_SPEED",    "Capture Speed",  0.5,  20.0,   0.5),
    ("WALL_RESTITUTION", "Wall Bounce",    0.0,   1.0,   0.01),
    ("SLOPE_GAIN",       "Slope Gain",     0.0,   2.0,   0.02),
    ("LAUNCH_SPEED",     "Launch Speed",   5.0, 100.0,   1.0),
    ("WIND_FACTOR",      "Wind Factor",    0.0,   1.0,   0.01),
]

PARAM_DEFAULTS = {attr: getattr(_phys, attr) for attr, *_ in PHYSICS_PARAMS}

# ── Async game loop ─────────────────────────────────────────────────────────

TARGET_FPS = 60
FRAME_DT = 1.0 / TARGET_FPS


async def game_loop():
    """Main game loop running at ~60 fps."""
    last_time = time.perf_counter()

    while True:
        now = time.perf_counter()
        dt = now - last_time
        last_time = now

        try:
            ctrl.step(dt)
            if clients:
                await _broadcast(_build_frame_message())
            else:
                ctrl.pending_events.clear()
        except Exception:
            logger.exception("Game loop frame failed; continuing")

        # Sleep to maintain target FPS
        elapsed = time.perf_counter() - now
        sleep_time = FRAME_DT - elapsed
        if sleep_time > 0:
            await asyncio.sleep(sleep_time)
        else:
            await asyncio.sleep(0)


async def _broadcast(message: str) -> None:
    dead: list[WebSocket] = []
    for ws in clients:
        try:
            await ws.send_text(message)
        except Exception:
            dead.append(ws)
    for ws in dead:
        if ws in clients:
            clients.remove(ws)


def _build_frame_message() -> str:
    """Serialize current state plus drained events into a JSON frame message."""
    frame = {
        "type": "frame",
        "tick": ctrl.tick_count,
        "state": ctrl.get_state(),
        "events": ctrl.drain_events(),
        "sounds": [{"type": ev["type"], "player": ev["player"]} for ev in ctrl.physics_events],
    }
    return json.dumps(frame, separators=(',', ':'))


# ── Physics params helpers ──────────────────────────────────────────────────

def _get_params_data() -> list:
    """Return all physics params with current values."""
    result = []
    for attr, label, mn, mx, step in PHYSICS_PARAMS:
        result.append({
            "attr": attr, "label": label,
            "value": round(getattr(_phys, attr), 6),
            "min": mn, "max": mx, "step": step,
        })
    return result


def _adjust_param(idx: int, direction: int, fine: bool) -> Optional[float]:
    if not 0 <= idx < len(PHYSICS_PARAMS):
        return None
    attr, label, mn, mx, step = PHYSICS_PARAMS[idx]
    s = step / 10.0 if fine else step
    new_val = max(mn, min(mx, getattr(_phys, attr) + direction * s))
    setattr(_phys, attr, new_val)
    return new_val


def _reset_params() -> None:
    for attr, dflt in PARAM_DEFAULTS.items():
        setattr(_phys, attr, dflt)


# ── WebSocket endpoint ──────────────────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    clients.append(ws)

    # Send init message with playfield constants
    await ws.send_text(json.dumps({
        "type": "init",
        "width": WIDTH,
        "height": HEIGHT,
        "ball_radius": _phys.BALL_RADIUS,
        "hole_radius": HOLE_RADIUS,
        "tick_rate": _phys.TICK_RATE,
        "banner_seconds": ctrl.BANNER_SECONDS,
        "winners_seconds": ctrl.WINNERS_SECONDS,
        "scoring_mode": config.scoring_mode.value,
        "state": ctrl.get_state(),
    }))

    try:
        while True:
            data = await ws.receive_text()
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if not isinstance(msg, dict):
                continue

            cmd = msg.get("cmd", "")
            if cmd == "chat":
                ctrl.handle_chat(str(msg.get("user", "")), str(msg.get("text", "")))
            elif cmd == "seagull":
                ctrl.spawn_seagull(manual=True)
            elif cmd == "rarity":
                try:
                    ctrl.set_seagull_rarity(msg.get("value", "rare"))
                except (TypeError, ValueError):
                    continue
            elif cmd == "reset_scores":
                ctrl.reset_scores()
            elif cmd == "add_player":
                ctrl.add_test_player(str(msg.get("name", "Tester")))
            elif cmd == "scenario" and str(msg.get("key", "")) in SCENARIOS:
                fn, label = SCENARIOS[str(msg["key"])]
                ctrl.load_scenario(fn, label)
            elif cmd == "get_state":
                await ws.send_text(json.dumps({"type": "state", "data": ctrl.get_state()}))
            elif cmd == "get_params":
                await ws.send_text(json.dumps({"type": "params", "data": _get_params_data()}))
            elif cmd == "adjust_param":
                try:
                    idx = int(msg.get("index", 0))
                    direction = int(msg.get("direction", 0))
                except (TypeError, ValueError):
                    continue
                new_val = _adjust_param(idx, direction, bool(msg.get("fine", False)))
                if new_val is not None:
                    await ws.send_text(json.dumps({
                        "type": "param_update",
                        "index": idx,
                        "value": round(new_val, 6),
                    }))
            elif cmd == "reset_params":
                _reset_params()
                await ws.send_text(json.dumps({"type": "params", "data": _get_params_data()}))
    except WebSocketDisconnect:
        pass
    finally:
        if ws in clients:
            clients.remove(ws)


# ── HTTP triggers ───────────────────────────────────────────────────────────

class ChatIn(BaseModel):
    user: str = "Tester"
    text: str


class RarityIn(BaseModel):
    value: Union[int, str]


class PlayerIn(BaseModel):
    name: str = "Tester"


@app.get("/api/state")
async def get_state():
    return ctrl.get_state()


@app.post("/api/command")
async def post_command(body: ChatIn):
    return {"accepted": ctrl.handle_chat(body.user, body.text)}


@app.post("/api/seagull")
async def post_seagull():
    return {"spawned": ctrl.spawn_seagull(manual=True)}


@app.put("/api/seagull/rarity")
async def put_rarity(body: RarityIn):
    try:
        tier, prob = ctrl.set_seagull_rarity(body.value)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"tier": tier, "probability": prob}


@app.post("/api/reset-scores")
async def post_reset_scores():
    ctrl.reset_scores()
    return {"ok": True}


@app.post("/api/players")
async def post_player(body: PlayerIn):
    return ctrl.add_test_player(body.name).to_dict()


@app.post("/api/scenario/{key}")
async def post_scenario(key: str):
    if key not in SCENARIOS:
        raise HTTPException(status_code=404, detail=f"unknown scenario {key!r}")
    fn, label = SCENARIOS[key]
    ctrl.load_scenario(fn, label)
    return {"scenario": label}


# ── Run with uvicorn ────────────────────────────────────────────────────────

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host=config.host, port=config.port, reload=False)
