"""FastAPI service exposing the particle life simulation to an external presenter."""
from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from starlette.websockets import WebSocketState

from .config import DEFAULT_CONFIG, SimConfig
from .force_table import ForceTable, MatrixLike
from .presets import get_preset, list_presets
from .scheduler import FrameScheduler
from .simulation import Simulation
from .store import Generation

logger = logging.getLogger(__name__)

# ============================================================================
# Pydantic Models
# ============================================================================

class ConfigUpdate(BaseModel):
    """Update configuration parameters."""
    colors_count: Optional[int] = Field(default=None, ge=1, le=64)
    n_particles: Optional[int] = Field(default=None, ge=0, le=20000)
    point_size: Optional[float] = Field(default=None, gt=0.0)
    damping: Optional[float] = Field(default=None, gt=0.0, le=1.0)
    frame_interval: Optional[float] = Field(default=None, ge=0.0)
    workers: Optional[int] = Field(default=None, ge=1, le=64)
    seed: Optional[int] = None
    reset_matrix: bool = False


class MatrixUpdate(BaseModel):
    """Replace the force table."""
    matrix: List[List[float]]


class RandomizeRequest(BaseModel):
    """Bounds for a random force table."""
    low: float = -1.0
    high: float = 1.0


# ============================================================================
# Global state
# ============================================================================

_config = DEFAULT_CONFIG
_simulation = Simulation(_config)
_state_lock = asyncio.Lock()
_websocket_clients: set = set()
_scheduler: Optional[FrameScheduler] = None


def _config_payload() -> Dict[str, Any]:
    config = _simulation.config
    return {
        "width": config.width,
        "height": config.height,
        "colors_count": config.colors_count,
        "n_particles": config.n_particles,
        "point_size": config.point_size,
        "damping": config.damping,
        "force_scale": config.force_scale,
        "frame_interval": config.frame_interval,
        "workers": config.workers,
        "seed": config.seed,
    }


def _state_payload() -> Dict[str, Any]:
    state = _simulation.get_state()
    state["matrix"] = _simulation.matrix.tolist()
    state["config"] = _config_payload()
    return state


def _rebuild(config: SimConfig, matrix: Optional[MatrixLike] = None) -> None:
    """Replace the running simulation; caller holds the state lock."""
    global _config, _simulation
    simulation = Simulation(config, matrix=matrix)
    _simulation.close()
    _config = config
    _simulation = simulation
    if _scheduler is not None:
        _scheduler.simulation = simulation


# ============================================================================
# Frame broadcast
# ============================================================================

async def _broadcast(generation: Generation) -> None:
    """Send the latest state to every connected client."""
    if not _websocket_clients:
        return

    async with _state_lock:
        message = {"type": "state", "payload": _state_payload()}

    dead_clients = set()
    for client in list(_websocket_clients):
        try:
            if client.client_state == WebSocketState.CONNECTED:
                await client.send_json(message)
            else:
                dead_clients.add(client)
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            logger.warning("Dropping client after send failure: %s: %s", type(exc).__name__, exc)
            dead_clients.add(client)

    if dead_clients:
        logger.debug("Removing %d dead clients", len(dead_clients))
    _websocket_clients.difference_update(dead_clients)


# ============================================================================
# FastAPI App with Lifespan
# ============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the frame scheduler on startup, stop it on shutdown."""
    global _scheduler, _state_lock
    _state_lock = asyncio.Lock()
    _scheduler = FrameScheduler(_simulation, on_frame=_broadcast, lock=_state_lock)
    _scheduler.start()
    logger.info("Background simulation task started")

    yield

    logger.info("Stopping background simulation task")
    await _scheduler.stop()
    _scheduler = None


app = FastAPI(title="Particle Life", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# REST Endpoints
# ============================================================================

@app.get("/health")
async def health() -> Dict[str, str]:
    """Health check."""
    return {"status": "ok"}


@app.get("/config")
async def get_config() -> Dict[str, Any]:
    """Get current configuration and matrix."""
    async with _state_lock:
        return {"config": _config_payload(), "matrix": _simulation.matrix.tolist()}


@app.post("/config")
async def update_config(config_update: ConfigUpdate) -> Dict[str, Any]:
    """Update configuration and restart simulation."""
    changes = config_update.model_dump(exclude_none=True)
    reset_matrix = changes.pop("reset_matrix", False)

    async with _state_lock:
        try:
            new_config = _config.replace(**changes)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        keep_matrix = not reset_matrix and new_config.colors_count == _config.colors_count
        _rebuild(new_config, _simulation.table if keep_matrix else None)
        return {"config": _config_payload(), "matrix": _simulation.matrix.tolist()}


@app.get("/state")
async def get_state() -> Dict[str, Any]:
    """Current generation, colors and matrix."""
    async with _state_lock:
        return _state_payload()


@app.post("/matrix")
async def update_matrix(matrix_update: MatrixUpdate) -> Dict[str, Any]:
    """Replace the force table; applies from the next step."""
    async with _state_lock:
        try:
            _simulation.set_matrix(matrix_update.matrix)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"matrix": _simulation.matrix.tolist()}


@app.post("/matrix/randomize")
async def randomize_matrix(request: Optional[RandomizeRequest] = None) -> Dict[str, Any]:
    """Replace the force table with random values."""
    request = request or RandomizeRequest()
    async with _state_lock:
        try:
            _simulation.randomize_matrix(request.low, request.high)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"matrix": _simulation.matrix.tolist()}


@app.post("/reset")
async def reset_simulation() -> Dict[str, str]:
    """Reset simulation to initial state."""
    async with _state_lock:
        _simulation.reset()
        return {"status": "reset"}


@app.get("/presets")
async def get_presets() -> List[Dict[str, Any]]:
    """List available presets."""
    return [
        {
            "name": p.name,
            "description": p.description,
            "colors_count": p.colors_count,
            "matrix": p.table.tolist(),
        }
        for p in list_presets()
    ]


@app.post("/presets/{name}")
async def apply_preset(name: str) -> Dict[str, Any]:
    """Apply a preset scenario, rebuilding when its colors count differs."""
    try:
        preset = get_preset(name)
    except ValueError as e:
        raise HTTPException(status_code=404, detail=str(e))

    async with _state_lock:
        _apply_preset(preset.name)
        return {
            "preset": preset.name,
            "config": _config_payload(),
            "matrix": _simulation.matrix.tolist(),
        }


def _apply_preset(name: str) -> None:
    preset = get_preset(name)
    if preset.colors_count == _config.colors_count:
        _simulation.set_matrix(preset.table)
    else:
        _rebuild(_config.replace(colors_count=preset.colors_count), preset.table)


# ============================================================================
# WebSocket
# ============================================================================

async def _handle_message(message: Dict[str, Any]) -> None:
    """Handle client commands; caller holds the state lock."""
    if not isinstance(message, dict):
        raise ValueError("Message must be a JSON object")
    msg_type = message.get("type")

    if msg_type == "update_matrix":
        matrix = message.get("matrix")
        if matrix is None:
            raise ValueError("Message missing 'matrix'")
        _simulation.set_matrix(ForceTable(matrix))

    elif msg_type == "randomize":
        _simulation.randomize_matrix(message.get("low", -1.0), message.get("high", 1.0))

    elif msg_type == "reset":
        _simulation.reset()

    elif msg_type == "use_preset":
        name = message.get("name")
        if name is None:
            raise ValueError("Message missing 'name'")
        _apply_preset(name)

    else:
        raise ValueError(f"Unknown message type: {msg_type!r}")


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint - clients subscribe to simulation updates and send commands."""
    await websocket.accept()

    async with _state_lock:
        initial = {"type": "state", "payload": _state_payload()}
    await websocket.send_json(initial)

    _websocket_clients.add(websocket)
    logger.info("WebSocket client connected, total clients: %d", len(_websocket_clients))

    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
                async with _state_lock:
                    await _handle_message(message)
                    reply = {"type": "state", "payload": _state_payload()}
            except (ValueError, TypeError) as exc:
                reply = {"type": "error", "detail": str(exc)}
            await websocket.send_json(reply)

    except WebSocketDisconnect as e:
        logger.info("WebSocket disconnected (code %s)", e.code)
    finally:
        _websocket_clients.discard(websocket)
        logger.info("WebSocket client removed, remaining clients: %d", len(_websocket_clients))
