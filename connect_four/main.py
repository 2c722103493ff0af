import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from connect_four.api.websocket_manager import manager
from connect_four.core.config import configure_logging, registry
from connect_four.schemas.client_schema import SettingsResponse

logger = logging.getLogger(__name__)

# --- LIFESPAN MANAGER ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info("Connect Four ready (default players: %s vs %s)", *registry.game.players)
    yield
    # Shutdown: abort every live game and release its solver
    await manager.shutdown()
# -------------------------------------------------

app = FastAPI(title="Connect Four", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"], # Allow Vite (5173) and React default (3000)
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.get("/settings", response_model=SettingsResponse)
async def get_settings():
    """Returns the default game settings and the available difficulty levels."""
    game = registry.game
    return SettingsResponse(
        players=game.players,
        difficulty=game.difficulty,
        delay_enabled=game.delay_enabled,
        thinking_delay=game.thinking_delay,
        difficulties={key.value: policy.label for key, policy in registry.difficulties.items()},
        solver_max_nodes=registry.solver.max_nodes,
    )

@app.websocket("/ws")
async def game_websocket(websocket: WebSocket):
    await manager.handle_game_session(websocket)
