"""
WebSocket Manager - the browser as a Visual Adapter

Each WebSocket connection gets its own GameSession:
- Client actions (MOVE, SETTINGS, RESET) are forwarded to the session
- Orchestrator commands are pushed to the client as JSON messages
- The drop animation is paced server side, so the turn loop never waits on the client
"""

import asyncio
import itertools
import logging
from typing import Dict, Sequence

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from connect_four.core.config import GameSettings, registry
from connect_four.engine.board import ROWS, GameOutcome
from connect_four.models.enums import Piece
from connect_four.schemas.client_schema import (
    EvaluationMessage,
    MoveAction,
    ResetAction,
    SettingsAction,
    client_action_adapter,
)
from connect_four.services.game_session import GameSession
from connect_four.services.visual_adapter import VisualAdapter

logger = logging.getLogger(__name__)


class WebSocketVisualAdapter(VisualAdapter):
    def __init__(self, websocket: WebSocket, drop_seconds_per_row: float = 0.12):
        self.websocket = websocket
        self.drop_seconds_per_row = drop_seconds_per_row

    async def enable_input(self):
        await self.websocket.send_json({"type": "INPUT", "enabled": True})

    async def disable_input(self):
        await self.websocket.send_json({"type": "INPUT", "enabled": False})

    async def animate_drop(self, column: int, row: int, piece: Piece):
        await self.websocket.send_json({
            "type": "DROP",
            "column": column,
            "row": row,
            "player": int(piece),
        })
        # The piece falls from above the top row down to its slot
        await asyncio.sleep((ROWS - row) * self.drop_seconds_per_row)

    async def show_thinking_indicator(self, sweep: Sequence[int]):
        await self.websocket.send_json({"type": "THINKING_START", "sweep": list(sweep)})

    async def hide_thinking_indicator(self):
        await self.websocket.send_json({"type": "THINKING_END"})

    async def show_game_over(self, outcome: GameOutcome):
        await self.websocket.send_json({
            "type": "GAME_OVER",
            "status": outcome.status.value,
            "winner": int(outcome.winner) if outcome.winner is not None else None,
            "message": f"GAME OVER: {outcome.describe()}",
        })

    async def update_evaluation_display(self, scores: Dict[int, float], depth: int):
        message = EvaluationMessage(scores=scores, depth=depth)
        await self.websocket.send_json(message.model_dump(mode="json"))

    async def show_error(self, message: str):
        await self.websocket.send_json({"type": "ERROR", "message": message})


class ConnectionManager:
    def __init__(self):
        # Maps session id -> GameSession of a connected client
        self.active_sessions: Dict[int, GameSession] = {}
        self._ids = itertools.count(1)

    def _settings_from_query(self, websocket: WebSocket) -> GameSettings:
        """Players come from ?p1=human&p2=computer, everything else from the defaults."""
        defaults = registry.game
        players = (
            websocket.query_params.get("p1", defaults.players[0]),
            websocket.query_params.get("p2", defaults.players[1]),
        )
        return GameSettings(**{**defaults.model_dump(), "players": players})

    async def handle_game_session(self, websocket: WebSocket):
        await websocket.accept()
        try:
            settings = self._settings_from_query(websocket)
        except ValidationError as e:
            logger.warning("Rejecting connection with bad players: %s", e)
            await websocket.close(code=4400)
            return

        session_id = next(self._ids)
        session = GameSession(WebSocketVisualAdapter(websocket, settings.drop_seconds_per_row), settings)
        self.active_sessions[session_id] = session

        try:
            await session.start()
            while True:
                data = await websocket.receive_text()
                try:
                    action = client_action_adapter.validate_json(data)
                except ValidationError as e:
                    logger.warning("Session %d: invalid client message %r (%s)", session_id, data, e.error_count())
                    continue

                if isinstance(action, MoveAction):
                    session.column_clicked(action.column)
                elif isinstance(action, SettingsAction):
                    session.settings_changed(action.difficulty, action.delay_enabled)
                elif isinstance(action, ResetAction):
                    await session.reset_requested()

        except WebSocketDisconnect:
            logger.info("Session %d: client disconnected", session_id)
        finally:
            try:
                await session.stop()
            finally:
                self.active_sessions.pop(session_id, None)

    async def shutdown(self):
        for session in list(self.active_sessions.values()):
            await session.stop()
        self.active_sessions.clear()


# Singleton instance
manager = ConnectionManager()
