"""
Game Session - owns one playable game and its reset cycle

The session wires a Board, a Solver Channel, an Abort Token and a Move
Orchestrator together and runs the orchestrator as a background task. Reset
never kills that task: it sets the Abort Token, lets the orchestrator notice it
on its next wake, closes the channel and builds everything again from scratch.
"""

import asyncio
import logging
import random
from typing import Callable, Dict, Optional

from connect_four.core.abort import AbortToken
from connect_four.core.config import GameSettings, registry
from connect_four.core.errors import ConnectFourError
from connect_four.engine.board import Board
from connect_four.engine.selector import DifficultyPolicy
from connect_four.models.enums import Difficulty
from connect_four.services.orchestrator import MoveOrchestrator
from connect_four.services.solver_channel import SolverChannel, create_channel
from connect_four.services.visual_adapter import VisualAdapter

logger = logging.getLogger(__name__)


class GameSession:
    def __init__(
        self,
        visual: VisualAdapter,
        settings: Optional[GameSettings] = None,
        channel_factory: Optional[Callable[[], SolverChannel]] = None,
        policies: Optional[Dict[Difficulty, DifficultyPolicy]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.visual = visual
        self.settings = (settings or registry.game).model_copy()
        self.channel_factory = channel_factory or create_channel
        self.policies = policies
        self.rng = rng

        self.board: Optional[Board] = None
        self.channel: Optional[SolverChannel] = None
        self.abort: Optional[AbortToken] = None
        self.orchestrator: Optional[MoveOrchestrator] = None
        self.task: Optional[asyncio.Task] = None
        self.error: Optional[ConnectFourError] = None

    @property
    def is_running(self) -> bool:
        return self.task is not None and not self.task.done()

    async def start(self):
        if self.is_running:
            raise RuntimeError("Game session is already running")

        self.abort = AbortToken()
        self.board = Board()
        self.error = None
        self.channel = self.channel_factory()
        await self.channel.open()
        self.orchestrator = MoveOrchestrator(
            self.board,
            self.channel,
            self.visual,
            self.settings,
            self.abort,
            policies=self.policies,
            rng=self.rng,
        )
        logger.info("🚀 Starting game session (%s vs %s)", *self.settings.players)
        self.task = asyncio.create_task(self._run(self.orchestrator), name="move-orchestrator")

    async def _run(self, orchestrator: MoveOrchestrator):
        try:
            await orchestrator.run()
        except ConnectFourError as e:
            # Halted until the user resets, never retried
            logger.exception("❌ Game session halted: %s", e)
            self.error = e
            if not orchestrator.abort.is_set:
                await self.visual.show_error(str(e))

    async def stop(self):
        """Abort the current game and release its solver."""
        if self.abort is not None:
            self.abort.set()
        try:
            if self.task is not None:
                task = self.task
                # Only the abort token ends the orchestrator, even if our caller is cancelled
                await asyncio.wait([task])
                if not task.cancelled() and task.exception() is not None:
                    logger.error("Orchestrator task ended with an unexpected error", exc_info=task.exception())
                self.task = None
        finally:
            channel, self.channel = self.channel, None
            self.orchestrator = None
            if channel is not None:
                await channel.close()

    async def reset(self):
        logger.info("🔄 Resetting game session")
        await self.stop()
        await self.start()

    async def wait_finished(self):
        if self.task is not None:
            await asyncio.shield(self.task)

    # --- Visual Adapter events ---

    def column_clicked(self, column: int) -> bool:
        if self.orchestrator is None:
            return False
        return self.orchestrator.column_clicked(column)

    def settings_changed(self, difficulty: Difficulty, delay_enabled: bool):
        self.settings = self.settings.model_copy(update={"difficulty": difficulty, "delay_enabled": delay_enabled})
        if self.orchestrator is not None:
            self.orchestrator.settings_changed(difficulty, delay_enabled)

    async def reset_requested(self):
        await self.reset()
