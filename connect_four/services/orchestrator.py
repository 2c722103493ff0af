"""
Move Orchestrator - the turn state machine

A single driver loop owns the Board and the Evaluation Snapshot. It decides
whose turn it is, waits for the matching signal (a human click, or solver
readiness for a computer turn), applies the move, tells the solver about it
and waits for the drop animation before moving on.

A pump task runs alongside it, folding ply-tagged solver messages into the
snapshot. Both run on the same event loop, so state changes are sequential.

Every suspension races the session's Abort Token and the channel-failure
signal. An aborted session exits on wake without touching the board or the
channel again.
"""

import asyncio
import logging
import random
from typing import Dict, Optional

from connect_four.core.abort import AbortToken
from connect_four.core.config import GameSettings, registry
from connect_four.core.errors import ChannelFailure, ConnectFourError, ProtocolViolation, VisualFailure
from connect_four.engine.board import THINKING_SWEEP, Board
from connect_four.engine.evaluation import EvaluationSnapshot
from connect_four.engine.selector import DifficultyPolicy, select_move
from connect_four.models.enums import Difficulty, Piece, PlayerType, TurnStage
from connect_four.schemas.solver_messages import (
    EvaluationUpdate,
    MakeMove,
    MoveReply,
    NewGame,
    ReadinessUpdate,
)
from connect_four.services.solver_channel import SolverChannel
from connect_four.services.visual_adapter import VisualAdapter

logger = logging.getLogger(__name__)


class SessionAborted(Exception):
    """The session was discarded while the orchestrator was suspended."""


def _ignore_late_result(task: asyncio.Future):
    # Animations and timers of an aborted session finish on their own
    if not task.cancelled() and task.exception() is not None:
        logger.warning("Late completion of an aborted session failed: %r", task.exception())


class MoveOrchestrator:
    def __init__(
        self,
        board: Board,
        channel: SolverChannel,
        visual: VisualAdapter,
        settings: GameSettings,
        abort: AbortToken,
        policies: Optional[Dict[Difficulty, DifficultyPolicy]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.board = board
        self.channel = channel
        self.visual = visual
        self.settings = settings.model_copy()
        self.abort = abort
        self.policies = policies or registry.difficulties
        self.rng = rng or random.Random()

        self.stage = TurnStage.AWAITING_TURN
        self.evaluation = EvaluationSnapshot(ply=board.move_count)

        self._chosen_column: Optional[int] = None
        self._human_move: Optional[asyncio.Future] = None
        self._evaluation_changed = asyncio.Event()
        self._failure: Optional[ConnectFourError] = None
        self._failed = asyncio.Event()

    def player_type(self, piece: Piece) -> PlayerType:
        return self.settings.players[piece - 1]

    # --- Inbound events ---

    def column_clicked(self, column: int) -> bool:
        """Accepts a human move. Anything not playable right now is ignored."""
        if self.stage != TurnStage.AWAITING_HUMAN_INPUT or self._human_move is None or self._human_move.done():
            logger.debug("Ignoring click on column %s during %s", column, self.stage)
            return False
        if not self.board.can_play(column):
            logger.debug("Ignoring click on unplayable column %s", column)
            return False
        self._human_move.set_result(column)
        return True

    def settings_changed(self, difficulty: Difficulty, delay_enabled: bool):
        self.settings = self.settings.model_copy(update={"difficulty": difficulty, "delay_enabled": delay_enabled})
        # A pending readiness wait may be satisfied under the new delay setting
        self._evaluation_changed.set()

    # --- Driver loop ---

    async def run(self):
        pump = asyncio.create_task(self._pump_solver_messages(), name="solver-pump")
        try:
            await self.channel.send(NewGame())
            while self.stage != TurnStage.GAME_OVER:
                if self.abort.is_set:
                    raise SessionAborted()
                await self._step()
        except SessionAborted:
            logger.info("Session aborted at ply %d during %s", self.board.move_count, self.stage)
        finally:
            pump.cancel()
            await asyncio.gather(pump, return_exceptions=True)

    async def _step(self):
        if self.stage == TurnStage.AWAITING_TURN:
            await self._begin_turn()
        elif self.stage == TurnStage.AWAITING_HUMAN_INPUT:
            await self._await_human_input()
        elif self.stage == TurnStage.AWAITING_SOLVER_READINESS:
            await self._await_solver_readiness()
        elif self.stage == TurnStage.APPLYING_MOVE:
            await self._apply_move()

    async def _begin_turn(self):
        if self.board.is_game_over:
            self.stage = TurnStage.GAME_OVER
            logger.info("🏁 Game over after %d moves: %s", self.board.move_count, self.board.outcome.describe())
            await self.visual.disable_input()
            await self.visual.show_game_over(self.board.outcome)
            return

        if self.player_type(self.board.turn) == PlayerType.HUMAN:
            # Armed before input is enabled so no click can slip past
            self._human_move = asyncio.get_running_loop().create_future()
            self.stage = TurnStage.AWAITING_HUMAN_INPUT
            await self.visual.enable_input()
            return

        await self.visual.show_thinking_indicator(THINKING_SWEEP)
        if self.evaluation.complete:
            if self.settings.delay_enabled:
                await self._suspend(asyncio.sleep(self.settings.thinking_delay), cancel_on_abort=False)
            await self._choose_computer_move()
        else:
            self.stage = TurnStage.AWAITING_SOLVER_READINESS

    async def _await_human_input(self):
        column = await self._suspend(self._human_move)
        self._human_move = None
        await self.visual.disable_input()
        self._chosen_column = column
        self.stage = TurnStage.APPLYING_MOVE

    def _may_move(self) -> bool:
        if self.evaluation.complete:
            return True
        # Without the delay the first evaluation of the position is good enough
        return not self.settings.delay_enabled and self.evaluation.has_scores

    async def _await_solver_readiness(self):
        while not self._may_move():
            self._evaluation_changed.clear()
            await self._suspend(self._evaluation_changed.wait())
        await self._choose_computer_move()

    async def _choose_computer_move(self):
        policy = self.policies[self.settings.difficulty]
        column = select_move(self.evaluation, policy, self.rng)
        logger.info(
            "Computer (%s) plays column %d at depth %d",
            policy.label, column, self.evaluation.depth,
        )
        await self.visual.hide_thinking_indicator()
        self._chosen_column = column
        self.stage = TurnStage.APPLYING_MOVE

    async def _apply_move(self):
        column = self._chosen_column
        piece = self.board.turn

        # IllegalMove here means validation let a bad column through: fatal
        row = self.board.apply_move(column)
        self._chosen_column = None
        self.evaluation = EvaluationSnapshot(ply=self.board.move_count)

        # Notification only, the reply is folded in by the pump
        await self.channel.send(MakeMove(column=column, ply=self.board.move_count))

        await self._suspend(self.visual.animate_drop(column, row, piece), cancel_on_abort=False)
        self.stage = TurnStage.AWAITING_TURN

    async def _suspend(self, awaitable, cancel_on_abort: bool = True):
        """Waits for `awaitable`, the abort token or a channel failure, whichever comes first."""
        waiter = asyncio.ensure_future(awaitable)
        watchers = [
            asyncio.ensure_future(self.abort.wait()),
            asyncio.ensure_future(self._failed.wait()),
        ]
        try:
            await asyncio.wait([waiter, *watchers], return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            waiter.cancel()
            raise
        finally:
            for watcher in watchers:
                watcher.cancel()

        if self.abort.is_set or self._failure is not None:
            if not waiter.done() and cancel_on_abort:
                waiter.cancel()
            else:
                waiter.add_done_callback(_ignore_late_result)
            if self.abort.is_set:
                raise SessionAborted()
            raise self._failure
        return waiter.result()

    # --- Solver messages ---

    async def _pump_solver_messages(self):
        while True:
            try:
                message = await self.channel.receive()
            except ChannelFailure as e:
                self._fail(e)
                return
            if self.abort.is_set:
                return
            try:
                await self._fold(message)
            except ProtocolViolation as e:
                logger.warning("Discarding solver message: %s", e)
            except ChannelFailure as e:
                self._fail(e)
                return
            except Exception as e:
                # The driver would otherwise wait forever on a dead pump
                self._fail(VisualFailure(
                    "Solver message could not be shown",
                    {"type": message.type, "ply": message.ply, "error": repr(e)},
                ))
                return

    def _fail(self, failure: ConnectFourError):
        if self.abort.is_set:
            return
        logger.error("Session failed while handling solver messages: %s", failure)
        self._failure = failure
        self._failed.set()

    async def _fold(self, message):
        current = self.board.move_count
        if message.ply > current:
            raise ProtocolViolation(
                "Solver message is ahead of the board",
                {"type": message.type, "ply": message.ply, "move_count": current},
            )
        if message.ply < current:
            logger.debug("Dropping stale %s for ply %d (board at %d)", message.type, message.ply, current)
            return

        if isinstance(message, EvaluationUpdate):
            unplayable = sorted(c for c in message.scores if not self.board.can_play(c))
            if unplayable:
                raise ProtocolViolation(
                    "Solver scored columns that cannot be played",
                    {"ply": message.ply, "columns": unplayable},
                )
            self.evaluation.merge(message.scores, message.depth)
            self._evaluation_changed.set()
            await self.visual.update_evaluation_display(dict(self.evaluation.scores), self.evaluation.depth)
        elif isinstance(message, ReadinessUpdate):
            if message.ready and not self.evaluation.complete:
                self.evaluation.complete = True
                self._evaluation_changed.set()
        elif isinstance(message, MoveReply):
            if not message.accepted:
                raise ChannelFailure(
                    "Solver rejected a move the board accepted",
                    {"column": message.column, "ply": message.ply},
                )
            reported = message.game_over.to_outcome()
            if reported != self.board.outcome:
                logger.warning(
                    "Solver reports %s at ply %d but the board says %s",
                    reported.describe(), current, self.board.outcome.describe(),
                )
