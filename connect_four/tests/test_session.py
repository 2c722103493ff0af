import asyncio
import random
import unittest

from connect_four.core.config import GameSettings, SolverBudget
from connect_four.core.errors import ChannelFailure
from connect_four.models.enums import Difficulty, PlayerType, TurnStage
from connect_four.schemas.solver_messages import NewGame
from connect_four.services.game_session import GameSession
from connect_four.services.solver_channel import ThreadSolverChannel
from connect_four.tests.fakes import FakeChannel, RecordingVisual, settle, wait_until


class TestGameSession(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.visual = RecordingVisual()
        self.channels = []

    async def asyncTearDown(self):
        await self.session.stop()

    def fake_channel(self):
        channel = FakeChannel()
        self.channels.append(channel)
        return channel

    def make_session(self, players=(PlayerType.HUMAN, PlayerType.COMPUTER), channel_factory=None, **settings):
        self.session = GameSession(
            self.visual,
            GameSettings(players=players, thinking_delay=0, drop_seconds_per_row=0, **settings),
            channel_factory=channel_factory or self.fake_channel,
            rng=random.Random(4),
        )
        return self.session

    async def test_reset_starts_over_with_a_fresh_channel(self):
        session = self.make_session()
        await session.start()
        await wait_until(lambda: session.orchestrator.stage == TurnStage.AWAITING_HUMAN_INPUT)
        self.assertTrue(session.column_clicked(3))
        await wait_until(lambda: session.board.move_count == 1)
        old_board, old_abort = session.board, session.abort

        await session.reset_requested()

        self.assertTrue(old_abort.is_set)
        self.assertTrue(self.channels[0].closed)
        self.assertIsNot(session.board, old_board)
        self.assertEqual(session.board.move_count, 0)
        self.assertFalse(session.abort.is_set)
        await wait_until(lambda: session.orchestrator.stage == TurnStage.AWAITING_HUMAN_INPUT)
        self.assertEqual(self.channels[1].sent, [NewGame()])
        # The old board never moves again
        self.assertEqual(old_board.move_count, 1)

    async def test_cancelled_stop_still_closes_the_channel(self):
        session = self.make_session()
        await session.start()
        await wait_until(lambda: session.orchestrator.stage == TurnStage.AWAITING_HUMAN_INPUT)
        task = session.task

        stopper = asyncio.create_task(session.stop())
        await asyncio.sleep(0)
        stopper.cancel()
        with self.assertRaises(asyncio.CancelledError):
            await stopper

        self.assertTrue(self.channels[0].closed)
        # The orchestrator ends through the abort token, not through cancellation
        await asyncio.wait_for(asyncio.wait([task]), 2)
        self.assertFalse(task.cancelled())
        self.assertIsNone(task.exception())

        await session.stop()
        self.assertIsNone(session.task)
        self.assertFalse(session.is_running)

    async def test_click_before_start_is_ignored(self):
        session = self.make_session()
        self.assertFalse(session.column_clicked(3))

    async def test_settings_survive_a_reset(self):
        session = self.make_session()
        await session.start()
        session.settings_changed(Difficulty.EASY, False)
        await session.reset()

        self.assertEqual(session.orchestrator.settings.difficulty, Difficulty.EASY)
        self.assertFalse(session.orchestrator.settings.delay_enabled)

    async def test_channel_failure_is_shown_and_kept(self):
        session = self.make_session(players=(PlayerType.COMPUTER, PlayerType.HUMAN))
        await session.start()
        await wait_until(lambda: session.orchestrator.stage == TurnStage.AWAITING_SOLVER_READINESS)

        with self.assertLogs("connect_four.services.game_session", "ERROR"):
            self.channels[0].fail("Solver exited")
            await session.wait_finished()

        self.assertIsInstance(session.error, ChannelFailure)
        name, message = self.visual.calls[-1]
        self.assertEqual(name, "show_error")
        self.assertIn("CHANNEL_FAILURE", message)
        self.assertFalse(session.is_running)

    async def test_reset_after_failure_recovers(self):
        session = self.make_session(players=(PlayerType.COMPUTER, PlayerType.HUMAN))
        await session.start()
        await wait_until(lambda: session.orchestrator.stage == TurnStage.AWAITING_SOLVER_READINESS)
        with self.assertLogs("connect_four.services.game_session", "ERROR"):
            self.channels[0].fail()
            await session.wait_finished()

        await session.reset()
        await settle()
        self.assertIsNone(session.error)
        self.assertTrue(session.is_running)

    async def test_computer_plays_itself_to_the_end(self):
        budget = SolverBudget(max_nodes=5_000, check_interval=64, max_depth=2)
        session = self.make_session(
            players=(PlayerType.COMPUTER, PlayerType.COMPUTER),
            channel_factory=lambda: ThreadSolverChannel(budget),
            difficulty=Difficulty.MEDIUM,
        )
        await session.start()
        await asyncio.wait_for(session.wait_finished(), 60)

        self.assertIsNone(session.error)
        self.assertTrue(session.board.is_game_over)
        self.assertEqual(self.visual.calls[-1], ("show_game_over", session.board.outcome))
        drops = [args for name, args in self.visual.calls if name == "animate_drop"]
        self.assertEqual(len(drops), session.board.move_count)


if __name__ == '__main__':
    unittest.main()
