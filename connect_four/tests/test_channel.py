import asyncio
import sys
import unittest

from connect_four.core.config import SolverBudget
from connect_four.core.errors import ChannelFailure
from connect_four.engine.evaluation import LOSS_SCORE
from connect_four.models.enums import SolverTransport
from connect_four.schemas.solver_messages import (
    EvaluationUpdate,
    MakeMove,
    MoveReply,
    NewGame,
    ReadinessUpdate,
    decode_message,
    encode,
)
from connect_four.services.solver_channel import SubprocessSolverChannel, ThreadSolverChannel, create_channel

SMALL_BUDGET = SolverBudget(max_nodes=20_000, check_interval=64, max_depth=3)


async def receive_until(channel, predicate, timeout: float = 20.0):
    """Reads messages until one matches, returning everything read."""
    seen = []

    async def read():
        while True:
            message = await channel.receive()
            seen.append(message)
            if predicate(message):
                return seen

    return await asyncio.wait_for(read(), timeout)


class TestThreadSolverChannel(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.channel = ThreadSolverChannel(SMALL_BUDGET)
        await self.channel.open()

    async def asyncTearDown(self):
        await self.channel.close()

    async def test_move_is_acknowledged_and_analysed(self):
        await self.channel.send(NewGame())
        await receive_until(self.channel, lambda m: isinstance(m, ReadinessUpdate) and not m.ready)

        await self.channel.send(MakeMove(column=3, ply=1))
        seen = await receive_until(self.channel, lambda m: isinstance(m, ReadinessUpdate) and m.ready and m.ply == 1)

        replies = [m for m in seen if isinstance(m, MoveReply)]
        self.assertEqual(len(replies), 1)
        self.assertTrue(replies[0].accepted)

        updates = [m for m in seen if isinstance(m, EvaluationUpdate) and m.ply == 1]
        self.assertEqual([u.depth for u in updates], [1, 2, 3])
        self.assertEqual(sorted(updates[-1].scores), list(range(7)))

    async def test_send_after_close_fails(self):
        await self.channel.close()
        with self.assertRaises(ChannelFailure):
            await self.channel.send(NewGame())


class TestSubprocessSolverChannel(unittest.IsolatedAsyncioTestCase):
    async def test_worker_process_speaks_json_lines(self):
        channel = SubprocessSolverChannel()
        await channel.open()
        try:
            await channel.send(NewGame())
            await channel.send(MakeMove(column=3, ply=1))
            seen = await receive_until(channel, lambda m: isinstance(m, EvaluationUpdate) and m.ply == 1)
            reply = next(m for m in seen if isinstance(m, MoveReply))
            self.assertTrue(reply.accepted)
            self.assertEqual(reply.ply, 1)
        finally:
            await channel.close()

    async def test_exited_process_is_a_channel_failure(self):
        channel = SubprocessSolverChannel([sys.executable, "-c", "import sys; sys.exit(3)"])
        await channel.open()
        with self.assertRaises(ChannelFailure):
            await asyncio.wait_for(channel.receive(), 10)
        await channel.close()

    async def test_garbage_output_is_a_channel_failure(self):
        channel = SubprocessSolverChannel([sys.executable, "-c", "print('not a solver message')"])
        await channel.open()
        with self.assertRaises(ChannelFailure):
            await asyncio.wait_for(channel.receive(), 10)
        await channel.close()


class TestCreateChannel(unittest.TestCase):
    def test_thread_transport_by_default(self):
        channel = create_channel(SMALL_BUDGET)
        self.assertIsInstance(channel, ThreadSolverChannel)
        self.assertIs(channel.budget, SMALL_BUDGET)

    def test_subprocess_transport_from_settings(self):
        budget = SolverBudget(transport=SolverTransport.SUBPROCESS)
        channel = create_channel(budget)
        self.assertIsInstance(channel, SubprocessSolverChannel)
        self.assertEqual(channel.command[1:], ["-m", "connect_four.solver.worker"])

    def test_unknown_transport_is_rejected(self):
        with self.assertRaises(ValueError):
            SolverBudget(transport="carrier-pigeon")


class TestWireFormat(unittest.TestCase):
    def test_certain_loss_survives_json(self):
        line = encode(EvaluationUpdate(ply=4, scores={0: LOSS_SCORE, 3: 12.0}, depth=5))
        self.assertIn('"LOSS"', line)

        message = decode_message(line)
        self.assertEqual(message.scores, {0: LOSS_SCORE, 3: 12.0})

    def test_column_range_is_validated(self):
        with self.assertRaises(ValueError):
            MakeMove(column=7, ply=1)

    def test_score_columns_are_validated(self):
        with self.assertRaises(ValueError):
            EvaluationUpdate(ply=1, scores={9: 1.0}, depth=1)
        with self.assertRaises(ValueError):
            decode_message('{"type": "EVALUATION_UPDATE", "ply": 1, "scores": {"-1": 2.0}, "depth": 1}')


if __name__ == '__main__':
    unittest.main()
