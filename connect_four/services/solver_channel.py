"""
Solver Channel - transports between the orchestrator and the solver worker

The orchestrator only sees the SolverChannel contract: send commands, receive
ply-tagged messages in order, and a ChannelFailure once the far side is gone.

- ThreadSolverChannel: the worker runs on a daemon thread inside this process.
- SubprocessSolverChannel: the worker runs as a child process speaking JSON lines.
"""

import asyncio
import logging
import os
import queue
import sys
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from connect_four.core.config import SolverBudget, registry
from connect_four.core.errors import ChannelFailure
from connect_four.models.enums import SolverTransport
from connect_four.schemas.solver_messages import decode_message, encode
from connect_four.solver.worker import SolverWorker

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class SolverChannel(ABC):
    """Abstract duplex link to a solver"""

    @abstractmethod
    async def open(self):
        pass

    @abstractmethod
    async def send(self, command):
        """Queues a command. Never waits for the solver to act on it."""
        pass

    @abstractmethod
    async def receive(self):
        """Next solver message. Raises ChannelFailure when the channel is unusable."""
        pass

    @abstractmethod
    async def close(self):
        pass


def create_channel(budget: Optional[SolverBudget] = None) -> SolverChannel:
    """Builds the transport named by the solver settings."""
    budget = budget or registry.solver
    if budget.transport == SolverTransport.SUBPROCESS:
        # The child process reads its budget from the same settings file
        return SubprocessSolverChannel()
    return ThreadSolverChannel(budget)


class ThreadSolverChannel(SolverChannel):
    def __init__(self, budget: Optional[SolverBudget] = None):
        self.budget = budget or registry.solver
        self._commands: queue.Queue = queue.Queue()
        self._inbox: Optional[asyncio.Queue] = None
        self._thread: Optional[threading.Thread] = None
        self._closed = False

    async def open(self):
        loop = asyncio.get_running_loop()
        self._inbox = asyncio.Queue()

        def post(item):
            # Runs on the worker thread
            if not self._closed and not loop.is_closed():
                loop.call_soon_threadsafe(self._inbox.put_nowait, item)

        worker = SolverWorker(post, self.budget)
        self._thread = threading.Thread(
            target=self._run_worker,
            args=(worker, post),
            name="solver-worker",
            daemon=True,
        )
        self._thread.start()

    def _run_worker(self, worker: SolverWorker, post):
        try:
            worker.run(self._commands)
        except Exception as e:
            logger.exception("Solver worker crashed")
            post(ChannelFailure("Solver worker crashed", {"error": repr(e)}))

    async def send(self, command):
        if self._closed or self._thread is None or not self._thread.is_alive():
            raise ChannelFailure("Solver worker is not running", {"command": command.type})
        self._commands.put(command)

    async def receive(self):
        if self._inbox is None:
            raise ChannelFailure("Channel was never opened")
        item = await self._inbox.get()
        if isinstance(item, ChannelFailure):
            raise item
        return item

    async def close(self):
        if self._closed:
            return
        self._closed = True
        self._commands.put(None)
        if self._thread is not None:
            # The search polls the queue, so the worker notices the stop quickly
            await asyncio.to_thread(self._thread.join, 5.0)
            if self._thread.is_alive():
                logger.warning("Solver worker thread did not stop in time")


class SubprocessSolverChannel(SolverChannel):
    def __init__(self, command: Optional[List[str]] = None):
        self.command = command or [sys.executable, "-m", "connect_four.solver.worker"]
        self._process: Optional[asyncio.subprocess.Process] = None

    async def open(self):
        env = dict(os.environ)
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(PROJECT_ROOT), env.get("PYTHONPATH")]))
        self._process = await asyncio.create_subprocess_exec(
            *self.command,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            env=env,
        )
        logger.info("Started solver process (pid %s)", self._process.pid)

    def _require_running(self):
        if self._process is None:
            raise ChannelFailure("Channel was never opened")
        if self._process.returncode is not None:
            raise ChannelFailure("Solver process exited", {"returncode": self._process.returncode})

    async def send(self, command):
        self._require_running()
        try:
            self._process.stdin.write((encode(command) + "\n").encode())
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ChannelFailure("Solver process stopped reading", {"error": repr(e)}) from e

    async def receive(self):
        if self._process is None:
            raise ChannelFailure("Channel was never opened")
        line = await self._process.stdout.readline()
        if not line:
            raise ChannelFailure("Solver process closed its output", {"returncode": self._process.returncode})
        try:
            return decode_message(line)
        except ValidationError as e:
            raise ChannelFailure("Undecodable solver message", {"line": line[:200]}) from e

    async def close(self):
        if self._process is None or self._process.returncode is not None:
            return
        # EOF on stdin stops the worker loop
        self._process.stdin.close()
        try:
            await asyncio.wait_for(self._process.wait(), timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Solver process %s ignored shutdown, killing it", self._process.pid)
            self._process.kill()
            await self._process.wait()
