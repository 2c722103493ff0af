"""
Solver Worker - background analysis loop

Runs apart from the orchestrator (a thread or a child process) and only talks
through messages. Between commands it deepens the analysis of the current
position one ply at a time, streaming an EvaluationUpdate after every pass.
Once the position is solved, or its node budget is spent, it reports
readiness and blocks until the next command.

Run as `python -m connect_four.solver.worker` to speak JSON lines over stdin/stdout.
"""

import logging
import queue
import sys
import threading
from typing import Callable, Dict, Optional

from pydantic import ValidationError

from connect_four.core.config import SolverBudget, configure_logging, registry
from connect_four.engine.board import IN_PROGRESS, GameOutcome
from connect_four.engine.evaluation import LOSS_SCORE
from connect_four.models.enums import GameStatus, Piece
from connect_four.schemas.solver_messages import (
    EvaluationUpdate,
    GameOverInfo,
    MakeMove,
    MoveReply,
    NewGame,
    ReadinessUpdate,
    decode_command,
    encode,
)
from connect_four.solver.bitboard import Bitboard
from connect_four.solver.constants import MAX_MOVES, WIN_SCORE
from connect_four.solver.search import SearchInterrupted, Solver

logger = logging.getLogger(__name__)


def report_score(score: int) -> float:
    """Proven losses collapse to the certain-loss sentinel."""
    if score < -WIN_SCORE:
        return LOSS_SCORE
    return float(score)


class SolverWorker:
    def __init__(
        self,
        post: Callable[[object], None],
        budget: Optional[SolverBudget] = None,
    ):
        self.post = post
        self.budget = budget or registry.solver
        self.solver = Solver(self.budget.check_interval)
        self.new_game()

    @property
    def ply(self) -> int:
        return self.board.moves_count

    def new_game(self):
        self.board = Bitboard()
        self.outcome = IN_PROGRESS
        self._restart_analysis()

    def _restart_analysis(self):
        self.depth = 0
        self.nodes_spent = 0
        self.idle = self.outcome.is_over
        self.solver.tt.reset()

    # --- Commands ---

    def handle(self, command):
        if isinstance(command, NewGame):
            logger.info("New game requested, discarding analysis")
            self.new_game()
            self.post(ReadinessUpdate(ply=self.ply, ready=False))
        elif isinstance(command, MakeMove):
            self._make_move(command)
        else:
            logger.warning("Unknown solver command: %r", command)

    def _make_move(self, command: MakeMove):
        legal = (
            not self.outcome.is_over
            and command.ply == self.ply + 1
            and self.board.can_play(command.column)
        )
        if not legal:
            logger.warning("Rejecting move %d for ply %d (solver is at ply %d)", command.column, command.ply, self.ply)
            self.post(MoveReply(
                ply=command.ply,
                column=command.column,
                accepted=False,
                game_over=GameOverInfo.from_outcome(self.outcome),
            ))
            return

        mover = Piece.PLAYER_ONE if self.ply % 2 == 0 else Piece.PLAYER_TWO
        won = self.board.wins_with(command.column)
        self.board = self.board.play(command.column)

        if won:
            self.outcome = GameOutcome(GameStatus.WON, mover)
        elif self.ply == MAX_MOVES:
            self.outcome = GameOutcome(GameStatus.DRAWN)
        self._restart_analysis()

        self.post(MoveReply(
            ply=self.ply,
            column=command.column,
            accepted=True,
            game_over=GameOverInfo.from_outcome(self.outcome),
        ))
        # Nothing left to analyse once the game is over
        self.post(ReadinessUpdate(ply=self.ply, ready=self.outcome.is_over))

    # --- Analysis ---

    def step(self) -> bool:
        """Runs one deepening pass. Returns False when idle or interrupted."""
        if self.idle:
            return False

        depth = self.depth + 1
        try:
            result = self.solver.evaluate(self.board, depth)
        except SearchInterrupted:
            self.nodes_spent += self.solver.nodes
            logger.debug("Depth %d pass interrupted after %d nodes", depth, self.solver.nodes)
            return False

        self.depth = depth
        self.nodes_spent += result["nodes_explored"]
        scores: Dict[int, float] = {col: report_score(s) for col, s in result["scores"].items()}
        self.post(EvaluationUpdate(ply=self.ply, scores=scores, depth=depth))

        if (
            result["proven"]
            or result["exhaustive"]
            or depth >= self.budget.max_depth
            or self.nodes_spent >= self.budget.max_nodes
        ):
            self.idle = True
            logger.debug("Ply %d ready at depth %d (%d nodes)", self.ply, depth, self.nodes_spent)
            self.post(ReadinessUpdate(ply=self.ply, ready=True))
        return True

    def run(self, commands: queue.Queue):
        """Main loop. A None command stops the worker."""
        self.solver.should_stop = lambda: not commands.empty()

        while True:
            if self.idle:
                # Budget spent: block until there's something to do
                command = commands.get()
            else:
                try:
                    command = commands.get_nowait()
                except queue.Empty:
                    self.step()
                    continue

            if command is None:
                logger.info("Solver worker stopping")
                return
            self.handle(command)


def main():
    configure_logging()
    commands: queue.Queue = queue.Queue()

    def post(message):
        sys.stdout.write(encode(message) + "\n")
        sys.stdout.flush()

    def read_commands():
        while True:
            line = sys.stdin.readline()
            if not line:
                break
            line = line.strip()
            if not line:
                continue
            try:
                commands.put(decode_command(line))
            except ValidationError as e:
                logger.warning("Ignoring malformed command %r: %s", line, e)
        # Parent closed our stdin
        commands.put(None)

    threading.Thread(target=read_commands, name="solver-stdin", daemon=True).start()
    SolverWorker(post).run(commands)


if __name__ == "__main__":
    main()
