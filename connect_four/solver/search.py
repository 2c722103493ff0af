# connect_four/solver/search.py
from typing import Callable, Optional

from .bitboard import Bitboard
from .constants import COLS, COLUMN_ORDER, MAX_MOVES, MAX_SCORE, MIN_SCORE, WIN_SCORE
from .transposition import EXACT, LOWER, UPPER, TranspositionTable


class SearchInterrupted(Exception):
    """Raised inside the tree when new work is waiting for the worker."""


def is_proven(score: int) -> bool:
    return abs(score) > WIN_SCORE


class Solver:
    def __init__(self, check_interval: int = 512, should_stop: Optional[Callable[[], bool]] = None):
        self.tt = TranspositionTable()
        self.nodes = 0
        self.check_interval = check_interval
        self.should_stop = should_stop or (lambda: False)

    def evaluate(self, board: Bitboard, depth: int) -> dict:
        """
        Root Entry Point.
        Scores EVERY playable column, looking `depth` plies ahead (the root move included).
        """
        self.nodes = 0

        move_scores = {}
        for col in range(COLS):
            if not board.can_play(col):
                continue
            if board.wins_with(col):
                move_scores[col] = MAX_SCORE - (board.moves_count + 1)
                continue

            # FULL WINDOW for every column: we want the exact value of *this* column,
            # even if it's sub-optimal.
            move_scores[col] = -self.negamax(board.play(col), depth - 1, MIN_SCORE, MAX_SCORE)

        return {
            "scores": move_scores,
            "proven": bool(move_scores) and all(is_proven(s) for s in move_scores.values()),
            "exhaustive": depth >= MAX_MOVES - board.moves_count,
            "nodes_explored": self.nodes,
        }

    def negamax(self, board: Bitboard, depth: int, alpha: int, beta: int) -> int:
        self.nodes += 1
        if self.nodes % self.check_interval == 0 and self.should_stop():
            raise SearchInterrupted()

        # 1. The player who just moved may have won
        if board.opponent_won():
            return -(MAX_SCORE - board.moves_count)

        # 2. Check Draw
        if board.moves_count == MAX_MOVES:
            return 0

        # 3. Horizon
        if depth <= 0:
            return board.heuristic()

        # 4. Transposition Table Cache
        alpha_orig = alpha
        key = board.get_key()
        if (entry := self.tt.get(key, depth)) is not None:
            if entry.flag == EXACT:
                return entry.value
            if entry.flag == LOWER:
                alpha = max(alpha, entry.value)
            elif entry.flag == UPPER:
                beta = min(beta, entry.value)
            if alpha >= beta:
                return entry.value

        # 5. We cannot win before our next move lands
        max_possible = MAX_SCORE - (board.moves_count + 1)
        if beta > max_possible:
            beta = max_possible
            if alpha >= beta:
                return beta

        # 6. Recursive Search
        best = MIN_SCORE
        for col in COLUMN_ORDER:  # 3, 2, 4, 1...
            if board.can_play(col):
                score = -self.negamax(board.play(col), depth - 1, -beta, -alpha)
                if score > best:
                    best = score
                if score > alpha:
                    alpha = score
                if alpha >= beta:
                    break  # Beta Cutoff

        if best <= alpha_orig:
            flag = UPPER
        elif best >= beta:
            flag = LOWER
        else:
            flag = EXACT
        self.tt.put(key, best, flag, depth)
        return best
