import logging
from dataclasses import dataclass
from typing import List, Optional

from connect_four.core.errors import IllegalMove
from connect_four.models.enums import GameStatus, Piece

# Logger setup
logger = logging.getLogger(__name__)

ROWS = 6
COLS = 7

# Ping-pong sweep the thinking indicator follows: 0..6 and back down to 1
THINKING_SWEEP = tuple(range(COLS)) + tuple(range(COLS - 2, 0, -1))


@dataclass(frozen=True)
class GameOutcome:
    status: GameStatus = GameStatus.IN_PROGRESS
    winner: Optional[Piece] = None

    @property
    def is_over(self) -> bool:
        return self.status != GameStatus.IN_PROGRESS

    def describe(self) -> str:
        if self.status == GameStatus.WON:
            return "Player One Wins" if self.winner == Piece.PLAYER_ONE else "Player Two Wins"
        if self.status == GameStatus.DRAWN:
            return "Draw"
        return "In Progress"


IN_PROGRESS = GameOutcome()


class Board:
    def __init__(self):
        """
        Board uses (column, row) indexing.
        Each column is a list filled from the BOTTOM (row 0) upwards,
        so occupied cells are always a contiguous run from the bottom.
        """
        self.reset()

    def reset(self):
        self.columns: List[List[Piece]] = [[] for _ in range(COLS)]
        self.turn = Piece.PLAYER_ONE
        self.move_count = 0
        self.outcome = IN_PROGRESS
        self.history: List[int] = []

    @property
    def is_game_over(self) -> bool:
        return self.outcome.is_over

    def cell(self, column: int, row: int) -> Piece:
        pieces = self.columns[column]
        return pieces[row] if row < len(pieces) else Piece.EMPTY

    def can_play(self, column: int) -> bool:
        if column < 0 or column >= COLS:
            return False
        return len(self.columns[column]) < ROWS

    def valid_moves(self) -> List[int]:
        """Returns a list of column indices (0-6) that are not full."""
        if self.is_game_over:
            return []
        return [c for c in range(COLS) if self.can_play(c)]

    def apply_move(self, column: int) -> int:
        """
        Drops the current player's piece into the column and returns the row it landed on.
        Raises IllegalMove (leaving the board untouched) for a full or unknown column,
        or once the game is over.
        """
        if self.is_game_over:
            raise IllegalMove("Game is already over", {"column": column, "outcome": self.outcome.describe()})
        if not self.can_play(column):
            raise IllegalMove(f"Column {column} cannot take another piece", {"column": column})

        piece = self.turn
        row = len(self.columns[column])
        self.columns[column].append(piece)
        self.move_count += 1
        self.history.append(column)
        self.turn = piece.opponent

        if self._check_win(column, row):
            self.outcome = GameOutcome(GameStatus.WON, piece)
        elif all(len(c) == ROWS for c in self.columns):
            self.outcome = GameOutcome(GameStatus.DRAWN)

        logger.debug("Ply %d: %s -> column %d, row %d", self.move_count, piece.name, column, row)
        return row

    def _check_win(self, c: int, r: int) -> bool:
        """Checks for 4-in-a-row through the placed piece."""
        player = self.cell(c, r)
        # Directions: Horizontal, Vertical, Diagonal /, Diagonal \
        directions = [(1, 0), (0, 1), (1, 1), (1, -1)]

        for dc, dr in directions:
            count = 1
            for sign in (1, -1):
                for i in range(1, 4):
                    nc, nr = c + sign * dc * i, r + sign * dr * i
                    if 0 <= nc < COLS and 0 <= nr < ROWS and self.cell(nc, nr) == player:
                        count += 1
                    else:
                        break
            if count >= 4:
                return True
        return False

    def get_visual_board(self) -> str:
        """Generates an ASCII grid representation, top row first."""
        symbols = {Piece.EMPTY: ".", Piece.PLAYER_ONE: "X", Piece.PLAYER_TWO: "O"}
        header = " " + " ".join(str(i) for i in range(COLS))
        rows_str = []
        for r in range(ROWS - 1, -1, -1):
            row_cells = [symbols[self.cell(c, r)] for c in range(COLS)]
            rows_str.append("|" + "|".join(row_cells) + "|")
        return header + "\n" + "\n".join(rows_str)
