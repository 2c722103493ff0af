# connect_four/solver/bitboard.py
from typing import Iterable

from .constants import COLS, COLUMN_WEIGHTS, HEIGHT, ROWS

COLUMN_MASKS = [((1 << ROWS) - 1) << (c * HEIGHT) for c in range(COLS)]


class Bitboard:
    def __init__(self, position: int = 0, mask: int = 0, moves_count: int = 0):
        # 'position' always holds the pieces of the player to move
        self.position = position
        self.mask = mask
        self.moves_count = moves_count

    @classmethod
    def from_moves(cls, moves: Iterable[int]) -> "Bitboard":
        """Replays a column sequence from the empty board."""
        board = cls()
        for col in moves:
            if not board.can_play(col):
                raise ValueError(f"Column {col} is not playable")
            board = board.play(col)
        return board

    def can_play(self, col: int) -> bool:
        """Checks if the top cell of the column is empty."""
        if col < 0 or col >= COLS:
            return False
        top_mask = 1 << (col * HEIGHT + (ROWS - 1))
        return (self.mask & top_mask) == 0

    def play(self, col: int) -> "Bitboard":
        """
        Returns a NEW Bitboard with the move applied and turn swapped.
        """
        # Adding the column's bottom bit carries up to the first empty cell
        new_mask = self.mask | (self.mask + (1 << (col * HEIGHT)))
        new_position = self.position ^ self.mask  # Swap roles

        return Bitboard(new_position, new_mask, self.moves_count + 1)

    def opponent_won(self) -> bool:
        """True when the player who just moved has 4 connected."""
        return has_four(self.position ^ self.mask)

    def wins_with(self, col: int) -> bool:
        """True when playing `col` connects 4 for the player to move."""
        move_bit = (self.mask + (1 << (col * HEIGHT))) & COLUMN_MASKS[col]
        return has_four(self.position | move_bit)

    def heuristic(self) -> int:
        """Centre-weighted piece balance from the point of view of the player to move."""
        mine = self.position
        theirs = self.position ^ self.mask
        score = 0
        for col, weight in enumerate(COLUMN_WEIGHTS):
            score += weight * (bin(mine & COLUMN_MASKS[col]).count("1") - bin(theirs & COLUMN_MASKS[col]).count("1"))
        return score

    def get_key(self):
        """Unique ID for caching: Position + Mask"""
        return self.position + self.mask


def has_four(p: int) -> bool:
    # Horizontal (Shift 7)
    m = p & (p >> HEIGHT)
    if m & (m >> (2 * HEIGHT)):
        return True
    # Diagonal \ (Shift 6)
    m = p & (p >> (HEIGHT - 1))
    if m & (m >> (2 * (HEIGHT - 1))):
        return True
    # Diagonal / (Shift 8)
    m = p & (p >> (HEIGHT + 1))
    if m & (m >> (2 * (HEIGHT + 1))):
        return True
    # Vertical (Shift 1)
    m = p & (p >> 1)
    if m & (m >> 2):
        return True
    return False
