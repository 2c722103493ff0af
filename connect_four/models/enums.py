from enum import IntEnum, StrEnum

class Piece(IntEnum):
    EMPTY = 0
    PLAYER_ONE = 1
    PLAYER_TWO = 2

    @property
    def opponent(self) -> "Piece":
        if self == Piece.EMPTY:
            raise ValueError("An empty cell has no opponent")
        return Piece.PLAYER_TWO if self == Piece.PLAYER_ONE else Piece.PLAYER_ONE

class GameStatus(StrEnum):
    IN_PROGRESS = "IN_PROGRESS"
    WON = "WON"
    DRAWN = "DRAWN"

class PlayerType(StrEnum):
    HUMAN = "human"
    COMPUTER = "computer"

class Difficulty(StrEnum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

class TurnStage(StrEnum):
    AWAITING_TURN = "AWAITING_TURN"
    AWAITING_HUMAN_INPUT = "AWAITING_HUMAN_INPUT"
    AWAITING_SOLVER_READINESS = "AWAITING_SOLVER_READINESS"
    APPLYING_MOVE = "APPLYING_MOVE"
    GAME_OVER = "GAME_OVER"

class SolverTransport(StrEnum):
    THREAD = "thread"
    SUBPROCESS = "subprocess"
