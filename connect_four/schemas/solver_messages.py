"""
Solver Channel wire messages.

Commands go from the orchestrator to the solver, messages come back. Every message
carries `ply`, the move count of the position it describes, so the orchestrator can
drop anything that does not belong to its current position.
"""

from typing import Annotated, Dict, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer, TypeAdapter

from connect_four.engine.board import COLS, GameOutcome
from connect_four.engine.evaluation import LOSS_SCORE
from connect_four.models.enums import GameStatus, Piece

LOSS_LABEL = "LOSS"

# Board column index
Column = Annotated[int, Field(ge=0, lt=COLS)]

# JSON has no -inf, the certain-loss sentinel travels as a label
Score = Annotated[
    float,
    BeforeValidator(lambda v: LOSS_SCORE if v == LOSS_LABEL else v),
    PlainSerializer(lambda v: LOSS_LABEL if v == LOSS_SCORE else v, when_used="json"),
]


# --- Orchestrator -> Solver ---

class NewGame(BaseModel):
    type: Literal["NEW_GAME"] = "NEW_GAME"


class MakeMove(BaseModel):
    type: Literal["MAKE_MOVE"] = "MAKE_MOVE"
    column: Column
    # Move count of the position after this move
    ply: int = Field(gt=0)


# --- Solver -> Orchestrator ---

class GameOverInfo(BaseModel):
    status: GameStatus = GameStatus.IN_PROGRESS
    winner: Optional[Piece] = None

    @classmethod
    def from_outcome(cls, outcome: GameOutcome) -> "GameOverInfo":
        return cls(status=outcome.status, winner=outcome.winner)

    def to_outcome(self) -> GameOutcome:
        return GameOutcome(self.status, self.winner)


class MoveReply(BaseModel):
    type: Literal["MOVE_REPLY"] = "MOVE_REPLY"
    ply: int
    column: int
    accepted: bool
    game_over: GameOverInfo = Field(default_factory=GameOverInfo)


class EvaluationUpdate(BaseModel):
    type: Literal["EVALUATION_UPDATE"] = "EVALUATION_UPDATE"
    ply: int
    scores: Dict[Column, Score]
    depth: int = Field(ge=0)


class ReadinessUpdate(BaseModel):
    type: Literal["READINESS_UPDATE"] = "READINESS_UPDATE"
    ply: int
    ready: bool


SolverCommand = Annotated[Union[NewGame, MakeMove], Field(discriminator="type")]
SolverMessage = Annotated[
    Union[MoveReply, EvaluationUpdate, ReadinessUpdate],
    Field(discriminator="type"),
]

command_adapter = TypeAdapter(SolverCommand)
message_adapter = TypeAdapter(SolverMessage)


def encode(payload: BaseModel) -> str:
    """One JSON line per message."""
    return payload.model_dump_json()


def decode_command(line: Union[str, bytes]) -> Union[NewGame, MakeMove]:
    return command_adapter.validate_json(line)


def decode_message(line: Union[str, bytes]) -> Union[MoveReply, EvaluationUpdate, ReadinessUpdate]:
    return message_adapter.validate_json(line)
