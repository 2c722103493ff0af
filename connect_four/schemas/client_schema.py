from typing import Annotated, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from connect_four.models.enums import Difficulty, PlayerType
from connect_four.schemas.solver_messages import Score

# --- Client -> Server ---

class MoveAction(BaseModel):
    # Allow extra fields in the JSON to prevent crashes if the client evolves
    model_config = ConfigDict(extra='ignore')

    action: Literal["MOVE"]
    column: int

class SettingsAction(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)

    action: Literal["SETTINGS"]
    difficulty: Difficulty
    delay_enabled: bool = Field(alias="delayEnabled")

class ResetAction(BaseModel):
    model_config = ConfigDict(extra='ignore')

    action: Literal["RESET"]

ClientAction = Annotated[Union[MoveAction, SettingsAction, ResetAction], Field(discriminator="action")]
client_action_adapter = TypeAdapter(ClientAction)

# --- Server -> Client ---

class EvaluationMessage(BaseModel):
    type: Literal["EVALUATION"] = "EVALUATION"
    scores: Dict[int, Score]
    depth: int

class SettingsResponse(BaseModel):
    players: Tuple[PlayerType, PlayerType]
    difficulty: Difficulty
    delay_enabled: bool
    thinking_delay: float
    difficulties: Dict[str, str]
    solver_max_nodes: Optional[int] = None
