"""
Visual Adapter Contract

The orchestrator drives whatever shows the board (a browser over a WebSocket,
a terminal) through this interface. Adapters only get discrete events and
read-only values, never the board itself.
"""

from abc import ABC, abstractmethod
from typing import Dict, Sequence

from connect_four.engine.board import GameOutcome
from connect_four.models.enums import Piece


class VisualAdapter(ABC):
    """Abstract base class for visual layers"""

    @abstractmethod
    async def enable_input(self):
        pass

    @abstractmethod
    async def disable_input(self):
        pass

    @abstractmethod
    async def animate_drop(self, column: int, row: int, piece: Piece):
        """Returns once the drop animation has finished."""
        pass

    @abstractmethod
    async def show_thinking_indicator(self, sweep: Sequence[int]):
        pass

    @abstractmethod
    async def hide_thinking_indicator(self):
        pass

    @abstractmethod
    async def show_game_over(self, outcome: GameOutcome):
        pass

    @abstractmethod
    async def update_evaluation_display(self, scores: Dict[int, float], depth: int):
        pass

    @abstractmethod
    async def show_error(self, message: str):
        pass
