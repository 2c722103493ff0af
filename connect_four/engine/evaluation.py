from dataclasses import dataclass, field
from typing import Dict, Mapping

# Certain-loss sentinel reported by the solver for a column
LOSS_SCORE = float("-inf")


@dataclass
class EvaluationSnapshot:
    """Latest solver view of the position after `ply` moves."""
    ply: int = 0
    scores: Dict[int, float] = field(default_factory=dict)
    depth: int = 0
    complete: bool = False

    def merge(self, scores: Mapping[int, float], depth: int):
        # Key-by-key: columns missing from a partial update keep their previous score
        self.scores.update(scores)
        self.depth = max(self.depth, depth)

    @property
    def has_scores(self) -> bool:
        return bool(self.scores)
