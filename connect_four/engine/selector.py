"""
Move Selector

Picks the computer's column from an evaluation snapshot. Difficulty is pure data:
a table mapping the number of non-losing candidates to the size of the pool the
move is drawn from, uniformly. A deterministic policy always plays the best move.
"""

import logging
import random
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from connect_four.core.errors import SelectorPrecondition
from connect_four.engine.evaluation import LOSS_SCORE, EvaluationSnapshot

logger = logging.getLogger(__name__)


class DifficultyPolicy(BaseModel):
    label: str
    deterministic: bool = False
    # Non-losing candidate count (1..7) -> how many of the best candidates to draw from
    pool_sizes: Dict[int, int] = Field(default_factory=dict)

    def pool_size(self, candidates: int) -> int:
        if self.deterministic:
            return 1
        size = self.pool_sizes.get(candidates, candidates)
        return max(1, min(size, candidates))


def rank_candidates(scores: Dict[int, float]) -> List[Tuple[int, float]]:
    """Best first; equal scores go to the lowest column."""
    return sorted(scores.items(), key=lambda item: (-item[1], item[0]))


def select_move(
    evaluation: EvaluationSnapshot,
    policy: DifficultyPolicy,
    rng: Optional[random.Random] = None,
) -> int:
    if not evaluation.scores:
        raise SelectorPrecondition(
            "Computer turn reached with no evaluation",
            {"ply": evaluation.ply},
        )

    ranked = rank_candidates(evaluation.scores)
    non_losing = [item for item in ranked if item[1] > LOSS_SCORE]

    if policy.deterministic:
        return ranked[0][0]

    if non_losing:
        pool = policy.pool_size(len(non_losing))
    else:
        # Forced loss: every column is equally doomed
        pool = len(ranked)

    column, score = (rng or random).choice(ranked[:pool])
    logger.debug("%s picked column %d (score %s) from a pool of %d", policy.label, column, score, pool)
    return column
