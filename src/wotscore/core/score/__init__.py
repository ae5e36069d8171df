"""Per-owner rank, capacity and score computation.

Submodules:
    models       -- Score, RecomputeMode, RecomputeResult
    propagation  -- Standalone rank BFS, rank lowering, score aggregation
    index        -- TreeIndex, the stored view of one owner's tree
    engine       -- ScoreEngine (full and incremental recomputation)
"""

from wotscore.core.score.models import RecomputeMode, RecomputeResult, Score
from wotscore.core.score.engine import ScoreEngine

__all__ = [
    "RecomputeMode",
    "RecomputeResult",
    "Score",
    "ScoreEngine",
]
