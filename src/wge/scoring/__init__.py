"""Ward cleanliness and user scoring."""

from wge.scoring.cleanliness import (
    CleanlinessResult,
    cleanliness_leaderboard,
    compute_cleanliness,
    update_ward_cleanliness,
)
from wge.scoring.participation import officer_efficiency, participation_score

__all__ = [
    "CleanlinessResult",
    "cleanliness_leaderboard",
    "compute_cleanliness",
    "officer_efficiency",
    "participation_score",
    "update_ward_cleanliness",
]
