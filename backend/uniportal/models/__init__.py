# Re-export all models for convenient imports
from uniportal.models.student import Student, StudentRole
from uniportal.models.election import (
    Election,
    ElectionStatus,
    ElectionCandidate,
    CandidatePosition,
    ElectionVoter,
    ElectionWinner,
)

__all__ = [
    # Identity
    "Student",
    "StudentRole",
    # Elections
    "Election",
    "ElectionStatus",
    "ElectionCandidate",
    "CandidatePosition",
    "ElectionVoter",
    "ElectionWinner",
]
