from pydantic import Field, field_validator
from typing import Optional, List
from datetime import datetime, timezone

from uniportal.models.election import ElectionStatus, CandidatePosition
from uniportal.schemas.common import CamelModel
from uniportal.schemas.student import StudentSummary


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Columns store naive UTC; convert aware datetimes, keep naive ones as-is"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ============================================================================
# Requests
# ============================================================================

class CandidateIn(CamelModel):
    student_id: str = ""
    # Anything other than "GR" stands for CR
    position: Optional[str] = None


class ElectionCreate(CamelModel):
    title: str = ""
    class_name: str = ""
    branch: str = ""
    academic_year: str = Field("", alias="acadmicYear")
    closes_at: Optional[datetime] = None
    candidates: List[CandidateIn] = Field(default_factory=list)

    @field_validator("closes_at")
    @classmethod
    def normalise_closes_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class ElectionFilters(CamelModel):
    status: Optional[ElectionStatus] = None
    class_name: Optional[str] = None
    branch: Optional[str] = None
    include_closed: bool = False


class VoteRequest(CamelModel):
    candidate_id: str = ""
    # Only needed when the student stands for both CR and GR
    position: Optional[CandidatePosition] = None


# ============================================================================
# Responses
# ============================================================================

class CandidateResponse(CamelModel):
    student: StudentSummary
    position: CandidatePosition
    votes: int


class WinnerResponse(CamelModel):
    position: CandidatePosition
    student: StudentSummary


class ElectionResponse(CamelModel):
    id: str
    title: str
    class_name: str
    branch: str
    academic_year: str = Field(..., alias="acadmicYear")
    status: ElectionStatus
    is_open: bool
    closes_at: Optional[datetime] = None
    candidates: List[CandidateResponse] = Field(default_factory=list)
    voter_count: int = 0
    result_declared: bool = False
    is_draw: bool = False
    winner: Optional[StudentSummary] = None
    winners: List[WinnerResponse] = Field(default_factory=list)
    created_by: StudentSummary
    created_at: datetime
    updated_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None


class ElectionListResponse(CamelModel):
    elections: List[ElectionResponse]
    total: int
