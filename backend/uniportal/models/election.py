"""
Election Models
- Election: one ballot for a class/branch/academic year
- ElectionCandidate: a student standing for CR or GR, with its vote counter
- ElectionVoter: who has voted (membership only, never used for tallying)
- ElectionWinner: declared winners, written once when the election closes
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, Enum as SQLEnum, Integer,
    ForeignKey, Index, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
from typing import Optional
import enum

from uniportal.core.database import Base
from uniportal.core.types import GUID, generate_uuid, utcnow


class ElectionStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"


class CandidatePosition(str, enum.Enum):
    CR = "CR"
    GR = "GR"


class Election(Base):
    """Election model"""
    __tablename__ = "elections"
    __table_args__ = (
        # Not unique: a class may run several OPEN elections at once
        Index("ix_elections_class_status", "class_name", "status"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    class_name = Column(String(20), nullable=False)
    branch = Column(String(100), nullable=False)
    academic_year = Column(String(10), nullable=False)

    status = Column(SQLEnum(ElectionStatus), default=ElectionStatus.OPEN, nullable=False)
    closes_at = Column(DateTime, nullable=True)

    # Result (written once, by close)
    result_declared = Column(Boolean, default=False, nullable=False)
    is_draw = Column(Boolean, default=False, nullable=False)
    winner_id = Column(GUID, ForeignKey("students.id", ondelete="SET NULL"), nullable=True)

    created_by_id = Column(GUID, ForeignKey("students.id"), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    closed_at = Column(DateTime, nullable=True)

    # Relationships
    candidates = relationship(
        "ElectionCandidate",
        back_populates="election",
        order_by="ElectionCandidate.sort_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    voters = relationship(
        "ElectionVoter",
        back_populates="election",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    winners = relationship(
        "ElectionWinner",
        back_populates="election",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    winner = relationship("Student", foreign_keys=[winner_id])
    created_by = relationship("Student", foreign_keys=[created_by_id])

    def is_open_at(self, now: Optional[datetime] = None) -> bool:
        """OPEN and not past closes_at. Derived on every call, never stored."""
        if self.status == ElectionStatus.CLOSED:
            return False
        now = now or utcnow()
        if self.closes_at is not None and now > self.closes_at:
            return False
        return True

    @property
    def is_open(self) -> bool:
        return self.is_open_at()

    @property
    def voter_count(self) -> int:
        return len(self.voters)

    def find_candidate(self, student_id: str,
                       position: Optional[CandidatePosition] = None) -> Optional["ElectionCandidate"]:
        """First candidate entry for student_id, optionally for one position"""
        for candidate in self.candidates:
            if candidate.student_id != student_id:
                continue
            if position is None or candidate.position == position:
                return candidate
        return None

    def has_voted(self, student_id: str) -> bool:
        return any(voter.student_id == student_id for voter in self.voters)

    def __repr__(self):
        return f"<Election {self.title} [{self.class_name}] {self.status.value if self.status else '-'}>"


class ElectionCandidate(Base):
    """A student standing for one position in one election"""
    __tablename__ = "election_candidates"
    __table_args__ = (
        UniqueConstraint("election_id", "student_id", "position", name="uq_election_candidate_position"),
        CheckConstraint("votes >= 0", name="ck_election_candidate_votes_non_negative"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    election_id = Column(GUID, ForeignKey("elections.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(GUID, ForeignKey("students.id"), nullable=False)
    position = Column(SQLEnum(CandidatePosition), default=CandidatePosition.CR, nullable=False)
    votes = Column(Integer, default=0, nullable=False)
    # Keeps the order candidates were submitted in
    sort_order = Column(Integer, default=0, nullable=False)

    election = relationship("Election", back_populates="candidates")
    student = relationship("Student")

    def __repr__(self):
        return f"<ElectionCandidate {self.student_id} {self.position.value if self.position else '-'}={self.votes}>"


class ElectionVoter(Base):
    """One row per ballot cast; the primary key makes a second ballot impossible"""
    __tablename__ = "election_voters"

    election_id = Column(GUID, ForeignKey("elections.id", ondelete="CASCADE"), primary_key=True)
    student_id = Column(GUID, ForeignKey("students.id", ondelete="CASCADE"), primary_key=True)
    voted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    election = relationship("Election", back_populates="voters")


class ElectionWinner(Base):
    """Declared winner for one position"""
    __tablename__ = "election_winners"

    election_id = Column(GUID, ForeignKey("elections.id", ondelete="CASCADE"), primary_key=True)
    position = Column(SQLEnum(CandidatePosition), primary_key=True)
    student_id = Column(GUID, ForeignKey("students.id"), nullable=False)

    election = relationship("Election", back_populates="winners")
    student = relationship("Student")
