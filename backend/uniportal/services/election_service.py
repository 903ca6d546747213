"""
Election Service - Business logic for class elections

Handles:
- Creating elections and validating their candidate lists
- Listing / fetching elections with expanded student references
- Casting votes (one ballot per student, atomic counter increment)
- Closing elections: tally, result declaration and CR role transition
- Deleting elections
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, insert, or_
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import selectinload
from typing import Dict, List, Optional, Tuple
import uuid

from uniportal.core.config import settings
from uniportal.core.exceptions import (
    PortalError,
    AuthorizationError,
    InvalidInputError,
    InvalidIdError,
    InvalidCandidatesError,
    ElectionNotFoundError,
    StudentNotFoundError,
    CandidateNotFoundError,
    DuplicateVoteError,
    ElectionClosedError,
    ElectionCloseError,
)
from uniportal.core.logging_config import logger
from uniportal.core.types import is_valid_uuid, utcnow
from uniportal.models.election import (
    Election,
    ElectionCandidate,
    ElectionVoter,
    ElectionWinner,
    ElectionStatus,
    CandidatePosition,
)
from uniportal.models.student import Student, StudentRole
from uniportal.schemas.election import ElectionCreate, ElectionFilters, VoteRequest
from uniportal.services.role_transition import promote_to_cr
from uniportal.services.tally import tally_votes

MANAGER_ROLES = (StudentRole.FACULTY, StudentRole.ADMIN, StudentRole.CR)
CLOSER_ROLES = (StudentRole.FACULTY, StudentRole.ADMIN)
CANDIDATE_ROLES = (StudentRole.STUDENT, StudentRole.CR)


def _canonical_id(value: str, field: str) -> str:
    if not is_valid_uuid(value):
        raise InvalidIdError(field, value)
    return str(uuid.UUID(str(value)))


def _parse_position(value: Optional[str]) -> CandidatePosition:
    return CandidatePosition.GR if value == CandidatePosition.GR.value else CandidatePosition.CR


class ElectionService:
    """Service for managing class elections"""

    # ==================== PERMISSIONS ====================

    @staticmethod
    def ensure_manager(requester: Student) -> None:
        """FACULTY, ADMIN and CR may create elections"""
        if requester.role not in MANAGER_ROLES:
            raise AuthorizationError("Only faculty, admins or class representatives can create elections")

    @staticmethod
    def ensure_closer(requester: Student) -> None:
        """FACULTY and ADMIN may close or delete elections"""
        if requester.role not in CLOSER_ROLES:
            raise AuthorizationError("Only faculty or admins can perform this action")

    # ==================== CREATE ====================

    def normalise_candidates(self, data: ElectionCreate) -> List[Tuple[str, CandidatePosition]]:
        """
        Validate the raw candidate list and collapse duplicates.

        Returns (student_id, position) pairs in first-seen order.

        Raises:
            InvalidCandidatesError: wrong raw count, or fewer than the minimum
                distinct candidates after duplicates are removed
            InvalidIdError: a studentId is not a UUID
        """
        raw = data.candidates
        minimum = settings.ELECTION_MIN_CANDIDATES
        maximum = settings.ELECTION_MAX_CANDIDATES

        if len(raw) < minimum or len(raw) > maximum:
            raise InvalidCandidatesError(
                f"An election needs between {minimum} and {maximum} candidates"
            )

        # Keyed on (student, position); re-assigning keeps the original slot
        unique: Dict[Tuple[str, CandidatePosition], Tuple[str, CandidatePosition]] = {}
        for entry in raw:
            student_id = _canonical_id(entry.student_id, "studentId")
            position = _parse_position(entry.position)
            unique[(student_id, position)] = (student_id, position)

        if len(unique) < minimum:
            raise InvalidCandidatesError(
                f"An election needs at least {minimum} distinct candidates"
            )

        return list(unique.values())

    async def create_election(
        self,
        db: AsyncSession,
        data: ElectionCreate,
        requester: Student
    ) -> Election:
        """
        Create an OPEN election

        Args:
            db: Database session
            data: Election creation data
            requester: Authenticated student creating the election

        Returns:
            Created Election with expanded references
        """
        self.ensure_manager(requester)

        for field_name, alias in (
            ("title", "title"),
            ("class_name", "className"),
            ("branch", "branch"),
            ("academic_year", "acadmicYear"),
        ):
            if not (getattr(data, field_name) or "").strip():
                raise InvalidInputError(f"{alias} is required", field=alias)

        candidates = self.normalise_candidates(data)
        class_name = data.class_name.strip()

        # Every candidate must be an existing student of the election's class
        student_ids = {student_id for student_id, _ in candidates}
        result = await db.execute(select(Student).where(Student.id.in_(student_ids)))
        students = {student.id: student for student in result.scalars().all()}

        for student_id, _ in candidates:
            student = students.get(student_id)
            if student is None:
                raise StudentNotFoundError(student_id)
            if student.role not in CANDIDATE_ROLES:
                raise InvalidInputError(
                    f"{student.name} cannot stand as a candidate",
                    field="candidates",
                )
            if student.class_name != class_name:
                raise InvalidInputError(
                    f"{student.name} is not a student of class {class_name}",
                    field="candidates",
                )

        election = Election(
            title=data.title.strip(),
            class_name=class_name,
            branch=data.branch.strip(),
            academic_year=data.academic_year.strip(),
            closes_at=data.closes_at,
            status=ElectionStatus.OPEN,
            result_declared=False,
            is_draw=False,
            created_by_id=requester.id,
        )
        election.candidates = [
            ElectionCandidate(student_id=student_id, position=position, votes=0, sort_order=index)
            for index, (student_id, position) in enumerate(candidates)
        ]

        db.add(election)
        await db.commit()

        logger.log_election_event(
            "created",
            election.id,
            class_name=election.class_name,
            candidates=len(candidates),
            created_by=requester.id,
        )
        return await self.get_election(db, election.id)

    # ==================== READ ====================

    async def get_election(self, db: AsyncSession, election_id: str) -> Election:
        """Election with candidates, voters, winners and creator loaded"""
        election_id = _canonical_id(election_id, "electionId")
        result = await db.execute(
            select(Election)
            .options(
                selectinload(Election.candidates).selectinload(ElectionCandidate.student),
                selectinload(Election.voters),
                selectinload(Election.winners).selectinload(ElectionWinner.student),
                selectinload(Election.winner),
                selectinload(Election.created_by),
            )
            .where(Election.id == election_id)
            .execution_options(populate_existing=True)
        )
        election = result.scalar_one_or_none()
        if election is None:
            raise ElectionNotFoundError(election_id)
        return election

    async def list_elections(
        self,
        db: AsyncSession,
        filters: Optional[ElectionFilters] = None
    ) -> List[Election]:
        """
        Elections matching the filters, newest first.

        Only OPEN elections are returned unless a status is given or
        include_closed is set.
        """
        filters = filters or ElectionFilters()
        query = select(Election).options(
            selectinload(Election.candidates).selectinload(ElectionCandidate.student),
            selectinload(Election.voters),
            selectinload(Election.winners).selectinload(ElectionWinner.student),
            selectinload(Election.winner),
            selectinload(Election.created_by),
        )

        if filters.status is not None:
            query = query.where(Election.status == filters.status)
        elif not filters.include_closed:
            query = query.where(Election.status == ElectionStatus.OPEN)

        if filters.class_name:
            query = query.where(Election.class_name == filters.class_name)
        if filters.branch:
            query = query.where(Election.branch == filters.branch)

        query = query.order_by(Election.created_at.desc()).execution_options(populate_existing=True)
        result = await db.execute(query)
        return list(result.scalars().all())

    # ==================== VOTE ====================

    async def cast_vote(
        self,
        db: AsyncSession,
        election_id: str,
        requester: Student,
        vote: VoteRequest
    ) -> None:
        """
        Record one ballot for vote.candidate_id.

        Checks run in order before anything is written: election exists,
        election open, requester in the election's class, requester has not
        voted, candidate stands in the election.
        """
        election_id = _canonical_id(election_id, "electionId")
        candidate_id = _canonical_id(vote.candidate_id, "candidateId")
        voter_id = requester.id

        election = await self.get_election(db, election_id)
        now = utcnow()

        if not election.is_open_at(now):
            raise ElectionClosedError(election_id)

        if requester.class_name != election.class_name:
            raise AuthorizationError("You can only vote in your own class election")

        if election.has_voted(voter_id):
            raise DuplicateVoteError(election_id)

        candidate = election.find_candidate(candidate_id, vote.position)
        if candidate is None:
            raise CandidateNotFoundError(candidate_id, election_id)
        candidate_row_id = candidate.id

        # The guard serialises against close: no ballot lands once status flips
        guard = await db.execute(
            update(Election)
            .where(
                Election.id == election_id,
                Election.status == ElectionStatus.OPEN,
                or_(Election.closes_at.is_(None), Election.closes_at >= now),
            )
            .values(updated_at=now)
        )
        if guard.rowcount == 0:
            await db.rollback()
            raise ElectionClosedError(election_id)

        try:
            await db.execute(
                insert(ElectionVoter).values(
                    election_id=election_id,
                    student_id=voter_id,
                    voted_at=now,
                )
            )
        except IntegrityError:
            await db.rollback()
            logger.warning(f"[Election] Duplicate ballot from {voter_id} rejected by constraint on {election_id}")
            raise DuplicateVoteError(election_id)

        await db.execute(
            update(ElectionCandidate)
            .where(ElectionCandidate.id == candidate_row_id)
            .values(votes=ElectionCandidate.votes + 1)
        )
        await db.commit()

        logger.log_election_event("voted", election_id, voter_id=voter_id)

    # ==================== CLOSE ====================

    async def _close_once(self, db: AsyncSession, election_id: str, class_name: str) -> bool:
        """
        One close attempt in one transaction. Returns False when another
        request closed the election first.
        """
        now = utcnow()
        claim = await db.execute(
            update(Election)
            .where(Election.id == election_id, Election.status == ElectionStatus.OPEN)
            .values(
                status=ElectionStatus.CLOSED,
                result_declared=True,
                closed_at=now,
                updated_at=now,
            )
        )
        if claim.rowcount == 0:
            await db.rollback()
            return False

        rows = await db.execute(
            select(ElectionCandidate.student_id, ElectionCandidate.votes)
            .where(
                ElectionCandidate.election_id == election_id,
                ElectionCandidate.position == CandidatePosition.CR,
            )
            .order_by(ElectionCandidate.sort_order)
        )
        tally = tally_votes((row.student_id, row.votes) for row in rows)

        transition = None
        if tally.has_winner:
            transition = await promote_to_cr(db, tally.winner_id, class_name)

        await db.execute(
            update(Election)
            .where(Election.id == election_id)
            .values(is_draw=tally.is_draw, winner_id=tally.winner_id)
        )
        for declared in tally.winners:
            await db.execute(
                insert(ElectionWinner).values(
                    election_id=election_id,
                    position=declared.position,
                    student_id=declared.student_id,
                )
            )

        await db.commit()

        logger.log_election_event(
            "closed",
            election_id,
            outcome=tally.outcome.value,
            winner_id=tally.winner_id,
            is_draw=tally.is_draw,
            promoted_id=transition.promoted_id if transition else None,
            demoted_ids=transition.demoted_ids if transition else [],
        )
        return True

    async def close_election(
        self,
        db: AsyncSession,
        election_id: str,
        requester: Student
    ) -> Election:
        """
        Close an election and declare its result.

        Closing a CLOSED election returns it unchanged. Transient storage
        failures are retried up to ELECTION_CLOSE_MAX_ATTEMPTS times; after
        that ElectionCloseError is raised and nothing has been written.
        """
        self.ensure_closer(requester)

        election = await self.get_election(db, election_id)
        if election.status == ElectionStatus.CLOSED:
            return election

        election_id = election.id
        class_name = election.class_name
        max_attempts = max(1, settings.ELECTION_CLOSE_MAX_ATTEMPTS)

        for attempt in range(1, max_attempts + 1):
            try:
                if not await self._close_once(db, election_id, class_name):
                    logger.info(f"[Election] {election_id} was closed by a concurrent request")
                break
            except OperationalError as e:
                await db.rollback()
                logger.warning(
                    f"[Election] Close attempt {attempt}/{max_attempts} for {election_id} aborted: {e}"
                )
                if attempt == max_attempts:
                    raise ElectionCloseError(election_id, attempts=attempt) from e
            except PortalError:
                await db.rollback()
                raise
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error(f"[Election] Close of {election_id} failed: {e}")
                raise ElectionCloseError(election_id, attempts=attempt) from e

        return await self.get_election(db, election_id)

    # ==================== DELETE ====================

    async def delete_election(
        self,
        db: AsyncSession,
        election_id: str,
        requester: Student
    ) -> None:
        """Hard delete an election with its candidates, voters and winners"""
        self.ensure_closer(requester)
        election_id = _canonical_id(election_id, "electionId")

        result = await db.execute(select(Election).where(Election.id == election_id))
        election = result.scalar_one_or_none()
        if election is None:
            raise ElectionNotFoundError(election_id)

        await db.delete(election)
        await db.commit()

        logger.log_election_event("deleted", election_id, deleted_by=requester.id)


election_service = ElectionService()
