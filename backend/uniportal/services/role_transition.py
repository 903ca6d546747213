"""
Role Transition - moves the CR designation of a class to an election winner

promote_to_cr() never commits. It runs inside the caller's transaction so the
demotion, the promotion and the election result land together or not at all;
on any failure the caller rolls back and no class is left with zero or two CRs.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from uniportal.core.exceptions import RoleTransitionError
from uniportal.models.student import Student, StudentRole

logger = logging.getLogger(__name__)


@dataclass
class RoleTransition:
    """What promote_to_cr changed"""
    class_name: str
    promoted_id: Optional[str] = None
    demoted_ids: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.promoted_id or self.demoted_ids)


async def find_current_cr(db: AsyncSession, class_name: str) -> Optional[Student]:
    """The student holding CR for class_name, if any"""
    result = await db.execute(
        select(Student)
        .where(Student.class_name == class_name, Student.role == StudentRole.CR)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def promote_to_cr(
    db: AsyncSession,
    winner_id: Optional[str],
    class_name: Optional[str],
) -> Optional[RoleTransition]:
    """
    Demote the current CR of class_name (if it is someone else) and make
    winner_id the CR. Returns None when either argument is missing.

    Raises:
        RoleTransitionError: winner record is missing or outside class_name;
            also raised when the flush failed.
            The session is left dirty; the caller must roll back.
    """
    if not winner_id or not class_name:
        return None

    transition = RoleTransition(class_name=class_name)

    try:
        # Lock the incumbent(s) and the winner until the caller commits
        incumbents = (await db.execute(
            select(Student)
            .where(Student.class_name == class_name, Student.role == StudentRole.CR)
            .with_for_update()
        )).scalars().all()

        winner = (await db.execute(
            select(Student).where(Student.id == winner_id).with_for_update()
        )).scalar_one_or_none()

        if winner is None:
            raise RoleTransitionError(
                f"Election winner {winner_id} no longer exists",
                class_name=class_name,
            )

        if winner.class_name != class_name:
            raise RoleTransitionError(
                f"Election winner {winner_id} is not a student of class {class_name}",
                class_name=class_name,
            )

        if len(incumbents) > 1:
            logger.warning(
                f"[RoleTransition] {len(incumbents)} CRs found for class {class_name}, demoting all but the winner"
            )

        for incumbent in incumbents:
            if incumbent.id != winner.id:
                incumbent.role = StudentRole.STUDENT
                transition.demoted_ids.append(incumbent.id)

        if winner.role != StudentRole.CR:
            winner.role = StudentRole.CR
            transition.promoted_id = winner.id

        if transition.changed:
            await db.flush()

    except (RoleTransitionError, OperationalError):
        # OperationalError (deadlock, serialization failure) is retried by the caller
        raise
    except SQLAlchemyError as e:
        logger.error(f"[RoleTransition] Failed for class {class_name}: {e}")
        raise RoleTransitionError(
            f"Could not update CR role for class {class_name}",
            class_name=class_name,
        ) from e

    if transition.changed:
        logger.info(
            f"[RoleTransition] Class {class_name}: promoted={transition.promoted_id} "
            f"demoted={transition.demoted_ids}"
        )
    else:
        logger.info(f"[RoleTransition] Class {class_name}: {winner_id} already CR, nothing to do")

    return transition
