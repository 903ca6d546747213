"""
Unit Tests for the CR role transition
"""
import pytest
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from uniportal.core.exceptions import RoleTransitionError
from uniportal.core.types import generate_uuid
from uniportal.models.student import Student, StudentRole
from uniportal.services.role_transition import promote_to_cr, find_current_cr


async def count_crs(db: AsyncSession, class_name: str) -> int:
    result = await db.execute(
        select(func.count()).select_from(Student).where(
            Student.class_name == class_name, Student.role == StudentRole.CR
        )
    )
    return result.scalar_one()


class TestPromoteToCR:
    """promote_to_cr inside the caller's transaction"""

    @pytest.mark.asyncio
    async def test_missing_arguments_are_noop(self, db_session):
        assert await promote_to_cr(db_session, None, "CSE-1") is None
        assert await promote_to_cr(db_session, generate_uuid(), None) is None

    @pytest.mark.asyncio
    async def test_promotes_when_class_has_no_cr(self, db_session, make_student):
        winner = await make_student()

        transition = await promote_to_cr(db_session, winner.id, "CSE-1")
        await db_session.commit()

        assert transition.promoted_id == winner.id
        assert transition.demoted_ids == []
        assert winner.role == StudentRole.CR
        assert await count_crs(db_session, "CSE-1") == 1

    @pytest.mark.asyncio
    async def test_demotes_incumbent(self, db_session, make_student):
        incumbent = await make_student(role=StudentRole.CR)
        winner = await make_student()

        transition = await promote_to_cr(db_session, winner.id, "CSE-1")
        await db_session.commit()

        assert transition.demoted_ids == [incumbent.id]
        assert transition.promoted_id == winner.id
        current = await find_current_cr(db_session, "CSE-1")
        assert current.id == winner.id
        await db_session.refresh(incumbent)
        assert incumbent.role == StudentRole.STUDENT

    @pytest.mark.asyncio
    async def test_winner_already_cr_changes_nothing(self, db_session, make_student):
        incumbent = await make_student(role=StudentRole.CR)

        transition = await promote_to_cr(db_session, incumbent.id, "CSE-1")

        assert transition.changed is False
        assert incumbent.role == StudentRole.CR

    @pytest.mark.asyncio
    async def test_other_class_untouched(self, db_session, make_student):
        other_cr = await make_student(role=StudentRole.CR, class_name="ECE-2")
        winner = await make_student()

        await promote_to_cr(db_session, winner.id, "CSE-1")
        await db_session.commit()

        await db_session.refresh(other_cr)
        assert other_cr.role == StudentRole.CR

    @pytest.mark.asyncio
    async def test_duplicate_incumbents_all_demoted(self, db_session, make_student):
        """A class that somehow holds two CRs ends with exactly one"""
        await make_student(role=StudentRole.CR)
        await make_student(role=StudentRole.CR)
        winner = await make_student()

        transition = await promote_to_cr(db_session, winner.id, "CSE-1")
        await db_session.commit()

        assert len(transition.demoted_ids) == 2
        assert await count_crs(db_session, "CSE-1") == 1

    @pytest.mark.asyncio
    async def test_missing_winner_raises(self, db_session, make_student):
        incumbent = await make_student(role=StudentRole.CR)
        incumbent_id = incumbent.id

        with pytest.raises(RoleTransitionError):
            await promote_to_cr(db_session, generate_uuid(), "CSE-1")
        await db_session.rollback()

        current = await find_current_cr(db_session, "CSE-1")
        assert current.id == incumbent_id

    @pytest.mark.asyncio
    async def test_winner_from_other_class_raises(self, db_session, make_student):
        """Promoting an outsider would leave their own class with two CRs"""
        incumbent = await make_student(role=StudentRole.CR)
        await make_student(role=StudentRole.CR, class_name="CSE-2")
        outsider = await make_student(class_name="CSE-2")
        incumbent_id, outsider_id = incumbent.id, outsider.id

        with pytest.raises(RoleTransitionError):
            await promote_to_cr(db_session, outsider_id, "CSE-1")
        await db_session.rollback()

        current = await find_current_cr(db_session, "CSE-1")
        assert current.id == incumbent_id
        assert await count_crs(db_session, "CSE-2") == 1
        role = (await db_session.execute(select(Student.role).where(Student.id == outsider_id))).scalar_one()
        assert role == StudentRole.STUDENT
