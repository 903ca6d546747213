"""
Unit Tests for the student service
"""
import pytest
from fastapi import HTTPException
from sqlalchemy import select, func

from uniportal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidCredentialsError,
    InvalidInputError,
    StudentAlreadyExistsError,
    StudentNotFoundError,
)
from uniportal.core.security import decode_token, hash_refresh_token
from uniportal.core.types import generate_uuid
from uniportal.models.student import Student, StudentRole
from uniportal.schemas.student import StudentRegister, StudentProfileUpdate
from uniportal.services.student_service import student_service

from faker import Faker

fake = Faker()


def registration(**overrides) -> StudentRegister:
    data = {
        "id_no": fake.unique.bothify("R21####"),
        "email": fake.unique.email(),
        "password": "secret123",
        "name": fake.name(),
        "class_name": "CSE-1",
        "academic_year": "E3",
        "branch": "CSE",
        "section": "1",
    }
    data.update(overrides)
    return StudentRegister(**data)


class TestRegister:

    @pytest.mark.asyncio
    async def test_register_student(self, db_session):
        data = registration()

        student = await student_service.register(db_session, data)

        assert student.role == StudentRole.STUDENT
        assert student.email == data.email.lower()
        assert student.hashed_password != "secret123"
        assert student.class_name == "CSE-1"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", [StudentRole.CR, StudentRole.FACULTY, StudentRole.ADMIN])
    async def test_privileged_roles_refused(self, db_session, role):
        with pytest.raises(AuthorizationError):
            await student_service.register(db_session, registration(role=role))

    @pytest.mark.asyncio
    async def test_duplicate_id_no(self, db_session, test_student):
        with pytest.raises(StudentAlreadyExistsError):
            await student_service.register(db_session, registration(id_no=test_student.id_no))

    @pytest.mark.asyncio
    async def test_duplicate_email_case_insensitive(self, db_session, test_student):
        with pytest.raises(StudentAlreadyExistsError):
            await student_service.register(db_session, registration(email=test_student.email.upper()))

    @pytest.mark.asyncio
    async def test_blank_id_no(self, db_session):
        with pytest.raises(InvalidInputError):
            await student_service.register(db_session, registration(id_no="  "))


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_login_by_email_and_id_no(self, db_session, make_student):
        student = await make_student(password="pass1234")

        by_email, tokens = await student_service.authenticate(db_session, student.email, "pass1234")
        by_id_no, _ = await student_service.authenticate(db_session, student.id_no, "pass1234")

        assert by_email.id == by_id_no.id == student.id
        assert decode_token(tokens["access_token"])["sub"] == student.id
        assert student.refresh_token_hash is not None
        assert student.last_login is not None

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, test_student):
        with pytest.raises(InvalidCredentialsError):
            await student_service.authenticate(db_session, test_student.email, "wrong-password")

    @pytest.mark.asyncio
    async def test_unknown_identifier(self, db_session):
        with pytest.raises(InvalidCredentialsError):
            await student_service.authenticate(db_session, "nobody@example.com", "whatever")

    @pytest.mark.asyncio
    async def test_inactive_account(self, db_session, make_student):
        student = await make_student(is_active=False, password="pass1234")

        with pytest.raises(AuthorizationError):
            await student_service.authenticate(db_session, student.email, "pass1234")


class TestRefreshAndLogout:

    @pytest.mark.asyncio
    async def test_refresh_rotates_token(self, db_session, make_student):
        student = await make_student(password="pass1234")
        _, tokens = await student_service.authenticate(db_session, student.email, "pass1234")

        new_tokens = await student_service.refresh(db_session, tokens["refresh_token"])

        assert student.refresh_token_hash == hash_refresh_token(new_tokens["refresh_token"])
        if new_tokens["refresh_token"] != tokens["refresh_token"]:
            with pytest.raises(AuthenticationError):
                await student_service.refresh(db_session, tokens["refresh_token"])

    @pytest.mark.asyncio
    async def test_access_token_cannot_refresh(self, db_session, make_student):
        student = await make_student(password="pass1234")
        _, tokens = await student_service.authenticate(db_session, student.email, "pass1234")

        with pytest.raises(AuthenticationError):
            await student_service.refresh(db_session, tokens["access_token"])

    @pytest.mark.asyncio
    async def test_garbage_token(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            await student_service.refresh(db_session, "not.a.jwt")

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_invalidates_refresh(self, db_session, make_student):
        student = await make_student(password="pass1234")
        _, tokens = await student_service.authenticate(db_session, student.email, "pass1234")

        await student_service.logout(db_session, student)

        assert student.refresh_token_hash is None
        with pytest.raises(AuthenticationError):
            await student_service.refresh(db_session, tokens["refresh_token"])


class TestProfileAndDirectory:

    @pytest.mark.asyncio
    async def test_update_profile(self, db_session, test_student):
        updated = await student_service.update_profile(
            db_session, test_student, StudentProfileUpdate(name="  New Name ", phone="9876543210")
        )

        assert updated.name == "New Name"
        assert updated.phone == "9876543210"
        assert updated.class_name == "CSE-1"

    @pytest.mark.asyncio
    async def test_list_requires_staff_or_cr(self, db_session, test_student):
        with pytest.raises(AuthorizationError):
            await student_service.list_students(db_session, test_student)

    @pytest.mark.asyncio
    async def test_list_filters_and_sorts(self, db_session, faculty_user, make_student):
        await make_student(name="Zara Khan")
        await make_student(name="Arjun Rao")
        await make_student(name="Meera Das", class_name="ECE-2")

        students = await student_service.list_students(db_session, faculty_user, class_name="CSE-1")
        found = await student_service.list_students(db_session, faculty_user, class_name="CSE-1", search="arj")

        assert [s.name for s in students] == ["Arjun Rao", "Zara Khan"]
        assert [s.name for s in found] == ["Arjun Rao"]


class TestSetRole:

    @pytest.mark.asyncio
    async def test_admin_grants_cr_and_demotes_incumbent(self, db_session, admin_user, make_student):
        incumbent = await make_student(role=StudentRole.CR)
        student = await make_student()

        updated = await student_service.set_role(db_session, student.id, StudentRole.CR, admin_user)

        assert updated.role == StudentRole.CR
        await db_session.refresh(incumbent)
        assert incumbent.role == StudentRole.STUDENT
        crs = (await db_session.execute(
            select(func.count()).select_from(Student).where(
                Student.class_name == "CSE-1", Student.role == StudentRole.CR
            )
        )).scalar_one()
        assert crs == 1

    @pytest.mark.asyncio
    async def test_admin_sets_faculty(self, db_session, admin_user, test_student):
        updated = await student_service.set_role(db_session, test_student.id, StudentRole.FACULTY, admin_user)

        assert updated.role == StudentRole.FACULTY

    @pytest.mark.asyncio
    async def test_cr_without_class_rejected(self, db_session, admin_user, make_student):
        student = await make_student(class_name=None)

        with pytest.raises(InvalidInputError):
            await student_service.set_role(db_session, student.id, StudentRole.CR, admin_user)

    @pytest.mark.asyncio
    async def test_faculty_cannot_set_role(self, db_session, faculty_user, test_student):
        with pytest.raises(AuthorizationError):
            await student_service.set_role(db_session, test_student.id, StudentRole.CR, faculty_user)

    @pytest.mark.asyncio
    async def test_unknown_student(self, db_session, admin_user):
        with pytest.raises(StudentNotFoundError):
            await student_service.set_role(db_session, generate_uuid(), StudentRole.CR, admin_user)
