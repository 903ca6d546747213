"""
Student Service - registration, login and profile management

Role changes made by an admin go through promote_to_cr when the new role is
CR, so the one-CR-per-class rule holds outside elections too.
"""

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_, func
from sqlalchemy.exc import IntegrityError
from typing import Dict, List, Optional, Tuple

from uniportal.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    InvalidCredentialsError,
    InvalidInputError,
    StudentAlreadyExistsError,
    StudentNotFoundError,
)
from uniportal.core.logging_config import logger
from uniportal.core.security import (
    get_password_hash,
    verify_password,
    create_token_pair,
    decode_token,
    hash_refresh_token,
    refresh_token_matches,
)
from uniportal.core.types import is_valid_uuid, utcnow
from uniportal.models.student import Student, StudentRole
from uniportal.schemas.student import StudentRegister, StudentProfileUpdate
from uniportal.services.role_transition import promote_to_cr

DIRECTORY_ROLES = (StudentRole.ADMIN, StudentRole.FACULTY, StudentRole.CR)


class StudentService:
    """Service for student identities"""

    async def get_student(self, db: AsyncSession, student_id: str) -> Student:
        if not is_valid_uuid(student_id):
            raise StudentNotFoundError(str(student_id))
        result = await db.execute(select(Student).where(Student.id == student_id))
        student = result.scalar_one_or_none()
        if student is None:
            raise StudentNotFoundError(student_id)
        return student

    async def register(self, db: AsyncSession, data: StudentRegister) -> Student:
        """
        Register a new student account

        Raises:
            AuthorizationError: a privileged role was requested
            StudentAlreadyExistsError: idNo or email already taken
        """
        if data.role != StudentRole.STUDENT:
            # CR comes from elections or an admin; FACULTY/ADMIN are provisioned
            raise AuthorizationError("Only student accounts can be self-registered")

        id_no = data.id_no.strip()
        name = data.name.strip()
        if not id_no:
            raise InvalidInputError("idNo is required", field="idNo")
        if not name:
            raise InvalidInputError("name is required", field="name")

        email = data.email.lower()
        existing = await db.execute(
            select(Student).where(or_(Student.id_no == id_no, Student.email == email))
        )
        if existing.scalars().first():
            raise StudentAlreadyExistsError()

        student = Student(
            id_no=id_no,
            email=email,
            name=name,
            hashed_password=get_password_hash(data.password),
            role=StudentRole.STUDENT,
            class_name=data.class_name,
            academic_year=data.academic_year,
            branch=data.branch,
            section=data.section,
            phone=data.phone,
        )
        db.add(student)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            raise StudentAlreadyExistsError()
        await db.refresh(student)

        logger.log_auth_event("register", True, identifier=email, student_id=student.id)
        return student

    async def authenticate(
        self,
        db: AsyncSession,
        identifier: str,
        password: str
    ) -> Tuple[Student, Dict[str, str]]:
        """Check credentials (identifier is an email or idNo) and issue tokens"""
        identifier = (identifier or "").strip()
        if not identifier or not password:
            raise InvalidInputError("Identifier and password are required")

        result = await db.execute(
            select(Student).where(
                or_(Student.email == identifier.lower(), Student.id_no == identifier)
            )
        )
        student = result.scalars().first()

        if student is None or not verify_password(password, student.hashed_password):
            logger.log_auth_event("login", False, identifier=identifier, reason="invalid credentials")
            raise InvalidCredentialsError()

        if not student.is_active:
            logger.log_auth_event("login", False, identifier=identifier, reason="account inactive")
            raise AuthorizationError("Account is deactivated")

        tokens = create_token_pair(student.id, student.role.value)
        student.refresh_token_hash = hash_refresh_token(tokens["refresh_token"])
        student.last_login = utcnow()
        await db.commit()

        logger.log_auth_event("login", True, identifier=identifier, student_id=student.id)
        return student, tokens

    async def refresh(self, db: AsyncSession, refresh_token: str) -> Dict[str, str]:
        """Rotate the token pair; the old refresh token stops working"""
        if not refresh_token:
            raise AuthenticationError("Refresh token is required")

        payload = decode_token(refresh_token)
        if payload.get("type") != "refresh":
            raise AuthenticationError("Invalid refresh token")

        student_id = payload.get("sub")
        student = None
        if is_valid_uuid(student_id):
            result = await db.execute(select(Student).where(Student.id == student_id))
            student = result.scalar_one_or_none()

        if student is None or not refresh_token_matches(refresh_token, student.refresh_token_hash):
            logger.log_auth_event("refresh", False, identifier=student_id, reason="token mismatch")
            raise AuthenticationError("Invalid refresh token")

        tokens = create_token_pair(student.id, student.role.value)
        student.refresh_token_hash = hash_refresh_token(tokens["refresh_token"])
        await db.commit()

        logger.log_auth_event("refresh", True, identifier=student.id)
        return tokens

    async def logout(self, db: AsyncSession, student: Student) -> None:
        student.refresh_token_hash = None
        await db.commit()
        logger.log_auth_event("logout", True, identifier=student.id)

    async def update_profile(
        self,
        db: AsyncSession,
        student: Student,
        data: StudentProfileUpdate
    ) -> Student:
        """Update contact details; class and role are not self-editable"""
        updates = data.model_dump(exclude_unset=True, exclude_none=True)
        for field_name, value in updates.items():
            setattr(student, field_name, value.strip() if isinstance(value, str) else value)

        if updates:
            await db.commit()
            await db.refresh(student)
        return student

    async def list_students(
        self,
        db: AsyncSession,
        requester: Student,
        class_name: Optional[str] = None,
        search: Optional[str] = None
    ) -> List[Student]:
        """Directory listing for staff and CRs, sorted by name"""
        if requester.role not in DIRECTORY_ROLES:
            raise AuthorizationError("Only faculty, admins or class representatives can list students")

        query = select(Student)
        if class_name:
            query = query.where(Student.class_name == class_name)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(func.lower(Student.name).like(pattern), func.lower(Student.id_no).like(pattern))
            )

        result = await db.execute(query.order_by(Student.name))
        return list(result.scalars().all())

    async def set_role(
        self,
        db: AsyncSession,
        student_id: str,
        role: StudentRole,
        requester: Student
    ) -> Student:
        """Admin role change. Granting CR demotes the class' current CR."""
        if requester.role != StudentRole.ADMIN:
            raise AuthorizationError("Only admins can change roles")

        student = await self.get_student(db, student_id)

        if role == StudentRole.CR:
            if not student.class_name:
                raise InvalidInputError("Student has no class to represent", field="role")
            await promote_to_cr(db, student.id, student.class_name)
        else:
            student.role = role

        await db.commit()
        await db.refresh(student)

        logger.info(f"[Student] Role of {student.id} set to {role.value} by {requester.id}")
        return student


student_service = StudentService()
