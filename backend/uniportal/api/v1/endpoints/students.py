"""
Student API Endpoints
- Registration and login (rate limited)
- Token refresh / logout
- Own profile
- Directory listing and admin role changes
"""

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from uniportal.core.database import get_db
from uniportal.core.rate_limiter import auth_rate_limit, strict_rate_limit
from uniportal.models.student import Student, StudentRole
from uniportal.modules.auth.dependencies import get_current_user, require_roles
from uniportal.schemas.common import SuccessResponse
from uniportal.schemas.student import (
    StudentRegister,
    StudentLogin,
    RefreshTokenRequest,
    StudentProfileUpdate,
    StudentRoleUpdate,
    StudentResponse,
    StudentListResponse,
    LoginResponse,
    TokenPair,
)
from uniportal.services.student_service import student_service

router = APIRouter()


@router.post("/register", response_model=StudentResponse, status_code=status.HTTP_201_CREATED)
@strict_rate_limit()
async def register(
    request: Request,
    data: StudentRegister,
    db: AsyncSession = Depends(get_db)
):
    """Register a student account (rate limited: 3/min)"""
    student = await student_service.register(db, data)
    return StudentResponse.model_validate(student)


@router.post("/login", response_model=LoginResponse)
@auth_rate_limit()
async def login(
    request: Request,
    credentials: StudentLogin,
    db: AsyncSession = Depends(get_db)
):
    """Login with email or idNo (rate limited: 5/min)"""
    student, tokens = await student_service.authenticate(
        db, credentials.identifier, credentials.password
    )
    return LoginResponse(
        access_token=tokens["access_token"],
        refresh_token=tokens["refresh_token"],
        student=StudentResponse.model_validate(student),
    )


@router.post("/refresh-token", response_model=TokenPair)
async def refresh_token(
    data: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    tokens = await student_service.refresh(db, data.refresh_token)
    return TokenPair(**tokens)


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    current_user: Student = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await student_service.logout(db, current_user)
    return SuccessResponse(message="Logged out successfully")


@router.get("/profile", response_model=StudentResponse)
async def get_profile(current_user: Student = Depends(get_current_user)):
    return StudentResponse.model_validate(current_user)


@router.put("/profile", response_model=StudentResponse)
async def update_profile(
    data: StudentProfileUpdate,
    current_user: Student = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    student = await student_service.update_profile(db, current_user, data)
    return StudentResponse.model_validate(student)


@router.get("", response_model=StudentListResponse)
async def list_students(
    class_name: Optional[str] = Query(None, alias="className"),
    search: Optional[str] = Query(None),
    current_user: Student = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Students sorted by name (ADMIN, FACULTY or CR)"""
    students = await student_service.list_students(db, current_user, class_name, search)
    return StudentListResponse(
        students=[StudentResponse.model_validate(s) for s in students],
        total=len(students),
    )


@router.put("/{student_id}/role", response_model=StudentResponse)
async def set_role(
    student_id: str,
    data: StudentRoleUpdate,
    current_user: Student = Depends(require_roles(StudentRole.ADMIN)),
    db: AsyncSession = Depends(get_db)
):
    """Change a student's role (ADMIN). Granting CR demotes the class' current CR."""
    student = await student_service.set_role(db, student_id, data.role, current_user)
    return StudentResponse.model_validate(student)
