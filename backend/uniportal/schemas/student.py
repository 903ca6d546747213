from pydantic import EmailStr, Field
from typing import Optional, List
from datetime import datetime

from uniportal.models.student import StudentRole
from uniportal.schemas.common import CamelModel


class StudentRegister(CamelModel):
    id_no: str = ""
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = ""
    role: StudentRole = StudentRole.STUDENT
    class_name: Optional[str] = None
    academic_year: Optional[str] = Field(None, alias="acadmicYear")
    branch: Optional[str] = None
    section: Optional[str] = None
    phone: Optional[str] = Field(None, pattern=r'^\+?\d{10,13}$')


class StudentLogin(CamelModel):
    identifier: str = ""  # email or idNo
    password: str = ""


class RefreshTokenRequest(CamelModel):
    refresh_token: str = ""


class StudentProfileUpdate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = Field(None, pattern=r'^\+?\d{10,13}$')
    branch: Optional[str] = None
    section: Optional[str] = None


class StudentRoleUpdate(CamelModel):
    role: StudentRole


class StudentSummary(CamelModel):
    """Expanded student reference used inside election payloads"""
    id: str
    name: str
    email: str
    id_no: str
    class_name: Optional[str] = Field(None, alias="class")


class StudentResponse(CamelModel):
    id: str
    id_no: str
    email: str
    name: str
    role: StudentRole
    class_name: Optional[str] = Field(None, alias="class")
    branch: Optional[str] = None
    section: Optional[str] = None
    academic_year: Optional[str] = Field(None, alias="acadmicYear")
    phone: Optional[str] = None
    is_active: bool = True
    created_at: datetime


class LoginResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    student: StudentResponse


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class StudentListResponse(CamelModel):
    students: List[StudentResponse]
    total: int
