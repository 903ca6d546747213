from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Index
from datetime import datetime
import enum

from uniportal.core.database import Base
from uniportal.core.types import GUID, generate_uuid


class StudentRole(str, enum.Enum):
    """Portal roles. CR is held by at most one student per class."""
    STUDENT = "STUDENT"
    CR = "CR"
    FACULTY = "FACULTY"
    ADMIN = "ADMIN"


class Student(Base):
    """Identity record for students, CRs, faculty and admins"""
    __tablename__ = "students"
    __table_args__ = (
        # "current CR of a class" lookup
        Index("ix_students_class_role", "class", "role"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    id_no = Column(String(50), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=False)

    role = Column(SQLEnum(StudentRole), default=StudentRole.STUDENT, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Academic details
    class_name = Column("class", String(20), nullable=True)
    branch = Column(String(100), nullable=True)
    section = Column(String(20), nullable=True)
    academic_year = Column(String(10), nullable=True)
    phone = Column(String(20), nullable=True)

    # sha256 of the last issued refresh token, cleared on logout
    refresh_token_hash = Column(String(64), nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<Student {self.id_no} ({self.role.value if self.role else '-'})>"
