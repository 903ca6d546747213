"""
University Utility Portal - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Callable, Awaitable, List, Optional
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from faker import Faker

# Set testing environment
os.environ['TESTING'] = 'true'
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_uniportal.db'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['LOG_FILE'] = ''

from uniportal.main import app
from uniportal.core.database import Base, get_db, create_engine_for_url
from uniportal.core.security import get_password_hash, create_access_token
from uniportal.models.student import Student, StudentRole
from uniportal.models.election import Election, ElectionCandidate, ElectionStatus, CandidatePosition

fake = Faker()

TEST_PASSWORD = 'testpassword123'
TEST_CLASS = 'CSE-1'

# Test database setup (NullPool + foreign keys, same as the app's SQLite engine)
TEST_DATABASE_URL = os.environ['DATABASE_URL']
test_engine = create_engine_for_url(TEST_DATABASE_URL)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


# ==================== Students ====================

StudentFactory = Callable[..., Awaitable[Student]]


@pytest.fixture
def make_student(db_session: AsyncSession) -> StudentFactory:
    """Factory creating committed students with Faker data"""
    async def _make(
        role: StudentRole = StudentRole.STUDENT,
        class_name: Optional[str] = TEST_CLASS,
        is_active: bool = True,
        **overrides
    ) -> Student:
        student = Student(
            id_no=overrides.pop('id_no', fake.unique.bothify('R##????').upper()),
            email=overrides.pop('email', fake.unique.email()),
            name=overrides.pop('name', fake.name()),
            hashed_password=get_password_hash(overrides.pop('password', TEST_PASSWORD)),
            role=role,
            class_name=class_name,
            branch=overrides.pop('branch', 'CSE'),
            section=overrides.pop('section', '1'),
            academic_year=overrides.pop('academic_year', 'E3'),
            is_active=is_active,
            **overrides
        )
        db_session.add(student)
        await db_session.commit()
        await db_session.refresh(student)
        return student

    return _make


@pytest.fixture
async def test_student(make_student: StudentFactory) -> Student:
    return await make_student()


@pytest.fixture
async def faculty_user(make_student: StudentFactory) -> Student:
    return await make_student(role=StudentRole.FACULTY, class_name=None)


@pytest.fixture
async def admin_user(make_student: StudentFactory) -> Student:
    return await make_student(role=StudentRole.ADMIN, class_name=None)


@pytest.fixture
async def candidates(make_student: StudentFactory) -> List[Student]:
    """Three students of TEST_CLASS standing for CR"""
    return [await make_student() for _ in range(3)]


def bearer(student: Student) -> dict:
    """Authorization header for a student"""
    token = create_access_token({'sub': str(student.id), 'role': student.role.value})
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def auth_headers(test_student: Student) -> dict:
    return bearer(test_student)


@pytest.fixture
def faculty_headers(faculty_user: Student) -> dict:
    return bearer(faculty_user)


@pytest.fixture
def admin_headers(admin_user: Student) -> dict:
    return bearer(admin_user)


# ==================== Elections ====================

@pytest.fixture
def make_election(db_session: AsyncSession):
    """
    Factory inserting an election directly, bypassing the service.

    votes: optional list of counts, one per candidate (CR position)
    """
    async def _make(
        created_by: Student,
        candidate_students: List[Student],
        votes: Optional[List[int]] = None,
        class_name: str = TEST_CLASS,
        status: ElectionStatus = ElectionStatus.OPEN,
        closes_at=None,
        positions: Optional[List[CandidatePosition]] = None,
    ) -> Election:
        votes = votes or [0] * len(candidate_students)
        positions = positions or [CandidatePosition.CR] * len(candidate_students)
        election = Election(
            title=f"{class_name} CR election",
            class_name=class_name,
            branch='CSE',
            academic_year='E3',
            status=status,
            closes_at=closes_at,
            created_by_id=created_by.id,
        )
        election.candidates = [
            ElectionCandidate(student_id=s.id, position=p, votes=v, sort_order=i)
            for i, (s, p, v) in enumerate(zip(candidate_students, positions, votes))
        ]
        db_session.add(election)
        await db_session.commit()
        return election

    return _make


@pytest.fixture
def headers_for() -> Callable[[Student], dict]:
    return bearer
