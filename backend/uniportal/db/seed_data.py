"""
Demo Seed Data

Creates the demo accounts used on the portal login page:
- admin@university.edu / demo123 -> ADMIN
- faculty@university.edu / demo123 -> FACULTY
- one class (CSE-1) of students, the first of whom is its CR

Run with: python -m uniportal.db.seed_data [list]
"""
import asyncio
import sys
from typing import Dict, List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from uniportal.core.database import AsyncSessionLocal, init_db
from uniportal.core.security import get_password_hash
from uniportal.models.student import Student, StudentRole

DEMO_PASSWORD = "demo123"
DEMO_CLASS = "CSE-1"

DEMO_STAFF = [
    {"id_no": "ADM001", "email": "admin@university.edu", "name": "Demo Admin", "role": StudentRole.ADMIN},
    {"id_no": "FAC001", "email": "faculty@university.edu", "name": "Demo Faculty", "role": StudentRole.FACULTY},
]

DEMO_STUDENT_NAMES = [
    "Rahul Sharma",
    "Priya Patel",
    "Amit Kumar",
    "Sneha Reddy",
    "Vikram Singh",
    "Ananya Iyer",
]


def demo_accounts() -> List[Dict]:
    accounts = [dict(staff) for staff in DEMO_STAFF]
    for index, name in enumerate(DEMO_STUDENT_NAMES, start=1):
        accounts.append({
            "id_no": f"R21{index:04d}",
            "email": f"student{index}@university.edu",
            "name": name,
            "role": StudentRole.CR if index == 1 else StudentRole.STUDENT,
            "class_name": DEMO_CLASS,
            "branch": "CSE",
            "section": "1",
            "academic_year": "E3",
        })
    return accounts


async def seed_demo_data(db: AsyncSession) -> Dict[str, int]:
    """Create missing demo accounts; existing ones get their password reset"""
    created = 0
    updated = 0
    hashed = get_password_hash(DEMO_PASSWORD)

    for account in demo_accounts():
        result = await db.execute(select(Student).where(Student.email == account["email"]))
        existing = result.scalar_one_or_none()

        if existing:
            existing.hashed_password = hashed
            existing.is_active = True
            updated += 1
            continue

        db.add(Student(hashed_password=hashed, is_active=True, **account))
        created += 1

    await db.commit()
    return {"created": created, "updated": updated}


async def seed():
    print("=" * 50)
    print("Seeding demo accounts...")
    print("=" * 50)

    await init_db()
    async with AsyncSessionLocal() as db:
        counts = await seed_demo_data(db)

    print(f"  Created: {counts['created']}")
    print(f"  Updated: {counts['updated']}")
    print(f"\nAll demo accounts use password: {DEMO_PASSWORD}")


async def list_demo_accounts():
    await init_db()
    async with AsyncSessionLocal() as db:
        emails = [account["email"] for account in demo_accounts()]
        result = await db.execute(select(Student).where(Student.email.in_(emails)).order_by(Student.id_no))
        students = result.scalars().all()

    print(f"{'idNo':<10} {'Email':<30} {'Role':<10} {'Class':<8}")
    print("-" * 60)
    for student in students:
        print(f"{student.id_no:<10} {student.email:<30} {student.role.value:<10} {student.class_name or '-':<8}")

    if not students:
        print("No demo accounts found. Run 'python -m uniportal.db.seed_data' to create them.")


def main():
    if len(sys.argv) > 1 and sys.argv[1] == "list":
        asyncio.run(list_demo_accounts())
    else:
        asyncio.run(seed())


if __name__ == "__main__":
    main()
