"""
Seed script - populates the database with test data for development.

Usage:
    python -m scripts.seed

Creates one employer, two workers (with skills and income goals), an
admin, and a handful of open jobs in two barangays. Prints a bearer
token per user so the API can be exercised from /docs right away.

This script is IDEMPOTENT - running it twice won't create duplicates.
It checks for existing data before inserting.
"""
import asyncio
from datetime import timedelta
from decimal import Decimal

from sqlalchemy import select

from bayanihan.core.database import async_session_maker, init_db
from bayanihan.core.security import create_access_token
from bayanihan.models.base import utcnow
from bayanihan.models.enums import UserRole
from bayanihan.models.goal import Goal
from bayanihan.models.job import Job
from bayanihan.models.user import User


# ─── Users ─────────────────────────────────────────────────────

USERS = [
    {
        "email": "employer@bayanihan.dev",
        "full_name": "Aling Nena Santos",
        "mobile_no": "09171234567",
        "role": UserRole.EMPLOYER.value,
        "barangay": "San Isidro",
        "skills": [],
        "is_verified": True,
    },
    {
        "email": "worker@bayanihan.dev",
        "full_name": "Mang Jose Reyes",
        "mobile_no": "09181234567",
        "role": UserRole.EMPLOYEE.value,
        "barangay": "San Isidro",
        "skills": ["Plumbing", "Carpentry", "Electrical"],
        "is_verified": True,
        "sms_opt_in": True,
    },
    {
        "email": "both@bayanihan.dev",
        "full_name": "Liza Cruz",
        "mobile_no": "09191234567",
        "role": UserRole.BOTH.value,
        "barangay": "Poblacion",
        "skills": ["Cooking", "Laundry", "Tutoring"],
        "is_verified": False,
    },
    {
        "email": "admin@bayanihan.dev",
        "full_name": "Barangay Admin",
        "role": UserRole.ADMIN.value,
        "barangay": "San Isidro",
        "skills": [],
        "is_verified": True,
    },
]


# ─── Goals (per worker email) ──────────────────────────────────

GOALS = {
    "worker@bayanihan.dev": [
        ("School supplies for the kids", Decimal("3000"), 0),
        ("New set of tools", Decimal("5000"), 1),
    ],
    "both@bayanihan.dev": [
        ("Rice for the month", Decimal("2500"), 0),
    ],
}


# ─── Jobs ──────────────────────────────────────────────────────

SAMPLE_JOBS = [
    {
        "title": "Fix leaking kitchen sink",
        "description": "Pipe under the sink has been leaking for a week.",
        "skills_required": ["Plumbing"],
        "barangay": "San Isidro",
        "location": "Purok 3, near the chapel",
        "price": Decimal("800"),
        "days_ago": 0,
    },
    {
        "title": "Build a bamboo bench",
        "description": "Two-seater bench for the front yard.",
        "skills_required": ["Carpentry"],
        "barangay": "San Isidro",
        "price": Decimal("1500"),
        "days_ago": 2,
    },
    {
        "title": "Rewire sari-sari store lights",
        "skills_required": ["Electrical", "Carpentry"],
        "barangay": "Poblacion",
        "price": Decimal("2000"),
        "days_ago": 5,
    },
    {
        "title": "Cook for a birthday handaan",
        "description": "Pancit, lumpia and menudo for about 40 guests.",
        "skills_required": ["Cooking"],
        "barangay": "Poblacion",
        "price": Decimal("3500"),
        "days_ago": 1,
    },
    {
        "title": "Grade 4 math tutoring",
        "skills_required": ["Tutoring"],
        "barangay": "San Isidro",
        "price": Decimal("300"),
        "days_ago": 10,
    },
]


async def seed():
    """Main seed function."""
    print("Seeding database...")

    await init_db()
    print("  Tables created")

    async with async_session_maker() as db:
        # ── Users ──────────────────────────────────────────
        users = {}
        for data in USERS:
            result = await db.execute(select(User).where(User.email == data["email"]))
            user = result.scalar_one_or_none()
            if user is None:
                user = User(**data)
                db.add(user)
            users[data["email"]] = user
        await db.flush()
        print(f"  Users ready: {len(users)}")

        # ── Goals ──────────────────────────────────────────
        for email, goals in GOALS.items():
            owner = users[email]
            existing = await db.execute(select(Goal).where(Goal.user_id == owner.id).limit(1))
            if existing.scalar_one_or_none():
                print(f"  Goals for {email} already exist, skipping...")
                continue
            for description, target, priority in goals:
                db.add(Goal(
                    user_id=owner.id,
                    description=description,
                    target_amount=target,
                    current_amount=Decimal("0"),
                    priority=priority,
                    is_active=priority == 0,
                ))
            print(f"  Created {len(goals)} goals for {email}")
        await db.flush()

        # ── Jobs ───────────────────────────────────────────
        employer = users["employer@bayanihan.dev"]
        existing = await db.execute(select(Job).where(Job.posted_by == employer.id).limit(1))
        if existing.scalar_one_or_none():
            print("  Jobs already exist, skipping...")
        else:
            now = utcnow()
            for job_data in SAMPLE_JOBS:
                job_data = dict(job_data)
                days_ago = job_data.pop("days_ago")
                db.add(Job(posted_by=employer.id, date_posted=now - timedelta(days=days_ago), **job_data))
            await db.flush()
            print(f"  Created {len(SAMPLE_JOBS)} jobs")

        # Commit everything
        await db.commit()
        print()
        print("Seed complete! Bearer tokens (valid for 7 days):")
        for email, user in users.items():
            token = create_access_token({"sub": str(user.id)}, expires_delta=timedelta(days=7))
            print(f"  {email} ({user.role}): {token}")


if __name__ == "__main__":
    asyncio.run(seed())
