"""
YAAKE Database Seeder

Creates verified demo accounts for each role:
- an applicant
- a recruiter with a company
- a career trainer
"""

import sys
sys.path.insert(0, ".")

from app.db.session import SessionLocal, engine
from app.db.base import Base
from app.core.security import get_password_hash
from app.models import User, ROLE_APPLICANT, ROLE_RECRUITER, ROLE_CAREER_TRAINER

DEMO_PASSWORD = "Demo@123456"

DEMO_USERS = [
    {
        "email": "applicant@yaake.com",
        "full_name": "Alex Applicant",
        "role": ROLE_APPLICANT,
    },
    {
        "email": "recruiter@yaake.com",
        "full_name": "Sarah Chen",
        "role": ROLE_RECRUITER,
        "company_name": "Acme Talent",
    },
    {
        "email": "trainer@yaake.com",
        "full_name": "Taylor Trainer",
        "role": ROLE_CAREER_TRAINER,
    },
]


def seed_database():
    """Seed the database with demo accounts."""

    # Create all tables
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()

    try:
        created = []
        for attributes in DEMO_USERS:
            # Skip accounts from a previous run
            if db.query(User).filter(User.email == attributes["email"]).first():
                continue

            db.add(
                User(
                    hashed_password=get_password_hash(DEMO_PASSWORD),
                    is_verified=True,
                    **attributes,
                )
            )
            created.append(attributes)

        if not created:
            print("Database already seeded. Skipping...")
            return

        db.commit()

        print("✅ Database seeded successfully!")
        print("\n📋 Created Users:")
        for attributes in created:
            print(f"   - {attributes['email']} ({attributes['role']}, password: {DEMO_PASSWORD})")

    except Exception as e:
        db.rollback()
        print(f"❌ Error seeding database: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_database()
