"""
Startup seeding for the section catalog and the admin account
"""
import logging

from sqlalchemy.orm import Session

from career_profiling.config import settings
from career_profiling.models import Section, User, UserRole

logger = logging.getLogger(__name__)


SECTION_DEFINITIONS = [
    {
        "order_index": 1,
        "name": "Section 1: Intelligence Test (Cognitive Reasoning)",
        "description": "Logical Reasoning, Numerical Reasoning, Verbal Reasoning, Abstract Reasoning",
    },
    {
        "order_index": 2,
        "name": "Section 2: Aptitude Test",
        "description": "Numerical Aptitude, Logical Aptitude, Verbal Aptitude, Spatial/Mechanical Aptitude",
    },
    {
        "order_index": 3,
        "name": "Section 3: Study Habits",
        "description": "Concentration, Consistency, Time Management, Exam Preparedness, Self-discipline",
    },
    {
        "order_index": 4,
        "name": "Section 4: Learning Style",
        "description": "Visual, Auditory, Reading/Writing, Kinesthetic",
    },
    {
        "order_index": 5,
        "name": "Section 5: Career Interest (RIASEC)",
        "description": "Realistic, Investigative, Artistic, Social, Enterprising, Conventional",
    },
]


def ensure_sections(db: Session) -> int:
    """Create any missing canonical section; existing rows are left as they are"""
    existing = {row.order_index for row in db.query(Section.order_index).all()}

    created = 0
    for definition in SECTION_DEFINITIONS:
        if definition["order_index"] in existing:
            continue
        db.add(Section(
            order_index=definition["order_index"],
            name=definition["name"],
            description=definition["description"],
            is_active=True,
            min_questions_required=7,
        ))
        created += 1

    return created


def ensure_admin(db: Session) -> bool:
    admin = db.query(User).filter(User.email == settings.ADMIN_EMAIL).first()
    if admin is not None:
        return False

    db.add(User(email=settings.ADMIN_EMAIL, full_name="Admin User", role=UserRole.ADMIN, is_active=True))
    return True


def bootstrap(db: Session):
    """
    Seed sections and the admin user in one transaction

    Safe to run on every startup.
    """
    created_sections = ensure_sections(db)
    created_admin = ensure_admin(db)
    db.commit()

    if created_sections:
        logger.info(f"Created {created_sections} missing section(s)")
    else:
        logger.info("All 5 sections already exist")

    if created_admin:
        logger.info(f"Admin user created: {settings.ADMIN_EMAIL}")
