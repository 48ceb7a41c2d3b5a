"""SQLAlchemy declarative base and model imports for Alembic."""
from remedial.db.session import Base

# Import all models so Alembic and create_all can see them
from remedial.models.subject import Subject, PhonemicLevel  # noqa: F401
from remedial.models.student import Student, StudentPhonemicLevel  # noqa: F401
from remedial.models.assessment import Assessment, Question, Choice  # noqa: F401
from remedial.models.attempt import Attempt, Answer  # noqa: F401

__all__ = [
    "Base",
    "Subject",
    "PhonemicLevel",
    "Student",
    "StudentPhonemicLevel",
    "Assessment",
    "Question",
    "Choice",
    "Attempt",
    "Answer",
]
