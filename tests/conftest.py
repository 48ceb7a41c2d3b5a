"""Shared fixtures: an in-memory database per test and an HTTP client wired to it."""
from datetime import timedelta

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from remedial.core.clock import utcnow
from remedial.db.base import Base
from remedial.db.session import get_db
from remedial.main import app
from remedial.models import (
    Assessment,
    Choice,
    PhonemicLevel,
    Question,
    Student,
    StudentPhonemicLevel,
    Subject,
)
from remedial.services.seeding import seed_reference_data

STUDENT_LRN = "123456789012"
QUIZ_CODE = "ABC123"
QR_TOKEN = "f" * 32


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def levels(session_factory):
    """Seeded subjects; returns {(subject, level): phonemic_id} plus subject ids."""
    async with session_factory() as session:
        await seed_reference_data(session)
        result = await session.execute(
            select(Subject.name, PhonemicLevel.name, PhonemicLevel.id, Subject.id).join(
                PhonemicLevel, PhonemicLevel.subject_id == Subject.id
            )
        )
        rows = result.all()
    ids = {(subject, level): level_id for subject, level, level_id, _ in rows}
    ids.update({subject: subject_id for subject, _, _, subject_id in rows})
    return ids


async def add_student(session_factory, lrn, level_id=None, subject_id=None, **fields):
    async with session_factory() as session:
        student = Student(lrn=lrn, **fields)
        session.add(student)
        await session.flush()
        if level_id is not None:
            session.add(StudentPhonemicLevel(student_id=student.id, subject_id=subject_id, phonemic_id=level_id))
        await session.commit()
        return student.id


async def add_assessment(session_factory, levels, quiz_code=QUIZ_CODE, **overrides):
    """English 'Word' level quiz: one multiple choice (4 pts) and one short answer (1 pt)."""
    now = utcnow()
    values = dict(
        title="Reading check",
        description="Week 3",
        subject_id=levels["English"],
        phonemic_id=levels[("English", "Word")],
        grade_id=3,
        created_by="teacher-1",
        creator_role="teacher",
        start_time=now - timedelta(hours=1),
        end_time=now + timedelta(hours=1),
        is_published=True,
        quiz_code=quiz_code,
        qr_token=QR_TOKEN,
    )
    values.update(overrides)
    async with session_factory() as session:
        assessment = Assessment(
            **values,
            questions=[
                Question(
                    question_text="Which word rhymes with 'hat'?",
                    question_type="multiple_choice",
                    points=4,
                    question_order=1,
                    choices=[
                        Choice(choice_text="dog", is_correct=False),
                        Choice(choice_text="cat", is_correct=True),
                    ],
                ),
                Question(
                    question_text="Name the animal that says 'meow'.",
                    question_type="short_answer",
                    points=1,
                    question_order=2,
                    correct_answer_text="cat",
                    case_sensitive=False,
                ),
            ],
        )
        session.add(assessment)
        await session.commit()
        return {
            "id": assessment.id,
            "mc": assessment.questions[0].id,
            "mc_correct": assessment.questions[0].choices[1].id,
            "mc_wrong": assessment.questions[0].choices[0].id,
            "short": assessment.questions[1].id,
        }


@pytest_asyncio.fixture
async def student_id(session_factory, levels):
    return await add_student(
        session_factory,
        STUDENT_LRN,
        level_id=levels[("English", "Word")],
        subject_id=levels["English"],
        first_name="Juan",
        last_name="Dela Cruz",
        grade_id=3,
        student_code="S-001",
    )


@pytest_asyncio.fixture
async def quiz(session_factory, levels, student_id):
    return await add_assessment(session_factory, levels)


async def count_rows(session_factory, model, *criteria):
    async with session_factory() as session:
        result = await session.execute(select(func.count(model.id)).where(*criteria))
        return result.scalar_one()
