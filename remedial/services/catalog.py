"""Assessment catalog: authoring, listing and student access by code."""
import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from remedial.core.clock import as_utc, utcnow
from remedial.core.config import Settings
from remedial.models.assessment import (
    AUTO_GRADE_POLICIES,
    CREATOR_ROLES,
    QUESTION_SHORT_ANSWER,
    Assessment,
    Choice,
    Question,
)
from remedial.models.attempt import CLOSED_STATUSES, Attempt
from remedial.models.subject import PhonemicLevel, Subject
from remedial.schemas.assessment import (
    AssessmentDetailSchema,
    AssessmentInSchema,
    AssessmentWriteOutSchema,
    ChoiceDetailSchema,
    QuestionDetailSchema,
    QuestionInSchema,
)
from remedial.schemas.attempt import AssessmentOutSchema, ChoiceOutSchema, QuestionOutSchema
from remedial.services.codes import (
    build_access_url,
    generate_qr_token,
    generate_unique_quiz_code,
    normalize_quiz_code,
    qr_code_data_url,
)
from remedial.services.grading import is_known_question_type, normalize_question_type

log = logging.getLogger(__name__)


def _with_questions(stmt):
    return stmt.options(
        selectinload(Assessment.questions).selectinload(Question.choices),
        selectinload(Assessment.phonemic_level),
    )


# ---------- student access ----------

def check_schedule(assessment: Assessment, now: datetime | None = None) -> None:
    """Raise unless now falls inside [start_time, end_time]."""
    start = as_utc(assessment.start_time)
    end = as_utc(assessment.end_time)
    if start is None or end is None:
        raise HTTPException(status_code=500, detail="Assessment schedule is invalid.")

    now = now or utcnow()
    if now < start:
        raise HTTPException(status_code=403, detail="This assessment is pending and not active yet.")
    if now > end:
        raise HTTPException(status_code=403, detail="This assessment is already completed and no longer active.")


async def get_assessment_by_code(db: AsyncSession, quiz_code: str) -> Assessment | None:
    result = await db.execute(_with_questions(select(Assessment).where(Assessment.quiz_code == quiz_code)))
    return result.scalar_one_or_none()


async def load_published_assessment(db: AsyncSession, raw_code: str | None) -> Assessment:
    quiz_code = normalize_quiz_code(raw_code)
    if not quiz_code:
        raise HTTPException(status_code=400, detail="Quiz code is required.")

    assessment = await get_assessment_by_code(db, quiz_code)
    if assessment is None:
        raise HTTPException(status_code=404, detail="Assessment not found for this code.")
    if not assessment.is_published:
        raise HTTPException(status_code=403, detail="This quiz is not currently active.")
    return assessment


async def load_accessible_assessment(
    db: AsyncSession,
    raw_code: str | None,
    qr_token: str | None = None,
    now: datetime | None = None,
) -> Assessment:
    """Return the assessment a student may take right now, or raise."""
    assessment = await load_published_assessment(db, raw_code)

    token = (qr_token or "").strip()
    if token and assessment.qr_token and token != assessment.qr_token:
        raise HTTPException(status_code=403, detail="Invalid QR token.")

    check_schedule(assessment, now)
    return assessment


def to_student_view(assessment: Assessment) -> AssessmentOutSchema:
    """Questions and choices without answers."""
    return AssessmentOutSchema(
        id=assessment.id,
        title=assessment.title,
        description=assessment.description or "",
        start_time=as_utc(assessment.start_time),
        end_time=as_utc(assessment.end_time),
        questions=[
            QuestionOutSchema(
                id=q.id,
                question_text=q.question_text,
                type=q.question_type,
                points=q.points,
                section_title=q.section_title,
                choices=[ChoiceOutSchema(id=c.id, text=c.choice_text) for c in q.choices],
            )
            for q in assessment.questions
        ],
    )


# ---------- listing ----------

def to_detail(assessment: Assessment, submitted_count: int = 0) -> AssessmentDetailSchema:
    return AssessmentDetailSchema(
        id=assessment.id,
        title=assessment.title,
        description=assessment.description,
        subject_id=assessment.subject_id,
        grade_id=assessment.grade_id,
        phonemic_id=assessment.phonemic_id,
        phonemic_level=assessment.phonemic_level.name if assessment.phonemic_level else None,
        created_by=assessment.created_by,
        creator_role=assessment.creator_role,
        start_time=as_utc(assessment.start_time),
        end_time=as_utc(assessment.end_time),
        is_published=assessment.is_published,
        quiz_code=assessment.quiz_code,
        qr_token=assessment.qr_token,
        submitted_count=submitted_count,
        questions=[
            QuestionDetailSchema(
                id=q.id,
                question_text=q.question_text,
                question_type=q.question_type,
                points=q.points,
                question_order=q.question_order,
                correct_answer_text=q.correct_answer_text,
                case_sensitive=q.case_sensitive,
                auto_grade_policy=q.auto_grade_policy,
                section_key=q.section_key,
                section_title=q.section_title,
                choices=[
                    ChoiceDetailSchema(id=c.id, choice_text=c.choice_text, is_correct=c.is_correct)
                    for c in q.choices
                ],
            )
            for q in assessment.questions
        ],
    )


async def submitted_counts(db: AsyncSession, assessment_ids: list[int]) -> dict[int, int]:
    if not assessment_ids:
        return {}
    result = await db.execute(
        select(Attempt.assessment_id, func.count(Attempt.id))
        .where(Attempt.assessment_id.in_(assessment_ids), Attempt.status.in_(CLOSED_STATUSES))
        .group_by(Attempt.assessment_id)
    )
    return {assessment_id: count for assessment_id, count in result.all()}


async def list_assessments(
    db: AsyncSession,
    creator_id: str | None = None,
    creator_role: str | None = None,
    subject_id: int | None = None,
    phonemic_id: int | None = None,
) -> list[AssessmentDetailSchema]:
    stmt = select(Assessment)
    if creator_id:
        stmt = stmt.where(Assessment.created_by == creator_id)
    if creator_role:
        stmt = stmt.where(Assessment.creator_role == creator_role)
    if subject_id is not None:
        stmt = stmt.where(Assessment.subject_id == subject_id)
    if phonemic_id is not None:
        stmt = stmt.where(Assessment.phonemic_id == phonemic_id)

    result = await db.execute(_with_questions(stmt.order_by(Assessment.id.desc())))
    assessments = result.scalars().all()
    counts = await submitted_counts(db, [a.id for a in assessments])
    return [to_detail(a, counts.get(a.id, 0)) for a in assessments]


async def get_assessment_detail(db: AsyncSession, assessment_id: int) -> AssessmentDetailSchema | None:
    result = await db.execute(_with_questions(select(Assessment).where(Assessment.id == assessment_id)))
    assessment = result.scalar_one_or_none()
    if assessment is None:
        return None
    counts = await submitted_counts(db, [assessment.id])
    return to_detail(assessment, counts.get(assessment.id, 0))


# ---------- authoring ----------

def _validate_payload(payload: AssessmentInSchema) -> None:
    if not payload.title.strip():
        raise HTTPException(status_code=400, detail="Assessment title is required.")
    if payload.start_time is None or payload.end_time is None:
        raise HTTPException(status_code=400, detail="Assessment schedule is required.")
    if as_utc(payload.end_time) < as_utc(payload.start_time):
        raise HTTPException(status_code=400, detail="Assessment end time must be after its start time.")
    if payload.creator_role not in CREATOR_ROLES:
        raise HTTPException(status_code=400, detail=f"Unknown creator role: {payload.creator_role}.")
    if not payload.questions:
        raise HTTPException(status_code=400, detail="At least one question is required.")


def _build_question(question: QuestionInSchema, order: int) -> Question:
    question_type = normalize_question_type(question.question_type)
    if not is_known_question_type(question_type):
        raise HTTPException(status_code=400, detail=f"Question {order}: unknown type '{question.question_type}'.")
    if question.auto_grade_policy not in AUTO_GRADE_POLICIES:
        raise HTTPException(
            status_code=400,
            detail=f"Question {order}: unknown grading policy '{question.auto_grade_policy}'.",
        )
    if not question.question_text.strip():
        raise HTTPException(status_code=400, detail=f"Question {order}: text is required.")

    row = Question(
        question_text=question.question_text.strip(),
        question_type=question_type,
        points=question.points,
        question_order=order,
        case_sensitive=question.case_sensitive,
        auto_grade_policy=question.auto_grade_policy,
        section_key=question.section_id,
        section_title=question.section_title,
    )

    if question_type == QUESTION_SHORT_ANSWER:
        correct = question.correct_answer_text
        # older clients send the expected answer as the first choice
        if correct is None and question.choices:
            correct = question.choices[0].choice_text
        row.correct_answer_text = correct
        return row

    if not question.choices:
        raise HTTPException(status_code=400, detail=f"Question {order}: choices are required.")
    if sum(1 for c in question.choices if c.is_correct) != 1:
        raise HTTPException(status_code=400, detail=f"Question {order}: mark exactly one correct choice.")
    row.choices = [Choice(choice_text=c.choice_text, is_correct=c.is_correct) for c in question.choices]
    return row


async def _resolve_subject_id(db: AsyncSession, payload: AssessmentInSchema) -> int | None:
    if payload.subject_id is not None:
        subject = await db.get(Subject, payload.subject_id)
        if subject is None:
            raise HTTPException(status_code=400, detail="Unknown subject.")
        return subject.id
    if not payload.subject_name or not payload.subject_name.strip():
        return None

    name = payload.subject_name.strip().lower()
    result = await db.execute(select(Subject.id).where(func.lower(Subject.name) == name))
    subject_id = result.scalar_one_or_none()
    if subject_id is None:
        raise HTTPException(status_code=400, detail=f"Unknown subject: {payload.subject_name}.")
    return subject_id


async def _resolve_phonemic_id(db: AsyncSession, subject_id: int | None, payload: AssessmentInSchema) -> int | None:
    """Explicit id wins; a level name is looked up within the subject."""
    if payload.phonemic_id is not None:
        level = await db.get(PhonemicLevel, payload.phonemic_id)
        if level is None:
            raise HTTPException(status_code=400, detail="Unknown phonemic level.")
        if subject_id is not None and level.subject_id != subject_id:
            raise HTTPException(status_code=400, detail="Phonemic level does not belong to the subject.")
        return level.id
    if not payload.phonemic_level or not payload.phonemic_level.strip():
        return None
    if subject_id is None:
        raise HTTPException(status_code=400, detail="A subject is required to set a phonemic level.")

    name = payload.phonemic_level.strip()
    result = await db.execute(
        select(PhonemicLevel.id).where(
            PhonemicLevel.subject_id == subject_id,
            func.lower(PhonemicLevel.name) == name.lower(),
        )
    )
    level_id = result.scalar_one_or_none()
    if level_id is None:
        raise HTTPException(status_code=400, detail=f"Unknown phonemic level: {payload.phonemic_level}.")
    return level_id


def _write_result(assessment: Assessment, settings: Settings) -> AssessmentWriteOutSchema:
    out = AssessmentWriteOutSchema(
        assessment_id=assessment.id,
        quiz_code=assessment.quiz_code,
        qr_token=assessment.qr_token,
    )
    if assessment.quiz_code:
        out.access_url = build_access_url(settings.public_app_url, assessment.quiz_code, assessment.qr_token)
        out.qr_code_data_url = qr_code_data_url(out.access_url)
    return out


async def _assign_codes(db: AsyncSession, assessment: Assessment, settings: Settings) -> None:
    if not assessment.quiz_code:
        assessment.quiz_code = await generate_unique_quiz_code(db, settings.quiz_code_length)
    if not assessment.qr_token:
        assessment.qr_token = generate_qr_token()


async def create_assessment(
    db: AsyncSession,
    payload: AssessmentInSchema,
    settings: Settings,
) -> AssessmentWriteOutSchema:
    """Insert the assessment with its questions and choices in one transaction."""
    _validate_payload(payload)
    questions = [_build_question(q, i) for i, q in enumerate(payload.questions, start=1)]

    try:
        subject_id = await _resolve_subject_id(db, payload)
        phonemic_id = await _resolve_phonemic_id(db, subject_id, payload)

        assessment = Assessment(
            title=payload.title.strip(),
            description=payload.description or "",
            subject_id=subject_id,
            grade_id=payload.grade_id,
            phonemic_id=phonemic_id,
            created_by=payload.created_by,
            creator_role=payload.creator_role,
            start_time=as_utc(payload.start_time),
            end_time=as_utc(payload.end_time),
            is_published=payload.is_published,
            questions=questions,
        )
        if payload.is_published:
            await _assign_codes(db, assessment, settings)

        db.add(assessment)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    log.info("Created assessment %s (%d questions, code=%s)", assessment.id, len(questions), assessment.quiz_code)
    return _write_result(assessment, settings)


async def _attempt_count(db: AsyncSession, assessment_id: int) -> int:
    result = await db.execute(select(func.count(Attempt.id)).where(Attempt.assessment_id == assessment_id))
    return int(result.scalar_one())


async def _get_editable(db: AsyncSession, assessment_id: int) -> Assessment:
    assessment = await db.get(Assessment, assessment_id)
    if assessment is None:
        raise HTTPException(status_code=404, detail="Assessment not found.")
    if await _attempt_count(db, assessment_id) > 0:
        raise HTTPException(
            status_code=409,
            detail="Students have already taken this assessment; it can no longer be changed.",
        )
    return assessment


async def _delete_questions(db: AsyncSession, assessment_id: int) -> None:
    question_ids = select(Question.id).where(Question.assessment_id == assessment_id)
    await db.execute(delete(Choice).where(Choice.question_id.in_(question_ids)))
    await db.execute(delete(Question).where(Question.assessment_id == assessment_id))


async def update_assessment(
    db: AsyncSession,
    assessment_id: int,
    payload: AssessmentInSchema,
    settings: Settings,
) -> AssessmentWriteOutSchema:
    """Replace fields and questions; blocked once any attempt exists."""
    _validate_payload(payload)
    questions = [_build_question(q, i) for i, q in enumerate(payload.questions, start=1)]

    try:
        assessment = await _get_editable(db, assessment_id)
        subject_id = await _resolve_subject_id(db, payload)
        phonemic_id = await _resolve_phonemic_id(db, subject_id, payload)

        assessment.title = payload.title.strip()
        assessment.description = payload.description or ""
        assessment.subject_id = subject_id
        assessment.grade_id = payload.grade_id if payload.grade_id is not None else assessment.grade_id
        assessment.phonemic_id = phonemic_id
        assessment.creator_role = payload.creator_role
        assessment.start_time = as_utc(payload.start_time)
        assessment.end_time = as_utc(payload.end_time)
        assessment.is_published = payload.is_published
        if payload.is_published:
            await _assign_codes(db, assessment, settings)

        await _delete_questions(db, assessment_id)
        for question in questions:
            question.assessment_id = assessment_id
        db.add_all(questions)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    log.info("Updated assessment %s (%d questions)", assessment_id, len(questions))
    return _write_result(assessment, settings)


async def delete_assessment(db: AsyncSession, assessment_id: int) -> None:
    try:
        await _get_editable(db, assessment_id)
        await _delete_questions(db, assessment_id)
        await db.execute(delete(Assessment).where(Assessment.id == assessment_id))
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    log.info("Deleted assessment %s", assessment_id)
