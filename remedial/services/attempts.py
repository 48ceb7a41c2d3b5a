"""Attempt lifecycle: open (or resume) an attempt, record answers, submit."""
import logging
from dataclasses import dataclass

from fastapi import HTTPException
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from remedial.core.clock import utcnow
from remedial.models.assessment import Assessment, Choice, Question
from remedial.models.attempt import (
    CLOSED_STATUSES,
    STATUS_IN_PROGRESS,
    STATUS_SUBMITTED,
    Answer,
    Attempt,
)
from remedial.models.student import Student, StudentPhonemicLevel
from remedial.schemas.attempt import AnswerInSchema
from remedial.services.grading import (
    Grade,
    SubmissionTally,
    grade_choice,
    grade_short_answer,
    tally_submission,
)

log = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    attempt: Attempt
    student: Student
    tally: SubmissionTally


# ---------- attempt manager ----------

async def check_phonemic_level(db: AsyncSession, assessment: Assessment, student: Student) -> None:
    """Students may only take assessments written for their level in that subject."""
    if assessment.subject_id is None or assessment.phonemic_id is None:
        return
    result = await db.execute(
        select(StudentPhonemicLevel.phonemic_id).where(
            StudentPhonemicLevel.student_id == student.id,
            StudentPhonemicLevel.subject_id == assessment.subject_id,
        )
    )
    student_level = result.scalar_one_or_none()
    if student_level != assessment.phonemic_id:
        raise HTTPException(
            status_code=403,
            detail="This assessment is not assigned to your reading level.",
        )


async def _latest_attempt(db: AsyncSession, assessment_id: int, student_id: int) -> Attempt | None:
    result = await db.execute(
        select(Attempt)
        .where(Attempt.assessment_id == assessment_id, Attempt.student_id == student_id)
        .order_by(Attempt.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _open_attempt_for(db: AsyncSession, assessment_id: int, student_id: int) -> Attempt | None:
    result = await db.execute(
        select(Attempt).where(
            Attempt.assessment_id == assessment_id,
            Attempt.student_id == student_id,
            Attempt.status == STATUS_IN_PROGRESS,
        )
    )
    return result.scalar_one_or_none()


async def open_attempt(db: AsyncSession, assessment: Assessment, student: Student) -> Attempt:
    """Return the student's in-progress attempt, creating it on first access.

    A finished attempt blocks a retake. Two racing first accesses both try to
    insert; the unique index on open attempts lets one win and the loser
    re-reads the winner's row.
    """
    assessment_id, student_id = assessment.id, student.id
    latest = await _latest_attempt(db, assessment_id, student_id)
    if latest is not None and latest.status in CLOSED_STATUSES:
        raise HTTPException(
            status_code=409,
            detail="You have already completed this assessment and cannot retake it.",
        )
    if latest is not None:
        return latest

    attempt = Attempt(
        assessment_id=assessment_id,
        student_id=student_id,
        lrn=student.lrn,
        started_at=utcnow(),
        total_score=0,
        status=STATUS_IN_PROGRESS,
    )
    db.add(attempt)
    try:
        await db.commit()
    except IntegrityError:
        # rollback expires assessment and student; only plain ids from here on
        await db.rollback()
        existing = await _open_attempt_for(db, assessment_id, student_id)
        if existing is None:
            raise
        log.info("Attempt race for assessment %s student %s; resuming %s", assessment_id, student_id, existing.id)
        return existing

    log.info("Started attempt %s: assessment %s, student %s", attempt.id, assessment_id, student_id)
    return attempt


# ---------- answer recorder ----------

async def get_attempt(db: AsyncSession, attempt_id: int) -> Attempt:
    attempt = await db.get(Attempt, attempt_id)
    if attempt is None:
        raise HTTPException(status_code=404, detail="Attempt not found.")
    return attempt


async def _grade(db: AsyncSession, question: Question, body: AnswerInSchema) -> tuple[Grade, int | None, str | None]:
    """Grade one response; returns the grade and the values to persist."""
    if question.is_choice_based:
        if body.selected_choice_id is None:
            raise HTTPException(status_code=400, detail="Choice is required.")
        result = await db.execute(
            select(Choice).where(Choice.id == body.selected_choice_id, Choice.question_id == question.id)
        )
        choice = result.scalar_one_or_none()
        if choice is None:
            raise HTTPException(status_code=404, detail="Choice not found for this question.")
        return grade_choice(question.points, choice.is_correct), choice.id, None

    grade = grade_short_answer(
        body.answer_text,
        question.correct_answer_text,
        question.points,
        case_sensitive=question.case_sensitive,
        policy=question.auto_grade_policy,
    )
    return grade, None, body.answer_text


async def _upsert_answer(
    db: AsyncSession,
    attempt_id: int,
    question_id: int,
    grade: Grade,
    choice_id: int | None,
    answer_text: str | None,
) -> None:
    result = await db.execute(
        select(Answer).where(Answer.attempt_id == attempt_id, Answer.question_id == question_id)
    )
    answer = result.scalar_one_or_none()
    if answer is None:
        answer = Answer(attempt_id=attempt_id, question_id=question_id)
        db.add(answer)
    answer.selected_choice_id = choice_id
    answer.answer_text = answer_text
    answer.is_correct = grade.is_correct
    answer.score = grade.score
    await db.commit()


async def record_answer(db: AsyncSession, attempt_id: int, body: AnswerInSchema) -> Grade:
    """Grade and store one answer; a second answer to the same question replaces the first."""
    attempt = await get_attempt(db, attempt_id)
    if not attempt.is_open:
        raise HTTPException(status_code=409, detail="Attempt is no longer active.")

    result = await db.execute(
        select(Question).where(Question.id == body.question_id, Question.assessment_id == attempt.assessment_id)
    )
    question = result.scalar_one_or_none()
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found for this quiz.")

    grade, choice_id, answer_text = await _grade(db, question, body)
    # rollback expires loaded rows; keep plain ids
    key = (attempt.id, question.id)
    try:
        await _upsert_answer(db, *key, grade, choice_id, answer_text)
    except IntegrityError:
        # lost an insert race on (attempt, question): overwrite the winner
        await db.rollback()
        await _upsert_answer(db, *key, grade, choice_id, answer_text)
    return grade


# ---------- submission finalizer ----------

async def _frozen_tally(db: AsyncSession, attempt: Attempt) -> SubmissionTally:
    scores_result = await db.execute(
        select(Answer.score, Answer.is_correct).where(Answer.attempt_id == attempt.id)
    )
    rows = scores_result.all()
    count_result = await db.execute(
        select(func.count(Question.id)).where(Question.assessment_id == attempt.assessment_id)
    )
    total_questions = int(count_result.scalar_one())
    return tally_submission(
        [score for score, _ in rows],
        [is_correct for _, is_correct in rows],
        total_questions,
    )


def _frozen_result(attempt: Attempt, student: Student, tally: SubmissionTally) -> SubmissionResult:
    frozen = SubmissionTally(
        total_score=attempt.total_score,
        correct_count=tally.correct_count,
        incorrect_count=tally.incorrect_count,
        total_questions=tally.total_questions,
    )
    return SubmissionResult(attempt=attempt, student=student, tally=frozen)


async def submit_attempt(db: AsyncSession, attempt_id: int) -> SubmissionResult:
    """Freeze the attempt's score exactly once.

    Submitting an already closed attempt changes nothing and returns the
    score as it was frozen. The status flip is a conditional UPDATE, so of
    two concurrent submits only one writes.
    """
    try:
        attempt = await get_attempt(db, attempt_id)
        student = await db.get(Student, attempt.student_id)
        tally = await _frozen_tally(db, attempt)

        if not attempt.is_open:
            return _frozen_result(attempt, student, tally)

        result = await db.execute(
            update(Attempt)
            .where(Attempt.id == attempt.id, Attempt.status == STATUS_IN_PROGRESS)
            .values(status=STATUS_SUBMITTED, submitted_at=utcnow(), total_score=tally.total_score)
        )
        await db.commit()
        if result.rowcount == 0:
            await db.refresh(attempt)
            return _frozen_result(attempt, student, tally)
        await db.refresh(attempt)
    except Exception:
        await db.rollback()
        raise

    log.info(
        "Submitted attempt %s: score %s, %s/%s correct",
        attempt.id, tally.total_score, tally.correct_count, tally.total_questions,
    )
    return SubmissionResult(attempt=attempt, student=student, tally=tally)
