"""Result analysis for one assessment: summary, per-student responses, item analysis."""
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from remedial.core.clock import as_utc
from remedial.models.assessment import Assessment, Choice, Question
from remedial.models.attempt import CLOSED_STATUSES, Answer, Attempt
from remedial.models.student import Student
from remedial.schemas.analysis import (
    AnalysisOutSchema,
    AnalysisSummarySchema,
    AnswerMetaSchema,
    ItemAnalysisSchema,
    ResponseSchema,
)


async def _total_assigned(db: AsyncSession, assessment: Assessment) -> int:
    """Students in the assessment's grade; without a grade, everyone who opened it."""
    if assessment.grade_id is not None:
        result = await db.execute(select(func.count(Student.id)).where(Student.grade_id == assessment.grade_id))
    else:
        result = await db.execute(
            select(func.count(func.distinct(Attempt.student_id))).where(Attempt.assessment_id == assessment.id)
        )
    return int(result.scalar_one())


def difficulty_index(correct: int, total: int) -> float:
    """Share of answers that were correct, in percent."""
    return (correct / total) * 100 if total else 0.0


async def analyze_assessment(db: AsyncSession, assessment: Assessment) -> AnalysisOutSchema:
    attempts_result = await db.execute(
        select(Attempt, Student)
        .join(Student, Student.id == Attempt.student_id)
        .where(Attempt.assessment_id == assessment.id, Attempt.status.in_(CLOSED_STATUSES))
        .order_by(Attempt.id)
    )
    attempts = attempts_result.all()
    attempt_ids = [attempt.id for attempt, _ in attempts]

    total_assigned = await _total_assigned(db, assessment)
    total_responses = len(attempts)
    total_score = sum(attempt.total_score or 0 for attempt, _ in attempts)
    summary = AnalysisSummarySchema(
        total_assigned=total_assigned,
        total_responses=total_responses,
        response_rate=(total_responses / total_assigned * 100) if total_assigned else 0.0,
        average_score=(total_score / total_responses) if total_responses else 0.0,
    )

    answers: dict[int, dict[str, str]] = {}
    meta: dict[int, dict[str, AnswerMetaSchema]] = {}
    correct_by_question: dict[int, int] = {}
    total_by_question: dict[int, int] = {}

    if attempt_ids:
        rows = await db.execute(
            select(Answer, Choice.choice_text)
            .outerjoin(Choice, Choice.id == Answer.selected_choice_id)
            .where(Answer.attempt_id.in_(attempt_ids))
        )
        for answer, choice_text in rows.all():
            qid = str(answer.question_id)
            answers.setdefault(answer.attempt_id, {})[qid] = choice_text or answer.answer_text or ""
            meta.setdefault(answer.attempt_id, {})[qid] = AnswerMetaSchema(
                score=answer.score,
                is_correct=answer.is_correct,
            )
            total_by_question[answer.question_id] = total_by_question.get(answer.question_id, 0) + 1
            if answer.is_correct:
                correct_by_question[answer.question_id] = correct_by_question.get(answer.question_id, 0) + 1

    responses = [
        ResponseSchema(
            id=attempt.id,
            student_id=student.id,
            student_name=student.display_name,
            score=attempt.total_score or 0,
            submitted_at=as_utc(attempt.submitted_at),
            answers=answers.get(attempt.id, {}),
            answer_meta=meta.get(attempt.id, {}),
        )
        for attempt, student in attempts
    ]

    questions_result = await db.execute(
        select(Question)
        .where(Question.assessment_id == assessment.id)
        .order_by(Question.question_order, Question.id)
    )
    item_analysis = []
    for question in questions_result.scalars().all():
        correct = correct_by_question.get(question.id, 0)
        total = total_by_question.get(question.id, 0)
        item_analysis.append(
            ItemAnalysisSchema(
                question_id=question.id,
                text=question.question_text,
                type=question.question_type,
                correct_count=correct,
                total_answers=total,
                difficulty_index=difficulty_index(correct, total),
            )
        )

    return AnalysisOutSchema(summary=summary, responses=responses, item_analysis=item_analysis)
