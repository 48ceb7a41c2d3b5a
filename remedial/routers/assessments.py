"""Assessment routes: catalog authoring and the student attempt lifecycle. JSON only."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from remedial.core.config import Settings, get_settings
from remedial.db.session import get_db
from remedial.schemas.analysis import AnalysisOutSchema
from remedial.schemas.assessment import (
    AssessmentDetailSchema,
    AssessmentInSchema,
    AssessmentListOutSchema,
    AssessmentWriteOutSchema,
    MessageOutSchema,
)
from remedial.schemas.attempt import (
    AccessRequestSchema,
    AnswerInSchema,
    AnswerOutSchema,
    AttemptAccessOutSchema,
    JoinOutSchema,
    JoinRequestSchema,
    StartAttemptRequestSchema,
    SubmitOutSchema,
)
from remedial.services import analysis, attempts, catalog
from remedial.services.codes import normalize_quiz_code
from remedial.services.students import resolve_student, student_out

router = APIRouter(prefix="/assessments", tags=["assessments"])

DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]


# ---------- helpers ----------

def _require(quiz_code: str | None, identifier: str | None, label: str) -> None:
    if not (quiz_code or "").strip() or not (identifier or "").strip():
        raise HTTPException(status_code=400, detail=f"Quiz code and {label} are required.")


async def _enter_assessment(
    db: AsyncSession,
    settings: Settings,
    quiz_code: str | None,
    identifier: str | None,
    qr_token: str | None = None,
) -> AttemptAccessOutSchema:
    assessment = await catalog.load_accessible_assessment(db, quiz_code, qr_token)
    student = await resolve_student(db, identifier)
    if settings.enforce_phonemic_gating:
        await attempts.check_phonemic_level(db, assessment, student)

    # build the views first: a lost insert race rolls back and expires these rows
    assessment_view = catalog.to_student_view(assessment)
    student_view = student_out(student)

    attempt = await attempts.open_attempt(db, assessment, student)
    return AttemptAccessOutSchema(
        attempt_id=attempt.id,
        status=attempt.status,
        assessment=assessment_view,
        student=student_view,
    )


# ---------- student lifecycle ----------

@router.post("/access", response_model=AttemptAccessOutSchema)
async def access_assessment(body: AccessRequestSchema, db: DbSession, settings: AppSettings):
    """Open (or resume) an attempt by quiz code, optional QR token and student id."""
    _require(body.quiz_code, body.student_id, "student ID")
    return await _enter_assessment(db, settings, body.quiz_code, body.student_id, body.qr_token)


@router.post("/attempts/start", response_model=AttemptAccessOutSchema)
async def start_attempt(body: StartAttemptRequestSchema, db: DbSession, settings: AppSettings):
    """Same as /access, keyed by LRN."""
    _require(body.quiz_code, body.lrn, "LRN")
    return await _enter_assessment(db, settings, body.quiz_code, body.lrn)


@router.post("/join", response_model=JoinOutSchema)
async def join_assessment(body: JoinRequestSchema, db: DbSession):
    """Check code and LRN and point the client at the quiz page; no attempt is created."""
    _require(body.quiz_code, body.lrn, "LRN")
    assessment = await catalog.load_published_assessment(db, body.quiz_code)
    student = await resolve_student(db, body.lrn)
    return JoinOutSchema(redirect_url=f"/quiz/{assessment.quiz_code}", student=student_out(student))


@router.post("/attempts/{attempt_id}/answers", response_model=AnswerOutSchema)
async def save_answer(attempt_id: int, body: AnswerInSchema, db: DbSession):
    grade = await attempts.record_answer(db, attempt_id, body)
    return AnswerOutSchema(is_correct=grade.is_correct, score=grade.score)


@router.post("/attempts/{attempt_id}/submit", response_model=SubmitOutSchema)
async def submit_attempt(attempt_id: int, db: DbSession):
    result = await attempts.submit_attempt(db, attempt_id)
    return SubmitOutSchema(
        attempt_id=result.attempt.id,
        status=result.attempt.status,
        total_score=result.tally.total_score,
        correct_count=result.tally.correct_count,
        incorrect_count=result.tally.incorrect_count,
        total_questions=result.tally.total_questions,
        student=student_out(result.student),
    )


# ---------- catalog ----------

@router.get("", response_model=AssessmentListOutSchema)
async def list_assessments(
    db: DbSession,
    creator_id: Annotated[str | None, Query(alias="creatorId")] = None,
    creator_role: Annotated[str | None, Query(alias="creatorRole")] = None,
    subject_id: Annotated[int | None, Query(alias="subjectId")] = None,
    phonemic_id: Annotated[int | None, Query(alias="phonemicId")] = None,
):
    items = await catalog.list_assessments(db, creator_id, creator_role, subject_id, phonemic_id)
    return AssessmentListOutSchema(assessments=items)


@router.post("", response_model=AssessmentWriteOutSchema)
async def create_assessment(body: AssessmentInSchema, db: DbSession, settings: AppSettings):
    return await catalog.create_assessment(db, body, settings)


@router.get("/analysis", response_model=AnalysisOutSchema)
async def analyze(db: DbSession, code: Annotated[str | None, Query()] = None):
    """Summary, responses and item analysis for the assessment with this code."""
    quiz_code = normalize_quiz_code(code)
    if not quiz_code:
        raise HTTPException(status_code=400, detail="Missing quiz code.")
    assessment = await catalog.get_assessment_by_code(db, quiz_code)
    if assessment is None:
        raise HTTPException(status_code=404, detail="Assessment not found.")
    return await analysis.analyze_assessment(db, assessment)


@router.get("/{assessment_id}", response_model=AssessmentDetailSchema)
async def get_assessment(assessment_id: int, db: DbSession):
    detail = await catalog.get_assessment_detail(db, assessment_id)
    if detail is None:
        raise HTTPException(status_code=404, detail="Assessment not found.")
    return detail


@router.put("/{assessment_id}", response_model=AssessmentWriteOutSchema)
async def update_assessment(assessment_id: int, body: AssessmentInSchema, db: DbSession, settings: AppSettings):
    return await catalog.update_assessment(db, assessment_id, body, settings)


@router.delete("/{assessment_id}", response_model=MessageOutSchema)
async def delete_assessment(assessment_id: int, db: DbSession):
    await catalog.delete_assessment(db, assessment_id)
    return MessageOutSchema(message="Assessment deleted successfully.")
