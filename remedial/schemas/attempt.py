"""Pydantic schemas for taking an assessment: access, answers, submission."""
from datetime import datetime

from pydantic import field_validator

from remedial.schemas.base import CamelSchema, StudentOutSchema


class AccessRequestSchema(CamelSchema):
    quiz_code: str | None = None
    qr_token: str | None = None
    student_id: str | None = None

    @field_validator("quiz_code", "qr_token", "student_id", mode="before")
    @classmethod
    def coerce_text(cls, value):
        # identifiers arrive as JSON strings or numbers
        return None if value is None else str(value)


class StartAttemptRequestSchema(CamelSchema):
    quiz_code: str | None = None
    lrn: str | None = None

    @field_validator("quiz_code", "lrn", mode="before")
    @classmethod
    def coerce_text(cls, value):
        return None if value is None else str(value)


class JoinRequestSchema(StartAttemptRequestSchema):
    pass


class ChoiceOutSchema(CamelSchema):
    """A choice as the student sees it: no correctness flag."""

    id: int
    text: str


class QuestionOutSchema(CamelSchema):
    id: int
    question_text: str
    type: str
    points: int
    section_title: str | None = None
    choices: list[ChoiceOutSchema] = []


class AssessmentOutSchema(CamelSchema):
    id: int
    title: str
    description: str = ""
    start_time: datetime | None = None
    end_time: datetime | None = None
    questions: list[QuestionOutSchema] = []


class AttemptAccessOutSchema(CamelSchema):
    success: bool = True
    attempt_id: int
    status: str
    assessment: AssessmentOutSchema
    student: StudentOutSchema


class AnswerInSchema(CamelSchema):
    question_id: int
    selected_choice_id: int | None = None
    answer_text: str | None = None


class AnswerOutSchema(CamelSchema):
    success: bool = True
    is_correct: bool | None
    score: int


class SubmitOutSchema(CamelSchema):
    success: bool = True
    attempt_id: int
    status: str
    total_score: int
    correct_count: int
    incorrect_count: int
    total_questions: int
    student: StudentOutSchema


class JoinOutSchema(CamelSchema):
    success: bool = True
    redirect_url: str
    student: StudentOutSchema
