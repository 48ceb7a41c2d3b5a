"""Pydantic schemas for authoring and listing assessments."""
from datetime import datetime

from pydantic import Field

from remedial.models.assessment import GRADE_STRICT_ZERO
from remedial.schemas.base import CamelSchema


class ChoiceInSchema(CamelSchema):
    choice_text: str
    is_correct: bool = False


class QuestionInSchema(CamelSchema):
    question_text: str
    question_type: str = "multiple_choice"
    points: int = Field(default=1, ge=0)
    choices: list[ChoiceInSchema] = []
    correct_answer_text: str | None = None
    case_sensitive: bool = False
    auto_grade_policy: str = GRADE_STRICT_ZERO
    section_id: str | None = None
    section_title: str | None = None


class AssessmentInSchema(CamelSchema):
    title: str = ""
    description: str | None = None
    subject_id: int | None = None
    subject_name: str | None = None
    grade_id: int | None = None
    phonemic_id: int | None = None
    phonemic_level: str | None = None
    created_by: str | None = None
    creator_role: str = "teacher"
    start_time: datetime | None = None
    end_time: datetime | None = None
    is_published: bool = False
    questions: list[QuestionInSchema] = []


class ChoiceDetailSchema(CamelSchema):
    id: int
    choice_text: str
    is_correct: bool


class QuestionDetailSchema(CamelSchema):
    id: int
    question_text: str
    question_type: str
    points: int
    question_order: int
    correct_answer_text: str | None = None
    case_sensitive: bool
    auto_grade_policy: str
    section_key: str | None = None
    section_title: str | None = None
    choices: list[ChoiceDetailSchema] = []


class AssessmentDetailSchema(CamelSchema):
    id: int
    title: str
    description: str | None = None
    subject_id: int | None = None
    grade_id: int | None = None
    phonemic_id: int | None = None
    phonemic_level: str | None = None
    created_by: str | None = None
    creator_role: str
    start_time: datetime | None = None
    end_time: datetime | None = None
    is_published: bool
    quiz_code: str | None = None
    qr_token: str | None = None
    submitted_count: int = 0
    questions: list[QuestionDetailSchema] = []


class AssessmentListOutSchema(CamelSchema):
    success: bool = True
    assessments: list[AssessmentDetailSchema]


class AssessmentWriteOutSchema(CamelSchema):
    success: bool = True
    assessment_id: int
    quiz_code: str | None = None
    qr_token: str | None = None
    access_url: str | None = None
    qr_code_data_url: str | None = None


class MessageOutSchema(CamelSchema):
    success: bool = True
    message: str
