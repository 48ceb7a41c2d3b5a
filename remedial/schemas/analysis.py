"""Pydantic schemas for per-assessment result analysis."""
from datetime import datetime

from remedial.schemas.base import CamelSchema


class AnalysisSummarySchema(CamelSchema):
    total_assigned: int
    total_responses: int
    response_rate: float
    average_score: float


class AnswerMetaSchema(CamelSchema):
    score: int | None = None
    is_correct: bool | None = None


class ResponseSchema(CamelSchema):
    id: int
    student_id: int
    student_name: str
    score: int
    submitted_at: datetime | None = None
    answers: dict[str, str] = {}
    answer_meta: dict[str, AnswerMetaSchema] = {}


class ItemAnalysisSchema(CamelSchema):
    question_id: int
    text: str
    type: str
    correct_count: int
    total_answers: int
    difficulty_index: float


class AnalysisOutSchema(CamelSchema):
    success: bool = True
    summary: AnalysisSummarySchema
    responses: list[ResponseSchema]
    item_analysis: list[ItemAnalysisSchema]
