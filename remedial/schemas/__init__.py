from remedial.schemas.base import StudentOutSchema
from remedial.schemas.assessment import (
    AssessmentDetailSchema,
    AssessmentInSchema,
    AssessmentListOutSchema,
    AssessmentWriteOutSchema,
)
from remedial.schemas.attempt import (
    AccessRequestSchema,
    AnswerInSchema,
    AnswerOutSchema,
    AttemptAccessOutSchema,
    StartAttemptRequestSchema,
    SubmitOutSchema,
)
from remedial.schemas.analysis import AnalysisOutSchema

__all__ = [
    "StudentOutSchema",
    "AssessmentDetailSchema",
    "AssessmentInSchema",
    "AssessmentListOutSchema",
    "AssessmentWriteOutSchema",
    "AccessRequestSchema",
    "AnswerInSchema",
    "AnswerOutSchema",
    "AttemptAccessOutSchema",
    "StartAttemptRequestSchema",
    "SubmitOutSchema",
    "AnalysisOutSchema",
]
