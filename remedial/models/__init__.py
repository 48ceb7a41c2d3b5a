from remedial.models.subject import Subject, PhonemicLevel
from remedial.models.student import Student, StudentPhonemicLevel
from remedial.models.assessment import Assessment, Question, Choice
from remedial.models.attempt import Attempt, Answer

__all__ = [
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
