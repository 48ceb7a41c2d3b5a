"""Answer grading and submission tallies. Pure functions, no database access."""
from dataclasses import dataclass

from remedial.models.assessment import GRADE_MANUAL_REVIEW, QUESTION_TYPES

# Authoring clients send kebab-case or display names
QUESTION_TYPE_ALIASES = {
    "multiple-choice": "multiple_choice",
    "multiple choice": "multiple_choice",
    "mcq": "multiple_choice",
    "true-false": "true_false",
    "true/false": "true_false",
    "short-answer": "short_answer",
    "short answer": "short_answer",
    "identification": "short_answer",
}


@dataclass(frozen=True)
class Grade:
    is_correct: bool | None
    score: int


@dataclass(frozen=True)
class SubmissionTally:
    total_score: int
    correct_count: int
    incorrect_count: int
    total_questions: int


def normalize_question_type(raw: str | None) -> str:
    """Map an incoming question type to its canonical snake_case name.

    Empty input defaults to multiple choice. Unknown types come back
    normalized but unrecognized; callers check against QUESTION_TYPES.
    """
    if not raw or not raw.strip():
        return "multiple_choice"
    value = raw.strip().lower()
    value = QUESTION_TYPE_ALIASES.get(value, value)
    return value.replace("-", "_").replace(" ", "_")


def is_known_question_type(question_type: str) -> bool:
    return question_type in QUESTION_TYPES


def _normalize_text(value: str, case_sensitive: bool) -> str:
    value = value.strip()
    return value if case_sensitive else value.lower()


def grade_choice(points: int, choice_is_correct: bool) -> Grade:
    """Full points for the correct choice, nothing otherwise."""
    if choice_is_correct:
        return Grade(is_correct=True, score=int(points or 0))
    return Grade(is_correct=False, score=0)


def grade_short_answer(
    submitted: str | None,
    correct_answer: str | None,
    points: int,
    case_sensitive: bool = False,
    policy: str = "strict_zero",
) -> Grade:
    """Exact match after trimming (and lower-casing unless case_sensitive).

    Without a configured correct answer the result depends on policy:
    strict_zero marks it wrong, manual_review leaves is_correct unset.
    """
    if correct_answer is None or not correct_answer.strip():
        if policy == GRADE_MANUAL_REVIEW:
            return Grade(is_correct=None, score=0)
        return Grade(is_correct=False, score=0)

    if submitted is None:
        return Grade(is_correct=False, score=0)

    is_correct = _normalize_text(submitted, case_sensitive) == _normalize_text(correct_answer, case_sensitive)
    return Grade(is_correct=is_correct, score=int(points or 0) if is_correct else 0)


def tally_submission(scores: list[int], correct_flags: list[bool | None], total_questions: int) -> SubmissionTally:
    """Aggregate recorded answers; unanswered questions count as incorrect."""
    total_score = sum(int(s or 0) for s in scores)
    correct_count = sum(1 for flag in correct_flags if flag is True)
    return SubmissionTally(
        total_score=total_score,
        correct_count=correct_count,
        incorrect_count=max(0, total_questions - correct_count),
        total_questions=total_questions,
    )
