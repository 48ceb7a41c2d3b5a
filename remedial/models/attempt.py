"""Attempt model: one student's run at one assessment, with its recorded answers."""
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship

from remedial.db.session import Base

STATUS_IN_PROGRESS = "in_progress"
STATUS_SUBMITTED = "submitted"
STATUS_GRADED = "graded"
# Terminal for the student: no retake, no more answers
CLOSED_STATUSES = (STATUS_SUBMITTED, STATUS_GRADED)


class Attempt(Base):
    __tablename__ = "assessment_attempts"
    __table_args__ = (
        # at most one open attempt per (assessment, student)
        Index(
            "ux_assessment_attempts_open",
            "assessment_id",
            "student_id",
            unique=True,
            sqlite_where=text("status = 'in_progress'"),
            postgresql_where=text("status = 'in_progress'"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    assessment_id = Column(Integer, ForeignKey("assessments.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    lrn = Column(String(32), nullable=True)  # denormalized for reports

    started_at = Column(DateTime(timezone=True), nullable=False)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    total_score = Column(Integer, nullable=False, default=0)
    status = Column(String(16), nullable=False, default=STATUS_IN_PROGRESS)  # in_progress | submitted | graded

    assessment = relationship("Assessment")
    student = relationship("Student")
    answers = relationship("Answer", back_populates="attempt", order_by="Answer.id")

    @property
    def is_open(self) -> bool:
        return self.status == STATUS_IN_PROGRESS


class Answer(Base):
    __tablename__ = "assessment_student_answers"
    __table_args__ = (UniqueConstraint("attempt_id", "question_id", name="uq_answers_attempt_question"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    attempt_id = Column(Integer, ForeignKey("assessment_attempts.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("assessment_questions.id"), nullable=False, index=True)
    selected_choice_id = Column(Integer, ForeignKey("assessment_question_choices.id"), nullable=True)
    answer_text = Column(Text, nullable=True)
    is_correct = Column(Boolean, nullable=True)  # None: waiting for manual review
    score = Column(Integer, nullable=False, default=0)

    attempt = relationship("Attempt", back_populates="answers")
