"""Assessment (quiz) definition: questions and their choices."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from remedial.core.clock import utcnow
from remedial.db.session import Base

QUESTION_MULTIPLE_CHOICE = "multiple_choice"
QUESTION_TRUE_FALSE = "true_false"
QUESTION_SHORT_ANSWER = "short_answer"
QUESTION_TYPES = (QUESTION_MULTIPLE_CHOICE, QUESTION_TRUE_FALSE, QUESTION_SHORT_ANSWER)

# What happens to a short answer when the question has no correct text configured
GRADE_STRICT_ZERO = "strict_zero"
GRADE_MANUAL_REVIEW = "manual_review"
AUTO_GRADE_POLICIES = (GRADE_STRICT_ZERO, GRADE_MANUAL_REVIEW)

CREATOR_ROLES = ("teacher", "remedial_teacher")


class Assessment(Base):
    __tablename__ = "assessments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=True, index=True)
    grade_id = Column(Integer, nullable=True)
    phonemic_id = Column(Integer, ForeignKey("phonemic_levels.id"), nullable=True, index=True)

    created_by = Column(String(64), nullable=True, index=True)
    creator_role = Column(String(32), nullable=False, default="teacher")  # teacher | remedial_teacher

    start_time = Column(DateTime(timezone=True), nullable=True)
    end_time = Column(DateTime(timezone=True), nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)

    quiz_code = Column(String(16), unique=True, nullable=True, index=True)  # typed by students
    qr_token = Column(String(64), nullable=True)  # secret embedded in the QR link

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=True)

    subject = relationship("Subject")
    phonemic_level = relationship("PhonemicLevel")
    questions = relationship(
        "Question",
        back_populates="assessment",
        order_by="[Question.question_order, Question.id]",
        cascade="all, delete-orphan",
    )


class Question(Base):
    __tablename__ = "assessment_questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    assessment_id = Column(Integer, ForeignKey("assessments.id"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(32), nullable=False)  # multiple_choice | true_false | short_answer
    points = Column(Integer, nullable=False, default=1)
    question_order = Column(Integer, nullable=False, default=0)

    # short answer only
    correct_answer_text = Column(Text, nullable=True)
    case_sensitive = Column(Boolean, nullable=False, default=False)
    auto_grade_policy = Column(String(32), nullable=False, default=GRADE_STRICT_ZERO)

    section_key = Column(String(64), nullable=True)
    section_title = Column(String(255), nullable=True)

    assessment = relationship("Assessment", back_populates="questions")
    choices = relationship(
        "Choice",
        back_populates="question",
        order_by="Choice.id",
        cascade="all, delete-orphan",
    )

    @property
    def is_choice_based(self) -> bool:
        return self.question_type != QUESTION_SHORT_ANSWER


class Choice(Base):
    __tablename__ = "assessment_question_choices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(Integer, ForeignKey("assessment_questions.id"), nullable=False, index=True)
    choice_text = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)

    question = relationship("Question", back_populates="choices")
