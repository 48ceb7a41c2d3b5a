"""Initial tables: subjects, phonemic levels, students, assessments, attempts, answers.

Revision ID: 001
Revises:
Create Date: 2026-10-16

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "subjects",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    op.create_table(
        "phonemic_levels",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(64), nullable=False),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("subject_id", "name", name="uq_phonemic_levels_subject_name"),
    )
    op.create_index(op.f("ix_phonemic_levels_subject_id"), "phonemic_levels", ["subject_id"], unique=False)

    op.create_table(
        "students",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("lrn", sa.String(32), nullable=True),
        sa.Column("student_code", sa.String(32), nullable=True),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("middle_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column("grade_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_students_lrn"), "students", ["lrn"], unique=False)
    op.create_index(op.f("ix_students_student_code"), "students", ["student_code"], unique=False)
    op.create_index(op.f("ix_students_grade_id"), "students", ["grade_id"], unique=False)

    op.create_table(
        "student_phonemic_levels",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("subject_id", sa.Integer(), nullable=False),
        sa.Column("phonemic_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"]),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"]),
        sa.ForeignKeyConstraint(["phonemic_id"], ["phonemic_levels.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("student_id", "subject_id", name="uq_student_phonemic_subject"),
    )
    op.create_index(
        op.f("ix_student_phonemic_levels_student_id"), "student_phonemic_levels", ["student_id"], unique=False
    )

    op.create_table(
        "assessments",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("subject_id", sa.Integer(), nullable=True),
        sa.Column("grade_id", sa.Integer(), nullable=True),
        sa.Column("phonemic_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.String(64), nullable=True),
        sa.Column("creator_role", sa.String(32), nullable=False, server_default="teacher"),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_published", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("quiz_code", sa.String(16), nullable=True),
        sa.Column("qr_token", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"]),
        sa.ForeignKeyConstraint(["phonemic_id"], ["phonemic_levels.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_assessments_quiz_code"), "assessments", ["quiz_code"], unique=True)
    op.create_index(op.f("ix_assessments_subject_id"), "assessments", ["subject_id"], unique=False)
    op.create_index(op.f("ix_assessments_phonemic_id"), "assessments", ["phonemic_id"], unique=False)
    op.create_index(op.f("ix_assessments_created_by"), "assessments", ["created_by"], unique=False)

    op.create_table(
        "assessment_questions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("assessment_id", sa.Integer(), nullable=False),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("question_type", sa.String(32), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("question_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("correct_answer_text", sa.Text(), nullable=True),
        sa.Column("case_sensitive", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("auto_grade_policy", sa.String(32), nullable=False, server_default="strict_zero"),
        sa.Column("section_key", sa.String(64), nullable=True),
        sa.Column("section_title", sa.String(255), nullable=True),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessments.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_assessment_questions_assessment_id"), "assessment_questions", ["assessment_id"], unique=False
    )

    op.create_table(
        "assessment_question_choices",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("choice_text", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.ForeignKeyConstraint(["question_id"], ["assessment_questions.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_assessment_question_choices_question_id"),
        "assessment_question_choices",
        ["question_id"],
        unique=False,
    )

    op.create_table(
        "assessment_attempts",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("assessment_id", sa.Integer(), nullable=False),
        sa.Column("student_id", sa.Integer(), nullable=False),
        sa.Column("lrn", sa.String(32), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_score", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(16), nullable=False, server_default="in_progress"),
        sa.ForeignKeyConstraint(["assessment_id"], ["assessments.id"]),
        sa.ForeignKeyConstraint(["student_id"], ["students.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_assessment_attempts_assessment_id"), "assessment_attempts", ["assessment_id"], unique=False
    )
    op.create_index(op.f("ix_assessment_attempts_student_id"), "assessment_attempts", ["student_id"], unique=False)
    op.create_index(
        "ux_assessment_attempts_open",
        "assessment_attempts",
        ["assessment_id", "student_id"],
        unique=True,
        sqlite_where=sa.text("status = 'in_progress'"),
        postgresql_where=sa.text("status = 'in_progress'"),
    )

    op.create_table(
        "assessment_student_answers",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("attempt_id", sa.Integer(), nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("selected_choice_id", sa.Integer(), nullable=True),
        sa.Column("answer_text", sa.Text(), nullable=True),
        sa.Column("is_correct", sa.Boolean(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["attempt_id"], ["assessment_attempts.id"]),
        sa.ForeignKeyConstraint(["question_id"], ["assessment_questions.id"]),
        sa.ForeignKeyConstraint(["selected_choice_id"], ["assessment_question_choices.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("attempt_id", "question_id", name="uq_answers_attempt_question"),
    )
    op.create_index(
        op.f("ix_assessment_student_answers_attempt_id"), "assessment_student_answers", ["attempt_id"], unique=False
    )
    op.create_index(
        op.f("ix_assessment_student_answers_question_id"), "assessment_student_answers", ["question_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("assessment_student_answers")
    op.drop_index("ux_assessment_attempts_open", table_name="assessment_attempts")
    op.drop_table("assessment_attempts")
    op.drop_table("assessment_question_choices")
    op.drop_table("assessment_questions")
    op.drop_table("assessments")
    op.drop_table("student_phonemic_levels")
    op.drop_table("students")
    op.drop_table("phonemic_levels")
    op.drop_table("subjects")
