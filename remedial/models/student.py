"""Student model and per-subject phonemic level."""
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from remedial.db.session import Base


class Student(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # External identifier aliases. Not unique: duplicates are reported at lookup.
    lrn = Column(String(32), nullable=True, index=True)
    student_code = Column(String(32), nullable=True, index=True)

    first_name = Column(String(100), nullable=True)
    middle_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    grade_id = Column(Integer, nullable=True, index=True)

    phonemic_levels = relationship("StudentPhonemicLevel", back_populates="student")

    @property
    def display_name(self) -> str:
        parts = [p.strip() for p in (self.first_name, self.middle_name, self.last_name) if p and p.strip()]
        if parts:
            return " ".join(parts)
        return self.lrn or self.student_code or f"Student {self.id}"


class StudentPhonemicLevel(Base):
    __tablename__ = "student_phonemic_levels"
    __table_args__ = (UniqueConstraint("student_id", "subject_id", name="uq_student_phonemic_subject"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False)
    phonemic_id = Column(Integer, ForeignKey("phonemic_levels.id"), nullable=False)

    student = relationship("Student", back_populates="phonemic_levels")
