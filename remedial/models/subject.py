"""Subject and phonemic level reference data."""
from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from remedial.db.session import Base


class Subject(Base):
    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), unique=True, nullable=False)  # English, Filipino, Math

    phonemic_levels = relationship("PhonemicLevel", back_populates="subject", order_by="PhonemicLevel.id")


class PhonemicLevel(Base):
    __tablename__ = "phonemic_levels"
    __table_args__ = (UniqueConstraint("subject_id", "name", name="uq_phonemic_levels_subject_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    subject_id = Column(Integer, ForeignKey("subjects.id"), nullable=False, index=True)
    name = Column(String(64), nullable=False)

    subject = relationship("Subject", back_populates="phonemic_levels")
