"""Resolve a human-facing student identifier to one Student row."""
from fastapi import HTTPException
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from remedial.models.student import Student
from remedial.schemas.base import StudentOutSchema


async def resolve_student(db: AsyncSession, identifier: str | None) -> Student:
    """Look the identifier up against every alias (LRN, student code).

    Raises 400 when empty, 404 when nothing matches and 409 when more than
    one student carries it; dirty data is never resolved by picking one.
    """
    value = (identifier or "").strip()
    if not value:
        raise HTTPException(status_code=400, detail="Student ID is required.")

    result = await db.execute(
        select(Student)
        .where(or_(Student.lrn == value, Student.student_code == value))
        .order_by(Student.id)
        .limit(2)
    )
    students = result.scalars().unique().all()
    if not students:
        raise HTTPException(status_code=404, detail="Student not found.")
    if len(students) > 1:
        raise HTTPException(
            status_code=409,
            detail="Duplicate student identifier detected. Please contact your teacher.",
        )
    return students[0]


def student_out(student: Student) -> StudentOutSchema:
    return StudentOutSchema(id=student.id, lrn=student.lrn, name=student.display_name)
