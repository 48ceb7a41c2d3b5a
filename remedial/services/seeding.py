"""Seed subjects and their phonemic levels when the tables are empty."""
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from remedial.models.subject import PhonemicLevel, Subject

log = logging.getLogger(__name__)

READING_LEVELS = ["Non Reader", "Syllable", "Word", "Phrase", "Sentence", "Paragraph"]
MATH_LEVELS = ["Not Proficient", "Low Proficient", "Nearly Proficient", "Proficient", "Highly Proficient"]

SUBJECT_LEVELS = {
    "English": READING_LEVELS,
    "Filipino": READING_LEVELS,
    "Math": MATH_LEVELS,
}


async def seed_reference_data(db: AsyncSession) -> int:
    """Insert the default subjects and levels; returns how many subjects were added."""
    result = await db.execute(select(func.count(Subject.id)))
    if result.scalar_one() > 0:
        return 0

    for name, levels in SUBJECT_LEVELS.items():
        db.add(Subject(name=name, phonemic_levels=[PhonemicLevel(name=level) for level in levels]))
    await db.commit()
    log.info("Seeded %d subjects", len(SUBJECT_LEVELS))
    return len(SUBJECT_LEVELS)
