from remedial.services.grading import grade_choice, grade_short_answer, tally_submission
from remedial.services.seeding import seed_reference_data

__all__ = ["grade_choice", "grade_short_answer", "tally_submission", "seed_reference_data"]
