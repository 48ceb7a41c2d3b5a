"""API tests for the student attempt lifecycle: access, answers, submission."""
from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from remedial.core.clock import utcnow
from remedial.core.config import Settings, get_settings
from remedial.main import app
from remedial.models import Answer, Assessment, Attempt, Student
from remedial.services import attempts as attempt_service

from tests.conftest import QR_TOKEN, QUIZ_CODE, STUDENT_LRN, add_assessment, add_student, count_rows


async def access(client, code=QUIZ_CODE, student=STUDENT_LRN, **extra):
    return await client.post("/assessments/access", json={"quizCode": code, "studentId": student, **extra})


async def answer(client, attempt_id, question_id, **body):
    return await client.post(f"/assessments/attempts/{attempt_id}/answers", json={"questionId": question_id, **body})


# ---------- access ----------

@pytest.mark.asyncio
async def test_first_access_opens_attempt(client, quiz):
    r = await access(client, code="abc123")
    assert r.status_code == 200
    data = r.json()
    assert data["success"] is True
    assert data["attemptId"] == 1
    assert data["status"] == "in_progress"
    assert data["student"] == {"id": 1, "lrn": STUDENT_LRN, "name": "Juan Dela Cruz"}

    questions = data["assessment"]["questions"]
    assert [q["type"] for q in questions] == ["multiple_choice", "short_answer"]
    assert [c["text"] for c in questions[0]["choices"]] == ["dog", "cat"]
    # students never see which choice is right
    assert all(set(c) == {"id", "text"} for c in questions[0]["choices"])


@pytest.mark.asyncio
async def test_repeat_access_resumes_same_attempt(client, session_factory, quiz):
    first = await access(client)
    second = await client.post("/assessments/attempts/start", json={"quizCode": QUIZ_CODE, "lrn": int(STUDENT_LRN)})

    assert second.status_code == 200
    assert second.json()["attemptId"] == first.json()["attemptId"]
    assert await count_rows(session_factory, Attempt, Attempt.assessment_id == quiz["id"]) == 1


@pytest.mark.asyncio
async def test_access_by_student_code_alias(client, quiz):
    r = await access(client, student="S-001")
    assert r.status_code == 200
    assert r.json()["student"]["lrn"] == STUDENT_LRN


@pytest.mark.asyncio
async def test_access_requires_code_and_student(client, quiz):
    r = await access(client, student="  ")
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Quiz code and student ID are required."}

    r = await client.post("/assessments/attempts/start", json={"lrn": STUDENT_LRN})
    assert r.status_code == 400
    assert r.json()["error"] == "Quiz code and LRN are required."


@pytest.mark.asyncio
async def test_unknown_code(client, quiz):
    r = await access(client, code="ZZZ999")
    assert r.status_code == 404
    assert r.json()["success"] is False


@pytest.mark.asyncio
async def test_unpublished_assessment_is_refused(client, session_factory, levels, student_id):
    await add_assessment(session_factory, levels, quiz_code="DRAFT1", is_published=False)
    r = await access(client, code="DRAFT1")
    assert r.status_code == 403
    assert r.json()["error"] == "This quiz is not currently active."


@pytest.mark.asyncio
async def test_qr_token_must_match(client, session_factory, quiz):
    r = await access(client, qrToken="not-the-token")
    assert r.status_code == 403
    assert r.json()["error"] == "Invalid QR token."
    assert await count_rows(session_factory, Attempt) == 0

    r = await access(client, qrToken=QR_TOKEN)
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_outside_schedule_creates_no_attempt(client, session_factory, levels, student_id):
    now = utcnow()
    await add_assessment(
        session_factory, levels, quiz_code="LATE01",
        start_time=now - timedelta(days=2), end_time=now - timedelta(days=1),
    )
    await add_assessment(
        session_factory, levels, quiz_code="SOON01",
        start_time=now + timedelta(days=1), end_time=now + timedelta(days=2),
    )

    r = await access(client, code="LATE01")
    assert r.status_code == 403
    assert r.json()["error"] == "This assessment is already completed and no longer active."

    r = await access(client, code="SOON01")
    assert r.status_code == 403
    assert r.json()["error"] == "This assessment is pending and not active yet."

    assert await count_rows(session_factory, Attempt) == 0


@pytest.mark.asyncio
async def test_missing_schedule_is_server_error(client, session_factory, levels, student_id):
    await add_assessment(session_factory, levels, quiz_code="NOWIN1", start_time=None, end_time=None)
    r = await access(client, code="NOWIN1")
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": "Assessment schedule is invalid."}


@pytest.mark.asyncio
async def test_unknown_student(client, quiz):
    r = await access(client, student="000000000000")
    assert r.status_code == 404
    assert r.json()["error"] == "Student not found."


@pytest.mark.asyncio
async def test_duplicate_lrn_is_a_conflict(client, session_factory, quiz):
    await add_student(session_factory, "555")
    await add_student(session_factory, "555")

    r = await access(client, student="555")
    assert r.status_code == 409
    assert "Duplicate student identifier" in r.json()["error"]
    assert await count_rows(session_factory, Attempt) == 0


@pytest.mark.asyncio
async def test_other_reading_level_is_refused(client, session_factory, levels, quiz):
    await add_student(
        session_factory, "777",
        level_id=levels[("English", "Sentence")], subject_id=levels["English"],
    )
    r = await access(client, student="777")
    assert r.status_code == 403
    assert r.json()["error"] == "This assessment is not assigned to your reading level."


@pytest.mark.asyncio
async def test_level_gating_can_be_disabled(client, session_factory, quiz):
    await add_student(session_factory, "888")
    app.dependency_overrides[get_settings] = lambda: Settings(enforce_phonemic_gating=False)

    r = await access(client, student="888")
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_lost_insert_race_resumes_winner(db, session_factory, levels, quiz, monkeypatch):
    assessment = await db.get(Assessment, quiz["id"])
    student = await db.get(Student, 1)
    winner = await attempt_service.open_attempt(db, assessment, student)

    # the loser's existence check ran before the winner committed
    async def nothing_yet(*args):
        return None

    monkeypatch.setattr(attempt_service, "_latest_attempt", nothing_yet)
    async with session_factory() as other:
        loser = await attempt_service.open_attempt(
            other, await other.get(Assessment, quiz["id"]), await other.get(Student, 1)
        )
    assert loser.id == winner.id
    assert await count_rows(session_factory, Attempt) == 1


@pytest.mark.asyncio
async def test_only_one_open_attempt_per_student(db, quiz):
    now = utcnow()
    db.add(Attempt(assessment_id=quiz["id"], student_id=1, started_at=now, status="in_progress"))
    await db.commit()
    db.add(Attempt(assessment_id=quiz["id"], student_id=1, started_at=now, status="in_progress"))
    with pytest.raises(IntegrityError):
        await db.commit()


# ---------- answers ----------

@pytest.mark.asyncio
async def test_multiple_choice_grading(client, quiz):
    attempt_id = (await access(client)).json()["attemptId"]

    r = await answer(client, attempt_id, quiz["mc"], selectedChoiceId=quiz["mc_correct"])
    assert r.status_code == 200
    assert r.json() == {"success": True, "isCorrect": True, "score": 4}

    r = await answer(client, attempt_id, quiz["mc"], selectedChoiceId=quiz["mc_wrong"])
    assert r.json() == {"success": True, "isCorrect": False, "score": 0}


@pytest.mark.asyncio
@pytest.mark.parametrize("text,correct", [("Cat", True), ("  CAT ", True), ("cat", True), ("dog", False)])
async def test_short_answer_grading(client, quiz, text, correct):
    attempt_id = (await access(client)).json()["attemptId"]
    r = await answer(client, attempt_id, quiz["short"], answerText=text)
    assert r.status_code == 200
    assert r.json()["isCorrect"] is correct
    assert r.json()["score"] == (1 if correct else 0)


@pytest.mark.asyncio
async def test_answer_overwrites_previous(client, session_factory, quiz):
    attempt_id = (await access(client)).json()["attemptId"]
    await answer(client, attempt_id, quiz["short"], answerText="dog")
    await answer(client, attempt_id, quiz["short"], answerText="cat")

    criteria = (Answer.attempt_id == attempt_id, Answer.question_id == quiz["short"])
    assert await count_rows(session_factory, Answer, *criteria) == 1
    async with session_factory() as session:
        stored = (await session.execute(select(Answer).where(*criteria))).scalar_one()
    assert stored.answer_text == "cat"
    assert stored.is_correct is True
    assert stored.score == 1


@pytest.mark.asyncio
async def test_choice_is_required_for_choice_questions(client, quiz):
    attempt_id = (await access(client)).json()["attemptId"]
    r = await answer(client, attempt_id, quiz["mc"], answerText="cat")
    assert r.status_code == 400
    assert r.json()["error"] == "Choice is required."


@pytest.mark.asyncio
async def test_choice_must_belong_to_question(client, session_factory, levels, quiz):
    other = await add_assessment(session_factory, levels, quiz_code="OTHER1")
    attempt_id = (await access(client)).json()["attemptId"]

    r = await answer(client, attempt_id, quiz["mc"], selectedChoiceId=other["mc_correct"])
    assert r.status_code == 404

    r = await answer(client, attempt_id, other["mc"], selectedChoiceId=other["mc_correct"])
    assert r.status_code == 404
    assert r.json()["error"] == "Question not found for this quiz."


@pytest.mark.asyncio
async def test_answer_validation_error(client, quiz):
    attempt_id = (await access(client)).json()["attemptId"]
    r = await client.post(f"/assessments/attempts/{attempt_id}/answers", json={"answerText": "cat"})
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert r.json()["error"].startswith("Invalid questionId")


@pytest.mark.asyncio
async def test_unknown_attempt(client, quiz):
    r = await answer(client, 99, quiz["short"], answerText="cat")
    assert r.status_code == 404
    r = await client.post("/assessments/attempts/99/submit")
    assert r.status_code == 404
    assert r.json()["error"] == "Attempt not found."


@pytest.mark.asyncio
async def test_lost_answer_insert_race_overwrites_winner(client, session_factory, quiz, monkeypatch):
    attempt_id = (await access(client)).json()["attemptId"]
    real_upsert = attempt_service._upsert_answer
    calls = []

    async def other_writer_first(db, attempt_id, question_id, grade, choice_id, answer_text):
        calls.append(question_id)
        if len(calls) > 1:
            return await real_upsert(db, attempt_id, question_id, grade, choice_id, answer_text)
        # another request stores its answer after this one found no row
        async with session_factory() as other:
            other.add(
                Answer(attempt_id=attempt_id, question_id=question_id, answer_text="dog", is_correct=False, score=0)
            )
            await other.commit()
        db.add(
            Answer(
                attempt_id=attempt_id,
                question_id=question_id,
                answer_text=answer_text,
                is_correct=grade.is_correct,
                score=grade.score,
            )
        )
        await db.commit()

    monkeypatch.setattr(attempt_service, "_upsert_answer", other_writer_first)
    r = await answer(client, attempt_id, quiz["short"], answerText="cat")

    assert r.status_code == 200
    assert r.json() == {"success": True, "isCorrect": True, "score": 1}
    assert len(calls) == 2
    async with session_factory() as session:
        rows = (
            await session.execute(
                select(Answer.answer_text, Answer.score).where(
                    Answer.attempt_id == attempt_id, Answer.question_id == quiz["short"]
                )
            )
        ).all()
    assert [tuple(row) for row in rows] == [("cat", 1)]


# ---------- submission ----------

@pytest.mark.asyncio
async def test_full_attempt(client, session_factory, quiz):
    r = await access(client)
    assert r.json()["attemptId"] == 1
    assert r.json()["status"] == "in_progress"

    r = await answer(client, 1, quiz["mc"], selectedChoiceId=2)
    assert r.json() == {"success": True, "isCorrect": True, "score": 4}
    r = await answer(client, 1, quiz["short"], answerText="Cat")
    assert r.json() == {"success": True, "isCorrect": True, "score": 1}

    r = await client.post("/assessments/attempts/1/submit")
    assert r.status_code == 200
    data = r.json()
    assert data["totalScore"] == 5
    assert data["correctCount"] == 2
    assert data["incorrectCount"] == 0
    assert data["totalQuestions"] == 2
    assert data["status"] == "submitted"
    assert data["student"]["lrn"] == STUDENT_LRN

    async with session_factory() as session:
        attempt = await session.get(Attempt, 1)
    assert attempt.status == "submitted"
    assert attempt.total_score == 5
    assert attempt.submitted_at is not None


@pytest.mark.asyncio
async def test_unanswered_questions_count_as_incorrect(client, quiz):
    attempt_id = (await access(client)).json()["attemptId"]
    await answer(client, attempt_id, quiz["mc"], selectedChoiceId=quiz["mc_correct"])

    data = (await client.post(f"/assessments/attempts/{attempt_id}/submit")).json()
    assert data["totalScore"] == 4
    assert data["correctCount"] == 1
    assert data["incorrectCount"] == 1


@pytest.mark.asyncio
async def test_submitted_attempt_is_frozen(client, quiz):
    attempt_id = (await access(client)).json()["attemptId"]
    await answer(client, attempt_id, quiz["short"], answerText="dog")
    first = await client.post(f"/assessments/attempts/{attempt_id}/submit")

    r = await answer(client, attempt_id, quiz["short"], answerText="cat")
    assert r.status_code == 409
    assert r.json()["error"] == "Attempt is no longer active."

    again = await client.post(f"/assessments/attempts/{attempt_id}/submit")
    assert again.status_code == 200
    assert again.json() == first.json()
    assert again.json()["totalScore"] == 0


@pytest.mark.asyncio
async def test_no_retake_after_submit(client, quiz):
    attempt_id = (await access(client)).json()["attemptId"]
    await client.post(f"/assessments/attempts/{attempt_id}/submit")

    r = await access(client)
    assert r.status_code == 409
    assert "cannot retake" in r.json()["error"]


@pytest.mark.asyncio
async def test_concurrent_submit_writes_once(client, session_factory, quiz, monkeypatch):
    attempt_id = (await access(client)).json()["attemptId"]
    await answer(client, attempt_id, quiz["short"], answerText="cat")
    real_tally = attempt_service._frozen_tally
    real_submit = attempt_service.submit_attempt
    winners = []

    async def other_submits_after_tally(db, attempt):
        tally = await real_tally(db, attempt)
        if not winners:
            winners.append(attempt.id)
            async with session_factory() as other:
                await real_submit(other, attempt.id)
        return tally

    monkeypatch.setattr(attempt_service, "_frozen_tally", other_submits_after_tally)
    r = await client.post(f"/assessments/attempts/{attempt_id}/submit")

    assert winners == [attempt_id]
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "submitted"
    assert data["totalScore"] == 1
    assert data["correctCount"] == 1
    assert data["incorrectCount"] == 1

    async with session_factory() as session:
        attempt = await session.get(Attempt, attempt_id)
    assert attempt.status == "submitted"
    assert attempt.total_score == 1
    assert attempt.submitted_at is not None


@pytest.mark.asyncio
async def test_failed_submit_leaves_attempt_open(client, db, session_factory, quiz, monkeypatch):
    attempt_id = (await access(client)).json()["attemptId"]
    await answer(client, attempt_id, quiz["mc"], selectedChoiceId=quiz["mc_correct"])

    def clock_down():
        raise RuntimeError("clock unavailable")

    monkeypatch.setattr(attempt_service, "utcnow", clock_down)
    with pytest.raises(RuntimeError):
        await attempt_service.submit_attempt(db, attempt_id)

    async with session_factory() as session:
        attempt = await session.get(Attempt, attempt_id)
    assert attempt.status == "in_progress"
    assert attempt.submitted_at is None
    assert attempt.total_score == 0

    monkeypatch.undo()
    r = await client.post(f"/assessments/attempts/{attempt_id}/submit")
    assert r.status_code == 200
    assert r.json()["totalScore"] == 4
