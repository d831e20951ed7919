# /tests/test_journey_service.py

import pytest

from quizflow.core.exceptions import InputValidationError, NotFoundError
from quizflow.db.models.assignment_models import Assignment
from quizflow.models.attempt_model import AnswerSubmission, SubmitAttemptRequest
from quizflow.models.journey_model import StartJourneyRequest
from quizflow.services.journey_service import JourneyService
from tests.helpers import add_question


@pytest.fixture
def journey_service(db_service):
    return JourneyService(db_service)


@pytest.fixture
def journey_id(journey_service, journey_assignment):
    started = journey_service.start_journey(StartJourneyRequest(assignmentId="asg_1", studentName="Ada"))
    return started["journeyId"]


def submit_session(attempt_service, journey_id, session_id, question_id, choice):
    return attempt_service.submit_attempt(SubmitAttemptRequest(
        assignmentId="asg_1", journeyId=journey_id, sessionId=session_id,
        answers=[AnswerSubmission(questionId=question_id, selectedChoice=choice)],
    ))


def test_start_journey(journey_service, journey_assignment, db_service):
    started = journey_service.start_journey(StartJourneyRequest(assignmentId="asg_1"))

    assert started["firstSessionId"] == "ses_1"
    assert started["totalSessions"] == 2
    assert [s["id"] for s in started["sessions"]] == ["ses_1", "ses_2"]

    journey = db_service.get_journey(started["journeyId"])
    assert journey.current_session_index == 0
    assert journey.overall_status == "in_progress"
    assert (journey.total_score, journey.max_score) == (0, 0)


def test_start_journey_requires_published_assignment(journey_service, db_service, teacher):
    db_service.add_record(Assignment(id="asg_draft", teacher_id=teacher.id, title="Draft", status="draft"))
    with pytest.raises(InputValidationError):
        journey_service.start_journey(StartJourneyRequest(assignmentId="asg_draft"))
    with pytest.raises(NotFoundError):
        journey_service.start_journey(StartJourneyRequest(assignmentId="asg_missing"))


def test_full_journey(journey_service, attempt_service, db_service, journey_id):
    submit_session(attempt_service, journey_id, "ses_1", "q_s1", "a")
    assert db_service.get_journey(journey_id).total_score == 2

    advanced = journey_service.advance_journey(journey_id)
    assert advanced == {"isComplete": False, "nextSessionId": "ses_2", "nextSessionTitle": "Part 2"}

    status = journey_service.get_journey_status(journey_id)
    assert [s["status"] for s in status["sessions"]] == ["completed", "in_progress"]
    assert status["currentSession"]["id"] == "ses_2"

    submit_session(attempt_service, journey_id, "ses_2", "q_s2", "a")
    assert journey_service.advance_journey(journey_id)["isComplete"] is True

    summary = journey_service.get_journey_summary(journey_id)
    assert summary["summary"]["totalScore"] == 2
    assert summary["summary"]["maxScore"] == 5
    assert summary["summary"]["percentage"] == 40
    assert summary["summary"]["overallLevel"] == "beginner"
    assert summary["summary"]["completedSessions"] == summary["summary"]["totalSessions"] == 2
    assert [r["score"] for r in summary["sessionResults"]] == [2, 0]
    assert summary["journey"]["overall_status"] == "completed"
    assert summary["journey"]["completed_at"] is not None
    assert summary["finalRedirect"] == {"type": "link", "url": "https://example.com/beginner", "embedCode": None}


def test_advancing_a_completed_journey_is_idempotent(journey_service, attempt_service, db_service, journey_id):
    submit_session(attempt_service, journey_id, "ses_1", "q_s1", "a")
    journey_service.advance_journey(journey_id)
    submit_session(attempt_service, journey_id, "ses_2", "q_s2", "b")
    journey_service.advance_journey(journey_id)

    assert journey_service.advance_journey(journey_id)["isComplete"] is True
    journey = db_service.get_journey(journey_id)
    assert journey.overall_status == "completed"
    assert journey.current_session_index == 1
    assert journey.overall_level == "advanced"


def test_advance_requires_current_session_submission(journey_service, journey_id):
    with pytest.raises(InputValidationError):
        journey_service.advance_journey(journey_id)


@pytest.mark.asyncio
async def test_completion_waits_for_ai_grading(journey_service, attempt_service, db_service, journey_id):
    add_question(db_service, "q_s2_open", "open", points=5, order_index=1, session_id="ses_2")
    submit_session(attempt_service, journey_id, "ses_1", "q_s1", "a")
    journey_service.advance_journey(journey_id)

    _, background = attempt_service.submit_attempt(SubmitAttemptRequest(
        assignmentId="asg_1", journeyId=journey_id, sessionId="ses_2",
        answers=[AnswerSubmission(questionId="q_s2", selectedChoice="b"),
                 AnswerSubmission(questionId="q_s2_open", answerText="An explanation")],
    ))
    with pytest.raises(InputValidationError):
        journey_service.advance_journey(journey_id)

    await background()
    assert journey_service.advance_journey(journey_id)["isComplete"] is True
    # 2 + 3 + round(8 * 5 / 10)
    assert db_service.get_journey(journey_id).total_score == 9


def test_summary_before_completion(journey_service, attempt_service, journey_id):
    submit_session(attempt_service, journey_id, "ses_1", "q_s1", "a")
    summary = journey_service.get_journey_summary(journey_id)

    second = summary["sessionResults"][1]
    assert (second["score"], second["maxScore"], second["isComplete"], second["attemptId"]) == (0, 0, False, None)
    assert summary["summary"]["overallLevel"] == "advanced"
    assert summary["finalRedirect"] is None


def test_summary_refreshes_a_stale_cache(journey_service, attempt_service, db_service, journey_id):
    submit_session(attempt_service, journey_id, "ses_1", "q_s1", "a")
    db_service.update_journey(journey_id, {"total_score": 99, "max_score": 100, "overall_level": "advanced"})

    journey_service.get_journey_summary(journey_id)

    journey = db_service.get_journey(journey_id)
    assert (journey.total_score, journey.max_score) == (2, 2)


def test_resubmitted_session_counts_latest_attempt(journey_service, attempt_service, journey_id):
    submit_session(attempt_service, journey_id, "ses_1", "q_s1", "b")
    second, _ = submit_session(attempt_service, journey_id, "ses_1", "q_s1", "a")

    summary = journey_service.get_journey_summary(journey_id)
    assert summary["sessionResults"][0]["attemptId"] == second["attemptId"]
    assert summary["summary"]["totalScore"] == 2


def test_submission_to_completed_journey_is_rejected(journey_service, attempt_service, journey_id):
    submit_session(attempt_service, journey_id, "ses_1", "q_s1", "a")
    journey_service.advance_journey(journey_id)
    submit_session(attempt_service, journey_id, "ses_2", "q_s2", "b")
    journey_service.advance_journey(journey_id)

    with pytest.raises(InputValidationError):
        submit_session(attempt_service, journey_id, "ses_2", "q_s2", "b")


def test_unknown_journey(journey_service):
    with pytest.raises(NotFoundError):
        journey_service.get_journey_summary("jrn_missing")
    with pytest.raises(NotFoundError):
        journey_service.advance_journey("jrn_missing")
    assert journey_service.refresh_rollup("jrn_missing") is None
