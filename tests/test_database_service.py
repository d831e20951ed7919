# /tests/test_database_service.py

import pytest
from sqlalchemy.exc import OperationalError

from quizflow.core.exceptions import PersistenceError
from quizflow.db.models.assignment_models import LevelRedirect, QuizSession
from tests.helpers import add_question


@pytest.fixture
def attempt(db_service, assignment):
    """A submitted attempt with one answer row, at grading generation 1."""
    record = db_service.add_attempt({"id": "att_1", "assignment_id": "asg_1", "status": "submitted"})
    db_service.add_answers([{"id": "ans_1", "attempt_id": "att_1", "question_id": "q_1", "answer_text": "hello"}])
    return record


def test_get_non_existent_attempt(db_service):
    """Getting an attempt that was never written returns None."""
    assert db_service.get_attempt("att_no_exist") is None


def test_new_attempt_starts_at_first_generation(db_service, attempt):
    assert attempt.grading_generation == 1
    assert attempt.is_final is False


def test_guarded_update_applies_only_to_current_generation(db_service, attempt):
    """
    A write tagged with the attempt's generation lands; a write tagged with an
    older generation is refused and leaves the row unchanged.
    """
    assert db_service.update_attempt("att_1", {"open_score": 3}, generation=1) is True

    new_generation = db_service.start_new_grading_generation("att_1", {"open_score": 0})
    assert new_generation == 2

    assert db_service.update_attempt("att_1", {"open_score": 9}, generation=1) is False
    assert db_service.update_answer("att_1", "q_1", {"score": 5}, generation=1) is False
    assert db_service.get_attempt("att_1").open_score == 0
    assert db_service.get_answers("att_1")[0].score is None

    assert db_service.update_answer("att_1", "q_1", {"score": 5}, generation=2) is True
    assert db_service.get_answers("att_1")[0].score == 5


def test_new_generation_of_missing_attempt(db_service):
    assert db_service.start_new_grading_generation("att_missing", {"status": "grading"}) is None


def test_reset_answers_keeps_raw_responses(db_service, attempt):
    db_service.update_answer("att_1", "q_1", {"score": 2, "is_correct": True, "ai_feedback": "ok"})

    assert db_service.reset_answers("att_1") == 1

    answer = db_service.get_answers("att_1")[0]
    assert (answer.score, answer.is_correct, answer.ai_feedback) == (None, None, None)
    assert answer.answer_text == "hello"


def test_fail_unscored_answers_skips_scored_ones(db_service, attempt):
    db_service.add_answers([{"id": "ans_2", "attempt_id": "att_1", "question_id": "q_2"}])
    db_service.update_answer("att_1", "q_1", {"score": 4})

    marked = db_service.fail_unscored_answers("att_1", ["q_1", "q_2"], {"score": 0, "grading_error": "x"}, 1)

    assert marked == 1
    scores = {a.question_id: (a.score, a.grading_error) for a in db_service.get_answers("att_1")}
    assert scores == {"q_1": (4, None), "q_2": (0, "x")}
    assert db_service.fail_unscored_answers("att_1", [], {"score": 0}, 1) == 0


def test_attempt_ids_in_assignment(db_service, attempt, teacher):
    db_service.add_attempt({"id": "att_other", "assignment_id": "asg_other"})

    found = db_service.get_attempt_ids_in_assignment("asg_1", ["att_1", "att_other", "att_missing"])

    assert found == ["att_1"]
    assert db_service.get_attempt_ids_in_assignment("asg_1", []) == []


def test_delete_answers_then_attempt(db_service, attempt):
    assert db_service.delete_answers("att_1") == 1
    assert db_service.delete_attempt("att_1") == 1
    assert db_service.get_attempt("att_1") is None
    assert db_service.delete_attempt("att_1") == 0


def test_write_failure_becomes_persistence_error(db_service, attempt, mocker):
    mocker.patch.object(db_service.session, "execute", side_effect=OperationalError("UPDATE", {}, Exception("locked")))
    rollback = mocker.spy(db_service.session, "rollback")

    with pytest.raises(PersistenceError):
        db_service.update_attempt("att_1", {"status": "graded"})
    rollback.assert_called_once()


def test_questions_are_ordered_and_filtered_by_session(db_service, assignment):
    db_service.add_record(QuizSession(id="ses_1", assignment_id="asg_1", title="Part 1", order_index=0))
    add_question(db_service, "q_b", "mcq", order_index=2)
    add_question(db_service, "q_a", "open", order_index=1)
    add_question(db_service, "q_s", "slider", order_index=0, session_id="ses_1")

    assert [q.id for q in db_service.get_questions("asg_1")] == ["q_s", "q_a", "q_b"]
    assert [q.id for q in db_service.get_questions("asg_1", "ses_1")] == ["q_s"]


def test_level_redirect_lookup_distinguishes_session_scope(db_service, assignment):
    db_service.add_record(QuizSession(id="ses_1", assignment_id="asg_1", title="Part 1", order_index=0))
    db_service.add_records([
        LevelRedirect(id="red_final", assignment_id="asg_1", level="advanced", redirect_url="https://example.com/final"),
        LevelRedirect(id="red_ses", assignment_id="asg_1", session_id="ses_1", level="advanced",
                      redirect_url="https://example.com/session"),
    ])

    assert db_service.get_level_redirect("asg_1", "advanced").id == "red_final"
    assert db_service.get_level_redirect("asg_1", "advanced", "ses_1").id == "red_ses"
    assert db_service.get_level_redirect("asg_1", "beginner") is None


def test_journey_update(db_service, assignment):
    db_service.add_journey({"id": "jrn_1", "assignment_id": "asg_1"})

    assert db_service.update_journey("jrn_1", {"current_session_index": 1}) is True
    assert db_service.get_journey("jrn_1").current_session_index == 1
    assert db_service.update_journey("jrn_missing", {"current_session_index": 1}) is False
