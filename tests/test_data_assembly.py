# /tests/test_data_assembly.py

import pytest
from types import SimpleNamespace

from quizflow.services.attempt_helpers.data_assembly import assemble_answer_results, assemble_attempt_result

# --- Test Data Fixtures ---

@pytest.fixture
def mock_questions():
    """Provides question records in authored order, as if from database_service."""
    return [
        SimpleNamespace(id="q_1", prompt="Pick one", type="mcq", points=2),
        SimpleNamespace(id="q_2", prompt="Explain", type="open", points=3),
        SimpleNamespace(id="q_3", prompt="Estimate", type="slider", points=1),
    ]


def _answer(question_id, **fields):
    defaults = dict(
        question_id=question_id, selected_choice=None, selected_choices=None, answer_text=None,
        slider_value=None, image_map_answers=None, is_correct=None, score=None, ai_feedback=None,
        ai_graded_at=None, grading_error=None, flag_results=None,
    )
    defaults.update(fields)
    return SimpleNamespace(**defaults)


@pytest.fixture
def mock_answers():
    """Answer rows in storage order, including one whose question was removed."""
    return [
        _answer("q_2", answer_text="Because", score=2, ai_feedback="Mostly right."),
        _answer("q_removed", selected_choice="a", score=1),
        _answer("q_1", selected_choice="a", is_correct=True, score=2),
    ]


def test_assemble_answer_results(mock_questions, mock_answers):
    """
    Answers follow question order, carry the question's prompt and points,
    and answers without a question are dropped. A question without an answer
    row is skipped.
    """
    results = assemble_answer_results(mock_questions, mock_answers)

    assert [r["questionId"] for r in results] == ["q_1", "q_2"]
    assert results[0]["questionPrompt"] == "Pick one"
    assert results[0]["isCorrect"] is True
    assert results[1]["points"] == 3
    assert results[1]["aiFeedback"] == "Mostly right."


def test_ai_feedback_hidden_when_disabled(mock_questions, mock_answers):
    results = assemble_answer_results(mock_questions, mock_answers, show_ai_feedback=False)
    assert all(r["aiFeedback"] is None for r in results)
    assert results[1]["score"] == 2


def test_assemble_attempt_result():
    attempt = SimpleNamespace(
        id="att_1", assignment_id="asg_1", session_id=None, journey_id=None, student_name="Sam",
        status="graded", is_final=True, mcq_score=2, mcq_total=2, open_score=1, open_total=3,
        total_score=3, max_score=5, level="intermediate", grading_progress=1, grading_total=1,
        submitted_at=None,
    )
    redirect = {"type": "link", "url": "https://example.com/intermediate", "embedCode": None}

    result = assemble_attempt_result(attempt, [], redirect)

    assert result["percentage"] == 60
    assert result["isFinal"] is True
    assert result["redirect"] == redirect
    assert (result["totalScore"], result["maxScore"]) == (3, 5)
    print("\n✅ SUCCESS: test_assemble_attempt_result passed.")
