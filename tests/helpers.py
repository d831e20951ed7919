# /tests/helpers.py

import json

from quizflow.db.models.assignment_models import Question


class FakeJudge:
    """
    Deterministic stand-in for the LLM judge. `responses` is consumed in order;
    an Exception instance is raised instead of returned. Once exhausted the
    `default` response is used.
    """

    def __init__(self, responses=None, default=None):
        self.responses = list(responses or [])
        self.default = default if default is not None else json.dumps({"score": 8, "feedback": "good"})
        self.calls = []

    async def complete_json(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        response = self.responses.pop(0) if self.responses else self.default
        if isinstance(response, Exception):
            raise response
        return response


def add_question(db_service, question_id, question_type, points=1, order_index=0, assignment_id="asg_1",
                 session_id=None, **config):
    return db_service.add_record(Question(
        id=question_id, assignment_id=assignment_id, session_id=session_id, type=question_type,
        prompt=f"Prompt for {question_id}", points=points, order_index=order_index, **config,
    ))
