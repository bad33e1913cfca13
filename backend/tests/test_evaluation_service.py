"""
Answer scoring, follow-up suggestions and transcript feedback reports.
"""

import json
import pytest

from conftest import FakeLLM
from interview_buddy.models.interview import EvaluateRequest, FeedbackRequest, TranscriptLine
from interview_buddy.services.evaluation_service import EvaluationService, normalize_score
from interview_buddy.services.feedback_service import FeedbackService

def evaluation(score, **extra):
    return json.dumps({
        "score": score,
        "feedback": "Solid explanation of indexes.",
        "keyPoints": ["B-trees"],
        "missedPoints": ["write cost"],
        **extra,
    })

def request(**overrides):
    fields = {
        "question": "Why add a database index?",
        "answer": "To speed up reads on filtered columns.",
        "role": "Backend Developer",
        "level": "senior",
    }
    fields.update(overrides)
    return EvaluateRequest(**fields)

class TestNormalizeScore:

    @pytest.mark.parametrize("value, expected", [
        (7, 7),
        (7.5, 7.5),
        (14, 10),
        (-2, 0),
        ("high", 5),
        (None, 5),
        (True, 5),
        (float("nan"), 5),
        (float("inf"), 5),
    ])
    def test_normalize(self, value, expected):
        assert normalize_score(value) == expected

class TestEvaluationService:

    def test_parses_model_json(self):
        service = EvaluationService(llm=FakeLLM("```json\n" + evaluation(8) + "\n```"), followup_llm=FakeLLM("unused"))

        response = service.evaluate(request())

        assert response.success
        assert response.score == 8
        assert response.key_points == ["B-trees"]
        assert response.missed_points == ["write cost"]
        assert response.follow_up_question is None

    def test_non_numeric_score_defaults_to_five(self):
        service = EvaluationService(llm=FakeLLM(evaluation("great")), followup_llm=FakeLLM("unused"))

        assert service.evaluate(request()).score == 5

    def test_senior_prompt_is_stricter(self):
        llm = FakeLLM(evaluation(6))
        service = EvaluationService(llm=llm, followup_llm=FakeLLM("unused"))

        service.evaluate(request(level="senior"))
        service.evaluate(request(level="junior"))

        assert "Senior level should be judged harder" in llm.prompts[0]
        assert "Senior level should be judged harder" not in llm.prompts[1]

    def test_follow_up_for_strong_answer_with_history(self):
        followup_llm = FakeLLM("  How would you index a compound query?  ")
        service = EvaluationService(llm=FakeLLM(evaluation(9)), followup_llm=followup_llm)

        response = service.evaluate(request(previous_answers=[]))

        assert response.follow_up_question == "How would you index a compound query?"

    def test_no_follow_up_without_history(self):
        followup_llm = FakeLLM("unused")
        service = EvaluationService(llm=FakeLLM(evaluation(9)), followup_llm=followup_llm)

        service.evaluate(request())

        assert followup_llm.prompts == []

    def test_no_follow_up_for_weak_answer(self):
        followup_llm = FakeLLM("unused")
        service = EvaluationService(llm=FakeLLM(evaluation(6)), followup_llm=followup_llm)

        service.evaluate(request(previous_answers=[{"q": "x"}]))

        assert followup_llm.prompts == []

    def test_follow_up_failure_keeps_score(self):
        service = EvaluationService(llm=FakeLLM(evaluation(9)), followup_llm=FakeLLM(RuntimeError("quota")))

        response = service.evaluate(request(previous_answers=[]))

        assert response.success
        assert response.follow_up_question is None

    def test_model_error_is_reported(self):
        service = EvaluationService(llm=FakeLLM(RuntimeError("quota exceeded")), followup_llm=FakeLLM("unused"))

        response = service.evaluate(request())

        assert response.success is False
        assert "quota exceeded" in response.error

CATEGORIES = [
    "Communication Skills",
    "Technical Knowledge",
    "Problem-Solving",
    "Cultural & Role Fit",
    "Confidence & Clarity",
]

def analysis(categories=CATEGORIES):
    return json.dumps({
        "totalScore": 72,
        "categoryScores": [{"name": name, "score": 70, "comment": "ok"} for name in categories],
        "strengths": ["Clear structure"],
        "areasForImprovement": ["Go deeper on trade-offs"],
        "finalAssessment": "A promising candidate.",
    })

def feedback_request(**overrides):
    fields = {
        "interview_id": "iv-1",
        "user_id": "user-1",
        "transcript": [
            TranscriptLine(role="assistant", content="Why add an index?"),
            TranscriptLine(role="user", content="Faster reads."),
        ],
    }
    fields.update(overrides)
    return FeedbackRequest(**fields)

class TestFeedbackService:

    def test_saves_report(self, mongo_db):
        llm = FakeLLM(analysis())

        response = FeedbackService(llm=llm).create_feedback(feedback_request())

        assert response.success
        stored = mongo_db["feedback"].find_one()
        assert str(stored["_id"]) == response.feedback_id
        assert stored["totalScore"] == 72
        assert len(stored["categoryScores"]) == 5
        assert stored["areasForImprovement"] == ["Go deeper on trade-offs"]
        assert "- user: Faster reads." in llm.prompts[0]

    def test_existing_report_is_replaced(self, mongo_db):
        service = FeedbackService(llm=FakeLLM(analysis()))
        first = service.create_feedback(feedback_request())

        second = service.create_feedback(feedback_request(feedback_id=first.feedback_id))

        assert second.feedback_id == first.feedback_id
        assert mongo_db["feedback"].count_documents({}) == 1

    def test_missing_category_is_rejected(self, mongo_db):
        response = FeedbackService(llm=FakeLLM(analysis(CATEGORIES[:4]))).create_feedback(feedback_request())

        assert response.success is False
        assert mongo_db["feedback"].count_documents({}) == 0
