import json
import logging
import math
from typing import Optional
from interview_buddy.models.interview import EvaluateRequest, EvaluateResponse
from interview_buddy.services.llm_client import BaseLLMClient, GeminiClient, render_prompt, extract_json_object

logger = logging.getLogger(__name__)

FOLLOW_UP_MIN_SCORE = 7
DEFAULT_SCORE = 5

def normalize_score(value) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value):
        return max(0, min(10, value))
    return DEFAULT_SCORE

def _string_list(value) -> list:
    return [str(item) for item in value] if isinstance(value, list) else []

class EvaluationService:
    def __init__(self, llm: Optional[BaseLLMClient] = None, followup_llm: Optional[BaseLLMClient] = None):
        self.llm = llm or GeminiClient(
            temperature=0.2,
            system_instruction="You are a strict but fair technical interviewer grading spoken answers."
        )
        self.followup_llm = followup_llm or GeminiClient(temperature=0.7, max_output_tokens=250)

    def _generate_followup(self, request: EvaluateRequest) -> Optional[str]:
        try:
            prompt = render_prompt(
                "followup_question.j2",
                question=request.question, answer=request.answer,
                role=request.role, level=request.level
            )
            return self.followup_llm.generate(prompt).strip() or None
        except Exception as e:
            logger.error(f"[EVALUATE] Follow-up generation failed: {e}")
            return None

    def evaluate(self, request: EvaluateRequest) -> EvaluateResponse:
        """Score one answer from 0 to 10"""
        try:
            prompt = render_prompt(
                "answer_evaluation.j2",
                question=request.question,
                answer=request.answer,
                role=request.role,
                level=request.level,
                senior=(request.level or "").lower() == "senior"
            )
            parsed = json.loads(extract_json_object(self.llm.generate(prompt)))
            if not isinstance(parsed, dict):
                raise ValueError("Evaluation is not a JSON object")

            response = EvaluateResponse(
                success=True,
                score=normalize_score(parsed.get("score")),
                feedback=parsed.get("feedback") or "No feedback provided.",
                key_points=_string_list(parsed.get("keyPoints")),
                missed_points=_string_list(parsed.get("missedPoints")),
            )
        except Exception as e:
            logger.error(f"❌ [EVALUATE] Error evaluating answer: {e}")
            return EvaluateResponse(success=False, error=str(e) or "Failed to evaluate answer")

        # Strong answers earn a deeper follow-up when the caller tracks history
        if response.score >= FOLLOW_UP_MIN_SCORE and request.previous_answers is not None:
            response.follow_up_question = self._generate_followup(request)

        return response

evaluation_service = EvaluationService()
