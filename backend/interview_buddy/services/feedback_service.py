import json
import logging
from typing import Optional
from interview_buddy.core.database import FeedbackDB, now_iso
from interview_buddy.models.interview import FeedbackAnalysis, FeedbackRequest, FeedbackResponse
from interview_buddy.services.llm_client import BaseLLMClient, GeminiClient, render_prompt, extract_json_object

logger = logging.getLogger(__name__)

class FeedbackService:
    """Category scores and an overall assessment for a finished interview transcript"""

    def __init__(self, llm: Optional[BaseLLMClient] = None):
        self.llm = llm or GeminiClient(temperature=0.2)

    def analyze(self, request: FeedbackRequest) -> FeedbackAnalysis:
        prompt = render_prompt("feedback_analysis.j2", transcript=request.transcript)
        parsed = json.loads(extract_json_object(self.llm.generate(prompt)))
        return FeedbackAnalysis.model_validate(parsed)

    def create_feedback(self, request: FeedbackRequest) -> FeedbackResponse:
        try:
            analysis = self.analyze(request)

            feedback = {
                "interviewId": request.interview_id,
                "userId": request.user_id,
                **analysis.model_dump(by_alias=True),
                "createdAt": now_iso(),
            }
            feedback_id = FeedbackDB.save_feedback(feedback, request.feedback_id)

            logger.info(f"✅ [FEEDBACK] Saved feedback {feedback_id} for interview {request.interview_id}")
            return FeedbackResponse(success=True, feedback_id=feedback_id)

        except Exception as e:
            logger.error(f"❌ [FEEDBACK] Error saving feedback: {e}")
            return FeedbackResponse(success=False)

feedback_service = FeedbackService()
