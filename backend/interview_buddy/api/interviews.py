from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse
import logging
from typing import Optional
from interview_buddy.core.config import settings
from interview_buddy.core.database import AttemptDB, FeedbackDB, InterviewDB
from interview_buddy.models.interview import AttemptRequest, EvaluateRequest, FeedbackRequest
from interview_buddy.services import attempt_service
from interview_buddy.services.evaluation_service import evaluation_service
from interview_buddy.services.feedback_service import feedback_service
from interview_buddy.services.question_service import question_service

router = APIRouter()
logger = logging.getLogger(__name__)

def failure(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error})

@router.post("/evaluate")
def evaluate_answer(request: EvaluateRequest):
    """Score one spoken answer"""
    if not request.question or not request.answer:
        return failure(400, "Question and answer are required")

    response = evaluation_service.evaluate(request)
    if not response.success:
        return failure(500, response.error or "Failed to evaluate answer")
    return response.model_dump(by_alias=True, exclude={"error"})

@router.get("/random")
def get_random_interviews(count: int = Query(settings.RANDOM_INTERVIEW_COUNT, ge=1, le=20)):
    try:
        interviews = question_service.get_random_interviews(count)
        return {"success": True, "interviews": interviews}
    except Exception as e:
        logger.error(f"❌ [RANDOM] Error fetching random interviews: {e}")
        return failure(500, str(e) or "Failed to generate random interviews")

@router.post("/random")
def create_random_interview():
    """Force-generate one unowned interview"""
    try:
        return {"success": True, "interview": question_service.generate_random_interview()}
    except Exception as e:
        logger.error(f"❌ [RANDOM] Error generating interview: {e}")
        return failure(500, str(e) or "Failed to generate interview")

@router.post("/attempt")
def save_attempt(request: AttemptRequest):
    if attempt_service.missing_fields(request):
        return failure(400, "Missing required fields")

    response = attempt_service.save_attempt(request)
    if not response.success:
        return failure(500, response.error)
    return {"success": True, "attemptId": response.attempt_id}

@router.get("/attempt")
def get_attempts(userId: Optional[str] = None, interviewId: Optional[str] = None):
    if not userId:
        return failure(400, "userId required")

    try:
        return {"success": True, "attempts": AttemptDB.get_attempts(userId, interviewId)}
    except Exception as e:
        logger.error(f"❌ [ATTEMPT] Error fetching attempts: {e}")
        return failure(500, str(e) or "Failed to fetch attempts")

@router.get("/user")
def get_user_interviews(userId: Optional[str] = None, limit: int = 10):
    if not userId:
        return failure(400, "userId is required")

    try:
        return {"success": True, "interviews": InterviewDB.get_interviews_by_user(userId, limit)}
    except Exception as e:
        logger.error(f"❌ [INTERVIEWS] Error fetching user interviews: {e}")
        return failure(500, str(e) or "Failed to fetch interviews")

@router.get("/latest")
def get_latest_interviews(userId: Optional[str] = None, limit: int = 20):
    """Finalized interviews created by other users"""
    if not userId:
        return failure(400, "userId is required")

    try:
        return {"success": True, "interviews": InterviewDB.get_latest_interviews(userId, limit)}
    except Exception as e:
        logger.error(f"❌ [INTERVIEWS] Error fetching latest interviews: {e}")
        return failure(500, str(e) or "Failed to fetch interviews")

@router.post("/feedback")
def create_feedback(request: FeedbackRequest):
    response = feedback_service.create_feedback(request)
    if not response.success:
        return JSONResponse(status_code=500, content=response.model_dump(by_alias=True))
    return response

@router.get("/{interview_id}")
def get_interview(interview_id: str):
    interview = InterviewDB.get_interview_by_id(interview_id)
    if not interview:
        raise HTTPException(status_code=404, detail="Interview not found")
    return interview

@router.get("/{interview_id}/feedback")
def get_feedback(interview_id: str, userId: str):
    feedback = FeedbackDB.get_feedback(interview_id, userId)
    if not feedback:
        raise HTTPException(status_code=404, detail="Feedback not found")
    return feedback
