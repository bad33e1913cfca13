import logging
from interview_buddy.core.database import AttemptDB
from interview_buddy.models.interview import AttemptRequest, AttemptResponse

logger = logging.getLogger(__name__)

def missing_fields(request: AttemptRequest) -> bool:
    return (
        not request.interview_id
        or not request.user_id
        or request.answers is None
        or request.total_score is None
    )

def save_attempt(request: AttemptRequest) -> AttemptResponse:
    """Store a finished practice run"""
    try:
        attempt_id = AttemptDB.create_attempt({
            "interviewId": request.interview_id,
            "userId": request.user_id,
            "answers": [answer.model_dump(by_alias=True) for answer in request.answers or []],
            "totalScore": request.total_score,
        })
        return AttemptResponse(success=True, attempt_id=attempt_id)
    except Exception as e:
        logger.error(f"❌ [ATTEMPT] Error saving attempt: {e}")
        return AttemptResponse(success=False, error=str(e) or "Failed to save attempt")
