from fastapi import APIRouter
from fastapi.responses import JSONResponse
from interview_buddy.models.interview import GenerateRequest
from interview_buddy.services.question_service import question_service

router = APIRouter()

@router.post("/generate")
def generate_interview(request: GenerateRequest):
    """Generate and store a finalized interview from collected preferences"""
    response = question_service.generate_interview(request)
    if not response.success:
        return JSONResponse(status_code=500, content=response.model_dump(by_alias=True, exclude={"questions"}))
    return {"success": True, "questions": response.questions}

@router.get("/generate")
def generate_ping():
    return {"success": True, "data": "Thank you!"}
