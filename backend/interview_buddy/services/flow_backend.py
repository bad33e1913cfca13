from starlette.concurrency import run_in_threadpool
from interview_buddy.models.interview import (
    AttemptRequest, AttemptResponse, EvaluateRequest, EvaluateResponse, GenerateRequest, GenerateResponse
)
from interview_buddy.services import attempt_service
from interview_buddy.services.evaluation_service import EvaluationService, evaluation_service
from interview_buddy.services.question_service import QuestionService, question_service

class InterviewBackend:
    """Generation, scoring and persistence for the voice flows.

    Calls the services in-process; the Gemini SDK and pymongo block, so every
    call runs on the threadpool.
    """

    def __init__(self, questions: QuestionService = question_service,
                 evaluator: EvaluationService = evaluation_service):
        self.questions = questions
        self.evaluator = evaluator

    async def generate(self, request: GenerateRequest) -> GenerateResponse:
        return await run_in_threadpool(self.questions.generate_interview, request)

    async def evaluate(self, request: EvaluateRequest) -> EvaluateResponse:
        return await run_in_threadpool(self.evaluator.evaluate, request)

    async def save_attempt(self, request: AttemptRequest) -> AttemptResponse:
        return await run_in_threadpool(attempt_service.save_attempt, request)
