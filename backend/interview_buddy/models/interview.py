from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Literal, Any

class CamelModel(BaseModel):
    """Snake_case fields, camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class AnswerRecord(CamelModel):
    question: str
    answer: str
    score: float
    feedback: str

# Question generation
class GenerateRequest(CamelModel):
    type: Optional[str] = None
    role: Optional[str] = None
    level: Optional[str] = None
    techstack: Optional[str] = None
    amount: Optional[Any] = None
    user_id: Optional[str] = None

class ErrorInfo(CamelModel):
    name: str = "UnknownError"
    message: str
    status_code: Optional[int] = None

class GenerateResponse(CamelModel):
    success: bool
    questions: List[str] = []
    error: Optional[ErrorInfo] = None

# Answer scoring
class EvaluateRequest(CamelModel):
    question: Optional[str] = None
    answer: Optional[str] = None
    role: Optional[str] = None
    level: Optional[str] = None
    previous_answers: Optional[List[Any]] = None

class EvaluateResponse(CamelModel):
    success: bool
    score: float = 0
    feedback: str = ""
    key_points: List[str] = []
    missed_points: List[str] = []
    follow_up_question: Optional[str] = None
    error: Optional[str] = None

# Practice attempts
class AttemptRequest(CamelModel):
    interview_id: Optional[str] = None
    user_id: Optional[str] = None
    answers: Optional[List[AnswerRecord]] = None
    total_score: Optional[float] = None

class AttemptResponse(CamelModel):
    success: bool
    attempt_id: Optional[str] = None
    error: Optional[str] = None

# Transcript feedback reports
CategoryName = Literal[
    "Communication Skills",
    "Technical Knowledge",
    "Problem-Solving",
    "Cultural & Role Fit",
    "Confidence & Clarity",
]

class CategoryScore(CamelModel):
    name: CategoryName
    score: float = Field(ge=0, le=100)
    comment: str

class FeedbackAnalysis(CamelModel):
    total_score: float = Field(ge=0, le=100)
    category_scores: List[CategoryScore] = Field(min_length=5, max_length=5)
    strengths: List[str]
    areas_for_improvement: List[str]
    final_assessment: str

class TranscriptLine(CamelModel):
    role: str
    content: str

class FeedbackRequest(CamelModel):
    interview_id: str
    user_id: str
    transcript: List[TranscriptLine]
    feedback_id: Optional[str] = None

class FeedbackResponse(CamelModel):
    success: bool
    feedback_id: Optional[str] = None
