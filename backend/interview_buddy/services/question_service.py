import json
import logging
import random
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional
from interview_buddy.core.config import settings
from interview_buddy.core.database import InterviewDB
from interview_buddy.models.interview import GenerateRequest, GenerateResponse, ErrorInfo
from interview_buddy.services.llm_client import BaseLLMClient, GeminiClient, render_prompt, extract_json_array

logger = logging.getLogger(__name__)

ROLES = [
    "Backend Developer",
    "Frontend Developer",
    "Full Stack Developer",
    "DevOps Engineer",
    "Mobile Developer",
    "Data Engineer",
]

LEVELS = ["Junior", "Mid-level", "Senior"]

TYPES = ["Technical", "Behavioral", "Mixed"]

TECH_STACKS = [
    ["Node.js", "Express", "MongoDB"],
    ["React", "TypeScript", "Next.js"],
    ["Python", "Django", "PostgreSQL"],
    ["AWS", "Docker", "Kubernetes"],
    ["Java", "Spring Boot", "MySQL"],
    ["Vue.js", "Nuxt", "Tailwind CSS"],
]

def clamp_amount(raw) -> int:
    """Requested question count; unusable input falls back to the default"""
    try:
        amount = int(float(raw))
    except (TypeError, ValueError, OverflowError):
        amount = 0
    if not amount:
        amount = settings.QUESTION_COUNT
    return min(max(amount, 1), settings.MAX_QUESTION_COUNT)

def clean_questions(value, amount: int) -> List[str]:
    if not isinstance(value, list):
        raise ValueError("Questions is not an array.")

    cleaned = []
    for item in value:
        if not isinstance(item, str):
            continue
        # Slashes and asterisks trip up speech synthesis
        question = re.sub(r"[/*]", "", item.strip()).strip()
        if question:
            cleaned.append(question)

    if not cleaned:
        raise ValueError("No valid questions returned.")

    return cleaned[:amount]

def split_techstack(techstack) -> List[str]:
    return [part.strip() for part in str(techstack or "").split(",") if part.strip()]

class QuestionService:
    def __init__(self, llm: Optional[BaseLLMClient] = None):
        self.llm = llm or GeminiClient(
            temperature=0.7,
            system_instruction="You write concise, spoken-friendly job interview questions."
        )

    def generate_questions(self, type: str, role: str, level: str, techstack: str, amount: int) -> List[str]:
        prompt = render_prompt(
            "question_generation.j2",
            type=type, role=role, level=level, techstack=techstack, amount=amount
        )
        raw = self.llm.generate(prompt)
        parsed = json.loads(extract_json_array(raw))
        return clean_questions(parsed, amount)

    def generate_interview(self, request: GenerateRequest) -> GenerateResponse:
        """Generate questions for a requested interview and store it as finalized"""
        try:
            amount = clamp_amount(request.amount)
            questions = self.generate_questions(
                request.type, request.role, request.level, request.techstack, amount
            )

            InterviewDB.create_interview({
                "role": request.role,
                "type": request.type,
                "level": request.level,
                "techstack": split_techstack(request.techstack),
                "questions": questions,
                "userId": request.user_id,
                "finalized": True,
            })

            logger.info(f"✅ [GENERATE] {len(questions)} questions for {request.level} {request.role}")
            return GenerateResponse(success=True, questions=questions)

        except Exception as e:
            logger.error(f"❌ [GENERATE] Question generation failed: {e}")
            status_code = getattr(e, "code", None)
            return GenerateResponse(
                success=False,
                error=ErrorInfo(
                    name=type(e).__name__,
                    message=str(e),
                    status_code=status_code if isinstance(status_code, int) else None
                )
            )

    def generate_random_interview(self) -> dict:
        role = random.choice(ROLES)
        level = random.choice(LEVELS)
        interview_type = random.choice(TYPES)
        techstack = random.choice(TECH_STACKS)

        questions = self.generate_questions(
            interview_type, role, level, ", ".join(techstack), settings.QUESTION_COUNT
        )

        # Spread seeded interviews over the last week
        created_at = datetime.now(timezone.utc) - timedelta(days=random.randint(0, 6))

        interview = {
            "role": role,
            "type": interview_type,
            "level": level,
            "techstack": list(techstack),
            "questions": questions,
            "userId": None,
            "finalized": True,
            "createdAt": created_at.isoformat(),
        }
        interview_id = InterviewDB.create_interview(interview)
        return {"id": interview_id, **interview}

    def get_random_interviews(self, count: int) -> List[dict]:
        """Unowned interviews, generating new ones when the pool is short"""
        existing = InterviewDB.get_random_interviews(limit=count * 3)

        if len(existing) >= count:
            random.shuffle(existing)
            return existing[:count]

        needed = count - len(existing)
        max_attempts = needed * settings.RANDOM_GENERATION_ATTEMPTS_PER_SLOT
        generated = []
        attempts = 0

        while len(generated) < needed and attempts < max_attempts:
            attempts += 1
            try:
                generated.append(self.generate_random_interview())
            except Exception as e:
                logger.warning(f"⚠️ [RANDOM] Generation attempt {attempts}/{max_attempts} failed: {e}")

        if len(generated) < needed:
            logger.warning(f"⚠️ [RANDOM] Backfill stopped after {attempts} attempts ({len(generated)}/{needed} generated)")

        combined = existing + generated
        if not combined:
            raise RuntimeError("Failed to generate random interviews")

        random.shuffle(combined)
        return combined[:count]

question_service = QuestionService()
