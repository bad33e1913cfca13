import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, List, NamedTuple, Optional
from interview_buddy.core.config import settings
from interview_buddy.models.interview import GenerateRequest
from interview_buddy.models.session import FlowTimings
from interview_buddy.services.speech_io import SpeechIO

logger = logging.getLogger(__name__)

Notify = Callable[[str, dict], Awaitable[None]]

async def _ignore(event: str, payload: dict) -> None:
    pass

class SetupStage(str, Enum):
    NOT_STARTED = "not_started"
    ASK_TYPE = "ask_type"
    ASK_ROLE = "ask_role"
    ASK_LEVEL = "ask_level"
    ASK_TECHSTACK = "ask_techstack"
    GENERATING = "generating"
    DONE = "done"

def extract_type(text: str) -> str:
    lower = text.lower()
    for keyword in ("technical", "behavioral", "mixed"):
        if keyword in lower:
            return keyword
    return lower

def extract_level(text: str) -> str:
    lower = text.lower()
    if "junior" in lower:
        return "junior"
    if "mid" in lower:
        return "mid-level"
    if "senior" in lower:
        return "senior"
    return lower

def verbatim(text: str) -> str:
    return text

class SetupStep(NamedTuple):
    slot: str
    stage: SetupStage
    prompt: str
    extract: Callable[[str], str]

SETUP_STEPS = [
    SetupStep(
        "type", SetupStage.ASK_TYPE,
        "What type of interview are you preparing for? You can say Technical, Behavioral, or Mixed.",
        extract_type,
    ),
    SetupStep(
        "role", SetupStage.ASK_ROLE,
        "Great! What role are you preparing for? For example, Backend Developer, Frontend Developer, or Full Stack Developer.",
        verbatim,
    ),
    SetupStep(
        "level", SetupStage.ASK_LEVEL,
        "Perfect! What level position is this? Junior, Mid-level, or Senior?",
        extract_level,
    ),
    SetupStep(
        "techstack", SetupStage.ASK_TECHSTACK,
        "Excellent! What tech stack or technologies should we focus on? For example, Node.js, React, Python, or AWS.",
        verbatim,
    ),
]

GENERATION_APOLOGY = "Sorry, there was an error generating questions. Please try again."
COMPLETION_MESSAGE = (
    "Those are all your interview questions. They have been saved to your account. "
    "Good luck with your interview preparation!"
)

class SetupFlow:
    """Collects interview preferences by voice, then generates and reads back questions.

    Each operation runs until the flow needs the user again and every await is
    followed by an epoch check, so work started before a stop() never touches
    the reset state.
    """

    def __init__(self, speech: SpeechIO, backend, user_id: str, user_name: str,
                 timings: Optional[FlowTimings] = None, notify: Optional[Notify] = None,
                 question_count: int = settings.QUESTION_COUNT):
        self.speech = speech
        self.state = speech.state
        self.backend = backend
        self.user_id = user_id
        self.user_name = user_name
        self.timings = timings or FlowTimings()
        self.notify = notify or _ignore
        self.question_count = question_count
        self.questions: List[str] = []
        self.done = False

    @property
    def stage(self) -> SetupStage:
        step = self.state.step
        if step < 0:
            return SetupStage.NOT_STARTED
        if step < len(SETUP_STEPS):
            return SETUP_STEPS[step].stage
        return SetupStage.DONE if self.done else SetupStage.GENERATING

    def _stale(self, epoch: int) -> bool:
        return epoch != self.state.epoch

    async def start(self) -> None:
        if self.state.step >= 0:
            logger.info("[SETUP] Already started")
            return

        if not self.speech.available:
            await self.notify("warning", {"code": "speech_unavailable"})
            return

        epoch = self.state.epoch
        self.state.step = 0
        logger.info(f"🎙️ [SETUP] Starting for user {self.user_id}")
        await self.notify("step", {"step": 0, "stage": self.stage.value})

        await self.speech.speak(
            f"Hello {self.user_name}! I'll help you prepare for your interview. "
            "Let me ask you a few questions to generate personalized interview questions for you."
        )
        if self._stale(epoch):
            return
        await asyncio.sleep(self.timings.greeting_pause)
        if self._stale(epoch):
            return

        if await self._ask(epoch):
            await self._converse(epoch)

    async def listen(self) -> None:
        """Manual answer button: re-listen after a recognition error"""
        if self.stage not in (SetupStage.ASK_TYPE, SetupStage.ASK_ROLE,
                              SetupStage.ASK_LEVEL, SetupStage.ASK_TECHSTACK):
            return
        if self.state.speaking or self.state.generating:
            return
        await self._converse(self.state.epoch)

    async def retry(self) -> None:
        """Re-run generation after a failed attempt"""
        if self.stage != SetupStage.GENERATING or self.state.generating:
            return
        await self._generate(self.state.epoch)

    def stop(self) -> None:
        self.speech.cancel()
        self.state.reset()
        self.questions = []
        self.done = False
        logger.info("🛑 [SETUP] Stopped and reset")

    async def _ask(self, epoch: int) -> bool:
        """Speak the current step's prompt and leave room before listening"""
        await self.speech.speak(SETUP_STEPS[self.state.step].prompt)
        if self._stale(epoch):
            return False
        # Keeps the recognizer from hearing the tail of our own voice
        await asyncio.sleep(self.timings.listen_delay)
        return not self._stale(epoch)

    async def _converse(self, epoch: int) -> None:
        while not self._stale(epoch) and 0 <= self.state.step < len(SETUP_STEPS):
            result = await self.speech.listen()
            if result is None or self._stale(epoch):
                return

            if not result.ok:
                logger.info(f"[SETUP] Recognition error on step {self.state.step}: {result.error}")
                await self.notify("recognition_error", {"step": self.state.step, "error": result.error})
                return

            if not await self.handle_user_response(result.text, epoch):
                return

    async def handle_user_response(self, text: str, epoch: int) -> bool:
        """Store one answer and move on; True when the next answer should be heard"""
        step = SETUP_STEPS[self.state.step]
        self.state.add_entry("user", text)
        self.state.slots = {**self.state.slots, step.slot: step.extract(text)}
        self.state.step += 1
        logger.info(f"[SETUP] {step.slot} = {self.state.slots[step.slot]!r}")
        await self.notify("step", {"step": self.state.step, "stage": self.stage.value, "slots": self.state.slots})

        await asyncio.sleep(self.timings.reply_pause)
        if self._stale(epoch):
            return False

        if self.state.step < len(SETUP_STEPS):
            return await self._ask(epoch)

        await self._generate(epoch)
        return False

    async def _request_questions(self) -> List[str]:
        slots = self.state.slots
        try:
            response = await self.backend.generate(GenerateRequest(
                type=slots.get("type"),
                role=slots.get("role"),
                level=slots.get("level"),
                techstack=slots.get("techstack"),
                amount=self.question_count,
                user_id=self.user_id,
            ))
        except Exception as e:
            logger.error(f"❌ [SETUP] Error generating questions: {e}")
            return []

        if not response.success:
            logger.error(f"❌ [SETUP] Generation failed: {response.error}")
            return []
        return list(response.questions)

    async def _generate(self, epoch: int) -> None:
        self.state.generating = True
        await self.notify("generating", {})

        # The request runs while the announcement plays
        request = asyncio.ensure_future(self._request_questions())
        await self.speech.speak(
            f"Great! I have all the information. Let me generate {self.question_count} "
            "custom interview questions for you. This will just take a moment."
        )
        questions = await request
        if self._stale(epoch):
            return

        self.state.generating = False

        if not questions:
            await self.notify("error", {"message": GENERATION_APOLOGY})
            await self.speech.speak(GENERATION_APOLOGY)
            return

        self.questions = questions
        self.done = True
        await self.notify("questions", {"questions": questions})
        await self._read_back(epoch)

    async def _read_back(self, epoch: int) -> None:
        slots = self.state.slots

        await asyncio.sleep(self.timings.question_gap)
        if self._stale(epoch):
            return
        await self.speech.speak(
            f"Perfect! I've generated {len(self.questions)} questions for your "
            f"{slots.get('level')} {slots.get('role')} position. Let me read them to you."
        )

        for index, question in enumerate(self.questions):
            if self._stale(epoch):
                return
            await self.speech.speak(f"Question {index + 1}: {question}")
            if self._stale(epoch):
                return
            last = index == len(self.questions) - 1
            await asyncio.sleep(self.timings.reply_pause if last else self.timings.question_gap)

        if self._stale(epoch):
            return
        await self.speech.speak(COMPLETION_MESSAGE)
        if self._stale(epoch):
            return

        logger.info(f"✅ [SETUP] Completed with {len(self.questions)} questions")
        await self.notify("complete", {"questions": self.questions})
