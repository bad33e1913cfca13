import asyncio
import logging
import math
from typing import List, Optional
from interview_buddy.models.interview import AnswerRecord, AttemptRequest, EvaluateRequest
from interview_buddy.models.session import FlowTimings
from interview_buddy.services.setup_flow import Notify, _ignore
from interview_buddy.services.speech_io import SpeechIO

logger = logging.getLogger(__name__)

SCORING_APOLOGY = "Sorry, I couldn't evaluate that answer. Please try answering again."

def aggregate_score(answers: List[AnswerRecord]) -> int:
    """Percentage of the maximum score, rounded half up"""
    total = sum(answer.score for answer in answers)
    return int(math.floor(total / (len(answers) * 10) * 100 + 0.5))

def feedback_band(score: int) -> str:
    if score >= 90:
        return "Excellent performance! You really know your stuff."
    if score >= 75:
        return "Great work! Keep it up."
    if score >= 60:
        return "Good effort. There is room for improvement."
    return "Keep practicing. You will get better!"

class PracticeFlow:
    """Asks pre-generated questions one by one and scores each spoken answer.

    Listening is always started by the user. Only one answer may be under
    evaluation at a time; anything submitted meanwhile is dropped.
    """

    def __init__(self, speech: SpeechIO, backend, interview: dict, user_id: str, user_name: str,
                 timings: Optional[FlowTimings] = None, notify: Optional[Notify] = None):
        questions = list(interview.get("questions") or [])
        if not questions:
            raise ValueError("Practice needs at least one question")

        self.speech = speech
        self.state = speech.state
        self.backend = backend
        self.interview_id = interview["id"]
        self.questions = questions
        self.role = interview.get("role") or ""
        self.level = interview.get("level") or ""
        self.user_id = user_id
        self.user_name = user_name
        self.timings = timings or FlowTimings()
        self.notify = notify or _ignore
        self.answers: List[AnswerRecord] = []
        self.complete = False
        self.total_score: Optional[int] = None

    @property
    def has_started(self) -> bool:
        return self.state.step >= 0

    @property
    def current_question(self) -> int:
        return max(self.state.step, 0)

    def _stale(self, epoch: int) -> bool:
        return epoch != self.state.epoch

    async def start(self) -> None:
        if self.has_started:
            return

        if not self.speech.available:
            await self.notify("warning", {"code": "speech_unavailable"})
            return

        epoch = self.state.epoch
        self.state.step = 0
        logger.info(f"🎙️ [PRACTICE] Starting interview {self.interview_id} for user {self.user_id}")

        await self.speech.speak(
            f"Welcome {self.user_name}! Let's begin your {self.role} interview. "
            f"I'll ask you {len(self.questions)} questions. Click the microphone button when ready to answer."
        )
        if self._stale(epoch):
            return
        await asyncio.sleep(self.timings.reply_pause)
        if self._stale(epoch):
            return
        await self._ask(0)

    async def _ask(self, index: int) -> None:
        await self.notify("question", {"index": index, "question": self.questions[index]})
        await self.speech.speak(f"Question {index + 1}: {self.questions[index]}")

    async def listen(self) -> None:
        if not self.has_started or self.complete or self.state.evaluating:
            return

        epoch = self.state.epoch
        result = await self.speech.listen()
        if result is None or self._stale(epoch):
            return

        if not result.ok:
            logger.info(f"[PRACTICE] Recognition error: {result.error}")
            await self.notify("recognition_error", {"index": self.current_question, "error": result.error})
            return

        await self.submit_answer(result.text)

    async def submit_answer(self, answer: str) -> bool:
        """Score the answer to the current question; False if it was not accepted"""
        if self.state.evaluating:
            logger.info("[PRACTICE] Evaluation in flight, discarding answer")
            return False
        if not self.has_started or self.complete:
            return False

        epoch = self.state.epoch
        self.state.evaluating = True
        index = self.state.step
        question = self.questions[index]
        self.state.add_entry("user", answer)
        await self.notify("evaluating", {"index": index})

        try:
            response = await self.backend.evaluate(EvaluateRequest(
                question=question, answer=answer, role=self.role, level=self.level
            ))
        except Exception as e:
            logger.error(f"❌ [PRACTICE] Error evaluating answer: {e}")
            response = None

        if self._stale(epoch):
            return False

        if response is None or not response.success:
            self.state.evaluating = False
            await self.notify("error", {"message": SCORING_APOLOGY})
            await self.speech.speak(SCORING_APOLOGY)
            return False

        record = AnswerRecord(question=question, answer=answer, score=response.score, feedback=response.feedback)
        self.answers.append(record)
        await self.notify("evaluated", {"index": index, "answer": record.model_dump(by_alias=True)})

        next_index = index + 1
        if next_index < len(self.questions):
            self.state.step = next_index
            self.state.evaluating = False

            await asyncio.sleep(self.timings.reply_pause)
            if not self._stale(epoch):
                await self._ask(next_index)
        else:
            await self._finish(epoch)
        return True

    async def _finish(self, epoch: int) -> None:
        self.complete = True
        self.state.evaluating = False
        percentage = aggregate_score(self.answers)
        self.total_score = percentage
        logger.info(f"🏁 [PRACTICE] Interview {self.interview_id} complete: {percentage}%")
        await self.notify("complete", {"totalScore": percentage})

        await self.speech.speak(
            f"Interview complete! You scored {percentage} out of 100. {feedback_band(percentage)}"
        )
        if self._stale(epoch):
            return

        await self._save_attempt(percentage)

        await asyncio.sleep(self.timings.navigate_delay)
        if self._stale(epoch):
            return
        await self.notify("navigate", {"url": f"/interview/{self.interview_id}/feedback?score={percentage}"})

    async def _save_attempt(self, percentage: int) -> None:
        """Best effort; a failed save never blocks the results page"""
        try:
            response = await self.backend.save_attempt(AttemptRequest(
                interview_id=self.interview_id,
                user_id=self.user_id,
                answers=self.answers,
                total_score=percentage,
            ))
            if not response.success:
                logger.error(f"❌ [PRACTICE] Error saving attempt: {response.error}")
        except Exception as e:
            logger.error(f"❌ [PRACTICE] Error saving attempt: {e}")

    def stop(self) -> None:
        self.speech.cancel()
        self.state.reset()
        self.answers = []
        self.complete = False
        self.total_score = None
        logger.info("🛑 [PRACTICE] Stopped and reset")
