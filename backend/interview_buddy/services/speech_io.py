import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional
from interview_buddy.models.session import ListenResult, SessionState

logger = logging.getLogger(__name__)

class SpeechError(Exception):
    """Playback could not be started or failed mid-utterance"""

class SpeechOutput(ABC):
    available: bool = True

    @abstractmethod
    async def speak(self, text: str) -> None:
        """Return once playback of text has finished"""

    @abstractmethod
    def cancel(self) -> None:
        pass

class SpeechRecognizer(ABC):
    available: bool = True

    @abstractmethod
    async def recognize(self, turn: int) -> ListenResult:
        """Return the first utterance (or error) heard for this turn"""

    @abstractmethod
    def cancel(self) -> None:
        pass

class SpeechIO:
    """Speak/listen primitives shared by the setup and practice flows.

    Every utterance is written to the session transcript as an AI entry and
    utterances never overlap. At most one recognition turn is active at a time;
    a second listen request while one is pending is ignored.
    """

    def __init__(self, output: SpeechOutput, recognizer: SpeechRecognizer, state: SessionState):
        self.output = output
        self.recognizer = recognizer
        self.state = state
        self._speak_lock = asyncio.Lock()

    @property
    def available(self) -> bool:
        return self.output.available and self.recognizer.available

    async def speak(self, text: str) -> None:
        self.state.add_entry("ai", text)

        async with self._speak_lock:
            self.state.speaking = True
            try:
                await self.output.speak(text)
            except SpeechError as e:
                logger.warning(f"⚠️ [AUDIO] Playback failed, continuing: {e}")
            finally:
                self.state.speaking = False

    async def listen(self) -> Optional[ListenResult]:
        if self.state.listening:
            logger.info("[AUDIO] Already listening, skipping...")
            return None

        if not self.recognizer.available:
            return ListenResult(error="unsupported")

        self.state.listening = True
        self.state.turn += 1
        turn = self.state.turn
        epoch = self.state.epoch

        try:
            return await self.recognizer.recognize(turn)
        finally:
            # A stop already reset the flag; don't touch a newer turn's state
            if self.state.epoch == epoch and self.state.turn == turn:
                self.state.listening = False

    def cancel(self) -> None:
        self.output.cancel()
        self.recognizer.cancel()
