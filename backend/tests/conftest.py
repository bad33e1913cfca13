import os

# Settings validate at import time
os.environ.setdefault("JWT_SECRET_KEY", "unit-test-secret-key-0123456789abcdef")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("GEMINI_API_KEY", "AIzaUnitTestKey0123456789")
os.environ["RIME_API_KEY"] = ""

import asyncio
from typing import List, Optional

import mongomock
import pytest

from interview_buddy.core import database
from interview_buddy.models.interview import (
    AttemptResponse, EvaluateResponse, GenerateResponse, ErrorInfo
)
from interview_buddy.models.session import FlowTimings, ListenResult, SessionState
from interview_buddy.services.llm_client import BaseLLMClient
from interview_buddy.services.speech_io import SpeechIO, SpeechOutput, SpeechRecognizer

ZERO_TIMINGS = FlowTimings(listen_delay=0, reply_pause=0, greeting_pause=0, question_gap=0, navigate_delay=0)

@pytest.fixture
def mongo_db(monkeypatch):
    client = mongomock.MongoClient()
    db = client["interview_buddy_test"]
    monkeypatch.setattr(database, "client", client)
    monkeypatch.setattr(database, "db", db)
    return db

class FakeLLM(BaseLLMClient):
    """Replays canned completions; the last one repeats. Exceptions are raised."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts: List[str] = []

    def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response

class FakeSpeechOutput(SpeechOutput):
    def __init__(self):
        self.spoken: List[str] = []
        self.cancelled = 0

    async def speak(self, text: str) -> None:
        self.spoken.append(text)
        await asyncio.sleep(0)

    def cancel(self) -> None:
        self.cancelled += 1

class ScriptedRecognizer(SpeechRecognizer):
    """Hands out queued utterances; with nothing queued it waits until cancelled"""

    def __init__(self, script=None):
        self.script = list(script or [])
        self.turns: List[int] = []
        self._waiting: Optional[asyncio.Future] = None

    def say(self, *items) -> None:
        self.script.extend(items)

    async def recognize(self, turn: int) -> ListenResult:
        self.turns.append(turn)
        if self.script:
            item = self.script.pop(0)
            await asyncio.sleep(0)
            return item if isinstance(item, ListenResult) else ListenResult(text=item)

        self._waiting = asyncio.get_running_loop().create_future()
        return await self._waiting

    def cancel(self) -> None:
        if self._waiting is not None and not self._waiting.done():
            self._waiting.set_result(ListenResult(error="aborted"))

class FakeBackend:
    def __init__(self, questions=None, scores=None):
        self.questions = questions if questions is not None else [f"Sample question {i}" for i in range(1, 11)]
        self.scores = list(scores or [])
        self.generate_requests = []
        self.evaluate_requests = []
        self.attempts = []
        self.generate_error: Optional[Exception] = None
        self.generate_success = True
        self.evaluate_success = True
        self.save_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    async def generate(self, request):
        self.generate_requests.append(request)
        await asyncio.sleep(0)
        if self.generate_error:
            raise self.generate_error
        if not self.generate_success:
            return GenerateResponse(success=False, error=ErrorInfo(name="ValueError", message="bad output"))
        return GenerateResponse(success=True, questions=self.questions)

    async def evaluate(self, request):
        self.evaluate_requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)
        if not self.evaluate_success:
            return EvaluateResponse(success=False, error="model unavailable")
        score = self.scores.pop(0) if self.scores else 5
        return EvaluateResponse(success=True, score=score, feedback=f"Scored {score}")

    async def save_attempt(self, request):
        if self.save_error:
            raise self.save_error
        self.attempts.append(request)
        return AttemptResponse(success=True, attempt_id="attempt-1")

class EventRecorder:
    def __init__(self):
        self.events = []

    async def __call__(self, event: str, payload: dict) -> None:
        self.events.append((event, payload))

    def of(self, event: str) -> list:
        return [payload for name, payload in self.events if name == event]

@pytest.fixture
def output():
    return FakeSpeechOutput()

@pytest.fixture
def recognizer():
    return ScriptedRecognizer()

@pytest.fixture
def state():
    return SessionState()

@pytest.fixture
def speech(output, recognizer, state):
    return SpeechIO(output, recognizer, state)

@pytest.fixture
def backend():
    return FakeBackend()

@pytest.fixture
def events():
    return EventRecorder()

async def wait_until(predicate, attempts: int = 200) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition never became true")
