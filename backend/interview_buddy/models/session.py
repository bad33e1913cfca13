from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict, Literal
from datetime import datetime
from interview_buddy.core.config import settings

class TranscriptEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["ai", "user"]
    text: str

class ListenResult(BaseModel):
    """Outcome of one recognition turn: either text or an error code"""
    text: Optional[str] = None
    error: Optional[str] = None  # "no-speech", "not-allowed", "aborted", "unsupported", ...

    @property
    def ok(self) -> bool:
        return self.error is None and bool(self.text and self.text.strip())

class SessionState(BaseModel):
    step: int = -1  # -1 = not started
    slots: Dict[str, str] = {}
    transcript: List[TranscriptEntry] = []
    listening: bool = False
    speaking: bool = False
    evaluating: bool = False
    generating: bool = False
    # Bumped on every stop so continuations from before it can be recognized as stale
    epoch: int = 0
    # One per listen; recognition results are resolved against it
    turn: int = 0

    def add_entry(self, role: str, text: str) -> None:
        self.transcript = [*self.transcript, TranscriptEntry(role=role, text=text)]

    def reset(self) -> None:
        self.step = -1
        self.slots = {}
        self.transcript = []
        self.listening = False
        self.speaking = False
        self.evaluating = False
        self.generating = False
        self.epoch += 1

class FlowTimings(BaseModel):
    listen_delay: float = settings.LISTEN_DELAY
    reply_pause: float = settings.REPLY_PAUSE
    greeting_pause: float = settings.GREETING_PAUSE
    question_gap: float = settings.QUESTION_GAP
    navigate_delay: float = settings.NAVIGATE_DELAY

class SessionStats(BaseModel):
    session_id: str
    user_id: str
    flow: str
    start_time: datetime
    end_time: Optional[datetime] = None
    turns: int = 0
    status: str = "active"  # "active", "completed", "terminated", "error"
