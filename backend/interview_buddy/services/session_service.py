import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Optional, Set
from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect
from interview_buddy.core.config import settings
from interview_buddy.models.session import FlowTimings, SessionState, SessionStats
from interview_buddy.services.browser_speech import BrowserSpeechBridge
from interview_buddy.services.flow_backend import InterviewBackend
from interview_buddy.services.practice_flow import PracticeFlow
from interview_buddy.services.setup_flow import SetupFlow
from interview_buddy.services.speech_io import SpeechIO
from interview_buddy.services.tts_service import TTSService, tts_service

logger = logging.getLogger(__name__)

WARNINGS = {
    "speech_unavailable": "Speech recognition is not supported in this browser. Please use Chrome or Edge.",
}

class VoiceSessionService:
    """Runs one setup or practice flow against a browser connected over a websocket"""

    def __init__(self, user: dict, websocket: WebSocket, flow: str, interview: Optional[dict] = None,
                 backend: Optional[InterviewBackend] = None, tts: Optional[TTSService] = tts_service,
                 timings: Optional[FlowTimings] = None):
        self.user_id = user["id"]
        self.websocket = websocket
        self.session_id = str(uuid.uuid4())
        self.cancel_event = asyncio.Event()
        self._operations: Set[asyncio.Task] = set()

        self.bridge = BrowserSpeechBridge(self._send_json, tts=tts)
        self.state = SessionState()
        self.speech = SpeechIO(self.bridge.output, self.bridge.recognizer, self.state)
        backend = backend or InterviewBackend()

        if flow == "setup":
            self.flow = SetupFlow(
                self.speech, backend, self.user_id, user.get("name") or "there",
                timings=timings, notify=self._notify
            )
        elif flow == "practice":
            self.flow = PracticeFlow(
                self.speech, backend, interview or {}, self.user_id, user.get("name") or "there",
                timings=timings, notify=self._notify
            )
        else:
            raise ValueError(f"Unknown flow: {flow}")

        self.stats = SessionStats(
            session_id=self.session_id,
            user_id=self.user_id,
            flow=flow,
            start_time=datetime.now(timezone.utc)
        )

    async def _send_json(self, message: dict) -> None:
        await self.websocket.send_json(message)

    async def _notify(self, event: str, payload: dict) -> None:
        message = {"type": event, **payload}
        if event == "warning":
            message.setdefault("text", WARNINGS.get(payload.get("code"), ""))
        elif event == "complete":
            self.stats.status = "completed"
        await self._send_json(message)

    async def run(self) -> None:
        logger.info(f"🎭 [SESSION] Starting {self.stats.flow} session for user {self.user_id}")

        try:
            await self._send_json({
                "type": "system",
                "text": "Session ready",
                "sessionId": self.session_id,
                "flow": self.stats.flow
            })

            message_task = asyncio.create_task(self._listen_for_messages())
            heartbeat_task = asyncio.create_task(self._monitor_disconnect())

            done, pending = await asyncio.wait(
                [message_task, heartbeat_task],
                return_when=asyncio.FIRST_COMPLETED
            )

            for task in pending:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass

        except Exception as e:
            logger.error(f"❌ [SESSION] Session error: {e}")
        finally:
            await self._cleanup_session()

    async def _listen_for_messages(self) -> None:
        logger.info("👂 [MESSAGES] Starting message listener")

        try:
            while not self.cancel_event.is_set():
                message = await self.websocket.receive_json()
                msg_type = message.get("type")
                logger.info(f"📨 [MESSAGE] Received: {msg_type}")

                if self.bridge.handle_client_message(message):
                    if msg_type == "capabilities" and not self.bridge.available:
                        await self._notify("warning", {"code": "speech_unavailable"})
                    continue

                await self.handle_command(msg_type)

        except WebSocketDisconnect:
            logger.info("🔌 [MESSAGES] WebSocket disconnected")
            self.cancel_event.set()
        except Exception as e:
            logger.error(f"❌ [MESSAGES] Message listener error: {e}")
            self.cancel_event.set()

    async def handle_command(self, command: Optional[str]) -> None:
        if command == "end_session":
            logger.info("🛑 [SESSION] End session command received")
            self.flow.stop()
            self.cancel_event.set()
        elif command == "stop":
            self.flow.stop()
            await self._notify("stopped", {})
        elif command == "start":
            self._spawn("start", self.flow.start())
        elif command == "listen":
            self._spawn("listen", self.flow.listen())
        elif command == "retry":
            # Practice has no generation step; a retry there is another answer
            operation = getattr(self.flow, "retry", self.flow.listen)
            self._spawn("retry", operation())
        else:
            logger.warning(f"⚠️ [MESSAGE] Unknown command: {command}")

    def _spawn(self, name: str, operation) -> None:
        """Run a flow operation without blocking the message listener"""
        task = asyncio.create_task(self._run_operation(name, operation))
        self._operations.add(task)
        task.add_done_callback(self._operations.discard)

    async def _run_operation(self, name: str, operation) -> None:
        try:
            await operation
        except Exception as e:
            logger.error(f"❌ [SESSION] {name} failed: {e}")
            try:
                await self._notify("error", {"message": f"Something went wrong ({name})."})
            except Exception:
                logger.info(f"🔌 [SESSION] Could not report {name} failure, client gone")

    async def _monitor_disconnect(self) -> None:
        logger.info("🔍 [MONITOR] Starting disconnect monitoring")

        while not self.cancel_event.is_set():
            try:
                await self._send_json({
                    "type": "heartbeat",
                    "timestamp": time.time()
                })
                await asyncio.sleep(settings.HEARTBEAT_INTERVAL)

            except Exception as e:
                logger.info(f"🔌 [MONITOR] WebSocket disconnected: {e}")
                self.cancel_event.set()
                break

    async def _cleanup_session(self) -> None:
        logger.info(f"🧹 [CLEANUP] Cleaning up session {self.session_id}")

        self.stats.turns = self.state.turn
        self.flow.stop()

        for task in list(self._operations):
            task.cancel()
        if self._operations:
            await asyncio.gather(*self._operations, return_exceptions=True)

        if self.stats.end_time is None:
            self.stats.end_time = datetime.now(timezone.utc)
            if self.stats.status == "active":
                self.stats.status = "terminated"

        logger.info(f"✅ [CLEANUP] Session {self.session_id} ended ({self.stats.status}, {self.stats.turns} turns)")

# Global active sessions tracking for deduplication
active_sessions: Set[str] = set()
