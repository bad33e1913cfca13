import asyncio
import base64
import logging
import uuid
from typing import Awaitable, Callable, Dict, Optional, Set
from interview_buddy.core.config import settings
from interview_buddy.models.session import ListenResult
from interview_buddy.services.speech_io import SpeechError, SpeechOutput, SpeechRecognizer
from interview_buddy.services.tts_service import TTSService

logger = logging.getLogger(__name__)

SendJson = Callable[[dict], Awaitable[None]]

class BrowserSpeechOutput(SpeechOutput):
    """Sends utterances to the browser and waits for its playback signal"""

    def __init__(self, bridge: "BrowserSpeechBridge", tts: Optional[TTSService], timeout: float):
        self.bridge = bridge
        self.tts = tts
        self.timeout = timeout
        self.synthesis_supported = True
        self.pending: Dict[str, asyncio.Future] = {}

    @property
    def server_audio(self) -> bool:
        return self.tts is not None and self.tts.enabled

    @property
    def available(self) -> bool:
        return self.synthesis_supported or self.server_audio

    async def speak(self, text: str) -> None:
        message_id = str(uuid.uuid4())
        logger.info(f"🔊 [AUDIO] Speaking: {text[:50]}...")

        audio_data = await self.tts.generate_speech(text) if self.server_audio else None
        payload = {
            "type": "speech",
            "text": text,
            "messageId": message_id,
            "hasAudio": bool(audio_data),
        }
        if audio_data:
            payload["audioData"] = base64.b64encode(audio_data).decode('utf-8')
            payload["format"] = self.tts.config.audio_format

        if not audio_data and not self.synthesis_supported:
            # Nothing can play it; show the text and move on
            await self.bridge.send(payload)
            return

        future = asyncio.get_running_loop().create_future()
        self.pending[message_id] = future
        try:
            try:
                await self.bridge.send(payload)
            except Exception as e:
                raise SpeechError(f"could not deliver utterance: {e}") from e

            error = await asyncio.wait_for(future, timeout=self.timeout)
            if error and error != "aborted":
                raise SpeechError(error)
        except asyncio.TimeoutError:
            logger.warning(f"⏰ [AUDIO] Playback timeout for {message_id}")
        finally:
            self.pending.pop(message_id, None)

    def playback_finished(self, message_id: str, error: Optional[str] = None) -> None:
        future = self.pending.get(message_id)
        if future is not None and not future.done():
            future.set_result(error)

    def cancel(self) -> None:
        for future in self.pending.values():
            if not future.done():
                future.set_result("aborted")
        self.bridge.send_later({"type": "cancel_speech"})

class BrowserRecognizer(SpeechRecognizer):
    """Asks the browser for one utterance per turn.

    Results are matched to the turn that requested them; anything reported for
    another turn arrived too late and is dropped.
    """

    def __init__(self, bridge: "BrowserSpeechBridge", timeout: float):
        self.bridge = bridge
        self.timeout = timeout
        self.available = True
        self._turn: Optional[int] = None
        self._future: Optional[asyncio.Future] = None

    async def recognize(self, turn: int) -> ListenResult:
        future = asyncio.get_running_loop().create_future()
        self._turn, self._future = turn, future

        try:
            await self.bridge.send({"type": "start_listening", "turn": turn})
        except Exception as e:
            logger.error(f"❌ [STT] Could not start listening: {e}")
            return ListenResult(error="transport")

        try:
            return await asyncio.wait_for(future, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.info(f"[STT] No speech detected for turn {turn}")
            return ListenResult(error="no-speech")

    def resolve(self, turn: int, text: Optional[str] = None, error: Optional[str] = None) -> bool:
        if self._future is None or self._future.done() or turn != self._turn:
            logger.info(f"[STT] Dropping stale result for turn {turn}")
            return False

        self._future.set_result(ListenResult(text=text, error=error))
        return True

    def cancel(self) -> None:
        if self._future is not None and not self._future.done():
            self._future.set_result(ListenResult(error="aborted"))
            self.bridge.send_later({"type": "stop_listening", "turn": self._turn})

class BrowserSpeechBridge:
    """Speech devices backed by the browser on the other end of a websocket"""

    def __init__(self, send_json: SendJson, tts: Optional[TTSService] = None,
                 playback_timeout: float = settings.PLAYBACK_TIMEOUT,
                 listen_timeout: float = settings.LISTEN_TIMEOUT):
        self._send_json = send_json
        self._background: Set[asyncio.Task] = set()
        self.output = BrowserSpeechOutput(self, tts, playback_timeout)
        self.recognizer = BrowserRecognizer(self, listen_timeout)

    @property
    def available(self) -> bool:
        return self.output.available and self.recognizer.available

    async def send(self, message: dict) -> None:
        await self._send_json(message)

    def send_later(self, message: dict) -> None:
        """Fire-and-forget send from synchronous code"""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        async def _send():
            try:
                await self.send(message)
            except Exception as e:
                logger.warning(f"⚠️ [AUDIO] Failed to send {message.get('type')}: {e}")

        task = loop.create_task(_send())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def update_capabilities(self, recognition: bool, synthesis: bool) -> None:
        self.recognizer.available = recognition
        self.output.synthesis_supported = synthesis
        logger.info(f"[AUDIO] Client capabilities - recognition: {recognition}, synthesis: {synthesis}")

    def handle_client_message(self, message: dict) -> bool:
        """Route speech events from the browser; False if the message is not one"""
        msg_type = message.get("type")

        if msg_type == "capabilities":
            self.update_capabilities(
                bool(message.get("speechRecognition", True)),
                bool(message.get("speechSynthesis", True))
            )
        elif msg_type in ("audio_playback_completed", "tts_completed"):
            self.output.playback_finished(message.get("messageId"))
        elif msg_type in ("audio_playback_error", "tts_error"):
            logger.error(f"❌ [AUDIO] Playback error for {message.get('messageId')}: {message.get('error')}")
            self.output.playback_finished(message.get("messageId"), message.get("error") or "playback-error")
        elif msg_type == "transcript":
            text = message.get("text") or ""
            if text.strip():
                self.recognizer.resolve(message.get("turn"), text=text)
            else:
                self.recognizer.resolve(message.get("turn"), error="no-speech")
        elif msg_type == "recognition_error":
            self.recognizer.resolve(message.get("turn"), error=message.get("error") or "recognition-error")
        else:
            return False
        return True
