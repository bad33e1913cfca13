"""
Optional server-side speech: token framing, the disabled path and audio
attached to utterances sent to the browser.
"""

import asyncio
import base64
import pytest
import websockets.exceptions
from fastapi.testclient import TestClient

from conftest import wait_until
from interview_buddy.main import app
from interview_buddy.models.tts import TTSConfig
from interview_buddy.services.browser_speech import BrowserSpeechBridge
from interview_buddy.services.tts_service import RimeTTSClient, TTSService

class CannedTTS(TTSService):
    def __init__(self, audio: bytes):
        super().__init__()
        self.audio = audio
        self.texts = []

    @property
    def enabled(self) -> bool:
        return True

    async def generate_speech(self, text: str):
        self.texts.append(text)
        return self.audio

class DroppingSocket:
    """Hands out audio chunks, then fails like a connection reset"""

    def __init__(self, *chunks):
        self.chunks = list(chunks)

    async def recv(self):
        if self.chunks:
            return self.chunks.pop(0)
        raise websockets.exceptions.ConnectionClosedError(None, None)

class TestRimeClient:

    def test_words_are_spaced_and_terminated(self):
        assert RimeTTSClient.text_to_tokens("Question 1:  What is REST?") == [
            "Question", " ", "1:", " ", "What", " ", "is", " ", "REST?", "<EOS>"
        ]

    def test_empty_text_is_just_eos(self):
        assert RimeTTSClient.text_to_tokens("   ") == ["<EOS>"]

    @pytest.mark.asyncio
    async def test_abnormal_close_keeps_received_audio(self):
        client = RimeTTSClient(TTSConfig())

        audio = await client._receive_audio(DroppingSocket(b"ID3", b"-frames"), max_wait=1)

        assert audio == b"ID3-frames"

class TestTTSService:

    @pytest.mark.asyncio
    async def test_disabled_without_api_key(self):
        service = TTSService()

        assert service.enabled is False
        assert await service.generate_speech("Hello") is None

    def test_route_reports_disabled(self):
        response = TestClient(app).post("/tts/generate", json={"text": "Hello"})

        assert response.json() == {
            "success": False, "audio_data": None, "format": None, "error": "Server-side TTS is not configured"
        }

    def test_route_rejects_empty_text(self):
        response = TestClient(app).post("/tts/generate", json={"text": "  "})

        assert response.json()["error"] == "Empty text provided"

class TestBridgeAudio:

    @pytest.mark.asyncio
    async def test_utterance_carries_server_audio(self):
        sent = []

        async def send(message):
            sent.append(message)

        tts = CannedTTS(b"ID3fake-mp3")
        bridge = BrowserSpeechBridge(send, tts=tts, playback_timeout=1)
        pending = asyncio.create_task(bridge.output.speak("Welcome Ada!"))
        await wait_until(lambda: sent)

        message = sent[0]
        assert message["hasAudio"] is True
        assert base64.b64decode(message["audioData"]) == b"ID3fake-mp3"
        assert message["format"] == "mp3"

        bridge.handle_client_message({"type": "audio_playback_completed", "messageId": message["messageId"]})
        await pending
        assert tts.texts == ["Welcome Ada!"]

    @pytest.mark.asyncio
    async def test_server_audio_keeps_output_available_without_browser_voice(self):
        async def send(message):
            pass

        bridge = BrowserSpeechBridge(send, tts=CannedTTS(b"audio"))
        bridge.update_capabilities(recognition=True, synthesis=False)

        assert bridge.available is True
