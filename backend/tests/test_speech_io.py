"""
Speech adapter primitives and the websocket bridge to the browser's speech APIs.
"""

import asyncio
import pytest

from conftest import wait_until
from interview_buddy.models.session import ListenResult, SessionState
from interview_buddy.services.browser_speech import BrowserSpeechBridge
from interview_buddy.services.speech_io import SpeechError, SpeechIO, SpeechOutput

class BrokenOutput(SpeechOutput):
    async def speak(self, text: str) -> None:
        raise SpeechError("synthesis-failed")

    def cancel(self) -> None:
        pass

class TestSpeechIO:

    @pytest.mark.asyncio
    async def test_speak_records_ai_entry(self, speech, output, state):
        await speech.speak("Hello there")

        assert output.spoken == ["Hello there"]
        assert state.transcript[-1].role == "ai"
        assert state.transcript[-1].text == "Hello there"
        assert state.speaking is False

    @pytest.mark.asyncio
    async def test_playback_error_counts_as_finished(self, recognizer, state):
        speech = SpeechIO(BrokenOutput(), recognizer, state)

        await speech.speak("Hello there")

        assert state.speaking is False
        assert len(state.transcript) == 1

    @pytest.mark.asyncio
    async def test_listen_while_listening_is_noop(self, speech, recognizer, state):
        state.listening = True

        assert await speech.listen() is None
        assert recognizer.turns == []

    @pytest.mark.asyncio
    async def test_listen_increments_turn(self, speech, recognizer, state):
        recognizer.say("first", "second")

        first = await speech.listen()
        second = await speech.listen()

        assert (first.text, second.text) == ("first", "second")
        assert recognizer.turns == [1, 2]
        assert state.listening is False

    @pytest.mark.asyncio
    async def test_unsupported_recognizer_returns_immediately(self, speech, recognizer):
        recognizer.available = False

        result = await speech.listen()

        assert result.error == "unsupported"
        assert recognizer.turns == []

    @pytest.mark.asyncio
    async def test_cancel_aborts_pending_listen(self, speech, output, state):
        pending = asyncio.create_task(speech.listen())
        await wait_until(lambda: state.listening)

        speech.cancel()
        result = await pending

        assert result.error == "aborted"
        assert output.cancelled == 1

    def test_listen_result_ok(self):
        assert ListenResult(text="yes").ok
        assert not ListenResult(text="  ").ok
        assert not ListenResult(error="no-speech").ok

class ClientStub:
    def __init__(self):
        self.sent = []

    async def __call__(self, message: dict) -> None:
        self.sent.append(message)

    def of(self, msg_type: str) -> list:
        return [message for message in self.sent if message["type"] == msg_type]

@pytest.fixture
def client():
    return ClientStub()

@pytest.fixture
def bridge(client):
    return BrowserSpeechBridge(client, tts=None, playback_timeout=1, listen_timeout=1)

class TestBrowserBridge:

    @pytest.mark.asyncio
    async def test_speech_waits_for_playback_signal(self, bridge, client):
        pending = asyncio.create_task(bridge.output.speak("Question 1: What is REST?"))
        await wait_until(lambda: client.of("speech"))

        message = client.of("speech")[0]
        assert message["text"] == "Question 1: What is REST?"
        assert message["hasAudio"] is False
        assert not pending.done()

        assert bridge.handle_client_message({"type": "audio_playback_completed", "messageId": message["messageId"]})
        await pending

    @pytest.mark.asyncio
    async def test_playback_error_raises_speech_error(self, bridge, client):
        pending = asyncio.create_task(bridge.output.speak("Hello"))
        await wait_until(lambda: client.of("speech"))

        bridge.handle_client_message({
            "type": "audio_playback_error",
            "messageId": client.of("speech")[0]["messageId"],
            "error": "not-allowed",
        })

        with pytest.raises(SpeechError):
            await pending

    @pytest.mark.asyncio
    async def test_playback_timeout_completes(self, client):
        bridge = BrowserSpeechBridge(client, tts=None, playback_timeout=0.01)

        await bridge.output.speak("Nobody is listening")

        assert bridge.output.pending == {}

    @pytest.mark.asyncio
    async def test_stale_transcript_is_dropped(self, bridge, client):
        pending = asyncio.create_task(bridge.recognizer.recognize(2))
        await wait_until(lambda: client.of("start_listening"))
        assert client.of("start_listening")[0]["turn"] == 2

        bridge.handle_client_message({"type": "transcript", "turn": 1, "text": "old words"})
        assert not pending.done()

        bridge.handle_client_message({"type": "transcript", "turn": 2, "text": "fresh words"})
        result = await pending

        assert result.text == "fresh words"

    @pytest.mark.asyncio
    async def test_recognition_error_is_returned(self, bridge, client):
        pending = asyncio.create_task(bridge.recognizer.recognize(1))
        await wait_until(lambda: client.of("start_listening"))

        bridge.handle_client_message({"type": "recognition_error", "turn": 1, "error": "not-allowed"})

        assert (await pending).error == "not-allowed"

    @pytest.mark.asyncio
    async def test_blank_transcript_is_no_speech(self, bridge, client):
        pending = asyncio.create_task(bridge.recognizer.recognize(1))
        await wait_until(lambda: client.of("start_listening"))

        bridge.handle_client_message({"type": "transcript", "turn": 1, "text": "   "})
        result = await pending

        assert result.error == "no-speech"
        assert result.ok is False

    @pytest.mark.asyncio
    async def test_silence_times_out_as_no_speech(self, client):
        bridge = BrowserSpeechBridge(client, tts=None, listen_timeout=0.01)

        result = await bridge.recognizer.recognize(1)

        assert result.error == "no-speech"

    @pytest.mark.asyncio
    async def test_cancel_stops_browser_devices(self, bridge, client):
        speaking = asyncio.create_task(bridge.output.speak("Long answer"))
        listening = asyncio.create_task(bridge.recognizer.recognize(1))
        await wait_until(lambda: client.of("speech") and client.of("start_listening"))

        bridge.output.cancel()
        bridge.recognizer.cancel()

        await speaking
        assert (await listening).error == "aborted"
        await wait_until(lambda: client.of("cancel_speech") and client.of("stop_listening"))

    def test_capabilities_update_availability(self, bridge):
        assert bridge.available

        bridge.handle_client_message({"type": "capabilities", "speechRecognition": False, "speechSynthesis": True})

        assert not bridge.available

    def test_unknown_message_is_not_handled(self, bridge):
        assert bridge.handle_client_message({"type": "start"}) is False
