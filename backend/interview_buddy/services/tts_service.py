import asyncio
import websockets
import websockets.exceptions
import logging
from typing import Optional, List
from interview_buddy.core.config import settings
from interview_buddy.models.tts import TTSConfig

logger = logging.getLogger(__name__)

class RimeTTSClient:
    """Streams interviewer utterances through the Rime websocket API"""

    def __init__(self, config: TTSConfig):
        self.config = config
        self.url = (
            f"wss://users.rime.ai/ws?speaker={config.speaker}"
            f"&modelId={config.model_id}&audioFormat={config.audio_format}"
        )
        self.auth_headers = {
            "Authorization": f"Bearer {settings.RIME_API_KEY}"
        }

    @staticmethod
    def text_to_tokens(text: str) -> List[str]:
        """Word tokens separated by spaces, closed with <EOS>"""
        words = text.split()
        tokens = []
        for i, word in enumerate(words):
            tokens.append(word)
            if i < len(words) - 1:
                tokens.append(" ")
        tokens.append("<EOS>")
        return tokens

    async def synthesize(self, text: str, max_wait: float = 30.0) -> bytes:
        tokens = self.text_to_tokens(text)

        async with websockets.connect(self.url, additional_headers=self.auth_headers) as websocket:
            for token in tokens:
                await websocket.send(token)
                await asyncio.sleep(0.01)

            return await self._receive_audio(websocket, max_wait)

    async def _receive_audio(self, websocket, max_wait: float) -> bytes:
        audio_data = b''
        chunk_count = 0
        start_time = asyncio.get_running_loop().time()

        while True:
            try:
                chunk = await asyncio.wait_for(websocket.recv(), timeout=5.0)
                if isinstance(chunk, bytes):
                    audio_data += chunk
                    chunk_count += 1
            except asyncio.TimeoutError:
                elapsed = asyncio.get_running_loop().time() - start_time
                if chunk_count > 0 or elapsed > max_wait:
                    break
            except websockets.exceptions.ConnectionClosedOK:
                break
            except websockets.exceptions.ConnectionClosedError:
                logger.warning(f"⚠️ [TTS] Connection closed abnormally after {chunk_count} chunks")
                break

        logger.info(f"[TTS] Received {chunk_count} chunks, {len(audio_data)} bytes")
        return audio_data

class TTSService:
    """Optional server-side voice for the interviewer"""

    def __init__(self, config: Optional[TTSConfig] = None):
        self.config = config or TTSConfig()

    @property
    def enabled(self) -> bool:
        return bool(settings.RIME_API_KEY)

    async def generate_speech(self, text: str) -> Optional[bytes]:
        """Audio bytes for text, or None so the client speaks it locally"""
        if not text.strip() or not self.enabled:
            return None

        try:
            audio_data = await RimeTTSClient(self.config).synthesize(text)
            return audio_data or None
        except Exception as e:
            logger.error(f"❌ [TTS] Speech generation failed: {e}")
            return None

tts_service = TTSService()
