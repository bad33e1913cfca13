from fastapi import APIRouter
import base64
import logging
from interview_buddy.services.tts_service import tts_service
from interview_buddy.models.tts import SpeechRequest, SpeechResponse

router = APIRouter()
logger = logging.getLogger(__name__)

@router.post("/generate", response_model=SpeechResponse)
async def generate_speech(request: SpeechRequest):
    """Synthesize one interviewer utterance"""
    if not request.text.strip():
        return SpeechResponse(success=False, error="Empty text provided")

    if not tts_service.enabled:
        return SpeechResponse(success=False, error="Server-side TTS is not configured")

    audio_data = await tts_service.generate_speech(request.text)
    if not audio_data:
        return SpeechResponse(success=False, error="TTS generation failed")

    return SpeechResponse(
        success=True,
        audio_data=base64.b64encode(audio_data).decode('utf-8'),
        format=tts_service.config.audio_format
    )
