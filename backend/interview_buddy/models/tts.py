from pydantic import BaseModel
from typing import Optional

class TTSConfig(BaseModel):
    speaker: str = "cove"
    model_id: str = "mistv2"
    audio_format: str = "mp3"

class SpeechRequest(BaseModel):
    text: str

class SpeechResponse(BaseModel):
    success: bool
    audio_data: Optional[str] = None  # base64 encoded
    format: Optional[str] = None
    error: Optional[str] = None
