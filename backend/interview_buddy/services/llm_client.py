from abc import ABC, abstractmethod
from google import genai
from google.genai import types
from jinja2 import Environment, FileSystemLoader
import os
import logging
from interview_buddy.core.config import settings

logger = logging.getLogger(__name__)

# Setup Jinja2 environment for templates
template_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), 'templates')
env = Environment(loader=FileSystemLoader(template_dir))

def render_prompt(template_name: str, **context) -> str:
    return env.get_template(template_name).render(**context)

class BaseLLMClient(ABC):
    @abstractmethod
    def generate(self, prompt: str) -> str:
        pass

class GeminiClient(BaseLLMClient):
    def __init__(self, model=None, temperature=0.7, system_instruction=None, max_output_tokens=None):
        self.model = model or settings.GEMINI_MODEL
        self.temperature = temperature
        self.system_instruction = system_instruction
        self.max_output_tokens = max_output_tokens
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = genai.Client(api_key=settings.GEMINI_API_KEY)
        return self._client

    def generate(self, prompt: str) -> str:
        response = self.client.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=self.system_instruction,
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens
            )
        )
        return (response.text or "").strip()

def extract_json_array(raw: str) -> str:
    """Slice from the first '[' to the last ']'"""
    start = raw.find("[")
    end = raw.rfind("]")
    if start == -1 or end == -1 or end <= start:
        raise ValueError(f"Model did not return a JSON array. Raw: {raw}")
    return raw[start:end + 1]

def extract_json_object(raw: str) -> str:
    """Slice from the first '{' to the last '}'"""
    start = raw.find("{")
    end = raw.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise ValueError(f"Model did not return a JSON object. Raw output: {raw}")
    return raw[start:end + 1]
