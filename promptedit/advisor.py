"""
PROMPTEDIT Advisor - Optional model commentary on an edit request.

An advisor describes how it would approach the requested edit. Its text is
attached to the result for display; it never changes which operations run.
"""

import sys
from abc import ABC, abstractmethod
from typing import Optional

from google import genai

from promptedit.utils import retry_with_backoff


class BaseAdvisor(ABC):
    """Abstract base class for model advisors."""

    name: str = "base"
    model_name: str = ""

    @abstractmethod
    def advise(self, image_bytes: bytes, instruction: str, mime_type: str) -> str:
        """Return free-text commentary on applying ``instruction`` to the image."""
        pass

    @property
    def label(self) -> str:
        return self.model_name or self.name

    def _get_prompt(self, instruction: str) -> str:
        return f"""You are an expert image editor. A user asked for the following edit to the attached image: "{instruction}".

Describe briefly (2-3 sentences) how this edit would change this particular image and anything the user should watch out for.

Do not return an image. Plain text only."""


class GeminiAdvisor(BaseAdvisor):
    """Google Gemini advisor."""

    name = "gemini"

    def __init__(self, api_key: str, model_name: str = 'gemini-2.5-flash'):
        self.client = genai.Client(api_key=api_key)
        self.model_name = model_name

    @retry_with_backoff(max_retries=2, initial_delay=1.0)
    def advise(self, image_bytes: bytes, instruction: str, mime_type: str) -> str:
        from google.genai import types

        image_part = types.Part.from_bytes(data=image_bytes, mime_type=mime_type)
        response = self.client.models.generate_content(
            model=self.model_name,
            contents=[self._get_prompt(instruction), image_part],
        )
        text = (response.text or '').strip()
        if not text:
            raise ValueError("Gemini returned an empty response")
        return text


def advisor_from_env(api_key: Optional[str], model_name: str) -> Optional[BaseAdvisor]:
    """Build the Gemini advisor when a key is configured, else None."""
    if not api_key:
        return None
    try:
        return GeminiAdvisor(api_key, model_name)
    except Exception as e:
        print(f"  Warning: Failed to initialize Gemini advisor: {e}", file=sys.stderr)
        return None

