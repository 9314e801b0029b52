"""
PROMPTEDIT Config - Settings read from the environment.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_INSTRUCTION_CHARS = 2048
DEFAULT_JPEG_QUALITY = 90
DEFAULT_MODEL_LABEL = 'Keyword Rules (Pillow)'
DEFAULT_ADVISOR_MODEL = 'gemini-2.5-flash'


def _int_env(name: str, default: int) -> int:
    """Read a positive integer env var, falling back to ``default``."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True)
class EditorSettings:
    """Limits and labels shared by the editor, history store and server."""

    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES
    max_instruction_chars: int = DEFAULT_MAX_INSTRUCTION_CHARS
    jpeg_quality: int = DEFAULT_JPEG_QUALITY
    model_label: str = DEFAULT_MODEL_LABEL
    history_dir: Path = field(default_factory=lambda: Path('history'))
    gemini_api_key: Optional[str] = None
    advisor_model: str = DEFAULT_ADVISOR_MODEL

    @classmethod
    def from_env(cls) -> 'EditorSettings':
        # JPEG quality above 95 only inflates files with Pillow
        quality = max(1, min(95, _int_env('PROMPTEDIT_JPEG_QUALITY', DEFAULT_JPEG_QUALITY)))

        return cls(
            max_image_bytes=_int_env('PROMPTEDIT_MAX_IMAGE_BYTES', DEFAULT_MAX_IMAGE_BYTES),
            max_instruction_chars=_int_env(
                'PROMPTEDIT_MAX_INSTRUCTION_CHARS', DEFAULT_MAX_INSTRUCTION_CHARS
            ),
            jpeg_quality=quality,
            model_label=os.getenv('PROMPTEDIT_MODEL_LABEL', DEFAULT_MODEL_LABEL).strip() or DEFAULT_MODEL_LABEL,
            history_dir=Path(os.getenv('PROMPTEDIT_HISTORY_DIR', 'history')),
            gemini_api_key=os.getenv('GEMINI_API_KEY') or None,
            advisor_model=os.getenv('GEMINI_ADVISOR_MODEL', DEFAULT_ADVISOR_MODEL),
        )
