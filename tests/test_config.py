"""Tests for config module."""

import sys
from pathlib import Path

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from promptedit.config import (
    DEFAULT_JPEG_QUALITY,
    DEFAULT_MAX_IMAGE_BYTES,
    DEFAULT_MODEL_LABEL,
    EditorSettings,
)

_VARS = (
    'PROMPTEDIT_MAX_IMAGE_BYTES',
    'PROMPTEDIT_MAX_INSTRUCTION_CHARS',
    'PROMPTEDIT_JPEG_QUALITY',
    'PROMPTEDIT_MODEL_LABEL',
    'PROMPTEDIT_HISTORY_DIR',
    'GEMINI_API_KEY',
    'GEMINI_ADVISOR_MODEL',
)


class TestEditorSettings:
    """Tests for environment-driven settings."""

    def _clear(self, monkeypatch):
        for name in _VARS:
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self, monkeypatch):
        self._clear(monkeypatch)
        settings = EditorSettings.from_env()

        assert settings.max_image_bytes == DEFAULT_MAX_IMAGE_BYTES == 10 * 1024 * 1024
        assert settings.max_instruction_chars == 2048
        assert settings.jpeg_quality == DEFAULT_JPEG_QUALITY == 90
        assert settings.model_label == DEFAULT_MODEL_LABEL
        assert settings.history_dir == Path('history')
        assert settings.gemini_api_key is None

    def test_overrides(self, monkeypatch, tmp_path):
        self._clear(monkeypatch)
        monkeypatch.setenv('PROMPTEDIT_MAX_IMAGE_BYTES', '2048')
        monkeypatch.setenv('PROMPTEDIT_JPEG_QUALITY', '75')
        monkeypatch.setenv('PROMPTEDIT_MODEL_LABEL', 'Custom')
        monkeypatch.setenv('PROMPTEDIT_HISTORY_DIR', str(tmp_path))
        monkeypatch.setenv('GEMINI_API_KEY', 'secret')

        settings = EditorSettings.from_env()

        assert settings.max_image_bytes == 2048
        assert settings.jpeg_quality == 75
        assert settings.model_label == 'Custom'
        assert settings.history_dir == tmp_path
        assert settings.gemini_api_key == 'secret'

    def test_invalid_integers_fall_back(self, monkeypatch):
        self._clear(monkeypatch)
        monkeypatch.setenv('PROMPTEDIT_MAX_IMAGE_BYTES', 'lots')
        monkeypatch.setenv('PROMPTEDIT_MAX_INSTRUCTION_CHARS', '-5')

        settings = EditorSettings.from_env()

        assert settings.max_image_bytes == DEFAULT_MAX_IMAGE_BYTES
        assert settings.max_instruction_chars == 2048

    def test_quality_clamped(self, monkeypatch):
        self._clear(monkeypatch)
        monkeypatch.setenv('PROMPTEDIT_JPEG_QUALITY', '150')
        assert EditorSettings.from_env().jpeg_quality == 95

    def test_blank_label_uses_default(self, monkeypatch):
        self._clear(monkeypatch)
        monkeypatch.setenv('PROMPTEDIT_MODEL_LABEL', '   ')
        assert EditorSettings.from_env().model_label == DEFAULT_MODEL_LABEL
