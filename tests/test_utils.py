"""Tests for utils module."""

import io
import sys
from pathlib import Path
from unittest.mock import patch

import pytest
from PIL import Image

# Add repository root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from promptedit.utils import retry_with_backoff, sniff_mime_type


def _encode(fmt: str) -> bytes:
    buffer = io.BytesIO()
    Image.new('RGB', (4, 4), color='red').save(buffer, format=fmt)
    return buffer.getvalue()


class TestSniffMimeType:
    """Tests for header-based format detection."""

    @pytest.mark.parametrize("fmt,expected", [
        ('JPEG', 'image/jpeg'),
        ('PNG', 'image/png'),
        ('GIF', 'image/gif'),
        ('WEBP', 'image/webp'),
        ('BMP', 'image/bmp'),
        ('TIFF', 'image/tiff'),
    ])
    def test_real_images(self, fmt, expected):
        """Encoded images should be recognized from their magic bytes."""
        assert sniff_mime_type(_encode(fmt)) == expected

    def test_unknown_header_uses_default(self):
        """Unknown bytes should fall back to JPEG."""
        assert sniff_mime_type(b'not an image') == 'image/jpeg'

    def test_custom_default(self):
        """Callers can choose their own fallback."""
        assert sniff_mime_type(b'', default='application/octet-stream') == 'application/octet-stream'

    def test_riff_without_webp_is_not_webp(self):
        """A RIFF container that is not WEBP (e.g. WAV) is not an image."""
        assert sniff_mime_type(b'RIFF\x00\x00\x00\x00WAVEfmt ') == 'image/jpeg'


class TestRetryWithBackoff:
    """Tests for the retry_with_backoff decorator."""

    def test_successful_call_no_retry(self):
        """Function that succeeds should only be called once."""
        call_count = 0

        @retry_with_backoff(max_retries=3, initial_delay=0.01)
        def successful_func():
            nonlocal call_count
            call_count += 1
            return "success"

        result = successful_func()
        assert result == "success"
        assert call_count == 1

    def test_non_retryable_error_raises_immediately(self):
        """Non-retryable errors should raise immediately without retry."""
        call_count = 0

        @retry_with_backoff(max_retries=3, initial_delay=0.01)
        def failing_func():
            nonlocal call_count
            call_count += 1
            raise ValueError("Not a retryable error")

        with pytest.raises(ValueError, match="Not a retryable error"):
            failing_func()

        assert call_count == 1

    def test_retryable_error_retries(self):
        """Retryable errors should trigger retry attempts."""
        call_count = 0

        @retry_with_backoff(max_retries=2, initial_delay=0.01)
        def rate_limited_func():
            nonlocal call_count
            call_count += 1
            raise Exception("rate limit exceeded")

        with pytest.raises(Exception, match="rate limit"):
            rate_limited_func()

        assert call_count == 3  # Initial + 2 retries

    def test_success_after_retry(self):
        """Function that succeeds after initial failures."""
        call_count = 0

        @retry_with_backoff(max_retries=3, initial_delay=0.01)
        def eventually_succeeds():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise Exception("503 service unavailable")
            return "success"

        assert eventually_succeeds() == "success"
        assert call_count == 3

    def test_backoff_factor(self):
        """Delays should increase with backoff factor."""
        call_count = 0

        @retry_with_backoff(max_retries=2, initial_delay=0.1, backoff_factor=2.0)
        def rate_limited_func():
            nonlocal call_count
            call_count += 1
            raise Exception("quota exhausted")

        with patch('time.sleep') as mock_sleep:
            with pytest.raises(Exception):
                rate_limited_func()

            sleep_calls = [call[0][0] for call in mock_sleep.call_args_list]
            assert len(sleep_calls) == 2
            assert sleep_calls[0] == pytest.approx(0.1, rel=0.1)
            assert sleep_calls[1] == pytest.approx(0.2, rel=0.1)

    def test_preserves_function_metadata(self):
        """Decorator should preserve function name and docstring."""
        @retry_with_backoff()
        def my_function():
            """My docstring."""
            pass

        assert my_function.__name__ == "my_function"
        assert my_function.__doc__ == "My docstring."
