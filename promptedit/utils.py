#!/usr/bin/env python3
"""
PROMPTEDIT Utilities - Shared helper functions and decorators.
"""

import time
from functools import wraps


# Leading magic bytes -> mime type
_SIGNATURES = (
    (b'\xff\xd8', 'image/jpeg'),
    (b'\x89PNG', 'image/png'),
    (b'GIF8', 'image/gif'),
    (b'BM', 'image/bmp'),
    (b'II*\x00', 'image/tiff'),
    (b'MM\x00*', 'image/tiff'),
)


def sniff_mime_type(data: bytes, default: str = 'image/jpeg') -> str:
    """
    Guess the mime type of encoded image bytes from their header.

    Only the leading bytes are inspected; nothing is decoded. Unknown
    headers fall back to ``default``.
    """
    if data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return 'image/webp'
    for signature, mime_type in _SIGNATURES:
        if data.startswith(signature):
            return mime_type
    return default


def retry_with_backoff(max_retries=3, initial_delay=2.0, backoff_factor=2.0):
    """
    Decorator to retry API calls with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        initial_delay: Initial delay in seconds before first retry
        backoff_factor: Multiplier for delay between retries
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            delay = initial_delay
            last_exception = None

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    last_exception = e
                    error_msg = str(e).lower()

                    # Only rate limits and transient upstream failures are retried
                    is_retryable = any([
                        'rate limit' in error_msg,
                        'quota' in error_msg,
                        'too many requests' in error_msg,
                        '429' in error_msg,
                        'timeout' in error_msg,
                        'temporarily unavailable' in error_msg,
                        'service unavailable' in error_msg,
                        '503' in error_msg,
                        '500' in error_msg
                    ])

                    if not is_retryable or attempt == max_retries:
                        raise

                    print(f"  API error (attempt {attempt + 1}/{max_retries}): {e}")
                    print(f"  Retrying in {delay:.1f}s...")
                    time.sleep(delay)
                    delay *= backoff_factor

            raise last_exception
        return wrapper
    return decorator
