"""
Request validation for the TTS endpoint.

Validates incoming synthesis requests and returns appropriate error results.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..errors import MSG_TEXT_REQUIRED

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of request validation."""
    valid: bool
    error_code: Optional[int] = None
    error_message: Optional[str] = None
    error_type: Optional[str] = None


def log_validation_error(error_type: str, message: str, data: dict[str, Any] = None) -> None:
    """Log validation errors for monitoring."""
    logger.warning(f"Validation error [{error_type}]: {message}", extra={"request_data": data})


def validate_tts_request(data: Optional[dict[str, Any]]) -> ValidationResult:
    """
    Validate text-to-speech request.

    Only ``text`` is checked; ``model`` and ``voice_settings`` are forwarded
    to ElevenLabs as given.

    Args:
        data: Request body containing text, model, voice_settings.

    Returns:
        ValidationResult with valid status or error details.
    """
    data = data or {}

    text = data.get("text")
    if not text or not isinstance(text, str) or not text.strip():
        log_validation_error("bad_request", MSG_TEXT_REQUIRED, data)
        return ValidationResult(
            valid=False,
            error_code=400,
            error_message=MSG_TEXT_REQUIRED,
            error_type="bad_request"
        )

    return ValidationResult(valid=True)
