"""
PROMPTEDIT Errors - Failure types surfaced by the editor.

Each error carries the HTTP-class status the JSON API answers with.
"""

from typing import Any, Dict, List, Optional


class EditError(Exception):
    """Base class for every failure an edit request can end in."""

    status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {'success': False, 'error': self.message}


class InvalidRequestError(EditError):
    """The image or instruction failed validation before any work was done."""

    status = 400


class InstructionBlocked(EditError):
    """The instruction asked for something unsupported, or matched nothing."""

    status = 422

    def __init__(self, reason: str, suggestions: List[str], rule_id: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.suggestions = list(suggestions)
        self.rule_id = rule_id

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload['blocked'] = True
        payload['suggestions'] = self.suggestions
        if self.rule_id:
            payload['ruleId'] = self.rule_id
        return payload


class DecodeError(EditError):
    """The uploaded bytes are not an image Pillow can decode."""

    status = 400


class TransformError(EditError):
    """A recognized operation failed while being applied."""

    status = 500

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"Failed to apply '{operation}': {cause}")
        self.operation = operation
        self.cause = cause

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload['operation'] = self.operation
        return payload
