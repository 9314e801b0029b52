"""
PROMPTEDIT Reporter - Packages edited bytes with what was done to them.
"""

import base64
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from promptedit.dispatcher import DispatchResult
from promptedit.executor import OUTPUT_MIME_TYPE
from promptedit.rules import OperationSpec


@dataclass
class EditResult:
    """Everything a caller needs to return or store one edit."""

    encoded_image: bytes
    instruction: str
    applied_operations: List[str]
    rule_ids: List[str]
    plan: Tuple[OperationSpec, ...]
    model_label: str
    processing_time_ms: int
    input_mime_type: str
    output_mime_type: str = OUTPUT_MIME_TYPE
    processed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    advice: Optional[str] = None

    def data_url(self) -> str:
        """Edited image as a base64 data URL."""
        encoded = base64.b64encode(self.encoded_image).decode('ascii')
        return f"data:{self.output_mime_type};base64,{encoded}"

    def to_metadata(self) -> Dict[str, Any]:
        """JSON-ready metadata, as returned by the API and kept in history."""
        metadata = {
            'instruction': self.instruction,
            'appliedOperations': list(self.applied_operations),
            'ruleIds': list(self.rule_ids),
            'modelUsed': self.model_label,
            'processedAt': self.processed_at,
            'processingTime': self.processing_time_ms,
            'inputMimeType': self.input_mime_type,
            'outputMimeType': self.output_mime_type,
        }
        if self.advice:
            metadata['advice'] = self.advice
        return metadata


def build_result(
    encoded_image: bytes,
    instruction: str,
    dispatch: DispatchResult,
    model_label: str,
    elapsed_seconds: float,
    input_mime_type: str,
    advice: Optional[str] = None,
) -> EditResult:
    """Assemble an EditResult from a successful dispatch and its output bytes."""
    return EditResult(
        encoded_image=encoded_image,
        instruction=instruction,
        applied_operations=dispatch.describe_plan(),
        rule_ids=list(dispatch.rule_ids),
        plan=dispatch.plan,
        model_label=model_label,
        processing_time_ms=int(round(elapsed_seconds * 1000)),
        input_mime_type=input_mime_type,
        advice=advice,
    )
