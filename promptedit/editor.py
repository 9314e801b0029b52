#!/usr/bin/env python3
"""
PROMPTEDIT Editor - Instruction-driven image editing
Resolves a free-text instruction into Pillow operations and applies them.
"""

import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from promptedit.advisor import BaseAdvisor, advisor_from_env
from promptedit.config import EditorSettings
from promptedit.dispatcher import resolve
from promptedit.errors import EditError, InstructionBlocked, InvalidRequestError
from promptedit.executor import TransformExecutor
from promptedit.reporter import EditResult, build_result
from promptedit.rules import supported_keywords
from promptedit.utils import sniff_mime_type


def validate_request(image_bytes: bytes, instruction: str, settings: EditorSettings) -> None:
    """
    Reject requests the editor should never start working on.

    Raises:
        InvalidRequestError: empty or oversized instruction or image
    """
    if not isinstance(instruction, str) or not instruction.strip():
        raise InvalidRequestError("Instruction is required and must be a non-empty string")
    if len(instruction) > settings.max_instruction_chars:
        raise InvalidRequestError(
            f"Instruction exceeds maximum length of {settings.max_instruction_chars} characters"
        )
    if not image_bytes:
        raise InvalidRequestError("Image is required")
    if len(image_bytes) > settings.max_image_bytes:
        limit_mb = settings.max_image_bytes / (1024 * 1024)
        raise InvalidRequestError(f"Image size exceeds maximum allowed size of {limit_mb:g}MB")


class InstructionEditor:
    """Applies natural-language edit instructions to images."""

    def __init__(
        self,
        settings: Optional[EditorSettings] = None,
        advisor: Optional[BaseAdvisor] = None,
    ):
        """Initialize the Editor. Settings default to the environment."""
        self.settings = settings or EditorSettings.from_env()
        self.executor = TransformExecutor(quality=self.settings.jpeg_quality)
        self.advisor = advisor

    @property
    def model_label(self) -> str:
        if self.advisor:
            return f"{self.settings.model_label} + {self.advisor.label}"
        return self.settings.model_label

    def supported_keywords(self) -> List[str]:
        return supported_keywords()

    def _advise(self, image_bytes: bytes, instruction: str, mime_type: str) -> Optional[str]:
        if not self.advisor:
            return None
        try:
            return self.advisor.advise(image_bytes, instruction, mime_type)
        except Exception as e:
            # Advice is informational; the edit itself does not depend on it
            print(f"  Warning: {self.advisor.name} advisor failed: {e}", file=sys.stderr)
            return None

    def edit(self, image_bytes: bytes, instruction: str) -> EditResult:
        """
        Edit an image according to a natural-language instruction.

        Args:
            image_bytes: Encoded input image
            instruction: Free-text edit request, e.g. "blur it and make it grayscale"

        Returns:
            EditResult with JPEG bytes and the operations that were applied

        Raises:
            InvalidRequestError: the request failed validation
            InstructionBlocked: unsupported or unrecognized instruction
            DecodeError: the image could not be decoded
            TransformError: an operation failed while being applied
        """
        start = time.perf_counter()
        validate_request(image_bytes, instruction, self.settings)

        dispatch = resolve(instruction)
        if dispatch.is_blocked:
            block = dispatch.blocked
            raise InstructionBlocked(block.reason, list(block.suggestions), block.rule_id)

        mime_type = sniff_mime_type(image_bytes)
        advice = self._advise(image_bytes, instruction, mime_type)

        edited = self.executor.apply(image_bytes, dispatch.plan)

        return build_result(
            encoded_image=edited,
            instruction=instruction,
            dispatch=dispatch,
            model_label=self.model_label,
            elapsed_seconds=time.perf_counter() - start,
            input_mime_type=mime_type,
            advice=advice,
        )


def build_editor(settings: Optional[EditorSettings] = None) -> InstructionEditor:
    """Editor wired from settings, with the Gemini advisor when a key is set."""
    settings = settings or EditorSettings.from_env()
    advisor = advisor_from_env(settings.gemini_api_key, settings.advisor_model)
    return InstructionEditor(settings, advisor=advisor)


def main() -> int:
    """CLI interface for the Editor."""
    parser = argparse.ArgumentParser(
        description="Edit an image with a natural-language instruction."
    )
    parser.add_argument("image_path", nargs="?", type=Path, help="Image to edit")
    parser.add_argument("instruction", nargs="?", help='Instruction, e.g. "make it grayscale"')
    parser.add_argument("output_path", nargs="?", type=Path, help="Where to write the JPEG result")
    parser.add_argument(
        "--keywords",
        action="store_true",
        help="List supported keywords and exit",
    )
    parser.add_argument(
        "--plan-only",
        action="store_true",
        help="Show the resolved operations without editing",
    )
    args = parser.parse_args()

    load_dotenv()

    if args.keywords:
        for keyword in supported_keywords():
            print(keyword)
        return 0

    if args.plan_only:
        if not args.instruction and args.image_path:
            # Allow `promptedit --plan-only "blur it"`
            args.instruction = str(args.image_path)
        if not args.instruction:
            parser.error("an instruction is required")
        dispatch = resolve(args.instruction)
        if dispatch.is_blocked:
            print(f"Blocked: {dispatch.blocked.reason}")
            print(f"Try: {', '.join(dispatch.blocked.suggestions)}")
            return 2
        for op in dispatch.describe_plan():
            print(op)
        return 0

    if not (args.image_path and args.instruction and args.output_path):
        parser.error("image_path, instruction and output_path are required")

    if not args.image_path.exists():
        print(f"Error: Image not found: {args.image_path}", file=sys.stderr)
        return 1

    editor = build_editor()
    try:
        result = editor.edit(args.image_path.read_bytes(), args.instruction)
    except InstructionBlocked as e:
        print(f"Error: {e.reason}", file=sys.stderr)
        print(f"Try: {', '.join(e.suggestions)}", file=sys.stderr)
        return 2
    except EditError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    args.output_path.write_bytes(result.encoded_image)
    print(f"Applied: {', '.join(result.applied_operations)}")
    if result.advice:
        print(f"Advice: {result.advice}")
    print(f"Image successfully edited: {args.output_path} ({result.processing_time_ms} ms)")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
