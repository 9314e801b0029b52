#!/usr/bin/env python3
"""
PROMPTEDIT History - Edit records and gallery builder
Keeps every edit on disk and renders a static before/after gallery.
"""

import argparse
import json
import os
import re
import shutil
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from jinja2 import Environment, FileSystemLoader, select_autoescape
from PIL import Image

from promptedit.config import EditorSettings
from promptedit.reporter import EditResult


TEMPLATES_DIR = Path(__file__).parent / 'templates'

_ENTRY_ID_RE = re.compile(r'^\d{8}-\d{6}-\d{6}-[0-9a-f]{8}$')

_EXTENSIONS = {
    'image/jpeg': '.jpg',
    'image/png': '.png',
    'image/gif': '.gif',
    'image/webp': '.webp',
    'image/bmp': '.bmp',
    'image/tiff': '.tiff',
}


def is_valid_entry_id(entry_id: str) -> bool:
    return bool(entry_id) and _ENTRY_ID_RE.match(entry_id) is not None


class EditHistory:
    """Stores edits as one directory per entry and builds the gallery."""

    def __init__(self, root: Path):
        """Initialize the store. The directory is created on first write."""
        self.root = Path(root)
        self.jinja_env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(['html']),
        )

    def _entry_dir(self, entry_id: str) -> Optional[Path]:
        if not is_valid_entry_id(entry_id):
            return None
        entry_dir = self.root / entry_id
        return entry_dir if entry_dir.is_dir() else None

    def create_entry(self, original_bytes: bytes, result: EditResult) -> Dict[str, Any]:
        """
        Record a finished edit.

        Args:
            original_bytes: The uploaded image, stored as received
            result: The editor's result for it

        Returns:
            The stored metadata, including the new entry_id
        """
        # Microseconds keep ids unique and sortable within the same second
        timestamp = datetime.now().strftime('%Y%m%d-%H%M%S-%f')
        entry_id = f"{timestamp}-{os.urandom(4).hex()}"
        entry_dir = self.root / entry_id
        entry_dir.mkdir(parents=True, exist_ok=True)

        original_name = f"original{_EXTENSIONS.get(result.input_mime_type, '.img')}"
        edited_name = f"edited{_EXTENSIONS.get(result.output_mime_type, '.jpg')}"

        metadata = {
            **result.to_metadata(),
            'entry_id': entry_id,
            'timestamp': datetime.now().isoformat(),
            'original_image': original_name,
            'edited_image': edited_name,
        }

        try:
            (entry_dir / original_name).write_bytes(original_bytes)
            (entry_dir / edited_name).write_bytes(result.encoded_image)

            # metadata.json is written last and renamed into place
            tmp_path = entry_dir / 'metadata.json.tmp'
            with open(tmp_path, 'w') as f:
                json.dump(metadata, f, indent=2)
            tmp_path.replace(entry_dir / 'metadata.json')
        except OSError:
            shutil.rmtree(entry_dir, ignore_errors=True)
            raise

        return metadata

    def _load(self, entry_dir: Path) -> Optional[Dict[str, Any]]:
        metadata_path = entry_dir / 'metadata.json'
        if not metadata_path.exists():
            return None
        try:
            with open(metadata_path) as f:
                metadata = json.load(f)
        except (OSError, ValueError) as e:
            print(f"  Warning: Skipping unreadable history entry {entry_dir.name}: {e}", file=sys.stderr)
            return None
        if not isinstance(metadata, dict):
            print(f"  Warning: Skipping malformed history entry {entry_dir.name}", file=sys.stderr)
            return None
        return metadata

    def get_all_entries(self) -> List[Dict[str, Any]]:
        """Load all entries, newest first."""
        if not self.root.exists():
            return []

        entries = []
        for entry_dir in sorted(self.root.iterdir(), reverse=True):
            if entry_dir.is_dir() and is_valid_entry_id(entry_dir.name):
                metadata = self._load(entry_dir)
                if metadata is not None:
                    entries.append(metadata)
        return entries

    def list_entries(self, limit: int = 20, skip: int = 0) -> Dict[str, Any]:
        """One page of history plus totals, newest first."""
        limit = max(0, limit)
        skip = max(0, skip)
        entries = self.get_all_entries()
        page = entries[skip:skip + limit]
        return {
            'history': page,
            'total': len(entries),
            'hasMore': len(entries) > skip + len(page),
        }

    def get_entry(self, entry_id: str) -> Optional[Dict[str, Any]]:
        entry_dir = self._entry_dir(entry_id)
        if entry_dir is None:
            return None
        return self._load(entry_dir)

    def get_image_path(self, entry_id: str, which: str) -> Optional[Path]:
        """Path of the 'original' or 'edited' image of an entry."""
        metadata = self.get_entry(entry_id)
        if metadata is None or which not in ('original', 'edited'):
            return None
        return self.root / entry_id / metadata[f'{which}_image']

    def delete_entry(self, entry_id: str) -> bool:
        entry_dir = self._entry_dir(entry_id)
        if entry_dir is None:
            return False
        shutil.rmtree(entry_dir)
        return True

    def clear(self) -> int:
        """Delete every entry, readable or not; returns how many were removed."""
        if not self.root.exists():
            return 0
        removed = 0
        for entry_dir in self.root.iterdir():
            if entry_dir.is_dir() and is_valid_entry_id(entry_dir.name):
                shutil.rmtree(entry_dir)
                removed += 1
        return removed

    def create_comparison_image(self, original_path: Path, edited_path: Path, output_path: Path):
        """Create a side-by-side comparison image."""
        with Image.open(original_path) as original_img, Image.open(edited_path) as edited_img:
            original = original_img.convert('RGB')
            edited = edited_img.convert('RGB')

        # Resize to same height
        target_height = 400
        original_aspect = original.width / original.height
        edited_aspect = edited.width / edited.height

        original_resized = original.resize(
            (max(1, int(target_height * original_aspect)), target_height),
            Image.Resampling.LANCZOS
        )
        edited_resized = edited.resize(
            (max(1, int(target_height * edited_aspect)), target_height),
            Image.Resampling.LANCZOS
        )

        total_width = original_resized.width + edited_resized.width + 10
        comparison = Image.new('RGB', (total_width, target_height), 'white')

        comparison.paste(original_resized, (0, 0))
        comparison.paste(edited_resized, (original_resized.width + 10, 0))

        comparison.save(output_path, quality=90)

    def build_gallery(self, output_dir: Path) -> Path:
        """
        Render the history as a static HTML gallery.

        Returns:
            Path to the generated index.html
        """
        output_dir = Path(output_dir)
        images_dir = output_dir / 'images'
        images_dir.mkdir(parents=True, exist_ok=True)

        entries = self.get_all_entries()
        for entry in entries:
            entry_id = entry['entry_id']
            entry_dir = self.root / entry_id
            comparison_dest = images_dir / f"{entry_id}-comparison.jpg"

            if not comparison_dest.exists():
                self.create_comparison_image(
                    entry_dir / entry['original_image'],
                    entry_dir / entry['edited_image'],
                    comparison_dest,
                )
            entry['web_comparison'] = f"images/{comparison_dest.name}"

        template = self.jinja_env.get_template('history.html')
        index_path = output_dir / 'index.html'
        with open(index_path, 'w') as f:
            f.write(template.render(entries=entries, total=len(entries)))

        print(f"Gallery built successfully: {len(entries)} entries")
        return index_path


def main() -> int:
    """CLI interface for the edit history."""
    parser = argparse.ArgumentParser(description="Inspect and publish edit history.")
    parser.add_argument("--dir", type=Path, help="History directory (default: PROMPTEDIT_HISTORY_DIR)")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List recent edits")
    list_cmd.add_argument("--limit", type=int, default=20)
    list_cmd.add_argument("--skip", type=int, default=0)

    show_cmd = sub.add_parser("show", help="Show one edit as JSON")
    show_cmd.add_argument("entry_id")

    delete_cmd = sub.add_parser("delete", help="Delete one edit")
    delete_cmd.add_argument("entry_id")

    sub.add_parser("clear", help="Delete every edit")

    build_cmd = sub.add_parser("build", help="Render the static gallery")
    build_cmd.add_argument("output_dir", type=Path)

    args = parser.parse_args()
    load_dotenv()

    history = EditHistory(args.dir or EditorSettings.from_env().history_dir)

    if args.command == 'list':
        page = history.list_entries(limit=args.limit, skip=args.skip)
        for entry in page['history']:
            ops = ', '.join(entry.get('appliedOperations', []))
            print(f"{entry['entry_id']}  {entry['instruction']!r}  [{ops}]")
        print(f"{len(page['history'])} of {page['total']} edits")
        return 0

    if args.command == 'show':
        entry = history.get_entry(args.entry_id)
        if entry is None:
            print(f"Error: Edit not found: {args.entry_id}", file=sys.stderr)
            return 1
        print(json.dumps(entry, indent=2))
        return 0

    if args.command == 'delete':
        if not history.delete_entry(args.entry_id):
            print(f"Error: Edit not found: {args.entry_id}", file=sys.stderr)
            return 1
        print(f"Deleted: {args.entry_id}")
        return 0

    if args.command == 'clear':
        print(f"Removed {history.clear()} edits")
        return 0

    history.build_gallery(args.output_dir)
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
