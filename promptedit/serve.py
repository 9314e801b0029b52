#!/usr/bin/env python3
"""
PROMPTEDIT Server
JSON HTTP API for instruction-driven edits and their history.

Routes:
    POST   /api/image/edit           {"image": <base64 or data URL>, "instruction": str}
    GET    /api/keywords
    GET    /api/history?limit=&skip=
    GET    /api/history/<id>
    GET    /api/history/<id>/original|edited
    DELETE /api/history/<id>
    DELETE /api/history
    GET    /health
"""

import argparse
import base64
import binascii
import json
import re
import sys
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlparse

from dotenv import load_dotenv

from promptedit import __version__
from promptedit.editor import InstructionEditor, build_editor
from promptedit.errors import EditError, InvalidRequestError
from promptedit.history import EditHistory
from promptedit.utils import sniff_mime_type


_DATA_URL_RE = re.compile(r'^data:image/[\w.+-]+;base64,')
_HISTORY_ITEM_RE = re.compile(r'^/api/history/([^/]+)(?:/(original|edited))?/?$')

# Slack for the JSON envelope and instruction around the base64 image
_BODY_OVERHEAD = 64 * 1024


def decode_image_field(value: Any) -> bytes:
    """Decode a base64 image, with or without a data URL prefix."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidRequestError("Image is required (base64 string or data URL)")
    payload = _DATA_URL_RE.sub('', value.strip(), count=1)
    # Line-wrapped base64 (MIME style) is accepted
    payload = ''.join(payload.split())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidRequestError(f"Image is not valid base64: {e}") from e


def _int_param(query: Dict[str, list], name: str, default: int) -> int:
    try:
        return int(query.get(name, [default])[0])
    except (TypeError, ValueError):
        return default


class EditRequestHandler(BaseHTTPRequestHandler):
    """Routes API requests to the server's editor and history store."""

    server_version = f"promptedit/{__version__}"
    # Seconds a client may stall mid-request
    timeout = 60

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def log_message(self, format, *args):
        if not self.server.verbose:
            # Only log errors (non-2xx status codes)
            if len(args) >= 2 and isinstance(args[1], str):
                status = args[1].split()[0] if args[1] else ""
                if status.startswith('2') or status.startswith('3'):
                    return
        super().log_message(format, *args)

    def _send_json(self, status: int, payload: Dict[str, Any]):
        body = json.dumps(payload).encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_error_json(self, status: int, message: str):
        self._send_json(status, {'success': False, 'error': message})

    def _discard_body(self):
        """Read and drop a small request body so the reply is not reset."""
        try:
            length = int(self.headers.get('Content-Length', '0'))
        except ValueError:
            length = 0
        if 0 < length <= _BODY_OVERHEAD:
            self.rfile.read(length)
        else:
            self.close_connection = True

    def _read_json(self) -> Dict[str, Any]:
        try:
            length = int(self.headers.get('Content-Length', '0'))
        except ValueError:
            raise InvalidRequestError("Invalid Content-Length header") from None

        max_body = self.server.editor.settings.max_image_bytes * 4 // 3 + _BODY_OVERHEAD
        if length > max_body:
            # The unread body makes the connection unusable
            self.close_connection = True
            error = InvalidRequestError("Request body too large")
            error.status = HTTPStatus.REQUEST_ENTITY_TOO_LARGE
            raise error
        if length <= 0:
            raise InvalidRequestError("Request body is required")

        raw = self.rfile.read(length)
        try:
            body = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidRequestError(f"Request body is not valid JSON: {e}") from e
        if not isinstance(body, dict):
            raise InvalidRequestError("Request body must be a JSON object")
        return body

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def do_GET(self):
        url = urlparse(self.path)
        path = url.path

        if path == '/health':
            self._send_json(HTTPStatus.OK, {'status': 'ok', 'version': __version__})
            return

        if path == '/api/keywords':
            self._send_json(HTTPStatus.OK, {'keywords': self.server.editor.supported_keywords()})
            return

        history = self.server.history
        if path.startswith('/api/history') and history is None:
            self._send_error_json(HTTPStatus.NOT_FOUND, 'Edit history is disabled')
            return

        if path.rstrip('/') == '/api/history':
            query = parse_qs(url.query)
            page = history.list_entries(
                limit=_int_param(query, 'limit', 20),
                skip=_int_param(query, 'skip', 0),
            )
            self._send_json(HTTPStatus.OK, page)
            return

        match = _HISTORY_ITEM_RE.match(path)
        if match:
            entry_id, which = match.groups()
            if which:
                self._send_history_image(history, entry_id, which)
                return
            entry = history.get_entry(entry_id)
            if entry is None:
                self._send_error_json(HTTPStatus.NOT_FOUND, 'Edit not found')
            else:
                self._send_json(HTTPStatus.OK, {'edit': entry})
            return

        self._send_error_json(HTTPStatus.NOT_FOUND, f"No route for GET {path}")

    def _send_history_image(self, history: EditHistory, entry_id: str, which: str):
        image_path = history.get_image_path(entry_id, which)
        if image_path is None or not image_path.exists():
            self._send_error_json(HTTPStatus.NOT_FOUND, 'Image not found')
            return
        data = image_path.read_bytes()
        self.send_response(HTTPStatus.OK)
        self.send_header('Content-Type', sniff_mime_type(data, default='application/octet-stream'))
        self.send_header('Content-Length', str(len(data)))
        self.end_headers()
        self.wfile.write(data)

    def do_POST(self):
        path = urlparse(self.path).path
        if path.rstrip('/') != '/api/image/edit':
            self._discard_body()
            self._send_error_json(HTTPStatus.NOT_FOUND, f"No route for POST {path}")
            return

        try:
            body = self._read_json()
            image_bytes = decode_image_field(body.get('image'))
            instruction = body.get('instruction')
            result = self.server.editor.edit(image_bytes, instruction)
        except EditError as e:
            self._send_json(int(e.status), e.to_dict())
            return

        metadata = result.to_metadata()
        if self.server.history is not None:
            try:
                entry = self.server.history.create_entry(image_bytes, result)
                metadata['historyId'] = entry['entry_id']
            except OSError as e:
                # The edit already succeeded; a storage failure must not lose it
                print(f"Failed to save edit history: {e}", file=sys.stderr)

        self._send_json(HTTPStatus.OK, {
            'success': True,
            'editedImage': result.data_url(),
            'metadata': metadata,
        })

    def do_DELETE(self):
        path = urlparse(self.path).path
        history = self.server.history
        if history is None:
            self._send_error_json(HTTPStatus.NOT_FOUND, 'Edit history is disabled')
            return

        if path.rstrip('/') == '/api/history':
            removed = history.clear()
            self._send_json(HTTPStatus.OK, {
                'message': 'Edit history cleared successfully',
                'removed': removed,
            })
            return

        match = _HISTORY_ITEM_RE.match(path)
        if match and not match.group(2):
            if history.delete_entry(match.group(1)):
                self._send_json(HTTPStatus.OK, {'message': 'Edit deleted successfully'})
            else:
                self._send_error_json(HTTPStatus.NOT_FOUND, 'Edit not found')
            return

        self._send_error_json(HTTPStatus.NOT_FOUND, f"No route for DELETE {path}")


class EditServer(ThreadingHTTPServer):
    """Threaded server sharing one editor and history store across requests."""

    daemon_threads = True

    def __init__(
        self,
        address,
        editor: InstructionEditor,
        history: Optional[EditHistory] = None,
        verbose: bool = False,
    ):
        super().__init__(address, EditRequestHandler)
        self.editor = editor
        self.history = history
        self.verbose = verbose


def main():
    parser = argparse.ArgumentParser(
        description='HTTP API for instruction-driven image edits'
    )
    parser.add_argument(
        '--host',
        default='localhost',
        help='Interface to bind (default: localhost)'
    )
    parser.add_argument(
        '-p', '--port',
        type=int,
        default=5000,
        help='Port to serve on (default: 5000)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Show all HTTP requests in log'
    )
    parser.add_argument(
        '--no-history',
        action='store_true',
        help='Do not store edits'
    )
    args = parser.parse_args()

    load_dotenv()

    editor = build_editor()
    history = None if args.no_history else EditHistory(editor.settings.history_dir)

    server = EditServer((args.host, args.port), editor, history, verbose=args.verbose)

    print(f"PROMPTEDIT Server")
    print(f"Model: {editor.model_label}")
    print(f"History: {history.root if history else 'disabled'}")
    print(f"URL: http://{args.host}:{args.port}")
    print(f"Press Ctrl+C to stop\n")

    try:
        server.serve_forever()
    except KeyboardInterrupt:
        print("\nServer stopped.")
    finally:
        server.server_close()


if __name__ == '__main__':
    main()
