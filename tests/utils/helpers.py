"""Test helper functions."""

import json
from io import BytesIO
from typing import Dict, Any


class MockSocket:
    """Minimal socket for instantiating BaseHTTPRequestHandler subclasses."""

    def __init__(self, request_line: bytes):
        self._request_line = request_line

    def makefile(self, *args, **kwargs):
        return BytesIO(self._request_line)

    def sendall(self, data):
        pass

    def close(self):
        pass


def create_vercel_request(
    method: str = "GET",
    path: str = "/api/dashboard/summary",
    body: Dict[str, Any] = None,
    headers: Dict[str, str] = None
) -> Dict[str, Any]:
    """Create a Vercel request object for testing."""
    if headers is None:
        headers = {
            "content-type": "application/json"
        }

    return {
        "method": method,
        "path": path,
        "headers": headers,
        "body": json.dumps(body) if isinstance(body, dict) else (body or ""),
        "query": {}
    }
