"""Test helper functions."""

import json
from io import BytesIO
from typing import Any, Dict, Optional, Tuple


def build_raw_request(
    method: str,
    path: str,
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> bytes:
    """Serialize an HTTP/1.1 request the way a socket would deliver it."""
    payload = b""
    if isinstance(body, bytes):
        payload = body
    elif isinstance(body, str):
        payload = body.encode("utf-8")
    elif body is not None:
        payload = json.dumps(body).encode("utf-8")

    lines = [f"{method} {path} HTTP/1.1", "Host: localhost"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    if payload:
        lines.append("Content-Type: application/json")
        lines.append(f"Content-Length: {len(payload)}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8") + payload


class MockSocket:
    """Minimal socket: reads come from a canned request, writes are captured."""

    def __init__(self, raw_request: bytes):
        self._raw = raw_request
        self.sent = BytesIO()

    def makefile(self, *args, **kwargs):
        return BytesIO(self._raw)

    def sendall(self, data):
        self.sent.write(data)

    def close(self):
        pass


def call_handler(handler_cls, method: str, path: str, body: Any = None,
                 headers: Optional[Dict[str, str]] = None) -> Tuple[int, Dict[str, str], Any]:
    """Run one request through a handler class; returns (status, headers, JSON body or None)."""
    sock = MockSocket(build_raw_request(method, path, body, headers))
    handler_cls(sock, ("127.0.0.1", 8000), None)
    return parse_response(sock.sent.getvalue())


def parse_response(raw: bytes) -> Tuple[int, Dict[str, str], Any]:
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    status = int(lines[0].split(" ")[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, json.loads(body) if body else None
