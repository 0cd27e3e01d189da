"""
Wire format of the daemon protocol.

Every message, in both directions, is one frame:

    <int32 little-endian payload length><payload: UTF-8 JSON text>

A request is a JSON object whose ``fn`` field names the remote operation.
Responses have no fixed schema; ``Response`` gives safe optional access.
"""

from __future__ import annotations

import json
import socket
import struct
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from .errors import ProtocolError

FRAME_HEADER = struct.Struct("<i")

FieldValue = Union[str, int, bool, List[int]]


class Request(Mapping[str, Any]):
    """Immutable, ordered request payload; ``fn`` is always the first field."""

    __slots__ = ("_fields",)

    def __init__(self, fn: str, **fields: FieldValue) -> None:
        if not fn:
            raise ValueError("Request needs an operation name")
        if "fn" in fields:
            raise ValueError("'fn' is reserved for the operation name")
        data: Dict[str, Any] = {"fn": fn}
        for key, value in fields.items():
            data[key] = _check_value(key, value)
        object.__setattr__(self, "_fields", data)

    @property
    def fn(self) -> str:
        return self._fields["fn"]

    def __getitem__(self, key: str) -> Any:
        value = self._fields[key]
        return list(value) if isinstance(value, tuple) else value

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __setattr__(self, name, value):
        raise TypeError("Request is immutable")

    def __repr__(self) -> str:
        return f"Request({self.to_json()})"

    def __hash__(self):
        return hash(self.to_json())

    def to_dict(self) -> Dict[str, Any]:
        return {key: self[key] for key in self._fields}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, text: str) -> "Request":
        data = json.loads(text)
        if not isinstance(data, dict) or "fn" not in data:
            raise ValueError("Request JSON must be an object with an 'fn' field")
        fn = data.pop("fn")
        return cls(fn, **data)


def _check_value(key: str, value: Any) -> Any:
    if isinstance(value, (str, int)):  # bool is an int
        return value
    if isinstance(value, (list, tuple)):
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in value):
            raise TypeError(f"Field {key!r}: arrays may only hold integers")
        return tuple(value)
    raise TypeError(f"Field {key!r}: unsupported type {type(value).__name__}")


class Response:
    """Decoded daemon reply; no field is guaranteed to exist."""

    def __init__(self, raw: Any, text: str) -> None:
        self.raw = raw
        self.text = text

    @classmethod
    def from_bytes(cls, data: bytes) -> "Response":
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError(f"Response is not valid UTF-8: {e}") from e
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise ProtocolError(f"Response is not valid JSON: {e}") from e
        return cls(raw, text)

    def get(self, key: str, default: Any = None) -> Any:
        if isinstance(self.raw, dict):
            return self.raw.get(key, default)
        return default

    def get_list(self, key: str) -> Optional[list]:
        value = self.get(key)
        return value if isinstance(value, list) else None

    def __contains__(self, key: str) -> bool:
        return isinstance(self.raw, dict) and key in self.raw

    def __repr__(self) -> str:
        return f"Response({self.text})"


def encode_frame(payload: bytes) -> bytes:
    if len(payload) > 0x7FFFFFFF:
        raise ValueError(f"Payload too large for one frame: {len(payload)} bytes")
    return FRAME_HEADER.pack(len(payload)) + payload


def _recv_exact(sock: socket.socket, num: int) -> bytes:
    buf = bytearray()
    while len(buf) < num:
        chunk = sock.recv(min(num - len(buf), 65536))
        if not chunk:
            raise ProtocolError(
                f"Connection closed after {len(buf)} of {num} bytes"
            )
        buf += chunk
    return bytes(buf)


def read_frame(sock: socket.socket, max_bytes: int) -> bytes:
    """Read exactly one frame from ``sock`` and return its payload."""
    (length,) = FRAME_HEADER.unpack(_recv_exact(sock, FRAME_HEADER.size))
    if length < 0 or length > max_bytes:
        raise ProtocolError(f"Invalid frame length: {length}")
    if length == 0:
        return b""
    return _recv_exact(sock, length)
