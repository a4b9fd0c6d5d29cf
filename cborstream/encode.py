"""Encoding of CBOR data items into a bounded buffer."""

from __future__ import annotations

import struct
from typing import Any, Optional

_MAX_ARGUMENT = 2**64 - 1


class EncodeError(Exception):
    """Raised when a value cannot be encoded or does not fit the buffer."""


class Encoder:
    """Collects encoded CBOR items, optionally bounded to ``limit`` bytes.

    The writing methods return the encoder so calls can be chained.
    """

    def __init__(self, limit: Optional[int] = None) -> None:
        if limit is not None and limit < 0:
            raise ValueError("limit must not be negative")
        self._buf = bytearray()
        self._limit = limit

    def __len__(self) -> int:
        return len(self._buf)

    def _write(self, data: bytes) -> None:
        if self._limit is not None and len(self._buf) + len(data) > self._limit:
            raise EncodeError(f"end of buffer: {self._limit} bytes available")
        self._buf += data

    def _head(self, major: int, argument: int) -> None:
        if not 0 <= argument <= _MAX_ARGUMENT:
            raise EncodeError(f"argument {argument} out of range")
        prefix = major << 5
        if argument < 24:
            self._write(bytes([prefix | argument]))
            return
        for info, width in ((24, 1), (25, 2), (26, 4), (27, 8)):
            if argument < 1 << (8 * width):
                self._write(bytes([prefix | info]) + argument.to_bytes(width, "big"))
                return

    def unsigned(self, value: int) -> "Encoder":
        """Encode a non-negative integer."""
        if value < 0:
            raise EncodeError(f"{value} is not an unsigned integer")
        self._head(0, value)
        return self

    def int(self, value: int) -> "Encoder":
        """Encode a signed integer."""
        if value >= 0:
            return self.unsigned(value)
        self._head(1, -1 - value)
        return self

    def bool(self, value: bool) -> "Encoder":
        self._write(b"\xf5" if value else b"\xf4")
        return self

    def null(self) -> "Encoder":
        self._write(b"\xf6")
        return self

    def float(self, value: float) -> "Encoder":
        """Encode a double-precision float."""
        self._write(b"\xfb" + struct.pack(">d", value))
        return self

    def str(self, value: str) -> "Encoder":
        raw = value.encode("utf-8")
        self._head(3, len(raw))
        self._write(raw)
        return self

    def bytes(self, value) -> "Encoder":
        raw = bytes(value)
        self._head(2, len(raw))
        self._write(raw)
        return self

    def array(self, length: int) -> "Encoder":
        """Write the header of an array of ``length`` items."""
        self._head(4, length)
        return self

    def map(self, length: int) -> "Encoder":
        """Write the header of a map of ``length`` entries."""
        self._head(5, length)
        return self

    def begin_array(self) -> "Encoder":
        """Start an array of indefinite length."""
        self._write(b"\x9f")
        return self

    def begin_map(self) -> "Encoder":
        """Start a map of indefinite length."""
        self._write(b"\xbf")
        return self

    def end(self) -> "Encoder":
        """Close an indefinite-length array or map."""
        self._write(b"\xff")
        return self

    def value(self, obj: Any) -> "Encoder":
        """Encode a Python object built of the basic types."""
        if obj is None:
            return self.null()
        if isinstance(obj, bool):
            return self.bool(obj)
        if isinstance(obj, int):
            return self.int(obj)
        if isinstance(obj, float):
            return self.float(obj)
        if isinstance(obj, str):
            return self.str(obj)
        if isinstance(obj, (bytes, bytearray, memoryview)):
            return self.bytes(obj)
        if isinstance(obj, (list, tuple)):
            self.array(len(obj))
            for item in obj:
                self.value(item)
            return self
        if isinstance(obj, dict):
            self.map(len(obj))
            for key, item in obj.items():
                self.value(key)
                self.value(item)
            return self
        raise TypeError(f"cannot encode object of type {type(obj).__name__}")

    def getvalue(self) -> bytes:
        """Return everything encoded so far."""
        return bytes(self._buf)


def encode(value: Any) -> bytes:
    """Encode ``value`` into CBOR bytes."""
    return Encoder().value(value).getvalue()