"""Decoding of CBOR data items from an in-memory buffer."""

from __future__ import annotations

import enum
import struct
from typing import Any, Optional

BREAK = 0xFF

_INDEFINITE = 31


class DecodeError(Exception):
    """Raised when the input is not valid CBOR or not of the expected shape."""

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        text = message if position is None else f"{message} at position {position}"
        super().__init__(text)
        self.message = message
        self.position = position


class EndOfInput(DecodeError):
    """Raised when the input ends before a complete data item was read."""

    def __init__(self, position: Optional[int] = None) -> None:
        super().__init__("unexpected end of input", position)


class TypeMismatch(DecodeError):
    """Raised when the next data item is not of the requested type."""

    def __init__(self, datatype: "DataType", expected: str, position: Optional[int] = None) -> None:
        super().__init__(f"unexpected type {datatype.name.lower()}, expected {expected}", position)
        self.datatype = datatype


class DataType(enum.Enum):
    """The kind of the next CBOR data item."""

    UNSIGNED = enum.auto()
    NEGATIVE = enum.auto()
    BYTES = enum.auto()
    BYTES_INDEF = enum.auto()
    STRING = enum.auto()
    STRING_INDEF = enum.auto()
    ARRAY = enum.auto()
    ARRAY_INDEF = enum.auto()
    MAP = enum.auto()
    MAP_INDEF = enum.auto()
    TAG = enum.auto()
    BOOL = enum.auto()
    NULL = enum.auto()
    UNDEFINED = enum.auto()
    SIMPLE = enum.auto()
    F16 = enum.auto()
    F32 = enum.auto()
    F64 = enum.auto()
    BREAK = enum.auto()


_DEFINITE_TYPES = {
    0: DataType.UNSIGNED,
    1: DataType.NEGATIVE,
    2: DataType.BYTES,
    3: DataType.STRING,
    4: DataType.ARRAY,
    5: DataType.MAP,
    6: DataType.TAG,
}

_INDEFINITE_TYPES = {
    2: DataType.BYTES_INDEF,
    3: DataType.STRING_INDEF,
    4: DataType.ARRAY_INDEF,
    5: DataType.MAP_INDEF,
}

_SPECIAL_TYPES = {
    20: DataType.BOOL,
    21: DataType.BOOL,
    22: DataType.NULL,
    23: DataType.UNDEFINED,
    24: DataType.SIMPLE,
    25: DataType.F16,
    26: DataType.F32,
    27: DataType.F64,
    31: DataType.BREAK,
}

_FLOAT_FORMATS = {DataType.F16: ">e", DataType.F32: ">f", DataType.F64: ">d"}


class Decoder:
    """A cursor over a byte buffer that decodes one CBOR item at a time.

    Every method either consumes a complete item and advances the position,
    or raises and leaves the position where it was.
    """

    def __init__(self, data) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def position(self) -> int:
        return self._pos

    @position.setter
    def position(self, value: int) -> None:
        if not 0 <= value <= len(self._data):
            raise ValueError(f"position {value} outside input of length {len(self._data)}")
        self._pos = value

    def _classify(self, pos: int) -> DataType:
        if pos >= len(self._data):
            raise EndOfInput(pos)
        initial = self._data[pos]
        major, info = initial >> 5, initial & 0x1F
        if 28 <= info <= 30:
            raise DecodeError(f"reserved additional information {info}", pos)
        if major == 7:
            if info < 20:
                return DataType.SIMPLE
            return _SPECIAL_TYPES[info]
        if info == _INDEFINITE:
            try:
                return _INDEFINITE_TYPES[major]
            except KeyError:
                raise DecodeError("indefinite length not allowed for this type", pos) from None
        return _DEFINITE_TYPES[major]

    def _head(self, pos: int) -> tuple[Optional[int], int]:
        """Return the argument of the head at ``pos`` (None if indefinite) and its size."""
        self._classify(pos)
        info = self._data[pos] & 0x1F
        if info < 24:
            return info, 1
        if info == _INDEFINITE:
            return None, 1
        width = 1 << (info - 24)
        end = pos + 1 + width
        if end > len(self._data):
            raise EndOfInput(pos)
        return int.from_bytes(self._data[pos + 1 : end], "big"), 1 + width

    def _expect(self, accepted: set, expected: str) -> DataType:
        datatype = self.datatype()
        if datatype not in accepted:
            raise TypeMismatch(datatype, expected, self._pos)
        return datatype

    def datatype(self) -> DataType:
        """Return the type of the next item without consuming it."""
        return self._classify(self._pos)

    def unsigned(self) -> int:
        """Decode an unsigned integer."""
        self._expect({DataType.UNSIGNED}, "unsigned integer")
        value, size = self._head(self._pos)
        self._pos += size
        return value

    def int(self) -> int:
        """Decode a signed or unsigned integer."""
        datatype = self._expect({DataType.UNSIGNED, DataType.NEGATIVE}, "integer")
        value, size = self._head(self._pos)
        self._pos += size
        return value if datatype is DataType.UNSIGNED else -1 - value

    def bool(self) -> bool:
        """Decode a boolean."""
        self._expect({DataType.BOOL}, "bool")
        value = self._data[self._pos] == 0xF5
        self._pos += 1
        return value

    def null(self) -> None:
        """Consume a null."""
        self._expect({DataType.NULL}, "null")
        self._pos += 1

    def _string_bytes(self, definite: DataType, indefinite: DataType, expected: str) -> bytes:
        start = self._pos
        datatype = self._expect({definite, indefinite}, expected)
        length, size = self._head(start)
        if datatype is definite:
            begin = start + size
            end = begin + length
            if end > len(self._data):
                raise EndOfInput(start)
            self._pos = end
            return self._data[begin:end]
        parts = []
        cursor = start + size
        while True:
            chunk_type = self._classify(cursor)
            if chunk_type is DataType.BREAK:
                self._pos = cursor + 1
                return b"".join(parts)
            if chunk_type is not definite:
                raise TypeMismatch(chunk_type, f"{expected} chunk", cursor)
            length, size = self._head(cursor)
            begin = cursor + size
            end = begin + length
            if end > len(self._data):
                raise EndOfInput(cursor)
            parts.append(self._data[begin:end])
            cursor = end

    def str(self) -> str:
        """Decode a text string, definite or indefinite."""
        start = self._pos
        raw = self._string_bytes(DataType.STRING, DataType.STRING_INDEF, "text")
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            self._pos = start
            raise DecodeError("invalid utf-8 in text string", start) from None

    def bytes(self) -> bytes:
        """Decode a byte string, definite or indefinite."""
        return self._string_bytes(DataType.BYTES, DataType.BYTES_INDEF, "bytes")

    def array(self) -> Optional[int]:
        """Consume an array header and return its length, or None if indefinite."""
        self._expect({DataType.ARRAY, DataType.ARRAY_INDEF}, "array")
        length, size = self._head(self._pos)
        self._pos += size
        return length

    def map(self) -> Optional[int]:
        """Consume a map header and return its entry count, or None if indefinite."""
        self._expect({DataType.MAP, DataType.MAP_INDEF}, "map")
        length, size = self._head(self._pos)
        self._pos += size
        return length

    def _at_break(self) -> bool:
        if self._pos >= len(self._data):
            raise EndOfInput(self._pos)
        return self._data[self._pos] == BREAK

    def _item(self) -> Any:
        start = self._pos
        datatype = self.datatype()
        if datatype in (DataType.UNSIGNED, DataType.NEGATIVE):
            return self.int()
        if datatype in (DataType.BYTES, DataType.BYTES_INDEF):
            return self.bytes()
        if datatype in (DataType.STRING, DataType.STRING_INDEF):
            return self.str()
        if datatype in (DataType.ARRAY, DataType.ARRAY_INDEF):
            length = self.array()
            if length is not None:
                return [self._item() for _ in range(length)]
            items = []
            while not self._at_break():
                items.append(self._item())
            self._pos += 1
            return items
        if datatype in (DataType.MAP, DataType.MAP_INDEF):
            length = self.map()
            entries: dict = {}
            remaining = length
            while (remaining > 0) if remaining is not None else not self._at_break():
                key_pos = self._pos
                key = self._item()
                value = self._item()
                try:
                    entries[key] = value
                except TypeError:
                    raise DecodeError("unhashable map key", key_pos) from None
                if remaining is not None:
                    remaining -= 1
            if length is None:
                self._pos += 1
            return entries
        if datatype is DataType.TAG:
            _, size = self._head(start)
            self._pos += size
            return self._item()
        if datatype is DataType.BOOL:
            return self.bool()
        if datatype in (DataType.NULL, DataType.UNDEFINED):
            self._pos += 1
            return None
        if datatype in _FLOAT_FORMATS:
            _, size = self._head(start)
            (number,) = struct.unpack(_FLOAT_FORMATS[datatype], self._data[start + 1 : start + size])
            self._pos += size
            return number
        raise TypeMismatch(datatype, "data item", start)

    def value(self) -> Any:
        """Decode the next item into Python objects.

        Arrays become lists, maps dicts, null and undefined None. Tags are
        dropped and their content returned.
        """
        start = self._pos
        try:
            return self._item()
        except DecodeError:
            self._pos = start
            raise

    def _skip_item(self) -> None:
        start = self._pos
        datatype = self.datatype()
        if datatype in (DataType.BYTES, DataType.BYTES_INDEF):
            self.bytes()
        elif datatype in (DataType.STRING, DataType.STRING_INDEF):
            self._string_bytes(DataType.STRING, DataType.STRING_INDEF, "text")
        elif datatype in (DataType.ARRAY, DataType.ARRAY_INDEF, DataType.MAP, DataType.MAP_INDEF):
            is_map = datatype in (DataType.MAP, DataType.MAP_INDEF)
            length = self.map() if is_map else self.array()
            per_entry = 2 if is_map else 1
            if length is None:
                while not self._at_break():
                    for _ in range(per_entry):
                        self._skip_item()
                self._pos += 1
            else:
                for _ in range(length * per_entry):
                    self._skip_item()
        elif datatype is DataType.TAG:
            _, size = self._head(start)
            self._pos += size
            self._skip_item()
        elif datatype is DataType.BREAK:
            raise TypeMismatch(datatype, "data item", start)
        else:
            _, size = self._head(start)
            self._pos += size

    def skip(self) -> None:
        """Consume the next item, including everything nested in it."""
        start = self._pos
        try:
            self._skip_item()
        except DecodeError:
            self._pos = start
            raise


def decode_array_header(decoder: Decoder, ctx: Any = None) -> Optional[int]:
    """Decode an array header, leaving the decoder at the first item."""
    return decoder.array()


def decode_map_header(decoder: Decoder, ctx: Any = None) -> Optional[int]:
    """Decode a map header, leaving the decoder at the first entry."""
    return decoder.map()