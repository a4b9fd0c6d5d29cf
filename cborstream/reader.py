"""Incremental reading of CBOR items from an asynchronous byte source."""

from __future__ import annotations

import abc
from typing import Any, Callable, Optional, Protocol

from .decode import BREAK, Decoder, EndOfInput, decode_array_header, decode_map_header

DecodeFunction = Callable[[Decoder, Any], Any]

_END = object()


class AsyncSource(Protocol):
    """Anything with an awaitable ``read(n)`` that returns at most ``n`` bytes, or b"" at the end."""

    async def read(self, n: int) -> bytes: ...


class CborReaderError(Exception):
    """Base class for errors raised while reading from the stream."""


class UnexpectedEofError(CborReaderError):
    """Raised when the source ends in the middle of a data item."""


class BufferTooSmallError(CborReaderError):
    """Raised when a single data item does not fit in the reader's buffer."""


def _decode_value(decoder: Decoder, ctx: Any) -> Any:
    return decoder.value()


class CborArrayReader(abc.ABC):
    """Receives the items of an array read with :meth:`CborReader.array`."""

    length: Optional[int] = None

    def read_begin_array(self, length: Optional[int], ctx: Any) -> None:
        """Record the array length, or None if it is indefinite."""
        self.length = length

    @abc.abstractmethod
    async def read_array_item(self, reader: "CborReader", ctx: Any) -> None:
        """Read exactly one array item from ``reader``."""


class CborMapReader(abc.ABC):
    """Receives the entries of a map read with :meth:`CborReader.map`."""

    length: Optional[int] = None

    def read_begin_map(self, length: Optional[int], ctx: Any) -> None:
        """Record the entry count, or None if it is indefinite."""
        self.length = length

    @abc.abstractmethod
    async def read_map_item(self, reader: "CborReader", ctx: Any) -> None:
        """Read exactly one key and value from ``reader``."""


class CborReader:
    """Reads CBOR items one by one from an asynchronous source.

    At most ``buffer_size`` bytes are held at a time, so the buffer must be
    large enough for the largest single item read at once.
    """

    def __init__(self, source: AsyncSource, buffer_size: int) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be positive")
        self._source = source
        self._size = buffer_size
        self._buf = bytearray()
        self._decoded = 0

    def _compact(self) -> None:
        del self._buf[: self._decoded]
        self._decoded = 0

    async def _fill(self) -> int:
        space = self._size - len(self._buf)
        chunk = await self._source.read(space)
        if not chunk:
            if self._buf:
                raise UnexpectedEofError("source ended inside a data item")
            return 0
        if len(chunk) > space:
            raise ValueError(f"source returned {len(chunk)} bytes, {space} were requested")
        self._buf += chunk
        return len(chunk)

    async def _read_item(self, decode: DecodeFunction, ctx: Any) -> Any:
        while True:
            decoder = Decoder(self._buf[self._decoded :])
            try:
                value = decode(decoder, ctx)
            except EndOfInput:
                pass
            else:
                self._decoded += decoder.position
                return value
            if self._decoded == 0 and len(self._buf) == self._size:
                raise BufferTooSmallError(
                    f"a data item does not fit in {self._size} bytes"
                )
            self._compact()
            if await self._fill() == 0:
                return _END

    async def _peek(self) -> Optional[int]:
        if self._decoded >= len(self._buf):
            self._compact()
            if await self._fill() == 0:
                return None
        return self._buf[self._decoded]

    async def read(self, decode: Optional[DecodeFunction] = None, ctx: Any = None) -> Any:
        """Read and decode the next item.

        ``decode`` is called with a :class:`Decoder` over the buffered bytes
        and ``ctx``; by default the item is decoded into Python objects.
        Returns None when the source is exhausted between items.
        """
        item = await self._read_item(decode or _decode_value, ctx)
        return None if item is _END else item

    async def _read_container(self, header, begin, read_item, ctx: Any) -> int:
        length = await self._read_item(header, ctx)
        if length is _END:
            return 0
        begin(length, ctx)
        if length is not None:
            for _ in range(length):
                await read_item(self, ctx)
            return length
        count = 0
        while True:
            byte = await self._peek()
            if byte is None:
                raise UnexpectedEofError("source ended before the break of an indefinite item")
            if byte == BREAK:
                self._decoded += 1
                return count
            await read_item(self, ctx)
            count += 1

    async def array(self, array_reader: CborArrayReader, ctx: Any = None) -> int:
        """Read an array through ``array_reader`` and return the number of items."""
        return await self._read_container(
            decode_array_header,
            array_reader.read_begin_array,
            array_reader.read_array_item,
            ctx,
        )

    async def map(self, map_reader: CborMapReader, ctx: Any = None) -> int:
        """Read a map through ``map_reader`` and return the number of entries."""
        return await self._read_container(
            decode_map_header,
            map_reader.read_begin_map,
            map_reader.read_map_item,
            ctx,
        )


class ListArrayReader(CborArrayReader):
    """Collects the decoded items of an array into a list."""

    def __init__(self, items: Optional[list] = None, decode: Optional[DecodeFunction] = None) -> None:
        self.items = [] if items is None else items
        self._decode = decode or _decode_value
        self.length = None

    def read_begin_array(self, length: Optional[int], ctx: Any) -> None:
        """Record the announced array length, or None if it is indefinite."""
        self.length = length

    async def read_array_item(self, reader: CborReader, ctx: Any) -> None:
        item = await reader._read_item(self._decode, ctx)
        if item is not _END:
            self.items.append(item)


class MapEntryReader(CborMapReader):
    """Reads map entries with ``decode_entry(decoder, ctx)``, which decodes one key and value."""

    def __init__(self, decode_entry: Callable[[Decoder, Any], Any]) -> None:
        self._decode_entry = decode_entry
        self.length = None

    def read_begin_map(self, length: Optional[int], ctx: Any) -> None:
        """Record the announced entry count, or None if it is indefinite."""
        self.length = length

    async def read_map_item(self, reader: CborReader, ctx: Any) -> None:
        await reader._read_item(self._decode_entry, ctx)