"""Writing of encoded CBOR items to an asynchronous sink."""

from __future__ import annotations

import abc
import inspect
from typing import Any, Optional

from .encode import Encoder


async def _settle(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


class CborArrayWriter(abc.ABC):
    """Produces the items of an array written through a :class:`CborWriter`."""

    length: Optional[int] = None

    def write_begin_array(self, length: Optional[int], ctx: Any) -> None:
        """Record the array length, or None if it is indefinite."""
        self.length = length

    @abc.abstractmethod
    async def write_array_item(self, writer: "CborWriter", ctx: Any) -> None:
        """Write exactly one array item to ``writer``."""


class CborMapWriter(abc.ABC):
    """Produces the entries of a map written through a :class:`CborWriter`."""

    length: Optional[int] = None

    def write_begin_map(self, length: Optional[int], ctx: Any) -> None:
        """Record the entry count, or None if it is indefinite."""
        self.length = length

    @abc.abstractmethod
    async def write_map_item(self, writer: "CborWriter", ctx: Any) -> None:
        """Write exactly one key and value to ``writer``."""


class CborWriter:
    """Encodes CBOR items into a bounded buffer and writes them to a sink.

    The sink needs a ``write(data)`` method, which may be a coroutine, and
    optionally ``flush()`` or ``drain()``. Each encoded item must fit in
    ``buffer_size`` bytes.
    """

    def __init__(self, sink: Any, buffer_size: int) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be positive")
        self._sink = sink
        self._size = buffer_size

    async def write(self, value: Any, ctx: Any = None) -> int:
        """Encode ``value``, write it and return its size in bytes.

        A callable ``value`` is called with an :class:`Encoder` and ``ctx``
        and writes the item itself; anything else is encoded as a plain value.
        Raises EncodeError, before anything is written, if it does not fit.
        """
        encoder = Encoder(limit=self._size)
        if callable(value):
            value(encoder, ctx)
        else:
            encoder.value(value)
        data = encoder.getvalue()
        await _settle(self._sink.write(data))
        return len(data)

    async def flush(self) -> None:
        """Flush the sink, if it supports flushing."""
        flush = getattr(self._sink, "flush", None) or getattr(self._sink, "drain", None)
        if flush is not None:
            await _settle(flush())