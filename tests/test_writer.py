import pytest

from cborstream.decode import Decoder
from cborstream.encode import EncodeError
from cborstream.writer import CborArrayWriter, CborWriter


class AsyncSink:
    def __init__(self):
        self.data = bytearray()
        self.flushes = 0

    async def write(self, data):
        self.data += data

    async def flush(self):
        self.flushes += 1


class DrainSink:
    def __init__(self):
        self.data = bytearray()
        self.drains = 0

    def write(self, data):
        self.data += data

    async def drain(self):
        self.drains += 1


@pytest.mark.asyncio
async def test_write_array_wire_bytes():
    sink = AsyncSink()
    writer = CborWriter(sink, 16)
    size = await writer.write([1, 2, 3])
    assert bytes(sink.data) == bytes([0x83, 0x01, 0x02, 0x03])
    assert size == len(sink.data)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "value",
    [0, 23, 24, 1000, -1, -500, True, False, None, "wmbus", b"\x00\xff", [1, [2, 3]], {"a": 1}],
)
async def test_round_trip(value):
    sink = AsyncSink()
    writer = CborWriter(sink, 64)
    size = await writer.write(value)
    decoder = Decoder(sink.data)
    assert decoder.value() == value
    assert decoder.position == size == len(sink.data)


@pytest.mark.asyncio
async def test_item_filling_buffer_exactly():
    sink = AsyncSink()
    writer = CborWriter(sink, 1 + 22)
    size = await writer.write("wmbus-XXXXXXXXXXXXXXXX")
    assert size == 1 + 22
    assert Decoder(sink.data).str() == "wmbus-XXXXXXXXXXXXXXXX"


@pytest.mark.asyncio
async def test_item_too_large_writes_nothing():
    sink = AsyncSink()
    writer = CborWriter(sink, 22)
    with pytest.raises(EncodeError):
        await writer.write("wmbus-XXXXXXXXXXXXXXXX")
    assert sink.data == bytearray()


@pytest.mark.asyncio
async def test_consecutive_writes_are_concatenated():
    sink = AsyncSink()
    writer = CborWriter(sink, 16)
    sizes = [await writer.write(v) for v in ["a", 7, [False]]]
    decoder = Decoder(sink.data)
    assert [decoder.value() for _ in range(3)] == ["a", 7, [False]]
    assert sum(sizes) == len(sink.data)


@pytest.mark.asyncio
async def test_callable_value_receives_context():
    sink = AsyncSink()
    writer = CborWriter(sink, 32)

    def write_pair(encoder, ctx):
        encoder.array(2).str(ctx["name"]).unsigned(ctx["count"])

    await writer.write(write_pair, {"name": "wmbus", "count": 3})
    assert Decoder(sink.data).value() == ["wmbus", 3]


@pytest.mark.asyncio
async def test_flush_calls_sink_flush():
    sink = AsyncSink()
    writer = CborWriter(sink, 8)
    await writer.flush()
    await writer.flush()
    assert sink.flushes == 2


@pytest.mark.asyncio
async def test_sync_write_and_drain_sink():
    sink = DrainSink()
    writer = CborWriter(sink, 8)
    await writer.write([1, 2, 3])
    await writer.flush()
    assert bytes(sink.data) == bytes([0x83, 0x01, 0x02, 0x03])
    assert sink.drains == 1


class ListArrayWriter(CborArrayWriter):
    def __init__(self, items):
        self._items = iter(items)

    def write_begin_array(self, length, ctx):
        ctx.append(length)

    async def write_array_item(self, writer, ctx):
        await writer.write(next(self._items))


@pytest.mark.asyncio
async def test_array_writer_protocol():
    sink = AsyncSink()
    writer = CborWriter(sink, 8)
    items = [1, 2, 3]
    array_writer = ListArrayWriter(items)
    ctx = []
    await writer.write(lambda encoder, _: encoder.array(len(items)))
    array_writer.write_begin_array(len(items), ctx)
    for _ in items:
        await array_writer.write_array_item(writer, ctx)
    assert ctx == [3]
    assert Decoder(sink.data).value() == items


def test_buffer_size_must_be_positive():
    with pytest.raises(ValueError):
        CborWriter(AsyncSink(), 0)