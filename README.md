# cborstream

Async CBOR reading and writing over byte streams. Both work through a working buffer of fixed size, so memory use stays bounded however long the stream is.

A `CborReader` pulls bytes from an async source into its buffer and decodes one item at a time. The buffer only has to hold the largest item decoded in one go, not the whole document. A `CborWriter` encodes one value into a buffer of bounded size and then writes it to a sink.

The package has no dependencies outside the standard library.

## Installation

```
pip install cborstream
```

To install what the tests need:

```
pip install "cborstream[test]"
```

## Decoding and encoding in memory

`cborstream.decode.Decoder` walks CBOR held in memory. `cborstream.encode.Encoder` builds it.

```python
from cborstream.decode import Decoder, DataType
from cborstream.encode import Encoder, encode

data = encode([1, 2, 3])
assert Decoder(data).value() == [1, 2, 3]

enc = Encoder(limit=16)
enc.array(2).bool(False).str("hi")
payload = enc.getvalue()

d = Decoder(payload)
assert d.datatype() is DataType.ARRAY
assert d.array() == 2
assert d.bool() is False
assert d.str() == "hi"
```

`Decoder` offers `datatype`, `unsigned`, `int`, `bool`, `null`, `str`, `bytes`, `array`, `map`, `value` and `skip`. It also has a `position` property, which can be read and set, and a `data` property. `array` and `map` consume only the header and return its length, or `None` for an indefinite length. `value` decodes a whole item into Python objects: arrays become lists, maps become dicts, null and undefined become `None`, and tags are dropped so that only their content is returned. A method that raises leaves the position where it was.

`decode_array_header(decoder, ctx)` and `decode_map_header(decoder, ctx)` decode a header in the form that `CborReader.read` expects.

`Encoder` offers `unsigned`, `int`, `bool`, `null`, `float`, `str`, `bytes`, `array(length)`, `map(length)`, `begin_array`, `begin_map`, `end` and `value`. Each of them returns the encoder itself. `value` handles `None`, `bool`, `int`, `float`, `str`, bytes-like objects, lists, tuples and dicts, and raises `TypeError` for anything else. `encode(value)` is shorthand for encoding a single value with no limit.

Decoding errors derive from `DecodeError`. Running out of input raises `EndOfInput`, and an item of the wrong type raises `TypeMismatch`. Going past an encoder's `limit`, or passing an integer out of range, raises `EncodeError`.

## Streaming reads

```python
from cborstream.reader import CborReader, ListArrayReader

reader = CborReader(source, buffer_size=64)
first = await reader.read(lambda d, ctx: d.bool())

items = []
count = await reader.array(ListArrayReader(items, lambda d, ctx: d.unsigned()))
```

`source` can be any object with an awaitable `read(n)` that returns at most `n` bytes, and `b""` at the end of the stream.

`read(decode=None, ctx=None)` calls `decode(decoder, ctx)` on the bytes held in the buffer. When the function raises `EndOfInput`, the reader fetches more bytes and tries again. Without a `decode` function the item is decoded with `Decoder.value`. `read` returns `None` when the stream ends cleanly between items. A decoded null also comes back as `None`.

`array(array_reader, ctx=None)` and `map(map_reader, ctx=None)` take definite and indefinite lengths alike. They return the number of items or entries, and `0` if the stream had already ended. To handle items yourself, subclass `CborArrayReader` (implement `read_array_item`) or `CborMapReader` (implement `read_map_item`). The `begin` hooks store the announced length in `length`. Whatever you pass as `ctx` is handed to every callback.

Two readers come ready to use:

- `ListArrayReader(items=None, decode=None)` appends each decoded item to `items`.
- `MapEntryReader(decode_entry)` calls `decode_entry(decoder, ctx)` once per entry. That function decodes one key and its value, and typically stores them in `ctx`.

Streaming errors derive from `CborReaderError`:

- `UnexpectedEofError`: the stream ended in the middle of an item, or before the break of an indefinite-length array or map.
- `BufferTooSmallError`: a single item does not fit in `buffer_size` bytes.

A `buffer_size` below 1, or a source that returns more bytes than it was asked for, raises `ValueError`.

## Streaming writes

```python
from cborstream.writer import CborWriter

writer = CborWriter(sink, buffer_size=64)
size = await writer.write([1, 2, 3])
size = await writer.write(lambda enc, ctx: enc.array(1).str("x"))
await writer.flush()
```

`sink` needs a `write(data)` method, which may be a plain function or a coroutine. `write(value, ctx=None)` encodes a plain value with `Encoder.value`. If `value` is callable, it is instead called with an `Encoder` and `ctx` and writes the item itself. The method returns the number of bytes written. If the encoded item is larger than `buffer_size`, it raises `EncodeError` before anything reaches the sink. `flush()` calls the sink's `flush()`, or `drain()` if there is no `flush`, and does nothing if the sink has neither.

`CborArrayWriter` and `CborMapWriter` are base classes for objects that write a collection item by item. Implement `write_array_item` or `write_map_item`. `CborWriter` does not drive them itself: your code calls their methods.

## What it does not do

This is a library only. It has no command-line tool. It does not keep tag numbers when decoding, and `Encoder` writes no tags. Floats are always encoded in double precision.