import pytest

from cborstream.decode import Decoder
from cborstream.encode import EncodeError, Encoder, encode

ITEM = "wmbus-XXXXXXXXXXXXXXXX"


def test_encode_list_wire_bytes():
    assert encode([1, 2, 3]) == bytes([0x83, 0x01, 0x02, 0x03])


def test_manual_array_matches_value():
    enc = Encoder().array(3).unsigned(1).unsigned(2).unsigned(3)
    assert enc.getvalue() == bytes([0x83, 0x01, 0x02, 0x03])


def test_indefinite_array_wire_bytes():
    enc = Encoder().begin_array().unsigned(1).unsigned(2).unsigned(3).end()
    assert enc.getvalue() == bytes([0x9F, 0x01, 0x02, 0x03, 0xFF])


def test_false_wire_byte():
    assert encode(False) == bytes([0xF4])


def test_large_array_header():
    assert Encoder().array(24).getvalue() == bytes([0x98, 0x18])


def test_text_header():
    assert encode(ITEM) == b"\x76" + ITEM.encode()


@pytest.mark.parametrize("number", [0, 23, 24, 255, 256, 65535, 65536, 2**32, 2**64 - 1, -1, -(2**64)])
def test_int_round_trip(number):
    assert Decoder(encode(number)).int() == number


def test_unsigned_rejects_negative():
    with pytest.raises(EncodeError):
        Encoder().unsigned(-1)


def test_unsigned_rejects_too_large():
    with pytest.raises(EncodeError):
        Encoder().unsigned(2**64)


def test_int_rejects_too_small():
    with pytest.raises(EncodeError):
        Encoder().int(-(2**64) - 1)


def test_limit_fits_exactly():
    assert Encoder(limit=4).value([1, 2, 3]).getvalue() == bytes([0x83, 0x01, 0x02, 0x03])


def test_limit_exceeded():
    with pytest.raises(EncodeError):
        Encoder(limit=3).value([1, 2, 3])


def test_negative_limit_rejected():
    with pytest.raises(ValueError):
        Encoder(limit=-1)


def test_unsupported_type():
    with pytest.raises(TypeError):
        encode(object())


def test_nested_round_trip():
    value = {"a": [1, -2, None, True, b"\x00\x01"], "b": {"c": 2.5}}
    assert Decoder(encode(value)).value() == value


def test_tuple_encodes_as_array():
    assert encode((1, 2, 3)) == encode([1, 2, 3])


def test_indefinite_map_round_trip():
    enc = Encoder().begin_map().str("a").unsigned(1).end()
    assert Decoder(enc.getvalue()).value() == {"a": 1}


def test_bytes_round_trip():
    assert Decoder(encode(bytearray(b"abc"))).bytes() == b"abc"


def test_float_round_trip():
    assert Decoder(encode(-0.125)).value() == -0.125


def test_len_tracks_output():
    enc = Encoder().str(ITEM).null()
    assert len(enc) == len(enc.getvalue())
    assert enc.getvalue() == encode(ITEM) + encode(None)


def test_encode_matches_encoder():
    value = [ITEM, 7, {"k": False}]
    assert encode(value) == Encoder().value(value).getvalue()