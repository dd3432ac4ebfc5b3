import pytest

from xionwasm.errors import DecodeError
from xionwasm.protobuf import (
    Any,
    Coin,
    Grant,
    QueryGrantsResponse,
    QueryWebAuthNVerifyRegisterResponse,
    Timestamp,
    decode_varint,
    encode_field,
    encode_varint,
    iter_fields,
)


def test_varint_known_encoding():
    assert encode_varint(300) == b"\xac\x02"


@pytest.mark.parametrize("value", [0, 1, 127, 128, 2**32, 2**63 - 1])
def test_varint_round_trip(value):
    data = encode_varint(value)
    assert decode_varint(data, 0) == (value, len(data))


def test_negative_varint_is_ten_bytes():
    assert len(encode_varint(-1)) == 10


def test_truncated_varint_raises():
    with pytest.raises(DecodeError):
        decode_varint(b"\x80", 0)


def test_any_wire_bytes():
    assert Any("a", b"b").encode() == b"\x0a\x01a\x12\x01b"


def test_any_round_trip_and_dict():
    msg = Any("/cosmos.feegrant.v1beta1.BasicAllowance", b"\x00\x01")
    assert Any.decode(msg.encode()) == msg
    assert Any.from_dict(msg.to_dict()) == msg


def test_defaults_are_omitted():
    assert Any().encode() == b""
    assert Timestamp().encode() == b""


def test_timestamp_negative_round_trip():
    ts = Timestamp(seconds=-5, nanos=12)
    assert Timestamp.decode(ts.encode()) == ts


def test_coin_round_trip():
    coin = Coin("uxion", "100")
    assert Coin.decode(coin.encode()) == coin


def test_grants_response_round_trip():
    resp = QueryGrantsResponse(
        grants=[Grant(Any("/x", b"1"), Timestamp(10, 0)), Grant(Any("/y", b""))]
    )
    decoded = QueryGrantsResponse.decode(resp.encode())
    assert decoded == resp


def test_iter_fields_and_encode_field():
    data = encode_field(1, "hi") + encode_field(2, 7)
    assert list(iter_fields(data)) == [(1, 2, b"hi"), (2, 0, 7)]


def test_iter_fields_truncated_length():
    with pytest.raises(DecodeError):
        list(iter_fields(b"\x0a\x05ab"))


def test_register_response_round_trip():
    msg = QueryWebAuthNVerifyRegisterResponse(credential=b"true")
    assert QueryWebAuthNVerifyRegisterResponse.decode(msg.encode()).credential == b"true"