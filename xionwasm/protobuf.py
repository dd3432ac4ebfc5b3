"""A small protobuf wire codec and the messages the contracts exchange with the chain."""

import base64
from dataclasses import dataclass, field

from .errors import DecodeError

_U64 = 1 << 64


def encode_varint(value):
    """Encode an integer as a protobuf varint; negatives use 64-bit two's complement."""
    if value < 0:
        value += _U64
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_varint(data, pos):
    """Read a varint at ``pos``; return the value and the position after it."""
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise DecodeError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result & (_U64 - 1), pos
        shift += 7
        if shift >= 70:
            raise DecodeError("varint too long")


def iter_fields(data):
    """Yield (field number, wire type, value) for each field in a message."""
    data = bytes(data)
    pos = 0
    while pos < len(data):
        key, pos = decode_varint(data, pos)
        number, wire_type = key >> 3, key & 7
        if number == 0:
            raise DecodeError("invalid field number 0")
        if wire_type == 0:
            value, pos = decode_varint(data, pos)
        elif wire_type == 2:
            length, pos = decode_varint(data, pos)
            if pos + length > len(data):
                raise DecodeError("truncated length-delimited field")
            value = data[pos:pos + length]
            pos += length
        elif wire_type in (1, 5):
            size = 8 if wire_type == 1 else 4
            if pos + size > len(data):
                raise DecodeError("truncated fixed-width field")
            value = data[pos:pos + size]
            pos += size
        else:
            raise DecodeError(f"unsupported wire type {wire_type}")
        yield number, wire_type, value


def encode_field(number, value):
    """Encode one field: ints as varints, text, bytes and messages length-delimited."""
    if isinstance(value, (bool, int)):
        return encode_varint(number << 3) + encode_varint(int(value))
    if isinstance(value, str):
        payload = value.encode()
    elif isinstance(value, (bytes, bytearray)):
        payload = bytes(value)
    elif hasattr(value, "encode"):
        payload = value.encode()
    else:
        raise TypeError(f"cannot encode {type(value).__name__}")
    return encode_varint(number << 3 | 2) + encode_varint(len(payload)) + payload


def _encode_message(*fields):
    out = bytearray()
    for number, value in fields:
        values = value if isinstance(value, list) else [value]
        for item in values:
            if item is None or (not hasattr(item, "encode") or isinstance(item, str)) and item in ("", b"", 0):
                continue
            out += encode_field(number, item)
    return bytes(out)


def _text(value):
    try:
        return bytes(value).decode()
    except UnicodeDecodeError:
        raise DecodeError("invalid utf-8 in string field") from None


def _signed(value):
    return value - _U64 if value >= 1 << 63 else value


def _expect(wire_type, wanted, number):
    if wire_type != wanted:
        raise DecodeError(f"unexpected wire type {wire_type} for field {number}")


@dataclass
class Any:
    type_url: str = ""
    value: bytes = b""

    def encode(self):
        return _encode_message((1, self.type_url), (2, self.value))

    @classmethod
    def decode(cls, data):
        msg = cls()
        for number, wire_type, value in iter_fields(data):
            if number == 1:
                _expect(wire_type, 2, number)
                msg.type_url = _text(value)
            elif number == 2:
                _expect(wire_type, 2, number)
                msg.value = bytes(value)
        return msg

    def to_dict(self):
        return {"type_url": self.type_url, "value": base64.b64encode(self.value).decode()}

    @classmethod
    def from_dict(cls, data):
        return cls(type_url=data["type_url"], value=base64.b64decode(data["value"]))


@dataclass
class Timestamp:
    seconds: int = 0
    nanos: int = 0

    def encode(self):
        return _encode_message((1, self.seconds), (2, self.nanos))

    @classmethod
    def decode(cls, data):
        msg = cls()
        for number, wire_type, value in iter_fields(data):
            if number == 1:
                _expect(wire_type, 0, number)
                msg.seconds = _signed(value)
            elif number == 2:
                _expect(wire_type, 0, number)
                msg.nanos = _signed(value)
        return msg


@dataclass
class Coin:
    denom: str = ""
    amount: str = ""

    def encode(self):
        return _encode_message((1, self.denom), (2, self.amount))

    @classmethod
    def decode(cls, data):
        msg = cls()
        for number, wire_type, value in iter_fields(data):
            if number == 1:
                _expect(wire_type, 2, number)
                msg.denom = _text(value)
            elif number == 2:
                _expect(wire_type, 2, number)
                msg.amount = _text(value)
        return msg


@dataclass
class Grant:
    authorization: Any = None
    expiration: Timestamp = None

    def encode(self):
        return _encode_message((1, self.authorization), (2, self.expiration))

    @classmethod
    def decode(cls, data):
        msg = cls()
        for number, wire_type, value in iter_fields(data):
            if number == 1:
                _expect(wire_type, 2, number)
                msg.authorization = Any.decode(value)
            elif number == 2:
                _expect(wire_type, 2, number)
                msg.expiration = Timestamp.decode(value)
        return msg


@dataclass
class QueryGrantsRequest:
    granter: str = ""
    grantee: str = ""
    msg_type_url: str = ""

    def encode(self):
        return _encode_message((1, self.granter), (2, self.grantee), (3, self.msg_type_url))


@dataclass
class QueryGrantsResponse:
    grants: list = field(default_factory=list)

    def encode(self):
        return _encode_message((1, list(self.grants)))

    @classmethod
    def decode(cls, data):
        msg = cls()
        for number, wire_type, value in iter_fields(data):
            if number == 1:
                _expect(wire_type, 2, number)
                msg.grants.append(Grant.decode(value))
        return msg


@dataclass
class QueryAllowanceRequest:
    granter: str = ""
    grantee: str = ""

    def encode(self):
        return _encode_message((1, self.granter), (2, self.grantee))


@dataclass
class MsgGrantAllowance:
    granter: str = ""
    grantee: str = ""
    allowance: Any = None

    def encode(self):
        return _encode_message((1, self.granter), (2, self.grantee), (3, self.allowance))


@dataclass
class MsgRevokeAllowance:
    granter: str = ""
    grantee: str = ""

    def encode(self):
        return _encode_message((1, self.granter), (2, self.grantee))


@dataclass
class QueryValidateJwtRequest:
    aud: str = ""
    sub: str = ""
    sig_bytes: str = ""

    def encode(self):
        return _encode_message((1, self.aud), (2, self.sub), (3, self.sig_bytes))


@dataclass
class QueryWebAuthNVerifyRegisterRequest:
    addr: str = ""
    challenge: str = ""
    rp: str = ""
    data: bytes = b""

    def encode(self):
        return _encode_message(
            (1, self.addr), (2, self.challenge), (3, self.rp), (4, self.data)
        )


@dataclass
class QueryWebAuthNVerifyRegisterResponse:
    credential: bytes = b""

    def encode(self):
        return _encode_message((1, self.credential))

    @classmethod
    def decode(cls, data):
        msg = cls()
        for number, wire_type, value in iter_fields(data):
            if number == 1:
                _expect(wire_type, 2, number)
                msg.credential = bytes(value)
        return msg


@dataclass
class QueryWebAuthNVerifyAuthenticateRequest:
    addr: str = ""
    challenge: str = ""
    rp: str = ""
    credential: bytes = b""
    data: bytes = b""

    def encode(self):
        return _encode_message(
            (1, self.addr),
            (2, self.challenge),
            (3, self.rp),
            (4, self.credential),
            (5, self.data),
        )