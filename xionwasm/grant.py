"""Grant and fee configuration for the treasury, and fee-allowance formatting."""

from dataclasses import dataclass

from .errors import AllowanceUnset, DecodeError, InvalidAllowanceType, StdError
from .protobuf import Any, encode_field, encode_varint, iter_fields

BASIC_ALLOWANCE = "/cosmos.feegrant.v1beta1.BasicAllowance"
PERIODIC_ALLOWANCE = "/cosmos.feegrant.v1beta1.PeriodicAllowance"
ALLOWED_MSG_ALLOWANCE = "/cosmos.feegrant.v1beta1.AllowedMsgAllowance"
AUTHZ_ALLOWANCE = "/xion.v1.AuthzAllowance"
CONTRACTS_ALLOWANCE = "/xion.v1.ContractsAllowance"
MULTI_ANY_ALLOWANCE = "/xion.v1.MultiAnyAllowance"

_U32_MAX = (1 << 32) - 1


def _require(data, key):
    try:
        return data[key]
    except (KeyError, TypeError):
        raise StdError(f"missing field `{key}`") from None


def _as_any(value):
    if isinstance(value, Any):
        return value
    if not isinstance(value, dict):
        raise StdError("invalid any: expected an object")
    return Any.from_dict(value)


@dataclass
class GrantConfig:
    """An authz grant the treasury expects a user to have given."""

    description: str
    authorization: Any
    optional: bool = False

    def to_dict(self):
        return {
            "description": self.description,
            "authorization": self.authorization.to_dict(),
            "optional": self.optional,
        }

    @classmethod
    def from_dict(cls, data):
        optional = _require(data, "optional")
        if not isinstance(optional, bool):
            raise StdError("invalid type for `optional`: expected a boolean")
        return cls(
            description=str(_require(data, "description")),
            authorization=_as_any(_require(data, "authorization")),
            optional=optional,
        )


@dataclass
class FeeConfig:
    """The fee allowance the treasury grants, with an optional lifetime in seconds."""

    description: str
    allowance: Any = None
    expiration: int = None

    def to_dict(self):
        return {
            "description": self.description,
            "allowance": None if self.allowance is None else self.allowance.to_dict(),
            "expiration": self.expiration,
        }

    @classmethod
    def from_dict(cls, data):
        allowance = data.get("allowance") if isinstance(data, dict) else None
        expiration = data.get("expiration") if isinstance(data, dict) else None
        if expiration is not None:
            if isinstance(expiration, bool) or not isinstance(expiration, int):
                raise StdError("invalid type for `expiration`: expected u32")
            if not 0 <= expiration <= _U32_MAX:
                raise StdError(f"expiration {expiration} out of range for u32")
        return cls(
            description=str(_require(data, "description")),
            allowance=None if allowance is None else _as_any(allowance),
            expiration=expiration,
        )


def _raw_field(number, wire_type, value):
    key = encode_varint(number << 3 | wire_type)
    if wire_type == 0:
        return key + encode_varint(value)
    if wire_type == 2:
        return key + encode_varint(len(value)) + value
    return key + value


def _last_message(entries, number):
    found = None
    for field_number, wire_type, value in entries:
        if field_number == number:
            if wire_type != 2:
                raise DecodeError(f"unexpected wire type {wire_type} for field {number}")
            found = value
    return found


def _rebuild(entries, replacements):
    """Re-encode fields in ascending field order, swapping in replaced fields."""
    grouped = {}
    for number, wire_type, value in entries:
        if number not in replacements:
            grouped.setdefault(number, []).append(_raw_field(number, wire_type, value))
    for number, chunks in replacements.items():
        grouped[number] = list(chunks)
    return b"".join(chunk for number in sorted(grouped) for chunk in grouped[number])


def _with_expiration(basic_bytes, expiration):
    return _rebuild(list(iter_fields(basic_bytes)), {2: [encode_field(2, expiration)]})


def format_allowance(allowance, granter, grantee, expiration):
    """Apply an expiration (and the authz grantee) throughout a nested fee allowance."""
    type_url = allowance.type_url

    if type_url == BASIC_ALLOWANCE:
        if expiration is None:
            return allowance
        value = _with_expiration(allowance.value, expiration)

    elif type_url == PERIODIC_ALLOWANCE:
        if expiration is None:
            return allowance
        entries = list(iter_fields(allowance.value))
        basic = _last_message(entries, 1)
        if basic is None:
            raise AllowanceUnset()
        value = _rebuild(entries, {1: [encode_field(1, _with_expiration(basic, expiration))]})

    elif type_url in (ALLOWED_MSG_ALLOWANCE, AUTHZ_ALLOWANCE, CONTRACTS_ALLOWANCE):
        entries = list(iter_fields(allowance.value))
        inner = _last_message(entries, 1)
        if inner is None:
            raise AllowanceUnset()
        formatted = format_allowance(Any.decode(inner), granter, grantee, expiration)
        replacements = {1: [encode_field(1, formatted)]}
        if type_url == AUTHZ_ALLOWANCE:
            replacements[2] = [encode_field(2, grantee)] if grantee else []
        value = _rebuild(entries, replacements)

    elif type_url == MULTI_ANY_ALLOWANCE:
        entries = list(iter_fields(allowance.value))
        formatted = []
        for number, wire_type, raw in entries:
            if number != 1:
                continue
            if wire_type != 2:
                raise DecodeError(f"unexpected wire type {wire_type} for field 1")
            inner = format_allowance(Any.decode(raw), granter, grantee, expiration)
            formatted.append(encode_field(1, inner))
        value = _rebuild(entries, {1: formatted})

    else:
        raise InvalidAllowanceType(type_url)

    return Any(type_url=type_url, value=value)