"""A contract that stores one JSON document per user address."""

import json

from .errors import JsonError, StdError
from .host import Map, Response, to_json_binary

USER_MAP = Map("user_map")


def _variant(msg):
    if not isinstance(msg, dict) or len(msg) != 1:
        raise StdError("invalid message: expected a single variant")
    return next(iter(msg.items()))


def _reject_constant(name):
    raise ValueError(f"invalid json constant {name}")


def _validate_json(value):
    try:
        json.loads(value, parse_constant=_reject_constant)
    except ValueError as err:
        raise JsonError(str(err)) from None


def instantiate(deps, env, info, msg):
    return (
        Response()
        .add_attribute("method", "instantiate")
        .add_attribute("owner", info.sender)
    )


def execute(deps, env, info, msg):
    """Store the sender's value after checking it is valid JSON."""
    name, body = _variant(msg)
    if name == "update":
        value = body.get("value") if isinstance(body, dict) else None
        if not isinstance(value, str):
            raise StdError("missing field `value`")
        _validate_json(value)
        USER_MAP.save(deps.storage, info.sender, value)
        return Response()
    raise StdError(f"unknown execute message {name}")


def query(deps, env, msg):
    """Answer a query with JSON bytes."""
    name, body = _variant(msg)
    if name == "get_value_by_user":
        address = body.get("address") if isinstance(body, dict) else None
        if not isinstance(address, str):
            raise StdError("missing field `address`")
        return to_json_binary(USER_MAP.load(deps.storage, address))
    if name == "get_users":
        return to_json_binary(USER_MAP.keys(deps.storage))
    if name == "get_map":
        return to_json_binary([[key, value] for key, value in USER_MAP.items(deps.storage)])
    raise StdError(f"unknown query message {name}")