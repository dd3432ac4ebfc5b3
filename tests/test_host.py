import json

import pytest

from xionwasm import host
from xionwasm.errors import NotFound, StdError


def test_map_round_trip_and_order():
    storage = host.Storage()
    m = host.Map("authenticators", key_type=int)
    m.save(storage, 5, {"a": 1})
    m.save(storage, 0, {"b": 2})
    assert m.load(storage, 5) == {"a": 1}
    assert m.keys(storage) == [0, 5]
    assert m.items(storage) == [(0, {"b": 2}), (5, {"a": 1})]
    assert m.has(storage, 0)
    m.remove(storage, 0)
    assert not m.has(storage, 0)
    assert m.may_load(storage, 0) is None
    with pytest.raises(NotFound):
        m.load(storage, 0)


def test_maps_do_not_overlap():
    storage = host.Storage()
    a = host.Map("a")
    b = host.Map("ab")
    a.save(storage, "bx", "one")
    b.save(storage, "x", "two")
    assert a.keys(storage) == ["bx"]
    assert b.keys(storage) == ["x"]


def test_map_encode_decode_hooks():
    storage = host.Storage()
    m = host.Map("m", encode=lambda v: [v], decode=lambda v: v[0])
    m.save(storage, "k", "v")
    assert m.load(storage, "k") == "v"


def test_item_round_trip():
    storage = host.Storage()
    item = host.Item("admin")
    assert item.may_load(storage) is None
    item.save(storage, "addr")
    assert item.load(storage) == "addr"
    item.remove(storage)
    with pytest.raises(NotFound):
        item.load(storage)


def test_response_builders():
    resp = host.Response().add_attribute("method", "before_tx").add_event(
        host.Event("e").add_attributes([("k", 1)])
    ).add_messages([host.AnyMsg("/t", b"")])
    assert resp.attributes == [("method", "before_tx")]
    assert resp.events[0].attributes == [("k", "1")]
    assert len(resp.messages) == 1


def test_api_addresses():
    api = host.Api("xion")
    addr = api.addr_make("someone")
    assert addr.startswith("xion1")
    assert api.addr_validate(addr) == addr
    with pytest.raises(StdError):
        host.Api("osmo").addr_validate(addr)
    with pytest.raises(StdError):
        api.addr_validate(addr.upper())


def test_mock_env_uses_api_prefix():
    api = host.Api("xion")
    env = host.mock_env(api)
    assert api.addr_validate(env.contract_address) == env.contract_address


def test_querier():
    q = host.Querier()
    q.register_grpc("/p", lambda data: data[::-1])
    assert q.query_grpc("/p", b"ab") == b"ba"
    with pytest.raises(StdError):
        q.query_grpc("/missing", b"")


def test_contract_version():
    storage = host.Storage()
    host.set_contract_version(storage, "account", "0.1.1")
    assert host.get_contract_version(storage) == {"contract": "account", "version": "0.1.1"}


def test_to_json_binary_compact():
    data = host.to_json_binary({"x": [1, 2], "b": b"\x01\x02"})
    assert b" " not in data
    decoded = json.loads(data)
    assert decoded["x"] == [1, 2]
    import base64

    assert base64.b64decode(decoded["b"]) == b"\x01\x02"