import json

import pytest

from xionwasm import user_map
from xionwasm.errors import JsonError, NotFound, StdError
from xionwasm.host import Api, Deps, MessageInfo, mock_env


@pytest.fixture
def api():
    return Api(prefix="xion")


@pytest.fixture
def deps(api):
    return Deps(api=api)


@pytest.fixture
def env(api):
    return mock_env(api)


def update(deps, env, sender, value):
    return user_map.execute(deps, env, MessageInfo(sender), {"update": {"value": value}})


def test_instantiate_reports_owner(deps, env, api):
    owner = api.addr_make("owner")
    response = user_map.instantiate(deps, env, MessageInfo(owner), {})
    assert response.attributes == [("method", "instantiate"), ("owner", owner)]


def test_update_then_query_value(deps, env, api):
    alice = api.addr_make("alice")
    document = '{"name":"alice","age":30}'
    response = update(deps, env, alice, document)
    assert response.messages == [] and response.events == []
    raw = user_map.query(deps, env, {"get_value_by_user": {"address": alice}})
    assert json.loads(raw) == document


def test_update_overwrites(deps, env, api):
    alice = api.addr_make("alice")
    update(deps, env, alice, '{"v":1}')
    update(deps, env, alice, '{"v":2}')
    raw = user_map.query(deps, env, {"get_value_by_user": {"address": alice}})
    assert json.loads(raw) == '{"v":2}'


@pytest.mark.parametrize("bad", ["{not json", "", "NaN", '{"a":1'])
def test_invalid_json_rejected(deps, env, api, bad):
    alice = api.addr_make("alice")
    with pytest.raises(JsonError):
        update(deps, env, alice, bad)
    assert json.loads(user_map.query(deps, env, {"get_users": {}})) == []


def test_missing_user_raises(deps, env, api):
    with pytest.raises(NotFound):
        user_map.query(deps, env, {"get_value_by_user": {"address": api.addr_make("nobody")}})


def test_get_users_and_map_sorted(deps, env, api):
    users = [api.addr_make(name) for name in ("carol", "alice", "bob")]
    for index, user in enumerate(users):
        update(deps, env, user, json.dumps({"index": index}))
    listed = json.loads(user_map.query(deps, env, {"get_users": {}}))
    assert listed == sorted(users)
    pairs = json.loads(user_map.query(deps, env, {"get_map": {}}))
    assert [pair[0] for pair in pairs] == sorted(users)
    by_user = {pair[0]: json.loads(pair[1])["index"] for pair in pairs}
    assert by_user == {user: index for index, user in enumerate(users)}


def test_unknown_messages_raise(deps, env, api):
    info = MessageInfo(api.addr_make("alice"))
    with pytest.raises(StdError):
        user_map.execute(deps, env, info, {"delete": {}})
    with pytest.raises(StdError):
        user_map.query(deps, env, {"get_everything": {}})