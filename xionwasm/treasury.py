"""The treasury contract: pays transaction fees for users who granted the expected permissions."""

import base64
import json
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from .errors import (
    AuthzGrantMismatch,
    AuthzGrantNotFound,
    ConfigurationMismatch,
    ContractError,
    GrantConfigNotFound,
    JsonError,
    StdError,
    Unauthorized,
    URLParseError,
)
from .grant import FeeConfig, GrantConfig, format_allowance
from .host import (
    AnyMsg,
    BankSend,
    Event,
    Item,
    Map,
    Response,
    WasmMigrate,
    set_contract_version,
    to_json_binary,
)
from .protobuf import (
    Any,
    Coin,
    MsgGrantAllowance,
    MsgRevokeAllowance,
    QueryAllowanceRequest,
    QueryGrantsRequest,
    QueryGrantsResponse,
    Timestamp,
)

CONTRACT_NAME = "treasury"
CONTRACT_VERSION = "0.1.0"

AUTHZ_GRANTS_PATH = "/cosmos.authz.v1beta1.Query/Grants"
FEEGRANT_ALLOWANCE_PATH = "/cosmos.feegrant.v1beta1.Query/Allowance"
MSG_GRANT_ALLOWANCE = "/cosmos.feegrant.v1beta1.MsgGrantAllowance"
MSG_REVOKE_ALLOWANCE = "/cosmos.feegrant.v1beta1.MsgRevokeAllowance"

_NANOS_PER_SECOND = 1_000_000_000
_SPECIAL_SCHEMES = {"http", "https", "ws", "wss", "ftp"}
_SCHEME = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*:")


def _require(data, key):
    try:
        return data[key]
    except (KeyError, TypeError):
        raise StdError(f"missing field `{key}`") from None


@dataclass
class Params:
    """Display settings shown to users of the treasury."""

    redirect_url: str
    icon_url: str
    metadata: str

    def to_dict(self):
        return {
            "redirect_url": self.redirect_url,
            "icon_url": self.icon_url,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            redirect_url=str(_require(data, "redirect_url")),
            icon_url=str(_require(data, "icon_url")),
            metadata=str(_require(data, "metadata")),
        )


GRANT_CONFIGS = Map("grant_configs", decode=GrantConfig.from_dict)
FEE_CONFIG = Item("fee_config", decode=FeeConfig.from_dict)
ADMIN = Item("admin")
PENDING_ADMIN = Item("pending_admin")
PARAMS = Item("params", decode=Params.from_dict)


def _variant(msg):
    if not isinstance(msg, dict) or len(msg) != 1:
        raise StdError("invalid message: expected a single variant")
    return next(iter(msg.items()))


def _as_grant_config(value):
    return value if isinstance(value, GrantConfig) else GrantConfig.from_dict(value)


def _as_fee_config(value):
    return value if isinstance(value, FeeConfig) else FeeConfig.from_dict(value)


def _as_params(value):
    return value if isinstance(value, Params) else Params.from_dict(value)


def _as_coin(value):
    if isinstance(value, Coin):
        return value
    return Coin(denom=str(_require(value, "denom")), amount=str(_require(value, "amount")))


def _as_binary(value):
    if isinstance(value, str):
        return base64.b64decode(value)
    return bytes(value)


def _assert_admin(deps, info):
    admin = ADMIN.load(deps.storage)
    if admin != info.sender:
        raise Unauthorized()
    return admin


def _parse_url(url):
    text = url.strip(" \t\n\r\x00")
    if not _SCHEME.match(text):
        raise URLParseError(f"relative URL without a base: {url!r}")
    try:
        parts = urlsplit(text)
        parts.port
    except ValueError as err:
        raise URLParseError(f"invalid url {url!r}: {err}") from None
    if parts.scheme.lower() in _SPECIAL_SCHEMES and not parts.hostname:
        raise URLParseError(f"empty host: {url!r}")


def _reject_constant(name):
    raise ValueError(f"invalid json constant {name}")


def instantiate(deps, env, info, msg):
    """Record the version, validate the admin and store the initial configuration."""
    set_contract_version(deps.storage, CONTRACT_NAME, CONTRACT_VERSION)
    admin_value = msg.get("admin")
    if admin_value is None:
        raise Unauthorized()
    admin_addr = deps.api.addr_validate(admin_value)
    return init(
        deps,
        info,
        admin_addr,
        list(_require(msg, "type_urls")),
        [_as_grant_config(c) for c in _require(msg, "grant_configs")],
        _as_fee_config(_require(msg, "fee_config")),
        _as_params(_require(msg, "params")),
    )


def execute(deps, env, info, msg):
    """Dispatch an execute message."""
    name, body = _variant(msg)
    if name == "deploy_fee_grant":
        return deploy_fee_grant(
            deps, env, _require(body, "authz_granter"), _require(body, "authz_grantee")
        )
    if name == "propose_admin":
        return propose_admin(deps, info, str(_require(body, "new_admin")))
    if name == "accept_admin":
        return accept_admin(deps, info)
    if name == "cancel_proposed_admin":
        return cancel_proposed_admin(deps, info)
    if name == "update_grant_config":
        return update_grant_config(
            deps,
            info,
            _require(body, "msg_type_url"),
            _as_grant_config(_require(body, "grant_config")),
        )
    if name == "remove_grant_config":
        return remove_grant_config(deps, info, _require(body, "msg_type_url"))
    if name == "update_fee_config":
        return update_fee_config(deps, info, _as_fee_config(_require(body, "fee_config")))
    if name == "revoke_allowance":
        return revoke_allowance(deps, env, info, _require(body, "grantee"))
    if name == "update_params":
        return update_params(deps, info, _as_params(_require(body, "params")))
    if name == "withdraw":
        return withdraw_coins(deps, info, [_as_coin(c) for c in _require(body, "coins")])
    if name == "migrate":
        return migrate_contract(
            deps,
            env,
            info,
            int(_require(body, "new_code_id")),
            _as_binary(_require(body, "migrate_msg")),
        )
    raise StdError(f"unknown execute message {name}")


def query(deps, env, msg):
    """Answer a query with JSON bytes."""
    name, body = _variant(msg)
    if name == "grant_config_by_type_url":
        return to_json_binary(grant_config_by_type_url(deps.storage, _require(body, "msg_type_url")))
    if name == "grant_config_type_urls":
        return to_json_binary(grant_config_type_urls(deps.storage))
    if name == "fee_config":
        return to_json_binary(fee_config(deps.storage))
    if name == "admin":
        return to_json_binary(admin(deps.storage))
    if name == "pending_admin":
        return to_json_binary(pending_admin(deps.storage))
    if name == "params":
        return to_json_binary(params(deps.storage))
    raise StdError(f"unknown query message {name}")


def migrate(deps, env, msg):
    """No state migrations are needed."""
    return Response()


def init(deps, info, admin, type_urls, grant_configs, fee_config, params):
    treasury_admin = info.sender if admin is None else admin
    ADMIN.save(deps.storage, treasury_admin)

    if len(type_urls) != len(grant_configs):
        raise ConfigurationMismatch()
    for type_url, config in zip(type_urls, grant_configs):
        GRANT_CONFIGS.save(deps.storage, type_url, config)

    FEE_CONFIG.save(deps.storage, fee_config)

    validate_params(params)
    PARAMS.save(deps.storage, params)

    return Response().add_event(
        Event("create_treasury_instance").add_attributes([("admin", treasury_admin)])
    )


def propose_admin(deps, info, new_admin):
    current = _assert_admin(deps, info)
    validated = deps.api.addr_validate(new_admin)
    PENDING_ADMIN.save(deps.storage, validated)
    return Response().add_event(
        Event("proposed_new_admin").add_attributes(
            [("proposed_admin", validated), ("proposer", current)]
        )
    )


def accept_admin(deps, info):
    pending = PENDING_ADMIN.load(deps.storage)
    if pending != info.sender:
        raise Unauthorized()
    ADMIN.save(deps.storage, pending)
    PENDING_ADMIN.remove(deps.storage)
    return Response().add_event(
        Event("accepted_new_admin").add_attributes([("new_admin", pending)])
    )


def cancel_proposed_admin(deps, info):
    _assert_admin(deps, info)
    PENDING_ADMIN.remove(deps.storage)
    return Response().add_event(
        Event("cancelled_proposed_admin").add_attribute("action", "cancel_proposed_admin")
    )


def migrate_contract(deps, env, info, new_code_id, migrate_msg):
    """Ask the chain to migrate this contract; it must be its own wasm admin."""
    current = _assert_admin(deps, info)
    message = WasmMigrate(
        contract_addr=env.contract_address, new_code_id=new_code_id, msg=bytes(migrate_msg)
    )
    return (
        Response()
        .add_event(
            Event("migrate_treasury_instance").add_attributes(
                [("new_code_id", str(new_code_id)), ("admin", current)]
            )
        )
        .add_message(message)
    )


def update_grant_config(deps, info, msg_type_url, grant_config):
    _assert_admin(deps, info)
    existed = GRANT_CONFIGS.has(deps.storage, msg_type_url)
    GRANT_CONFIGS.save(deps.storage, msg_type_url, grant_config)
    return Response().add_event(
        Event("updated_treasury_grant_config").add_attributes(
            [("msg type url", msg_type_url), ("overwritten", "true" if existed else "false")]
        )
    )


def remove_grant_config(deps, info, msg_type_url):
    _assert_admin(deps, info)
    if not GRANT_CONFIGS.has(deps.storage, msg_type_url):
        raise GrantConfigNotFound(msg_type_url)
    GRANT_CONFIGS.remove(deps.storage, msg_type_url)
    return Response().add_event(
        Event("removed_treasury_grant_config").add_attributes([("msg type url", msg_type_url)])
    )


def update_fee_config(deps, info, fee_config):
    _assert_admin(deps, info)
    FEE_CONFIG.save(deps.storage, fee_config)
    return Response().add_event(Event("updated_treasury_fee_config"))


def validate_params(params):
    """Both URLs must parse and the metadata must be JSON."""
    _parse_url(params.redirect_url)
    _parse_url(params.icon_url)
    try:
        json.loads(params.metadata, parse_constant=_reject_constant)
    except ValueError as err:
        raise JsonError(str(err)) from None


def update_params(deps, info, params):
    _assert_admin(deps, info)
    validate_params(params)
    PARAMS.save(deps.storage, params)
    return Response().add_event(Event("updated_params"))


def withdraw_coins(deps, info, coins):
    _assert_admin(deps, info)
    return Response().add_message(BankSend(to_address=info.sender, amount=list(coins)))


def _check_grants(deps, authz_granter, authz_grantee):
    for msg_type_url in GRANT_CONFIGS.keys(deps.storage):
        config = GRANT_CONFIGS.load(deps.storage, msg_type_url)
        request = QueryGrantsRequest(
            granter=authz_granter, grantee=authz_grantee, msg_type_url=msg_type_url
        )
        raw = deps.querier.query_grpc(AUTHZ_GRANTS_PATH, request.encode())
        grants = QueryGrantsResponse.decode(raw).grants

        if not grants:
            if config.optional:
                continue
            raise AuthzGrantNotFound(msg_type_url)
        authorization = grants[0].authorization
        if authorization is None:
            raise AuthzGrantNotFound(msg_type_url)
        received = Any(type_url=authorization.type_url, value=bytes(authorization.value))
        if config.authorization != received:
            raise AuthzGrantMismatch()


def deploy_fee_grant(deps, env, authz_granter, authz_grantee):
    """Check the user's authz grants against every config, then grant the fee allowance."""
    _check_grants(deps, authz_granter, authz_grantee)

    config = FEE_CONFIG.load(deps.storage)
    if config.allowance is None:
        return Response()

    expiration = None
    if config.expiration is not None:
        nanos = env.block_time_nanos + config.expiration * _NANOS_PER_SECOND
        expiration = Timestamp(
            seconds=nanos // _NANOS_PER_SECOND, nanos=nanos % _NANOS_PER_SECOND
        )

    formatted = format_allowance(
        config.allowance, env.contract_address, authz_grantee, expiration
    )
    grant_bytes = MsgGrantAllowance(
        granter=env.contract_address, grantee=authz_grantee, allowance=formatted
    ).encode()
    grant_msg = AnyMsg(type_url=MSG_GRANT_ALLOWANCE, value=grant_bytes)

    existing_request = QueryAllowanceRequest(granter=env.contract_address, grantee=authz_grantee)
    try:
        existing = deps.querier.query_grpc(FEEGRANT_ALLOWANCE_PATH, existing_request.encode())
    except ContractError:
        existing = b""

    messages = []
    if existing:
        revoke_bytes = MsgRevokeAllowance(
            granter=env.contract_address, grantee=authz_grantee
        ).encode()
        messages.append(AnyMsg(type_url=MSG_REVOKE_ALLOWANCE, value=revoke_bytes))
    messages.append(grant_msg)
    return Response().add_messages(messages)


def revoke_allowance(deps, env, info, grantee):
    _assert_admin(deps, info)
    revoke_bytes = MsgRevokeAllowance(granter=env.contract_address, grantee=grantee).encode()
    return (
        Response()
        .add_message(AnyMsg(type_url=MSG_REVOKE_ALLOWANCE, value=revoke_bytes))
        .add_event(Event("revoked_treasury_allowance").add_attributes([("grantee", grantee)]))
    )


def grant_config_type_urls(storage):
    return GRANT_CONFIGS.keys(storage)


def grant_config_by_type_url(storage, msg_type_url):
    return GRANT_CONFIGS.load(storage, msg_type_url)


def fee_config(storage):
    return FEE_CONFIG.load(storage)


def admin(storage):
    return ADMIN.load(storage)


def pending_admin(storage):
    return PENDING_ADMIN.load(storage)


def params(storage):
    return PARAMS.load(storage)