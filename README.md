# xionwasm

Contract logic for the XION network, run against an in-memory host so that it
can be driven and tested from plain Python.

- **treasury** (`xionwasm.treasury`): holds authz grant configurations and a
  fee configuration. It deploys fee grants to users who have granted the
  required authorizations, and hands over the admin role in two steps.
- **user_map** (`xionwasm.user_map`): stores one JSON value per user address.
- **authenticators** (`xionwasm.auth`): the signature checks an abstract
  account uses. The types are secp256k1 (direct signatures and ADR-036
  "sign arbitrary"), ed25519, Ethereum wallets, JWTs, secp256r1 and passkeys.

## Installation

```
pip install xionwasm
```

For running the tests:

```
pip install "xionwasm[test]"
pytest
```

## Building blocks

`xionwasm.host` provides the environment the contracts run in:

- `Storage`, with `Map` and `Item` on top of it for typed state
- `Api` for bech32 address validation (`addr_validate`, `addr_make`) and the
  signature primitives
- `Querier`, where gRPC query handlers are registered with `register_grpc`;
  a handler takes the request bytes and returns the response bytes
- `Deps`, `Env`, `MessageInfo`, `mock_env`
- `Response`, `Event`, `BankSend`, `WasmMigrate`, `AnyMsg`
- `to_json_binary`, `set_contract_version`, `get_contract_version`

`xionwasm.crypto` holds the hashing, bech32 and signature helpers:
`sha256`, `ripemd160`, `keccak256`, `bech32_encode`, `bech32_decode`,
`derive_addr`, `secp256k1_verify`, `secp256k1_recover_pubkey`,
`secp256r1_verify`, `ed25519_verify`, `eth_hash_message` and `eth_verify`.

`xionwasm.protobuf` encodes and decodes the protobuf messages exchanged with
the chain, such as `Any`, `Timestamp`, `Coin`, `QueryGrantsRequest`,
`QueryGrantsResponse` and `MsgGrantAllowance`.

`xionwasm.credentials` sends JWT and passkey checks to the chain's query
services (`jwt_verify`, `passkey_register`, `passkey_verify`).

`xionwasm.grant` holds `GrantConfig`, `FeeConfig` and `format_allowance`,
which applies an expiration (and, for `/xion.v1.AuthzAllowance`, the grantee)
throughout a nested fee allowance.

Failures are raised as subclasses of `xionwasm.errors.ContractError`, for
example `ShortSignature`, `InvalidSignature`, `Unauthorized`,
`AuthzGrantNotFound` or `GrantConfigNotFound`.

## Example: the user map

```python
from xionwasm import user_map
from xionwasm.host import Api, Deps, MessageInfo, mock_env

api = Api(prefix="xion")
deps = Deps(api=api)
env = mock_env(api)
alice = api.addr_make("alice")

user_map.execute(deps, env, MessageInfo(sender=alice), {"update": {"value": '{"a": 1}'}})
user_map.query(deps, env, {"get_users": {}})           # b'["xion1..."]'
user_map.query(deps, env, {"get_value_by_user": {"address": alice}})
```

A value that is not valid JSON is rejected with `JsonError`.

## Example: the treasury

```python
from xionwasm import treasury
from xionwasm.host import Api, Deps, MessageInfo, mock_env

api = Api(prefix="xion")
deps = Deps(api=api)
env = mock_env(api)
admin_address = api.addr_make("admin")

treasury.instantiate(deps, env, MessageInfo(sender=admin_address), {
    "admin": admin_address,
    "type_urls": [],
    "grant_configs": [],
    "fee_config": {"description": "no fees", "allowance": None, "expiration": None},
    "params": {
        "redirect_url": "https://example.com/return",
        "icon_url": "https://example.com/icon.png",
        "metadata": "{}",
    },
})

treasury.query(deps, env, {"admin": {}})
```

`treasury.deploy_fee_grant` asks the handler registered for
`/cosmos.authz.v1beta1.Query/Grants` about every configured message type,
then returns the `MsgGrantAllowance` message. If the handler for
`/cosmos.feegrant.v1beta1.Query/Allowance` answers with a non-empty
response, a `MsgRevokeAllowance` message comes first.

## Example: checking a signature with an authenticator

```python
from xionwasm.auth import Authenticator, Secp256K1

authenticator = Secp256K1(pubkey=pubkey_bytes)
authenticator.verify(deps, env, tx_bytes, sig_bytes)    # True or False

data = authenticator.to_dict()                          # {"Secp256K1": {"pubkey": "..."}}
Authenticator.from_dict(data) == authenticator          # True
```

`AddAuthenticator.from_dict` reads the request form of each type
(`AddSecp256K1`, `AddEd25519`, `AddEthWallet`, `AddJwt`, `AddSecp256R1`,
`AddPasskey`), each carrying an `id` and its proof of control.

## What this package does not do

- There is no account contract here: nothing stores authenticators for an
  account, answers the chain's before-transaction and after-transaction
  calls, or adds and removes authenticators. `xionwasm.auth` offers only the
  individual checks.
- There is no command line, no chain node and no network access. State lives
  in a `Storage` object in memory, and chain queries are answered only by the
  handlers registered on a `Querier`.