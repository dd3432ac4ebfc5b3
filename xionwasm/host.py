"""The execution environment the contracts run in: storage, messages and host APIs."""

import base64
import dataclasses
import hashlib
import json
from dataclasses import dataclass, field

from . import crypto
from .errors import NotFound, StdError


class Storage:
    """An ordered key-value store of bytes."""

    def __init__(self):
        self._data = {}

    def get(self, key):
        return self._data.get(bytes(key))

    def set(self, key, value):
        self._data[bytes(key)] = bytes(value)

    def delete(self, key):
        self._data.pop(bytes(key), None)

    def _iter_prefix(self, prefix):
        for key in sorted(self._data):
            if key.startswith(prefix):
                yield key[len(prefix):], self._data[key]


def _json_default(value):
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(bytes(value)).decode()
    if dataclasses.is_dataclass(value):
        return dataclasses.asdict(value)
    raise TypeError(f"cannot serialise {type(value).__name__}")


def to_json_binary(value):
    """Serialise a value to compact JSON bytes."""
    return json.dumps(value, default=_json_default, separators=(",", ":")).encode()


def _identity(value):
    return value


class Map:
    """A namespaced map in storage, keyed by str or by u8 ints."""

    def __init__(self, namespace, key_type=str, encode=None, decode=None):
        self.namespace = namespace
        self.key_type = key_type
        self._encode = encode or _identity
        self._decode = decode or _identity
        ns = namespace.encode()
        self._prefix = len(ns).to_bytes(2, "big") + ns

    def _key(self, key):
        if self.key_type is int:
            if not 0 <= key <= 255:
                raise StdError(f"key {key} out of range")
            return self._prefix + bytes([key])
        return self._prefix + str(key).encode()

    def _unkey(self, raw):
        return raw[0] if self.key_type is int else raw.decode()

    def save(self, storage, key, value):
        storage.set(self._key(key), to_json_binary(self._encode(value)))

    def may_load(self, storage, key):
        raw = storage.get(self._key(key))
        return None if raw is None else self._decode(json.loads(raw))

    def load(self, storage, key):
        raw = storage.get(self._key(key))
        if raw is None:
            raise NotFound(self.namespace)
        return self._decode(json.loads(raw))

    def has(self, storage, key):
        return storage.get(self._key(key)) is not None

    def remove(self, storage, key):
        storage.delete(self._key(key))

    def keys(self, storage):
        """Keys in ascending order."""
        return [self._unkey(k) for k, _ in storage._iter_prefix(self._prefix)]

    def items(self, storage):
        """(key, value) pairs in ascending key order."""
        return [
            (self._unkey(k), self._decode(json.loads(v)))
            for k, v in storage._iter_prefix(self._prefix)
        ]


class Item:
    """A single value stored under a fixed key."""

    def __init__(self, key, encode=None, decode=None):
        self.key = key
        self._raw_key = key.encode()
        self._encode = encode or _identity
        self._decode = decode or _identity

    def save(self, storage, value):
        storage.set(self._raw_key, to_json_binary(self._encode(value)))

    def may_load(self, storage):
        raw = storage.get(self._raw_key)
        return None if raw is None else self._decode(json.loads(raw))

    def load(self, storage):
        raw = storage.get(self._raw_key)
        if raw is None:
            raise NotFound(self.key)
        return self._decode(json.loads(raw))

    def remove(self, storage):
        storage.delete(self._raw_key)


@dataclass
class Event:
    type: str
    attributes: list = field(default_factory=list)

    def add_attribute(self, key, value):
        self.attributes.append((key, str(value)))
        return self

    def add_attributes(self, pairs):
        for key, value in pairs:
            self.add_attribute(key, value)
        return self


@dataclass(frozen=True)
class BankSend:
    to_address: str
    amount: list


@dataclass(frozen=True)
class WasmMigrate:
    contract_addr: str
    new_code_id: int
    msg: bytes


@dataclass(frozen=True)
class AnyMsg:
    type_url: str
    value: bytes


@dataclass
class Response:
    messages: list = field(default_factory=list)
    attributes: list = field(default_factory=list)
    events: list = field(default_factory=list)
    data: bytes = None

    def add_event(self, event):
        self.events.append(event)
        return self

    def add_attribute(self, key, value):
        self.attributes.append((key, str(value)))
        return self

    def add_message(self, message):
        self.messages.append(message)
        return self

    def add_messages(self, messages):
        self.messages.extend(messages)
        return self


@dataclass
class Env:
    contract_address: str
    block_height: int = 12345
    block_time_nanos: int = 1_571_797_419_879_305_533
    chain_id: str = "cosmos-testnet-14002"


@dataclass
class MessageInfo:
    sender: str
    funds: list = field(default_factory=list)


class Api:
    """Address handling and signature checks offered by the host."""

    def __init__(self, prefix="cosmwasm"):
        self.prefix = prefix

    def addr_validate(self, address):
        if not address:
            raise StdError("Invalid input: empty address")
        hrp, data = crypto.bech32_decode(address)
        if hrp != self.prefix:
            raise StdError("Invalid input: wrong address prefix")
        if not 1 <= len(data) <= 255:
            raise StdError("Invalid input: address length")
        if crypto.bech32_encode(hrp, data) != address:
            raise StdError("Invalid input: address not normalized")
        return address

    def addr_make(self, seed):
        return crypto.bech32_encode(self.prefix, hashlib.sha256(seed.encode()).digest())

    def secp256k1_verify(self, message_hash, signature, pubkey):
        return crypto.secp256k1_verify(message_hash, signature, pubkey)

    def secp256k1_recover_pubkey(self, message_hash, signature, recovery_id):
        return crypto.secp256k1_recover_pubkey(message_hash, signature, recovery_id)

    def ed25519_verify(self, message, signature, pubkey):
        return crypto.ed25519_verify(message, signature, pubkey)


class Querier:
    """Dispatches gRPC queries to registered handlers."""

    def __init__(self):
        self._handlers = {}

    def register_grpc(self, path, handler):
        self._handlers[path] = handler

    def query_grpc(self, path, data):
        handler = self._handlers.get(path)
        if handler is None:
            raise StdError(f"no grpc handler registered for {path}")
        return bytes(handler(bytes(data)))


@dataclass
class Deps:
    storage: Storage = field(default_factory=Storage)
    api: Api = field(default_factory=Api)
    querier: Querier = field(default_factory=Querier)


def mock_env(api=None):
    api = api or Api()
    return Env(contract_address=api.addr_make("cosmos2contract"))


_CONTRACT_INFO = Item("contract_info")


def set_contract_version(storage, name, version):
    _CONTRACT_INFO.save(storage, {"contract": name, "version": version})


def get_contract_version(storage):
    return _CONTRACT_INFO.load(storage)