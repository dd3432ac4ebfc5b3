"""Authenticators attached to an account and how each checks a signature."""

import base64
import string
from dataclasses import dataclass

from . import crypto
from .credentials import jwt_verify, passkey_verify
from .errors import InvalidEthAddress, StdError


def wrap_message(msg_bytes, signer):
    """Hash a message wrapped in an ADR-036 sign-arbitrary envelope."""
    msg_b64 = base64.b64encode(bytes(msg_bytes)).decode()
    envelope = (
        '{"account_number":"0","chain_id":"","fee":{"amount":[],"gas":"0"},"memo":"",'
        '"msgs":[{"type":"sign/MsgSignData","value":{"data":"%s","signer":"%s"}}],'
        '"sequence":"0"}' % (msg_b64, signer)
    )
    return crypto.sha256(envelope.encode())


def verify_sign_arbitrary(api, msg_bytes, sig_bytes, pubkey):
    """Check a secp256k1 signature made over a sign-arbitrary envelope."""
    signer = api.addr_validate(crypto.derive_addr(crypto.CHAIN_BECH_PREFIX, pubkey))
    return api.secp256k1_verify(wrap_message(msg_bytes, signer), sig_bytes, pubkey)


def _b64(data):
    return base64.b64encode(bytes(data)).decode()


def _unb64(text):
    return base64.b64decode(text)


class Authenticator:
    """A way of proving that a transaction was authorised by the account."""

    def verify(self, deps, env, tx_bytes, sig_bytes):
        raise NotImplementedError

    def to_dict(self):
        return {type(self).__name__: self._fields()}

    @staticmethod
    def from_dict(data):
        ((name, body),) = data.items()
        cls = _AUTHENTICATORS.get(name)
        if cls is None:
            raise StdError(f"unknown authenticator {name}")
        return cls._from_fields(body)


@dataclass
class Secp256K1(Authenticator):
    pubkey: bytes

    def verify(self, deps, env, tx_bytes, sig_bytes):
        tx_hash = crypto.sha256(tx_bytes)
        try:
            if deps.api.secp256k1_verify(tx_hash, sig_bytes, self.pubkey):
                return True
        except StdError:
            pass
        except Exception:  # noqa: BLE001 - any direct failure falls back
            pass
        return verify_sign_arbitrary(deps.api, tx_bytes, sig_bytes, self.pubkey)

    def _fields(self):
        return {"pubkey": _b64(self.pubkey)}

    @classmethod
    def _from_fields(cls, body):
        return cls(_unb64(body["pubkey"]))


@dataclass
class Ed25519(Authenticator):
    pubkey: bytes

    def verify(self, deps, env, tx_bytes, sig_bytes):
        return deps.api.ed25519_verify(crypto.sha256(tx_bytes), sig_bytes, self.pubkey)

    def _fields(self):
        return {"pubkey": _b64(self.pubkey)}

    @classmethod
    def _from_fields(cls, body):
        return cls(_unb64(body["pubkey"]))


@dataclass
class EthWallet(Authenticator):
    address: str

    def verify(self, deps, env, tx_bytes, sig_bytes):
        if not self.address.startswith("0x") or len(self.address) != 42:
            raise InvalidEthAddress()
        digits = self.address.lower()[2:]
        if any(c not in string.hexdigits for c in digits):
            raise InvalidEthAddress()
        return crypto.eth_verify(tx_bytes, sig_bytes, bytes.fromhex(digits))

    def _fields(self):
        return {"address": self.address}

    @classmethod
    def _from_fields(cls, body):
        return cls(body["address"])


@dataclass
class Jwt(Authenticator):
    aud: str
    sub: str

    def verify(self, deps, env, tx_bytes, sig_bytes):
        return jwt_verify(deps, crypto.sha256(tx_bytes), sig_bytes, self.aud, self.sub)

    def _fields(self):
        return {"aud": self.aud, "sub": self.sub}

    @classmethod
    def _from_fields(cls, body):
        return cls(body["aud"], body["sub"])


@dataclass
class Secp256R1(Authenticator):
    pubkey: bytes

    def verify(self, deps, env, tx_bytes, sig_bytes):
        return crypto.secp256r1_verify(crypto.sha256(tx_bytes), sig_bytes, self.pubkey)

    def _fields(self):
        return {"pubkey": _b64(self.pubkey)}

    @classmethod
    def _from_fields(cls, body):
        return cls(_unb64(body["pubkey"]))


@dataclass
class Passkey(Authenticator):
    url: str
    passkey: bytes

    def verify(self, deps, env, tx_bytes, sig_bytes):
        passkey_verify(
            deps, env.contract_address, self.url, sig_bytes, crypto.sha256(tx_bytes), self.passkey
        )
        return True

    def _fields(self):
        return {"url": self.url, "passkey": _b64(self.passkey)}

    @classmethod
    def _from_fields(cls, body):
        return cls(body["url"], _unb64(body["passkey"]))


_AUTHENTICATORS = {
    cls.__name__: cls for cls in (Secp256K1, Ed25519, EthWallet, Jwt, Secp256R1, Passkey)
}


class AddAuthenticator:
    """A request to attach an authenticator at a given id, with proof of control."""

    tag = ""
    _binary = ()

    def to_dict(self):
        body = {}
        for name, value in vars(self).items():
            body[name] = _b64(value) if name in self._binary else value
        return {self.tag: body}

    @staticmethod
    def from_dict(data):
        ((name, body),) = data.items()
        cls = _ADD_AUTHENTICATORS.get(name)
        if cls is None:
            raise StdError(f"unknown authenticator {name}")
        kwargs = {k: _unb64(v) if k in cls._binary else v for k, v in body.items()}
        return cls(**kwargs)


@dataclass
class AddSecp256K1(AddAuthenticator):
    id: int
    pubkey: bytes
    signature: bytes
    tag = "Secp256K1"
    _binary = ("pubkey", "signature")


@dataclass
class AddEd25519(AddAuthenticator):
    id: int
    pubkey: bytes
    signature: bytes
    tag = "Ed25519"
    _binary = ("pubkey", "signature")


@dataclass
class AddEthWallet(AddAuthenticator):
    id: int
    address: str
    signature: bytes
    tag = "EthWallet"
    _binary = ("signature",)


@dataclass
class AddJwt(AddAuthenticator):
    id: int
    aud: str
    sub: str
    token: bytes
    tag = "Jwt"
    _binary = ("token",)


@dataclass
class AddSecp256R1(AddAuthenticator):
    id: int
    pubkey: bytes
    signature: bytes
    tag = "Secp256R1"
    _binary = ("pubkey", "signature")


@dataclass
class AddPasskey(AddAuthenticator):
    id: int
    url: str
    credential: bytes
    tag = "Passkey"
    _binary = ("credential",)


_ADD_AUTHENTICATORS = {
    cls.tag: cls
    for cls in (AddSecp256K1, AddEd25519, AddEthWallet, AddJwt, AddSecp256R1, AddPasskey)
}