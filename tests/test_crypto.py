import base64

import pytest
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    decode_dss_signature,
)

from xionwasm import crypto
from xionwasm.errors import (
    InvalidRecoveryId,
    RecoveredPubkeyMismatch,
    ShortSignature,
    StdError,
    VerificationError,
)


def _raw(der):
    r, s = decode_dss_signature(der)
    return r.to_bytes(32, "big") + s.to_bytes(32, "big")


def _eth_sig():
    r = 49684349367057865656909429001867135922228948097036637749682965078859417767352
    s = 26715700564957864553985478426289223220394026033170102795835907481710471636815
    return r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([28])


def test_verifying_ethereum_signature():
    sig = _eth_sig()
    assert len(sig) == 65
    addr = bytes.fromhex("63F9725f107358c9115BC9d86c72dD5823E9B1E6")
    assert crypto.eth_verify(b"hello world", sig, addr) is True
    wrong = bytes.fromhex("d8dA6BF26964aF9D7eEd9e03E53415D37aA96045")
    with pytest.raises(RecoveredPubkeyMismatch):
        crypto.eth_verify(b"hello world", sig, wrong)


def test_eth_short_signature():
    with pytest.raises(ShortSignature):
        crypto.eth_verify(b"hello world", _eth_sig()[:64], b"\x00" * 20)


@pytest.mark.parametrize("given,expected", [(0, 0), (1, 1), (27, 0), (28, 1)])
def test_normalize_recovery_id(given, expected):
    assert crypto.normalize_recovery_id(given) == expected


def test_invalid_recovery_id():
    with pytest.raises(InvalidRecoveryId):
        crypto.normalize_recovery_id(2)


def test_secp256r1_verify_signature():
    key = ec.derive_private_key(
        int("3ee21644150adb50dc4c20e330184fabf12e75ecbf31fe167885587e6ebf2255", 16),
        ec.SECP256R1(),
    )
    sig = _raw(key.sign(b"test_value", ec.ECDSA(hashes.SHA256())))
    pub = key.public_key().public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
    )
    assert crypto.secp256r1_verify(b"test_value", sig, pub) is True
    with pytest.raises(VerificationError):
        crypto.secp256r1_verify(b"invalid starting msg", sig, pub)


@pytest.mark.parametrize(
    "prefix,pubkey,expected",
    [
        ("osmo", "AxVQixKMvKkMWMgEBn5E+QjXxFLLiOUNs3EG3vvsgaGs",
         "osmo1ee3y7m9kjn8xgqwryxmskv6ttnkj39z9w0fctn"),
        ("xion", "AxVQixKMvKkMWMgEBn5E+QjXxFLLiOUNs3EG3vvsgaGs",
         "xion1ee3y7m9kjn8xgqwryxmskv6ttnkj39z9yaq2t2"),
        ("xion", "Ayrlj6q3WWs91p45LVKwI8JyfMYNmWMrcDinLNEdWYE4",
         "xion1e2fuwe3uhq8zd9nkkk876nawrwdulgv460vzg7"),
    ],
)
def test_derive_addr(prefix, pubkey, expected):
    assert crypto.derive_addr(prefix, base64.b64decode(pubkey)) == expected


def test_bech32_round_trip_and_checksum():
    payload = bytes(range(32))
    encoded = crypto.bech32_encode("xion", payload)
    assert crypto.bech32_decode(encoded) == ("xion", payload)
    bad = encoded[:-1] + ("q" if encoded[-1] != "q" else "p")
    with pytest.raises(StdError):
        crypto.bech32_decode(bad)


def test_secp256k1_verify_and_recover():
    key = ec.generate_private_key(ec.SECP256K1())
    digest = crypto.sha256(b"payload")
    sig = _raw(key.sign(digest, ec.ECDSA(Prehashed(hashes.SHA256()))))
    pub = key.public_key().public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
    )
    compressed = key.public_key().public_bytes(
        serialization.Encoding.X962, serialization.PublicFormat.CompressedPoint
    )
    assert crypto.secp256k1_verify(digest, sig, compressed) is True
    assert crypto.secp256k1_verify(crypto.sha256(b"other"), sig, compressed) is False
    recovered = {crypto.secp256k1_recover_pubkey(digest, sig, i) for i in (0, 1)}
    assert pub in recovered


def test_secp256k1_bad_pubkey():
    with pytest.raises(VerificationError):
        crypto.secp256k1_verify(b"\x00" * 32, b"\x01" * 64, b"\x02" * 5)


def test_ed25519_verify():
    key = Ed25519PrivateKey.generate()
    pub = key.public_key().public_bytes(
        serialization.Encoding.Raw, serialization.PublicFormat.Raw
    )
    sig = key.sign(b"msg")
    assert crypto.ed25519_verify(b"msg", sig, pub) is True
    assert crypto.ed25519_verify(b"msh", sig, pub) is False
    with pytest.raises(VerificationError):
        crypto.ed25519_verify(b"msg", sig[:10], pub)


def test_hash_lengths():
    assert len(crypto.sha256(b"a")) == 32
    assert len(crypto.ripemd160(b"a")) == 20
    assert crypto.keccak256(b"").hex() == (
        "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )