"""Hashes, bech32 addresses and signature checks used by the accounts."""

import hashlib

from Crypto.Hash import RIPEMD160, keccak
from cryptography.exceptions import InvalidSignature as _BadSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from cryptography.hazmat.primitives.asymmetric.utils import (
    Prehashed,
    encode_dss_signature,
)

from .errors import (
    InvalidRecoveryId,
    RecoveredPubkeyMismatch,
    ShortSignature,
    StdError,
    VerificationError,
)

CHAIN_BECH_PREFIX = "xion"


def sha256(data):
    return hashlib.sha256(bytes(data)).digest()


def ripemd160(data):
    return RIPEMD160.new(bytes(data)).digest()


def keccak256(data):
    return keccak.new(digest_bits=256, data=bytes(data)).digest()


_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_GEN = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)


def _polymod(values):
    chk = 1
    for v in values:
        top = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ v
        for i, g in enumerate(_GEN):
            if (top >> i) & 1:
                chk ^= g
    return chk


def _hrp_expand(hrp):
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _convert_bits(data, from_bits, to_bits, pad):
    acc = bits = 0
    out = []
    maxv = (1 << to_bits) - 1
    for value in data:
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            out.append((acc >> bits) & maxv)
    if pad:
        if bits:
            out.append((acc << (to_bits - bits)) & maxv)
    elif bits >= from_bits or (acc << (to_bits - bits)) & maxv:
        raise StdError("invalid bech32 padding")
    return out


def bech32_encode(hrp, data):
    """Encode bytes as a bech32 string with the given human-readable part."""
    if not hrp or any(not 33 <= ord(c) <= 126 for c in hrp):
        raise StdError(f"invalid bech32 prefix: {hrp!r}")
    hrp = hrp.lower()
    words = _convert_bits(bytes(data), 8, 5, True)
    poly = _polymod(_hrp_expand(hrp) + words + [0] * 6) ^ 1
    checksum = [(poly >> 5 * (5 - i)) & 31 for i in range(6)]
    return hrp + "1" + "".join(_CHARSET[w] for w in words + checksum)


def bech32_decode(address):
    """Decode a bech32 string into its prefix and payload bytes."""
    if address.lower() != address and address.upper() != address:
        raise StdError("mixed case bech32 string")
    address = address.lower()
    sep = address.rfind("1")
    if sep < 1 or sep + 7 > len(address):
        raise StdError("invalid bech32 separator position")
    hrp, rest = address[:sep], address[sep + 1 :]
    try:
        words = [_CHARSET.index(c) for c in rest]
    except ValueError:
        raise StdError("invalid bech32 character") from None
    if _polymod(_hrp_expand(hrp) + words) != 1:
        raise StdError("invalid bech32 checksum")
    return hrp, bytes(_convert_bits(words[:-6], 5, 8, False))


def derive_addr(prefix, pubkey):
    """Derive a bech32 account address from a public key."""
    return bech32_encode(prefix, ripemd160(sha256(pubkey)))


def _split_signature(signature):
    signature = bytes(signature)
    if len(signature) != 64:
        raise VerificationError("invalid signature format")
    return int.from_bytes(signature[:32], "big"), int.from_bytes(signature[32:], "big")


def _load_ec_key(curve, pubkey):
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(curve, bytes(pubkey))
    except ValueError:
        raise VerificationError("invalid public key format") from None


def secp256k1_verify(message_hash, signature, pubkey):
    """Check a 64-byte secp256k1 signature over a 32-byte hash."""
    if len(message_hash) != 32:
        raise VerificationError("invalid hash format")
    r, s = _split_signature(signature)
    key = _load_ec_key(ec.SECP256K1(), pubkey)
    try:
        key.verify(
            encode_dss_signature(r, s),
            bytes(message_hash),
            ec.ECDSA(Prehashed(hashes.SHA256())),
        )
    except _BadSignature:
        return False
    return True


_P = 2**256 - 2**32 - 977
_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
_G = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)


def _point_add(a, b):
    if a is None:
        return b
    if b is None:
        return a
    if a[0] == b[0]:
        if (a[1] + b[1]) % _P == 0:
            return None
        lam = 3 * a[0] * a[0] * pow(2 * a[1], -1, _P)
    else:
        lam = (b[1] - a[1]) * pow(b[0] - a[0], -1, _P)
    lam %= _P
    x = (lam * lam - a[0] - b[0]) % _P
    return x, (lam * (a[0] - x) - a[1]) % _P


def _point_mul(point, k):
    result = None
    while k:
        if k & 1:
            result = _point_add(result, point)
        point = _point_add(point, point)
        k >>= 1
    return result


def secp256k1_recover_pubkey(message_hash, signature, recovery_id):
    """Recover the uncompressed 65-byte public key that produced a signature."""
    if len(message_hash) != 32:
        raise VerificationError("invalid hash format")
    r, s = _split_signature(signature)
    if recovery_id not in (0, 1):
        raise VerificationError("invalid recovery id")
    if not (0 < r < _N and 0 < s < _N):
        raise VerificationError("invalid signature")
    alpha = (pow(r, 3, _P) + 7) % _P
    y = pow(alpha, (_P + 1) // 4, _P)
    if y * y % _P != alpha:
        raise VerificationError("invalid signature")
    if y % 2 != recovery_id:
        y = _P - y
    e = int.from_bytes(bytes(message_hash), "big")
    r_inv = pow(r, -1, _N)
    q = _point_add(_point_mul((r, y), s * r_inv % _N), _point_mul(_G, -e * r_inv % _N))
    if q is None:
        raise VerificationError("invalid signature")
    return b"\x04" + q[0].to_bytes(32, "big") + q[1].to_bytes(32, "big")


def ed25519_verify(message, signature, pubkey):
    """Check an ed25519 signature; malformed input raises."""
    if len(signature) != 64:
        raise VerificationError("invalid signature format")
    if len(pubkey) != 32:
        raise VerificationError("invalid public key format")
    try:
        key = Ed25519PublicKey.from_public_bytes(bytes(pubkey))
        key.verify(bytes(signature), bytes(message))
    except ValueError:
        raise VerificationError("invalid public key format") from None
    except _BadSignature:
        return False
    return True


def secp256r1_verify(message, signature, pubkey):
    """Check a P-256 signature over SHA-256 of the message; failure raises."""
    key = _load_ec_key(ec.SECP256R1(), pubkey)
    r, s = _split_signature(signature)
    try:
        key.verify(encode_dss_signature(r, s), bytes(message), ec.ECDSA(hashes.SHA256()))
    except _BadSignature:
        raise VerificationError("signature error") from None
    return True


def eth_hash_message(message):
    """Hash a message the way Ethereum personal signatures do."""
    message = bytes(message)
    prefix = b"\x19Ethereum Signed Message:\n" + str(len(message)).encode()
    return keccak256(prefix + message)


def normalize_recovery_id(recovery_id):
    if recovery_id in (0, 1):
        return recovery_id
    if recovery_id == 27:
        return 0
    if recovery_id == 28:
        return 1
    raise InvalidRecoveryId()


def eth_verify(message, signature, address):
    """Check that an Ethereum signature was made by the given 20-byte address."""
    signature = bytes(signature)
    if len(signature) < 65:
        raise ShortSignature()
    recovery_id = normalize_recovery_id(signature[64])
    pubkey = secp256k1_recover_pubkey(eth_hash_message(message), signature[:64], recovery_id)
    if keccak256(pubkey[1:])[12:] != bytes(address):
        raise RecoveredPubkeyMismatch()
    return True