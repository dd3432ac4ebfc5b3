"""JWT and passkey checks delegated to the chain's query services."""

import base64
import binascii
import json

from .errors import InvalidSignatureDetail, InvalidToken, StdError
from .protobuf import (
    QueryValidateJwtRequest,
    QueryWebAuthNVerifyAuthenticateRequest,
    QueryWebAuthNVerifyRegisterRequest,
    QueryWebAuthNVerifyRegisterResponse,
)

JWT_VALIDATE_PATH = "/xion.jwk.v1.Query/ValidateJWT"
WEBAUTHN_REGISTER_PATH = "/xion.v1.Query/WebAuthNVerifyRegister"
WEBAUTHN_AUTHENTICATE_PATH = "/xion.v1.Query/WebAuthNVerifyAuthenticate"


def _urlsafe_encode(data):
    return base64.urlsafe_b64encode(bytes(data)).rstrip(b"=").decode()


def _urlsafe_decode(data):
    data = bytes(data)
    if b"=" in data:
        raise StdError("invalid base64: padding not allowed")
    try:
        return base64.b64decode(data + b"=" * (-len(data) % 4), altchars=b"-_", validate=True)
    except binascii.Error as err:
        raise StdError(f"invalid base64: {err}") from None


def jwt_verify(deps, tx_hash, sig_bytes, aud, sub):
    """Validate a JWT with the chain and check it commits to the transaction hash."""
    sig_bytes = bytes(sig_bytes)
    try:
        token = sig_bytes.decode()
    except UnicodeDecodeError:
        raise StdError("token is not valid utf-8") from None
    request = QueryValidateJwtRequest(aud=aud, sub=sub, sig_bytes=token)
    deps.querier.query_grpc(JWT_VALIDATE_PATH, request.encode())

    components = sig_bytes.split(b".")
    if len(components) < 2:
        raise InvalidToken()
    payload = _urlsafe_decode(components[1])
    try:
        claims = json.loads(payload)
        claimed = base64.b64decode(claims["transaction_hash"], validate=True)
    except (ValueError, KeyError, TypeError, binascii.Error) as err:
        raise StdError(f"invalid jwt claims: {err}") from None

    if bytes(tx_hash) == claimed:
        return True
    raise InvalidSignatureDetail(_urlsafe_encode(tx_hash), _urlsafe_encode(claimed))


def passkey_register(deps, addr, rp, data):
    """Register a WebAuthn credential; return the credential the chain stores."""
    request = QueryWebAuthNVerifyRegisterRequest(
        addr=addr,
        challenge=base64.b64encode(addr.encode()).decode(),
        rp=rp,
        data=bytes(data),
    )
    raw = deps.querier.query_grpc(WEBAUTHN_REGISTER_PATH, request.encode())
    return QueryWebAuthNVerifyRegisterResponse.decode(raw).credential


def passkey_verify(deps, addr, rp, signature, tx_hash, credential):
    """Ask the chain to check a WebAuthn assertion over the transaction hash."""
    challenge = _urlsafe_encode(base64.b64encode(bytes(tx_hash)))
    request = QueryWebAuthNVerifyAuthenticateRequest(
        addr=addr,
        challenge=challenge,
        rp=rp,
        credential=bytes(credential),
        data=bytes(signature),
    )
    deps.querier.query_grpc(WEBAUTHN_AUTHENTICATE_PATH, request.encode())
    return True