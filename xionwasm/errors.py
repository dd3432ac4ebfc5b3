"""Errors raised by the contracts and the host they run on."""


class ContractError(Exception):
    """Base class for every error a contract reports."""

    default_message = "contract error"

    def __init__(self, message=None):
        super().__init__(message if message is not None else self.default_message)

    def __eq__(self, other):
        return type(self) is type(other) and self.args == other.args

    def __hash__(self):
        return hash((type(self), self.args))


class StdError(ContractError):
    """A generic error raised by the host environment."""

    default_message = "generic error"


class NotFound(StdError):
    """A storage entry that was expected is missing."""

    def __init__(self, kind):
        self.kind = kind
        super().__init__(f"{kind} not found")


class VerificationError(ContractError):
    default_message = "verification error"


class DecodeError(ContractError):
    default_message = "failed to decode protobuf message"


class JsonError(ContractError):
    default_message = "invalid json"


class URLParseError(ContractError):
    default_message = "url parse error"


class InvalidSignature(ContractError):
    default_message = "signature is invalid"


class InvalidSignatureDetail(ContractError):
    def __init__(self, expected, received):
        self.expected = expected
        self.received = received
        super().__init__(
            f"signature is invalid. expected: {expected}, received {received}"
        )


class EmptySignature(ContractError):
    default_message = "signature is empty"


class ShortSignature(ContractError):
    default_message = "short signature"


class Unauthorized(ContractError):
    default_message = "unauthorized"


class InvalidRecoveryId(ContractError):
    default_message = "recovery id can only be one of 0, 1, 27, 28"


class RecoveredPubkeyMismatch(ContractError):
    default_message = "the pubkey recovered from the signature does not match"


class MinimumAuthenticatorCount(ContractError):
    default_message = "cannot delete the last authenticator"


class InvalidToken(ContractError):
    default_message = "invalid token"


class OverridingIndex(ContractError):
    def __init__(self, index):
        self.index = index
        super().__init__(f"cannot override existing authenticator at index {index}")


class EmissionSizeExceeded(ContractError):
    default_message = "emit data too large"


class InvalidEthAddress(ContractError):
    default_message = "invalid ethereum address"


class AuthenticatorNotFound(ContractError):
    def __init__(self, index):
        self.index = index
        super().__init__(f"authenticator {index} not found")


class AuthzGrantNotFound(ContractError):
    def __init__(self, msg_type_url):
        self.msg_type_url = msg_type_url
        super().__init__(f"authz grant not found, msg_type: {msg_type_url}")


class AuthzGrantMismatch(ContractError):
    default_message = "authz grant did not match config"


class InvalidAllowanceType(ContractError):
    def __init__(self, msg_type_url):
        self.msg_type_url = msg_type_url
        super().__init__(f"invalid allowance type: {msg_type_url}")


class AllowanceUnset(ContractError):
    default_message = "allowance unset"


class ConfigurationMismatch(ContractError):
    default_message = "config mismatch"


class GrantConfigNotFound(ContractError):
    def __init__(self, type_url):
        self.type_url = type_url
        super().__init__(f"grant config for {type_url} not found")