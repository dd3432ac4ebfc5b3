"""Treasury and user map contract logic and account authenticators for the XION network."""

__version__ = "0.1.0"

__all__ = [
    "auth",
    "credentials",
    "crypto",
    "errors",
    "grant",
    "host",
    "protobuf",
    "treasury",
    "user_map",
]