from __future__ import annotations
from typing import Optional


class DDLError(Exception): ...


class ReadingError(DDLError): ...


class WindowError(DDLError): ...


class GatewayError(DDLError):
    """Upstream failure, pre-classified into one of the gateway kinds."""

    kind: str = "other"

    def __init__(
        self,
        message: str,
        *,
        endpoint: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.endpoint = endpoint
        self.status = status


class RateLimitedError(GatewayError):
    kind = "rate-limited"


class AuthError(GatewayError):
    kind = "unauthorized"


class NetworkError(GatewayError):
    kind = "network"


class OtherError(GatewayError):
    kind = "other"


class CacheWriteError(DDLError): ...


class QuotaExceededError(CacheWriteError): ...


def require(condition: bool, message: str, exc: type[DDLError] = DDLError):
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
