"""Provider error taxonomy and classification.

Every failure coming out of an image provider is reduced to one ErrorClass.
Only SERVER, RATE_LIMITED and NETWORK are worth retrying on the same provider.
"""

from __future__ import annotations

import asyncio
import enum
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx


class ErrorClass(str, enum.Enum):
    SERVER = "server_error"
    RATE_LIMITED = "rate_limited"
    NETWORK = "network_error"
    CLIENT = "client_error"
    AUTH = "auth_error"


RETRYABLE = frozenset({ErrorClass.SERVER, ErrorClass.RATE_LIMITED, ErrorClass.NETWORK})


class ProviderError(Exception):
    error_class: ErrorClass = ErrorClass.SERVER

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.error_class in RETRYABLE


class ServerError(ProviderError):
    error_class = ErrorClass.SERVER


class RateLimitedError(ProviderError):
    error_class = ErrorClass.RATE_LIMITED

    def __init__(self, message: str, status_code: int | None = 429, retry_after: float | None = None) -> None:
        super().__init__(message, status_code)
        self.retry_after = retry_after


class ProviderNetworkError(ProviderError):
    error_class = ErrorClass.NETWORK


class ClientError(ProviderError):
    error_class = ErrorClass.CLIENT


class AuthError(ClientError):
    error_class = ErrorClass.AUTH


class ProviderNotConfiguredError(AuthError):
    """Required API key is missing; no call was attempted."""


_USER_MESSAGES = {
    ErrorClass.SERVER: (
        "The image service is temporarily unavailable after {attempts} attempts. "
        "Please try again in a few moments."
    ),
    ErrorClass.RATE_LIMITED: "Image generation rate limit reached. Please wait a moment before trying again.",
    ErrorClass.CLIENT: "Invalid image generation request. Please check your input and try again.",
    ErrorClass.NETWORK: (
        "Network error occurred while generating the image. "
        "Please check your connection and try again."
    ),
    ErrorClass.AUTH: "Image service authentication failed. Please contact support.",
}


def user_message_for(error_class: ErrorClass, attempts: int = 0) -> str:
    """Human-readable, provider-agnostic message for the last failure."""
    return _USER_MESSAGES[error_class].format(attempts=attempts)


def parse_retry_after(value: str | None) -> float | None:
    """Retry-After header as seconds (delta-seconds or HTTP date)."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    delta = (when - datetime.now(timezone.utc)).total_seconds()
    return delta if delta > 0 else None


def error_for_status(response: httpx.Response, provider: str) -> ProviderError:
    """Map a non-2xx HTTP response to the matching ProviderError."""
    status = response.status_code
    message = f"{provider} returned HTTP {status}"
    if status == 429:
        return RateLimitedError(message, retry_after=parse_retry_after(response.headers.get("retry-after")))
    if status == 408:
        return ProviderNetworkError(message, status)
    if status >= 500:
        return ServerError(message, status)
    if status in (401, 403):
        return AuthError(message, status)
    return ClientError(message, status)


def classify_exception(exc: BaseException, provider: str) -> ProviderError | None:
    """Wrap transport-level exceptions; None for anything that is not a provider failure."""
    if isinstance(exc, ProviderError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, httpx.TimeoutException)):
        return ProviderNetworkError(f"{provider} timed out")
    if isinstance(exc, httpx.TransportError):
        return ProviderNetworkError(f"{provider} transport error: {exc}")
    if isinstance(exc, httpx.HTTPStatusError):
        return error_for_status(exc.response, provider)
    return None
