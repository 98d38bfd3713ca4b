"""
Error Taxonomy
Typed errors raised by the services and translated to HTTP responses at the API boundary.
"""

import json
from enum import Enum
from typing import Optional


class VidLockError(Exception):
    """Base error carrying the HTTP status it maps to."""
    
    status_code: int = 500
    
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidRequest(VidLockError):
    """Caller-supplied input failed validation. Never retried."""
    status_code = 400


class ImageProcessingError(VidLockError):
    """Reference image could not be decoded, transformed or encoded."""
    status_code = 422


class NotFound(VidLockError):
    """Requested job, character or snapshot is absent from the local store."""
    status_code = 404


class Unauthorized(VidLockError):
    """Missing or incorrect shared secret."""
    status_code = 401


class StoreError(VidLockError):
    """A persisted collection could not be read back."""
    status_code = 500


class ProviderErrorKind(str, Enum):
    """Classification of a provider failure, used by the render fallback policy."""
    MODERATION = "moderation"
    ACCESS_DENIED = "access_denied"
    OTHER = "other"


_MODERATION_MARKERS = ("moderation",)
_ACCESS_MARKERS = ("forbidden", "not authorized", "access", "permission")
_ACCESS_CODES = ("permission_denied", "forbidden", "unauthorized", "insufficient_quota_for_model")


def _error_fields(body: str) -> tuple:
    """Pull (code, type) out of an OpenAI-style JSON error body, if any."""
    try:
        payload = json.loads(body)
    except (TypeError, ValueError):
        return "", ""
    if not isinstance(payload, dict):
        return "", ""
    err = payload.get("error")
    if not isinstance(err, dict):
        return "", ""
    return str(err.get("code") or "").lower(), str(err.get("type") or "").lower()


def classify_provider_error(status_code: Optional[int], message: str) -> ProviderErrorKind:
    """
    Classify a provider failure.
    
    Machine-readable error codes win when the provider sends them; otherwise
    the message text is matched. Text matching is fragile: if the provider
    rewords its errors the fallback branches stop firing.
    """
    text = (message or "").lower()
    code, err_type = _error_fields(message)
    
    if any(m in code or m in err_type for m in _MODERATION_MARKERS):
        return ProviderErrorKind.MODERATION
    if code in _ACCESS_CODES or err_type in _ACCESS_CODES:
        return ProviderErrorKind.ACCESS_DENIED
    
    if any(m in text for m in _MODERATION_MARKERS):
        return ProviderErrorKind.MODERATION
    if status_code == 403 or text.lstrip().startswith("403"):
        return ProviderErrorKind.ACCESS_DENIED
    if any(m in text for m in _ACCESS_MARKERS):
        return ProviderErrorKind.ACCESS_DENIED
    return ProviderErrorKind.OTHER


class ProviderRequestFailed(VidLockError):
    """Non-success response or transport failure from the video provider."""
    
    status_code = 502
    
    def __init__(
        self,
        message: str,
        provider_status: Optional[int] = None,
        kind: Optional[ProviderErrorKind] = None,
    ):
        # Surface provider 4xx/5xx as-is, transport failures as 502
        http_status = provider_status if provider_status and 400 <= provider_status < 600 else None
        super().__init__(message, http_status)
        self.provider_status = provider_status
        self.kind = kind or classify_provider_error(provider_status, message)
    
    @classmethod
    def from_response(cls, status_code: int, body: str) -> "ProviderRequestFailed":
        """Build the error with the numeric status leading the message."""
        return cls(
            f"{status_code} {body}".strip(),
            provider_status=status_code,
            kind=classify_provider_error(status_code, body),
        )


class ContentProxyError(ProviderRequestFailed):
    """Provider refused a content request; rendered as plain text."""
