"""
TIPSTREAM - Error Taxonomy
Typed failures raised by the prediction pipeline.

Every error carries a stable machine code and an HTTP status so the web
layer can answer consumers without leaking internal exceptions.
"""

from typing import Any, Dict, Optional


class TipstreamError(Exception):
    """Base class for pipeline errors with a stable error code."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InsufficientDataError(TipstreamError):
    """Not enough cached matches for the requested prediction shape."""

    status_code = 422
    code = "NOT_ENOUGH_MATCHES"


class ModelOutputInvalidError(TipstreamError):
    """Generator returned non-JSON or schema-mismatched output."""

    status_code = 502
    code = "OPENAI_INVALID_JSON"


class EmptyModelResponseError(ModelOutputInvalidError):
    code = "OPENAI_EMPTY_RESPONSE"


class UpstreamProviderError(TipstreamError):
    """Quota, auth or billing failure reported by the generative provider."""

    status_code = 502
    code = "OPENAI_PROVIDER_ERROR"


class QuotaExceededError(UpstreamProviderError):
    status_code = 429
    code = "OPENAI_QUOTA_EXCEEDED"


class ProviderAuthError(UpstreamProviderError):
    status_code = 401
    code = "OPENAI_AUTH_ERROR"


class PaymentRequiredError(UpstreamProviderError):
    status_code = 402
    code = "OPENAI_PAYMENT_REQUIRED"


class EmptyPoolError(TipstreamError):
    """No pre-computed prediction available yet for a category."""

    status_code = 503
    code = "NO_PREDICTIONS"


class InvalidInputError(TipstreamError):
    """Caller supplied a malformed request (bad URL list, empty match text)."""

    status_code = 400
    code = "INVALID_INPUT"


class RefreshFailedError(TipstreamError):
    """Cache refresh kept the previous snapshot (no sources, or all degraded)."""

    status_code = 503
    code = "REFRESH_FAILED"
