from __future__ import annotations

from enum import Enum
from typing import Optional

BODY_EXCERPT_LIMIT = 500


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    UPSTREAM_TRANSPORT = "upstream_transport"
    UPSTREAM_FORMAT = "upstream_format"
    EMPTY_RESULT = "empty_result"


def truncate_body(body: Optional[str], limit: int = BODY_EXCERPT_LIMIT) -> str:
    if not body:
        return ""
    if len(body) <= limit:
        return body
    return body[:limit] + "..."


class RecipeAIError(Exception):
    kind: ErrorKind
    default_status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code or self.default_status_code

    @property
    def retryable(self) -> bool:
        return False


class ConfigurationError(RecipeAIError):
    kind = ErrorKind.CONFIGURATION


class ValidationError(RecipeAIError):
    kind = ErrorKind.VALIDATION
    default_status_code = 400


class UpstreamTransportError(RecipeAIError):
    kind = ErrorKind.UPSTREAM_TRANSPORT
    default_status_code = 502

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        body: Optional[str] = None,
        status_code: Optional[int] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(message, status_code=status_code)
        self.upstream_status = upstream_status
        self.body_excerpt = truncate_body(body)
        # Seconds the upstream asked us to wait (Retry-After), when it said so.
        self.retry_after = retry_after

    @property
    def retryable(self) -> bool:
        # No status means the request never got a response (network/timeout).
        if self.upstream_status is None:
            return True
        return self.upstream_status == 429 or self.upstream_status >= 500


class UpstreamFormatError(RecipeAIError):
    kind = ErrorKind.UPSTREAM_FORMAT


class EmptyResultError(RecipeAIError):
    kind = ErrorKind.EMPTY_RESULT

    def __init__(self, message: str = "No recipes generated", status_code: Optional[int] = None):
        super().__init__(message, status_code=status_code)
