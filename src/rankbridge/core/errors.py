"""
Structured error types for rankbridge.

Every failure the bridge can surface carries a category, a retryable flag,
structured context and an optional chained cause, so the service loop can
log it with full metadata and decide whether it is worth retrying.

Manifesto:
    - **Typed Error Hierarchy:** One subclass per failure domain
    - **Explicit Retry Semantics:** Each error knows if it's retryable
    - **Rich Context:** Errors carry ids for logging
    - **Error Chaining:** Preserve the original exception as ``cause``

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                    RankBridgeError                         │
        │        (category, retryable, context, cause)               │
        ├───────────────────────────────────────────────────────────┤
        │  UpstreamError            IdentityResolutionError         │
        │  (UPSTREAM)               (RESOLUTION)                    │
        │     │                        │                            │
        │  UpstreamTimeoutError     FetchError                      │
        │  UpstreamRequestError     ParseError                      │
        │                                                           │
        │  PersistenceError         BusError         ConfigError    │
        │  (PERSISTENCE)            (BUS)            (CONFIG)       │
        └───────────────────────────────────────────────────────────┘

    "Not registered" has no class here: it is a branch of the
    friendship transition table, not a failure.

Examples:
    >>> err = UpstreamTimeoutError("no profile response", timeout=30.0)
    >>> err.retryable
    True
    >>> err.with_context(account_id=39734272).context.account_id
    39734272

Tags:
    error-handling, exception-hierarchy, retry-logic, rankbridge

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    UPSTREAM = "UPSTREAM"          # Steam / game coordinator round trips
    RESOLUTION = "RESOLUTION"      # Profile URL fetch and parse
    PERSISTENCE = "PERSISTENCE"    # Identity store
    BUS = "BUS"                    # Exchange message bus
    CONFIG = "CONFIG"              # Missing or invalid settings
    INTERNAL = "INTERNAL"          # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        global_id: 64-bit platform id involved, if any
        account_id: Derived game-coordinator account id, if any
        voice_identity: Voice platform unique id, if any
        url: URL being fetched, if any
        metadata: Additional key-value pairs
    """

    global_id: int | None = None
    account_id: int | None = None
    voice_identity: str | None = None
    url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["global_id", "account_id", "voice_identity", "url"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class RankBridgeError(Exception):
    """
    Base exception for all rankbridge errors.

    Subclasses set ``default_category`` and ``default_retryable`` so the
    common case needs nothing but a message.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> RankBridgeError:
        """
        Add context to this error (fluent API).

        Usage:
            raise FetchError("HTTP 503").with_context(url=profile_url)
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# UPSTREAM ERRORS
# =============================================================================


class UpstreamError(RankBridgeError):
    """Failure talking to the upstream platform / game coordinator."""

    default_category = ErrorCategory.UPSTREAM
    default_retryable = True


class UpstreamTimeoutError(UpstreamError):
    """No profile response arrived within the configured bound."""

    def __init__(self, message: str = "Upstream profile lookup timed out", *, timeout: float | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.timeout = timeout

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.timeout is not None:
            result["timeout"] = self.timeout
        return result


class UpstreamRequestError(UpstreamError):
    """Issuing the upstream profile request itself failed."""


# =============================================================================
# IDENTITY RESOLUTION ERRORS
# =============================================================================


class IdentityResolutionError(RankBridgeError):
    """Profile URL could not be turned into a global id."""

    default_category = ErrorCategory.RESOLUTION
    default_retryable = False


class FetchError(IdentityResolutionError):
    """Profile document could not be fetched (transport or HTTP status)."""

    default_retryable = True


class ParseError(IdentityResolutionError):
    """Profile document was fetched but is not a valid profile."""


# =============================================================================
# PERSISTENCE / BUS
# =============================================================================


class PersistenceError(RankBridgeError):
    """Identity store read or write failed. Propagated, never retried here."""

    default_category = ErrorCategory.PERSISTENCE
    default_retryable = False


class BusError(RankBridgeError):
    """Publishing on the exchange bus failed."""

    default_category = ErrorCategory.BUS
    default_retryable = True


# =============================================================================
# CONFIG ERRORS
# =============================================================================


class ConfigError(RankBridgeError):
    """
    Configuration error.
    Never retryable - configuration must be fixed.
    """

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, RankBridgeError):
        return error.retryable
    return False


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "RankBridgeError",
    "UpstreamError",
    "UpstreamTimeoutError",
    "UpstreamRequestError",
    "IdentityResolutionError",
    "FetchError",
    "ParseError",
    "PersistenceError",
    "BusError",
    "ConfigError",
    "is_retryable",
]
