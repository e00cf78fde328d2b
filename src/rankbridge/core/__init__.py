"""
rankbridge core primitives: errors, logging, settings, protocols, the
SQLite identity store and the exchange bus.
"""

from rankbridge.core.errors import (
    BusError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    FetchError,
    IdentityResolutionError,
    ParseError,
    PersistenceError,
    RankBridgeError,
    UpstreamError,
    UpstreamRequestError,
    UpstreamTimeoutError,
    is_retryable,
)
from rankbridge.core.logging import LogContext, configure_logging, get_logger
from rankbridge.core.protocols import (
    IdentityStore,
    PlatformClient,
    ProfileRecord,
    RelationshipEvent,
    RelationshipStatus,
    steam64_to_account_id,
)
from rankbridge.core.settings import BridgeSettings, get_settings, reset_settings

__all__ = [
    # errors
    "BusError",
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "FetchError",
    "IdentityResolutionError",
    "ParseError",
    "PersistenceError",
    "RankBridgeError",
    "UpstreamError",
    "UpstreamRequestError",
    "UpstreamTimeoutError",
    "is_retryable",
    # logging
    "LogContext",
    "configure_logging",
    "get_logger",
    # protocols
    "IdentityStore",
    "PlatformClient",
    "ProfileRecord",
    "RelationshipEvent",
    "RelationshipStatus",
    "steam64_to_account_id",
    # settings
    "BridgeSettings",
    "get_settings",
    "reset_settings",
]
