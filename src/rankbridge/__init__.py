"""
rankbridge - keeps CS:GO ranks in sync between Steam and TeamSpeak.

- rankbridge.core: errors, logging, settings, protocols, store, exchange bus
- rankbridge.bridge: correlator, friendship lifecycle, relay, resolver
- rankbridge.cli: Typer command line
"""

__version__ = "0.1.0"

from rankbridge.bridge import (  # noqa: E402
    ExchangeRelay,
    FriendshipLifecycleManager,
    IdentityResolver,
    RankBridge,
    RankRequestCorrelator,
)

__all__ = [
    "__version__",
    "ExchangeRelay",
    "FriendshipLifecycleManager",
    "IdentityResolver",
    "RankBridge",
    "RankRequestCorrelator",
]
