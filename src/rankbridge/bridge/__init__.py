"""
Bridge components: rank correlation, friendship lifecycle, exchange relay
and onboarding identity resolution.
"""

from rankbridge.bridge.correlator import RankRequestCorrelator
from rankbridge.bridge.lifecycle import (
    Action,
    FriendshipLifecycleManager,
    FriendshipState,
    Registration,
    Transition,
    transition,
)
from rankbridge.bridge.relay import ExchangeRelay
from rankbridge.bridge.resolver import IdentityResolver, profile_url_for, xml_profile_url
from rankbridge.bridge.service import RankBridge
from rankbridge.bridge.wire import ExchangeCommand, parse_command, rank_reply

__all__ = [
    "Action",
    "ExchangeCommand",
    "ExchangeRelay",
    "FriendshipLifecycleManager",
    "FriendshipState",
    "IdentityResolver",
    "RankBridge",
    "RankRequestCorrelator",
    "Registration",
    "Transition",
    "parse_command",
    "profile_url_for",
    "rank_reply",
    "transition",
    "xml_profile_url",
]
