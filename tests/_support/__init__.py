"""
Test support utilities for rankbridge tests.

Fakes and shared identifiers that are useful across multiple test files
but are not fixtures themselves.
"""

from tests._support.fakes import (
    ACCOUNT_ID,
    GLOBAL_ID,
    OTHER_ACCOUNT_ID,
    OTHER_GLOBAL_ID,
    OTHER_VOICE_ID,
    VOICE_ID,
    FakeIdentityStore,
    FakePlatformClient,
    settle,
)

__all__ = [
    "ACCOUNT_ID",
    "GLOBAL_ID",
    "OTHER_ACCOUNT_ID",
    "OTHER_GLOBAL_ID",
    "OTHER_VOICE_ID",
    "VOICE_ID",
    "FakeIdentityStore",
    "FakePlatformClient",
    "settle",
]
