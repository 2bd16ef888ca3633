"""
Client layer for the Tezeus API.

An explicit ClientSession is passed to every consumer; header derivation,
resource queries, conversation actions and the session monitor all read
identity from it instead of ambient storage.
"""

from .config import ClientConfig
from .session import CachedUser, ClientSession, SelectedWorkspace

__all__ = ["CachedUser", "ClientConfig", "ClientSession", "SelectedWorkspace"]
