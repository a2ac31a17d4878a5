"""socialtrust.errors — Error taxonomy for the trust/reputation subsystem.

    SocialTrustError
    ├── NotFound
    │   └── ProfileNotFound
    ├── AlreadyFollowing
    ├── NotFollowing
    ├── GraphUnavailable
    │   └── DeadlineExceeded
    └── InvalidInput (also a ValueError)

GraphUnavailable means the follow graph could not be read. It is never the
same thing as "trust is zero".
"""

from __future__ import annotations

from typing import Optional


class SocialTrustError(Exception):
    """Base class for every error raised by socialtrust."""


class NotFound(SocialTrustError):
    """A requested record does not exist."""


class ProfileNotFound(NotFound):
    def __init__(self, user_id: str, message: str = ""):
        self.user_id = user_id
        super().__init__(message or f"Reputation profile not found: {user_id}")


class AlreadyFollowing(SocialTrustError):
    """Raised when a follow edge already exists for the ordered pair."""

    def __init__(self, follower_id: str, followed_id: str, message: str = ""):
        self.follower_id = follower_id
        self.followed_id = followed_id
        super().__init__(message or f"User {follower_id} is already following {followed_id}")


class NotFollowing(SocialTrustError):
    """Raised when an unfollow targets a pair with no active edge."""

    def __init__(self, follower_id: str, followed_id: str, message: str = ""):
        self.follower_id = follower_id
        self.followed_id = followed_id
        super().__init__(message or f"User {follower_id} is not following {followed_id}")


class GraphUnavailable(SocialTrustError):
    """The social graph store failed while answering a read."""

    def __init__(self, message: str = "", user_id: Optional[str] = None):
        self.user_id = user_id
        super().__init__(message or "Social graph store unavailable")


class DeadlineExceeded(GraphUnavailable):
    """A graph scan ran past the caller-supplied deadline."""

    def __init__(self, lookups: int, message: str = ""):
        self.lookups = lookups
        super().__init__(message or f"Graph scan deadline exceeded after {lookups} lookups")


class InvalidInput(SocialTrustError, ValueError):
    """Malformed input: payloads, pagination, scoring inputs, configuration."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


__all__ = [
    "SocialTrustError",
    "NotFound",
    "ProfileNotFound",
    "AlreadyFollowing",
    "NotFollowing",
    "GraphUnavailable",
    "DeadlineExceeded",
    "InvalidInput",
]
