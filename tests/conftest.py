"""Shared fixtures for socialtrust tests."""
import logging
import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from socialtrust.config import TrustConfig
from socialtrust.models import ContentMetadata, InteractionType, SocialConnection, UserInteraction

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class Clock:
    """Deterministic clock that advances one second per call."""

    def __init__(self, start: datetime = NOW):
        self.current = start

    def __call__(self) -> datetime:
        self.current += timedelta(seconds=1)
        return self.current


def conn(a: str, b: str, days_ago: float = 10) -> SocialConnection:
    return SocialConnection(a, b, established_at=NOW - timedelta(days=days_ago))


def act(user: str, kind: InteractionType = InteractionType.UPVOTE, content: str = "rec-1",
        hours_ago: float = 1) -> UserInteraction:
    return UserInteraction(user, content, kind, NOW - timedelta(hours=hours_ago))


def meta(author: str = "author", content: str = "rec-1", days_old: float = 0) -> ContentMetadata:
    return ContentMetadata(content, author, NOW - timedelta(days=days_old))


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the CLI attaches so they never outlive a captured stream."""
    yield
    logging.getLogger("socialtrust").handlers.clear()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def config():
    return TrustConfig()
