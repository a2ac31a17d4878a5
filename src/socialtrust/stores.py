"""
socialtrust.stores — Store interfaces for the follow graph and reputation
profiles, plus the in-memory backend.

Interfaces: GraphStore, ProfileStore
Backends:   MemoryStore (here), PostgresStore (socialtrust.database)

Stores enforce at most one active edge per ordered pair and hand back a
LedgerReceipt for every committed mutation.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Optional

from .actions import FollowAction, ReputationFilter, ReputationUpdateAction, UnfollowAction, validated
from .errors import AlreadyFollowing, NotFollowing, ProfileNotFound
from .ledger import MutationLedger
from .models import FollowRelationship, LedgerReceipt, ReputationProfile

logger = logging.getLogger(__name__)


# ─── Abstract stores ───────────────────────────────────────────────

class GraphStore(ABC):
    """Follow-graph persistence.

    Edge listings are ordered by (timestamp, other user id) ascending so
    that bounded scans are deterministic.
    """

    @abstractmethod
    async def get_edge(self, follower_id: str, followed_id: str) -> Optional[FollowRelationship]: ...

    @abstractmethod
    async def get_outbound_edges(self, user_id: str, limit: Optional[int] = None,
                                 offset: int = 0) -> list[FollowRelationship]: ...

    @abstractmethod
    async def get_inbound_edges(self, user_id: str, limit: Optional[int] = None,
                                offset: int = 0) -> list[FollowRelationship]: ...

    @abstractmethod
    async def count_outbound(self, user_id: str) -> int: ...

    @abstractmethod
    async def count_inbound(self, user_id: str) -> int: ...

    @abstractmethod
    async def add_edge(self, relationship: FollowRelationship) -> LedgerReceipt:
        """Insert an edge. Raises AlreadyFollowing if the pair already has one."""

    @abstractmethod
    async def remove_edge(self, follower_id: str, followed_id: str) -> LedgerReceipt:
        """Delete an edge. Raises NotFollowing if there is none."""


class ProfileStore(ABC):
    """Reputation profile persistence."""

    supports_transactions = False

    @abstractmethod
    async def get_profile(self, user_id: str) -> ReputationProfile:
        """Return the stored profile or raise ProfileNotFound."""

    @abstractmethod
    async def put_profile(self, profile: ReputationProfile, created: bool = False) -> ReputationProfile:
        """Commit a profile; the returned copy carries its LedgerReceipt."""

    @abstractmethod
    async def query_profiles(self, filter: ReputationFilter, offset: int = 0,
                             limit: int = 50) -> tuple[list[ReputationProfile], int]:
        """Matching profiles (score descending, then user id) and the total match count."""

    @asynccontextmanager
    async def transaction(self):
        """Group writes. Backends without transactions just run them in sequence."""
        yield self


# ─── Memory Backend ────────────────────────────────────────────────

class MemoryStore(GraphStore, ProfileStore):
    """In-memory graph + profile store (default, for testing and the CLI).

    transaction() serialises transactions with a lock and rolls back edges,
    profiles and ledger entries if the block raises. Writes made outside a
    transaction while one is open are rolled back with it.
    """

    supports_transactions = True

    def __init__(self, ledger: Optional[MutationLedger] = None):
        self.ledger = ledger or MutationLedger()
        self._outbound: dict[str, dict[str, FollowRelationship]] = {}
        self._inbound: dict[str, dict[str, FollowRelationship]] = {}
        self._profiles: dict[str, dict] = {}
        self._lock: Optional[asyncio.Lock] = None
        self._in_tx: ContextVar[bool] = ContextVar(f"socialtrust_memtx_{id(self)}", default=False)

    # Graph

    async def get_edge(self, follower_id: str, followed_id: str) -> Optional[FollowRelationship]:
        return self._outbound.get(follower_id, {}).get(followed_id)

    async def get_outbound_edges(self, user_id: str, limit: Optional[int] = None,
                                 offset: int = 0) -> list[FollowRelationship]:
        edges = sorted(self._outbound.get(user_id, {}).values(),
                       key=lambda e: (e.timestamp, e.followed_id))
        return _slice(edges, limit, offset)

    async def get_inbound_edges(self, user_id: str, limit: Optional[int] = None,
                                offset: int = 0) -> list[FollowRelationship]:
        edges = sorted(self._inbound.get(user_id, {}).values(),
                       key=lambda e: (e.timestamp, e.follower_id))
        return _slice(edges, limit, offset)

    async def count_outbound(self, user_id: str) -> int:
        return len(self._outbound.get(user_id, {}))

    async def count_inbound(self, user_id: str) -> int:
        return len(self._inbound.get(user_id, {}))

    async def add_edge(self, relationship: FollowRelationship) -> LedgerReceipt:
        f, t = relationship.follower_id, relationship.followed_id
        if t in self._outbound.get(f, {}):
            raise AlreadyFollowing(f, t)
        action = validated(FollowAction, follower_id=f, followed_id=t,
                           timestamp=relationship.timestamp,
                           trust_weight=relationship.trust_weight)
        receipt = self.ledger.commit(action)
        self._outbound.setdefault(f, {})[t] = relationship
        self._inbound.setdefault(t, {})[f] = relationship
        return receipt

    async def remove_edge(self, follower_id: str, followed_id: str) -> LedgerReceipt:
        if followed_id not in self._outbound.get(follower_id, {}):
            raise NotFollowing(follower_id, followed_id)
        action = validated(UnfollowAction, follower_id=follower_id, followed_id=followed_id)
        receipt = self.ledger.commit(action)
        del self._outbound[follower_id][followed_id]
        del self._inbound[followed_id][follower_id]
        return receipt

    # Profiles

    async def get_profile(self, user_id: str) -> ReputationProfile:
        data = self._profiles.get(user_id)
        if data is None:
            raise ProfileNotFound(user_id)
        return ReputationProfile.from_dict(data)

    async def put_profile(self, profile: ReputationProfile, created: bool = False) -> ReputationProfile:
        body = profile.to_dict()
        body.pop("ledger", None)
        action = validated(ReputationUpdateAction, operation="create" if created else "update",
                           user_id=profile.user_id, profile=body)
        body["ledger"] = self.ledger.commit(action).to_dict()
        self._profiles[profile.user_id] = body
        return ReputationProfile.from_dict(body)

    async def query_profiles(self, filter: ReputationFilter, offset: int = 0,
                             limit: int = 50) -> tuple[list[ReputationProfile], int]:
        matches = [ReputationProfile.from_dict(d) for d in self._profiles.values()]
        matches = [p for p in matches if _matches(p, filter)]
        matches.sort(key=lambda p: (-p.reputation_score, p.user_id))
        return matches[offset:offset + limit], len(matches)

    @asynccontextmanager
    async def transaction(self):
        """Serialise the block and restore a snapshot on error. Nested calls join the outer one."""
        if self._in_tx.get():
            yield self
            return
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            snapshot = (copy.deepcopy(self._outbound), copy.deepcopy(self._inbound),
                        copy.deepcopy(self._profiles), self.ledger.size)
            token = self._in_tx.set(True)
            try:
                yield self
            except BaseException:
                self._outbound, self._inbound, self._profiles, ledger_size = snapshot
                self.ledger.truncate(ledger_size)
                logger.debug("Memory transaction rolled back to ledger size %d", ledger_size)
                raise
            finally:
                self._in_tx.reset(token)


def _slice(items: list, limit: Optional[int], offset: int) -> list:
    if limit is None:
        return items[offset:]
    return items[offset:offset + limit]


def _matches(profile: ReputationProfile, filter: ReputationFilter) -> bool:
    if filter.user_id and profile.user_id != filter.user_id:
        return False
    if filter.min_reputation_score is not None and profile.reputation_score < filter.min_reputation_score:
        return False
    if filter.verification_level and profile.verification_level != filter.verification_level:
        return False
    if filter.specialization and filter.specialization not in profile.specializations:
        return False
    return True


__all__ = ["GraphStore", "ProfileStore", "MemoryStore"]
