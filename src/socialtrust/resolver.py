"""
socialtrust.resolver — Bounded social distance over the follow graph.

Answers "how many hops from E to T, and through whom?" for at most two
hops:

    E == T                      → distance 0
    edge E→T                    → distance 1
    edge E→M and M→T            → distance 2 (M from E's first fan_out_cap follows)
    otherwise                   → unreachable

E's follows are enumerated in (edge timestamp, followed id) order and the
first matching intermediate is recorded as the path. The order only decides
which path is reported, never the distance.

SocialDistanceResolver reads an async GraphStore. AdjacencyIndex answers the
same question synchronously over a request-scoped connection list, for the
pure trust-score calculator.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from .config import DEFAULT_CONFIG, TrustConfig
from .errors import DeadlineExceeded, GraphUnavailable, InvalidInput, SocialTrustError
from .models import SocialConnection
from .stores import GraphStore

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class SocialDistance:
    """Resolved distance plus the path used. distance None means no relationship."""
    distance: Optional[int]
    path: tuple[str, ...] = ()
    lookups: int = 0

    @property
    def reachable(self) -> bool:
        return self.distance is not None

    @property
    def first_hop(self) -> Optional[str]:
        """The evaluator's direct follow through which the target is reached."""
        return self.path[1] if len(self.path) > 1 else None


def unreachable(lookups: int = 0) -> SocialDistance:
    return SocialDistance(None, (), lookups)


def check_depth(max_depth: Optional[int], config: TrustConfig) -> int:
    depth = config.max_social_distance if max_depth is None else max_depth
    if not isinstance(depth, int) or not 1 <= depth <= config.max_social_distance:
        raise InvalidInput(
            f"max_depth must be between 1 and {config.max_social_distance}, got {max_depth!r}",
            field="max_depth",
        )
    return depth


def candidate_order(edge) -> tuple:
    """Sort key for fan-out enumeration: oldest edge first, then user id."""
    if isinstance(edge, SocialConnection):
        return (edge.established_at or _EPOCH, edge.to_user_id)
    return (edge.timestamp, edge.followed_id)


# ─── Async resolver ────────────────────────────────────────────────

class SocialDistanceResolver:
    """Bounded BFS (≤2 hops) over a GraphStore.

    Worst case per call: one direct lookup, one fan-out listing and
    fan_out_cap second-hop lookups.
    """

    def __init__(self, graph: GraphStore, config: TrustConfig = DEFAULT_CONFIG):
        self._graph = graph
        self._config = config

    @property
    def config(self) -> TrustConfig:
        return self._config

    async def resolve(self, source_id: str, target_id: str, max_depth: Optional[int] = None,
                      deadline: Optional[float] = None) -> SocialDistance:
        """Resolve the social distance from source to target.

        Args:
            max_depth: 1 or 2; defaults to config.max_social_distance.
            deadline: event-loop time (loop.time()) after which the scan
                aborts with DeadlineExceeded.

        Raises:
            GraphUnavailable: the store failed during the scan.
        """
        depth = check_depth(max_depth, self._config)
        if source_id == target_id:
            return SocialDistance(0, (source_id,))

        lookups = 0
        self._check_deadline(deadline, lookups)
        direct = await self._read(self._graph.get_edge, source_id, target_id)
        lookups += 1
        if direct is not None:
            return SocialDistance(1, (source_id, target_id), lookups)
        if depth < 2:
            return unreachable(lookups)

        cap = self._config.fan_out_cap
        self._check_deadline(deadline, lookups)
        follows = await self._read(self._graph.get_outbound_edges, source_id, limit=cap)
        lookups += 1

        for edge in sorted(follows, key=candidate_order)[:cap]:
            self._check_deadline(deadline, lookups)
            hop = await self._read(self._graph.get_edge, edge.followed_id, target_id)
            lookups += 1
            if hop is not None:
                return SocialDistance(2, (source_id, edge.followed_id, target_id), lookups)

        logger.debug("No path %s -> %s within %d hops (%d lookups)",
                     source_id, target_id, depth, lookups)
        return unreachable(lookups)

    async def _read(self, fn, *args, **kwargs):
        try:
            return await fn(*args, **kwargs)
        except SocialTrustError:
            raise
        except Exception as e:
            logger.warning("Graph read %s%r failed: %s", fn.__name__, args, e)
            raise GraphUnavailable(f"Graph read failed: {e}", user_id=args[0] if args else None) from e

    @staticmethod
    def _check_deadline(deadline: Optional[float], lookups: int) -> None:
        if deadline is not None and asyncio.get_running_loop().time() >= deadline:
            raise DeadlineExceeded(lookups)


# ─── Request-scoped index ──────────────────────────────────────────

@dataclass
class Neighbourhood:
    """Everyone within reach of `source`, with the distance and path to each."""
    source: str
    reached: dict[str, SocialDistance] = field(default_factory=dict)
    edges_examined: int = 0

    def get(self, user_id: str) -> SocialDistance:
        if user_id == self.source:
            return SocialDistance(0, (self.source,))
        return self.reached.get(user_id, unreachable())


class AdjacencyIndex:
    """Adjacency built from a connection list for one scoring request.

    Rejects duplicate edges for an ordered pair. Holds no state beyond the
    request.
    """

    def __init__(self, connections: Iterable[SocialConnection], config: TrustConfig = DEFAULT_CONFIG):
        self._config = config
        self._out: dict[str, dict[str, SocialConnection]] = {}
        self._ordered: dict[str, list[SocialConnection]] = {}
        count = 0
        for conn in connections:
            if not isinstance(conn, SocialConnection):
                raise InvalidInput(f"Expected SocialConnection, got {type(conn).__name__}",
                                   field="connections")
            targets = self._out.setdefault(conn.from_user_id, {})
            if conn.to_user_id in targets:
                raise InvalidInput(
                    f"Duplicate connection {conn.from_user_id} -> {conn.to_user_id}",
                    field="connections",
                )
            targets[conn.to_user_id] = conn
            count += 1
        self.size = count

    def edge(self, from_user_id: str, to_user_id: str) -> Optional[SocialConnection]:
        return self._out.get(from_user_id, {}).get(to_user_id)

    def outbound(self, user_id: str) -> list[SocialConnection]:
        """All of a user's edges in fan-out order."""
        if user_id not in self._ordered:
            self._ordered[user_id] = sorted(self._out.get(user_id, {}).values(), key=candidate_order)
        return self._ordered[user_id]

    def resolve(self, source_id: str, target_id: str, max_depth: Optional[int] = None) -> SocialDistance:
        depth = check_depth(max_depth, self._config)
        if source_id == target_id:
            return SocialDistance(0, (source_id,))
        if self.edge(source_id, target_id) is not None:
            return SocialDistance(1, (source_id, target_id), 1)
        if depth < 2:
            return unreachable(1)
        lookups = 2
        for conn in self.outbound(source_id)[:self._config.fan_out_cap]:
            lookups += 1
            if self.edge(conn.to_user_id, target_id) is not None:
                return SocialDistance(2, (source_id, conn.to_user_id, target_id), lookups)
        return unreachable(lookups)

    def neighbourhood(self, source_id: str, max_depth: Optional[int] = None) -> Neighbourhood:
        """Resolve every user within max_depth of source in one pass.

        Gives the same answer as resolve() for each reached user.
        """
        depth = check_depth(max_depth, self._config)
        hood = Neighbourhood(source_id)
        first_hops = self.outbound(source_id)
        hood.edges_examined = len(first_hops)
        for conn in first_hops:
            if conn.to_user_id != source_id:
                hood.reached[conn.to_user_id] = SocialDistance(1, (source_id, conn.to_user_id))
        if depth < 2:
            return hood
        for conn in first_hops[:self._config.fan_out_cap]:
            second_hops = self.outbound(conn.to_user_id)
            hood.edges_examined += len(second_hops)
            for nxt in second_hops:
                target = nxt.to_user_id
                if target == source_id or target in hood.reached:
                    continue
                hood.reached[target] = SocialDistance(2, (source_id, conn.to_user_id, target))
        return hood


__all__ = [
    "SocialDistance",
    "SocialDistanceResolver",
    "AdjacencyIndex",
    "Neighbourhood",
    "unreachable",
    "check_depth",
    "candidate_order",
]
