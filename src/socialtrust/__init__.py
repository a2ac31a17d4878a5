"""socialtrust — Social-graph trust scoring and reputation for recommendations."""

from socialtrust.config import TrustConfig, DEFAULT_CONFIG
from socialtrust.errors import (
    SocialTrustError, NotFound, ProfileNotFound,
    AlreadyFollowing, NotFollowing,
    GraphUnavailable, DeadlineExceeded, InvalidInput,
)
from socialtrust.models import (
    ConnectionType, InteractionType, VerificationLevel, ConfidenceLevel,
    SocialConnection, FollowRelationship, ContentMetadata, UserInteraction,
    LedgerReceipt, ReputationProfile,
    TrustBreakdown, SocialPathEntry, TrustScoreResult, Page,
)
from socialtrust.actions import (
    RecommendationAction, RecommendationActionType, ProfileUpdate,
    ReputationUpdateAction, FollowAction, UnfollowAction, parse_action,
    Pagination, ReputationFilter,
)
from socialtrust.ledger import MutationLedger, LedgerEntry
from socialtrust.stores import GraphStore, ProfileStore, MemoryStore
from socialtrust.resolver import SocialDistance, SocialDistanceResolver, AdjacencyIndex
from socialtrust.reputation import (
    ReputationScoreEngine, FollowResult, ReconcileReport,
    calculate_reputation_score, determine_verification_level,
)
from socialtrust.calculator import TrustScoreCalculator, calculate_trust_score
from socialtrust.log import setup_logging, bind_operation

# PostgreSQL backend: from socialtrust.database import PostgresStore

__version__ = "0.1.0"
