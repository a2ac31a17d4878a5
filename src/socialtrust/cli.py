#!/usr/bin/env python3
"""
socialtrust CLI — Offline command-line interface for trust and reputation scoring.

Works directly on JSON files (no store or server required). Weights come
from SOCIALTRUST_* environment variables when set.

Commands:
    score      - Trust score for one piece of content and one evaluating user
    reputation - Reputation score and verification level from activity counters
    distance   - Social distance between two users in a connection list
"""

import argparse
import json
import sys
from typing import Optional

from socialtrust.errors import SocialTrustError


def _output(data: dict, args: argparse.Namespace, human_fn=None):
    """Output data as JSON or pretty-printed."""
    if getattr(args, 'json', False):
        print(json.dumps(data, indent=2, default=str))
    elif human_fn:
        human_fn(data)
    else:
        print(json.dumps(data, indent=2, default=str))


def _load_json(path: str):
    if path == "-":
        return json.load(sys.stdin)
    with open(path) as f:
        return json.load(f)


def _load_connections(path: str):
    from socialtrust.models import SocialConnection
    data = _load_json(path)
    if isinstance(data, dict):
        data = data.get("connections", [])
    return [SocialConnection.from_dict(c) for c in data]


def _config():
    from socialtrust.config import TrustConfig
    return TrustConfig.from_env()


# ─── Commands ──────────────────────────────────────────────────────

def cmd_score(args):
    """Score content from a request file.

    Request format:
        {"evaluating_user_id": "...", "now": "ISO-8601 (optional)",
         "metadata": {...}, "connections": [...], "interactions": [...]}
    """
    from socialtrust.calculator import TrustScoreCalculator
    from socialtrust.models import ContentMetadata, SocialConnection, UserInteraction, parse_dt, utcnow

    request = _load_json(args.request)
    calculator = TrustScoreCalculator(_config())
    result = calculator.calculate_trust_score(
        evaluating_user_id=args.user or request.get("evaluating_user_id"),
        connections=[SocialConnection.from_dict(c) for c in request.get("connections", [])],
        interactions=[UserInteraction.from_dict(i) for i in request.get("interactions", [])],
        metadata=ContentMetadata.from_dict(request["metadata"]),
        now=parse_dt(request["now"], "now") if request.get("now") else utcnow(),
    )

    data = result.to_dict()
    data["category"] = calculator.get_trust_category(result.final_score)
    data["meets_threshold"] = calculator.meets_trust_threshold(result.final_score)
    data["percentages"] = calculator.breakdown_percentages(result)

    def human(d):
        b = d["breakdown"]
        print(f"📊 Trust score: {d['final_score']:.2f}/10 ({d['category']})")
        print(f"   {d['explanation']}")
        print(f"   Confidence: {d['confidence']:.2f} ({d['confidence_level']})")
        print(f"   Social:     {b['social_trust_weight']:.2f}  ({d['percentages']['social']:.0f}%)")
        print(f"   Quality:    {b['quality_signals']:.2f}  ({d['percentages']['quality']:.0f}%)")
        print(f"   Recency:    {b['recency_factor']:.2f}  ({d['percentages']['recency']:.0f}%)")
        print(f"   Diversity:  {b['diversity_bonus']:.2f}  ({d['percentages']['diversity']:.0f}%)")
        if d["social_path"]:
            print("   Path:")
            for entry in d["social_path"]:
                print(f"     {entry['user_id']:<20} distance {entry['distance']}  "
                      f"weight {entry['contribution_weight']:.3f}")
        if not d["meets_threshold"]:
            print("   ⚠️  Below minimum trust threshold")

    _output(data, args, human)
    return data


def cmd_reputation(args):
    """Reputation score from counters."""
    from socialtrust.reputation import calculate_reputation_score, determine_verification_level

    for name in ("recommendations", "upvotes", "downvotes", "followers"):
        if getattr(args, name) < 0:
            raise SocialTrustError(f"--{name} must be non-negative")

    score = calculate_reputation_score(args.recommendations, args.upvotes,
                                       args.downvotes, args.followers)
    data = {
        "total_recommendations": args.recommendations,
        "upvotes_received": args.upvotes,
        "downvotes_received": args.downvotes,
        "followers": args.followers,
        "reputation_score": score,
        "verification_level": determine_verification_level(score).value,
    }

    def human(d):
        print(f"⭐ Reputation: {d['reputation_score']:.3f} ({d['verification_level']})")
        print(f"   Recommendations: {d['total_recommendations']}")
        print(f"   Upvotes:         {d['upvotes_received']}")
        print(f"   Downvotes:       {d['downvotes_received']}")
        print(f"   Followers:       {d['followers']}")

    _output(data, args, human)
    return data


def cmd_distance(args):
    """Resolve distance within a connection list."""
    from socialtrust.resolver import AdjacencyIndex

    config = _config()
    index = AdjacencyIndex(_load_connections(args.connections), config)
    resolved = index.resolve(args.source, args.target, args.max_depth)
    data = {
        "source": args.source,
        "target": args.target,
        "distance": resolved.distance,
        "path": list(resolved.path),
        "trust_weight": config.distance_weight(resolved.distance),
    }

    def human(d):
        if d["distance"] is None:
            print(f"🔗 {d['source']} → {d['target']}: no relationship within reach")
            return
        print(f"🔗 {d['source']} → {d['target']}: distance {d['distance']} "
              f"(weight {d['trust_weight']:.2f})")
        print(f"   Path: {' → '.join(d['path'])}")

    _output(data, args, human)
    return data


# ─── Parser ────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="socialtrust",
        description="socialtrust — trust and reputation scoring CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--json", action="store_true", help="Machine-readable JSON output")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default WARNING)")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # score
    p = sub.add_parser("score", help="Trust score for content from a JSON request")
    p.add_argument("request", help="Request JSON file (- for stdin)")
    p.add_argument("-u", "--user", help="Override evaluating_user_id")

    # reputation
    p = sub.add_parser("reputation", help="Reputation score from activity counters")
    p.add_argument("-r", "--recommendations", type=int, default=0)
    p.add_argument("-u", "--upvotes", type=int, default=0)
    p.add_argument("-d", "--downvotes", type=int, default=0)
    p.add_argument("-f", "--followers", type=int, default=0)

    # distance
    p = sub.add_parser("distance", help="Social distance between two users")
    p.add_argument("source", help="Source user ID")
    p.add_argument("target", help="Target user ID")
    p.add_argument("-c", "--connections", required=True, help="Connections JSON file")
    p.add_argument("-m", "--max-depth", type=int, default=None, help="1 or 2 hops")

    return parser


def main(argv: Optional[list[str]] = None) -> Optional[dict]:
    """CLI entry point. Returns result dict for testing."""
    from socialtrust.log import setup_logging

    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.log_level, json_output=args.json)

    commands = {
        "score": cmd_score,
        "reputation": cmd_reputation,
        "distance": cmd_distance,
    }

    try:
        return commands[args.command](args)
    except FileNotFoundError as e:
        print(f"❌ File not found: {e}", file=sys.stderr)
        sys.exit(1)
    except (SocialTrustError, KeyError, json.JSONDecodeError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
