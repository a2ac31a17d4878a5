"""
socialtrust.ledger — Tamper-evident ledger of committed mutations.

Every reputation update, follow and unfollow committed through a store is
appended here as a hash-chained entry. The receipt handed back to callers
(commit number + opaque object id) is the audit reference for that write.

Each entry includes the hash of the previous entry, so any modification to
history breaks the chain. With a signing key, each entry hash is also
signed with Ed25519 so the ledger can be verified by a third party holding
only the public key.

Usage:
    ledger = MutationLedger(signing_key=SigningKey.generate())
    receipt = ledger.commit(FollowAction(...))
    ok, bad_index = ledger.verify_integrity()
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from nacl.encoding import HexEncoder
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from .actions import FollowAction, ReputationUpdateAction, UnfollowAction
from .models import LedgerReceipt

GENESIS = "genesis"

Action = Union[ReputationUpdateAction, FollowAction, UnfollowAction]


@dataclass
class LedgerEntry:
    """A single committed mutation with hash-chain integrity."""
    kind: str
    subject_id: str
    payload: dict
    committed_at: str
    commit_number: int
    prev_hash: str = GENESIS
    entry_hash: str = ""
    signature: str = ""

    def compute_hash(self) -> str:
        """SHA-256 over the entry's content and prev_hash."""
        content = json.dumps({
            "kind": self.kind,
            "subject_id": self.subject_id,
            "payload": self.payload,
            "committed_at": self.committed_at,
            "commit_number": self.commit_number,
            "prev_hash": self.prev_hash,
        }, sort_keys=True)
        return hashlib.sha256(content.encode()).hexdigest()

    @property
    def receipt(self) -> LedgerReceipt:
        return LedgerReceipt(self.commit_number, self.entry_hash, self.signature)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "LedgerEntry":
        return cls(**data)


def subject_of(action: Action) -> str:
    if isinstance(action, ReputationUpdateAction):
        return action.user_id
    return action.follower_id


class MutationLedger:
    """
    Append-only, hash-chained record of store mutations.

    Query:
        ledger.query(subject_id="alice")
        ledger.query(kind="follow", limit=10)
    """

    def __init__(self, signing_key: Optional[SigningKey] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self._entries: list[LedgerEntry] = []
        self._signing_key = signing_key
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def public_key_hex(self) -> Optional[str]:
        if self._signing_key is None:
            return None
        return self._signing_key.verify_key.encode(encoder=HexEncoder).decode()

    def commit(self, action: Action) -> LedgerReceipt:
        """Append a validated action and return its receipt."""
        entry = LedgerEntry(
            kind=action.kind,
            subject_id=subject_of(action),
            payload=action.model_dump(mode="json"),
            committed_at=self._clock().isoformat(),
            commit_number=len(self._entries) + 1,
            prev_hash=self._entries[-1].entry_hash if self._entries else GENESIS,
        )
        entry.entry_hash = entry.compute_hash()
        if self._signing_key is not None:
            entry.signature = self._signing_key.sign(entry.entry_hash.encode()).signature.hex()
        self._entries.append(entry)
        return entry.receipt

    def truncate(self, size: int) -> None:
        """Drop entries after `size`. Used to roll back an aborted transaction."""
        del self._entries[size:]

    def verify_integrity(self, public_key_hex: Optional[str] = None) -> tuple[bool, Optional[int]]:
        """
        Walk the chain. Returns (True, None) if intact, or (False, index) of
        the first corrupted entry. With a public key, signatures are checked too.
        """
        verify_key = VerifyKey(public_key_hex.encode(), encoder=HexEncoder) if public_key_hex else None
        for i, entry in enumerate(self._entries):
            if entry.entry_hash != entry.compute_hash():
                return False, i
            expected_prev = GENESIS if i == 0 else self._entries[i - 1].entry_hash
            if entry.prev_hash != expected_prev or entry.commit_number != i + 1:
                return False, i
            if verify_key is not None:
                try:
                    verify_key.verify(entry.entry_hash.encode(), bytes.fromhex(entry.signature))
                except (BadSignatureError, ValueError):
                    return False, i
        return True, None

    def get(self, commit_number: int) -> Optional[LedgerEntry]:
        if 1 <= commit_number <= len(self._entries):
            return self._entries[commit_number - 1]
        return None

    def query(self, subject_id: Optional[str] = None, kind: Optional[str] = None,
              limit: int = 100) -> list[LedgerEntry]:
        """Most recent matching entries, returned oldest first."""
        results = []
        for entry in reversed(self._entries):
            if subject_id and entry.subject_id != subject_id:
                continue
            if kind and entry.kind != kind:
                continue
            results.append(entry)
            if len(results) >= limit:
                break
        return list(reversed(results))

    def export_json(self) -> str:
        return json.dumps([e.to_dict() for e in self._entries], indent=2)

    @classmethod
    def from_json(cls, data: str, public_key_hex: Optional[str] = None) -> "MutationLedger":
        """Import a ledger. Verifies integrity after import."""
        ledger = cls()
        for entry_data in json.loads(data):
            ledger._entries.append(LedgerEntry.from_dict(entry_data))
        ok, bad_idx = ledger.verify_integrity(public_key_hex)
        if not ok:
            raise ValueError(f"Imported ledger has corrupted entry at index {bad_idx}")
        return ledger

    @property
    def size(self) -> int:
        return len(self._entries)

    def summary(self) -> dict:
        kind_counts: dict[str, int] = {}
        for entry in self._entries:
            kind_counts[entry.kind] = kind_counts.get(entry.kind, 0) + 1
        return {
            "total_entries": len(self._entries),
            "kind_counts": kind_counts,
            "head": self._entries[-1].entry_hash if self._entries else GENESIS,
            "signed": self._signing_key is not None,
            "integrity_verified": self.verify_integrity(self.public_key_hex)[0],
        }


__all__ = ["LedgerEntry", "MutationLedger", "GENESIS", "subject_of"]
