"""
Hashed blocks and proof-of-work sealing.

A block's identity is the SHA-256 of index, timestamp, the canonical JSON of its
payload, the previous block's hash and the nonce, concatenated as strings.
"""

import hashlib
import json
from dataclasses import dataclass, replace
from typing import Any, Dict

from .config import get_difficulty
from .events import utc_now_iso

GENESIS_TIMESTAMP = "2024-01-01T00:00:00.000Z"
GENESIS_PAYLOAD = {"message": "Genesis Block"}


def _encode(obj: Any):
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    raise TypeError(f"Object of type {type(obj).__name__} is not serializable into a block")


def serialize_payload(payload: Any) -> str:
    """Canonical compact JSON for the hash input. Key order is preserved, not sorted."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=_encode)


def calculate_hash(index: int, timestamp: str, payload: Any, previous_hash: str, nonce: int) -> str:
    """SHA-256 hex digest over the concatenated block fields."""
    material = f"{index}{timestamp}{serialize_payload(payload)}{previous_hash}{nonce}"
    return hashlib.sha256(material.encode("utf-8", "surrogatepass")).hexdigest()


@dataclass(frozen=True)
class HashedBlock:
    index: int
    timestamp: str
    payload: Any
    previous_hash: str
    nonce: int
    hash: str

    def recompute_hash(self) -> str:
        return calculate_hash(self.index, self.timestamp, self.payload, self.previous_hash, self.nonce)

    def to_dict(self) -> Dict[str, Any]:
        """Wire shape, shared with the HTTP layer."""
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "data": json.loads(serialize_payload(self.payload)),
            "previousHash": self.previous_hash,
            "nonce": self.nonce,
            "hash": self.hash,
        }

    def with_changes(self, **changes) -> "HashedBlock":
        """Copy with some fields replaced. The stored hash is kept as-is."""
        return replace(self, **changes)


def genesis_block() -> HashedBlock:
    """The fixed block 0. Hashed the same way as mined blocks."""
    payload = dict(GENESIS_PAYLOAD)
    return HashedBlock(
        index=0,
        timestamp=GENESIS_TIMESTAMP,
        payload=payload,
        previous_hash="0",
        nonce=0,
        hash=calculate_hash(0, GENESIS_TIMESTAMP, payload, "0", 0),
    )


class ProofOfWorkSealer:
    """Mines blocks whose hash starts with `difficulty` '0' hex characters."""

    def __init__(self, difficulty: int = None):
        self.difficulty = get_difficulty() if difficulty is None else difficulty
        if self.difficulty < 0:
            raise ValueError(f"Difficulty must be >= 0: {self.difficulty}")
        self.prefix = "0" * self.difficulty

    def meets_target(self, block_hash: str) -> bool:
        return block_hash.startswith(self.prefix)

    def seal(self, previous: HashedBlock, payload: Any) -> HashedBlock:
        """
        Mine a block on top of `previous`.

        Unbounded: expected attempts are 16**difficulty. Raises TypeError for payloads
        that cannot be serialized.
        """
        index = previous.index + 1
        timestamp = utc_now_iso()
        nonce = 0

        while True:
            nonce += 1
            block_hash = calculate_hash(index, timestamp, payload, previous.hash, nonce)
            if self.meets_target(block_hash):
                break

        return HashedBlock(
            index=index,
            timestamp=timestamp,
            payload=payload,
            previous_hash=previous.hash,
            nonce=nonce,
            hash=block_hash,
        )
