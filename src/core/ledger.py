"""
The append-only, hash-linked chain of sealed blocks.
"""

import threading
from typing import Any, Dict, List

from .block import HashedBlock, ProofOfWorkSealer, genesis_block

from util.logging import logger


class Ledger:
    """
    Ordered chain of HashedBlock, never empty (index 0 is genesis).

    Appends are serialized by an append lock that is held while mining. Reads take
    a separate short lock, so dumps and verification never wait for proof-of-work and
    always see a consistent point-in-time chain.
    """

    def __init__(self, sealer: ProofOfWorkSealer = None):
        self.sealer = sealer or ProofOfWorkSealer()
        self._chain: List[HashedBlock] = [genesis_block()]
        self._lock = threading.Lock()
        self._append_lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._chain)

    @property
    def chain(self) -> List[HashedBlock]:
        """Point-in-time copy of the chain."""
        with self._lock:
            return list(self._chain)

    def latest(self) -> HashedBlock:
        with self._lock:
            return self._chain[-1]

    def append(self, payload: Any) -> HashedBlock:
        """Seal `payload` on top of the latest block and push it."""
        with self._append_lock:
            block = self.sealer.seal(self.latest(), payload)
            with self._lock:
                self._chain.append(block)

        logger.log_block_sealed(block.index, block.hash, block.nonce,
                                len(payload) if isinstance(payload, (list, tuple)) else 1)
        return block

    def verify(self, chain: List[HashedBlock] = None) -> bool:
        """
        Full O(n) recompute over a point-in-time copy (or the given chain copy).

        Returns False on the first block whose previous_hash does not link to its
        predecessor or whose stored hash does not match its fields.
        """
        if chain is None:
            chain = self.chain

        for i in range(1, len(chain)):
            current = chain[i]
            previous = chain[i - 1]

            if current.previous_hash != previous.hash:
                logger.log_chain_verification(False, len(chain), failed_index=i, reason="broken_link")
                return False

            if current.hash != current.recompute_hash():
                logger.log_chain_verification(False, len(chain), failed_index=i, reason="hash_mismatch")
                return False

        logger.log_chain_verification(True, len(chain))
        return True

    def to_dict(self) -> Dict[str, Any]:
        chain = self.chain
        return {"length": len(chain), "chain": [block.to_dict() for block in chain]}
