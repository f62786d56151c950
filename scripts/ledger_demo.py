#!/usr/bin/env python3
"""
Ledger demo - mines a couple of blocks and verifies the chain.
"""

import argparse
import json
import sys
from pathlib import Path

# Add the project root to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.core.block import ProofOfWorkSealer
from src.core.ledger import Ledger


def main():
    parser = argparse.ArgumentParser(description="Mine two demo blocks and verify the chain")
    parser.add_argument("--difficulty", type=int, default=None,
                        help="Leading zero hex characters (default: LEDGER_DIFFICULTY)")
    args = parser.parse_args()

    ledger = Ledger(ProofOfWorkSealer(args.difficulty))

    print("Starting ledger demo...\n")
    print("Genesis block:")
    print(json.dumps(ledger.latest().to_dict(), indent=2))

    print("\nMining a couple of blocks...\n")
    ledger.append({"from": "alice", "to": "bob", "amount": 10})
    ledger.append({"from": "bob", "to": "charlie", "amount": 5})

    print("Full chain:")
    print(json.dumps(ledger.to_dict()["chain"], indent=2))

    valid = ledger.verify()
    print(f"\nChain valid? {valid}")
    return 0 if valid else 1


if __name__ == "__main__":
    sys.exit(main())
