import logging
import time

from .exceptions import MiningCancelled
from .hashing import canonical_json, digest
from .models import payload_from_data

logger = logging.getLogger(__name__)


def now_ms():
    return int(time.time() * 1000)


class Block:
    def __init__(self, index, timestamp, data, previous_hash=""):
        self.index = index
        self.timestamp = timestamp
        self.data = payload_from_data(data)
        self.previous_hash = previous_hash
        self.nonce = 0
        self.hash = self.calculate_hash()

    def calculate_hash(self):
        """Hash index, previous hash, timestamp, payload and nonce together."""
        block_string = "{}{}{}{}{}".format(
            self.index,
            self.previous_hash,
            self.timestamp,
            canonical_json(self.data.to_data()),
            self.nonce,
        )
        return digest(block_string)

    def meets_difficulty(self, difficulty):
        return self.hash.startswith("0" * difficulty)

    def mine(self, difficulty, should_stop=None):
        """
        Proof of work: bump the nonce until the hash starts with
        ``difficulty`` hex zeros.

        ``should_stop`` is polled before every attempt; returning True
        aborts the search with MiningCancelled.
        """
        while not self.meets_difficulty(difficulty):
            if should_stop is not None and should_stop():
                raise MiningCancelled(f"Mining of block {self.index} cancelled at nonce {self.nonce}")
            self.nonce += 1
            self.hash = self.calculate_hash()
        logger.info("Block %s mined: %s (nonce=%s)", self.index, self.hash, self.nonce)
        return self.hash

    @property
    def transactions(self):
        return self.data.transactions()

    def to_dict(self):
        return {
            "index": self.index,
            "timestamp": self.timestamp,
            "data": self.data.to_data(),
            "previousHash": self.previous_hash,
            "hash": self.hash,
            "nonce": self.nonce,
        }

    @classmethod
    def from_dict(cls, data):
        # Stored hash and nonce are kept as-is so tampering stays detectable.
        block = cls(data["index"], data["timestamp"], data["data"], data["previousHash"])
        block.nonce = data.get("nonce", 0)
        block.hash = data["hash"]
        return block

    def __repr__(self):
        return f"Block(index={self.index}, hash={self.hash[:12]}..., nonce={self.nonce})"
