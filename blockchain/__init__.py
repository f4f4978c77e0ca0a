from .block import Block
from .blockchain import DEFAULT_DIFFICULTY, GENESIS_PREVIOUS_HASH, Blockchain
from .exceptions import (
    BlockNotFoundError,
    LedgerError,
    MiningCancelled,
    NotFoundError,
    ValidationError,
)
from .hashing import canonical_json, digest, verify_digest
from .models import (
    BatchPayload,
    ChainValidation,
    GenesisPayload,
    SinglePayload,
    Transaction,
    TransactionView,
)

__all__ = [
    "Block",
    "Blockchain",
    "DEFAULT_DIFFICULTY",
    "GENESIS_PREVIOUS_HASH",
    "BlockNotFoundError",
    "LedgerError",
    "MiningCancelled",
    "NotFoundError",
    "ValidationError",
    "canonical_json",
    "digest",
    "verify_digest",
    "BatchPayload",
    "ChainValidation",
    "GenesisPayload",
    "SinglePayload",
    "Transaction",
    "TransactionView",
]
