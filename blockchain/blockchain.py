import logging
from collections.abc import Mapping

from .block import Block, now_ms
from .exceptions import BlockNotFoundError, ValidationError
from .models import (
    BatchPayload,
    ChainValidation,
    GenesisPayload,
    SinglePayload,
    Transaction,
    TransactionView,
    check_transaction,
)

logger = logging.getLogger(__name__)

DEFAULT_DIFFICULTY = 2
GENESIS_PREVIOUS_HASH = "0"
GENESIS_MESSAGE = "Genesis Block - Secure Document Ledger"


def _as_transaction(transaction):
    if isinstance(transaction, Mapping):
        transaction = Transaction.from_dict(transaction)
    if not isinstance(transaction, Transaction):
        raise ValidationError("Expected a transaction")
    return check_transaction(transaction)


class Blockchain:
    """
    Append-only chain of proof-of-work blocks.

    The ledger does no locking of its own. Callers that share one instance
    between threads must serialize ``stage_transaction``,
    ``mine_pending_transactions`` and ``add_block`` and must not validate
    while an append is in progress.
    """

    def __init__(self, difficulty=DEFAULT_DIFFICULTY):
        if difficulty < 0:
            raise ValidationError("Difficulty must be a non-negative integer")
        self.difficulty = difficulty
        self.chain = [self.create_genesis_block()]
        self.pending_transactions = []

    @staticmethod
    def create_genesis_block():
        return Block(0, now_ms(), GenesisPayload(GENESIS_MESSAGE), GENESIS_PREVIOUS_HASH)

    @property
    def latest_block(self):
        return self.chain[-1]

    def __len__(self):
        return len(self.chain)

    def get_block(self, index):
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(self.chain):
            raise BlockNotFoundError(index)
        return self.chain[index]

    def stage_transaction(self, transaction):
        """Queue a transaction for the next mined block. Does not mine."""
        transaction = _as_transaction(transaction)
        self.pending_transactions.append(transaction)
        return len(self.pending_transactions)

    def _next_block(self, payload):
        return Block(len(self.chain), now_ms(), payload, self.latest_block.hash)

    def mine_pending_transactions(self, should_stop=None):
        """
        Mine every staged transaction into one block.

        Returns the mined transactions, or None when nothing is pending.
        """
        if not self.pending_transactions:
            return None

        block = self._next_block(BatchPayload(tuple(self.pending_transactions)))
        block.mine(self.difficulty, should_stop=should_stop)
        self.chain.append(block)

        mined = list(self.pending_transactions)
        self.pending_transactions = []
        logger.info("Mined block %s with %d pending transaction(s)", block.index, len(mined))
        return mined

    def add_block(self, transaction, should_stop=None):
        """Mine and append a block holding a single transaction right away."""
        transaction = _as_transaction(transaction)
        block = self._next_block(SinglePayload(transaction))
        block.mine(self.difficulty, should_stop=should_stop)
        self.chain.append(block)
        logger.info("Appended block %s for document %s", block.index, transaction.document_id)
        return block

    def validate(self):
        # The genesis block is not re-checked; the walk starts at index 1.
        chain = list(self.chain)
        for i in range(1, len(chain)):
            current = chain[i]
            previous = chain[i - 1]

            if current.hash != current.calculate_hash():
                logger.warning("Invalid hash in block %s", i)
                return ChainValidation(False, f"Block {i} hash does not match its contents", i)

            if current.previous_hash != previous.hash:
                logger.warning("Broken link at block %s", i)
                return ChainValidation(False, f"Block {i} does not link to block {i - 1}", i)

            if not current.meets_difficulty(self.difficulty):
                logger.warning("Invalid proof of work in block %s", i)
                return ChainValidation(False, f"Block {i} does not satisfy proof of work", i)

        return ChainValidation(True, "Blockchain is valid and intact")

    def is_valid(self):
        return self.validate().valid

    def find_transactions_by_document_id(self, document_id):
        views = []
        for block in self.chain:
            if block.index == 0:
                continue
            for transaction in block.transactions:
                if transaction.document_id == document_id:
                    views.append(TransactionView(transaction, block.index, block.hash, block.timestamp))
        return views

    def stats(self):
        return {
            "totalBlocks": len(self.chain),
            "difficulty": self.difficulty,
            "pendingCount": len(self.pending_transactions),
            "isValid": self.is_valid(),
            "latestBlock": self.latest_block.to_dict(),
        }

    def to_dict(self):
        return {
            "chain": [block.to_dict() for block in self.chain],
            "difficulty": self.difficulty,
            "pendingTransactions": [tx.to_dict() for tx in self.pending_transactions],
        }

    @classmethod
    def from_dict(cls, data):
        """Restore a snapshot produced by ``to_dict``. Blocks are not re-mined."""
        blocks = data.get("chain") or []
        if not blocks:
            raise ValidationError("Snapshot has no blocks")
        ledger = cls(difficulty=data.get("difficulty", DEFAULT_DIFFICULTY))
        ledger.chain = [Block.from_dict(block) for block in blocks]
        ledger.pending_transactions = [
            Transaction.from_dict(tx) for tx in data.get("pendingTransactions", [])
        ]
        return ledger
