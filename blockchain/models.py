from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .exceptions import ValidationError

DOCUMENT_REGISTRATION = "document_registration"
GENESIS_TYPE = "genesis"

# (attribute, JSON key)
_TRANSACTION_FIELDS = (
    ("type", "type"),
    ("document_id", "documentId"),
    ("document_name", "documentName"),
    ("document_hash", "documentHash"),
    ("user_id", "userId"),
    ("signature", "signature"),
    ("timestamp", "timestamp"),
)
_TRANSACTION_KEYS = frozenset(key for _, key in _TRANSACTION_FIELDS)


@dataclass(frozen=True)
class Transaction:
    """A signed-document event anchored in the ledger. Immutable once built."""

    document_id: Optional[str]
    user_id: Optional[str]
    type: str = DOCUMENT_REGISTRATION
    document_name: Optional[str] = None
    document_hash: Optional[str] = None
    signature: Optional[str] = None
    timestamp: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {key: getattr(self, attr) for attr, key in _TRANSACTION_FIELDS}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Transaction":
        if not isinstance(data, Mapping):
            raise ValidationError("Transaction must be a JSON object")
        unknown = set(data) - _TRANSACTION_KEYS
        if unknown:
            raise ValidationError(f"Unknown transaction fields: {', '.join(sorted(map(str, unknown)))}")
        values = {attr: data.get(key) for attr, key in _TRANSACTION_FIELDS}
        values["type"] = data.get("type", DOCUMENT_REGISTRATION)
        return cls(**values)


def check_transaction(transaction: Transaction) -> Transaction:
    if not transaction.document_id or not transaction.user_id:
        raise ValidationError("Transaction must include documentId and userId")
    if not isinstance(transaction.type, str) or not transaction.type:
        raise ValidationError("Transaction type must be a non-empty string")
    if transaction.type == GENESIS_TYPE:
        raise ValidationError("Transactions cannot use the genesis type")
    for attr, key in _TRANSACTION_FIELDS:
        value = getattr(transaction, attr)
        if isinstance(value, str):
            try:
                value.encode("utf-8")
            except UnicodeEncodeError:
                raise ValidationError(f"{key} is not valid text") from None
    return transaction


@dataclass(frozen=True)
class GenesisPayload:
    message: str

    def to_data(self):
        return {"type": GENESIS_TYPE, "message": self.message}

    def transactions(self) -> Tuple[Transaction, ...]:
        return ()


@dataclass(frozen=True)
class SinglePayload:
    transaction: Transaction

    def to_data(self):
        return self.transaction.to_dict()

    def transactions(self) -> Tuple[Transaction, ...]:
        return (self.transaction,)


@dataclass(frozen=True)
class BatchPayload:
    items: Tuple[Transaction, ...]

    def to_data(self):
        return [tx.to_dict() for tx in self.items]

    def transactions(self) -> Tuple[Transaction, ...]:
        return self.items


def payload_from_data(data):
    """Rebuild a block payload from its JSON form."""
    if isinstance(data, (GenesisPayload, SinglePayload, BatchPayload)):
        return data
    if isinstance(data, Transaction):
        return SinglePayload(data)
    if isinstance(data, list):
        return BatchPayload(tuple(Transaction.from_dict(item) for item in data))
    if isinstance(data, Mapping):
        if data.get("type") == GENESIS_TYPE:
            return GenesisPayload(data.get("message", ""))
        return SinglePayload(Transaction.from_dict(data))
    raise ValidationError(f"Unsupported block payload: {type(data).__name__}")


@dataclass(frozen=True)
class TransactionView:
    """A transaction found in the chain, stamped with its containing block."""

    transaction: Transaction
    block_index: int
    block_hash: str
    timestamp: int

    @property
    def document_id(self):
        return self.transaction.document_id

    @property
    def document_hash(self):
        return self.transaction.document_hash

    def to_dict(self):
        view = self.transaction.to_dict()
        view.update(
            blockIndex=self.block_index,
            blockHash=self.block_hash,
            timestamp=self.timestamp,
        )
        return view


@dataclass(frozen=True)
class ChainValidation:
    valid: bool
    message: str
    block_index: Optional[int] = None

    def __bool__(self):
        return self.valid

    def to_dict(self):
        return {"valid": self.valid, "message": self.message, "blockIndex": self.block_index}
