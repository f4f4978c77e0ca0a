import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from blockchain.hashing import digest
from blockchain.models import DOCUMENT_REGISTRATION, Transaction


def utcnow_iso():
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass
class Document:
    filename: str
    original_name: str
    user_id: str
    hash: str
    size: int
    encrypted: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    uploaded_at: str = field(default_factory=utcnow_iso)
    signed: bool = False
    signature: Optional[str] = None
    signed_at: Optional[str] = None
    registered_in_blockchain: bool = False
    blockchain_index: Optional[int] = None

    @classmethod
    def from_upload(cls, filename, original_name, user_id, content, encrypted=False):
        # Digest is taken from the plaintext, before any at-rest encryption.
        return cls(
            filename=filename,
            original_name=original_name,
            user_id=user_id,
            hash=digest(content),
            size=len(content),
            encrypted=encrypted,
        )

    def mark_signed(self, signature):
        self.signed = True
        self.signature = signature
        self.signed_at = utcnow_iso()

    def mark_registered(self, block_index):
        self.registered_in_blockchain = True
        self.blockchain_index = block_index

    def to_transaction(self):
        return Transaction(
            type=DOCUMENT_REGISTRATION,
            document_id=self.id,
            document_name=self.original_name,
            document_hash=self.hash,
            user_id=self.user_id,
            signature=self.signature,
            timestamp=utcnow_iso(),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "filename": self.filename,
            "originalName": self.original_name,
            "userId": self.user_id,
            "hash": self.hash,
            "size": self.size,
            "uploadedAt": self.uploaded_at,
            "encrypted": self.encrypted,
            "signed": self.signed,
            "signature": self.signature,
            "signedAt": self.signed_at,
            "registeredInBlockchain": self.registered_in_blockchain,
            "blockchainIndex": self.blockchain_index,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            filename=data["filename"],
            original_name=data["originalName"],
            user_id=data["userId"],
            hash=data["hash"],
            size=data["size"],
            uploaded_at=data.get("uploadedAt") or utcnow_iso(),
            encrypted=data.get("encrypted", False),
            signed=data.get("signed", False),
            signature=data.get("signature"),
            signed_at=data.get("signedAt"),
            registered_in_blockchain=data.get("registeredInBlockchain", False),
            blockchain_index=data.get("blockchainIndex"),
        )

    def __str__(self):
        return f"{self.original_name} - {self.user_id}"
