import logging
import threading
from dataclasses import dataclass
from typing import Optional

from blockchain.hashing import verify_digest

from .exceptions import (
    DocumentNotFoundError,
    EncryptionError,
    PermissionDeniedError,
    ValidationError,
)
from .forms import DEFAULT_MAX_SIZE, DocumentUploadForm
from .keys import verify_certificate
from .models import Document, utcnow_iso
from .signing import DocumentSigner
from .utility import decrypt_bytes, encrypt_bytes

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationResult:
    document_id: str
    signature_valid: bool
    hash_valid: bool
    signed_by: str
    signed_at: Optional[str]

    @property
    def verified(self):
        return self.signature_valid and self.hash_valid

    def to_dict(self):
        return {
            "documentId": self.document_id,
            "signatureValid": self.signature_valid,
            "hashValid": self.hash_valid,
            "verified": self.verified,
            "signedBy": self.signed_by,
            "signedAt": self.signed_at,
        }


@dataclass(frozen=True)
class RegistrationResult:
    block_index: int
    block_hash: str
    document: Document

    def to_dict(self):
        return {
            "blockIndex": self.block_index,
            "blockHash": self.block_hash,
            "document": self.document.to_dict(),
        }


class DocumentVerifier:
    """
    Runs a document through hash -> sign -> verify -> anchor.

    One instance owns the shared ledger handle and the lock that serializes
    every mutation of it.
    """

    def __init__(self, blockchain, key_store, storage, records, max_upload_size=DEFAULT_MAX_SIZE):
        self.blockchain = blockchain
        self.key_store = key_store
        self.storage = storage
        self.records = records
        self.max_upload_size = max_upload_size
        self.signer = DocumentSigner(key_store)
        self.ledger_lock = threading.RLock()

    # Users

    def enroll_user(self, user_id, username=None, email=None):
        """Make sure ``user_id`` has a key pair and a fresh certificate."""
        with self.key_store.user_lock(user_id):
            if not self.key_store.has_key_pair(user_id):
                self.key_store.generate_key_pair(user_id)
            certificate = self.key_store.issue_certificate(
                user_id, {"username": username, "email": email}
            )

        with self.records.lock:
            user = self.records.find_user(user_id) or {"id": user_id, "createdAt": utcnow_iso()}
            user.update(
                username=certificate.subject["username"],
                email=certificate.subject["email"],
                hasKeyPair=True,
                hasCertificate=True,
            )
            self.records.save_user(user)
        return certificate

    def is_enrolled(self, user_id):
        return (
            self.records.find_user(user_id) is not None
            or self.key_store.has_key_pair(user_id)
            or self.key_store.certificate_path(user_id).exists()
        )

    def user_certificate(self, user_id):
        certificate = self.key_store.load_certificate(user_id)
        return certificate, verify_certificate(certificate)

    # Documents

    def upload(self, user_id, original_name, content, encrypt=False):
        form = DocumentUploadForm(original_name, content, encrypt, max_size=self.max_upload_size).validate()

        stored = encrypt_bytes(content, user_id) if encrypt else content
        filename = self.storage.save(form.cleaned_name, stored)
        document = Document.from_upload(filename, form.cleaned_name, user_id, content, encrypted=encrypt)

        self.records.save_document(document.to_dict())
        logger.info("Document %s uploaded by %s (encrypted=%s)", document.id, user_id, encrypt)
        return document

    def get_document(self, document_id):
        record = self.records.find_document(document_id)
        if record is None:
            raise DocumentNotFoundError(document_id)
        return Document.from_dict(record)

    def list_documents(self, user_id):
        return [Document.from_dict(record) for record in self.records.documents_for_user(user_id)]

    @staticmethod
    def _require_owner(document, user_id, action):
        if document.user_id != user_id:
            raise PermissionDeniedError(f"You do not have permission to {action} this document")

    def read_content(self, document):
        """Current plaintext bytes of the document as stored on disk."""
        stored = self.storage.read(document.filename)
        if document.encrypted:
            return decrypt_bytes(stored, document.user_id)
        return stored

    def download(self, document_id, user_id):
        document = self.get_document(document_id)
        self._require_owner(document, user_id, "download")
        return document, self.read_content(document)

    def sign(self, document_id, user_id):
        with self.records.lock:
            document = self.get_document(document_id)
            self._require_owner(document, user_id, "sign")

            signature = self.signer.sign(self.read_content(document), user_id)
            document.mark_signed(signature)
            self.records.save_document(document.to_dict())

        logger.info("Document %s signed by %s", document.id, user_id)
        return document

    def verify(self, document_id):
        """
        Check the signature and the upload-time digest against the current
        bytes. Both outcomes are reported; neither raises on mismatch.
        """
        document = self.get_document(document_id)
        if not document.signed:
            raise ValidationError("Document is not signed")

        try:
            content = self.read_content(document)
        except EncryptionError:
            # Stored ciphertext no longer decrypts: the bytes were altered.
            logger.warning("Document %s could not be decrypted for verification", document.id)
            signature_valid = hash_valid = False
        else:
            signature_valid = self.signer.verify(content, document.signature, document.user_id)
            hash_valid = verify_digest(content, document.hash)

        result = VerificationResult(
            document_id=document.id,
            signature_valid=signature_valid,
            hash_valid=hash_valid,
            signed_by=document.user_id,
            signed_at=document.signed_at,
        )
        logger.info(
            "Document %s verification: signature=%s hash=%s",
            document.id,
            result.signature_valid,
            result.hash_valid,
        )
        return result

    def signer_certificate(self, document_id):
        document = self.get_document(document_id)
        if not document.signed:
            raise ValidationError("Document is not signed")
        return self.key_store.load_certificate(document.user_id)

    # Ledger

    def register(self, document_id, user_id):
        """Anchor a signed document in the ledger as a single-transaction block."""
        with self.records.lock:
            document = self.get_document(document_id)
            self._require_owner(document, user_id, "register")
            if not document.signed:
                raise ValidationError("Document must be signed before it can be registered")
            if document.registered_in_blockchain:
                raise ValidationError("Document is already registered in the blockchain")

            with self.ledger_lock:
                block = self.blockchain.add_block(document.to_transaction())

            document.mark_registered(block.index)
            self.records.save_document(document.to_dict())

        logger.info("Document %s registered in block %s", document.id, block.index)
        return RegistrationResult(block.index, block.hash, document)

    def stage(self, transaction):
        with self.ledger_lock:
            return self.blockchain.stage_transaction(transaction)

    def mine_pending(self, should_stop=None):
        with self.ledger_lock:
            return self.blockchain.mine_pending_transactions(should_stop=should_stop)

    def history(self, document_id):
        with self.ledger_lock:
            return self.blockchain.find_transactions_by_document_id(document_id)

    def chain_snapshot(self):
        with self.ledger_lock:
            return self.blockchain.to_dict()

    def get_block(self, index):
        with self.ledger_lock:
            return self.blockchain.get_block(index)

    def validate_chain(self):
        with self.ledger_lock:
            return self.blockchain.validate()

    def stats(self):
        with self.ledger_lock:
            return self.blockchain.stats()
