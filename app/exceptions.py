from blockchain.exceptions import LedgerError, NotFoundError, ValidationError


class CryptoOperationError(LedgerError):
    """A cryptographic primitive failed. The message is safe to show."""


class KeyGenerationError(CryptoOperationError):
    pass


class SigningError(CryptoOperationError):
    pass


class CertificateIssuanceError(CryptoOperationError):
    pass


class EncryptionError(CryptoOperationError):
    pass


class KeyNotFoundError(NotFoundError):
    def __init__(self, user_id, kind="key pair"):
        super().__init__(f"No {kind} found for user {user_id}")
        self.user_id = user_id


class CertificateNotFoundError(NotFoundError):
    def __init__(self, user_id):
        super().__init__(f"No certificate found for user {user_id}")
        self.user_id = user_id


class DocumentNotFoundError(NotFoundError):
    def __init__(self, document_id):
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class PermissionDeniedError(LedgerError):
    pass


__all__ = [
    "LedgerError",
    "NotFoundError",
    "ValidationError",
    "CryptoOperationError",
    "KeyGenerationError",
    "SigningError",
    "CertificateIssuanceError",
    "EncryptionError",
    "KeyNotFoundError",
    "CertificateNotFoundError",
    "DocumentNotFoundError",
    "PermissionDeniedError",
]
