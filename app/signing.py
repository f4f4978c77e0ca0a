import base64
import binascii
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from .exceptions import SigningError

logger = logging.getLogger(__name__)


def _pss():
    return padding.PSS(
        mgf=padding.MGF1(hashes.SHA256()),
        salt_length=padding.PSS.MAX_LENGTH,
    )


class DocumentSigner:
    """Detached RSA-PSS/SHA-256 signatures over raw document bytes."""

    def __init__(self, key_store):
        self.key_store = key_store

    def sign(self, document_bytes, user_id):
        """Sign ``document_bytes`` with the user's private key; returns base64."""
        private_key = self.key_store.load_private_key(user_id)
        try:
            signature = private_key.sign(document_bytes, _pss(), hashes.SHA256())
        except (ValueError, TypeError) as e:
            logger.error("Signing failed for user %s: %s", user_id, e)
            raise SigningError("Failed to sign document") from e

        logger.info("Document signed by user %s", user_id)
        return base64.b64encode(signature).decode("utf-8")

    def verify(self, document_bytes, signature_b64, user_id):
        """
        Check ``signature_b64`` against the bytes as they are now. Returns
        False for any mismatch; raises KeyNotFoundError when the user has no
        public key.
        """
        public_key = self.key_store.load_public_key(user_id)
        try:
            signature = base64.b64decode(signature_b64 or "", validate=True)
            public_key.verify(signature, document_bytes, _pss(), hashes.SHA256())
        except (InvalidSignature, binascii.Error, ValueError):
            logger.info("Signature verification for user %s: INVALID", user_id)
            return False
        logger.info("Signature verification for user %s: VALID", user_id)
        return True
