"""
Per-user RSA key pairs and self-signed certificates.

Keys live on disk as ``<user_id>_private.pem`` / ``<user_id>_public.pem``
and the certificate as ``<user_id>_certificate.json``. Each user has exactly
one active key pair and one active certificate; issuing again overwrites.

Certificates are self-signed: the "signature" is the SHA-256 digest of the
subject, validity window and public key. There is no external root of
trust, so this proves consistency, not identity.
"""
import json
import logging
import os
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
    load_pem_public_key,
)

from blockchain.hashing import canonical_json, digest

from .exceptions import (
    CertificateIssuanceError,
    CertificateNotFoundError,
    CryptoOperationError,
    KeyGenerationError,
    KeyNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

KEY_SIZE = 2048
PUBLIC_EXPONENT = 65537
CERTIFICATE_VERSION = "1.0"
CERTIFICATE_LIFETIME = timedelta(days=365)
ORGANIZATION = "Secure Document Ledger"
ISSUER = {
    "commonName": "Secure Document Ledger CA",
    "organization": ORGANIZATION,
    "country": "ES",
}


def _isoformat(moment):
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_time(value):
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


@dataclass
class KeyPair:
    user_id: str
    private_key: rsa.RSAPrivateKey
    public_key: rsa.RSAPublicKey

    @property
    def public_pem(self):
        return self.public_key.public_bytes(
            encoding=Encoding.PEM, format=PublicFormat.SubjectPublicKeyInfo
        ).decode("utf-8")


@dataclass
class Certificate:
    serial_number: str
    subject: dict
    validity: dict
    public_key: str
    signature: str = ""
    issuer: dict = field(default_factory=lambda: dict(ISSUER))
    version: str = CERTIFICATE_VERSION

    def signed_content(self):
        return canonical_json(
            {"subject": self.subject, "validity": self.validity, "publicKey": self.public_key}
        )

    def compute_signature(self):
        return digest(self.signed_content())

    def is_current(self, now=None):
        now = now or datetime.now(timezone.utc)
        not_before = _parse_time(self.validity["notBefore"])
        not_after = _parse_time(self.validity["notAfter"])
        return not_before <= now <= not_after

    def to_dict(self):
        return {
            "version": self.version,
            "serialNumber": self.serial_number,
            "subject": self.subject,
            "issuer": self.issuer,
            "validity": self.validity,
            "publicKey": self.public_key,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data):
        try:
            return cls(
                version=data.get("version", CERTIFICATE_VERSION),
                serial_number=data["serialNumber"],
                subject=data["subject"],
                issuer=data.get("issuer", dict(ISSUER)),
                validity=data["validity"],
                public_key=data["publicKey"],
                signature=data.get("signature") or "",
            )
        except (KeyError, TypeError) as e:
            raise ValidationError(f"Malformed certificate: missing {e}")


def verify_certificate(certificate, now=None):
    """
    True when the self-signature matches and ``now`` is inside the validity
    window. A bad certificate is a normal outcome, so this never raises for
    tampered content.
    """
    if isinstance(certificate, dict):
        certificate = Certificate.from_dict(certificate)
    try:
        if not certificate.is_current(now):
            logger.info("Certificate %s is expired or not yet valid", certificate.serial_number)
            return False
    except (KeyError, TypeError, ValueError):
        logger.info("Certificate %s has an unreadable validity window", certificate.serial_number)
        return False
    if certificate.signature != certificate.compute_signature():
        logger.info("Certificate %s signature mismatch", certificate.serial_number)
        return False
    return True


class KeyStore:
    def __init__(self, key_store_dir):
        self.key_store_dir = Path(key_store_dir)
        self.key_store_dir.mkdir(parents=True, exist_ok=True)
        self._locks = {}
        self._locks_guard = threading.Lock()

    def user_lock(self, user_id):
        """Lock serializing key and certificate writes for one user."""
        with self._locks_guard:
            return self._locks.setdefault(user_id, threading.RLock())

    def _path(self, user_id, suffix):
        name = str(user_id)
        if not name or os.sep in name or (os.altsep and os.altsep in name) or name in (".", ".."):
            raise ValidationError("Invalid user id")
        return self.key_store_dir / f"{name}_{suffix}"

    def private_key_path(self, user_id):
        return self._path(user_id, "private.pem")

    def public_key_path(self, user_id):
        return self._path(user_id, "public.pem")

    def certificate_path(self, user_id):
        return self._path(user_id, "certificate.json")

    def generate_key_pair(self, user_id):
        """Generate a new RSA key pair, replacing any existing one."""
        with self.user_lock(user_id):
            try:
                private_key = rsa.generate_private_key(
                    public_exponent=PUBLIC_EXPONENT,
                    key_size=KEY_SIZE,
                )
                public_key = private_key.public_key()

                private_key_pem = private_key.private_bytes(
                    encoding=Encoding.PEM,
                    format=PrivateFormat.PKCS8,
                    encryption_algorithm=NoEncryption(),
                )
                public_key_pem = public_key.public_bytes(
                    encoding=Encoding.PEM,
                    format=PublicFormat.SubjectPublicKeyInfo,
                )
            except (ValueError, TypeError) as e:
                logger.error("Key generation failed for user %s: %s", user_id, e)
                raise KeyGenerationError("Failed to generate key pair") from e

            try:
                self.private_key_path(user_id).write_bytes(private_key_pem)
                self.public_key_path(user_id).write_bytes(public_key_pem)
            except OSError as e:
                logger.error("Could not persist keys for user %s: %s", user_id, e)
                raise KeyGenerationError("Failed to store key pair") from e

        logger.info("Keys generated for user %s", user_id)
        return KeyPair(user_id, private_key, public_key)

    def has_key_pair(self, user_id):
        return self.private_key_path(user_id).exists() and self.public_key_path(user_id).exists()

    def load_private_key(self, user_id):
        path = self.private_key_path(user_id)
        if not path.exists():
            raise KeyNotFoundError(user_id, "private key")
        try:
            return load_pem_private_key(path.read_bytes(), password=None)
        except ValueError as e:
            raise CryptoOperationError(f"Stored private key for user {user_id} is unreadable") from e

    def load_public_key(self, user_id):
        path = self.public_key_path(user_id)
        if not path.exists():
            raise KeyNotFoundError(user_id, "public key")
        try:
            return load_pem_public_key(path.read_bytes())
        except ValueError as e:
            raise CryptoOperationError(f"Stored public key for user {user_id} is unreadable") from e

    def issue_certificate(self, user_id, subject_info=None, now=None):
        """
        Issue (and persist) a one-year self-signed certificate for ``user_id``.
        A key pair is generated first if the user has none.
        """
        subject_info = subject_info or {}
        with self.user_lock(user_id):
            try:
                if self.public_key_path(user_id).exists():
                    public_pem = self.public_key_path(user_id).read_text()
                else:
                    public_pem = self.generate_key_pair(user_id).public_pem
            except (CryptoOperationError, OSError) as e:
                raise CertificateIssuanceError("Failed to load or create key material for certificate") from e

            not_before = now or datetime.now(timezone.utc)
            certificate = Certificate(
                serial_number=secrets.token_hex(16),
                subject={
                    "userId": user_id,
                    "username": subject_info.get("username") or user_id,
                    "email": subject_info.get("email") or "",
                    "organization": subject_info.get("organization") or ORGANIZATION,
                },
                validity={
                    "notBefore": _isoformat(not_before),
                    "notAfter": _isoformat(not_before + CERTIFICATE_LIFETIME),
                },
                public_key=public_pem,
            )
            certificate.signature = certificate.compute_signature()

            try:
                self.certificate_path(user_id).write_text(json.dumps(certificate.to_dict(), indent=2))
            except OSError as e:
                raise CertificateIssuanceError("Failed to store certificate") from e

        logger.info("Certificate %s issued for user %s", certificate.serial_number, user_id)
        return certificate

    def load_certificate(self, user_id):
        path = self.certificate_path(user_id)
        if not path.exists():
            raise CertificateNotFoundError(user_id)
        try:
            data = json.loads(path.read_text())
        except ValueError as e:
            raise ValidationError(f"Stored certificate for user {user_id} is not valid JSON") from e
        return Certificate.from_dict(data)

    verify_certificate = staticmethod(verify_certificate)
