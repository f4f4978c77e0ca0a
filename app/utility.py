import base64
import binascii
import os

from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .exceptions import EncryptionError

KEY_LENGTH = 32  # AES-256
IV_LENGTH = 16
DEFAULT_SALT = b"secure-document-ledger-salt"


def derive_key(password, salt=DEFAULT_SALT):
    """
    Derive an AES key from a password with scrypt.

    Args:
    - password (str): Secret the key is derived from.
    - salt (bytes): KDF salt.

    Returns:
    - 32 raw key bytes.
    """
    if isinstance(password, str):
        password = password.encode("utf-8")
    if isinstance(salt, str):
        salt = salt.encode("utf-8")
    kdf = Scrypt(salt=salt, length=KEY_LENGTH, n=2 ** 14, r=8, p=1)
    return kdf.derive(password)


def encrypt(text, password):
    """
    Encrypt ``text`` with AES-256-CBC.

    Returns:
    - "<iv hex>:<ciphertext hex>"
    """
    try:
        key = derive_key(password)
        iv = os.urandom(IV_LENGTH)
        padder = sym_padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(text.encode("utf-8")) + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
        encrypted = encryptor.update(padded) + encryptor.finalize()
    except (ValueError, TypeError, AttributeError) as e:
        raise EncryptionError(f"Encryption failed: {e}") from e
    return iv.hex() + ":" + encrypted.hex()


def decrypt(encrypted_data, password):
    """Reverse ``encrypt``. A wrong password or mangled input raises EncryptionError."""
    try:
        iv_hex, data_hex = encrypted_data.split(":", 1)
        iv = bytes.fromhex(iv_hex)
        encrypted = bytes.fromhex(data_hex)
        key = derive_key(password)
        decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
        padded = decryptor.update(encrypted) + decryptor.finalize()
        unpadder = sym_padding.PKCS7(algorithms.AES.block_size).unpadder()
        plain = unpadder.update(padded) + unpadder.finalize()
        return plain.decode("utf-8")
    except (ValueError, TypeError, AttributeError, UnicodeDecodeError) as e:
        raise EncryptionError("Decryption failed") from e


def encrypt_bytes(content, password):
    """Encrypt file bytes for storage at rest (base64 first, then AES)."""
    return encrypt(base64.b64encode(content).decode("ascii"), password).encode("ascii")


def decrypt_bytes(stored, password):
    if isinstance(stored, bytes):
        stored = stored.decode("ascii", errors="replace")
    try:
        return base64.b64decode(decrypt(stored, password), validate=True)
    except binascii.Error as e:
        raise EncryptionError("Decryption failed") from e
