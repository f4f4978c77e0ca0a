import pytest

from app.exceptions import KeyNotFoundError
from app.signing import DocumentSigner


@pytest.fixture
def signer(key_store):
    key_store.generate_key_pair("alice")
    key_store.generate_key_pair("bob")
    return DocumentSigner(key_store)


def test_sign_then_verify(signer):
    content = b"%PDF-1.7 contract"
    signature = signer.sign(content, "alice")
    assert signer.verify(content, signature, "alice")


def test_any_byte_change_breaks_signature(signer):
    content = b"%PDF-1.7 contract"
    signature = signer.sign(content, "alice")
    assert not signer.verify(content + b" ", signature, "alice")
    assert not signer.verify(b"%PDF-1.7 Contract", signature, "alice")


def test_wrong_signer(signer):
    signature = signer.sign(b"memo", "alice")
    assert not signer.verify(b"memo", signature, "bob")


def test_malformed_signature_is_false(signer):
    assert not signer.verify(b"memo", "not base64!!", "alice")
    assert not signer.verify(b"memo", "", "alice")


def test_missing_keys(signer):
    with pytest.raises(KeyNotFoundError):
        signer.sign(b"memo", "carol")
    signature = signer.sign(b"memo", "alice")
    with pytest.raises(KeyNotFoundError):
        signer.verify(b"memo", signature, "carol")
