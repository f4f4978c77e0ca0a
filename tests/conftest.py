"""
Shared fixtures.

Ledgers run at difficulty 1 so mining stays fast; every fixture writes
under pytest's ``tmp_path``.
"""
import pytest

from app.factory import create_app
from app.keys import KeyStore
from app.storage import FileSystemStorage, RecordStore
from app.verifier import DocumentVerifier
from blockchain import Blockchain
from blockchain.hashing import digest
from blockchain.models import Transaction


@pytest.fixture
def ledger():
    return Blockchain(difficulty=1)


@pytest.fixture
def make_transaction():
    def _make(document_id="d1", user_id="u1", content=b"contract body"):
        return Transaction(
            document_id=document_id,
            user_id=user_id,
            document_name=f"{document_id}.pdf",
            document_hash=digest(content),
            signature="c2lnbmF0dXJl",
            timestamp="2026-01-01T00:00:00.000Z",
        )

    return _make


@pytest.fixture
def key_store(tmp_path):
    return KeyStore(tmp_path / "keys")


@pytest.fixture
def storage(tmp_path):
    return FileSystemStorage(tmp_path / "uploads")


@pytest.fixture
def records(tmp_path):
    return RecordStore(tmp_path / "db.json")


@pytest.fixture
def verifier(key_store, storage, records):
    return DocumentVerifier(Blockchain(difficulty=1), key_store, storage, records)


@pytest.fixture
def enrolled_verifier(verifier):
    verifier.enroll_user("alice", username="alice", email="alice@example.com")
    verifier.enroll_user("bob", username="bob", email="bob@example.com")
    return verifier


@pytest.fixture
def flask_app(tmp_path):
    return create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "KEYS_DIR": tmp_path / "keys",
            "UPLOAD_DIR": tmp_path / "uploads",
            "DB_PATH": tmp_path / "db.json",
            "BLOCKCHAIN_DIFFICULTY": 1,
        }
    )


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()
