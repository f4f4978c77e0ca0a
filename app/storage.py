import json
import logging
import os
import threading
import time
from pathlib import Path

from .exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class FileSystemStorage:
    """Uploaded document bytes, stored as ``<ms-timestamp>-<original name>``."""

    def __init__(self, location):
        self.location = Path(location)
        self.location.mkdir(parents=True, exist_ok=True)

    def path(self, name):
        base = os.path.basename(name)
        if not base or base != name:
            raise ValidationError("Invalid file name")
        return self.location / base

    def get_available_name(self, original_name):
        stamp = int(time.time() * 1000)
        name = f"{stamp}-{os.path.basename(original_name)}"
        while self.path(name).exists():
            stamp += 1
            name = f"{stamp}-{os.path.basename(original_name)}"
        return name

    def save(self, original_name, content):
        name = self.get_available_name(original_name)
        self.path(name).write_bytes(content)
        return name

    def overwrite(self, name, content):
        self.path(name).write_bytes(content)

    def read(self, name):
        path = self.path(name)
        if not path.exists():
            raise NotFoundError(f"File {name} not found")
        return path.read_bytes()

    def exists(self, name):
        return self.path(name).exists()


class RecordStore:
    """
    Flat JSON file holding ``{"users": [...], "documents": [...]}``.

    Every write replaces the whole snapshot (last writer wins). ``lock``
    should be held across a read-modify-write sequence.
    """

    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self.lock = threading.RLock()
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        if not self.db_path.exists():
            self.write({"users": [], "documents": []})

    def read(self):
        with self.lock:
            try:
                data = json.loads(self.db_path.read_text())
            except (OSError, ValueError) as e:
                logger.error("Error reading record store %s: %s", self.db_path, e)
                raise
        data.setdefault("users", [])
        data.setdefault("documents", [])
        return data

    def write(self, data):
        with self.lock:
            tmp_path = self.db_path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(data, indent=2))
            os.replace(tmp_path, self.db_path)

    def find_document(self, document_id):
        for record in self.read()["documents"]:
            if record.get("id") == document_id:
                return record
        return None

    def save_document(self, record):
        with self.lock:
            data = self.read()
            documents = data["documents"]
            for i, existing in enumerate(documents):
                if existing.get("id") == record["id"]:
                    documents[i] = record
                    break
            else:
                documents.append(record)
            self.write(data)

    def documents_for_user(self, user_id):
        return [d for d in self.read()["documents"] if d.get("userId") == user_id]

    def find_user(self, user_id):
        for user in self.read()["users"]:
            if user.get("id") == user_id:
                return user
        return None

    def save_user(self, record):
        with self.lock:
            data = self.read()
            users = data["users"]
            for i, existing in enumerate(users):
                if existing.get("id") == record["id"]:
                    users[i] = record
                    break
            else:
                users.append(record)
            self.write(data)
