import hashlib
import json


def digest(data):
    """Return the hex SHA-256 digest of ``data`` (bytes or str)."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def verify_digest(data, expected):
    return digest(data) == expected


def canonical_json(obj):
    """Serialize ``obj`` the same way every time so its digest is stable."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"))
