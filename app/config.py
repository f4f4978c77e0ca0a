import os
from pathlib import Path


class Config:
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "5000"))
    SECRET_KEY: str = os.getenv("SECRET_KEY") or os.urandom(24).hex()
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    DATA_DIR: Path = Path(os.getenv("DATA_DIR", os.path.join(os.getcwd(), "data")))
    KEYS_DIR: Path = Path(os.getenv("KEYS_DIR", str(DATA_DIR / "keys")))
    UPLOAD_DIR: Path = Path(os.getenv("UPLOAD_DIR", str(DATA_DIR / "uploads")))
    DB_PATH: Path = Path(os.getenv("DB_PATH", str(DATA_DIR / "db.json")))

    BLOCKCHAIN_DIFFICULTY: int = int(os.getenv("BLOCKCHAIN_DIFFICULTY", "2"))

    MAX_UPLOAD_SIZE: int = int(os.getenv("MAX_UPLOAD_SIZE", str(10 * 1024 * 1024)))
    MAX_CONTENT_LENGTH: int = MAX_UPLOAD_SIZE + 1024 * 1024
