import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from blockchain import Blockchain

from .config import Config
from .exceptions import (
    CryptoOperationError,
    LedgerError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .keys import KeyStore
from .storage import FileSystemStorage, RecordStore
from .urls import register_blueprints
from .verifier import DocumentVerifier

logger = logging.getLogger(__name__)


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_verifier(config):
    return DocumentVerifier(
        blockchain=Blockchain(difficulty=int(config["BLOCKCHAIN_DIFFICULTY"])),
        key_store=KeyStore(config["KEYS_DIR"]),
        storage=FileSystemStorage(config["UPLOAD_DIR"]),
        records=RecordStore(config["DB_PATH"]),
        max_upload_size=int(config["MAX_UPLOAD_SIZE"]),
    )


def _error(status, message):
    return jsonify({"success": False, "message": message}), status


def register_error_handlers(app):
    @app.errorhandler(NotFoundError)
    def not_found(error):
        return _error(404, str(error))

    @app.errorhandler(ValidationError)
    def bad_request(error):
        return _error(400, str(error))

    @app.errorhandler(PermissionDeniedError)
    def forbidden(error):
        return _error(403, str(error))

    @app.errorhandler(CryptoOperationError)
    def crypto_failure(error):
        logger.error("Cryptographic operation failed: %s", error, exc_info=True)
        return _error(500, str(error))

    @app.errorhandler(LedgerError)
    def ledger_failure(error):
        logger.error("Ledger operation failed: %s", error, exc_info=True)
        return _error(500, "Ledger operation failed")

    @app.errorhandler(HTTPException)
    def http_error(error):
        return _error(error.code, error.description)


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config["LOG_LEVEL"])

    app.extensions["document_verifier"] = build_verifier(app.config)
    register_blueprints(app)
    register_error_handlers(app)

    @app.route("/")
    def root():
        return jsonify({"service": "document-ledger", "version": "1.0.0", "status": "running"})

    logger.info("Ledger ready with difficulty %s", app.config["BLOCKCHAIN_DIFFICULTY"])
    return app
