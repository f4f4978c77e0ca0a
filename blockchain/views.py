import logging

from flask import Blueprint, jsonify, request

from app.auth import current_user_id, get_verifier
from blockchain.exceptions import BlockNotFoundError, ValidationError

logger = logging.getLogger(__name__)

bp = Blueprint("blockchain", __name__)


@bp.route("", methods=["GET"])
@bp.route("/", methods=["GET"])
def chain():
    current_user_id()
    return jsonify({"success": True, "data": get_verifier().chain_snapshot()})


@bp.route("/register", methods=["POST"])
def register():
    user_id = current_user_id()
    data = request.get_json(silent=True) or {}
    document_id = data.get("documentId") or request.form.get("documentId")
    if not document_id:
        raise ValidationError("documentId is required")

    result = get_verifier().register(document_id, user_id)
    return jsonify(
        {"success": True, "message": "Document registered in blockchain", "data": result.to_dict()}
    )


@bp.route("/validate", methods=["GET"])
def validate():
    current_user_id()
    validation = get_verifier().validate_chain()
    return jsonify({"success": True, "data": validation.to_dict()})


@bp.route("/document/<document_id>", methods=["GET"])
def document_history(document_id):
    current_user_id()
    views = get_verifier().history(document_id)
    if not views:
        return (
            jsonify({"success": False, "message": "No blockchain records found for this document"}),
            404,
        )
    return jsonify({"success": True, "data": [view.to_dict() for view in views]})


@bp.route("/stats", methods=["GET"])
def stats():
    current_user_id()
    return jsonify({"success": True, "data": get_verifier().stats()})


@bp.route("/transactions", methods=["POST"])
def stage_transaction():
    user_id = current_user_id()
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        raise ValidationError("Transaction must be a JSON object")
    data = dict(payload, userId=user_id)
    pending = get_verifier().stage(data)
    return jsonify({"success": True, "data": {"pendingCount": pending}}), 202


@bp.route("/mine", methods=["POST"])
def mine():
    current_user_id()
    mined = get_verifier().mine_pending()
    if not mined:
        return jsonify({"success": False, "message": "No pending transactions to mine"}), 400
    return jsonify(
        {
            "success": True,
            "message": "Block mined successfully",
            "data": {
                "transactionsCount": len(mined),
                "transactions": [tx.to_dict() for tx in mined],
            },
        }
    )


@bp.route("/block/<index>", methods=["GET"])
def block(index):
    current_user_id()
    try:
        block_index = int(index)
    except ValueError:
        raise BlockNotFoundError(index)
    return jsonify({"success": True, "data": get_verifier().get_block(block_index).to_dict()})
