import io
import logging

from flask import Blueprint, jsonify, request, send_file, session

from .auth import USER_HEADER, current_user_id, get_verifier
from .exceptions import PermissionDeniedError, ValidationError
from .forms import parse_flag

logger = logging.getLogger(__name__)

documents_bp = Blueprint("documents", __name__)
users_bp = Blueprint("users", __name__)


@documents_bp.route("/upload", methods=["POST"])
def upload_document():
    user_id = current_user_id()
    uploaded = request.files.get("document")
    if uploaded is None or not uploaded.filename:
        raise ValidationError("No file was provided")

    document = get_verifier().upload(
        user_id,
        uploaded.filename,
        uploaded.read(),
        encrypt=parse_flag(request.form.get("encrypt")),
    )
    return (
        jsonify({"success": True, "message": "Document uploaded", "data": document.to_dict()}),
        201,
    )


@documents_bp.route("/<document_id>/sign", methods=["POST"])
def sign_document(document_id):
    document = get_verifier().sign(document_id, current_user_id())
    return jsonify(
        {
            "success": True,
            "message": "Document signed",
            "data": {
                "documentId": document.id,
                "signature": document.signature,
                "signedAt": document.signed_at,
            },
        }
    )


@documents_bp.route("/<document_id>/verify", methods=["GET"])
def verify_document(document_id):
    current_user_id()
    result = get_verifier().verify(document_id)
    return jsonify({"success": True, "data": result.to_dict()})


@documents_bp.route("", methods=["GET"])
@documents_bp.route("/", methods=["GET"])
def list_documents():
    documents = get_verifier().list_documents(current_user_id())
    return jsonify({"success": True, "data": [d.to_dict() for d in documents]})


@documents_bp.route("/<document_id>", methods=["GET"])
def get_document(document_id):
    current_user_id()
    return jsonify({"success": True, "data": get_verifier().get_document(document_id).to_dict()})


@documents_bp.route("/<document_id>/download", methods=["GET"])
def download_document(document_id):
    document, content = get_verifier().download(document_id, current_user_id())
    return send_file(io.BytesIO(content), as_attachment=True, download_name=document.original_name)


@documents_bp.route("/<document_id>/certificate", methods=["GET"])
def document_certificate(document_id):
    current_user_id()
    certificate = get_verifier().signer_certificate(document_id)
    return jsonify({"success": True, "data": certificate.to_dict()})


@users_bp.route("/enroll", methods=["POST"])
def enroll():
    """
    Issue keys and a certificate for the caller. An authenticated caller can
    only enroll itself; an anonymous one can only claim an unused user id.
    """
    data = request.get_json(silent=True) or request.form
    if not isinstance(data, dict):
        raise ValidationError("Enrollment must be a JSON object")
    requested = data.get("userId")
    caller = request.headers.get(USER_HEADER) or session.get("user_id")
    verifier = get_verifier()

    if caller:
        if requested and requested != caller:
            raise PermissionDeniedError("You can only enroll yourself")
        user_id = caller
    elif not requested:
        raise ValidationError("userId is required")
    elif verifier.is_enrolled(requested):
        raise PermissionDeniedError(f"User {requested} is already enrolled")
    else:
        user_id = requested

    certificate = verifier.enroll_user(user_id, data.get("username"), data.get("email"))
    session["user_id"] = user_id
    return (
        jsonify(
            {
                "success": True,
                "message": f"Keys and certificate generated for {user_id}",
                "data": certificate.to_dict(),
            }
        ),
        201,
    )


@users_bp.route("/certificate", methods=["GET"])
def user_certificate():
    certificate, valid = get_verifier().user_certificate(current_user_id())
    return jsonify({"success": True, "data": {"certificate": certificate.to_dict(), "valid": valid}})
