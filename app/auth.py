from flask import abort, current_app, request, session

USER_HEADER = "X-User-Id"


def get_verifier():
    return current_app.extensions["document_verifier"]


def current_user_id():
    """
    Identity of the caller. Set in the session by enrollment, or passed in
    ``X-User-Id`` by the auth layer in front of this service (trusted as is).
    """
    user_id = request.headers.get(USER_HEADER) or session.get("user_id")
    if not user_id:
        abort(401, description="Authentication required")
    return user_id
