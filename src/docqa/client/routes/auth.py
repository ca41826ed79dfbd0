"""Request identity checks for API routes.

Authentication happens in front of this service; the authenticating proxy
forwards the user's identity in the X-User-Id and X-User-Role headers.
"""

import logging
from functools import wraps

from flask import g, jsonify, request

from docqa.models import RequestContext

logger = logging.getLogger(__name__)


def current_user() -> RequestContext:
    """Return the RequestContext resolved for the current request."""
    return g.request_context


def login_required(view):
    """Reject requests without a user identity (401)."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        context = RequestContext.from_headers(request.headers)
        if context is None:
            logger.warning(f"❌ Unauthenticated request to {request.path}")
            return jsonify({"message": "Unauthorized"}), 401
        g.request_context = context
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    """Reject requests from users without the admin role (401/403)."""

    @wraps(view)
    @login_required
    def wrapper(*args, **kwargs):
        if not current_user().is_admin:
            logger.warning(f"❌ Non-admin user {current_user().user_id} denied {request.path}")
            return jsonify({"message": "Forbidden: admin access required"}), 403
        return view(*args, **kwargs)

    return wrapper
