"""Feedback API routes.

Answers produced without matching documentation carry needs_feedback=true;
the UI then offers the user to submit feedback here.
"""

import logging

from flask import Blueprint, jsonify, request

from docqa.client.routes.auth import admin_required, current_user, login_required
from docqa.client.routes.config import get_config
from docqa.exceptions import InvalidFeedbackError
from docqa.service.conversations import submit_feedback

logger = logging.getLogger(__name__)

feedback_bp = Blueprint("feedback", __name__)


@feedback_bp.route("/api/feedback", methods=["POST"])
@login_required
def create_feedback():
    """Store feedback from the current user.

    Request:
        {
            "feedback_type": "negative",  # Required
            "conversation_id": "...",  # Optional
            "message_id": "...",  # Optional, the answer being rated
            "feedback_text": "The answer missed the EU policy",  # Optional
            "rating": 2  # Optional, 1-5
        }
    """
    data = request.get_json(silent=True) or {}
    try:
        feedback = submit_feedback(
            get_config().storage,
            current_user().user_id,
            data.get("feedback_type"),
            conversation_id=data.get("conversation_id"),
            message_id=data.get("message_id"),
            feedback_text=data.get("feedback_text"),
            rating=data.get("rating"),
        )
    except InvalidFeedbackError as e:
        logger.warning(f"❌ {e}")
        return jsonify({"error": e.error_code, "message": e.message}), 400
    except Exception as e:
        logger.error(f"❌ Error submitting feedback: {e}", exc_info=True)
        return jsonify({"message": "Failed to submit feedback"}), 500

    return jsonify({"message": "Feedback submitted successfully", "feedback": feedback.to_dict()})


@feedback_bp.route("/api/admin/feedback", methods=["GET"])
@admin_required
def list_feedback():
    """List all feedback, newest first (admin only)."""
    try:
        return jsonify([feedback.to_dict() for feedback in get_config().storage.list_feedback()])
    except Exception as e:
        logger.error(f"❌ Error fetching feedback: {e}", exc_info=True)
        return jsonify({"message": "Failed to fetch feedback"}), 500
