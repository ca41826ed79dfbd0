"""Conversation and chat history API routes."""

import logging

from flask import Blueprint, jsonify

from docqa.client.routes.auth import current_user, login_required
from docqa.client.routes.config import get_config
from docqa.exceptions import ConversationNotFoundError

logger = logging.getLogger(__name__)

conversations_bp = Blueprint("conversations", __name__)


@conversations_bp.route("/api/chat/history", methods=["GET"])
@login_required
def chat_history():
    """Return the user's latest messages, oldest first.

    Messages older than the retention window are purged first.
    """
    try:
        messages = get_config().conversations.history(current_user().user_id)
        return jsonify([message.to_dict() for message in messages])
    except Exception as e:
        logger.error(f"❌ Error fetching chat history: {e}", exc_info=True)
        return jsonify({"message": "Failed to fetch chat history"}), 500


@conversations_bp.route("/api/conversations", methods=["GET"])
@login_required
def list_conversations():
    """List the user's conversations, most recently updated first."""
    try:
        conversations = get_config().conversations.list_conversations(current_user().user_id)
        return jsonify([conversation.to_dict() for conversation in conversations])
    except Exception as e:
        logger.error(f"❌ Error fetching conversations: {e}", exc_info=True)
        return jsonify({"message": "Failed to fetch conversations"}), 500


@conversations_bp.route("/api/conversations/<conversation_id>/messages", methods=["GET"])
@login_required
def conversation_messages(conversation_id: str):
    """Return the messages of one of the user's conversations."""
    try:
        messages = get_config().conversations.get_messages(current_user().user_id, conversation_id)
        return jsonify([message.to_dict() for message in messages])
    except ConversationNotFoundError as e:
        return jsonify({"message": e.message}), 404
    except Exception as e:
        logger.error(f"❌ Error fetching conversation messages: {e}", exc_info=True)
        return jsonify({"message": "Failed to fetch messages"}), 500


@conversations_bp.route("/api/conversations/<conversation_id>", methods=["DELETE"])
@login_required
def delete_conversation(conversation_id: str):
    """Delete one of the user's conversations with its messages."""
    try:
        get_config().conversations.delete_conversation(current_user().user_id, conversation_id)
        return jsonify({"message": "Conversation deleted successfully"})
    except ConversationNotFoundError as e:
        return jsonify({"message": e.message}), 404
    except Exception as e:
        logger.error(f"❌ Error deleting conversation: {e}", exc_info=True)
        return jsonify({"message": "Failed to delete conversation"}), 500
