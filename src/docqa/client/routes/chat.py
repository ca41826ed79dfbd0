"""Chat API route answering questions from the documentation."""

import logging

from flask import Blueprint, jsonify, request

from docqa.client.routes.auth import current_user, login_required
from docqa.client.routes.config import get_config
from docqa.exceptions import (
    ConversationLimitError,
    ConversationNotFoundError,
    InvalidQuestionError,
    QuotaExceededError,
)
from docqa.service.async_utils import run_async

logger = logging.getLogger(__name__)

chat_bp = Blueprint("chat", __name__)


@chat_bp.route("/api/chat", methods=["POST"])
@login_required
def chat():
    """Answer a question using retrieval over the uploaded documents.

    The question and the answer are stored in the given conversation, or in a
    new one when no conversation_id is sent.

    Request:
        {
            "question": "How do I reset my password?",  # "query" is accepted too
            "conversation_id": "...",  # Optional, continue a conversation
            "session_id": "uuid"  # Optional, echoed back
        }

    Response:
        {
            "response": "To reset your password...",
            "sources": [
                {"id": "source-0", "document_id": "...", "filename": "guide.pdf",
                 "page": 3, "url": "/api/documents/..."},
                ...
            ],
            "used_fallback": false,
            "needs_feedback": false,
            "model_used": "gemini-2.5-flash",
            "conversation_id": "...",
            "user_message": {...},  # stored question
            "message": {...},  # stored answer
            "session_id": "uuid"
        }

    Errors:
        400 for a missing question or when the user has too many active
        conversations, 404 for an unknown conversation, 429 when every model
        is rate limited, 500 for any other failure.
    """
    config = get_config()
    user_id = current_user().user_id
    logger.info(f"📨 Received chat request from {user_id}")

    data = request.get_json(silent=True) or {}
    question = data.get("question") or data.get("query") or ""
    session_id = data.get("session_id")

    try:
        exchange = run_async(
            config.conversations.ask(user_id, question, conversation_id=data.get("conversation_id"))
        )
    except InvalidQuestionError as e:
        logger.warning(f"❌ {e.message}")
        return jsonify({"error": e.error_code, "message": "Missing 'question' field in request"}), 400
    except ConversationNotFoundError as e:
        logger.warning(f"❌ {e}")
        return jsonify({"error": e.error_code, "message": e.message}), 404
    except ConversationLimitError as e:
        logger.warning(f"❌ {e}")
        return jsonify({"error": e.error_code, "message": e.message}), 400
    except QuotaExceededError as e:
        logger.error(f"❌ Quota exceeded: {e}")
        return jsonify({"error": e.error_code, "message": e.message}), 429
    except Exception as e:
        logger.error(f"❌ Error processing chat message: {e}", exc_info=True)
        return jsonify({"error": "generation_failed", "message": "Failed to process message"}), 500

    answer = exchange.answer
    response_data = {
        "response": answer.text,
        "sources": [source.to_dict() for source in answer.sources],
        "used_fallback": answer.used_fallback,
        "needs_feedback": answer.needs_feedback,
        "model_used": answer.model_used,
        "conversation_id": exchange.conversation.id,
        "user_message": exchange.user_message.to_dict(),
        "message": exchange.assistant_message.to_dict(),
    }
    if session_id:
        response_data["session_id"] = session_id

    logger.info("✅ Chat request completed successfully")
    return jsonify(response_data)
