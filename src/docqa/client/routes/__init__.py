"""Flask route blueprints for the docqa API."""

from docqa.client.routes.chat import chat_bp
from docqa.client.routes.config import get_config, init_config
from docqa.client.routes.conversations import conversations_bp
from docqa.client.routes.documents import documents_bp
from docqa.client.routes.feedback import feedback_bp
from docqa.client.routes.health import health_bp

__all__ = [
    "chat_bp",
    "conversations_bp",
    "documents_bp",
    "feedback_bp",
    "health_bp",
    "init_config",
    "get_config",
]
