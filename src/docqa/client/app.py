"""Flask web application for the documentation assistant API.

This module provides the REST API for uploading documentation and asking
questions about it. Uploads run the ingestion pipeline; questions are
answered by retrieving relevant chunks and generating a cited answer.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from flask import Flask

from docqa.client.routes import (
    chat_bp,
    conversations_bp,
    documents_bp,
    feedback_bp,
    health_bp,
    init_config,
)
from docqa.constants import MAX_FILES_PER_UPLOAD, MAX_UPLOAD_SIZE_BYTES
from docqa.llm import get_model_provider
from docqa.service.answer import AnswerAssembler
from docqa.service.conversations import ConversationService
from docqa.service.database import StorageConfig, create_storage
from docqa.service.ingestion import DocumentIngestor

# Configure logging
log_level = os.getenv("LOG_LEVEL", "DEBUG")
logging.basicConfig(
    level=getattr(logging, log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()
logger.debug("Environment variables loaded")

# Create Flask app
app = Flask(__name__)
logger.debug("Flask app created")

# Configure upload settings
UPLOAD_FOLDER = Path(StorageConfig.get_upload_folder())
app.config["MAX_CONTENT_LENGTH"] = MAX_UPLOAD_SIZE_BYTES * MAX_FILES_PER_UPLOAD

# Register blueprints
app.register_blueprint(chat_bp)
app.register_blueprint(conversations_bp)
app.register_blueprint(documents_bp)
app.register_blueprint(feedback_bp)
app.register_blueprint(health_bp)


def initialize_services(storage=None, provider=None) -> None:
    """Initialize storage, model provider and the services built on them.

    Args:
        storage: Optional storage to use instead of the configured backend
        provider: Optional model provider to use instead of the configured one
    """
    logger.info("🔧 Initializing services...")

    UPLOAD_FOLDER.mkdir(parents=True, exist_ok=True)

    if storage is None:
        storage = create_storage()
    logger.info(f"✅ Storage initialized: {type(storage).__name__}")

    if provider is None:
        provider = get_model_provider()
    logger.info("✅ Model provider initialized successfully")

    init_config(
        storage=storage,
        provider=provider,
        ingestor=DocumentIngestor(storage, provider),
        conversations=ConversationService(storage, AnswerAssembler(provider, storage)),
        upload_folder=UPLOAD_FOLDER,
    )


def create_app(storage=None, provider=None) -> Flask:
    """Factory function for creating the Flask application.

    It initializes services before returning the app instance.

    Returns:
        Flask: The configured Flask application instance
    """
    initialize_services(storage=storage, provider=provider)
    return app


def main() -> None:
    """Entry point for the Flask application command-line interface."""
    print("🚀 Starting DocQA Flask application...")

    # Initialize services
    print("📦 Initializing services...")
    initialize_services()
    print("✅ Services initialized successfully")

    # Run Flask app
    host = os.getenv("FLASK_HOST", "0.0.0.0")
    port = int(os.getenv("FLASK_PORT", "5000"))
    debug = os.getenv("FLASK_ENV", "development") == "development"

    print(f"🌐 Starting Flask server on http://{host}:{port}")
    print(f"🔧 Debug mode: {debug}")
    print("📝 Press CTRL+C to quit")

    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    main()
