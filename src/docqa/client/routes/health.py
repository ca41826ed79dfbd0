"""Health check API route."""

import logging

from flask import Blueprint, jsonify

from docqa.client.routes.config import get_config

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    """Health check endpoint.

    Returns:
        JSON with service status
    """
    config = get_config()
    backend = getattr(config.provider, "backend", None)
    return jsonify(
        {
            "status": "healthy",
            "storage": type(config.storage).__name__ if config.storage else "not initialized",
            "model_provider": backend.name if backend else "not initialized",
        }
    )
