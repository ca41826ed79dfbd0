"""Document API routes: list, upload, download and delete."""

import logging
import uuid
from pathlib import Path
from typing import Any

from flask import Blueprint, jsonify, request, send_file
from werkzeug.utils import secure_filename

from docqa.client.routes.auth import admin_required, current_user, login_required
from docqa.client.routes.config import get_config
from docqa.constants import MAX_FILES_PER_UPLOAD, MAX_UPLOAD_SIZE_BYTES
from docqa.service.async_utils import run_async
from docqa.service.database import Document

logger = logging.getLogger(__name__)

documents_bp = Blueprint("documents", __name__)


def allowed_file(filename: str) -> bool:
    """Check if the file extension is allowed.

    Args:
        filename: The filename to check

    Returns:
        True if extension is allowed, False otherwise
    """
    return "." in filename and filename.rsplit(".", 1)[1].lower() in get_config().allowed_extensions


def document_summary(document: Document) -> dict[str, Any]:
    """Serialize a document for API responses, without its extracted text."""
    data = document.to_dict()
    data.pop("text_content", None)
    data["size"] = document.size_label
    return data


@documents_bp.route("/api/documents", methods=["GET"])
@login_required
def list_documents():
    """List all documents, most recently uploaded first."""
    try:
        documents = get_config().storage.list_documents()
        return jsonify([document_summary(d) for d in documents])
    except Exception as e:
        logger.error(f"❌ Error fetching documents: {e}", exc_info=True)
        return jsonify({"message": "Failed to fetch documents"}), 500


@documents_bp.route("/api/documents/upload", methods=["POST"])
@admin_required
def upload_documents():
    """Upload and ingest one or more documents.

    Expects multipart form data with up to 10 files in the "files" field.
    Each file is processed on its own: a rejected or failing file is
    reported in "errors" and does not stop the others.

    Returns:
        JSON response with the created documents and per-file errors
    """
    config = get_config()
    logger.info("📤 Received document upload request")

    files = [f for f in request.files.getlist("files") if f.filename]
    if not files:
        logger.warning("❌ No files in request")
        return jsonify({"message": "No files uploaded"}), 400
    if len(files) > MAX_FILES_PER_UPLOAD:
        logger.warning(f"❌ Too many files: {len(files)}")
        return jsonify({"message": f"At most {MAX_FILES_PER_UPLOAD} files per upload"}), 400

    upload_folder = Path(config.upload_folder)
    upload_folder.mkdir(parents=True, exist_ok=True)

    documents = []
    errors = []
    for file in files:
        original_filename = file.filename
        if not allowed_file(original_filename):
            errors.append({"filename": original_filename, "error": "File type not allowed"})
            continue

        ext = Path(secure_filename(original_filename) or original_filename).suffix.lower()
        stored_filename = f"{uuid.uuid4().hex}{ext}"
        filepath = upload_folder / stored_filename

        try:
            file.save(filepath)
            if filepath.stat().st_size > MAX_UPLOAD_SIZE_BYTES:
                filepath.unlink()
                errors.append({"filename": original_filename, "error": "File exceeds 10MB limit"})
                continue
            logger.info(f"💾 Saved file: {filepath}")

            document = run_async(
                config.ingestor.ingest_document(
                    filepath,
                    original_filename=original_filename,
                    uploaded_by=current_user().user_id,
                    stored_filename=stored_filename,
                )
            )
            documents.append(document_summary(document))
        except Exception as e:
            logger.error(f"❌ Error ingesting {original_filename}: {e}", exc_info=True)
            filepath.unlink(missing_ok=True)
            errors.append({"filename": original_filename, "error": str(e)})

    logger.info(f"✅ Upload complete: {len(documents)} ingested, {len(errors)} failed")
    status = 200 if documents or not errors else 400
    return jsonify({"documents": documents, "errors": errors}), status


@documents_bp.route("/api/documents/<document_id>", methods=["GET"])
@login_required
def download_document(document_id: str):
    """Send a stored document back under its original filename."""
    document = get_config().storage.get_document(document_id)
    if document is None or not Path(document.file_path).is_file():
        return jsonify({"message": "Document not found"}), 404

    return send_file(
        document.file_path,
        as_attachment=True,
        download_name=document.original_filename,
    )


@documents_bp.route("/api/documents/<document_id>", methods=["DELETE"])
@admin_required
def delete_document(document_id: str):
    """Delete a document, its stored file, chunks and images."""
    try:
        if not get_config().ingestor.delete_document(document_id):
            return jsonify({"message": "Document not found"}), 404
        logger.info(f"🗑️  Document {document_id} deleted")
        return jsonify({"message": "Document deleted successfully"})
    except Exception as e:
        logger.error(f"❌ Error deleting document: {e}", exc_info=True)
        return jsonify({"message": "Failed to delete document"}), 500
