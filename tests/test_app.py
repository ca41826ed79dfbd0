"""Tests for the Flask application module."""

from datetime import datetime, timedelta, timezone
from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import make_provider, vocabulary_vector
from docqa.client.app import create_app
from docqa.client.routes import get_config, init_config
from docqa.exceptions import AnswerGenerationError, QuotaExceededError
from docqa.service.conversations import ConversationService
from docqa.service.database import ChatMessage

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
USER = {"X-User-Id": "user-1"}


@pytest.fixture
def client(storage, fake_backend, tmp_path):
    """Flask test client over in-memory storage and the fake backend."""
    app = create_app(storage=storage, provider=make_provider(fake_backend))
    init_config(upload_folder=tmp_path / "uploads")
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client


def stored_document(storage, create_test_document, tmp_path, name="guide.pdf", content=b"%PDF-1.4"):
    path = tmp_path / f"stored-{name}"
    path.write_bytes(content)
    return storage.insert_document(create_test_document(name, file_path=str(path)))


class TestAuth:
    """Tests for identity checks."""

    def test_missing_identity_is_unauthorized(self, client):
        response = client.get("/api/documents")
        assert response.status_code == 401
        assert response.get_json() == {"message": "Unauthorized"}

    def test_blank_identity_is_unauthorized(self, client):
        response = client.post("/api/chat", json={"question": "hi"}, headers={"X-User-Id": "  "})
        assert response.status_code == 401

    def test_user_cannot_upload(self, client):
        response = client.post("/api/documents/upload", headers=USER)
        assert response.status_code == 403
        assert response.get_json()["message"] == "Forbidden: admin access required"

    def test_user_cannot_delete(self, client):
        assert client.delete("/api/documents/any", headers=USER).status_code == 403

    def test_anonymous_delete_is_unauthorized(self, client):
        assert client.delete("/api/documents/any").status_code == 401


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_check(self, client):
        """Health is public and reports the configured services."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.get_json() == {
            "status": "healthy",
            "storage": "InMemoryStorage",
            "model_provider": "fake",
        }


class TestChatEndpoint:
    """Tests for the /api/chat endpoint."""

    def test_grounded_answer(self, client, storage, create_test_document, create_test_chunk, tmp_path):
        document = stored_document(storage, create_test_document, tmp_path, name="policies.txt")
        text = "The refund policy is 30 days."
        storage.insert_chunk(
            create_test_chunk(text=text, document_id=document.id, embedding=vocabulary_vector(text))
        )

        response = client.post(
            "/api/chat",
            json={"question": "What is the refund policy?", "session_id": "s-1"},
            headers=USER,
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["response"] == "Answer from fake-gen"
        assert data["used_fallback"] is False
        assert data["needs_feedback"] is False
        assert data["model_used"] == "fake-gen"
        assert data["session_id"] == "s-1"
        assert data["sources"] == [
            {
                "id": "source-0",
                "document_id": document.id,
                "filename": "policies.txt",
                "url": f"/api/documents/{document.id}",
            }
        ]
        assert data["message"]["role"] == "assistant"

    def test_fallback_answer(self, client):
        response = client.post("/api/chat", json={"query": "Anything?"}, headers=USER)

        data = response.get_json()
        assert response.status_code == 200
        assert data["used_fallback"] is True
        assert data["needs_feedback"] is True
        assert data["sources"] == []
        assert data["message"]["sources"] is None
        assert "session_id" not in data

    @pytest.mark.parametrize("payload", [{}, {"question": ""}, {"question": "   "}])
    def test_missing_question(self, client, payload):
        response = client.post("/api/chat", json=payload, headers=USER)

        assert response.status_code == 400
        assert response.get_json()["message"] == "Missing 'question' field in request"

    def test_quota_exceeded(self, client, storage):
        assembler = MagicMock()
        assembler.answer_question = AsyncMock(
            side_effect=QuotaExceededError("Gemini API quota exceeded. Please check your API key.")
        )
        init_config(conversations=ConversationService(storage, assembler))

        response = client.post("/api/chat", json={"question": "q"}, headers=USER)

        assert response.status_code == 429
        assert response.get_json() == {
            "error": "quota_exceeded",
            "message": "Gemini API quota exceeded. Please check your API key.",
        }

    def test_generation_failure(self, client, storage):
        assembler = MagicMock()
        assembler.answer_question = AsyncMock(side_effect=AnswerGenerationError("Failed to process message"))
        init_config(conversations=ConversationService(storage, assembler))

        response = client.post("/api/chat", json={"question": "q"}, headers=USER)

        assert response.status_code == 500
        assert response.get_json()["error"] == "generation_failed"

    def test_exchange_is_stored_in_a_conversation(self, client, storage):
        first = client.post("/api/chat", json={"question": "Where is the API key?"}, headers=USER).get_json()
        conversation_id = first["conversation_id"]

        second = client.post(
            "/api/chat",
            json={"question": "And the secret?", "conversation_id": conversation_id},
            headers=USER,
        ).get_json()

        assert second["conversation_id"] == conversation_id
        assert first["user_message"]["content"] == "Where is the API key?"
        assert first["message"]["needs_feedback"] is True
        messages = storage.list_conversation_messages(conversation_id)
        assert [(m.role, m.content) for m in messages] == [
            ("user", "Where is the API key?"),
            ("assistant", "Answer from fake-gen"),
            ("user", "And the secret?"),
            ("assistant", "Answer from fake-gen"),
        ]

    def test_foreign_conversation_is_not_found(self, client):
        conversation_id = client.post("/api/chat", json={"question": "hi"}, headers=USER).get_json()[
            "conversation_id"
        ]

        response = client.post(
            "/api/chat",
            json={"question": "hi", "conversation_id": conversation_id},
            headers={"X-User-Id": "user-2"},
        )

        assert response.status_code == 404
        assert response.get_json()["error"] == "conversation_not_found"

    def test_active_conversation_limit(self, client):
        for index in range(5):
            assert client.post("/api/chat", json={"question": f"q{index}"}, headers=USER).status_code == 200

        response = client.post("/api/chat", json={"question": "one more"}, headers=USER)

        assert response.status_code == 400
        assert response.get_json()["error"] == "conversation_limit_reached"


class TestUploadEndpoint:
    """Tests for the /api/documents/upload endpoint."""

    def test_upload_text_file(self, client, storage, tmp_path):
        response = client.post(
            "/api/documents/upload",
            data={"files": [(BytesIO(b"The refund policy is 30 days."), "policy.txt")]},
            content_type="multipart/form-data",
            headers=ADMIN,
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["errors"] == []
        (document,) = data["documents"]
        assert document["original_filename"] == "policy.txt"
        assert document["file_type"] == "TXT"
        assert document["uploaded_by"] == "admin-1"
        assert document["size"] == "0.00 MB"
        assert "text_content" not in document

        assert document["filename"].endswith(".txt")
        assert document["filename"] != "policy.txt"
        assert (tmp_path / "uploads" / document["filename"]).is_file()
        assert storage.count_chunks() == 1

    def test_disallowed_extension_is_reported(self, client):
        response = client.post(
            "/api/documents/upload",
            data={
                "files": [
                    (BytesIO(b"hello"), "notes.md"),
                    (BytesIO(b"MZ"), "setup.exe"),
                ]
            },
            content_type="multipart/form-data",
            headers=ADMIN,
        )

        data = response.get_json()
        assert response.status_code == 200
        assert [d["original_filename"] for d in data["documents"]] == ["notes.md"]
        assert data["errors"] == [{"filename": "setup.exe", "error": "File type not allowed"}]

    def test_only_rejected_files(self, client):
        response = client.post(
            "/api/documents/upload",
            data={"files": [(BytesIO(b"MZ"), "setup.exe")]},
            content_type="multipart/form-data",
            headers=ADMIN,
        )
        assert response.status_code == 400

    def test_no_files(self, client):
        response = client.post("/api/documents/upload", data={}, headers=ADMIN)
        assert response.status_code == 400
        assert response.get_json()["message"] == "No files uploaded"

    def test_too_many_files(self, client):
        files = [(BytesIO(b"x"), f"file{i}.txt") for i in range(11)]

        response = client.post(
            "/api/documents/upload",
            data={"files": files},
            content_type="multipart/form-data",
            headers=ADMIN,
        )

        assert response.status_code == 400

    def test_oversized_file_is_removed(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr("docqa.client.routes.documents.MAX_UPLOAD_SIZE_BYTES", 4)

        response = client.post(
            "/api/documents/upload",
            data={"files": [(BytesIO(b"more than four bytes"), "big.txt")]},
            content_type="multipart/form-data",
            headers=ADMIN,
        )

        assert response.status_code == 400
        assert response.get_json()["errors"] == [
            {"filename": "big.txt", "error": "File exceeds 10MB limit"}
        ]
        assert list((tmp_path / "uploads").iterdir()) == []

    def test_ingestion_error_is_reported(self, client, tmp_path):
        ingestor = MagicMock()
        ingestor.ingest_document = AsyncMock(side_effect=OSError("disk full"))
        init_config(ingestor=ingestor)

        response = client.post(
            "/api/documents/upload",
            data={"files": [(BytesIO(b"text"), "a.txt")]},
            content_type="multipart/form-data",
            headers=ADMIN,
        )

        assert response.status_code == 400
        assert response.get_json()["errors"] == [{"filename": "a.txt", "error": "disk full"}]
        assert list((tmp_path / "uploads").iterdir()) == []


class TestDocumentEndpoints:
    """Tests for listing, downloading and deleting documents."""

    def test_list_documents(self, client, storage, create_test_document, tmp_path):
        document = stored_document(storage, create_test_document, tmp_path)

        response = client.get("/api/documents", headers=USER)

        assert response.status_code == 200
        (item,) = response.get_json()
        assert item["id"] == document.id
        assert item["size"] == "0.00 MB"
        assert "text_content" not in item

    def test_list_documents_storage_error(self, client):
        broken = MagicMock()
        broken.list_documents.side_effect = RuntimeError("db down")
        init_config(storage=broken)

        response = client.get("/api/documents", headers=USER)

        assert response.status_code == 500

    def test_download_uses_original_filename(self, client, storage, create_test_document, tmp_path):
        document = stored_document(storage, create_test_document, tmp_path, content=b"%PDF-data")

        response = client.get(f"/api/documents/{document.id}", headers=USER)

        assert response.status_code == 200
        assert response.data == b"%PDF-data"
        assert "guide.pdf" in response.headers["Content-Disposition"]
        response.close()

    def test_download_unknown_document(self, client):
        assert client.get("/api/documents/missing", headers=USER).status_code == 404

    def test_delete_document(self, client, storage, create_test_document, create_test_chunk, tmp_path):
        document = stored_document(storage, create_test_document, tmp_path)
        storage.insert_chunk(create_test_chunk(document_id=document.id))

        response = client.delete(f"/api/documents/{document.id}", headers=ADMIN)

        assert response.status_code == 200
        assert response.get_json() == {"message": "Document deleted successfully"}
        assert storage.get_document(document.id) is None
        assert storage.count_chunks() == 0
        assert not (tmp_path / "stored-guide.pdf").exists()

    def test_delete_unknown_document(self, client):
        assert client.delete("/api/documents/missing", headers=ADMIN).status_code == 404

    def test_config_is_shared(self, client, storage):
        assert get_config().storage is storage


class TestConversationEndpoints:
    """Tests for chat history and conversation management."""

    def ask(self, client, question, headers=USER):
        return client.post("/api/chat", json={"question": question}, headers=headers).get_json()

    def test_history_purges_old_messages(self, client, storage):
        self.ask(client, "Recent question")
        stale = ChatMessage(
            conversation_id="old",
            user_id="user-1",
            role="user",
            content="Old question",
            timestamp=datetime.now(timezone.utc) - timedelta(days=8),
        )
        storage.insert_message(stale)

        response = client.get("/api/chat/history", headers=USER)

        assert response.status_code == 200
        assert [m["content"] for m in response.get_json()] == ["Recent question", "Answer from fake-gen"]
        assert stale not in storage.list_user_messages("user-1", 50)

    def test_history_is_per_user(self, client):
        self.ask(client, "Mine")
        assert client.get("/api/chat/history", headers={"X-User-Id": "user-2"}).get_json() == []

    def test_list_conversations_newest_first(self, client):
        first = self.ask(client, "First topic")["conversation_id"]
        second = self.ask(client, "Second topic")["conversation_id"]

        listing = client.get("/api/conversations", headers=USER).get_json()

        assert [c["id"] for c in listing] == [second, first]
        assert listing[1]["title"] == "First topic"
        assert listing[1]["is_active"] is True

    def test_conversation_messages(self, client):
        conversation_id = self.ask(client, "Where are invoices?")["conversation_id"]

        response = client.get(f"/api/conversations/{conversation_id}/messages", headers=USER)

        assert [m["role"] for m in response.get_json()] == ["user", "assistant"]
        other = client.get(
            f"/api/conversations/{conversation_id}/messages", headers={"X-User-Id": "user-2"}
        )
        assert other.status_code == 404

    def test_delete_conversation_frees_a_slot(self, client, storage):
        ids = [self.ask(client, f"q{index}")["conversation_id"] for index in range(5)]

        response = client.delete(f"/api/conversations/{ids[0]}", headers=USER)

        assert response.status_code == 200
        assert storage.get_conversation(ids[0]) is None
        assert storage.list_conversation_messages(ids[0]) == []
        assert client.post("/api/chat", json={"question": "new"}, headers=USER).status_code == 200

    def test_delete_unknown_conversation(self, client):
        assert client.delete("/api/conversations/missing", headers=USER).status_code == 404

    def test_history_storage_error(self, client):
        conversations = MagicMock()
        conversations.history.side_effect = RuntimeError("db down")
        init_config(conversations=conversations)

        response = client.get("/api/chat/history", headers=USER)

        assert response.status_code == 500
        assert response.get_json() == {"message": "Failed to fetch chat history"}


class TestFeedbackEndpoints:
    """Tests for feedback capture."""

    def test_feedback_on_fallback_answer(self, client, storage):
        chat = client.post("/api/chat", json={"question": "Unknown topic?"}, headers=USER).get_json()
        assert chat["needs_feedback"] is True

        response = client.post(
            "/api/feedback",
            json={
                "feedback_type": "negative",
                "conversation_id": chat["conversation_id"],
                "message_id": chat["message"]["id"],
                "feedback_text": "Please document this",
                "rating": 2,
            },
            headers=USER,
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["message"] == "Feedback submitted successfully"
        assert data["feedback"]["user_id"] == "user-1"
        (stored,) = storage.list_feedback()
        assert stored.message_id == chat["message"]["id"]
        assert stored.rating == 2

    @pytest.mark.parametrize(
        "payload",
        [{}, {"feedback_type": "  "}, {"feedback_type": "positive", "rating": 6}],
    )
    def test_invalid_feedback(self, client, storage, payload):
        response = client.post("/api/feedback", json=payload, headers=USER)

        assert response.status_code == 400
        assert response.get_json()["error"] == "invalid_feedback"
        assert storage.list_feedback() == []

    def test_feedback_requires_identity(self, client):
        assert client.post("/api/feedback", json={"feedback_type": "positive"}).status_code == 401

    def test_admin_lists_feedback(self, client):
        client.post("/api/feedback", json={"feedback_type": "positive"}, headers=USER)
        client.post("/api/feedback", json={"feedback_type": "suggestion"}, headers=USER)

        response = client.get("/api/admin/feedback", headers=ADMIN)

        assert response.status_code == 200
        assert {f["feedback_type"] for f in response.get_json()} == {"positive", "suggestion"}
        assert client.get("/api/admin/feedback", headers=USER).status_code == 403
