"""End-to-end integration tests for the complete question-answering pipeline."""

from io import BytesIO

import pytest

from conftest import make_provider
from docqa.client.app import create_app
from docqa.client.routes import init_config
from docqa.llm import ModelConfig, ModelProvider
from docqa.service.answer import AnswerAssembler
from docqa.service.database import InMemoryStorage
from docqa.service.ingestion import DocumentIngestor
from docqa.service.retrieval import RetrievalEngine

ADMIN = {"X-User-Id": "admin-1", "X-User-Role": "admin"}
USER = {"X-User-Id": "user-1"}


class TestPipelineIntegration:
    """End-to-end tests for upload, retrieval and answering."""

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_ingest_then_answer(self, fake_backend, tmp_path):
        """Ingest two documents and answer from the relevant one only."""
        storage = InMemoryStorage()
        provider = make_provider(fake_backend)
        ingestor = DocumentIngestor(storage, provider)
        refund = tmp_path / "refunds.txt"
        refund.write_text("The refund policy is 30 days.", encoding="utf-8")
        shipping = tmp_path / "shipping.txt"
        shipping.write_text("Shipping takes two weeks.", encoding="utf-8")

        outcomes = await ingestor.ingest_batch([(refund, None), (shipping, None)])
        assert all(o.ok for o in outcomes)

        assembler = AnswerAssembler(
            provider, storage, retrieval=RetrievalEngine(storage, threshold=0.6, top_k=5)
        )
        answer = await assembler.answer_question("What is the refund policy?")

        assert answer.used_fallback is False
        assert [s.filename for s in answer.sources] == ["refunds.txt"]
        assert answer.sources[0].document_id == outcomes[0].document.id
        prompt = fake_backend.generate_calls[-1]["prompt"]
        assert "The refund policy is 30 days." in prompt
        assert "Shipping" not in prompt

    @pytest.mark.integration
    def test_http_round_trip(self, fake_backend, tmp_path, monkeypatch):
        """Upload through the API, ask, then delete and fall back."""
        monkeypatch.delenv("SIMILARITY_THRESHOLD", raising=False)
        storage = InMemoryStorage()
        app = create_app(storage=storage, provider=make_provider(fake_backend))
        init_config(upload_folder=tmp_path)

        with app.test_client() as client:
            upload = client.post(
                "/api/documents/upload",
                data={
                    "files": [
                        (BytesIO(b"The refund policy is 30 days."), "refunds.txt"),
                        (BytesIO(b"Shipping takes two weeks."), "shipping.txt"),
                    ]
                },
                content_type="multipart/form-data",
                headers=ADMIN,
            )
            assert upload.status_code == 200
            documents = {d["original_filename"]: d["id"] for d in upload.get_json()["documents"]}

            chat = client.post("/api/chat", json={"question": "What is the refund policy?"}, headers=USER)
            data = chat.get_json()
            assert chat.status_code == 200
            assert data["used_fallback"] is False
            assert [s["filename"] for s in data["sources"]] == ["refunds.txt"]

            deleted = client.delete(f"/api/documents/{documents['refunds.txt']}", headers=ADMIN)
            assert deleted.status_code == 200

            chat = client.post("/api/chat", json={"question": "What is the refund policy?"}, headers=USER)
            data = chat.get_json()
            assert data["used_fallback"] is True
            assert data["needs_feedback"] is True

            feedback = client.post(
                "/api/feedback",
                json={"feedback_type": "negative", "message_id": data["message"]["id"], "rating": 1},
                headers=USER,
            )
            assert feedback.status_code == 200
            reported = client.get("/api/admin/feedback", headers=ADMIN).get_json()
            assert [f["message_id"] for f in reported] == [data["message"]["id"]]

            history = client.get("/api/chat/history", headers=USER).get_json()
            assert [m["role"] for m in history] == ["user", "assistant", "user", "assistant"]

            listing = client.get("/api/documents", headers=USER).get_json()
            assert [d["original_filename"] for d in listing] == ["shipping.txt"]

    @pytest.mark.integration
    @pytest.mark.requires_ollama
    @pytest.mark.slow
    @pytest.mark.asyncio
    async def test_ollama_embedding_pipeline(self, ollama_backend, make_pdf):
        """Ingest a PDF with real Ollama embeddings."""
        storage = InMemoryStorage()
        provider = ModelProvider(
            ollama_backend,
            generation_models=[ModelConfig("llama3")],
            embedding_models=[ModelConfig("nomic-embed-text")],
        )
        ingestor = DocumentIngestor(storage, provider)

        document = await ingestor.ingest_document(make_pdf(["Refunds are accepted for 30 days."]))

        chunks = storage.list_chunks(document.id)
        assert len(chunks) == 1
        assert chunks[0].page_number == 1
        assert chunks[0].has_embedding
