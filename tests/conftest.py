"""Pytest configuration and shared fixtures for the test suite."""

import re
import zipfile
from pathlib import Path

import pytest
import requests

from docqa.llm.base import ModelConfig
from docqa.llm.failover import ModelProvider
from docqa.service.database import Chunk, Document, InMemoryStorage

# 1x1 transparent PNG
PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
PNG_DATA_URI = f"data:image/png;base64,{PNG_BASE64}"

# Words the fake embedder knows; every other token is ignored
VOCABULARY = [
    "the",
    "refund",
    "policy",
    "is",
    "30",
    "days",
    "what",
    "shipping",
    "takes",
    "weeks",
    "password",
    "reset",
]


# Service availability checks
def ollama_available() -> bool:
    """Check if Ollama server is running and accessible.

    Returns:
        True if Ollama is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:11434/api/tags", timeout=2)
        return response.status_code == 200
    except requests.RequestException:
        return False


def ravendb_available() -> bool:
    """Check if RavenDB server is running and accessible.

    Returns:
        True if RavenDB is available, False otherwise
    """
    try:
        response = requests.get("http://localhost:8080/databases", timeout=2)
        return response.status_code in (200, 401)  # Auth required is OK
    except requests.RequestException:
        return False


def vocabulary_vector(text: str) -> list[float]:
    """Bag-of-words vector over VOCABULARY."""
    tokens = re.findall(r"[a-z0-9]+", text.lower())
    return [float(tokens.count(word)) for word in VOCABULARY]


class FakeBackend:
    """Deterministic in-process backend.

    Embeddings are bag-of-words vectors over VOCABULARY. Generation echoes
    the model name, or returns a fixed caption when images are attached.
    """

    name = "fake"

    def __init__(self) -> None:
        self.generate_calls: list[dict] = []
        self.embed_calls: list[dict] = []

    async def generate(self, model: str, prompt: str, images: list[str] | None = None) -> str:
        self.generate_calls.append({"model": model, "prompt": prompt, "images": images})
        if images:
            return "A settings page with a blue Save button"
        return f"Answer from {model}"

    async def embed(self, model: str, text: str) -> list[float]:
        self.embed_calls.append({"model": model, "text": text})
        return vocabulary_vector(text)


def make_provider(backend) -> ModelProvider:
    return ModelProvider(
        backend,
        generation_models=[ModelConfig("fake-gen")],
        embedding_models=[ModelConfig("fake-embed")],
        timeout=5,
    )


# Service fixtures with skip markers
@pytest.fixture
def ollama_backend():
    """Provide OllamaBackend instance, skip if Ollama not available."""
    if not ollama_available():
        pytest.skip("Ollama server not running on localhost:11434")

    from docqa.llm import OllamaBackend

    return OllamaBackend(host="http://localhost:11434")


@pytest.fixture
def ravendb_store():
    """Provide RavenDB DocumentStore, skip if RavenDB not available.

    Yields:
        Initialized DocumentStore instance
    """
    if not ravendb_available():
        pytest.skip("RavenDB server not running on localhost:8080")

    from docqa.service.database import create_document_store

    store = create_document_store()
    yield store
    store.close()


# Core fixtures
@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def provider(fake_backend) -> ModelProvider:
    return make_provider(fake_backend)


@pytest.fixture
def mock_embedding():
    """Provide a simple mock embedding vector."""
    return [0.1, 0.2, 0.3, 0.15, -0.1, 0.05, 0.25, -0.05]


# Test data generators
@pytest.fixture
def create_test_document():
    """Factory fixture to create Document records."""

    def _create_document(
        original_filename: str = "guide.pdf",
        document_id: str | None = None,
        file_path: str = "/tmp/guide.pdf",
    ) -> Document:
        document = Document(
            filename="stored.pdf",
            original_filename=original_filename,
            file_type=Path(original_filename).suffix.upper().lstrip("."),
            file_size=1024,
            file_path=file_path,
            uploaded_by="admin-1",
            text_content="Test document text",
        )
        if document_id:
            document.id = document_id
        return document

    return _create_document


@pytest.fixture
def create_test_chunk():
    """Factory fixture to create test document chunks."""

    def _create_chunk(
        text: str = "Test chunk text",
        document_id: str = "doc-1",
        chunk_index: str = "0",
        embedding: list[float] | None = None,
        page_number: int | None = None,
    ) -> Chunk:
        return Chunk(
            document_id=document_id,
            chunk_text=text,
            chunk_index=chunk_index,
            embedding=embedding,
            page_number=page_number,
        )

    return _create_chunk


# Sample file builders
@pytest.fixture
def png_file(tmp_path) -> Path:
    import base64

    path = tmp_path / "pixel.png"
    path.write_bytes(base64.b64decode(PNG_BASE64))
    return path


@pytest.fixture
def make_pdf(tmp_path):
    """Factory writing a PDF with one text line per page."""
    import fitz

    def _make_pdf(pages: list[str], name: str = "sample.pdf") -> Path:
        path = tmp_path / name
        doc = fitz.open()
        for text in pages:
            page = doc.new_page()
            page.insert_text((72, 72), text)
        doc.save(path)
        doc.close()
        return path

    return _make_pdf


@pytest.fixture
def make_docx(tmp_path):
    """Factory writing a minimal DOCX archive, optionally with an embedded image."""
    import base64

    def _make_docx(text: str, with_image: bool = False, name: str = "sample.docx") -> Path:
        path = tmp_path / name
        document_xml = (
            '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
            '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
            f"<w:body><w:p><w:r><w:t>{text}</w:t></w:r></w:p></w:body></w:document>"
        )
        with zipfile.ZipFile(path, "w") as archive:
            archive.writestr("word/document.xml", document_xml)
            if with_image:
                archive.writestr("word/media/image1.png", base64.b64decode(PNG_BASE64))
        return path

    return _make_docx


@pytest.fixture
def make_pptx(tmp_path, png_file):
    """Factory writing a PPTX with one slide, a text box and optionally a picture."""
    from pptx import Presentation
    from pptx.util import Inches

    def _make_pptx(text: str | None, with_image: bool = False, name: str = "deck.pptx") -> Path:
        path = tmp_path / name
        presentation = Presentation()
        slide = presentation.slides.add_slide(presentation.slide_layouts[6])
        if text:
            box = slide.shapes.add_textbox(Inches(1), Inches(1), Inches(4), Inches(1))
            box.text_frame.text = text
        if with_image:
            slide.shapes.add_picture(str(png_file), Inches(1), Inches(3))
        presentation.save(str(path))
        return path

    return _make_pptx


@pytest.fixture
def make_xlsx(tmp_path):
    """Factory writing an XLSX workbook from {sheet_name: rows}."""
    import pandas as pd

    def _make_xlsx(sheets: dict[str, list[list]], name: str = "book.xlsx") -> Path:
        path = tmp_path / name
        with pd.ExcelWriter(path) as writer:
            for sheet_name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, index=False, header=False)
        return path

    return _make_xlsx
