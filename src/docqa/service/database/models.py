"""Data models for documents, chunks, images, conversations and feedback."""

import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any


def new_id() -> str:
    """Generate a unique identifier for a stored entity."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return utcnow()


def _known_fields(cls: type, data: dict[str, Any]) -> dict[str, Any]:
    # RavenDB adds "@metadata" and other bookkeeping keys to loaded documents
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


@dataclass
class Document:
    """An uploaded source file and its extracted text.

    Attributes:
        filename: Name the file is stored under on disk
        original_filename: Name the file was uploaded with
        file_type: Upper-case extension tag (e.g. "PDF")
        file_size: Size in bytes
        file_path: Storage path of the uploaded file
        uploaded_by: Identifier of the uploading user
        text_content: Full extracted text (None if nothing was extracted)
        id: Unique document identifier
        upload_date: UTC upload timestamp
    """

    filename: str
    original_filename: str
    file_type: str
    file_size: int
    file_path: str
    uploaded_by: str
    text_content: str | None = None
    id: str = field(default_factory=new_id)
    upload_date: datetime = field(default_factory=utcnow)

    @property
    def size_label(self) -> str:
        """Human-readable size in megabytes, e.g. "1.23 MB"."""
        return f"{self.file_size / 1024 / 1024:.2f} MB"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["upload_date"] = self.upload_date.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Document":
        values = _known_fields(cls, data)
        values["upload_date"] = _parse_datetime(values.get("upload_date"))
        return cls(**values)


@dataclass
class Chunk:
    """A bounded slice of a document's text (or an image description).

    chunk_index is a string so that text chunks ("0", "1", ...) and image
    description chunks ("image_0", ...) share one ordering field.
    """

    document_id: str
    chunk_text: str
    chunk_index: str
    embedding: list[float] | None = None
    page_number: int | None = None
    id: str = field(default_factory=new_id)

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    @property
    def is_image(self) -> bool:
        return self.chunk_index.startswith("image_")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Chunk":
        values = _known_fields(cls, data)
        values["chunk_index"] = str(values.get("chunk_index", ""))
        return cls(**values)


@dataclass
class DocumentImage:
    """An image extracted from a document together with its AI description."""

    document_id: str
    image_data: str
    image_index: str
    ai_description: str | None = None
    image_context: str | None = None
    embedding: list[float] | None = None
    id: str = field(default_factory=new_id)
    extracted_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["extracted_at"] = self.extracted_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DocumentImage":
        values = _known_fields(cls, data)
        values["extracted_at"] = _parse_datetime(values.get("extracted_at"))
        return cls(**values)


@dataclass
class Conversation:
    """A user's chat thread. Messages belong to exactly one conversation."""

    user_id: str
    title: str
    is_active: bool = True
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Conversation":
        values = _known_fields(cls, data)
        values["created_at"] = _parse_datetime(values.get("created_at"))
        values["updated_at"] = _parse_datetime(values.get("updated_at"))
        return cls(**values)


@dataclass
class ChatMessage:
    """A stored question or answer.

    Attributes:
        conversation_id: Conversation the message belongs to
        user_id: Owner of the conversation
        role: "user" or "assistant"
        content: Question text or generated answer
        sources: Serialized citations of an assistant answer (None when the
            answer was not grounded in any document)
        needs_feedback: True when the answer used no documentation and the
            presentation layer should offer a feedback action
    """

    conversation_id: str
    user_id: str
    role: str
    content: str
    sources: list[dict[str, Any]] | None = None
    needs_feedback: bool = False
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatMessage":
        values = _known_fields(cls, data)
        values["timestamp"] = _parse_datetime(values.get("timestamp"))
        return cls(**values)


@dataclass
class Feedback:
    """User feedback on an answer or on the assistant in general.

    feedback_type is free-form ("positive", "negative", "suggestion" in
    practice); rating is an optional 1-5 score.
    """

    user_id: str
    feedback_type: str
    conversation_id: str | None = None
    message_id: str | None = None
    feedback_text: str | None = None
    rating: int | None = None
    id: str = field(default_factory=new_id)
    submitted_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["submitted_at"] = self.submitted_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Feedback":
        values = _known_fields(cls, data)
        values["submitted_at"] = _parse_datetime(values.get("submitted_at"))
        return cls(**values)
