"""Value objects exchanged between the core services and the API layer."""

from dataclasses import asdict, dataclass, field
from typing import Any

ADMIN_ROLE = "admin"


@dataclass
class Source:
    """A citation pointing back to the document a retrieved chunk came from."""

    id: str
    document_id: str
    filename: str
    page: int | None = None
    url: str = ""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if self.page is None:
            data.pop("page")
        return data


@dataclass
class Answer:
    """Result of a question-answering round trip.

    Attributes:
        text: The generated answer
        sources: One citation per retrieved chunk (empty when nothing matched)
        used_fallback: True when retrieval found no relevant context and the
            ungrounded prompt was used
        model_used: Name of the generation model that produced the text
    """

    text: str
    sources: list[Source] = field(default_factory=list)
    used_fallback: bool = False
    model_used: str | None = None

    @property
    def needs_feedback(self) -> bool:
        """Whether the presentation layer should offer a feedback action."""
        return self.used_fallback

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "sources": [source.to_dict() for source in self.sources],
            "used_fallback": self.used_fallback,
            "needs_feedback": self.needs_feedback,
            "model_used": self.model_used,
        }


@dataclass(frozen=True)
class RequestContext:
    """Validated identity of the user making a request.

    Produced from headers set by the authentication layer in front of the
    API; the core never inspects raw request objects.
    """

    user_id: str
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE

    @classmethod
    def from_headers(cls, headers: Any) -> "RequestContext | None":
        """Build a context from request headers.

        Args:
            headers: Mapping with X-User-Id and optional X-User-Role

        Returns:
            RequestContext, or None when no user id is present
        """
        user_id = (headers.get("X-User-Id") or "").strip()
        if not user_id:
            return None
        role = (headers.get("X-User-Role") or "user").strip().lower() or "user"
        return cls(user_id=user_id, role=role)
