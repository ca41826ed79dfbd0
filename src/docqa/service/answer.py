"""Answer assembly: prompt construction, generation and source citations."""

import logging

from docqa.constants import get_product_name
from docqa.exceptions import (
    AllModelsFailedError,
    AnswerGenerationError,
    DocQAError,
    InvalidQuestionError,
    QuotaExceededError,
)
from docqa.llm.failover import ModelProvider, is_rate_limit_error
from docqa.models import Answer, Source
from docqa.service.database import Chunk, Storage
from docqa.service.retrieval import RetrievalEngine

logger = logging.getLogger(__name__)

FALLBACK_FILENAME = "Documentation"
QUOTA_MESSAGE = "Gemini API quota exceeded. Please check your API key."


def build_context(chunks: list[Chunk]) -> str:
    """Join chunk texts with a blank line between them."""
    return "\n\n".join(chunk.chunk_text for chunk in chunks)


def build_grounded_prompt(question: str, chunks: list[Chunk], product_name: str | None = None) -> str:
    """Build the prompt used when relevant documentation was retrieved.

    Args:
        question: The user's question
        chunks: Retrieved chunks, best first
        product_name: Product the assistant documents

    Returns:
        str: Prompt instructing the model to answer from the context only
    """
    product = product_name or get_product_name()
    return (
        f"You are a helpful documentation assistant for {product}. "
        "Answer questions based on the provided documentation context. "
        "If the context doesn't contain relevant information, say so clearly. "
        "Format your responses in markdown for better readability.\n\n"
        f"Context from documentation:\n{build_context(chunks)}\n\n"
        f"Question: {question}"
    )


def build_ungrounded_prompt(question: str, product_name: str | None = None) -> str:
    """Build the prompt used when no relevant documentation was found."""
    product = product_name or get_product_name()
    return (
        f"You are a helpful documentation assistant for {product}. "
        "The user asked a question but no relevant documentation was found "
        "in the knowledge base.\n\n"
        "Please politely inform the user that you don't have information about "
        "their question in the available documentation, and suggest they:\n"
        "1. Try rephrasing their question\n"
        "2. Check if the documentation has been uploaded\n"
        "3. Contact the admin if they believe relevant documents are missing\n\n"
        f"Question: {question}"
    )


def translate_provider_error(error: Exception) -> DocQAError:
    """Map a provider failure to the error reported to the user.

    Exhaustion caused only by rate limits, and any direct rate-limit error,
    become QuotaExceededError. Everything else becomes AnswerGenerationError.
    """
    if isinstance(error, (QuotaExceededError, AnswerGenerationError)):
        return error
    if isinstance(error, AllModelsFailedError):
        rate_limited = error.rate_limited
    else:
        rate_limited = is_rate_limit_error(error)

    if rate_limited:
        return QuotaExceededError(QUOTA_MESSAGE, {"cause": str(error)})
    return AnswerGenerationError("Failed to process message", {"cause": str(error)})


class AnswerAssembler:
    """Turns a question and its retrieved chunks into a cited answer."""

    def __init__(
        self,
        provider: ModelProvider,
        storage: Storage,
        retrieval: RetrievalEngine | None = None,
        product_name: str | None = None,
    ) -> None:
        self.provider = provider
        self.storage = storage
        self.retrieval = retrieval or RetrievalEngine(storage)
        self.product_name = product_name or get_product_name()

    def build_sources(self, chunks: list[Chunk]) -> list[Source]:
        """Create one citation per chunk, in chunk order."""
        sources = []
        filenames: dict[str, str] = {}
        for index, chunk in enumerate(chunks):
            if chunk.document_id not in filenames:
                document = self.storage.get_document(chunk.document_id)
                filenames[chunk.document_id] = (
                    document.original_filename if document and document.original_filename
                    else FALLBACK_FILENAME
                )
            sources.append(
                Source(
                    id=f"source-{index}",
                    document_id=chunk.document_id,
                    filename=filenames[chunk.document_id],
                    page=chunk.page_number or None,
                    url=f"/api/documents/{chunk.document_id}",
                )
            )
        return sources

    async def answer(self, question: str, chunks: list[Chunk]) -> Answer:
        """Generate an answer from already retrieved chunks.

        Args:
            question: The user's question
            chunks: Retrieved chunks; empty selects the ungrounded prompt

        Returns:
            Answer: Generated text with one source per chunk

        Raises:
            QuotaExceededError: If generation failed on rate limits
            AnswerGenerationError: If generation failed otherwise
        """
        grounded = bool(chunks) and bool(build_context(chunks).strip())
        if grounded:
            prompt = build_grounded_prompt(question, chunks, self.product_name)
        else:
            prompt = build_ungrounded_prompt(question, self.product_name)

        try:
            result = await self.provider.generate(prompt)
        except Exception as e:
            logger.error(f"❌ Answer generation failed: {e}")
            raise translate_provider_error(e) from e

        sources = self.build_sources(chunks) if grounded else []
        return Answer(
            text=result.text,
            sources=sources,
            used_fallback=not grounded,
            model_used=result.model_used,
        )

    async def answer_question(self, question: str) -> Answer:
        """Full round trip: embed the question, retrieve, then answer.

        Raises:
            InvalidQuestionError: If the question is blank
            QuotaExceededError: If embedding or generation failed on rate limits
            AnswerGenerationError: If embedding or generation failed otherwise
        """
        if not question or not question.strip():
            raise InvalidQuestionError("Question must not be empty")

        logger.info(f"🗣️  Question: '{question[:100]}'")
        try:
            embedding = await self.provider.embed(question)
        except Exception as e:
            logger.error(f"❌ Question embedding failed: {e}")
            raise translate_provider_error(e) from e

        chunks = self.retrieval.search(embedding.vector)
        answer = await self.answer(question, chunks)
        logger.info(
            f"✅ Answered with {len(answer.sources)} sources "
            f"(fallback={answer.used_fallback}, model={answer.model_used})"
        )
        return answer
