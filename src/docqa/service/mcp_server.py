"""FastMCP server exposing document retrieval and question answering."""

import logging
import os
from typing import Any

from dotenv import load_dotenv
from fastmcp import FastMCP

from docqa.constants import CONTENT_PREVIEW_LENGTH, DEFAULT_TOP_K
from docqa.exceptions import DocQAError
from docqa.llm import ModelProvider, get_model_provider
from docqa.service.answer import AnswerAssembler
from docqa.service.database import Storage, create_storage
from docqa.service.retrieval import RetrievalEngine

# Configure logging
log_level = os.getenv("LOG_LEVEL", "DEBUG")
logging.basicConfig(
    level=getattr(logging, log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()
logger.debug("Environment variables loaded for MCP server")

# Create FastMCP instance
mcp = FastMCP("DocQA Documentation Assistant")

_services: dict[str, Any] = {}


def get_services() -> tuple[Storage, ModelProvider]:
    """Create storage and model provider on first use and reuse them afterwards."""
    if not _services:
        _services["storage"] = create_storage()
        _services["provider"] = get_model_provider()
    return _services["storage"], _services["provider"]


def set_services(storage: Storage, provider: ModelProvider) -> None:
    """Install explicit storage and provider instances (used by tests and embedding apps)."""
    _services["storage"] = storage
    _services["provider"] = provider


async def retrieve_document_chunks_impl(query: str, top_k: int = DEFAULT_TOP_K) -> list[dict[str, Any]]:
    """Embed a query and return the most similar chunks with their scores."""
    logger.debug(f"MCP Tool: Parameters - query='{query[:100]}', top_k={top_k}")
    storage, provider = get_services()

    embedding = await provider.embed(query)
    results = RetrievalEngine(storage).search_scored(embedding.vector, top_k=top_k)

    filenames: dict[str, str] = {}
    formatted = []
    for scored in results:
        chunk = scored.chunk
        if chunk.document_id not in filenames:
            document = storage.get_document(chunk.document_id)
            filenames[chunk.document_id] = document.original_filename if document else "Unknown"
        formatted.append(
            {
                "document_id": chunk.document_id,
                "source": filenames[chunk.document_id],
                "content": chunk.chunk_text,
                "chunk_index": chunk.chunk_index,
                "page": chunk.page_number,
                "score": scored.score,
            }
        )

    logger.info(f"✅ MCP Tool: Returning {len(formatted)} formatted results to MCP client")
    return formatted


async def ask_question_impl(question: str) -> dict[str, Any]:
    """Answer a question from the ingested documentation."""
    storage, provider = get_services()
    answer = await AnswerAssembler(provider, storage).answer_question(question)
    return answer.to_dict()


async def list_documents_impl() -> list[dict[str, Any]]:
    """List ingested documents without their full text."""
    storage, _ = get_services()
    documents = []
    for document in storage.list_documents():
        data = document.to_dict()
        text = data.pop("text_content") or ""
        data["preview"] = text[:CONTENT_PREVIEW_LENGTH]
        data["size"] = document.size_label
        documents.append(data)
    return documents


@mcp.tool()
async def retrieve_document_chunks(query: str, top_k: int = DEFAULT_TOP_K) -> list[dict[str, Any]]:
    """
    Searches the documentation knowledge base for text chunks that are
    semantically similar to the user's query. Only chunks above the
    similarity threshold are returned, best first.
    Use this tool to find information to answer a user's question.

    Args:
        query: The search query text
        top_k: Maximum number of results to return (default: 5)
    """
    try:
        return await retrieve_document_chunks_impl(query, top_k)
    except Exception as e:
        error_msg = f"Unexpected error: {type(e).__name__}: {e}"
        logger.error(f"❌ MCP Tool: {error_msg}", exc_info=True)
        raise ValueError(error_msg) from e


@mcp.tool()
async def ask_question(question: str) -> dict[str, Any]:
    """
    Answers a question using the uploaded documentation and returns the
    answer text together with its source citations.

    Args:
        question: The user's question

    Returns:
        dict with text, sources, used_fallback, needs_feedback and model_used
    """
    try:
        return await ask_question_impl(question)
    except DocQAError as e:
        logger.error(f"❌ MCP Tool ask_question: {e}")
        raise ValueError(f"{e.error_code}: {e.message}") from e


@mcp.tool()
async def list_documents() -> list[dict[str, Any]]:
    """
    Lists all documents in the knowledge base, most recent first.

    Returns:
        List of document records with a short text preview
    """
    logger.info("📂 MCP Tool list_documents: Fetching documents")
    try:
        documents = await list_documents_impl()
        logger.info(f"✅ MCP Tool: Found {len(documents)} documents")
        return documents
    except Exception as e:
        logger.error(f"❌ MCP Tool: Error listing documents: {type(e).__name__}: {e}", exc_info=True)
        return []


def main() -> None:
    """Entry point for the MCP server command-line interface."""
    logger.info("🚀 Starting DocQA MCP Server...")
    host = os.getenv("MCP_HOST", "0.0.0.0")
    port = int(os.getenv("MCP_PORT", "8001"))
    mcp.run(transport="sse", host=host, port=port)


if __name__ == "__main__":
    main()
