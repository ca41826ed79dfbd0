"""Document ingestion: extract, chunk, embed, describe images and store.

Provider calls for one file run concurrently under a semaphore. Chunk and
image indices are assigned before the calls are fanned out, so the stored
indices never depend on completion order.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from docqa.constants import get_chunk_size, get_max_provider_concurrency
from docqa.ingest.chunker import enumerate_chunks
from docqa.ingest.extractor import ExtractedImage, ExtractionResult, extract
from docqa.ingest.images import ImageDescriber, is_data_uri
from docqa.llm.failover import ModelProvider
from docqa.service.database import Chunk, Document, DocumentImage, Storage

logger = logging.getLogger(__name__)


def image_chunk_text(description: str, context: str) -> str:
    """Text embedded and stored for an image description chunk."""
    return f"[IMAGE DESCRIPTION]: {description}\n[CONTEXT]: {context}"


@dataclass
class IngestOutcome:
    """Result of ingesting one file in a batch."""

    filename: str
    document: Document | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.document is not None


class DocumentIngestor:
    """Runs the ingestion pipeline for uploaded files.

    Args:
        storage: Where documents, chunks and images are persisted
        provider: Embedding and generation capability
        describer: Image describer (default: one built over provider)
        chunk_size: Characters per chunk (default: CHUNK_SIZE env)
        max_concurrency: Concurrent provider calls per file
            (default: MAX_PROVIDER_CONCURRENCY env)
    """

    def __init__(
        self,
        storage: Storage,
        provider: ModelProvider,
        describer: ImageDescriber | None = None,
        chunk_size: int | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self.storage = storage
        self.provider = provider
        self.describer = describer or ImageDescriber(provider)
        self.chunk_size = chunk_size or get_chunk_size()
        self.max_concurrency = max_concurrency or get_max_provider_concurrency()
        if self.chunk_size < 1:
            raise ValueError(f"chunk_size must be at least 1, got {self.chunk_size}")

    def plan_chunks(self, result: ExtractionResult) -> list[tuple[int, str, int | None]]:
        """Split extracted text into (index, text, page_number) triples.

        Paginated text is chunked page by page so every chunk carries its
        1-based page number. Indices run sequentially across pages.
        """
        if not result.text:
            return []

        if not result.pages:
            return [(i, piece, None) for i, piece in enumerate_chunks(result.text, self.chunk_size)]

        planned = []
        for page_number, page_text in enumerate(result.pages, start=1):
            for index, piece in enumerate_chunks(page_text, self.chunk_size, start=len(planned)):
                planned.append((index, piece, page_number))
        return planned

    async def _embed_or_none(self, text: str, label: str) -> list[float] | None:
        try:
            result = await self.provider.embed(text)
            return result.vector
        except Exception as e:
            logger.error(f"❌ Error generating embedding for {label}: {e}")
            return None

    async def _embed_chunks(
        self,
        document: Document,
        planned: list[tuple[int, str, int | None]],
        semaphore: asyncio.Semaphore,
    ) -> list[Chunk]:
        async def build(index: int, text: str, page_number: int | None) -> Chunk:
            async with semaphore:
                embedding = await self._embed_or_none(text, f"chunk {index}")
            return Chunk(
                document_id=document.id,
                chunk_text=text,
                chunk_index=str(index),
                embedding=embedding,
                page_number=page_number,
            )

        chunks = await asyncio.gather(*(build(*item) for item in planned))

        # gather preserves task order, so chunks are stored in index order
        for chunk in chunks:
            self.storage.insert_chunk(chunk)
        return list(chunks)

    async def _process_image(
        self,
        document: Document,
        index: int,
        image: ExtractedImage,
        semaphore: asyncio.Semaphore,
    ) -> bool:
        """Describe, embed and store one image.

        Returns:
            bool: True if a searchable description chunk was stored
        """
        async with semaphore:
            description = await self.describer.describe(image.data)
            text = image_chunk_text(description, image.context)
            embedding = await self._embed_or_none(text, f"image {index}")

        self.storage.insert_image(
            DocumentImage(
                document_id=document.id,
                image_data=image.data,
                image_index=str(index),
                ai_description=description,
                image_context=image.context,
                embedding=embedding,
            )
        )
        if embedding is None:
            return False

        self.storage.insert_chunk(
            Chunk(
                document_id=document.id,
                chunk_text=text,
                chunk_index=f"image_{index}",
                embedding=embedding,
            )
        )
        return True

    async def _process_images(
        self,
        document: Document,
        images: list[ExtractedImage],
        semaphore: asyncio.Semaphore,
    ) -> int:
        tasks = []
        for index, image in enumerate(images):
            if not is_data_uri(image.data):
                logger.warning(f"⚠️  Skipping non-base64 image at index {index}")
                continue
            tasks.append(self._process_image(document, index, image, semaphore))

        results = await asyncio.gather(*tasks, return_exceptions=True)
        processed = 0
        for result in results:
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.error(f"❌ Error processing image from {document.original_filename}: {result}")
            elif result:
                processed += 1

        logger.info(
            f"📸 Extracted {len(images)} images from {document.original_filename} "
            f"({processed} with AI descriptions)"
        )
        return processed

    async def ingest_document(
        self,
        path: Path | str,
        original_filename: str | None = None,
        uploaded_by: str = "system",
        stored_filename: str | None = None,
    ) -> Document:
        """Ingest one stored file.

        Args:
            path: Path of the stored file
            original_filename: Name the file was uploaded with (default: path name)
            uploaded_by: Identifier of the uploading user
            stored_filename: Name the file is stored under (default: path name)

        Returns:
            Document: The stored document record

        Raises:
            FileNotFoundError: If the file does not exist
            OSError: If the file cannot be read
        """
        path = Path(path)
        name = original_filename or path.name
        logger.info(f"📄 Ingesting {name}")

        result = await asyncio.to_thread(extract, path, name)

        document = Document(
            filename=stored_filename or path.name,
            original_filename=name,
            file_type=Path(name).suffix.upper().lstrip("."),
            file_size=path.stat().st_size,
            file_path=str(path),
            uploaded_by=uploaded_by,
            text_content=result.text,
        )
        self.storage.insert_document(document)

        try:
            await self._store_derived(document, result)
        except BaseException as e:
            logger.error(f"❌ Ingestion of {name} failed, removing document {document.id}: {e!r}")
            self._rollback(document.id)
            raise

        logger.info(f"✅ Ingested {name} as document {document.id}")
        return document

    async def _store_derived(self, document: Document, result: ExtractionResult) -> None:
        semaphore = asyncio.Semaphore(self.max_concurrency)

        planned = self.plan_chunks(result)
        chunks = await self._embed_chunks(document, planned, semaphore)
        embedded = sum(1 for chunk in chunks if chunk.has_embedding)
        logger.info(
            f"🔢 Stored {len(chunks)} chunks for {document.original_filename} "
            f"({embedded} with embeddings)"
        )

        if result.images:
            await self._process_images(document, result.images, semaphore)

    def _rollback(self, document_id: str) -> None:
        # A document without its chunks would never be retrievable
        try:
            self.storage.delete_document(document_id)
        except Exception as e:
            logger.error(f"❌ Could not remove partially ingested document {document_id}: {e}")

    async def ingest_batch(
        self,
        files: list[tuple[Path | str, str | None]],
        uploaded_by: str = "system",
    ) -> list[IngestOutcome]:
        """Ingest several files one after another.

        A failing file is recorded as an error outcome and the remaining
        files are still processed.

        Args:
            files: (path, original_filename) pairs
            uploaded_by: Identifier of the uploading user

        Returns:
            list[IngestOutcome]: One outcome per file, in input order
        """
        outcomes = []
        for path, original_filename in files:
            name = original_filename or Path(path).name
            try:
                document = await self.ingest_document(
                    path, original_filename=original_filename, uploaded_by=uploaded_by
                )
                outcomes.append(IngestOutcome(filename=name, document=document))
            except Exception as e:
                logger.error(f"❌ Failed to ingest {name}: {e}", exc_info=True)
                outcomes.append(IngestOutcome(filename=name, error=str(e)))
        return outcomes

    def delete_document(self, document_id: str, remove_file: bool = True) -> bool:
        return delete_document(self.storage, document_id, remove_file=remove_file)


def delete_document(storage: Storage, document_id: str, remove_file: bool = True) -> bool:
    """Delete a document, its chunks and images, and optionally its stored file.

    Removing the file is best effort: a failure is logged and the records
    are deleted anyway.

    Returns:
        bool: False if the document does not exist
    """
    document = storage.get_document(document_id)
    if document is None:
        return False

    if remove_file and document.file_path:
        try:
            Path(document.file_path).unlink()
        except OSError as e:
            logger.error(f"❌ Error deleting file {document.file_path}: {e}")

    return storage.delete_document(document_id)
