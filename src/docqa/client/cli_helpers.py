"""Helper functions for CLI commands."""

import click

from docqa.constants import CONTENT_PREVIEW_LENGTH
from docqa.service.database import (
    RavenDBConfig,
    Storage,
    StorageConfig,
    count_documents,
    create_database,
    database_exists,
)
from docqa.service.retrieval import ScoredChunk


def uses_ravendb() -> bool:
    """Whether the configured storage backend is RavenDB."""
    return StorageConfig.get_backend() == "ravendb"


def ensure_database_exists(
    create_if_missing: bool = False,
    directory: str | None = None,
) -> bool:
    """Check if database exists, optionally create it.

    Always succeeds for the in-memory backend.

    Args:
        create_if_missing: If True, attempt to create the database
        directory: Directory path for error message context

    Returns:
        True if database exists (or was created)

    Raises:
        click.Abort: If database doesn't exist and can't be created
    """
    if not uses_ravendb() or database_exists():
        return True

    if create_if_missing:
        click.echo("Database does not exist. Creating database...")
        try:
            create_database()
            click.echo("✓ Database created successfully!")
            return True
        except Exception as e:
            click.echo(f"✗ Failed to create database: {e}", err=True)
            click.echo("\nPlease ensure RavenDB is running and accessible.", err=True)
            raise click.Abort()

    # Database doesn't exist and we're not creating it
    click.echo("✗ Error: Database does not exist!", err=True)
    click.echo("\nPlease create the database first using:", err=True)
    if directory:
        click.echo(f"  docqa-ingest {directory} --create-database", err=True)
    else:
        click.echo("  docqa-ingest <directory> --create-database", err=True)
    raise click.Abort()


def format_search_result(
    index: int,
    result: ScoredChunk,
    filename: str,
    max_length: int = CONTENT_PREVIEW_LENGTH,
) -> str:
    """Format a search result for display.

    Args:
        index: Result number (1-based)
        result: Scored chunk returned by the retrieval engine
        filename: Original filename of the chunk's document
        max_length: Maximum content length before truncation

    Returns:
        Formatted string for display
    """
    chunk = result.chunk
    content = chunk.chunk_text
    display_content = content[:max_length] + "..." if len(content) > max_length else content

    location = f"chunk #{chunk.chunk_index}"
    if chunk.page_number:
        location += f", page {chunk.page_number}"

    lines = [
        f"{index}. [{filename} - {location}] (score: {result.score:.4f})",
        f"   {display_content}",
        "",
    ]
    return "\n".join(lines)


def get_database_info(storage: Storage | None = None) -> tuple[str, str, int | None]:
    """Get database connection info and chunk count.

    Args:
        storage: Storage to count chunks in (default: RavenDB count)

    Returns:
        Tuple of (url, database_name, chunk_count or None if error)
    """
    url = RavenDBConfig.get_url()
    db_name = RavenDBConfig.get_database_name()

    try:
        chunk_count = storage.count_chunks() if storage is not None else count_documents()
    except Exception:
        chunk_count = None

    return url, db_name, chunk_count
