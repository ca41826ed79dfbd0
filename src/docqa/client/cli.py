"""Command-line interface for DocQA using Click."""

import asyncio
from pathlib import Path

import click
from dotenv import load_dotenv

from docqa.client.cli_helpers import (
    ensure_database_exists,
    format_search_result,
    get_database_info,
    uses_ravendb,
)
from docqa.constants import ALLOWED_EXTENSIONS
from docqa.exceptions import DocQAError
from docqa.llm import get_model_provider
from docqa.service.answer import AnswerAssembler
from docqa.service.database import create_storage, database_exists, delete_database
from docqa.service.ingestion import DocumentIngestor, delete_document
from docqa.service.retrieval import RetrievalEngine

# Load environment variables
load_dotenv()


@click.command()
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
)
@click.option(
    "--create-database",
    "create_database_flag",
    is_flag=True,
    default=False,
    help="Create the RavenDB database if it doesn't exist",
)
@click.option(
    "--uploaded-by",
    type=str,
    default="cli",
    help="User id recorded as the uploader (default: 'cli')",
)
def ingest(directory: Path, create_database_flag: bool, uploaded_by: str) -> None:
    """Ingest supported documents from DIRECTORY into the knowledge base.

    Example:
        docqa-ingest documents/
        docqa-ingest documents/ --create-database
    """
    ensure_database_exists(create_if_missing=create_database_flag, directory=str(directory))

    files = sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower().lstrip(".") in ALLOWED_EXTENSIONS
    )
    if not files:
        click.echo(f"No supported files found in '{directory}'")
        return

    click.echo(f"Found {len(files)} file(s)\n")

    try:
        storage = create_storage()
        ingestor = DocumentIngestor(storage, get_model_provider())
    except Exception as e:
        click.echo(f"✗ Error initializing services: {e}", err=True)
        raise click.Abort()

    outcomes = asyncio.run(
        ingestor.ingest_batch([(p, p.name) for p in files], uploaded_by=uploaded_by)
    )

    succeeded = 0
    for outcome in outcomes:
        if outcome.ok:
            succeeded += 1
            chunk_count = len(storage.list_chunks(outcome.document.id))
            click.echo(f"  ✓ {outcome.filename}: {chunk_count} chunks (id {outcome.document.id})")
        else:
            click.echo(f"  ✗ Error processing {outcome.filename}: {outcome.error}", err=True)

    click.echo(f"\n✓ Ingestion complete! {succeeded}/{len(outcomes)} file(s) ingested.")
    if succeeded == 0:
        raise click.Abort()


@click.command()
def count() -> None:
    """Show the number of document chunks in the database.

    Example:
        docqa-count
    """
    ensure_database_exists()
    storage = None if uses_ravendb() else create_storage()
    _, _, chunk_count = get_database_info(storage)
    if chunk_count is not None:
        click.echo(f"📊 Database contains {chunk_count} document chunk(s)")
    else:
        click.echo("✗ Error counting documents", err=True)
        raise click.Abort()


@click.command()
@click.argument("query", type=str)
@click.option("--top-k", type=int, default=None, help="Number of results to return (default: 5)")
@click.option(
    "--threshold",
    type=float,
    default=None,
    help="Minimum cosine similarity (default: SIMILARITY_THRESHOLD env or 0.6)",
)
def search(query: str, top_k: int | None, threshold: float | None) -> None:
    """Search for chunks similar to QUERY.

    Example:
        docqa-search "refund policy"
        docqa-search "password reset" --top-k 3
    """
    ensure_database_exists()

    click.echo(f"🔍 Searching for: '{query}'\n")

    try:
        storage = create_storage()
        provider = get_model_provider()
        embedding = asyncio.run(provider.embed(query))
        results = RetrievalEngine(storage, threshold=threshold, top_k=top_k).search_scored(
            embedding.vector
        )
    except DocQAError as e:
        click.echo(f"✗ Error: {e.message}", err=True)
        raise click.Abort()
    except Exception as e:
        click.echo(f"✗ Unexpected error: {e}", err=True)
        raise click.Abort()

    if not results:
        click.echo("No results found.")
        return

    click.echo(f"✅ Found {len(results)} result(s):\n")
    for i, result in enumerate(results, 1):
        document = storage.get_document(result.chunk.document_id)
        filename = document.original_filename if document else "Unknown"
        click.echo(format_search_result(i, result, filename))


@click.command()
@click.argument("question", type=str)
def ask(question: str) -> None:
    """Answer QUESTION from the ingested documentation.

    Example:
        docqa-ask "What is the refund policy?"
    """
    ensure_database_exists()

    try:
        storage = create_storage()
        assembler = AnswerAssembler(get_model_provider(), storage)
        answer = asyncio.run(assembler.answer_question(question))
    except DocQAError as e:
        click.echo(f"✗ Error ({e.error_code}): {e.message}", err=True)
        raise click.Abort()
    except Exception as e:
        click.echo(f"✗ Unexpected error: {e}", err=True)
        raise click.Abort()

    click.echo(answer.text)
    if answer.sources:
        click.echo("\nSources:")
        for source in answer.sources:
            page = f" (page {source.page})" if source.page else ""
            click.echo(f"  • {source.filename}{page}")
    else:
        click.echo("\n⚠️  No relevant documentation found.")


@click.command()
@click.argument("document_id", type=str)
@click.option(
    "--keep-file",
    is_flag=True,
    default=False,
    help="Keep the stored upload file on disk",
)
def delete_doc(document_id: str, keep_file: bool) -> None:
    """Delete a document with its chunks and images.

    Example:
        docqa-delete-doc 3f2b9c...
    """
    ensure_database_exists()

    try:
        deleted = delete_document(create_storage(), document_id, remove_file=not keep_file)
    except Exception as e:
        click.echo(f"✗ Error deleting document: {e}", err=True)
        raise click.Abort()

    if not deleted:
        click.echo(f"✗ Document '{document_id}' not found", err=True)
        raise click.Abort()
    click.echo(f"✓ Document '{document_id}' deleted")


@click.command()
@click.option("--yes", "-y", is_flag=True, default=False, help="Skip confirmation prompt")
def delete_db(yes: bool) -> None:
    """Delete the RavenDB database and all its contents.

    WARNING: This is irreversible and deletes all documents, chunks and images.

    Example:
        docqa-delete-db          # Will prompt for confirmation
        docqa-delete-db --yes    # Skip confirmation
    """
    url, db_name, chunk_count = get_database_info()

    if not database_exists():
        click.echo(f"✓ Database '{db_name}' does not exist at {url}")
        return

    if not yes:
        click.echo(f"⚠️  WARNING: You are about to delete the database '{db_name}'")
        click.echo(f"   Location: {url}\n")
        click.echo("This will permanently delete:")
        click.echo("  • All uploaded document records")
        click.echo("  • All chunks and embeddings")
        click.echo("  • All extracted images\n")

        if chunk_count is not None:
            click.echo(f"📊 Current database contains: {chunk_count} document chunk(s)\n")

        if not click.confirm("Are you sure you want to proceed?", default=False):
            click.echo("Deletion cancelled.")
            return

    click.echo(f"🗑️  Deleting database '{db_name}'...")
    try:
        delete_database()
        click.echo(f"✓ Database '{db_name}' successfully deleted!")
        click.echo("\nTo create a new database, run:")
        click.echo("  docqa-ingest <directory> --create-database")
    except Exception as e:
        click.echo(f"✗ Error deleting database: {e}", err=True)
        raise click.Abort()


if __name__ == "__main__":
    ingest()
