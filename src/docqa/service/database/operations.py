"""RavenDB administration: store creation, database lifecycle and counts.

Every helper falls back to RAVENDB_URL / RAVENDB_DATABASE when no explicit
url or database is given.
"""

import logging

import requests
from ravendb import DocumentStore
from ravendb.serverwide.operations.common import DeleteDatabaseOperation

from docqa.service.database.config import CHUNKS_COLLECTION, RavenDBConfig

logger = logging.getLogger(__name__)

ADMIN_REQUEST_TIMEOUT = 30  # seconds


def _resolve(url: str | None, database: str | None) -> tuple[str, str]:
    return url or RavenDBConfig.get_url(), database or RavenDBConfig.get_database_name()


def create_document_store(url: str | None = None, database: str | None = None) -> DocumentStore:
    """Create and initialize a DocumentStore bound to one database.

    Returns:
        DocumentStore: Initialized store; the caller owns it and must close it
    """
    url, database = _resolve(url, database)
    store = DocumentStore([url], database)
    store.initialize()
    return store


def database_exists(url: str | None = None, database: str | None = None) -> bool:
    """Check whether the database can be queried.

    Any connection or lookup error counts as "does not exist".
    """
    url, database = _resolve(url, database)
    try:
        store = create_document_store(url, database)
    except Exception as e:
        logger.debug(f"RavenDB unreachable at {url}: {e}")
        return False

    try:
        with store.open_session() as session:
            list(session.query().take(0))
        return True
    except Exception as e:
        logger.debug(f"Database {database} not available at {url}: {e}")
        return False
    finally:
        store.close()


def create_database(url: str | None = None, database: str | None = None) -> None:
    """Create the database through the RavenDB admin endpoint.

    Raises:
        requests.HTTPError: If the server rejects the request
    """
    url, database = _resolve(url, database)
    response = requests.put(
        f"{url}/admin/databases",
        json={"DatabaseName": database, "Settings": {}, "Disabled": False},
        timeout=ADMIN_REQUEST_TIMEOUT,
    )
    response.raise_for_status()
    logger.info(f"✅ Created RavenDB database {database} at {url}")


def delete_database(url: str | None = None, database: str | None = None) -> None:
    """Hard-delete the database with all documents, chunks and images.

    WARNING: irreversible.
    """
    url, database = _resolve(url, database)
    store = create_document_store(url, database)
    try:
        store.maintenance.server.send(DeleteDatabaseOperation(database_name=database, hard_delete=True))
        logger.info(f"🗑️  Deleted RavenDB database {database} at {url}")
    finally:
        store.close()


def count_documents(
    url: str | None = None,
    database: str | None = None,
    collection: str = CHUNKS_COLLECTION,
) -> int:
    """Count the records of one collection (chunks by default)."""
    store = create_document_store(*_resolve(url, database))
    try:
        with store.open_session() as session:
            return len(list(session.advanced.raw_query(f"from {collection}", object_type=dict)))
    finally:
        store.close()
