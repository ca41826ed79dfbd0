"""Document ingestion: text/image extraction and chunking."""
