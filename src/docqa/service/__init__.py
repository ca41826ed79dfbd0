"""Core services: storage, retrieval, answering and ingestion."""
