"""lexbrief: knowledge retrieval and ingestion pipeline for a legal-content portal."""

__version__ = "0.1.0"
