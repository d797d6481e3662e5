"""Economic calendar ingestion and reconciliation service."""
