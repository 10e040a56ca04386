"""Image ingestion."""
