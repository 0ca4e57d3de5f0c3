"""Business logic: ingestion and question answering."""
