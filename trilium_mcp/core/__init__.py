"""Content validation, concurrency control and attribute orchestration."""
