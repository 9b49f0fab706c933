"""Service layer: QA engine, cache and persistence gateway."""
