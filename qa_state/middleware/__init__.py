"""Request-independent app setup helpers."""
