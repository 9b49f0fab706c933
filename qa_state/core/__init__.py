"""Platform-wide exception types."""
