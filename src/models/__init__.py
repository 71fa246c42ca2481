"""Request, result and API models for figurine-service."""
