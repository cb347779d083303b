"""Request/response schemas."""
