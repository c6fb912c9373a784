"""Core enums and pydantic models."""
