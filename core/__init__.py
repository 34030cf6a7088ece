"""Core domain: models, services and shared types."""
