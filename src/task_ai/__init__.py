"""AI-assisted task field suggestions and summaries backed by local models."""

__version__ = "0.1.0"
