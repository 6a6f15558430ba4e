"""Configuration constants for the AI suggestion and summary features."""

import os
from dataclasses import dataclass

from .exceptions import ConfigurationError

# Text Generation Backend
DEFAULT_BACKEND = "ollama"
SUPPORTED_BACKENDS = ("ollama", "http")
DEFAULT_OLLAMA_ENDPOINT = "http://localhost:11434"
DEFAULT_OLLAMA_MODEL = "llama3.2:3b"
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds
GENERATE_PATH = "/api/generate"

# Sampling parameters per feature
SUGGESTION_TEMPERATURE = 0.7
SUGGESTION_MAX_TOKENS = 150
SUMMARY_TEMPERATURE = 0.5
SUMMARY_MAX_TOKENS = 200

# Fallback suggestion (backend unavailable or failed)
MAX_TITLE_LENGTH = 80
TRUNCATION_MARKER = "..."
FALLBACK_CATEGORY = "Support"

# Summary messages
SUMMARY_UNAVAILABLE_MESSAGE = "Unable to generate summary."
SUMMARY_ERROR_MESSAGE = "Error generating AI summary. Please try again later."

# Caller-side validation
DEFAULT_MIN_DESCRIPTION_LENGTH = 10

# Usage Log
DEFAULT_USAGE_DB_PATH = os.path.expanduser("~/.task-ai/usage.db")
USAGE_LOG_TEXT_LIMIT = 1000  # characters of prompt/response kept per record
USAGE_SCHEMA_VERSION = 1

# MCP Server Configuration
DEFAULT_MCP_HOST = "localhost"
DEFAULT_MCP_PORT = 3000
DEFAULT_MCP_SERVER_NAME = "task-ai-assist"

# Category taxonomy offered to the model (not enforced on parsed output)
SUGGESTION_CATEGORIES = ("Bug", "Feature", "Enhancement", "Documentation", "Support")


@dataclass
class AIProviderSettings:
    """Externally supplied settings for the text generation backend."""

    backend: str = DEFAULT_BACKEND
    endpoint: str = DEFAULT_OLLAMA_ENDPOINT
    model: str = DEFAULT_OLLAMA_MODEL
    timeout: float = DEFAULT_REQUEST_TIMEOUT
    usage_db_path: str | None = None

    @classmethod
    def from_env(cls) -> "AIProviderSettings":
        """
        Build settings from TASK_AI_* environment variables.

        Returns:
            AIProviderSettings with defaults for unset variables

        Raises:
            ConfigurationError: If a variable holds an invalid value
        """
        backend = os.environ.get("TASK_AI_BACKEND", DEFAULT_BACKEND)
        if backend not in SUPPORTED_BACKENDS:
            raise ConfigurationError(f"Unsupported backend: {backend}")

        raw_timeout = os.environ.get("TASK_AI_TIMEOUT")
        timeout = DEFAULT_REQUEST_TIMEOUT
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError as e:
                raise ConfigurationError(f"Invalid timeout: {raw_timeout}") from e
            if timeout <= 0:
                raise ConfigurationError(f"Timeout must be positive: {raw_timeout}")

        return cls(
            backend=backend,
            endpoint=os.environ.get("TASK_AI_ENDPOINT", DEFAULT_OLLAMA_ENDPOINT),
            model=os.environ.get("TASK_AI_MODEL", DEFAULT_OLLAMA_MODEL),
            timeout=timeout,
            usage_db_path=os.environ.get("TASK_AI_USAGE_DB"),
        )
