"""Custom exceptions for the AI assist functionality."""


class AIAssistError(Exception):
    """Base exception for AI assist errors."""

    pass


class TransportError(AIAssistError):
    """Exception raised when a text generation call fails for any reason."""

    pass


class UsageLogError(AIAssistError):
    """Exception raised for usage log storage errors."""

    pass


class ConfigurationError(AIAssistError):
    """Exception raised for invalid provider configuration."""

    pass
