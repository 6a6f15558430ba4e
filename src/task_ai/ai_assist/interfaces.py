"""Abstract interfaces for the AI assist system."""

from abc import ABC, abstractmethod

from task_ai.ai_assist.models import GenerationOptions, UsageRecord


class TextGenerator(ABC):
    """Abstract interface for a text generation backend."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Name of the backend, recorded in usage logs and health output."""
        pass

    @abstractmethod
    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        """
        Generate text for a prompt with a single backend call.

        Implementations perform exactly one outbound request per invocation
        and never retry. Every failure (network error, non-success status,
        timeout, unexpected envelope) is reported the same way.

        Args:
            prompt: Complete prompt text
            options: Sampling temperature and output token budget

        Returns:
            Raw generated text taken from the backend envelope

        Raises:
            TransportError: If the call fails for any reason
        """
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Release connections held by the backend client."""
        pass


class UsageSink(ABC):
    """Abstract interface for recording AI usage."""

    @abstractmethod
    async def record(self, usage: UsageRecord) -> None:
        """
        Store one usage record.

        Args:
            usage: Record describing a single AI feature invocation

        Raises:
            UsageLogError: If the record cannot be stored
        """
        pass
