"""Text generation adapters for local and HTTP model backends."""

import asyncio
from typing import Any

import httpx
import ollama

from task_ai.logging_utils import get_logger

from .config import (
    DEFAULT_OLLAMA_ENDPOINT,
    DEFAULT_OLLAMA_MODEL,
    DEFAULT_REQUEST_TIMEOUT,
    GENERATE_PATH,
)
from .exceptions import TransportError
from .interfaces import TextGenerator
from .models import GenerationOptions

logger = get_logger(__name__)


def _extract_response_text(envelope: Any) -> str:
    """
    Pull the generated text out of a backend envelope.

    Raises:
        TransportError: If the envelope has no string 'response' field
    """
    try:
        text = envelope["response"]
    except (KeyError, TypeError, IndexError) as e:
        raise TransportError("Backend envelope is missing the 'response' field") from e

    if not isinstance(text, str):
        raise TransportError(
            f"Backend 'response' field has unexpected type {type(text).__name__}"
        )
    return text


class OllamaTextGenerator(TextGenerator):
    """Generates text using a local model served by Ollama."""

    def __init__(
        self,
        model: str = DEFAULT_OLLAMA_MODEL,
        base_url: str = DEFAULT_OLLAMA_ENDPOINT,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        """
        Initialize the Ollama generator.

        Args:
            model: Ollama model name
            base_url: Ollama service URL
            timeout: Request timeout in seconds
        """
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self._client = ollama.AsyncClient(host=base_url)

    @property
    def provider_name(self) -> str:
        return "Ollama"

    async def aclose(self) -> None:
        """Close the HTTP client owned by the Ollama client."""
        await self._client._client.aclose()

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        """
        Run one /api/generate call against Ollama.

        Args:
            prompt: Complete prompt text
            options: Sampling temperature and output token budget

        Returns:
            Generated text from the envelope's 'response' field

        Raises:
            TransportError: On timeout, connection failure, error status or
                an unexpected envelope
        """
        try:
            response = await asyncio.wait_for(
                self._client.generate(
                    model=self.model,
                    prompt=prompt,
                    stream=False,
                    options={
                        "temperature": options.temperature,
                        "num_predict": options.max_tokens,
                    },
                ),
                timeout=self.timeout,
            )
        except TimeoutError as e:
            logger.error(f"Ollama request timed out after {self.timeout}s")
            raise TransportError(f"Request timed out after {self.timeout}s") from e
        except ollama.ResponseError as e:
            logger.error(f"Ollama returned status {e.status_code}: {e.error}")
            raise TransportError(f"Backend returned status {e.status_code}") from e
        except (ConnectionError, httpx.HTTPError) as e:
            logger.error(f"Connection error calling Ollama at {self.base_url}: {e}")
            raise TransportError(f"Connection failed: {e}") from e
        except Exception as e:
            logger.error(f"Error calling Ollama API: {e}")
            raise TransportError(f"Generation failed: {e}") from e

        text = _extract_response_text(response)
        logger.trace(f"Ollama response ({len(text)} chars): {text}")
        return text


class HttpTextGenerator(TextGenerator):
    """
    Generates text from any backend implementing the /api/generate contract.

    The request body is ``{model, prompt, stream: false, options: {temperature,
    num_predict}}`` and the reply must be a JSON object carrying the generated
    text in its ``response`` field.
    """

    def __init__(
        self,
        model: str = DEFAULT_OLLAMA_MODEL,
        base_url: str = DEFAULT_OLLAMA_ENDPOINT,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        provider_name: str = "HTTP",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the HTTP generator.

        Args:
            model: Model identifier sent with each request
            base_url: Backend base URL
            timeout: Request timeout in seconds
            provider_name: Name reported in usage logs
            transport: Optional httpx transport (used for testing)
        """
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._provider_name = provider_name
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    @property
    def provider_name(self) -> str:
        return self._provider_name

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def generate(self, prompt: str, options: GenerationOptions) -> str:
        """
        POST one generation request.

        Args:
            prompt: Complete prompt text
            options: Sampling temperature and output token budget

        Returns:
            Generated text from the envelope's 'response' field

        Raises:
            TransportError: On timeout, network error, non-2xx status or an
                unparseable envelope
        """
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": options.temperature,
                "num_predict": options.max_tokens,
            },
        }

        try:
            response = await asyncio.wait_for(
                self._client.post(GENERATE_PATH, json=payload), timeout=self.timeout
            )
            response.raise_for_status()
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Request to {self.base_url} timed out after {self.timeout}s")
            raise TransportError(f"Request timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"Backend returned status {e.response.status_code}")
            raise TransportError(
                f"Backend returned status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Connection error calling {self.base_url}: {e}")
            raise TransportError(f"Connection failed: {e}") from e

        try:
            envelope = response.json()
        except ValueError as e:
            raise TransportError("Backend envelope is not valid JSON") from e

        text = _extract_response_text(envelope)
        logger.trace(f"{self._provider_name} response ({len(text)} chars): {text}")
        return text


def create_text_generator(
    backend: str,
    model: str = DEFAULT_OLLAMA_MODEL,
    base_url: str = DEFAULT_OLLAMA_ENDPOINT,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> TextGenerator:
    """
    Create a generator for the named backend.

    Args:
        backend: "ollama" or "http"
        model: Model identifier
        base_url: Backend URL
        timeout: Request timeout in seconds

    Returns:
        Configured TextGenerator

    Raises:
        ValueError: If the backend name is unknown
    """
    if backend == "ollama":
        return OllamaTextGenerator(model=model, base_url=base_url, timeout=timeout)
    if backend == "http":
        return HttpTextGenerator(model=model, base_url=base_url, timeout=timeout)
    raise ValueError(f"Unknown backend: {backend}")
