"""Tests for text generation adapters."""

import asyncio
import json
import time
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock, patch

import httpx
import ollama
import pytest

from task_ai.ai_assist.exceptions import TransportError
from task_ai.ai_assist.models import GenerationOptions
from task_ai.ai_assist.text_gen_client import (
    HttpTextGenerator,
    OllamaTextGenerator,
    create_text_generator,
)

OPTIONS = GenerationOptions(temperature=0.7, max_tokens=150)
GENERATED = "TITLE: Fix login bug\nPRIORITY: High"


@pytest.mark.unit
class TestOllamaTextGenerator:
    """Test cases for the Ollama adapter."""

    def test_initialization_with_default_config(self) -> None:
        """Test generator defaults."""
        generator = OllamaTextGenerator()

        assert generator.model == "llama3.2:3b"
        assert generator.base_url == "http://localhost:11434"
        assert generator.timeout == 30.0
        assert generator.provider_name == "Ollama"

    def test_initialization_with_custom_config(self) -> None:
        """Test generator with custom configuration."""
        generator = OllamaTextGenerator(
            model="custom-model", base_url="http://custom:8080", timeout=5.0
        )

        assert generator.model == "custom-model"
        assert generator.base_url == "http://custom:8080"
        assert generator.timeout == 5.0

    @pytest.mark.asyncio
    async def test_generate_returns_response_field(self) -> None:
        """Test that the envelope's response text is returned."""
        generator = OllamaTextGenerator()

        with patch(
            "ollama.AsyncClient.generate", return_value={"response": GENERATED}
        ) as mock_generate:
            text = await generator.generate("prompt", OPTIONS)

        assert text == GENERATED
        mock_generate.assert_awaited_once_with(
            model="llama3.2:3b",
            prompt="prompt",
            stream=False,
            options={"temperature": 0.7, "num_predict": 150},
        )

    @pytest.mark.asyncio
    async def test_connection_error_raises_transport_error(self) -> None:
        """Test that connection failures become TransportError."""
        generator = OllamaTextGenerator()

        with patch(
            "ollama.AsyncClient.generate",
            side_effect=ConnectionError("Connection refused"),
        ):
            with pytest.raises(TransportError, match="Connection failed"):
                await generator.generate("prompt", OPTIONS)

    @pytest.mark.asyncio
    async def test_error_status_raises_transport_error(self) -> None:
        """Test that Ollama error responses become TransportError."""
        generator = OllamaTextGenerator()

        with patch(
            "ollama.AsyncClient.generate",
            side_effect=ollama.ResponseError("model not found", 404),
        ):
            with pytest.raises(TransportError, match="404"):
                await generator.generate("prompt", OPTIONS)

    @pytest.mark.asyncio
    async def test_timeout_raises_transport_error(self) -> None:
        """Test that a slow backend is abandoned after the timeout."""
        generator = OllamaTextGenerator(timeout=0.01)

        async def slow_generate(*args: Any, **kwargs: Any) -> dict[str, str]:
            await asyncio.sleep(1)
            return {"response": GENERATED}

        with patch("ollama.AsyncClient.generate", side_effect=slow_generate):
            with pytest.raises(TransportError, match="timed out"):
                await generator.generate("prompt", OPTIONS)

    @pytest.mark.asyncio
    async def test_missing_response_field_raises_transport_error(self) -> None:
        """Test that an envelope without 'response' is rejected."""
        generator = OllamaTextGenerator()

        with patch("ollama.AsyncClient.generate", return_value={"done": True}):
            with pytest.raises(TransportError, match="response"):
                await generator.generate("prompt", OPTIONS)

    @pytest.mark.asyncio
    async def test_unexpected_error_raises_transport_error(self) -> None:
        """Test that any other failure is still reported as TransportError."""
        generator = OllamaTextGenerator()

        with patch(
            "ollama.AsyncClient.generate", side_effect=RuntimeError("unexpected")
        ):
            with pytest.raises(TransportError):
                await generator.generate("prompt", OPTIONS)

    @pytest.mark.asyncio
    async def test_single_attempt_per_call(self) -> None:
        """Test that failures are not retried."""
        generator = OllamaTextGenerator()

        with patch(
            "ollama.AsyncClient.generate", side_effect=ConnectionError("down")
        ) as mock_generate:
            with pytest.raises(TransportError):
                await generator.generate("prompt", OPTIONS)

        assert mock_generate.await_count == 1

    @pytest.mark.asyncio
    async def test_aclose_closes_http_client(self) -> None:
        """Test that aclose releases the client owned by ollama."""
        generator = OllamaTextGenerator()

        with patch("httpx.AsyncClient.aclose", new_callable=AsyncMock) as mock_aclose:
            await generator.aclose()

        mock_aclose.assert_awaited_once()


def _http_generator(handler: Any, **kwargs: Any) -> HttpTextGenerator:
    return HttpTextGenerator(
        base_url="http://backend.test", transport=httpx.MockTransport(handler), **kwargs
    )


@pytest.mark.unit
@pytest.mark.asyncio
class TestHttpTextGenerator:
    """Test cases for the generic HTTP adapter."""

    async def test_generate_posts_contract_payload(self) -> None:
        """Test the request body and the extracted response text."""
        captured: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["path"] = request.url.path
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json={"response": GENERATED, "done": True})

        generator = _http_generator(handler, model="tiny")
        text = await generator.generate("prompt", OPTIONS)
        await generator.aclose()

        assert text == GENERATED
        assert captured["path"] == "/api/generate"
        assert captured["body"] == {
            "model": "tiny",
            "prompt": "prompt",
            "stream": False,
            "options": {"temperature": 0.7, "num_predict": 150},
        }

    async def test_non_success_status_raises_transport_error(self) -> None:
        """Test that HTTP 5xx becomes TransportError."""
        generator = _http_generator(lambda request: httpx.Response(503))

        with pytest.raises(TransportError, match="503"):
            await generator.generate("prompt", OPTIONS)

    async def test_connection_error_raises_transport_error(self) -> None:
        """Test that a refused connection becomes TransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        generator = _http_generator(handler)

        with pytest.raises(TransportError, match="Connection failed"):
            await generator.generate("prompt", OPTIONS)

    async def test_timeout_raises_transport_error(self) -> None:
        """Test that a read timeout becomes TransportError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        generator = _http_generator(handler)

        with pytest.raises(TransportError, match="timed out"):
            await generator.generate("prompt", OPTIONS)

    async def test_slow_body_is_cut_off_at_timeout(self) -> None:
        """Test that the timeout bounds the whole call, not each read."""

        async def trickle() -> AsyncIterator[bytes]:
            for byte in json.dumps({"response": GENERATED}).encode():
                await asyncio.sleep(0.05)
                yield bytes([byte])

        generator = _http_generator(
            lambda request: httpx.Response(200, content=trickle()), timeout=0.2
        )

        start = time.perf_counter()
        with pytest.raises(TransportError, match="timed out"):
            await generator.generate("prompt", OPTIONS)
        elapsed = time.perf_counter() - start
        await generator.aclose()

        assert elapsed < 1.0

    async def test_invalid_json_raises_transport_error(self) -> None:
        """Test that a non-JSON body becomes TransportError."""
        generator = _http_generator(
            lambda request: httpx.Response(200, text="<html>proxy error</html>")
        )

        with pytest.raises(TransportError, match="not valid JSON"):
            await generator.generate("prompt", OPTIONS)

    async def test_non_string_response_raises_transport_error(self) -> None:
        """Test that a 'response' field of the wrong type is rejected."""
        generator = _http_generator(
            lambda request: httpx.Response(200, json={"response": None})
        )

        with pytest.raises(TransportError, match="unexpected type"):
            await generator.generate("prompt", OPTIONS)

    async def test_json_array_envelope_raises_transport_error(self) -> None:
        """Test that an envelope that is not an object is rejected."""
        generator = _http_generator(lambda request: httpx.Response(200, json=["x"]))

        with pytest.raises(TransportError, match="missing"):
            await generator.generate("prompt", OPTIONS)


@pytest.mark.unit
class TestGeneratorFactory:
    """Test cases for create_text_generator."""

    def test_create_ollama_generator(self) -> None:
        """Test that 'ollama' builds the Ollama adapter."""
        generator = create_text_generator("ollama", model="m", timeout=3.0)

        assert isinstance(generator, OllamaTextGenerator)
        assert generator.model == "m"
        assert generator.timeout == 3.0

    def test_create_http_generator(self) -> None:
        """Test that 'http' builds the HTTP adapter."""
        generator = create_text_generator("http", base_url="http://x:1/")

        assert isinstance(generator, HttpTextGenerator)
        assert generator.base_url == "http://x:1"

    def test_unknown_backend_raises_value_error(self) -> None:
        """Test that unknown backend names are rejected."""
        with pytest.raises(ValueError, match="Unknown backend"):
            create_text_generator("openai")
