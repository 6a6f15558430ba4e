"""Suggestion Service coordinating prompt, generation, parsing and fallback."""

import time
from datetime import UTC, datetime
from typing import Any

from task_ai.logging_utils import get_logger

from .config import (
    FALLBACK_CATEGORY,
    SUGGESTION_MAX_TOKENS,
    SUGGESTION_TEMPERATURE,
    SUMMARY_ERROR_MESSAGE,
    SUMMARY_MAX_TOKENS,
    SUMMARY_TEMPERATURE,
    USAGE_LOG_TEXT_LIMIT,
)
from .interfaces import TextGenerator, UsageSink
from .models import (
    ConfidenceLevel,
    FeatureType,
    GenerationOptions,
    SuggestionResult,
    TaskPriority,
    UsageRecord,
)
from .prompts import build_field_suggestion_prompt, build_summary_prompt
from .response_parser import parse_field_suggestion, parse_summary, truncate_title

logger = get_logger(__name__)

SUGGESTION_OPTIONS = GenerationOptions(
    temperature=SUGGESTION_TEMPERATURE, max_tokens=SUGGESTION_MAX_TOKENS
)
SUMMARY_OPTIONS = GenerationOptions(
    temperature=SUMMARY_TEMPERATURE, max_tokens=SUMMARY_MAX_TOKENS
)


def _clip(text: str | None) -> str | None:
    if text is None:
        return None
    return text[:USAGE_LOG_TEXT_LIMIT]


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.perf_counter() - start) * 1000))


class SuggestionService:
    """
    Service producing AI field suggestions and thread summaries.

    Holds no per-call state, so one instance can serve concurrent requests.
    Backend failures never propagate: suggestions degrade to a deterministic
    fallback and summaries to a fixed error message.
    """

    def __init__(
        self, generator: TextGenerator, usage_sink: UsageSink | None = None
    ) -> None:
        """
        Initialize Suggestion Service.

        Args:
            generator: Text generation backend
            usage_sink: Optional recorder for usage and latency
        """
        self._generator = generator
        self._usage_sink = usage_sink

        logger.info(
            f"Suggestion Service initialized with provider: {generator.provider_name}"
        )

    @property
    def provider_name(self) -> str:
        return self._generator.provider_name

    async def suggest_fields(self, description: str) -> SuggestionResult:
        """
        Suggest title, priority and category for a task description.

        Args:
            description: Task description (length checked by the caller)

        Returns:
            SuggestionResult parsed from the model output, or the fallback
            result when the backend call fails
        """
        prompt = build_field_suggestion_prompt(description)
        logger.trace(f"Field suggestion prompt: {prompt}")

        start = time.perf_counter()
        try:
            text = await self._generator.generate(prompt, SUGGESTION_OPTIONS)
        except Exception as e:
            elapsed_ms = _elapsed_ms(start)
            logger.error(f"Field suggestion failed, using fallback: {e}")
            await self._record_usage(
                FeatureType.AUTOFILL, elapsed_ms, False, prompt, error=str(e)
            )
            return self._fallback_suggestion(description, elapsed_ms)
        elapsed_ms = _elapsed_ms(start)

        result = parse_field_suggestion(text, elapsed_ms)
        logger.info(
            f"Field suggestion complete: priority={result.suggested_priority}, "
            f"category={result.suggested_category}, "
            f"confidence={result.confidence}, time={elapsed_ms}ms"
        )
        await self._record_usage(FeatureType.AUTOFILL, elapsed_ms, True, prompt, text)
        return result

    async def generate_summary(self, content: str) -> str:
        """
        Summarize a task thread as bullet points.

        Args:
            content: Task description and comments

        Returns:
            Summary text, or a fixed error message when the backend call fails
        """
        prompt = build_summary_prompt(content)
        logger.trace(f"Summary prompt: {prompt}")

        start = time.perf_counter()
        try:
            text = await self._generator.generate(prompt, SUMMARY_OPTIONS)
        except Exception as e:
            elapsed_ms = _elapsed_ms(start)
            logger.error(f"Error generating summary with {self.provider_name}: {e}")
            await self._record_usage(
                FeatureType.SUMMARY, elapsed_ms, False, prompt, error=str(e)
            )
            return SUMMARY_ERROR_MESSAGE
        elapsed_ms = _elapsed_ms(start)

        summary = parse_summary(text)
        logger.info(f"Summary complete: {len(summary)} chars, time={elapsed_ms}ms")
        await self._record_usage(FeatureType.SUMMARY, elapsed_ms, True, prompt, text)
        return summary

    def health(self) -> dict[str, Any]:
        """Report the configured provider."""
        return {
            "provider": self.provider_name,
            "status": "online",
            "timestamp": datetime.now(UTC).isoformat(),
        }

    @staticmethod
    def _fallback_suggestion(description: str, elapsed_ms: int) -> SuggestionResult:
        """Build the non-AI suggestion returned when the backend is unavailable."""
        return SuggestionResult(
            suggested_title=truncate_title(description),
            suggested_priority=TaskPriority.MEDIUM,
            suggested_category=FALLBACK_CATEGORY,
            confidence=ConfidenceLevel.LOW,
            processing_time_ms=elapsed_ms,
        )

    async def _record_usage(
        self,
        feature_type: FeatureType,
        elapsed_ms: int,
        success: bool,
        prompt: str,
        response: str | None = None,
        error: str | None = None,
    ) -> None:
        """Hand a usage record to the sink; sink failures are only logged."""
        if self._usage_sink is None:
            return

        record = UsageRecord(
            provider=self.provider_name,
            feature_type=feature_type,
            execution_time_ms=elapsed_ms,
            success=success,
            prompt=_clip(prompt),
            response=_clip(response),
            error_message=error,
        )
        try:
            await self._usage_sink.record(record)
        except Exception as e:
            logger.warning(f"Failed to record AI usage: {e}")
