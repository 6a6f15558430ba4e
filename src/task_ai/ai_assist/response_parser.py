"""Tolerant extraction of suggestion fields from free-form model output."""

import re
from collections.abc import Callable
from typing import TypeVar

from task_ai.logging_utils import get_logger

from .config import MAX_TITLE_LENGTH, SUMMARY_UNAVAILABLE_MESSAGE, TRUNCATION_MARKER
from .models import ConfidenceLevel, SuggestionResult, TaskPriority

logger = get_logger(__name__)

T = TypeVar("T")

# Markdown emphasis models like to wrap values in ("**High**", "`Bug`")
_EMPHASIS = " \t*`"
_WRAPPERS = {"[": "]", '"': '"', "'": "'", "(": ")"}
_FIRST_WORD = re.compile(r"\w+")

_PRIORITIES = {priority.value.lower(): priority for priority in TaskPriority}
_CONFIDENCE_LEVELS = {level.value.lower(): level for level in ConfidenceLevel}


def _label_pattern(label: str) -> re.Pattern[str]:
    """Match 'LABEL:' anywhere in the text and capture the rest of that line."""
    return re.compile(rf"\b{label}[ \t*]*:(?P<value>[^\r\n]*)", re.IGNORECASE)


_TITLE = _label_pattern("TITLE")
_PRIORITY = _label_pattern("PRIORITY")
_CATEGORY = _label_pattern("CATEGORY")
_CONFIDENCE = _label_pattern("CONFIDENCE")


def truncate_title(description: str, max_length: int = MAX_TITLE_LENGTH) -> str:
    """
    Shorten text to a title of at most max_length characters.

    Args:
        description: Source text
        max_length: Maximum title length including the truncation marker

    Returns:
        The text itself, or its prefix followed by "..."
    """
    if len(description) <= max_length:
        return description
    return description[: max_length - len(TRUNCATION_MARKER)] + TRUNCATION_MARKER


def _undecorate(value: str) -> str:
    value = value.strip(_EMPHASIS)
    if len(value) >= 2 and _WRAPPERS.get(value[0]) == value[-1]:
        value = value[1:-1].strip(_EMPHASIS)
    return value


def _find_label_value(pattern: re.Pattern[str], text: str) -> str | None:
    """Return the undecorated value after the first matching label, if any."""
    match = pattern.search(text)
    if not match:
        return None
    value = _undecorate(match.group("value"))
    return value or None


def _first_word(value: str | None) -> str | None:
    if value is None:
        return None
    match = _FIRST_WORD.search(value)
    return match.group(0) if match else None


def _parse_title(text: str) -> str | None:
    value = _find_label_value(_TITLE, text)
    if value is None:
        return None
    return truncate_title(value)


def _parse_priority(text: str) -> TaskPriority | None:
    word = _first_word(_find_label_value(_PRIORITY, text))
    if word is None:
        logger.debug("No PRIORITY label in model output")
        return None

    priority = _PRIORITIES.get(word.lower())
    if priority is None:
        logger.debug(f"Unrecognized priority '{word}', leaving unset")
    return priority


def _parse_category(text: str) -> str | None:
    return _first_word(_find_label_value(_CATEGORY, text))


def _parse_confidence(text: str) -> ConfidenceLevel:
    word = _first_word(_find_label_value(_CONFIDENCE, text))
    if word is None:
        return ConfidenceLevel.MEDIUM

    level = _CONFIDENCE_LEVELS.get(word.lower())
    if level is None:
        logger.debug(f"Unrecognized confidence '{word}', using Medium")
        return ConfidenceLevel.MEDIUM
    return level


def _parse_field(parse: Callable[[str], T], text: str, field: str, default: T) -> T:
    """Run one field parser, keeping the default if it fails unexpectedly."""
    try:
        return parse(text)
    except Exception as e:
        logger.warning(
            f"Error parsing {field} from AI response: {e}; response was: {text!r}"
        )
        return default


def parse_field_suggestion(text: str, elapsed_ms: float) -> SuggestionResult:
    """
    Parse model output into a SuggestionResult.

    Each label is looked up independently, so a reply may yield any subset of
    title, priority and category. A missing label or an unknown value leaves
    that field unset; nothing is guessed. Confidence falls back to Medium when
    the reply does not state a recognizable level.

    Args:
        text: Raw generated text
        elapsed_ms: Measured backend latency in milliseconds

    Returns:
        SuggestionResult (never raises)
    """
    result = SuggestionResult(
        confidence=ConfidenceLevel.MEDIUM,
        processing_time_ms=max(0, int(elapsed_ms)),
    )
    if not text:
        logger.debug("Empty model output, no fields suggested")
        return result

    result.suggested_title = _parse_field(_parse_title, text, "title", None)
    result.suggested_priority = _parse_field(_parse_priority, text, "priority", None)
    result.suggested_category = _parse_field(_parse_category, text, "category", None)
    result.confidence = _parse_field(
        _parse_confidence, text, "confidence", ConfidenceLevel.MEDIUM
    )

    logger.debug(
        f"Parsed suggestion: title={result.suggested_title!r}, "
        f"priority={result.suggested_priority}, "
        f"category={result.suggested_category!r}, "
        f"confidence={result.confidence}"
    )
    return result


def parse_summary(text: str) -> str:
    """
    Return the generated summary, substituting a placeholder when empty.

    Args:
        text: Raw generated text

    Returns:
        Non-empty summary text
    """
    if not text or not text.strip():
        logger.debug("Empty summary from model, using placeholder")
        return SUMMARY_UNAVAILABLE_MESSAGE
    return text
