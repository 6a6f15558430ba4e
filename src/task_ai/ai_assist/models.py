"""Data models for AI suggestions, summaries and usage records."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class TaskPriority(str, Enum):
    """Task priority enumeration."""

    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class ConfidenceLevel(str, Enum):
    """Coarse reliability label attached to a suggestion."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class FeatureType(str, Enum):
    """AI feature recorded in the usage log."""

    AUTOFILL = "Autofill"
    SUMMARY = "Summary"


@dataclass(frozen=True)
class GenerationOptions:
    """Sampling parameters for one text generation call."""

    temperature: float
    max_tokens: int


@dataclass
class SuggestionResult:
    """Suggested task fields extracted from model output."""

    confidence: ConfidenceLevel
    processing_time_ms: int
    suggested_title: str | None = None
    suggested_priority: TaskPriority | None = None
    suggested_category: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Render the result with plain JSON types."""
        return {
            "suggested_title": self.suggested_title,
            "suggested_priority": (
                self.suggested_priority.value if self.suggested_priority else None
            ),
            "suggested_category": self.suggested_category,
            "confidence": self.confidence.value,
            "processing_time_ms": self.processing_time_ms,
        }


@dataclass
class UsageRecord:
    """One AI feature invocation, kept for audit and latency tracking."""

    provider: str
    feature_type: FeatureType
    execution_time_ms: int
    success: bool
    prompt: str | None = None
    response: str | None = None
    error_message: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    id: UUID = field(default_factory=uuid4)
