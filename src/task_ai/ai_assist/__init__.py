"""AI suggestion and summary extraction for task tracking."""

from .models import (
    ConfidenceLevel,
    FeatureType,
    GenerationOptions,
    SuggestionResult,
    TaskPriority,
    UsageRecord,
)
from .suggestion_service import SuggestionService

__all__ = [
    "ConfidenceLevel",
    "FeatureType",
    "GenerationOptions",
    "SuggestionResult",
    "SuggestionService",
    "TaskPriority",
    "UsageRecord",
]
