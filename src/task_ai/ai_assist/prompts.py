"""Prompt templates for field suggestions and thread summaries."""

from collections.abc import Sequence

from .config import MAX_TITLE_LENGTH, SUGGESTION_CATEGORIES
from .models import ConfidenceLevel, TaskPriority

# Placeholders: {description}, {max_title}, {priority_choices}, {category_choices},
# {priorities}, {categories}, {confidences}
FIELD_SUGGESTION_PROMPT = """Analyze this task description and suggest:
1. A concise title (max {max_title} characters)
2. Priority level ({priority_choices})
3. Best matching category ({category_choices})

Task description: "{description}"

Respond in this EXACT format:
TITLE: [your suggested title]
PRIORITY: [{priorities}]
CATEGORY: [{categories}]
CONFIDENCE: [{confidences}]"""

# Placeholders: {content}
SUMMARY_PROMPT = """Summarize this task thread in a brief, structured format. Include:
- Key points
- Important decisions
- Current blockers
- Next steps

Content:
{content}

Provide a concise summary in bullet points."""


def _choices(values: Sequence[str]) -> str:
    """Format values as 'A, B, or C'."""
    if len(values) < 2:
        return "".join(values)
    return f"{', '.join(values[:-1])}, or {values[-1]}"


def build_field_suggestion_prompt(description: str) -> str:
    """
    Build the field suggestion prompt.

    The description is embedded verbatim. The reply format requested here is
    what the response parser looks for, but the parser does not rely on the
    model honouring it.

    Args:
        description: Task description entered by the user

    Returns:
        Prompt requesting TITLE, PRIORITY, CATEGORY and CONFIDENCE lines
    """
    priorities = [priority.value for priority in TaskPriority]
    confidences = [level.value for level in ConfidenceLevel]

    return FIELD_SUGGESTION_PROMPT.format(
        description=description,
        max_title=MAX_TITLE_LENGTH,
        priority_choices=_choices(priorities),
        category_choices=_choices(SUGGESTION_CATEGORIES),
        priorities="/".join(priorities),
        categories="/".join(SUGGESTION_CATEGORIES),
        confidences="/".join(confidences),
    )


def build_summary_prompt(content: str) -> str:
    """
    Build the thread summary prompt.

    Args:
        content: Task description and comments

    Returns:
        Prompt requesting a bullet-point summary
    """
    return SUMMARY_PROMPT.format(content=content)


def format_thread_content(
    description: str, comments: Sequence[str] | None = None, title: str | None = None
) -> str:
    """
    Concatenate a task and its comments into summary input.

    Args:
        description: Task description
        comments: Comment bodies in thread order
        title: Optional task title

    Returns:
        Plain text block with one section per part
    """
    parts = []
    if title:
        parts.append(f"Title: {title}")
    parts.append(f"Description: {description}")

    non_empty = [comment.strip() for comment in comments or [] if comment.strip()]
    if non_empty:
        parts.append("Comments:")
        parts.extend(f"- {comment}" for comment in non_empty)

    return "\n".join(parts)
