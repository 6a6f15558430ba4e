"""MCP Server exposing AI suggestion tools using FastMCP."""

import asyncio
import logging
import sys
from typing import Any

from fastmcp import FastMCP

from .config import (
    DEFAULT_MCP_HOST,
    DEFAULT_MCP_PORT,
    DEFAULT_MCP_SERVER_NAME,
    DEFAULT_MIN_DESCRIPTION_LENGTH,
    AIProviderSettings,
)
from .prompts import format_thread_content
from .suggestion_service import SuggestionService
from .text_gen_client import create_text_generator
from .usage_log import UsageLogDatabase

logger = logging.getLogger(__name__)

# Create FastMCP server instance
mcp = FastMCP(DEFAULT_MCP_SERVER_NAME)

# Global state (initialized in setup())
_suggestion_service: SuggestionService | None = None
_usage_log: UsageLogDatabase | None = None
_min_description_length = DEFAULT_MIN_DESCRIPTION_LENGTH


def get_suggestion_service() -> SuggestionService:
    """Get the global suggestion service instance."""
    if _suggestion_service is None:
        raise RuntimeError("Suggestion service not initialized")
    return _suggestion_service


def set_suggestion_service(
    service: SuggestionService,
    usage_log: UsageLogDatabase | None = None,
    min_description_length: int = DEFAULT_MIN_DESCRIPTION_LENGTH,
) -> None:
    """Set the global service instances (for testing)."""
    global _suggestion_service, _usage_log, _min_description_length
    _suggestion_service = service
    _usage_log = usage_log
    _min_description_length = min_description_length


async def _suggest_task_fields_impl(description: str) -> dict[str, Any]:
    """Implementation of suggest_task_fields tool."""
    try:
        service = get_suggestion_service()

        if len(description) < _min_description_length:
            return {
                "success": False,
                "error": (
                    f"Description must be at least {_min_description_length} "
                    "characters for AI suggestions"
                ),
            }

        result = await service.suggest_fields(description)
        return {"success": True, "suggestion": result.to_dict()}

    except Exception as e:
        logger.error(f"Error generating AI suggestions: {e}")
        return {
            "success": False,
            "error": "AI service is temporarily unavailable. Please try again later.",
        }


async def _summarize_task_impl(
    description: str, comments: list[str] | None = None, title: str | None = None
) -> dict[str, Any]:
    """Implementation of summarize_task tool."""
    try:
        service = get_suggestion_service()
        content = format_thread_content(description, comments, title=title)
        summary = await service.generate_summary(content)
        return {"success": True, "summary": summary}

    except Exception as e:
        logger.error(f"Error summarizing task: {e}")
        return {"success": False, "error": str(e)}


async def _ai_health_impl() -> dict[str, Any]:
    """Implementation of ai_health tool."""
    try:
        return get_suggestion_service().health()
    except Exception as e:
        logger.error(f"Error checking AI health: {e}")
        return {"success": False, "error": str(e)}


async def _get_ai_usage_statistics_impl() -> dict[str, Any]:
    """Implementation of get_ai_usage_statistics tool."""
    if _usage_log is None:
        return {"success": False, "error": "Usage logging is not enabled"}
    try:
        return {"success": True, "statistics": await _usage_log.get_statistics()}
    except Exception as e:
        logger.error(f"Error getting usage statistics: {e}")
        return {"success": False, "error": str(e)}


# FastMCP decorated wrappers (for actual MCP server)
@mcp.tool()
async def suggest_task_fields(description: str) -> dict[str, Any]:
    """
    Suggest title, priority and category for a task description.

    Args:
        description: Free-text task description

    Returns:
        Dictionary with the suggestion and success status
    """
    return await _suggest_task_fields_impl(description=description)


@mcp.tool()
async def summarize_task(
    description: str, comments: list[str] | None = None, title: str | None = None
) -> dict[str, Any]:
    """
    Summarize a task and its comment thread in bullet points.

    Args:
        description: Task description
        comments: Comment bodies in thread order (optional)
        title: Task title (optional)

    Returns:
        Dictionary with the summary and success status
    """
    return await _summarize_task_impl(
        description=description, comments=comments, title=title
    )


@mcp.tool()
async def ai_health() -> dict[str, Any]:
    """
    Report the configured AI provider.

    Returns:
        Dictionary with provider, status and timestamp
    """
    return await _ai_health_impl()


@mcp.tool()
async def get_ai_usage_statistics() -> dict[str, Any]:
    """
    Get AI usage statistics per feature.

    Returns:
        Dictionary with counts and average latency per feature
    """
    return await _get_ai_usage_statistics_impl()


# Compatibility wrapper for direct use
class MCPServer:
    """
    Direct-call wrapper around the tool implementations.

    The actual MCP server uses FastMCP with function decorators.
    """

    def __init__(
        self,
        suggestion_service: SuggestionService,
        usage_log: UsageLogDatabase | None = None,
        server_name: str = DEFAULT_MCP_SERVER_NAME,
        min_description_length: int = DEFAULT_MIN_DESCRIPTION_LENGTH,
    ) -> None:
        """Initialize MCP Server wrapper."""
        self._suggestion_service = suggestion_service
        self._usage_log = usage_log
        self._server_name = server_name
        self._min_description_length = min_description_length
        self._initialized = False

    async def initialize(self) -> None:
        """Initialize the server."""
        set_suggestion_service(
            self._suggestion_service,
            usage_log=self._usage_log,
            min_description_length=self._min_description_length,
        )
        self._initialized = True

    async def shutdown(self) -> None:
        """Shutdown the server."""
        self._initialized = False

    def get_available_tools(self) -> list[str]:
        """Get list of available tools."""
        return [
            "suggest_task_fields",
            "summarize_task",
            "ai_health",
            "get_ai_usage_statistics",
        ]

    async def handle_suggest_task_fields(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle suggest_task_fields request."""
        if "description" not in params:
            return {"success": False, "error": "Missing required field: description"}
        return await _suggest_task_fields_impl(description=params["description"])

    async def handle_summarize_task(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle summarize_task request."""
        if "description" not in params:
            return {"success": False, "error": "Missing required field: description"}
        return await _summarize_task_impl(
            description=params["description"],
            comments=params.get("comments"),
            title=params.get("title"),
        )

    async def handle_ai_health(self, params: dict[str, Any]) -> dict[str, Any]:
        """Handle ai_health request."""
        return await _ai_health_impl()

    async def handle_get_ai_usage_statistics(
        self, params: dict[str, Any]
    ) -> dict[str, Any]:
        """Handle get_ai_usage_statistics request."""
        return await _get_ai_usage_statistics_impl()


async def setup(settings: AIProviderSettings) -> None:
    """
    Build the suggestion service and usage log from settings.

    Args:
        settings: Provider settings (usually from the environment)
    """
    usage_log = None
    if settings.usage_db_path:
        usage_log = UsageLogDatabase(settings.usage_db_path)
        await usage_log.initialize()

    generator = create_text_generator(
        settings.backend,
        model=settings.model,
        base_url=settings.endpoint,
        timeout=settings.timeout,
    )
    set_suggestion_service(SuggestionService(generator, usage_sink=usage_log), usage_log)


def cli_entry() -> None:
    """CLI entry point for the MCP server."""
    transport_type = "stdio"
    if len(sys.argv) > 1 and sys.argv[1] in ("stdio", "sse", "http"):
        transport_type = "sse" if sys.argv[1] == "http" else sys.argv[1]

    settings = AIProviderSettings.from_env()
    asyncio.run(setup(settings))
    logger.info(
        f"MCP Server initialized with 4 tools (transport={transport_type}, "
        f"backend={settings.backend}, model={settings.model})"
    )

    # FastMCP's run() manages its own event loop
    if transport_type == "stdio":
        mcp.run(transport="stdio")
    else:
        logger.info(f"Server will listen on http://{DEFAULT_MCP_HOST}:{DEFAULT_MCP_PORT}")
        mcp.run(transport="sse", host=DEFAULT_MCP_HOST, port=DEFAULT_MCP_PORT)


if __name__ == "__main__":
    cli_entry()
