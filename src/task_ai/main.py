"""Command-line interface for AI task suggestions and summaries."""

import argparse
import asyncio
import json
import logging
import sys

from .ai_assist.config import (
    DEFAULT_BACKEND,
    SUPPORTED_BACKENDS,
    AIProviderSettings,
)
from .ai_assist.exceptions import ConfigurationError
from .ai_assist.suggestion_service import SuggestionService
from .ai_assist.text_gen_client import create_text_generator
from .ai_assist.usage_log import UsageLogDatabase
from .logging_utils import configure_logging


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description="Task AI CLI - Suggest task fields and summarize task threads using local AI models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  task-ai suggest "Users cannot log in after the password reset email"
  task-ai summarize "$(cat thread.txt)"
  task-ai health
  task-ai --backend http --base-url http://gpu-box:11434 suggest "..."
  task-ai --model llama3.1:8b --timeout 60 -v suggest "..."
  task-ai --usage-db ~/.task-ai/usage.db suggest "..."

Settings not given on the command line are read from TASK_AI_BACKEND,
TASK_AI_ENDPOINT, TASK_AI_MODEL, TASK_AI_TIMEOUT and TASK_AI_USAGE_DB.
        """,
    )

    parser.add_argument(
        "command",
        choices=("suggest", "summarize", "health"),
        help="Operation to run",
    )

    parser.add_argument(
        "text",
        nargs="?",
        default=None,
        help="Task description (suggest) or thread content (summarize)",
    )

    parser.add_argument(
        "--backend",
        choices=SUPPORTED_BACKENDS,
        default=None,
        help=f"Text generation backend (default: {DEFAULT_BACKEND})",
    )

    parser.add_argument(
        "--model",
        type=str,
        default=None,
        help="Model identifier sent to the backend",
    )

    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        metavar="URL",
        help="Backend base URL",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Request timeout in seconds",
    )

    parser.add_argument(
        "--usage-db",
        type=str,
        default=None,
        metavar="PATH",
        help="Record usage to this SQLite database",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging and debug information",
    )

    parser.add_argument(
        "--trace",
        action="store_true",
        help="Enable trace logging (includes raw prompts and model output)",
    )

    return parser


def resolve_settings(args: argparse.Namespace) -> AIProviderSettings:
    """
    Merge command-line arguments over environment settings.

    Args:
        args: Parsed arguments from argparse

    Returns:
        Effective provider settings

    Raises:
        ConfigurationError: If the environment holds invalid values
    """
    settings = AIProviderSettings.from_env()
    if args.backend is not None:
        settings.backend = args.backend
    if args.model is not None:
        settings.model = args.model
    if args.base_url is not None:
        settings.endpoint = args.base_url
    if args.timeout is not None:
        if args.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive: {args.timeout}")
        settings.timeout = args.timeout
    if args.usage_db is not None:
        settings.usage_db_path = args.usage_db
    return settings


async def run_command(command: str, text: str | None, settings: AIProviderSettings) -> str:
    """
    Run one CLI command and return its printable output.

    Args:
        command: "suggest", "summarize" or "health"
        text: Command input (ignored by health)
        settings: Provider settings

    Returns:
        Text to print
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
    service = SuggestionService(generator, usage_sink=usage_log)

    try:
        if command == "suggest":
            result = await service.suggest_fields(text or "")
            return json.dumps(result.to_dict(), indent=2)
        if command == "summarize":
            return await service.generate_summary(text or "")
        return json.dumps(service.health(), indent=2)
    finally:
        await generator.aclose()
        if usage_log is not None:
            await usage_log.close()


def cli_entry_with_args() -> None:
    """CLI entry point with argument parsing."""
    parser = create_argument_parser()
    args = parser.parse_args()

    if args.command in ("suggest", "summarize") and not args.text:
        parser.error(f"'{args.command}' requires text")

    configure_logging(verbose=args.verbose, trace=args.trace)

    try:
        settings = resolve_settings(args)
    except ConfigurationError as e:
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(2)

    try:
        output = asyncio.run(run_command(args.command, args.text, settings))
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        logging.error(f"Unexpected error: {e}")
        print(f"❌ {e}", file=sys.stderr)
        sys.exit(1)

    print(output)


if __name__ == "__main__":
    cli_entry_with_args()
