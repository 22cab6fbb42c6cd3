"""
OllamaCord CLI entry point.

Provides command-line interface for running the bot and utility commands.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from ollamacord import __version__
from ollamacord.components import CoreComponents
from ollamacord.config.logging import get_logger, setup_logging
from ollamacord.config.settings import Settings, load_settings
from ollamacord.conversation.store import ContextStore
from ollamacord.errors import OllamaCordError

# Conversations started from the CLI are not tied to a Discord channel
CLI_CHANNEL_ID = 0


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="ollamacord",
        description="Discord chat bot backed by a pool of Ollama servers",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"OllamaCord {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser(
        "run",
        help="Run the Discord bot",
    )

    subparsers.add_parser(
        "config",
        help="Show current configuration",
    )

    ask_parser = subparsers.add_parser(
        "ask",
        help="Send one prompt through the backend pool and print the segmented answer",
    )
    ask_parser.add_argument(
        "prompt",
        help='Prompt to send, e.g. "Why is the sky blue?"',
    )
    ask_parser.add_argument(
        "--max-length",
        type=int,
        default=None,
        help="Segment length limit (default: BOT__MESSAGE_LIMIT from config)",
    )

    return parser


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)

    logger.info("Current Configuration:")
    logger.info("\n=== OllamaCord Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info(f"\nBot Name: {settings.bot.name}")
    logger.info(f"Bot Token: {'Set' if settings.bot.token else 'Not set'}")
    logger.info(f"Allowed Channels: {settings.bot.allowed_channel_ids or 'all'}")
    logger.info(f"Requires Mention: {settings.bot.requires_mention}")
    logger.info(f"Message Limit: {settings.bot.message_limit}")
    logger.info(f"Reset Commands: {', '.join(settings.bot.reset_commands)}")
    logger.info(f"\nOllama Model: {settings.ollama.model}")
    logger.info(f"Ollama Servers: {', '.join(settings.ollama.servers) or 'None'}")
    logger.info(f"Custom System Message: {'Set' if settings.ollama.system else 'Not set'}")
    logger.info(f"  Use Custom System: {settings.ollama.use_system}")
    logger.info(f"  Use Model System: {settings.ollama.use_model_system}")
    logger.info(f"Poll Interval: {settings.ollama.poll_interval}s")
    logger.info(f"Request Timeout: {settings.ollama.request_timeout or 'none'}")

    return 0


def cmd_run(settings: Settings) -> int:
    """Start the Discord bot."""
    logger = get_logger(__name__)

    if not settings.bot.token:
        logger.error(
            "Discord bot token not set. Add BOT__TOKEN=<your-token> to your .env file."
        )
        return 1

    if not settings.ollama.servers:
        logger.error(
            "No Ollama servers configured. Set OLLAMA__SERVERS=http://host:11434[,...]"
        )
        return 1

    from ollamacord.bot import OllamaCordBot

    bot = OllamaCordBot(settings)
    logger.info(f"Starting {settings.bot.name}...")
    # log_handler=None: disable discord.py's default logging setup and use ours
    bot.run(settings.bot.token, log_handler=None)
    return 0


async def cmd_ask(args, settings: Settings, components: CoreComponents | None = None) -> int:
    """
    Run a single exchange against the backend pool.

    Useful for checking the servers and model before starting the bot: the
    prompt goes through the same dispatcher, client, orchestrator and
    segmenter the bot uses.

    Args:
        args: Parsed command-line arguments (prompt, max_length)
        settings: Application settings
        components: Optional pre-built factory (tests inject a mock transport)

    Returns:
        Exit code (0 for success, 1 for error)
    """
    logger = get_logger(__name__)

    if not settings.ollama.servers:
        logger.error("No Ollama servers configured. Set OLLAMA__SERVERS.")
        return 1

    factory = components or CoreComponents(settings)
    try:
        async with factory.create_dispatcher() as dispatcher:
            orchestrator = factory.create_orchestrator(
                dispatcher, ContextStore(), max_segment_length=args.max_length
            )
            logger.info(f"Sending to {settings.ollama.model}...")
            segments = await orchestrator.handle_message(CLI_CHANNEL_ID, args.prompt)
    except OllamaCordError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return 1

    print("\n\n".join(segments))
    return 0


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    # Load settings
    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Override log level if specified
    if args.log_level:
        settings.log_level = args.log_level

    setup_logging(settings)

    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "run":
        return cmd_run(settings)
    elif args.command == "ask":
        return asyncio.run(cmd_ask(args, settings))
    else:
        # Default: show help
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
