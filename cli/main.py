"""CLI entry point and argument parsing"""

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

from rich.console import Console

import settings
from auth_cli import CLIAuthFlow
from errors import BridgeError
from gemini_compat.models import GenerateContentConfig, GenerateContentRequest
from oauth import OAuthSessionManager
from providers import AnthropicConfig, create_content_generator

logger = logging.getLogger(__name__)

console = Console()

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(debug: bool = False, log_file: Optional[str] = None):
    """Configure the root logger from LOG_LEVEL, or DEBUG with --debug"""
    root_logger = logging.getLogger()
    level = logging.DEBUG if debug else getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO)
    root_logger.setLevel(level)

    # Clear existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(os.path.abspath(log_file), mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
        logger.info(f"Debug logging enabled - appending to {log_file}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Claude content bridge CLI")
    parser.add_argument("--debug", "-d", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", default=None, help="Also append logs to this file")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("login", help="Authenticate with Claude Pro/Max via OAuth")
    subparsers.add_parser("logout", help="Remove stored credentials")
    subparsers.add_parser("status", help="Show stored credential status")

    generate = subparsers.add_parser("generate", help="Send a single prompt")
    generate.add_argument("prompt", help="Prompt text")
    generate.add_argument("--model", default=settings.DEFAULT_MODEL, help="Anthropic model id")
    generate.add_argument("--stream", action="store_true", help="Print the response as it arrives")
    generate.add_argument("--max-tokens", type=int, default=None, help="Maximum output tokens")
    generate.add_argument("--temperature", type=float, default=None, help="Sampling temperature")
    return parser


async def run_generate(args: argparse.Namespace, session_manager: OAuthSessionManager) -> int:
    generator = create_content_generator(AnthropicConfig(model=args.model), session_manager=session_manager)
    request = GenerateContentRequest(
        contents=args.prompt,
        config=GenerateContentConfig(max_output_tokens=args.max_tokens, temperature=args.temperature),
    )

    if args.stream:
        stream = await generator.generate_content_stream(request)
        last = None
        async for partial in stream:
            console.print(partial.text, end="", markup=False, highlight=False)
            last = partial
        console.print()
        if last is not None and last.usage_metadata:
            console.print(f"[dim]~{last.usage_metadata.total_token_count} tokens[/dim]")
        return 0

    response = await generator.generate_content(request)
    console.print(response.text, markup=False, highlight=False)
    if response.usage_metadata:
        usage = response.usage_metadata
        finish = response.candidates[0].finish_reason.value if response.candidates and response.candidates[0].finish_reason else "?"
        console.print(
            f"[dim]{usage.prompt_token_count} prompt + {usage.candidates_token_count} output tokens, finish: {finish}[/dim]"
        )
    return 0


def main(argv: Optional[list] = None) -> int:
    """Entry point for the CLI"""
    args = build_parser().parse_args(argv)
    setup_logging(debug=args.debug, log_file=args.log_file)

    session_manager = OAuthSessionManager()
    auth_flow = CLIAuthFlow(session_manager=session_manager, out=console)

    try:
        if args.command == "login":
            return 0 if asyncio.run(auth_flow.authenticate()) else 1
        if args.command == "logout":
            auth_flow.logout()
            return 0
        if args.command == "status":
            auth_flow.show_status()
            return 0
        return asyncio.run(run_generate(args, session_manager))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    except BridgeError as e:
        console.print(f"\n[red]Error:[/red] {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
