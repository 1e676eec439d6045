#!/usr/bin/env python3
"""
Agent Orchestrator Interactive CLI

A command-line interface for running orchestration queries against the
built-in tools.
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import signal
import sys
import threading
from typing import Optional

from .config import config
from .llm_call import LLMClient
from .models import Message, ProviderConfig, Role, RunResult, ToolMode
from .orchestrator import run_async
from .config_loader import get_run_configuration
from .tools import ToolRegistry, default_catalog
from .tracing import init_tracing_client, shutdown_tracing

# Global shutdown flag for signal handling
_shutdown_requested = threading.Event()

logger = logging.getLogger(__name__)

QUIT_COMMANDS = ("/quit", "/exit", "/q")


def _signal_handler(signum: int, frame) -> None:
    """Handle SIGINT for graceful shutdown."""
    if _shutdown_requested.is_set():
        logger.debug("Force shutdown requested")
        sys.exit(1)
    logger.debug("Shutdown requested")
    _shutdown_requested.set()
    print("\n\nShutting down... (press Ctrl+C again to force)")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging from verbosity flag or the configured level."""
    level = logging.DEBUG if verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def print_banner() -> None:
    """Print the welcome banner."""
    banner = """
╔════════════════════════════════════════════════════════════════╗
║                 Agent Orchestrator Interactive                  ║
║                                                                 ║
║  Tool-calling agent loop with repair, validation and limits     ║
╚════════════════════════════════════════════════════════════════╝

Available commands:
  /help     - Show this help message
  /trace    - Show the message history of the last query
  /tools    - List available tools
  /verbose  - Toggle verbose mode
  /clear    - Clear conversation history
  /quit     - Exit the CLI

Type your questions or tasks below.
"""
    print(banner)


def print_tools() -> None:
    """Print available tools."""
    print("\nAvailable Tools:")
    print("─" * 64)
    print(ToolRegistry.from_catalog(default_catalog()).get_tools_summary())
    print()


def print_trace(result: Optional[RunResult]) -> None:
    """Print the message history of the last run."""
    if result is None:
        print("\nNo trace available. Run a query first.\n")
        return

    print("\n" + "═" * 70)
    print(f"ORCHESTRATION TRACE ({result.execution_id}, {result.status.value})")
    print("═" * 70)

    for message in result.messages:
        print(f"\n┌─ {message.role.value}")
        if message.content:
            content = message.content
            if message.role is Role.TOOL and len(content) > 200:
                content = content[:200] + "..."
            print(f"│  {content}")
        for call in message.tool_calls:
            print(f"│  Action: {call.name} [{call.id}]")
            print(f"│  Input: {json.dumps(call.arguments, indent=2, default=str)}")
        if message.tool_call_id:
            status = " (error)" if message.is_error else ""
            print(f"│  Result for: {message.tool_call_id}{status}")
        print("└" + "─" * 68)

    print()


async def _ask(history: list[Message], provider_config: ProviderConfig) -> RunResult:
    client = LLMClient(provider_config)
    try:
        return await run_async(
            history, default_catalog(), run_config=get_run_configuration(), provider=client
        )
    finally:
        await client.close()


def ask(history: list[Message], provider_config: Optional[ProviderConfig] = None) -> RunResult:
    """Run one orchestration over ``history`` with the built-in tools."""
    return asyncio.run(_ask(history, provider_config or config.provider))


class InteractiveCLI:
    """Interactive CLI for the Agent Orchestrator."""

    def __init__(self, provider_config: Optional[ProviderConfig] = None, verbose: bool = False):
        self.provider_config = provider_config or config.provider
        self.verbose = verbose
        self.history: list[Message] = []
        self.last_result: Optional[RunResult] = None

    def toggle_verbose(self) -> None:
        self.verbose = not self.verbose
        logging.getLogger().setLevel(logging.DEBUG if self.verbose else logging.INFO)
        print(f"\nVerbose mode: {'ON' if self.verbose else 'OFF'}\n")

    def clear_history(self) -> None:
        self.history = []
        self.last_result = None
        print("\nConversation history cleared.\n")

    def process_query(self, query: str) -> bool:
        """Process a user query.

        Returns:
            True if should continue, False if shutdown requested
        """
        print("\n" + "─" * 70)
        print("Processing query...")
        print("─" * 70 + "\n")

        try:
            result = ask(self.history + [Message.user(query)], self.provider_config)
        except KeyboardInterrupt:
            _shutdown_requested.set()
            print("\n\nQuery interrupted, shutting down.\n")
            return False

        self.last_result = result
        self.history = list(result.messages)

        if _shutdown_requested.is_set():
            print("\n\nQuery completed, shutting down.\n")
            return False

        print("\n" + "═" * 70)
        print("ANSWER")
        print("═" * 70)
        print(result.answer)
        print("═" * 70 + "\n")

        print(
            f"(Status: {result.status.value}, {result.iterations} "
            f"tool step{'s' if result.iterations != 1 else ''})"
        )
        print("Use /trace to see the full message history.\n")
        return True

    def handle_command(self, command: str) -> bool:
        """Run a slash command. Returns False when the CLI should exit."""
        name = command.lower()
        if name in QUIT_COMMANDS:
            print("\nGoodbye!\n")
            return False

        actions = {
            "/help": print_banner,
            "/trace": lambda: print_trace(self.last_result),
            "/tools": print_tools,
            "/verbose": self.toggle_verbose,
            "/clear": self.clear_history,
        }
        action = actions.get(name)
        if action is None:
            print(f"\nUnknown command: {command}")
            print("Type /help for available commands.\n")
        else:
            action()
        return True

    def run(self) -> None:
        """Read queries and commands until /quit, EOF or a second Ctrl+C."""
        print_banner()

        keep_going = True
        while keep_going and not _shutdown_requested.is_set():
            try:
                user_input = input(">>> ").strip()
            except EOFError:
                print("\nGoodbye!\n")
                return
            except KeyboardInterrupt:
                if _shutdown_requested.is_set():
                    print("\n")
                    return
                print("\n\nType /quit to exit.\n")
                continue

            if _shutdown_requested.is_set() or not user_input:
                continue
            if user_input.startswith("/"):
                keep_going = self.handle_command(user_input)
            else:
                keep_going = self.process_query(user_input)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Agent Orchestrator Interactive CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                    # Start interactive mode
  %(prog)s -v                 # Start with verbose logging
  %(prog)s -q "What is 2+2?"  # Run a single query

Use /tools in interactive mode to see available tools.
""",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("-q", "--query", type=str, help="Run a single query and exit")
    parser.add_argument(
        "--base-url",
        type=str,
        default=None,
        help=f"Model endpoint URL (default: {config.provider.base_url})",
    )
    parser.add_argument(
        "--model", type=str, default=None, help=f"Model name (default: {config.provider.model})"
    )
    parser.add_argument(
        "--tool-mode",
        choices=[mode.value for mode in ToolMode],
        default=None,
        help=f"How tools are bound to the model (default: {config.provider.tool_mode.value})",
    )
    parser.add_argument(
        "--json", action="store_true", help="Output results as JSON (for scripting)"
    )
    return parser


def provider_config_from_args(args: argparse.Namespace) -> ProviderConfig:
    """Apply command-line overrides to the configured provider settings."""
    overrides: dict = {}
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.model:
        overrides["model"] = args.model
    if args.tool_mode:
        overrides["tool_mode"] = ToolMode(args.tool_mode)
    return dataclasses.replace(config.provider, **overrides)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point."""
    signal.signal(signal.SIGINT, _signal_handler)

    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    if config.langfuse.is_configured:
        init_tracing_client(config.langfuse)
    provider_config = provider_config_from_args(args)

    try:
        if args.query:
            result = ask([Message.user(args.query)], provider_config)
            if args.json:
                output = {
                    "query": args.query,
                    "answer": result.answer,
                    "status": result.status.value,
                    "iterations": result.iterations,
                    "tools_used": result.tools_used,
                    "messages": [m.to_dict() for m in result.messages],
                }
                print(json.dumps(output, indent=2, default=str))
            else:
                print(result.answer)
                print(f"\n[status: {result.status.value}]")
        else:
            InteractiveCLI(provider_config=provider_config, verbose=args.verbose).run()
    finally:
        shutdown_tracing()


if __name__ == "__main__":
    main()
