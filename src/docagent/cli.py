"""Command-line interface."""

from __future__ import annotations

import argparse
import sys
import threading
from pathlib import Path
from typing import Any, Sequence

from docagent.agent import AgentError, TaskCancelled
from docagent.config import Settings
from docagent.console import ConsoleUI
from docagent.factory import PROVIDER_CHOICES, ProviderNotConfigured, build_provider, build_session
from docagent.prompts import ManifestError, find_package_root
from docagent.session import SessionError, SessionState, run_interactive, run_non_interactive
from docagent.util.logging import get_logger, set_verbose


logger = get_logger(__name__)

MANUAL_INSTRUCTIONS = """AI agent is not available ({reason}).

To update the documentation manually:
  1. Edit `{target}`
  2. Rebuild the package

For AI-powered documentation updates, set one of these environment variables:
  - BEDROCK_API_KEY (for Amazon Bedrock, BEDROCK_REGION defaults to us-east-1)
  - GEMINI_API_KEY (for Google AI Studio, GEMINI_MODEL defaults to gemini-2.5-pro)
  - LOCAL_LLM_ENDPOINT (for an OpenAI-compatible local server)"""


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="docagent", description="Package documentation agent")
    commands = parser.add_subparsers(dest="command", required=True)
    update = commands.add_parser("update", help="Update package artifacts")
    targets = update.add_subparsers(dest="target", required=True)
    docs = targets.add_parser(
        "documentation",
        help="Update the package README using an LLM agent or print manual instructions",
    )
    docs.add_argument("--non-interactive", action="store_true", dest="non_interactive")
    docs.add_argument("--package-root", dest="package_root")
    docs.add_argument("--provider", choices=PROVIDER_CHOICES, dest="provider")
    docs.add_argument("--max-iterations", type=_positive_int, dest="max_iterations")
    docs.add_argument("-v", "--verbose", action="store_true", dest="verbose")
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    data: dict[str, Any] = settings.model_dump()
    if args.provider:
        data["provider"] = args.provider
    if args.max_iterations is not None:
        data["max_iterations"] = args.max_iterations
        data["unstable_max_iterations"] = args.max_iterations
    return Settings(**data)


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def update_documentation(
    args: argparse.Namespace,
    settings: Settings,
    ui: ConsoleUI | None = None,
    cancel: threading.Event | None = None,
) -> int:
    ui = ui or ConsoleUI()
    cancel = cancel or threading.Event()
    ui.notify("Update package documentation with AI agent")

    if args.package_root:
        package_root = Path(args.package_root)
    else:
        package_root = find_package_root(Path.cwd())
        if package_root is None:
            return _error("package root not found, run the command inside a package or pass --package-root")
    logger.debug("Package root: %s", package_root)

    try:
        provider = build_provider(settings)
    except ProviderNotConfigured as exc:
        target = f"{settings.write_dir}/{settings.target_name}"
        ui.notify(MANUAL_INSTRUCTIONS.format(reason=exc, target=target))
        return 0

    if not args.non_interactive:
        try:
            confirmed = ui.confirm("Do you want to update the documentation using the AI agent?", default=False)
        except KeyboardInterrupt:
            return _error("interrupted")
        if not confirmed:
            ui.notify("Documentation update cancelled.")
            return 0

    ui.notify(f"Using {provider.name} provider.")
    try:
        session = build_session(settings, provider, package_root)
    except ValueError as exc:
        return _error(str(exc))

    try:
        if args.non_interactive:
            ui.notify("Running in non-interactive mode, changes will be accepted automatically.")
            state = run_non_interactive(session, cancel)
        else:
            state = run_interactive(session, ui, cancel)
    except KeyboardInterrupt:
        cancel.set()
        session.abort()
        return _error("interrupted, original documentation restored")
    except TaskCancelled:
        return _error("documentation update cancelled, original documentation restored")
    except (AgentError, SessionError, ManifestError) as exc:
        return _error(str(exc))

    if state is SessionState.FINALIZED:
        ui.notify(f"Documentation updated: {session.layout.target_relpath}")
    else:
        ui.notify("Documentation update cancelled, original documentation restored.")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    set_verbose(args.verbose)
    settings = apply_overrides(Settings(), args)
    return update_documentation(args, settings)


if __name__ == "__main__":
    raise SystemExit(main())
