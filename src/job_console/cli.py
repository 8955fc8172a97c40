from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .app.console import Console
from .app.dispatcher import OPERATIONS
from .app.settings import Settings, get_settings


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="job-console",
        description="Submit jobs to the job backend and wait for their results.",
    )
    parser.add_argument("--base-url", default=None, help="Backend base URL.")
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between task status queries.",
    )
    parser.add_argument("--log-level", default=None, help="Logging level, e.g. DEBUG.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Generate text from a prompt.")
    generate.add_argument("prompt")

    chat = subparsers.add_parser("chat", help="Send one or more chat messages in order.")
    chat.add_argument("prompts", nargs="+", metavar="prompt")

    for name, help_text in (
        ("multimodal", "Ask a question about an image."),
        ("steganography", "Hide a message inside an image."),
    ):
        image_parser = subparsers.add_parser(name, help=help_text)
        image_parser.add_argument("prompt")
        image_parser.add_argument("--image", type=Path, required=True, help="Image file.")

    summarize = subparsers.add_parser("summarize", help="Summarize text.")
    source = summarize.add_mutually_exclusive_group(required=True)
    source.add_argument("data", nargs="?", help="Text to summarize.")
    source.add_argument("--file", type=Path, help="Read the text from a file.")

    serve = subparsers.add_parser("serve", help="Run the reference job backend.")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)
    return parser.parse_args(argv)


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, object] = {}
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.interval is not None:
        overrides["poll_interval_s"] = args.interval
    if args.log_level:
        overrides["log_level"] = args.log_level
    settings = get_settings()
    if not overrides:
        return settings
    return Settings(**{**settings.model_dump(), **overrides})


async def run_operation(args: argparse.Namespace, settings: Settings) -> int:
    """Dispatch the requested operation(s), wait for each to finish, print the surface."""
    operation = args.command
    if operation == "chat":
        requests = [(prompt, None) for prompt in args.prompts]
    elif operation == "summarize":
        if args.file:
            try:
                text = args.file.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                print(f"Error: Could not read {args.file}: {exc}")
                return 1
        else:
            text = args.data
        requests = [(text, None)]
    else:
        requests = [(args.prompt, getattr(args, "image", None))]

    async with Console.from_settings(settings) as console:
        dispatcher = console.dispatchers[operation]
        for text, image in requests:
            handle = await console.dispatch(operation, text, image=image)
            if handle is not None:
                await handle.wait()
        print(dispatcher.surface.render_text())
        outcome = dispatcher.last_outcome
    return 0 if outcome is None or outcome.ok else 1


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    settings = _settings_from_args(args)
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    if args.command == "serve":
        import uvicorn

        from .main import create_app

        uvicorn.run(create_app(settings_override=settings), host=args.host, port=args.port)
        return

    if args.command not in OPERATIONS:
        raise SystemExit(f"Unknown operation: {args.command}")
    sys.exit(asyncio.run(run_operation(args, settings)))


if __name__ == "__main__":
    main()
