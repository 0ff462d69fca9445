"""Command-line client: run intents, list models, probe connectivity, serve the API."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Sequence, TextIO

from src.app import App, create_app
from src.config.logging import configure_logging
from src.config.settings import Settings, load_settings
from src.intent.processor import IntentProcessingError, IntentTimeoutError, run_intent
from src.intent.results import render_panels
from src.llm.errors import LLMError, MissingCredentialError

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_NO_API_KEY = 2

API_KEY_GUIDANCE = """\
// API Key Required
//
// To process your intent, you need to provide an OpenRouter API key.
//
// 1. Get an API key from https://openrouter.ai
// 2. Export it as OPENROUTER_API_KEY (or put it in .env)
// 3. Or pass it with --api-key
// 4. Try again with your intent"""


def _has_key(settings: Settings, api_key: str | None) -> bool:
    return bool((api_key or "").strip()) or settings.has_api_key


def _print_panels(result: object, out: TextIO) -> None:
    panels = render_panels(result)
    out.write("=== Code ===\n")
    out.write(panels.code + "\n\n")
    out.write("=== AST ===\n")
    out.write(panels.ast + "\n\n")
    out.write("=== Semantics ===\n")
    out.write(panels.semantics + "\n\n")
    out.write(panels.status + "\n")


async def run_command(app: App, intent_text: str, *, api_key: str | None, model: str | None,
                      out: TextIO) -> int:
    if not intent_text.strip():
        out.write("Error: Please enter a development intent\n")
        return EXIT_FAILED
    if not _has_key(app.settings, api_key):
        out.write(API_KEY_GUIDANCE + "\n")
        return EXIT_NO_API_KEY

    processor = app.processor(api_key=api_key, model=model)
    try:
        _intent, result = await run_intent(
            processor,
            intent_text,
            parse_timeout_s=app.settings.parse_timeout_s,
            execute_timeout_s=app.settings.execute_timeout_s,
        )
    except IntentTimeoutError as exc:
        out.write(f"Error: {exc}\n")
        return EXIT_FAILED
    except (IntentProcessingError, LLMError) as exc:
        logger.info("intent failed reason=%s", exc)
        out.write(f"Error: Failed to process intent: {exc}\n")
        return EXIT_FAILED

    _print_panels(result, out)
    return EXIT_OK


async def models_command(app: App, *, api_key: str | None, refresh: bool, out: TextIO) -> int:
    try:
        client = app.llm_client(api_key=api_key, timeout_s=app.settings.models_fetch_timeout_s)
    except MissingCredentialError:
        out.write(API_KEY_GUIDANCE + "\n")
        return EXIT_NO_API_KEY

    if refresh:
        app.models_cache.invalidate()
    try:
        models = await app.models_cache.get(client.list_models)
    except LLMError as exc:
        out.write(f"Error: Failed to fetch models: {exc}\n")
        return EXIT_FAILED

    for model in models:
        out.write(model.id + "\n")
    return EXIT_OK


async def check_command(app: App, *, api_key: str | None, out: TextIO) -> int:
    try:
        client = app.llm_client(api_key=api_key, timeout_s=app.settings.models_fetch_timeout_s)
    except MissingCredentialError:
        out.write(API_KEY_GUIDANCE + "\n")
        return EXIT_NO_API_KEY

    try:
        models = await client.list_models()
    except LLMError as exc:
        out.write(f"connection failed: {exc}\n")
        return EXIT_FAILED

    out.write(f"OpenRouter reachable, {len(models)} models available\n")
    return EXIT_OK


def _add_api_key(parser: argparse.ArgumentParser, default: object = argparse.SUPPRESS) -> None:
    # SUPPRESS keeps a sub-command from resetting a key given before the sub-command name.
    parser.add_argument("--api-key", default=default, help="OpenRouter API key (overrides env)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ai-native-dev",
        description="Turn natural-language development intents into code via OpenRouter.",
    )
    _add_api_key(parser, default=None)
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", required=True)

    run_p = sub.add_parser("run", help="Process a development intent")
    run_p.add_argument("intent", help="Natural-language intent, e.g. 'create a login function'")
    run_p.add_argument("--model", default=None, help="Model id, e.g. openai/gpt-4o-mini")
    _add_api_key(run_p)

    models_p = sub.add_parser("models", help="List available models")
    models_p.add_argument("--refresh", action="store_true", help="Ignore the cached listing")
    _add_api_key(models_p)

    _add_api_key(sub.add_parser("check", help="Check connectivity to the OpenRouter API"))

    serve_p = sub.add_parser("serve", help="Run the HTTP API")
    serve_p.add_argument("--host", default=None)
    serve_p.add_argument("--port", type=int, default=None)
    return parser


async def _dispatch(args: argparse.Namespace, settings: Settings, out: TextIO) -> int:
    app = create_app(settings)
    try:
        if args.command == "run":
            return await run_command(app, args.intent, api_key=args.api_key, model=args.model, out=out)
        if args.command == "models":
            return await models_command(app, api_key=args.api_key, refresh=args.refresh, out=out)
        return await check_command(app, api_key=args.api_key, out=out)
    finally:
        await app.aclose()


def main(argv: Sequence[str] | None = None, *, out: TextIO | None = None) -> int:
    args = build_parser().parse_args(argv)
    out = out or sys.stdout

    try:
        settings = load_settings()
    except RuntimeError as exc:
        out.write(f"Error: {exc}\n")
        return EXIT_FAILED
    configure_logging(args.log_level)

    if args.command == "serve":
        from src.server.main import main as serve_main

        serve_main(host=args.host, port=args.port)
        return EXIT_OK

    return asyncio.run(_dispatch(args, settings, out))


def run() -> None:
    """Console-script entrypoint."""

    sys.exit(main())


if __name__ == "__main__":
    run()
