"""Main Entry Point for the Scatterbrain content engine.

Usage:
    python -m scatterbrain.main --serve                 # HTTP server on port 8766
    python -m scatterbrain.main --serve --port 8080     # HTTP server on a custom port
    python -m scatterbrain.main --analyze "some text"   # One pipeline analysis, JSON to stdout
    python -m scatterbrain.main --generate "a topic"    # One generator run, JSON to stdout
    python -m scatterbrain.main --verbose ...           # Enable debug logging
"""

import argparse
import asyncio
import json
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from scatterbrain.core.auth import StaticTokenVerifier, SupabaseTokenVerifier, TokenVerifier
from scatterbrain.core.config import get_config
from scatterbrain.core.exceptions import ConfigurationError, ScatterbrainError
from scatterbrain.core.llm_factory import LLMFactory
from scatterbrain.core.logger import get_logger, setup_logging
from scatterbrain.core.prompted_call import PromptedCall
from scatterbrain.core.store import RecordStore, create_record_store
from scatterbrain.core.ttl_cache import BoundedTTLCache
from scatterbrain.generator.engine import ResearchAugmentedGenerator
from scatterbrain.pipeline.agents import AnalysisPipeline
from scatterbrain.server import create_app, run_server
from scatterbrain.service import ThoughtService
from scatterbrain.voice.engine import VoiceAwareContentEngine

if TYPE_CHECKING:
    from scatterbrain.core.config import Config

logger = get_logger(__name__)

CLI_USER_ID = "cli"


@dataclass
class Components:
    """Engine objects wired from one Config."""

    store: RecordStore
    generator: ResearchAugmentedGenerator
    service: ThoughtService


def build_components(config: "Config") -> Components:
    """Wire provider, store, cache and engines from configuration.

    Raises:
        ConfigurationError: If the provider or store cannot be built.
    """
    api_key = config.openai_api_key if config.llm_provider == "openai" else config.anthropic_api_key
    provider = LLMFactory.create(config.llm_provider, api_key=api_key, model=config.model)
    call = PromptedCall(provider)

    try:
        store = create_record_store(
            config.store_backend,
            store_file=config.store_file,
            supabase_url=config.supabase_url,
            supabase_service_key=config.supabase_service_key,
        )
    except ValueError as e:
        raise ConfigurationError(str(e))

    generator = ResearchAugmentedGenerator(
        call,
        cache=BoundedTTLCache(config.cache_max_entries, config.cache_ttl),
        model=config.model,
    )
    service = ThoughtService(
        AnalysisPipeline(call, model=config.model),
        VoiceAwareContentEngine(generator, store),
        store,
        request_timeout=config.request_timeout,
    )
    return Components(store=store, generator=generator, service=service)


def build_verifier(config: "Config") -> TokenVerifier:
    """Pick the token verifier: static tokens win over Supabase Auth.

    Raises:
        ConfigurationError: If neither is configured.
    """
    if config.api_tokens:
        return StaticTokenVerifier(config.api_tokens)
    if config.supabase_url and config.supabase_service_key:
        return SupabaseTokenVerifier(config.supabase_url, config.supabase_service_key)
    raise ConfigurationError(
        "Set SCATTERBRAIN_API_TOKENS or SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY to serve"
    )


def print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


async def _run_analyze(components: Components, text: str) -> dict[str, Any]:
    return await components.service.analyze(CLI_USER_ID, {"content": text})


async def _run_generate(components: Components, topic: str) -> dict[str, Any]:
    return await components.service.generate(CLI_USER_ID, {"topic": topic})


async def close_resources(*resources: Any) -> None:
    """Close the HTTP clients held by stores and verifiers that have one."""
    for resource in resources:
        aclose = getattr(resource, "aclose", None)
        if aclose is not None:
            await aclose()


async def _serve(config: "Config", components: Components, host: str, port: int) -> None:
    verifier = build_verifier(config)
    runner = await run_server(create_app(components.service, verifier), host=host, port=port)
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()
        await close_resources(components.store, verifier)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="scatterbrain",
        description="Turn raw thoughts into structured analysis and platform-ready posts.",
    )

    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument(
        "--serve",
        action="store_true",
        help="Run the HTTP API server",
    )
    mode.add_argument(
        "--analyze",
        metavar="TEXT",
        help="Run the three-stage pipeline on TEXT and print the result",
    )
    mode.add_argument(
        "--generate",
        metavar="TOPIC",
        help="Run the research-augmented generator on TOPIC and print the result",
    )

    parser.add_argument(
        "--host",
        default=None,
        metavar="HOST",
        help="Interface for the server (default: from config, 0.0.0.0)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=None,
        metavar="PORT",
        help="Port for the server (default: from config, 8766)",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging",
    )

    return parser


def main(args: list[str] | None = None) -> int:
    """Main entry point.

    Args:
        args: Command line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code (0 for success, 1 for errors).
    """
    parser = create_argument_parser()
    parsed_args = parser.parse_args(args)

    try:
        config = get_config()
        components = build_components(config)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    log_level = "DEBUG" if parsed_args.verbose else config.log_level
    setup_logging(log_level)

    if parsed_args.serve:
        host = parsed_args.host or config.host
        port = parsed_args.port or config.port
        logger.info("Running in server mode on %s:%d", host, port)
        try:
            asyncio.run(_serve(config, components, host, port))
            return 0
        except ConfigurationError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            logger.info("Server stopped")
            return 0

    try:
        if parsed_args.analyze is not None:
            payload = asyncio.run(_run_analyze(components, parsed_args.analyze))
        else:
            payload = asyncio.run(_run_generate(components, parsed_args.generate))
    except ScatterbrainError as e:
        print_json(e.to_dict())
        return 1

    print_json(payload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
