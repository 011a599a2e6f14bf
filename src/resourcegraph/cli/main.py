#!/usr/bin/env python3
"""
resourcegraph CLI - Main entry point.

Usage:
    resourcegraph sdl resources.yaml              # Print the generated SDL
    resourcegraph sdl resources.yaml --federation # Print the federated SDL
    resourcegraph serve                           # Serve /graphql from resourcegraph.yaml
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from ..core.errors import ResourceGraphError
from ..core.graph import ResourceGraph
from ..federation.sdl import federated_sdl
from ..schema.proxy import SchemaProxy
from .config import DEFAULT_CONFIG_PATH, load_config

logger = logging.getLogger(__name__)


def cmd_sdl(args: argparse.Namespace) -> int:
    """Print the schema generated from a metadata file."""
    try:
        graph = ResourceGraph.load(args.metadata)
        proxy = SchemaProxy(
            graph,
            entrypoints=args.entrypoints.split(",") if args.entrypoints else None,
            federation=args.federation,
        )
        generated = proxy.current()
    except (OSError, ResourceGraphError) as e:
        print(f"Error generating schema: {e}")
        return 1

    print(federated_sdl(generated) if generated.federated else generated.sdl())
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Serve the GraphQL endpoint with uvicorn."""
    import uvicorn

    from ..api.router import create_graphql_app
    from ..runtime.service_client import HttpResourceEngine

    config = load_config(args.config)
    if not config:
        print(f"Error: {args.config} not found.")
        return 1
    if not config.engine_url:
        print("Error: engine_url is not configured.")
        return 1

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    proxy = SchemaProxy(
        loader=lambda: ResourceGraph.load(config.metadata_path),
        entrypoints=config.entrypoints,
        federation=config.federation,
    )
    engine = HttpResourceEngine(config.engine_url, timeout=config.engine_timeout)
    app = create_graphql_app(
        proxy,
        engine,
        max_depth=config.max_depth,
        fanout_page_size=config.fanout_page_size,
        schema_reloading=config.schema_reloading,
    )

    logger.info(f"Serving GraphQL on {config.host}:{args.port or config.port}")
    uvicorn.run(app, host=config.host, port=args.port or config.port)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="resourcegraph",
        description="resourcegraph - GraphQL over declarative resources"
    )
    parser.add_argument("--version", action="version", version="%(prog)s 0.1.0")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # sdl
    sdl_parser = subparsers.add_parser("sdl", help="Print the generated schema")
    sdl_parser.add_argument("metadata", help="Resource metadata file (.json or .yaml)")
    sdl_parser.add_argument("--federation", action="store_true", help="Print the federated schema")
    sdl_parser.add_argument("--entrypoints", "-e", help="Comma-separated entry point resources")

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the GraphQL server")
    serve_parser.add_argument("--config", "-c", default=DEFAULT_CONFIG_PATH, help="Config file")
    serve_parser.add_argument("--port", "-p", type=int, help="Override the configured port")

    return parser


def app(args: Optional[List[str]] = None) -> int:
    """Main CLI application."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 0

    commands = {
        "sdl": cmd_sdl,
        "serve": cmd_serve,
    }

    handler = commands.get(parsed.command)
    if handler:
        return handler(parsed)

    parser.print_help()
    return 1


def main() -> None:
    """Entry point for CLI."""
    sys.exit(app())


if __name__ == "__main__":
    main()
