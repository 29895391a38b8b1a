#!/usr/bin/env python3
"""
Sync directory users into MongoDB with embeddings and search them by text.

Usage:
    python -m dirvec                       # Interactive menu
    python -m dirvec sync                  # Sync directory into the store
    python -m dirvec sync --batch-size 200 # Smaller embedding batches
    python -m dirvec search "Radiante"     # Nearest users to a text
    python -m dirvec ensure-index          # Create the vector index if missing
"""

from __future__ import annotations

import argparse
import sys
import time
from typing import Callable, Optional

from dotenv import load_dotenv
from tabulate import tabulate

from .context import AppContext
from .core.exceptions import DirVecError, ValidationError
from .ingestion.directory import DirectorySource, GoogleDirectoryClient
from .utils.config import AppConfig, get_config
from .utils.logger import get_logger, log_operation, setup_logging
from .vectors.pipeline import UpsertSummary, check_batch_size

logger = get_logger("dirvec.cli")

MENU = """
Choose an option:
1. Sync directory users into MongoDB
2. Search for a user
3. Exit

Your choice: """


def build_directory_source(config: AppConfig) -> DirectorySource:
    """Create the Google Workspace directory source from configuration."""
    directory = config.settings.directory
    credentials = config.get_directory_credentials()
    client = GoogleDirectoryClient(
        client_id=credentials["client_id"],
        client_secret=credentials["client_secret"],
        refresh_token=credentials["refresh_token"],
        token_uri=directory.token_uri,
        customer=directory.customer,
        max_results=directory.max_results,
        order_by=directory.order_by,
        projection=directory.projection,
    )
    return DirectorySource(
        client,
        custom_schema=directory.custom_schema,
        custom_field=directory.custom_schema_field,
    )


def sync_directory(
    ctx: AppContext,
    source: DirectorySource,
    batch_size: Optional[int] = None,
    show_progress: bool = False,
) -> UpsertSummary:
    """List every directory user, make sure the index exists, then upsert."""
    pipeline_config = ctx.config.settings.pipeline
    batch_size = check_batch_size(
        batch_size if batch_size is not None else pipeline_config.batch_size
    )

    start = time.perf_counter()
    print("Listing directory users...")
    users = source.fetch_all()

    ctx.ensure_index()

    summary = ctx.pipeline(show_progress=show_progress).upsert_all(
        users,
        pipeline_config.unique_key_field,
        batch_size=batch_size,
    )
    print(
        f"Done: {summary.upserted} inserted, {summary.updated} updated, "
        f"{summary.skipped} skipped, {summary.failed} failed"
    )
    log_operation(
        logger,
        "sync_directory",
        success=not summary.failed_batches,
        duration_ms=(time.perf_counter() - start) * 1000,
        listed=len(users),
        **summary.as_dict(),
    )
    return summary


def search_users(
    ctx: AppContext,
    query: str,
    top_k: Optional[int] = None,
) -> list[dict]:
    """Print and return the users closest to a text query."""
    pipeline_config = ctx.config.settings.pipeline
    field = pipeline_config.search_display_field

    print(f"Searching users similar to '{query}'...")
    results = ctx.searcher().search(
        query,
        projected_field=field,
        top_k=top_k if top_k is not None else pipeline_config.search_top_k,
        num_candidates=pipeline_config.search_num_candidates,
    )

    if not results:
        print("No results.")
        return results

    rows = [
        (position, f"{doc['score']:.4f}", doc.get(field))
        for position, doc in enumerate(results, start=1)
    ]
    print(tabulate(rows, headers=["#", "Score", field], tablefmt="simple"))
    return results


def run_menu(
    ctx: AppContext,
    source_factory: Callable[[], DirectorySource],
    input_fn: Callable[[str], str] = input,
) -> int:
    """Show the menu once and run the chosen action."""
    choice = input_fn(MENU).strip()

    if choice == "1":
        sync_directory(ctx, source_factory())
    elif choice == "2":
        query = input_fn("Text to search users for: ")
        if not query or not query.strip():
            print("Search cancelled. No text entered.")
            return 0
        search_users(ctx, query)
    elif choice == "3":
        print("Exiting...")
    else:
        print("Invalid option. Try again.")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dirvec",
        description="Sync directory users into MongoDB Atlas and search them by text",
    )
    parser.add_argument("--env", help="Configuration environment (development, production, ...)")
    parser.add_argument("--log-level", help="Override log level (DEBUG, INFO, ...)")

    subparsers = parser.add_subparsers(dest="command")

    sync = subparsers.add_parser("sync", help="Sync directory users into the store")
    sync.add_argument("--batch-size", type=int, help="Records per embedding batch")
    sync.add_argument("--progress", action="store_true", help="Show a progress bar")

    search = subparsers.add_parser("search", help="Search users by text")
    search.add_argument("query", help="Text to search for")
    search.add_argument("--top-k", type=int, help="Number of results")

    subparsers.add_parser("ensure-index", help="Create the vector index if missing")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    load_dotenv()
    setup_logging(log_level=args.log_level)

    config = get_config(env=args.env)
    run_logger = get_logger(
        "dirvec.cli",
        {"environment": config.environment.value, "command": args.command or "menu"},
    )

    problems = config.validate()
    if problems:
        for problem in problems:
            run_logger.error(problem)
        return 1

    try:
        with AppContext.from_config(config) as ctx:
            ctx.store.ping()

            if args.command == "sync":
                summary = sync_directory(
                    ctx,
                    build_directory_source(config),
                    batch_size=args.batch_size,
                    show_progress=args.progress,
                )
                return 1 if summary.failed_batches else 0
            if args.command == "search":
                search_users(ctx, args.query, top_k=args.top_k)
                return 0
            if args.command == "ensure-index":
                print(f"Vector index '{ctx.index_name}': {ctx.ensure_index().value}")
                return 0

            return run_menu(ctx, lambda: build_directory_source(config))

    except ValidationError as e:
        print(e.message)
        return 1
    except KeyboardInterrupt:
        run_logger.warning("Interrupted by user")
        return 130
    except DirVecError as e:
        # Tracebacks stay out of production logs
        run_logger.error(f"Fatal error: {e}", exc_info=not config.is_production)
        return 1


if __name__ == "__main__":
    sys.exit(main())
