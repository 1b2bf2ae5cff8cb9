#!/usr/bin/env python3
"""
Run one editor pass from the command line.

This script provides a command-line interface to:
1. Select eligible intake items
2. Ask the LLM editor to publish or skip each one
3. Print the run summary as JSON

Usage:
    # Dry run against the mock LLM
    python scripts/run_editor.py --provider mock --dry-run

    # Process at most 5 items with Anthropic, even if EDITOR_ENABLED is false
    python scripts/run_editor.py --provider anthropic --limit 5 --enable

Requirements:
    - Database must be running with intake items
    - API keys configured in .env (for anthropic/gemini)

Exit code is 1 when every processed item errored.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from uuid6 import uuid7  # noqa: E402

from ledger.core.config import settings  # noqa: E402
from ledger.core.logging import get_logger, setup_logging  # noqa: E402
from ledger.workers.run_store import RunStatus  # noqa: E402
from ledger.workers.tasks import run_editor_pass  # noqa: E402

logger = get_logger(__name__)


async def run(
    provider: str,
    limit: int | None,
    dry_run: bool,
    enable: bool,
) -> dict:
    """Execute one editor run and return the stored run record."""
    run_id = str(uuid7())
    logger.info("Starting editor run from CLI", run_id=run_id, provider=provider)
    return await run_editor_pass(
        run_id=run_id,
        db_url=settings.db_url,
        dry_run=dry_run or None,
        limit=limit,
        provider=provider,
        enabled=True if enable else None,
    )


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run the automated editor over eligible intake items",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Preview decisions without writing anything
    python scripts/run_editor.py --dry-run --limit 3

    # Use the mock LLM
    python scripts/run_editor.py --provider mock --enable
        """,
    )

    parser.add_argument(
        "--provider", "-p",
        type=str,
        default=settings.llm_provider,
        choices=["anthropic", "gemini", "mock"],
        help=f"LLM provider to use (default: {settings.llm_provider})",
    )

    parser.add_argument(
        "--limit", "-n",
        type=int,
        default=None,
        help=f"Maximum number of intake items to process (default: {settings.editor_max_items})",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Decide without writing to the database",
    )

    parser.add_argument(
        "--enable",
        action="store_true",
        help="Run even if EDITOR_ENABLED is false",
    )

    args = parser.parse_args()

    setup_logging()
    record = asyncio.run(
        run(
            provider=args.provider,
            limit=args.limit,
            dry_run=args.dry_run,
            enable=args.enable,
        )
    )

    print(json.dumps(record, indent=2, default=str))

    if record["status"] == RunStatus.FAILED.value:
        sys.exit(1)


if __name__ == "__main__":
    main()
