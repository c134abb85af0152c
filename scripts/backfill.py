#!/usr/bin/env python3
"""Embed every book that has no stored vector, using the configured backend.

Run after adding books in bulk or after switching embedding backends (clear
the old vectors first). Books that fail are logged and left unembedded; run
again to retry them.

Usage:
    python scripts/backfill.py
    python scripts/backfill.py --workers 4 --retries 3
    python scripts/backfill.py --dry-run
"""

import argparse
import logging
import sys

from shelf.config import load_config
from shelf.core.orchestrator import RetryPolicy
from shelf.core.services import create_services

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
)
logger = logging.getLogger("backfill")


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate embeddings for books that lack one")
    parser.add_argument("--workers", "-w", type=int, default=None, help="Parallel embedding requests (default: config)")
    parser.add_argument("--retries", type=int, default=None, help="Total tries per book (default: config)")
    parser.add_argument("--backoff", type=float, default=None, help="Seconds before the first retry, doubled after each")
    parser.add_argument("--dry-run", action="store_true", help="List the books that would be embedded")
    args = parser.parse_args()

    config = load_config()
    svc = create_services(config=config)
    if svc.db is not None:
        svc.db.connect()
        svc.db.run_migrations()

    try:
        orchestrator = svc.orchestrator
        if args.workers is not None:
            orchestrator.workers = max(1, args.workers)

        if args.dry_run:
            pending = svc.store.list_without_vector()
            for book in pending:
                logger.info("Would embed %d: %s", book.id, orchestrator.describe(book))
            logger.info("%d books need embeddings.", len(pending))
            return 0

        retry = None
        if args.retries is not None or args.backoff is not None:
            retry = RetryPolicy(
                attempts=args.retries if args.retries is not None else config.search.retry_attempts,
                backoff=args.backoff if args.backoff is not None else config.search.retry_backoff,
            )

        report = orchestrator.backfill(retry=retry)
        if report.failed:
            logger.warning("Failed book ids: %s", ", ".join(str(i) for i in sorted(report.failures)))
        return 1 if report.failed else 0
    finally:
        if svc.db is not None:
            svc.db.close()


if __name__ == "__main__":
    sys.exit(main())
