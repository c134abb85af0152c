"""Shelf HTTP server. Entry point for the catalog and semantic search API."""

import logging

from shelf.config import load_config
from shelf.core.services import create_services

logger = logging.getLogger("shelf")


def main():
    """Run the Shelf API with uvicorn."""
    import uvicorn
    from shelf.api import create_api

    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    svc = create_services(config=config)
    if svc.db is not None:
        svc.db.connect()
        svc.db.run_migrations()

    app = create_api(svc)
    logger.info("Starting Shelf on %s:%d (API docs at /swagger)", config.http_host, config.http_port)
    try:
        uvicorn.run(app, host=config.http_host, port=config.http_port)
    finally:
        if svc.db is not None:
            svc.db.close()
        logger.info("Shelf stopped.")


if __name__ == "__main__":
    main()
