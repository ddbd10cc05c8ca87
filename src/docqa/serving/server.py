"""Process entry point: configure logging and run the API under uvicorn."""

from __future__ import annotations

import logging

import uvicorn

from docqa.config import settings

logger = logging.getLogger(__name__)


def configure_logging(level_name: str = "INFO") -> None:
    """Configure root logging once for the whole process."""
    level = getattr(logging, level_name.strip().upper(), logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    root_logger.setLevel(level)

    # Reduce noise from verbose third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def main() -> None:
    """Run the document QA server on the configured host and port."""
    configure_logging(settings.log_level)
    logger.info("Server listening on port %d", settings.port)
    uvicorn.run(
        "docqa.serving.app:app",
        host=settings.host,
        port=settings.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
