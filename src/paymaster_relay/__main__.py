"""Run the relay server: `python -m paymaster_relay`."""
from __future__ import annotations

import logging
import sys

import uvicorn

from .api.main import create_app, init_monitoring
from .config import load_settings
from .exceptions import ConfigurationError
from .logging_config import setup_logging
from .monitoring import capture_exception, init_sentry

logger = logging.getLogger("paymaster_relay")


def main() -> None:
    try:
        settings = load_settings()
    except ConfigurationError as e:
        setup_logging(json_format=False)
        init_sentry()
        logger.error(f"Refusing to start: {e.message}")
        capture_exception(e, level="fatal")
        sys.exit(1)

    setup_logging(json_format=settings.is_production, level=settings.log_level)
    # Error reporting first, so startup failures are reported too
    init_monitoring(settings)

    try:
        app = create_app(settings)
    except ConfigurationError as e:
        logger.error(f"Refusing to start: {e.message}")
        capture_exception(e, level="fatal")
        sys.exit(1)

    logger.info(f"Running on http://[::]:{settings.port} (IPv4 & IPv6)")
    uvicorn.run(app, host="::", port=settings.port)


if __name__ == "__main__":
    main()
