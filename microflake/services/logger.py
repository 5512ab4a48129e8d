# microflake/services/logger.py
import logging

from microflake.core.config import settings


def setup_logger():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=[logging.StreamHandler()],
    )

    app_logger = logging.getLogger("microflake")
    app_logger.setLevel(settings.LOG_LEVEL.upper())

    return app_logger
