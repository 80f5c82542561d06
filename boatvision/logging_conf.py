"""Root logger setup: console, rotating file, and Better Stack when a token is set."""
import logging
import sys
from logging.handlers import RotatingFileHandler
from logtail import LogtailHandler

from boatvision import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"
QUIET_LOGGERS = ("httpx", "httpcore", "urllib3", "PIL", "multipart")


def _file_handler(formatter):
    settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        settings.LOGS_DIR / settings.LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    handler.setFormatter(formatter)
    return handler


def _betterstack_handler(formatter):
    kwargs = {"source_token": settings.BETTERSTACK_SOURCE_TOKEN}
    if settings.BETTERSTACK_INGEST_HOST:
        kwargs["host"] = settings.BETTERSTACK_INGEST_HOST
    handler = LogtailHandler(**kwargs)
    handler.setFormatter(formatter)
    return handler


def setup_logging():
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    root_logger.addHandler(console)

    try:
        root_logger.addHandler(_file_handler(formatter))
    except OSError as e:
        root_logger.warning(f"Not writing {settings.LOG_FILE}: {e}")

    if settings.BETTERSTACK_SOURCE_TOKEN:
        try:
            root_logger.addHandler(_betterstack_handler(formatter))
        except Exception as e:
            root_logger.warning(f"Better Stack handler unavailable: {e}")
        else:
            root_logger.info("Shipping logs to Better Stack")

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return root_logger
