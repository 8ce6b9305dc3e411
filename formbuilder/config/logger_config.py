import logging
import sys
from pathlib import Path
from formbuilder.config.env_config import Settings, settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Adapter modules whose records also go to logs/payments.log
PAYMENT_LOGGERS = (
    "formbuilder.services.stripe_service",
    "formbuilder.services.bkash_service",
    "formbuilder.services.bank_transfer_service",
    "formbuilder.services.payment_service",
)

QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "httpx": logging.WARNING,
    "stripe": logging.WARNING,
    "passlib": logging.ERROR,
}


def _file_handler(path: Path, level: int, formatter: logging.Formatter) -> logging.FileHandler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(app_settings: Settings = settings):
    """
    Configure the root logger: stdout always, and when LOG_TO_FILE is set
    logs/app.log, logs/error.log and logs/payments.log.
    Safe to call again; handlers from a previous call are replaced.
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    level = getattr(logging, app_settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    for name in PAYMENT_LOGGERS:
        logging.getLogger(name).handlers.clear()

    if app_settings.LOG_TO_FILE:
        log_dir = Path("logs")
        log_dir.mkdir(exist_ok=True)

        root_logger.addHandler(_file_handler(log_dir / "app.log", logging.DEBUG, formatter))
        root_logger.addHandler(_file_handler(log_dir / "error.log", logging.ERROR, formatter))

        payments_handler = _file_handler(log_dir / "payments.log", logging.INFO, formatter)
        for name in PAYMENT_LOGGERS:
            logging.getLogger(name).addHandler(payments_handler)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)
