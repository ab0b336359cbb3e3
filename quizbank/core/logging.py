import logging

from quizbank.core.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO), format=LOG_FORMAT)
    # redis and sqlalchemy are chatty at DEBUG
    if settings.LOG_LEVEL != "DEBUG":
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
