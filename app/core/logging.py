import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once at application start-up."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # SQL echo is controlled by settings.DEBUG on the engine itself
    logging.getLogger("sqlalchemy.engine").propagate = False
