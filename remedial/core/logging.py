"""Stdlib logging setup for the service. Called from the app lifespan, never at import."""
import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: int | str = "INFO") -> logging.Logger:
    """Send records to stdout; replaces root handlers, so calling it again on reload is safe."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    return logging.getLogger("remedial")
