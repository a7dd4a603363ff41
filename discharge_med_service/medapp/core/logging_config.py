import logging

from medapp.core.app_config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

def setup_logging(level: str | None = None) -> None:
    logging.basicConfig(level=(level or LOG_LEVEL), format=LOG_FORMAT)
    # requests/urllib3 are noisy at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
