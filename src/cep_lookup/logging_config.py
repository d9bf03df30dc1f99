import logging
from typing import Optional, Union

from .settings import LookupSettings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: Union[str, int, None] = None, filename: Optional[str] = None) -> None:
    """
    Configure root logging for applications embedding cep_lookup.

    The library itself never calls this; it only emits through module
    loggers.

    Args:
        level: Level name or number (default: LookupSettings().log_level)
        filename: Log to this file instead of the console
    """
    if level is None:
        level = LookupSettings().log_level
    if isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")

    logging.basicConfig(level=level, format=LOG_FORMAT, filename=filename, force=True)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
