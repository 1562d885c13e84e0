"""Process-wide logging setup."""

import logging
from typing import Optional

from app.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
    )
    # aiokafka is chatty at INFO about metadata refreshes
    logging.getLogger("aiokafka").setLevel(logging.WARNING)
