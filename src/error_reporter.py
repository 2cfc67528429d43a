import logging
from typing import Callable, Optional

from models import Rejection

ErrorReporter = Callable[[Rejection], None]

REJECTIONS_LOGGER = "rejections"


class LoggingErrorReporter:
    """Writes each rejected record to a dedicated logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._logger = logger or logging.getLogger(REJECTIONS_LOGGER)

    def __call__(self, rejection: Rejection) -> None:
        self._logger.warning(f"error processing transaction - {rejection}")
