# tenant_access/core/logging.py
from __future__ import annotations

import logging

from tenant_access.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """
    Root logging setup for the API process. Safe to call more than once.
    """
    resolved = (level or settings.LOG_LEVEL or "INFO").strip().upper()
    logging.basicConfig(level=resolved, format=LOG_FORMAT)
    logging.getLogger("tenant_access").setLevel(resolved)
    # SQL echo stays off unless explicitly asked for
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
