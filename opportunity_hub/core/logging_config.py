"""
Logging setup shared by the API and the scripts.
"""

import logging

from opportunity_hub.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = None) -> None:
    """Configure root logging once from settings.log_level."""
    level_name = (level or get_settings().log_level or "INFO").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
