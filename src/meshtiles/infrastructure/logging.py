"""Logging configuration"""
import logging
import sys
from typing import Dict, Any


class LoggingManager:
    """Manages application logging configuration"""

    DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    @staticmethod
    def setup_logging(config: Dict[str, Any], debug: bool = False) -> None:
        """Setup logging based on configuration.

        Safe to call twice: once with defaults at startup and again once
        the YAML file (and its optional ``logging`` section) is loaded.
        """
        logging_config = config.get('logging') or {}

        level_name = 'DEBUG' if debug else str(logging_config.get('level', 'INFO')).upper()
        level = getattr(logging, level_name, logging.INFO)
        format_str = logging_config.get('format', LoggingManager.DEFAULT_FORMAT)

        logging.basicConfig(
            level=level,
            format=format_str,
            stream=sys.stdout,
            force=True
        )

        # Set specific loggers
        logging.getLogger('urllib3').setLevel(logging.WARNING)
        logging.getLogger('requests').setLevel(logging.WARNING)
        logging.getLogger('PIL').setLevel(logging.WARNING)
