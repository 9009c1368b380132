"""
PhotoCorrect utilities module.
"""

from .logging import StructuredLogger, setup_console_logging, setup_logging_from_config

__all__ = [
    'StructuredLogger',
    'setup_console_logging',
    'setup_logging_from_config',
]
