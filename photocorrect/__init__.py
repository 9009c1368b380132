"""
PhotoCorrect: geometry engine for interactive photo correction

Skew detection, safe rotation cropping, subject-aware crop suggestions,
selection editing and export rendering for crop, resize and blur edits.
"""

__version__ = "0.1.0"

# Core imports for easy access
from .config import load_config
from .errors import (
    PhotoCorrectError,
    DegenerateInputError,
    RenderingUnavailableError,
    SuggestionFormatError,
)

__all__ = [
    "load_config",
    "PhotoCorrectError",
    "DegenerateInputError",
    "RenderingUnavailableError",
    "SuggestionFormatError",
]
