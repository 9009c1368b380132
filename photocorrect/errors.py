"""
Exception types for PhotoCorrect

Geometry "no confident answer" conditions (no skew, no subjects, boundary
conflicts) are not errors and resolve to fallbacks instead of raising.
"""


class PhotoCorrectError(Exception):
    """Base exception for the correction engine."""
    pass


class DegenerateInputError(PhotoCorrectError, ValueError):
    """Raised for zero/negative image dimensions or empty rectangles."""
    pass


class RenderingUnavailableError(PhotoCorrectError):
    """Raised when a drawing surface cannot be acquired or encoded."""
    pass


class SuggestionFormatError(PhotoCorrectError, ValueError):
    """Raised when an AI correction payload does not have the expected shape."""
    pass
