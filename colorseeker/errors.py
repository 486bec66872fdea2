"""
colorseeker/errors.py - Everything that can go wrong, by name.

Per-cycle failures (capture, decode, oversized template, input) are caught by
the controller and turned into error events. The run keeps going.
"""

from typing import Any, Dict, Optional


class SeekerError(Exception):
    """Base class for ColorSeeker errors.

    Attributes:
        message: Human-readable error message
        context: Extra details (paths, sizes, ...) for the log line
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        return self.message


class CaptureFailed(SeekerError):
    # Display unavailable, mss blew up, etc.
    pass


class ImageDecodeFailed(SeekerError):
    # Missing file or something OpenCV can't read
    pass


class TemplateTooLarge(SeekerError):
    pass


class InputFailed(SeekerError):
    # pyautogui refused (fail-safe corner, no display, ...)
    pass


class ConfigInvalid(SeekerError):
    pass


class AlreadyRunning(SeekerError):
    pass


class NotRunning(SeekerError):
    pass
