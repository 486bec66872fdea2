"""
colorseeker package

vision.py      - Screen capture (mss), color sampler, coarse-to-fine template matcher
controller.py  - Automation loop: start/stop, one worker thread per run
events.py      - Status events and the bounded channel they travel through
config.py      - Typed configuration dataclasses, YAML load/save
errors.py      - Error taxonomy
ui.py          - Rich terminal dashboard
human_input.py - Mouse move + click (pyautogui). Not imported here: pyautogui
                 wants a display the moment it's imported.
"""

from .errors import (
    SeekerError, CaptureFailed, ImageDecodeFailed, TemplateTooLarge,
    InputFailed, ConfigInvalid, AlreadyRunning, NotRunning,
)
from .config import AppConfig, load_config, save_config, parse_color
from .events import StatusEvent, StatusChannel, Level, Kind
from .vision import Frame, MatchResult, ScreenCapture, TemplateMatcher, color_match, find_color, load_image
from .controller import AutomationController, RunState
from .ui import Dashboard, Stats

__all__ = [
    "SeekerError", "CaptureFailed", "ImageDecodeFailed", "TemplateTooLarge",
    "InputFailed", "ConfigInvalid", "AlreadyRunning", "NotRunning",
    "AppConfig", "load_config", "save_config", "parse_color",
    "StatusEvent", "StatusChannel", "Level", "Kind",
    "Frame", "MatchResult", "ScreenCapture", "TemplateMatcher", "color_match", "find_color", "load_image",
    "AutomationController", "RunState",
    "Dashboard", "Stats",
]
