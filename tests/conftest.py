"""Pytest configuration and fixtures."""

import sys
import threading
from unittest.mock import MagicMock

import numpy as np
import pytest

# PyAutoGUI grabs the display on import. Swap it out for headless runs.
_pyautogui = MagicMock()
_pyautogui.PyAutoGUIException = type("PyAutoGUIException", (Exception,), {})
_pyautogui.FailSafeException = type("FailSafeException", (_pyautogui.PyAutoGUIException,), {})
sys.modules["pyautogui"] = _pyautogui

from colorseeker import AppConfig, CaptureFailed, Frame  # noqa: E402


@pytest.fixture
def mock_pyautogui():
    _pyautogui.reset_mock(side_effect=True)
    return _pyautogui


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def noise_frame(rng):
    def make(width=320, height=240, left=0, top=0):
        return Frame(rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8), left=left, top=top)
    return make


class FakeSource:
    """Capture source that plays back frames (or exceptions) in order.

    The last item repeats forever.
    """

    def __init__(self, *items):
        self.items = list(items)
        self.calls = 0
        self.entered = 0
        self.exited = 0

    def __enter__(self):
        self.entered += 1
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.exited += 1

    def capture(self):
        item = self.items[min(self.calls, len(self.items) - 1)]
        self.calls += 1
        if isinstance(item, Exception):
            raise item
        return item


class RecordingActuator:
    def __init__(self, error=None):
        self.clicks = []
        self.error = error
        self.clicked = threading.Event()

    def move_and_click(self, point):
        if self.error is not None:
            raise self.error
        self.clicks.append(tuple(point))
        self.clicked.set()
        return tuple(point)


@pytest.fixture
def fake_source():
    return FakeSource


@pytest.fixture
def actuator_cls():
    return RecordingActuator


@pytest.fixture
def actuator():
    return RecordingActuator()


@pytest.fixture
def failing_capture():
    return CaptureFailed("display unavailable")


@pytest.fixture
def config():
    cfg = AppConfig()
    cfg.timing.loop_delay_seconds = 0.05
    return cfg
