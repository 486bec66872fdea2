# Mouse control - move, settle, click

import time
import pyautogui
from dataclasses import dataclass
from typing import Tuple, Union

from .errors import InputFailed

# Slam the mouse into a screen corner to abort. Keep this on.
pyautogui.FAILSAFE = True


@dataclass
class Point:
    x: int
    y: int


class ClickActuator:
    # Straight move to the target, short settle, one primary click.
    # No check that the click hit anything.

    def __init__(self, settle_ms: int = 50) -> None:
        self.settle_ms = settle_ms

    def move_and_click(self, point: Union[Point, Tuple[int, int]]) -> Tuple[int, int]:
        if isinstance(point, Point):
            x, y = point.x, point.y
        else:
            x, y = point

        try:
            pyautogui.moveTo(int(x), int(y), _pause=False)
            time.sleep(self.settle_ms / 1000.0)
            pyautogui.click(_pause=False)
        except pyautogui.FailSafeException as e:
            raise InputFailed("Fail-safe triggered (mouse in a screen corner)") from e
        except pyautogui.PyAutoGUIException as e:
            raise InputFailed(f"Click at {x},{y} failed: {e}") from e

        return int(x), int(y)
