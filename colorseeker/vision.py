"""
colorseeker/vision.py - Screen capture, color sampling and template matching.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import cv2
import mss
import mss.exception
import numpy as np

from .config import SamplingConfig
from .errors import CaptureFailed, ImageDecodeFailed, TemplateTooLarge


@dataclass(frozen=True)
class Frame:
    """
    One still image: RGB uint8 pixels, shape (height, width, 3).

    left/top place the top-left pixel in screen space. Screen captures carry
    the monitor origin; decoded reference images sit at (0, 0).
    """
    pixels: np.ndarray
    left: int = 0
    top: int = 0

    def __post_init__(self) -> None:
        px = np.asarray(self.pixels)
        if px.ndim != 3 or px.shape[2] != 3:
            raise ValueError(f"Frame expects (h, w, 3) pixels, got shape {px.shape}")
        if px.dtype != np.uint8:
            px = px.astype(np.uint8)
        # Read-only view; the caller's array stays writeable
        view = px.view()
        view.flags.writeable = False
        object.__setattr__(self, "pixels", view)

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    def contains(self, x: int, y: int) -> bool:
        # Screen-space coordinates
        return (self.left <= x < self.left + self.width
                and self.top <= y < self.top + self.height)

    def pixel(self, x: int, y: int) -> Tuple[int, int, int]:
        r, g, b = self.pixels[y - self.top, x - self.left]
        return int(r), int(g), int(b)


@dataclass
class MatchResult:
    # Best template position in screen space, plus how good it was
    x: int
    y: int
    width: int
    height: int
    score: float
    coarse_score: float = 0.0

    @property
    def center(self) -> Tuple[int, int]:
        return self.x + self.width // 2, self.y + self.height // 2


class ScreenCapture:
    # Screen grabber using mss (way faster than pyautogui)

    PRIMARY_MONITOR = 1

    def __init__(self, monitor_index: int = PRIMARY_MONITOR) -> None:
        self._sct: Optional[mss.mss] = None
        self.monitor_index = monitor_index

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        # mss handles belong to the thread that opened them
        if self._sct:
            self._sct.close()
            self._sct = None

    def capture(self) -> Frame:
        try:
            if not self._sct:
                self._sct = mss.mss()

            # monitors[0] is the whole virtual screen, [1] the primary display
            monitor_idx = max(0, min(self.monitor_index, len(self._sct.monitors) - 1))
            monitor = self._sct.monitors[monitor_idx]
            shot = self._sct.grab(monitor)
        except (mss.exception.ScreenShotError, OSError) as e:
            self.close()
            raise CaptureFailed(f"Screen capture failed: {e}") from e

        # mss hands back BGRA
        pixels = cv2.cvtColor(np.array(shot), cv2.COLOR_BGRA2RGB)
        return Frame(pixels, left=monitor["left"], top=monitor["top"])


def load_image(path: Union[str, Path]) -> Frame:
    """Decode a reference image from disk into an RGB Frame at (0, 0)."""
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None:
        raise ImageDecodeFailed(f"Cannot read image: {path}", {"path": str(path)})
    return Frame(cv2.cvtColor(img, cv2.COLOR_BGR2RGB))


# ═══════════════════════════════════════════════════════════════════════════════
# COLOR SAMPLER
# ═══════════════════════════════════════════════════════════════════════════════

def color_match(p: Sequence[int], q: Sequence[int], tolerance: int) -> bool:
    return all(abs(int(a) - int(b)) <= tolerance for a, b in zip(p, q))


def find_color(frame: Frame, sampling: SamplingConfig) -> Optional[int]:
    """
    Walk column `sampling.column` from y_start down to y_end (inclusive) and
    return the first row whose pixel is within tolerance of the target.
    Rows that fall off the captured frame are skipped, not errors.
    """
    x = sampling.column
    target = sampling.target_rgb
    for y in range(sampling.y_start, sampling.y_end + 1):
        if not frame.contains(x, y):
            continue
        if color_match(frame.pixel(x, y), target, sampling.tolerance):
            return y
    return None


# ═══════════════════════════════════════════════════════════════════════════════
# TEMPLATE MATCHER
# ═══════════════════════════════════════════════════════════════════════════════

class TemplateMatcher:
    """
    Coarse-to-fine exhaustive search by sum of absolute differences.

    The coarse pass samples every `stride`-th position, the refine pass
    checks every pixel within `radius` of the coarse winner. Ties go to
    whatever was found first in row-major order. No early exit: every
    candidate is scored in full, the stride is what keeps it fast.

    `comparisons` counts the regions scored by the last locate() call.
    """

    def __init__(self) -> None:
        self.comparisons = 0

    def _score(self, screen: np.ndarray, tmpl: np.ndarray, x: int, y: int) -> float:
        h, w = tmpl.shape[:2]
        region = screen[y:y + h, x:x + w].astype(np.int16)
        diff = int(np.abs(region - tmpl).sum())
        self.comparisons += 1
        return 1.0 - diff / float(w * h * 3 * 255)

    def _scan(self, screen, tmpl, xs, ys) -> Tuple[Tuple[int, int], float]:
        best_loc = (xs[0], ys[0])
        best_score = -1.0
        for y in ys:
            for x in xs:
                score = self._score(screen, tmpl, x, y)
                if score > best_score:
                    best_score = score
                    best_loc = (x, y)
        return best_loc, best_score

    def locate(self, frame: Frame, template: Frame, stride: int = 16, radius: int = 24) -> MatchResult:
        self.comparisons = 0
        if template.width > frame.width or template.height > frame.height:
            raise TemplateTooLarge(
                f"Template {template.width}x{template.height} does not fit in "
                f"frame {frame.width}x{frame.height}",
                {"template": (template.width, template.height), "frame": (frame.width, frame.height)},
            )
        stride = max(1, stride)
        radius = max(0, radius)

        screen = frame.pixels
        tmpl = template.pixels.astype(np.int16)
        max_x = frame.width - template.width
        max_y = frame.height - template.height

        # 1. Coarse
        (cx, cy), coarse_score = self._scan(
            screen, tmpl, range(0, max_x + 1, stride), range(0, max_y + 1, stride)
        )

        # 2. Refine around the coarse winner
        (rx, ry), refine_score = self._scan(
            screen, tmpl,
            range(max(0, cx - radius), min(max_x, cx + radius) + 1),
            range(max(0, cy - radius), min(max_y, cy + radius) + 1),
        )

        # 3. Never worse than coarse
        if refine_score > coarse_score:
            bx, by, best = rx, ry, refine_score
        else:
            bx, by, best = cx, cy, coarse_score

        return MatchResult(
            x=frame.left + bx,
            y=frame.top + by,
            width=template.width,
            height=template.height,
            score=best,
            coarse_score=coarse_score,
        )
