"""
colorseeker/controller.py - The automation loop.

Idle -> Running -> Idle. One worker thread per run. The worker owns the
cycle counter and the capture handle; everybody else only sees the events
it pushes into the StatusChannel.
"""

from __future__ import annotations

import copy
import threading
from enum import Enum
from typing import Callable, Optional

from .config import AppConfig, format_color
from .errors import AlreadyRunning, CaptureFailed, NotRunning, SeekerError
from .events import Kind, Level, StatusChannel
from .vision import Frame, TemplateMatcher, find_color, load_image


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class AutomationController:
    """
    Drives the sample -> decide -> find image -> click cycle.

    capture_source: anything with capture() -> Frame that works as a context
        manager (vision.ScreenCapture in the real app).
    actuator: anything with move_and_click((x, y)).
    decode: path -> Frame. Defaults to vision.load_image.
    """

    # How long stop() waits for the worker to wrap up a capture/match in flight
    STOP_TIMEOUT = 5.0

    def __init__(
        self,
        capture_source,
        actuator,
        channel: StatusChannel,
        decode: Callable[[str], Frame] = load_image,
    ) -> None:
        self._source = capture_source
        self._actuator = actuator
        self._decode = decode
        self.channel = channel

        self._cancel: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()  # guards start/stop from concurrent shells

    @property
    def state(self) -> RunState:
        if self._thread is not None and self._thread.is_alive():
            return RunState.RUNNING
        return RunState.IDLE

    @property
    def running(self) -> bool:
        return self.state is RunState.RUNNING

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    def start(self, config: AppConfig, strict: bool = False) -> bool:
        """
        Begin a run with a private copy of `config`.

        Returns False (or raises AlreadyRunning if strict) when a run is
        already active. Invalid config raises ConfigInvalid.
        """
        with self._lock:
            if self.running:
                if strict:
                    raise AlreadyRunning("Automation is already running")
                return False

            cfg = copy.deepcopy(config).validate()
            cancel = threading.Event()

            self._announce(cfg)

            self._cancel = cancel
            self._thread = threading.Thread(
                target=self._run, args=(cfg, cancel), name="colorseeker-worker", daemon=True
            )
            self._thread.start()
            return True

    def stop(self, strict: bool = False, timeout: Optional[float] = None) -> bool:
        """
        Signal cancellation and wait (bounded) for the worker to finish.

        Safe to call repeatedly. Returns False (or raises NotRunning if
        strict) when there was nothing to stop.
        """
        with self._lock:
            thread, cancel = self._thread, self._cancel
            if thread is None or cancel is None or not thread.is_alive() or cancel.is_set():
                if strict:
                    raise NotRunning("Automation is not running")
                return False
            cancel.set()

        thread.join(self.STOP_TIMEOUT if timeout is None else timeout)
        return True

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the current run ends. True if it did within timeout."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()

    def _announce(self, cfg: AppConfig) -> None:
        s, m, t = cfg.sampling, cfg.matching, cfg.timing
        emit = self.channel.emit
        emit("=== Automation started ===", Level.INFO, Kind.LIFECYCLE)
        emit(f"Search region: X={s.column}-{s.column_end}, Y={s.y_start}-{s.y_end}")
        emit(f"Target color: #{format_color(s.target_color)} (tolerance: ±{s.tolerance})")
        emit(f"Images: Good={m.good_image}, Bad={m.bad_image}")
        emit(f"Delay: {t.loop_delay_seconds:g}s, match threshold: {m.threshold * 100:.0f}%")

    # ── Worker ─────────────────────────────────────────────────────────────────

    def _run(self, cfg: AppConfig, cancel: threading.Event) -> None:
        matcher = TemplateMatcher()
        cycle = 0
        with self._source:
            while not cancel.is_set():
                cycle += 1
                try:
                    self._cycle(cycle, cfg, matcher)
                except Exception as e:
                    # Anything unforeseen costs one cycle, not the run
                    self.channel.emit(
                        f"Cycle #{cycle} crashed: {type(e).__name__}: {e}", Level.ERROR, Kind.FAILURE
                    )

                if cancel.wait(cfg.timing.loop_delay_seconds):
                    break

        self.channel.emit("Automation stopped", Level.INFO, Kind.LIFECYCLE)

    def _cycle(self, index: int, cfg: AppConfig, matcher: TemplateMatcher) -> None:
        emit = self.channel.emit
        s, m = cfg.sampling, cfg.matching

        emit(f"=== Cycle #{index} ===", Level.INFO, Kind.CYCLE)

        try:
            frame = self._source.capture()
        except CaptureFailed as e:
            emit(f"Capture error: {e}", Level.ERROR, Kind.FAILURE)
            return

        found_y = find_color(frame, s)
        if found_y is not None:
            emit(f"✓ Color #{format_color(s.target_color)} found at Y={found_y}", Level.SUCCESS, Kind.COLOR_FOUND)
            image = m.good_image
        else:
            emit(f"✗ Color #{format_color(s.target_color)} not found", Level.WARNING, Kind.COLOR_MISSING)
            image = m.bad_image

        emit(f"→ Looking for image: {image}", Level.INFO, Kind.LOOKUP)
        try:
            self._find_and_click(image, cfg, matcher)
        except SeekerError as e:
            emit(f"✗ {image}: {e}", Level.ERROR, Kind.FAILURE)

    def _find_and_click(self, image: str, cfg: AppConfig, matcher: TemplateMatcher) -> None:
        m = cfg.matching
        screen = self._source.capture()
        template = self._decode(image)
        result = matcher.locate(screen, template, m.search_stride, m.refine_radius)

        if result.score < m.threshold:
            self.channel.emit(
                f"✗ Image {image} not found (best: {result.score * 100:.0f}%)", Level.ERROR, Kind.MISS
            )
            return

        cx, cy = result.center
        self._actuator.move_and_click((cx, cy))
        self.channel.emit(
            f"✓ Clicked {image}: X={cx}, Y={cy} (confidence: {result.score * 100:.0f}%)",
            Level.SUCCESS,
            Kind.CLICK,
        )
