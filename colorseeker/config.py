"""
colorseeker/config.py - The Knobs and Dials

Where to look for the color, what color, and which picture to click when
it shows up (or doesn't). Defaults match a 1080p layout where the marker
sits in a thin strip at the left edge of the screen.

Everything here is plain dataclasses. load_config() turns config.yaml into
an AppConfig, save_config() writes one back out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Tuple

import yaml

from .errors import ConfigInvalid


# ═══════════════════════════════════════════════════════════════════════════════
# SAMPLING - Where the color lives
# ═══════════════════════════════════════════════════════════════════════════════
#
# The sampler walks ONE pixel column from y_start to y_end and stops at the
# first pixel close enough to target_color. column_end is kept around for the
# day someone wants a real box scan, but nothing reads it yet.
#

@dataclass
class SamplingConfig:
    column: int = 11
    column_end: int = 11
    y_start: int = 420
    y_end: int = 440

    # 24-bit RGB. In YAML write it as "77604B", "#77604B" or "0x77604B".
    # Quote it: an unquoted 123456 is read as a decimal number.
    target_color: int = 0x77604B

    # Per-channel slack. 10 means each of R, G, B may be off by up to 10.
    tolerance: int = 10

    @property
    def target_rgb(self) -> Tuple[int, int, int]:
        return split_rgb(self.target_color)


# ═══════════════════════════════════════════════════════════════════════════════
# TEMPLATE MATCHING - Which picture, and how picky
# ═══════════════════════════════════════════════════════════════════════════════
#
# Color found -> click good_image. Color missing -> click bad_image.
# Templates are resolution-specific. Capture them at the resolution you run at.
#

@dataclass
class MatchingConfig:
    good_image: str = "Good.png"
    bad_image: str = "bad.png"

    # 0.80 = "pretty sure that's the button". Score is 1 - normalized pixel diff,
    # so even random junk rarely drops below 0.5. Don't go too low.
    threshold: float = 0.80

    # Coarse pass step in pixels. Bigger = faster, but the refine window
    # has to be at least this big or the real spot can slip through.
    search_stride: int = 16
    refine_radius: int = 24


# ═══════════════════════════════════════════════════════════════════════════════
# TIMING
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class TimingConfig:
    # Pause between cycles. Stop requests cut it short.
    loop_delay_seconds: float = 1.0

    # Pause between landing on the target and pressing the button.
    click_settle_ms: int = 50


# ═══════════════════════════════════════════════════════════════════════════════
# HOTKEYS - Panic Buttons
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class HotkeysConfig:
    toggle_run: str = "f9"
    reload: str = "f5"
    quit: str = "f10"


# ═══════════════════════════════════════════════════════════════════════════════
# UI CONFIG - Dashboard Appearance
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class UIConfig:
    refresh_rate_ms: int = 100

    # Status channel size. Oldest events get dropped when nobody keeps up.
    log_capacity: int = 200

    # Plain mode prints one line per event instead of the live dashboard.
    # Handy over SSH or when piping to a file.
    plain: bool = False


# ═══════════════════════════════════════════════════════════════════════════════
# MASTER CONFIG
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class AppConfig:
    """
    Everything bundled together. Use load_config() rather than building
    this by hand from YAML.
    """
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    timing: TimingConfig = field(default_factory=TimingConfig)
    hotkeys: HotkeysConfig = field(default_factory=HotkeysConfig)
    ui: UIConfig = field(default_factory=UIConfig)

    def validate(self) -> "AppConfig":
        """Raise ConfigInvalid on the first broken invariant. Returns self."""
        s, m, t = self.sampling, self.matching, self.timing
        if s.y_start > s.y_end:
            raise ConfigInvalid(f"y_start ({s.y_start}) is greater than y_end ({s.y_end})")
        if s.tolerance < 0:
            raise ConfigInvalid(f"tolerance must be >= 0, got {s.tolerance}")
        if not 0 <= s.target_color <= 0xFFFFFF:
            raise ConfigInvalid(f"target_color out of range: {s.target_color:#x}")
        if not 0.0 <= m.threshold <= 1.0:
            raise ConfigInvalid(f"threshold must be within 0..1, got {m.threshold}")
        if m.search_stride < 1:
            raise ConfigInvalid(f"search_stride must be >= 1, got {m.search_stride}")
        if m.refine_radius < 0:
            raise ConfigInvalid(f"refine_radius must be >= 0, got {m.refine_radius}")
        if t.loop_delay_seconds <= 0:
            raise ConfigInvalid(f"loop_delay_seconds must be positive, got {t.loop_delay_seconds}")
        if t.click_settle_ms < 0:
            raise ConfigInvalid(f"click_settle_ms must be >= 0, got {t.click_settle_ms}")
        if self.ui.log_capacity < 1:
            raise ConfigInvalid(f"log_capacity must be >= 1, got {self.ui.log_capacity}")
        return self


# ═══════════════════════════════════════════════════════════════════════════════
# COLOR HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def split_rgb(color: int) -> Tuple[int, int, int]:
    return (color >> 16) & 0xFF, (color >> 8) & 0xFF, color & 0xFF


def parse_color(value: Any) -> int:
    """
    "77604B", "#77604B", "0x77604B" or a plain int -> 0x77604B.
    Anything else is a ConfigInvalid.
    """
    if isinstance(value, bool):
        raise ConfigInvalid(f"Not a color: {value!r}")
    if isinstance(value, int):
        color = value
    elif isinstance(value, str):
        text = value.strip()
        if text.lower().startswith("0x"):
            text = text[2:]
        text = text.lstrip("#")
        try:
            color = int(text, 16)
        except ValueError:
            raise ConfigInvalid(f"Malformed color hex: {value!r}") from None
    else:
        raise ConfigInvalid(f"Not a color: {value!r}")

    if not 0 <= color <= 0xFFFFFF:
        raise ConfigInvalid(f"Color out of 24-bit range: {value!r}")
    return color


def format_color(color: int) -> str:
    return f"{color:06X}"


# ═══════════════════════════════════════════════════════════════════════════════
# CONFIG LOADER
# ═══════════════════════════════════════════════════════════════════════════════

def _get(data: dict, *keys, default=None):
    """Drill into nested dicts without KeyError explosions."""
    for key in keys:
        if not isinstance(data, dict):
            return default
        data = data.get(key)
        if data is None:
            return default
    return data


def _typed(kind, value, name: str):
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigInvalid(f"{name}: expected {kind.__name__}, got {value!r}") from None


def load_config(path: str = "config.yaml") -> AppConfig:
    """
    Load config from YAML. Missing file = all defaults. Missing keys = defaults.
    Broken YAML or bad values raise ConfigInvalid. We don't guess.
    """
    config_path = Path(path)

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigInvalid(f"Malformed YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigInvalid(f"{config_path} must contain a mapping at the top level")

    d = AppConfig()

    sampling = SamplingConfig(
        column=_typed(int, _get(data, "sampling", "column", default=d.sampling.column), "sampling.column"),
        column_end=_typed(int, _get(data, "sampling", "column_end", default=d.sampling.column_end), "sampling.column_end"),
        y_start=_typed(int, _get(data, "sampling", "y_start", default=d.sampling.y_start), "sampling.y_start"),
        y_end=_typed(int, _get(data, "sampling", "y_end", default=d.sampling.y_end), "sampling.y_end"),
        target_color=parse_color(_get(data, "sampling", "target_color", default=d.sampling.target_color)),
        tolerance=_typed(int, _get(data, "sampling", "tolerance", default=d.sampling.tolerance), "sampling.tolerance"),
    )

    matching = MatchingConfig(
        good_image=str(_get(data, "matching", "good_image", default=d.matching.good_image)),
        bad_image=str(_get(data, "matching", "bad_image", default=d.matching.bad_image)),
        threshold=_typed(float, _get(data, "matching", "threshold", default=d.matching.threshold), "matching.threshold"),
        search_stride=_typed(int, _get(data, "matching", "search_stride", default=d.matching.search_stride), "matching.search_stride"),
        refine_radius=_typed(int, _get(data, "matching", "refine_radius", default=d.matching.refine_radius), "matching.refine_radius"),
    )

    timing = TimingConfig(
        loop_delay_seconds=_typed(float, _get(data, "timing", "loop_delay_seconds", default=d.timing.loop_delay_seconds), "timing.loop_delay_seconds"),
        click_settle_ms=_typed(int, _get(data, "timing", "click_settle_ms", default=d.timing.click_settle_ms), "timing.click_settle_ms"),
    )

    hotkeys = HotkeysConfig(
        toggle_run=str(_get(data, "hotkeys", "toggle_run", default=d.hotkeys.toggle_run)),
        reload=str(_get(data, "hotkeys", "reload", default=d.hotkeys.reload)),
        quit=str(_get(data, "hotkeys", "quit", default=d.hotkeys.quit)),
    )

    ui = UIConfig(
        refresh_rate_ms=_typed(int, _get(data, "ui", "refresh_rate_ms", default=d.ui.refresh_rate_ms), "ui.refresh_rate_ms"),
        log_capacity=_typed(int, _get(data, "ui", "log_capacity", default=d.ui.log_capacity), "ui.log_capacity"),
        plain=bool(_get(data, "ui", "plain", default=d.ui.plain)),
    )

    cfg = AppConfig(sampling=sampling, matching=matching, timing=timing, hotkeys=hotkeys, ui=ui)
    return cfg.validate()


def config_to_dict(cfg: AppConfig) -> dict:
    s, m, t, h, u = cfg.sampling, cfg.matching, cfg.timing, cfg.hotkeys, cfg.ui
    return {
        "sampling": {
            "column": s.column,
            "column_end": s.column_end,
            "y_start": s.y_start,
            "y_end": s.y_end,
            "target_color": format_color(s.target_color),
            "tolerance": s.tolerance,
        },
        "matching": {
            "good_image": m.good_image,
            "bad_image": m.bad_image,
            "threshold": m.threshold,
            "search_stride": m.search_stride,
            "refine_radius": m.refine_radius,
        },
        "timing": {
            "loop_delay_seconds": t.loop_delay_seconds,
            "click_settle_ms": t.click_settle_ms,
        },
        "hotkeys": {
            "toggle_run": h.toggle_run,
            "reload": h.reload,
            "quit": h.quit,
        },
        "ui": {
            "refresh_rate_ms": u.refresh_rate_ms,
            "log_capacity": u.log_capacity,
            "plain": u.plain,
        },
    }


def save_config(cfg: AppConfig, path: str = "config.yaml") -> None:
    config_path = Path(path)
    if config_path.parent != Path("."):
        config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        f.write("# ColorSeeker configuration\n\n")
        yaml.safe_dump(config_to_dict(cfg), f, sort_keys=False, default_flow_style=False)
