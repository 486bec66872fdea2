# Dashboard UI

import threading
from collections import deque
from datetime import datetime
from typing import Iterable, Optional

from rich.align import Align
from rich.console import Console, Group
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from .config import AppConfig, format_color
from .events import Kind, Level, StatusEvent

VERSION = "v1.0.0"

COLORS = {
    "border": "#334155",
    "muted": "#64748b",
    "text": "#e2e8f0",
    "text_dim": "#94a3b8",
    "heading": "#77604b",
    "success": "#10b981",
    "warning": "#f59e0b",
    "error": "#ef4444",
    "info": "#3b82f6",
    "idle": "#64748b",
    "active": "#10b981",
}

HEADER = "▓▓▓ COLORSEEKER ▓▓▓"


class Stats:
    # Session counters, fed from status events. Nothing hits the disk.

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._start = datetime.now()
        self.runs = 0
        self.cycles = 0
        self.color_hits = 0
        self.color_misses = 0
        self.clicks = 0
        self.misses = 0
        self.errors = 0

    def record(self, event: StatusEvent) -> None:
        with self._lock:
            if event.kind is Kind.CYCLE:
                self.cycles += 1
            elif event.kind is Kind.COLOR_FOUND:
                self.color_hits += 1
            elif event.kind is Kind.COLOR_MISSING:
                self.color_misses += 1
            elif event.kind is Kind.CLICK:
                self.clicks += 1
            elif event.kind is Kind.MISS:
                self.misses += 1
            elif event.kind is Kind.FAILURE:
                self.errors += 1
            elif event.kind is Kind.LIFECYCLE and event.message.startswith("=== Automation started"):
                self.runs += 1

    def get(self) -> dict:
        with self._lock:
            total_sec = max(0, int((datetime.now() - self._start).total_seconds()))
            h, rem = divmod(total_sec, 3600)
            m, s = divmod(rem, 60)
            lookups = self.clicks + self.misses
            return {
                "runtime": f"{h:02d}:{m:02d}:{s:02d}",
                "runs": self.runs,
                "cycles": self.cycles,
                "color_hits": self.color_hits,
                "color_misses": self.color_misses,
                "clicks": self.clicks,
                "misses": self.misses,
                "errors": self.errors,
                "hit_rate": (self.clicks / lookups * 100) if lookups else 0.0,
            }


class Dashboard:
    """
    Consumer side of the status channel. feed() takes whatever the shell
    drained; the live layout (or plain line printer) shows it.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        refresh_ms: int = 100,
        max_lines: int = 200,
        toggle_key: str = "f9",
        reload_key: str = "f5",
        quit_key: str = "f10",
        plain: bool = False,
        console: Optional[Console] = None,
    ) -> None:
        self._live: Optional[Live] = None
        self._config = config or AppConfig()
        self._refresh_ms = max(10, refresh_ms)
        self._toggle_key = toggle_key.upper()
        self._reload_key = reload_key.upper()
        self._quit_key = quit_key.upper()
        self._plain = plain
        self._console = console or Console()
        self._stats = Stats()
        self._lines = deque(maxlen=max_lines)
        self._running = False
        self._dropped = 0

    @property
    def stats(self) -> Stats:
        return self._stats

    @property
    def lines(self):
        return list(self._lines)

    def set_config(self, config: AppConfig) -> None:
        self._config = config

    def set_running(self, running: bool) -> None:
        self._running = running

    def set_dropped(self, dropped: int) -> None:
        self._dropped = dropped

    def feed(self, events: Iterable[StatusEvent]) -> None:
        for event in events:
            self._stats.record(event)
            self._lines.append(event)
            if self._plain:
                self._console.print(self._format_line(event))
        self.update()

    def note(self, message: str, level: Level = Level.INFO) -> None:
        # Shell-side messages (reload, missing files) that don't come from a run
        self.feed([StatusEvent(message, level)])

    def start(self) -> None:
        if self._plain:
            return
        self._live = Live(
            self._render(), console=self._console,
            refresh_per_second=max(1, 1000 // self._refresh_ms),
            screen=True, transient=False,
        )
        self._live.start()

    def update(self) -> None:
        if self._live:
            self._live.update(self._render())

    def stop(self) -> None:
        if self._live:
            self._live.stop()
            self._live = None

    def _format_line(self, event: StatusEvent) -> Text:
        text = Text()
        text.append(f" {event.timestamp.strftime('%H:%M:%S')} ", style=COLORS["text_dim"])
        level = event.level.value
        text.append(f"[{level.upper():^7}]", style=f"bold {COLORS.get(level, COLORS['info'])}")
        text.append(f" {event.message}", style=COLORS["text"])
        return text

    def _render(self) -> Layout:
        layout = Layout()
        layout.split(
            Layout(name="header", size=5),
            Layout(name="middle", size=11),
            Layout(name="log", ratio=1, minimum_size=5),
            Layout(name="footer", size=3),
        )
        layout["middle"].split_row(
            Layout(name="stats", ratio=1),
            Layout(name="target", ratio=1),
        )
        layout["header"].update(self._render_header())
        layout["stats"].update(self._render_stats())
        layout["target"].update(self._render_target())
        layout["log"].update(self._render_log())
        layout["footer"].update(self._render_footer())
        return layout

    def _render_header(self) -> Panel:
        if self._running:
            badge = Text(" ⚡ Running ", style=f"bold {COLORS['active']}")
        else:
            badge = Text(" ● Idle ", style=f"bold {COLORS['idle']}")

        subtitle = Text()
        subtitle.append(f"  {VERSION}  ", style=f"bold {COLORS['text_dim']}")
        subtitle.append("│", style=COLORS["border"])
        subtitle.append_text(badge)
        title = Text(HEADER, style=f"bold {COLORS['heading']}")
        return Panel(Align.center(Group(Align.center(title), Align.center(subtitle))), border_style=COLORS["border"])

    def _render_stats(self) -> Panel:
        data = self._stats.get()
        table = Table.grid(padding=(0, 2), expand=True)
        table.add_column("L", justify="right", style=COLORS["muted"])
        table.add_column("V", justify="left", style=f"bold {COLORS['text']}")
        table.add_row("Session", data["runtime"])
        table.add_row("Cycles", str(data["cycles"]))
        table.add_row("Color hit/miss", f"{data['color_hits']} / {data['color_misses']}")
        table.add_row("Clicks", str(data["clicks"]))
        hr = data["hit_rate"]
        hr_color = COLORS["success"] if hr >= 80 else COLORS["warning"] if hr >= 50 else COLORS["error"]
        table.add_row("Image hit rate", Text(f"{hr:.1f}%", style=f"bold {hr_color}"))
        if data["errors"] > 0:
            table.add_row("Errors", Text(str(data["errors"]), style=f"bold {COLORS['error']}"))
        if self._dropped:
            table.add_row("Dropped", Text(str(self._dropped), style=COLORS["warning"]))
        return Panel(table, title=f"[{COLORS['heading']}]Live Stats[/]", border_style=COLORS["border"])

    def _render_target(self) -> Panel:
        s, m, t = self._config.sampling, self._config.matching, self._config.timing
        swatch = Text("  ██  ", style=f"#{format_color(s.target_color)}")
        lines = [
            Align.center(Text.assemble(swatch, (f"#{format_color(s.target_color)} ±{s.tolerance}", COLORS["text"]))),
            Text(),
            Align.center(Text(f"X={s.column}  Y={s.y_start}-{s.y_end}", style=COLORS["text_dim"])),
            Rule(style=COLORS["border"]),
            Align.center(Text(f"Found   → {m.good_image}", style=COLORS["success"])),
            Align.center(Text(f"Missing → {m.bad_image}", style=COLORS["warning"])),
            Align.center(Text(f"≥{m.threshold * 100:.0f}%  every {t.loop_delay_seconds:g}s", style=COLORS["text_dim"])),
        ]
        return Panel(Group(*lines), title=f"[{COLORS['heading']}]Target[/]", border_style=COLORS["border"])

    def _render_log(self) -> Panel:
        term_height = self._console.size.height
        avail = max(3, term_height - 22)
        visible = list(self._lines)[-avail:]

        if not visible:
            hint = Text(f"Press {self._toggle_key} to start...", style=COLORS["muted"])
            return Panel(Align.center(hint), title=f"[{COLORS['heading']}]Event Log[/]", border_style=COLORS["border"])

        text = Text()
        for event in visible:
            text.append_text(self._format_line(event))
            text.append("\n")
        return Panel(Align(text, vertical="bottom"), title=f"[{COLORS['heading']}]Event Log[/]", border_style=COLORS["border"])

    def _render_footer(self) -> Panel:
        f = Text()
        f.append(f"  {self._toggle_key} Start/Stop  ", style=COLORS["muted"])
        f.append(f"{self._reload_key} Reload  ", style=COLORS["muted"])
        f.append(f"{self._quit_key} Quit  ", style=COLORS["muted"])
        return Panel(Align.center(f), border_style=COLORS["border"])
