# ColorSeeker - watch a pixel strip, click the matching picture
# Color there -> click Good.png. Color gone -> click bad.png. Forever, until F9.

import argparse
import sys
import time
from pathlib import Path
from typing import Optional

import keyboard

from colorseeker import (
    AppConfig, AutomationController, ConfigInvalid, Dashboard, Level,
    ScreenCapture, StatusChannel, load_config, save_config,
)
from colorseeker.human_input import ClickActuator


class ColorSeekerApp:
    # Shell around the controller: config, dashboard, hotkeys

    def __init__(self, config_path: str = "config.yaml", plain: bool = False, autostart: bool = False):
        self.config_path = config_path
        self.plain = plain
        self.autostart = autostart

        # State Flags (flipped from the keyboard hook thread)
        self.alive: bool = True
        self.toggle_requested: bool = False
        self.reload_requested: bool = False

        # Components (Lazy loaded)
        self.cfg: Optional[AppConfig] = None
        self.dash: Optional[Dashboard] = None
        self.channel: Optional[StatusChannel] = None
        self.controller: Optional[AutomationController] = None

    def bootstrap(self):
        # 1. Config First
        if not Path(self.config_path).exists():
            save_config(AppConfig(), self.config_path)

        try:
            self.cfg = load_config(self.config_path)
        except ConfigInvalid as e:
            print(f"CRITICAL: Config failed to load: {e}")
            sys.exit(1)

        if self.plain:
            self.cfg.ui.plain = True

        # 2. UI
        self.dash = Dashboard(
            config=self.cfg,
            refresh_ms=self.cfg.ui.refresh_rate_ms,
            max_lines=self.cfg.ui.log_capacity,
            toggle_key=self.cfg.hotkeys.toggle_run,
            reload_key=self.cfg.hotkeys.reload,
            quit_key=self.cfg.hotkeys.quit,
            plain=self.cfg.ui.plain,
        )
        self.dash.start()

        # 3. Core Systems
        self.channel = StatusChannel(capacity=self.cfg.ui.log_capacity)
        self.controller = AutomationController(
            capture_source=ScreenCapture(),
            actuator=ClickActuator(settle_ms=self.cfg.timing.click_settle_ms),
            channel=self.channel,
        )

        self._check_images()

        # 4. Hotkeys
        self._bind_hotkeys()

        self.dash.note(f"Config loaded from {self.config_path}", Level.SUCCESS)
        self.dash.note(f"READY. Press {self.cfg.hotkeys.toggle_run.upper()} to START.", Level.WARNING)

    def _check_images(self):
        for path in (self.cfg.matching.good_image, self.cfg.matching.bad_image):
            if not Path(path).exists():
                self.dash.note(f"Image not found: {path}. Lookups will fail until it exists.", Level.WARNING)

    def _bind_hotkeys(self):
        keyboard.add_hotkey(self.cfg.hotkeys.toggle_run, self._request_toggle)
        keyboard.add_hotkey(self.cfg.hotkeys.reload, self._request_reload)
        keyboard.add_hotkey(self.cfg.hotkeys.quit, self._quit)

    def _request_toggle(self):
        self.toggle_requested = True

    def _request_reload(self):
        self.reload_requested = True

    def _quit(self):
        self.alive = False

    def handle_toggle(self):
        self.toggle_requested = False
        if self.controller.running:
            self.controller.stop()
            return
        try:
            self.controller.start(self.cfg)
        except ConfigInvalid as e:
            self.dash.note(f"Cannot start: {e}", Level.ERROR)

    def handle_reload(self):
        self.reload_requested = False
        if self.controller.running:
            self.dash.note("Stop automation before reloading config", Level.WARNING)
            return
        try:
            plain = self.cfg.ui.plain
            self.cfg = load_config(self.config_path)
            self.cfg.ui.plain = plain
            self.dash.set_config(self.cfg)
            self.controller = AutomationController(
                capture_source=ScreenCapture(),
                actuator=ClickActuator(settle_ms=self.cfg.timing.click_settle_ms),
                channel=self.channel,
            )
            self._check_images()
            self.dash.note("Config reloaded", Level.SUCCESS)
        except ConfigInvalid as e:
            self.dash.note(f"Reload failed: {e}", Level.ERROR)

    def pump(self):
        # Move events from the channel to the screen
        self.dash.set_running(self.controller.running)
        self.dash.set_dropped(self.channel.dropped)
        self.dash.feed(self.channel.drain())

    def run(self):
        self.bootstrap()

        if self.autostart:
            self.toggle_requested = True

        try:
            while self.alive:
                if self.toggle_requested:
                    self.handle_toggle()
                if self.reload_requested:
                    self.handle_reload()
                self.pump()
                time.sleep(self.cfg.ui.refresh_rate_ms / 1000.0)
        except KeyboardInterrupt:
            pass
        finally:
            self.shutdown()

    def shutdown(self):
        if self.controller:
            self.controller.stop()
        keyboard.unhook_all()
        if self.dash:
            if self.channel:
                self.pump()
            self.dash.stop()
        print("\nExiting ColorSeeker...")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Watch a pixel strip for a color and click the matching reference image.")
    parser.add_argument("--config", default="config.yaml", help="Path to config YAML (created with defaults if missing)")
    parser.add_argument("--plain", action="store_true", help="Print events line by line instead of the live dashboard")
    parser.add_argument("--autostart", action="store_true", help="Start automation right away instead of waiting for the hotkey")
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args()
    ColorSeekerApp(config_path=args.config, plain=args.plain, autostart=args.autostart).run()
