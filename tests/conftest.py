"""
Shared fixtures: a recording stand-in for curses windows and a fake
curses module for exercising terminal setup without a tty.
"""
from __future__ import annotations

import curses

import pytest

from pixelterm import Color


class RecordingWindow:
    """curses.window stub that keeps what was painted and replays keys."""

    def __init__(self, rows: int = 30, cols: int = 80, keys: list[int] | None = None):
        self.rows = rows
        self.cols = cols
        self.keys = list(keys or [])
        self.screen: dict[tuple[int, int], tuple[str, int]] = {}
        self.draws: list[tuple[int, int, str, int]] = []
        self.cursor = (0, 0)
        self.refreshes = 0
        self.keypad_calls: list[bool] = []

    # -- output --
    def getmaxyx(self):
        return self.rows, self.cols

    def getyx(self):
        return self.cursor

    def move(self, y, x):
        if not (0 <= y < self.rows and 0 <= x < self.cols):
            raise curses.error("wmove() returned ERR")
        self.cursor = (y, x)

    def addstr(self, y, x, text, attr=0):
        if y * self.cols + x + len(text) >= self.rows * self.cols:
            raise curses.error("addwstr() returned ERR")
        for i, ch in enumerate(text):
            self.screen[(y, x + i)] = (ch, attr)
        self.draws.append((y, x, text, attr))
        self.cursor = (y, x + len(text))

    def erase(self):
        self.screen.clear()
        self.cursor = (0, 0)

    def refresh(self):
        self.refreshes += 1

    # -- input --
    def getch(self):
        if not self.keys:
            return -1
        return self.keys.pop(0)

    def keypad(self, flag):
        self.keypad_calls.append(flag)

    def nodelay(self, flag):
        pass

    def snapshot(self):
        return dict(self.screen)


class FakeColorMap:
    """Maps each color straight to its code so draws are easy to read."""

    def attr(self, color: Color) -> int:
        return int(color)


class FakeCurses:
    """Records the module-level curses calls made by terminal()."""

    def __init__(self):
        self.calls: list[str] = []
        self.window = RecordingWindow()
        self.fail_initscr = False

    def initscr(self):
        self.calls.append("initscr")
        if self.fail_initscr:
            raise curses.error("setupterm: could not find terminal")
        return self.window

    def _recorder(self, name):
        def record(*args):
            self.calls.append(name)
        return record


@pytest.fixture
def window():
    return RecordingWindow()


@pytest.fixture
def cmap():
    return FakeColorMap()


@pytest.fixture
def fake_curses(monkeypatch):
    fake = FakeCurses()
    monkeypatch.setattr(curses, "initscr", fake.initscr)
    for name in ("noecho", "echo", "raw", "noraw", "endwin", "set_escdelay", "curs_set"):
        monkeypatch.setattr(curses, name, fake._recorder(name))
    return fake
