#!/usr/bin/env python3
"""
  p i x e l t e r m
  A tiny pixel-grid editor for the terminal.

  Paints a fixed grid of solid blocks into the alternate screen. Walk the
  cursor around with the arrow keys and tap space to step the cell under
  it through a six-color palette:

    dark grey → dark red → dark green → dark blue → dark yellow → dark magenta

  Controls:
    arrows    move cursor        SPACE     cycle color
    q / ESC   quit               Ctrl-C    quit (raw mode eats SIGINT)

  Nothing is saved. Pass --journal PATH to record every edit as CSV.
"""

from __future__ import annotations

import argparse
import curses
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum, IntEnum, auto
from pathlib import Path
from typing import IO, ClassVar

import numpy as np
from numpy.typing import NDArray

logger = logging.getLogger("pixelterm")


# ── Palette ─────────────────────────────────────────────────────────────
# Values are the xterm color indices curses hands to init_pair().

class Color(IntEnum):
    BLACK = 0
    DARK_RED = 1
    DARK_GREEN = 2
    DARK_YELLOW = 3
    DARK_BLUE = 4
    DARK_MAGENTA = 5
    DARK_CYAN = 6
    GREY = 7
    DARK_GREY = 8
    RED = 9
    GREEN = 10
    YELLOW = 11
    BLUE = 12
    MAGENTA = 13
    CYAN = 14
    WHITE = 15
    RGB = -1  # true-color sentinel, never a cell value


PALETTE: tuple[Color, ...] = (
    Color.DARK_GREY,
    Color.DARK_RED,
    Color.DARK_GREEN,
    Color.DARK_BLUE,
    Color.DARK_YELLOW,
    Color.DARK_MAGENTA,
)

_NEXT: dict[Color, Color] = dict(zip(PALETTE, PALETTE[1:] + PALETTE[:1]))

# ── Defaults ────────────────────────────────────────────────────────────
DEFAULT_WIDTH = 50
DEFAULT_LENGTH = 20
DEFAULT_BACKGROUND = Color.DARK_GREY

BLOCK = "\u2588"  # █  one pixel

# ── Keys ────────────────────────────────────────────────────────────────
KEY_ESC = 27
KEY_CTRL_C = 3
QUIT_KEYS: frozenset[int] = frozenset({KEY_ESC, KEY_CTRL_C, ord("q"), ord("Q")})
PAINT_KEYS: frozenset[int] = frozenset({ord(" ")})
MOVES: dict[int, tuple[int, int]] = {
    curses.KEY_UP: (0, -1),
    curses.KEY_DOWN: (0, 1),
    curses.KEY_LEFT: (-1, 0),
    curses.KEY_RIGHT: (1, 0),
}

HELP = "arrows move  spc paint  q quit"


class TerminalError(RuntimeError):
    """The terminal could not be set up, or stopped delivering input."""


def _cell_color(value: int) -> Color:
    """Coerce *value* to a storable palette color, rejecting the RGB sentinel."""
    color = Color(value)
    if color == Color.RGB:
        raise ValueError("no rgb values allowed in the pixel grid")
    return color


def next_color(color: Color) -> Color:
    """The palette entry after *color*.

    Colors outside the cycle fall back to the first entry; the RGB
    sentinel is a contract violation and raises.
    """
    if color == Color.RGB:
        raise ValueError("no rgb values allowed in the pixel grid")
    return _NEXT.get(color, PALETTE[0])


# ═══════════════════════════════════════════════════════════════════════
#  The canvas
# ═══════════════════════════════════════════════════════════════════════

class PixelGrid:
    """
    A fixed width x length canvas of palette colors.

    Cells live in one flat array addressed row-major (``y * width + x``),
    origin top-left. The size never changes after construction.
    """

    def __init__(
        self,
        width: int,
        length: int,
        background: Color = DEFAULT_BACKGROUND,
    ) -> None:
        if width < 1 or length < 1:
            raise ValueError(f"grid must be at least 1x1, got {width}x{length}")
        self.width: int = width
        self.length: int = length
        self.background: Color = _cell_color(background)
        self.cells: NDArray[np.int16] = np.full(
            width * length, int(self.background), dtype=np.int16
        )

    def __len__(self) -> int:
        return int(self.cells.size)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.length

    def index(self, x: int, y: int) -> int:
        # numpy would happily wrap negative indices, so check explicitly
        if not self.in_bounds(x, y):
            raise IndexError(
                f"({x}, {y}) is outside the {self.width}x{self.length} grid"
            )
        return y * self.width + x

    def get_color(self, x: int, y: int) -> Color:
        return Color(int(self.cells[self.index(x, y)]))

    def cycle_color(self, x: int, y: int) -> Color:
        """Step the cell at (x, y) to the next palette color and return it."""
        i = self.index(x, y)
        color = next_color(Color(int(self.cells[i])))
        self.cells[i] = int(color)
        return color

    def rows(self) -> NDArray[np.int16]:
        """2-D (length, width) view sharing storage with ``cells``."""
        return self.cells.reshape(self.length, self.width)

    def counts(self) -> dict[Color, int]:
        codes, n = np.unique(self.cells, return_counts=True)
        return {Color(c): k for c, k in zip(codes.tolist(), n.tolist())}


@dataclass
class Cursor:
    """Editing position, always kept inside the grid."""

    x: int = 0
    y: int = 0

    def move(self, dx: int, dy: int, grid: PixelGrid) -> None:
        self.x = max(0, min(self.x + dx, grid.width - 1))
        self.y = max(0, min(self.y + dy, grid.length - 1))


# ═══════════════════════════════════════════════════════════════════════
#  Edit journal
# ═══════════════════════════════════════════════════════════════════════

class EditJournal:
    """Writes each cell edit to CSV so a session can be inspected later."""

    HEADER: ClassVar[str] = "edit,time_s,x,y,color\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()
        self.count: int = 0

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError as exc:
            logger.warning("journal disabled, cannot open %s: %s", self._path, exc)
            self._fh = None

    def log(self, x: int, y: int, color: Color) -> None:
        if self._fh is None:
            return
        self.count += 1
        t = time.monotonic() - self._t0
        self._fh.write(f"{self.count},{t:.2f},{x},{y},{color.name.lower()}\n")
        if self.count % 10 == 0:
            self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError as exc:
                logger.warning("error closing journal %s: %s", self._path, exc)
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Color management
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class ColorMap:
    """One solid curses color pair (fg == bg) per palette color."""

    _pairs: dict[Color, int] = field(default_factory=dict)

    def setup(self) -> None:
        if not curses.has_colors():
            logger.warning("terminal has no color support, drawing monochrome")
            return
        curses.start_color()

        max_pairs = curses.COLOR_PAIRS - 1
        pair_id = 1
        for color in Color:
            if color == Color.RGB:
                continue
            if pair_id > max_pairs:
                break
            # 8-color terminals: fold the bright half onto the base eight
            code = int(color) if int(color) < curses.COLORS else int(color) % 8
            curses.init_pair(pair_id, code, code)
            self._pairs[color] = pair_id
            pair_id += 1
        logger.debug("allocated %d color pairs (COLORS=%d)", len(self._pairs), curses.COLORS)

    def pair(self, color: Color) -> int:
        return self._pairs.get(color, 0)

    def attr(self, color: Color) -> int:
        return curses.color_pair(self.pair(color))


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

def draw_status(stdscr: curses.window, grid: PixelGrid, status: str) -> None:
    """Paint the status line on the row just below the grid, if it fits."""
    max_y, max_x = stdscr.getmaxyx()
    if not status or grid.length >= max_y or max_x < 2:
        return
    # Stop one column short: writing the last cell of a window errors.
    stdscr.addstr(grid.length, 0, status[: max_x - 1].ljust(max_x - 1), curses.A_DIM)


def render(
    stdscr: curses.window,
    grid: PixelGrid,
    cmap: ColorMap,
    status: str = "",
) -> None:
    """Full redraw of every cell, leaving the cursor where it was.

    curses errors are not caught here; a failed write ends the session.
    """
    # erase() homes the cursor, so remember it first
    cur_y, cur_x = stdscr.getyx()
    stdscr.erase()

    codes = grid.cells.tolist()
    attrs = {code: cmap.attr(Color(code)) for code in set(codes)}

    _addstr = stdscr.addstr
    width = grid.width
    for i, code in enumerate(codes):
        _addstr(i // width, i % width, BLOCK, attrs[code])

    draw_status(stdscr, grid, status)
    stdscr.move(cur_y, cur_x)
    stdscr.refresh()


# ═══════════════════════════════════════════════════════════════════════
#  Editor loop
# ═══════════════════════════════════════════════════════════════════════

class EditorState(Enum):
    RUNNING = auto()
    TERMINATED = auto()


class Editor:
    """
    Input state machine for one editing session.

    Blocks on a key, then either moves the cursor (clamped to the grid),
    cycles the color under it and redraws everything, or quits. Every
    other key is ignored.
    """

    def __init__(
        self,
        grid: PixelGrid,
        cmap: ColorMap,
        journal: EditJournal | None = None,
    ) -> None:
        self.grid = grid
        self.cmap = cmap
        self.journal = journal
        self.cursor = Cursor()
        self.state = EditorState.RUNNING
        self.edits: int = 0

    def status_line(self) -> str:
        x, y = self.cursor.x, self.cursor.y
        color = self.grid.get_color(x, y).name.lower().replace("_", " ")
        return f"  {x},{y}  {color}  edits {self.edits}   {HELP}  "

    def redraw(self, stdscr: curses.window) -> None:
        render(stdscr, self.grid, self.cmap, self.status_line())

    def run(self, stdscr: curses.window) -> None:
        stdscr.move(self.cursor.y, self.cursor.x)
        self.redraw(stdscr)
        while self.state is EditorState.RUNNING:
            key = stdscr.getch()
            if key == -1:
                # blocking mode only returns -1 when the read itself failed
                raise TerminalError("input read failed")
            self.handle_key(stdscr, key)
        logger.info("session ended after %d edits", self.edits)

    def handle_key(self, stdscr: curses.window, key: int) -> None:
        if self.state is not EditorState.RUNNING:
            return
        if key in QUIT_KEYS:
            self.state = EditorState.TERMINATED
        elif key in PAINT_KEYS:
            self.paint()
            self.redraw(stdscr)
        elif key in MOVES:
            dx, dy = MOVES[key]
            self.cursor.move(dx, dy, self.grid)
            draw_status(stdscr, self.grid, self.status_line())
            stdscr.move(self.cursor.y, self.cursor.x)
            stdscr.refresh()

    def paint(self) -> Color:
        x, y = self.cursor.x, self.cursor.y
        color = self.grid.cycle_color(x, y)
        self.edits += 1
        logger.debug("cell (%d, %d) -> %s", x, y, color.name)
        if self.journal is not None:
            self.journal.log(x, y, color)
        return color


# ═══════════════════════════════════════════════════════════════════════
#  Terminal session
# ═══════════════════════════════════════════════════════════════════════

@contextmanager
def terminal(width: int, length: int) -> Iterator[curses.window]:
    """Alternate screen + raw mode for the duration of the block.

    The terminal is restored exactly once however the block exits.
    The window must fit the grid plus one status row.
    """
    try:
        stdscr = curses.initscr()
    except curses.error as exc:
        raise TerminalError(f"cannot initialise terminal: {exc}") from exc

    try:
        curses.noecho()
        curses.raw()
        stdscr.keypad(True)
        stdscr.nodelay(False)
        curses.set_escdelay(25)
        try:
            curses.curs_set(1)
        except curses.error:
            logger.debug("terminal cannot show a cursor")

        max_y, max_x = stdscr.getmaxyx()
        if max_y < length + 1 or max_x < width:
            raise TerminalError(
                f"terminal is {max_x}x{max_y}, need at least {width}x{length + 1}"
            )
        logger.debug("terminal %dx%d acquired", max_x, max_y)
        yield stdscr
    finally:
        stdscr.keypad(False)
        curses.noraw()
        curses.echo()
        curses.endwin()
        logger.debug("terminal released")


# ═══════════════════════════════════════════════════════════════════════
#  Entry point
# ═══════════════════════════════════════════════════════════════════════

def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {text!r}") from None
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def _color_arg(text: str) -> Color:
    name = text.strip().upper().replace("-", "_").replace(" ", "_")
    if name not in Color.__members__ or name == "RGB":
        choices = ", ".join(c.name.lower() for c in Color if c != Color.RGB)
        raise argparse.ArgumentTypeError(f"unknown color {text!r} (choose from {choices})")
    return Color[name]


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="pixelterm", description="Paint a grid of colored blocks in the terminal"
    )
    parser.add_argument("--width", type=_positive_int, default=DEFAULT_WIDTH,
                        help=f"Grid width in cells (default: {DEFAULT_WIDTH})")
    parser.add_argument("--length", type=_positive_int, default=DEFAULT_LENGTH,
                        help=f"Grid height in cells (default: {DEFAULT_LENGTH})")
    parser.add_argument("--background", type=_color_arg, default=DEFAULT_BACKGROUND,
                        help="Starting color of every cell (default: dark_grey)")
    parser.add_argument("--journal", type=Path, default=None,
                        help="Record every edit to this CSV file")
    parser.add_argument("--log-file", type=Path, default=None,
                        help="Write diagnostic log records to this file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Log debug records (needs --log-file)")
    return parser.parse_args(argv)


def configure_logging(log_file: Path | None, verbose: bool = False) -> None:
    # curses owns stdout/stderr while running, so log only to a file
    if log_file is None:
        if not logger.handlers:
            logger.addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        filename=str(log_file),
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_file, args.verbose)

    grid = PixelGrid(args.width, args.length, args.background)
    journal: EditJournal | None = None
    if args.journal is not None:
        journal = EditJournal(args.journal)
        journal.open()

    logger.info("starting %dx%d grid on %s", grid.width, grid.length,
                grid.background.name.lower())
    try:
        with terminal(grid.width, grid.length) as stdscr:
            cmap = ColorMap()
            cmap.setup()
            Editor(grid, cmap, journal).run(stdscr)
    except TerminalError as exc:
        logger.error("%s", exc)
        print(f"pixelterm: {exc}", file=sys.stderr)
        return 1
    except curses.error as exc:
        logger.error("terminal I/O failed: %s", exc)
        print(f"pixelterm: terminal I/O failed: {exc}", file=sys.stderr)
        return 1
    finally:
        if journal is not None:
            journal.close()
    return 0


def cli() -> None:
    try:
        raise SystemExit(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    cli()
