"""Terminal collaborator: output sink, line input and the emulated text screen.

The screen keeps a character grid mirroring what was written so POKE/PLOT/DRAW
can address cells, and draws through a ``rich`` console (cursor moves via
``rich.control.Control``, background colour via ``rich.style.Style``).
"""
import logging
from typing import Optional

from rich.console import Console
from rich.control import Control
from rich.style import Style

from cfbasic.memory import Allocator

logger = logging.getLogger(__name__)

# C64 palette, index = colour code 0-15
PALETTE = (
    "black", "bright_white", "red", "bright_cyan",
    "magenta", "green", "blue", "bright_yellow",
    "yellow", "bright_red", "bright_red", "bright_black",
    "bright_black", "bright_green", "bright_blue", "bright_black",
)

TEXT_SCREEN_BASE = 1024
TEXT_SCREEN_COLS = 40
TEXT_SCREEN_ROWS = 25
TEXT_SCREEN_END = TEXT_SCREEN_BASE + TEXT_SCREEN_COLS * TEXT_SCREEN_ROWS
BACKGROUND_ADDRESS = 53281
TAB_WIDTH = 8


def screen_code_to_char(code: int) -> str:
    """Commodore screen code -> printable character."""
    if 1 <= code <= 31:
        return chr(code + 64)
    if 32 <= code <= 63:
        return chr(code)
    if 64 <= code <= 95:
        return chr(code + 32)
    if 96 <= code <= 127:
        return chr(code)
    if code == 0:
        return "@"
    return "?"


class Screen:
    def __init__(self, console: Console = None, memory: Allocator = None,
                 rows: int = None, cols: int = None):
        self.console = console or Console(highlight=False)
        width, height = self.console.size
        self.rows = rows or height
        self.cols = cols or width
        self.memory = memory
        self._block = memory.allocate(self.rows * self.cols) if memory else None
        self.buffer = self._block.data if self._block else bytearray(self.rows * self.cols)
        self.buffer[:] = b" " * len(self.buffer)
        self.cursor_row = 0
        self.cursor_col = 0
        self.style = Style()

    # -- output sink --------------------------------------------------

    def write(self, text: str):
        self._track(text)
        self.console.out(text, style=self.style, highlight=False, end="")
        self.console.file.flush()

    def _put(self, row: int, col: int, char: str):
        self.buffer[row * self.cols + col] = ord(char) if ord(char) < 256 else ord("?")

    def _track(self, text: str):
        for char in text:
            if char == "\n":
                self.cursor_col = 0
                self.cursor_row += 1
            elif char == "\r":
                self.cursor_col = 0
            elif char == "\t":
                self.cursor_col = (self.cursor_col + TAB_WIDTH) & ~(TAB_WIDTH - 1)
            else:
                if self.cursor_row >= self.rows:
                    self.scroll()
                self._put(self.cursor_row, self.cursor_col, char)
                self.cursor_col += 1

            if self.cursor_col >= self.cols:
                self.cursor_col = 0
                self.cursor_row += 1
            if self.cursor_row >= self.rows:
                self.scroll()

    def scroll(self):
        self.buffer[:-self.cols] = self.buffer[self.cols:]
        self.buffer[-self.cols:] = b" " * self.cols
        self.cursor_row = max(self.cursor_row - 1, 0)

    def clear(self):
        self.buffer[:] = b" " * len(self.buffer)
        self.cursor_row = 0
        self.cursor_col = 0
        self.console.clear()

    # -- input source -------------------------------------------------

    def read_line(self, prompt: str = "") -> Optional[str]:
        """One line of input without its terminator; ``None`` at end of input."""
        try:
            line = self.console.input(prompt, markup=False)
        except EOFError:
            return None
        self._track(prompt + line + "\n")
        return line

    # -- screen primitives --------------------------------------------

    def plot(self, x: int, y: int, char: str):
        if not (0 <= x < self.cols and 0 <= y < self.rows) or not char:
            return
        self._put(y, x, char[0])
        if self.console.is_terminal:
            self.console.control(Control.move_to(x, y))
            self.console.out(char[0], style=self.style, highlight=False, end="")
            self.console.control(Control.move_to(self.cursor_col, self.cursor_row))

    def set_background(self, color: int):
        self.style = Style(bgcolor=PALETTE[color & 15])
        logger.debug(f"Background colour {color & 15} ({PALETTE[color & 15]})")

    def poke_char(self, address: int, value: int):
        offset = address - TEXT_SCREEN_BASE
        if not 0 <= offset < TEXT_SCREEN_COLS * TEXT_SCREEN_ROWS:
            return
        row, col = divmod(offset, TEXT_SCREEN_COLS)
        # Scale the 40x25 text screen onto the real grid
        self.plot(col * self.cols // TEXT_SCREEN_COLS, row * self.rows // TEXT_SCREEN_ROWS,
                  screen_code_to_char(value & 0xFF))

    def row_text(self, row: int) -> str:
        return self.buffer[row * self.cols:(row + 1) * self.cols].decode("latin-1")

    def close(self):
        if self._block is not None:
            self.memory.release(self._block)
            self._block = None


__all__ = ["Screen", "PALETTE", "screen_code_to_char", "TEXT_SCREEN_BASE", "TEXT_SCREEN_END", "BACKGROUND_ADDRESS"]
