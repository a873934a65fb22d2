import io

import pytest
from rich.console import Console

from cfbasic.memory import Allocator
from cfbasic.screen import PALETTE, Screen, screen_code_to_char


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def screen(output):
    return Screen(Console(file=output, width=40, height=25, highlight=False))


def test_write_reaches_console_and_grid(screen, output):
    screen.write("HELLO")
    assert output.getvalue() == "HELLO"
    assert screen.row_text(0).startswith("HELLO ")
    assert (screen.cursor_row, screen.cursor_col) == (0, 5)


def test_newline_and_carriage_return(screen):
    screen.write("AB\nCD\rX")
    assert screen.row_text(0).rstrip() == "AB"
    assert screen.row_text(1).rstrip() == "XD"
    assert (screen.cursor_row, screen.cursor_col) == (1, 1)


def test_tab_moves_to_next_stop(screen):
    screen.write("A\tB")
    assert screen.row_text(0).rstrip() == "A       B"


def test_long_lines_wrap(screen):
    screen.write("X" * 45)
    assert screen.row_text(0) == "X" * 40
    assert screen.row_text(1).rstrip() == "X" * 5


def test_screen_scrolls(screen):
    for i in range(26):
        screen.write(f"LINE {i}\n")
    assert screen.row_text(0).rstrip() == "LINE 2"
    assert screen.row_text(23).rstrip() == "LINE 25"
    assert screen.cursor_row == 24


def test_plot_ignores_out_of_bounds(screen):
    screen.plot(3, 2, "#")
    screen.plot(-1, 0, "#")
    screen.plot(40, 0, "#")
    screen.plot(0, 25, "#")
    assert screen.row_text(2)[3] == "#"
    assert screen.buffer.count(ord("#")) == 1


def test_poke_char_maps_text_screen(screen):
    screen.poke_char(1024, 1)
    screen.poke_char(1024 + 41, 2)
    screen.poke_char(5000, 3)
    assert screen.row_text(0)[0] == "A"
    assert screen.row_text(1)[1] == "B"


def test_poke_char_scales_to_screen_size(output):
    screen = Screen(Console(file=output, width=80, height=50))
    screen.poke_char(1024 + 40 + 1, 1)
    assert screen.row_text(2)[2] == "A"


def test_screen_codes():
    assert screen_code_to_char(0) == "@"
    assert screen_code_to_char(1) == "A"
    assert screen_code_to_char(32) == " "
    assert screen_code_to_char(49) == "1"
    assert screen_code_to_char(65) == "a"
    assert screen_code_to_char(200) == "?"


def test_background(screen):
    screen.set_background(2)
    assert screen.style.bgcolor.name == PALETTE[2] == "red"
    screen.set_background(16)
    assert screen.style.bgcolor.name == PALETTE[0]


def test_clear(screen):
    screen.write("TEXT\nMORE")
    screen.clear()
    assert screen.row_text(0).strip() == ""
    assert (screen.cursor_row, screen.cursor_col) == (0, 0)


def test_read_line(screen, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda *args: "10 PRINT 1")
    assert screen.read_line("? ") == "10 PRINT 1"
    assert screen.row_text(0).rstrip() == "? 10 PRINT 1"


def test_read_line_end_of_input(screen, monkeypatch):
    def eof(*args):
        raise EOFError()

    monkeypatch.setattr("builtins.input", eof)
    assert screen.read_line() is None


def test_grid_is_charged_to_allocator(output):
    memory = Allocator()
    screen = Screen(Console(file=output, width=40, height=25), memory)
    assert memory.used == 40 * 25 + 8
    screen.close()
    assert memory.used == 0
