import pytest

from cfbasic.interpreter import Interpreter
from cfbasic.memory import Allocator


class FakeTerminal:
    """Records everything the interpreter asks of its terminal."""

    cols = 40
    rows = 25

    def __init__(self, inputs=()):
        self.output = []
        self.inputs = list(inputs)
        self.prompts = []
        self.plots = []
        self.pokes = []
        self.background = None
        self.cleared = 0

    def write(self, text):
        self.output.append(text)

    def read_line(self, prompt=""):
        self.prompts.append(prompt)
        if not self.inputs:
            return None
        reply = self.inputs.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def plot(self, x, y, char):
        self.plots.append((x, y, char))

    def set_background(self, color):
        self.background = color

    def poke_char(self, address, value):
        self.pokes.append((address, value))

    def clear(self):
        self.cleared += 1

    @property
    def text(self):
        return "".join(self.output)


@pytest.fixture
def terminal():
    return FakeTerminal()


@pytest.fixture
def memory():
    return Allocator()


@pytest.fixture
def interpreter(terminal, memory):
    return Interpreter(terminal, memory)


@pytest.fixture
def run(interpreter, terminal):
    """Stores ``lines``, RUNs them and returns everything written."""

    def run(*lines, inputs=()):
        terminal.inputs.extend(inputs)
        for line in lines:
            interpreter.execute(line)
        interpreter.execute("RUN")
        return terminal.text

    return run
