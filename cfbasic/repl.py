"""Interactive driver: banner, prompt loop and error reporting."""
import logging

from cfbasic.config import VERSION
from cfbasic.interpreter import Interpreter
from cfbasic.interrupts import break_on_sigint
from cfbasic.screen import Screen

logger = logging.getLogger(__name__)

TITLE = f"**** CFBasic V{VERSION} ****"
SUBTITLE = "A Microsoft BASIC Interpreter for Modern Systems"


class Repl:
    def __init__(self, interpreter: Interpreter, screen: Screen):
        self.interpreter = interpreter
        self.screen = screen

    def banner(self):
        width = self.screen.cols
        self.screen.write(TITLE.center(width).rstrip() + "\n")
        self.screen.write(SUBTITLE.center(width).rstrip() + "\n\n")
        self.screen.write(self.interpreter.memory.describe().upper() + "\n\n")
        self.screen.write("READY.\n")

    def report_error(self):
        report = self.interpreter.take_error()
        if report is not None:
            self.screen.write(report + "\n")

    def handle(self, line: str):
        """Runs one input line with SIGINT routed to the interpreter's break flag."""
        with break_on_sigint(self.interpreter.break_flag):
            immediate = self.interpreter.execute(line)
        self.report_error()
        if immediate and not self.interpreter.exit_requested:
            self.screen.write("READY.\n")

    def loop(self):
        while not self.interpreter.exit_requested:
            try:
                line = self.screen.read_line()
            except KeyboardInterrupt:
                self.screen.write("\n?BREAK\nREADY.\n")
                continue
            if line is None:
                logger.debug("End of input")
                break
            if not line.strip():
                continue
            self.handle(line)

    def run(self):
        self.banner()
        self.loop()


__all__ = ["Repl", "TITLE", "SUBTITLE"]
