"""Execution engine.

Lines typed without a number run in immediate mode against the live variable
table; RUN walks the stored program in line-number order. Each statement
handler consumes its tokens from the current :class:`TokenStream` and returns
``None`` to fall through, ``('END',)`` to stop, or ``(kind, position)`` to
continue at another point of the program (GOTO, GOSUB, RETURN, loop ends).
"""
import logging
import re
from typing import List, Optional, Tuple

from cfbasic import storage
from cfbasic.errors import (
    BasicError, BasicSyntaxError, BreakInterrupt, DomainError, StackError, TypeMismatchError,
)
from cfbasic.evaluator import ExpressionEvaluator
from cfbasic.functions import FunctionLibrary, format_value
from cfbasic.interrupts import BreakFlag
from cfbasic.lexer import Lexer, TokenStream
from cfbasic.memory import Allocator
from cfbasic.program import ProgramStore, split_line_number
from cfbasic.screen import BACKGROUND_ADDRESS, TEXT_SCREEN_BASE, TEXT_SCREEN_END
from cfbasic.system import (
    CallFrame, DoFrame, ForFrame, InterpreterState, RepeatFrame, WhileFrame, is_string_name,
)
from cfbasic.type import Position, TokenType

logger = logging.getLogger(__name__)

PRINT_ZONE = 14

HELP_TEXT = (
    "AVAILABLE COMMANDS:\n"
    " LIST, RUN, NEW, LOAD, SAVE, EXIT, HELP\n"
    " PRINT, INPUT, LET, GOTO, GOSUB, RETURN\n"
    " IF...THEN...ELSE, FOR...NEXT, DO...LOOP\n"
    " WHILE...WEND, REPEAT...UNTIL, REM, POKE\n"
    " GRAPHICS: PLOT, DRAW\n"
    " FUNCTIONS: PEEK, ABS, INT, RND, SIN, COS, TAN, SQR\n"
    "            LEN, LEFT$, RIGHT$, MID$, STR$, VAL, CHR$, ASC\n"
)

_INPUT_NUMBER = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')


def split_input(line: str) -> List[str]:
    """Splits an INPUT reply on commas; a field wrapped in quotes keeps its commas and blanks."""
    fields = []
    i = 0
    while True:
        while i < len(line) and line[i] == ' ':
            i += 1
        if i < len(line) and line[i] == '"':
            end = line.find('"', i + 1)
            end = len(line) if end < 0 else end
            fields.append(line[i + 1:end])
            comma = line.find(',', end)
        else:
            comma = line.find(',', i)
            fields.append(line[i:] if comma < 0 else line[i:comma])
            fields[-1] = fields[-1].strip()
        if comma < 0:
            return fields
        i = comma + 1


def parse_input_number(text: str) -> float:
    text = text.strip()
    if not text:
        return 0.0
    if not _INPUT_NUMBER.match(text):
        raise TypeMismatchError()
    return float(text)


def line_points(x1: int, y1: int, x2: int, y2: int):
    """Cells of the Bresenham line from (x1, y1) to (x2, y2), both ends included."""
    dx, dy = abs(x2 - x1), -abs(y2 - y1)
    sx = 1 if x1 < x2 else -1
    sy = 1 if y1 < y2 else -1
    err = dx + dy
    while True:
        yield x1, y1
        if x1 == x2 and y1 == y2:
            return
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x1 += sx
        if e2 <= dx:
            err += dx
            y1 += sy


class Interpreter:
    def __init__(self, terminal, memory: Allocator = None, break_flag: BreakFlag = None,
                 functions: FunctionLibrary = None):
        self.terminal = terminal
        self.memory = memory or Allocator()
        self.state = InterpreterState(self.memory)
        self.program = ProgramStore(self.memory)
        self.lexer = Lexer(self.memory)
        self.evaluator = ExpressionEvaluator(self.state.variables, self.memory, functions, peek=self.peek)
        self.break_flag = break_flag or BreakFlag()
        self._direct_text = ""
        self._scan_cache = {}
        self._scan_version = None

        self.commands = {
            TokenType.LIST: self.command_list,
            TokenType.RUN: self.command_run,
            TokenType.NEW: self.command_new,
            TokenType.LOAD: self.command_load,
            TokenType.SAVE: self.command_save,
            TokenType.EXIT: self.command_exit,
            TokenType.HELP: self.command_help,
            TokenType.MEMCHK: self.command_memchk,
            TokenType.CLR: self.command_clr,
        }
        self.handlers = {
            TokenType.PRINT: self.execute_print,
            TokenType.INPUT: self.execute_input,
            TokenType.LET: self.execute_let,
            TokenType.DIM: self.execute_dim,
            TokenType.GOTO: self.execute_goto,
            TokenType.GOSUB: self.execute_gosub,
            TokenType.RETURN: self.execute_return,
            TokenType.IF: self.execute_if,
            TokenType.FOR: self.execute_for,
            TokenType.NEXT: self.execute_next,
            TokenType.WHILE: self.execute_while,
            TokenType.WEND: self.execute_wend,
            TokenType.REPEAT: self.execute_repeat,
            TokenType.UNTIL: self.execute_until,
            TokenType.DO: self.execute_do,
            TokenType.LOOP: self.execute_loop,
            TokenType.END: self.execute_end,
            TokenType.REM: self.execute_rem,
            TokenType.POKE: self.execute_poke,
            TokenType.PLOT: self.execute_plot,
            TokenType.DRAW: self.execute_draw,
        }

    # -- driver interface ---------------------------------------------

    def execute(self, line: str) -> bool:
        """Handles one line typed at the prompt.

        Numbered lines are stored (or deleted when empty); anything else runs
        as an immediate command. Errors land in the pending-error slot. Returns
        True for immediate commands, after which the driver prints READY.
        """
        try:
            number, text = split_line_number(line)
            if number is not None:
                self.program.set_line(number, text)
                return False
        except BasicError as e:
            self.state.position = None
            self._record(e)
            return True

        try:
            self.execute_immediate(line)
        except BasicError as e:
            self._record(e)
        finally:
            self.state.drop_immediate_frames()
        return True

    def execute_immediate(self, line: str):
        self.state.position = Position(None, 0)
        with self.lexer.stream(line) as stream:
            command = self.commands.get(stream.peek().type)
            if command is not None:
                stream.advance()
                command(stream)
                return
        self._direct_text = line
        self._execute(Position(None, 0))

    def take_error(self) -> Optional[str]:
        """Report of the pending error (``?... ERROR``), clearing the slot."""
        return self.state.take_error()

    @property
    def exit_requested(self) -> bool:
        return self.state.exit_requested

    def run_file(self, name: str) -> bool:
        """LOAD followed by RUN, as used for a program given on the command line."""
        try:
            self.load(name)
            self.run()
        except BasicError as e:
            self._record(e)
            return False
        return True

    def _record(self, error: BasicError):
        if error.line_number is None and self.state.current_line is not None:
            error.line_number = self.state.current_line
        if isinstance(error, BreakInterrupt):
            self.break_flag.clear()
        logger.debug(f"{type(error).__name__}: {error}")
        self.state.set_error(error)

    # -- program-level operations -------------------------------------

    def run(self, start: int = None, break_flag: BreakFlag = None):
        if break_flag is not None:
            self.break_flag = break_flag
        self.state.reset()
        first = self.program.first_line() if start is None else start
        if first is None:
            logger.info("No program to execute")
            return
        self.program.lookup(first)
        logger.debug(f"RUN from line {first}")
        self._execute(Position(first, 0))

    def new(self):
        self.program.clear()
        self.state.reset()
        logger.debug("NEW: program and variables cleared")

    def load(self, name: str):
        lines = storage.load(name)
        self.new()
        for number, text in lines:
            self.program.set_line(number, text)

    def save(self, name: str):
        storage.save(name, self.program.get_ordered())

    def list_program(self, start: int = 0, end: int = -1):
        for number, text in self.program.get_ordered(start, end):
            self.terminal.write(f"{number} {text}\n")

    def peek(self, address: int) -> int:
        return self.state.ram.get(address, 0)

    def poke(self, address: int, value: int):
        if not 0 <= address <= 0xFFFF:
            return
        value &= 0xFF
        self.state.ram[address] = value
        if TEXT_SCREEN_BASE <= address < TEXT_SCREEN_END:
            self.terminal.poke_char(address, value)
        elif address == BACKGROUND_ADDRESS:
            self.terminal.set_background(value & 15)

    # -- immediate commands -------------------------------------------

    def _expect_end(self, stream: TokenStream):
        if not stream.check(TokenType.EOL):
            stream.error()

    def _line_number(self, stream: TokenStream) -> int:
        return int(stream.expect(TokenType.NUMBER).value)

    def command_list(self, stream: TokenStream):
        start, end = 0, -1
        if stream.check(TokenType.NUMBER):
            start = self._line_number(stream)
            if stream.match(TokenType.MINUS, TokenType.COMMA) and stream.check(TokenType.NUMBER):
                end = self._line_number(stream)
        elif stream.match(TokenType.MINUS, TokenType.COMMA):
            end = self._line_number(stream)
        self._expect_end(stream)
        self.list_program(start, end)

    def command_run(self, stream: TokenStream):
        start = self._line_number(stream) if stream.check(TokenType.NUMBER) else None
        self._expect_end(stream)
        self.run(start)

    def command_new(self, stream: TokenStream):
        self._expect_end(stream)
        self.new()

    def _filename(self, stream: TokenStream) -> str:
        if not stream.check(TokenType.STRING):
            raise BasicSyntaxError("FILENAME REQUIRED")
        name = stream.advance().value
        self._expect_end(stream)
        return name

    def command_load(self, stream: TokenStream):
        self.load(self._filename(stream))

    def command_save(self, stream: TokenStream):
        self.save(self._filename(stream))

    def command_exit(self, stream: TokenStream):
        self.state.exit_requested = True

    def command_help(self, stream: TokenStream):
        self.terminal.write(HELP_TEXT)

    def command_memchk(self, stream: TokenStream):
        self.terminal.write(self.memory.describe().upper() + "\n")

    def command_clr(self, stream: TokenStream):
        self.terminal.clear()

    # -- engine -------------------------------------------------------

    def _text_at(self, line: Optional[int]) -> str:
        return self._direct_text if line is None else self.program.lookup(line)

    def _next_position(self, line: Optional[int]) -> Optional[Position]:
        if line is None:
            return None
        following = self.program.next_line(line)
        return None if following is None else Position(following, 0)

    def _execute(self, position: Optional[Position]):
        while position is not None:
            self.state.position = position
            text = self._text_at(position.line)
            with self.lexer.stream(text, position.offset) as stream:
                result = self._execute_statements(stream)

            if result is None:
                position = self._next_position(position.line)
            elif result[0] == 'END':
                logger.debug(f"END at line {position.line}")
                return
            else:
                position = result[1]

    def _execute_statements(self, stream: TokenStream):
        line = self.state.current_line
        while True:
            if stream.check(TokenType.EOL):
                return None
            if stream.match(TokenType.COLON):
                continue
            if stream.check(TokenType.ELSE):
                # Reached the ELSE of a taken THEN branch
                stream.skip_to_end()
                return None

            if self.break_flag.consume():
                logger.debug(f"BREAK at line {line}")
                raise BreakInterrupt()

            self.state.position = Position(line, stream.peek().start)
            result = self.execute_statement(stream)
            if result is not None:
                return result
            if not stream.at_statement_end():
                stream.error()

    def execute_statement(self, stream: TokenStream):
        token = stream.peek()
        try:
            if token.type == TokenType.IDENTIFIER:
                return self.execute_let(stream)
            handler = self.handlers.get(token.type)
            if handler is None:
                # Includes LIST, RUN and the other commands inside a program
                stream.error("SYNTAX", token)
            stream.advance()
            return handler(stream)
        except RecursionError:
            raise BasicSyntaxError("FORMULA TOO COMPLEX", token, stream.source)
        finally:
            self.evaluator.release_temporaries()

    def _find_terminator(self, position: Position, opener: TokenType, closer: TokenType) -> Optional[Position]:
        """Position just past the statement that closes the block opened before ``position``."""
        if self._scan_version != self.program.version:
            self._scan_cache.clear()
            self._scan_version = self.program.version
        key = (position, opener)
        if position.line is not None and key in self._scan_cache:
            return self._scan_cache[key]

        found = None
        depth = 0
        line, offset = position
        while found is None:
            with self.lexer.stream(self._text_at(line), offset) as stream:
                previous = None
                while not stream.check(TokenType.EOL):
                    token = stream.advance()
                    # DO WHILE / LOOP UNTIL conditions do not open or close WHILE blocks
                    nested = previous in (TokenType.DO, TokenType.LOOP)
                    previous = token.type
                    if token.type == opener and not nested:
                        depth += 1
                    elif token.type == closer and not nested:
                        if depth:
                            depth -= 1
                            continue
                        while not stream.at_statement_end():
                            stream.advance()
                        found = Position(line, stream.offset)
                        break
            if found is None:
                following = self._next_position(line)
                if following is None:
                    break
                line, offset = following

        if position.line is not None:
            self._scan_cache[key] = found
        return found

    # -- statements ---------------------------------------------------

    def execute_print(self, stream: TokenStream):
        text = ""
        newline = True
        while not stream.at_statement_end():
            if stream.match(TokenType.COMMA):
                text += " " * (PRINT_ZONE - len(text) % PRINT_ZONE)
                newline = False
                continue
            if stream.match(TokenType.SEMICOLON):
                newline = False
                continue
            text += format_value(self.evaluator.evaluate(stream))
            newline = True

        self.terminal.write(text + "\n" if newline else text)
        logger.debug(f"PRINT: {text!r}")
        return None

    def execute_let(self, stream: TokenStream):
        target = self.evaluator.target(stream)
        stream.expect(TokenType.EQUALS)
        value = self.evaluator.evaluate(stream)
        self.evaluator.assign(target, value)
        logger.debug(f"LET {target.name} = {value!r}")
        return None

    def execute_dim(self, stream: TokenStream):
        while True:
            name = stream.expect(TokenType.IDENTIFIER).value
            bounds = [int(b) for b in self.evaluator.subscripts(stream)]
            self.state.variables.dim(name, bounds)
            if not stream.match(TokenType.COMMA):
                return None

    def execute_input(self, stream: TokenStream):
        prompt = "? "
        if stream.check(TokenType.STRING):
            text = stream.advance().value
            if stream.match(TokenType.SEMICOLON):
                prompt = text + "? "
            else:
                stream.expect(TokenType.COMMA)
                prompt = text

        targets = [self.evaluator.target(stream)]
        while stream.match(TokenType.COMMA):
            targets.append(self.evaluator.target(stream))

        fields: List[str] = []
        while len(fields) < len(targets):
            reply = self.terminal.read_line(prompt if not fields else "?? ")
            if reply is None:
                raise BreakInterrupt()
            fields.extend(split_input(reply))
        if len(fields) > len(targets):
            self.terminal.write("?EXTRA IGNORED\n")

        for target, field in zip(targets, fields):
            value = field if is_string_name(target.name) else parse_input_number(field)
            self.evaluator.assign(target, value)
            logger.debug(f"INPUT {target.name} = {value!r}")
        return None

    def execute_goto(self, stream: TokenStream):
        target = self._line_number(stream)
        self.program.lookup(target)
        logger.debug(f"GOTO line {target}")
        return ('GOTO', Position(target, 0))

    def execute_gosub(self, stream: TokenStream):
        target = self._line_number(stream)
        self.program.lookup(target)
        self.state.push(self.state.call_stack, CallFrame(Position(self.state.current_line, stream.offset)))
        logger.debug(f"GOSUB line {target}")
        return ('GOSUB', Position(target, 0))

    def execute_return(self, stream: TokenStream):
        if not self.state.call_stack:
            raise StackError("RETURN WITHOUT GOSUB")
        frame = self.state.call_stack.pop()
        logger.debug(f"RETURN to {frame.resume}")
        return ('RETURN', frame.resume)

    def _branch(self, stream: TokenStream):
        if stream.check(TokenType.NUMBER):
            return self.execute_goto(stream)
        return self._execute_statements(stream)

    def execute_if(self, stream: TokenStream):
        condition = self.evaluator.evaluate_number(stream)
        if not stream.match(TokenType.GOTO):
            stream.expect(TokenType.THEN)
        elif not stream.check(TokenType.NUMBER):
            stream.error()

        if condition != 0:
            return self._branch(stream)

        # Skip to the ELSE belonging to this IF, if there is one
        depth = 0
        while not stream.check(TokenType.EOL):
            token = stream.advance()
            if token.type == TokenType.IF:
                depth += 1
            elif token.type == TokenType.ELSE:
                if depth == 0:
                    return self._branch(stream)
                depth -= 1
        return None

    def execute_for(self, stream: TokenStream):
        var = stream.expect(TokenType.IDENTIFIER).value
        if is_string_name(var):
            raise TypeMismatchError()
        stream.expect(TokenType.EQUALS)
        start = self.evaluator.evaluate_number(stream)
        stream.expect(TokenType.TO)
        limit = self.evaluator.evaluate_number(stream)
        step = 1.0
        if stream.match(TokenType.STEP):
            step = self.evaluator.evaluate_number(stream)

        self.state.variables.set(var, start)

        # Re-opening a loop on the same counter drops it and every loop opened inside it
        for i, frame in enumerate(self.state.for_stack):
            if frame.var == var:
                del self.state.for_stack[i:]
                break
        body = Position(self.state.current_line, stream.offset)
        self.state.push(self.state.for_stack, ForFrame(var, limit, step, body))
        logger.debug(f"FOR loop: {var} = {start} TO {limit} STEP {step}")
        return None

    def execute_next(self, stream: TokenStream):
        names: List[Optional[str]] = [None]
        if stream.check(TokenType.IDENTIFIER):
            names = [stream.advance().value]
            while stream.match(TokenType.COMMA):
                names.append(stream.expect(TokenType.IDENTIFIER).value)

        for name in names:
            if not self.state.for_stack:
                raise StackError("NEXT WITHOUT FOR")
            frame = self.state.for_stack[-1]
            if name is not None and name != frame.var:
                raise StackError("NEXT WITHOUT FOR")

            value = self.state.variables.get(frame.var) + frame.step
            self.state.variables.set(frame.var, value)
            if (value <= frame.limit) if frame.step >= 0 else (value >= frame.limit):
                return ('NEXT', frame.body)

            self.state.for_stack.pop()
            # The counter does not outlive its loop
            self.state.variables.delete(frame.var)
            logger.debug(f"NEXT {frame.var}: loop finished")
        return None

    def execute_while(self, stream: TokenStream):
        start = Position(self.state.current_line, stream.previous().start)
        if self.evaluator.evaluate_number(stream) != 0:
            self.state.push(self.state.while_stack, WhileFrame(start))
            return None
        resume = self._find_terminator(Position(start.line, stream.offset), TokenType.WHILE, TokenType.WEND)
        if resume is None:
            raise StackError("WHILE WITHOUT WEND")
        return ('WEND', resume)

    def execute_wend(self, stream: TokenStream):
        if not self.state.while_stack:
            raise StackError("WEND WITHOUT WHILE")
        return ('WHILE', self.state.while_stack.pop().start)

    def execute_repeat(self, stream: TokenStream):
        body = Position(self.state.current_line, stream.offset)
        self.state.push(self.state.repeat_stack, RepeatFrame(body))
        return None

    def execute_until(self, stream: TokenStream):
        if not self.state.repeat_stack:
            raise StackError("UNTIL WITHOUT REPEAT")
        if self.evaluator.evaluate_number(stream) == 0:
            return ('REPEAT', self.state.repeat_stack[-1].body)
        self.state.repeat_stack.pop()
        return None

    def _loop_condition(self, stream: TokenStream) -> bool:
        """Optional ``WHILE c`` / ``UNTIL c`` after DO or LOOP; True means keep looping."""
        if stream.match(TokenType.WHILE):
            return self.evaluator.evaluate_number(stream) != 0
        if stream.match(TokenType.UNTIL):
            return self.evaluator.evaluate_number(stream) == 0
        return True

    def execute_do(self, stream: TokenStream):
        start = Position(self.state.current_line, stream.previous().start)
        if self._loop_condition(stream):
            self.state.push(self.state.do_stack, DoFrame(start))
            return None
        resume = self._find_terminator(Position(start.line, stream.offset), TokenType.DO, TokenType.LOOP)
        if resume is None:
            raise StackError("DO WITHOUT LOOP")
        return ('LOOP', resume)

    def execute_loop(self, stream: TokenStream):
        if not self.state.do_stack:
            raise StackError("LOOP WITHOUT DO")
        frame = self.state.do_stack.pop()
        if self._loop_condition(stream):
            return ('DO', frame.start)
        return None

    def execute_end(self, stream: TokenStream):
        return ('END',)

    def execute_rem(self, stream: TokenStream):
        return None

    def _integers(self, stream: TokenStream, count: int) -> Tuple[int, ...]:
        values = [int(self.evaluator.evaluate_number(stream))]
        for _ in range(count - 1):
            stream.expect(TokenType.COMMA)
            values.append(int(self.evaluator.evaluate_number(stream)))
        return tuple(values)

    def _plot_char(self, stream: TokenStream) -> str:
        if not stream.match(TokenType.COMMA):
            return "*"
        value = self.evaluator.evaluate(stream)
        if isinstance(value, str):
            return value[:1] or " "
        code = int(value)
        if not 0 <= code <= 255:
            raise DomainError("ILLEGAL QUANTITY")
        return chr(code)

    def execute_poke(self, stream: TokenStream):
        address, value = self._integers(stream, 2)
        self.poke(address, value)
        return None

    def execute_plot(self, stream: TokenStream):
        x, y = self._integers(stream, 2)
        self.terminal.plot(x, y, self._plot_char(stream))
        return None

    def execute_draw(self, stream: TokenStream):
        x1, y1, x2, y2 = self._integers(stream, 4)
        char = self._plot_char(stream)
        for x, y in line_points(x1, y1, x2, y2):
            self.terminal.plot(x, y, char)
        return None


__all__ = ["Interpreter", "HELP_TEXT", "split_input", "parse_input_number", "line_points"]
