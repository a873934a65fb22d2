"""Error taxonomy of the interpreter.

Every error a BASIC program can provoke derives from :class:`BasicError`; the
interpreter keeps the most recent one in its pending-error slot until the driver
reports it. :class:`SystemMemoryError` is the one fatal condition and is kept
outside that hierarchy on purpose.
"""
from typing import Optional


class BasicError(Exception):
    def __init__(self, message: str, token=None, line: str = None):
        self.message = message
        self.token = token
        self.line = line
        self.line_number: Optional[int] = None
        super().__init__(message)

    def report(self) -> str:
        text = f"?{self.message} ERROR"
        if self.line_number is not None:
            text += f" IN {self.line_number}"
        return text

    def __str__(self):
        if self.token is not None and self.line:
            width = max(self.token.end - self.token.start, 1)
            pointer = " " * self.token.start + "^" * width
            return f"{self.message}\n{self.line}\n{pointer}"
        return self.message


class LexicalError(BasicError):
    pass


class BasicSyntaxError(BasicError):
    def __init__(self, message: str = "SYNTAX", token=None, line: str = None):
        super().__init__(message, token, line)


class TypeMismatchError(BasicError):
    def __init__(self, function: str = None, token=None):
        message = "TYPE MISMATCH" if function is None else f"TYPE MISMATCH IN {function}"
        super().__init__(message, token)


class UndefinedLineError(BasicError):
    def __init__(self, target: int = None):
        self.target = target
        super().__init__("UNDEFINED STATEMENT")


class StackError(BasicError):
    pass


class DomainError(BasicError):
    pass


class OutOfMemoryError(BasicError):
    def __init__(self, requested: int = 0):
        self.requested = requested
        super().__init__("OUT OF MEMORY")


class BasicIOError(BasicError):
    pass


class BreakInterrupt(BasicError):
    def __init__(self):
        super().__init__("BREAK")

    def report(self) -> str:
        if self.line_number is not None:
            return f"?BREAK IN {self.line_number}"
        return "?BREAK"


class SystemMemoryError(Exception):
    """The host could not provide memory for a block the ledger had already granted."""


__all__ = [
    "BasicError", "LexicalError", "BasicSyntaxError", "TypeMismatchError",
    "UndefinedLineError", "StackError", "DomainError", "OutOfMemoryError",
    "BasicIOError", "BreakInterrupt", "SystemMemoryError",
]
