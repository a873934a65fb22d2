from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple, Optional

from cfbasic.memory import Block
from cfbasic.uneditable import uneditable


class TokenType(Enum):
    # Immediate commands
    LIST = "LIST"
    RUN = "RUN"
    NEW = "NEW"
    LOAD = "LOAD"
    SAVE = "SAVE"
    EXIT = "EXIT"
    HELP = "HELP"
    CLR = "CLR"
    MEMCHK = "MEMCHK"

    # Statements
    PRINT = "PRINT"
    INPUT = "INPUT"
    LET = "LET"
    DIM = "DIM"
    GOTO = "GOTO"
    GOSUB = "GOSUB"
    RETURN = "RETURN"
    IF = "IF"
    THEN = "THEN"
    ELSE = "ELSE"
    FOR = "FOR"
    TO = "TO"
    STEP = "STEP"
    NEXT = "NEXT"
    WHILE = "WHILE"
    WEND = "WEND"
    REPEAT = "REPEAT"
    UNTIL = "UNTIL"
    DO = "DO"
    LOOP = "LOOP"
    END = "END"
    REM = "REM"
    POKE = "POKE"
    PLOT = "PLOT"
    DRAW = "DRAW"

    # Logical operators
    AND = "AND"
    OR = "OR"
    NOT = "NOT"

    # Functions
    PEEK = "PEEK"
    ABS = "ABS"
    INT = "INT"
    RND = "RND"
    SIN = "SIN"
    COS = "COS"
    TAN = "TAN"
    SQR = "SQR"
    LEN = "LEN"
    LEFT = "LEFT$"
    RIGHT = "RIGHT$"
    MID = "MID$"
    STR = "STR$"
    VAL = "VAL"
    CHR = "CHR$"
    ASC = "ASC"

    # Operators
    PLUS = "+"
    MINUS = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    POWER = "^"
    EQUALS = "="
    NOT_EQUAL = "<>"
    LESS = "<"
    GREATER = ">"
    LESS_EQUAL = "<="
    GREATER_EQUAL = ">="
    COMMA = ","
    SEMICOLON = ";"
    LPAREN = "("
    RPAREN = ")"
    COLON = ":"

    # Literals
    NUMBER = "NUMBER"
    STRING = "STRING"
    IDENTIFIER = "IDENTIFIER"

    # Special
    EOL = "EOL"


@uneditable
@dataclass
class Token:
    type: TokenType
    value: Any
    start: int
    end: int
    # Ledger entry for the text payload of STRING and IDENTIFIER tokens
    block: Optional[Block] = field(compare=False, repr=False)

    def __str__(self):
        if self.value is None:
            return f"{self.type.value} at {self.start}"
        return f"{self.type.value}({self.value!r}) at {self.start}"


class Position(NamedTuple):
    """Execution point: a stored line (``None`` for the immediate line) and a character offset."""

    line: Optional[int]
    offset: int = 0


__all__ = ["TokenType", "Token", "Position"]
