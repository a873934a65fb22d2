import math
import random
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple, Union

from cfbasic.errors import BasicSyntaxError, DomainError, TypeMismatchError
from cfbasic.type import TokenType

Value = Union[float, str]
NUMBER = float
STRING = str

_NUMERIC_PREFIX = re.compile(r'^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)')


def format_number(value: float) -> str:
    if value.is_integer() and abs(value) < 1e16:
        return str(int(value))
    return f"{value:.10g}".upper()


def format_value(value: Value) -> str:
    return value if isinstance(value, str) else format_number(value)


def parse_number_prefix(text: str) -> float:
    match = _NUMERIC_PREFIX.match(text)
    if not match:
        return 0.0
    value = float(match.group(1))
    return value if math.isfinite(value) else 0.0


def _count(value: float) -> int:
    count = int(value)
    if count < 0:
        raise DomainError("ILLEGAL QUANTITY")
    return count


def _sqr(x: float) -> float:
    if x < 0:
        raise DomainError("ILLEGAL QUANTITY")
    return math.sqrt(x)


def _left(s: str, n: float) -> str:
    return s[:_count(n)]


def _right(s: str, n: float) -> str:
    n = _count(n)
    return s[len(s) - n:] if n < len(s) else s


def _mid(s: str, start: float, length: float = None) -> str:
    start = int(start)
    if length is not None:
        length = _count(length)
    if start < 1 or start > len(s):
        return ""
    if length is None:
        return s[start - 1:]
    return s[start - 1:start - 1 + length]


def _chr(code: float) -> str:
    code = int(code)
    if not 0 <= code <= 255:
        raise DomainError("ILLEGAL QUANTITY")
    return chr(code)


def _asc(s: str) -> float:
    if not s:
        raise DomainError("ILLEGAL QUANTITY")
    return float(ord(s[0]))


@dataclass(frozen=True)
class Builtin:
    name: str
    kinds: Tuple[type, ...]
    impl: Callable
    optional: int = 0

    @property
    def min_args(self) -> int:
        return len(self.kinds) - self.optional

    @property
    def max_args(self) -> int:
        return len(self.kinds)


class FunctionLibrary:
    """Numeric and string built-ins, keyed by their keyword token."""

    def __init__(self, rng: random.Random = None):
        self.random = rng or random.Random()
        self.table: Dict[TokenType, Builtin] = {
            TokenType.ABS: Builtin("ABS", (NUMBER,), lambda x: abs(x)),
            TokenType.INT: Builtin("INT", (NUMBER,), lambda x: float(math.floor(x))),
            TokenType.SQR: Builtin("SQR", (NUMBER,), _sqr),
            TokenType.SIN: Builtin("SIN", (NUMBER,), math.sin),
            TokenType.COS: Builtin("COS", (NUMBER,), math.cos),
            TokenType.TAN: Builtin("TAN", (NUMBER,), math.tan),
            TokenType.RND: Builtin("RND", (NUMBER,), self._rnd, optional=1),
            TokenType.LEN: Builtin("LEN", (STRING,), lambda s: float(len(s))),
            TokenType.LEFT: Builtin("LEFT$", (STRING, NUMBER), _left),
            TokenType.RIGHT: Builtin("RIGHT$", (STRING, NUMBER), _right),
            TokenType.MID: Builtin("MID$", (STRING, NUMBER, NUMBER), _mid, optional=1),
            TokenType.STR: Builtin("STR$", (NUMBER,), format_number),
            TokenType.VAL: Builtin("VAL", (STRING,), parse_number_prefix),
            TokenType.CHR: Builtin("CHR$", (NUMBER,), _chr),
            TokenType.ASC: Builtin("ASC", (STRING,), _asc),
        }

    def _rnd(self, x: float = None) -> float:
        if x is not None and x < 0:
            self.random.seed(x)
        return self.random.random()

    def __contains__(self, type: TokenType) -> bool:
        return type in self.table

    def call(self, type: TokenType, args: List[Value]) -> Value:
        builtin = self.table[type]
        if not builtin.min_args <= len(args) <= builtin.max_args:
            raise BasicSyntaxError(f"WRONG ARGUMENT COUNT FOR {builtin.name}")
        for arg, kind in zip(args, builtin.kinds):
            if not isinstance(arg, kind):
                raise TypeMismatchError(builtin.name)
        return builtin.impl(*args)


__all__ = ["FunctionLibrary", "Builtin", "Value", "format_number", "format_value", "parse_number_prefix"]
