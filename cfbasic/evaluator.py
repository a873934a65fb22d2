"""Recursive-descent expression evaluator.

Precedence, loosest first: OR, AND, NOT, comparisons, ``+ -``, ``* /``,
unary minus, ``^`` (right-associative), primaries. Values are ``float``
(NUMBER) or ``str`` (STRING); comparisons and logical operators yield -1 for
true and 0 for false.
"""
import logging
import math
from typing import Callable, List, NamedTuple, Optional

from cfbasic.errors import BasicSyntaxError, DomainError, TypeMismatchError
from cfbasic.functions import FunctionLibrary, Value
from cfbasic.keywords import COMPARISONS
from cfbasic.lexer import TokenStream
from cfbasic.memory import Allocator, Block
from cfbasic.system import VariableTable
from cfbasic.type import TokenType

logger = logging.getLogger(__name__)

TRUE = -1.0
FALSE = 0.0


class Target(NamedTuple):
    name: str
    subscripts: Optional[List[float]] = None


def truth(condition: bool) -> float:
    return TRUE if condition else FALSE


def _finite(value: float) -> float:
    if not math.isfinite(value):
        raise DomainError("OVERFLOW")
    return value


def _power(base: float, exponent: float) -> float:
    if base == 0 and exponent < 0:
        raise DomainError("DIVISION BY ZERO")
    try:
        return _finite(math.pow(base, exponent))
    except OverflowError:
        raise DomainError("OVERFLOW")
    except ValueError:
        raise DomainError("ILLEGAL QUANTITY")


def _compare(op: TokenType, left: Value, right: Value) -> float:
    if isinstance(left, str) != isinstance(right, str):
        raise TypeMismatchError()
    if op == TokenType.EQUALS:
        return truth(left == right)
    if op == TokenType.NOT_EQUAL:
        return truth(left != right)
    if op == TokenType.LESS:
        return truth(left < right)
    if op == TokenType.GREATER:
        return truth(left > right)
    if op == TokenType.LESS_EQUAL:
        return truth(left <= right)
    return truth(left >= right)


class ExpressionEvaluator:
    def __init__(self, variables: VariableTable, memory: Allocator,
                 functions: FunctionLibrary = None, peek: Callable[[int], int] = None):
        self.variables = variables
        self.memory = memory
        self.functions = functions or FunctionLibrary()
        self.peek = peek or (lambda address: 0)
        self._temporaries: List[Block] = []

    # -- entry points -------------------------------------------------

    def evaluate(self, stream: TokenStream) -> Value:
        return self.logical_or(stream)

    def evaluate_number(self, stream: TokenStream) -> float:
        return self.number(self.evaluate(stream))

    def evaluate_string(self, stream: TokenStream) -> str:
        value = self.evaluate(stream)
        if not isinstance(value, str):
            raise TypeMismatchError()
        return value

    @staticmethod
    def number(value: Value) -> float:
        if isinstance(value, str):
            raise TypeMismatchError()
        return value

    def release_temporaries(self):
        for block in self._temporaries:
            self.memory.release(block)
        self._temporaries.clear()

    def _temporary(self, text: str) -> str:
        self._temporaries.append(self.memory.allocate_text(text))
        return text

    # -- variables ----------------------------------------------------

    def target(self, stream: TokenStream) -> Target:
        """Parses a variable reference, optionally subscripted: ``A``, ``B$``, ``C(I, 2)``."""
        token = stream.expect(TokenType.IDENTIFIER)
        if stream.check(TokenType.LPAREN):
            return Target(token.value, self.subscripts(stream))
        return Target(token.value)

    def subscripts(self, stream: TokenStream) -> List[float]:
        stream.expect(TokenType.LPAREN)
        values = [self.evaluate_number(stream)]
        while stream.match(TokenType.COMMA):
            values.append(self.evaluate_number(stream))
        stream.expect(TokenType.RPAREN)
        return values

    def read(self, target: Target) -> Value:
        if target.subscripts is None:
            return self.variables.get(target.name)
        return self.variables.get_element(target.name, target.subscripts)

    def assign(self, target: Target, value: Value):
        if target.subscripts is None:
            self.variables.set(target.name, value)
        else:
            self.variables.set_element(target.name, target.subscripts, value)

    # -- grammar ------------------------------------------------------

    def logical_or(self, stream: TokenStream) -> Value:
        left = self.logical_and(stream)
        while stream.match(TokenType.OR):
            right = self.logical_and(stream)
            left = truth(self.number(left) != 0 or self.number(right) != 0)
        return left

    def logical_and(self, stream: TokenStream) -> Value:
        left = self.logical_not(stream)
        while stream.match(TokenType.AND):
            right = self.logical_not(stream)
            left = truth(self.number(left) != 0 and self.number(right) != 0)
        return left

    def logical_not(self, stream: TokenStream) -> Value:
        if stream.match(TokenType.NOT):
            return truth(self.number(self.logical_not(stream)) == 0)
        return self.comparison(stream)

    def comparison(self, stream: TokenStream) -> Value:
        left = self.additive(stream)
        while stream.check(*COMPARISONS):
            op = stream.advance().type
            right = self.additive(stream)
            left = _compare(op, left, right)
        return left

    def additive(self, stream: TokenStream) -> Value:
        left = self.multiplicative(stream)
        while stream.check(TokenType.PLUS, TokenType.MINUS):
            op = stream.advance().type
            right = self.multiplicative(stream)
            if op == TokenType.PLUS and isinstance(left, str) and isinstance(right, str):
                left = self._temporary(left + right)
            elif op == TokenType.PLUS:
                left = _finite(self.number(left) + self.number(right))
            else:
                left = _finite(self.number(left) - self.number(right))
        return left

    def multiplicative(self, stream: TokenStream) -> Value:
        left = self.unary(stream)
        while stream.check(TokenType.MULTIPLY, TokenType.DIVIDE):
            op = stream.advance().type
            right = self.number(self.unary(stream))
            left = self.number(left)
            if op == TokenType.MULTIPLY:
                left = _finite(left * right)
            elif right == 0:
                raise DomainError("DIVISION BY ZERO")
            else:
                left = _finite(left / right)
        return left

    def unary(self, stream: TokenStream) -> Value:
        if stream.match(TokenType.MINUS):
            return -self.number(self.unary(stream))
        if stream.match(TokenType.PLUS):
            return self.number(self.unary(stream))
        return self.power(stream)

    def power(self, stream: TokenStream) -> Value:
        base = self.primary(stream)
        if stream.match(TokenType.POWER):
            # Right operand goes back through unary, so 2^3^2 = 2^(3^2) and 2^-1 works
            exponent = self.number(self.unary(stream))
            return _power(self.number(base), exponent)
        return base

    def primary(self, stream: TokenStream) -> Value:
        token = stream.advance()

        if token.type in (TokenType.NUMBER, TokenType.STRING):
            return token.value
        if token.type == TokenType.LPAREN:
            value = self.evaluate(stream)
            stream.expect(TokenType.RPAREN)
            return value
        if token.type == TokenType.IDENTIFIER:
            if stream.check(TokenType.LPAREN):
                return self.variables.get_element(token.value, self.subscripts(stream))
            return self.variables.get(token.value)
        if token.type == TokenType.PEEK:
            address = self.arguments(stream)
            if len(address) != 1:
                raise BasicSyntaxError("WRONG ARGUMENT COUNT FOR PEEK")
            return float(self.peek(int(self.number(address[0]))))
        if token.type in self.functions:
            return self.call_function(stream, token.type)

        stream.error("SYNTAX", token)

    def arguments(self, stream: TokenStream) -> List[Value]:
        stream.expect(TokenType.LPAREN)
        if stream.match(TokenType.RPAREN):
            return []
        args = [self.evaluate(stream)]
        while stream.match(TokenType.COMMA):
            args.append(self.evaluate(stream))
        stream.expect(TokenType.RPAREN)
        return args

    def call_function(self, stream: TokenStream, type: TokenType) -> Value:
        if type == TokenType.RND and not stream.check(TokenType.LPAREN):
            args = []
        else:
            args = self.arguments(stream)
        result = self.functions.call(type, args)
        if isinstance(result, str):
            return self._temporary(result)
        return _finite(result)


__all__ = ["ExpressionEvaluator", "Target", "truth", "TRUE", "FALSE"]
