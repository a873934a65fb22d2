"""Lexer for one line of BASIC source.

Tokens are produced lazily, so a statement list is lexed only as far as it is
executed; an error later on the line surfaces when execution reaches it. The
text payload of STRING and IDENTIFIER tokens is charged to the allocator and
released when the :class:`TokenStream` that pulled the token is closed.
"""
import logging
import math
from typing import Iterator, List, Optional

from cfbasic.errors import BasicSyntaxError, LexicalError
from cfbasic.keywords import OPERATORS, lookup_keyword
from cfbasic.memory import Allocator
from cfbasic.type import Token, TokenType

logger = logging.getLogger(__name__)

STATEMENT_END = (TokenType.COLON, TokenType.EOL, TokenType.ELSE)


def _is_alpha(char: str) -> bool:
    return char.isascii() and char.isalpha()


def _is_digit(char: str) -> bool:
    return char.isascii() and char.isdigit()


class Scanner:
    def __init__(self, source: str, memory: Allocator, offset: int = 0):
        self.source = source
        self.memory = memory
        self.start = offset
        self.current = offset

    def tokens(self) -> Iterator[Token]:
        while True:
            self.skip_whitespace()
            if self.is_at_end():
                break
            self.start = self.current
            token = self.scan_token()
            yield token
            if token.type == TokenType.REM:
                # The remainder of the line is a comment
                self.current = len(self.source)
                break
        self.start = self.current
        yield self.make_token(TokenType.EOL, None)

    def scan_token(self) -> Token:
        char = self.advance()

        if char == '"':
            return self.string()
        if _is_digit(char) or char == '.':
            return self.number()
        if _is_alpha(char):
            return self.identifier()

        pair = char + self.peek()
        if len(pair) == 2 and pair in OPERATORS:
            self.advance()
            return self.make_token(OPERATORS[pair], pair)
        if char in OPERATORS:
            return self.make_token(OPERATORS[char], char)

        self.error("ILLEGAL CHARACTER")

    def number(self) -> Token:
        while _is_digit(self.peek()):
            self.advance()

        # Decimal point
        if self.source[self.start] != '.' and self.peek() == '.':
            self.advance()
        while _is_digit(self.peek()):
            self.advance()

        if self.source[self.start:self.current] == '.':
            self.error("MALFORMED NUMBER")

        # Exponent, only when something numeric follows the E
        if self.peek() in ('E', 'e'):
            look = self.current + 1
            signed = look < len(self.source) and self.source[look] in '+-'
            if signed:
                look += 1
            if look < len(self.source) and _is_digit(self.source[look]):
                self.current = look
                while _is_digit(self.peek()):
                    self.advance()
            elif signed:
                self.current = look
                self.error("MALFORMED NUMBER")

        value = float(self.source[self.start:self.current])
        if not math.isfinite(value):
            self.error("MALFORMED NUMBER")
        return self.make_token(TokenType.NUMBER, value)

    def string(self) -> Token:
        while self.peek() != '"' and not self.is_at_end():
            self.advance()

        if self.is_at_end():
            self.error("UNTERMINATED STRING")

        # Closing quote
        self.advance()

        value = self.source[self.start + 1:self.current - 1]
        return self.make_token(TokenType.STRING, value, self.memory.allocate_text(value))

    def identifier(self) -> Token:
        while _is_alpha(self.peek()) or _is_digit(self.peek()) or self.peek() == '_':
            self.advance()
        if self.peek() == '$':
            self.advance()

        text = self.source[self.start:self.current].upper()
        keyword = lookup_keyword(text)
        if keyword is not None:
            return self.make_token(keyword, text)
        return self.make_token(TokenType.IDENTIFIER, text, self.memory.allocate_text(text))

    def skip_whitespace(self):
        while self.peek() in (' ', '\t', '\r', '\n'):
            self.advance()

    def advance(self) -> str:
        char = self.source[self.current]
        self.current += 1
        return char

    def peek(self) -> str:
        if self.is_at_end():
            return '\0'
        return self.source[self.current]

    def is_at_end(self) -> bool:
        return self.current >= len(self.source)

    def make_token(self, type: TokenType, value, block=None) -> Token:
        return Token(type, value, self.start, self.current, block)

    def error(self, message: str):
        token = Token(TokenType.EOL, None, self.start, max(self.current, self.start + 1), None)
        raise LexicalError(message, token, self.source)


class TokenStream:
    """Cursor over a lazily lexed line. Owns every token it has pulled."""

    def __init__(self, tokens: Iterator[Token], source: str, offset: int, memory: Allocator):
        self._tokens = tokens
        self.source = source
        self.memory = memory
        self.offset = offset
        self._owned: List[Token] = []
        self._lookahead: Optional[Token] = None
        self._previous: Optional[Token] = None

    def peek(self) -> Token:
        if self._lookahead is None:
            self._lookahead = next(self._tokens)
            self._owned.append(self._lookahead)
        return self._lookahead

    def advance(self) -> Token:
        token = self.peek()
        if token.type != TokenType.EOL:
            self._lookahead = None
            self.offset = token.end
        self._previous = token
        return token

    def previous(self) -> Optional[Token]:
        return self._previous

    def check(self, *types: TokenType) -> bool:
        return self.peek().type in types

    def match(self, *types: TokenType) -> bool:
        if self.check(*types):
            self.advance()
            return True
        return False

    def expect(self, type: TokenType, message: str = "SYNTAX") -> Token:
        if not self.check(type):
            self.error(message)
        return self.advance()

    def at_statement_end(self) -> bool:
        return self.check(*STATEMENT_END)

    def skip_to_end(self):
        while not self.check(TokenType.EOL):
            self.advance()

    def error(self, message: str = "SYNTAX", token: Token = None):
        if token is None:
            token = self.peek()
        raise BasicSyntaxError(message, token, self.source)

    def close(self):
        self._tokens.close()
        for token in self._owned:
            if token.block is not None:
                self.memory.release(token.block)
        self._owned.clear()
        self._lookahead = None

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()
        return False


class Lexer:
    def __init__(self, memory: Allocator):
        self.memory = memory

    def scan(self, source: str, offset: int = 0) -> Iterator[Token]:
        return Scanner(source, self.memory, offset).tokens()

    def stream(self, source: str, offset: int = 0) -> TokenStream:
        return TokenStream(self.scan(source, offset), source, offset, self.memory)

    def tokenize(self, source: str) -> List[Token]:
        """Eagerly lexes a whole line. The caller owns the tokens (see :meth:`free`)."""
        tokens = []
        try:
            for token in self.scan(source):
                tokens.append(token)
        except Exception:
            self.free(tokens)
            raise
        return tokens

    def free(self, tokens: List[Token]):
        for token in tokens:
            if token.block is not None:
                self.memory.release(token.block)


__all__ = ["Lexer", "Scanner", "TokenStream", "STATEMENT_END"]
