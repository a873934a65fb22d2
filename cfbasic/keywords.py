from typing import Dict, FrozenSet

from cfbasic.type import TokenType

_LITERALS = (TokenType.NUMBER, TokenType.STRING, TokenType.IDENTIFIER, TokenType.EOL)

# Reserved words, upper-case spelling -> token type
KEYWORDS: Dict[str, TokenType] = {
    t.value: t for t in TokenType if t.value[0].isalpha() and t not in _LITERALS
}

# Operators and punctuation; two-character forms are tried first
OPERATORS: Dict[str, TokenType] = {
    t.value: t for t in TokenType if not t.value[0].isalpha()
}

FUNCTIONS: FrozenSet[TokenType] = frozenset({
    TokenType.PEEK, TokenType.ABS, TokenType.INT, TokenType.RND, TokenType.SIN,
    TokenType.COS, TokenType.TAN, TokenType.SQR, TokenType.LEN, TokenType.LEFT,
    TokenType.RIGHT, TokenType.MID, TokenType.STR, TokenType.VAL, TokenType.CHR,
    TokenType.ASC,
})

# Only valid as the first word of a line typed without a line number
IMMEDIATE_COMMANDS: FrozenSet[TokenType] = frozenset({
    TokenType.LIST, TokenType.RUN, TokenType.NEW, TokenType.LOAD, TokenType.SAVE,
    TokenType.EXIT, TokenType.HELP, TokenType.CLR, TokenType.MEMCHK,
})

COMPARISONS: FrozenSet[TokenType] = frozenset({
    TokenType.EQUALS, TokenType.NOT_EQUAL, TokenType.LESS, TokenType.GREATER,
    TokenType.LESS_EQUAL, TokenType.GREATER_EQUAL,
})


def lookup_keyword(word: str):
    """Returns the token type of a reserved word (any case), or None for a plain name."""
    return KEYWORDS.get(word.upper())


__all__ = ["KEYWORDS", "OPERATORS", "FUNCTIONS", "IMMEDIATE_COMMANDS", "COMPARISONS", "lookup_keyword"]
