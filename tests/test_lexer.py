import pytest

from cfbasic.errors import LexicalError
from cfbasic.lexer import Lexer
from cfbasic.memory import Allocator
from cfbasic.type import TokenType


def scan(source):
    memory = Allocator()
    lexer = Lexer(memory)
    tokens = lexer.tokenize(source)
    lexer.free(tokens)
    assert memory.used == 0
    return tokens


def types(source):
    return [t.type for t in scan(source)]


def test_statement_tokens():
    assert types('PRINT "HI"; A$') == [
        TokenType.PRINT, TokenType.STRING, TokenType.SEMICOLON, TokenType.IDENTIFIER, TokenType.EOL,
    ]


def test_keywords_are_case_insensitive():
    tokens = scan("print a$ : goto 10")
    assert tokens[0].type == TokenType.PRINT
    assert tokens[1].value == "A$"
    assert tokens[3].type == TokenType.GOTO


def test_function_names_with_dollar():
    assert types("LEFT$(A$, 2)")[0] == TokenType.LEFT
    assert types("CHR$(65)")[0] == TokenType.CHR


def test_numbers():
    tokens = scan("1.5E3 .5 42 2e-2")
    assert [t.value for t in tokens[:-1]] == [1500.0, 0.5, 42.0, 0.02]


def test_exponent_needs_digits():
    tokens = scan("1E")
    assert tokens[0].value == 1.0
    assert tokens[1].type == TokenType.IDENTIFIER
    assert tokens[1].value == "E"


@pytest.mark.parametrize("source", [".", "1E+", "2E-"])
def test_malformed_numbers(source):
    with pytest.raises(LexicalError) as info:
        scan(source)
    assert info.value.message == "MALFORMED NUMBER"


def test_unterminated_string():
    with pytest.raises(LexicalError) as info:
        scan('PRINT "OOPS')
    assert info.value.message == "UNTERMINATED STRING"


def test_string_has_no_escapes():
    tokens = scan(r'"A\N"')
    assert tokens[0].value == "A\\N"


def test_rem_swallows_rest_of_line():
    assert types('REM PRINT "unterminated') == [TokenType.REM, TokenType.EOL]


def test_two_character_operators():
    assert types("<> <= >= < > =")[:-1] == [
        TokenType.NOT_EQUAL, TokenType.LESS_EQUAL, TokenType.GREATER_EQUAL,
        TokenType.LESS, TokenType.GREATER, TokenType.EQUALS,
    ]


def test_illegal_character_points_at_it():
    with pytest.raises(LexicalError) as info:
        scan("A = 1 @ 2")
    assert info.value.message == "ILLEGAL CHARACTER"
    assert str(info.value).splitlines()[-1] == "      ^"


def test_token_payloads_are_charged_until_stream_closes():
    memory = Allocator()
    lexer = Lexer(memory)
    with lexer.stream('A$ = "TEXT"') as stream:
        while not stream.check(TokenType.EOL):
            stream.advance()
        assert memory.live_blocks == 2
        assert memory.used > 0
    assert memory.used == 0


def test_lexing_is_lazy():
    memory = Allocator()
    lexer = Lexer(memory)
    stream = lexer.stream('PRINT 1 : PRINT "OOPS')
    try:
        assert stream.advance().type == TokenType.PRINT
        assert stream.advance().type == TokenType.NUMBER
        assert stream.advance().type == TokenType.COLON
        with pytest.raises(LexicalError):
            stream.peek()
    finally:
        stream.close()
    assert memory.used == 0


def test_stream_starts_at_offset():
    memory = Allocator()
    with Lexer(memory).stream("PRINT 1: PRINT 2", 8) as stream:
        token = stream.advance()
        assert token.type == TokenType.PRINT
        assert token.start == 9
        stream.advance()
        assert stream.offset == 16


def test_advance_stops_at_eol():
    with Lexer(Allocator()).stream("END") as stream:
        stream.advance()
        assert stream.advance().type == TokenType.EOL
        assert stream.advance().type == TokenType.EOL


def test_tokens_are_immutable():
    token = scan("10")[0]
    with pytest.raises(TypeError):
        token.value = 20.0
