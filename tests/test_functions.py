import math
import random

import pytest

from cfbasic.errors import BasicSyntaxError, DomainError, TypeMismatchError
from cfbasic.functions import FunctionLibrary, format_number, format_value, parse_number_prefix
from cfbasic.type import TokenType


@pytest.fixture
def library():
    return FunctionLibrary(random.Random(42))


def call(library, type, *args):
    return library.call(type, list(args))


def test_format_number():
    assert format_number(3.0) == "3"
    assert format_number(-2.0) == "-2"
    assert format_number(0.5) == "0.5"
    assert format_number(1 / 3) == "0.3333333333"
    assert format_number(1e20) == "1E+20"
    assert format_value("TEXT") == "TEXT"


def test_parse_number_prefix():
    assert parse_number_prefix("12ABC") == 12
    assert parse_number_prefix("  -3.5E2X") == -350
    assert parse_number_prefix(".25") == 0.25
    assert parse_number_prefix("ABC") == 0
    assert parse_number_prefix("") == 0


def test_numeric_functions(library):
    assert call(library, TokenType.ABS, -4.5) == 4.5
    assert call(library, TokenType.INT, 2.7) == 2
    assert call(library, TokenType.INT, -2.1) == -3
    assert call(library, TokenType.SQR, 16.0) == 4
    assert call(library, TokenType.SIN, 0.0) == 0
    assert call(library, TokenType.COS, 0.0) == 1
    assert call(library, TokenType.TAN, math.pi / 4) == pytest.approx(1)


def test_sqr_of_negative(library):
    with pytest.raises(DomainError):
        call(library, TokenType.SQR, -1.0)


def test_string_slicing(library):
    assert call(library, TokenType.LEFT, "HELLO", 2.0) == "HE"
    assert call(library, TokenType.RIGHT, "HELLO", 3.0) == "LLO"
    assert call(library, TokenType.RIGHT, "HI", 5.0) == "HI"
    assert call(library, TokenType.RIGHT, "HI", 0.0) == ""
    assert call(library, TokenType.MID, "HELLO", 2.0, 3.0) == "ELL"
    assert call(library, TokenType.MID, "HELLO", 2.0) == "ELLO"
    assert call(library, TokenType.MID, "HELLO", 4.0, 10.0) == "LO"
    assert call(library, TokenType.MID, "HELLO", 10.0, 1.0) == ""
    assert call(library, TokenType.MID, "HELLO", 0.0, 1.0) == ""


def test_negative_counts(library):
    with pytest.raises(DomainError):
        call(library, TokenType.LEFT, "HELLO", -1.0)
    with pytest.raises(DomainError):
        call(library, TokenType.MID, "HELLO", 1.0, -1.0)


def test_conversions(library):
    assert call(library, TokenType.LEN, "HELLO") == 5
    assert call(library, TokenType.STR, 12.0) == "12"
    assert call(library, TokenType.VAL, "3.25") == 3.25
    assert call(library, TokenType.CHR, 65.0) == "A"
    assert call(library, TokenType.ASC, "A") == 65
    with pytest.raises(DomainError):
        call(library, TokenType.CHR, 256.0)
    with pytest.raises(DomainError):
        call(library, TokenType.ASC, "")


def test_rnd(library):
    expected = random.Random(42).random()
    assert call(library, TokenType.RND) == expected
    assert 0 <= call(library, TokenType.RND, 1.0) < 1


def test_negative_rnd_reseeds(library):
    first = call(library, TokenType.RND, -3.0)
    call(library, TokenType.RND)
    assert call(library, TokenType.RND, -3.0) == first


def test_argument_kind_is_checked(library):
    with pytest.raises(TypeMismatchError) as info:
        call(library, TokenType.LEN, 1.0)
    assert info.value.message == "TYPE MISMATCH IN LEN"
    with pytest.raises(TypeMismatchError):
        call(library, TokenType.ABS, "1")


def test_argument_count_is_checked(library):
    with pytest.raises(BasicSyntaxError) as info:
        call(library, TokenType.MID, "HELLO")
    assert info.value.message == "WRONG ARGUMENT COUNT FOR MID$"
    with pytest.raises(BasicSyntaxError):
        call(library, TokenType.RND, 1.0, 2.0)


def test_library_membership(library):
    assert TokenType.LEN in library
    assert TokenType.PRINT not in library
