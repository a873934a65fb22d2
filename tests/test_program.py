import pytest

from cfbasic.errors import BasicSyntaxError, UndefinedLineError
from cfbasic.memory import Allocator
from cfbasic.program import ProgramStore, split_line_number


@pytest.fixture
def store():
    return ProgramStore(Allocator())


def test_lines_are_ordered_regardless_of_insertion(store):
    store.set_line(30, "PRINT 3")
    store.set_line(10, "PRINT 1")
    store.set_line(20, "PRINT 2")
    assert [n for n, _ in store.get_ordered()] == [10, 20, 30]
    assert list(store) == store.get_ordered()


def test_replace_keeps_one_entry(store):
    store.set_line(10, "PRINT 1")
    store.set_line(10, "PRINT 100")
    assert store.get_ordered() == [(10, "PRINT 100")]
    assert len(store) == 1


def test_empty_text_deletes(store):
    store.set_line(10, "PRINT 1")
    store.set_line(20, "PRINT 2")
    store.set_line(10, "   ")
    assert 10 not in store
    assert store.get_ordered() == [(20, "PRINT 2")]
    # Deleting a line that does not exist is not an error
    store.set_line(99, "")


def test_range_listing(store):
    for n in (10, 20, 30, 40):
        store.set_line(n, f"REM {n}")
    assert [n for n, _ in store.get_ordered(20, 30)] == [20, 30]
    assert [n for n, _ in store.get_ordered(25)] == [30, 40]
    assert [n for n, _ in store.get_ordered(0, 15)] == [10]


def test_traversal(store):
    store.set_line(20, "A")
    store.set_line(10, "B")
    assert store.first_line() == 10
    assert store.next_line(10) == 20
    assert store.next_line(15) == 20
    assert store.next_line(20) is None


def test_lookup_of_missing_line(store):
    with pytest.raises(UndefinedLineError) as info:
        store.lookup(500)
    assert info.value.report() == "?UNDEFINED STATEMENT ERROR"


def test_line_number_limits(store):
    store.set_line(0, "REM FIRST")
    store.set_line(65535, "REM LAST")
    with pytest.raises(BasicSyntaxError):
        store.set_line(65536, "REM")


def test_lines_are_charged_and_released():
    memory = Allocator()
    store = ProgramStore(memory)
    store.set_line(10, "PRINT 1")
    assert memory.used == len("PRINT 1") + 1 + 8
    store.set_line(10, "PRINT 12")
    assert memory.used == len("PRINT 12") + 1 + 8
    store.clear()
    assert memory.used == 0
    assert store.first_line() is None


def test_version_changes_on_edit(store):
    before = store.version
    store.set_line(10, "END")
    store.set_line(10, "")
    assert store.version == before + 2


def test_split_line_number():
    assert split_line_number("10 PRINT X") == (10, "PRINT X")
    assert split_line_number("  20GOTO 10") == (20, "GOTO 10")
    assert split_line_number("30") == (30, "")
    assert split_line_number("PRINT 10") == (None, "PRINT 10")
    with pytest.raises(BasicSyntaxError) as info:
        split_line_number("70000 PRINT")
    assert info.value.message == "ILLEGAL LINE NUMBER"
