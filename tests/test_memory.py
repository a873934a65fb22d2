import pytest

from cfbasic import memory as memory_module
from cfbasic.errors import OutOfMemoryError, SystemMemoryError
from cfbasic.memory import OVERHEAD, Allocator, format_memory_size, text_size


def test_allocate_charges_size_plus_overhead():
    memory = Allocator(100)
    block = memory.allocate(10)
    assert block.length == 10
    assert len(block.data) == 10
    assert memory.used == 10 + OVERHEAD
    assert memory.free == 100 - 18
    assert memory.live_blocks == 1


def test_allocate_refuses_beyond_limit():
    memory = Allocator(20)
    with pytest.raises(OutOfMemoryError) as info:
        memory.allocate(13)
    assert info.value.report() == "?OUT OF MEMORY ERROR"
    assert memory.used == 0
    assert memory.live_blocks == 0


def test_allocate_exact_fit():
    memory = Allocator(20)
    memory.allocate(12)
    assert memory.free == 0


def test_release_returns_bytes():
    memory = Allocator(100)
    a = memory.allocate(10)
    b = memory.allocate(20)
    memory.release(a)
    assert memory.used == 20 + OVERHEAD
    memory.release(b)
    assert memory.used == 0
    assert memory.live_blocks == 0


def test_double_release_is_rejected():
    memory = Allocator(100)
    block = memory.allocate(4)
    memory.release(block)
    with pytest.raises(ValueError):
        memory.release(block)
    assert memory.used == 0


def test_resize_in_place():
    memory = Allocator(100)
    block = memory.allocate(10)
    assert memory.resize(block, 30) is block
    assert block.length == 30
    assert memory.used == 30 + OVERHEAD
    memory.resize(block, 5)
    assert len(block.data) == 5
    assert memory.used == 5 + OVERHEAD


def test_failed_resize_leaves_block_untouched():
    memory = Allocator(40)
    block = memory.allocate(10)
    block.write(b"0123456789")
    with pytest.raises(OutOfMemoryError):
        memory.resize(block, 40)
    assert block.length == 10
    assert bytes(block.data) == b"0123456789"
    assert memory.used == 18


def test_text_blocks_are_terminated():
    memory = Allocator(100)
    block = memory.allocate_text("AB")
    assert bytes(block.data) == b"AB\0"
    assert block.length == text_size("AB") == 3
    memory.resize_text(block, "ABCDE")
    assert bytes(block.data) == b"ABCDE\0"
    assert memory.used == 6 + OVERHEAD


def test_host_failure_is_fatal(monkeypatch):
    def exhausted(size):
        raise MemoryError()

    monkeypatch.setattr(memory_module, "bytearray", exhausted, raising=False)
    memory = Allocator(100)
    with pytest.raises(SystemMemoryError):
        memory.allocate(10)
    assert memory.used == 0


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        Allocator(0)


def test_format_memory_size():
    assert format_memory_size(65536, 0, 65536) == "64.00 KB FREE, 0.00 B USED, 64 KB ALLOCATED"
    assert format_memory_size(1536, 512, 2048) == "1.50 KB FREE, 512.00 B USED, 2 KB ALLOCATED"
    assert format_memory_size(3 * 1024 ** 3, 0, 3 * 1024 ** 3).endswith("3 GB ALLOCATED")


def test_describe_tracks_usage():
    memory = Allocator(1024)
    memory.allocate(504)
    assert memory.describe() == "512.00 B FREE, 512.00 B USED, 1 KB ALLOCATED"
