"""Bounded allocator.

Every dynamically sized value of the interpreter (token text, stored program
lines, variable slots, string temporaries, the screen grid) is backed by a
:class:`Block` obtained here, so the interpreter as a whole never uses more than
the configured ceiling. Running into the ceiling is an ordinary BASIC error;
only a failure of the host allocator is fatal.
"""
import logging
from dataclasses import dataclass

from cfbasic.errors import OutOfMemoryError, SystemMemoryError

logger = logging.getLogger(__name__)

# Bookkeeping cost charged on top of every block
OVERHEAD = 8
DEFAULT_LIMIT = 64 * 1024
NUMBER_SIZE = 8

UNITS = ("B", "KB", "MB", "GB")


def text_size(text: str) -> int:
    """Bytes needed to hold ``text`` as a terminated UTF-8 string."""
    return len(text.encode("utf-8")) + 1


@dataclass(eq=False)
class Block:
    length: int
    data: bytearray
    released: bool = False

    @property
    def cost(self) -> int:
        return self.length + OVERHEAD

    def write(self, payload: bytes) -> None:
        self.data[:len(payload)] = payload


class Allocator:
    def __init__(self, limit: int = DEFAULT_LIMIT):
        if limit <= 0:
            raise ValueError(f"memory limit must be positive, got {limit}")
        self.limit = limit
        self.used = 0
        self.live_blocks = 0

    @property
    def free(self) -> int:
        return self.limit - self.used

    def allocate(self, size: int) -> Block:
        if size < 0:
            raise ValueError(f"negative allocation size: {size}")
        cost = size + OVERHEAD
        if self.used + cost > self.limit:
            logger.debug(f"allocation of {size} bytes refused ({self.used}/{self.limit} in use)")
            raise OutOfMemoryError(size)
        try:
            data = bytearray(size)
        except MemoryError as e:
            raise SystemMemoryError("SYSTEM OUT OF MEMORY") from e
        self.used += cost
        self.live_blocks += 1
        return Block(size, data)

    def allocate_text(self, text: str) -> Block:
        encoded = text.encode("utf-8")
        block = self.allocate(len(encoded) + 1)
        block.write(encoded)
        return block

    def resize(self, block: Block, size: int) -> Block:
        """Grows or shrinks ``block`` in place; on failure it is left exactly as it was."""
        if block.released:
            raise ValueError("resize of a released block")
        if size < 0:
            raise ValueError(f"negative allocation size: {size}")
        delta = size - block.length
        if self.used + delta > self.limit:
            logger.debug(f"resize {block.length} -> {size} refused ({self.used}/{self.limit} in use)")
            raise OutOfMemoryError(size)
        try:
            if delta > 0:
                block.data.extend(bytes(delta))
            else:
                del block.data[size:]
        except MemoryError as e:
            raise SystemMemoryError("SYSTEM OUT OF MEMORY") from e
        block.length = size
        self.used += delta
        return block

    def resize_text(self, block: Block, text: str) -> Block:
        encoded = text.encode("utf-8")
        self.resize(block, len(encoded) + 1)
        block.write(encoded + b"\0")
        return block

    def release(self, block: Block) -> None:
        if block.released:
            raise ValueError("block released twice")
        self.used -= block.cost
        self.live_blocks -= 1
        block.released = True
        block.data = bytearray()

    def describe(self) -> str:
        return format_memory_size(self.free, self.used, self.limit)


def _scale(value: float):
    unit = 0
    while value >= 1024 and unit < len(UNITS) - 1:
        value /= 1024
        unit += 1
    return value, UNITS[unit]


def format_memory_size(free: int, used: int, limit: int) -> str:
    free_value, free_unit = _scale(float(free))
    used_value, used_unit = _scale(float(used))
    limit_value, limit_unit = _scale(float(limit))
    return (f"{free_value:.2f} {free_unit} FREE, {used_value:.2f} {used_unit} USED, "
            f"{limit_value:.0f} {limit_unit} ALLOCATED")


__all__ = ["Allocator", "Block", "OVERHEAD", "DEFAULT_LIMIT", "NUMBER_SIZE", "text_size", "format_memory_size"]
