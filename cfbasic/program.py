import bisect
import logging
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from cfbasic.errors import BasicSyntaxError, UndefinedLineError
from cfbasic.memory import Allocator, Block

logger = logging.getLogger(__name__)

MAX_LINE_NUMBER = 65535

_NUMBERED = re.compile(r'^[ \t]*(\d+)[ \t]*(.*)$', re.DOTALL)


def split_line_number(line: str) -> Tuple[Optional[int], str]:
    """Splits ``"10 PRINT X"`` into ``(10, "PRINT X")``; unnumbered input gives ``(None, line)``."""
    match = _NUMBERED.match(line)
    if not match:
        return None, line
    number = int(match.group(1))
    if number > MAX_LINE_NUMBER:
        raise BasicSyntaxError("ILLEGAL LINE NUMBER")
    return number, match.group(2)


@dataclass(eq=False)
class ProgramLine:
    number: int
    text: str
    block: Block


class ProgramStore:
    """Stored program: line number -> source text, traversed in ascending order."""

    def __init__(self, memory: Allocator):
        self.memory = memory
        self._lines: Dict[int, ProgramLine] = {}
        self._numbers: List[int] = []
        # Bumped on every change so derived data (loop terminator scans) can be invalidated
        self.version = 0

    def set_line(self, number: int, text: str):
        if not 0 <= number <= MAX_LINE_NUMBER:
            raise BasicSyntaxError("ILLEGAL LINE NUMBER")
        text = text.strip()
        existing = self._lines.get(number)

        if not text:
            if existing is not None:
                self.memory.release(existing.block)
                del self._lines[number]
                self._numbers.remove(number)
                self.version += 1
                logger.debug(f"Deleted line {number}")
            return

        if existing is not None:
            self.memory.resize_text(existing.block, text)
            existing.text = text
            logger.debug(f"Replaced line {number}: {text}")
        else:
            block = self.memory.allocate_text(text)
            self._lines[number] = ProgramLine(number, text, block)
            bisect.insort(self._numbers, number)
            logger.debug(f"Added line {number}: {text}")
        self.version += 1

    def get(self, number: int) -> Optional[str]:
        line = self._lines.get(number)
        return None if line is None else line.text

    def lookup(self, number: int) -> str:
        """Text of line ``number``; a missing line is an UNDEFINED STATEMENT error."""
        line = self._lines.get(number)
        if line is None:
            raise UndefinedLineError(number)
        return line.text

    def __contains__(self, number: int) -> bool:
        return number in self._lines

    def __len__(self) -> int:
        return len(self._numbers)

    def first_line(self) -> Optional[int]:
        return self._numbers[0] if self._numbers else None

    def next_line(self, number: int) -> Optional[int]:
        index = bisect.bisect_right(self._numbers, number)
        return self._numbers[index] if index < len(self._numbers) else None

    def get_ordered(self, start: int = 0, end: int = -1) -> List[Tuple[int, str]]:
        """Lines in ascending order, limited to ``start..end`` (``end == -1`` means no upper bound)."""
        low = bisect.bisect_left(self._numbers, start)
        high = len(self._numbers) if end < 0 else bisect.bisect_right(self._numbers, end)
        return [(n, self._lines[n].text) for n in self._numbers[low:high]]

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        return iter(self.get_ordered())

    def clear(self):
        for line in self._lines.values():
            self.memory.release(line.block)
        self._lines.clear()
        self._numbers.clear()
        self.version += 1


__all__ = ["ProgramStore", "ProgramLine", "split_line_number", "MAX_LINE_NUMBER"]
