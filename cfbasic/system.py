import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from cfbasic.errors import BasicError, DomainError, OutOfMemoryError, TypeMismatchError
from cfbasic.functions import Value
from cfbasic.memory import NUMBER_SIZE, Allocator, Block, text_size
from cfbasic.type import Position

logger = logging.getLogger(__name__)

DEFAULT_ARRAY_BOUND = 10
# Combined depth of the call and loop stacks
MAX_FRAMES = 1024


def is_string_name(name: str) -> bool:
    return name.endswith('$')


def default_value(name: str) -> Value:
    return "" if is_string_name(name) else 0.0


def value_size(value: Value) -> int:
    return text_size(value) if isinstance(value, str) else NUMBER_SIZE


def check_kind(name: str, value: Value) -> Value:
    """Coerces ``value`` to the kind fixed by ``name``; a string/number clash is a TYPE MISMATCH."""
    if is_string_name(name):
        if not isinstance(value, str):
            raise TypeMismatchError()
        return value
    if isinstance(value, str):
        raise TypeMismatchError()
    return float(value)


@dataclass(eq=False)
class Slot:
    name: str
    value: Value
    block: Block


@dataclass(eq=False)
class ArraySlot:
    name: str
    bounds: List[int]
    values: List[Value]
    block: Block

    def index(self, subscripts: Sequence[float]) -> int:
        if len(subscripts) != len(self.bounds):
            raise DomainError("BAD SUBSCRIPT")
        flat = 0
        for subscript, bound in zip(subscripts, self.bounds):
            i = int(subscript)
            if not 0 <= i <= bound:
                raise DomainError("BAD SUBSCRIPT")
            flat = flat * (bound + 1) + i
        return flat


class VariableTable:
    """Scalar and array variables. Every slot is charged to the allocator."""

    def __init__(self, memory: Allocator):
        self.memory = memory
        self.scalars: Dict[str, Slot] = {}
        self.arrays: Dict[str, ArraySlot] = {}

    def __contains__(self, name: str) -> bool:
        return name in self.scalars

    def get(self, name: str) -> Value:
        slot = self.scalars.get(name)
        return default_value(name) if slot is None else slot.value

    def set(self, name: str, value: Value):
        value = check_kind(name, value)
        size = text_size(name) + value_size(value)
        slot = self.scalars.get(name)
        if slot is None:
            self.scalars[name] = Slot(name, value, self.memory.allocate(size))
        else:
            self.memory.resize(slot.block, size)
            slot.value = value

    def delete(self, name: str):
        slot = self.scalars.pop(name, None)
        if slot is not None:
            self.memory.release(slot.block)

    def dim(self, name: str, bounds: List[int]):
        if name in self.arrays:
            raise DomainError("REDIM'D ARRAY")
        if not bounds or any(b < 0 for b in bounds):
            raise DomainError("BAD SUBSCRIPT")
        count = 1
        for bound in bounds:
            count *= bound + 1
        initial = default_value(name)
        # Charge the ledger before building the element list
        block = self.memory.allocate(text_size(name) + count * value_size(initial))
        self.arrays[name] = ArraySlot(name, list(bounds), [initial] * count, block)
        logger.debug(f"DIM {name}{tuple(bounds)}: {count} elements")

    def _array(self, name: str, subscripts: Sequence[float]) -> ArraySlot:
        if name not in self.arrays:
            self.dim(name, [DEFAULT_ARRAY_BOUND] * len(subscripts))
        return self.arrays[name]

    def get_element(self, name: str, subscripts: Sequence[float]) -> Value:
        array = self._array(name, subscripts)
        return array.values[array.index(subscripts)]

    def set_element(self, name: str, subscripts: Sequence[float], value: Value):
        value = check_kind(name, value)
        array = self._array(name, subscripts)
        i = array.index(subscripts)
        delta = value_size(value) - value_size(array.values[i])
        if delta:
            self.memory.resize(array.block, array.block.length + delta)
        array.values[i] = value

    def clear(self):
        for slot in self.scalars.values():
            self.memory.release(slot.block)
        for array in self.arrays.values():
            self.memory.release(array.block)
        self.scalars.clear()
        self.arrays.clear()


@dataclass
class CallFrame:
    resume: Position


@dataclass
class ForFrame:
    var: str
    limit: float
    step: float
    body: Position


@dataclass
class WhileFrame:
    start: Position


@dataclass
class RepeatFrame:
    body: Position


@dataclass
class DoFrame:
    start: Position


def _frame_position(frame) -> Position:
    for attr in ("resume", "body", "start"):
        if hasattr(frame, attr):
            return getattr(frame, attr)
    raise TypeError(f"not a frame: {frame!r}")


class InterpreterState:
    def __init__(self, memory: Allocator):
        self.variables = VariableTable(memory)
        self.call_stack: List[CallFrame] = []
        self.for_stack: List[ForFrame] = []
        self.while_stack: List[WhileFrame] = []
        self.repeat_stack: List[RepeatFrame] = []
        self.do_stack: List[DoFrame] = []
        self.ram: Dict[int, int] = {}
        self.position: Optional[Position] = None
        self.exit_requested = False
        self.error: Optional[BasicError] = None

    def _stacks(self):
        return (self.call_stack, self.for_stack, self.while_stack, self.repeat_stack, self.do_stack)

    def push(self, stack: list, frame):
        if sum(len(s) for s in self._stacks()) >= MAX_FRAMES:
            raise OutOfMemoryError()
        stack.append(frame)

    def clear_stacks(self):
        for stack in self._stacks():
            stack.clear()

    def reset(self):
        # Resets everything a RUN starts without; the stored program is untouched
        self.variables.clear()
        self.clear_stacks()
        self.position = None
        return self

    def drop_immediate_frames(self):
        """Discards frames whose resumption point lies in an immediate line."""
        for stack in self._stacks():
            stack[:] = [f for f in stack if _frame_position(f).line is not None]

    @property
    def current_line(self) -> Optional[int]:
        return None if self.position is None else self.position.line

    @property
    def error_occurred(self) -> bool:
        return self.error is not None

    def set_error(self, error: BasicError):
        self.error = error

    def take_error(self) -> Optional[str]:
        if self.error is None:
            return None
        report, self.error = self.error.report(), None
        return report


__all__ = [
    "InterpreterState", "VariableTable", "Slot", "ArraySlot", "CallFrame", "ForFrame",
    "WhileFrame", "RepeatFrame", "DoFrame", "is_string_name", "default_value", "check_kind",
]
