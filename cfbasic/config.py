import os
import re
from dataclasses import dataclass
from typing import Optional

from cfbasic.memory import DEFAULT_LIMIT

VERSION = "1.0.1"

_SIZE = re.compile(r"^\s*([0-9]*\.?[0-9]+)\s*([A-Za-z]?)\s*$")
_MULTIPLIERS = {"": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3}


def parse_memory_size(text: str) -> int:
    """Parses sizes such as ``2048K``, ``512m`` or ``1.5G`` into bytes."""
    match = _SIZE.match(text or "")
    if not match:
        raise ValueError(f"Invalid memory size: {text}")
    number, suffix = match.groups()
    multiplier = _MULTIPLIERS.get(suffix.upper())
    if multiplier is None:
        raise ValueError(f"Invalid memory size suffix: {suffix}")
    size = int(float(number) * multiplier)
    if size <= 0:
        raise ValueError(f"Invalid memory size: {text}")
    return size


@dataclass
class Settings:
    memory_limit: int = DEFAULT_LIMIT
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    rows: Optional[int] = None
    cols: Optional[int] = None

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        environ = os.environ if environ is None else environ
        settings = cls()
        if environ.get("CFBASIC_MEM"):
            settings.memory_limit = parse_memory_size(environ["CFBASIC_MEM"])
        if environ.get("CFBASIC_LOG_LEVEL"):
            settings.log_level = environ["CFBASIC_LOG_LEVEL"].upper()
        if environ.get("CFBASIC_LOG_FILE"):
            settings.log_file = environ["CFBASIC_LOG_FILE"]
        return settings


__all__ = ["VERSION", "Settings", "parse_memory_size"]
