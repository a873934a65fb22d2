import logging
from pathlib import Path
from typing import Iterable, List, Tuple

from cfbasic.errors import BasicError, BasicIOError
from cfbasic.program import split_line_number

logger = logging.getLogger(__name__)


def save(name: str, lines: Iterable[Tuple[int, str]]) -> None:
    path = Path(name)
    text = "".join(f"{number} {source}\n" for number, source in lines)
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        logger.error(f"SAVE {path}: {e}")
        raise BasicIOError("FILE I/O") from e
    logger.info(f"Saved {path}")


def load(name: str) -> List[Tuple[int, str]]:
    path = Path(name)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise BasicIOError("FILE NOT FOUND") from e
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"LOAD {path}: {e}")
        raise BasicIOError("FILE I/O") from e

    lines = []
    for lineno, raw in enumerate(text.splitlines(), start=1):
        if not raw.strip():
            continue
        try:
            number, source = split_line_number(raw)
        except BasicError:
            number = None
        if number is None:
            logger.warning(f"{path}:{lineno}: skipped line without a valid line number")
            continue
        lines.append((number, source.rstrip()))
    logger.info(f"Loaded {len(lines)} lines from {path}")
    return lines


__all__ = ["load", "save"]
