from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from lark import Tree

from .parser import compile_line
from .types import MsxSyntaxError, UndefinedLineNumber
from .utils import split_statements, starts_with_word, strip_inline_comment

MAX_LINE_NUMBER = 65529

_NUMBERED_LINE = re.compile(r"\s*(\d+)\s*(.*)$", re.DOTALL)

def is_numbered_line(text: str) -> bool:
    return text.lstrip()[:1].isdigit()

class ProgramStore:
    """
    Line number -> source text, kept with a cache of each line's compiled
    instructions. Lines compile lazily the first time they run.
    """

    def __init__(self) -> None:
        self._lines: Dict[int, str] = {}
        self._compiled: Dict[int, List[Tree]] = {}
        self._order: Optional[List[int]] = None

    def __len__(self) -> int:
        return len(self._lines)

    def __contains__(self, number: object) -> bool:
        return number in self._lines

    def __iter__(self) -> Iterator[Tuple[int, str]]:
        for number in self.line_numbers():
            yield number, self._lines[number]

    def insert(self, text: str) -> None:
        """
        Store `<number> <text>`; a bare number deletes that line.

        Raises MsxSyntaxError for a missing or out-of-range line number and
        UndefinedLineNumber when deleting a line that does not exist.
        """
        m = _NUMBERED_LINE.match(text)
        if m is None:
            raise MsxSyntaxError()

        number = int(m.group(1))
        if number > MAX_LINE_NUMBER:
            raise MsxSyntaxError()

        body = m.group(2).rstrip()
        if not body.strip():
            if number not in self._lines:
                raise UndefinedLineNumber()
            self.delete(number)
            return

        self._lines[number] = body
        self._compiled.pop(number, None)
        self._order = None

    def get(self, number: int) -> Optional[str]:
        return self._lines.get(number)

    def delete(self, number: int) -> None:
        self._lines.pop(number, None)
        self._compiled.pop(number, None)
        self._order = None

    def clear(self) -> None:
        self._lines.clear()
        self._compiled.clear()
        self._order = None

    def line_numbers(self) -> List[int]:
        if self._order is None:
            self._order = sorted(self._lines)
        return self._order

    def compiled(self, number: int) -> List[Tree]:
        code = self._compiled.get(number)
        if code is None:
            code = compile_line(self._lines[number])
            self._compiled[number] = code
        return code

    def list(self, start: Optional[int] = None, end: Optional[int] = None) -> str:
        lines = []
        for number, text in self:
            if start is not None and number < start:
                continue
            if end is not None and number > end:
                break
            lines.append(f"{number} {text}")
        return "\n".join(lines)

    def to_text(self) -> str:
        return self.list()

    def data_statements(self) -> Iterator[Tuple[int, str]]:
        """Raw item text of every DATA statement, in line order."""
        for number, text in self:
            for stmt in split_statements(strip_inline_comment(text)):
                if starts_with_word(stmt, "DATA"):
                    yield number, stmt[4:].strip()

def resolve_program_path(directory: Path, name: str) -> Path:
    """Plain names live in `directory` as `<name>.bas`; paths are used as given."""
    path = Path(name).expanduser()
    if path.is_absolute() or name.startswith("~"):
        return path
    if not path.suffix:
        path = path.with_suffix(".bas")
    return Path(directory) / path
