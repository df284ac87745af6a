"""
Execution engine: the single entry point a console talks to.

`Interpreter.execute(line)` takes one line of user text and returns the
text to display:

- a numbered line is stored in (or deleted from) the program
- LIST / NEW / RUN are console commands
- anything else runs immediately as a statement sequence
- while an INPUT is pending, the line is its answer, whatever it looks like

Responses end with "Ok" once control is back at the prompt, or with the
INPUT prompt while the engine waits for more input.
"""

from __future__ import annotations

import bisect
import logging
import re
import time
from pathlib import Path
from typing import Callable, List, Optional

from lark import Tree

from .config import DEFAULT_PER_NEXT_MS, InterpreterConfig
from .dispatcher import execute_statement
from .eval.io import feed_input
from .evaluator import eval_node
from .parser import compile_line
from .program import ProgramStore, is_numbered_line, resolve_program_path
from .runtime import CLS_MARKER, Environment
from .types import (
    Cursor, GosubFrame, ExecSignal, InputContext,
    Continue, Skip, Jump, Call, Resume, Suspend, End, ProgramFile,
    MsxBasicError, MsxIOError, MsxSyntaxError, UndefinedLineNumber,
)
from .utils import starts_with_word

log = logging.getLogger(__name__)

OK = "Ok"

_LIST_RANGE = re.compile(r"\s*(\d*)\s*(-?)\s*(\d*)\s*$")

class Interpreter:
    def __init__(self, config: Optional[InterpreterConfig] = None,
                 now: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.config = config or InterpreterConfig()
        self.env = Environment(self.config, now=now, sleep=sleep)
        self.program = ProgramStore()
        self._immediate: List[Tree] = []

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def awaiting_input(self) -> bool:
        return self.env.input_ctx is not None

    @property
    def prompt(self) -> Optional[str]:
        ctx = self.env.input_ctx
        return ctx.prompt if ctx is not None else None

    def execute(self, line: str) -> str:
        text = line.rstrip("\r\n")

        ctx = self.env.input_ctx
        if ctx is not None:
            return self._continue_input(ctx, text)

        stripped = text.strip()
        if not stripped:
            return ""

        if is_numbered_line(stripped):
            return self._store(stripped)

        if starts_with_word(stripped, "LIST"):
            return self._list(stripped[4:])
        if starts_with_word(stripped, "NEW") and not stripped[3:].strip():
            self.new()
            return OK
        if starts_with_word(stripped, "RUN"):
            arg = stripped[3:].strip()
            if not arg:
                return self.run()
            if arg.isdigit():
                return self.run(int(arg))
            return f"{MsxSyntaxError.default_message}\n{OK}"

        return self._run_immediate(stripped)

    def run(self, start: Optional[int] = None) -> str:
        """RUN: reset state, harvest DATA, execute from the first (or given) line."""
        self.env.clear_all("RUN start")
        self.env.rebuild_data(self.program.data_statements())
        self.env.take_output()

        numbers = self.program.line_numbers()
        if not numbers:
            return OK

        if start is None:
            index = 0
        elif start in self.program:
            index = numbers.index(start)
        else:
            return f"{UndefinedLineNumber.default_message}\n{OK}"

        log.debug("RUN from line %d (%d line(s))", numbers[index], len(numbers))
        return self._drive(Cursor(index, 0))

    def new(self) -> None:
        self.program.clear()
        self.env.clear_all("NEW")
        self._immediate = []

    def enable_throttle(self, on: bool, per_next_ms: float = DEFAULT_PER_NEXT_MS) -> None:
        self.config.throttle = on
        self.config.per_next_ms = per_next_ms

    def read_time(self) -> int:
        return self.env.clock.read()

    def write_time(self, ticks: int) -> None:
        self.env.clock.write(ticks)

    def save_program(self, name: str) -> Path:
        path = resolve_program_path(self.config.programs_dir, name)
        try:
            path.write_text(self.program.to_text(), encoding="utf-8")
        except OSError as exc:
            log.warning("SAVE %s failed: %s", path, exc)
            raise MsxIOError("Write error") from exc
        log.debug("SAVE -> %s", path)
        return path

    def load_program(self, name: str) -> Path:
        """
        Replace the program with the file's numbered lines. Program and
        runtime state are cleared first; unnumbered lines are skipped.
        """
        path = resolve_program_path(self.config.programs_dir, name)
        if not path.is_file():
            raise MsxIOError("File not found")

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("CLOAD %s failed: %s", path, exc)
            raise MsxIOError() from exc

        self.program.clear()
        self.env.clear_all("LOAD")
        self._immediate = []

        for raw in text.splitlines():
            stripped = raw.strip()
            if not stripped:
                continue
            if not is_numbered_line(stripped):
                log.warning("CLOAD %s: skipping unnumbered line %r", path, stripped)
                continue
            try:
                self.program.insert(stripped)
            except MsxBasicError as exc:
                log.warning("CLOAD %s: %s in %r", path, exc.message, stripped)

        log.debug("CLOAD <- %s (%d line(s))", path, len(self.program))
        return path

    # ------------------------------------------------------------------
    # Console commands
    # ------------------------------------------------------------------

    def _store(self, text: str) -> str:
        """Insert, replace or delete a program line."""
        try:
            self.program.insert(text)
        except MsxBasicError as exc:
            return f"{exc.message}\n{OK}"

        # saved positions index the old line table
        self.env.for_stack.clear()
        self.env.gosub_stack.clear()
        return OK

    def _list(self, arg: str) -> str:
        m = _LIST_RANGE.match(arg)
        if m is None:
            return f"{MsxSyntaxError.default_message}\n{OK}"

        first, dash, last = m.groups()
        start = int(first) if first else None
        end = int(last) if last else (None if dash else start)

        listing = self.program.list(start, end)
        return f"{listing}\n{OK}" if listing else OK

    def _run_immediate(self, text: str) -> str:
        self._immediate = compile_line(text)

        # frames left behind by an earlier immediate line can never resume
        self.env.for_stack[:] = [f for f in self.env.for_stack if f.resume.line_index is not None]
        self.env.gosub_stack[:] = [f for f in self.env.gosub_stack if f.resume.line_index is not None]

        response = self._drive(Cursor(None, 0))
        if response == f"{CLS_MARKER}\n{OK}":
            return CLS_MARKER
        return response

    def _continue_input(self, ctx: InputContext, text: str) -> str:
        try:
            response, done = feed_input(self.env, ctx, text, eval_node)
        except MsxBasicError as exc:
            self.env.input_ctx = None
            return self._fail(exc, ctx.resume)

        if not done:
            return response

        self.env.emit(response)
        return self._drive(ctx.resume)

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def _code_at(self, line_index: Optional[int]) -> List[Tree]:
        if line_index is None:
            return self._immediate
        return self.program.compiled(self.program.line_numbers()[line_index])

    def _locate(self, line: int) -> Cursor:
        numbers = self.program.line_numbers()
        idx = bisect.bisect_left(numbers, line)
        if idx == len(numbers) or numbers[idx] != line:
            raise UndefinedLineNumber()
        return Cursor(idx, 0)

    def _drive(self, cursor: Cursor) -> str:
        """
        Execute instructions from `cursor` until the program ends, stops,
        fails, or suspends for INPUT.
        """
        env = self.env

        while True:
            code = self._code_at(cursor.line_index)

            if cursor.sidx >= len(code):
                if cursor.line_index is None:
                    return self._finish()
                if cursor.line_index + 1 >= len(self.program.line_numbers()):
                    return self._finish()
                cursor = Cursor(cursor.line_index + 1, 0)
                continue

            env.cursor = cursor

            try:
                signal = execute_statement(code[cursor.sidx], env)

                match signal:
                    case Suspend(prompt=prompt):
                        return env.take_output() + prompt
                    case End():
                        return self._finish()
                    case ProgramFile(mode="cload", name=name):
                        self.load_program(name)
                        return self._finish()
                    case ProgramFile(name=name):
                        self.save_program(name)

                cursor = self._advance(signal, cursor)
            except MsxIOError as exc:
                log.warning("%s at %s", exc.message, self._describe(cursor))
                env.emit(f"{exc.message}\n")
                cursor = Cursor(cursor.line_index, cursor.sidx + 1)
            except MsxBasicError as exc:
                if cursor.line_index is None and not exc.stops_immediate:
                    env.emit(f"{exc.message}\n")
                    cursor = Cursor(None, cursor.sidx + 1)
                    continue
                return self._fail(exc, cursor)

    def _advance(self, signal: ExecSignal, cursor: Cursor) -> Cursor:
        match signal:
            case Skip(count=count):
                return Cursor(cursor.line_index, cursor.sidx + 1 + count)
            case Jump(line=line):
                return self._locate(line)
            case Call(line=line):
                target = self._locate(line)
                self.env.gosub_stack.append(GosubFrame(Cursor(cursor.line_index, cursor.sidx + 1)))
                return target
            case Resume(cursor=resume):
                return resume
            case Continue() | ProgramFile():
                return Cursor(cursor.line_index, cursor.sidx + 1)

        raise MsxSyntaxError()

    # ------------------------------------------------------------------
    # Responses
    # ------------------------------------------------------------------

    def _describe(self, cursor: Cursor) -> str:
        if cursor.line_index is None:
            return "immediate line"
        return f"line {self.program.line_numbers()[cursor.line_index]}"

    def _finish(self) -> str:
        out = self.env.take_output()
        if out and not out.endswith("\n"):
            out += "\n"
        return out + OK

    def _fail(self, exc: MsxBasicError, cursor: Cursor) -> str:
        """
        Report an error and drop back to the prompt. Inside a program line
        the message names the line; the loop and call stacks are discarded.
        """
        out = self.env.take_output()
        if out and not out.endswith("\n"):
            out += "\n"

        self.env.input_ctx = None
        self.env.fn_scopes.clear()

        if cursor.line_index is None:
            return f"{out}{exc.message}\n{OK}"

        number = self.program.line_numbers()[cursor.line_index]
        log.debug("%s in %d", exc.message, number)
        self.env.for_stack.clear()
        self.env.gosub_stack.clear()
        return f"{out}{exc.message} in {number}\n{OK}"
