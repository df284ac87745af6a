from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Iterable, List, Optional

from .config import InterpreterConfig
from .engine import OK, Interpreter
from .program import is_numbered_line
from .runtime import CLS_MARKER

log = logging.getLogger(__name__)

def run(source: str, inputs: Iterable[str] = (), config: Optional[InterpreterConfig] = None) -> str:
    """
    Feed `source` to a fresh interpreter line by line, then RUN whatever
    program it stored. Pending INPUT statements are answered from `inputs`;
    when those run out the transcript so far is returned.
    """
    interp = Interpreter(config or InterpreterConfig.from_env())
    answers = iter(inputs)
    transcript: List[str] = []

    def feed(line: str) -> bool:
        response = interp.execute(line)
        while interp.awaiting_input:
            transcript.append(response)
            answer = next(answers, None)
            if answer is None:
                log.debug("input exhausted at prompt %r", interp.prompt)
                return False
            response = interp.execute(answer)
        if response:
            transcript.append(response)
        return True

    ran = False
    for line in source.splitlines():
        if not line.strip():
            continue
        if is_numbered_line(line.strip()):
            # storing a line only echoes Ok; keep failures in the transcript
            response = interp.execute(line)
            if response != OK:
                transcript.append(response)
            continue
        if line.strip().upper() == "RUN" or line.strip().upper().startswith("RUN "):
            ran = True
        if not feed(line):
            return _render(transcript)

    if not ran and len(interp.program):
        feed("RUN")

    return _render(transcript)

def _render(transcript: List[str]) -> str:
    return "\n".join(t.replace(CLS_MARKER, "") for t in transcript if t != CLS_MARKER)

def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Existing path => read file contents.
    - Otherwise treat the argument as literal source.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    if candidate.exists():
        return candidate.read_text(encoding="utf-8")

    return arg

def _configure_logging() -> None:
    level = os.getenv("MSXBASIC_LOG_LEVEL", "WARNING").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

def main() -> None:
    _configure_logging()

    config = InterpreterConfig.from_env()
    inputs: List[str] = []
    arg = None
    it = iter(sys.argv[1:])

    for token in it:
        if token == "--throttle":
            config.throttle = True
            continue

        if token.startswith("--input="):
            inputs.append(token.split("=", 1)[1])
            continue

        if token == "--input":
            try:
                inputs.append(next(it))
            except StopIteration:
                raise SystemExit("--input flag requires a value") from None
            continue

        if arg is None:
            arg = token
        else:
            raise SystemExit(f"Unexpected argument: {token}")

    if arg is None and sys.stdin.isatty():
        from .repl import repl

        repl(config)
        return

    source = _load_source(arg or "-")
    print(run(source, inputs, config))

if __name__ == "__main__":
    main()
