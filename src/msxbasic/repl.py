"""Interactive MSX-BASIC console, powered by prompt_toolkit."""

from __future__ import annotations

import os
import re
import sys
import traceback
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .config import InterpreterConfig
from .engine import Interpreter
from .repl_highlight import BasicLexer
from .runtime import CLS_MARKER
from .types import MsxBasicError
from .utils import debug_py_trace_enabled

# Characters pasted text often carries that BASIC should never see.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Console commands: name -> (help text, argument hint).
_SLASH_CMDS = {
    "/clear": ("Clear the terminal screen", ""),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Discard the program and all variables", ""),
    "/throttle": ("Toggle MSX loop timing", "[on|off]"),
}

_ON = ("on", "1", "true", "yes")
_OFF = ("off", "0", "false", "no")


class _SlashCompleter(Completer):
    """Offers the console's slash commands while the line starts with '/'."""

    def get_completions(self, document, complete_event):
        typed = document.text_before_cursor
        if not typed.startswith("/"):
            return
        for cmd, (desc, hint) in _SLASH_CMDS.items():
            if cmd.startswith(typed):
                yield Completion(
                    cmd,
                    start_position=-len(typed),
                    display=f"{cmd} {hint}".rstrip(),
                    display_meta=desc,
                )


def _parse_toggle(arg: str, current: bool) -> Optional[bool]:
    """on/off words set the flag, no argument flips it, anything else is None."""
    word = arg.lower()
    if not word:
        return not current
    if word in _ON:
        return True
    if word in _OFF:
        return False
    return None


def _cmd_clear(arg: str, interp_box: list[Interpreter]) -> None:
    clear()


def _cmd_py_traceback(arg: str, interp_box: list[Interpreter]) -> None:
    on = _parse_toggle(arg, debug_py_trace_enabled())
    if on is None:
        print("Usage: /py-traceback [on|off]", file=sys.stderr)
        return
    if on:
        os.environ["MSXBASIC_DEBUG_PY_TRACE"] = "1"
    else:
        os.environ.pop("MSXBASIC_DEBUG_PY_TRACE", None)
    print(f"Python traceback: {'on' if debug_py_trace_enabled() else 'off'}")


def _cmd_throttle(arg: str, interp_box: list[Interpreter]) -> None:
    interp = interp_box[0]
    on = _parse_toggle(arg, interp.config.throttle)
    if on is None:
        print("Usage: /throttle [on|off]", file=sys.stderr)
        return
    interp.enable_throttle(on, interp.config.per_next_ms)
    print(f"Throttle: {'on' if on else 'off'}")


def _cmd_reset(arg: str, interp_box: list[Interpreter]) -> None:
    interp_box[0] = Interpreter(interp_box[0].config)
    print("Environment reset.")


_SLASH_HANDLERS = {
    "/clear": _cmd_clear,
    "/py-traceback": _cmd_py_traceback,
    "/throttle": _cmd_throttle,
    "/reset": _cmd_reset,
}


def _handle_slash(line: str, interp_box: list[Interpreter]) -> bool:
    """Run `line` as a console command if it starts with '/'; True when it did."""
    cmd, _, arg = line.strip().partition(" ")
    if not cmd.startswith("/"):
        return False

    handler = _SLASH_HANDLERS.get(cmd)
    if handler is None:
        print(f"Unknown command: {cmd}", file=sys.stderr)
    else:
        handler(arg.strip(), interp_box)
    return True


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def _show(response: str) -> str:
    """
    Print an engine response. Screen clears embedded in it are performed in
    place. Returns the unterminated tail, which is the INPUT prompt while
    the engine is waiting for an answer.
    """
    chunks = response.split(CLS_MARKER)
    for i, chunk in enumerate(chunks):
        if i:
            clear()
        if i == len(chunks) - 1:
            head, sep, tail = chunk.rpartition("\n")
            if sep:
                print(head)
            return tail
        print(chunk, end="")
    return ""


def repl(config: Optional[InterpreterConfig] = None) -> None:
    """Interactive console loop with prompt_toolkit."""
    # Use a mutable box so /reset can swap the interpreter.
    interp_box: list[Interpreter] = [Interpreter(config or InterpreterConfig.from_env())]

    history = InMemoryHistory()
    lexer = BasicLexer()

    bindings = KeyBindings()

    @bindings.add("backspace")
    def _backspace(event):
        buf = event.app.current_buffer
        buf.delete_before_cursor(1)
        if buf.text.startswith("/"):
            buf.start_completion()

    session: PromptSession[str] = PromptSession(
        history=history,
        lexer=lexer,
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
    )

    print("MSX BASIC, Ctrl-D to exit, / for commands")
    print("Ok")

    prompt = ""
    while True:
        interp = interp_box[0]
        try:
            text = session.prompt(prompt)
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            if interp.awaiting_input:
                interp.env.input_ctx = None
                print("Break\nOk")
            prompt = ""
            continue

        text = _normalize(text)
        prompt = ""

        if not interp.awaiting_input and _handle_slash(text, interp_box):
            continue

        try:
            response = interp.execute(text)
        except KeyboardInterrupt:
            print("Break\nOk")
            continue
        except (MsxBasicError, RecursionError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            if debug_py_trace_enabled() and exc.__traceback__ is not None:
                print("\nPython traceback:", file=sys.stderr)
                print(
                    "".join(traceback.format_tb(exc.__traceback__)),
                    file=sys.stderr,
                    end="",
                )
            continue

        if response == CLS_MARKER:
            clear()
            print("Ok")
            continue

        tail = _show(response)
        if interp.awaiting_input:
            prompt = tail
        elif tail:
            print(tail)
