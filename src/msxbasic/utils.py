from __future__ import annotations

import math
import os
from decimal import Decimal
from typing import List, Optional


def debug_py_trace_enabled() -> bool:
    """Return True if Python tracebacks should be shown for internal errors."""
    return os.getenv("MSXBASIC_DEBUG_PY_TRACE", "").strip().lower() in ("1", "true", "yes", "on")


# ---------- Numbers ----------

def to_int16(value: int) -> int:
    """Wrap an integer to the 16-bit two's complement range."""
    value &= 0xFFFF
    return value - 0x10000 if value & 0x8000 else value

def format_number(value: float) -> str:
    """Canonical text of a numeric value: integers bare, else 14 significant digits."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Inf" if value > 0 else "-Inf"
    if value == 0:
        return "0"

    truncated = math.trunc(value)
    if abs(value - truncated) < 1e-12:
        return str(int(truncated))

    text = format(Decimal(format(value, ".14g")), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text

def format_number_for_print(value: float) -> str:
    """PRINT form: non-negative numbers get a leading sign column."""
    core = format_number(value)
    return " " + core if value >= 0 else core


# ---------- Source text ----------

def _is_ident_char(ch: Optional[str]) -> bool:
    return ch is not None and (ch.isalnum() or ch == "$")

def starts_with_word(text: str, word: str) -> bool:
    if text[:len(word)].upper() != word:
        return False
    return not _is_ident_char(text[len(word)] if len(text) > len(word) else None)

def strip_inline_comment(text: str) -> str:
    """Cut a trailing `'` comment or a standalone REM word outside strings."""
    in_str = False
    i = 0

    while i < len(text):
        ch = text[i]
        if ch == '"':
            in_str = not in_str
        elif not in_str:
            if ch == "'":
                return text[:i].strip()
            if text[i:i + 3].upper() == "REM":
                before = text[i - 1] if i > 0 else None
                after = text[i + 3] if i + 3 < len(text) else None
                if not _is_ident_char(before) and not _is_ident_char(after):
                    return text[:i].strip()
        i += 1

    return text

def split_statements(text: str) -> List[str]:
    """
    Split a line on top-level `:`.

    An IF statement owns the rest of its line, including any `:`, so once a
    statement starts with IF no further splitting happens.
    """
    out: List[str] = []
    cur = ""
    in_str = False
    paren = 0

    for ch in text:
        if ch == '"':
            in_str = not in_str
        elif not in_str:
            if ch == "(":
                paren += 1
            elif ch == ")":
                paren = max(0, paren - 1)
            elif ch == ":" and paren == 0 and not starts_with_word(cur.strip(), "IF"):
                out.append(cur.strip())
                cur = ""
                continue
        cur += ch

    out.append(cur.strip())
    return [stmt for stmt in out if stmt]

def _split_csv(text: str) -> List[str]:
    out: List[str] = []
    cur = ""
    in_str = False

    for ch in text:
        if ch == '"':
            in_str = not in_str
        elif ch == "," and not in_str:
            out.append(cur.strip())
            cur = ""
            continue
        cur += ch

    out.append(cur.strip())
    return out

def split_data_values(text: str) -> List[str]:
    """Items of a DATA statement, quotes kept, empty items dropped."""
    return [item for item in _split_csv(text) if item]

def split_input_fields(text: str) -> List[str]:
    """Fields typed in answer to INPUT; an empty line yields no fields."""
    if not text.strip():
        return []
    return _split_csv(text)

def decode_basic_string(text: str) -> Optional[str]:
    """Decode a quoted literal (doubled quote = embedded quote), else None."""
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        return text[1:-1].replace('""', '"')
    return None
