"""prompt_toolkit lexer for live MSX-BASIC syntax highlighting in the REPL."""

from __future__ import annotations

from typing import Callable

from prompt_toolkit.document import Document
from prompt_toolkit.formatted_text import StyleAndTextTuples
from prompt_toolkit.lexers import Lexer

from .lexer import Lexer as BasicTokenizer, LexError
from .token_types import TT, BUILTIN_FUNCTIONS

# Map highlight groups → prompt_toolkit style strings.
GROUP_STYLE = {
    "keyword": "bold ansicyan",
    "lineno": "bold ansiblue",
    "number": "ansimagenta",
    "string": "ansigreen",
    "identifier": "",
    "function": "bold ansiyellow",
    "operator": "",
    "punctuation": "",
    "comment": "italic ansigray",
}

_KEYWORDS = {
    TT.PRINT, TT.INPUT, TT.LET, TT.IF, TT.THEN, TT.ELSE, TT.GOTO, TT.GOSUB,
    TT.RETURN, TT.FOR, TT.TO, TT.STEP, TT.NEXT, TT.ON, TT.DIM, TT.DATA,
    TT.READ, TT.RESTORE, TT.DEF, TT.FN, TT.CLEAR, TT.CLS, TT.END, TT.STOP,
    TT.SAVEF, TT.LOADF, TT.CLOAD, TT.SAVE,
    TT.NOT, TT.AND, TT.OR, TT.XOR, TT.EQV, TT.IMP, TT.MOD,
}

_OPERATORS = {
    TT.PLUS, TT.MINUS, TT.STAR, TT.SLASH, TT.BACKSLASH, TT.CARET, TT.PERCENT,
    TT.EQ, TT.NEQ, TT.LT, TT.LTE, TT.GT, TT.GTE,
}

# Token type → highlight group.
_TT_GROUP = {
    **{tt: "keyword" for tt in _KEYWORDS},
    **{tt: "operator" for tt in _OPERATORS},
    TT.NUMBER: "number",
    TT.RADIX: "number",
    TT.STRING: "string",
    TT.IDENT: "identifier",
    TT.LPAR: "punctuation",
    TT.RPAR: "punctuation",
    TT.COMMA: "punctuation",
    TT.SEMI: "punctuation",
    TT.COLON: "punctuation",
    TT.QMARK: "keyword",
    TT.COMMENT: "comment",
}


def _group_for(tokens, idx: int) -> str:
    tok = tokens[idx]

    # leading line number of a program line
    if idx == 0 and tok.type == TT.NUMBER:
        return "lineno"

    if tok.type == TT.IDENT:
        if tok.value in BUILTIN_FUNCTIONS:
            return "function"
        if idx > 0 and tokens[idx - 1].type == TT.FN:
            return "function"

    return _TT_GROUP.get(tok.type, "")


def _highlight_line(text: str) -> StyleAndTextTuples:
    """Tokenize a single line and return styled fragments."""
    if not text:
        return [("", "")]

    try:
        tokens = BasicTokenizer(text, emit_comments=True).tokenize()
    except LexError:
        return [("", text)]

    # Token values are normalized (upper case, unescaped), so slice the
    # original text between token start columns instead of searching for them.
    starts = [tok.column - 1 for tok in tokens]
    result: StyleAndTextTuples = []

    if starts and starts[0] > 0:
        result.append(("", text[:starts[0]]))

    for i, tok in enumerate(tokens):
        if tok.type == TT.EOF:
            break
        start = starts[i]
        end = starts[i + 1] if i + 1 < len(starts) else len(text)
        segment = text[start:end]

        # Trailing whitespace stays unstyled.
        body = segment.rstrip()
        style = GROUP_STYLE.get(_group_for(tokens, i), "")
        if body:
            result.append((style, body))
        if len(body) < len(segment):
            result.append(("", segment[len(body):]))

    return result if result else [("", text)]


class BasicLexer(Lexer):
    """prompt_toolkit Lexer that highlights MSX-BASIC lines using the interpreter's lexer."""

    def lex_document(self, document: Document) -> Callable[[int], StyleAndTextTuples]:
        lines = document.lines

        cache: dict[int, StyleAndTextTuples] = {}

        def get_line(lineno: int) -> StyleAndTextTuples:
            if lineno not in cache:
                if lineno < len(lines):
                    cache[lineno] = _highlight_line(lines[lineno])
                else:
                    cache[lineno] = [("", "")]

            return cache[lineno]

        return get_line
