"""
Token Types for the MSX-BASIC parser

Shared between lexer and parser to avoid circular dependencies.
"""

from typing import Any
from dataclasses import dataclass
from enum import Enum, auto


class TT(Enum):
    """Token Types - mirrors the statement and expression terminals"""

    # Literals
    NUMBER = auto()
    RADIX = auto()
    STRING = auto()
    IDENT = auto()

    # Statement keywords
    PRINT = auto()
    INPUT = auto()
    LET = auto()
    IF = auto()
    THEN = auto()
    ELSE = auto()
    GOTO = auto()
    GOSUB = auto()
    RETURN = auto()
    FOR = auto()
    TO = auto()
    STEP = auto()
    NEXT = auto()
    ON = auto()
    DIM = auto()
    DATA = auto()
    READ = auto()
    RESTORE = auto()
    DEF = auto()
    FN = auto()
    CLEAR = auto()
    CLS = auto()
    END = auto()
    STOP = auto()
    REM = auto()
    SAVEF = auto()
    LOADF = auto()
    CLOAD = auto()
    SAVE = auto()

    # Word operators
    NOT = auto()
    AND = auto()
    OR = auto()
    XOR = auto()
    EQV = auto()
    IMP = auto()
    MOD = auto()

    # Operators
    PLUS = auto()
    MINUS = auto()
    STAR = auto()
    SLASH = auto()
    BACKSLASH = auto()
    CARET = auto()
    PERCENT = auto()
    EQ = auto()
    NEQ = auto()
    LT = auto()
    LTE = auto()
    GT = auto()
    GTE = auto()

    # Punctuation
    LPAR = auto()
    RPAR = auto()
    COMMA = auto()
    SEMI = auto()
    COLON = auto()
    QMARK = auto()

    # Layout
    COMMENT = auto()
    EOF = auto()


@dataclass
class Tok:
    """Token with position info"""

    type: TT
    value: Any
    line: int
    column: int

    def __repr__(self) -> str:
        return f"Tok({self.type.name}, {self.value!r}, {self.line}:{self.column})"


# Built-in functions callable as NAME(args). The parser needs the names to
# tell a function call apart from an array element; the evaluator keeps the
# implementations in the runtime registry.
STRING_FUNCTIONS = frozenset(
    {
        "LEFT$",
        "RIGHT$",
        "MID$",
        "CHR$",
        "STR$",
        "HEX$",
        "BIN$",
        "OCT$",
        "STRING$",
        "SPACE$",
    }
)

NUMERIC_FUNCTIONS = frozenset(
    {
        "VAL",
        "LEN",
        "ASC",
        "INSTR",
        "ABS",
        "SGN",
        "INT",
        "FIX",
        "SQR",
        "RND",
        "SIN",
        "COS",
        "TAN",
        "EXP",
        "LOG",
        "ATN",
    }
)

BUILTIN_FUNCTIONS = STRING_FUNCTIONS | NUMERIC_FUNCTIONS

# Reserved system variable holding the tick clock.
TIME_VARIABLE = "TIME"
