from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
from typing_extensions import TypeAlias
from .tree import Node

# ---------- Value Model ----------

@dataclass
class MsxNumber:
    value: float
    def __repr__(self) -> str:
        v = self.value
        return str(int(v)) if v.is_integer() else str(v)

@dataclass
class MsxString:
    value: str
    def __repr__(self) -> str:
        return f'"{self.value}"'

MsxValue: TypeAlias = MsxNumber | MsxString

def is_string_name(name: str) -> bool:
    """String variables, arrays and functions are the `$`-suffixed names."""
    return name.endswith("$")

def default_value(name: str) -> MsxValue:
    return MsxString("") if is_string_name(name) else MsxNumber(0.0)

BuiltinFn = Callable[['Environment', List[MsxValue]], MsxValue]

@dataclass(frozen=True)
class BuiltinFunction:
    fn: BuiltinFn
    min_arity: int
    max_arity: int

# ---------- Execution state records ----------

@dataclass(frozen=True)
class Cursor:
    """
    Position of an instruction: program line index plus instruction index
    within that line. `line_index` None is the immediate-mode line.
    """
    line_index: Optional[int]
    sidx: int

@dataclass
class ForFrame:
    var: str
    limit: float
    step: float
    resume: Cursor

@dataclass
class GosubFrame:
    resume: Cursor

@dataclass
class InputContext:
    """A suspended INPUT waiting for the user's next line."""
    targets: List[Node]
    prompt: str
    resume: Cursor
    next_index: int = 0

@dataclass
class UserFunction:
    name: str
    params: List[str]
    body_text: str
    body: Node

@dataclass
class BasicArray:
    name: str
    dims: List[int]
    values: List[MsxValue] = field(default_factory=list)

    @property
    def is_string(self) -> bool:
        return is_string_name(self.name)

# ---------- Exceptions ----------

class MsxBasicError(Exception):
    """
    Base of every BASIC-level error. The message is the exact text shown
    to the user ("Syntax error", "Overflow", ...).

    `stops_immediate` marks errors that abandon the rest of an immediate
    command line; the others are reported and the line carries on.
    """
    default_message = "Error"
    stops_immediate = True

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

class MsxSyntaxError(MsxBasicError):
    default_message = "Syntax error"

class DuplicateParameterError(MsxBasicError):
    default_message = "Duplicate parameter name"
    stops_immediate = False

class ArgumentCountError(MsxBasicError):
    default_message = "Incorrect number of arguments"
    stops_immediate = False

class IllegalFunctionCall(MsxBasicError):
    default_message = "Illegal function call"
    stops_immediate = False

class SubscriptOutOfRange(MsxBasicError):
    default_message = "Subscript out of range"

class UndimensionedArray(MsxBasicError):
    default_message = "Undimensioned array"

class NextWithoutFor(MsxBasicError):
    default_message = "NEXT without FOR"

class ReturnWithoutGosub(MsxBasicError):
    default_message = "RETURN without GOSUB"

class UndefinedLineNumber(MsxBasicError):
    default_message = "Undefined line number"

class DivisionByZero(MsxBasicError):
    default_message = "Division by zero"

class MsxOverflow(MsxBasicError):
    default_message = "Overflow"

class TypeMismatch(MsxBasicError):
    default_message = "Type mismatch"

class RedimensionedArray(MsxBasicError):
    default_message = "Redimensioned array"
    stops_immediate = False

class OutOfData(MsxBasicError):
    default_message = "Out of data"
    stops_immediate = False

class MsxIOError(MsxBasicError):
    """File problems; reported but never fatal to a running program."""
    default_message = "I/O error"
    stops_immediate = False

# ---------- Statement outcomes ----------

@dataclass(frozen=True)
class Continue:
    """Fall through to the next instruction."""

@dataclass(frozen=True)
class Skip:
    """Skip the next `count` instructions of the current line."""
    count: int

@dataclass(frozen=True)
class Jump:
    line: int

@dataclass(frozen=True)
class Call:
    """GOSUB: jump to `line`, returning to the instruction after this one."""
    line: int

@dataclass(frozen=True)
class Resume:
    """Continue at a saved cursor (RETURN, NEXT looping back)."""
    cursor: Cursor

@dataclass(frozen=True)
class Suspend:
    """Stop and wait for a line of INPUT; `prompt` is shown to the user."""
    prompt: str

@dataclass(frozen=True)
class End:
    pass

@dataclass(frozen=True)
class ProgramFile:
    """CLOAD / SAVE, carried out by the interpreter that owns the program."""
    mode: str
    name: str

ExecSignal: TypeAlias = Continue | Skip | Jump | Call | Resume | Suspend | End | ProgramFile

CONTINUE = Continue()

class Builtins:
    functions: Dict[str, BuiltinFunction] = {}
