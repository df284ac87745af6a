from __future__ import annotations

import importlib
import logging
import math
import time
from typing import Callable, Dict, Iterable, List, Optional, Set

from .config import InterpreterConfig
from .token_types import TIME_VARIABLE
from .types import (
    MsxNumber, MsxString, MsxValue, BasicArray, UserFunction,
    ForFrame, GosubFrame, InputContext, Cursor,
    BuiltinFn, BuiltinFunction, Builtins,
    MsxSyntaxError, TypeMismatch, IllegalFunctionCall,
    SubscriptOutOfRange, UndimensionedArray, RedimensionedArray, OutOfData,
    MsxOverflow, DuplicateParameterError, ArgumentCountError,
    default_value, is_string_name,
)
from .utils import split_data_values

log = logging.getLogger(__name__)

CLS_MARKER = "__CLS__"
PRINT_ZONE = 14
FN_DEPTH_LIMIT = 64

_BUILTINS_INITIALIZED = False

def init_builtins() -> None:
    """Load the builtin function module (idempotent) so register_builtin hooks run."""
    global _BUILTINS_INITIALIZED

    if _BUILTINS_INITIALIZED:
        return

    importlib.import_module("msxbasic.builtins")
    _BUILTINS_INITIALIZED = True

def register_builtin(name: str, *, arity: int = 1, max_arity: Optional[int] = None):
    def dec(fn: BuiltinFn):
        Builtins.functions[name] = BuiltinFunction(
            fn=fn,
            min_arity=arity,
            max_arity=arity if max_arity is None else max_arity,
        )
        return fn

    return dec

# ---------- Random numbers ----------

class MsxRandom:
    """
    Linear congruential generator behind RND.

    RND(x>0) draws, RND(0) repeats the last draw, RND(x<0) reseeds from
    |x| and then draws, so a given negative seed replays the same sequence.
    """
    MULTIPLIER = 1103515245
    INCREMENT = 12345
    MODULUS = 2 ** 31

    def __init__(self) -> None:
        self.seed = 1
        self.last = 0.5

    def _next(self) -> float:
        self.seed = (self.MULTIPLIER * self.seed + self.INCREMENT) % self.MODULUS
        self.last = self.seed / self.MODULUS
        return self.last

    def rnd(self, x: float) -> float:
        if x < 0:
            self.seed = int(abs(x)) or 1
            return self._next()
        if x == 0:
            if self.last == 0.5 and self.seed == 1:
                self._next()
            return self.last
        return self._next()

# ---------- TIME ----------

class MsxClock:
    """Tick counter read and written through the TIME variable."""

    def __init__(self, ticks_per_second: int, now: Callable[[], float] = time.monotonic):
        self.ticks_per_second = ticks_per_second
        self._now = now
        self.offset = 0
        self.moment = now()

    def read(self) -> int:
        elapsed = max(0.0, self._now() - self.moment)
        return self.offset + int(math.floor(elapsed * self.ticks_per_second))

    def write(self, ticks: int) -> None:
        self.offset = ticks
        self.moment = self._now()

    def reset(self) -> None:
        self.write(0)

# ---------- Environment ----------

class Environment:
    """
    Everything a running program can observe or change: variables, arrays,
    user functions, control stacks, the DATA pool, RND and TIME state, and
    the text printed so far for the current command.
    """

    def __init__(self, config: Optional[InterpreterConfig] = None,
                 now: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        init_builtins()
        self.config = config or InterpreterConfig()
        self._sleep = sleep

        self.num_vars: Dict[str, float] = {}
        self.str_vars: Dict[str, str] = {}
        self.arrays: Dict[str, BasicArray] = {}
        self.functions: Dict[str, UserFunction] = {}
        self.redim_allowance: Set[str] = set()

        self.for_stack: List[ForFrame] = []
        self.gosub_stack: List[GosubFrame] = []
        self.input_ctx: Optional[InputContext] = None
        self.fn_scopes: List[Dict[str, MsxValue]] = []

        self.data_pool: List[str] = []
        self.data_pointer = 0
        self.data_lines: Dict[int, int] = {}

        self.rng = MsxRandom()
        self.clock = MsxClock(self.config.ticks_per_second, now)

        self.cursor = Cursor(None, 0)
        self.out: List[str] = []

    # ---------- output ----------

    def emit(self, text: str) -> None:
        if text:
            self.out.append(text)

    def take_output(self) -> str:
        text = "".join(self.out)
        self.out = []
        return text

    def throttle(self) -> None:
        if self.config.throttle and self.config.per_next_ms > 0:
            self._sleep(self.config.per_next_ms / 1000.0)

    # ---------- scalars ----------

    def get_var(self, name: str) -> MsxValue:
        if self.fn_scopes and name in self.fn_scopes[-1]:
            return self.fn_scopes[-1][name]

        if name == TIME_VARIABLE:
            return MsxNumber(float(self.clock.read()))

        if is_string_name(name):
            return MsxString(self.str_vars.get(name, ""))
        return MsxNumber(self.num_vars.get(name, 0.0))

    def set_var(self, name: str, value: MsxValue) -> None:
        if is_string_name(name):
            if not isinstance(value, MsxString):
                raise TypeMismatch()
            self.str_vars[name] = value.value
            return

        if not isinstance(value, MsxNumber):
            raise TypeMismatch()

        if name == TIME_VARIABLE:
            self.clock.write(int(value.value))
            return

        self.num_vars[name] = value.value

    # ---------- arrays ----------

    def dim(self, name: str, bounds: List[int]) -> None:
        had_allowance = name in self.redim_allowance
        self.redim_allowance.discard(name)

        if name in self.arrays and not had_allowance:
            raise RedimensionedArray()

        if any(b < 0 for b in bounds):
            raise IllegalFunctionCall()

        size = math.prod(b + 1 for b in bounds)
        self.arrays[name] = BasicArray(name, list(bounds), [default_value(name)] * size)

    def _offset(self, name: str, indexes: List[int]) -> int:
        arr = self.arrays.get(name)
        if arr is None:
            raise UndimensionedArray()

        if len(indexes) != len(arr.dims):
            raise SubscriptOutOfRange()

        offset = 0
        for idx, bound in zip(indexes, arr.dims):
            if idx < 0 or idx > bound:
                raise SubscriptOutOfRange()
            offset = offset * (bound + 1) + idx

        return offset

    def array_get(self, name: str, indexes: List[int]) -> MsxValue:
        offset = self._offset(name, indexes)
        return self.arrays[name].values[offset]

    def array_set(self, name: str, indexes: List[int], value: MsxValue) -> None:
        if is_string_name(name) != isinstance(value, MsxString):
            raise TypeMismatch()
        offset = self._offset(name, indexes)
        self.arrays[name].values[offset] = value

    # ---------- user functions ----------

    def define_function(self, fn: UserFunction) -> None:
        if len(fn.params) > 8:
            raise ArgumentCountError()

        seen: Set[str] = set()
        for param in fn.params:
            if param.endswith("$") and not fn.name.endswith("$"):
                raise MsxSyntaxError()
            if param in seen:
                raise DuplicateParameterError()
            seen.add(param)

        log.debug("DEF FN%s(%s) = %s", fn.name, ",".join(fn.params), fn.body_text)
        self.functions[fn.name] = fn

    def push_fn_scope(self, scope: Dict[str, MsxValue]) -> None:
        if len(self.fn_scopes) >= FN_DEPTH_LIMIT:
            raise MsxOverflow()
        self.fn_scopes.append(scope)

    def pop_fn_scope(self) -> None:
        self.fn_scopes.pop()

    # ---------- DATA ----------

    def reset_data(self) -> None:
        self.data_pool = []
        self.data_pointer = 0
        self.data_lines = {}

    def add_data(self, raw: str, line_number: Optional[int] = None) -> None:
        if line_number is not None:
            self.data_lines.setdefault(line_number, len(self.data_pool))
        self.data_pool.extend(split_data_values(raw))

    def rebuild_data(self, lines: Iterable[tuple[int, str]]) -> None:
        """Harvest every DATA statement of the program, in line order."""
        self.reset_data()
        for number, raw in lines:
            self.add_data(raw, number)
        log.debug("data pool rebuilt: %d item(s)", len(self.data_pool))

    def read_data(self) -> str:
        if self.data_pointer >= len(self.data_pool):
            raise OutOfData()
        item = self.data_pool[self.data_pointer]
        self.data_pointer += 1
        return item

    def restore(self, line_number: Optional[int] = None) -> None:
        if line_number is None:
            self.data_pointer = 0
            return

        following = [n for n in self.data_lines if n >= line_number]
        self.data_pointer = self.data_lines[min(following)] if following else len(self.data_pool)

    # ---------- CLEAR ----------

    def clear_all(self, reason: str) -> None:
        """
        Reset runtime state.

        `reason` is one of "immediate" (CLEAR typed at the prompt), "RUN"
        (CLEAR inside a program), "RUN start", "LOAD", "NEW". The first two
        grant every currently dimensioned array one DIM without
        "Redimensioned array"; the last three also drop the DATA pool.
        """
        if reason in ("immediate", "RUN"):
            self.redim_allowance = set(self.arrays)
        else:
            self.redim_allowance = set()

        self.num_vars.clear()
        self.str_vars.clear()
        self.arrays.clear()
        self.functions.clear()
        self.for_stack.clear()
        self.gosub_stack.clear()
        self.fn_scopes.clear()
        self.input_ctx = None
        self.clock.reset()

        if reason in ("RUN start", "LOAD", "NEW"):
            self.reset_data()

        log.debug("state cleared (%s)", reason)

