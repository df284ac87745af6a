"""
Runtime-state snapshots (SAVEF / LOADF).

A snapshot holds variables, arrays, DEF FN definitions and optionally the
DATA pool, never the program text. On disk it is a pretty-printed JSON
document with sorted keys:

    {
      "arraysN": [{"dims": [3], "flat": [0, 1, 2, 3], "name": "A"}],
      "arraysS": [],
      "defFnsN": {"SQ": {"body": "X*X", "params": ["X"]}},
      "scalarsN": {"X": 1.5},
      "scalarsS": {"N$": "MSX"},
      "version": 2
    }

Optional members (defFnsN, defFnsS, dataPool, dataPointer) are left out
when empty.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from .lexer import LexError
from .parser import ParseError, parse_expression
from .runtime import Environment
from .types import BasicArray, MsxNumber, MsxString, MsxIOError, UserFunction

log = logging.getLogger(__name__)

SNAPSHOT_VERSION = 2

@dataclass
class ArrayDump:
    name: str
    dims: List[int]
    flat: List[Any]

    @property
    def is_consistent(self) -> bool:
        return math.prod(d + 1 for d in self.dims) == len(self.flat)

@dataclass
class DefFnDump:
    params: List[str]
    body: str

@dataclass
class SavedState:
    version: int = SNAPSHOT_VERSION
    scalarsN: Dict[str, float] = field(default_factory=dict)
    scalarsS: Dict[str, str] = field(default_factory=dict)
    arraysN: List[ArrayDump] = field(default_factory=list)
    arraysS: List[ArrayDump] = field(default_factory=list)
    defFnsN: Optional[Dict[str, DefFnDump]] = None
    defFnsS: Optional[Dict[str, DefFnDump]] = None
    dataPool: Optional[List[str]] = None
    dataPointer: Optional[int] = None

# ---------- export / import ----------

def export_state(env: Environment) -> SavedState:
    arrays_n: List[ArrayDump] = []
    arrays_s: List[ArrayDump] = []

    for name, arr in env.arrays.items():
        flat = [v.value for v in arr.values]
        (arrays_s if arr.is_string else arrays_n).append(ArrayDump(name, list(arr.dims), flat))

    defs_n: Dict[str, DefFnDump] = {}
    defs_s: Dict[str, DefFnDump] = {}
    for name, fn in env.functions.items():
        target = defs_s if name.endswith("$") else defs_n
        target[name] = DefFnDump(params=list(fn.params), body=fn.body_text)

    return SavedState(
        scalarsN=dict(env.num_vars),
        scalarsS=dict(env.str_vars),
        arraysN=arrays_n,
        arraysS=arrays_s,
        defFnsN=defs_n or None,
        defFnsS=defs_s or None,
        dataPool=list(env.data_pool) if env.data_pool else None,
        dataPointer=env.data_pointer if env.data_pool else None,
    )

def _restore_function(name: str, dump: DefFnDump) -> UserFunction:
    try:
        body = parse_expression(dump.body)
    except (ParseError, LexError) as exc:
        raise MsxIOError() from exc
    return UserFunction(name=name, params=list(dump.params), body_text=dump.body, body=body)

def import_state(env: Environment, state: SavedState, clear_before: bool = False,
                 restore_data: bool = True) -> None:
    """
    Apply a snapshot on top of the current state.

    With `clear_before` the variables, arrays and user functions are wiped
    first; the program itself is never touched.
    """
    for dump in state.arraysN + state.arraysS:
        if not dump.is_consistent:
            raise MsxIOError()

    functions = {
        name: _restore_function(name, dump)
        for defs in (state.defFnsN, state.defFnsS) if defs
        for name, dump in defs.items()
    }

    if clear_before:
        env.num_vars.clear()
        env.str_vars.clear()
        env.arrays.clear()
        env.functions.clear()

    env.num_vars.update(state.scalarsN)
    env.str_vars.update(state.scalarsS)

    for dump in state.arraysN:
        env.arrays[dump.name] = BasicArray(dump.name, list(dump.dims), [MsxNumber(float(v)) for v in dump.flat])
    for dump in state.arraysS:
        env.arrays[dump.name] = BasicArray(dump.name, list(dump.dims), [MsxString(str(v)) for v in dump.flat])

    env.functions.update(functions)

    if restore_data:
        if state.dataPool is not None:
            env.data_pool = list(state.dataPool)
        if state.dataPointer is not None:
            env.data_pointer = min(max(0, state.dataPointer), len(env.data_pool))

# ---------- JSON ----------

def _drop_none(obj: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in obj.items() if v is not None}

def state_to_json(state: SavedState) -> str:
    doc = _drop_none({
        "version": state.version,
        "scalarsN": state.scalarsN,
        "scalarsS": state.scalarsS,
        "arraysN": [vars(d) for d in state.arraysN],
        "arraysS": [vars(d) for d in state.arraysS],
        "defFnsN": {k: vars(v) for k, v in state.defFnsN.items()} if state.defFnsN else None,
        "defFnsS": {k: vars(v) for k, v in state.defFnsS.items()} if state.defFnsS else None,
        "dataPool": state.dataPool,
        "dataPointer": state.dataPointer,
    })
    return json.dumps(doc, indent=2, sort_keys=True)

def _defs_from_json(raw: Optional[Dict[str, Any]]) -> Optional[Dict[str, DefFnDump]]:
    if raw is None:
        return None
    return {name: DefFnDump(params=[str(p) for p in d["params"]], body=str(d["body"])) for name, d in raw.items()}

def state_from_json(text: str) -> SavedState:
    """Decode a snapshot document; any malformed content is an I/O error."""
    try:
        doc = json.loads(text)
        return SavedState(
            version=int(doc["version"]),
            scalarsN={str(k): float(v) for k, v in doc["scalarsN"].items()},
            scalarsS={str(k): str(v) for k, v in doc["scalarsS"].items()},
            arraysN=[ArrayDump(str(d["name"]), [int(x) for x in d["dims"]], list(d["flat"])) for d in doc["arraysN"]],
            arraysS=[ArrayDump(str(d["name"]), [int(x) for x in d["dims"]], list(d["flat"])) for d in doc["arraysS"]],
            defFnsN=_defs_from_json(doc.get("defFnsN")),
            defFnsS=_defs_from_json(doc.get("defFnsS")),
            dataPool=[str(x) for x in doc["dataPool"]] if doc.get("dataPool") is not None else None,
            dataPointer=int(doc["dataPointer"]) if doc.get("dataPointer") is not None else None,
        )
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise MsxIOError() from exc

# ---------- files ----------

def snapshot_path(directory: Path, name: str) -> Path:
    return Path(directory) / f"{name}.json"

def save_state_file(env: Environment, name: str) -> Path:
    path = snapshot_path(env.config.state_dir, name)
    try:
        path.write_text(state_to_json(export_state(env)), encoding="utf-8")
    except OSError as exc:
        log.warning("SAVEF %s failed: %s", path, exc)
        raise MsxIOError() from exc
    log.debug("SAVEF -> %s", path)
    return path

def load_state_file(env: Environment, name: str, clear_before: bool = False) -> Path:
    path = snapshot_path(env.config.state_dir, name)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        log.warning("LOADF %s failed: %s", path, exc)
        raise MsxIOError() from exc

    import_state(env, state_from_json(text), clear_before=clear_before)
    log.debug("LOADF <- %s (clear=%s)", path, clear_before)
    return path
