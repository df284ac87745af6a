from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_PER_NEXT_MS = 2.076
DEFAULT_TICKS_PER_SECOND = 50

_TRUTHY = ("1", "true", "yes", "on")

def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY

def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc

def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    return Path(raw).expanduser() if raw else None

@dataclass
class InterpreterConfig:
    """
    Knobs that change how a program runs but not what it means.

    throttle          sleep after every NEXT to approximate MSX loop speed
    per_next_ms       length of that sleep
    ticks_per_second  rate of the TIME counter (50 on PAL machines)
    programs_dir      where CLOAD/SAVE resolve bare names (`<name>.bas`)
    state_dir         where SAVEF/LOADF keep snapshots (`<name>.json`)
    """
    throttle: bool = False
    per_next_ms: float = DEFAULT_PER_NEXT_MS
    ticks_per_second: int = DEFAULT_TICKS_PER_SECOND
    programs_dir: Path = field(default_factory=Path.cwd)
    state_dir: Path = field(default_factory=Path.cwd)

    @classmethod
    def from_env(cls) -> "InterpreterConfig":
        cfg = cls(
            throttle=_env_flag("MSXBASIC_THROTTLE", False),
            per_next_ms=_env_float("MSXBASIC_PER_NEXT_MS", DEFAULT_PER_NEXT_MS),
            ticks_per_second=int(_env_float("MSXBASIC_TICKS_PER_SECOND", DEFAULT_TICKS_PER_SECOND)),
        )

        programs_dir = _env_path("MSXBASIC_PROGRAMS_DIR")
        if programs_dir is not None:
            cfg.programs_dir = programs_dir

        state_dir = _env_path("MSXBASIC_STATE_DIR")
        if state_dir is not None:
            cfg.state_dir = state_dir

        return cfg
