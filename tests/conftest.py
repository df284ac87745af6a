from __future__ import annotations

import sys
from collections import Counter
from pathlib import Path
from typing import List

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep MSXBASIC_* settings from the developer's shell out of the tests."""
    for name in (
        "MSXBASIC_THROTTLE",
        "MSXBASIC_PER_NEXT_MS",
        "MSXBASIC_TICKS_PER_SECOND",
        "MSXBASIC_PROGRAMS_DIR",
        "MSXBASIC_STATE_DIR",
        "MSXBASIC_DEBUG_PY_TRACE",
    ):
        monkeypatch.delenv(name, raising=False)


def pytest_collection_modifyitems(
    session: pytest.Session,
    config: pytest.Config,
    items: List[pytest.Item],
) -> None:
    """Refuse to run when two parametrized cases end up with the same node ID."""
    del session, config

    counts: Counter[str] = Counter(item.nodeid for item in items)
    clashes = sorted(nodeid for nodeid, n in counts.items() if n > 1)
    if clashes:
        listing = "\n".join(f"- {nodeid}" for nodeid in clashes)
        raise pytest.UsageError(f"Duplicate pytest nodeids collected:\n{listing}")
