from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from ctorprune.analysis.timeout_context import Deadline, deadline_clock_scope, deadline_scope
from ctorprune.deadline_clock import GasMeter


@pytest.fixture(autouse=True)
def _deadline_scope_fixture():
    with deadline_scope(Deadline.from_timeout_ms(120_000)):
        with deadline_clock_scope(GasMeter(limit=100_000_000)):
            yield
