"""Each public package must import cleanly on its own, in a fresh interpreter."""

import subprocess
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]


@pytest.mark.parametrize(
    "module",
    [
        "parley.bootstrap",
        "parley.billing",
        "parley.billing.ledger",
        "parley.billing.accumulator",
        "parley.interview",
        "parley.notifications",
        "parley.notifications.completion",
        "parley.synthesis",
    ],
)
def test_module_imports_in_fresh_interpreter(module: str) -> None:
    result = subprocess.run(
        [sys.executable, "-c", f"import {module}"],
        capture_output=True,
        text=True,
        cwd=ROOT,
        timeout=60,
    )
    assert result.returncode == 0, result.stderr
