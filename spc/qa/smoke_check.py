#!/usr/bin/env python3
"""Quick smoke checks for the calculator package.

Run:
  python -m spc.qa.smoke_check
"""

from __future__ import annotations
import sys
from pathlib import Path

# Ensure repo root is on sys.path regardless of where this script is invoked from.
_REPO_ROOT = Path(__file__).resolve().parents[2]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

import compileall
import math


def die(msg: str, code: int = 1) -> None:
    print(f"\n[SMOKE CHECK FAILED] {msg}\n")
    raise SystemExit(code)


def main(argv: list[str] | None = None) -> None:
    pkg_dir = _REPO_ROOT / "spc"
    if not pkg_dir.is_dir():
        die("spc/ package not found (run from the repo root).")
    if not compileall.compile_dir(str(pkg_dir), quiet=1):
        die("spc/ package failed to compile.")

    try:
        from spc.core.engine import PrimaryInputs, TransactionEngine
        from spc.core.policy import FixedPercentage
        from spc.core.sweep import bid_range, bid_sweep
    except Exception as e:
        die(f"Import failure: {e}")

    inputs = PrimaryInputs()
    for engine in (TransactionEngine(), TransactionEngine(FixedPercentage(20.0), ads_applicable=True)):
        try:
            out = engine.reconcile(inputs)
        except Exception as e:
            die(f"Reconciliation failed for {engine!r}: {e}")
        bad = [k for k, v in out.to_dict().items() if not math.isfinite(v)]
        if bad:
            die(f"Non-finite outputs for {engine!r}: {bad}")

    df = bid_sweep(inputs, bid_range(250_000, 300_000, 10_000))
    if len(df) != 6:
        die(f"Bid sweep returned {len(df)} rows (expected 6).")
    if not df["LBTT"].is_monotonic_increasing:
        die("LBTT should not fall as the bid rises.")

    print("\n[SMOKE CHECK OK]")
    print(f"Default monthly payment: {TransactionEngine().reconcile(inputs).monthly_payment:,.2f}")
    print(f"Sweep rows: {len(df)}\n")


if __name__ == "__main__":
    main()
