#!/usr/bin/env python3
"""Run the calculator QA gates.

Usage:
  python run_all_qa.py                     # smoke, then truth tables
  python run_all_qa.py --only truth_tables
  python run_all_qa.py --list

Exits 1 if any selected gate fails.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

_REPO_ROOT = Path(__file__).resolve().parent
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

# gate name -> module exposing main(argv); a failing gate raises SystemExit via _die/die
GATES = {
    "smoke": "spc.qa.smoke_check",
    "truth_tables": "spc.qa.qa_truth_tables",
}


def _run_gate(name: str) -> bool:
    import importlib

    try:
        importlib.import_module(GATES[name]).main([])
    except SystemExit as e:
        return not e.code
    return True


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Run calculator QA gates.")
    ap.add_argument("--list", action="store_true", help="List gates and exit.")
    ap.add_argument("--only", default="", help="Comma-separated gates to run.")
    args = ap.parse_args(argv)

    if args.list:
        print("\n".join(GATES))
        return 0

    selected = [g.strip() for g in args.only.split(",") if g.strip()] or list(GATES)
    unknown = [g for g in selected if g not in GATES]
    if unknown:
        print(f"[RUN_ALL_QA] Unknown gate(s): {', '.join(unknown)}")
        return 1

    failed = [g for g in selected if not _run_gate(g)]
    if failed:
        print(f"=== RUN_ALL_QA FAILED: {', '.join(failed)} ===")
        return 1
    print("=== RUN_ALL_QA PASS ===")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
