"""LBTT rule freshness checker.

Revenue Scotland revises LBTT bands and the ADS rate from time to time (usually
at the Scottish Budget). ``spc.core.taxes`` carries an explicit *last reviewed*
date; CI runs this script so a stale band table fails loudly instead of quietly
producing wrong tax figures.

Usage:
  python tools/maintenance/check_policy_freshness.py [MAX_DAYS] [WARN_DAYS]

Exits non-zero once the marker is MAX_DAYS old (default 365); prints a GitHub
Actions warning from WARN_DAYS (default 330).
"""

from __future__ import annotations

import datetime as dt
import sys
from pathlib import Path

# Ensure repo root is on sys.path so `import spc.*` works when run as a script.
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def main(argv: list[str] | None = None, *, today: dt.date | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    max_days = int(args[0]) if len(args) > 0 else 365
    warn_days = int(args[1]) if len(args) > 1 else 330

    from spc.core.taxes import ADS_RATE, LBTT_BANDS, TAX_RULES_LAST_REVIEWED

    reviewed = TAX_RULES_LAST_REVIEWED
    age = ((today or dt.date.today()) - reviewed).days
    label = f"spc.core.taxes ({len(LBTT_BANDS)} LBTT bands, ADS {ADS_RATE:.0%})"

    if age >= max_days:
        print(f"::error::{label} last reviewed {reviewed.isoformat()} ({age} days ago). Update required.")
        return 1
    if age >= warn_days:
        print(f"::warning::{label} last reviewed {reviewed.isoformat()} ({age} days ago). Check for Budget changes.")
    else:
        print(f"OK: {label} last reviewed {reviewed.isoformat()} ({age} days ago)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
