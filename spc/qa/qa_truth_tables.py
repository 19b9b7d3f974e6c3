#!/usr/bin/env python3
"""Truth-table QA: small, exact, model-level invariants.

These checks are intentionally numeric and explicit. They exist to prove that:
- LBTT bands are applied marginally, with boundaries taxed in the lower band.
- ADS is a flat 6% of the whole price on top of the banded tax.
- Mortgage amortization matches the closed-form annuity payment.
- Under the funds-driven deposit policy, cash closes to zero when funds suffice.
- The share-link encoding round-trips and legacy saved data migrates.

Run:
  python -m spc.qa.qa_truth_tables
"""

from __future__ import annotations

import math
import sys
from pathlib import Path


# Ensure repo root is on sys.path regardless of where this script is invoked from.
_REPO_ROOT = Path(__file__).resolve().parents[2]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))


def _die(msg: str, code: int = 1) -> None:
    print(f"\n[TRUTH TABLES FAILED] {msg}\n")
    raise SystemExit(code)


def _assert_close(name: str, got: float, exp: float, *, atol: float = 1e-9, rtol: float = 0.0) -> None:
    try:
        g = float(got)
        e = float(exp)
    except Exception:
        _die(f"{name}: non-numeric (got={got}, exp={exp})")
    if not (math.isfinite(g) and math.isfinite(e)):
        _die(f"{name}: non-finite (got={g}, exp={e})")
    if abs(g - e) > (atol + rtol * abs(e)):
        _die(f"{name}: got {g:.12g} expected {e:.12g} (atol={atol}, rtol={rtol})")


def _closed_form_pmt(principal: float, rate_pct: float, years: float) -> float:
    mr = rate_pct / 1200.0
    n = years * 12.0
    return principal * mr / (1.0 - (1.0 + mr) ** (-n))


def check_lbtt_bands() -> None:
    from spc.core.taxes import calc_lbtt, compute_tax

    table = [
        (0.0, 0.0),
        (145_000.0, 0.0),
        (145_001.0, 0.02),
        (250_000.0, 2_100.0),
        (325_000.0, 5_850.0),
        (350_000.0, 8_350.0),
        (750_000.0, 48_350.0),
        (1_000_000.0, 78_350.0),
    ]
    for price, exp in table:
        _assert_close(f"LBTT({price:,.0f})", calc_lbtt(price), exp, atol=1e-6)

    for price in (100_000.0, 265_000.0, 800_000.0):
        _assert_close(
            f"ADS({price:,.0f})",
            compute_tax(price, True),
            compute_tax(price, False) + 0.06 * price,
            atol=1e-6,
        )


def check_amortization() -> None:
    from spc.core.mortgage import monthly_payment

    for principal, rate, years in [(200_000.0, 4.5, 25.0), (150_000.0, 3.2, 30.0), (90_000.0, 6.0, 12.5)]:
        _assert_close(
            f"PMT({principal:,.0f}, {rate}%, {years}y)",
            monthly_payment(principal, rate, years),
            _closed_form_pmt(principal, rate, years),
            rtol=1e-10,
        )
    _assert_close("PMT zero rate", monthly_payment(200_000.0, 0.0, 25.0), 0.0)
    _assert_close("PMT zero term", monthly_payment(200_000.0, 4.5, 0.0), 0.0)
    _assert_close("PMT zero principal", monthly_payment(0.0, 4.5, 25.0), 0.0)


def check_reconciliation() -> None:
    from spc.core.engine import PrimaryInputs, reconcile

    out = reconcile(PrimaryInputs())
    # Defaults: overbid 15k, LBTT 2,850, upfront fees 1k, equity 58.5k, funds 78.5k.
    _assert_close("default overbid", out.overbid_amount, 15_000.0)
    _assert_close("default LBTT", out.tax_liability, 2_850.0, atol=1e-6)
    _assert_close("default deposit", out.required_deposit, 58_150.0, atol=1e-6)
    _assert_close("default mortgage", out.mortgage_amount, 191_850.0, atol=1e-6)
    _assert_close("default remaining cash", out.remaining_cash, 0.0)
    _assert_close("default LTV", out.loan_to_value_percent, 76.74, atol=1e-9)


def check_codec() -> None:
    from spc.core.engine import PrimaryInputs
    from spc.core.state_codec import LEGACY_STORAGE_KEY, decode_query, encode_query, load_inputs

    rec = PrimaryInputs(bid_amount=271_234.56, interest_rate_percent=3.99)
    if decode_query(encode_query(rec)) != rec:
        _die("encode/decode round-trip changed the record")
    if encode_query(PrimaryInputs()) != {}:
        _die("default record should encode to no parameters")

    params: dict = {}
    store = {LEGACY_STORAGE_KEY: '{"sellingFees": 2000}'}
    migrated = load_inputs(params, store)
    _assert_close("migrated sellingFeesAtSale", migrated.selling_fees_at_sale, 2_000.0)
    if LEGACY_STORAGE_KEY in store:
        _die("legacy blob should be deleted after migration")
    if params.get("ssfs") != "2000":
        _die(f"migration should re-emit the record as query params (got {params})")


def main(argv: list[str] | None = None) -> None:
    check_lbtt_bands()
    check_amortization()
    check_reconciliation()
    check_codec()
    print("\n[TRUTH TABLES OK]\n")


if __name__ == "__main__":
    main()
