"""Scottish Land and Buildings Transaction Tax (LBTT) utilities."""

from __future__ import annotations

import datetime
import math

# Policy freshness marker (used by tools/maintenance/check_policy_freshness.py)
TAX_RULES_LAST_REVIEWED = datetime.date(2026, 9, 30)

# Residential LBTT bands: (inclusive upper threshold, marginal rate), ascending.
# A price exactly on a threshold is taxed entirely within the band it terminates.
LBTT_BANDS: list[tuple[float, float]] = [
    (145_000.0, 0.0),
    (250_000.0, 0.02),
    (325_000.0, 0.05),
    (750_000.0, 0.10),
    (float("inf"), 0.12),
]

# Additional Dwelling Supplement: flat levy on the whole price (not banded).
ADS_RATE = 0.06

TAX_RULES_MD = (
    "- **LBTT (residential):** 0% to £145k; 2% to £250k; 5% to £325k; 10% to £750k; 12% above.\n"
    "- **ADS:** additional **6%** of the full price when buying before the previous home is sold.\n"
    "- Excludes first-time buyer relief and non-residential rates."
)


def _safe_float(value: float | int | str | None, default: float = 0.0) -> float:
    """Return a finite float, otherwise ``default``.

    Keeps NaN/inf or free-text inputs from contaminating downstream totals.
    """
    try:
        x = float(value)  # type: ignore[arg-type]
    except Exception:
        return float(default)
    return x if math.isfinite(x) else float(default)


def _as_bool(value: object) -> bool:
    """Parse booleans from form/query-friendly values.

    Without this, strings like "False" are truthy and accidentally trigger the surcharge.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    s = str(value or "").strip().lower()
    if s in {"1", "true", "t", "yes", "y", "on"}:
        return True
    if s in {"0", "false", "f", "no", "n", "off", "", "none", "null"}:
        return False
    return bool(value)


def _calc_bracket_tax(amount: float, brackets: list[tuple[float, float]]) -> float:
    """Generic marginal tax calculator.
    brackets: list of (upper_limit, rate) in ascending order; last upper_limit can be float('inf').
    """
    x = max(0.0, _safe_float(amount))
    tax = 0.0
    prev = 0.0
    for upper, rate in brackets:
        if x <= prev:
            break
        taxable = min(x, upper) - prev
        if taxable > 0:
            tax += taxable * rate
        prev = upper
    return tax


def calc_lbtt(price: float) -> float:
    """Standard residential LBTT on ``price`` (banded, excluding ADS)."""
    return _calc_bracket_tax(price, LBTT_BANDS)


def calc_ads(price: float, applicable: bool = True) -> float:
    """Additional Dwelling Supplement: ``ADS_RATE`` of the whole price when applicable."""
    if not _as_bool(applicable):
        return 0.0
    p = max(0.0, _safe_float(price))
    return p * ADS_RATE


def compute_tax(price: float, surcharge_applicable: bool = False) -> float:
    """Total land-tax liability on ``price``: banded LBTT plus ADS when applicable."""
    return calc_lbtt(price) + calc_ads(price, surcharge_applicable)


def calc_lbtt_breakdown(price: float, ads_applicable: bool = False) -> dict:
    """Return ``{"standard", "ads", "total"}`` for a purchase at ``price``."""
    standard = calc_lbtt(price)
    ads = calc_ads(price, ads_applicable)
    return {"standard": standard, "ads": ads, "total": standard + ads}


def lbtt_band_rows(price: float) -> list[dict]:
    """Per-band slices of ``price`` and the tax charged on each.

    One row per band, including bands the price never reaches (slice 0), so the
    table always has the same shape. Slices sum to the clamped price.
    """
    remaining = max(0.0, _safe_float(price))
    rows: list[dict] = []
    prev = 0.0
    for upper, rate in LBTT_BANDS:
        taxable = max(0.0, min(remaining, upper - prev))
        rows.append(
            {
                "lower": prev,
                "upper": upper,
                "rate": rate,
                "taxable": taxable,
                "tax": taxable * rate,
            }
        )
        remaining -= taxable
        prev = upper
    return rows
