"""Repayment mortgage utilities (monthly compounding, fixed rate)."""

from __future__ import annotations

from .taxes import _safe_float


def _annual_pct_to_monthly_rate(rate_pct: float) -> float:
    """Convert an annual nominal rate in percent to a monthly rate (decimal).

    UK lenders quote nominal rates compounded monthly, so this is simply r/12.
    """
    return _safe_float(rate_pct) / 12.0 / 100.0


def _pmt(principal: float, mr: float, n: float) -> float:
    """Fixed monthly payment for a loan.

    Args:
        principal: Loan principal.
        mr: Monthly rate (decimal). Must be > 0.
        n: Number of months. Fractional terms are allowed.

    Returns:
        Monthly payment amount.
    """
    growth = (1.0 + mr) ** n
    return principal * (mr * growth) / (growth - 1.0)


def monthly_payment(principal: float, annual_rate_pct: float, term_years: float) -> float:
    """Monthly repayment on ``principal`` at ``annual_rate_pct`` over ``term_years``.

    Returns 0.0 when any of principal, rate or term is not positive: there is no
    meaningful amortization and a zero rate would divide by zero.
    No rounding is applied; currency rounding is a presentation concern.
    """
    p = _safe_float(principal)
    rate = _safe_float(annual_rate_pct)
    years = _safe_float(term_years)
    if p <= 0 or rate <= 0 or years <= 0:
        return 0.0

    mr = _annual_pct_to_monthly_rate(rate)
    return _pmt(p, mr, years * 12.0)


def total_interest(principal: float, annual_rate_pct: float, term_years: float) -> float:
    """Interest paid over the full term (0.0 whenever no payment is due)."""
    pmt = monthly_payment(principal, annual_rate_pct, term_years)
    if pmt <= 0:
        return 0.0
    return pmt * _safe_float(term_years) * 12.0 - _safe_float(principal)
