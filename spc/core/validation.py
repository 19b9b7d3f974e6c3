"""Validation helpers for the Scottish property calculator.

The engine itself never fails: every input record produces a full set of
outputs. Some of those outputs describe a transaction that will not work as
planned (negative equity, no deposit left, a loan no lender will offer), and
this module turns them into friendly warnings a display layer can surface.
None of the functions here raise exceptions.

Implemented checks:

* **Negative equity**: the sale does not clear the existing mortgage and selling
  costs.
* **Insufficient funds**: nothing is left for a deposit once fees, the overbid
  and LBTT are paid (funds-driven policy), or remaining cash goes negative
  (fixed-percentage policy).
* **Over-funded purchase**: the deposit exceeds the Home Report valuation, so
  the mortgage figure is negative.
* **High LTV**: loan-to-value above ``MAX_TYPICAL_LTV_PCT``; few lenders go
  beyond 95%.
* **Bridging**: buying before the sale completes (the ADS case) needs more cash than is
  available up front.
"""

from __future__ import annotations

import warnings as _warnings
from typing import List

from .engine import DerivedOutputs, PrimaryInputs

MAX_TYPICAL_LTV_PCT = 95.0


def clamp_positive(value: float, name: str, *, max_val: float | None = None) -> float:
    """Ensure a value is non-negative, with optional upper bound."""
    if value < 0:
        _warnings.warn(f"{name}={value} is negative. Clamping to 0.")
        return 0.0
    if max_val is not None and value > max_val:
        _warnings.warn(f"{name}={value} exceeds maximum {max_val}. Clamping to {max_val}.")
        return max_val
    return value


def clamp_inputs(inputs: PrimaryInputs) -> PrimaryInputs:
    """Return ``inputs`` with any negative field clamped to 0 (warning per field)."""
    changes = {}
    for attr, value in vars(inputs).items():
        clamped = clamp_positive(value, attr)
        if clamped != value:
            changes[attr] = clamped
    return inputs.replace(**changes) if changes else inputs


def get_validation_warnings(inputs: PrimaryInputs, outputs: DerivedOutputs) -> List[str]:
    """Return a list of human-readable warnings for one reconciliation.

    Returns:
        A list of warning strings. The list is empty when no issues are detected.
    """
    warnings: List[str] = []

    if outputs.equity_from_sale < 0:
        warnings.append(
            f"Negative equity: the sale leaves £{-outputs.equity_from_sale:,.2f} of the existing "
            "mortgage and selling fees uncovered."
        )

    if not outputs.funds_sufficient and outputs.required_deposit <= 0:
        warnings.append(
            f"Insufficient funds: £{-outputs.available_for_deposit:,.2f} short before any deposit "
            "(fees, overbid and LBTT exceed available funds)."
        )

    elif outputs.remaining_cash < 0:
        warnings.append(f"Cash deficit of £{-outputs.remaining_cash:,.2f} after completion.")

    if outputs.mortgage_amount < 0:
        warnings.append(
            f"Deposit exceeds the Home Report value by £{-outputs.mortgage_amount:,.2f}; "
            "no mortgage is needed."
        )

    if inputs.home_report_value > 0 and outputs.loan_to_value_percent > MAX_TYPICAL_LTV_PCT:
        warnings.append(
            f"Loan-to-value of {outputs.loan_to_value_percent:.1f}% exceeds {MAX_TYPICAL_LTV_PCT:.0f}%; "
            "few lenders offer mortgages at this level."
        )

    if outputs.bridging_shortfall > 0:
        warnings.append(
            f"Buying before selling needs £{outputs.bridging_shortfall:,.2f} of bridging finance "
            "until the sale completes."
        )

    return warnings
