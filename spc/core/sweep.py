"""Bid sensitivity tables.

Re-runs the reconciliation across a range of bids so the effect of bidding higher
(more LBTT, less deposit, bigger mortgage) can be read off a single table.
"""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from .engine import PrimaryInputs, TransactionEngine

SWEEP_COLUMNS = [
    "Bid",
    "Overbid",
    "Overbid %",
    "LBTT",
    "Deposit",
    "Mortgage",
    "Monthly Payment",
    "LTV %",
    "Remaining Cash",
]


def bid_range(start: float, stop: float, step: float) -> np.ndarray:
    """Bids from ``start`` to ``stop`` inclusive, ``step`` apart."""
    if step <= 0:
        raise ValueError(f"step must be positive (got {step})")
    if stop < start:
        raise ValueError(f"stop ({stop}) is below start ({start})")
    return np.arange(float(start), float(stop) + step / 2.0, float(step))


def bid_sweep(
    inputs: PrimaryInputs,
    bids: Iterable[float],
    *,
    engine: TransactionEngine | None = None,
) -> pd.DataFrame:
    """One row of headline outputs per bid, all other inputs held fixed."""
    eng = engine or TransactionEngine()
    rows = []
    for bid in bids:
        out = eng.reconcile(inputs.replace(bid_amount=float(bid)))
        rows.append(
            {
                "Bid": float(bid),
                "Overbid": max(0.0, out.overbid_amount),
                "Overbid %": out.overbid_percent,
                "LBTT": out.tax_liability,
                "Deposit": out.required_deposit,
                "Mortgage": out.mortgage_amount,
                "Monthly Payment": out.monthly_payment,
                "LTV %": out.loan_to_value_percent,
                "Remaining Cash": out.remaining_cash,
            }
        )
    return pd.DataFrame(rows, columns=SWEEP_COLUMNS)
