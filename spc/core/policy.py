"""Deposit sizing policies for the transaction engine.

Two policies have been used over the life of the calculator:

* **Fixed percentage** (first schema generation): the deposit is a fixed share of
  the Home Report valuation, and whatever is left over (or missing) shows up in
  remaining cash.
* **Funds driven** (current): the deposit consumes every pound left after the other
  obligations are met, so remaining cash closes to zero whenever funds suffice.

A policy is chosen once when the engine is built; the engine never mixes them.
"""

from __future__ import annotations

from dataclasses import dataclass

from .taxes import _safe_float

DEFAULT_DEPOSIT_PERCENTAGE = 20.0


@dataclass(frozen=True)
class FundsDriven:
    """Deposit = all funds remaining after fees, overbid and tax (never negative)."""

    name: str = "funds"

    def deposit(self, *, home_report_value: float, available_for_deposit: float) -> float:
        return max(0.0, available_for_deposit)


@dataclass(frozen=True)
class FixedPercentage:
    """Deposit = ``pct`` percent of the Home Report valuation."""

    pct: float = DEFAULT_DEPOSIT_PERCENTAGE
    name: str = "fixed"

    def __post_init__(self) -> None:
        object.__setattr__(self, "pct", max(0.0, _safe_float(self.pct, DEFAULT_DEPOSIT_PERCENTAGE)))

    def deposit(self, *, home_report_value: float, available_for_deposit: float) -> float:
        return home_report_value * (self.pct / 100.0)


DepositPolicy = FundsDriven | FixedPercentage


def parse_policy(spec: str | None) -> DepositPolicy:
    """Parse a policy string: ``"funds"`` or ``"fixed"`` / ``"fixed:<pct>"``.

    Raises:
        ValueError: for an unknown policy name or a non-numeric percentage.
    """
    raw = str(spec or "funds").strip().lower()
    name, _, arg = raw.partition(":")
    if name in ("funds", "funds-driven", "funds_driven"):
        return FundsDriven()
    if name in ("fixed", "fixed-percentage", "fixed_percentage"):
        if not arg:
            return FixedPercentage()
        try:
            pct = float(arg)
        except ValueError:
            raise ValueError(f"Invalid deposit percentage in policy {spec!r}") from None
        return FixedPercentage(pct)
    raise ValueError(f"Unknown deposit policy {spec!r} (expected 'funds' or 'fixed:<pct>')")
