"""Transaction reconciliation engine.

Ties the purchase of a new home to the sale of the current one and derives every
figure the calculator shows from a small record of primary inputs:

  overbid -> LBTT (+ADS) -> cash used before purchase -> equity from sale
  -> total funds after sale -> deposit (per policy) -> mortgage -> monthly payment
  -> LTV / overbid % -> remaining cash

The engine is pure: it holds no state between calls and never touches storage.
Callers own the recompute trigger (every keystroke, debounced, batched...).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping

from .mortgage import monthly_payment
from .policy import DepositPolicy, FundsDriven
from .taxes import _safe_float, calc_ads, calc_lbtt

# Residual cash below this is floating-point noise, not a surplus.
CLOSURE_EPS = 1e-6

# Baseline values for every primary input (camelCase, as persisted and transported).
DEFAULT_INPUTS: dict[str, float] = {
    "homeReportValue": 250000.0,
    "bidAmount": 265000.0,
    "buyingFeesUpfront": 500.0,
    "buyingFeesAtSale": 1500.0,
    "expectedSaleValue": 180000.0,
    "existingMortgage": 120000.0,
    "sellingFeesUpfront": 500.0,
    "sellingFeesAtSale": 1500.0,
    "cashAvailable": 20000.0,
    "interestRatePercent": 4.5,
    "mortgageTermYears": 25.0,
}


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(p.title() for p in rest)


@dataclass(frozen=True)
class PrimaryInputs:
    """User-supplied inputs. All values are non-negative floats."""

    home_report_value: float = DEFAULT_INPUTS["homeReportValue"]
    bid_amount: float = DEFAULT_INPUTS["bidAmount"]
    buying_fees_upfront: float = DEFAULT_INPUTS["buyingFeesUpfront"]
    buying_fees_at_sale: float = DEFAULT_INPUTS["buyingFeesAtSale"]
    expected_sale_value: float = DEFAULT_INPUTS["expectedSaleValue"]
    existing_mortgage: float = DEFAULT_INPUTS["existingMortgage"]
    selling_fees_upfront: float = DEFAULT_INPUTS["sellingFeesUpfront"]
    selling_fees_at_sale: float = DEFAULT_INPUTS["sellingFeesAtSale"]
    cash_available: float = DEFAULT_INPUTS["cashAvailable"]
    interest_rate_percent: float = DEFAULT_INPUTS["interestRatePercent"]
    mortgage_term_years: float = DEFAULT_INPUTS["mortgageTermYears"]

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, float(getattr(self, f.name)))

    @classmethod
    def defaults(cls) -> "PrimaryInputs":
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PrimaryInputs":
        """Build from a camelCase mapping of already-parsed numbers; missing keys take defaults."""
        kwargs = {}
        for attr, key in INPUT_FIELDS.items():
            if key in data:
                kwargs[attr] = float(data[key])
        return cls(**kwargs)

    @classmethod
    def from_form(cls, data: Mapping[str, Any]) -> "PrimaryInputs":
        """Build from raw form values (strings allowed).

        Mirrors what the input form captures: a blank or non-numeric entry reads as 0,
        negatives are clamped to 0, and a field the form never sent keeps its default.
        """
        kwargs = {}
        for attr, key in INPUT_FIELDS.items():
            if key in data:
                kwargs[attr] = max(0.0, _safe_float(data[key], 0.0))
        return cls(**kwargs)

    def to_dict(self) -> dict[str, float]:
        return {key: getattr(self, attr) for attr, key in INPUT_FIELDS.items()}

    def replace(self, **changes: float) -> "PrimaryInputs":
        data = asdict(self)
        data.update(changes)
        return PrimaryInputs(**data)


# attribute name -> camelCase field name, in declaration order
INPUT_FIELDS: dict[str, str] = {f.name: _camel(f.name) for f in fields(PrimaryInputs)}


@dataclass(frozen=True)
class DerivedOutputs:
    """Every figure derived from one PrimaryInputs snapshot. Never persisted."""

    overbid_amount: float
    tax_liability: float
    cash_used_before_purchase: float
    equity_from_sale: float
    total_funds_after_sale: float
    required_deposit: float
    mortgage_amount: float
    monthly_payment: float
    loan_to_value_percent: float
    overbid_percent: float
    remaining_cash: float
    standard_tax: float = 0.0
    ads_amount: float = 0.0
    available_for_deposit: float = 0.0
    cash_needed_at_completion: float = 0.0
    bridging_shortfall: float = 0.0

    @property
    def funds_sufficient(self) -> bool:
        return self.available_for_deposit >= 0.0

    def to_dict(self) -> dict[str, float]:
        return {_camel(k): v for k, v in asdict(self).items()}


class TransactionEngine:
    """Reconciles purchase and sale cash flows under one deposit policy.

    Args:
        policy: deposit sizing policy, fixed for the lifetime of the engine.
        ads_applicable: charge the Additional Dwelling Supplement on the bid
            (buying before the current home is sold).
    """

    def __init__(self, policy: DepositPolicy | None = None, *, ads_applicable: bool = False) -> None:
        self.policy: DepositPolicy = policy if policy is not None else FundsDriven()
        self.ads_applicable = bool(ads_applicable)

    def __repr__(self) -> str:
        return f"TransactionEngine(policy={self.policy!r}, ads_applicable={self.ads_applicable})"

    def reconcile(self, inputs: PrimaryInputs) -> DerivedOutputs:
        hrv = inputs.home_report_value
        bid = inputs.bid_amount

        overbid = bid - hrv

        standard_tax = calc_lbtt(bid)
        ads = calc_ads(bid, self.ads_applicable)
        tax = standard_tax + ads

        # Only the clamped overbid is cash out of pocket.
        cash_used_before = max(0.0, overbid) + inputs.buying_fees_upfront + inputs.selling_fees_upfront

        equity = inputs.expected_sale_value - inputs.existing_mortgage - inputs.selling_fees_at_sale
        total_funds = inputs.cash_available + equity

        available = total_funds - cash_used_before - tax - inputs.buying_fees_at_sale
        deposit = self.policy.deposit(home_report_value=hrv, available_for_deposit=available)

        # Not clamped: a negative mortgage means the purchase is over-funded.
        mortgage = hrv - deposit
        pmt = monthly_payment(mortgage, inputs.interest_rate_percent, inputs.mortgage_term_years)

        ltv = (mortgage / hrv) * 100.0 if hrv > 0 else 0.0
        overbid_pct = (overbid / hrv) * 100.0 if hrv > 0 else 0.0

        remaining = total_funds - cash_used_before - deposit - tax - inputs.buying_fees_at_sale
        if isinstance(self.policy, FundsDriven) and available >= 0.0 and abs(remaining) < CLOSURE_EPS:
            remaining = 0.0

        needed_at_completion = deposit + tax + inputs.buying_fees_at_sale
        # Only buying before selling (the ADS case) has to bridge the sale proceeds.
        bridging = 0.0
        if self.ads_applicable:
            bridging = max(0.0, cash_used_before + needed_at_completion - inputs.cash_available)

        return DerivedOutputs(
            overbid_amount=overbid,
            tax_liability=tax,
            cash_used_before_purchase=cash_used_before,
            equity_from_sale=equity,
            total_funds_after_sale=total_funds,
            required_deposit=deposit,
            mortgage_amount=mortgage,
            monthly_payment=pmt,
            loan_to_value_percent=ltv,
            overbid_percent=overbid_pct,
            remaining_cash=remaining,
            standard_tax=standard_tax,
            ads_amount=ads,
            available_for_deposit=available,
            cash_needed_at_completion=needed_at_completion,
            bridging_shortfall=bridging,
        )


def reconcile(
    inputs: PrimaryInputs,
    *,
    policy: DepositPolicy | None = None,
    ads_applicable: bool = False,
) -> DerivedOutputs:
    """One-shot reconciliation with a throwaway engine."""
    return TransactionEngine(policy, ads_applicable=ads_applicable).reconcile(inputs)
