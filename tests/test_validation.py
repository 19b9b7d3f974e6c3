"""Tests for advisory validation warnings and input clamping."""

from __future__ import annotations

import warnings

from spc.core.engine import PrimaryInputs, reconcile
from spc.core.policy import FixedPercentage
from spc.core.validation import clamp_inputs, clamp_positive, get_validation_warnings


def _warnings_for(inputs: PrimaryInputs, **kwargs) -> list[str]:
    return get_validation_warnings(inputs, reconcile(inputs, **kwargs))


def test_clamp_positive_warns() -> None:
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        assert clamp_positive(-3.0, "Bid") == 0.0
    assert any("Bid" in str(w.message) for w in caught)


def test_clamp_positive_upper_bound() -> None:
    with warnings.catch_warnings(record=True):
        warnings.simplefilter("always")
        assert clamp_positive(150.0, "LTV", max_val=100.0) == 100.0


def test_clamp_inputs_only_touches_negatives() -> None:
    rec = PrimaryInputs().replace(cash_available=-1.0)
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        clamped = clamp_inputs(rec)
    assert clamped == PrimaryInputs().replace(cash_available=0.0)
    assert len(caught) == 1


def test_clamp_inputs_valid_record_unchanged() -> None:
    rec = PrimaryInputs()
    assert clamp_inputs(rec) is rec


def test_default_scenario_has_no_warnings() -> None:
    assert _warnings_for(PrimaryInputs()) == []


def test_buying_before_selling_needs_bridging() -> None:
    msgs = _warnings_for(PrimaryInputs(), ads_applicable=True)
    assert len(msgs) == 1
    assert "£58,500.00 of bridging finance" in msgs[0]


def test_cash_buyer_selling_first_has_no_warnings() -> None:
    rec = PrimaryInputs(expected_sale_value=0, existing_mortgage=0, selling_fees_at_sale=0, cash_available=80_000)
    assert _warnings_for(rec, policy=FixedPercentage(20)) == []


def test_negative_equity_and_insufficient_funds() -> None:
    msgs = _warnings_for(PrimaryInputs(cash_available=0, expected_sale_value=100_000))
    assert any("Negative equity" in m for m in msgs)
    assert any("Insufficient funds" in m for m in msgs)
    # The same shortfall is not reported twice.
    assert not any("Cash deficit" in m for m in msgs)
    assert any("Loan-to-value of 100.0%" in m for m in msgs)


def test_fixed_deposit_deficit() -> None:
    msgs = _warnings_for(PrimaryInputs(), policy=FixedPercentage(40))
    assert msgs == ["Cash deficit of £41,850.00 after completion."]


def test_over_funded_purchase() -> None:
    msgs = _warnings_for(PrimaryInputs(cash_available=500_000))
    assert any("no mortgage is needed" in m for m in msgs)
