"""Tests for the share-link / saved-data codec and schema migration."""

from __future__ import annotations

import json
import warnings

import pytest

from spc.core.engine import DEFAULT_INPUTS, PrimaryInputs
from spc.core.state_codec import (
    CURRENT_SCHEMA_VERSION,
    LEGACY_SELLING_FEES_UPFRONT,
    LEGACY_STORAGE_KEY,
    PARAM_KEYS,
    SCHEMA_VERSION_KEY,
    SHORT_KEYS,
    decode,
    decode_blob,
    decode_query,
    encode_query,
    infer_schema_version,
    load_inputs,
    migrate_record,
    parse_query_string,
    reset_inputs,
    save_inputs,
    to_query_string,
)
from spc.core.stores import MemoryStore

_V1_BLOB = {
    "homeReportValue": 240000,
    "bidAmount": 255000,
    "buyingSolicitorFeesUpfront": 600,
    "buyingSolicitorFeesAtSale": 1400,
    "expectedSaleValue": 175000,
    "existingMortgage": 110000,
    "sellingSolicitorFees": 1800,
    "cashAvailable": 25000,
    "interestRate": 5.1,
    "mortgageTerm": 30,
    "depositPercentage": 15,
    "adsApplicable": True,
}


# ---------------------------------------------------------------------------
# Param mapping
# ---------------------------------------------------------------------------


class TestParamMapping:
    def test_every_field_has_one_short_key(self) -> None:
        assert set(PARAM_KEYS) == set(DEFAULT_INPUTS)
        assert len(set(PARAM_KEYS.values())) == len(PARAM_KEYS)

    def test_reverse_mapping_is_total(self) -> None:
        for full, short in PARAM_KEYS.items():
            assert SHORT_KEYS[short] == full


# ---------------------------------------------------------------------------
# Query parameters
# ---------------------------------------------------------------------------


class TestEncodeQuery:
    def test_defaults_encode_to_nothing(self) -> None:
        assert encode_query(PrimaryInputs()) == {}

    def test_only_changed_fields_emitted(self) -> None:
        rec = PrimaryInputs(bid_amount=280_000, interest_rate_percent=3.75)
        assert encode_query(rec) == {"bid": "280000", "ir": "3.75"}

    def test_relative_to_given_defaults(self) -> None:
        custom = PrimaryInputs(bid_amount=280_000)
        assert encode_query(PrimaryInputs(bid_amount=280_000), custom) == {}
        assert encode_query(PrimaryInputs(), custom) == {"bid": "265000"}

    @pytest.mark.parametrize(
        "rec",
        [
            PrimaryInputs(),
            PrimaryInputs(bid_amount=271_234.56, cash_available=0.1 + 0.2),
            PrimaryInputs(interest_rate_percent=1 / 3, mortgage_term_years=17.5),
            PrimaryInputs(home_report_value=0, existing_mortgage=1e16),
        ],
    )
    def test_round_trip_is_exact(self, rec: PrimaryInputs) -> None:
        assert decode_query(encode_query(rec)) == rec

    def test_round_trip_through_query_string(self) -> None:
        rec = PrimaryInputs(bid_amount=300_000, selling_fees_upfront=750)
        qs = to_query_string(encode_query(rec))
        assert qs == "bid=300000&ssfu=750"
        assert decode_query(parse_query_string("?" + qs)) == rec


class TestDecodeQuery:
    def test_missing_keys_take_defaults(self) -> None:
        rec = decode_query({"hrv": "260000"})
        assert rec.home_report_value == 260_000.0
        assert rec.bid_amount == DEFAULT_INPUTS["bidAmount"]

    def test_unparsable_value_takes_default(self) -> None:
        rec = decode_query({"bid": "lots", "ir": "", "mt": "nan"})
        assert rec == PrimaryInputs()

    def test_negative_value_clamped_with_warning(self) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            rec = decode_query({"cash": "-100"})
        assert rec.cash_available == 0.0
        assert any("cashAvailable" in str(w.message) for w in caught)

    def test_list_values_use_first(self) -> None:
        assert decode_query({"bid": ["270000", "1"]}).bid_amount == 270_000.0

    def test_unknown_keys_ignored(self) -> None:
        assert decode_query({"utm_source": "x", "theme": "dark"}) == PrimaryInputs()

    def test_parse_query_string_first_value_wins(self) -> None:
        assert parse_query_string("bid=1&bid=2&hrv=") == {"bid": "1", "hrv": ""}


# ---------------------------------------------------------------------------
# Schema migration
# ---------------------------------------------------------------------------


class TestSchemaMigration:
    def test_infer_generation_one(self) -> None:
        assert infer_schema_version(_V1_BLOB) == 1

    def test_infer_generation_two(self) -> None:
        assert infer_schema_version({"sellingFees": 2000}) == 2

    def test_infer_current(self) -> None:
        assert infer_schema_version({"sellingFeesAtSale": 2000}) == CURRENT_SCHEMA_VERSION

    def test_explicit_tag_wins(self) -> None:
        assert infer_schema_version({SCHEMA_VERSION_KEY: 3, "sellingFees": 1}) == 3

    def test_bad_tag_falls_back_to_inference(self) -> None:
        assert infer_schema_version({SCHEMA_VERSION_KEY: "v9", "sellingFees": 1}) == 2

    def test_selling_fees_split(self) -> None:
        out = migrate_record({"sellingFees": 2000})
        assert out["sellingFeesAtSale"] == 2000
        assert out["sellingFeesUpfront"] == LEGACY_SELLING_FEES_UPFRONT
        assert "sellingFees" not in out
        assert out[SCHEMA_VERSION_KEY] == CURRENT_SCHEMA_VERSION

    def test_generation_one_fully_migrated(self) -> None:
        out = migrate_record(_V1_BLOB)
        assert "depositPercentage" not in out
        assert "adsApplicable" not in out
        assert out["buyingFeesUpfront"] == 600
        assert out["buyingFeesAtSale"] == 1400
        assert out["sellingFeesAtSale"] == 1800
        assert out["interestRatePercent"] == 5.1
        assert out["mortgageTermYears"] == 30

    def test_migration_is_idempotent(self) -> None:
        once = migrate_record(_V1_BLOB)
        assert migrate_record(once) == once

    def test_does_not_mutate_input(self) -> None:
        blob = dict(_V1_BLOB)
        migrate_record(blob)
        assert blob == _V1_BLOB


class TestDecodeBlob:
    def test_generation_one_blob(self) -> None:
        rec = decode_blob(json.dumps(_V1_BLOB))
        assert rec.home_report_value == 240_000.0
        assert rec.selling_fees_at_sale == 1_800.0
        assert rec.selling_fees_upfront == LEGACY_SELLING_FEES_UPFRONT
        assert rec.interest_rate_percent == 5.1
        assert rec.mortgage_term_years == 30.0

    def test_malformed_blob_returns_defaults_with_warning(self) -> None:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            rec = decode_blob("{not json")
        assert rec == PrimaryInputs()
        assert any("malformed" in str(w.message) for w in caught)

    def test_non_object_blob_returns_defaults(self) -> None:
        with warnings.catch_warnings(record=True):
            warnings.simplefilter("always")
            assert decode_blob("[1, 2, 3]") == PrimaryInputs()

    def test_bad_field_takes_default(self) -> None:
        rec = decode_blob(json.dumps({"sellingFees": 2000, "bidAmount": "??"}))
        assert rec.bid_amount == DEFAULT_INPUTS["bidAmount"]

    def test_out_of_range_number_takes_default(self) -> None:
        huge = "1" + "0" * 400
        rec = decode_blob('{"sellingFees": 2000, "bidAmount": ' + huge + "}")
        assert rec.bid_amount == DEFAULT_INPUTS["bidAmount"]
        assert rec.selling_fees_at_sale == 2_000.0

    @pytest.mark.parametrize("tag", ["Infinity", "1e400", "NaN"])
    def test_non_finite_version_tag_is_inferred(self, tag: str) -> None:
        blob = '{"schemaVersion": ' + tag + ', "sellingFees": 2000}'
        params: dict = {}
        store = MemoryStore({LEGACY_STORAGE_KEY: blob})
        rec = load_inputs(params, store)
        assert rec.selling_fees_at_sale == 2_000.0
        assert LEGACY_STORAGE_KEY not in store
        assert params == {"ssfs": "2000"}


class TestDecodeDispatch:
    def test_none_is_defaults(self) -> None:
        assert decode(None) == PrimaryInputs()

    def test_empty_mapping_is_defaults(self) -> None:
        assert decode({}) == PrimaryInputs()

    def test_query_mapping(self) -> None:
        assert decode({"bid": "300000"}).bid_amount == 300_000.0

    def test_blob_text(self) -> None:
        assert decode('{"sellingFees": 2000}').selling_fees_at_sale == 2_000.0

    def test_record_mapping(self) -> None:
        assert decode({"sellingFees": 2000}).selling_fees_at_sale == 2_000.0


# ---------------------------------------------------------------------------
# Store orchestration
# ---------------------------------------------------------------------------


class TestLoadInputs:
    def test_nothing_stored_returns_defaults(self) -> None:
        assert load_inputs({}, MemoryStore()) == PrimaryInputs()
        assert load_inputs({}, None) == PrimaryInputs()

    def test_custom_defaults_returned_verbatim(self) -> None:
        custom = PrimaryInputs(bid_amount=1.0)
        assert load_inputs({}, MemoryStore(), custom) is custom

    def test_legacy_blob_migrated_once(self) -> None:
        params: dict = {}
        store = MemoryStore({LEGACY_STORAGE_KEY: json.dumps({"sellingFees": 2000}), "theme": "dark"})
        rec = load_inputs(params, store)
        assert rec.selling_fees_at_sale == 2_000.0
        assert rec.selling_fees_upfront == LEGACY_SELLING_FEES_UPFRONT
        assert LEGACY_STORAGE_KEY not in store
        assert store["theme"] == "dark"
        assert params == {"ssfs": "2000"}

        # Second load: the blob is gone and the query params carry the record.
        assert load_inputs(params, store) == rec

    def test_query_params_win_over_blob(self) -> None:
        blob = json.dumps({"sellingFees": 2000})
        params = {"bid": "290000"}
        store = MemoryStore({LEGACY_STORAGE_KEY: blob})
        rec = load_inputs(params, store)
        assert rec.bid_amount == 290_000.0
        assert rec.selling_fees_at_sale == DEFAULT_INPUTS["sellingFeesAtSale"]
        assert store[LEGACY_STORAGE_KEY] == blob
        assert params == {"bid": "290000"}

    def test_malformed_blob_discarded(self) -> None:
        params: dict = {}
        store = MemoryStore({LEGACY_STORAGE_KEY: "not json at all"})
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            rec = load_inputs(params, store)
        assert rec == PrimaryInputs()
        assert LEGACY_STORAGE_KEY not in store
        assert params == {}
        assert caught

    def test_blob_stored_as_dict(self) -> None:
        store = {LEGACY_STORAGE_KEY: {"sellingFees": 900}}
        assert load_inputs({}, store).selling_fees_at_sale == 900.0


class TestSaveAndReset:
    def test_save_replaces_transport_keys_only(self) -> None:
        params = {"bid": "300000", "hrv": "1", "theme": "dark"}
        emitted = save_inputs(PrimaryInputs(home_report_value=260_000), params)
        assert emitted == {"hrv": "260000"}
        assert params == {"hrv": "260000", "theme": "dark"}

    def test_reset_clears_transport_keys_and_blob(self) -> None:
        params = {"bid": "300000", "ir": "3", "theme": "dark"}
        store = MemoryStore({LEGACY_STORAGE_KEY: "{}"})
        rec = reset_inputs(params, store)
        assert rec == PrimaryInputs()
        assert params == {"theme": "dark"}
        assert LEGACY_STORAGE_KEY not in store
