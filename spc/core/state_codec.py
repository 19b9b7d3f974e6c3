"""Persistence and transport of the primary-input record.

Two wire formats carry a ``PrimaryInputs`` record between sessions:

* **Query parameters** (current): short keys such as ``hrv=260000&bid=275000``.
  Only fields that differ from the defaults are emitted, so the default scenario
  is an empty query string.
* **Legacy key-value blob**: a JSON object stored under ``LEGACY_STORAGE_KEY`` by
  older releases. It is read once, migrated to the current schema, re-emitted as
  query parameters and then deleted.

Schema generations of the blob:

  1. first release: solicitor-fee field names, ``interestRate``/``mortgageTerm``,
     a fixed ``depositPercentage`` and an ``adsApplicable`` toggle
  2. renamed fields with a single ``sellingFees`` value
  3. current: selling fees split into ``sellingFeesUpfront``/``sellingFeesAtSale``

Migration runs through ``MIGRATIONS`` one step at a time until the current
version is reached. Nothing in this module raises on bad data: unparsable fields
fall back to their defaults and a malformed blob is discarded with a warning.
"""

from __future__ import annotations

import json
import math
import warnings as _warnings
from typing import Any, Callable, Mapping, MutableMapping
from urllib.parse import parse_qsl, urlencode

from .engine import INPUT_FIELDS, PrimaryInputs

CURRENT_SCHEMA_VERSION = 3
SCHEMA_VERSION_KEY = "schemaVersion"
LEGACY_STORAGE_KEY = "scottishPropertyCalculator"

# Upfront selling fee assumed for records saved before the upfront/at-sale split.
LEGACY_SELLING_FEES_UPFRONT = 500.0

# Full field name <-> short transport key.
PARAM_KEYS: dict[str, str] = {
    "homeReportValue": "hrv",
    "bidAmount": "bid",
    "buyingFeesUpfront": "bsfu",
    "buyingFeesAtSale": "bsfs",
    "expectedSaleValue": "esv",
    "existingMortgage": "em",
    "sellingFeesUpfront": "ssfu",
    "sellingFeesAtSale": "ssfs",
    "cashAvailable": "cash",
    "interestRatePercent": "ir",
    "mortgageTermYears": "mt",
}
SHORT_KEYS: dict[str, str] = {short: full for full, short in PARAM_KEYS.items()}

_V1_RENAMES: dict[str, str] = {
    "buyingSolicitorFeesUpfront": "buyingFeesUpfront",
    "buyingSolicitorFeesAtSale": "buyingFeesAtSale",
    "sellingSolicitorFees": "sellingFees",
    "interestRate": "interestRatePercent",
    "mortgageTerm": "mortgageTermYears",
}
_V1_DROPPED = ("depositPercentage", "adsApplicable")


# ---------------------------------------------------------------------------
# Schema migration
# ---------------------------------------------------------------------------

def _migrate_v1_to_v2(record: dict[str, Any]) -> dict[str, Any]:
    """Rename solicitor-fee/rate/term fields; drop the fixed-deposit and ADS settings.

    The funds-driven deposit policy superseded ``depositPercentage``, and ADS is an
    engine option rather than part of the saved record.
    """
    out = {k: v for k, v in record.items() if k not in _V1_DROPPED}
    for old, new in _V1_RENAMES.items():
        if old in out:
            value = out.pop(old)
            out.setdefault(new, value)
    return out


def _migrate_v2_to_v3(record: dict[str, Any]) -> dict[str, Any]:
    """Split ``sellingFees`` into upfront and at-sale parts."""
    out = dict(record)
    if "sellingFees" in out:
        value = out.pop("sellingFees")
        out.setdefault("sellingFeesAtSale", value)
    out.setdefault("sellingFeesUpfront", LEGACY_SELLING_FEES_UPFRONT)
    return out


# (from_version, step) in ascending order; each step yields from_version + 1.
MIGRATIONS: list[tuple[int, Callable[[dict[str, Any]], dict[str, Any]]]] = [
    (1, _migrate_v1_to_v2),
    (2, _migrate_v2_to_v3),
]


def infer_schema_version(record: Mapping[str, Any]) -> int:
    """Return the schema generation of a stored record.

    An explicit ``schemaVersion`` tag wins. Untagged records predate tagging, so
    they are classified from the fields they carry; an untagged record with no
    telling fields is treated as generation 2.
    """
    tag = record.get(SCHEMA_VERSION_KEY)
    if tag is not None and not isinstance(tag, bool):
        try:
            version = int(tag)
        except (TypeError, ValueError, OverflowError):
            version = 0
        if 1 <= version <= CURRENT_SCHEMA_VERSION:
            return version

    if any(k in record for k in _V1_RENAMES) or any(k in record for k in _V1_DROPPED):
        return 1
    if "sellingFees" in record:
        return 2
    if "sellingFeesUpfront" in record or "sellingFeesAtSale" in record:
        return CURRENT_SCHEMA_VERSION
    return 2


def migrate_record(record: Mapping[str, Any]) -> dict[str, Any]:
    """Bring a stored record of any generation up to ``CURRENT_SCHEMA_VERSION``."""
    version = infer_schema_version(record)
    out = {k: v for k, v in record.items() if k != SCHEMA_VERSION_KEY}
    for from_version, step in MIGRATIONS:
        if from_version >= version:
            out = step(out)
    out[SCHEMA_VERSION_KEY] = CURRENT_SCHEMA_VERSION
    return out


# ---------------------------------------------------------------------------
# Field parsing / formatting
# ---------------------------------------------------------------------------

def _first(value: Any) -> Any:
    # Older Streamlit (and parse_qs) hand back lists for query params.
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _parse_field(name: str, raw: Any, default: float) -> float:
    """Parse one field value; unparsable -> ``default``, negative -> 0 with a warning."""
    raw = _first(raw)
    if raw is None:
        return default
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return default
    try:
        value = float(raw)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(value):
        return default
    if value < 0:
        _warnings.warn(f"{name}={value} is negative. Clamping to 0.")
        return 0.0
    return value


def _format_number(value: float) -> str:
    """Shortest decimal text that parses back to exactly ``value``."""
    if value.is_integer() and abs(value) < 1e15:
        return str(int(value))
    return repr(value)


def decode_record(record: Mapping[str, Any], defaults: PrimaryInputs | None = None) -> PrimaryInputs:
    """Build inputs from a current-schema camelCase record merged over ``defaults``."""
    base = (defaults or PrimaryInputs.defaults()).to_dict()
    values = {key: _parse_field(key, record[key], base[key]) if key in record else base[key] for key in base}
    return PrimaryInputs.from_dict(values)


# ---------------------------------------------------------------------------
# Query-parameter transport
# ---------------------------------------------------------------------------

def has_transport_keys(params: Mapping[str, Any] | None) -> bool:
    return bool(params) and any(k in SHORT_KEYS for k in params)  # type: ignore[union-attr]


def decode_query(params: Mapping[str, Any] | None, defaults: PrimaryInputs | None = None) -> PrimaryInputs:
    """Decode short-key query parameters; absent or unparsable keys take defaults."""
    record = {SHORT_KEYS[k]: v for k, v in (params or {}).items() if k in SHORT_KEYS}
    return decode_record(record, defaults)


def encode_query(inputs: PrimaryInputs, defaults: PrimaryInputs | None = None) -> dict[str, str]:
    """Minimal query-parameter form: only fields that differ from ``defaults``."""
    base = (defaults or PrimaryInputs.defaults()).to_dict()
    current = inputs.to_dict()
    return {
        PARAM_KEYS[key]: _format_number(current[key])
        for key in INPUT_FIELDS.values()
        if current[key] != base[key]
    }


def to_query_string(params: Mapping[str, str]) -> str:
    ordered = [(short, params[short]) for short in PARAM_KEYS.values() if short in params]
    return urlencode(ordered)


def parse_query_string(query: str | None) -> dict[str, str]:
    """Parse ``"hrv=1&bid=2"`` (leading ``?`` allowed); the first value of a repeated key wins."""
    out: dict[str, str] = {}
    for k, v in parse_qsl(str(query or "").lstrip("?"), keep_blank_values=True):
        out.setdefault(k, v)
    return out


# ---------------------------------------------------------------------------
# Legacy blob
# ---------------------------------------------------------------------------

def _load_blob(blob: Any) -> dict[str, Any] | None:
    """Return the stored record, or None (with a warning) when it is not a JSON object."""
    if isinstance(blob, Mapping):
        return dict(blob)
    if isinstance(blob, (bytes, bytearray)):
        blob = blob.decode("utf-8", errors="replace")
    try:
        obj = json.loads(blob)
    except (TypeError, ValueError) as exc:
        _warnings.warn(f"Discarding malformed saved calculator data: {exc}")
        return None
    if not isinstance(obj, dict):
        _warnings.warn(f"Discarding malformed saved calculator data: expected an object, got {type(obj).__name__}")
        return None
    return obj


def decode_blob(blob: Any, defaults: PrimaryInputs | None = None) -> PrimaryInputs:
    """Decode (and migrate) a legacy blob; a malformed blob yields ``defaults``."""
    record = _load_blob(blob)
    if record is None:
        return defaults or PrimaryInputs.defaults()
    return decode_record(migrate_record(record), defaults)


def decode(source: Any, defaults: PrimaryInputs | None = None) -> PrimaryInputs:
    """Decode either wire format without side effects.

    Strings/bytes are treated as a blob. Mappings with short transport keys are
    query parameters; any other mapping is treated as a stored record.
    """
    if source is None:
        return defaults or PrimaryInputs.defaults()
    if isinstance(source, (str, bytes, bytearray)):
        return decode_blob(source, defaults)
    if has_transport_keys(source):
        return decode_query(source, defaults)
    if source:
        return decode_blob(source, defaults)
    return defaults or PrimaryInputs.defaults()


# ---------------------------------------------------------------------------
# Store orchestration
# ---------------------------------------------------------------------------

def save_inputs(
    inputs: PrimaryInputs,
    query_params: MutableMapping[str, Any],
    defaults: PrimaryInputs | None = None,
) -> dict[str, str]:
    """Replace the transport keys in ``query_params`` with the minimal encoding of ``inputs``.

    Unrelated query parameters are left alone. Returns the emitted keys.
    """
    encoded = encode_query(inputs, defaults)
    for short in PARAM_KEYS.values():
        if short in query_params and short not in encoded:
            del query_params[short]
    for short, value in encoded.items():
        query_params[short] = value
    return encoded


def load_inputs(
    query_params: MutableMapping[str, Any],
    store: MutableMapping[str, Any] | None = None,
    defaults: PrimaryInputs | None = None,
) -> PrimaryInputs:
    """Reconstruct the inputs for a new session.

    Precedence:
      1. any short transport key in ``query_params`` -> decode from them only;
         a legacy blob in ``store`` is ignored and left untouched
      2. a legacy blob in ``store`` -> migrate, write back as query params and
         delete the blob (a second call finds no blob, so this runs once)
      3. otherwise ``defaults``
    """
    base = defaults or PrimaryInputs.defaults()
    if has_transport_keys(query_params):
        return decode_query(query_params, base)

    if store is None or LEGACY_STORAGE_KEY not in store:
        return base

    record = _load_blob(store[LEGACY_STORAGE_KEY])
    if record is None:
        del store[LEGACY_STORAGE_KEY]
        return base

    inputs = decode_record(migrate_record(record), base)
    save_inputs(inputs, query_params, base)
    del store[LEGACY_STORAGE_KEY]
    return inputs


def reset_inputs(
    query_params: MutableMapping[str, Any],
    store: MutableMapping[str, Any] | None = None,
    defaults: PrimaryInputs | None = None,
) -> PrimaryInputs:
    """Clear every transport key (and any leftover legacy blob) and return the defaults."""
    for short in PARAM_KEYS.values():
        if short in query_params:
            del query_params[short]
    if store is not None and LEGACY_STORAGE_KEY in store:
        del store[LEGACY_STORAGE_KEY]
    return defaults or PrimaryInputs.defaults()
