"""CLI / headless entry point for the Scottish property calculator.

Usage
-----
Run with the default scenario:
    python -m spc

Run a JSON scenario file and print the derived figures as JSON:
    python -m spc --config scenario.json --json

Decode a share link's query string, tweak one input and re-encode it:
    python -m spc --query "hrv=260000&bid=280000" --set cashAvailable=35000 --encode

Pick up (and migrate) data saved by an older release:
    python -m spc --store saved.json

Sweep bids and write a CSV table:
    python -m spc --sweep 250000:300000:5000 --output sweep.csv

Show the LBTT and ADS rules in use:
    python -m spc --tax-rules

Dump an example scenario file:
    python -m spc --example

``--set`` accepts field names (``bidAmount``), attribute names (``bid_amount``)
or short transport keys (``bid``).
"""

from __future__ import annotations

import argparse
import json
import math
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Default scenario options; inputs come from the engine's primary-input record
# ---------------------------------------------------------------------------
_DEFAULT_OPTIONS: dict = {
    "policy": "funds",        # "funds" or "fixed:<pct>"
    "ads_applicable": False,  # buying before selling
}


def _build_example() -> dict:
    """Return a complete example scenario dict (inputs + engine options)."""
    from spc.core.engine import DEFAULT_INPUTS

    return {
        "_comment": (
            "Scottish property calculator scenario. 'inputs' are the primary inputs "
            "(camelCase); 'options' select the deposit policy and ADS."
        ),
        "inputs": dict(DEFAULT_INPUTS),
        "options": _DEFAULT_OPTIONS.copy(),
    }


def _resolve_field(key: str) -> str | None:
    from spc.core.engine import INPUT_FIELDS
    from spc.core.state_codec import SHORT_KEYS

    if key in INPUT_FIELDS.values():
        return key
    if key in INPUT_FIELDS:
        return INPUT_FIELDS[key]
    return SHORT_KEYS.get(key)


def _apply_overrides(d: dict, overrides: list[str]) -> dict:
    """Apply --set key=value overrides to a camelCase input dict."""
    for kv in overrides or []:
        if "=" not in kv:
            print(f"Warning: ignoring malformed --set argument (expected key=value): {kv!r}", file=sys.stderr)
            continue
        key, _, raw = kv.partition("=")
        field = _resolve_field(key.strip())
        if field is None:
            print(f"Warning: ignoring unknown input {key.strip()!r}", file=sys.stderr)
            continue
        try:
            value = float(raw.strip())
        except ValueError:
            print(f"Warning: ignoring non-numeric value for {field}: {raw.strip()!r}", file=sys.stderr)
            continue
        if not math.isfinite(value):
            print(f"Warning: ignoring non-finite value for {field}: {raw.strip()!r}", file=sys.stderr)
            continue
        d[field] = value
    return d


def _format_report(inputs, outputs) -> str:
    from spc.core.mortgage import total_interest

    interest = total_interest(outputs.mortgage_amount, inputs.interest_rate_percent, inputs.mortgage_term_years)
    lines = [
        f"Monthly payment:             £{outputs.monthly_payment:,.2f}",
        f"Total interest:              £{interest:,.2f}",
        f"Mortgage amount:             £{outputs.mortgage_amount:,.2f}",
        f"Loan to value:               {outputs.loan_to_value_percent:.2f}%",
        f"Deposit:                     £{outputs.required_deposit:,.2f}",
        f"Overbid:                     £{max(0.0, outputs.overbid_amount):,.2f} ({outputs.overbid_percent:.2f}%)",
        f"LBTT (standard):             £{outputs.standard_tax:,.2f}",
        f"ADS:                         £{outputs.ads_amount:,.2f}",
        f"LBTT (total):                £{outputs.tax_liability:,.2f}",
        f"Cash used before purchase:   £{outputs.cash_used_before_purchase:,.2f}",
        f"Equity from sale:            £{outputs.equity_from_sale:,.2f}",
        f"Total funds after sale:      £{outputs.total_funds_after_sale:,.2f}",
        f"Bridging needed:             £{outputs.bridging_shortfall:,.2f}",
        f"Remaining cash:              £{outputs.remaining_cash:,.2f}",
    ]
    return "\n".join(lines)


def _parse_sweep(spec: str) -> tuple[float, float, float]:
    parts = spec.split(":")
    if len(parts) != 3:
        raise ValueError(f"--sweep expects START:STOP:STEP (got {spec!r})")
    try:
        start, stop, step = (float(p) for p in parts)
    except ValueError:
        raise ValueError(f"--sweep values must be numeric (got {spec!r})") from None
    return start, stop, step


def _write(output: str, text: str) -> None:
    if output == "-":
        print(text, end="" if text.endswith("\n") else "\n")
    else:
        Path(output).write_text(text if text.endswith("\n") else text + "\n")
        print(f"Results written to {output}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m spc",
        description="Scottish property calculator: headless/CLI mode.",
    )
    parser.add_argument(
        "--config", "-c",
        metavar="FILE",
        help="Path to a JSON scenario file. Use --example to generate a template.",
    )
    parser.add_argument(
        "--output", "-o",
        metavar="FILE",
        default="-",
        help="Output file path. Use '-' (default) to print to stdout.",
    )
    parser.add_argument(
        "--set", "-s",
        dest="overrides",
        metavar="key=value",
        action="append",
        help="Override an input. Repeat for multiple overrides.",
    )
    parser.add_argument(
        "--query", "-q",
        metavar="QUERY",
        help="Query string from a share link (e.g. 'hrv=260000&bid=280000').",
    )
    parser.add_argument(
        "--store",
        metavar="FILE",
        help="JSON key-value store that may hold data saved by an older release.",
    )
    parser.add_argument("--policy", help="Deposit policy: 'funds' (default) or 'fixed:<pct>'.")
    parser.add_argument("--ads", action="store_true", help="Apply the Additional Dwelling Supplement.")
    parser.add_argument("--example", action="store_true", help="Print an example JSON scenario file and exit.")
    parser.add_argument("--tax-rules", action="store_true", help="Print the LBTT/ADS rules in use and exit.")
    parser.add_argument("--json", action="store_true", help="Output inputs, outputs and warnings as JSON.")
    parser.add_argument("--encode", action="store_true", help="Output the minimal share-link query string.")
    parser.add_argument("--sweep", metavar="START:STOP:STEP", help="Output a bid sensitivity table as CSV.")

    args = parser.parse_args(argv)

    if args.example:
        print(json.dumps(_build_example(), indent=2))
        return 0

    if args.tax_rules:
        from spc.core.taxes import TAX_RULES_LAST_REVIEWED, TAX_RULES_MD

        print(TAX_RULES_MD)
        print(f"\nLast reviewed: {TAX_RULES_LAST_REVIEWED.isoformat()}")
        return 0

    from spc.core.engine import PrimaryInputs, TransactionEngine
    from spc.core.policy import parse_policy
    from spc.core.state_codec import (
        decode_record,
        encode_query,
        load_inputs,
        parse_query_string,
        to_query_string,
    )
    from spc.core.stores import JsonFileStore
    from spc.core.validation import clamp_inputs, get_validation_warnings

    scenario = _build_example()
    if args.config:
        config_path = Path(args.config)
        if not config_path.exists():
            print(f"Error: config file not found: {config_path}", file=sys.stderr)
            return 1
        try:
            with config_path.open() as fh:
                user_scenario = json.load(fh)
        except ValueError as exc:
            print(f"Config error: {config_path} is not valid JSON: {exc}", file=sys.stderr)
            return 1
        if not isinstance(user_scenario, dict):
            print(f"Config error: {config_path} must hold a JSON object", file=sys.stderr)
            return 1
        for section in ("inputs", "options"):
            part = user_scenario.get(section, {})
            if not isinstance(part, dict):
                print(f"Config error: '{section}' in {config_path} must be an object", file=sys.stderr)
                return 1
            scenario[section].update(part)

    # Config inputs are the baseline a share link or saved data is read against.
    inputs = decode_record(scenario["inputs"])
    if args.query is not None or args.store:
        params = parse_query_string(args.query)
        store = JsonFileStore(args.store) if args.store else None
        migrating = store is not None and not params
        inputs = load_inputs(params, store, inputs)
        if migrating and params:
            print(f"Migrated saved data to share link: ?{to_query_string(encode_query(inputs))}", file=sys.stderr)

    if args.overrides:
        inputs = clamp_inputs(PrimaryInputs.from_dict(_apply_overrides(inputs.to_dict(), args.overrides)))

    options = scenario["options"]
    try:
        policy = parse_policy(args.policy if args.policy is not None else options.get("policy"))
    except ValueError as exc:
        print(f"Config error: {exc}", file=sys.stderr)
        return 1
    ads = bool(args.ads or options.get("ads_applicable", False))
    engine = TransactionEngine(policy, ads_applicable=ads)

    if args.sweep:
        from spc.core.sweep import bid_range, bid_sweep

        try:
            bids = bid_range(*_parse_sweep(args.sweep))
        except ValueError as exc:
            print(f"Config error: {exc}", file=sys.stderr)
            return 1
        df = bid_sweep(inputs, bids, engine=engine)
        _write(args.output, df.to_csv(index=False))
        return 0

    outputs = engine.reconcile(inputs)
    print(
        f"Reconciled: bid=£{inputs.bid_amount:,.0f}, home report=£{inputs.home_report_value:,.0f}, "
        f"policy={policy.name}, ADS={'yes' if ads else 'no'}",
        file=sys.stderr,
    )

    query = to_query_string(encode_query(inputs))

    if args.encode:
        _write(args.output, query)
        return 0

    warnings_list = get_validation_warnings(inputs, outputs)

    if args.json:
        summary = {
            "inputs": inputs.to_dict(),
            "outputs": {k: round(v, 2) for k, v in outputs.to_dict().items()},
            "policy": policy.name,
            "ads_applicable": ads,
            "warnings": warnings_list,
            "query": query,
        }
        _write(args.output, json.dumps(summary, indent=2))
        return 0

    report = _format_report(inputs, outputs)
    if warnings_list:
        report += "\n\n" + "\n".join(f"Warning: {w}" for w in warnings_list)
    _write(args.output, report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
