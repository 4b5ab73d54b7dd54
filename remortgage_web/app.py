import json
import logging
import os
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence, Tuple

from flask import Flask, current_app, jsonify, redirect, render_template, request, session, url_for

from remortgage_calc.comparison import build_chart_data, compute_differences
from remortgage_calc.data_models import CurrentMortgage, FeeHandling, LoanOption, RepaymentType
from remortgage_calc.engine import compare_options
from remortgage_calc.formatter import NOTES, currency_format, result_lines
from remortgage_calc.main import build_option_from_mapping, comparison_payload
from remortgage_calc.utils import (
    DEFAULT_OUTSTANDING_BALANCE,
    DEFAULT_REMAINING_MONTHS,
    DEFAULT_REMAINING_YEARS,
    default_option,
    default_options,
    mortgage_from_years_months,
    option_label,
    parse_decimal,
    relabel_options,
    to_total_months,
)

logger = logging.getLogger(__name__)

OPTION_FORM_FIELDS = (
    "repayment_type",
    "rate",
    "fee_amount",
    "fee_handling",
    "fixed_years",
    "fixed_months",
    "overpayment",
    "erc_amount",
    "apply_erc",
    "reversion_rate",
)


def _option_to_form(option: LoanOption) -> Dict[str, Any]:
    """Session/form representation of an option: raw strings, enum values, a bool."""
    return {
        "repayment_type": option.repayment_type.value,
        "rate": str(option.rate),
        "fee_amount": str(option.fee_amount),
        "fee_handling": option.fee_handling.value,
        "fixed_years": str(option.fixed_years),
        "fixed_months": str(option.fixed_months),
        "overpayment": str(option.overpayment),
        "erc_amount": str(option.erc_amount),
        "apply_erc": bool(option.apply_erc),
        "reversion_rate": str(option.reversion_rate),
    }


def _default_inputs() -> Dict[str, Any]:
    return {
        "outstanding": DEFAULT_OUTSTANDING_BALANCE,
        "remain_years": DEFAULT_REMAINING_YEARS,
        "remain_months": DEFAULT_REMAINING_MONTHS,
        "options": [_option_to_form(opt) for opt in default_options()],
    }


def _session_inputs() -> Dict[str, Any]:
    inputs = session.get("inputs")
    if not inputs or not inputs.get("options"):
        inputs = _default_inputs()
    return inputs


def _option_from_values(values: Dict[str, Any], label: str) -> Tuple[LoanOption, List[str]]:
    """Build one option; unreadable choices keep the default and are reported."""
    errors: List[str] = []
    cleaned = dict(values)
    for name, parse in (("repayment_type", RepaymentType.parse), ("fee_handling", FeeHandling.parse)):
        if name not in cleaned:
            continue
        try:
            parse(cleaned[name])
        except ValueError as exc:
            errors.append(f"{label}: {exc}")
            del cleaned[name]
    try:
        return build_option_from_mapping(cleaned, label), errors
    except ValueError as exc:
        return default_option(label), errors + [f"{label}: {exc}"]


def _options_from_inputs(inputs: Dict[str, Any]) -> Tuple[List[LoanOption], List[str]]:
    options: List[LoanOption] = []
    errors: List[str] = []
    for i, values in enumerate(inputs["options"]):
        option, problems = _option_from_values(values, option_label(i))
        options.append(option)
        errors.extend(problems)
    return relabel_options(options), errors


def _inputs_from_form(form) -> Dict[str, Any]:
    """Read the comparator form back into the session representation."""
    count = max(0, int(parse_decimal(form.get("option_count"))))
    count = min(count, current_app.config["MAX_OPTIONS"])
    options = []
    for i in range(count):
        values: Dict[str, Any] = {}
        for name in OPTION_FORM_FIELDS:
            key = f"options-{i}-{name}"
            if name == "apply_erc":
                values[name] = form.get(key) is not None
            else:
                values[name] = form.get(key, "")
        options.append(values)
    return {
        "outstanding": form.get("outstanding", ""),
        "remain_years": form.get("remain_years", ""),
        "remain_months": form.get("remain_months", ""),
        "options": options,
    }


def _apply_action(inputs: Dict[str, Any], action: str, form) -> Dict[str, Any]:
    options = inputs["options"]
    if action == "add_option":
        if len(options) < current_app.config["MAX_OPTIONS"]:
            options.append(_option_to_form(default_option(option_label(len(options)))))
            logger.info("Added option %s", option_label(len(options) - 1))
        else:
            logger.info("Option limit of %d reached", current_app.config["MAX_OPTIONS"])
    elif action.startswith("remove_option"):
        _, _, raw_index = action.partition(":")
        try:
            index = int(raw_index or form.get("option_index", -1))
        except ValueError:
            index = -1
        # the last option always stays
        if 0 <= index < len(options) and len(options) > 1:
            del options[index]
            logger.info("Removed option at position %d", index)
    return inputs


def _current_mortgage(inputs: Dict[str, Any]) -> CurrentMortgage:
    return mortgage_from_years_months(inputs["outstanding"], inputs["remain_years"], inputs["remain_months"])


def _mortgage_from_payload(payload: Dict[str, Any]) -> CurrentMortgage:
    if "remainingTermMonths" in payload:
        months = to_total_months(0, payload.get("remainingTermMonths"))
        return CurrentMortgage(payload.get("outstandingBalance"), months)
    return mortgage_from_years_months(
        payload.get("outstandingBalance"),
        payload.get("remainingYears"),
        payload.get("remainingMonths"),
    )


def _term_problems(current: CurrentMortgage, options: Sequence[LoanOption], max_months: int) -> List[str]:
    problems: List[str] = []
    if current.remaining_term_months > max_months:
        problems.append(f"Remaining term is limited to {max_months} months")
    for option in options:
        if to_total_months(option.fixed_years, option.fixed_months) > max_months:
            problems.append(f"{option.label}: fixed term is limited to {max_months} months")
    return problems


def _cap_terms(
    current: CurrentMortgage, options: Sequence[LoanOption], max_months: int
) -> Tuple[CurrentMortgage, List[LoanOption]]:
    """Shorten any term longer than ``max_months`` to exactly ``max_months``."""
    capped_current = replace(current, remaining_term_months=min(current.remaining_term_months, max_months))
    capped_options = [
        option
        if to_total_months(option.fixed_years, option.fixed_months) <= max_months
        else replace(option, fixed_years="0", fixed_months=str(max_months))
        for option in options
    ]
    return capped_current, capped_options


def _bad_request(detail: str) -> Tuple[Any, int]:
    logger.warning("Rejected comparison request: %s", detail)
    return jsonify({"detail": detail}), 400


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """Build the comparator web app; ``config`` overrides environment settings."""
    app = Flask(__name__)
    app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
    app.config["MAX_OPTIONS"] = int(os.environ.get("REMORTGAGE_MAX_OPTIONS", "8"))
    app.config["MAX_TERM_MONTHS"] = int(os.environ.get("REMORTGAGE_MAX_TERM_MONTHS", "600"))
    app.config["LOG_LEVEL"] = os.environ.get("REMORTGAGE_LOG_LEVEL", "INFO")
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    if config:
        app.config.update(config)
        if "SECRET_KEY" in config:
            app.secret_key = config["SECRET_KEY"]

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @app.template_filter("currency")
    def _currency_filter(value):
        return currency_format(value)

    @app.route("/", methods=["GET", "POST"])
    def index():
        inputs = _session_inputs()
        if request.method == "POST":
            action = request.form.get("action", "update")
            inputs = _apply_action(_inputs_from_form(request.form), action, request.form)
            if not inputs["options"]:
                inputs = _default_inputs()
            session["inputs"] = inputs
            session.modified = True

        options, errors = _options_from_inputs(inputs)
        current = _current_mortgage(inputs)
        max_term = app.config["MAX_TERM_MONTHS"]
        errors.extend(_term_problems(current, options, max_term))
        current, options = _cap_terms(current, options, max_term)

        results = compare_options(current, options)
        return render_template(
            "index.html",
            inputs=inputs,
            results=results,
            result_lines={r.label: result_lines(r.metrics) for r in results},
            differences=compute_differences(results),
            chart_payload=json.dumps(build_chart_data(results)),
            series_names=[r.label for r in results],
            notes=NOTES,
            error="; ".join(errors) or None,
            max_options=app.config["MAX_OPTIONS"],
            asset_version=app.config["ASSET_VERSION"],
        )

    @app.post("/reset")
    def reset():
        session.pop("inputs", None)
        return redirect(url_for("index"))

    @app.post("/api/compare")
    def api_compare():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return _bad_request("Request body must be a JSON object")
        raw_options = payload.get("options")
        if raw_options is None:
            options = default_options()
        elif not isinstance(raw_options, list) or not all(isinstance(o, dict) for o in raw_options):
            return _bad_request("options must be a list of objects")
        elif len(raw_options) > app.config["MAX_OPTIONS"]:
            return _bad_request(f"At most {app.config['MAX_OPTIONS']} options can be compared")
        else:
            try:
                options = [build_option_from_mapping(o, option_label(i)) for i, o in enumerate(raw_options)]
            except ValueError as exc:
                return _bad_request(str(exc))
        current = _mortgage_from_payload(payload)
        problems = _term_problems(current, options, app.config["MAX_TERM_MONTHS"])
        if problems:
            return _bad_request("; ".join(problems))
        results = compare_options(current, options)
        return jsonify(comparison_payload(results))

    return app


app = create_app()


if __name__ == "__main__":
    print("Starting Remortgage Comparator web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
