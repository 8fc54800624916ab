"""
Configuration Loader (``booking_config.loader``).

Responsibility
--------------
Loads a booking configuration YAML file and parses it into the typed
``booking_config.schema`` dataclasses.  Runtime callers go through
``booking_config.get_active_config()``; tests may call the parsers
directly.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  No dependency on engines,
services or the database.

Invariants enforced
-------------------
* Required keys are read with ``data[key]``: a missing key is a
  ``KeyError``, never a silent default.
* Decimal values are parsed from their string form, so YAML floats such
  as ``0.05`` become ``Decimal("0.05")`` exactly.
* ``compute_checksum`` is a deterministic SHA-256 of the canonical JSON
  form of the raw document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Non-numeric decimal values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from booking_config.schema import (
    BookingConfiguration,
    FieldRuleDef,
    PaymentPolicyDef,
    PricingDef,
    StepDef,
    StepGraphDef,
    StepGroupDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Cannot parse decimal from {value!r}")
    try:
        number = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Cannot parse decimal from {value!r}") from e
    if not number.is_finite():
        raise ValueError(f"Cannot parse decimal from {value!r}")
    return number


def _optional_decimal(data: dict[str, Any], key: str) -> Decimal | None:
    value = data.get(key)
    return parse_decimal(value) if value is not None else None


def parse_payment_policy(data: dict[str, Any]) -> PaymentPolicyDef:
    """Parse a PaymentPolicyDef; thresholds fall back to schema defaults."""
    optional: dict[str, Any] = {}
    for key in (
        "large_amount_threshold",
        "credit_usage_warning_ratio",
        "points_usage_warning_ratio",
        "small_total_threshold",
    ):
        if key in data:
            optional[key] = parse_decimal(data[key])
    if "max_lines_before_warning" in data:
        optional["max_lines_before_warning"] = int(data["max_lines_before_warning"])
    if "default_method" in data:
        optional["default_method"] = str(data["default_method"])

    return PaymentPolicyDef(
        currency=str(data["currency"]),
        conversion_rate=int(data["conversion_rate"]),
        min_redemption=int(data["min_redemption"]),
        epsilon=parse_decimal(data["epsilon"]),
        **optional,
    )


def parse_pricing(data: dict[str, Any]) -> PricingDef:
    return PricingDef(
        tax_rate=parse_decimal(data["tax_rate"]),
        down_payment_rate=parse_decimal(data["down_payment_rate"]),
    )


def parse_step_group(data: dict[str, Any]) -> StepGroupDef:
    return StepGroupDef(
        group_id=data["id"],
        title=data["title"],
        description=data.get("description", ""),
    )


def parse_step(data: dict[str, Any]) -> StepDef:
    return StepDef(
        number=int(data["number"]),
        title=data["title"],
        group=data["group"],
        description=data.get("description", ""),
        required_when=data.get("required_when"),
    )


def parse_step_graph(data: dict[str, Any]) -> StepGraphDef:
    payment_step = data.get("payment_step")
    return StepGraphDef(
        groups=tuple(parse_step_group(g) for g in data.get("groups", [])),
        steps=tuple(parse_step(s) for s in data["steps"]),
        payment_step=int(payment_step) if payment_step is not None else None,
    )


def parse_field_rule(step: int, data: dict[str, Any]) -> FieldRuleDef:
    """
    Parse one rule of a step.

    ``when`` is either a field name (rule applies while it is truthy) or a
    mapping ``{field: ..., in: [...]}``.
    """
    when = data.get("when")
    when_field: str | None = None
    when_in: tuple[Any, ...] = ()
    if isinstance(when, dict):
        when_field = when["field"]
        when_in = tuple(when.get("in", ()))
    elif when is not None:
        when_field = str(when)

    return FieldRuleDef(
        step=step,
        field=data["field"],
        rule=data["rule"],
        message=data["message"],
        when_field=when_field,
        when_in=when_in,
        other_field=data.get("other_field"),
        minimum=_optional_decimal(data, "min"),
        maximum=_optional_decimal(data, "max"),
    )


def parse_validation_rules(data: dict[Any, Any]) -> tuple[FieldRuleDef, ...]:
    """Rules are authored per step: ``{step_number: [rule, ...]}``."""
    rules: list[FieldRuleDef] = []
    for step_key in sorted(data, key=int):
        for rule in data[step_key] or []:
            rules.append(parse_field_rule(int(step_key), rule))
    return tuple(rules)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_configuration(data: dict[str, Any]) -> BookingConfiguration:
    return BookingConfiguration(
        config_id=data["config_id"],
        version=int(data["version"]),
        checksum=compute_checksum(data),
        payment_policy=parse_payment_policy(data["payment_policy"]),
        pricing=parse_pricing(data["pricing"]),
        step_graph=parse_step_graph(data["step_graph"]),
        validation_rules=parse_validation_rules(data.get("validation_rules") or {}),
    )


def load_configuration(path: Path) -> BookingConfiguration:
    return parse_configuration(load_yaml_file(path))
