"""
Configuration compiler (``booking_config.compiler``).

Responsibility
--------------
Turns a parsed ``BookingConfiguration`` into the objects the engines
consume: ``PaymentPolicy``, ``PricingPolicy``, ``StepGraph`` and
``RuleBook``.  Engines never see YAML dicts or schema definitions.

Invariants enforced
-------------------
* Every step group's members are derived from the steps that name it, in
  step order, so group membership cannot disagree with the steps.
* ``required_when`` rules compile to ``required`` rules with a condition.
* The compiled checksum is the source checksum.

Failure modes
-------------
* ``ConfigurationError`` -- invalid rates, thresholds, rule kinds or an
  unknown payment method.
* ``StepGraphError`` -- steps not numbered 1..N or naming unknown groups.
"""

from __future__ import annotations

from dataclasses import dataclass

from booking_config.schema import BookingConfiguration, FieldRuleDef, StepGraphDef
from booking_engines.allocation import AllocationEngine
from booking_engines.conversion import ConversionPolicy, PaymentPolicy
from booking_engines.pricing import PricingPolicy
from booking_engines.validation_rules import FieldRule, RuleBook, RuleKind, ValidationRuleSet
from booking_engines.wizard_session import WizardNavigator
from booking_kernel.domain.funding import FundingSource
from booking_kernel.domain.values import Currency
from booking_kernel.domain.wizard import StepGraph, WizardStep, WizardStepGroup
from booking_kernel.exceptions import ConfigurationError


@dataclass(frozen=True)
class CompiledBookingConfig:
    """Runtime artifact: engine-ready objects plus the source identity."""

    config_id: str
    version: int
    checksum: str
    payment_policy: PaymentPolicy
    pricing_policy: PricingPolicy
    step_graph: StepGraph
    rule_book: RuleBook
    payment_step: int

    def navigator(self) -> WizardNavigator:
        return WizardNavigator(self.step_graph, self.rule_book, self.payment_step)

    def allocation_engine(self) -> AllocationEngine:
        return AllocationEngine(self.payment_policy)


def compile_payment_policy(config: BookingConfiguration) -> PaymentPolicy:
    source = config.payment_policy
    try:
        currency = Currency(source.currency)
        default_method = FundingSource(source.default_method)
    except ValueError as e:
        raise ConfigurationError("payment_policy", str(e)) from e

    conversion = ConversionPolicy(
        conversion_rate=source.conversion_rate,
        min_redemption=source.min_redemption,
        currency=currency,
    )
    return PaymentPolicy(
        conversion=conversion,
        epsilon=source.epsilon,
        default_method=default_method,
        large_amount_threshold=source.large_amount_threshold,
        credit_usage_warning_ratio=source.credit_usage_warning_ratio,
        points_usage_warning_ratio=source.points_usage_warning_ratio,
        max_lines_before_warning=source.max_lines_before_warning,
        small_total_threshold=source.small_total_threshold,
    )


def compile_step_graph(source: StepGraphDef) -> StepGraph:
    steps = tuple(
        WizardStep(
            number=s.number,
            title=s.title,
            description=s.description,
            group_id=s.group,
            required_when=s.required_when,
        )
        for s in sorted(source.steps, key=lambda s: s.number)
    )
    groups = tuple(
        WizardStepGroup(
            group_id=g.group_id,
            title=g.title,
            description=g.description,
            member_steps=tuple(s.number for s in steps if s.group_id == g.group_id),
        )
        for g in source.groups
    )
    return StepGraph(steps=steps, groups=groups)


def compile_field_rule(source: FieldRuleDef) -> FieldRule:
    kind_name = source.rule
    when_field = source.when_field
    if kind_name == "required_when":
        if when_field is None:
            raise ConfigurationError(
                f"validation_rules.{source.step}.{source.field}",
                "required_when needs a 'when' condition",
            )
        kind_name = RuleKind.REQUIRED.value
    try:
        kind = RuleKind(kind_name)
        return FieldRule(
            field=source.field,
            kind=kind,
            message=source.message,
            when_field=when_field,
            when_in=source.when_in,
            other_field=source.other_field,
            minimum=source.minimum,
            maximum=source.maximum,
        )
    except ValueError as e:
        raise ConfigurationError(
            f"validation_rules.{source.step}.{source.field}", str(e)
        ) from e


def compile_rule_book(config: BookingConfiguration, graph: StepGraph) -> RuleBook:
    by_step: dict[int, list[FieldRule]] = {}
    for rule_def in config.validation_rules:
        if not graph.contains(rule_def.step):
            raise ConfigurationError(
                f"validation_rules.{rule_def.step}", "refers to a step that does not exist"
            )
        by_step.setdefault(rule_def.step, []).append(compile_field_rule(rule_def))
    return RuleBook.from_rule_sets(
        [ValidationRuleSet(step=n, rules=tuple(rules)) for n, rules in sorted(by_step.items())]
    )


def compile_configuration(config: BookingConfiguration) -> CompiledBookingConfig:
    graph = compile_step_graph(config.step_graph)
    payment_step = config.step_graph.payment_step or len(graph)
    if not graph.contains(payment_step):
        raise ConfigurationError("step_graph.payment_step", f"no step {payment_step}")

    return CompiledBookingConfig(
        config_id=config.config_id,
        version=config.version,
        checksum=config.checksum,
        payment_policy=compile_payment_policy(config),
        pricing_policy=PricingPolicy(
            tax_rate=config.pricing.tax_rate,
            down_payment_rate=config.pricing.down_payment_rate,
        ),
        step_graph=graph,
        rule_book=compile_rule_book(config, graph),
        payment_step=payment_step,
    )
