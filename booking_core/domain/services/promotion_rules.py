"""Promotion rule interpreter.

Pure functions over the tagged rule / benefit variants declared in
booking_core.domain.models.promotion. No I/O; the promotion repository
loads the promotion and hands it here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from booking_core.domain.models.base import quantize_money
from booking_core.domain.models.promotion import (
    AllOfRule,
    AllowedCurrenciesRule,
    ExcludedActorsRule,
    FixedAmountBenefit,
    MaxAmountRule,
    MinAmountRule,
    PercentageBenefit,
    Promotion,
    PromotionApplication,
    PromotionBenefit,
    PromotionRule,
    Purchase,
)

# Ineligibility reasons
MINIMUM_AMOUNT_NOT_MET = "MINIMUM_AMOUNT_NOT_MET"
MAXIMUM_AMOUNT_EXCEEDED = "MAXIMUM_AMOUNT_EXCEEDED"
CURRENCY_NOT_ALLOWED = "CURRENCY_NOT_ALLOWED"
CLIENT_EXCLUDED = "CLIENT_EXCLUDED"
PROMOTION_NOT_ACTIVE = "PROMOTION_NOT_ACTIVE"
PROMOTION_NOT_FOUND = "PROMOTION_NOT_FOUND"

# Labels of the checks that passed
MINIMUM_AMOUNT_CHECK = "MINIMUM_AMOUNT_CHECK"
MAXIMUM_AMOUNT_CHECK = "MAXIMUM_AMOUNT_CHECK"
CURRENCY_CHECK = "CURRENCY_CHECK"
CLIENT_CHECK = "CLIENT_CHECK"
DEFAULT_ELIGIBLE = "DEFAULT_ELIGIBLE"

_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class RuleEvaluation:
    eligible: bool
    reason: str | None = None
    applied_rules: list[str] = field(default_factory=list)


def evaluate_rule(rule: PromotionRule | None, purchase: Purchase, client_id: UUID) -> RuleEvaluation:
    """Evaluate *rule* for *client_id* buying *purchase*.

    Composite rules stop at the first failing child and report its reason.
    """
    if rule is None:
        return RuleEvaluation(eligible=True, applied_rules=[DEFAULT_ELIGIBLE])

    if isinstance(rule, MinAmountRule):
        if purchase.amount < rule.amount:
            return RuleEvaluation(eligible=False, reason=MINIMUM_AMOUNT_NOT_MET)
        return RuleEvaluation(eligible=True, applied_rules=[MINIMUM_AMOUNT_CHECK])

    if isinstance(rule, MaxAmountRule):
        if purchase.amount > rule.amount:
            return RuleEvaluation(eligible=False, reason=MAXIMUM_AMOUNT_EXCEEDED)
        return RuleEvaluation(eligible=True, applied_rules=[MAXIMUM_AMOUNT_CHECK])

    if isinstance(rule, AllowedCurrenciesRule):
        if purchase.currency not in rule.currencies:
            return RuleEvaluation(eligible=False, reason=CURRENCY_NOT_ALLOWED)
        return RuleEvaluation(eligible=True, applied_rules=[CURRENCY_CHECK])

    if isinstance(rule, ExcludedActorsRule):
        if client_id in rule.actor_ids:
            return RuleEvaluation(eligible=False, reason=CLIENT_EXCLUDED)
        return RuleEvaluation(eligible=True, applied_rules=[CLIENT_CHECK])

    if isinstance(rule, AllOfRule):
        applied: list[str] = []
        for child in rule.rules:
            result = evaluate_rule(child, purchase, client_id)
            if not result.eligible:
                return result
            applied.extend(result.applied_rules)
        return RuleEvaluation(eligible=True, applied_rules=applied)

    raise TypeError(f"Unsupported promotion rule: {type(rule).__name__}")


def calculate_benefit(benefit: PromotionBenefit, purchase: Purchase) -> Decimal:
    """Discount granted on *purchase*, capped at the purchase amount."""
    if isinstance(benefit, PercentageBenefit):
        discount = purchase.amount * benefit.percent / _HUNDRED
    elif isinstance(benefit, FixedAmountBenefit):
        discount = benefit.amount
    else:
        raise TypeError(f"Unsupported promotion benefit: {type(benefit).__name__}")
    return quantize_money(min(discount, purchase.amount))


def not_applied(purchase: Purchase, reason: str) -> PromotionApplication:
    return PromotionApplication(
        applied=False,
        discount_amount=Decimal("0.00"),
        final_amount=quantize_money(purchase.amount),
        reason=reason,
    )


def apply(
    promotion: Promotion | None,
    purchase: Purchase,
    client_id: UUID,
    now: datetime,
) -> PromotionApplication:
    if promotion is None:
        return not_applied(purchase, PROMOTION_NOT_FOUND)
    if not promotion.is_active_at(now):
        return not_applied(purchase, PROMOTION_NOT_ACTIVE)

    evaluation = evaluate_rule(promotion.rules, purchase, client_id)
    if not evaluation.eligible:
        return not_applied(purchase, evaluation.reason or PROMOTION_NOT_ACTIVE)

    discount = calculate_benefit(promotion.benefit, purchase)
    return PromotionApplication(
        applied=True,
        discount_amount=discount,
        final_amount=quantize_money(max(purchase.amount - discount, Decimal("0"))),
        applied_rules=evaluation.applied_rules,
    )
