# app/core/classification.py

"""
Discrepancy classification for audit matching.

Classifies the type and severity of the difference between an audit row
and the recorded order it was loosely matched to, or why nothing matched.
"""

from typing import Any, Iterable, Optional

from app.models import (
    CookieDifference,
    DiscrepancyClassification,
    DiscrepancySeverity,
    DiscrepancyType,
    InternalTransaction,
    MatchDetails,
    NormalizedAuditRecord,
)
from app.core.evaluators import audit_quantities, order_quantities, quantity_or_zero, date_difference_days
from app.core.normalizers import get_cookie_abbreviations


def cookie_differences(
    record: NormalizedAuditRecord,
    transaction: Optional[InternalTransaction],
    cookie_abbreviations: Iterable[Any],
) -> list[CookieDifference]:
    """Every cookie type whose quantities disagree; a missing transaction counts as all zero."""
    audit = audit_quantities(record)
    order = order_quantities(transaction) if transaction is not None else {}

    differences = []
    for abbr in get_cookie_abbreviations(cookie_abbreviations):
        audit_qty = quantity_or_zero(audit.get(abbr))
        recorded_qty = quantity_or_zero(order.get(abbr))
        if audit_qty != recorded_qty:
            differences.append(
                CookieDifference(
                    abbreviation=abbr,
                    audit_quantity=audit_qty,
                    recorded_quantity=recorded_qty,
                )
            )
    return differences


def classify_partial_match(
    record: NormalizedAuditRecord,
    transaction: InternalTransaction,
    details: MatchDetails,
    cookie_abbreviations: Iterable[Any],
    counterparty_name: Optional[str] = None,
) -> DiscrepancyClassification:
    """
    Classify why a loosely matched pair is not a perfect match.

    counterparty_name is the recorded seller's full name, when known.
    """
    differences = cookie_differences(record, transaction, cookie_abbreviations)
    days_apart = date_difference_days(record.date, transaction.date)
    names_girl = bool(record.counterparty_to or record.counterparty_from or counterparty_name)
    factors: list[str] = []

    discrepancy_type: DiscrepancyType

    # ============================================
    # Quantities
    # ============================================
    if differences and all(abs(d.audit_quantity) == abs(d.recorded_quantity) for d in differences):
        discrepancy_type = "sign_flip"
        flipped = ", ".join(d.abbreviation for d in differences)
        factors.append(f"Quantities recorded with the opposite sign: {flipped}")

    elif differences:
        discrepancy_type = "quantity_mismatch"
        for d in differences:
            factors.append(
                f"{d.abbreviation}: audit {d.audit_quantity:g}, recorded {d.recorded_quantity:g}"
            )

    # ============================================
    # Timing difference (cookies match, dates don't)
    # ============================================
    elif days_apart:
        discrepancy_type = "timing_difference"
        factors.append(
            f"Cookies match, but dates differ by {days_apart} day{'s' if days_apart > 1 else ''}. "
            f"Audit: {record.date}, recorded: {transaction.date}."
        )

    # ============================================
    # Name spelled differently
    # ============================================
    elif names_girl and (
        not (details.to_match or details.from_match)
        or (counterparty_name and record.counterparty != counterparty_name)
    ):
        discrepancy_type = "name_variation"
        factors.append(
            f"Name differs: audit {record.counterparty!r}, recorded {counterparty_name!r}"
        )

    # ============================================
    # Order number
    # ============================================
    elif record.order_num and transaction.order_num and not details.order_num_match:
        discrepancy_type = "order_number_mismatch"
        factors.append(
            f"Order number differs: audit {record.order_num}, recorded {transaction.order_num}"
        )

    else:
        discrepancy_type = "unknown"
        factors.append("This match requires manual review")

    if not details.type_match:
        factors.append(f"Type differs ({record.type} vs {transaction.type})")

    # Fewer than half the compared cookie types agree
    cookies = details.cookies
    severity: DiscrepancySeverity
    if cookies.total_cookie_types and cookies.number_matched * 2 < cookies.total_cookie_types:
        severity = "critical"
    elif discrepancy_type in ("sign_flip", "quantity_mismatch"):
        severity = "warning"
    else:
        severity = "info"

    return DiscrepancyClassification(
        type=discrepancy_type,
        severity=severity,
        factors=factors,
        cookie_differences=differences,
        date_difference_days=days_apart,
    )


def classify_unmatched(
    record: NormalizedAuditRecord,
    cookie_abbreviations: Iterable[Any] = (),
) -> DiscrepancyClassification:
    """Classify an audit row with no recorded counterpart."""
    who = f" for {record.counterparty}" if record.counterparty else ""
    return DiscrepancyClassification(
        type="missing_in_orders",
        severity="critical",
        factors=[f"No recorded {record.type} order on {record.date}{who}"],
        cookie_differences=cookie_differences(record, None, cookie_abbreviations),
    )


def classify_unmatched_order(transaction: InternalTransaction) -> DiscrepancyClassification:
    """Classify a recorded order that no audit row accounts for."""
    label = f"Order {transaction.order_num}" if transaction.order_num else f"Order id {transaction.id}"
    return DiscrepancyClassification(
        type="missing_in_audit",
        severity="warning",
        factors=[f"{label} ({transaction.type}, {transaction.date}) does not appear in the audit export"],
    )
