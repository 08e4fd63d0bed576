# app/core/evaluators.py

"""
Evaluators comparing one audit record with one recorded order.

Strict tier:
- check_for_cookie_match: every cookie quantity equal

Loose tier:
- check_for_partial_cookie_match: per-cookie tolerance
- date_matches_with_tolerance: processing lag between the two systems
- score_partial_candidate: combines both with the non-cookie fields

Partial score (0-100):
    (cookie types matched + non-cookie fields matched)
    / (cookie types compared + 4) * 100

Non-cookie fields: date, type, TO/FROM name, order number.
"""

from typing import Any, Iterable, Mapping, Optional

from app.models import (
    CookieMatchSummary,
    InternalTransaction,
    MatchDetails,
    NormalizedAuditRecord,
    Seller,
)
from app.core.normalizers import (
    get_cookie_abbreviations,
    normalize_date,
    normalize_order_number,
    parse_date,
    to_quantity,
)
from app.core.string_matching import fuzzy_match

# Both sides recorded the cookie: allow a miscount of this many packages
BOTH_SIDES_TOLERANCE = 2
# Only one side recorded the cookie
ONE_SIDE_TOLERANCE = 1

DATE_TOLERANCE_DAYS = 2
MAX_NAME_DISTANCE = 2

NON_COOKIE_FIELDS = 4
ONE_FIELD_THRESHOLD = 60.0
TWO_FIELD_THRESHOLD = 40.0


def audit_quantities(record: NormalizedAuditRecord | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(record, NormalizedAuditRecord):
        return record.cookie_quantities
    return record or {}


def order_quantities(transaction: InternalTransaction | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(transaction, InternalTransaction):
        return transaction.cookies
    return (transaction or {}).get("cookies") or {}


def quantity_or_zero(value: Any) -> float:
    return to_quantity(value) or 0


# ============================================
# Cookie quantities
# ============================================

def check_for_cookie_match(
    record: NormalizedAuditRecord | Mapping[str, Any],
    transaction: InternalTransaction | Mapping[str, Any],
    cookie_abbreviations: Iterable[Any],
) -> bool:
    """True if every known cookie has the same quantity on both sides (missing = 0)."""
    audit = audit_quantities(record)
    order = order_quantities(transaction)

    for abbr in get_cookie_abbreviations(cookie_abbreviations):
        if quantity_or_zero(audit.get(abbr)) != quantity_or_zero(order.get(abbr)):
            return False

    return True


def check_for_partial_cookie_match(
    record: NormalizedAuditRecord | Mapping[str, Any],
    transaction: InternalTransaction | Mapping[str, Any],
    cookie_abbreviations: Iterable[Any],
) -> CookieMatchSummary:
    """
    Count cookie types that agree within tolerance.

    Cookie types that are zero on both sides are not compared at all.
    """
    audit = audit_quantities(record)
    order = order_quantities(transaction)

    matched = 0
    compared = 0

    for abbr in get_cookie_abbreviations(cookie_abbreviations):
        audit_qty = quantity_or_zero(audit.get(abbr))
        order_qty = quantity_or_zero(order.get(abbr))

        if audit_qty != 0 and order_qty != 0:
            compared += 1
            if abs(audit_qty - order_qty) <= BOTH_SIDES_TOLERANCE:
                matched += 1
            # Someone entered the quantity with the wrong sign
            elif abs(audit_qty) == abs(order_qty):
                matched += 1
        elif audit_qty != 0 or order_qty != 0:
            compared += 1
            if abs(audit_qty - order_qty) <= ONE_SIDE_TOLERANCE:
                matched += 1

    percentage = (matched * 100 / compared) if compared > 0 else 0.0

    return CookieMatchSummary(
        number_matched=matched,
        total_cookie_types=compared,
        match_percentage=percentage,
    )


# ============================================
# Dates
# ============================================

def date_difference_days(date1: Any, date2: Any) -> Optional[int]:
    """Absolute number of days between two date-like values, None if either is unparseable."""
    d1 = parse_date(date1)
    d2 = parse_date(date2)
    if d1 is None or d2 is None:
        return None
    return abs((d1 - d2).days)


def date_matches_with_tolerance(
    date1: Any,
    date2: Any,
    tolerance_days: int = DATE_TOLERANCE_DAYS,
) -> bool:
    """True if both dates parse and are at most tolerance_days apart."""
    diff = date_difference_days(date1, date2)
    return diff is not None and diff <= tolerance_days


# ============================================
# Partial candidate scoring
# ============================================

def score_partial_candidate(
    record: NormalizedAuditRecord,
    transaction: InternalTransaction,
    cookie_abbreviations: Iterable[Any],
    to_seller: Optional[Seller] = None,
    from_seller: Optional[Seller] = None,
    max_name_distance: int = MAX_NAME_DISTANCE,
    date_tolerance_days: int = DATE_TOLERANCE_DAYS,
    order_date: Optional[str] = None,
) -> MatchDetails:
    """
    Score a recorded order as a loose match for an audit record.

    Returns a MatchDetails with the per-field outcome, the cookie summary,
    the combined score and human-readable factors. order_date is the
    order's normalized date when the caller has already computed it.
    """
    factors: list[str] = []

    # Date
    if order_date is None:
        order_date = normalize_date(transaction.date)
    days_apart = date_difference_days(record.date, order_date)
    date_match = days_apart is not None and days_apart <= date_tolerance_days
    if days_apart == 0:
        factors.append("Same day")
    elif date_match:
        factors.append(f"{days_apart} day{'s' if days_apart > 1 else ''} apart")
    elif days_apart is not None:
        factors.append(f"{days_apart} days apart (outside tolerance)")

    # Type
    type_match = record.type is not None and record.type == transaction.type
    if type_match:
        factors.append("Type matches")
    else:
        factors.append(f"Type differs ({record.type} vs {transaction.type})")

    # TO / FROM
    to_name = to_seller.full_name if to_seller else None
    from_name = from_seller.full_name if from_seller else None

    to_match = False
    if record.counterparty_to or to_name:
        to_match = fuzzy_match(record.counterparty_to, to_name, max_name_distance)

    from_match = False
    if record.counterparty_from or from_name:
        from_match = fuzzy_match(record.counterparty_from, from_name, max_name_distance)

    # The platform sometimes names the girl in the column the troop leaves empty
    if not (to_match or from_match) and record.counterparty and (to_name or from_name):
        if fuzzy_match(record.counterparty, to_name or from_name, max_name_distance):
            if to_name:
                to_match = True
            else:
                from_match = True

    if to_match or from_match:
        matched_name = to_name if to_match else from_name
        if (record.counterparty or "").lower() == (matched_name or "").lower():
            factors.append("Name matches")
        else:
            factors.append(f"Name similar ({record.counterparty} vs {matched_name})")

    # Order number
    order_num_match = bool(record.order_num and transaction.order_num) and (
        record.order_num == normalize_order_number(transaction.order_num)
    )
    if order_num_match:
        factors.append("Order number matches")

    non_cookie_fields = sum([date_match, type_match, to_match or from_match, order_num_match])

    # Cookies
    cookies = check_for_partial_cookie_match(record, transaction, cookie_abbreviations)
    factors.append(f"{cookies.number_matched} of {cookies.total_cookie_types} cookie types match")

    score = (
        (cookies.number_matched + non_cookie_fields)
        * 100
        / (cookies.total_cookie_types + NON_COOKIE_FIELDS)
    )

    return MatchDetails(
        date_match=date_match,
        type_match=type_match,
        to_match=to_match,
        from_match=from_match,
        order_num_match=order_num_match,
        non_cookie_fields_matched=non_cookie_fields,
        cookies=cookies,
        match_score=score,
        factors=factors,
    )


def meets_partial_threshold(
    details: MatchDetails,
    one_field_threshold: float = ONE_FIELD_THRESHOLD,
    two_field_threshold: float = TWO_FIELD_THRESHOLD,
) -> bool:
    """
    Usefulness threshold for a partial candidate.

    - one non-cookie field matched: score above 60
    - two or more matched: score above 40
    """
    fields = details.non_cookie_fields_matched
    return (fields >= 1 and details.match_score > one_field_threshold) or (
        fields >= 2 and details.match_score > two_field_threshold
    )
