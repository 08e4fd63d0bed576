# app/core/matching.py

"""
Core audit reconciliation engine.

Pairs the rows of a cookie platform export with the troop's recorded
orders and reports, per audit row, a perfect match, the best partial
match, or nothing.
"""

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional
import logging

from app.models import (
    Cookie,
    InternalTransaction,
    MatchResult,
    NormalizedAuditRecord,
    PartialMatch,
    PerfectMatch,
    ReconciliationSummary,
    Seller,
    Unmatched,
    UnmatchedOrder,
)
from app.core.classification import (
    classify_partial_match,
    classify_unmatched,
    classify_unmatched_order,
)
from app.core.evaluators import (
    DATE_TOLERANCE_DAYS,
    MAX_NAME_DISTANCE,
    ONE_FIELD_THRESHOLD,
    TWO_FIELD_THRESHOLD,
    quantity_or_zero,
    check_for_cookie_match,
    meets_partial_threshold,
    score_partial_candidate,
)
from app.core.normalizers import (
    get_cookie_abbreviations,
    get_sellers_map,
    has_valid_headers,
    normalize_audit_rows,
    normalize_date,
)
from app.core.string_matching import levenshtein_distance

logger = logging.getLogger(__name__)

# Types whose rows name no girl on either side
NAMELESS_TYPES = ("C2T", "T2T")


class ReconciliationResult:
    """Result of a reconciliation run."""

    def __init__(self):
        self.matches: list[MatchResult] = []
        self.unmatched_orders: list[UnmatchedOrder] = []
        self.summary: Optional[ReconciliationSummary] = None
        self.valid_headers: bool = True
        self.duration_ms: int = 0

    @property
    def perfect_matches(self) -> list[PerfectMatch]:
        return [m for m in self.matches if isinstance(m, PerfectMatch)]

    @property
    def partial_matches(self) -> list[PartialMatch]:
        return [m for m in self.matches if isinstance(m, PartialMatch)]

    @property
    def unmatched(self) -> list[Unmatched]:
        return [m for m in self.matches if isinstance(m, Unmatched)]

    @property
    def total_audit_rows(self) -> int:
        return self.summary.total_audit_rows if self.summary else 0

    @property
    def total_orders(self) -> int:
        return self.summary.total_orders if self.summary else 0

    @property
    def match_count(self) -> int:
        return len(self.perfect_matches)

    def to_dict(self) -> dict:
        """Convert to dictionary for API response."""
        return {
            "summary": self.summary.model_dump() if self.summary else None,
            "matches": [m.model_dump(by_alias=True) for m in self.matches],
            "unmatched_orders": [u.model_dump(by_alias=True) for u in self.unmatched_orders],
            "total_audit_rows": self.total_audit_rows,
            "total_orders": self.total_orders,
            "match_count": self.match_count,
            "partial_match_count": len(self.partial_matches),
            "valid_headers": self.valid_headers,
            "error": None if self.valid_headers else "Invalid audit file headers",
            "duration_ms": self.duration_ms,
        }


# ============================================
# Helpers
# ============================================

def resolve_seller(
    name: Optional[str],
    sellers: Iterable[Seller] | Mapping[int, Seller],
    max_distance: Optional[int] = None,
) -> Optional[Seller]:
    """
    Find the seller a name refers to.

    Exact full-name equality wins. With max_distance, falls back to the
    closest seller within that many edits (first in list order on ties).
    """
    if not name:
        return None

    if isinstance(sellers, Mapping):
        sellers = sellers.values()
    sellers = list(sellers)

    for seller in sellers:
        if seller.full_name == name:
            return seller

    if max_distance is None:
        return None

    best: Optional[Seller] = None
    best_distance = max_distance + 1
    for seller in sellers:
        distance = levenshtein_distance(name, seller.full_name)
        if distance < best_distance:
            best = seller
            best_distance = distance

    return best


def _has_positive_quantity(record: NormalizedAuditRecord, cookie_abbreviations: list[str]) -> bool:
    return any(quantity_or_zero(record.cookie_quantities.get(abbr)) > 0 for abbr in cookie_abbreviations)


def dedupe_girl_to_girl(
    records: Iterable[NormalizedAuditRecord],
    cookie_abbreviations: Iterable[Any],
) -> list[NormalizedAuditRecord]:
    """
    Collapse the platform's paired G2G rows.

    Each G2G order is exported twice, once from each girl's side (one
    negative, one positive). Keep one row per order number, preferring the
    one with a positive quantity, at the position of the first occurrence.
    """
    abbrs = get_cookie_abbreviations(cookie_abbreviations)
    deduped: list[NormalizedAuditRecord] = []
    positions: dict[str, int] = {}

    for record in records:
        if record.type != "G2G" or not record.order_num:
            deduped.append(record)
            continue

        index = positions.get(record.order_num)
        if index is None:
            positions[record.order_num] = len(deduped)
            deduped.append(record)
            continue

        existing = deduped[index]
        if _has_positive_quantity(record, abbrs) and not _has_positive_quantity(existing, abbrs):
            deduped[index] = record
        logger.debug(f"Dropped duplicate G2G row {record.row_index} for order {record.order_num}")

    return deduped


def _as_transaction(transaction: InternalTransaction | Mapping[str, Any]) -> InternalTransaction:
    if isinstance(transaction, InternalTransaction):
        return transaction
    return InternalTransaction.model_validate(transaction)


def _names_match(
    record: NormalizedAuditRecord,
    to_seller: Optional[Seller],
    from_seller: Optional[Seller],
) -> bool:
    """Exact counterparty check for the perfect tier."""
    if record.type in NAMELESS_TYPES:
        return True

    to_name = to_seller.full_name if to_seller else None
    from_name = from_seller.full_name if from_seller else None

    # G2G names a girl on both sides
    if record.counterparty_to and record.counterparty_from:
        return record.counterparty_to == to_name and record.counterparty_from == from_name

    return record.counterparty == (to_name or from_name)


# ============================================
# Reconciliation
# ============================================

def reconcile(
    audit_records: list[NormalizedAuditRecord],
    transactions: list[InternalTransaction | Mapping[str, Any]],
    sellers: Iterable[Seller | Mapping] | None,
    cookie_abbreviations: Iterable[Cookie | Mapping | str] | None,
    total_audit_rows: Optional[int] = None,
    fuzzy_max_distance: int = MAX_NAME_DISTANCE,
    date_tolerance_days: int = DATE_TOLERANCE_DAYS,
    one_field_threshold: float = ONE_FIELD_THRESHOLD,
    two_field_threshold: float = TWO_FIELD_THRESHOLD,
) -> ReconciliationResult:
    """
    Main reconciliation function.

    Multi-pass approach:
    1. Drop paired G2G rows and rows with no usable information
    2. Perfect tier: same date, type and names, every cookie quantity equal
    3. Partial tier: best loose candidate among orders not perfectly matched
    4. Collect orders nothing accounts for
    """
    start_time = datetime.now()
    result = ReconciliationResult()

    abbrs = get_cookie_abbreviations(cookie_abbreviations)
    seller_map = get_sellers_map(sellers)
    orders = [_as_transaction(t) for t in transactions or []]

    # Per order: normalized date, TO seller, FROM seller
    order_context = [
        (
            normalize_date(order.date),
            seller_map.get(order.to) if order.to is not None else None,
            seller_map.get(order.from_) if order.from_ is not None else None,
        )
        for order in orders
    ]

    # ============================================
    # Records worth matching
    # ============================================
    candidates = dedupe_girl_to_girl(audit_records, abbrs)
    records = []
    for record in candidates:
        if record.is_matchable:
            records.append(record)
        else:
            logger.debug(f"Excluding audit row {record.row_index}: missing date, type or counterparty")

    # Positions in `orders` consumed by a perfect or chosen partial match
    perfect_order_ids: set[int] = set()
    partial_order_ids: set[int] = set()

    per_record: dict[int, list[MatchResult]] = {}

    # ============================================
    # Perfect tier
    # ============================================
    for position, record in enumerate(records):
        seller = resolve_seller(record.counterparty, seller_map)
        found: list[MatchResult] = []
        matched_ids: list[int] = []

        for order_index, order in enumerate(orders):
            if order_index in perfect_order_ids:
                continue

            order_date, to_seller, from_seller = order_context[order_index]

            if record.date != order_date:
                continue

            if record.type != order.type:
                continue

            if not _names_match(record, to_seller, from_seller):
                continue

            if check_for_cookie_match(record, order, abbrs):
                matched_ids.append(order_index)
                found.append(
                    PerfectMatch(
                        audit_record=record,
                        transaction=order,
                        seller=seller,
                        to_seller=to_seller,
                        from_seller=from_seller,
                    )
                )

        # Ties are all reported, each order is consumed once
        perfect_order_ids.update(matched_ids)

        if found:
            per_record[position] = found

    # ============================================
    # Partial tier
    # ============================================
    for position, record in enumerate(records):
        if position in per_record:
            continue

        seller = resolve_seller(record.counterparty, seller_map)
        best = None
        qualifying = 0

        for order_index, order in enumerate(orders):
            if order_index in perfect_order_ids:
                continue

            order_date, to_seller, from_seller = order_context[order_index]

            details = score_partial_candidate(
                record,
                order,
                abbrs,
                to_seller=to_seller,
                from_seller=from_seller,
                max_name_distance=fuzzy_max_distance,
                date_tolerance_days=date_tolerance_days,
                order_date=order_date,
            )

            if not meets_partial_threshold(details, one_field_threshold, two_field_threshold):
                continue

            qualifying += 1
            if best is None or details.match_score > best[1].match_score:
                best = (order_index, details, to_seller, from_seller)

        if best is None:
            per_record[position] = [
                Unmatched(
                    audit_record=record,
                    classification=classify_unmatched(record, abbrs),
                    suggested_seller=resolve_seller(
                        record.counterparty, seller_map, max_distance=fuzzy_max_distance
                    ),
                )
            ]
            continue

        order_index, details, to_seller, from_seller = best
        order = orders[order_index]
        partial_order_ids.add(order_index)

        if details.to_match and to_seller:
            counterparty_name = to_seller.full_name
        elif details.from_match and from_seller:
            counterparty_name = from_seller.full_name
        else:
            named = to_seller or from_seller
            counterparty_name = named.full_name if named else None

        per_record[position] = [
            PartialMatch(
                audit_record=record,
                transaction=order,
                seller=seller,
                to_seller=to_seller,
                from_seller=from_seller,
                number_matched=details.cookies.number_matched,
                total_cookie_types=details.cookies.total_cookie_types,
                match_percentage=details.cookies.match_percentage,
                details=details,
                discrepancy=classify_partial_match(
                    record, order, details, abbrs, counterparty_name=counterparty_name
                ),
                candidate_count=qualifying,
            )
        ]

    for position in range(len(records)):
        result.matches.extend(per_record.get(position, []))

    # ============================================
    # Orders nothing accounts for
    # ============================================
    for order_index, order in enumerate(orders):
        if order_index in perfect_order_ids or order_index in partial_order_ids:
            continue
        result.unmatched_orders.append(
            UnmatchedOrder(
                transaction=order,
                classification=classify_unmatched_order(order),
                to_seller=order_context[order_index][1],
                from_seller=order_context[order_index][2],
            )
        )

    # ============================================
    # Calculate summary
    # ============================================
    perfect_records = len({m.audit_record.row_index for m in result.perfect_matches})
    total_rows = total_audit_rows if total_audit_rows is not None else len(audit_records)

    result.summary = ReconciliationSummary(
        total_audit_rows=total_rows,
        total_orders=len(orders),
        match_count=len(result.perfect_matches),
        partial_match_count=len(result.partial_matches),
        unmatched_count=len(result.unmatched),
        excluded_count=len(audit_records) - len(records),
        unmatched_order_count=len(result.unmatched_orders),
        match_rate=(perfect_records / len(records) * 100) if records else 0,
    )

    result.duration_ms = int((datetime.now() - start_time).total_seconds() * 1000)

    logger.info(
        f"Reconciled {total_rows} audit rows against {len(orders)} orders: "
        f"{result.summary.match_count} perfect, {result.summary.partial_match_count} partial, "
        f"{result.summary.unmatched_count} unmatched, {result.summary.excluded_count} excluded "
        f"({result.duration_ms}ms)"
    )

    return result


def reconcile_rows(
    rows: list[Any] | None,
    headers: list[str] | None,
    transactions: list[InternalTransaction | Mapping[str, Any]],
    sellers: Iterable[Seller | Mapping] | None,
    cookies: Iterable[Cookie | Mapping | str] | None,
    **options: Any,
) -> ReconciliationResult:
    """
    Reconcile raw parsed rows of an upload.

    An upload without the expected fixed columns yields an empty result
    with valid_headers=False and every order reported as unmatched.
    """
    rows = rows or []
    headers = headers or []

    if not has_valid_headers(headers):
        logger.warning(f"Audit upload is missing expected headers: {headers}")
        result = reconcile([], transactions, sellers, cookies, total_audit_rows=len(rows), **options)
        result.valid_headers = False
        return result

    records = normalize_audit_rows(rows, headers, cookies)
    return reconcile(records, transactions, sellers, cookies, total_audit_rows=len(rows), **options)
