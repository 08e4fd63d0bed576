# app/core/__init__.py

from app.core.matching import (
    reconcile,
    reconcile_rows,
    resolve_seller,
    dedupe_girl_to_girl,
    ReconciliationResult,
)
from app.core.evaluators import (
    check_for_cookie_match,
    check_for_partial_cookie_match,
    date_matches_with_tolerance,
    score_partial_candidate,
    meets_partial_threshold,
)
from app.core.classification import (
    classify_partial_match,
    classify_unmatched,
    classify_unmatched_order,
)
from app.core.normalizers import (
    normalize_date,
    normalize_order_number,
    normalize_order_row,
    process_audit_row_for_matching,
    row_to_object,
)
from app.core.string_matching import fuzzy_match, levenshtein_distance

__all__ = [
    "reconcile",
    "reconcile_rows",
    "resolve_seller",
    "dedupe_girl_to_girl",
    "ReconciliationResult",
    "check_for_cookie_match",
    "check_for_partial_cookie_match",
    "date_matches_with_tolerance",
    "score_partial_candidate",
    "meets_partial_threshold",
    "classify_partial_match",
    "classify_unmatched",
    "classify_unmatched_order",
    "normalize_date",
    "normalize_order_number",
    "normalize_order_row",
    "process_audit_row_for_matching",
    "row_to_object",
    "fuzzy_match",
    "levenshtein_distance",
]
