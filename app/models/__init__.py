# app/models/__init__.py

from app.models.transaction import (
    Cookie,
    InternalTransaction,
    Quantity,
    Seller,
)
from app.models.match import (
    CookieDifference,
    CookieMatchSummary,
    DiscrepancyClassification,
    DiscrepancySeverity,
    DiscrepancyType,
    MatchDetails,
    MatchResult,
    NormalizedAuditRecord,
    PartialMatch,
    PerfectMatch,
    Unmatched,
    UnmatchedOrder,
)
from app.models.report import (
    AuditSession,
    ReconciliationSummary,
)

__all__ = [
    # Transaction
    "Cookie",
    "InternalTransaction",
    "Quantity",
    "Seller",
    # Match
    "CookieDifference",
    "CookieMatchSummary",
    "DiscrepancyClassification",
    "DiscrepancySeverity",
    "DiscrepancyType",
    "MatchDetails",
    "MatchResult",
    "NormalizedAuditRecord",
    "PartialMatch",
    "PerfectMatch",
    "Unmatched",
    "UnmatchedOrder",
    # Report
    "AuditSession",
    "ReconciliationSummary",
]
