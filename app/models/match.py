# app/models/match.py

from typing import Annotated, Any, Optional, Literal, Union
from pydantic import BaseModel, Field

from app.models.transaction import InternalTransaction, Quantity, Seller


# ============================================
# Normalized Audit Record
# ============================================

class NormalizedAuditRecord(BaseModel):
    """One uploaded audit row, normalized for matching."""

    row_index: int = 0
    date: Optional[str] = Field(None, description="Canonical YYYY-MM-DD")
    order_num: str = ""
    type: Optional[str] = None
    counterparty_from: Optional[str] = None
    counterparty_to: Optional[str] = None
    cookie_quantities: dict[str, Quantity] = Field(default_factory=dict)
    cells: dict[str, Any] = Field(default_factory=dict, description="Original labeled cells")

    class Config:
        frozen = True

    @property
    def counterparty(self) -> Optional[str]:
        """The party named on the row, preferring the derived TO/FROM."""
        if self.counterparty_to:
            return self.counterparty_to
        if self.counterparty_from:
            return self.counterparty_from
        for header in ("TO", "FROM"):
            value = self.cells.get(header)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return None

    @property
    def is_matchable(self) -> bool:
        """Rows without a date, type or counterparty carry no usable information."""
        if not self.date or not self.type:
            return False
        return self.type == "C2T" or self.counterparty is not None


# ============================================
# Evaluator Outputs
# ============================================

class CookieMatchSummary(BaseModel):
    """Result of the loose per-cookie comparison."""

    number_matched: int = 0
    total_cookie_types: int = 0
    match_percentage: float = 0.0


class MatchDetails(BaseModel):
    """Breakdown of how a partial candidate was scored."""

    date_match: bool = False
    type_match: bool = False
    to_match: bool = False
    from_match: bool = False
    order_num_match: bool = False
    non_cookie_fields_matched: int = Field(0, ge=0, le=4)
    cookies: CookieMatchSummary = Field(default_factory=CookieMatchSummary)
    match_score: float = Field(0.0, ge=0, le=100)
    factors: list[str] = Field(default_factory=list, description="Human-readable factors")


# ============================================
# Discrepancy Classification
# ============================================

DiscrepancyType = Literal[
    "sign_flip",
    "quantity_mismatch",
    "timing_difference",
    "name_variation",
    "order_number_mismatch",
    "missing_in_orders",
    "missing_in_audit",
    "unknown",
]

DiscrepancySeverity = Literal["critical", "warning", "info"]


class CookieDifference(BaseModel):
    """A cookie type whose quantities disagree."""

    abbreviation: str
    audit_quantity: float
    recorded_quantity: float

    @property
    def difference(self) -> float:
        return self.audit_quantity - self.recorded_quantity


class DiscrepancyClassification(BaseModel):
    """Classification of a discrepancy."""

    type: DiscrepancyType
    severity: DiscrepancySeverity
    factors: list[str] = Field(default_factory=list)
    cookie_differences: list[CookieDifference] = Field(default_factory=list)
    date_difference_days: Optional[int] = None


# ============================================
# Match Results
# ============================================

class PerfectMatch(BaseModel):
    """Every compared field agrees exactly."""

    kind: Literal["perfect"] = "perfect"
    audit_record: NormalizedAuditRecord
    transaction: InternalTransaction
    seller: Optional[Seller] = None
    to_seller: Optional[Seller] = None
    from_seller: Optional[Seller] = None


class PartialMatch(BaseModel):
    """Best loose candidate for an audit row without a perfect match."""

    kind: Literal["partial"] = "partial"
    audit_record: NormalizedAuditRecord
    transaction: InternalTransaction
    seller: Optional[Seller] = None
    to_seller: Optional[Seller] = None
    from_seller: Optional[Seller] = None
    number_matched: int
    total_cookie_types: int
    match_percentage: float
    details: MatchDetails
    discrepancy: DiscrepancyClassification
    candidate_count: int = 1


class Unmatched(BaseModel):
    """No recorded transaction satisfies even the loose criteria."""

    kind: Literal["unmatched"] = "unmatched"
    audit_record: NormalizedAuditRecord
    classification: DiscrepancyClassification
    suggested_seller: Optional[Seller] = None


class UnmatchedOrder(BaseModel):
    """A recorded order no audit row accounts for."""

    transaction: InternalTransaction
    classification: DiscrepancyClassification
    to_seller: Optional[Seller] = None
    from_seller: Optional[Seller] = None


MatchResult = Annotated[
    Union[PerfectMatch, PartialMatch, Unmatched],
    Field(discriminator="kind"),
]
