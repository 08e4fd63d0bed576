# app/models/report.py

from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator


# ============================================
# Audit Session
# ============================================

class AuditSession(BaseModel):
    """An uploaded third-party export awaiting reconciliation."""

    id: Any
    profile: Optional[str] = None
    season: Optional[Any] = None
    parsed_rows: list[Any] = Field(default_factory=list)
    original_file_data: Optional[dict] = None

    class Config:
        from_attributes = True

    # Stored JSON may be null or the wrong shape; treat it as no data
    @field_validator("parsed_rows", mode="before")
    @classmethod
    def coerce_parsed_rows(cls, v):
        return v if isinstance(v, list) else []

    @field_validator("original_file_data", mode="before")
    @classmethod
    def coerce_original_file_data(cls, v):
        return v if isinstance(v, dict) else None

    @property
    def headers(self) -> list[str]:
        return list((self.original_file_data or {}).get("headers") or [])


# ============================================
# Reconciliation Summary
# ============================================

class ReconciliationSummary(BaseModel):
    """Summary of a reconciliation run."""

    total_audit_rows: int
    total_orders: int
    match_count: int
    partial_match_count: int
    unmatched_count: int
    excluded_count: int
    unmatched_order_count: int
    match_rate: float
